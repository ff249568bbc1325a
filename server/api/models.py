"""
Pydantic request/response models for the API.
"""
from pydantic import BaseModel
from typing import Any, Dict, List, Optional


# ============== Status ==============

class HealthChecks(BaseModel):
    unknown_order_types: int = 0
    unknown_payment_methods: int = 0
    unknown_transfer_types: int = 0
    unknown_variety_ids: int = 0
    warnings_count: int = 0


class StatusResponse(BaseModel):
    """What the dashboard may show and where the data came from."""
    status: str
    troop_number: Optional[str] = None
    troop_name: Optional[str] = None
    last_import_dc: Optional[str] = None
    last_import_sc: Optional[str] = None
    last_import_sc_report: Optional[str] = None
    scout_count: int = 0
    order_count: int = 0
    sources: List[Dict[str, Any]] = []
    issues: List[str] = []
    health_checks: HealthChecks
    published_run_id: int = 0


# ============== Warnings ==============

class WarningsResponse(BaseModel):
    warnings: List[Dict[str, Any]]
    count: int


# ============== Rebuild ==============

class RebuildResponse(BaseModel):
    success: bool
    published: bool
    status: str
    scout_count: int = 0
    order_count: int = 0
    warnings_count: int = 0
