"""
Ledger API router.

Report endpoints refuse to answer when the dataset is blocked by unknown
order types: they return 409 with only the warnings list.
"""
from fastapi import APIRouter, HTTPException

from cookie_ledger.models import DatasetStatus, UnifiedDataset
from cookie_ledger.snapshot import dataset_to_dict, scout_to_dict, warning_to_dict

from server.api.models import HealthChecks, RebuildResponse, StatusResponse, WarningsResponse
from server.core import worker

router = APIRouter(prefix="/api/ledger", tags=["Ledger"])


def _require_dataset() -> UnifiedDataset:
    dataset = worker.current_dataset()
    if dataset is None:
        detail = worker.last_result().get("error") or "No snapshot has been built"
        raise HTTPException(status_code=404, detail=detail)
    return dataset


def _require_report(dataset: UnifiedDataset) -> UnifiedDataset:
    """Guard report endpoints on the dataset status."""
    status = dataset.metadata.status
    if status == DatasetStatus.NO_DATA:
        raise HTTPException(status_code=404, detail="No Digital Cookie or Smart Cookie data loaded")
    if status == DatasetStatus.BLOCKED:
        raise HTTPException(status_code=409, detail={
            "status": status.value,
            "warnings": [warning_to_dict(w) for w in dataset.warnings],
        })
    return dataset


@router.get("/status", response_model=StatusResponse)
def get_status():
    """Dataset status, import times and health counters."""
    dataset = _require_dataset()
    meta = dataset.metadata
    checks = meta.health_checks
    return StatusResponse(
        status=meta.status.value,
        troop_number=meta.troop_number,
        troop_name=meta.troop_name,
        last_import_dc=meta.last_import_dc,
        last_import_sc=meta.last_import_sc,
        last_import_sc_report=meta.last_import_sc_report,
        scout_count=meta.scout_count,
        order_count=meta.order_count,
        sources=list(meta.sources),
        issues=list(meta.issues),
        health_checks=HealthChecks(
            unknown_order_types=checks.unknown_order_types,
            unknown_payment_methods=checks.unknown_payment_methods,
            unknown_transfer_types=checks.unknown_transfer_types,
            unknown_variety_ids=checks.unknown_variety_ids,
            warnings_count=checks.warnings_count,
        ),
        published_run_id=worker.publisher.published_run_id,
    )


@router.get("/dataset")
def get_dataset():
    """The full unified dataset."""
    dataset = _require_report(_require_dataset())
    return dataset_to_dict(dataset)


@router.get("/scouts/{name}")
def get_scout(name: str):
    """One scout's orders, allocations, inventory and financials."""
    dataset = _require_report(_require_dataset())
    scout = dataset.scouts.get(name)
    if scout is None:
        raise HTTPException(status_code=404, detail="Scout not found")
    return scout_to_dict(scout)


@router.get("/warnings", response_model=WarningsResponse)
def get_warnings():
    """All warnings, available even when the dataset is blocked."""
    dataset = _require_dataset()
    warnings = [warning_to_dict(w) for w in dataset.warnings]
    return WarningsResponse(warnings=warnings, count=len(warnings))


@router.post("/rebuild", response_model=RebuildResponse)
def trigger_rebuild():
    """Rebuild the snapshot now."""
    if not worker.data_dir().is_dir():
        raise HTTPException(status_code=404, detail=f"Data directory not found: {worker.data_dir()}")

    result = worker.rebuild_snapshot()
    if "error" in result:
        raise HTTPException(status_code=500, detail=f"Rebuild failed: {result['error']}")
    return RebuildResponse(**{k: v for k, v in result.items() if k in RebuildResponse.model_fields})


# Worker endpoints

worker_router = APIRouter(prefix="/api/worker", tags=["Worker"])


@worker_router.get("/status")
def worker_status():
    """Get background worker status."""
    return {**worker.get_scheduler_status(), "last_rebuild": worker.last_result()}
