"""
API Routers package.

Each module contains a FastAPI router for a specific domain.
"""

from .ledger import router as ledger_router, worker_router

__all__ = [
    "ledger_router",
    "worker_router",
]
