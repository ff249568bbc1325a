"""
Background rebuild worker using APScheduler.
Rebuilds the ledger snapshot on an interval and on demand.
"""
import logging
import threading
from pathlib import Path
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from cookie_ledger.config import LedgerConfig, load_config
from cookie_ledger.models import UnifiedDataset
from cookie_ledger.pipeline import rebuild
from cookie_ledger.snapshot import SnapshotPublisher

from .config import settings

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[BackgroundScheduler] = None

# Shared by the scheduled job and the rebuild endpoint so the newest run wins
publisher = SnapshotPublisher()

_last_result: dict = {}
_result_lock = threading.Lock()


def data_dir() -> Path:
    return Path(settings.DATA_DIR)


def _load_ledger_config() -> LedgerConfig:
    config = load_config(settings.CONFIG_PATH or None)
    if settings.STRICT_INVARIANTS:
        config.settings.strict_invariants = True
    return config


def rebuild_snapshot() -> dict:
    """
    Run one rebuild and publish it if no newer run finished first.

    Returns:
        Summary dict, or {"error": ...} if the run failed
    """
    try:
        config = _load_ledger_config()
        dataset, published = rebuild(
            data_dir(),
            settings.SNAPSHOT_PATH or None,
            config,
            publisher,
        )
    except FileNotFoundError as e:
        logger.error(f"Rebuild failed: {e}")
        return _store_result({"error": str(e)})
    except Exception as e:
        logger.exception("Rebuild failed with exception")
        return _store_result({"error": str(e)})

    meta = dataset.metadata
    result = {
        "success": True,
        "published": published,
        "status": meta.status.value,
        "scout_count": meta.scout_count,
        "order_count": meta.order_count,
        "warnings_count": len(dataset.warnings),
    }
    logger.info(
        f"Rebuild complete: status={meta.status.value}, scouts={meta.scout_count}, "
        f"published={published}"
    )
    return _store_result(result, dataset)


def current_dataset() -> Optional[UnifiedDataset]:
    """Latest published dataset, building one first if nothing is published yet."""
    if publisher.latest is None:
        rebuild_snapshot()
    return publisher.latest


def _store_result(result: dict, dataset: Optional[UnifiedDataset] = None) -> dict:
    """Record a run's summary unless a newer run has already published."""
    global _last_result

    with _result_lock:
        if dataset is not None and dataset is not publisher.latest:
            return result
        _last_result = result
    return result


def last_result() -> dict:
    with _result_lock:
        return dict(_last_result)


def start_scheduler():
    """Start the background scheduler."""
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already running")
        return

    scheduler = BackgroundScheduler()

    if settings.REBUILD_MINUTES > 0:
        scheduler.add_job(
            rebuild_snapshot,
            IntervalTrigger(minutes=settings.REBUILD_MINUTES),
            id="snapshot_rebuild",
            name="Rebuild ledger snapshot",
            replace_existing=True
        )

    scheduler.start()
    logger.info("Background scheduler started")


def stop_scheduler():
    """Stop the background scheduler."""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("Background scheduler stopped")


def get_scheduler_status() -> dict:
    """Get scheduler status."""
    if scheduler is None:
        return {"running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": str(job.next_run_time) if job.next_run_time else None
        })

    return {"running": scheduler.running, "jobs": jobs}


def init_worker():
    """Initialize the worker (call from FastAPI startup)."""
    start_scheduler()
    # Build once at startup so the API has data before the first interval
    rebuild_snapshot()
