"""
Test configuration and fixtures for the ledger service test suite.

Provides:
- A temporary troop data directory wired into the service settings
- FastAPI TestClient fixture
- Factory functions for writing source files
"""
import json
from pathlib import Path
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from cookie_ledger.snapshot import SnapshotPublisher
from cookie_ledger.tests.factories import THIN_MINTS_ID, TROOP, api_order


# ---------------------------------------------------------------------------
# Data directory fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def data_dir(tmp_path, monkeypatch):
    """
    Point the service at an empty troop directory with a fresh publisher.
    """
    from server.core import worker

    (tmp_path / "sync").mkdir()
    (tmp_path / "in").mkdir()

    monkeypatch.setattr(worker.settings, "DATA_DIR", str(tmp_path))
    monkeypatch.setattr(worker.settings, "SNAPSHOT_PATH", "")
    monkeypatch.setattr(worker.settings, "CONFIG_PATH", "")
    monkeypatch.setattr(worker.settings, "STRICT_INVARIANTS", False)
    monkeypatch.setattr(worker, "publisher", SnapshotPublisher())
    monkeypatch.setattr(worker, "_last_result", {})
    return tmp_path


@pytest.fixture()
def client(data_dir):
    """
    Provide a FastAPI TestClient against the temporary data directory.

    Skips the lifespan (worker init/shutdown) to avoid APScheduler side effects.
    """
    from server.api.main import app

    # Disable lifespan so worker doesn't start during tests
    with patch("server.api.main.init_worker"), \
         patch("server.api.main.stop_scheduler"):
        with TestClient(app) as c:
            yield c


# ---------------------------------------------------------------------------
# Factory functions
# ---------------------------------------------------------------------------

def write_troop(data_dir: Path, troop_id=TROOP, troop_name="Troop 3990") -> Path:
    """Write sc-troop.json and return its path."""
    path = data_dir / "sc-troop.json"
    path.write_text(json.dumps({"role": {"troop_id": troop_id, "troop_name": troop_name}}))
    return path


def write_sc_orders(data_dir: Path, orders=None) -> Path:
    """Write sync/sc-orders.json; defaults to one pickup of 12 Thin Mints."""
    if orders is None:
        orders = [api_order(to="Ava Smith", cookies={THIN_MINTS_ID: 12})]
    path = data_dir / "sync" / "sc-orders.json"
    path.write_text(json.dumps({"orders": orders}))
    return path
