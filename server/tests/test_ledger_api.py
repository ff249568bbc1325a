"""
Smoke tests for the ledger API endpoints.

Each test builds a snapshot from a temporary troop directory.

Run with: pytest server/tests/test_ledger_api.py -v
"""
import json

from cookie_ledger.tests.factories import THIN_MINTS_ID, api_order

from server.tests.conftest import write_sc_orders, write_troop


# ============================================================================
# GET /api/health
# ============================================================================

class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


# ============================================================================
# GET /api/ledger/status
# ============================================================================

class TestStatus:
    """Tests for the status endpoint."""

    def test_no_data(self, client):
        """An empty directory builds a no_data snapshot."""
        resp = client.get("/api/ledger/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "no_data"
        assert data["scout_count"] == 0
        assert data["published_run_id"] == 1

    def test_ready(self, client, data_dir):
        write_troop(data_dir)
        write_sc_orders(data_dir)

        data = client.get("/api/ledger/status").json()
        assert data["status"] == "ready"
        assert data["troop_number"] == "3990"
        assert data["troop_name"] == "Troop 3990"
        assert data["last_import_sc"] is not None
        assert data["last_import_dc"] is None
        assert data["health_checks"]["unknown_order_types"] == 0

    def test_missing_directory(self, client, data_dir, monkeypatch):
        from server.core import worker

        monkeypatch.setattr(worker.settings, "DATA_DIR", str(data_dir / "missing"))
        resp = client.get("/api/ledger/status")
        assert resp.status_code == 404


# ============================================================================
# GET /api/ledger/dataset
# ============================================================================

class TestDataset:
    """Tests for the dataset endpoint."""

    def test_no_data_is_404(self, client):
        resp = client.get("/api/ledger/dataset")
        assert resp.status_code == 404

    def test_dataset(self, client, data_dir):
        write_troop(data_dir)
        write_sc_orders(data_dir)

        resp = client.get("/api/ledger/dataset")
        assert resp.status_code == 200
        data = resp.json()
        assert data["metadata"]["status"] == "ready"
        assert data["scouts"]["Ava Smith"]["inventory"]["onHand"] == 12
        assert data["scouts"]["Ava Smith"]["financials"]["pickupValue"] == "72.00"

    def test_blocked_returns_only_warnings(self, client, data_dir):
        write_sc_orders(data_dir, [api_order(transfer_type="ZZZ", order_number="D123")])

        resp = client.get("/api/ledger/dataset")
        assert resp.status_code == 409
        detail = resp.json()["detail"]
        assert detail["status"] == "blocked"
        assert {w["type"] for w in detail["warnings"]} >= {"UNKNOWN_ORDER_TYPE"}
        assert "scouts" not in detail


# ============================================================================
# GET /api/ledger/scouts/{name}
# ============================================================================

class TestScout:
    """Tests for the scout detail endpoint."""

    def test_scout(self, client, data_dir):
        write_sc_orders(data_dir)

        resp = client.get("/api/ledger/scouts/Ava Smith")
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "Ava Smith"
        assert data["inventory"]["pickedUp"] == {"THIN_MINTS": 12}

    def test_unknown_scout(self, client, data_dir):
        write_sc_orders(data_dir)
        resp = client.get("/api/ledger/scouts/Nobody")
        assert resp.status_code == 404


# ============================================================================
# GET /api/ledger/warnings
# ============================================================================

class TestWarnings:
    """Warnings are served even when blocked."""

    def test_blocked_warnings(self, client, data_dir):
        write_sc_orders(data_dir, [api_order(transfer_type="ZZZ", order_number="D123")])

        resp = client.get("/api/ledger/warnings")
        assert resp.status_code == 200
        data = resp.json()
        assert data["count"] == len(data["warnings"])
        assert any(w["type"] == "UNKNOWN_TRANSFER_TYPE" for w in data["warnings"])


# ============================================================================
# POST /api/ledger/rebuild
# ============================================================================

class TestRebuild:
    """Tests for the rebuild endpoint."""

    def test_rebuild_picks_up_new_files(self, client, data_dir):
        assert client.get("/api/ledger/status").json()["status"] == "no_data"

        write_sc_orders(data_dir, [api_order(to="Ava Smith", cookies={THIN_MINTS_ID: 6})])
        resp = client.post("/api/ledger/rebuild")
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"]
        assert data["published"]
        assert data["status"] == "ready"
        assert data["scout_count"] == 1

        status = client.get("/api/ledger/status").json()
        assert status["status"] == "ready"
        assert status["published_run_id"] == 2

    def test_rebuild_writes_snapshot(self, client, data_dir):
        write_sc_orders(data_dir)
        client.post("/api/ledger/rebuild")

        snapshot = json.loads((data_dir / "unified.json").read_text())
        assert snapshot["metadata"]["status"] == "ready"

    def test_missing_directory(self, client, data_dir, monkeypatch):
        from server.core import worker

        monkeypatch.setattr(worker.settings, "DATA_DIR", str(data_dir / "missing"))
        resp = client.post("/api/ledger/rebuild")
        assert resp.status_code == 404


# ============================================================================
# GET /api/worker/status
# ============================================================================

class TestWorkerStatus:
    """Scheduler is patched out of the test app."""

    def test_not_running(self, client):
        data = client.get("/api/worker/status").json()
        assert data["running"] is False
        assert data["jobs"] == []
