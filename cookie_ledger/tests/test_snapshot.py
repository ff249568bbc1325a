"""
Tests for snapshot serialization and publishing.

Run with: pytest cookie_ledger/tests/test_snapshot.py -v
"""

import json
import threading

import pytest

from cookie_ledger import snapshot
from cookie_ledger.pipeline import build_from_source
from cookie_ledger.snapshot import (
    SnapshotPublisher,
    dataset_to_dict,
    dataset_to_json,
    write_snapshot_atomic,
)
from cookie_ledger.sources import InMemorySource

from cookie_ledger.tests.factories import THIN_MINTS_ID, TROOP, api_order, dc_row


STAMP = "2025-02-20T12:00:00+00:00"


def build(**payloads):
    source = InMemorySource(
        imported_at=STAMP,
        troop_identity={"role": {"troop_id": TROOP}},
        **payloads,
    )
    return build_from_source(source)


def sample():
    return build(
        digital_cookie=[dc_row(first="A", last="B", Thin_Mints=5)],
        sc_orders={"orders": [api_order(to="A B", cookies={THIN_MINTS_ID: 12})]},
    )


# ============================================================================
# Serialization
# ============================================================================

class TestDatasetToDict:
    """camelCase shape with string money."""

    def test_top_level_keys(self):
        data = dataset_to_dict(sample())
        assert set(data) == {
            "scouts", "siteOrders", "troopTotals", "troopInventory", "transferBreakdowns",
            "varieties", "cookieShare", "boothReservations", "boothLocations",
            "warnings", "metadata",
        }

    def test_scout_shape(self):
        scout = dataset_to_dict(sample())["scouts"]["A B"]

        assert scout["firstName"] == "A"
        assert scout["inventory"]["pickedUp"] == {"THIN_MINTS": 12}
        assert scout["inventory"]["net"] == {"THIN_MINTS": 7}
        assert scout["inventory"]["onHand"] == 7
        assert scout["financials"]["pickupValue"] == "72.00"
        assert scout["totals"]["revenue"] == "30.00"
        assert scout["issues"]["negativeInventory"] == []

    def test_metadata(self):
        meta = dataset_to_dict(sample())["metadata"]

        assert meta["lastImportDC"] == STAMP
        assert meta["lastImportSC"] == STAMP
        assert meta["lastImportSCReport"] is None
        assert meta["troopNumber"] == TROOP
        assert meta["status"] == "ready"
        assert meta["healthChecks"]["unknownOrderTypes"] == 0
        assert meta["healthChecks"]["warningsCount"] == 0

    def test_warning_carries_context(self):
        dataset = build(digital_cookie=[dc_row(first="A", last="B", Thin_Mints=3)])
        warnings = dataset_to_dict(dataset)["warnings"]

        negative = [w for w in warnings if w["type"] == "NEGATIVE_INVENTORY"]
        assert len(negative) == 1
        assert negative[0]["scout"] == "A B"
        assert negative[0]["variety"] == "THIN_MINTS"
        assert negative[0]["shortfall"] == 3
        assert "message" in negative[0]


class TestDatasetToJson:
    """Byte-identical output for identical input."""

    def test_same_dataset_same_bytes(self):
        dataset = sample()
        assert dataset_to_json(dataset) == dataset_to_json(dataset)

    def test_two_builds_same_bytes(self):
        assert dataset_to_json(sample()) == dataset_to_json(sample())

    def test_is_valid_json(self):
        data = json.loads(dataset_to_json(sample()))
        assert data["troopTotals"]["proceeds"]["rate"] == "0.85"


class TestWriteSnapshotAtomic:
    """Temp file then rename."""

    def test_writes_and_leaves_no_temp(self, tmp_path):
        path = tmp_path / "out" / "unified.json"
        written = write_snapshot_atomic(sample(), path)

        assert written == path
        assert json.loads(path.read_text())["metadata"]["status"] == "ready"
        assert list(path.parent.iterdir()) == [path]

    def test_replaces_existing(self, tmp_path):
        path = tmp_path / "unified.json"
        path.write_text("old")
        write_snapshot_atomic(sample(), path)
        assert path.read_text().startswith("{")

    def test_failed_write_removes_temp(self, tmp_path, monkeypatch):
        path = tmp_path / "unified.json"
        path.write_text("old")

        def broken(dataset):
            raise ValueError("cannot serialize")

        monkeypatch.setattr(snapshot, "dataset_to_json", broken)
        with pytest.raises(ValueError, match="cannot serialize"):
            write_snapshot_atomic(sample(), path)

        assert list(tmp_path.iterdir()) == [path]
        assert path.read_text() == "old"


# ============================================================================
# Publisher
# ============================================================================

class TestSnapshotPublisher:
    """Newest run wins."""

    def test_run_ids_increase(self):
        publisher = SnapshotPublisher()
        assert [publisher.begin() for _ in range(3)] == [1, 2, 3]

    def test_stale_run_is_discarded(self):
        publisher = SnapshotPublisher()
        first = publisher.begin()
        second = publisher.begin()
        newer, older = sample(), build()
        written = []

        assert publisher.publish(second, newer, written.append)
        assert not publisher.publish(first, older, written.append)

        assert publisher.latest is newer
        assert publisher.published_run_id == second
        assert written == [newer]

    def test_in_order_runs_both_publish(self):
        publisher = SnapshotPublisher()
        a = publisher.begin()
        assert publisher.publish(a, build())
        b = publisher.begin()
        assert publisher.publish(b, build())
        assert publisher.published_run_id == b

    def test_concurrent_publishes_keep_newest(self):
        publisher = SnapshotPublisher()
        dataset = build()
        run_ids = [publisher.begin() for _ in range(20)]

        threads = [
            threading.Thread(target=publisher.publish, args=(run_id, dataset))
            for run_id in reversed(run_ids)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert publisher.published_run_id == run_ids[-1]

    def test_nothing_published_yet(self):
        publisher = SnapshotPublisher()
        assert publisher.latest is None
        assert publisher.published_run_id == 0
