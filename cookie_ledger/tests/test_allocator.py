"""
Tests for the allocator: channels, scout resolution and conservation.

Run with: pytest cookie_ledger/tests/test_allocator.py -v
"""

from decimal import Decimal

import pytest

from cookie_ledger.allocator import (
    DIRECT_SHIP_NOTE,
    UNASSIGNED_SCOUT,
    AllocationInvariantError,
    allocate_all,
    check_conservation,
    placeholder_name,
)
from cookie_ledger.context import ImportContext
from cookie_ledger.dividers import import_booth_dividers, import_direct_ship_divider
from cookie_ledger.models import (
    Allocation,
    AllocationChannel,
    AllocationSource,
    DividerEntry,
    DividerRecord,
    WarningType,
)
from cookie_ledger.smart_cookie import import_sc_orders
from cookie_ledger.varieties import Variety

from cookie_ledger.tests.factories import (
    COOKIE_SHARE_ID,
    THIN_MINTS_ID,
    TREFOILS_ID,
    TROOP,
    api_order,
    girl,
)


@pytest.fixture
def ctx():
    return ImportContext(troop_number=TROOP)


def credit(scout, varieties, reference="R1"):
    return Allocation(
        channel=AllocationChannel.BOOTH,
        source=AllocationSource.SMART_BOOTH_DIVIDER,
        scout=scout,
        source_reference=reference,
        varieties=varieties,
        packages=sum(varieties.values()),
        donations=0,
        amount=Decimal("0.00"),
    )


class TestCheckConservation:
    """Per-variety balance of a source record."""

    def test_balanced(self):
        expected = {Variety.THIN_MINTS: 5, Variety.TREFOILS: 2}
        allocations = [
            credit("Ava", {Variety.THIN_MINTS: 3}),
            credit("Mia", {Variety.THIN_MINTS: 2, Variety.TREFOILS: 2}),
        ]
        assert check_conservation("R1", expected, allocations) == []

    def test_short(self):
        problems = check_conservation("R1", {Variety.THIN_MINTS: 5}, [credit("Ava", {Variety.THIN_MINTS: 4})])
        assert problems == ["R1: THIN_MINTS allocated 4, source record has 5"]

    def test_extra_variety(self):
        problems = check_conservation("R1", {}, [credit("Ava", {Variety.TREFOILS: 1})])
        assert len(problems) == 1
        assert "TREFOILS" in problems[0]


class TestVirtualBooth:
    """Virtual booth transfers credit the recipient one-to-one."""

    def test_allocation(self, ctx):
        import_sc_orders(ctx, {"orders": [
            api_order(order_number="VB1", to="Ava Smith", virtual_booth=True,
                      cookies={THIN_MINTS_ID: 4, COOKIE_SHARE_ID: 1}, total=-30),
        ]})
        allocations = allocate_all(ctx, strict=True)

        assert len(allocations) == 1
        allocation = allocations[0]
        assert allocation.channel == AllocationChannel.VIRTUAL_BOOTH
        assert allocation.source == AllocationSource.VIRTUAL_BOOTH_TRANSFER
        assert allocation.scout == "Ava Smith"
        assert allocation.order_number == "VB1"
        assert allocation.packages == 4
        assert allocation.donations == 1
        assert allocation.amount == Decimal("30.00")

    def test_missing_recipient(self, ctx):
        import_sc_orders(ctx, {"orders": [api_order(order_number="VB2", to="", virtual_booth=True)]})
        allocations = allocate_all(ctx, strict=True)

        assert allocations[0].scout == UNASSIGNED_SCOUT
        assert [w.type for w in ctx.warnings] == [WarningType.UNMATCHED_ALLOCATION]


class TestDirectShip:
    """Direct ship divider has no per-order breakdown."""

    def test_no_order_number(self, ctx):
        import_direct_ship_divider(ctx, {"girls": [
            girl(501, "Ava", "Smith", {THIN_MINTS_ID: 3, TREFOILS_ID: 1}),
            girl(502, "Mia", "Jones", {THIN_MINTS_ID: 2}),
        ]})
        allocations = allocate_all(ctx, strict=True)

        assert len(allocations) == 2
        assert all(a.order_number is None for a in allocations)
        assert all(a.note == DIRECT_SHIP_NOTE for a in allocations)
        assert sum(a.packages for a in allocations) == 6
        assert {a.scout for a in allocations} == {"Ava Smith", "Mia Jones"}
        assert allocations[0].amount == Decimal("24.00")

    def test_known_girl_id_wins_over_payload_name(self, ctx):
        ctx.register_scout("Ava Smith-Lee", girl_id=501)
        import_direct_ship_divider(ctx, {"girls": [girl(501, cookies={THIN_MINTS_ID: 3})]})
        allocations = allocate_all(ctx)
        assert allocations[0].scout == "Ava Smith-Lee"

    def test_unknown_girl_gets_placeholder(self, ctx):
        import_direct_ship_divider(ctx, {"girls": [girl(777, cookies={THIN_MINTS_ID: 3})]})
        allocations = allocate_all(ctx)

        assert allocations[0].scout == placeholder_name(777) == "Girl #777"
        assert allocations[0].packages == 3
        assert WarningType.UNMATCHED_ALLOCATION in [w.type for w in ctx.warnings]


class TestBooth:
    """Booth divider allocations copy booth details."""

    def test_booth_fields(self, ctx):
        import_booth_dividers(ctx, [{
            "reservationId": "R9",
            "booth": {"booth_id": 7, "store_name": "Grocery Mart"},
            "timeslot": {"date": "2025-02-15", "startTime": "10:00", "endTime": "12:00"},
            "divider": {"girls": [
                girl(501, "Ava", "Smith", {THIN_MINTS_ID: 5, COOKIE_SHARE_ID: 2}),
                girl(502, "Mia", "Jones", {TREFOILS_ID: 4}),
            ]},
        }])
        allocations = allocate_all(ctx, strict=True)

        ava = next(a for a in allocations if a.scout == "Ava Smith")
        assert ava.channel == AllocationChannel.BOOTH
        assert ava.reservation_id == "R9"
        assert ava.store_name == "Grocery Mart"
        assert ava.date == "2025-02-15"
        assert ava.start_time == "10:00"
        assert ava.end_time == "12:00"
        assert ava.packages == 5
        assert ava.donations == 2
        assert ava.order_number is None


class TestConservationEnforcement:
    """A broken allocation is a bug: raise when strict, warn otherwise."""

    @pytest.fixture
    def broken_ctx(self, ctx, monkeypatch):
        import cookie_ledger.allocator as allocator

        real = allocator.allocate_divider

        def drop_last(context, record):
            return real(context, record)[:-1]

        monkeypatch.setattr(allocator, "allocate_divider", drop_last)
        ctx.dividers.append(DividerRecord(
            channel=AllocationChannel.DIRECT_SHIP,
            source=AllocationSource.DIRECT_SHIP_DIVIDER,
            reference="blob",
            entries=(
                DividerEntry(girl_id=1, scout="Ava Smith", varieties={Variety.THIN_MINTS: 2}),
                DividerEntry(girl_id=2, scout="Mia Jones", varieties={Variety.THIN_MINTS: 3}),
            ),
        ))
        return ctx

    def test_strict_raises(self, broken_ctx):
        with pytest.raises(AllocationInvariantError):
            allocate_all(broken_ctx, strict=True)

    def test_strict_error_is_assertion(self):
        assert issubclass(AllocationInvariantError, AssertionError)

    def test_production_records_internal_error(self, broken_ctx):
        allocations = allocate_all(broken_ctx, strict=False)

        assert len(allocations) == 1
        errors = [w for w in broken_ctx.warnings if w.type == WarningType.INTERNAL_ERROR]
        assert len(errors) == 1
        assert "blob" in errors[0].message


class TestChannelTransfers:
    """Divider allocations must match the T2G transfers booked for that channel."""

    def direct_ship(self, ctx, divider_count, transfer_count):
        import_sc_orders(ctx, {"orders": [
            api_order(order_number="DS1", to="Ava Smith", direct_ship_divider=True,
                      cookies={THIN_MINTS_ID: transfer_count}),
        ]})
        import_direct_ship_divider(ctx, {"girls": [
            girl(501, "Ava", "Smith", {THIN_MINTS_ID: divider_count}),
        ]})
        return ctx

    def test_matching_divider_passes_strict(self, ctx):
        allocations = allocate_all(self.direct_ship(ctx, 10, 10), strict=True)
        assert sum(a.packages for a in allocations) == 10

    def test_divider_short_of_transfers_raises(self, ctx):
        with pytest.raises(AllocationInvariantError) as exc:
            allocate_all(self.direct_ship(ctx, 6, 10), strict=True)
        assert "THIN_MINTS allocated 6, source record has 10" in str(exc.value)

    def test_divider_short_of_transfers_warns(self, ctx):
        allocate_all(self.direct_ship(ctx, 6, 10))

        errors = [w for w in ctx.warnings if w.type == WarningType.INTERNAL_ERROR]
        assert len(errors) == 1
        assert "directShip T2G transfers" in errors[0].message

    def test_booth_cookie_share_not_compared(self, ctx):
        import_sc_orders(ctx, {"orders": [
            api_order(order_number="B1", to="Ava Smith", smart_divider_id=9,
                      cookies={THIN_MINTS_ID: 5}),
        ]})
        import_booth_dividers(ctx, [{
            "reservationId": "R9",
            "divider": {"girls": [girl(501, "Ava", "Smith", {THIN_MINTS_ID: 5, COOKIE_SHARE_ID: 2})]},
        }])
        allocations = allocate_all(ctx, strict=True)
        assert allocations[0].donations == 2

    def test_divider_without_transfers_is_not_compared(self, ctx):
        import_direct_ship_divider(ctx, {"girls": [girl(501, "Ava", "Smith", {THIN_MINTS_ID: 4})]})
        allocate_all(ctx, strict=True)
        assert ctx.warnings == []
