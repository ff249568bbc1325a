"""
Tests for scout and troop inventory netting.

Run with: pytest cookie_ledger/tests/test_inventory.py -v
"""

from cookie_ledger.context import ImportContext
from cookie_ledger.digital_cookie import import_digital_cookie
from cookie_ledger.inventory import pickups_by_scout, scout_inventory, sold_from_stock, troop_inventory
from cookie_ledger.smart_cookie import import_sc_orders
from cookie_ledger.varieties import Variety

from cookie_ledger.tests.factories import THIN_MINTS_ID, TREFOILS_ID, TROOP, api_order, dc_row


def build(orders=(), dc_rows=()):
    ctx = ImportContext(troop_number=TROOP)
    if dc_rows:
        import_digital_cookie(ctx, list(dc_rows))
    if orders:
        import_sc_orders(ctx, {"orders": list(orders)})
    return ctx


class TestBasicReconciliation:
    """12 Thin Mints picked up, 5 delivered."""

    def test_scenario(self):
        ctx = build(
            orders=[api_order(to="A B", cookies={THIN_MINTS_ID: 12})],
            dc_rows=[dc_row(first="A", last="B", Thin_Mints=5)],
        )
        picked_up = pickups_by_scout(ctx.transfers)
        view = scout_inventory(picked_up["A B"], ctx.orders.values())

        assert view.net == {Variety.THIN_MINTS: 7}
        assert view.sold == {Variety.THIN_MINTS: 5}
        assert view.on_hand == 7
        assert view.negative == ()

        troop = troop_inventory(ctx.transfers)
        assert troop.net == {Variety.THIN_MINTS: -12}
        assert troop.allocated == {Variety.THIN_MINTS: 12}


class TestScoutInventory:
    """Signed net and floored display."""

    def test_negative_is_kept_signed(self):
        ctx = build(
            orders=[api_order(to="A B", cookies={THIN_MINTS_ID: 2, TREFOILS_ID: 4})],
            dc_rows=[dc_row(first="A", last="B", Thin_Mints=5, Trefoils=1)],
        )
        view = scout_inventory(pickups_by_scout(ctx.transfers)["A B"], ctx.orders.values())

        assert view.net == {Variety.THIN_MINTS: -3, Variety.TREFOILS: 3}
        assert view.display == {Variety.THIN_MINTS: 0, Variety.TREFOILS: 3}
        assert view.on_hand == 3
        assert len(view.negative) == 1
        issue = view.negative[0]
        assert issue.variety == Variety.THIN_MINTS
        assert issue.inventory == 2
        assert issue.sales == 5
        assert issue.shortfall == 3

    def test_display_is_max_of_net_and_zero(self):
        ctx = build(
            orders=[api_order(to="A B", cookies={THIN_MINTS_ID: 1, TREFOILS_ID: 6})],
            dc_rows=[dc_row(first="A", last="B", Thin_Mints=4, Trefoils=2)],
        )
        view = scout_inventory(pickups_by_scout(ctx.transfers)["A B"], ctx.orders.values())
        for variety, net in view.net.items():
            assert view.display[variety] == max(net, 0)

    def test_returns_reduce_pickups(self):
        ctx = build(orders=[
            api_order(order_number="1", to="A B", cookies={THIN_MINTS_ID: 10}),
            api_order(order_number="2", transfer_type="G2T", to=TROOP, from_="A B", cookies={THIN_MINTS_ID: 4}),
        ])
        assert pickups_by_scout(ctx.transfers)["A B"] == {Variety.THIN_MINTS: 6}

        troop = troop_inventory(ctx.transfers)
        assert troop.received == {Variety.THIN_MINTS: 4}
        assert troop.net == {Variety.THIN_MINTS: -6}

    def test_direct_ship_and_donation_never_touch_stock(self):
        ctx = build(dc_rows=[
            dc_row(order_number="1", first="A", last="B", order_type="Shipped", Thin_Mints=3),
            dc_row(order_number="2", first="A", last="B", order_type="Donation", donation=2),
            dc_row(order_number="3", first="A", last="B", order_type="Cookies in Hand", Trefoils=1),
        ])
        assert sold_from_stock(ctx.orders.values()) == {Variety.TREFOILS: 1}


class TestTroopInventory:
    """Troop stock from council, other troops and scouts."""

    def test_received_allocated_sent(self):
        ctx = build(orders=[
            api_order(order_number="1", transfer_type="C2T", to=TROOP, from_="Council", cookies={THIN_MINTS_ID: 48}),
            api_order(order_number="2", transfer_type="T2T", to=TROOP, from_="4121", cookies={THIN_MINTS_ID: 12}),
            api_order(order_number="3", transfer_type="T2T", to="4121", from_=TROOP, cookies={THIN_MINTS_ID: 6}),
            api_order(order_number="4", to="A B", cookies={THIN_MINTS_ID: 10}),
            api_order(order_number="5", to="C D", virtual_booth=True, cookies={THIN_MINTS_ID: 2}),
            api_order(order_number="6", to="C D", direct_ship_divider=True, cookies={THIN_MINTS_ID: 5}),
        ])
        troop = troop_inventory(ctx.transfers)

        assert troop.received == {Variety.THIN_MINTS: 60}
        assert troop.allocated == {Variety.THIN_MINTS: 12}
        assert troop.sent == {Variety.THIN_MINTS: 6}
        assert troop.net == {Variety.THIN_MINTS: 42}
        assert troop.total == 42

    def test_unknown_transfers_ignored(self):
        ctx = build(orders=[api_order(transfer_type="ZZZ", cookies={THIN_MINTS_ID: 9})])
        troop = troop_inventory(ctx.transfers)
        assert troop.net == {}
        assert troop.total == 0
