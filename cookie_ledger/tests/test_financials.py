"""
Tests for scout financials and troop proceeds.

Run with: pytest cookie_ledger/tests/test_financials.py -v
"""

from decimal import Decimal

import pytest

from cookie_ledger.config import LedgerConfig, proceeds_rate
from cookie_ledger.context import ImportContext
from cookie_ledger.digital_cookie import import_digital_cookie
from cookie_ledger.financials import electronic_payments, scout_financials, troop_proceeds
from cookie_ledger.inventory import scout_inventory
from cookie_ledger.models import Payment
from cookie_ledger.varieties import Variety, variety_value

from cookie_ledger.tests.factories import dc_row


def orders_for(*rows):
    ctx = ImportContext()
    import_digital_cookie(ctx, list(rows))
    return list(ctx.orders.values())


def payment(amount):
    return Payment(scout="A B", date="2025-02-10", amount=Decimal(amount), method="cash")


def financials(picked_up, orders, payments=()):
    view = scout_inventory(picked_up, orders)
    return scout_financials(picked_up, view.display, orders, payments)


class TestScoutFinancials:
    """cash_due = pickup_value - electronic_payments - payments_turned_in."""

    def test_zero_payments_turned_in(self):
        orders = orders_for(
            dc_row(order_number="1", first="A", last="B", payment="CAPTURED", Thin_Mints=2),
            dc_row(order_number="2", first="A", last="B", payment="CASH", Thin_Mints=3),
        )
        result = financials({Variety.THIN_MINTS: 12}, orders)

        assert result.pickup_value == Decimal("72.00")
        assert result.electronic_payments == Decimal("12.00")
        assert result.cash_owed == Decimal("60.00")
        assert result.payments_turned_in == Decimal("0.00")
        assert result.cash_due == Decimal("60.00")
        assert result.cash_collected == Decimal("18.00")
        assert result.inventory_value == Decimal("42.00")

    def test_over_payment_is_negative(self):
        orders = orders_for(dc_row(first="A", last="B", payment="CASH", Thin_Mints=2))
        result = financials({Variety.THIN_MINTS: 2}, orders, [payment("10.00"), payment("5.00")])

        assert result.pickup_value == Decimal("12.00")
        assert result.payments_turned_in == Decimal("15.00")
        assert result.cash_due == Decimal("-3.00")

    @pytest.mark.parametrize("payments", [(), ("20.00",), ("100.00",)])
    def test_closure(self, payments):
        orders = orders_for(
            dc_row(order_number="1", first="A", last="B", payment="VENMO", Trefoils=4),
            dc_row(order_number="2", first="A", last="B", payment="CASH", Thin_Mints=1),
        )
        result = financials({Variety.THIN_MINTS: 6, Variety.TREFOILS: 6}, orders,
                            [payment(p) for p in payments])
        assert result.cash_due == result.pickup_value - result.electronic_payments - result.payments_turned_in

    def test_caramel_chocolate_chip_price(self):
        result = financials({Variety.CARAMEL_CHOCOLATE_CHIP: 2}, [])
        assert result.pickup_value == Decimal("14.00")

    def test_direct_ship_does_not_offset_pickups(self):
        orders = orders_for(
            dc_row(order_number="1", first="A", last="B", order_type="Shipped", Thin_Mints=5),
            dc_row(order_number="2", first="A", last="B", order_type="Donation", donation=3),
        )
        assert electronic_payments(orders) == Decimal("0.00")

    def test_card_donation_does_not_offset_pickups(self):
        """$36 card order for 5 TM + 1 Cookie Share only covers the $30 of cookies."""
        orders = orders_for(
            dc_row(first="A", last="B", payment="CAPTURED", donation=1, Thin_Mints=5),
        )
        assert orders[0].amount == Decimal("36.00")

        result = financials({Variety.THIN_MINTS: 5}, orders)

        assert result.electronic_payments == Decimal("30.00")
        assert result.cash_owed == Decimal("0.00")
        assert result.cash_due == Decimal("0.00")

    def test_unknown_payment_counts_as_zero(self):
        orders = orders_for(dc_row(first="A", last="B", payment="BARTER", Thin_Mints=2))
        assert electronic_payments(orders) == Decimal("0.00")

    def test_unknown_price_raises(self):
        with pytest.raises(ValueError):
            variety_value({"NOT_A_COOKIE": 1})


class TestTroopProceeds:
    """Tiered rate with per-girl exemptions."""

    @pytest.mark.parametrize("average,rate", [
        (Decimal("0"), Decimal("0.85")),
        (Decimal("199.99"), Decimal("0.85")),
        (Decimal("200"), Decimal("0.90")),
        (Decimal("349"), Decimal("0.90")),
        (Decimal("350"), Decimal("0.95")),
    ])
    def test_rate_tiers(self, average, rate):
        assert proceeds_rate(average, LedgerConfig()) == rate

    def test_exemptions(self):
        result = troop_proceeds(received=300, cookie_share=20, direct_ship=10,
                                active_totals=[120, 30], config=LedgerConfig())

        assert result.per_girl_average == Decimal("75.00")
        assert result.rate == Decimal("0.85")
        assert result.exempt_packages == 80
        assert result.gross == Decimal("280.50")
        assert result.deduction == Decimal("68.00")
        assert result.proceeds == Decimal("212.50")

    def test_no_active_scouts(self):
        result = troop_proceeds(0, 0, 0, [], LedgerConfig())
        assert result.per_girl_average == Decimal("0.00")
        assert result.proceeds == Decimal("0.00")
