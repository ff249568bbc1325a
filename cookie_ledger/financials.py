"""
Financial Calculator - what each scout owes and what the troop earns.

Scout:
    pickup_value        = price x net picked-up packages
    electronic_payments = list value of the physical packages on own
                          DELIVERY / IN_HAND orders paid by card or Venmo
    cash_owed           = pickup_value - electronic_payments
    cash_due            = cash_owed - payments_turned_in   (negative = overpaid)

Direct ship and donation orders are settled with the council and never
offset a pickup. An order with an unknown payment method counts as zero.

Troop proceeds:
    (received + Cookie Share + direct ship) x rate - exemptions
where the rate comes from the per-girl average tier and the first
packages of each active girl are exempt.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from .config import LedgerConfig, proceeds_rate
from .models import (
    Order,
    Owner,
    Payment,
    PaymentMethod,
    ScoutFinancials,
    TroopProceeds,
)
from .varieties import Varieties, physical_only, variety_value

CENTS = Decimal("0.01")


def electronic_payments(orders: Iterable[Order]) -> Decimal:
    """
    Card and Venmo payments for packages filled from the scout's own stock.

    Only the physical packages count. A Cookie Share donation on the same
    order was paid to the council and never came out of the scout's stock.
    """
    return sum(
        (variety_value(physical_only(o.varieties))
         for o in orders if o.needs_inventory and o.is_electronic),
        Decimal("0.00"),
    )


def cash_collected(orders: Iterable[Order]) -> Decimal:
    """Cash taken on any girl order; informational."""
    return sum(
        (o.amount for o in orders
         if o.owner == Owner.GIRL and o.payment_method == PaymentMethod.CASH),
        Decimal("0.00"),
    )


def scout_financials(
    picked_up: Varieties,
    display_inventory: Varieties,
    orders: Iterable[Order],
    payments: Iterable[Payment],
) -> ScoutFinancials:
    """
    Compute a scout's financial view.

    Args:
        picked_up: Net pickups by variety
        display_inventory: Floored on-hand inventory by variety
        orders: The scout's orders
        payments: Manual turn-ins recorded for the scout

    Returns:
        ScoutFinancials; cash_due may be negative

    Raises:
        ValueError: If a variety has no registered price
    """
    orders = list(orders)
    pickup_value = variety_value(physical_only(picked_up))
    electronic = electronic_payments(orders)
    turned_in = sum((p.amount for p in payments), Decimal("0.00"))
    cash_owed = pickup_value - electronic

    return ScoutFinancials(
        pickup_value=pickup_value,
        electronic_payments=electronic,
        cash_owed=cash_owed,
        payments_turned_in=turned_in,
        cash_due=cash_owed - turned_in,
        cash_collected=cash_collected(orders),
        inventory_value=variety_value(display_inventory),
    )


def troop_proceeds(
    received: int,
    cookie_share: int,
    direct_ship: int,
    active_totals: list[int],
    config: LedgerConfig,
) -> TroopProceeds:
    """
    Troop proceeds with per-girl exemptions.

    Args:
        received: Physical packages received from council
        cookie_share: Cookie Share packages across SC records
        direct_ship: Packages shipped directly for scouts
        active_totals: total_sold of every active (non-site) scout
        config: Proceeds tiers and exemption size

    Returns:
        TroopProceeds with the rate applied
    """
    if active_totals:
        average = (Decimal(sum(active_totals)) / len(active_totals)).quantize(CENTS, ROUND_HALF_UP)
    else:
        average = Decimal("0.00")
    rate = proceeds_rate(average, config)

    exempt = sum(min(total, config.settings.proceeds_exempt_packages) for total in active_totals)
    gross = (Decimal(received + cookie_share + direct_ship) * rate).quantize(CENTS)
    deduction = (Decimal(exempt) * rate).quantize(CENTS)

    return TroopProceeds(
        per_girl_average=average,
        rate=rate,
        gross=gross,
        exempt_packages=exempt,
        deduction=deduction,
        proceeds=gross - deduction,
    )
