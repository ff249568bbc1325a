"""
Donation Reconciler - Cookie Share totals, Digital Cookie vs Smart Cookie.

DC donations on orders that do not sync automatically have to be typed
into SC by hand. Those manual entries show up in SC as COOKIE_SHARE
records without a D-prefixed order number; the two totals should match.
Only totals are compared.
"""

import logging
from typing import Iterable, Mapping, Optional

from .classifier import DC_ORDER_PREFIX, is_dc_auto_sync
from .models import (
    CookieShareReconciliation,
    Order,
    Owner,
    ScoutCookieShare,
    Transfer,
    TransferCategory,
)

logger = logging.getLogger(__name__)


def dc_donation_totals(orders: Iterable[Order]) -> tuple[int, int]:
    """
    Sum DC donations on girl orders (site orders are covered by the booth divider).

    Returns:
        (total, manual_entry) where manual_entry excludes auto-synced orders
    """
    total = 0
    manual = 0
    for order in orders:
        if order.owner != Owner.GIRL or order.donations <= 0:
            continue
        total += order.donations
        if not is_dc_auto_sync(order.dc_order_type, order.payment_status):
            manual += order.donations
    return total, manual


def sc_manual_entries(transfers: Iterable[Transfer]) -> int:
    return sum(
        abs(t.packages)
        for t in transfers
        if t.category == TransferCategory.COOKIE_SHARE_RECORD
        and not t.order_number.startswith(DC_ORDER_PREFIX)
    )


def _by_scout(
    orders: list[Order],
    virtual_cookie_shares: Mapping[int, int],
    girl_ids: Mapping[str, Optional[int]],
) -> tuple[ScoutCookieShare, ...]:
    rows = []
    for scout in sorted({o.scout for o in orders if o.owner == Owner.GIRL}):
        total, manual = dc_donation_totals(o for o in orders if o.scout == scout)
        girl_id = girl_ids.get(scout)
        entered = virtual_cookie_shares.get(girl_id, 0) if girl_id is not None else 0
        if not total and not entered:
            continue
        rows.append(ScoutCookieShare(
            scout=scout,
            dc_total=total,
            dc_manual_entry=manual,
            entered_in_sc=entered,
            adjustment=manual - entered,
        ))
    return tuple(rows)


def reconcile_cookie_share(
    orders: Iterable[Order],
    transfers: Iterable[Transfer],
    compared: bool,
    virtual_cookie_shares: Optional[Mapping[int, int]] = None,
    girl_ids: Optional[Mapping[str, Optional[int]]] = None,
) -> CookieShareReconciliation:
    """
    Compare manual Cookie Share entries across the two systems.

    Args:
        orders: All DC orders
        transfers: All SC transfers
        compared: True when both DC and SC data were loaded
        virtual_cookie_shares: Per-girl Cookie Share counts entered in SC
        girl_ids: Scout name -> girl id, for the per-scout rows

    Returns:
        CookieShareReconciliation; reconciled is True when nothing could be compared
    """
    orders = list(orders)
    dc_total, dc_manual = dc_donation_totals(orders)
    sc_manual = sc_manual_entries(transfers)

    reconciled = (dc_manual == sc_manual) if compared else True
    if compared and not reconciled:
        logger.info(f"Cookie Share mismatch: DC manual {dc_manual}, SC manual {sc_manual}")

    return CookieShareReconciliation(
        dc_total=dc_total,
        dc_manual_entry=dc_manual,
        sc_manual_entries=sc_manual,
        discrepancy=dc_manual - sc_manual,
        reconciled=reconciled,
        compared=compared,
        by_scout=_by_scout(orders, virtual_cookie_shares or {}, girl_ids or {}),
    )
