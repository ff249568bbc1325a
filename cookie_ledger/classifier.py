"""
Classifier - Rule tables for transfers and orders.

Every raw value is looked up in an exhaustive table. Anything missing from
a table lands in an explicit unmatched arm (TransferCategory.UNKNOWN or
None) and the importer records a typed warning for it; nothing falls
through to a default category.

Transfer rules:
| Raw type            | Category                                            |
|---------------------|-----------------------------------------------------|
| C2T, C2T(P)         | COUNCIL_TO_TROOP                                    |
| T2T                 | TROOP_OUTGOING if we sent it, else COUNCIL_TO_TROOP |
| T2G                 | virtual booth > booth divider > direct ship > pickup |
| G2T                 | GIRL_RETURN                                         |
| D                   | DC_ORDER_RECORD                                     |
| COOKIE_SHARE(_D)    | BOOTH_COOKIE_SHARE if booth divider, else RECORD    |
| DIRECT_SHIP         | DIRECT_SHIP                                         |
| PLANNED             | PLANNED                                             |
| anything else       | UNKNOWN (excluded from all totals)                  |
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional

from .models import OrderType, Owner, PaymentMethod, StatusClass, TransferCategory


@dataclass(frozen=True)
class TransferFlags:
    """Flags on an SC API order that refine a raw type."""
    virtual_booth: bool = False
    booth_divider: bool = False
    direct_ship_divider: bool = False


def _t2t(flags: TransferFlags, from_: str, troop_number: Optional[str],
         troop_name: Optional[str]) -> TransferCategory:
    if from_ and (matches_troop(from_, troop_number) or matches_troop(from_, troop_name)):
        return TransferCategory.TROOP_OUTGOING
    return TransferCategory.COUNCIL_TO_TROOP


def _t2g(flags: TransferFlags, *_) -> TransferCategory:
    if flags.virtual_booth:
        return TransferCategory.VIRTUAL_BOOTH_ALLOCATION
    if flags.booth_divider:
        return TransferCategory.BOOTH_SALES_ALLOCATION
    if flags.direct_ship_divider:
        return TransferCategory.DIRECT_SHIP_ALLOCATION
    return TransferCategory.GIRL_PICKUP


def _cookie_share(flags: TransferFlags, *_) -> TransferCategory:
    if flags.booth_divider:
        return TransferCategory.BOOTH_COOKIE_SHARE
    return TransferCategory.COOKIE_SHARE_RECORD


def _fixed(category: TransferCategory) -> Callable[..., TransferCategory]:
    return lambda *_: category


TRANSFER_TYPE_RULES: dict[str, Callable[..., TransferCategory]] = {
    "C2T": _fixed(TransferCategory.COUNCIL_TO_TROOP),
    "C2T(P)": _fixed(TransferCategory.COUNCIL_TO_TROOP),
    "T2T": _t2t,
    "T2G": _t2g,
    "G2T": _fixed(TransferCategory.GIRL_RETURN),
    "D": _fixed(TransferCategory.DC_ORDER_RECORD),
    "COOKIE_SHARE": _cookie_share,
    "COOKIE_SHARE_D": _cookie_share,
    "DIRECT_SHIP": _fixed(TransferCategory.DIRECT_SHIP),
    "PLANNED": _fixed(TransferCategory.PLANNED),
}

KNOWN_TRANSFER_TYPES = frozenset(TRANSFER_TYPE_RULES)

DC_ORDER_PREFIX = "D"
SITE_ORDER_LAST_NAME = "Site"


def classify_transfer(
    raw_type: str,
    flags: Optional[TransferFlags] = None,
    from_: str = "",
    troop_number: Optional[str] = None,
    troop_name: Optional[str] = None,
) -> TransferCategory:
    """
    Assign a transfer category from its raw type code.

    Args:
        raw_type: Type code from the SC feed (e.g. "T2G")
        flags: Divider/virtual booth flags from the API payload
        from_: Sender, used for T2T direction
        troop_number: Our SC troop id
        troop_name: Our troop display name

    Returns:
        A TransferCategory; UNKNOWN when the raw type is not in the table
    """
    rule = TRANSFER_TYPE_RULES.get((raw_type or "").strip())
    if rule is None:
        return TransferCategory.UNKNOWN
    return rule(flags or TransferFlags(), from_, troop_number, troop_name)


def is_order_shaped(order_number: str) -> bool:
    """SC records with a D-prefixed number mirror a Digital Cookie order."""
    return bool(order_number) and order_number.startswith(DC_ORDER_PREFIX) and order_number[1:].isdigit()


def matches_troop(field_value: str, troop: Optional[str]) -> bool:
    """
    Compare a from/to field against our troop.

    The feed mixes ids ("3990") and names ("Troop 3990"), so the first
    digit run on each side is compared when the strings differ.
    """
    if not field_value or not troop:
        return False
    if field_value == troop:
        return True
    field_digits = re.search(r"\d+", field_value)
    troop_digits = re.search(r"\d+", troop)
    return bool(field_digits and troop_digits and field_digits.group(0) == troop_digits.group(0))


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

PAYMENT_STATUS_CASH = "CASH"
PAYMENT_STATUS_VENMO = "VENMO"
PAYMENT_STATUS_CARD = ("CAPTURED", "AUTHORIZED")

DC_TYPE_DONATION = "Donation"
DC_TYPE_SHIPPED = "Shipped"


def classify_dc_order(is_site_order: bool, dc_order_type: str) -> tuple[Owner, Optional[OrderType]]:
    """
    Classify a DC order into owner and order type.

    Returns:
        (owner, order_type); order_type is None for unrecognised types
    """
    owner = Owner.TROOP if is_site_order else Owner.GIRL
    raw = (dc_order_type or "").strip()
    lowered = raw.lower()

    if raw == DC_TYPE_DONATION:
        return owner, OrderType.DONATION
    if DC_TYPE_SHIPPED.lower() in lowered:
        return owner, OrderType.DIRECT_SHIP
    if "cookies in hand" in lowered:
        return owner, OrderType.BOOTH if is_site_order else OrderType.IN_HAND
    if "in-person delivery" in lowered or "in person delivery" in lowered or "pick up" in lowered:
        return owner, OrderType.DELIVERY
    return owner, None


def classify_payment_method(payment_status: str) -> Optional[PaymentMethod]:
    """Map a DC payment status to a payment method; None when unrecognised."""
    status = (payment_status or "").strip().upper()
    if status == PAYMENT_STATUS_CASH:
        return PaymentMethod.CASH
    if PAYMENT_STATUS_VENMO in status:
        return PaymentMethod.VENMO
    if status in PAYMENT_STATUS_CARD:
        return PaymentMethod.CREDIT_CARD
    return None


def classify_order_status(status: Optional[str]) -> StatusClass:
    """Normalize free-text DC order status for display."""
    if not status:
        return StatusClass.UNKNOWN
    if "Needs Approval" in status:
        return StatusClass.NEEDS_APPROVAL
    if (status == "Status Delivered" or "Completed" in status
            or "Delivered" in status or "Shipped" in status):
        return StatusClass.COMPLETED
    if "Pending" in status or "Approved for Delivery" in status:
        return StatusClass.PENDING
    return StatusClass.UNKNOWN


def is_dc_auto_sync(dc_order_type: str, payment_status: str) -> bool:
    """Shipped and donation-only card orders sync to SC without manual entry."""
    dc_order_type = dc_order_type or ""
    return (
        (DC_TYPE_SHIPPED in dc_order_type or dc_order_type == DC_TYPE_DONATION)
        and (payment_status or "") == "CAPTURED"
    )
