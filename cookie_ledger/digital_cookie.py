"""
Digital Cookie importer - one Order per row of the DC order export.

Row rules:
- scout name is "<Girl First Name> <Girl Last Name>", trimmed
- packages = Total Packages - Refunded Packages
- physical = packages - Donation; the variety columns must agree,
  otherwise PACKAGE_MISMATCH and the variety sum wins
- last name "Site" marks a troop site order (owner TROOP)
"""

import logging
from typing import Any, Mapping, Optional

from .classifier import (
    SITE_ORDER_LAST_NAME,
    classify_dc_order,
    classify_order_status,
    classify_payment_method,
)
from .context import ImportContext
from .models import DataSource, Order, WarningType
from .parsers import (
    full_name,
    parse_amount,
    parse_date,
    parse_int,
    varieties_from_dc_row,
)
from .validators import DC_REQUIRED_COLUMNS, missing_columns

logger = logging.getLogger(__name__)

# DC export headers
COL_ORDER_NUMBER = "Order Number"
COL_FIRST_NAME = "Girl First Name"
COL_LAST_NAME = "Girl Last Name"
COL_ORDER_DATE = "Order Date (Central Time)"
COL_ORDER_TYPE = "Order Type"
COL_TOTAL_PACKAGES = "Total Packages (Includes Donate & Gift)"
COL_REFUNDED_PACKAGES = "Refunded Packages"
COL_AMOUNT = "Current Sale Amount"
COL_ORDER_STATUS = "Order Status"
COL_PAYMENT_STATUS = "Payment Status"
COL_DONATION = "Donation"


def order_number_text(value: Any) -> str:
    """Order numbers come back from Excel as floats; keep them as clean strings."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _build_order(ctx: ImportContext, row: Mapping[str, Any]) -> Optional[Order]:
    order_number = order_number_text(row.get(COL_ORDER_NUMBER))
    if not order_number:
        return None  # Skip rows without an order number

    last_name = str(row.get(COL_LAST_NAME) or "").strip()
    scout = full_name(row.get(COL_FIRST_NAME), last_name)
    is_site = last_name == SITE_ORDER_LAST_NAME

    dc_order_type = str(row.get(COL_ORDER_TYPE) or "").strip()
    payment_status = str(row.get(COL_PAYMENT_STATUS) or "").strip()
    status = str(row.get(COL_ORDER_STATUS) or "").strip()

    packages = parse_int(row.get(COL_TOTAL_PACKAGES)) - parse_int(row.get(COL_REFUNDED_PACKAGES))
    donations = parse_int(row.get(COL_DONATION))
    varieties = varieties_from_dc_row(row)
    physical = sum(varieties.values())

    if physical + donations != packages:
        ctx.warn(
            WarningType.PACKAGE_MISMATCH,
            f"Order {order_number}: varieties sum to {physical} physical packages "
            f"but the row reports {packages - donations}",
            order_number=order_number,
            scout=scout,
            reported=packages - donations,
            varieties=physical,
        )
        packages = physical + donations

    owner, order_type = classify_dc_order(is_site, dc_order_type)
    if order_type is None:
        ctx.warn(
            WarningType.UNKNOWN_ORDER_TYPE,
            f'Order {order_number} has unrecognised order type "{dc_order_type}"',
            raw_value=dc_order_type,
            order_number=order_number,
        )

    payment_method = classify_payment_method(payment_status)
    if payment_method is None:
        ctx.warn(
            WarningType.UNKNOWN_PAYMENT_METHOD,
            f'Order {order_number} has unrecognised payment status "{payment_status}"',
            raw_value=payment_status,
            order_number=order_number,
        )

    return Order(
        order_number=order_number,
        scout=scout,
        date=parse_date(row.get(COL_ORDER_DATE)),
        owner=owner,
        order_type=order_type,
        dc_order_type=dc_order_type,
        packages=packages,
        physical_packages=physical,
        donations=donations,
        varieties=varieties,
        amount=parse_amount(row.get(COL_AMOUNT)),
        status=status,
        status_class=classify_order_status(status),
        payment_status=payment_status,
        payment_method=payment_method,
    )


def import_digital_cookie(
    ctx: ImportContext,
    rows: list[dict[str, Any]],
    imported_at: Optional[str] = None,
):
    """
    Import Digital Cookie export rows into the context.

    Args:
        ctx: Import context for this run
        rows: Parsed rows of the DC export
        imported_at: Timestamp of the export file
    """
    missing = missing_columns(rows, DC_REQUIRED_COLUMNS)
    if missing:
        ctx.add_issue(f"Digital Cookie export format not recognized (missing: {', '.join(missing)})")
        return

    count = 0
    for row in rows:
        order = _build_order(ctx, row)
        if order is None:
            continue
        ctx.register_scout(order.scout)
        ctx.add_order(order)
        count += 1

    ctx.record_import(DataSource.DIGITAL_COOKIE, len(rows), imported_at)
    logger.info(f"Imported {count} Digital Cookie orders")
