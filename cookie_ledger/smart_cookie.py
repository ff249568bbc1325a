"""
Smart Cookie importers.

Three shapes of the same system:
- /orders/search API JSON: the authoritative transfer feed
- CookieOrders transfer export (CSV/XLSX): a flat copy of the same
  transfers, used only when no API data is present
- ReportExport: per-girl report rows, used for scout identity only
"""

import logging
import re
from typing import Any, Mapping, Optional

from .classifier import TransferFlags, is_order_shaped, matches_troop
from .context import ImportContext
from .digital_cookie import order_number_text
from .models import DataSource, Transfer, TransferCategory, T2G_CATEGORIES, WarningType
from .parsers import (
    parse_amount,
    parse_cases_packages,
    parse_date,
    parse_int,
    varieties_from_api,
    varieties_from_report_row,
    varieties_from_transfer_row,
)
from .validators import (
    SC_REPORT_REQUIRED_COLUMNS,
    SC_TRANSFER_REQUIRED_COLUMNS,
    missing_columns,
    validate_sc_orders,
)

logger = logging.getLogger(__name__)

# Transfer export headers
COL_TYPE = "TYPE"
COL_ORDER_NUM = "ORDER #"
COL_TO = "TO"
COL_FROM = "FROM"
COL_DATE = "DATE"
COL_TOTAL_AMOUNT = "TOTAL $"

# Report export headers
COL_GIRL_NAME = "GirlName"
COL_GIRL_ID = "GirlID"
COL_GSUSA_ID = "GSUSAID"
COL_GRADE_LEVEL = "GradeLevel"
COL_TROOP_ID = "TroopID"
COL_SERVICE_UNIT = "ServiceUnitDesc"
COL_COUNCIL = "CouncilDesc"
COL_PARAM_TITLE = "ParamTitle"
COL_REPORT_TOTAL = "Total"

DISTRICT_PATTERN = re.compile(r"District = ([^;]+)")

COOKIE_SHARE_CATEGORIES = frozenset({
    TransferCategory.COOKIE_SHARE_RECORD,
    TransferCategory.BOOTH_COOKIE_SHARE,
})


def _is_our_troop(ctx: ImportContext, value: str) -> bool:
    return matches_troop(value, ctx.troop_number) or matches_troop(value, ctx.troop_name)


def _track_scouts(ctx: ImportContext, transfer: Transfer):
    """Register the scout side of pickups, returns and Cookie Share records."""
    if transfer.category in T2G_CATEGORIES or transfer.category in COOKIE_SHARE_CATEGORIES:
        name = transfer.to
    elif transfer.category == TransferCategory.GIRL_RETURN:
        name = transfer.from_
    else:
        return
    if name and transfer.to != transfer.from_ and not _is_our_troop(ctx, name):
        ctx.register_scout(name)


def _sc_order_reference(transfer: Transfer) -> dict:
    return {
        "orderNumber": transfer.order_number,
        "scout": transfer.to,
        "date": transfer.date,
        "packages": transfer.packages,
        "amount": str(transfer.amount),
    }


# ---------------------------------------------------------------------------
# API orders
# ---------------------------------------------------------------------------

def import_sc_orders(
    ctx: ImportContext,
    data: Any,
    imported_at: Optional[str] = None,
):
    """
    Import the Smart Cookie /orders/search response.

    Args:
        ctx: Import context for this run
        data: Decoded JSON, {"orders": [...]}
        imported_at: Timestamp of the sync file
    """
    problems = validate_sc_orders(data)
    if problems:
        ctx.add_issue(f"Smart Cookie orders format not recognized ({problems[0]})")
        return

    orders = data["orders"]
    for order in orders:
        transfer = _transfer_from_api_order(ctx, order)
        if is_order_shaped(transfer.order_number):
            ctx.tag_order_source(
                transfer.order_number[1:],
                DataSource.SMART_COOKIE_API,
                _sc_order_reference(transfer),
            )
        _track_scouts(ctx, transfer)

    ctx.record_import(DataSource.SMART_COOKIE_API, len(orders), imported_at)
    logger.info(f"Imported {len(orders)} Smart Cookie API orders")


def _transfer_from_api_order(ctx: ImportContext, order: Mapping[str, Any]) -> Transfer:
    # order.type is just "TRANSFER" on the new API; the real code is transfer_type
    raw_type = str(order.get("transfer_type") or order.get("type") or order.get("orderType") or "")
    order_number = order_number_text(order.get("order_number") or order.get("orderNumber"))

    varieties, unknown_ids = varieties_from_api(order.get("cookies"), ctx.cookie_id_map)
    for cookie_id in unknown_ids:
        ctx.warn(
            WarningType.UNKNOWN_VARIETY_ID,
            f"Unknown cookie ID {cookie_id} in order {order_number}",
            raw_value=cookie_id,
            order_number=order_number,
        )

    virtual_booth = bool(order.get("virtual_booth"))
    flags = TransferFlags(
        virtual_booth=virtual_booth,
        booth_divider=bool(order.get("smart_divider_id")) and not virtual_booth,
        direct_ship_divider=bool(order.get("direct_ship_divider")),
    )
    total = order.get("total", order.get("totalPrice"))

    return ctx.create_transfer(
        raw_type,
        order_number=order_number,
        from_=str(order.get("from") or ""),
        to=str(order.get("to") or ""),
        date=parse_date(order.get("date") or order.get("createdDate")),
        varieties=varieties,
        amount=abs(parse_amount(total)),
        status=str(order.get("status") or ""),
        flags=flags,
        source=DataSource.SMART_COOKIE_API,
    )


# ---------------------------------------------------------------------------
# Transfer export
# ---------------------------------------------------------------------------

def import_sc_transfers(
    ctx: ImportContext,
    rows: list[dict[str, Any]],
    imported_at: Optional[str] = None,
):
    """Import rows of the flat CookieOrders transfer export."""
    missing = missing_columns(rows, SC_TRANSFER_REQUIRED_COLUMNS)
    if missing:
        ctx.add_issue(f"Smart Cookie transfer export format not recognized (missing: {', '.join(missing)})")
        return

    for row in rows:
        raw_type = str(row.get(COL_TYPE) or "").strip()
        to = str(row.get(COL_TO) or "").strip()

        # Our troop number is the receiving side of the first C2T
        if raw_type.startswith("C2T") and to and not ctx.troop_number:
            ctx.troop_number = to
            logger.info(f"Troop number learned from transfer export: {to}")

        transfer = ctx.create_transfer(
            raw_type,
            order_number=order_number_text(row.get(COL_ORDER_NUM)),
            from_=str(row.get(COL_FROM) or "").strip(),
            to=to,
            date=parse_date(row.get(COL_DATE)),
            varieties=varieties_from_transfer_row(row),
            amount=abs(parse_amount(row.get(COL_TOTAL_AMOUNT))),
            source=DataSource.SMART_COOKIE,
        )

        if transfer.category in COOKIE_SHARE_CATEGORIES and is_order_shaped(transfer.order_number):
            ctx.tag_order_source(
                transfer.order_number[1:],
                DataSource.SMART_COOKIE,
                _sc_order_reference(transfer),
            )
        _track_scouts(ctx, transfer)

    ctx.record_import(DataSource.SMART_COOKIE, len(rows), imported_at)
    logger.info(f"Imported {len(rows)} Smart Cookie transfer export rows")


# ---------------------------------------------------------------------------
# Report export
# ---------------------------------------------------------------------------

def _district(param_title: Any) -> Optional[str]:
    if not param_title:
        return None
    match = DISTRICT_PATTERN.search(str(param_title))
    return match.group(1).strip() if match else None


def _text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return order_number_text(value)


def import_sc_report(
    ctx: ImportContext,
    rows: list[dict[str, Any]],
    imported_at: Optional[str] = None,
):
    """
    Enrich scout profiles from ReportExport rows.

    The report duplicates what the API already says about sales, so only
    identity fields and the report's package count are kept.
    """
    missing = missing_columns(rows, SC_REPORT_REQUIRED_COLUMNS)
    if missing:
        ctx.add_issue(f"Smart Cookie report format not recognized (missing: {', '.join(missing)})")
        return

    for row in rows:
        name = str(row.get(COL_GIRL_NAME) or "").strip()
        if not name:
            continue

        _, total_from_field = parse_cases_packages(row.get(COL_REPORT_TOTAL))
        _, _, variety_packages = varieties_from_report_row(row)
        girl_id = parse_int(row.get(COL_GIRL_ID)) or None

        profile = ctx.register_scout(
            name,
            girl_id=girl_id,
            gsusa_id=_text(row.get(COL_GSUSA_ID)),
            grade_level=_text(row.get(COL_GRADE_LEVEL)),
            troop_id=_text(row.get(COL_TROOP_ID)),
            service_unit=_text(row.get(COL_SERVICE_UNIT)),
            council=_text(row.get(COL_COUNCIL)),
            district=_district(row.get(COL_PARAM_TITLE)),
        )
        if profile is not None:
            profile.report_packages += total_from_field or variety_packages

    ctx.record_import(DataSource.SMART_COOKIE_REPORT, len(rows), imported_at)
    logger.info(f"Imported {len(rows)} Smart Cookie report rows")
