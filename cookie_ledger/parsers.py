"""
Pure parsing helpers shared by the importers.

Cells arrive as whatever the spreadsheet or JSON decoder produced
(int, float, str, datetime, None); these functions coerce them.
"""

import logging
import re
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

from dateutil import parser as date_parser

from .varieties import (
    DC_COLUMNS,
    PACKAGES_PER_CASE,
    SC_API_IDS,
    SC_REPORT_CODES,
    SC_TRANSFER_ABBRS,
    Variety,
    Varieties,
    variety_from_key,
)

logger = logging.getLogger(__name__)

EXCEL_EPOCH = datetime(1899, 12, 30)


def parse_int(value: Any) -> int:
    """Leading integer of a cell, 0 when blank or unparseable."""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = re.match(r"\s*(-?\d+)", str(value).replace(",", ""))
    return int(match.group(1)) if match else 0


def parse_amount(value: Any) -> Decimal:
    """Money cell to Decimal, stripping currency symbols and commas."""
    if value is None:
        return Decimal("0.00")
    if isinstance(value, (int, float)):
        return Decimal(str(round(value, 2))).quantize(Decimal("0.01"))
    str_value = re.sub(r"[$,\s]", "", str(value))
    if not str_value:
        return Decimal("0.00")
    try:
        return Decimal(str_value).quantize(Decimal("0.01"))
    except InvalidOperation:
        return Decimal("0.00")


def parse_date(value: Any) -> str:
    """
    Normalize a date cell to an ISO-8601 string.

    Handles Excel serial numbers, datetime/date objects and free text.
    Unparseable text is returned unchanged so nothing is lost.
    """
    if value is None or value == "":
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day).isoformat()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (EXCEL_EPOCH + timedelta(days=float(value))).isoformat()
    text = str(value).strip()
    try:
        return date_parser.parse(text).isoformat()
    except (ValueError, OverflowError):
        logger.debug(f"Could not parse date {text!r}")
        return text


def parse_cases_packages(value: Any) -> tuple[int, int]:
    """
    Parse a "cases/packages" report cell.

    Returns:
        (cases, total_packages) where total = cases * 12 + packages
    """
    parts = str(value if value not in (None, "") else "0/0").split("/")
    cases = parse_int(parts[0])
    packages = parse_int(parts[1]) if len(parts) > 1 else 0
    return cases, cases * PACKAGES_PER_CASE + packages


def varieties_from_dc_row(row: Mapping[str, Any]) -> Varieties:
    """Physical varieties from the DC variety columns (positive counts only)."""
    varieties: Varieties = {}
    for column, variety in DC_COLUMNS.items():
        count = parse_int(row.get(column))
        if count > 0:
            varieties[variety] = count
    return varieties


def varieties_from_report_row(row: Mapping[str, Any]) -> tuple[Varieties, int, int]:
    """
    Varieties from a ReportExport row (C1-C11 columns).

    Returns:
        (varieties, total_cases, total_packages)
    """
    varieties: Varieties = {}
    total_cases = 0
    total_packages = 0
    for code, variety in SC_REPORT_CODES.items():
        cases, packages = parse_cases_packages(row.get(code))
        if packages > 0:
            varieties[variety] = packages
        total_cases += abs(cases)
        total_packages += abs(packages)
    return varieties, total_cases, total_packages


def varieties_from_transfer_row(row: Mapping[str, Any]) -> Varieties:
    """Varieties from a transfer export row, by column abbreviation (absolute counts)."""
    varieties: Varieties = {}
    for abbr, variety in SC_TRANSFER_ABBRS.items():
        count = parse_int(row.get(abbr))
        if count != 0:
            varieties[variety] = abs(count)
    return varieties


def varieties_from_api(
    cookies: Optional[Iterable[Mapping[str, Any]]],
    id_map: Optional[Mapping[int, Variety]] = None,
) -> tuple[Varieties, list[int]]:
    """
    Varieties from an SC API cookies array.

    Args:
        cookies: [{"id": 4, "quantity": -12}, ...] (old payloads use cookieId)
        id_map: Season-specific id map; defaults to the registry ids

    Returns:
        (varieties with absolute counts, unknown ids with nonzero quantity)
    """
    lookup = id_map or SC_API_IDS
    varieties: Varieties = {}
    unknown_ids: list[int] = []
    for cookie in cookies or []:
        cookie_id = cookie.get("id", cookie.get("cookieId"))
        if cookie_id is None:
            continue
        quantity = parse_int(cookie.get("quantity"))
        if quantity == 0:
            continue
        variety = lookup.get(parse_int(cookie_id))
        if variety is None:
            unknown_ids.append(parse_int(cookie_id))
            continue
        varieties[variety] = varieties.get(variety, 0) + abs(quantity)
    return varieties, unknown_ids


def build_cookie_id_map(raw: Mapping[str, Any]) -> dict[int, Variety]:
    """Turn an {"4": "THIN_MINTS"} style map into id -> Variety, skipping unknown names."""
    id_map: dict[int, Variety] = {}
    for key, name in (raw or {}).items():
        variety = variety_from_key(str(name))
        if variety is not None:
            id_map[parse_int(key)] = variety
    return id_map


def full_name(first: Any, last: Any) -> str:
    return f"{first or ''} {last or ''}".strip()
