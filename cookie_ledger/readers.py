"""
Readers - Turn spreadsheet exports into lists of row dicts.

Both sources hand out XLSX (and the SC transfer export sometimes CSV).
Header rows are not always on row 1, so the header is located by looking
for a known column name in the first few rows.
"""

import csv
import logging
from pathlib import Path
from typing import Any, Optional

from openpyxl import load_workbook
from openpyxl.worksheet.worksheet import Worksheet

logger = logging.getLogger(__name__)

# How far down to look for the header row
HEADER_SEARCH_ROWS = 15


def _find_data_sheet(workbook) -> Optional[Worksheet]:
    """Use the active sheet unless it is empty, then the sheet with most rows."""
    active = workbook.active
    if active is not None and (active.max_row or 0) > 1:
        return active

    max_rows = 0
    best_sheet = None
    for sheet in workbook.worksheets:
        if (sheet.max_row or 0) > max_rows:
            max_rows = sheet.max_row
            best_sheet = sheet
    return best_sheet


def _find_header_index(rows: list[tuple], anchors: tuple[str, ...]) -> int:
    """Index of the first row containing any anchor column name (0 if none)."""
    wanted = {a.lower() for a in anchors}
    for i, row in enumerate(rows[:HEADER_SEARCH_ROWS]):
        cells = {str(c).strip().lower() for c in row if c is not None}
        if cells & wanted:
            return i
    return 0


def _rows_to_dicts(rows: list[tuple], anchors: tuple[str, ...]) -> list[dict[str, Any]]:
    if not rows:
        return []
    header_idx = _find_header_index(rows, anchors)
    headers = [str(h).strip() if h is not None else "" for h in rows[header_idx]]

    records = []
    for row in rows[header_idx + 1:]:
        if all(v is None or v == "" for v in row):
            continue  # Skip blank rows
        record = {}
        for i, header in enumerate(headers):
            if not header:
                continue
            record[header] = row[i] if i < len(row) else None
        records.append(record)
    return records


def read_xlsx_rows(path: str | Path, anchors: tuple[str, ...] = ()) -> list[dict[str, Any]]:
    """
    Load the data sheet of an XLSX file as row dicts.

    Args:
        path: Path to the workbook
        anchors: Column names that identify the header row

    Returns:
        One dict per non-blank data row, keyed by header text

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If no sheet holds any data
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Spreadsheet not found: {path}")

    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        sheet = _find_data_sheet(workbook)
        if sheet is None:
            raise ValueError(f"No data sheet found in {path}")
        rows = [tuple(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()

    records = _rows_to_dicts(rows, anchors)
    logger.debug(f"Read {len(records)} rows from {path.name}")
    return records


def read_csv_rows(path: str | Path, anchors: tuple[str, ...] = ()) -> list[dict[str, Any]]:
    """Load a CSV export as row dicts (BOM tolerated)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    with open(path, "r", newline="", encoding="utf-8-sig") as f:
        rows = [tuple(row) for row in csv.reader(f)]

    return _rows_to_dicts(rows, anchors)


def read_table(path: str | Path, anchors: tuple[str, ...] = ()) -> list[dict[str, Any]]:
    """Dispatch on file extension."""
    suffix = Path(path).suffix.lower()
    if suffix == ".csv":
        return read_csv_rows(path, anchors)
    if suffix in (".xlsx", ".xlsm"):
        return read_xlsx_rows(path, anchors)
    raise ValueError(f"Unsupported file format: {suffix}")
