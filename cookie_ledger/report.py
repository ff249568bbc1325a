"""
Report Generator - Format a dataset for human consumption.

Produces a console summary and a per-scout CSV export.
"""

import csv
import io
from datetime import datetime
from typing import TextIO

from .models import DatasetStatus, UnifiedDataset
from .varieties import display_name


STATUS_LABELS = {
    DatasetStatus.NO_DATA: "NO DATA - load a Digital Cookie or Smart Cookie export",
    DatasetStatus.READY: "READY",
    DatasetStatus.WARNINGS: "READY WITH WARNINGS",
    DatasetStatus.BLOCKED: "BLOCKED - unknown order types must be classified first",
}


def format_console(dataset: UnifiedDataset, show_warnings: bool = True) -> str:
    """
    Format a dataset for console display.

    Args:
        dataset: Built dataset
        show_warnings: Whether to list each warning (default True)

    Returns:
        Formatted string for console output
    """
    meta = dataset.metadata
    lines = []

    troop = meta.troop_name or (f"Troop {meta.troop_number}" if meta.troop_number else "Unknown troop")
    lines.append(f"\nTROOP: {troop}")
    lines.append("=" * 70)
    lines.append(f"Status: {STATUS_LABELS[meta.status]}")
    for source in meta.sources:
        lines.append(f"  {source['type']:<10} {source['records']:>6} records  {source['date'] or ''}")
    for issue in meta.issues:
        lines.append(f"  ! {issue}")

    if meta.status == DatasetStatus.NO_DATA:
        lines.append("=" * 70)
        return "\n".join(lines)

    if dataset.scouts:
        lines.append(f"\nSCOUTS ({len(dataset.scouts)})")
        lines.append("-" * 70)
        lines.append(f"{'NAME':<24} {'SOLD':>6} {'CREDIT':>7} {'ON HAND':>8} {'CASH DUE':>10}")
        lines.append("-" * 70)
        for scout in dataset.scouts.values():
            marker = " *" if scout.inventory.negative else ""
            lines.append(
                f"{scout.name[:24]:<24} {scout.totals.total_sold:>6} {scout.totals.credited:>7} "
                f"{scout.inventory.on_hand:>8} {'$' + str(scout.financials.cash_due):>10}{marker}"
            )

    inv = dataset.troop_inventory
    if inv.net:
        lines.append("\nTROOP INVENTORY")
        lines.append("-" * 70)
        for variety, count in inv.net.items():
            lines.append(f"  {display_name(variety):<28} {count:>6}")
        lines.append(f"  {'Total':<28} {inv.total:>6}")

    if show_warnings and dataset.warnings:
        lines.append(f"\nWARNINGS ({len(dataset.warnings)})")
        lines.append("-" * 70)
        for warning in dataset.warnings:
            lines.append(f"  [{warning.type.value}] {warning.message}")

    tt = dataset.troop_totals
    cs = dataset.cookie_share
    lines.append("\n" + "=" * 70)
    lines.append("SUMMARY")
    lines.append(f"  Orders:          {tt.orders}")
    lines.append(f"  Packages sold:   {tt.sold}")
    lines.append(f"  Revenue:         ${tt.revenue}")
    lines.append(f"  Troop inventory: {tt.inventory}")
    lines.append(f"  Per-girl avg:    {tt.proceeds.per_girl_average}")
    lines.append(f"  Troop proceeds:  ${tt.proceeds.proceeds}")
    if cs.compared:
        state = "reconciled" if cs.reconciled else f"off by {cs.discrepancy}"
        lines.append(f"  Cookie Share:    {state}")
    lines.append("=" * 70)

    return "\n".join(lines)


def export_csv(dataset: UnifiedDataset, output: TextIO | None = None) -> str:
    """
    Export per-scout totals and financials to CSV format.

    Args:
        dataset: Built dataset
        output: Optional file handle to write to

    Returns:
        CSV string (also writes to output if provided)
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    writer.writerow([
        "scout",
        "girl_id",
        "site",
        "orders",
        "sales",
        "shipped",
        "donations",
        "credited",
        "total_sold",
        "revenue",
        "on_hand",
        "pickup_value",
        "electronic_payments",
        "payments_turned_in",
        "cash_due",
        "negative_inventory",
    ])

    for scout in dataset.scouts.values():
        totals = scout.totals
        fin = scout.financials
        writer.writerow([
            scout.name,
            scout.girl_id if scout.girl_id is not None else "",
            "yes" if scout.is_site_order else "",
            totals.orders,
            totals.sales,
            totals.shipped,
            totals.donations,
            totals.credited,
            totals.total_sold,
            str(totals.revenue),
            scout.inventory.on_hand,
            str(fin.pickup_value),
            str(fin.electronic_payments),
            str(fin.payments_turned_in),
            str(fin.cash_due),
            sum(n.shortfall for n in scout.inventory.negative),
        ])

    csv_content = buffer.getvalue()

    if output:
        output.write(csv_content)

    return csv_content


def generate_report_filename(troop: str | None = None, extension: str = "csv") -> str:
    """
    Generate a filename for the report.

    Args:
        troop: Optional troop number to include
        extension: File extension (default "csv")

    Returns:
        Filename like "cookie_ledger_3990_2026-02-14.csv"
    """
    date_str = datetime.now().strftime("%Y-%m-%d")
    if troop:
        return f"cookie_ledger_{troop}_{date_str}.{extension}"
    return f"cookie_ledger_{date_str}.{extension}"
