"""
Tests for console and CSV reports.

Run with: pytest cookie_ledger/tests/test_report.py -v
"""

import csv
import io
import re

from cookie_ledger.pipeline import build_from_source
from cookie_ledger.report import export_csv, format_console, generate_report_filename
from cookie_ledger.sources import InMemorySource

from cookie_ledger.tests.factories import THIN_MINTS_ID, TROOP, api_order, dc_row


def build(**payloads):
    return build_from_source(InMemorySource(
        troop_identity={"role": {"troop_id": TROOP, "troop_name": "Troop 3990"}},
        **payloads,
    ))


def sample():
    return build(
        digital_cookie=[
            dc_row(order_number="1", first="A", last="B", payment="CASH", Thin_Mints=5),
            dc_row(order_number="2", first="C", last="D", Thin_Mints=2),
        ],
        sc_orders={"orders": [api_order(to="A B", cookies={THIN_MINTS_ID: 12})]},
    )


class TestFormatConsole:
    """Human-readable summary."""

    def test_contains_sections(self):
        output = format_console(sample())

        assert "TROOP: Troop 3990" in output
        assert "SCOUTS (2)" in output
        assert "SUMMARY" in output
        assert "A B" in output

    def test_warnings_listed(self):
        output = format_console(sample())
        assert "WARNINGS" in output
        assert "[NEGATIVE_INVENTORY]" in output

    def test_warnings_can_be_hidden(self):
        output = format_console(sample(), show_warnings=False)
        assert "[NEGATIVE_INVENTORY]" not in output

    def test_no_data(self):
        output = format_console(build())
        assert "NO DATA" in output
        assert "SUMMARY" not in output


class TestExportCsv:
    """One row per scout."""

    def test_header_and_rows(self):
        rows = list(csv.DictReader(io.StringIO(export_csv(sample()))))

        assert [r["scout"] for r in rows] == ["A B", "C D"]
        ab = rows[0]
        assert ab["total_sold"] == "5"
        assert ab["on_hand"] == "7"
        assert ab["pickup_value"] == "72.00"
        assert ab["cash_due"] == "72.00"
        assert rows[1]["negative_inventory"] == "2"

    def test_writes_to_output(self):
        output = io.StringIO()
        content = export_csv(sample(), output=output)
        assert output.getvalue() == content


class TestReportFilename:
    """Dated file names."""

    def test_with_troop(self):
        assert re.fullmatch(r"cookie_ledger_3990_\d{4}-\d{2}-\d{2}\.csv", generate_report_filename("3990"))

    def test_without_troop(self):
        assert re.fullmatch(r"cookie_ledger_\d{4}-\d{2}-\d{2}\.json", generate_report_filename(extension="json"))
