"""
Payments ledger importer.

The ledger is a hand-kept JSON file of cash and checks turned in:
    [{"scout": "Jane Doe", "date": "2025-02-10", "amount": "40.00",
      "method": "cash", "reference": "receipt 12"}, ...]
or the same list under a "payments" key.
"""

import logging
from typing import Any, Mapping, Optional

from .context import ImportContext
from .models import DataSource, Payment
from .parsers import parse_amount, parse_date
from .validators import validate_payment_entry

logger = logging.getLogger(__name__)


def import_payments(ctx: ImportContext, data: Any, imported_at: Optional[str] = None):
    """Import manual payment entries; malformed entries become issues."""
    entries = data.get("payments") if isinstance(data, Mapping) else data
    if not isinstance(entries, list):
        ctx.add_issue("Payments ledger format not recognized (expected a list of payments)")
        return

    for i, raw in enumerate(entries):
        entry, problems = validate_payment_entry(raw)
        if entry is None:
            ctx.add_issue(f"Payments ledger entry {i} skipped ({problems[0]})")
            continue
        ctx.payments.append(Payment(
            scout=entry.scout.strip(),
            date=parse_date(entry.date),
            amount=parse_amount(entry.amount),
            method=entry.method,
            reference=entry.reference,
        ))

    ctx.record_import(DataSource.PAYMENTS, len(entries), imported_at)
    logger.info(f"Imported {len(ctx.payments)} payments")
