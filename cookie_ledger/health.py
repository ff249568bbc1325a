"""
Health checks and dataset status.

| Condition                    | Status   |
|------------------------------|----------|
| No DC or SC source loaded    | no_data  |
| Any UNKNOWN_ORDER_TYPE       | blocked  |
| Any other warning            | warnings |
| Otherwise                    | ready    |

Only unknown order types block: a sale we cannot classify makes every
total that depends on it wrong. Everything else is shown with warnings.
"""

from collections import Counter
from typing import Iterable

from .models import DataSource, DatasetStatus, HealthChecks, LedgerWarning, WarningType

# Sources that carry sales data; payments alone are not a dataset
SALES_SOURCES = frozenset({
    DataSource.DIGITAL_COOKIE,
    DataSource.SMART_COOKIE,
    DataSource.SMART_COOKIE_API,
    DataSource.SMART_COOKIE_REPORT,
})


def compute_health_checks(warnings: Iterable[LedgerWarning]) -> HealthChecks:
    warnings = list(warnings)
    counts = Counter(w.type for w in warnings)
    return HealthChecks(
        unknown_order_types=counts[WarningType.UNKNOWN_ORDER_TYPE],
        unknown_payment_methods=counts[WarningType.UNKNOWN_PAYMENT_METHOD],
        unknown_transfer_types=counts[WarningType.UNKNOWN_TRANSFER_TYPE],
        unknown_variety_ids=counts[WarningType.UNKNOWN_VARIETY_ID],
        warnings_count=len(warnings),
    )


def dataset_status(loaded: Iterable[DataSource], checks: HealthChecks) -> DatasetStatus:
    """Decide what the presentation layer may show."""
    if not SALES_SOURCES & set(loaded):
        return DatasetStatus.NO_DATA
    if checks.unknown_order_types > 0:
        return DatasetStatus.BLOCKED
    if checks.warnings_count > 0:
        return DatasetStatus.WARNINGS
    return DatasetStatus.READY
