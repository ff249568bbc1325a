"""
Assembler - compose every calculator into one frozen UnifiedDataset.

Order of work:
1. allocate troop-level sales to scouts (conservation checked)
2. build each scout: orders, allocations, inventory, totals, financials
3. troop totals, breakdowns, varieties, site orders
4. Cookie Share reconciliation
5. health checks and status
"""

import logging
from dataclasses import replace
from typing import Optional

from .allocator import allocate_all
from .classifier import SITE_ORDER_LAST_NAME
from .config import LedgerConfig
from .context import ImportContext
from .donations import reconcile_cookie_share
from .financials import scout_financials
from .health import compute_health_checks, dataset_status
from .inventory import pickups_by_scout, scout_inventory, troop_inventory
from .models import (
    Allocation,
    DataSource,
    DatasetMetadata,
    Order,
    Owner,
    Payment,
    Scout,
    UnifiedDataset,
    WarningType,
)
from .totals import scout_totals, site_orders, transfer_breakdowns, troop_totals, variety_summary
from .varieties import display_name

logger = logging.getLogger(__name__)


def _split_name(name: str) -> tuple[str, str]:
    first, _, last = name.rpartition(" ")
    return (first, last) if first else (last, "")


def _build_scout(
    ctx: ImportContext,
    name: str,
    orders: list[Order],
    allocations: list[Allocation],
    payments: list[Payment],
    picked_up: dict,
) -> Scout:
    first_name, last_name = _split_name(name)
    is_site = last_name == SITE_ORDER_LAST_NAME or any(o.owner == Owner.TROOP for o in orders)
    inventory = scout_inventory(picked_up, orders)
    profile = ctx.scouts.get(name)

    if not is_site:
        for issue in inventory.negative:
            ctx.warn(
                WarningType.NEGATIVE_INVENTORY,
                f"{name} has sold {issue.shortfall} more {display_name(issue.variety)} than picked up",
                scout=name,
                variety=issue.variety.value,
                inventory=issue.inventory,
                sales=issue.sales,
                shortfall=issue.shortfall,
            )

    return Scout(
        name=name,
        first_name=first_name,
        last_name=last_name,
        girl_id=profile.girl_id if profile else None,
        is_site_order=is_site,
        orders=tuple(orders),
        allocations=tuple(allocations),
        payments=tuple(payments),
        inventory=inventory,
        totals=scout_totals(orders, allocations),
        financials=scout_financials(picked_up, inventory.display, orders, payments),
        profile=replace(profile) if profile else None,
    )


def build_unified_dataset(ctx: ImportContext, config: Optional[LedgerConfig] = None) -> UnifiedDataset:
    """
    Build the snapshot from a populated import context.

    Args:
        ctx: Context filled by the importers
        config: Ledger configuration (defaults used when omitted)

    Returns:
        Frozen UnifiedDataset with scouts ordered by name

    Raises:
        AllocationInvariantError: On a conservation failure in strict mode
        ValueError: If a variety has no registered price
    """
    config = config or LedgerConfig()
    allocations = allocate_all(ctx, strict=config.settings.strict_invariants)

    orders = list(ctx.orders.values())
    transfers = list(ctx.transfers)
    picked_up = pickups_by_scout(transfers)

    names = set(ctx.scouts)
    names.update(o.scout for o in orders if o.scout)
    names.update(a.scout for a in allocations)
    names.update(n for n in picked_up if n)

    payments_by_scout: dict[str, list[Payment]] = {}
    for payment in ctx.payments:
        if payment.scout not in names:
            ctx.warn(
                WarningType.UNMATCHED_PAYMENT,
                f"Payment of ${payment.amount} names unknown scout {payment.scout!r}",
                scout=payment.scout,
                amount=str(payment.amount),
                date=payment.date,
            )
            continue
        payments_by_scout.setdefault(payment.scout, []).append(payment)

    scouts: dict[str, Scout] = {}
    for name in sorted(names):
        scouts[name] = _build_scout(
            ctx,
            name,
            [o for o in orders if o.scout == name],
            [a for a in allocations if a.scout == name],
            payments_by_scout.get(name, []),
            picked_up.get(name, {}),
        )
    scout_list = list(scouts.values())
    site_scout = next((s for s in scout_list if s.is_site_order), None)

    troop_stock = troop_inventory(transfers)
    totals = troop_totals(orders, transfers, scout_list, troop_stock, config)

    compared = DataSource.DIGITAL_COOKIE in ctx.loaded and bool(
        {DataSource.SMART_COOKIE_API, DataSource.SMART_COOKIE} & ctx.loaded
    )
    cookie_share = reconcile_cookie_share(
        orders,
        transfers,
        compared,
        ctx.virtual_cookie_shares,
        {s.name: s.girl_id for s in scout_list},
    )
    if not cookie_share.reconciled:
        ctx.warn(
            WarningType.COOKIE_SHARE_MISMATCH,
            f"Cookie Share manual entries differ: DC {cookie_share.dc_manual_entry}, "
            f"SC {cookie_share.sc_manual_entries}",
            dc_manual_entry=cookie_share.dc_manual_entry,
            sc_manual_entries=cookie_share.sc_manual_entries,
            discrepancy=cookie_share.discrepancy,
        )

    warnings = tuple(ctx.warnings)
    checks = compute_health_checks(warnings)
    status = dataset_status(ctx.loaded, checks)

    metadata = DatasetMetadata(
        last_import_dc=ctx.metadata.last_import_dc,
        last_import_sc=ctx.metadata.last_import_sc,
        last_import_sc_report=ctx.metadata.last_import_sc_report,
        troop_number=ctx.troop_number,
        troop_name=ctx.troop_name,
        sources=tuple(ctx.metadata.sources),
        issues=tuple(ctx.metadata.issues),
        health_checks=checks,
        status=status,
        scout_count=totals.scouts.total,
        order_count=len(orders),
        sc_only_orders=tuple(ctx.sc_only_orders.values()),
    )

    logger.info(
        f"Built dataset: {len(scouts)} scouts, {len(orders)} orders, "
        f"{len(transfers)} transfers, {len(warnings)} warnings, status={status.value}"
    )

    return UnifiedDataset(
        scouts=scouts,
        site_orders=site_orders(site_scout, transfers, allocations),
        troop_totals=totals,
        troop_inventory=troop_stock,
        transfer_breakdowns=transfer_breakdowns(transfers),
        varieties=variety_summary(scout_list, troop_stock),
        cookie_share=cookie_share,
        booth_reservations=tuple(ctx.booth_reservations),
        booth_locations=tuple(ctx.booth_locations),
        warnings=warnings,
        metadata=metadata,
    )
