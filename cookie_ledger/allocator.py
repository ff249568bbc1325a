"""
Allocator - Credit troop-level sales to individual scouts.

Three channels, one Allocation per (source record, scout):

| Channel      | Source record                    | Scout from          | order_number   |
|--------------|----------------------------------|---------------------|----------------|
| virtualBooth | VIRTUAL_BOOTH_ALLOCATION transfer | transfer "to"       | transfer's     |
| directShip   | direct-ship divider              | girl id / name      | always None    |
| booth        | booth divider                    | girl id / name      | None           |

Conservation is checked twice:

- per source record: the per-variety sum of its allocations equals the
  record's own quantities (a failure is a bug in this module)
- per divider channel: the physical packages allocated from the divider
  equal the physical packages on the matching T2G transfers
  (DIRECT_SHIP_ALLOCATION, BOOTH_SALES_ALLOCATION). Checked only when
  both the transfers and the divider were loaded.
"""

import logging
from collections import defaultdict
from typing import Iterable, Optional

from .context import ImportContext
from .models import (
    Allocation,
    AllocationChannel,
    AllocationSource,
    DividerRecord,
    LedgerWarning,
    Transfer,
    TransferCategory,
    WarningType,
)
from .varieties import Varieties, add_varieties, donation_total, physical_total, variety_value

logger = logging.getLogger(__name__)

DIRECT_SHIP_NOTE = "Direct ship divider reports per-girl totals only; no order breakdown"
UNASSIGNED_SCOUT = "Unassigned"


class AllocationInvariantError(AssertionError):
    """Allocations for a source record do not add up to the record."""
    pass


def placeholder_name(girl_id: int) -> str:
    return f"Girl #{girl_id}"


# ---------------------------------------------------------------------------
# Conservation
# ---------------------------------------------------------------------------

def check_conservation(
    reference: str,
    expected: Varieties,
    allocations: Iterable[Allocation],
    physical: bool = False,
) -> list[str]:
    """
    Compare the per-variety sum of allocations with the source record.

    Args:
        reference: Source record id, for messages
        expected: The record's own per-variety quantities
        allocations: Allocations derived from that record
        physical: Compare physical varieties only (Cookie Share ignored)

    Returns:
        One message per variety that does not balance (empty when conserved)
    """
    allocated: Varieties = {}
    for allocation in allocations:
        add_varieties(allocated, allocation.varieties, physical=physical)

    problems = []
    for variety in sorted(set(expected) | set(allocated), key=lambda v: v.value):
        want = expected.get(variety, 0)
        got = allocated.get(variety, 0)
        if want != got:
            problems.append(
                f"{reference}: {variety.value} allocated {got}, source record has {want}"
            )
    return problems


def _enforce(ctx: ImportContext, problems: list[str], strict: bool):
    if not problems:
        return
    message = "Allocation conservation violated: " + "; ".join(problems)
    if strict:
        raise AllocationInvariantError(message)
    logger.error(message)
    ctx.warnings.append(LedgerWarning(
        type=WarningType.INTERNAL_ERROR,
        message=message,
        context={"problems": problems},
    ))


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------

def allocate_virtual_booth(ctx: ImportContext, transfer: Transfer) -> list[Allocation]:
    """One virtual booth T2G transfer credits the scout it was sent to."""
    scout = transfer.to
    if not scout:
        ctx.warn(
            WarningType.UNMATCHED_ALLOCATION,
            f"Virtual booth transfer {transfer.order_number} has no recipient",
            order_number=transfer.order_number,
        )
        scout = UNASSIGNED_SCOUT

    return [Allocation(
        channel=AllocationChannel.VIRTUAL_BOOTH,
        source=AllocationSource.VIRTUAL_BOOTH_TRANSFER,
        scout=scout,
        source_reference=transfer.order_number,
        varieties=dict(transfer.varieties),
        packages=transfer.physical_packages,
        donations=donation_total(transfer.varieties),
        amount=transfer.amount,
        order_number=transfer.order_number,
        date=transfer.date,
    )]


def _resolve_scout(ctx: ImportContext, record: DividerRecord, girl_id: int, name: Optional[str]) -> str:
    known = ctx.scout_name_for_girl(girl_id)
    if known:
        return known
    if name:
        return name
    ctx.warn(
        WarningType.UNMATCHED_ALLOCATION,
        f"{record.channel.value} allocation {record.reference} names unknown girl id {girl_id}",
        girl_id=girl_id,
        reference=record.reference,
    )
    return placeholder_name(girl_id)


def allocate_divider(ctx: ImportContext, record: DividerRecord) -> list[Allocation]:
    """One Allocation per girl entry of a direct-ship or booth divider."""
    allocations = []
    for entry in record.entries:
        scout = _resolve_scout(ctx, record, entry.girl_id, entry.scout)
        common = dict(
            channel=record.channel,
            source=record.source,
            scout=scout,
            source_reference=record.reference,
            varieties=dict(entry.varieties),
            packages=physical_total(entry.varieties),
            donations=donation_total(entry.varieties),
            amount=variety_value(entry.varieties),
            girl_id=entry.girl_id,
        )
        if record.channel == AllocationChannel.DIRECT_SHIP:
            allocations.append(Allocation(**common, order_number=None, note=DIRECT_SHIP_NOTE))
        else:
            allocations.append(Allocation(
                **common,
                date=record.date,
                reservation_id=record.reservation_id,
                store_name=record.store_name,
                start_time=record.start_time,
                end_time=record.end_time,
                reservation_type=record.reservation_type,
            ))
    return allocations


def _record_quantities(record: DividerRecord) -> Varieties:
    totals: Varieties = {}
    for entry in record.entries:
        add_varieties(totals, entry.varieties)
    return totals


CHANNEL_TRANSFER_CATEGORY = {
    AllocationChannel.DIRECT_SHIP: TransferCategory.DIRECT_SHIP_ALLOCATION,
    AllocationChannel.BOOTH: TransferCategory.BOOTH_SALES_ALLOCATION,
}


def _check_channel_transfers(
    ctx: ImportContext,
    channel: AllocationChannel,
    allocations: list[Allocation],
) -> list[str]:
    """Divider allocations of a channel against the T2G transfers SC booked for it."""
    transfers = [t for t in ctx.transfers if t.category == CHANNEL_TRANSFER_CATEGORY[channel]]
    if not transfers or not allocations:
        return []

    expected: Varieties = {}
    for transfer in transfers:
        add_varieties(expected, transfer.physical_varieties)
    return check_conservation(f"{channel.value} T2G transfers", expected, allocations, physical=True)


def allocate_all(ctx: ImportContext, strict: bool = False) -> list[Allocation]:
    """
    Run all three channels and check conservation after each.

    Args:
        ctx: Import context with transfers and divider records
        strict: Raise AllocationInvariantError instead of recording a warning

    Returns:
        Every allocation, virtual booth first, then dividers in import order
    """
    allocations: list[Allocation] = []

    for transfer in ctx.transfers:
        if transfer.category != TransferCategory.VIRTUAL_BOOTH_ALLOCATION:
            continue
        produced = allocate_virtual_booth(ctx, transfer)
        _enforce(ctx, check_conservation(transfer.order_number, transfer.varieties, produced), strict)
        allocations.extend(produced)

    for channel in (AllocationChannel.DIRECT_SHIP, AllocationChannel.BOOTH):
        channel_allocations: list[Allocation] = []
        for record in ctx.dividers:
            if record.channel != channel:
                continue
            produced = allocate_divider(ctx, record)
            _enforce(ctx, check_conservation(record.reference, _record_quantities(record), produced), strict)
            channel_allocations.extend(produced)
        _enforce(ctx, _check_channel_transfers(ctx, channel, channel_allocations), strict)
        allocations.extend(channel_allocations)

    by_channel: dict[AllocationChannel, int] = defaultdict(int)
    for allocation in allocations:
        by_channel[allocation.channel] += 1
    summary = ", ".join(f"{channel.value}={count}" for channel, count in by_channel.items())
    logger.info(f"Created {len(allocations)} allocations ({summary or 'none'})")
    return allocations
