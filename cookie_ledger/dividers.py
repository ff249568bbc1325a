"""
Divider and booth importers.

Smart Cookie splits troop-level sales across girls with "dividers".
This module turns those payloads into DividerRecords (one per source
record, one entry per girl); the allocator later converts them into
per-scout Allocations and checks conservation.

Also handled here: virtual Cookie Share entries, booth reservations,
booth locations and the season's cookie id map.
"""

import logging
from typing import Any, Iterable, Mapping, Optional

from .context import ImportContext
from .models import (
    AllocationChannel,
    AllocationSource,
    BoothLocation,
    BoothReservation,
    DividerEntry,
    DividerRecord,
    WarningType,
)
from .parsers import build_cookie_id_map, full_name, parse_int, varieties_from_api
from .varieties import donation_total, physical_total

logger = logging.getLogger(__name__)

DIRECT_SHIP_BLOB_REFERENCE = "direct-ship-divider"


def _entries(payload: Any) -> list[Mapping[str, Any]]:
    """Payloads arrive either as a list or as an object keyed by id."""
    if isinstance(payload, Mapping):
        return [v for v in payload.values() if isinstance(v, Mapping)]
    if isinstance(payload, list):
        return [v for v in payload if isinstance(v, Mapping)]
    return []


def _divider_entries(
    ctx: ImportContext,
    girls: Iterable[Mapping[str, Any]],
    reference: str,
    seen: set[tuple[str, int]],
) -> tuple[DividerEntry, ...]:
    """
    Parse girl shares, skipping zero-package and duplicate (reference, girl) pairs.

    Names present in the payload are registered against the girl id so
    allocations are not lost for girls missing from the SC report.
    """
    entries = []
    for girl in girls or []:
        girl_id = parse_int(girl.get("id"))
        if not girl_id:
            continue
        varieties, unknown_ids = varieties_from_api(girl.get("cookies"), ctx.cookie_id_map)
        for cookie_id in unknown_ids:
            ctx.warn(
                WarningType.UNKNOWN_VARIETY_ID,
                f"Unknown cookie ID {cookie_id} in divider {reference}",
                raw_value=cookie_id,
                reference=reference,
            )
        if not varieties:
            continue

        key = (reference, girl_id)
        if key in seen:
            logger.debug(f"Skipping duplicate divider entry {key}")
            continue
        seen.add(key)

        name = full_name(girl.get("first_name"), girl.get("last_name")) or None
        if name:
            ctx.register_scout(name, girl_id=girl_id)
        entries.append(DividerEntry(girl_id=girl_id, scout=name, varieties=varieties))
    return tuple(entries)


def import_direct_ship_divider(ctx: ImportContext, payload: Any):
    """
    Import the direct-ship divider.

    Two shapes: a single {"girls": [...]} blob with no order breakdown, or
    a list of {"orderId": ..., "divider": {"girls": [...]}} entries.
    """
    seen: set[tuple[str, int]] = set()

    if isinstance(payload, Mapping) and "girls" in payload:
        entries = _divider_entries(ctx, payload.get("girls"), DIRECT_SHIP_BLOB_REFERENCE, seen)
        if entries:
            ctx.dividers.append(DividerRecord(
                channel=AllocationChannel.DIRECT_SHIP,
                source=AllocationSource.DIRECT_SHIP_DIVIDER,
                reference=DIRECT_SHIP_BLOB_REFERENCE,
                entries=entries,
            ))
        return

    for item in _entries(payload):
        divider = item.get("divider") or item
        reference = str(item.get("orderId") or item.get("id") or "")
        entries = _divider_entries(ctx, divider.get("girls"), reference, seen)
        if entries:
            ctx.dividers.append(DividerRecord(
                channel=AllocationChannel.DIRECT_SHIP,
                source=AllocationSource.SMART_DIRECT_SHIP_DIVIDER,
                reference=reference,
                entries=entries,
            ))


def import_booth_dividers(ctx: ImportContext, payload: Any):
    """Import booth dividers; booth details are copied verbatim onto the record."""
    seen: set[tuple[str, int]] = set()

    for item in _entries(payload):
        reservation_id = item.get("reservationId")
        reference = str(reservation_id or "")
        # booth is either the booth itself or a whole reservation wrapping it
        raw_booth = item.get("booth") or {}
        booth = raw_booth if raw_booth.get("booth_id") else (raw_booth.get("booth") or raw_booth)
        timeslot = raw_booth.get("timeslot") or item.get("timeslot") or {}

        entries = _divider_entries(ctx, (item.get("divider") or {}).get("girls"), reference, seen)
        if not entries:
            continue
        ctx.dividers.append(DividerRecord(
            channel=AllocationChannel.BOOTH,
            source=AllocationSource.SMART_BOOTH_DIVIDER,
            reference=reference,
            entries=entries,
            reservation_id=reference or None,
            store_name=str(booth.get("store_name") or booth.get("booth_name") or booth.get("location") or ""),
            date=str(timeslot.get("date") or ""),
            start_time=str(timeslot.get("start_time") or timeslot.get("startTime") or ""),
            end_time=str(timeslot.get("end_time") or timeslot.get("endTime") or ""),
            reservation_type=str(booth.get("reservation_type") or booth.get("type") or ""),
        ))


def import_virtual_cookie_shares(ctx: ImportContext, payload: Any):
    """Per-girl Cookie Share counts entered in SC (booth-divider entries are skipped)."""
    for item in _entries(payload):
        if item.get("smart_divider_id"):
            continue  # Tracked through the booth divider
        for girl in item.get("girls") or []:
            girl_id = parse_int(girl.get("id"))
            if not girl_id:
                continue
            name = full_name(girl.get("first_name"), girl.get("last_name"))
            if name:
                ctx.register_scout(name, girl_id=girl_id)
            ctx.virtual_cookie_shares[girl_id] = (
                ctx.virtual_cookie_shares.get(girl_id, 0) + parse_int(girl.get("quantity"))
            )


def import_reservations(ctx: ImportContext, payload: Any):
    reservations = payload.get("reservations") if isinstance(payload, Mapping) else payload
    if not isinstance(reservations, list):
        return

    for r in reservations:
        booth = r.get("booth") or {}
        timeslot = r.get("timeslot") or {}
        varieties, _ = varieties_from_api(r.get("cookies"), ctx.cookie_id_map)
        ctx.booth_reservations.append(BoothReservation(
            id=str(r.get("id") or r.get("reservation_id") or ""),
            troop_id=_optional_text(r.get("troop_id")),
            booth_id=_optional_text(booth.get("booth_id")),
            store_name=str(booth.get("store_name") or ""),
            address=str(booth.get("address") or ""),
            reservation_type=str(booth.get("reservation_type") or ""),
            is_distributed=bool(booth.get("is_distributed")),
            is_virtually_distributed=bool(booth.get("is_virtually_distributed")),
            date=str(timeslot.get("date") or ""),
            start_time=str(timeslot.get("start_time") or ""),
            end_time=str(timeslot.get("end_time") or ""),
            varieties=varieties,
            total_packages=sum(varieties.values()),
            physical_packages=physical_total(varieties),
            donations=donation_total(varieties),
        ))


def normalize_booth_location(loc: Mapping[str, Any]) -> BoothLocation:
    addr = loc.get("address") or {}
    if not isinstance(addr, Mapping):
        addr = {"street": str(addr)}

    available_dates = tuple(
        {
            "date": str(d.get("date") or ""),
            "time_slots": [
                {
                    "start_time": str(s.get("start_time") or s.get("startTime") or ""),
                    "end_time": str(s.get("end_time") or s.get("endTime") or ""),
                }
                for s in d.get("timeSlots") or []
            ],
        }
        for d in loc.get("availableDates") or []
    )

    return BoothLocation(
        id=str(loc.get("id") or loc.get("booth_id") or 0),
        store_name=str(loc.get("store_name") or loc.get("name") or ""),
        street=str(addr.get("street") or addr.get("address_1") or ""),
        city=str(addr.get("city") or ""),
        state=str(addr.get("state") or ""),
        zip=str(addr.get("zip") or addr.get("postal_code") or ""),
        reservation_type=str(loc.get("reservation_type") or ""),
        notes=str(loc.get("notes") or ""),
        available_dates=available_dates,
    )


def import_booth_locations(ctx: ImportContext, payload: Any):
    if isinstance(payload, list):
        ctx.booth_locations = [normalize_booth_location(loc) for loc in payload if isinstance(loc, Mapping)]


def import_cookie_id_map(ctx: ImportContext, payload: Any):
    """Season cookie id map; must run before anything that parses cookies arrays."""
    if isinstance(payload, Mapping) and payload:
        ctx.cookie_id_map = build_cookie_id_map(payload)
        logger.info(f"Loaded cookie id map with {len(ctx.cookie_id_map)} entries")


def import_allocations(
    ctx: ImportContext,
    direct_ship: Any = None,
    booth_dividers: Any = None,
    virtual_cookie_shares: Any = None,
    reservations: Any = None,
    booth_locations: Any = None,
):
    """
    Import every optional divider and booth payload that is present.

    Args:
        ctx: Import context for this run
        direct_ship: Direct-ship divider payload
        booth_dividers: Booth dividers, keyed by reservation or a list
        virtual_cookie_shares: Virtual Cookie Share payload
        reservations: {"reservations": [...]}
        booth_locations: Booth location list
    """
    if direct_ship:
        import_direct_ship_divider(ctx, direct_ship)
    if virtual_cookie_shares:
        import_virtual_cookie_shares(ctx, virtual_cookie_shares)
    if reservations:
        import_reservations(ctx, reservations)
    if booth_dividers:
        import_booth_dividers(ctx, booth_dividers)
    if booth_locations:
        import_booth_locations(ctx, booth_locations)

    logger.info(f"Imported {len(ctx.dividers)} divider records")


def _optional_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)
