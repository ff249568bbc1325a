"""
Snapshot - serialize and publish the UnifiedDataset.

dataset_to_dict is the only place the camelCase output shape is defined.
Money is written as decimal strings ("42.00"), varieties as
{"THIN_MINTS": 12, ...}. Output is byte-identical for identical input:
keys are sorted and no wall-clock value is added here.
"""

import json
import logging
import os
import threading
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from .models import (
    Allocation,
    BoothLocation,
    BoothReservation,
    ChannelSummary,
    CookieShareReconciliation,
    LedgerWarning,
    Order,
    Payment,
    Scout,
    SiteOrderCategory,
    Transfer,
    TransferBreakdown,
    UnifiedDataset,
)
from .varieties import Variety, sorted_varieties

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _money(value: Decimal) -> str:
    return str(Decimal(value).quantize(CENTS))


def _varieties(varieties: Mapping[Variety, int]) -> dict[str, int]:
    return {v.value: n for v, n in sorted_varieties(varieties).items()}


def _enum(value) -> Optional[str]:
    return value.value if value is not None else None


def order_to_dict(order: Order) -> dict:
    return {
        "orderNumber": order.order_number,
        "scout": order.scout,
        "date": order.date,
        "owner": order.owner.value,
        "orderType": _enum(order.order_type),
        "dcOrderType": order.dc_order_type,
        "packages": order.packages,
        "physicalPackages": order.physical_packages,
        "donations": order.donations,
        "varieties": _varieties(order.varieties),
        "amount": _money(order.amount),
        "status": order.status,
        "statusClass": order.status_class.value,
        "paymentStatus": order.payment_status,
        "paymentMethod": _enum(order.payment_method),
        "needsInventory": order.needs_inventory,
        "sources": [s.value for s in order.sources],
    }


def transfer_to_dict(transfer: Transfer) -> dict:
    return {
        "type": transfer.type,
        "category": transfer.category.value,
        "orderNumber": transfer.order_number,
        "from": transfer.from_,
        "to": transfer.to,
        "date": transfer.date,
        "varieties": _varieties(transfer.varieties),
        "physicalVarieties": _varieties(transfer.physical_varieties),
        "packages": transfer.packages,
        "physicalPackages": transfer.physical_packages,
        "amount": _money(transfer.amount),
        "status": transfer.status,
        "source": transfer.source.value,
    }


def allocation_to_dict(allocation: Allocation) -> dict:
    data = {
        "channel": allocation.channel.value,
        "source": allocation.source.value,
        "scout": allocation.scout,
        "girlId": allocation.girl_id,
        "sourceReference": allocation.source_reference,
        "orderNumber": allocation.order_number,
        "date": allocation.date,
        "varieties": _varieties(allocation.varieties),
        "packages": allocation.packages,
        "donations": allocation.donations,
        "amount": _money(allocation.amount),
        "note": allocation.note,
    }
    if allocation.reservation_id is not None or allocation.store_name:
        data.update({
            "reservationId": allocation.reservation_id,
            "storeName": allocation.store_name,
            "startTime": allocation.start_time,
            "endTime": allocation.end_time,
            "reservationType": allocation.reservation_type,
        })
    return data


def payment_to_dict(payment: Payment) -> dict:
    return {
        "scout": payment.scout,
        "date": payment.date,
        "amount": _money(payment.amount),
        "method": payment.method,
        "reference": payment.reference,
    }


def _channel(summary: ChannelSummary) -> dict:
    return {
        "packages": summary.packages,
        "donations": summary.donations,
        "varieties": _varieties(summary.varieties),
        "amount": _money(summary.amount),
    }


def scout_to_dict(scout: Scout) -> dict:
    totals = scout.totals
    fin = scout.financials
    inv = scout.inventory
    profile = scout.profile
    return {
        "name": scout.name,
        "firstName": scout.first_name,
        "lastName": scout.last_name,
        "girlId": scout.girl_id,
        "isSiteOrder": scout.is_site_order,
        "profile": {
            "gsusaId": profile.gsusa_id,
            "gradeLevel": profile.grade_level,
            "serviceUnit": profile.service_unit,
            "troopId": profile.troop_id,
            "council": profile.council,
            "district": profile.district,
            "reportPackages": profile.report_packages,
        } if profile else None,
        "orders": [order_to_dict(o) for o in scout.orders],
        "allocations": [allocation_to_dict(a) for a in scout.allocations],
        "payments": [payment_to_dict(p) for p in scout.payments],
        "inventory": {
            "pickedUp": _varieties(inv.picked_up),
            "sold": _varieties(inv.sold),
            "net": _varieties(inv.net),
            "display": _varieties(inv.display),
            "onHand": inv.on_hand,
        },
        "issues": {
            "negativeInventory": [
                {
                    "variety": n.variety.value,
                    "inventory": n.inventory,
                    "sales": n.sales,
                    "shortfall": n.shortfall,
                }
                for n in inv.negative
            ],
        },
        "totals": {
            "orders": totals.orders,
            "sales": totals.sales,
            "shipped": totals.shipped,
            "donations": totals.donations,
            "credited": totals.credited,
            "totalSold": totals.total_sold,
            "revenue": _money(totals.revenue),
            "creditedByChannel": {
                channel.value: _channel(summary)
                for channel, summary in totals.credited_by_channel.items()
            },
            "salesByVariety": _varieties(totals.sales_by_variety),
            "shippedByVariety": _varieties(totals.shipped_by_variety),
        },
        "financials": {
            "pickupValue": _money(fin.pickup_value),
            "electronicPayments": _money(fin.electronic_payments),
            "cashOwed": _money(fin.cash_owed),
            "paymentsTurnedIn": _money(fin.payments_turned_in),
            "cashDue": _money(fin.cash_due),
            "cashCollected": _money(fin.cash_collected),
            "inventoryValue": _money(fin.inventory_value),
        },
    }


def _site_category(category: SiteOrderCategory) -> dict:
    return {
        "orders": [
            {
                "orderNumber": e.order_number,
                "orderType": _enum(e.order_type),
                "packages": e.packages,
                "allocated": e.allocated,
            }
            for e in category.orders
        ],
        "total": category.total,
        "allocated": category.allocated,
        "unallocated": category.unallocated,
        "hasWarning": category.has_warning,
    }


def _breakdown(breakdown: TransferBreakdown) -> dict:
    return {
        "transfers": [transfer_to_dict(t) for t in breakdown.transfers],
        "total": breakdown.total,
    }


def _cookie_share(cs: CookieShareReconciliation) -> dict:
    return {
        "digitalCookie": {"total": cs.dc_total, "manualEntry": cs.dc_manual_entry},
        "smartCookie": {"manualEntries": cs.sc_manual_entries},
        "discrepancy": cs.discrepancy,
        "reconciled": cs.reconciled,
        "compared": cs.compared,
        "byScout": [
            {
                "scout": s.scout,
                "dcTotal": s.dc_total,
                "dcManualEntry": s.dc_manual_entry,
                "enteredInSC": s.entered_in_sc,
                "adjustment": s.adjustment,
            }
            for s in cs.by_scout
        ],
    }


def _reservation(r: BoothReservation) -> dict:
    return {
        "id": r.id,
        "troopId": r.troop_id,
        "booth": {
            "boothId": r.booth_id,
            "storeName": r.store_name,
            "address": r.address,
            "reservationType": r.reservation_type,
            "isDistributed": r.is_distributed,
            "isVirtuallyDistributed": r.is_virtually_distributed,
        },
        "timeslot": {"date": r.date, "startTime": r.start_time, "endTime": r.end_time},
        "cookies": _varieties(r.varieties),
        "totalPackages": r.total_packages,
        "physicalPackages": r.physical_packages,
        "trackedCookieShare": r.donations,
    }


def _location(loc: BoothLocation) -> dict:
    return {
        "id": loc.id,
        "storeName": loc.store_name,
        "address": {"street": loc.street, "city": loc.city, "state": loc.state, "zip": loc.zip},
        "reservationType": loc.reservation_type,
        "notes": loc.notes,
        "availableDates": [
            {
                "date": d["date"],
                "timeSlots": [
                    {"startTime": s["start_time"], "endTime": s["end_time"]}
                    for s in d["time_slots"]
                ],
            }
            for d in loc.available_dates
        ],
    }


def warning_to_dict(warning: LedgerWarning) -> dict:
    return {**warning.context, "type": warning.type.value, "message": warning.message}


def dataset_to_dict(dataset: UnifiedDataset) -> dict[str, Any]:
    """Stable camelCase shape of a dataset."""
    tt = dataset.troop_totals
    meta = dataset.metadata
    checks = meta.health_checks
    inv = dataset.troop_inventory

    return {
        "scouts": {name: scout_to_dict(s) for name, s in dataset.scouts.items()},
        "siteOrders": {
            "directShip": _site_category(dataset.site_orders.direct_ship),
            "girlDelivery": _site_category(dataset.site_orders.girl_delivery),
            "boothSale": _site_category(dataset.site_orders.booth_sale),
        },
        "troopTotals": {
            "orders": tt.orders,
            "sold": tt.sold,
            "revenue": _money(tt.revenue),
            "ordered": tt.ordered,
            "allocated": tt.allocated,
            "virtualBoothT2G": tt.virtual_booth_t2g,
            "boothDividerT2G": tt.booth_divider_t2g,
            "directShipDividerT2G": tt.direct_ship_divider_t2g,
            "directShip": tt.direct_ship,
            "donations": tt.donations,
            "g2t": tt.g2t,
            "inventory": tt.inventory,
            "packagesSoldFromStock": tt.packages_sold_from_stock,
            "siteOrdersPhysical": tt.site_orders_physical,
            "girlDelivery": tt.girl_delivery,
            "girlInventory": tt.girl_inventory,
            "proceeds": {
                "perGirlAverage": str(tt.proceeds.per_girl_average),
                "rate": str(tt.proceeds.rate),
                "gross": _money(tt.proceeds.gross),
                "exemptPackages": tt.proceeds.exempt_packages,
                "deduction": _money(tt.proceeds.deduction),
                "troopProceeds": _money(tt.proceeds.proceeds),
            },
            "scouts": {
                "total": tt.scouts.total,
                "active": tt.scouts.active,
                "inactive": tt.scouts.inactive,
                "withNegativeInventory": tt.scouts.with_negative_inventory,
            },
        },
        "troopInventory": {
            "received": _varieties(inv.received),
            "allocated": _varieties(inv.allocated),
            "sent": _varieties(inv.sent),
            "net": _varieties(inv.net),
            "display": _varieties(inv.display),
            "total": inv.total,
        },
        "transferBreakdowns": {
            "c2t": _breakdown(dataset.transfer_breakdowns.c2t),
            "t2g": _breakdown(dataset.transfer_breakdowns.t2g),
            "g2t": _breakdown(dataset.transfer_breakdowns.g2t),
            "sold": _breakdown(dataset.transfer_breakdowns.sold),
        },
        "varieties": {
            "byCookie": _varieties(dataset.varieties.by_cookie),
            "inventory": _varieties(dataset.varieties.inventory),
            "total": dataset.varieties.total,
        },
        "cookieShare": _cookie_share(dataset.cookie_share),
        "boothReservations": [_reservation(r) for r in dataset.booth_reservations],
        "boothLocations": [_location(loc) for loc in dataset.booth_locations],
        "warnings": [warning_to_dict(w) for w in dataset.warnings],
        "metadata": {
            "lastImportDC": meta.last_import_dc,
            "lastImportSC": meta.last_import_sc,
            "lastImportSCReport": meta.last_import_sc_report,
            "troopNumber": meta.troop_number,
            "troopName": meta.troop_name,
            "sources": list(meta.sources),
            "issues": list(meta.issues),
            "healthChecks": {
                "unknownOrderTypes": checks.unknown_order_types,
                "unknownPaymentMethods": checks.unknown_payment_methods,
                "unknownTransferTypes": checks.unknown_transfer_types,
                "unknownVarietyIds": checks.unknown_variety_ids,
                "warningsCount": checks.warnings_count,
            },
            "status": meta.status.value,
            "scoutCount": meta.scout_count,
            "orderCount": meta.order_count,
            "scOnlyOrders": list(meta.sc_only_orders),
        },
    }


def dataset_to_json(dataset: UnifiedDataset) -> str:
    return json.dumps(dataset_to_dict(dataset), indent=2, sort_keys=True, default=str) + "\n"


def write_snapshot_atomic(dataset: UnifiedDataset, path: str | Path) -> Path:
    """
    Write unified.json atomically: <name>.tmp first, then rename over.

    On failure the .tmp file is removed and the previous snapshot is left
    as it was.

    Args:
        dataset: Dataset to write
        path: Final snapshot path

    Returns:
        The path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(dataset_to_json(dataset))
        os.replace(tmp_path, path)
    except Exception:
        logger.error(f"Failed to write snapshot {path}; removing {tmp_path.name}")
        tmp_path.unlink(missing_ok=True)
        raise
    logger.info(f"Wrote snapshot to {path}")
    return path


class SnapshotPublisher:
    """
    Publishes datasets from concurrent rebuilds, newest run wins.

    Each rebuild takes a run id from begin() before loading. A finished
    dataset is accepted only if its run id is newer than the last one
    published; older results are discarded.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._last_run_id = 0
        self._published_run_id = 0
        self._dataset: Optional[UnifiedDataset] = None

    def begin(self) -> int:
        """Hand out the next run id."""
        with self._lock:
            self._last_run_id += 1
            return self._last_run_id

    def publish(
        self,
        run_id: int,
        dataset: UnifiedDataset,
        writer: Optional[Callable[[UnifiedDataset], Any]] = None,
    ) -> bool:
        """
        Accept a finished dataset if it is still the newest.

        Args:
            run_id: Id from begin()
            dataset: The finished dataset
            writer: Called with the dataset while holding the lock (e.g. file write)

        Returns:
            True if published, False if discarded as stale
        """
        with self._lock:
            if run_id <= self._published_run_id:
                logger.info(
                    f"Discarding stale rebuild {run_id} (run {self._published_run_id} already published)"
                )
                return False
            if writer is not None:
                writer(dataset)
            self._dataset = dataset
            self._published_run_id = run_id
            return True

    @property
    def latest(self) -> Optional[UnifiedDataset]:
        with self._lock:
            return self._dataset

    @property
    def published_run_id(self) -> int:
        with self._lock:
            return self._published_run_id
