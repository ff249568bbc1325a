"""
Import context - the explicit builder every importer writes into.

One context per pipeline run. Importers append canonical records and
typed warnings here; the assembler reads it once and builds the frozen
UnifiedDataset. Nothing is shared between runs.
"""

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Optional

from .classifier import (
    TransferFlags,
    classify_transfer,
    is_order_shaped,
)
from .models import (
    BoothLocation,
    BoothReservation,
    DataSource,
    DividerRecord,
    LedgerWarning,
    Order,
    Payment,
    ScoutProfile,
    Transfer,
    TransferCategory,
    WarningType,
)
from .varieties import Variety, Varieties, physical_only, physical_total

logger = logging.getLogger(__name__)


@dataclass
class ImportMetadata:
    last_import_dc: Optional[str] = None
    last_import_sc: Optional[str] = None
    last_import_sc_report: Optional[str] = None
    sources: list[dict] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)


@dataclass
class ImportContext:
    """
    Mutable intermediate store for a single run.

    Attributes:
        orders: DC orders keyed by order number, in import order
        transfers: Classified SC transfers
        dividers: Divider payloads awaiting allocation
        scouts: Identity profiles keyed by scout name
        payments: Manual cash turn-ins
    """
    troop_number: Optional[str] = None
    troop_name: Optional[str] = None
    orders: dict[str, Order] = field(default_factory=dict)
    sc_only_orders: dict[str, dict] = field(default_factory=dict)
    transfers: list[Transfer] = field(default_factory=list)
    dividers: list[DividerRecord] = field(default_factory=list)
    virtual_cookie_shares: dict[int, int] = field(default_factory=dict)
    booth_reservations: list[BoothReservation] = field(default_factory=list)
    booth_locations: list[BoothLocation] = field(default_factory=list)
    cookie_id_map: Optional[dict[int, Variety]] = None
    scouts: dict[str, ScoutProfile] = field(default_factory=dict)
    payments: list[Payment] = field(default_factory=list)
    warnings: list[LedgerWarning] = field(default_factory=list)
    metadata: ImportMetadata = field(default_factory=ImportMetadata)
    loaded: set[DataSource] = field(default_factory=set)

    # ------------------------------------------------------------------
    # Warnings and issues
    # ------------------------------------------------------------------

    def warn(self, warning_type: WarningType, message: str, **context: Any) -> LedgerWarning:
        """Record a typed warning and log it."""
        warning = LedgerWarning(type=warning_type, message=message, context=context)
        self.warnings.append(warning)
        logger.warning(message)
        return warning

    def add_issue(self, issue: str):
        """Record a structural import problem (source treated as absent)."""
        self.metadata.issues.append(issue)
        logger.warning(issue)

    def record_import(self, source: DataSource, records: int, imported_at: Optional[str] = None):
        """
        Note that a source loaded.

        Args:
            source: Which source loaded
            records: Row/record count
            imported_at: Timestamp of the input (file mtime); None when unknown
        """
        stamp = imported_at
        if source == DataSource.DIGITAL_COOKIE:
            self.metadata.last_import_dc = stamp
        elif source in (DataSource.SMART_COOKIE_API, DataSource.SMART_COOKIE):
            self.metadata.last_import_sc = stamp
        elif source == DataSource.SMART_COOKIE_REPORT:
            self.metadata.last_import_sc_report = stamp
        self.metadata.sources.append({"type": source.value, "date": stamp, "records": records})
        self.loaded.add(source)

    # ------------------------------------------------------------------
    # Scouts
    # ------------------------------------------------------------------

    def register_scout(self, name: str, **details: Any) -> Optional[ScoutProfile]:
        """Create or enrich a scout profile; None values never overwrite."""
        name = (name or "").strip()
        if not name:
            return None
        profile = self.scouts.get(name)
        if profile is None:
            profile = ScoutProfile(name=name)
            self.scouts[name] = profile
        for key, value in details.items():
            if value is not None and value != "" and hasattr(profile, key):
                if key == "girl_id" and profile.girl_id is not None:
                    continue
                setattr(profile, key, value)
        return profile

    def scout_name_for_girl(self, girl_id: Optional[int]) -> Optional[str]:
        if girl_id is None:
            return None
        for profile in self.scouts.values():
            if profile.girl_id == girl_id:
                return profile.name
        return None

    # ------------------------------------------------------------------
    # Orders and transfers
    # ------------------------------------------------------------------

    def add_order(self, order: Order) -> Order:
        """Add a DC order; a repeated order number merges its sources."""
        existing = self.orders.get(order.order_number)
        if existing is not None:
            sources = tuple(dict.fromkeys(existing.sources + order.sources))
            order = replace(order, sources=sources)
        self.orders[order.order_number] = order
        return order

    def tag_order_source(self, order_number: str, source: DataSource, raw: dict) -> bool:
        """
        Mark a DC order as also seen in SC (D-prefixed SC records).

        Returns:
            True if a DC order matched; otherwise the SC copy is kept aside
        """
        existing = self.orders.get(order_number)
        if existing is not None:
            if source not in existing.sources:
                self.orders[order_number] = replace(existing, sources=existing.sources + (source,))
            return True
        self.sc_only_orders.setdefault(order_number, {**raw, "status": "In SC Only"})
        return False

    def create_transfer(
        self,
        raw_type: str,
        *,
        order_number: str = "",
        from_: str = "",
        to: str = "",
        date: str = "",
        varieties: Optional[Varieties] = None,
        amount: Decimal = Decimal("0.00"),
        status: str = "",
        flags: Optional[TransferFlags] = None,
        source: DataSource = DataSource.SMART_COOKIE_API,
    ) -> Transfer:
        """
        Classify and store a transfer.

        Unknown raw types still produce a Transfer (category UNKNOWN) so
        they stay visible, plus an UNKNOWN_TRANSFER_TYPE warning naming the
        transfer. Order-shaped unknowns also raise UNKNOWN_ORDER_TYPE, which
        blocks reports.
        """
        raw_type = (raw_type or "").strip()
        varieties = dict(varieties or {})
        category = classify_transfer(
            raw_type, flags, from_, self.troop_number, self.troop_name
        )

        if category == TransferCategory.UNKNOWN:
            self.warn(
                WarningType.UNKNOWN_TRANSFER_TYPE,
                f'Transfer {order_number or "(no number)"} has unknown type "{raw_type}"',
                raw_value=raw_type,
                order_number=order_number,
            )
            if is_order_shaped(order_number):
                self.warn(
                    WarningType.UNKNOWN_ORDER_TYPE,
                    f'Order {order_number} has unrecognised type "{raw_type}"',
                    raw_value=raw_type,
                    order_number=order_number,
                )

        transfer = Transfer(
            type=raw_type,
            category=category,
            order_number=order_number,
            from_=from_,
            to=to,
            date=date,
            varieties=varieties,
            physical_varieties=physical_only(varieties),
            packages=sum(varieties.values()),
            physical_packages=physical_total(varieties),
            amount=amount,
            status=status,
            source=source,
        )
        self.transfers.append(transfer)
        return transfer
