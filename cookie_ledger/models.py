"""
Data models for the troop cookie ledger.

Base records (Order, Transfer, Allocation, Payment) are frozen dataclasses:
created once by an importer or the allocator, never patched afterwards.
Computed views (ScoutTotals, ScoutFinancials, InventoryView) are produced
by the calculators and attached to a Scout when it is assembled.

Money values use Decimal for precision.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from .varieties import Variety, Varieties


class DataSource(Enum):
    """Where a record came from."""
    DIGITAL_COOKIE = "DC"
    SMART_COOKIE = "SC"              # Flat transfer export (CookieOrders)
    SMART_COOKIE_REPORT = "SC-Report"
    SMART_COOKIE_API = "SC-API"
    PAYMENTS = "Payments"


class Owner(Enum):
    GIRL = "GIRL"
    TROOP = "TROOP"


class OrderType(Enum):
    """How the sale was made."""
    DELIVERY = "DELIVERY"          # Online order, delivered in person from scout stock
    DIRECT_SHIP = "DIRECT_SHIP"    # Shipped by the supplier, no local stock
    BOOTH = "BOOTH"                # Troop booth sale
    IN_HAND = "IN_HAND"            # Door-to-door with cookies in hand
    DONATION = "DONATION"          # Cookie Share only


# Order types that consume a scout's picked-up stock
INVENTORY_ORDER_TYPES = frozenset({OrderType.DELIVERY, OrderType.IN_HAND})


class PaymentMethod(Enum):
    CREDIT_CARD = "CREDIT_CARD"
    VENMO = "VENMO"
    CASH = "CASH"


class StatusClass(Enum):
    """Display taxonomy for free-text DC order statuses."""
    NEEDS_APPROVAL = "NEEDS_APPROVAL"
    COMPLETED = "COMPLETED"
    PENDING = "PENDING"
    UNKNOWN = "UNKNOWN"


class TransferCategory(Enum):
    """
    Single category assigned to every transfer at creation time.

    The SC feed mixes true inventory movements with order-sync records;
    downstream code branches on category only, never on the raw type.
    """
    # Inventory movements
    COUNCIL_TO_TROOP = "COUNCIL_TO_TROOP"
    TROOP_OUTGOING = "TROOP_OUTGOING"
    GIRL_PICKUP = "GIRL_PICKUP"
    GIRL_RETURN = "GIRL_RETURN"
    VIRTUAL_BOOTH_ALLOCATION = "VIRTUAL_BOOTH_ALLOCATION"
    BOOTH_SALES_ALLOCATION = "BOOTH_SALES_ALLOCATION"
    DIRECT_SHIP_ALLOCATION = "DIRECT_SHIP_ALLOCATION"
    # Order/sales records
    DC_ORDER_RECORD = "DC_ORDER_RECORD"
    COOKIE_SHARE_RECORD = "COOKIE_SHARE_RECORD"
    BOOTH_COOKIE_SHARE = "BOOTH_COOKIE_SHARE"
    DIRECT_SHIP = "DIRECT_SHIP"
    PLANNED = "PLANNED"
    # Unmatched raw type - excluded from every total
    UNKNOWN = "UNKNOWN"


T2G_CATEGORIES = frozenset({
    TransferCategory.GIRL_PICKUP,
    TransferCategory.VIRTUAL_BOOTH_ALLOCATION,
    TransferCategory.BOOTH_SALES_ALLOCATION,
    TransferCategory.DIRECT_SHIP_ALLOCATION,
})

# T2G categories that actually leave troop stock (direct ship ships from the supplier)
TROOP_STOCK_OUT_CATEGORIES = frozenset({
    TransferCategory.GIRL_PICKUP,
    TransferCategory.VIRTUAL_BOOTH_ALLOCATION,
    TransferCategory.BOOTH_SALES_ALLOCATION,
})

TROOP_INVENTORY_IN_CATEGORIES = frozenset({
    TransferCategory.COUNCIL_TO_TROOP,
    TransferCategory.GIRL_RETURN,
})

SCOUT_PHYSICAL_CATEGORIES = frozenset({
    TransferCategory.GIRL_PICKUP,
    TransferCategory.GIRL_RETURN,
})

SALE_CATEGORIES = frozenset({
    TransferCategory.GIRL_PICKUP,
    TransferCategory.VIRTUAL_BOOTH_ALLOCATION,
    TransferCategory.BOOTH_SALES_ALLOCATION,
    TransferCategory.COOKIE_SHARE_RECORD,
    TransferCategory.BOOTH_COOKIE_SHARE,
    TransferCategory.DIRECT_SHIP,
})


class AllocationChannel(Enum):
    BOOTH = "booth"
    DIRECT_SHIP = "directShip"
    VIRTUAL_BOOTH = "virtualBooth"


class AllocationSource(Enum):
    DIRECT_SHIP_DIVIDER = "DirectShipDivider"
    SMART_BOOTH_DIVIDER = "SmartBoothDivider"
    SMART_DIRECT_SHIP_DIVIDER = "SmartDirectShipDivider"
    VIRTUAL_BOOTH_TRANSFER = "VirtualBoothTransfer"


class WarningType(Enum):
    UNKNOWN_ORDER_TYPE = "UNKNOWN_ORDER_TYPE"
    UNKNOWN_PAYMENT_METHOD = "UNKNOWN_PAYMENT_METHOD"
    UNKNOWN_TRANSFER_TYPE = "UNKNOWN_TRANSFER_TYPE"
    UNKNOWN_VARIETY_ID = "UNKNOWN_VARIETY_ID"
    COOKIE_SHARE_MISMATCH = "COOKIE_SHARE_MISMATCH"
    NEGATIVE_INVENTORY = "NEGATIVE_INVENTORY"
    PACKAGE_MISMATCH = "PACKAGE_MISMATCH"
    UNMATCHED_ALLOCATION = "UNMATCHED_ALLOCATION"
    UNMATCHED_PAYMENT = "UNMATCHED_PAYMENT"
    DUPLICATE_SOURCE_SKIPPED = "DUPLICATE_SOURCE_SKIPPED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DatasetStatus(Enum):
    """What the presentation layer is allowed to show."""
    NO_DATA = "no_data"
    READY = "ready"
    WARNINGS = "warnings"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class LedgerWarning:
    """A typed, non-fatal anomaly with its context (raw value, order number...)."""
    type: WarningType
    message: str
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Order:
    """
    A single Digital Cookie order.

    physical_packages + donations == packages, and the variety counts sum
    to physical_packages. Unrecognised order types and payment methods are
    kept as None so totals can exclude them.
    """
    order_number: str
    scout: str
    date: str
    owner: Owner
    order_type: Optional[OrderType]
    dc_order_type: str
    packages: int
    physical_packages: int
    donations: int
    varieties: Varieties          # Physical only
    amount: Decimal
    status: str
    status_class: StatusClass
    payment_status: str
    payment_method: Optional[PaymentMethod]
    sources: tuple[DataSource, ...] = (DataSource.DIGITAL_COOKIE,)

    @property
    def needs_inventory(self) -> bool:
        """True when the order was filled from the scout's own stock."""
        return self.owner == Owner.GIRL and self.order_type in INVENTORY_ORDER_TYPES

    @property
    def is_electronic(self) -> bool:
        return self.payment_method is not None and self.payment_method != PaymentMethod.CASH


@dataclass(frozen=True)
class Transfer:
    """A Smart Cookie inventory movement or order-sync record."""
    type: str                     # Raw type code, kept for display only
    category: TransferCategory
    order_number: str
    from_: str
    to: str
    date: str
    varieties: Varieties          # May include Cookie Share
    physical_varieties: Varieties
    packages: int
    physical_packages: int
    amount: Decimal
    status: str = ""
    source: DataSource = DataSource.SMART_COOKIE_API


@dataclass(frozen=True)
class DividerEntry:
    """One girl's share inside a divider payload, as imported."""
    girl_id: int
    scout: Optional[str]
    varieties: Varieties


@dataclass(frozen=True)
class DividerRecord:
    """
    An organization-level sale split across girls by the SC divider.

    Direct-ship dividers carry no order breakdown; booth dividers carry
    the booth, date and time window.
    """
    channel: AllocationChannel
    source: AllocationSource
    reference: str
    entries: tuple[DividerEntry, ...]
    reservation_id: Optional[str] = None
    store_name: str = ""
    date: str = ""
    start_time: str = ""
    end_time: str = ""
    reservation_type: str = ""


@dataclass(frozen=True)
class Allocation:
    """A per-scout credit derived from an organization-level record."""
    channel: AllocationChannel
    source: AllocationSource
    scout: str
    source_reference: str
    varieties: Varieties
    packages: int                 # Physical
    donations: int
    amount: Decimal
    girl_id: Optional[int] = None
    order_number: Optional[str] = None
    date: str = ""
    note: str = ""
    # Booth sales only
    reservation_id: Optional[str] = None
    store_name: str = ""
    start_time: str = ""
    end_time: str = ""
    reservation_type: str = ""


@dataclass(frozen=True)
class Payment:
    """Cash or check a scout turned in to the troop."""
    scout: str
    date: str
    amount: Decimal
    method: str
    reference: str = ""


@dataclass
class ScoutProfile:
    """Identity details gathered from every source while importing."""
    name: str
    girl_id: Optional[int] = None
    gsusa_id: Optional[str] = None
    grade_level: Optional[str] = None
    service_unit: Optional[str] = None
    troop_id: Optional[str] = None
    council: Optional[str] = None
    district: Optional[str] = None
    report_packages: int = 0    # Total packages the SC report credits


@dataclass(frozen=True)
class BoothReservation:
    id: str
    troop_id: Optional[str]
    booth_id: Optional[str]
    store_name: str
    address: str
    reservation_type: str
    is_distributed: bool
    is_virtually_distributed: bool
    date: str
    start_time: str
    end_time: str
    varieties: Varieties
    total_packages: int
    physical_packages: int
    donations: int


@dataclass(frozen=True)
class BoothLocation:
    id: str
    store_name: str
    street: str
    city: str
    state: str
    zip: str
    reservation_type: str = ""
    notes: str = ""
    available_dates: tuple[dict, ...] = ()


# ---------------------------------------------------------------------------
# Computed views
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NegativeInventory:
    variety: Variety
    inventory: int
    sales: int
    shortfall: int


@dataclass(frozen=True)
class InventoryView:
    """
    Scout inventory in both forms.

    net is signed (picked up - sold) and may go negative; display floors
    each variety at zero for "on hand" summaries.
    """
    picked_up: Varieties
    sold: Varieties
    net: Varieties
    display: Varieties
    on_hand: int
    negative: tuple[NegativeInventory, ...] = ()


@dataclass(frozen=True)
class ChannelSummary:
    packages: int = 0
    donations: int = 0
    varieties: Varieties = field(default_factory=dict)
    amount: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class ScoutTotals:
    orders: int
    sales: int            # Physical packages delivered from own stock
    shipped: int          # Own direct ship orders
    donations: int        # Cookie Share on own orders
    credited: int         # All allocation packages + donations
    total_sold: int
    revenue: Decimal
    credited_by_channel: dict[AllocationChannel, ChannelSummary]
    sales_by_variety: Varieties
    shipped_by_variety: Varieties


@dataclass(frozen=True)
class ScoutFinancials:
    """cash_due = pickup_value - electronic_payments - payments_turned_in."""
    pickup_value: Decimal
    electronic_payments: Decimal
    cash_owed: Decimal
    payments_turned_in: Decimal
    cash_due: Decimal
    cash_collected: Decimal
    inventory_value: Decimal


@dataclass(frozen=True)
class Scout:
    """A selling participant, rebuilt from scratch on every run."""
    name: str
    first_name: str
    last_name: str
    girl_id: Optional[int]
    is_site_order: bool
    orders: tuple[Order, ...]
    allocations: tuple[Allocation, ...]
    payments: tuple[Payment, ...]
    inventory: InventoryView
    totals: ScoutTotals
    financials: ScoutFinancials
    profile: Optional[ScoutProfile] = None

    def allocations_for(self, channel: AllocationChannel) -> list[Allocation]:
        return [a for a in self.allocations if a.channel == channel]


# ---------------------------------------------------------------------------
# Troop-level views
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TroopInventory:
    """Troop stock: received - allocated to girls - sent to other troops."""
    received: Varieties
    allocated: Varieties
    sent: Varieties
    net: Varieties
    display: Varieties
    total: int


@dataclass(frozen=True)
class ScoutCounts:
    total: int
    active: int
    inactive: int
    with_negative_inventory: int


@dataclass(frozen=True)
class TroopProceeds:
    per_girl_average: Decimal
    rate: Decimal
    gross: Decimal
    exempt_packages: int
    deduction: Decimal
    proceeds: Decimal


@dataclass(frozen=True)
class TroopTotals:
    orders: int
    sold: int
    revenue: Decimal
    ordered: int                  # C2T physical packages received
    allocated: int                # Physical pickups (GIRL_PICKUP)
    virtual_booth_t2g: int
    booth_divider_t2g: int
    direct_ship_divider_t2g: int
    direct_ship: int
    donations: int
    g2t: int
    inventory: int                # Signed troop net
    packages_sold_from_stock: int
    site_orders_physical: int
    girl_delivery: int
    girl_inventory: int
    proceeds: TroopProceeds
    scouts: ScoutCounts


@dataclass(frozen=True)
class TransferBreakdown:
    transfers: tuple[Transfer, ...]
    total: int


@dataclass(frozen=True)
class TransferBreakdowns:
    c2t: TransferBreakdown
    t2g: TransferBreakdown
    g2t: TransferBreakdown
    sold: TransferBreakdown


@dataclass(frozen=True)
class VarietySummary:
    by_cookie: Varieties
    inventory: Varieties
    total: int


@dataclass(frozen=True)
class SiteOrderEntry:
    order_number: str
    order_type: Optional[OrderType]
    packages: int
    allocated: int


@dataclass(frozen=True)
class SiteOrderCategory:
    orders: tuple[SiteOrderEntry, ...]
    total: int
    allocated: int
    unallocated: int
    has_warning: bool


@dataclass(frozen=True)
class SiteOrders:
    direct_ship: SiteOrderCategory
    girl_delivery: SiteOrderCategory
    booth_sale: SiteOrderCategory


@dataclass(frozen=True)
class ScoutCookieShare:
    scout: str
    dc_total: int
    dc_manual_entry: int
    entered_in_sc: int
    adjustment: int


@dataclass(frozen=True)
class CookieShareReconciliation:
    dc_total: int
    dc_manual_entry: int
    sc_manual_entries: int
    discrepancy: int
    reconciled: bool
    compared: bool
    by_scout: tuple[ScoutCookieShare, ...] = ()


@dataclass(frozen=True)
class HealthChecks:
    unknown_order_types: int
    unknown_payment_methods: int
    unknown_transfer_types: int
    unknown_variety_ids: int
    warnings_count: int


@dataclass(frozen=True)
class DatasetMetadata:
    last_import_dc: Optional[str]
    last_import_sc: Optional[str]
    last_import_sc_report: Optional[str]
    troop_number: Optional[str]
    troop_name: Optional[str]
    sources: tuple[dict, ...]
    issues: tuple[str, ...]
    health_checks: HealthChecks
    status: DatasetStatus
    scout_count: int
    order_count: int
    sc_only_orders: tuple[dict, ...] = ()


@dataclass(frozen=True)
class UnifiedDataset:
    """Root snapshot of one run. Scouts are ordered by name."""
    scouts: dict[str, Scout]
    site_orders: SiteOrders
    troop_totals: TroopTotals
    troop_inventory: TroopInventory
    transfer_breakdowns: TransferBreakdowns
    varieties: VarietySummary
    cookie_share: CookieShareReconciliation
    booth_reservations: tuple[BoothReservation, ...]
    booth_locations: tuple[BoothLocation, ...]
    warnings: tuple[LedgerWarning, ...]
    metadata: DatasetMetadata

    @property
    def status(self) -> DatasetStatus:
        return self.metadata.status
