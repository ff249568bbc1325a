"""
Totals - scout totals, troop totals, transfer breakdowns, variety
aggregates and site order allocation.

All functions here are pure: they read orders, transfers, allocations
and already-computed scout views and return frozen summaries.
"""

from decimal import Decimal
from typing import Iterable, Optional

from .config import LedgerConfig
from .financials import troop_proceeds
from .models import (
    Allocation,
    AllocationChannel,
    ChannelSummary,
    Order,
    OrderType,
    Owner,
    SALE_CATEGORIES,
    Scout,
    ScoutCounts,
    ScoutTotals,
    SiteOrderCategory,
    SiteOrderEntry,
    SiteOrders,
    Transfer,
    TransferBreakdown,
    TransferBreakdowns,
    TransferCategory,
    TroopInventory,
    TroopTotals,
    VarietySummary,
)
from .varieties import Variety, Varieties, add_varieties, sorted_varieties


# ---------------------------------------------------------------------------
# Scout totals
# ---------------------------------------------------------------------------

def channel_summary(allocations: Iterable[Allocation]) -> ChannelSummary:
    packages = 0
    donations = 0
    varieties: Varieties = {}
    amount = Decimal("0.00")
    for allocation in allocations:
        packages += allocation.packages
        donations += allocation.donations
        add_varieties(varieties, allocation.varieties)
        amount += allocation.amount
    return ChannelSummary(
        packages=packages,
        donations=donations,
        varieties=sorted_varieties(varieties),
        amount=amount,
    )


def scout_totals(orders: Iterable[Order], allocations: Iterable[Allocation]) -> ScoutTotals:
    """
    Roll up a scout's own orders and credited allocations.

    sales counts physical packages delivered from the scout's stock,
    shipped counts own direct ship orders, credited counts allocation
    packages plus allocation donations.
    """
    orders = list(orders)
    allocations = list(allocations)

    sales = 0
    shipped = 0
    donations = 0
    sales_by_variety: Varieties = {}
    shipped_by_variety: Varieties = {}
    for order in orders:
        if order.needs_inventory:
            sales += order.physical_packages
            add_varieties(sales_by_variety, order.varieties)
        elif order.order_type == OrderType.DIRECT_SHIP:
            shipped += order.physical_packages
            add_varieties(shipped_by_variety, order.varieties)
        donations += order.donations

    by_channel = {
        channel: channel_summary(a for a in allocations if a.channel == channel)
        for channel in AllocationChannel
    }
    credited = sum(s.packages + s.donations for s in by_channel.values())
    revenue = sum((o.amount for o in orders), Decimal("0.00")) + sum(
        (s.amount for s in by_channel.values()), Decimal("0.00")
    )

    return ScoutTotals(
        orders=len(orders),
        sales=sales,
        shipped=shipped,
        donations=donations,
        credited=credited,
        total_sold=sales + shipped + donations + credited,
        revenue=revenue,
        credited_by_channel=by_channel,
        sales_by_variety=sorted_varieties(sales_by_variety),
        shipped_by_variety=sorted_varieties(shipped_by_variety),
    )


def scout_counts(scouts: Iterable[Scout]) -> ScoutCounts:
    """Counts exclude the troop site pseudo-scout."""
    total = active = with_negative = 0
    for scout in scouts:
        if scout.is_site_order:
            continue
        total += 1
        if scout.totals.total_sold > 0:
            active += 1
        if scout.inventory.negative:
            with_negative += 1
    return ScoutCounts(
        total=total,
        active=active,
        inactive=total - active,
        with_negative_inventory=with_negative,
    )


# ---------------------------------------------------------------------------
# Troop totals
# ---------------------------------------------------------------------------

def _physical_sum(transfers: list[Transfer], category: TransferCategory) -> int:
    return sum(t.physical_packages for t in transfers if t.category == category)


def troop_totals(
    orders: list[Order],
    transfers: list[Transfer],
    scouts: list[Scout],
    inventory: TroopInventory,
    config: LedgerConfig,
) -> TroopTotals:
    """
    Troop-level aggregates over every known transfer and scout.

    UNKNOWN transfers never contribute. Inventory is the signed troop net.
    """
    ordered = _physical_sum(transfers, TransferCategory.COUNCIL_TO_TROOP)
    allocated = _physical_sum(transfers, TransferCategory.GIRL_PICKUP)
    virtual_booth = _physical_sum(transfers, TransferCategory.VIRTUAL_BOOTH_ALLOCATION)
    booth_divider = _physical_sum(transfers, TransferCategory.BOOTH_SALES_ALLOCATION)
    direct_ship_divider = _physical_sum(transfers, TransferCategory.DIRECT_SHIP_ALLOCATION)
    g2t = _physical_sum(transfers, TransferCategory.GIRL_RETURN)
    direct_ship = sum(t.packages for t in transfers if t.category == TransferCategory.DIRECT_SHIP)

    sold = 0
    revenue = Decimal("0.00")
    donations = 0
    for transfer in transfers:
        if transfer.category == TransferCategory.UNKNOWN:
            continue
        if transfer.category in SALE_CATEGORIES:
            sold += transfer.packages
            revenue += transfer.amount
        donations += transfer.varieties.get(Variety.COOKIE_SHARE, 0)

    # Site orders filled from troop stock
    site_physical = sum(
        o.physical_packages for o in orders
        if o.owner == Owner.TROOP and o.order_type in (OrderType.DELIVERY, OrderType.BOOTH)
    )

    girl_delivery = sum(s.totals.sales for s in scouts if not s.is_site_order)
    girl_inventory = sum(s.inventory.on_hand for s in scouts if not s.is_site_order)
    scout_direct_ship = sum(s.totals.shipped for s in scouts)
    active_totals = [
        s.totals.total_sold for s in scouts
        if not s.is_site_order and s.totals.total_sold > 0
    ]

    return TroopTotals(
        orders=len(orders),
        sold=sold,
        revenue=revenue,
        ordered=ordered,
        allocated=allocated,
        virtual_booth_t2g=virtual_booth,
        booth_divider_t2g=booth_divider,
        direct_ship_divider_t2g=direct_ship_divider,
        direct_ship=direct_ship,
        donations=donations,
        g2t=g2t,
        inventory=inventory.total,
        packages_sold_from_stock=allocated + virtual_booth + booth_divider - g2t,
        site_orders_physical=site_physical,
        girl_delivery=girl_delivery,
        girl_inventory=girl_inventory,
        proceeds=troop_proceeds(ordered, donations, scout_direct_ship, active_totals, config),
        scouts=scout_counts(scouts),
    )


# ---------------------------------------------------------------------------
# Transfer breakdowns
# ---------------------------------------------------------------------------

def _breakdown(transfers: list[Transfer]) -> TransferBreakdown:
    newest_first = sorted(transfers, key=lambda t: (t.date, t.order_number), reverse=True)
    return TransferBreakdown(
        transfers=tuple(newest_first),
        total=sum(t.physical_packages for t in transfers),
    )


def transfer_breakdowns(transfers: list[Transfer]) -> TransferBreakdowns:
    """C2T, pickup, return and sold lists, newest first, with physical totals."""
    return TransferBreakdowns(
        c2t=_breakdown([t for t in transfers if t.category == TransferCategory.COUNCIL_TO_TROOP]),
        t2g=_breakdown([t for t in transfers if t.category == TransferCategory.GIRL_PICKUP]),
        g2t=_breakdown([t for t in transfers if t.category == TransferCategory.GIRL_RETURN]),
        sold=_breakdown([t for t in transfers if t.category in SALE_CATEGORIES]),
    )


# ---------------------------------------------------------------------------
# Varieties
# ---------------------------------------------------------------------------

def variety_summary(scouts: Iterable[Scout], inventory: TroopInventory) -> VarietySummary:
    """
    Packages sold by cookie and troop inventory by cookie.

    by_cookie counts own stock sales and direct ship orders of every scout,
    plus credited allocations of real scouts (the site's sales reach
    scouts through those allocations). Cookie Share is excluded.
    """
    by_cookie: Varieties = {}
    for scout in scouts:
        for order in scout.orders:
            if order.needs_inventory or order.order_type == OrderType.DIRECT_SHIP:
                add_varieties(by_cookie, order.varieties, physical=True)
        if not scout.is_site_order:
            for allocation in scout.allocations:
                add_varieties(by_cookie, allocation.varieties, physical=True)

    by_cookie = {v: n for v, n in sorted_varieties(by_cookie).items() if n > 0}
    return VarietySummary(
        by_cookie=by_cookie,
        inventory=dict(inventory.net),
        total=sum(by_cookie.values()),
    )


# ---------------------------------------------------------------------------
# Site orders
# ---------------------------------------------------------------------------

def _category(entries: list[SiteOrderEntry], allocated: int) -> SiteOrderCategory:
    total = sum(e.packages for e in entries)
    return SiteOrderCategory(
        orders=tuple(entries),
        total=total,
        allocated=allocated,
        unallocated=max(0, total - allocated),
        has_warning=total > allocated,
    )


def _fifo(orders: list[Order], pool: int) -> list[SiteOrderEntry]:
    """Consume an allocation pool oldest order first."""
    entries = []
    for order in orders:
        consumed = min(order.physical_packages, pool)
        pool -= consumed
        entries.append(SiteOrderEntry(
            order_number=order.order_number,
            order_type=order.order_type,
            packages=order.physical_packages,
            allocated=consumed,
        ))
    return entries


def site_orders(
    site_scout: Optional[Scout],
    transfers: list[Transfer],
    allocations: list[Allocation],
) -> SiteOrders:
    """
    Split troop site orders into direct ship, girl delivery and booth sale,
    and show how much of each has been allocated to scouts.

    Direct ship is matched per order by divider order id first; when no
    order matches (the divider is a single blob) the direct-ship pool is
    spread oldest first. Girl delivery draws on virtual booth transfers
    the same way.
    """
    orders = []
    if site_scout is not None:
        orders = sorted(
            (o for o in site_scout.orders if o.order_type != OrderType.DONATION),
            key=lambda o: (o.date, o.order_number),
        )
    direct = [o for o in orders if o.order_type == OrderType.DIRECT_SHIP]
    booth = [o for o in orders if o.order_type == OrderType.BOOTH]
    delivery = [o for o in orders if o.order_type not in (OrderType.DIRECT_SHIP, OrderType.BOOTH)]

    ds_allocations = [a for a in allocations if a.channel == AllocationChannel.DIRECT_SHIP]
    ds_pool = sum(a.packages for a in ds_allocations)

    matched = []
    for order in direct:
        refs = (order.order_number, f"D{order.order_number}")
        matched.append(sum(a.packages for a in ds_allocations if a.source_reference in refs))
    if any(matched):
        direct_entries = [
            SiteOrderEntry(o.order_number, o.order_type, o.physical_packages, m)
            for o, m in zip(direct, matched)
        ]
    else:
        direct_entries = _fifo(direct, ds_pool)

    vb_pool = sum(
        t.physical_packages for t in transfers
        if t.category == TransferCategory.VIRTUAL_BOOTH_ALLOCATION
    )
    booth_allocated = sum(a.packages for a in allocations if a.channel == AllocationChannel.BOOTH)

    return SiteOrders(
        direct_ship=_category(direct_entries, ds_pool),
        girl_delivery=_category(_fifo(delivery, vb_pool), vb_pool),
        booth_sale=_category(
            [SiteOrderEntry(o.order_number, o.order_type, o.physical_packages, 0) for o in booth],
            booth_allocated,
        ),
    )
