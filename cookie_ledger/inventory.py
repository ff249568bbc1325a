"""
Inventory Netter - Scout and troop stock by variety.

Scout:
    picked_up = GIRL_PICKUP - GIRL_RETURN
    sold      = physical varieties of own DELIVERY / IN_HAND orders
    net       = picked_up - sold        (signed, never floored)
    display   = max(net, 0) per variety

Troop:
    received  = COUNCIL_TO_TROOP (C2T, incoming T2T) + GIRL_RETURN
    allocated = GIRL_PICKUP + VIRTUAL_BOOTH_ALLOCATION + BOOTH_SALES_ALLOCATION
    sent      = TROOP_OUTGOING
    net       = received - allocated - sent

Direct ship never touches local stock, on either side.
"""

from collections import defaultdict
from typing import Iterable

from .models import (
    InventoryView,
    NegativeInventory,
    Order,
    TROOP_STOCK_OUT_CATEGORIES,
    Transfer,
    TransferCategory,
    TroopInventory,
)
from .varieties import PHYSICAL_VARIETIES, Varieties, add_varieties, sorted_varieties


def pickups_by_scout(transfers: Iterable[Transfer]) -> dict[str, Varieties]:
    """Net physical pickups per scout name (pickups added, returns subtracted)."""
    picked_up: dict[str, Varieties] = defaultdict(dict)
    for transfer in transfers:
        if transfer.category == TransferCategory.GIRL_PICKUP:
            add_varieties(picked_up[transfer.to], transfer.physical_varieties)
        elif transfer.category == TransferCategory.GIRL_RETURN:
            add_varieties(picked_up[transfer.from_], transfer.physical_varieties, sign=-1)
    return dict(picked_up)


def sold_from_stock(orders: Iterable[Order]) -> Varieties:
    """Physical varieties of orders filled from the scout's own stock."""
    sold: Varieties = {}
    for order in orders:
        if order.needs_inventory:
            add_varieties(sold, order.varieties, physical=True)
    return sold


def scout_inventory(picked_up: Varieties, orders: Iterable[Order]) -> InventoryView:
    """
    Net a scout's pickups against the scout's own stock sales.

    Args:
        picked_up: Net pickups by variety (from pickups_by_scout)
        orders: The scout's orders

    Returns:
        InventoryView with signed net, floored display and any negatives
    """
    sold = sold_from_stock(orders)
    net: Varieties = {}
    display: Varieties = {}
    negative = []

    for variety in PHYSICAL_VARIETIES:
        have = picked_up.get(variety, 0)
        gone = sold.get(variety, 0)
        if not have and not gone:
            continue
        net[variety] = have - gone
        display[variety] = max(have - gone, 0)
        if have - gone < 0:
            negative.append(NegativeInventory(
                variety=variety,
                inventory=have,
                sales=gone,
                shortfall=gone - have,
            ))

    return InventoryView(
        picked_up=sorted_varieties(picked_up),
        sold=sorted_varieties(sold),
        net=net,
        display=display,
        on_hand=sum(display.values()),
        negative=tuple(negative),
    )


def troop_inventory(transfers: Iterable[Transfer]) -> TroopInventory:
    """Troop stock by variety from SC transfers (UNKNOWN transfers ignored)."""
    received: Varieties = {}
    allocated: Varieties = {}
    sent: Varieties = {}

    for transfer in transfers:
        if transfer.category in (TransferCategory.COUNCIL_TO_TROOP, TransferCategory.GIRL_RETURN):
            add_varieties(received, transfer.physical_varieties)
        elif transfer.category in TROOP_STOCK_OUT_CATEGORIES:
            add_varieties(allocated, transfer.physical_varieties)
        elif transfer.category == TransferCategory.TROOP_OUTGOING:
            add_varieties(sent, transfer.physical_varieties)

    net: Varieties = {}
    for variety in PHYSICAL_VARIETIES:
        if variety in received or variety in allocated or variety in sent:
            net[variety] = received.get(variety, 0) - allocated.get(variety, 0) - sent.get(variety, 0)

    return TroopInventory(
        received=sorted_varieties(received),
        allocated=sorted_varieties(allocated),
        sent=sorted_varieties(sent),
        net=net,
        display={v: max(n, 0) for v, n in net.items()},
        total=sum(net.values()),
    )
