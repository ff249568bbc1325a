"""
Cookie variety registry.

One entry per product. Every lookup table (DC column names, SC API ids,
report codes, transfer abbreviations, prices) is derived from the registry,
so adding a cookie means adding one CookieSpec.

Varieties themselves are plain dicts of Variety -> int.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Mapping, Optional


class Variety(Enum):
    """Closed set of product varieties for the current season."""
    THIN_MINTS = "THIN_MINTS"
    CARAMEL_DELITES = "CARAMEL_DELITES"
    PEANUT_BUTTER_PATTIES = "PEANUT_BUTTER_PATTIES"
    PEANUT_BUTTER_SANDWICH = "PEANUT_BUTTER_SANDWICH"
    TREFOILS = "TREFOILS"
    ADVENTUREFULS = "ADVENTUREFULS"
    LEMONADES = "LEMONADES"
    EXPLOREMORES = "EXPLOREMORES"
    CARAMEL_CHOCOLATE_CHIP = "CARAMEL_CHOCOLATE_CHIP"
    COOKIE_SHARE = "COOKIE_SHARE"  # Donated packages, never physical


@dataclass(frozen=True)
class CookieSpec:
    """Everything the sources call a single variety."""
    variety: Variety
    display_name: str
    price: Decimal
    is_physical: bool
    dc_column: Optional[str]     # Digital Cookie export header
    sc_api_id: Optional[int]     # Smart Cookie API cookie id
    sc_report_code: Optional[str]  # ReportExport C1-C11 column
    sc_transfer_abbr: Optional[str]  # Transfer export column
    sort_order: int
    name_variations: tuple[str, ...] = ()


COOKIE_REGISTRY: tuple[CookieSpec, ...] = (
    CookieSpec(Variety.THIN_MINTS, "Thin Mints", Decimal("6.00"), True,
               "Thin Mints", 4, "C6", "TM", 1, ("Thin Mint", "Thin Mints")),
    CookieSpec(Variety.CARAMEL_DELITES, "Caramel deLites", Decimal("6.00"), True,
               "Caramel deLites", 1, "C8", "CD", 2, ("Caramel deLite", "Caramel deLites")),
    CookieSpec(Variety.PEANUT_BUTTER_PATTIES, "Peanut Butter Patties", Decimal("6.00"), True,
               "Peanut Butter Patties", 2, "C7", "PBP", 3,
               ("Peanut Butter Patty", "Peanut Butter Patties")),
    CookieSpec(Variety.PEANUT_BUTTER_SANDWICH, "Peanut Butter Sandwich", Decimal("6.00"), True,
               "Peanut Butter Sandwich", 5, "C9", "PBS", 4,
               ("Peanut Butter Sandwich", "Peanut Butter Sandwiches")),
    CookieSpec(Variety.TREFOILS, "Trefoils", Decimal("6.00"), True,
               "Trefoils", 3, "C5", "TRE", 5, ("Trefoil", "Trefoils")),
    CookieSpec(Variety.ADVENTUREFULS, "Adventurefuls", Decimal("6.00"), True,
               "Adventurefuls", 48, "C2", "ADV", 6, ("Adventureful", "Adventurefuls")),
    CookieSpec(Variety.LEMONADES, "Lemonades", Decimal("6.00"), True,
               "Lemonades", 34, "C4", "LEM", 7, ("Lemonade", "Lemonades")),
    CookieSpec(Variety.EXPLOREMORES, "Exploremores", Decimal("6.00"), True,
               "Exploremores", 56, "C3", "EXP", 8, ("Exploremore", "Exploremores")),
    CookieSpec(Variety.CARAMEL_CHOCOLATE_CHIP, "Caramel Chocolate Chip", Decimal("7.00"), True,
               "Caramel Chocolate Chip", 52, "C11", "GFC", 9,
               ("Caramel Chocolate Chip", "Caramel Chocolate Chips")),
    CookieSpec(Variety.COOKIE_SHARE, "Cookie Share", Decimal("6.00"), False,
               None, 37, "C1", "CShare", 10, ("Cookie Share",)),
)

PACKAGES_PER_CASE = 12

# Derived lookups
SPECS: dict[Variety, CookieSpec] = {spec.variety: spec for spec in COOKIE_REGISTRY}
VARIETY_ORDER: list[Variety] = [s.variety for s in sorted(COOKIE_REGISTRY, key=lambda s: s.sort_order)]
PHYSICAL_VARIETIES: list[Variety] = [v for v in VARIETY_ORDER if SPECS[v].is_physical]
DC_COLUMNS: dict[str, Variety] = {s.dc_column: s.variety for s in COOKIE_REGISTRY if s.dc_column}
SC_API_IDS: dict[int, Variety] = {s.sc_api_id: s.variety for s in COOKIE_REGISTRY if s.sc_api_id is not None}
SC_REPORT_CODES: dict[str, Variety] = {s.sc_report_code: s.variety for s in COOKIE_REGISTRY if s.sc_report_code}
SC_TRANSFER_ABBRS: dict[str, Variety] = {
    s.sc_transfer_abbr: s.variety for s in COOKIE_REGISTRY if s.sc_transfer_abbr
}
_NAME_LOOKUP: dict[str, Variety] = {
    name.lower(): s.variety for s in COOKIE_REGISTRY for name in s.name_variations
}

Varieties = dict[Variety, int]


def normalize_variety_name(raw_name: str) -> Optional[Variety]:
    """Map a display-name variation ("Thin Mint") to its Variety, or None."""
    if not raw_name:
        return None
    return _NAME_LOOKUP.get(str(raw_name).strip().lower())


def variety_from_key(key: str) -> Optional[Variety]:
    """Resolve an enum value ("THIN_MINTS") or display name to a Variety."""
    try:
        return Variety(key)
    except ValueError:
        return normalize_variety_name(key)


def physical_only(varieties: Mapping[Variety, int]) -> Varieties:
    """Drop Cookie Share and zero counts."""
    return {v: n for v, n in varieties.items() if SPECS[v].is_physical and n}


def physical_total(varieties: Mapping[Variety, int]) -> int:
    return sum(n for v, n in varieties.items() if SPECS[v].is_physical)


def donation_total(varieties: Mapping[Variety, int]) -> int:
    return varieties.get(Variety.COOKIE_SHARE, 0)


def add_varieties(target: Varieties, source: Mapping[Variety, int], sign: int = 1,
                  physical: bool = False) -> Varieties:
    """
    Accumulate source counts into target in place.

    Args:
        target: Accumulator, modified in place
        source: Counts to add
        sign: +1 to add, -1 to subtract
        physical: Skip Cookie Share when True

    Returns:
        The target, for chaining
    """
    for variety, count in source.items():
        if physical and not SPECS[variety].is_physical:
            continue
        target[variety] = target.get(variety, 0) + sign * count
    return target


def sorted_varieties(varieties: Mapping[Variety, int]) -> Varieties:
    """Return a copy ordered by the standard display order."""
    return {v: varieties[v] for v in VARIETY_ORDER if v in varieties}


def variety_value(varieties: Mapping[Variety, int]) -> Decimal:
    """
    Dollar value of a variety mapping at list price.

    Raises:
        ValueError: If a key has no registered price
    """
    total = Decimal("0.00")
    for variety, count in varieties.items():
        spec = SPECS.get(variety)
        if spec is None:
            raise ValueError(f"Cannot value unknown cookie variety: {variety!r}")
        total += spec.price * count
    return total.quantize(Decimal("0.01"))


def display_name(variety: Variety) -> str:
    return SPECS[variety].display_name
