"""
Configuration for the troop cookie ledger.

Troop identity, pipeline file names and calculation settings.
Config is declarative JSON - edit the file, not the code.
"""

import json
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Optional


DEFAULT_CONFIG_PATH = Path(__file__).parent / "ledger_config.json"


@dataclass
class TroopConfig:
    """Who "our troop" is, for T2T direction and site orders."""
    number: Optional[str] = None   # SC internal troop id, e.g. "3990"
    name: Optional[str] = None     # Display name, e.g. "Troop 3990"


@dataclass
class FileNames:
    """Where each source lives inside a data directory."""
    sync_dir: str = "sync"
    manual_dir: str = "in"
    troop_identity: str = "sc-troop.json"
    payments: str = "payments.json"
    sc_orders: str = "sc-orders.json"
    sc_direct_ship: str = "sc-direct-ship.json"
    sc_cookie_shares: str = "sc-cookie-shares.json"
    sc_reservations: str = "sc-reservations.json"
    sc_booth_allocations: str = "sc-booth-allocations.json"
    sc_booth_locations: str = "sc-booth-locations.json"
    sc_cookie_id_map: str = "sc-cookie-id-map.json"
    dc_export: str = "dc-export.xlsx"
    sc_report_match: str = "ReportExport"
    sc_transfers_match: str = "CookieOrders"
    unified: str = "unified.json"


@dataclass
class ProceedsTier:
    """Troop proceeds per package once the per-girl average reaches min_pga."""
    min_pga: int
    rate: Decimal


@dataclass
class LedgerSettings:
    """Settings for the calculators."""
    # Raise on allocator invariant violations instead of logging them
    strict_invariants: bool = False
    proceeds_exempt_packages: int = 50
    proceeds_tiers: list[ProceedsTier] = field(default_factory=lambda: [
        ProceedsTier(350, Decimal("0.95")),
        ProceedsTier(200, Decimal("0.90")),
        ProceedsTier(0, Decimal("0.85")),
    ])


@dataclass
class LedgerConfig:
    """Full configuration for the ledger pipeline."""
    troop: TroopConfig = field(default_factory=TroopConfig)
    files: FileNames = field(default_factory=FileNames)
    settings: LedgerSettings = field(default_factory=LedgerSettings)

    def __post_init__(self):
        """Keep tiers ordered highest first so the first match wins."""
        self.settings.proceeds_tiers.sort(key=lambda t: t.min_pga, reverse=True)


def load_config(config_path: str | Path | None = None) -> LedgerConfig:
    """
    Load configuration from JSON file.

    Args:
        config_path: Path to ledger_config.json (default: the packaged one)

    Returns:
        LedgerConfig with troop, file names and settings

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid JSON
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid config file {path}: {e}") from e

    troop_data = data.get("troop", {})
    troop = TroopConfig(
        number=_optional_str(troop_data.get("number")),
        name=_optional_str(troop_data.get("name")),
    )

    known_files = FileNames.__dataclass_fields__.keys()
    files = FileNames(**{k: v for k, v in data.get("files", {}).items() if k in known_files})

    settings_data = data.get("settings", {})
    settings = LedgerSettings(
        strict_invariants=bool(settings_data.get("strict_invariants", False)),
        proceeds_exempt_packages=int(settings_data.get("proceeds_exempt_packages", 50)),
    )
    if "proceeds_tiers" in settings_data:
        settings.proceeds_tiers = [
            ProceedsTier(min_pga=int(t["min_pga"]), rate=Decimal(str(t["rate"])))
            for t in settings_data["proceeds_tiers"]
        ]

    return LedgerConfig(troop=troop, files=files, settings=settings)


def proceeds_rate(per_girl_average: Decimal, config: LedgerConfig) -> Decimal:
    """
    Troop proceeds per package for a given per-girl average.

    Args:
        per_girl_average: Packages sold per active girl
        config: Loaded configuration

    Returns:
        Rate of the highest tier reached (lowest tier if none)
    """
    for tier in config.settings.proceeds_tiers:
        if per_girl_average >= tier.min_pga:
            return tier.rate
    return config.settings.proceeds_tiers[-1].rate


def _optional_str(value) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)
