"""
Ledger Sources - Where the raw inputs for a run come from.

The source pattern lets the pipeline read a data directory in production
and hand-built payloads in tests without changing importer logic.
A source only reads; it never interprets rows.
"""

import json
import logging
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from openpyxl.utils.exceptions import InvalidFileException

from .config import FileNames
from .readers import read_table

logger = logging.getLogger(__name__)


@dataclass
class RawPayload:
    """Decoded file contents plus where and when they came from."""
    data: Any
    name: str = ""
    modified_at: Optional[str] = None


@dataclass
class LedgerInputs:
    """Everything one run may import. Absent inputs are None."""
    troop_identity: Optional[RawPayload] = None
    cookie_id_map: Optional[RawPayload] = None
    digital_cookie: Optional[RawPayload] = None
    sc_orders: Optional[RawPayload] = None
    sc_transfers: Optional[RawPayload] = None
    sc_report: Optional[RawPayload] = None
    direct_ship: Optional[RawPayload] = None
    booth_dividers: Optional[RawPayload] = None
    virtual_cookie_shares: Optional[RawPayload] = None
    reservations: Optional[RawPayload] = None
    booth_locations: Optional[RawPayload] = None
    payments: Optional[RawPayload] = None
    issues: list[str] = field(default_factory=list)


class LedgerSource(ABC):
    """
    Abstract interface for raw input access.

    Implementations gather the inputs of one run. Unreadable inputs are
    reported in LedgerInputs.issues and treated as absent.
    """

    @abstractmethod
    def load(self) -> LedgerInputs:
        """Read every available input."""
        pass


# Header anchors used to locate the header row of each spreadsheet
DC_ANCHORS = ("Order Number", "Girl First Name")
SC_TRANSFER_ANCHORS = ("TYPE", "ORDER #")
SC_REPORT_ANCHORS = ("GirlName", "OrderID")


def _mtime(path: Path) -> str:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).isoformat()


class DirectorySource(LedgerSource):
    """
    Reads a troop data directory.

    Layout:
        <data_dir>/sc-troop.json, payments.json
        <data_dir>/sync/   SC API JSON and the DC export
        <data_dir>/in/     manually downloaded SC exports
    """

    def __init__(self, data_dir: str | Path, files: Optional[FileNames] = None):
        """
        Initialize source with a data directory.

        Args:
            data_dir: Root of the troop data directory
            files: File names (defaults when omitted)
        """
        self._data_dir = Path(data_dir)
        self._files = files or FileNames()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def load(self) -> LedgerInputs:
        if not self._data_dir.is_dir():
            raise FileNotFoundError(f"Data directory not found: {self._data_dir}")

        f = self._files
        sync = self._data_dir / f.sync_dir
        manual = self._data_dir / f.manual_dir
        inputs = LedgerInputs()

        inputs.troop_identity = self._load_json(self._data_dir / f.troop_identity, inputs)
        inputs.payments = self._load_json(self._data_dir / f.payments, inputs)
        inputs.cookie_id_map = self._load_json(sync / f.sc_cookie_id_map, inputs)
        inputs.sc_orders = self._load_json(sync / f.sc_orders, inputs)
        inputs.direct_ship = self._load_json(sync / f.sc_direct_ship, inputs)
        inputs.virtual_cookie_shares = self._load_json(sync / f.sc_cookie_shares, inputs)
        inputs.reservations = self._load_json(sync / f.sc_reservations, inputs)
        inputs.booth_dividers = self._load_json(sync / f.sc_booth_allocations, inputs)
        inputs.booth_locations = self._load_json(sync / f.sc_booth_locations, inputs)

        inputs.digital_cookie = self._load_table(sync / f.dc_export, DC_ANCHORS, inputs)
        report = self._newest(manual, f.sc_report_match, (".xlsx",))
        if report:
            inputs.sc_report = self._load_table(report, SC_REPORT_ANCHORS, inputs)
        transfers = self._newest(manual, f.sc_transfers_match, (".xlsx", ".csv"))
        if transfers:
            inputs.sc_transfers = self._load_table(transfers, SC_TRANSFER_ANCHORS, inputs)

        return inputs

    def _load_json(self, path: Path, inputs: LedgerInputs) -> Optional[RawPayload]:
        """Load a JSON file; missing means absent, unreadable means an issue."""
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            inputs.issues.append(f"Could not read {path.name}: {e}")
            return None
        return RawPayload(data=data, name=path.name, modified_at=_mtime(path))

    def _load_table(self, path: Path, anchors: tuple[str, ...], inputs: LedgerInputs) -> Optional[RawPayload]:
        if not path.exists():
            return None
        try:
            rows = read_table(path, anchors)
        except (ValueError, OSError, KeyError, zipfile.BadZipFile, InvalidFileException) as e:
            inputs.issues.append(f"Could not read {path.name}: {e}")
            return None
        return RawPayload(data=rows, name=path.name, modified_at=_mtime(path))

    def _newest(self, directory: Path, match: str, suffixes: tuple[str, ...]) -> Optional[Path]:
        """Most recently modified file whose name contains match."""
        if not directory.is_dir():
            return None
        candidates = [
            p for p in directory.iterdir()
            if p.is_file() and match in p.name and p.suffix.lower() in suffixes
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda p: (p.stat().st_mtime, p.name))


class InMemorySource(LedgerSource):
    """
    In-memory source for programmatic test setup.

    Pass decoded payloads by input name:
        InMemorySource(digital_cookie=[...rows...], sc_orders={"orders": [...]})
    """

    def __init__(self, imported_at: Optional[str] = None, **payloads: Any):
        known = set(LedgerInputs.__dataclass_fields__) - {"issues"}
        unknown = set(payloads) - known
        if unknown:
            raise ValueError(f"Unknown inputs: {sorted(unknown)}")
        self._imported_at = imported_at
        self._payloads = payloads

    def set(self, name: str, data: Any):
        """Add or replace a single input."""
        self._payloads[name] = data

    def load(self) -> LedgerInputs:
        inputs = LedgerInputs()
        for name, data in self._payloads.items():
            if data is not None:
                setattr(inputs, name, RawPayload(data=data, name=name, modified_at=self._imported_at))
        return inputs
