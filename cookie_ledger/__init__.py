# Troop Cookie Ledger
# Reconciles Digital Cookie and Smart Cookie records into one dataset

from .varieties import Variety, COOKIE_REGISTRY, variety_value
from .models import (
    Order,
    Transfer,
    Allocation,
    Payment,
    Scout,
    UnifiedDataset,
    LedgerWarning,
    WarningType,
    DatasetStatus,
    TransferCategory,
)
from .config import load_config, LedgerConfig
from .classifier import classify_transfer, classify_dc_order, classify_payment_method
from .context import ImportContext
from .digital_cookie import import_digital_cookie
from .smart_cookie import import_sc_orders, import_sc_transfers, import_sc_report
from .dividers import import_allocations
from .payments import import_payments
from .allocator import allocate_all, check_conservation, AllocationInvariantError
from .assembler import build_unified_dataset
from .sources import LedgerSource, DirectorySource, InMemorySource
from .pipeline import build_from_source, load_data, rebuild
from .snapshot import dataset_to_dict, write_snapshot_atomic, SnapshotPublisher
from .report import format_console, export_csv

__version__ = "1.0.0"

__all__ = [
    # Varieties
    "Variety",
    "COOKIE_REGISTRY",
    "variety_value",
    # Models
    "Order",
    "Transfer",
    "Allocation",
    "Payment",
    "Scout",
    "UnifiedDataset",
    "LedgerWarning",
    "WarningType",
    "DatasetStatus",
    "TransferCategory",
    # Config
    "LedgerConfig",
    "load_config",
    # Classifier
    "classify_transfer",
    "classify_dc_order",
    "classify_payment_method",
    # Importers
    "ImportContext",
    "import_digital_cookie",
    "import_sc_orders",
    "import_sc_transfers",
    "import_sc_report",
    "import_allocations",
    "import_payments",
    # Allocator
    "allocate_all",
    "check_conservation",
    "AllocationInvariantError",
    # Assembly
    "build_unified_dataset",
    # Sources
    "LedgerSource",
    "DirectorySource",
    "InMemorySource",
    # Pipeline
    "build_from_source",
    "load_data",
    "rebuild",
    # Snapshot
    "dataset_to_dict",
    "write_snapshot_atomic",
    "SnapshotPublisher",
    # Report
    "format_console",
    "export_csv",
]
