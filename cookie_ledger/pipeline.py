"""
Pipeline - one run from raw inputs to a published snapshot.

    source.load() -> import_inputs(ctx) -> build_unified_dataset(ctx)
                  -> SnapshotPublisher.publish() -> unified.json

Every run owns a fresh ImportContext; nothing carries over between runs.
"""

import logging
from pathlib import Path
from typing import Mapping, Optional

from .assembler import build_unified_dataset
from .config import LedgerConfig
from .context import ImportContext
from .digital_cookie import import_digital_cookie
from .dividers import import_allocations, import_cookie_id_map
from .models import UnifiedDataset, WarningType
from .payments import import_payments
from .smart_cookie import import_sc_orders, import_sc_report, import_sc_transfers
from .snapshot import SnapshotPublisher, write_snapshot_atomic
from .sources import DirectorySource, LedgerInputs, LedgerSource

logger = logging.getLogger(__name__)


def _apply_troop_identity(ctx: ImportContext, inputs: LedgerInputs, config: LedgerConfig):
    """Configured troop wins; otherwise use the SC role payload."""
    ctx.troop_number = config.troop.number
    ctx.troop_name = config.troop.name
    if inputs.troop_identity is None:
        return
    data = inputs.troop_identity.data
    role = data.get("role") if isinstance(data, Mapping) else None
    if not isinstance(role, Mapping):
        ctx.add_issue(f"Troop identity format not recognized ({inputs.troop_identity.name})")
        return
    if not ctx.troop_number and role.get("troop_id") is not None:
        ctx.troop_number = str(role["troop_id"])
    if not ctx.troop_name and role.get("troop_name"):
        ctx.troop_name = str(role["troop_name"])


def import_inputs(ctx: ImportContext, inputs: LedgerInputs, config: LedgerConfig):
    """
    Run every importer over the loaded inputs.

    When SC API orders are present the flat transfer export is skipped:
    the API copy wins whole-record and the two are never merged.
    """
    for issue in inputs.issues:
        ctx.add_issue(issue)

    _apply_troop_identity(ctx, inputs, config)

    if inputs.cookie_id_map is not None:
        import_cookie_id_map(ctx, inputs.cookie_id_map.data)

    if inputs.digital_cookie is not None:
        import_digital_cookie(ctx, inputs.digital_cookie.data, inputs.digital_cookie.modified_at)

    if inputs.sc_orders is not None:
        import_sc_orders(ctx, inputs.sc_orders.data, inputs.sc_orders.modified_at)
        if inputs.sc_transfers is not None:
            ctx.warn(
                WarningType.DUPLICATE_SOURCE_SKIPPED,
                f"Skipped {inputs.sc_transfers.name}: Smart Cookie API orders are present "
                f"and replace the transfer export",
                file=inputs.sc_transfers.name,
                reason="SC API data present",
            )
    elif inputs.sc_transfers is not None:
        import_sc_transfers(ctx, inputs.sc_transfers.data, inputs.sc_transfers.modified_at)

    if inputs.sc_report is not None:
        import_sc_report(ctx, inputs.sc_report.data, inputs.sc_report.modified_at)

    def data(payload):
        return payload.data if payload is not None else None

    import_allocations(
        ctx,
        direct_ship=data(inputs.direct_ship),
        booth_dividers=data(inputs.booth_dividers),
        virtual_cookie_shares=data(inputs.virtual_cookie_shares),
        reservations=data(inputs.reservations),
        booth_locations=data(inputs.booth_locations),
    )

    if inputs.payments is not None:
        import_payments(ctx, inputs.payments.data, inputs.payments.modified_at)


def build_from_source(source: LedgerSource, config: Optional[LedgerConfig] = None) -> UnifiedDataset:
    """
    Load, import and assemble a dataset.

    Args:
        source: Where the raw inputs come from
        config: Ledger configuration (defaults when omitted)

    Returns:
        The frozen UnifiedDataset for this run
    """
    config = config or LedgerConfig()
    ctx = ImportContext()
    import_inputs(ctx, source.load(), config)
    return build_unified_dataset(ctx, config)


def load_data(data_dir: str | Path, config: Optional[LedgerConfig] = None) -> UnifiedDataset:
    """Build a dataset from a troop data directory."""
    config = config or LedgerConfig()
    return build_from_source(DirectorySource(data_dir, config.files), config)


def rebuild(
    data_dir: str | Path,
    output_path: Optional[str | Path] = None,
    config: Optional[LedgerConfig] = None,
    publisher: Optional[SnapshotPublisher] = None,
) -> tuple[UnifiedDataset, bool]:
    """
    Rebuild the snapshot and publish it if still current.

    Args:
        data_dir: Troop data directory
        output_path: Where to write unified.json (default: inside data_dir)
        config: Ledger configuration
        publisher: Shared publisher; a private one when omitted

    Returns:
        (dataset, published) - published is False when a newer run won
    """
    config = config or LedgerConfig()
    output = Path(output_path) if output_path else Path(data_dir) / config.files.unified
    publisher = publisher or SnapshotPublisher()

    run_id = publisher.begin()
    dataset = load_data(data_dir, config)
    published = publisher.publish(run_id, dataset, lambda d: write_snapshot_atomic(d, output))
    return dataset, published
