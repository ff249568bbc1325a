"""
CLI entry point for the troop cookie ledger.

Usage:
    python -m cookie_ledger --data-dir ~/cookies/troop-3990
    python -m cookie_ledger --data-dir ./data --output unified.json --csv scouts.csv
    python -m cookie_ledger --data-dir ./data --csv
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import load_config
from .models import DatasetStatus
from .pipeline import rebuild
from .report import export_csv, format_console, generate_report_filename


def main():
    parser = argparse.ArgumentParser(
        prog="cookie_ledger",
        description="Troop Cookie Ledger - Reconcile Digital Cookie and Smart Cookie data",
    )

    parser.add_argument(
        "--data-dir",
        required=True,
        metavar="DIR",
        help="Troop data directory (sync/ and in/ subfolders)",
    )

    parser.add_argument(
        "--output",
        metavar="FILE",
        help="Snapshot path (default: unified.json inside the data directory)",
    )

    parser.add_argument(
        "--csv",
        nargs="?",
        const="",
        metavar="FILE",
        help="Write per-scout totals and financials to CSV "
             "(default name: cookie_ledger_<troop>_<date>.csv in the data directory)",
    )

    parser.add_argument(
        "--config",
        default=None,
        metavar="FILE",
        help="Ledger config file (default: module's ledger_config.json)",
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        help="Raise on allocation invariant violations",
    )

    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress console output",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    data_dir = Path(args.data_dir)
    if not data_dir.is_dir():
        print(f"Error: Data directory not found: {data_dir}", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(args.config)
        if args.strict:
            config.settings.strict_invariants = True

        dataset, _ = rebuild(data_dir, args.output, config)

        if not args.quiet:
            print(format_console(dataset))

        if dataset.status == DatasetStatus.NO_DATA:
            print("Warning: No Digital Cookie or Smart Cookie data found", file=sys.stderr)

        if args.csv is not None:
            if args.csv:
                output_path = Path(args.csv)
            else:
                output_path = data_dir / generate_report_filename(dataset.metadata.troop_number)
            with open(output_path, "w", newline="") as f:
                export_csv(dataset, output=f)
            if not args.quiet:
                print(f"\nCSV exported to: {output_path}")

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
