"""
Formations merge pipeline
=========================

Reads the enrollment extract and the school guide, merges them on the
normalized establishment name, and writes the enriched dataset consumed by
the backend API.

Usage
-----
    # Default locations (DATA_RAW / DATA_PROCESSED, see formations_etl.config)
    python -m formations_etl.pipeline

    # Explicit files, semicolon-separated inputs, extra CSV copy
    python -m formations_etl.pipeline \
        --primary data/raw/fichier_filtre.csv \
        --supplementary data/raw/ecoles.csv \
        --output data/processed/merged_formations.json \
        --unmatched data/processed/unmatched_ecoles.json \
        --separator ";" --csv data/processed/merged_formations.csv

Exit status is 1 when an input file cannot be read; nothing is written then.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from formations_etl.config import load_settings
from formations_etl.export.json_export import write_csv, write_json
from formations_etl.ingest.csv_records import SourceUnavailable, load_records
from formations_etl.transform.formations_transform import ReconcileResult, reconcile

log = logging.getLogger("formations_etl")


def run(
    primary_path: Path,
    supplementary_path: Path,
    merged_path: Path,
    unmatched_path: Path,
    separator: str = ",",
    csv_path: Optional[Path] = None,
) -> ReconcileResult:
    """Load both sources, reconcile, then write outputs. Raises SourceUnavailable."""
    primary = load_records(primary_path, separator=separator)
    print(f"[formations] Read {len(primary):,} records from {Path(primary_path).name}")

    supplementary = load_records(supplementary_path, separator=separator)
    print(f"[formations] Read {len(supplementary):,} records from {Path(supplementary_path).name}")

    result = reconcile(primary, supplementary)
    stats = result.stats
    print(
        f"[formations] Merged {stats.primary_count:,} formations "
        f"({stats.matched_count:,} with detailed info)"
    )

    write_json(merged_path, result.merged)
    print(f"[formations] → {merged_path}")

    write_json(unmatched_path, result.unmatched)
    if result.unmatched:
        print(
            f"[formations] {len(result.unmatched):,} establishments from "
            f"{Path(supplementary_path).name} could not be matched:"
        )
        for name in result.unmatched:
            print(f"  - {name}")
    print(f"[formations] → {unmatched_path}")

    if csv_path is not None:
        write_csv(csv_path, result.merged)
        print(f"[formations] → {csv_path}")

    return result


def build_parser() -> argparse.ArgumentParser:
    settings = load_settings()
    parser = argparse.ArgumentParser(
        prog="formations-merge",
        description="Merge the enrollment extract with the school guide.",
    )
    parser.add_argument("--primary", type=Path, default=settings.primary_path,
                        help="enrollment extract CSV (default: %(default)s)")
    parser.add_argument("--supplementary", type=Path, default=settings.supplementary_path,
                        help="school guide CSV (default: %(default)s)")
    parser.add_argument("--output", type=Path, default=settings.merged_path,
                        help="merged JSON output (default: %(default)s)")
    parser.add_argument("--unmatched", type=Path, default=settings.unmatched_path,
                        help="unmatched report JSON (default: %(default)s)")
    parser.add_argument("--separator", default=settings.separator,
                        help="input field separator (default: %(default)r)")
    parser.add_argument("--csv", type=Path, default=None,
                        help="also write the merged records as CSV")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [formations] %(levelname)s  %(message)s",
        datefmt="%H:%M:%S",
    )
    try:
        run(
            args.primary,
            args.supplementary,
            args.output,
            args.unmatched,
            separator=args.separator,
            csv_path=args.csv,
        )
    except SourceUnavailable as exc:
        log.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
