"""
CSV record loader shared by both formation sources.

Sources (data/raw/):
  fichier_filtre.csv   enrollment extract, one row per (establishment, program)
  ecoles.csv           school guide, one row per establishment

Every cell is read as a string (no schema inference); the transform stage
decides what is numeric. Rows are parsed in bounded batches and yielded as
header -> value dicts in file order.
"""
import logging
import os
from pathlib import Path
from typing import Iterator

import polars as pl

log = logging.getLogger(__name__)

BATCH_SIZE = 10_000


class SourceUnavailable(OSError):
    """An input file is missing, unreadable, or not valid UTF-8 text."""

    def __init__(self, path: Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Source unavailable: {self.path} ({reason})")


def _clean_header(name: str) -> str:
    return name.lstrip("\ufeff").strip()


def _scan(path: Path, separator: str) -> pl.LazyFrame:
    return pl.scan_csv(
        path,
        separator=separator,
        infer_schema=False,             # all str
        truncate_ragged_lines=True,
        raise_if_empty=False,
        encoding="utf8",
    )


def _iter_batches(path: Path, separator: str, batch_size: int) -> Iterator[dict[str, str]]:
    offset = 0
    while True:
        try:
            batch = _scan(path, separator).slice(offset, batch_size).collect()
        except (OSError, pl.exceptions.PolarsError) as exc:
            raise SourceUnavailable(path, str(exc)) from exc

        headers = [_clean_header(c) for c in batch.columns]
        for row in batch.iter_rows():
            if all(v is None or v == "" for v in row):
                continue                # blank line
            yield {h: ("" if v is None else v) for h, v in zip(headers, row)}

        if batch.height < batch_size:
            break
        offset += batch_size
    log.debug("read %d rows from %s", offset + batch.height, path)


def iter_records(
    path: Path | str,
    separator: str = ",",
    batch_size: int = BATCH_SIZE,
) -> Iterator[dict[str, str]]:
    """
    Stream the data rows of a delimited file with a header row.

    Missing and unreadable paths raise SourceUnavailable immediately; decode
    errors surface on first iteration. Short rows come through with empty
    strings for the missing cells, extra trailing cells are dropped.
    """
    path = Path(path)
    if not path.exists():
        raise SourceUnavailable(path, "file not found")
    if not path.is_file():
        raise SourceUnavailable(path, "not a regular file")
    if not os.access(path, os.R_OK):
        raise SourceUnavailable(path, "permission denied")
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    return _iter_batches(path, separator, batch_size)


def load_records(
    path: Path | str,
    separator: str = ",",
    batch_size: int = BATCH_SIZE,
) -> list[dict[str, str]]:
    """Read every data row of *path* into memory."""
    return list(iter_records(path, separator=separator, batch_size=batch_size))
