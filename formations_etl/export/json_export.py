"""
Write pipeline outputs to data/processed/.

Files produced
--------------
  merged_formations.json   array of merged formation records (API contract)
  unmatched_ecoles.json    array of guide establishment names with no match
  merged_formations.csv    optional flat copy of the merged records

Each file is written to a temporary sibling and moved into place, so a
crashed run leaves either the previous file or nothing, never half a file.
"""
import json
import os
import tempfile
from pathlib import Path
from typing import Any

import polars as pl


def _replace_atomically(path: Path, write) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    os.close(fd)
    tmp = Path(tmp_name)
    try:
        write(tmp)
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()
    return path


def write_json(path: Path, payload: Any) -> Path:
    """Dump *payload* as UTF-8 JSON (2-space indent, accents kept)."""
    def _write(tmp: Path) -> None:
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
            f.write("\n")

    return _replace_atomically(path, _write)


def write_csv(path: Path, records: list[dict]) -> Path:
    """Flat CSV of merged records; columns in first-seen order, absent cells empty."""
    columns: dict[str, None] = {}
    for rec in records:
        for key in rec:
            columns.setdefault(key, None)
    rows = [{c: rec.get(c) for c in columns} for rec in records]
    df = pl.DataFrame(rows, infer_schema_length=None) if rows else pl.DataFrame(
        schema={c: pl.Utf8 for c in columns}
    )
    return _replace_atomically(path, lambda tmp: df.write_csv(tmp))
