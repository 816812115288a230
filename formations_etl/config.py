"""
Default locations for the formations merge.

Values come from the environment (optionally via a repo-root .env file).
Relative directories are resolved against the repo root so the pipeline
behaves the same whether it is launched from the repo root or elsewhere.

  DATA_RAW                        input directory          (data/raw)
  DATA_PROCESSED                  output directory         (data/processed)
  FORMATIONS_PRIMARY_FILE         enrollment extract       (fichier_filtre.csv)
  FORMATIONS_SUPPLEMENTARY_FILE   school guide             (ecoles.csv)
  FORMATIONS_OUTPUT_FILE          merged dataset           (merged_formations.json)
  FORMATIONS_UNMATCHED_FILE       unmatched report         (unmatched_ecoles.json)
  FORMATIONS_CSV_SEPARATOR        input field separator    (,)
"""
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

_REPO_ROOT = Path(__file__).resolve().parents[1]

load_dotenv(_REPO_ROOT / ".env")


def _resolve(raw: str) -> Path:
    p = Path(raw)
    return p if p.is_absolute() else _REPO_ROOT / p


@dataclass(frozen=True)
class Settings:
    primary_path: Path
    supplementary_path: Path
    merged_path: Path
    unmatched_path: Path
    separator: str = ","


def load_settings() -> Settings:
    """Read settings from the current environment."""
    raw_dir = _resolve(os.environ.get("DATA_RAW", "data/raw"))
    processed_dir = _resolve(os.environ.get("DATA_PROCESSED", "data/processed"))
    return Settings(
        primary_path=raw_dir / os.environ.get("FORMATIONS_PRIMARY_FILE", "fichier_filtre.csv"),
        supplementary_path=raw_dir / os.environ.get("FORMATIONS_SUPPLEMENTARY_FILE", "ecoles.csv"),
        merged_path=processed_dir / os.environ.get("FORMATIONS_OUTPUT_FILE", "merged_formations.json"),
        unmatched_path=processed_dir / os.environ.get("FORMATIONS_UNMATCHED_FILE", "unmatched_ecoles.json"),
        separator=os.environ.get("FORMATIONS_CSV_SEPARATOR", ","),
    )
