"""
Formations transform: merges the enrollment extract with the school guide.

Reads:  primary rows        (fichier_filtre.csv, one per establishment × program)
        supplementary rows  (ecoles.csv, one per establishment)
Output: merged formation records + names of guide establishments with no
        enrollment row

Rows are matched on normalize_name(establishment). The guide index is
last-write-wins, and the unmatched report is a separate full scan of the
primary keys, so a guide row can be reported as matched even when a later
duplicate shadowed it in the index.
"""
from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from formations_etl.transform.name_normalizer import normalize_name

log = logging.getLogger(__name__)

NAME_HEADER = "Établissement"


@dataclass(frozen=True)
class Column:
    key: str                      # output key
    header: str                   # canonical source header
    aliases: tuple[str, ...] = ()

    def candidates(self) -> tuple[str, ...]:
        typographic = self.header.replace("'", "’")
        names = (self.header, typographic, self.key) + self.aliases
        return tuple(dict.fromkeys(names))


NAME_COLUMN = Column("establishmentName", NAME_HEADER, ("name",))

# Output order follows the backend Formation document.
PRIMARY_TEXT_COLUMNS = [
    Column("establishmentStatus", "Statut de l'établissement de la filière de formation (public, privé…)"),
    NAME_COLUMN,
    Column("department", "Département de l'établissement"),
    Column("region", "Région de l'établissement"),
    Column("academy", "Académie de l'établissement"),
    Column("commune", "Commune de l'établissement"),
    Column("program", "Filière de formation"),
    Column("selectivity", "Sélectivité"),
]

PRIMARY_COUNT_COLUMNS = [
    Column("candidateCount", "Effectif total des candidats pour une formation"),
    Column("admittedBacGeneral", "Effectif des admis néo bacheliers généraux"),
    Column("admittedBacTechno", "Effectif des admis néo bacheliers technologiques"),
    Column("admittedBacPro", "Effectif des admis néo bacheliers professionnels"),
]

PRIMARY_METRIC_COLUMNS = [
    Column(
        "generalTerminalOfferPercentage",
        "Part des terminales générales qui étaient en position de recevoir une proposition en phase principale",
    ),
    Column(
        "technoTerminalOfferPercentage",
        "Part des terminales technologiques qui étaient en position de recevoir une proposition en phase principale",
    ),
    Column(
        "professionalTerminalOfferPercentage",
        "Part des terminales professionnelles qui étaient en position de recevoir une proposition en phase principale",
    ),
]

# Emitted only when the source row carries the column.
OPTIONAL_COUNT_COLUMNS = [
    Column("capacity", "Capacité de l'établissement par formation"),
    Column("admissionOfferCount", "Effectif total des candidats ayant reçu une proposition d'admission de la part de l'établissement"),
    Column("admittedCount", "Effectif total des candidats ayant accepté la proposition de l'établissement (admis)"),
    Column("admittedNeoBac", "Effectif des admis néo bacheliers"),
]
OPTIONAL_TEXT_COLUMNS = [
    Column("accessRate", "Taux d'accès"),
]

ENRICHMENT_COLUMNS = [
    Column("duration", "Durée"),
    Column("cost", "Coût"),
    Column("privatePublicStatus", "Privé/Public"),
    Column("domainsOffered", "Domaines enseignés"),
    Column("website", "Site web"),
    Column("studentLife", "Vie étudiante"),
    Column("associations", "Associations (types)"),
    Column("residenceOptions", "Résidence universitaire/internat"),
    Column("admissionProcess", "Admission"),
    Column("atmosphere", "Ambiance"),
    Column("careerProspects", "Débouchés"),
    Column("housingInfo", "Logement"),
    Column("alternanceAvailable", "Alternance dispo"),
    Column("orientationAdvice", "Conseil orientation/charge"),
]

_LEADING_INT_RE = re.compile(r"[ \t\r\n\f\v]*([+-]?[0-9]+)")


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _lookup(row: Mapping, column: Column) -> Optional[object]:
    for name in column.candidates():
        if name in row:
            return row[name]
    return None


def _text(row: Mapping, column: Column) -> str:
    value = _lookup(row, column)
    return "" if value is None else str(value)


def parse_count(raw: object) -> Optional[int]:
    """
    Parse the leading integer of a raw cell ("  42", "12 places", "-3").

    Returns None when there is no leading integer. Integers pass through;
    other numbers are truncated.
    """
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw == raw and abs(raw) != float("inf") else None
    m = _LEADING_INT_RE.match(str(raw))
    return int(m.group(1)) if m else None


def establishment_key(row: Mapping) -> str:
    return normalize_name(_text(row, NAME_COLUMN))


def display_name(row: Mapping) -> str:
    return _text(row, NAME_COLUMN)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReconcileStats:
    primary_count: int = 0
    supplementary_count: int = 0
    matched_count: int = 0
    duplicate_keys: int = 0
    unparseable_counts: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ReconcileResult:
    merged: list[dict]
    unmatched: list[str]
    stats: ReconcileStats = field(default_factory=ReconcileStats)


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------

def _materialize(records: Iterable[Mapping], label: str) -> list[Mapping]:
    if records is None:
        raise TypeError(f"{label} records are required, got None")
    try:
        return list(records)
    except TypeError as exc:
        raise TypeError(f"{label} records must be iterable: {exc}") from exc


def build_index(supplementary: list[Mapping]) -> tuple[dict[str, Mapping], int]:
    """Key → guide row, later rows overwriting earlier ones. Returns (index, overwrites)."""
    index: dict[str, Mapping] = {}
    overwrites = 0
    for ecole in supplementary:
        key = establishment_key(ecole)
        if key in index:
            overwrites += 1
            log.debug("duplicate key %r: %r replaces %r", key, display_name(ecole), display_name(index[key]))
        index[key] = ecole
    return index, overwrites


def merge_record(formation: Mapping, ecole: Optional[Mapping], bad_counts: Counter) -> dict:
    """Build one merged record; enrichment keys are present only when *ecole* is."""
    merged: dict = {}
    for col in PRIMARY_TEXT_COLUMNS:
        merged[col.key] = _text(formation, col)

    for col in PRIMARY_COUNT_COLUMNS:
        raw = _lookup(formation, col)
        value = parse_count(raw)
        if value is None:
            if raw is not None and str(raw).strip():
                bad_counts[col.key] += 1
            value = 0
        merged[col.key] = value

    for col in PRIMARY_METRIC_COLUMNS:
        merged[col.key] = _text(formation, col)

    for col in OPTIONAL_COUNT_COLUMNS:
        raw = _lookup(formation, col)
        if raw is None:
            continue
        value = parse_count(raw)
        if value is None and str(raw).strip():
            bad_counts[col.key] += 1
        merged[col.key] = value or 0

    for col in OPTIONAL_TEXT_COLUMNS:
        raw = _lookup(formation, col)
        if raw is not None:
            merged[col.key] = str(raw)

    merged["hasDetailedInfo"] = ecole is not None

    if ecole is not None:
        for col in ENRICHMENT_COLUMNS:
            merged[col.key] = _text(ecole, col)

    return merged


def find_unmatched(primary: list[Mapping], supplementary: list[Mapping]) -> list[str]:
    """Guide names whose key equals no enrollment key, in guide order."""
    primary_keys = [establishment_key(f) for f in primary]
    unmatched = []
    for ecole in supplementary:
        key = establishment_key(ecole)
        found = False
        for other in primary_keys:
            if other == key:
                found = True
                break
        if not found:
            unmatched.append(display_name(ecole))
    return unmatched


def reconcile(primary: Iterable[Mapping], supplementary: Iterable[Mapping]) -> ReconcileResult:
    """
    Merge enrollment rows with guide rows.

    One merged record per primary row, in primary order. Bad counts become 0,
    missing cells become "", duplicate guide keys resolve last-write-wins.
    Only a missing or non-iterable input collection raises (TypeError).
    """
    primary = _materialize(primary, "primary")
    supplementary = _materialize(supplementary, "supplementary")

    index, overwrites = build_index(supplementary)

    bad_counts: Counter = Counter()
    merged = []
    matched = 0
    for formation in primary:
        ecole = index.get(establishment_key(formation))
        if ecole is not None:
            matched += 1
        merged.append(merge_record(formation, ecole, bad_counts))

    unmatched = find_unmatched(primary, supplementary)

    if overwrites:
        log.info("%d guide rows shadowed by a later row with the same key", overwrites)
    if bad_counts:
        log.warning(
            "unparseable counts defaulted to 0: %s",
            ", ".join(f"{k}={v}" for k, v in sorted(bad_counts.items())),
        )

    stats = ReconcileStats(
        primary_count=len(primary),
        supplementary_count=len(supplementary),
        matched_count=matched,
        duplicate_keys=overwrites,
        unparseable_counts=dict(bad_counts),
    )
    return ReconcileResult(merged=merged, unmatched=unmatched, stats=stats)
