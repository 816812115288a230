"""
Establishment name normalization for cross-source matching.
"""
import re
import unicodedata
from typing import Optional

_COMBINING_RE = re.compile(r"[\u0300-\u036f]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


def normalize_name(name: Optional[str]) -> str:
    """
    Return the join key for an establishment name.

    Lower-case → NFD → drop combining accents → keep only [a-z0-9].
    "École Polytechnique", "ecole polytechnique" and "ÉCOLE-POLYTECHNIQUE"
    all give "ecolepolytechnique". Names sharing a key are the same
    establishment; there is no fuzzy matching.
    """
    key = unicodedata.normalize("NFD", (name or "").lower())
    key = _COMBINING_RE.sub("", key)
    return _NON_ALNUM_RE.sub("", key).strip()
