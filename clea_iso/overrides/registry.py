"""
Curated override table.

The override table is hand-maintained data (data/overrides.csv), one row
per (country, lower-cased constituency name). Each row labels why a
flagged match needs attention and may supply the correct ISO code.

Checks run at load time:
- required columns and known labels          -> InputIntegrityError
- one row per key                            -> JoinFanoutError
- iso_code exists in the reference table     -> warning (returned, not raised)
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from clea_iso.errors import InputIntegrityError, JoinFanoutError
from clea_iso.models import KEY_COL, OVERRIDE_COLUMNS, OVERRIDE_LABELS, OverrideEntry
from clea_iso.tables import require_columns


_DASHES = re.compile(r"\s*[‒–—―]\s*")
_SPACES = re.compile(r"\s+")


# ------------------ JOIN KEY ------------------ #

def district_key(name) -> str:
    """
    Join key for constituency names: case-folded, typographic dashes
    written as "--", whitespace collapsed.
    """
    if name is None or (isinstance(name, float) and pd.isna(name)):
        return ""
    text = _DASHES.sub("--", str(name))
    text = _SPACES.sub(" ", text).strip()
    return text.casefold()


# ------------------ PARSING ------------------ #

def _clean_cell(value) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def parse_overrides(df: pd.DataFrame) -> List[OverrideEntry]:
    """
    Convert a raw override table into OverrideEntry objects.
    """
    required = [c for c in OVERRIDE_COLUMNS if c != "iso_code"]
    require_columns(df, required, "Override")

    entries: List[OverrideEntry] = []
    for row in df.to_dict("records"):
        label = _clean_cell(row.get("label"))
        if label not in OVERRIDE_LABELS:
            raise InputIntegrityError(
                f"Unknown override label {label!r} for {row.get('ctr_n')} / {row.get('cst_n_lower')}"
            )

        entries.append(
            OverrideEntry(
                ctr_n=_clean_cell(row.get("ctr_n")) or "",
                cst_n_lower=_clean_cell(row.get("cst_n_lower")) or "",
                label=label,
                notes=_clean_cell(row.get("notes")) or "",
                iso_code=_clean_cell(row.get("iso_code")),
            )
        )

    return entries


def entries_to_frame(entries: List[OverrideEntry]) -> pd.DataFrame:
    df = pd.DataFrame(
        [
            {
                "ctr_n": e.ctr_n,
                "cst_n_lower": e.cst_n_lower,
                "label": e.label,
                "notes": e.notes,
                "iso_code": e.iso_code,
            }
            for e in entries
        ],
        columns=OVERRIDE_COLUMNS,
    )
    df[KEY_COL] = df["cst_n_lower"].map(district_key)
    return df


# ------------------ VALIDATION ------------------ #

def check_unique_keys(overrides: pd.DataFrame) -> None:
    """
    Raise JoinFanoutError if two rows share a (country, name) key.
    """
    dupes = overrides[overrides.duplicated(subset=["ctr_n", KEY_COL], keep=False)]
    if not dupes.empty:
        keys = sorted(set(zip(dupes["ctr_n"], dupes[KEY_COL])))
        raise JoinFanoutError(f"Override table has duplicate keys: {keys}")


def unknown_codes(overrides: pd.DataFrame, reference: pd.DataFrame) -> List[str]:
    """
    Integrity warnings for override codes missing from the reference table.
    """
    known = set(reference["iso_code"].dropna())
    warnings: List[str] = []

    for row in overrides[overrides["iso_code"].notna()].itertuples(index=False):
        if row.iso_code not in known:
            warnings.append(
                f"{row.ctr_n} / {getattr(row, KEY_COL)}: override code {row.iso_code} not in reference"
            )

    return warnings


# ------------------ LOAD ------------------ #

def load_overrides(
    path: Path,
    reference: Optional[pd.DataFrame] = None,
) -> Tuple[pd.DataFrame, List[str]]:
    """
    Load and validate the override table.

    Returns the table (with a normalised join-key column) and a list of
    integrity warnings. Warnings are only computed when `reference` is given.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)

    raw = pd.read_csv(path, dtype=str, keep_default_na=False, na_values=[""], encoding="utf-8")
    overrides = entries_to_frame(parse_overrides(raw))

    check_unique_keys(overrides)

    warnings: List[str] = []
    if reference is not None:
        warnings = unknown_codes(overrides, reference)

    return overrides, warnings
