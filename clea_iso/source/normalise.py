"""
Cleaning and name normalisation for CLEA constituency records.

This file converts the raw CLEA archive into the source table used for
matching:
- keep post-1945 elections only
- keep the selected columns and drop exact duplicate rows
- build the comparison name ("constituency") for every row

Flowchart role:
- 'Normalizer' stage on the source stream

CLEA sometimes stores the region inside the constituency name field and
sometimes splits it across `sub` and `cst_n`. The comparison name puts
them back together without repeating the region.
"""

from __future__ import annotations

from typing import Any

import pandas as pd

from clea_iso.models import (
    MISSING_SENTINEL,
    NAME_COL,
    SOURCE_COLUMNS,
    SOURCE_OPTIONAL_COLUMNS,
)
from clea_iso.tables import require_columns


# ------------------ HELPERS ------------------ #

def is_missing(value: Any) -> bool:
    """
    True for null values, empty strings and the CLEA "-9" sentinel.
    """
    if value is None:
        return True
    try:
        if pd.isna(value):
            return True
    except (TypeError, ValueError):
        pass

    text = str(value).strip()
    if not text:
        return True
    if text == MISSING_SENTINEL:
        return True

    # numeric -9 read as float ("-9.0")
    try:
        return float(text) == float(MISSING_SENTINEL)
    except ValueError:
        return False


# ------------------ COMPARISON NAME ------------------ #

def comparison_name(sub: Any, cst_n: Any) -> str:
    """
    Build the comparison name for one source row.

    1. No subdivision recorded          -> cst_n
    2. No district name recorded        -> sub
    3. cst_n already contains sub       -> cst_n
    4. otherwise                        -> "{sub} - {cst_n}"
    """
    district = "" if is_missing(cst_n) else str(cst_n)

    if is_missing(sub):
        return district

    region = str(sub)
    if not district:
        return region
    if region.strip().casefold() in district.casefold():
        return district

    return f"{region} - {district}"


# ------------------ SOURCE CLEANING ------------------ #

def clean_source(raw: pd.DataFrame, min_year: int = 1945) -> pd.DataFrame:
    """
    Filter, select and deduplicate raw CLEA rows, then add comparison names.
    """
    require_columns(raw, SOURCE_COLUMNS, "Source")

    columns = SOURCE_COLUMNS + [c for c in SOURCE_OPTIONAL_COLUMNS if c in raw.columns]

    years = pd.to_numeric(raw["yr"], errors="coerce")
    df = raw.loc[years >= min_year, columns]

    df = df.drop_duplicates(keep="first").reset_index(drop=True)

    df[NAME_COL] = [
        comparison_name(sub, cst_n)
        for sub, cst_n in zip(df["sub"], df["cst_n"])
    ]

    return df
