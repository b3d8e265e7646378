"""
Input/output utilities for the linkage pipeline.

This file is responsible for:
- Loading the raw CLEA archive and the ISO 3166-2 reference CSV
- Checking that required columns are present
- Writing pipeline tables (parquet + a human-readable CSV copy)

This module performs no matching or validation logic.
"""

from pathlib import Path
from typing import Iterable

import pandas as pd

from clea_iso.errors import InputIntegrityError
from clea_iso.models import REFERENCE_RENAME


# ------------------ SCHEMA CHECKS ------------------ #

def require_columns(df: pd.DataFrame, columns: Iterable[str], table: str) -> None:
    """
    Raise InputIntegrityError if any of `columns` is missing from `df`.
    """
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise InputIntegrityError(f"{table} table is missing required columns: {missing}")


# ------------------ LOAD RAW INPUTS ------------------ #

def load_raw_archive(path: Path) -> pd.DataFrame:
    """
    Load the raw CLEA archive. Format is chosen from the file suffix.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)

    suffix = path.suffix.lower()
    if suffix == ".parquet":
        return pd.read_parquet(path)
    if suffix == ".csv":
        return pd.read_csv(path, low_memory=False)
    if suffix == ".dta":
        return pd.read_stata(path, convert_categoricals=False)
    if suffix in (".pkl", ".pickle"):
        return pd.read_pickle(path)

    raise ValueError(f"Unsupported file type: {path.suffix}")


def load_reference_csv(path: Path, encoding: str = "latin-1") -> pd.DataFrame:
    """
    Load the ISO 3166-2 CSV and rename its columns to pipeline names.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)

    # codes like "NA" (Namibia) must stay strings
    df = pd.read_csv(path, encoding=encoding, dtype=str, keep_default_na=False, na_values=[""])
    require_columns(df, REFERENCE_RENAME.keys(), "Reference")

    return df.rename(columns=REFERENCE_RENAME)[list(REFERENCE_RENAME.values())]


# ------------------ WRITE / READ TABLES ------------------ #

def write_table(df: pd.DataFrame, path: Path, *, csv_copy: bool = False) -> None:
    """
    Write a table as parquet (source of truth), optionally with a CSV copy.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_parquet(path, index=False)

    if csv_copy:
        df.to_csv(path.with_suffix(".csv"), index=False)


def read_table(path: Path) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    return pd.read_parquet(path)
