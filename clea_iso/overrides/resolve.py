"""
Apply curated overrides to combined match output.

Step 1 - label join:
  Left-join the override table on (ctr_n, constituency-name key).
  The join must not add rows; a fan-out is an error.

Step 2 - correction:
  Where an override carries an iso_code, every target column is replaced
  by the reference row for that code, even if the matcher found a
  (different) target. Codes missing from the reference are reported as
  warnings and the row is left as it was.

Applying the resolver to its own output gives the same result.
"""

from dataclasses import dataclass, field
from typing import List

import pandas as pd
from pandas.errors import MergeError

from clea_iso.errors import InputIntegrityError, JoinFanoutError
from clea_iso.models import (
    KEY_COL,
    LABEL_COL,
    NAME_COL,
    NOTES_COL,
    TARGET_COLUMNS,
    TARGET_NAME_COL,
)
from clea_iso.overrides.registry import check_unique_keys, district_key
from clea_iso.tables import require_columns


_TRUE_CODE = "_true_code"


@dataclass
class ResolveResult:
    validated: pd.DataFrame
    warnings: List[str] = field(default_factory=list)


# ------------------ HELPERS ------------------ #

def _reference_lookup(reference: pd.DataFrame) -> pd.DataFrame:
    """
    Reference rows indexed by iso_code, with columns named as target columns.
    """
    if reference["iso_code"].duplicated().any():
        raise InputIntegrityError("Reference lookup has more than one row per iso_code")

    lookup = reference.copy()
    lookup[TARGET_NAME_COL] = lookup[NAME_COL] if NAME_COL in lookup.columns else lookup["subdivision_name"]
    return lookup.set_index("iso_code", drop=False)[TARGET_COLUMNS]


def _join_labels(matches: pd.DataFrame, overrides: pd.DataFrame) -> pd.DataFrame:
    df = matches.drop(columns=[c for c in (LABEL_COL, NOTES_COL) if c in matches.columns])
    df = df.reset_index(drop=True)
    df[KEY_COL] = df["cst_n"].map(district_key)

    labels = overrides[["ctr_n", KEY_COL, LABEL_COL, NOTES_COL, "iso_code"]].rename(
        columns={"iso_code": _TRUE_CODE}
    )

    try:
        joined = df.merge(labels, on=["ctr_n", KEY_COL], how="left", validate="many_to_one")
    except MergeError as exc:
        raise JoinFanoutError(f"Override join is not one-to-one: {exc}") from exc

    if len(joined) != len(df):
        raise JoinFanoutError(f"Override join changed row count: {len(df)} -> {len(joined)}")

    return joined


# ------------------ RESOLVER ------------------ #

def resolve_overrides(
    matches: pd.DataFrame,
    overrides: pd.DataFrame,
    reference: pd.DataFrame,
) -> ResolveResult:
    """
    Label flagged rows and apply code corrections.
    """
    require_columns(matches, ["ctr_n", "cst_n"], "Match")
    check_unique_keys(overrides)

    df = _join_labels(matches, overrides)
    lookup = _reference_lookup(reference)

    has_code = df[_TRUE_CODE].notna()
    found = has_code & df[_TRUE_CODE].isin(lookup.index)
    missing = has_code & ~found

    warnings = [
        f"{ctr_n} / {cst_n}: override code {code} not in reference"
        for ctr_n, cst_n, code in (
            df.loc[missing, ["ctr_n", KEY_COL, _TRUE_CODE]]
            .drop_duplicates()
            .itertuples(index=False, name=None)
        )
    ]

    if found.any():
        for col in TARGET_COLUMNS:
            if col not in df.columns:
                df[col] = pd.NA
            df[col] = df[col].astype(object)

        replacement = lookup.loc[df.loc[found, _TRUE_CODE], TARGET_COLUMNS]
        df.loc[found, TARGET_COLUMNS] = replacement.to_numpy(dtype=object)

    validated = df.drop(columns=[KEY_COL, _TRUE_CODE])
    return ResolveResult(validated=validated, warnings=warnings)
