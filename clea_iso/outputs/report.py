"""
Combining and reporting per-country match results.

This file:
- Reconciles schema drift between country outputs (a blocking column that
  was written as "ctr_n.x" / "ctr_n.y" when matching ran without blocking)
- Unions all country outputs into one table
- Summarises flagged rows by country and label
- Lists flagged rows that still have no label (the curators' work queue)

It does not rerun matching and does not write files.
"""

from typing import Iterable, List

import pandas as pd

from clea_iso.models import FLAG_COL, LABEL_COL, PROBABILITY_COL, SOURCE_NAME_COL


QUEUE_COLUMNS = ["ctr_n", SOURCE_NAME_COL, "cst_n", "yr", PROBABILITY_COL]


# ------------------ SCHEMA RECONCILIATION ------------------ #

def reconcile_schema(df: pd.DataFrame, column: str = "ctr_n") -> pd.DataFrame:
    """
    Collapse "<column>.x" / "<column>.y" into a single "<column>".

    The source-side (.x) value wins; the reference-side (.y) value is only
    used where the source side is missing.
    """
    left, right = f"{column}.x", f"{column}.y"
    if left not in df.columns and right not in df.columns:
        return df

    df = df.copy()
    merged = df[column] if column in df.columns else pd.Series(pd.NA, index=df.index, dtype=object)

    for variant in (left, right):
        if variant in df.columns:
            merged = merged.fillna(df[variant])

    position = next(
        df.columns.get_loc(c) for c in (column, left, right) if c in df.columns
    )
    df = df.drop(columns=[c for c in (column, left, right) if c in df.columns])
    df.insert(position, column, merged)

    return df


def combine_partitions(frames: Iterable[pd.DataFrame]) -> pd.DataFrame:
    """
    Reconcile each per-country table, then union them.
    """
    reconciled: List[pd.DataFrame] = [reconcile_schema(f) for f in frames]
    reconciled = [f for f in reconciled if not f.empty]
    if not reconciled:
        return pd.DataFrame()
    return pd.concat(reconciled, ignore_index=True, sort=False)


# ------------------ SUMMARIES ------------------ #

def flagged_summary(validated: pd.DataFrame) -> pd.DataFrame:
    """
    Count flagged rows by country and label (missing label kept as NaN).
    """
    if validated.empty or FLAG_COL not in validated.columns:
        return pd.DataFrame(columns=["ctr_n", LABEL_COL, "n"])

    flagged = validated[validated[FLAG_COL] == 1]
    return (
        flagged.groupby(["ctr_n", LABEL_COL], dropna=False)
        .size()
        .reset_index(name="n")
        .sort_values(["ctr_n", LABEL_COL], na_position="last", kind="mergesort")
        .reset_index(drop=True)
    )


def unlabeled_queue(validated: pd.DataFrame) -> pd.DataFrame:
    """
    Flagged rows with no curator label yet.
    """
    if validated.empty or FLAG_COL not in validated.columns:
        return pd.DataFrame(columns=QUEUE_COLUMNS)

    mask = (validated[FLAG_COL] == 1) & validated[LABEL_COL].isna()
    columns = [c for c in QUEUE_COLUMNS if c in validated.columns]
    return validated.loc[mask, columns].reset_index(drop=True)


def print_summary(validated: pd.DataFrame, warnings: List[str]) -> None:
    print("=== Flagged row summary ===\n")
    print(flagged_summary(validated).to_string(index=False))

    queue = unlabeled_queue(validated)
    if len(queue) > 0:
        print(f"\n{len(queue)} flagged row(s) have no label yet:\n")
        print(queue.to_string(index=False))
    else:
        print("\nAll flagged rows have been labelled.")

    if warnings:
        print(f"\n=== {len(warnings)} override integrity warning(s) ===\n")
        for w in warnings:
            print(f"  - {w}")
