"""
Deduplication of ISO 3166-2 reference rows.

The ISO table carries one row per language variant of a subdivision
(e.g. CA-QC in English and French). Matching needs exactly one candidate
per code, so rows are collapsed to one per `iso_code`, preferring English.

Flowchart role:
- 'Reference Standardisation' stage on the reference stream
"""

from typing import List, Optional

import pandas as pd

from clea_iso.models import NAME_COL, PREFERRED_LANGUAGE, REFERENCE_COLUMNS
from clea_iso.tables import require_columns


def deduplicate_reference(
    reference: pd.DataFrame,
    sort_by: Optional[List[str]] = None,
) -> pd.DataFrame:
    """
    Keep one row per iso_code.

    Within a code, the first English row wins; if there is none, the first
    row wins. "First" is input order, or the order given by `sort_by`
    when provided. Output codes appear in order of first appearance.
    """
    require_columns(reference, REFERENCE_COLUMNS, "Reference")

    df = reference.reset_index(drop=True)
    df["_code_order"], _ = pd.factorize(df["iso_code"])

    if sort_by:
        df = df.sort_values(list(sort_by), kind="mergesort", na_position="last")

    df["_not_en"] = (df["language_code"] != PREFERRED_LANGUAGE).astype(int)
    df = df.sort_values("_not_en", kind="mergesort")

    first = df.drop_duplicates(subset="iso_code", keep="first")

    # restore first-appearance order of codes
    out = (
        first.sort_values("_code_order", kind="mergesort")
        .drop(columns=["_not_en", "_code_order"])
        .reset_index(drop=True)
    )

    out[NAME_COL] = out["subdivision_name"]
    return out
