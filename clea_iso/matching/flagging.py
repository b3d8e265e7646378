"""
Review flags for match output.

Marks match rows that need a human decision:
- multi_match: the same source row matched more than one subdivision
- flag: multi_match, no match at all, or match probability below threshold

Flags are always recomputed from the other columns, never set by hand.
"""

import pandas as pd

from clea_iso.models import (
    FLAG_COL,
    MULTI_MATCH_COL,
    PROBABILITY_COL,
    SOURCE_NAME_COL,
    TARGET_NAME_COL,
)


# ------------------ CONFIG ------------------ #

REVIEW_THRESHOLD = 0.2

# one source row = one comparison name within one CLEA election
GROUP_KEY = [SOURCE_NAME_COL, "id"]


def flag_matches(matches: pd.DataFrame) -> pd.DataFrame:
    """
    Return a copy of `matches` with multi_match and flag columns (0/1).
    """
    df = matches.copy()

    if df.empty:
        df[MULTI_MATCH_COL] = pd.Series(dtype=int)
        df[FLAG_COL] = pd.Series(dtype=int)
        return df

    group_size = df.groupby(GROUP_KEY, dropna=False)[SOURCE_NAME_COL].transform("size")
    multi = group_size > 1

    no_match = df[TARGET_NAME_COL].isna()
    low_prob = df[PROBABILITY_COL].astype(float) < REVIEW_THRESHOLD

    df[MULTI_MATCH_COL] = multi.astype(int)
    df[FLAG_COL] = (multi | no_match | low_prob).astype(int)

    return df
