"""
Per-country matching of CLEA constituencies to ISO subdivisions.

Given the source rows (A) and deduplicated reference rows (B) for one
country, this file asks the similarity oracle which subdivisions each
constituency lies within, and returns one row per (source row, matched
subdivision). Source rows with no match are kept with empty target columns.

Flowchart role:
- 'Matcher' stage (blocking by country is done by the caller)

This module does not flag rows for review and does not write files.
"""

import math
from typing import Dict, List, Sequence, Tuple

import pandas as pd

from clea_iso.errors import OracleError
from clea_iso.models import (
    NAME_COL,
    OracleContext,
    PROBABILITY_COL,
    SimilarityOracle,
    SOURCE_NAME_COL,
    TARGET_NAME_COL,
)


# ------------------ CONFIG ------------------ #

RECORD_TYPE = "geographic area"

INSTRUCTIONS_TEMPLATE = (
    "The first name is a historical election district in {country}. "
    "The second name is an ISO 3166-2 subdivision. "
    "Respond Yes if the former lies within, or is coterminus with, the latter."
)

BLOCKING_VARIABLES = ("ctr_n",)

_TARGET_ROW = "_target_row"


# ------------------ HELPERS ------------------ #

def build_context(country: str) -> OracleContext:
    return OracleContext(
        record_type=RECORD_TYPE,
        instructions=INSTRUCTIONS_TEMPLATE.format(country=country),
    )


def _check_answer(
    answer: Sequence[Tuple[int, float]],
    n_targets: int,
    source_name: str,
) -> List[Tuple[int, float]]:
    """
    Reject malformed oracle output; drop repeated target indices.
    """
    seen = set()
    checked: List[Tuple[int, float]] = []

    for idx, prob in answer:
        idx = int(idx)
        prob = float(prob)
        if not 0 <= idx < n_targets:
            raise OracleError(f"Target index {idx} out of range for {source_name!r}")
        if math.isnan(prob) or not 0.0 <= prob <= 1.0:
            raise OracleError(f"Probability {prob} outside [0, 1] for {source_name!r}")
        if idx in seen:
            continue
        seen.add(idx)
        checked.append((idx, prob))

    return checked


# ------------------ MATCHING ------------------ #

def match_country(
    source: pd.DataFrame,
    reference: pd.DataFrame,
    oracle: SimilarityOracle,
    country: str,
    blocking_variables: Sequence[str] = BLOCKING_VARIABLES,
) -> pd.DataFrame:
    """
    Match one country's source rows against its reference rows.

    The oracle is called once per distinct comparison name; rows sharing
    a name share the answer. Columns present on both sides are kept once
    if they are blocking variables, otherwise suffixed ".x" / ".y".
    """
    context = build_context(country)

    targets = reference.reset_index(drop=True)
    target_names = targets[NAME_COL].astype(str).tolist()

    answers: Dict[str, List[Tuple[int, float]]] = {}
    for name in source[NAME_COL].drop_duplicates():
        answer = oracle.match(name, target_names, context)
        answers[name] = _check_answer(answer, len(target_names), name)

    links = pd.DataFrame(
        [
            {SOURCE_NAME_COL: name, _TARGET_ROW: float(idx), PROBABILITY_COL: prob}
            for name, answer in answers.items()
            for idx, prob in answer
        ],
        columns=[SOURCE_NAME_COL, _TARGET_ROW, PROBABILITY_COL],
    )
    links[_TARGET_ROW] = links[_TARGET_ROW].astype(float)
    links[PROBABILITY_COL] = links[PROBABILITY_COL].astype(float)

    left = source.rename(columns={NAME_COL: SOURCE_NAME_COL})

    right = targets.rename(columns={NAME_COL: TARGET_NAME_COL})
    right = right.drop(columns=[c for c in blocking_variables if c in right.columns])
    right[_TARGET_ROW] = [float(i) for i in range(len(right))]

    df = left.merge(links, on=SOURCE_NAME_COL, how="left")
    df = df.merge(right, on=_TARGET_ROW, how="left", suffixes=(".x", ".y"))

    # keep probability as the last column
    ordered = [c for c in df.columns if c not in (_TARGET_ROW, PROBABILITY_COL)]
    return df[ordered + [PROBABILITY_COL]].reset_index(drop=True)
