"""
Data models for the linkage pipeline.

This file defines the column schemas of the tables passed between stages,
plus the small structured objects that are not tables.
It contains no logic and no I/O.

Tables:
  - Source (CLEA constituency records)
  - Reference (ISO 3166-2 subdivisions)
  - Matches (one row per source row / matched subdivision)
  - Validated (matches + curator labels)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence, Tuple


# ------------------ SOURCE (CLEA) ------------------ #

SOURCE_COLUMNS = ["release", "id", "rg", "ctr_n", "ctr", "yr", "mn", "sub", "cst_n"]

# kept when present in the raw archive
SOURCE_OPTIONAL_COLUMNS = ["cst"]

# CLEA code for "value absent"
MISSING_SENTINEL = "-9"


# ------------------ REFERENCE (ISO 3166-2) ------------------ #

# CSV header -> column name used inside the pipeline
REFERENCE_RENAME: Dict[str, str] = {
    "ctr_n": "ctr_n",
    "Subdivision.category": "subdivision_category",
    "ISO3166_2.code": "iso_code",
    "star": "star",
    "Subdivision.name": "subdivision_name",
    "Local.variant": "local_variant",
    "Language.code": "language_code",
    "Romanization.system": "romanization_system",
    "Parent.subdivision": "parent_subdivision",
    "Country_code": "country_code",
    "Constituent_code": "constituent_code",
}

REFERENCE_COLUMNS = list(REFERENCE_RENAME.values())

PREFERRED_LANGUAGE = "en"


# ------------------ MATCHES ------------------ #

# comparison key on both sides before matching
NAME_COL = "constituency"

# source / target comparison names after matching
SOURCE_NAME_COL = "A"
TARGET_NAME_COL = "B"

PROBABILITY_COL = "match_probability"
MULTI_MATCH_COL = "multi_match"
FLAG_COL = "flag"

# every column that describes the matched subdivision; overwritten together
TARGET_COLUMNS = [TARGET_NAME_COL] + [c for c in REFERENCE_COLUMNS if c != "ctr_n"]


# ------------------ OVERRIDES ------------------ #

OVERRIDE_LABELS = (
    "clea_sub_error",        # CLEA `sub` assigns the constituency to the wrong region
    "clea_name_abbrev",      # abbreviated name prevented a good match
    "clea_data_error",       # typo or other data error in the constituency name
    "historical_territory",  # territory with no current ISO subdivision
    "multi_territory",       # spans several subdivisions; no single code applies
    "low_confidence",        # match found below threshold; likely correct
)

OVERRIDE_COLUMNS = ["ctr_n", "cst_n_lower", "label", "notes", "iso_code"]

LABEL_COL = "label"
NOTES_COL = "notes"
KEY_COL = "cst_n_key"


@dataclass
class OverrideEntry:
    """
    Curated correction for one (country, constituency name) key.
    """
    ctr_n: str
    cst_n_lower: str
    label: str
    notes: str = ""
    iso_code: Optional[str] = None


# ------------------ ORACLE ------------------ #

@dataclass
class OracleContext:
    """
    Context passed with every oracle call.
    """
    record_type: str
    instructions: str


# ------------------ RUN RESULTS ------------------ #

@dataclass
class LinkResult:
    """
    Outcome of one link() run, one list per country outcome.
    `failed` is the retry list, in the order countries were requested.
    """
    completed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    no_reference: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class SimilarityOracle(Protocol):
    """
    Black-box matcher: which of `target_candidates` does `source_name`
    lie within? Returns (candidate index, probability) pairs, possibly none.
    """

    def match(
        self,
        source_name: str,
        target_candidates: Sequence[str],
        context: OracleContext,
    ) -> List[Tuple[int, float]]:
        ...
