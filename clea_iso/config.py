"""
Runtime configuration for the linkage pipeline.

All file locations and oracle settings live in one dataclass so that the
pipeline entry points can be pointed at a different data directory
(e.g. in tests) without touching module constants.

API keys are read from a .env file in the project root.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).resolve().parent.parent


# ------------------ CONFIG ------------------ #

@dataclass
class LinkageConfig:
    data_dir: Path = PROJECT_ROOT / "_data"

    # raw inputs
    raw_archive_path: Optional[Path] = None
    reference_path: Optional[Path] = None
    reference_encoding: str = "latin-1"
    min_year: int = 1945

    # curated corrections (versioned alongside the code)
    overrides_path: Path = PROJECT_ROOT / "data" / "overrides.csv"

    # reference dedup: optional explicit ordering before the English preference
    reference_sort_by: List[str] = field(default_factory=list)

    # oracle
    chat_model: str = "gpt-4.1-mini"
    embedding_model: str = "all-MiniLM-L6-v2"
    top_k: int = 5
    min_probability: float = 0.1
    max_retries: int = 4

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        if self.raw_archive_path is None:
            self.raw_archive_path = self.data_dir / "raw" / "clea" / "clea_lc.parquet"
        if self.reference_path is None:
            self.reference_path = self.data_dir / "raw" / "ISO.csv"
        self.raw_archive_path = Path(self.raw_archive_path)
        self.reference_path = Path(self.reference_path)
        self.overrides_path = Path(self.overrides_path)

    @property
    def temp_dir(self) -> Path:
        return self.data_dir / "temp"

    @property
    def output_dir(self) -> Path:
        return self.data_dir / "output"

    @property
    def cleaned_source_path(self) -> Path:
        return self.temp_dir / "clea.parquet"

    @property
    def cleaned_reference_path(self) -> Path:
        return self.temp_dir / "iso.parquet"

    @property
    def validated_path(self) -> Path:
        return self.temp_dir / "validated.parquet"


# ------------------ SECRETS ------------------ #

def get_openai_key() -> str:
    """
    Load the OpenAI key from .env (project root) or the environment.
    """
    load_dotenv(PROJECT_ROOT / ".env")

    key = os.getenv("OPENAI_API_KEY") or os.getenv("OPENAI_PROJECT_KEY")
    if not key:
        raise RuntimeError("Missing OPENAI_API_KEY or OPENAI_PROJECT_KEY in .env")
    return key
