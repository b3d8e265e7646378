"""
Per-country output store.

Each country's match table is one parquet file named after the country.
The existence of that file is what makes a country "done": link() skips
countries whose file exists unless asked to overwrite.

Writes go to a temporary file in the same directory and are moved into
place with os.replace, so a crash never leaves a half-written country.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import List

import pandas as pd


class CountryStore:
    """
    Keyed blob store: one parquet file per country name.
    """

    suffix = ".parquet"

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, country: str) -> Path:
        safe = country.replace(os.sep, "_").replace("/", "_")
        return self.root / f"{safe}{self.suffix}"

    def exists(self, country: str) -> bool:
        return self._path(country).exists()

    def write(self, country: str, df: pd.DataFrame) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        out_path = self._path(country)

        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".tmp-", suffix=self.suffix)
        os.close(fd)
        try:
            df.to_parquet(tmp_name, index=False)
            os.replace(tmp_name, out_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise

        return out_path

    def read(self, country: str) -> pd.DataFrame:
        path = self._path(country)
        if not path.exists():
            raise FileNotFoundError(path)
        return pd.read_parquet(path)

    def paths(self) -> List[Path]:
        """
        All completed country files, sorted by name (temp files excluded).
        """
        if not self.root.exists():
            return []
        return sorted(
            p for p in self.root.glob(f"*{self.suffix}")
            if not p.name.startswith(".tmp-")
        )
