"""Shared fixtures: small CLEA / ISO tables and a scripted oracle."""

from pathlib import Path

import pandas as pd
import pytest

from clea_iso.config import LinkageConfig
from clea_iso.models import REFERENCE_RENAME


class FakeOracle:
    """
    Scripted oracle: answers[source_name] = {target_name: probability}.
    Raises for any country listed in `fail_for`.
    """

    def __init__(self, answers=None, fail_for=()):
        self.answers = answers or {}
        self.fail_for = set(fail_for)
        self.calls = []

    def match(self, source_name, target_candidates, context):
        self.calls.append((source_name, tuple(target_candidates), context))
        for country in self.fail_for:
            if country in context.instructions:
                raise ConnectionError(f"oracle unavailable for {country}")

        wanted = self.answers.get(source_name, {})
        return [(i, wanted[t]) for i, t in enumerate(target_candidates) if t in wanted]


def reference_row(ctr_n, code, name, language="en", category="province", local_variant=None):
    return {
        "ctr_n": ctr_n,
        "subdivision_category": category,
        "iso_code": code,
        "star": None,
        "subdivision_name": name,
        "local_variant": local_variant,
        "language_code": language,
        "romanization_system": None,
        "parent_subdivision": None,
        "country_code": code.split("-")[0],
        "constituent_code": code.split("-")[1],
    }


def source_row(ctr_n, sub, cst_n, yr=2015, id_="CAN_2015", cst=1):
    return {
        "release": 20251015,
        "id": id_,
        "rg": "region",
        "ctr_n": ctr_n,
        "ctr": 124,
        "yr": yr,
        "mn": 10,
        "sub": sub,
        "cst_n": cst_n,
        "cst": cst,
    }


@pytest.fixture
def raw_reference():
    return pd.DataFrame(
        [
            reference_row("Canada", "CA-AB", "Alberta"),
            reference_row("Canada", "CA-SK", "Saskatchewan"),
            reference_row("Canada", "CA-ON", "Ontario"),
            reference_row("Canada", "CA-NS", "Nova Scotia"),
            reference_row("Canada", "CA-MB", "Manitoba"),
            reference_row("Canada", "CA-QC", "Québec", language="fr"),
            reference_row("Canada", "CA-QC", "Quebec", language="en"),
            reference_row("Brazil", "BR-RS", "Rio Grande do Sul", language="pt", category="state"),
            reference_row("Brazil", "BR-CE", "Ceará", language="pt", category="state"),
        ]
    )


@pytest.fixture
def raw_archive():
    rows = [
        source_row("Canada", "Saskatchewan", "Sherwood Park—Fort Saskatchewan", cst=1),
        source_row("Canada", "Saskatchewan", "Sherwood Park—Fort Saskatchewan", cst=1),  # exact duplicate
        source_row("Canada", "Ontario", "West Nova", cst=2),
        source_row("Canada", "Alberta", "Calgary Centre", cst=3),
        source_row("Canada", "Alberta", "Calgary Centre", yr=1940, id_="CAN_1940", cst=3),
        source_row("Brazil", "-9", "R, G, do Sul", yr=1950, id_="BRA_1950", cst=1),
        source_row("Atlantis", "-9", "Poseidonia", yr=1990, id_="ATL_1990", cst=1),
    ]
    return pd.DataFrame(rows)


@pytest.fixture
def answers():
    return {
        "Sherwood Park—Fort Saskatchewan": {"Saskatchewan": 0.9},
        "Alberta - Calgary Centre": {"Alberta": 0.95},
        "R, G, do Sul": {"Rio Grande do Sul": 0.197},
    }


@pytest.fixture
def cfg(tmp_path, raw_archive, raw_reference) -> LinkageConfig:
    """
    Config rooted in tmp_path with raw inputs written in their on-disk formats.
    """
    raw_dir = tmp_path / "raw"
    (raw_dir / "clea").mkdir(parents=True)

    archive_path = raw_dir / "clea" / "clea_lc.csv"
    raw_archive.to_csv(archive_path, index=False)

    reference_path = raw_dir / "ISO.csv"
    to_header = {v: k for k, v in REFERENCE_RENAME.items()}
    raw_reference.rename(columns=to_header).to_csv(reference_path, index=False, encoding="latin-1")

    return LinkageConfig(
        data_dir=tmp_path,
        raw_archive_path=archive_path,
        reference_path=reference_path,
    )


def read_bytes(path: Path) -> bytes:
    return Path(path).read_bytes()
