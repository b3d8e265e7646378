"""
Linkage pipeline runner.

This file sequences the three stages of the CLEA -> ISO 3166-2 linkage.
It is the single place where control flow lives.

1) clean()     build the cleaned CLEA table and the deduplicated ISO table
2) link()      match + flag one country at a time, one output file each
3) validate()  combine country outputs, apply curated overrides, report

link() is resumable: countries with an existing output file are skipped
unless overwrite=True. A country whose oracle call fails writes nothing
and is returned in the retry list.

All heavy logic lives in imported modules.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, Optional, Tuple

import pandas as pd
from tqdm import tqdm

from clea_iso.config import LinkageConfig
from clea_iso.matching.flagging import flag_matches
from clea_iso.matching.matcher import match_country
from clea_iso.models import LinkResult, SimilarityOracle
from clea_iso.outputs.report import combine_partitions, print_summary
from clea_iso.overrides.registry import load_overrides
from clea_iso.overrides.resolve import ResolveResult, resolve_overrides
from clea_iso.reference.deduplicate import deduplicate_reference
from clea_iso.source.normalise import clean_source
from clea_iso.store import CountryStore
from clea_iso.tables import (
    load_raw_archive,
    load_reference_csv,
    read_table,
    write_table,
)


# ------------------ CLEAN ------------------ #

def clean(cfg: Optional[LinkageConfig] = None) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Build and save the cleaned source and deduplicated reference tables.
    """
    cfg = cfg or LinkageConfig()

    print(">> Cleaning CLEA archive...")
    source = clean_source(load_raw_archive(cfg.raw_archive_path), min_year=cfg.min_year)

    print(">> Deduplicating ISO 3166-2 reference...")
    raw_reference = load_reference_csv(cfg.reference_path, encoding=cfg.reference_encoding)
    reference = deduplicate_reference(raw_reference, sort_by=cfg.reference_sort_by)

    write_table(source, cfg.cleaned_source_path)
    write_table(reference, cfg.cleaned_reference_path)

    print(f"Source rows: {len(source)} | Reference rows: {len(raw_reference)} -> {len(reference)}")
    return source, reference


# ------------------ LINK ------------------ #

def _default_oracle(cfg: LinkageConfig) -> SimilarityOracle:
    # loads the embedding model; only needed when something is left to match
    from clea_iso.matching.oracle import build_oracle

    return build_oracle(cfg)


def link(
    countries: Optional[Iterable[str]] = None,
    overwrite: bool = False,
    *,
    cfg: Optional[LinkageConfig] = None,
    oracle: Optional[SimilarityOracle] = None,
    max_workers: int = 1,
) -> LinkResult:
    """
    Match and flag each requested country, saving one output per country.

    `countries` may be a single country name or an iterable of names
    (default: every country in the cleaned source, in source order).

    Returns a LinkResult rather than a bare list. `failed` is the ordered
    list of countries to retry; `completed`, `skipped` and `no_reference`
    account for the rest of the request.
    """
    cfg = cfg or LinkageConfig()

    source = read_table(cfg.cleaned_source_path)
    reference = read_table(cfg.cleaned_reference_path)
    store = CountryStore(cfg.output_dir)

    if countries is None:
        countries = source["ctr_n"].drop_duplicates().tolist()
    elif isinstance(countries, str):
        countries = [countries]
    countries = list(dict.fromkeys(countries))

    result = LinkResult()
    todo = []

    for country in countries:
        if store.exists(country) and not overwrite:
            result.skipped.append(country)
            continue
        if not (reference["ctr_n"] == country).any():
            print(f"No ISO subdivisions for {country}; skipping")
            result.no_reference.append(country)
            continue
        todo.append(country)

    if result.skipped:
        print(f"Already linked (use overwrite to recompute): {len(result.skipped)} countries")

    if todo and oracle is None:
        oracle = _default_oracle(cfg)

    def run_country(country: str) -> int:
        A = source[source["ctr_n"] == country]
        B = reference[reference["ctr_n"] == country]

        df = flag_matches(match_country(A, B, oracle, country))
        store.write(country, df)
        return len(df)

    succeeded: Dict[str, bool] = {}

    if max_workers <= 1:
        pbar = tqdm(todo, desc="Linking", unit="country")
        for country in pbar:
            pbar.set_postfix_str(country)
            try:
                n_rows = run_country(country)
            except Exception as exc:
                tqdm.write(f"  {country}: FAILED ({type(exc).__name__}: {exc})")
                succeeded[country] = False
            else:
                tqdm.write(f"  {country}: {n_rows} rows")
                succeeded[country] = True
        pbar.close()

    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(run_country, c): c for c in todo}
            for fut in tqdm(as_completed(futures), total=len(futures), desc="Linking", unit="country"):
                country = futures[fut]
                try:
                    n_rows = fut.result()
                except Exception as exc:
                    tqdm.write(f"  {country}: FAILED ({type(exc).__name__}: {exc})")
                    succeeded[country] = False
                else:
                    tqdm.write(f"  {country}: {n_rows} rows")
                    succeeded[country] = True

    result.completed = [c for c in todo if succeeded.get(c)]
    result.failed = [c for c in todo if not succeeded.get(c)]

    if result.failed:
        print(f"\n{len(result.failed)} country(ies) failed; rerun link() for:")
        for country in result.failed:
            print(f"  - {country}")
    else:
        print("\nAll requested countries linked.")

    return result


# ------------------ VALIDATE ------------------ #

def validate(cfg: Optional[LinkageConfig] = None) -> ResolveResult:
    """
    Combine all country outputs, apply overrides, print and save the result.
    """
    cfg = cfg or LinkageConfig()

    store = CountryStore(cfg.output_dir)
    combined = combine_partitions(pd.read_parquet(p) for p in store.paths())
    if combined.empty:
        print(f"No linked countries found in {cfg.output_dir}")
        return ResolveResult(validated=combined)

    reference = read_table(cfg.cleaned_reference_path)
    overrides, load_warnings = load_overrides(cfg.overrides_path, reference)

    result = resolve_overrides(combined, overrides, reference)
    result.warnings = list(dict.fromkeys(load_warnings + result.warnings))

    print_summary(result.validated, result.warnings)

    write_table(result.validated, cfg.validated_path, csv_copy=True)
    return result
