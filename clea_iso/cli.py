"""
Command line entry point.

    clea-iso clean
    clea-iso link [--country NAME ...] [--overwrite] [--workers N]
    clea-iso validate
"""

import argparse
import sys
from pathlib import Path

from clea_iso.config import LinkageConfig
from clea_iso.pipeline import clean, link, validate


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clea-iso",
        description="Link CLEA constituencies to ISO 3166-2 subdivisions.",
    )
    parser.add_argument("--data-dir", type=Path, default=None, help="Root of raw/, temp/ and output/")
    parser.add_argument("--overrides", type=Path, default=None, help="Override table CSV")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("clean", help="Build cleaned CLEA and deduplicated ISO tables")

    p_link = sub.add_parser("link", help="Match and flag countries")
    p_link.add_argument("--country", action="append", dest="countries", help="Country name (repeatable)")
    p_link.add_argument("--overwrite", action="store_true", help="Recompute countries that already have output")
    p_link.add_argument("--workers", type=int, default=1, help="Countries linked concurrently")

    sub.add_parser("validate", help="Apply overrides and print the review summary")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    cfg_kwargs = {}
    if args.data_dir is not None:
        cfg_kwargs["data_dir"] = args.data_dir
    if args.overrides is not None:
        cfg_kwargs["overrides_path"] = args.overrides
    cfg = LinkageConfig(**cfg_kwargs)

    if args.command == "clean":
        clean(cfg)
    elif args.command == "link":
        result = link(args.countries, args.overwrite, cfg=cfg, max_workers=args.workers)
        return 1 if result.failed else 0
    elif args.command == "validate":
        validate(cfg)

    return 0


if __name__ == "__main__":
    sys.exit(main())
