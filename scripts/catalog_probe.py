#!/usr/bin/env python3
"""Operator probe for the catalog engine.

Lists one catalog page or resolves one reference and prints JSON:
    python scripts/catalog_probe.py catalog desicinemas-punjabi --skip 29
    python scripts/catalog_probe.py meta "Kesari 2 (2025)"

Provider keys are read from the environment or .env (TMDB_API_KEY, OMDB_API_KEY).
"""

import argparse
import asyncio
import json
import sys

from desicatalog.catalog import CatalogKey, InvalidArgumentError
from desicatalog.engine import CatalogEngine
from desicatalog.logger import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging to stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    catalog = subparsers.add_parser("catalog", help="list a catalog page")
    catalog.add_argument("catalog_key", choices=[key.value for key in CatalogKey])
    catalog.add_argument("--skip", type=int, default=0, help="items to skip")

    meta = subparsers.add_parser("meta", help="resolve metadata for a reference")
    meta.add_argument("reference")

    return parser


async def run(args: argparse.Namespace) -> dict:
    async with CatalogEngine() as engine:
        if args.command == "catalog":
            entries = await engine.list_catalog(args.catalog_key, args.skip)
            return {"metas": [entry.to_meta_preview() for entry in entries]}

        meta = await engine.resolve_metadata(args.reference)
        return {"meta": meta.to_meta()}


def main():
    args = build_parser().parse_args()
    configure_logging(level="DEBUG" if args.verbose else None)

    try:
        result = asyncio.run(run(args))
    except InvalidArgumentError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    print(json.dumps(result, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
