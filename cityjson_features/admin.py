# ============================================================================
# MODULE CONTEXT - CITYJSON ADMIN COMMANDS
# ============================================================================
# STATUS: Command line entry point - storage housekeeping
# PURPOSE: Create the PostGIS schema, import and delete CityModels
# EXPORTS: main, build_parser
# INTERFACES: Repository with ensure_schema / insert_city_model / delete_city_model
# DEPENDENCIES: argparse, json, pathlib, util_logger
# SOURCE: CityJSON files on disk, PostGIS connection from config.py
# PATTERNS: Subcommand CLI
# ENTRY_POINTS: cityjson-admin init-schema | import <file> [--name] | delete <name>
# ============================================================================

"""
CityJSON Admin Commands

The HTTP API is read-only. Tables are created and city models loaded from
the command line, against the same database settings the Function App uses:

    cityjson-admin init-schema
    cityjson-admin import data/delft.city.json --name delft
    cityjson-admin delete delft

Exit status is 0 on success and 1 when the command failed.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from util_logger import ComponentType, LoggerFactory

from .errors import CityJSONFeaturesError
from .ingest import import_city_model

logger = LoggerFactory.create_logger(ComponentType.IMPORTER, "CityJSONAdmin")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cityjson-admin",
        description="CityJSON Features storage administration",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-schema", help="Create the schema, tables and spatial index")

    import_model = subparsers.add_parser("import", help="Import a CityJSON file as one CityModel")
    import_model.add_argument("path", help="Path to the CityJSON file")
    import_model.add_argument(
        "--name",
        help="CityModel name (default: file name up to the first dot)"
    )

    delete_model = subparsers.add_parser("delete", help="Delete a CityModel and its CityObjects")
    delete_model.add_argument("name", help="CityModel name")

    return parser


def main(argv: Optional[List[str]] = None, repository=None) -> int:
    """
    Run one admin command.

    Args:
        argv: Command line arguments (sys.argv[1:] if not provided)
        repository: Storage collaborator (CityJSONRepository if not provided)

    Returns:
        Process exit status
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if repository is None:
        from .repository import CityJSONRepository
        repository = CityJSONRepository()

    try:
        if args.command == "init-schema":
            repository.ensure_schema()

        elif args.command == "import":
            name = args.name or Path(args.path).name.split(".")[0]
            with open(args.path, encoding="utf-8") as f:
                document = json.load(f)
            import_city_model(document, name, repository)

        elif args.command == "delete":
            if not repository.delete_city_model(args.name):
                logger.warning(f"CityModel '{args.name}' does not exist")
                return 1

    except (CityJSONFeaturesError, OSError, json.JSONDecodeError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1

    logger.info(f"{args.command} completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
