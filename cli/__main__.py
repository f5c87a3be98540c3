#!/usr/bin/env python3
"""
Moneybook CLI - command-line interface for categories and financial goals.

Usage:
    python -m cli <command> <subcommand> [options]

Commands:
    categories   Manage the category hierarchy
    goals        Manage financial goals and their progress
    migrate      Database migrations

Examples:
    python -m cli migrate apply
    python -m cli categories --org 1 seed
    python -m cli categories --org 1 tree --type expense
    python -m cli categories --org 1 create Groceries --type expense --parent 4
    python -m cli goals --org 1 create "Emergency fund" --target 10000 --by 2027-06-30
    python -m cli goals --org 1 refresh
"""

import sys
import argparse
from cli import categories, goals, migrate
from config import load_config
from errors import MoneybookError
from services.base import Services
from db.manager import DatabaseManager
from logger import setup_logging


def main():
    """Main CLI entry point with subcommands."""
    parser = argparse.ArgumentParser(
        prog="cli",
        description="Moneybook - category hierarchy and financial goal tracking",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
        required=True,
    )

    categories.setup_parser(subparsers)
    goals.setup_parser(subparsers)
    migrate.setup_parser(subparsers)

    args = parser.parse_args()

    if hasattr(args, "func"):
        try:
            config = load_config()
            logger = setup_logging(config)

            # Commands that use services: categories, goals
            # Commands that use db_manager directly: migrate
            if args.command in ("categories", "goals"):
                args.func(args, Services(config, logger=logger))
            elif args.command == "migrate":
                args.func(args, DatabaseManager(config))
            else:
                args.func(args)
        except MoneybookError as e:
            print(f"Error: {e}")
            sys.exit(1)
        except Exception as e:
            print(f"Unexpected error: {e}")
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
