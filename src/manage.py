"""RouteStream database management CLI.

Creates and drops the dispatch database schema (deliveries, stops, driver
register and progress views). Only relational providers are touched; the
default in-memory configuration needs no schema.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_databases():
    """Create the dispatch database schema."""
    from dispatch.domain import dispatch
    from dispatch.utils.db import setup_db

    print("Initializing dispatch domain...")
    dispatch.init()
    print("Creating dispatch database schema...")
    setup_db(dispatch)
    print("Done.")


def drop_databases():
    """Drop the dispatch database schema."""
    from dispatch.domain import dispatch
    from dispatch.utils.db import drop_db

    print("Initializing dispatch domain...")
    dispatch.init()
    print("Dropping dispatch database schema...")
    drop_db(dispatch)
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="RouteStream database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
