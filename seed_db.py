# seed_db.py
"""
Database Seeding Script
=======================

Command-line utilities to seed the document database.

Two modes:
- `base`: capabilities, system roles, the admin user, org structure,
  categories, objects and sample documents.
- `large`: synthetic documents in batches, for search performance testing.
  Needs `base` to have run first.

Usage:
    python seed_db.py base
    python seed_db.py large --batch-size 10000 --total-records 1000000

Requirements:
    - A valid database configuration (DB_* environment variables).
    - Migrations applied (`alembic upgrade head`).
"""

import sys
import argparse
import asyncio
from scripts.db import seed_db, seed_large_dataset, DEFAULT_DATA_TEMPLATE
from pipeline_docs.db import DbManager
from common.config import get_config, initialize_config
from common.api_error import ConfigurationError
from dotenv import load_dotenv


def get_db_config():
    """
    Load and validate database configuration.

    Returns:
        tuple: (config, db_config)

    Raises:
        SystemExit: If configuration cannot be loaded.
    """
    try:
        config = get_config()
    except RuntimeError:
        config = initialize_config()

    db_cfg = getattr(config, "database", None)
    if not db_cfg:
        print("FATAL: Database configuration required (set DB_HOST and friends)")
        sys.exit(1)
    return config, db_cfg


async def run_seed_base(_db_config):
    db_manager = DbManager.from_config(_db_config)
    await db_manager.verify_connection()
    try:
        counts = await seed_db(
            db_manager=db_manager,
            data_template=DEFAULT_DATA_TEMPLATE,
        )
    finally:
        await db_manager.dispose()

    if counts:
        print(f"Seeded: {', '.join(f'{k}={v}' for k, v in counts.items())}")
        print("Admin login: admin / admin123")
    else:
        print("Database already seeded, nothing to do")


async def run_seed_large(
    _db_config,
    batch_size: int,
    total_records: int,
):
    """
    Example:
        >>> asyncio.run(run_seed_large(db_cfg, batch_size=10000, total_records=1000000))
    """
    db_manager = DbManager.from_config(_db_config)
    await db_manager.verify_connection()
    try:
        await seed_large_dataset(
            db_manager=db_manager,
            batch_size=batch_size,
            total_records=total_records,
        )
    finally:
        await db_manager.dispose()


def main():
    parser = argparse.ArgumentParser(description="Seed database manager")
    subparsers = parser.add_subparsers(dest="mode", required=True)

    subparsers.add_parser("base", help="Seed reference data and sample documents")

    large_parser = subparsers.add_parser("large", help="Seed synthetic documents")
    large_parser.add_argument(
        "--batch-size",
        type=int,
        required=True,
        help="Batch size for inserts (REQUIRED)",
    )
    large_parser.add_argument(
        "--total-records",
        type=int,
        required=True,
        help="Total number of documents to insert (REQUIRED)",
    )

    args = parser.parse_args()
    config, _db_config = get_db_config()

    if args.mode == "base":
        asyncio.run(run_seed_base(_db_config))
    elif args.mode == "large":
        asyncio.run(run_seed_large(_db_config, args.batch_size, args.total_records))


if __name__ == "__main__":
    try:
        load_dotenv()
        initialize_config()
    except ConfigurationError as e:
        print(f"FATAL: Configuration error:\n{e}")
        sys.exit(1)
    main()
