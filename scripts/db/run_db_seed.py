# scripts/db/run_db_seed.py
from pipeline_docs.db import DbManager
from common.config import get_config, initialize_config
from dotenv import load_dotenv
from .data_template import DEFAULT_DATA_TEMPLATE
from .seed_db import seed_db


async def main():
    load_dotenv()
    initialize_config()
    config = get_config()

    _db_config = config.database
    if not _db_config:
        raise RuntimeError("Database configuration required")

    db_manager = DbManager.from_config(_db_config)
    await db_manager.verify_connection()

    counts = await seed_db(db_manager=db_manager, data_template=DEFAULT_DATA_TEMPLATE)
    print(f"Seeded {sum(counts.values())} total records")

    await db_manager.dispose()


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
