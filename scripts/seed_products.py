"""
Seed the product catalog with the default products.

Deletes every existing product first:
    python scripts/seed_products.py
"""

import asyncio
import sys
from pathlib import Path
from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).parent.parent))

load_dotenv()

import logging

from app.db.mongo import connect_to_mongo, close_mongo_connection
from app.services.product_service import replace_catalog
from utils.constants import DEFAULT_PRODUCTS

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


async def seed_products():
    await connect_to_mongo()
    try:
        logger.info("Database connected!")
        count = await replace_catalog(DEFAULT_PRODUCTS)
        logger.info(f"✅ Products seeded successfully! ({count} products)")
    except Exception as e:
        logger.error(f"❌ Error seeding products: {e}")
        raise
    finally:
        await close_mongo_connection()


if __name__ == "__main__":
    asyncio.run(seed_products())
