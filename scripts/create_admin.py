"""
Grant (or revoke) admin rights for a registered user.

Usage:
    python scripts/create_admin.py owner@example.com
    python scripts/create_admin.py owner@example.com --revoke
"""

import argparse
import asyncio
import sys
from pathlib import Path
from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).parent.parent))

load_dotenv()

import logging

from app.db.mongo import connect_to_mongo, close_mongo_connection
from app.services.user_service import set_admin

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


async def main(email: str, revoke: bool) -> int:
    await connect_to_mongo()
    try:
        found = await set_admin(email, is_admin=not revoke)
    finally:
        await close_mongo_connection()

    if not found:
        logger.error(f"❌ No user registered with {email}")
        return 1

    action = "revoked from" if revoke else "granted to"
    logger.info(f"✅ Admin rights {action} {email}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("email")
    parser.add_argument("--revoke", action="store_true")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.email, args.revoke)))
