"""
app/db/indexes.py

Purpose: Database index management

- Creates unique and performance indexes
- Enforces one cart per user and unique emails
- Supports payment lookups by gateway ids
"""

from pymongo import ASCENDING, DESCENDING

from app.db.mongo import (
    get_users_collection,
    get_products_collection,
    get_carts_collection,
    get_orders_collection,
)
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes():
    """
    Creates all necessary database indexes for optimal performance.
    This function is idempotent - safe to run multiple times.
    """
    try:
        users = get_users_collection()
        products = get_products_collection()
        carts = get_carts_collection()
        orders = get_orders_collection()

        logger.info("Creating database indexes...")

        # ==============================================
        # USERS COLLECTION INDEXES
        # ==============================================

        await users.create_index("email", unique=True, name="email_unique")
        logger.debug("Created unique index on users.email")

        await users.create_index(
            "resetPasswordToken",
            sparse=True,
            name="reset_token_idx"
        )
        logger.debug("Created sparse index on users.resetPasswordToken")

        # ==============================================
        # PRODUCTS COLLECTION INDEXES
        # ==============================================

        await products.create_index("category", name="category_idx")
        logger.debug("Created index on products.category")

        # Order items may reference products by name
        await products.create_index("name", name="name_idx")
        logger.debug("Created index on products.name")

        await products.create_index([("createdAt", DESCENDING)], name="product_created_idx")
        logger.debug("Created index on products.createdAt")

        # ==============================================
        # CARTS COLLECTION INDEXES
        # ==============================================

        # Upserts rely on this to never create a second cart per user
        await carts.create_index("user", unique=True, name="cart_user_unique")
        logger.debug("Created unique index on carts.user")

        # ==============================================
        # ORDERS COLLECTION INDEXES
        # ==============================================

        await orders.create_index(
            [("user", ASCENDING), ("createdAt", DESCENDING)],
            name="user_orders_idx"
        )
        logger.debug("Created compound index on orders.user + createdAt")

        await orders.create_index(
            "gatewayOrderId",
            unique=True,
            sparse=True,
            name="gateway_order_unique"
        )
        logger.debug("Created unique sparse index on orders.gatewayOrderId")

        await orders.create_index(
            "paymentResult.id",
            sparse=True,
            name="payment_id_idx"
        )
        logger.debug("Created sparse index on orders.paymentResult.id")

        logger.info("✅ All database indexes created successfully")

        user_indexes = await users.index_information()
        product_indexes = await products.index_information()
        cart_indexes = await carts.index_information()
        order_indexes = await orders.index_information()

        logger.info(
            f"Index summary: Users={len(user_indexes)}, "
            f"Products={len(product_indexes)}, "
            f"Carts={len(cart_indexes)}, "
            f"Orders={len(order_indexes)}"
        )

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise


if __name__ == "__main__":
    """
    Run this script directly to create indexes manually.
    """
    import asyncio
    from app.db.mongo import connect_to_mongo, close_mongo_connection

    async def main():
        await connect_to_mongo()
        await create_indexes()
        await close_mongo_connection()

    asyncio.run(main())
