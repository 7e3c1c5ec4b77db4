"""
utils/constants.py

Purpose: Centralized static content

- Client-facing messages returned by the API
- Default catalog used by the seed script
- Reusable enums and constants

(Prevents hardcoding across the codebase)
"""

# ============================================================
# AUTH
# ============================================================

MSG_USER_EXISTS = "User already exists"
MSG_INVALID_CREDENTIALS = "Invalid email or password"
MSG_USER_NOT_FOUND = "User not found"
MSG_RESET_LINK_SENT = "Password reset link sent"
MSG_INVALID_RESET_TOKEN = "Invalid or expired token"
MSG_RESET_SUCCESS = "Password reset successful"
MSG_NO_TOKEN = "Not authorized, no token"
MSG_TOKEN_FAILED = "Not authorized, token failed"
MSG_NOT_ADMIN = "Not authorized as an admin"

RESET_PASSWORD_PAGE = "reset-password.html"

# ============================================================
# CATALOG
# ============================================================

MSG_PRODUCT_NOT_FOUND = "Product not found"
MSG_INVALID_PRODUCT_ID = "Invalid product id"
MSG_PRODUCT_REMOVED = "Product removed"
MSG_UNSUPPORTED_IMAGE = "Only JPEG, PNG, GIF or WEBP images are accepted"
MSG_IMAGE_TOO_LARGE = "Image exceeds the maximum upload size"

UPLOADS_URL_PATH = "/uploads"
DEFAULT_CATEGORY = "General"

# ============================================================
# CART
# ============================================================

MSG_CART_NOT_FOUND = "Cart not found"
MSG_ITEM_NOT_IN_CART = "Item not in cart"
MSG_CART_CLEARED = "Cart cleared"

# ============================================================
# ORDERS & PAYMENTS
# ============================================================

MSG_NO_ORDER_ITEMS = "No order items"
MSG_ORDER_NOT_FOUND = "Order not found"
MSG_NOT_ORDER_OWNER = "Not authorized to view this order"
MSG_INVALID_ORDER_ID = "Invalid order id"
MSG_INVALID_SIGNATURE = "Invalid payment signature"
MSG_ALREADY_PAID = "Order already paid with a different payment"
MSG_GATEWAY_UNAVAILABLE = "Payment gateway is not configured"

PAYMENT_METHOD_RAZORPAY = "razorpay"

# Gateway webhook events that mean the money has been captured
CAPTURE_EVENTS = ("payment.captured", "order.paid")

# ============================================================
# SEED DATA
# ============================================================

DEFAULT_PRODUCTS = [
    {
        "name": "Pink Flower",
        "description": "Beautiful handmade pink flower made with love",
        "price": 199,
        "image": "assets/p1.jpeg",
        "category": "Flower",
        "inStock": True,
    },
    {
        "name": "Bear Keychain",
        "description": "Adorable bear keychain - perfect for keys or bags",
        "price": 249,
        "image": "assets/p2.jpeg",
        "category": "Keychain",
        "inStock": True,
    },
    {
        "name": "Flower Bouquet",
        "description": "Colorful flower bouquet - a perfect gift",
        "price": 299,
        "image": "assets/p3.jpeg",
        "category": "Bouquet",
        "inStock": True,
    },
    {
        "name": "Custom Gift",
        "description": "Custom made gift - personalize your order",
        "price": 349,
        "image": "assets/p5.jpeg",
        "category": "Gift",
        "inStock": True,
    },
    {
        "name": "Colorful Tulips",
        "description": "Beautiful colorful tulips arrangement",
        "price": 399,
        "image": "assets/p6.jpeg",
        "category": "Flower",
        "inStock": True,
    },
]
