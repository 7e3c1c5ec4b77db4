"""
app/services/user_service.py

Purpose: User accounts and authentication

- Registration and login with bcrypt-hashed passwords
- Access token issuing
- Password reset tokens (forgot / reset)
- User lookups for the auth dependency
"""

from typing import Optional, Dict, Any

from pymongo.errors import DuplicateKeyError

from app.db.mongo import get_users_collection
from app.core.config import settings
from app.core.exceptions import (
    AuthenticationError,
    BadRequestError,
    ResourceNotFoundError,
    ValidationError,
)
from app.core.logging import get_logger, LogContext
from app.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    generate_reset_token,
    hash_reset_token,
)
from utils.constants import (
    MSG_USER_EXISTS,
    MSG_INVALID_CREDENTIALS,
    MSG_USER_NOT_FOUND,
    MSG_INVALID_RESET_TOKEN,
    RESET_PASSWORD_PAGE,
)
from utils.time_utils import utcnow, expiry_from_now
from utils.validation_utils import normalize_email, parse_object_id, sanitize_input

logger = get_logger(__name__)


def build_auth_response(user: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shapes the register/login response: public profile plus a fresh token.
    """
    user_id = str(user["_id"])
    return {
        "_id": user_id,
        "name": user.get("name", ""),
        "email": user.get("email", ""),
        "isAdmin": bool(user.get("isAdmin", False)),
        "token": create_access_token(user_id),
    }


def _check_password_length(password: str):
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        raise ValidationError(
            f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters"
        )


async def register_user(name: str, email: str, password: str) -> Dict[str, Any]:
    """
    Creates a new customer account.

    Args:
        name: Display name
        email: Login email (stored lower-cased)
        password: Plain-text password

    Returns:
        Auth response (profile + token)

    Raises:
        BadRequestError: If the email is already registered
    """
    email = normalize_email(email)
    _check_password_length(password)

    users = get_users_collection()

    if await users.find_one({"email": email}):
        raise BadRequestError(MSG_USER_EXISTS)

    now = utcnow()
    user = {
        "name": sanitize_input(name, max_length=100),
        "email": email,
        "password": hash_password(password),
        "isAdmin": False,
        "createdAt": now,
        "updatedAt": now,
    }

    try:
        result = await users.insert_one(user)
    except DuplicateKeyError:
        # Lost a race with a concurrent registration
        raise BadRequestError(MSG_USER_EXISTS)

    user["_id"] = result.inserted_id
    logger.info("New user registered", extra={"user_id": str(result.inserted_id)})

    return build_auth_response(user)


async def authenticate_user(email: str, password: str) -> Dict[str, Any]:
    """
    Verifies credentials and returns the auth response.

    Raises:
        AuthenticationError: On unknown email or wrong password
    """
    users = get_users_collection()
    user = await users.find_one({"email": normalize_email(email)})

    if not user or not verify_password(password, user.get("password")):
        logger.warning("Failed login attempt")
        raise AuthenticationError(MSG_INVALID_CREDENTIALS)

    logger.info("User logged in", extra={"user_id": str(user["_id"])})
    return build_auth_response(user)


async def get_user_by_id(user_id) -> Optional[Dict[str, Any]]:
    """
    Retrieves a user by id, without the password hash.

    Args:
        user_id: ObjectId or its string form

    Returns:
        User document or None if not found / id malformed
    """
    oid = parse_object_id(user_id)
    if oid is None:
        return None

    users = get_users_collection()
    return await users.find_one(
        {"_id": oid},
        {"password": 0, "resetPasswordToken": 0, "resetPasswordExpires": 0}
    )


async def request_password_reset(email: str) -> str:
    """
    Issues a password reset token for an account.

    Only the sha256 digest is stored; the raw token is embedded in the
    returned link. No mail is sent.

    Returns:
        Reset URL for the browser client

    Raises:
        ResourceNotFoundError: If no account uses the email
    """
    users = get_users_collection()
    user = await users.find_one({"email": normalize_email(email)})

    if not user:
        raise ResourceNotFoundError(MSG_USER_NOT_FOUND)

    raw_token, token_hash = generate_reset_token()

    with LogContext(user_id=str(user["_id"])):
        await users.update_one(
            {"_id": user["_id"]},
            {
                "$set": {
                    "resetPasswordToken": token_hash,
                    "resetPasswordExpires": expiry_from_now(settings.RESET_TOKEN_EXPIRES_MINUTES),
                    "updatedAt": utcnow(),
                }
            }
        )
        logger.info("Password reset requested")

    base_url = settings.APP_URL.rstrip("/")
    return f"{base_url}/{RESET_PASSWORD_PAGE}?token={raw_token}"


async def reset_password(token: str, password: str) -> bool:
    """
    Replaces a password using a reset token.

    The token is single-use: matching and clearing happen in one
    ``find_one_and_update`` so a replayed token finds nothing.

    Raises:
        BadRequestError: If the token is unknown or expired
    """
    _check_password_length(password)

    users = get_users_collection()
    user = await users.find_one_and_update(
        {
            "resetPasswordToken": hash_reset_token(token),
            "resetPasswordExpires": {"$gt": utcnow()},
        },
        {
            "$set": {
                "password": hash_password(password),
                "updatedAt": utcnow(),
            },
            "$unset": {"resetPasswordToken": "", "resetPasswordExpires": ""},
        }
    )

    if not user:
        raise BadRequestError(MSG_INVALID_RESET_TOKEN)

    logger.info("Password reset completed", extra={"user_id": str(user["_id"])})
    return True


async def set_admin(email: str, is_admin: bool = True) -> bool:
    """
    Grants or revokes admin rights for an account.

    Returns:
        True if a user was found
    """
    users = get_users_collection()
    result = await users.update_one(
        {"email": normalize_email(email)},
        {"$set": {"isAdmin": is_admin, "updatedAt": utcnow()}}
    )
    return result.matched_count > 0
