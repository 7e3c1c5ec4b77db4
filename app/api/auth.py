"""
app/api/auth.py

Purpose: Account endpoints

- Register / login (returns bearer token)
- Forgot / reset password
- Current user profile
"""

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user
from app.core.logging import get_logger
from app.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    AuthResponse,
    ForgotPasswordResponse,
)
from app.schemas.response import MessageResponse
from app.services import user_service
from utils.constants import MSG_RESET_LINK_SENT, MSG_RESET_SUCCESS
from utils.document_utils import serialize_user

logger = get_logger(__name__)
router = APIRouter()


@router.post("/register", status_code=201, response_model=AuthResponse, response_model_by_alias=True)
async def register(body: RegisterRequest):
    """Register a new customer account."""
    return await user_service.register_user(body.name, body.email, body.password)


@router.post("/login", response_model=AuthResponse, response_model_by_alias=True)
async def login(body: LoginRequest):
    """Exchange email and password for a bearer token."""
    return await user_service.authenticate_user(body.email, body.password)


@router.post("/forgot-password", response_model=ForgotPasswordResponse)
async def forgot_password(body: ForgotPasswordRequest):
    """
    Issue a password reset link.

    Mail delivery is not wired up; the link is returned in the response.
    """
    reset_url = await user_service.request_password_reset(body.email)
    return {"message": MSG_RESET_LINK_SENT, "resetUrl": reset_url}


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(body: ResetPasswordRequest):
    await user_service.reset_password(body.token, body.password)
    return {"message": MSG_RESET_SUCCESS}


@router.get("/me")
async def me(user=Depends(get_current_user)):
    return serialize_user(user)
