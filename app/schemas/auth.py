"""
app/schemas/auth.py

Purpose: Authentication request/response schemas

- Registration and login bodies
- Password reset flow bodies
- Auth response returned to the browser client (stored in local storage)
"""

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Asha",
                "email": "asha@example.com",
                "password": "secret123"
            }
        }


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    """
    Returned by register and login. Field names follow the browser
    client, which reads ``_id`` and ``isAdmin``.
    """
    id: str = Field(..., alias="_id")
    name: str
    email: str
    isAdmin: bool = False
    token: str

    class Config:
        populate_by_name = True


class ForgotPasswordResponse(BaseModel):
    message: str
    resetUrl: str
