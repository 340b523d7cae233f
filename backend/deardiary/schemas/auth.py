"""
Dear Diary Backend — Auth Schemas
===================================

Request bodies for the /api/auth endpoints and the current-user response.
Like the diary schemas, request fields are optional strings so that rule
violations surface as field-scoped ValidationErrors from deardiary.validation.
"""

import uuid
from typing import Optional

from deardiary.schemas.diary import CamelModel


class RegisterRequest(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None


class LoginRequest(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None
    confirm_password: Optional[str] = None


class UserResponse(CamelModel):
    """The authenticated user. The password hash has no field here."""

    id: uuid.UUID
    username: str


class LoginResponse(CamelModel):
    message: str = "Logged in"
    user: UserResponse
