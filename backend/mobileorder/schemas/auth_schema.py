# backend/mobileorder/schemas/auth_schema.py
from typing import Optional

from pydantic import BaseModel

from mobileorder.models.user import UserRole


class AuthIn(BaseModel):
    email: str
    guest_order_token: Optional[str] = None


class UserOut(BaseModel):
    user_id: int
    email: str
    role: UserRole


class AuthOut(BaseModel):
    token: str
    user: UserOut


class Claims(BaseModel):
    """Identity carried by a bearer token."""

    user_id: int
    role: UserRole
    shop_id: Optional[int] = None
