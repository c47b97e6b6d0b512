# backend/mobileorder/schemas/item_schema.py
from typing import Optional

from pydantic import BaseModel


class ItemOut(BaseModel):
    item_id: int
    item_name: str
    description: Optional[str] = None
    price: int
    is_available: bool


class ItemAvailabilityIn(BaseModel):
    is_available: bool
