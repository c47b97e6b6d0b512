# backend/mobileorder/schemas/order_schema.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class OrderItemIn(BaseModel):
    item_id: int
    quantity: int = Field(..., gt=0)


class CreateOrderIn(BaseModel):
    items: List[OrderItemIn] = Field(..., min_length=1)


class GuestOrderOut(BaseModel):
    order_id: int
    guest_order_token: str
    message: str


class OrderOut(BaseModel):
    order_id: int
    shop_id: int
    total_amount: int
    status: str
    order_date: datetime


class ItemDetailOut(BaseModel):
    item_name: str
    quantity: int


class UserOrderOut(BaseModel):
    order_id: int
    shop_name: str
    location: Optional[str] = None
    order_date: datetime
    total_amount: int
    status: str
    waiting_count: int
    items: List[ItemDetailOut] = []


class OrderStatusOut(BaseModel):
    order_id: int
    status: str
    waiting_count: int


class AdminOrderOut(BaseModel):
    order_id: int
    customer_email: Optional[str] = None
    order_date: datetime
    total_amount: int
    status: str
    items: List[ItemDetailOut] = []


class AdminOrderPageOut(BaseModel):
    cooking_orders: List[AdminOrderOut]
    completed_orders: List[AdminOrderOut]


class StatusChangeOut(BaseModel):
    order_id: int
    status: str
