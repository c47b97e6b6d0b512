from typing import List

from fastapi import APIRouter, Depends

from mobileorder.api.deps import get_claims
from mobileorder.db import get_tx_manager
from mobileorder.schemas.auth_schema import Claims
from mobileorder.schemas.order_schema import (
    CreateOrderIn,
    GuestOrderOut,
    OrderOut,
    OrderStatusOut,
    UserOrderOut,
)
from mobileorder.services.order_service import OrderService
from mobileorder.utils.transactions import TransactionManager

router = APIRouter(tags=["orders"])


@router.post(
    "/shops/{shop_id}/guest-orders",
    response_model=GuestOrderOut,
    status_code=201,
    summary="Place an order without an account",
)
def create_guest_order(
    shop_id: int, payload: CreateOrderIn, tx: TransactionManager = Depends(get_tx_manager)
):
    items = [it.model_dump() for it in payload.items]
    return OrderService(tx).create_guest_order(shop_id, items)


@router.post(
    "/shops/{shop_id}/orders", response_model=OrderOut, status_code=201, summary="Place an order"
)
def create_order(
    shop_id: int,
    payload: CreateOrderIn,
    claims: Claims = Depends(get_claims),
    tx: TransactionManager = Depends(get_tx_manager),
):
    items = [it.model_dump() for it in payload.items]
    return OrderService(tx).create_authenticated_order(claims.user_id, shop_id, items)


@router.get("/orders", response_model=List[UserOrderOut], summary="My active orders")
def list_my_orders(
    claims: Claims = Depends(get_claims), tx: TransactionManager = Depends(get_tx_manager)
):
    return OrderService(tx).get_user_orders(claims.user_id)


@router.get("/orders/{order_id}/status", response_model=OrderStatusOut, summary="Poll order status")
def order_status(
    order_id: int,
    claims: Claims = Depends(get_claims),
    tx: TransactionManager = Depends(get_tx_manager),
):
    return OrderService(tx).get_order_status(claims.user_id, order_id)
