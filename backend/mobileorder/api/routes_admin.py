from fastapi import APIRouter, Depends, Response

from mobileorder.api.deps import authorize_shop_access, require_admin
from mobileorder.db import get_tx_manager
from mobileorder.schemas.auth_schema import Claims
from mobileorder.schemas.item_schema import ItemAvailabilityIn
from mobileorder.schemas.order_schema import AdminOrderPageOut, StatusChangeOut
from mobileorder.services.admin_service import AdminService
from mobileorder.services.item_service import ItemService
from mobileorder.utils.transactions import TransactionManager

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/shops/{shop_id}/orders",
    response_model=AdminOrderPageOut,
    summary="Cooking and completed orders of the shop",
)
def list_shop_orders(
    shop_id: int,
    claims: Claims = Depends(require_admin),
    tx: TransactionManager = Depends(get_tx_manager),
):
    authorize_shop_access(claims, shop_id)
    return AdminService(tx).get_admin_order_page(shop_id)


@router.patch(
    "/orders/{order_id}/status",
    response_model=StatusChangeOut,
    summary="Advance an order to its next status",
)
def advance_status(
    order_id: int,
    claims: Claims = Depends(require_admin),
    tx: TransactionManager = Depends(get_tx_manager),
):
    return AdminService(tx).advance_order_status(claims.shop_id, order_id)


@router.delete("/orders/{order_id}", status_code=204, summary="Delete an order")
def delete_order(
    order_id: int,
    claims: Claims = Depends(require_admin),
    tx: TransactionManager = Depends(get_tx_manager),
):
    AdminService(tx).delete_order(claims.shop_id, order_id)
    return Response(status_code=204)


@router.patch("/items/{item_id}/availability", status_code=204, summary="Toggle item availability")
def update_availability(
    item_id: int,
    payload: ItemAvailabilityIn,
    claims: Claims = Depends(require_admin),
    tx: TransactionManager = Depends(get_tx_manager),
):
    ItemService(tx).update_item_availability(claims.shop_id, item_id, payload.is_available)
    return Response(status_code=204)
