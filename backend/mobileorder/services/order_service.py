import logging
from datetime import datetime, timezone
from typing import Dict, List, Tuple
from uuid import uuid4

from mobileorder.errors import ErrCode
from mobileorder.models.order import Order, OrderItem, OrderStatus
from mobileorder.repositories.item_repo import ItemRepository
from mobileorder.repositories.order_repo import OrderRepository
from mobileorder.utils.transactions import TransactionManager

log = logging.getLogger("orders")


def _utc_now() -> datetime:
    # order_date is stored as naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _merge_requested_items(requested: List[Dict]) -> Dict[int, int]:
    """{item_id: quantity}; repeated ids are summed, first-seen order kept."""
    merged: Dict[int, int] = {}
    for line in requested:
        item_id = int(line["item_id"])
        qty = int(line["quantity"])
        if qty <= 0:
            raise ErrCode.VALIDATION_FAILED.wrap(
                None, f"quantity must be positive (item_id={item_id})"
            )
        merged[item_id] = merged.get(item_id, 0) + qty
    return merged


def _items_view(details) -> List[Dict]:
    return [{"item_name": d.item_name, "quantity": d.quantity} for d in details]


class OrderService:
    def __init__(self, tx: TransactionManager):
        self.tx = tx

    def _validate_and_prepare_order_items(
        self, items: ItemRepository, shop_id: int, requested: List[Dict]
    ) -> Tuple[int, List[OrderItem]]:
        """
        Check the requested lines against the shop catalog and build line items
        carrying the current catalog price. Nothing is written here; any failure
        leaves the caller with no order to persist.
        """
        if not requested:
            raise ErrCode.VALIDATION_FAILED.wrap(None, "order must contain at least one item")

        quantities = _merge_requested_items(requested)
        catalog = items.validate_and_get_items_for_shop(shop_id, quantities.keys())

        total = 0
        lines: List[OrderItem] = []
        for item_id, qty in quantities.items():
            item = catalog[item_id]
            if not item.is_available:
                raise ErrCode.CONFLICT.wrap(
                    None, f"item '{item.name}' (id={item.id}) is currently unavailable"
                )
            total += item.price * qty
            lines.append(OrderItem(item_id=item_id, quantity=qty, price_at_order=item.price))
        return total, lines

    def create_guest_order(self, shop_id: int, requested: List[Dict]) -> Dict:
        token = uuid4().hex

        def fn(items: ItemRepository, orders: OrderRepository):
            total, lines = self._validate_and_prepare_order_items(items, shop_id, requested)
            order = Order(
                shop_id=shop_id,
                guest_order_token=token,
                total_amount=total,
                status=OrderStatus.COOKING,
                order_date=_utc_now(),
            )
            return orders.create_order(order, lines)

        order = self.tx.with_item_order_transaction(fn)
        log.info("guest order %s created at shop %s (total=%s)", order.id, shop_id, order.total_amount)
        return {
            "order_id": order.id,
            "guest_order_token": token,
            "message": "order accepted; keep the token to claim this order after signing in",
        }

    def create_authenticated_order(self, user_id: int, shop_id: int, requested: List[Dict]) -> Dict:
        def fn(items: ItemRepository, orders: OrderRepository):
            total, lines = self._validate_and_prepare_order_items(items, shop_id, requested)
            order = Order(
                user_id=user_id,
                shop_id=shop_id,
                total_amount=total,
                status=OrderStatus.COOKING,
                order_date=_utc_now(),
            )
            return orders.create_order(order, lines)

        order = self.tx.with_item_order_transaction(fn)
        log.info("order %s created for user %s at shop %s", order.id, user_id, shop_id)
        return {
            "order_id": order.id,
            "shop_id": order.shop_id,
            "total_amount": order.total_amount,
            "status": order.status.value,
            "order_date": order.order_date,
        }

    def get_user_orders(self, user_id: int) -> List[Dict]:
        """Active orders of a user, completed first, then newest first."""

        def fn(orders: OrderRepository):
            rows = orders.find_active_user_orders(user_id)
            details = orders.find_items_by_order_ids([r.order_id for r in rows])
            return rows, details

        rows, details = self.tx.with_order_transaction(fn)
        return [
            {
                "order_id": r.order_id,
                "shop_name": r.shop_name,
                "location": r.location,
                "order_date": r.order_date,
                "total_amount": r.total_amount,
                "status": r.status.value,
                "waiting_count": r.waiting_count,
                "items": _items_view(details.get(r.order_id, [])),
            }
            for r in rows
        ]

    def get_order_status(self, user_id: int, order_id: int) -> Dict:
        def fn(orders: OrderRepository):
            order = orders.find_order_by_id_and_user(order_id, user_id)
            waiting = 0
            if order.status == OrderStatus.COOKING:
                waiting = orders.count_waiting_orders(order.shop_id, order.order_date, order.id)
            return {"order_id": order.id, "status": order.status.value, "waiting_count": waiting}

        return self.tx.with_order_transaction(fn)
