import logging
from typing import Dict, List

from mobileorder.errors import ErrCode
from mobileorder.models.order import OrderStatus
from mobileorder.repositories.order_repo import OrderRepository
from mobileorder.utils.transactions import TransactionManager

log = logging.getLogger("admin")

# legal one-step transitions; HANDED is terminal
NEXT_STATUS = {
    OrderStatus.COOKING: OrderStatus.COMPLETED,
    OrderStatus.COMPLETED: OrderStatus.HANDED,
}


class AdminService:
    def __init__(self, tx: TransactionManager):
        self.tx = tx

    def _orders_with_items(self, orders: OrderRepository, shop_id: int, statuses) -> List[Dict]:
        rows = orders.find_shop_orders_by_statuses(shop_id, statuses)
        details = orders.find_items_by_order_ids([r.order_id for r in rows])
        return [
            {
                "order_id": r.order_id,
                "customer_email": r.customer_email,
                "order_date": r.order_date,
                "total_amount": r.total_amount,
                "status": r.status.value,
                "items": [
                    {"item_name": d.item_name, "quantity": d.quantity}
                    for d in details.get(r.order_id, [])
                ],
            }
            for r in rows
        ]

    def get_cooking_orders(self, shop_id: int) -> List[Dict]:
        return self.tx.with_order_transaction(
            lambda orders: self._orders_with_items(orders, shop_id, [OrderStatus.COOKING])
        )

    def get_completed_orders(self, shop_id: int) -> List[Dict]:
        return self.tx.with_order_transaction(
            lambda orders: self._orders_with_items(orders, shop_id, [OrderStatus.COMPLETED])
        )

    def get_admin_order_page(self, shop_id: int) -> Dict:
        """Cooking and completed lists read in one transaction."""

        def fn(orders: OrderRepository):
            listed = self._orders_with_items(
                orders, shop_id, [OrderStatus.COOKING, OrderStatus.COMPLETED]
            )
            return {
                "cooking_orders": [o for o in listed if o["status"] == OrderStatus.COOKING.value],
                "completed_orders": [
                    o for o in listed if o["status"] == OrderStatus.COMPLETED.value
                ],
            }

        return self.tx.with_order_transaction(fn)

    def advance_order_status(self, shop_id: int, order_id: int) -> Dict:
        """
        Move an order one step along cooking -> completed -> handed.

        An order of another shop is reported exactly like a missing one.
        """

        def fn(orders: OrderRepository):
            order = orders.find_order_by_id_and_shop_id(order_id, shop_id)
            current = order.status
            nxt = NEXT_STATUS.get(current)
            if nxt is None:
                raise ErrCode.CONFLICT.wrap(
                    None, f"order status cannot be advanced from '{current.value}'"
                )
            orders.update_order_status(order_id, shop_id, nxt, expected_status=current)
            return nxt

        new_status = self.tx.with_order_transaction(fn)
        log.info("order %s at shop %s advanced to %s", order_id, shop_id, new_status.value)
        return {"order_id": order_id, "status": new_status.value}

    def delete_order(self, shop_id: int, order_id: int):
        self.tx.with_order_transaction(
            lambda orders: orders.delete_order_by_id_and_shop_id(order_id, shop_id)
        )
        log.info("order %s at shop %s deleted", order_id, shop_id)
