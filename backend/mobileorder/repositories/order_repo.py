from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, case, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from mobileorder.errors import ErrCode
from mobileorder.models.item import Item
from mobileorder.models.order import Order, OrderItem, OrderStatus
from mobileorder.models.shop import Shop
from mobileorder.models.user import User

ACTIVE_STATUSES = (OrderStatus.COOKING, OrderStatus.COMPLETED)


@dataclass
class ItemDetail:
    item_name: str
    quantity: int


@dataclass
class ActiveOrderRow:
    order_id: int
    shop_name: str
    location: Optional[str]
    order_date: datetime
    total_amount: int
    status: OrderStatus
    waiting_count: int


@dataclass
class AdminOrderRow:
    order_id: int
    customer_email: Optional[str]
    order_date: datetime
    total_amount: int
    status: OrderStatus


def _ahead_of(other, order):
    """`other` is queued before `order` by the (order_date, id) key."""
    return or_(
        other.order_date < order.order_date,
        and_(other.order_date == order.order_date, other.id < order.id),
    )


class OrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: Order, lines: List[OrderItem]) -> Order:
        """Insert the order, then its line items; the order id is assigned on flush."""
        try:
            self.db.add(order)
            self.db.flush()
            for line in lines:
                line.order_id = order.id
            self.db.add_all(lines)
            self.db.flush()
        except SQLAlchemyError as e:
            raise ErrCode.INSERT_DATA_FAILED.wrap(e, "failed to create order")
        return order

    def update_owner_by_guest_token(self, guest_token: str, user_id: int):
        """
        Hand a guest order over to `user_id`. The token is cleared in the same
        statement, so only one link can ever succeed for a given token.
        """
        try:
            updated = (
                self.db.query(Order)
                .filter(Order.guest_order_token == guest_token, Order.user_id.is_(None))
                .update(
                    {
                        Order.user_id: user_id,
                        Order.guest_order_token: None,
                        Order.updated_at: datetime.now(timezone.utc),
                    },
                    synchronize_session=False,
                )
            )
        except SQLAlchemyError as e:
            raise ErrCode.UPDATE_DATA_FAILED.wrap(e, "failed to link guest order")
        if updated == 0:
            raise ErrCode.NO_DATA.wrap(None, "no guest order found for this token")

    def find_active_user_orders(self, user_id: int) -> List[ActiveOrderRow]:
        """
        Cooking and completed orders of a user, completed first, then newest first.
        Waiting count is computed per cooking order; completed orders report 0.
        """
        other = aliased(Order)
        waiting = (
            self.db.query(func.count(other.id))
            .filter(
                other.shop_id == Order.shop_id,
                other.status == OrderStatus.COOKING,
                _ahead_of(other, Order),
            )
            .correlate(Order)
            .scalar_subquery()
        )
        try:
            rows = (
                self.db.query(
                    Order.id,
                    Shop.name,
                    Shop.location,
                    Order.order_date,
                    Order.total_amount,
                    Order.status,
                    case((Order.status == OrderStatus.COOKING, waiting), else_=0),
                )
                .join(Shop, Shop.id == Order.shop_id)
                .filter(Order.user_id == user_id, Order.status.in_(ACTIVE_STATUSES))
                .order_by(
                    case((Order.status == OrderStatus.COMPLETED, 0), else_=1),
                    Order.order_date.desc(),
                    Order.id.desc(),
                )
                .all()
            )
        except SQLAlchemyError as e:
            raise ErrCode.GET_DATA_FAILED.wrap(e, "failed to load active orders")
        return [ActiveOrderRow(*row) for row in rows]

    def find_items_by_order_ids(self, order_ids: Iterable[int]) -> Dict[int, List[ItemDetail]]:
        """One query for all orders; orders without line items are absent from the map."""
        ids = list(order_ids)
        result: Dict[int, List[ItemDetail]] = {}
        if not ids:
            return result
        try:
            rows = (
                self.db.query(OrderItem.order_id, Item.name, OrderItem.quantity)
                .join(Item, Item.id == OrderItem.item_id)
                .filter(OrderItem.order_id.in_(ids))
                .order_by(OrderItem.order_id, OrderItem.item_id)
                .all()
            )
        except SQLAlchemyError as e:
            raise ErrCode.GET_DATA_FAILED.wrap(e, "failed to load order items")
        for order_id, name, qty in rows:
            result.setdefault(order_id, []).append(ItemDetail(item_name=name, quantity=qty))
        return result

    def find_order_by_id_and_user(self, order_id: int, user_id: int) -> Order:
        try:
            order = (
                self.db.query(Order)
                .filter(Order.id == order_id, Order.user_id == user_id)
                .first()
            )
        except SQLAlchemyError as e:
            raise ErrCode.GET_DATA_FAILED.wrap(e, "failed to load order")
        if not order:
            raise ErrCode.NO_DATA.wrap(None, "order not found")
        return order

    def count_waiting_orders(self, shop_id: int, order_date: datetime, order_id: int) -> int:
        """Cooking orders at `shop_id` queued ahead of (order_date, order_id)."""
        ahead = or_(
            Order.order_date < order_date,
            and_(Order.order_date == order_date, Order.id < order_id),
        )
        try:
            return (
                self.db.query(func.count(Order.id))
                .filter(
                    Order.shop_id == shop_id,
                    Order.status == OrderStatus.COOKING,
                    ahead,
                )
                .scalar()
                or 0
            )
        except SQLAlchemyError as e:
            raise ErrCode.GET_DATA_FAILED.wrap(e, "failed to count waiting orders")

    def find_shop_orders_by_statuses(
        self, shop_id: int, statuses: Iterable[OrderStatus]
    ) -> List[AdminOrderRow]:
        wanted = list(statuses)
        if not wanted:
            return []
        try:
            rows = (
                self.db.query(
                    Order.id,
                    User.email,
                    Order.order_date,
                    Order.total_amount,
                    Order.status,
                )
                .outerjoin(User, User.id == Order.user_id)
                .filter(Order.shop_id == shop_id, Order.status.in_(wanted))
                .order_by(Order.order_date, Order.id)
                .all()
            )
        except SQLAlchemyError as e:
            raise ErrCode.GET_DATA_FAILED.wrap(e, "failed to load shop orders")
        return [AdminOrderRow(*row) for row in rows]

    def find_order_by_id_and_shop_id(self, order_id: int, shop_id: int) -> Order:
        """A wrong shop and a missing id are the same NO_DATA to the caller."""
        try:
            order = (
                self.db.query(Order)
                .filter(Order.id == order_id, Order.shop_id == shop_id)
                .first()
            )
        except SQLAlchemyError as e:
            raise ErrCode.GET_DATA_FAILED.wrap(e, "failed to load order")
        if not order:
            raise ErrCode.NO_DATA.wrap(None, "order not found or permission denied")
        return order

    def update_order_status(
        self,
        order_id: int,
        shop_id: int,
        new_status: OrderStatus,
        expected_status: OrderStatus,
    ):
        """
        Compare-and-swap on status. Zero rows affected means the order vanished,
        moved shop (NO_DATA) or was advanced concurrently (CONFLICT).
        """
        try:
            updated = (
                self.db.query(Order)
                .filter(
                    Order.id == order_id,
                    Order.shop_id == shop_id,
                    Order.status == expected_status,
                )
                .update(
                    {Order.status: new_status, Order.updated_at: datetime.now(timezone.utc)},
                    synchronize_session=False,
                )
            )
        except SQLAlchemyError as e:
            raise ErrCode.UPDATE_DATA_FAILED.wrap(e, "failed to update order status")
        if updated:
            return

        try:
            current = (
                self.db.query(Order.status)
                .filter(Order.id == order_id, Order.shop_id == shop_id)
                .scalar()
            )
        except SQLAlchemyError as e:
            raise ErrCode.GET_DATA_FAILED.wrap(e, "failed to load order")
        if current is None:
            raise ErrCode.NO_DATA.wrap(None, "order not found or permission denied")
        raise ErrCode.CONFLICT.wrap(
            None, f"order status changed concurrently (current={current.value})"
        )

    def delete_order_by_id_and_shop_id(self, order_id: int, shop_id: int):
        order = self.find_order_by_id_and_shop_id(order_id, shop_id)
        try:
            # line items go with the order (delete-orphan cascade)
            self.db.delete(order)
            self.db.flush()
        except SQLAlchemyError as e:
            raise ErrCode.DELETE_DATA_FAILED.wrap(e, "failed to delete order")
