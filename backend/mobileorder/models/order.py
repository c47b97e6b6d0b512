import enum
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from mobileorder.db import Base


def _utcnow():
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    COOKING = "cooking"
    COMPLETED = "completed"
    HANDED = "handed"


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        # exactly one owner: an account or a guest token
        CheckConstraint(
            "(user_id IS NULL) <> (guest_order_token IS NULL)",
            name="ck_orders_single_owner",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    guest_order_token = Column(String(64), unique=True, nullable=True)
    total_amount = Column(Integer, nullable=False, default=0)
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.COOKING, index=True)
    order_date = Column(DateTime, default=_utcnow, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan"
    )
    shop = relationship("Shop")
    user = relationship("User")


class OrderItem(Base):
    __tablename__ = "order_item"
    order_id = Column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), primary_key=True
    )
    item_id = Column(Integer, ForeignKey("items.id"), primary_key=True)
    quantity = Column(Integer, nullable=False)
    price_at_order = Column(Integer, nullable=False)  # frozen catalog price

    order = relationship("Order", back_populates="items")
    item = relationship("Item")
