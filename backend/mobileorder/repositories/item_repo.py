from datetime import datetime, timezone
from typing import Dict, Iterable, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mobileorder.errors import ErrCode
from mobileorder.models.item import Item
from mobileorder.models.shop import shop_item


class ItemRepository:
    def __init__(self, db: Session):
        self.db = db

    def validate_and_get_items_for_shop(
        self, shop_id: int, item_ids: Iterable[int]
    ) -> Dict[int, Item]:
        """
        Return {item_id: Item} for the requested ids, all of which must belong to
        `shop_id`. A single unknown or foreign id fails the whole request with
        BAD_PARAM; which ids were wrong is not reported.
        """
        wanted = set(item_ids)
        if not wanted:
            return {}

        try:
            items = (
                self.db.query(Item)
                .join(shop_item, shop_item.c.item_id == Item.id)
                .filter(shop_item.c.shop_id == shop_id, Item.id.in_(wanted))
                .all()
            )
        except SQLAlchemyError as e:
            raise ErrCode.GET_DATA_FAILED.wrap(e, "failed to load shop items")

        if len(items) != len(wanted):
            raise ErrCode.BAD_PARAM.wrap(
                None, "request contains items that do not exist or do not belong to the shop"
            )
        return {it.id: it for it in items}

    def get_item_list(self, shop_id: int) -> List[Item]:
        try:
            return (
                self.db.query(Item)
                .join(shop_item, shop_item.c.item_id == Item.id)
                .filter(shop_item.c.shop_id == shop_id)
                .order_by(Item.id)
                .all()
            )
        except SQLAlchemyError as e:
            raise ErrCode.GET_DATA_FAILED.wrap(e, "failed to load item list")

    def update_item_availability(self, shop_id: int, item_id: int, is_available: bool):
        in_shop = select(shop_item.c.item_id).where(shop_item.c.shop_id == shop_id)
        try:
            updated = (
                self.db.query(Item)
                .filter(Item.id == item_id, Item.id.in_(in_shop))
                .update(
                    {
                        Item.is_available: is_available,
                        Item.updated_at: datetime.now(timezone.utc),
                    },
                    synchronize_session=False,
                )
            )
        except SQLAlchemyError as e:
            raise ErrCode.UPDATE_DATA_FAILED.wrap(e, "failed to update item availability")

        if updated == 0:
            raise ErrCode.NO_DATA.wrap(None, "item not found in this shop")
