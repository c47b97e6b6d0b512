from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mobileorder.errors import ErrCode
from mobileorder.models.shop import Shop, shop_admins


class ShopRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_shop_id_by_admin_id(self, user_id: int) -> int:
        """An admin account must staff exactly one shop."""
        try:
            rows = (
                self.db.query(Shop.id)
                .join(shop_admins, shop_admins.c.shop_id == Shop.id)
                .filter(shop_admins.c.admin_user_id == user_id)
                .all()
            )
        except SQLAlchemyError as e:
            raise ErrCode.GET_DATA_FAILED.wrap(e, "failed to load admin shop")

        if not rows:
            raise ErrCode.NO_DATA.wrap(None, "shop not found for the given admin user")
        if len(rows) > 1:
            raise ErrCode.UNKNOWN.wrap(
                None, f"data inconsistency: user {user_id} is associated with multiple shops"
            )
        return rows[0][0]
