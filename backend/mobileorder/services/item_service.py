from typing import Dict, List

from mobileorder.repositories.item_repo import ItemRepository
from mobileorder.utils.transactions import TransactionManager


class ItemService:
    def __init__(self, tx: TransactionManager):
        self.tx = tx

    def get_item_list(self, shop_id: int) -> List[Dict]:
        items = self.tx.with_transaction(lambda repo: repo.get_item_list(shop_id), ItemRepository)
        return [
            {
                "item_id": it.id,
                "item_name": it.name,
                "description": it.description,
                "price": it.price,
                "is_available": it.is_available,
            }
            for it in items
        ]

    def update_item_availability(self, shop_id: int, item_id: int, is_available: bool):
        self.tx.with_transaction(
            lambda repo: repo.update_item_availability(shop_id, item_id, is_available),
            ItemRepository,
        )
