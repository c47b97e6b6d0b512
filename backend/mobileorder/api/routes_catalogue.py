from typing import List

from fastapi import APIRouter, Depends

from mobileorder.db import get_tx_manager
from mobileorder.schemas.item_schema import ItemOut
from mobileorder.services.item_service import ItemService
from mobileorder.utils.transactions import TransactionManager

router = APIRouter(tags=["catalogue"])


@router.get("/shops/{shop_id}/items", response_model=List[ItemOut], summary="List shop items")
def list_items(shop_id: int, tx: TransactionManager = Depends(get_tx_manager)):
    return ItemService(tx).get_item_list(shop_id)
