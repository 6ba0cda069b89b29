from typing import Dict
from pydantic import Field
from auctionhouse.clients.couchbase import BaseModelCouchbase, BaseCouchbaseEntityData, UtcDatetime


def inventory_key(player_id: str, item: str) -> str:
    """One document per (player, item) pair."""
    return f"{player_id}::{item}"


class InventoryData(BaseCouchbaseEntityData):
    player_id: str
    item: str
    quantity: int = Field(default=0, ge=0)
    applied_transfers: Dict[str, UtcDatetime] = {}


class Inventory(BaseModelCouchbase[InventoryData]):
    _collection_name = "inventory"
