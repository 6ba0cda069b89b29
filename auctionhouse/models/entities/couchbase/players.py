from typing import Dict
from pydantic import Field
from auctionhouse.clients.couchbase import BaseModelCouchbase, BaseCouchbaseEntityData, UtcDatetime


class PlayerData(BaseCouchbaseEntityData):
    name: str
    coins: int = Field(default=0, ge=0)
    # Settlement legs applied to this balance, "<auction_id>:<leg>" -> applied at
    applied_transfers: Dict[str, UtcDatetime] = {}


class Player(BaseModelCouchbase[PlayerData]):
    _collection_name = "players"
