from typing import List, Optional
from pydantic import BaseModel
from auctionhouse.clients.couchbase import BaseModelCouchbase, BaseCouchbaseEntityData, UtcDatetime

LANE_KEY = "lane"


class QueueEntry(BaseModel):
    auction_id: str
    created_at: UtcDatetime


class AuctionLaneData(BaseCouchbaseEntityData):
    """The single auction lane: the waiting queue and which auction holds the floor."""
    queue: List[QueueEntry] = []
    current_auction_id: Optional[str] = None
    previous_auction_id: Optional[str] = None


class AuctionLane(BaseModelCouchbase[AuctionLaneData]):
    _collection_name = "auction_lane"
