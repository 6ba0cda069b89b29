from typing import Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field
from auctionhouse.clients.couchbase import BaseModelCouchbase, BaseCouchbaseEntityData, UtcDatetime

AuctionState = Literal["queued", "active", "ended", "voided", "done"]


class SettlementIntent(BaseModel):
    """Terms of the exchange, frozen on the auction before any ledger leg runs."""
    seller_id: str
    winner_id: str
    item: str
    quantity: int
    price: int
    started_at: UtcDatetime


class AuctionData(BaseCouchbaseEntityData):
    # Listing (immutable after creation)
    seller_id: str
    seller_name: str  # snapshot taken at enqueue time
    item: str
    quantity: int = Field(gt=0)
    min_bid: int = Field(ge=0)

    # Schedule, set on activation; end_time may be pushed out by anti-snipe
    start_time: Optional[UtcDatetime] = None
    end_time: Optional[UtcDatetime] = None
    extensions_count: int = 0

    # Current high bid
    bid: Optional[int] = None
    winner_id: Optional[str] = None
    winner_name: Optional[str] = None  # snapshot taken at bid time

    voided: bool = False
    void_reason: Optional[str] = None

    settlement: Optional[SettlementIntent] = None
    settled_at: Optional[UtcDatetime] = None
    done: bool = False

    def state(self, now: datetime) -> AuctionState:
        if self.voided:
            return "voided"
        if self.done:
            return "done"
        if self.start_time is None:
            return "queued"
        if self.end_time is not None and self.end_time >= now:
            return "active"
        return "ended"


class Auction(BaseModelCouchbase[AuctionData]):
    _collection_name = "auctions"
