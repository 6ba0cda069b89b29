"""
Auction records and the single auction lane.

The lane document is the one place that knows which auction holds the floor
and which are waiting, so "at most one current auction" is enforced here with
CAS rather than left to scheduler discipline.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Optional, Tuple, Union

from couchbase.exceptions import CASMismatchException, DocumentExistsException

from auctionhouse.models.entities.couchbase.auction_lane import (
    LANE_KEY,
    AuctionLane,
    AuctionLaneData,
    QueueEntry,
)
from auctionhouse.models.entities.couchbase.auctions import Auction, AuctionData
from auctionhouse.models.errors import ConcurrentUpdateError
from auctionhouse.models.operations.cas import UNCHANGED, cas_update
from auctionhouse.utils import timeutil

logger = logging.getLogger(__name__)

_MAX_RETRIES = 5


# ---------------------------------------------------------------------------
# Auction records
# ---------------------------------------------------------------------------

async def auction_get(auction_id: str) -> Optional[Auction]:
    return await Auction.get(auction_id)


async def auction_save(auction: Union[Auction, AuctionData]) -> Auction:
    """Insert new auction data at the back of the queue, or write back a full
    record (CAS-guarded when the record carries a CAS value)."""
    if isinstance(auction, AuctionData):
        created = await Auction.create(auction)
        await lane_push(created)
        return created
    return await Auction.update(auction)


async def auction_update_cas(
    auction_id: str,
    mutator: Callable[[AuctionData], Any],
) -> Tuple[Optional[Auction], Any]:
    """Read-modify-write one auction; see ``cas_update`` for the mutator contract."""
    return await cas_update(Auction, auction_id, mutator)


async def auction_delete(auction_id: str) -> bool:
    def _drop(data: AuctionLaneData):
        queue = [e for e in data.queue if e.auction_id != auction_id]
        if len(queue) == len(data.queue) and data.current_auction_id != auction_id:
            return UNCHANGED
        data.queue = queue
        if data.current_auction_id == auction_id:
            data.current_auction_id = None
        return None

    await cas_update(AuctionLane, LANE_KEY, _drop)
    return await Auction.delete(auction_id)


async def auction_get_current(now: Optional[datetime] = None) -> Optional[Auction]:
    """The auction currently accepting bids, if any."""
    now = now or timeutil.utcnow()
    lane = await lane_get()
    if lane is None or not lane.data.current_auction_id:
        return None
    auction = await Auction.get(lane.data.current_auction_id)
    if auction and auction.data.state(now) == "active":
        return auction
    return None


async def auction_get_next() -> Optional[Auction]:
    """The oldest queued auction, if any."""
    lane = await lane_get()
    if lane is None or not lane.data.queue:
        return None
    entry = min(lane.data.queue, key=lambda e: e.created_at)
    return await Auction.get(entry.auction_id)


async def auction_get_latest(now: Optional[datetime] = None) -> Optional[Auction]:
    """The most recently ended auction, settled or not."""
    now = now or timeutil.utcnow()
    lane = await lane_get()
    if lane is None:
        return None
    for auction_id in (lane.data.current_auction_id, lane.data.previous_auction_id):
        if not auction_id:
            continue
        auction = await Auction.get(auction_id)
        if auction and auction.data.end_time is not None and auction.data.end_time < now:
            return auction
    return None


# ---------------------------------------------------------------------------
# Lane
# ---------------------------------------------------------------------------

async def lane_get() -> Optional[AuctionLane]:
    return await AuctionLane.get(LANE_KEY)


async def lane_push(auction: Auction) -> AuctionLane:
    """Append an auction to the waiting queue."""
    entry = QueueEntry(auction_id=auction.id, created_at=auction.data.created_at)

    def _append(data: AuctionLaneData):
        if any(e.auction_id == auction.id for e in data.queue):
            return UNCHANGED
        data.queue.append(entry)
        return None

    for _ in range(_MAX_RETRIES):
        lane, _err = await cas_update(AuctionLane, LANE_KEY, _append)
        if lane is not None:
            return lane
        try:
            return await AuctionLane.create(AuctionLaneData(queue=[entry]), key=LANE_KEY)
        except DocumentExistsException:
            continue
    raise ConcurrentUpdateError("Could not create the auction lane")


async def lane_claim_next(now: datetime) -> Tuple[Optional[Auction], Optional[str]]:
    """Pop the oldest queued auction and give it the floor.

    Returns ``(auction, None)`` on success, ``(None, None)`` when the queue is
    empty and ``(None, reason)`` when another auction still holds the floor,
    either running or ended without being settled.
    A claimed auction that was never started (activation interrupted) is handed
    back again so it can be started.
    """
    backoff_ms = 10
    for attempt in range(_MAX_RETRIES + 1):
        lane = await lane_get()
        if lane is None:
            return None, None

        current = None
        if lane.data.current_auction_id:
            current = await Auction.get(lane.data.current_auction_id)
        if current is not None and current.data.state(now) == "queued":
            return current, None

        if not lane.data.queue:
            return None, None
        if current is not None and current.data.state(now) == "active":
            return None, f"Auction {current.id} is still running"
        if current is not None and not current.data.done:
            return None, f"Auction {current.id} has ended but is not settled yet"

        entry = min(lane.data.queue, key=lambda e: e.created_at)
        lane.data.queue.remove(entry)
        lane.data.previous_auction_id = lane.data.current_auction_id
        lane.data.current_auction_id = entry.auction_id
        try:
            await AuctionLane.update(lane)
        except CASMismatchException:
            if attempt < _MAX_RETRIES:
                await asyncio.sleep(backoff_ms / 1000)
                backoff_ms *= 2
            continue

        auction = await Auction.get(entry.auction_id)
        if auction is None:
            logger.warning(f"Queued auction {entry.auction_id} vanished before activation")
            continue
        return auction, None

    raise ConcurrentUpdateError("Auction lane kept changing while claiming the next auction")
