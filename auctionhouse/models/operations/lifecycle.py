"""
Auction lifecycle: queue -> activate -> bid -> expire -> settle.

Every operation answers business-rule rejections with an ``AuctionResult``
(``ok=False``); store failures propagate as exceptions.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from auctionhouse.models.entities.couchbase.auctions import Auction, AuctionData
from auctionhouse.models.entities.couchbase.players import Player
from auctionhouse.models.errors import ConcurrentUpdateError
from auctionhouse.models.operations.auctions import (
    auction_get,
    auction_get_current,
    auction_get_latest,
    auction_save,
    auction_update_cas,
    lane_claim_next,
)
from auctionhouse.models.operations.inventory import inventory_get_player_item
from auctionhouse.models.operations.settlement import settlement_settle
from auctionhouse.models.results import AuctionResult
from auctionhouse.models.validation import validate_auction_request
from auctionhouse.utils import timeutil

logger = logging.getLogger(__name__)

DEFAULT_DURATION_SECONDS = 90
ANTI_SNIPE_SECONDS = 10


def minimum_bid(data: AuctionData) -> int:
    """Smallest amount the next bid may offer: the floor first, then strictly above the high bid."""
    if data.bid is None:
        return data.min_bid
    return max(data.min_bid, data.bid + 1)


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------

async def auction_enqueue(seller: Player, request: Any) -> AuctionResult:
    """Queue a new auction for *seller*. Nothing is reserved; the seller's
    inventory is checked again when the auction is activated."""
    parsed, errors = validate_auction_request(request)
    if parsed is None:
        return AuctionResult.bad_request(errors)

    name = seller.data.name
    holding = await inventory_get_player_item(seller.id, parsed.item)
    if holding is None or holding.data.quantity == 0:
        return AuctionResult.forbidden(f"Player {name} does not have {parsed.item}")
    if holding.data.quantity < parsed.quantity:
        return AuctionResult.forbidden(f"Player {name} does not have enough quantity of {parsed.item}")

    current = await auction_get_current()
    auction = await auction_save(AuctionData(
        seller_id=seller.id,
        seller_name=name,
        item=parsed.item,
        quantity=parsed.quantity,
        min_bid=parsed.min_bid,
    ))
    logger.info(
        f"Auction {auction.id} queued: {parsed.quantity} {parsed.item} "
        f"from {name}, min bid {parsed.min_bid}"
    )
    return AuctionResult.success(auction, current_auction=current)


# ---------------------------------------------------------------------------
# Activation
# ---------------------------------------------------------------------------

async def auction_activate(duration_seconds: Any = DEFAULT_DURATION_SECONDS) -> AuctionResult:
    """Start the oldest queued auction for *duration_seconds*.

    If the seller no longer holds the listed quantity, the auction is voided on
    the spot: zero duration, no bidding, closed.
    """
    if not isinstance(duration_seconds, int) or isinstance(duration_seconds, bool) or duration_seconds <= 0:
        duration_seconds = DEFAULT_DURATION_SECONDS

    now = timeutil.utcnow()
    auction, refusal = await lane_claim_next(now)
    if refusal is not None:
        return AuctionResult.forbidden(refusal)
    if auction is None:
        return AuctionResult.not_found("There is no auction in the queue.")

    holding = await inventory_get_player_item(auction.data.seller_id, auction.data.item)
    void_reason: Optional[str] = None
    if holding is None or holding.data.quantity == 0:
        void_reason = "There is no item in the inventory."
    elif holding.data.quantity < auction.data.quantity:
        void_reason = "Not enough items in the inventory."

    def _start(d: AuctionData):
        if d.start_time is not None:
            return f"Auction {auction.id} was already started"
        d.start_time = now
        if void_reason:
            d.end_time = now
            d.voided = True
            d.void_reason = void_reason
            d.done = True
        else:
            d.end_time = now + timedelta(seconds=duration_seconds)
        return None

    started, err = await auction_update_cas(auction.id, _start)
    if err is not None:
        return AuctionResult.forbidden(err)
    if started is None:
        return AuctionResult.not_found(f"Auction {auction.id} not found")

    if void_reason:
        logger.warning(f"Auction {started.id} voided on activation: {void_reason}")
        return AuctionResult.forbidden(void_reason, auction=started)

    logger.info(f"Auction {started.id} active until {started.data.end_time.isoformat()}")
    return AuctionResult.success(started)


# ---------------------------------------------------------------------------
# Bidding (CAS-critical)
# ---------------------------------------------------------------------------

async def auction_place_bid(bidder: Player, amount: int) -> AuctionResult:
    """
    Place a bid on the current auction.

    The bid is a CAS read-modify-write: when another bid lands between our read
    and our write, the auction is re-read and every rule checked again, so a
    lower bid can never overwrite a higher one.
    """
    if amount <= 0:
        return AuctionResult.bad_request("Bid should be > 0.")

    now = timeutil.utcnow()
    current = await auction_get_current(now)
    if current is None:
        return AuctionResult.not_found("There is no currently active auction.")

    name = bidder.data.name
    auction_id = current.id

    def _bid(d: AuctionData):
        if d.state(now) != "active":
            return AuctionResult.not_found("There is no currently active auction.")
        if d.seller_id == bidder.id:
            return AuctionResult.forbidden(
                f"Player {name} is not allowed to bid on their own auction {auction_id}"
            )
        if bidder.data.coins < amount:
            return AuctionResult.forbidden(
                f"Player {name} does not have enough money to make a bid of {amount} coins on auction {auction_id}"
            )
        floor = minimum_bid(d)
        if amount < floor:
            return AuctionResult.forbidden(f"Minimum allowed bid for auction {auction_id} is {floor}")

        if d.end_time - now < timedelta(seconds=ANTI_SNIPE_SECONDS):
            d.end_time = now + timedelta(seconds=ANTI_SNIPE_SECONDS)
            d.extensions_count += 1
        d.bid = amount
        d.winner_id = bidder.id
        d.winner_name = name
        return None

    try:
        updated, rejection = await auction_update_cas(auction_id, _bid)
    except ConcurrentUpdateError:
        logger.warning(f"Bid of {amount} by {name} on auction {auction_id} lost to concurrent bids")
        return AuctionResult.conflict(f"Auction {auction_id} is receiving other bids, please retry")

    if rejection is not None:
        return rejection
    if updated is None:
        return AuctionResult.not_found("There is no currently active auction.")

    logger.info(f"Auction {auction_id}: {name} bids {amount}, ends {updated.data.end_time.isoformat()}")
    return AuctionResult.success(updated)


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------

async def auction_settle(auction: Auction) -> AuctionResult:
    """Settle an ended auction. A done auction is returned as-is."""
    if auction.data.done:
        return AuctionResult.success(auction)

    fresh = await auction_get(auction.id)
    if fresh is None:
        return AuctionResult.not_found(f"Auction {auction.id} not found")

    state = fresh.data.state(timeutil.utcnow())
    if state == "queued":
        return AuctionResult.forbidden(f"Auction {fresh.id} has not started yet")
    if state == "active":
        return AuctionResult.forbidden(f"Auction {fresh.id} has not ended yet")

    settled = await settlement_settle(fresh.id)
    return AuctionResult.success(settled)


async def auction_tick(duration_seconds: int = DEFAULT_DURATION_SECONDS) -> Dict[str, Optional[str]]:
    """One scheduler step: settle the auction that just ended, then open the
    next one once the floor is free and the previous auction is done."""
    summary: Dict[str, Optional[str]] = {"settled": None, "activated": None, "voided": None}

    latest = await auction_get_latest()
    if latest is not None and not latest.data.done:
        result = await auction_settle(latest)
        if result.ok:
            summary["settled"] = latest.id
            latest = result.auction

    if latest is not None and not latest.data.done:
        return summary
    if await auction_get_current() is not None:
        return summary

    result = await auction_activate(duration_seconds)
    if result.auction is not None:
        key = "voided" if result.auction.data.voided else "activated"
        summary[key] = result.auction.id
    return summary
