"""
API endpoints for the auction lane.

POST   /auctions/                queue an auction (seller)
GET    /auctions/current         auction currently accepting bids
GET    /auctions/latest          most recently ended auction
GET    /auctions/{id}            auction detail
POST   /auctions/current/bid     bid on the current auction
POST   /auctions/activate        start the next queued auction (operator)
POST   /auctions/{id}/settle     settle an ended auction (operator)
"""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, Field

from auctionhouse.models.entities.couchbase.players import Player
from auctionhouse.models.operations.auctions import (
    auction_get,
    auction_get_current,
    auction_get_latest,
)
from auctionhouse.models.operations.lifecycle import (
    DEFAULT_DURATION_SECONDS,
    auction_activate,
    auction_enqueue,
    auction_place_bid,
    auction_settle,
)
from auctionhouse.models.results import AuctionResult
from auctionhouse.utils import log, timeutil

from .dependencies import current_player_get

logger = log.get_logger(__name__)

router = APIRouter(prefix="/auctions", tags=["auctions"])

REJECTION_STATUS = {
    "badRequest": 400,
    "forbidden": 403,
    "notFound": 404,
    "conflict": 409,
}


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------

class PlaceBidRequest(BaseModel):
    amount: int


class ActivateRequest(BaseModel):
    duration_seconds: int = Field(default=DEFAULT_DURATION_SECONDS, gt=0)


class AuctionResponse(BaseModel):
    id: str
    state: str
    created: Optional[datetime] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    seller_id: str
    seller_name: str
    item: str
    quantity: int
    min_bid: int
    bid: Optional[int] = None
    winner_id: Optional[str] = None
    winner_name: Optional[str] = None
    extensions_count: int
    void_reason: Optional[str] = None
    settled_at: Optional[datetime] = None
    done: bool


class AuctionEnvelope(BaseModel):
    ok: bool
    auction: Optional[AuctionResponse] = None
    current_auction: Optional[AuctionResponse] = None


def _auction_to_response(auction) -> AuctionResponse:
    d = auction.data
    return AuctionResponse(
        id=auction.id,
        state=d.state(timeutil.utcnow()),
        created=d.created_at,
        start_time=d.start_time,
        end_time=d.end_time,
        seller_id=d.seller_id,
        seller_name=d.seller_name,
        item=d.item,
        quantity=d.quantity,
        min_bid=d.min_bid,
        bid=d.bid,
        winner_id=d.winner_id,
        winner_name=d.winner_name,
        extensions_count=d.extensions_count,
        void_reason=d.void_reason,
        settled_at=d.settled_at,
        done=d.done,
    )


def _envelope(result: AuctionResult) -> AuctionEnvelope:
    """Turn a lifecycle result into a response, or raise the matching HTTP error."""
    if not result.ok:
        detail: Dict[str, Any] = {"type": result.type, "error": result.error}
        if result.auction is not None:
            detail["auction"] = _auction_to_response(result.auction).model_dump(mode="json")
        raise HTTPException(status_code=REJECTION_STATUS[result.type], detail=detail)
    return AuctionEnvelope(
        ok=True,
        auction=_auction_to_response(result.auction) if result.auction else None,
        current_auction=_auction_to_response(result.current_auction) if result.current_auction else None,
    )


# ---------------------------------------------------------------------------
# Queue and read
# ---------------------------------------------------------------------------

@router.post("/", response_model=AuctionEnvelope, status_code=201)
async def route_auction_enqueue(
    body: Dict[str, Any] = Body(...),
    player: Player = Depends(current_player_get),
):
    """Queue an auction of the player's item. Body: item, quantity, min_bid."""
    return _envelope(await auction_enqueue(player, body))


@router.get("/current", response_model=AuctionResponse)
async def route_auction_current():
    auction = await auction_get_current()
    if not auction:
        raise HTTPException(status_code=404, detail="There is no currently active auction.")
    return _auction_to_response(auction)


@router.get("/latest", response_model=AuctionResponse)
async def route_auction_latest():
    auction = await auction_get_latest()
    if not auction:
        raise HTTPException(status_code=404, detail="No auction has ended yet.")
    return _auction_to_response(auction)


@router.get("/{auction_id}", response_model=AuctionResponse)
async def route_auction_detail(auction_id: str):
    auction = await auction_get(auction_id)
    if not auction:
        raise HTTPException(status_code=404, detail="Auction not found")
    return _auction_to_response(auction)


# ---------------------------------------------------------------------------
# Bidding
# ---------------------------------------------------------------------------

@router.post("/current/bid", response_model=AuctionEnvelope)
async def route_auction_bid(
    body: PlaceBidRequest,
    player: Player = Depends(current_player_get),
):
    return _envelope(await auction_place_bid(player, body.amount))


# ---------------------------------------------------------------------------
# Operator endpoints (the scheduler does the same on its own)
# ---------------------------------------------------------------------------

@router.post("/activate", response_model=AuctionEnvelope)
async def route_auction_activate(body: Optional[ActivateRequest] = None):
    duration = body.duration_seconds if body else DEFAULT_DURATION_SECONDS
    return _envelope(await auction_activate(duration))


@router.post("/{auction_id}/settle", response_model=AuctionEnvelope)
async def route_auction_settle(auction_id: str):
    auction = await auction_get(auction_id)
    if not auction:
        raise HTTPException(status_code=404, detail="Auction not found")
    return _envelope(await auction_settle(auction))
