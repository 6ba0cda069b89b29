"""
Result envelope returned by every lifecycle operation.

``ok=False`` is a business-rule rejection to be shown to the player as-is.
Infrastructure failures are never folded into this envelope; they raise.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel

from auctionhouse.models.entities.couchbase.auctions import Auction

RejectionType = Literal["badRequest", "forbidden", "notFound", "conflict"]


class AuctionResult(BaseModel):
    ok: bool
    type: Optional[RejectionType] = None
    error: Optional[Any] = None
    auction: Optional[Auction] = None
    current_auction: Optional[Auction] = None

    @classmethod
    def success(cls, auction: Optional[Auction] = None, **kwargs) -> "AuctionResult":
        return cls(ok=True, auction=auction, **kwargs)

    @classmethod
    def bad_request(cls, error: Any) -> "AuctionResult":
        return cls(ok=False, type="badRequest", error=error)

    @classmethod
    def forbidden(cls, error: str, auction: Optional[Auction] = None) -> "AuctionResult":
        return cls(ok=False, type="forbidden", error=error, auction=auction)

    @classmethod
    def not_found(cls, error: str) -> "AuctionResult":
        return cls(ok=False, type="notFound", error=error)

    @classmethod
    def conflict(cls, error: str) -> "AuctionResult":
        return cls(ok=False, type="conflict", error=error)
