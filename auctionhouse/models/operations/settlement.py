"""
Settlement: exchanging the auctioned item for the winning bid.

Flow:
1. Freeze the terms on the auction (``SettlementIntent``) with a CAS write.
2. Check that every debit still to be applied is covered: the seller holds the
   item, the winner holds the coins. If not, nothing is applied.
3. Run the four ledger legs concurrently. Each leg is a CAS write on one player
   or inventory document that records ``"<auction_id>:<leg>"`` as applied, so a
   leg is never applied twice no matter how often settlement is retried.
4. Only when every leg has landed, mark the auction done.

A failed leg leaves ``done`` false; the next settlement attempt resumes exactly
the legs that have not been applied yet, as long as the intent is younger than
``TRANSFER_RETENTION``.
"""

import asyncio
import logging

from auctionhouse.models.entities.couchbase.auctions import Auction, AuctionData, SettlementIntent
from auctionhouse.models.entities.couchbase.players import Player
from auctionhouse.models.errors import AuctionNotFoundError, LedgerError, SettlementError
from auctionhouse.models.operations.auctions import auction_get, auction_update_cas
from auctionhouse.models.operations.cas import UNCHANGED
from auctionhouse.models.operations.inventory import inventory_get_player_item, inventory_update_player_item
from auctionhouse.models.operations.players import player_adjust_coins, player_get
from auctionhouse.models.operations.transfers import TRANSFER_RETENTION, transfer_id
from auctionhouse.utils import timeutil

logger = logging.getLogger(__name__)


async def settlement_settle(auction_id: str) -> Auction:
    """Settle an ended auction. Safe to call any number of times.

    Raises AuctionNotFoundError for an unknown id, LedgerError when a debit is
    not covered (nothing is applied) and SettlementError when the auction is
    still running or a ledger leg failed.
    """
    auction = await auction_get(auction_id)
    if auction is None:
        raise AuctionNotFoundError(f"Auction {auction_id} not found")
    if auction.data.done:
        return auction

    if auction.data.winner_id is None:
        closed = await _mark_done(auction_id)
        logger.info(f"Auction {auction_id} closed without bids, {auction.data.item} stays with the seller")
        return closed

    auction = await _record_intent(auction_id)
    if auction.data.done:
        return auction

    intent = auction.data.settlement
    if timeutil.utcnow() - intent.started_at > TRANSFER_RETENTION:
        raise SettlementError(
            f"Auction {auction_id}: settlement started at {intent.started_at.isoformat()} "
            f"is too old to resume, resolve the ledger by hand"
        )

    await _apply_legs(auction_id, intent)
    settled = await _mark_done(auction_id)
    logger.info(
        f"Auction {auction_id} settled: {intent.quantity} {intent.item} "
        f"from {intent.seller_id} to {intent.winner_id} for {intent.price} coins"
    )
    return settled

async def _record_intent(auction_id: str) -> Auction:
    now = timeutil.utcnow()

    def _mutate(d: AuctionData):
        if d.done or d.settlement is not None:
            return UNCHANGED
        if d.state(now) == "active":
            return f"Auction {auction_id} has not ended yet"
        d.settlement = SettlementIntent(
            seller_id=d.seller_id,
            winner_id=d.winner_id,
            item=d.item,
            quantity=d.quantity,
            price=d.bid,
            started_at=now,
        )
        return None

    auction, err = await auction_update_cas(auction_id, _mutate)
    if err is not None:
        raise SettlementError(err)
    if auction is None:
        raise AuctionNotFoundError(f"Auction {auction_id} not found")
    return auction


async def _check_debits(auction_id: str, intent: SettlementIntent, seller: Player, winner: Player) -> None:
    """Raise LedgerError, before any leg runs, when a pending debit is not covered."""
    if transfer_id(auction_id, "winner_coins") not in winner.data.applied_transfers:
        if winner.data.coins < intent.price:
            raise LedgerError(
                f"Auction {auction_id}: player {winner.data.name} has {winner.data.coins} coins, "
                f"cannot pay {intent.price}"
            )
    holding = await inventory_get_player_item(seller.id, intent.item)
    if holding is not None and transfer_id(auction_id, "seller_item") in holding.data.applied_transfers:
        return
    held = holding.data.quantity if holding is not None else 0
    if held < intent.quantity:
        raise LedgerError(
            f"Auction {auction_id}: player {seller.data.name} holds {held} {intent.item}, "
            f"cannot deliver {intent.quantity}"
        )


async def _apply_legs(auction_id: str, intent: SettlementIntent) -> None:
    seller, winner = await asyncio.gather(
        player_get(intent.seller_id),
        player_get(intent.winner_id),
    )
    if seller is None or winner is None:
        missing = intent.seller_id if seller is None else intent.winner_id
        raise SettlementError(f"Auction {auction_id}: player {missing} not found")
    await _check_debits(auction_id, intent, seller, winner)

    legs = {
        "seller_item": inventory_update_player_item(
            seller.id, intent.item, -intent.quantity, transfer_id(auction_id, "seller_item")
        ),
        "seller_coins": player_adjust_coins(
            seller.id, intent.price, transfer_id(auction_id, "seller_coins")
        ),
        "winner_item": inventory_update_player_item(
            winner.id, intent.item, intent.quantity, transfer_id(auction_id, "winner_item")
        ),
        "winner_coins": player_adjust_coins(
            winner.id, -intent.price, transfer_id(auction_id, "winner_coins")
        ),
    }
    results = await asyncio.gather(*legs.values(), return_exceptions=True)

    failures = [(leg, r) for leg, r in zip(legs, results) if isinstance(r, BaseException)]
    if failures:
        for leg, exc in failures:
            logger.error(f"Auction {auction_id}: settlement leg {leg} failed: {exc!r}")
        failed = ", ".join(leg for leg, _ in failures)
        raise SettlementError(f"Auction {auction_id}: settlement legs failed ({failed})") from failures[0][1]


async def _mark_done(auction_id: str) -> Auction:
    now = timeutil.utcnow()

    def _mutate(d: AuctionData):
        if d.done:
            return UNCHANGED
        if d.state(now) == "active":
            return f"Auction {auction_id} has not ended yet"
        d.done = True
        d.settled_at = now
        return None

    auction, err = await auction_update_cas(auction_id, _mutate)
    if err is not None:
        raise SettlementError(err)
    if auction is None:
        raise AuctionNotFoundError(f"Auction {auction_id} not found")
    return auction
