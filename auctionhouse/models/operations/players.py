import asyncio
import logging
from typing import Dict, Optional

from auctionhouse.models.entities.couchbase.players import Player, PlayerData
from auctionhouse.models.errors import LedgerError
from auctionhouse.models.operations.cas import UNCHANGED, cas_update
from auctionhouse.models.operations.inventory import inventory_set_player_item
from auctionhouse.models.operations.transfers import transfer_record
from auctionhouse.utils import timeutil

logger = logging.getLogger(__name__)

STARTING_COINS = 1000
STARTING_INVENTORY: Dict[str, int] = {
    "bread": 30,
    "carrot": 18,
    "diamond": 1,
}


async def player_create(
    name: str,
    coins: int = STARTING_COINS,
    inventory: Optional[Dict[str, int]] = None,
) -> Player:
    """Create a player with a starting purse and the default inventory."""
    if inventory is None:
        inventory = STARTING_INVENTORY
    player = await Player.create(PlayerData(name=name, coins=coins))
    await asyncio.gather(*[
        inventory_set_player_item(player.id, item, quantity)
        for item, quantity in inventory.items()
    ])
    logger.info(f"Player {name} ({player.id}) created with {coins} coins")
    return player


async def player_get(player_id: str) -> Optional[Player]:
    return await Player.get(player_id)


async def player_save(player: Player) -> Player:
    return await Player.update(player)


async def player_adjust_coins(
    player_id: str,
    delta: int,
    transfer_id: Optional[str] = None,
) -> Player:
    """Atomically add *delta* coins (may be negative), never going below zero.

    With a *transfer_id* the adjustment is applied at most once.
    """
    now = timeutil.utcnow()

    def _mutate(data: PlayerData):
        if transfer_id and transfer_id in data.applied_transfers:
            return UNCHANGED
        coins = data.coins + delta
        if coins < 0:
            return f"Player {data.name} has {data.coins} coins, cannot pay {-delta}"
        data.coins = coins
        if transfer_id:
            transfer_record(data.applied_transfers, transfer_id, now)
        return None

    player, err = await cas_update(Player, player_id, _mutate)
    if err is not None:
        raise LedgerError(err)
    if player is None:
        raise LedgerError(f"Player {player_id} not found")
    return player
