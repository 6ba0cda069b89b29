import logging
from typing import List, Optional

from couchbase.exceptions import DocumentExistsException

from auctionhouse.models.entities.couchbase.inventory import Inventory, InventoryData, inventory_key
from auctionhouse.models.errors import LedgerError
from auctionhouse.models.operations.cas import UNCHANGED, cas_update
from auctionhouse.models.operations.transfers import transfer_record
from auctionhouse.utils import timeutil

logger = logging.getLogger(__name__)


async def inventory_get_player_items(player_id: str) -> List[Inventory]:
    keyspace = Inventory.get_keyspace()
    query = (
        f"SELECT META().id, * FROM {keyspace} "
        f"WHERE player_id = $player_id ORDER BY item ASC"
    )
    rows = await keyspace.query(query, player_id=player_id)
    return Inventory.from_rows(rows)


async def inventory_get_player_item(player_id: str, item: str) -> Optional[Inventory]:
    return await Inventory.get(inventory_key(player_id, item))


async def inventory_set_player_item(player_id: str, item: str, quantity: int) -> Inventory:
    """Overwrite a holding outright. Used when seeding new players."""
    data = InventoryData(player_id=player_id, item=item, quantity=quantity)
    return await Inventory.create_or_update(inventory_key(player_id, item), data)


async def inventory_update_player_item(
    player_id: str,
    item: str,
    delta: int,
    transfer_id: Optional[str] = None,
) -> Inventory:
    """Atomically add *delta* (may be negative) to a player's holding of *item*.

    With a *transfer_id* the adjustment is applied at most once: a repeated call
    with the same id leaves the holding untouched.
    """
    key = inventory_key(player_id, item)
    now = timeutil.utcnow()

    def _mutate(data: InventoryData):
        if transfer_id and transfer_id in data.applied_transfers:
            return UNCHANGED
        quantity = data.quantity + delta
        if quantity < 0:
            return f"Player {player_id} holds {data.quantity} {item}, cannot remove {-delta}"
        data.quantity = quantity
        if transfer_id:
            transfer_record(data.applied_transfers, transfer_id, now)
        return None

    for _ in range(2):
        entry, err = await cas_update(Inventory, key, _mutate)
        if err is not None:
            raise LedgerError(err)
        if entry is not None:
            return entry

        if delta < 0:
            raise LedgerError(f"Player {player_id} does not have {item}")
        data = InventoryData(
            player_id=player_id,
            item=item,
            quantity=delta,
            applied_transfers={transfer_id: now} if transfer_id else {},
        )
        try:
            return await Inventory.create(data, key=key)
        except DocumentExistsException:
            # Someone created the holding first, add to it instead
            continue

    raise LedgerError(f"Could not update {item} for player {player_id}")
