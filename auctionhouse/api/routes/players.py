from typing import List

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from auctionhouse.models.operations.inventory import inventory_get_player_items
from auctionhouse.models.operations.players import player_create, player_get
from auctionhouse.utils import log

logger = log.get_logger(__name__)

router = APIRouter(prefix="/players", tags=["players"])


class CreatePlayerRequest(BaseModel):
    name: str = Field(min_length=1, max_length=32)


class PlayerResponse(BaseModel):
    id: str
    name: str
    coins: int


class InventoryItemResponse(BaseModel):
    item: str
    quantity: int


@router.post("/", response_model=PlayerResponse, status_code=201)
async def route_player_create(body: CreatePlayerRequest):
    """Create a player with the starting purse and inventory."""
    player = await player_create(body.name)
    return PlayerResponse(id=player.id, name=player.data.name, coins=player.data.coins)


@router.get("/{player_id}", response_model=PlayerResponse)
async def route_player_get(player_id: str):
    player = await player_get(player_id)
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")
    return PlayerResponse(id=player.id, name=player.data.name, coins=player.data.coins)


@router.get("/{player_id}/inventory", response_model=List[InventoryItemResponse])
async def route_player_inventory(player_id: str):
    player = await player_get(player_id)
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")
    items = await inventory_get_player_items(player_id)
    return [
        InventoryItemResponse(item=i.data.item, quantity=i.data.quantity)
        for i in items if i.data.quantity > 0
    ]
