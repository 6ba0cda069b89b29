from typing import Optional

from fastapi import Header, HTTPException, status

from auctionhouse.models.entities.couchbase.players import Player
from auctionhouse.models.operations.players import player_get
from auctionhouse.utils import log

logger = log.get_logger(__name__)


async def current_player_get(x_player_id: Optional[str] = Header(default=None)) -> Player:
    """Resolve the acting player from the X-Player-Id header."""
    if not x_player_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-Player-Id header required")
    player = await player_get(x_player_id)
    if player is None:
        logger.warning(f"Request for unknown player {x_player_id}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown player")
    return player
