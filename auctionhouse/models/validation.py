from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError


class AuctionRequest(BaseModel):
    """Shape of a player's request to list an item."""
    model_config = ConfigDict(str_strip_whitespace=True)

    item: str = Field(min_length=1, max_length=64)
    quantity: StrictInt = Field(gt=0)
    min_bid: StrictInt = Field(ge=0)


def validate_auction_request(data: Any) -> Tuple[Optional[AuctionRequest], List[dict]]:
    """Returns (request, []) on success or (None, errors) describing each bad field."""
    try:
        return AuctionRequest.model_validate(data), []
    except ValidationError as e:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        return None, errors
