from fastapi import APIRouter

from .auctions import router as auctions_router
from .players import router as players_router

router = APIRouter(prefix="/api")
router.include_router(players_router)
router.include_router(auctions_router)


@router.get("/health", tags=["dev"])
async def route_health():
    return {"status": "ok"}
