"""APScheduler setup for the auction lane: settle what ended, open what is next."""

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from auctionhouse.api.conf import SchedulerConf
from auctionhouse.models.operations.lifecycle import auction_tick
from auctionhouse.utils import log

logger = log.get_logger(__name__)

_scheduler: Optional[AsyncIOScheduler] = None


async def auction_tick_job(duration_seconds: int):
    """Advance the lane by one step. Failures are logged and retried next tick."""
    try:
        summary = await auction_tick(duration_seconds)
    except Exception as e:
        logger.error(f"Auction tick failed: {e}", exc_info=True)
        return

    if summary["settled"]:
        logger.info(f"Scheduler settled auction {summary['settled']}")
    if summary["activated"]:
        logger.info(f"Scheduler activated auction {summary['activated']}")
    if summary["voided"]:
        logger.info(f"Scheduler voided auction {summary['voided']}")


def init_scheduler(conf: SchedulerConf) -> AsyncIOScheduler:
    global _scheduler
    _scheduler = AsyncIOScheduler()
    _scheduler.add_job(
        auction_tick_job,
        trigger=IntervalTrigger(seconds=conf.tick_seconds),
        kwargs={"duration_seconds": conf.auction_duration_seconds},
        id="auction_tick",
        name="Auction lane tick",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    _scheduler.start()
    logger.info(
        f"APScheduler started: auction tick every {conf.tick_seconds}s, "
        f"auctions run {conf.auction_duration_seconds}s"
    )
    return _scheduler


def shutdown_scheduler():
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("APScheduler shut down")
