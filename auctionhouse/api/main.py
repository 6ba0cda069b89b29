from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from auctionhouse.api import conf
from auctionhouse.api.routes.base import router
from auctionhouse.clients.couchbase import check_connection
from auctionhouse.utils import log

log.init(conf.get_log_level(), conf.get_environment())
logger = log.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Verifying Couchbase connection...")
    await check_connection()
    logger.info("Couchbase connection verified.")

    scheduler_conf = conf.get_scheduler_conf()
    if scheduler_conf.enabled:
        from auctionhouse.api.scheduler import init_scheduler, shutdown_scheduler

        init_scheduler(scheduler_conf)
        yield
        shutdown_scheduler()
    else:
        logger.warning("Auction scheduler disabled (set AUCTION_SCHEDULER_ENABLED=true to enable)")
        yield


if not conf.validate():
    raise ValueError("Invalid configuration.")

app = FastAPI(
    title="Auction House API",
    version="0.1.0",
    docs_url="/docs",
    lifespan=lifespan,
    debug=conf.get_http_expose_errors(),
)

app.include_router(router)


def run():
    http_conf = conf.get_http_conf()
    logger.info(f"Starting API on port {http_conf.port}")
    uvicorn.run(
        "auctionhouse.api.main:app",
        host=http_conf.host,
        port=http_conf.port,
        reload=http_conf.autoreload,
        log_level="info",
        log_config=None,
    )


if __name__ == "__main__":
    run()
