from pydantic import BaseModel

from auctionhouse.utils import env, log
from auctionhouse.utils.env import EnvVarSpec

logger = log.get_logger(__name__)

#### Types ####

class HttpServerConf(BaseModel):
    host: str
    port: int
    autoreload: bool

class SchedulerConf(BaseModel):
    enabled: bool
    tick_seconds: float
    auction_duration_seconds: int

#### Env Vars ####

## Logging ##

LOG_LEVEL = EnvVarSpec(id="LOG_LEVEL", default="INFO")

ENVIRONMENT = EnvVarSpec(id="ENVIRONMENT", default="development")

## HTTP ##

HTTP_HOST = EnvVarSpec(id="HTTP_HOST", default="0.0.0.0")

HTTP_PORT = EnvVarSpec(id="HTTP_PORT", default="8000", parse=int, type=(int, ...))

HTTP_AUTORELOAD = EnvVarSpec(
    id="HTTP_AUTORELOAD",
    parse=lambda x: x.lower() == "true",
    default="false",
    type=(bool, ...),
)

HTTP_EXPOSE_ERRORS = EnvVarSpec(
    id="HTTP_EXPOSE_ERRORS",
    default="false",
    parse=lambda x: x.lower() == "true",
    type=(bool, ...),
)

## Auctions ##

AUCTION_DURATION_SECONDS = EnvVarSpec(
    id="AUCTION_DURATION_SECONDS",
    default="90",
    parse=int,
    type=(int, ...),
)

AUCTION_TICK_SECONDS = EnvVarSpec(
    id="AUCTION_TICK_SECONDS",
    default="1",
    parse=float,
    type=(float, ...),
)

AUCTION_SCHEDULER_ENABLED = EnvVarSpec(
    id="AUCTION_SCHEDULER_ENABLED",
    default="true",
    parse=lambda x: x.lower() == "true",
    type=(bool, ...),
)

#### Validation ####
VALIDATED_ENV_VARS = [
    LOG_LEVEL,
    ENVIRONMENT,
    HTTP_HOST,
    HTTP_PORT,
    HTTP_AUTORELOAD,
    HTTP_EXPOSE_ERRORS,
    AUCTION_DURATION_SECONDS,
    AUCTION_TICK_SECONDS,
    AUCTION_SCHEDULER_ENABLED,
]

def validate() -> bool:
    return env.validate(VALIDATED_ENV_VARS)

#### Getters ####

def get_log_level() -> str:
    return env.parse(LOG_LEVEL)

def get_environment() -> str:
    return env.parse(ENVIRONMENT)

def get_http_expose_errors() -> bool:
    return env.parse(HTTP_EXPOSE_ERRORS)

def get_http_conf() -> HttpServerConf:
    return HttpServerConf(
        host=env.parse(HTTP_HOST),
        port=env.parse(HTTP_PORT),
        autoreload=env.parse(HTTP_AUTORELOAD),
    )

def get_scheduler_conf() -> SchedulerConf:
    duration = env.parse(AUCTION_DURATION_SECONDS)
    tick = env.parse(AUCTION_TICK_SECONDS)
    if duration <= 0:
        logger.warning(f"AUCTION_DURATION_SECONDS={duration} is not positive, using 90")
        duration = 90
    return SchedulerConf(
        enabled=env.parse(AUCTION_SCHEDULER_ENABLED),
        tick_seconds=max(0.1, tick),
        auction_duration_seconds=duration,
    )
