import os
from typing import Any, Callable, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from . import log

logger = log.get_logger(__name__)


class EnvVarSpec(BaseModel):
    """Declaration of one environment variable: where to read it and how to parse it."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    default: Optional[str] = None
    parse: Optional[Callable[[str], Any]] = None
    is_optional: bool = False
    type: Tuple[Any, Any] = (str, ...)


def parse(spec: EnvVarSpec) -> Any:
    raw = os.environ.get(spec.id, spec.default)
    if raw is None or raw == "":
        if spec.is_optional:
            return None
        raise ValueError(f"Environment variable {spec.id} is missing or empty")
    if spec.parse is not None:
        return spec.parse(raw)
    return raw


def validate(specs: Iterable[EnvVarSpec]) -> bool:
    ok = True
    for spec in specs:
        try:
            value = parse(spec)
        except ValueError as e:
            logger.error(f"Invalid env var {spec.id}: {e}")
            ok = False
            continue
        if value is None:
            continue
        try:
            TypeAdapter(spec.type[0]).validate_python(value)
        except ValidationError as e:
            logger.error(f"Invalid env var {spec.id}={value!r}: {e.errors()[0]['msg']}")
            ok = False
    return ok
