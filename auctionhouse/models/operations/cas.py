"""
CAS-guarded read-modify-write, shared by every store module.

A mutator receives the entity data and edits it in place. It returns ``None``
to commit, ``UNCHANGED`` to stop without writing, or any other value to abort;
that value is handed back to the caller untouched.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Tuple, Type

from couchbase.exceptions import CASMismatchException

from auctionhouse.clients.couchbase import T
from auctionhouse.models.errors import ConcurrentUpdateError

logger = logging.getLogger(__name__)

UNCHANGED = object()


async def cas_update(
    entity_cls: Type[T],
    key: str,
    mutator: Callable[[Any], Any],
    max_retries: int = 5,
) -> Tuple[Optional[T], Any]:
    """Returns ``(entity, None)`` once written (or left unchanged), ``(None, abort)``
    when the mutator aborts and ``(None, None)`` when the document does not exist.

    On ``CASMismatchException`` the document is re-read and the mutator re-run with
    exponential backoff (10 ms, 20 ms, 40 ms, ...).
    """
    backoff_ms = 10
    for attempt in range(max_retries + 1):
        entity = await entity_cls.get(key)
        if entity is None:
            return None, None

        outcome = mutator(entity.data)
        if outcome is UNCHANGED:
            return entity, None
        if outcome is not None:
            return None, outcome

        try:
            return await entity_cls.update(entity), None
        except CASMismatchException:
            logger.debug(f"CAS mismatch on {entity_cls.__name__} {key} (attempt {attempt + 1})")
            if attempt < max_retries:
                await asyncio.sleep(backoff_ms / 1000)
                backoff_ms *= 2

    raise ConcurrentUpdateError(
        f"{entity_cls.__name__} {key} kept changing under {max_retries + 1} attempts"
    )
