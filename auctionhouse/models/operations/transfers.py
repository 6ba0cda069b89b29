"""
Applied-transfer markers kept on ledger documents.

A settlement leg records ``"<auction_id>:<leg>"`` on the document it changes,
in the same CAS write as the change, so the leg is never applied twice.
Markers are kept for ``TRANSFER_RETENTION`` and dropped on the next write to
the document after that; settlement refuses to resume legs once its intent is
older than the same window.
"""

from datetime import datetime, timedelta
from typing import Dict

TRANSFER_RETENTION = timedelta(days=1)


def transfer_id(auction_id: str, leg: str) -> str:
    return f"{auction_id}:{leg}"


def transfer_record(applied: Dict[str, datetime], transfer: str, now: datetime) -> None:
    """Mark *transfer* applied at *now* and forget markers past retention."""
    cutoff = now - TRANSFER_RETENTION
    for stale in [t for t, at in applied.items() if at < cutoff]:
        del applied[stale]
    applied[transfer] = now
