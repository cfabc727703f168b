import asyncio
from collections.abc import Sequence
from typing import Protocol

from notesearch.logging import get_logger
from notesearch.search.types import PendingEmbedding

_logger = get_logger(__name__)

_background_tasks: set[asyncio.Task] = set()


class EmbeddingSink(Protocol):
    async def save_embeddings(self, pending: Sequence[PendingEmbedding]) -> int: ...


async def persist_pending(sink: EmbeddingSink, pending: Sequence[PendingEmbedding]) -> int:
    """Save regenerated embeddings, logging instead of raising on failure.

    A failed save only means those notes are classified stale again on the next
    search, so it never invalidates results already returned.
    """
    if not pending:
        return 0
    try:
        saved = await sink.save_embeddings(pending)
    except Exception:
        _logger.warning("Failed to persist %d embeddings", len(pending), exc_info=True)
        return 0
    _logger.debug("Persisted %d embeddings", saved)
    return saved


def persist_in_background(sink: EmbeddingSink, pending: Sequence[PendingEmbedding]) -> asyncio.Task[int]:
    task = asyncio.create_task(persist_pending(sink, list(pending)))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task
