"""Batch ingestion: project source records, split them, submit one batch at a time.

Indexes are append-only, so populating twice appends every document twice.
A failed batch stops the run; the batches already submitted stay indexed.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Iterable, List, Optional, Sequence, TypeVar

from loguru import logger

from cinedex.search.base_search import BaseSearch, FieldOption, IndexDocument

T = TypeVar("T")
R = TypeVar("R")

# Called with (batch_index, batch_count) before each batch is submitted
ProgressCallback = Callable[[int, int], None]


def batchify(items: Sequence[T], batch_size: int) -> List[List[T]]:
    """Split `items` into consecutive batches of at most `batch_size` items."""
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    return [list(items[i : i + batch_size]) for i in range(0, len(items), batch_size)]


async def sequencify(
    batches: Sequence[T], submit: Callable[[T, int], Awaitable[R]]
) -> List[R]:
    """Await `submit(batch, index)` for each batch, strictly in order.

    The first exception propagates and the remaining batches are never submitted.
    """
    results: List[R] = []
    for index, batch in enumerate(batches):
        results.append(await submit(batch, index))
    return results


async def index_batch(
    index: BaseSearch,
    batch: Sequence[IndexDocument],
    field_options: Sequence[FieldOption],
    batch_index: int,
    batch_count: int,
    on_progress: Optional[ProgressCallback] = None,
) -> int:
    """Submit one batch to the engine and report progress."""
    logger.info(f"[Ingestion] Indexing batch {batch_index + 1}/{batch_count} ({len(batch)} documents)")
    if on_progress is not None:
        on_progress(batch_index, batch_count)
    try:
        await index.add(batch, field_options)
    except Exception:
        logger.error(f"[Ingestion] Batch {batch_index + 1}/{batch_count} was rejected")
        raise
    return len(batch)


async def fill_index(
    index: BaseSearch,
    records: Iterable[object],
    project: Callable[[object], IndexDocument],
    field_options: Sequence[FieldOption],
    batch_size: int,
    on_progress: Optional[ProgressCallback] = None,
) -> int:
    """Project `records`, split them into batches and submit them in order.

    Returns the number of documents indexed.
    """
    documents = [project(record) for record in records]
    batches = batchify(documents, batch_size)
    counts = await sequencify(
        batches,
        lambda batch, i: index_batch(index, batch, field_options, i, len(batches), on_progress),
    )
    total = sum(counts)
    logger.info(f"[Ingestion] Indexed {total} documents in {len(batches)} batches")
    return total
