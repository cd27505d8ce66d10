import asyncio
import math
from typing import List

import pytest
from loguru import logger

from cinedex.exceptions import EngineError
from cinedex.search.ingestion import batchify, fill_index, index_batch, sequencify
from cinedex.search.movie import MOVIE_FIELD_OPTIONS

from conftest import MemoryIndex


@pytest.mark.parametrize("n, size", [(0, 50), (1, 50), (50, 50), (51, 50), (120, 50), (7, 3)])
def test_batchify_partitions_in_order(n: int, size: int) -> None:
    items = list(range(n))
    batches = batchify(items, size)

    assert len(batches) == math.ceil(n / size)
    assert all(len(b) <= size for b in batches)
    assert [x for b in batches for x in b] == items


def test_batchify_rejects_non_positive_size() -> None:
    with pytest.raises(ValueError):
        batchify([1, 2], 0)


@pytest.mark.asyncio
async def test_sequencify_stops_at_first_failure() -> None:
    submitted: List[int] = []

    async def submit(batch: List[int], index: int) -> int:
        if index == 2:
            raise EngineError("rejected")
        submitted.append(index)
        return len(batch)

    with pytest.raises(EngineError):
        await sequencify(batchify(list(range(250)), 50), submit)

    assert submitted == [0, 1]


@pytest.mark.asyncio
async def test_sequencify_waits_for_each_batch() -> None:
    running = 0
    peak = 0

    async def submit(batch: List[int], index: int) -> int:
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0)
        running -= 1
        return index

    assert await sequencify([[1], [2], [3]], submit) == [0, 1, 2]
    assert peak == 1


@pytest.mark.asyncio
async def test_fill_index_submits_120_documents_as_50_50_20() -> None:
    index = MemoryIndex()
    records = [{"code": f"M{i}"} for i in range(120)]

    total = await fill_index(index, records, lambda r: dict(r), MOVIE_FIELD_OPTIONS, 50)

    assert total == 120
    assert [len(b) for b in index.batches] == [50, 50, 20]
    assert [d["code"] for d in index.docs] == [f"M{i}" for i in range(120)]


@pytest.mark.asyncio
async def test_fill_index_aborts_remaining_batches() -> None:
    index = MemoryIndex()
    index.fail_on_batch = 1

    with pytest.raises(EngineError):
        await fill_index(index, [{"code": str(i)} for i in range(120)], dict, (), 50)

    assert [len(b) for b in index.batches] == [50]


@pytest.mark.asyncio
async def test_index_batch_propagates_engine_rejection() -> None:
    index = MemoryIndex()
    index.fail_on_batch = 0
    with pytest.raises(EngineError):
        await index_batch(index, [{"code": "x"}], (), 0, 1)
    assert await index_batch(MemoryIndex(), [{"code": "x"}, {"code": "y"}], (), 0, 1) == 2


@pytest.mark.asyncio
async def test_fill_index_reports_batch_index_and_count() -> None:
    progress: List[tuple] = []
    messages: List[str] = []
    sink = logger.add(lambda m: messages.append(str(m)), level="INFO", format="{message}")
    try:
        await fill_index(MemoryIndex(), [{"code": str(i)} for i in range(120)], dict, (), 50, lambda i, n: progress.append((i, n)))
    finally:
        logger.remove(sink)

    assert progress == [(0, 3), (1, 3), (2, 3)]
    assert any("Indexing batch 3/3 (20 documents)" in m for m in messages)


@pytest.mark.asyncio
async def test_progress_stops_with_the_failing_batch() -> None:
    progress: List[tuple] = []
    index = MemoryIndex()
    index.fail_on_batch = 1

    with pytest.raises(EngineError):
        await fill_index(index, [{"code": str(i)} for i in range(120)], dict, (), 50, lambda i, n: progress.append((i, n)))

    assert progress == [(0, 3), (1, 3)]
