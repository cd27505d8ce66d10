"""One-shot, asynchronous ownership of an entity's index handle.

An `IndexManager` is constructed once per entity type and passed to every
operation that needs the index. The index is created on the first call to
`init()` (or `ready()`); every later caller awaits that same initialization
and a failure is reported to all of them without a second attempt.
"""

from __future__ import annotations

import asyncio
import enum
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

from loguru import logger

from cinedex.search.base_search import BaseSearch, IndexInfo, IndexOptions

IndexFactory = Callable[[IndexOptions], Awaitable[BaseSearch]]


class IndexState(enum.Enum):
    PENDING = "pending"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class IndexManager:
    """Owns the single index handle of one entity type."""

    def __init__(self, name: str, options: IndexOptions, factory: IndexFactory) -> None:
        self.name = name
        self.options = options
        self._factory = factory
        self._task: Optional[asyncio.Task[BaseSearch]] = None
        self._state = IndexState.PENDING
        self._exclusive = asyncio.Lock()

    @property
    def state(self) -> IndexState:
        return self._state

    async def _create(self) -> BaseSearch:
        self._state = IndexState.INITIALIZING
        logger.info(f"[Index] Initializing {self.name} index at '{self.options.index_path}'")
        try:
            handle = await self._factory(self.options)
        except BaseException:
            self._state = IndexState.FAILED
            logger.error(f"[Index] Initialization of the {self.name} index failed")
            raise
        self._state = IndexState.READY
        return handle

    def init(self) -> asyncio.Task[BaseSearch]:
        """Start initialization if nobody has yet; return the shared task."""
        if self._task is None:
            self._task = asyncio.ensure_future(self._create())
        return self._task

    async def ready(self) -> BaseSearch:
        """Wait for the handle; raises the initialization error if it failed."""
        return await asyncio.shield(self.init())

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[BaseSearch]:
        """Hold the handle for a bulk write or backup operation.

        Populate, snapshot and replicate take this lock so they never
        interleave on the same index. Searches do not take it.
        """
        handle = await self.ready()
        async with self._exclusive:
            yield handle

    async def count(self) -> int:
        handle = await self.ready()
        return await handle.count()

    async def is_empty(self) -> bool:
        return await self.count() == 0

    async def flush(self) -> None:
        handle = await self.ready()
        await handle.flush()
        logger.debug(f"[Index] {self.name} index flushed")

    async def info(self) -> IndexInfo:
        handle = await self.ready()
        return await handle.info()
