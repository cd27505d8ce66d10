"""Compressed backup and restore of an entity index.

A backup is the engine's native snapshot stream, gzip-compressed into one
file per entity type. It only round-trips through the same engine.
"""

from __future__ import annotations

import gzip
import os
import tempfile
from pathlib import Path

from loguru import logger

from cinedex.search.lifecycle import IndexManager


async def snapshot(manager: IndexManager, destination: Path) -> Path:
    """Stream a backup of the index into `destination` (gzip).

    The stream goes to a temporary file next to `destination`, which replaces
    the previous backup only once complete; a failed snapshot leaves the
    previous backup untouched. Write errors propagate as `OSError`.
    """
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, partial = tempfile.mkstemp(prefix=f".{destination.name}-", dir=destination.parent)
    os.close(fd)
    try:
        async with manager.exclusive() as index:
            with gzip.open(partial, "wb") as out:
                await index.snapshot(out)
        os.replace(partial, destination)
    except BaseException:
        os.unlink(partial)
        raise
    logger.info(f"[Backup] {manager.name} index saved to '{destination}'")
    return destination


async def replicate(manager: IndexManager, source: Path) -> None:
    """Flush the index, then restore it from the backup at `source`.

    When the flush fails the restore is not attempted.
    """
    source = Path(source)
    async with manager.exclusive() as index:
        await index.flush()
        with gzip.open(source, "rb") as backup:
            await index.replicate(backup)
    logger.info(f"[Backup] {manager.name} index restored from '{source}'")
