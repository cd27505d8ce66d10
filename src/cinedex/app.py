"""Cinedex application bootstrap.

Builds the shared state once per process: logging, the source database and
the two entity search services, with both indexes initialized.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from cinedex.config import Settings, load_settings
from cinedex.log import configure_logging
from cinedex.search import SearchServices, build_search_services
from cinedex.storage import Database, get_engine, make_session_factory


class AppState:
    """Application state shared by every caller of the search operations."""

    def __init__(self, settings: Settings, database: Database) -> None:
        self.settings = settings
        self.database = database
        self.search: SearchServices = build_search_services(settings, database)

    async def populate_empty_indexes(self) -> int:
        """Populate whichever index holds no documents yet."""
        total = 0
        for service in (self.search.movies, self.search.persons):
            if await service.check_is_index_empty():
                total += await service.populate()
        return total


async def startup(
    settings: Optional[Settings] = None,
    *,
    database: Optional[Database] = None,
    populate: bool = False,
) -> AppState:
    """Configure logging, connect the database and initialize both indexes."""
    settings = settings or load_settings()
    configure_logging(settings.app.log_level)
    if database is None:
        engine = get_engine(settings.database.url, echo=settings.database.echo)
        database = Database(make_session_factory(engine))

    state = AppState(settings, database)
    await state.search.init_all()
    logger.info(f"[App] {settings.app.name} search indexes ready ({settings.app.env})")
    if populate:
        await state.populate_empty_indexes()
    return state
