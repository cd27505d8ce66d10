"""Faceted search over the movie and person collections."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from cinedex.config import Settings
from cinedex.search.movie import MOVIE_CONFIG
from cinedex.search.person import PERSON_CONFIG
from cinedex.search.service import EntitySearchService, build_service
from cinedex.storage.database import Database


@dataclass
class SearchServices:
    """The two independent entity services, built once per process."""

    movies: EntitySearchService
    persons: EntitySearchService

    async def init_all(self) -> None:
        """Initialize both indexes concurrently."""
        await asyncio.gather(self.movies.manager.ready(), self.persons.manager.ready())


def build_search_services(settings: Settings, database: Database) -> SearchServices:
    return SearchServices(
        movies=build_service(MOVIE_CONFIG, settings.search, database.get_all_movies),
        persons=build_service(PERSON_CONFIG, settings.search, database.get_all_persons),
    )


__all__ = ["EntitySearchService", "SearchServices", "build_search_services"]
