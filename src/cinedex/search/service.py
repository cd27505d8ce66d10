"""Per-entity search services exposing the public search operations.

Movies and persons share every algorithm; an `EntityConfig` carries what
differs between them (stored fields, field options, facets, projections).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from loguru import logger
from whoosh.lang import has_stopwords, stopwords_for_language

from cinedex.config import SearchConfig
from cinedex.exceptions import ConfigurationError, EmptyIndexError
from cinedex.search import backup
from cinedex.search.base_search import FieldOption, IndexDocument, IndexOptions
from cinedex.search.facets import FacetSet
from cinedex.search.grouping import grouped_search
from cinedex.search.ingestion import ProgressCallback, fill_index
from cinedex.search.lifecycle import IndexFactory, IndexManager
from cinedex.search.query import build_search_query, describe
from cinedex.search.results import Group, GroupedSearchResults, SearchResults, treat_search_results
from cinedex.search.whoosh_index import WhooshIndex


@dataclass(frozen=True)
class EntityConfig:
    """Everything that distinguishes one indexed entity type from another."""

    name: str
    fields_to_store: Tuple[str, ...]
    field_options: Tuple[FieldOption, ...]
    facets: FacetSet
    to_document: Callable[[Any], IndexDocument]
    from_hit: Callable[[Mapping[str, Any]], Dict[str, Any]]


def record_value(record: Any, name: str) -> Any:
    """Attribute of an ORM row, or key of a plain mapping."""
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def load_stopwords(language: str) -> frozenset:
    if not has_stopwords(language):
        raise ConfigurationError(f"No stopword list available for language '{language}'")
    return frozenset(sorted(stopwords_for_language(language)))


def index_options(config: EntityConfig, search_config: SearchConfig) -> IndexOptions:
    return IndexOptions(
        index_path=search_config.index_path(config.name),
        fields_to_store=config.fields_to_store,
        field_options=config.field_options,
        fielded_search=False,
        deletable=False,
        stopwords=load_stopwords(search_config.language),
        language=search_config.language,
    )


class EntitySearchService:
    """Populate, search, inspect and back up the index of one entity type."""

    def __init__(
        self,
        config: EntityConfig,
        manager: IndexManager,
        fetch_records: Callable[[], Awaitable[Sequence[Any]]],
        *,
        batch_size: int = 50,
        default_group_top: int = 10,
        backup_path: Optional[Path] = None,
    ) -> None:
        self.config = config
        self.manager = manager
        self._fetch_records = fetch_records
        self.batch_size = batch_size
        self.default_group_top = default_group_top
        self.backup_path = backup_path or Path("storage") / f"{config.name}-backup.gz"

    @property
    def facets(self) -> FacetSet:
        return self.config.facets

    def init(self) -> asyncio.Task:
        return self.manager.init()

    async def populate(self, on_progress: Optional[ProgressCallback] = None) -> int:
        """Append every source record to the index; returns the number indexed."""
        async with self.manager.exclusive() as index:
            records = await self._fetch_records()
            logger.info(f"[Search] Populating {self.config.name} index with {len(records)} records")
            return await fill_index(
                index,
                records,
                self.config.to_document,
                self.config.field_options,
                self.batch_size,
                on_progress,
            )

    async def check_is_index_empty(self) -> bool:
        return await self.manager.is_empty()

    async def search(
        self,
        text: Optional[str] = None,
        selected_facets: Optional[Mapping[str, Sequence[Any]]] = None,
        group: Optional[str] = None,
        sort_field_name: Optional[str] = None,
        sort_desc: bool = False,
        top: Optional[int] = None,
        skip: int = 0,
        group_top: Optional[int] = None,
    ) -> Union[SearchResults, GroupedSearchResults]:
        index = await self.manager.ready()
        if await index.count() == 0:
            raise EmptyIndexError(f"{self.config.name.capitalize()} search index is empty")

        query = build_search_query(text, self.facets, selected_facets, skip, top)
        logger.debug(f"[Search] {self.config.name} query: {describe(query)} group={group}")
        if group:
            group_field = self.facets.field_name(group)
            results = await grouped_search(
                index,
                query,
                group_field,
                group,
                self.default_group_top if group_top is None else group_top,
                self.facets,
            )
            return GroupedSearchResults(
                groups=[
                    Group(g.code, g.label, g.total_count, self._parse(g.list)) for g in results.groups
                ],
                facets=results.facets,
                total_count=results.total_count,
            )

        raw = await index.search(query)
        results = treat_search_results(raw, sort_field_name, sort_desc, self.facets)
        return SearchResults(list=self._parse(results.list), facets=results.facets, total_count=results.total_count)

    def _parse(self, hits: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [self.config.from_hit(hit) for hit in hits]

    async def flush(self) -> None:
        await self.manager.flush()

    async def info(self) -> Dict[str, Any]:
        return (await self.manager.info()).as_dict()

    async def snapshot(self) -> Path:
        return await backup.snapshot(self.manager, self.backup_path)

    async def replicate(self) -> None:
        await backup.replicate(self.manager, self.backup_path)


def build_service(
    config: EntityConfig,
    search_config: SearchConfig,
    fetch_records: Callable[[], Awaitable[Sequence[Any]]],
    *,
    factory: IndexFactory = WhooshIndex.create,
) -> EntitySearchService:
    manager = IndexManager(config.name, index_options(config, search_config), factory)
    return EntitySearchService(
        config,
        manager,
        fetch_records,
        batch_size=search_config.batch_size,
        default_group_top=search_config.group_top,
        backup_path=search_config.backup_path(config.name),
    )
