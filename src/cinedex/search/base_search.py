"""Abstract search interface for indexing and querying documents.

Defines the minimal surface the faceted-search core needs from an indexing
engine (e.g., Whoosh), enabling extensibility and testability via a common
contract. Indexes are append-only: there is no delete or update.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Mapping, Optional, Sequence, Tuple

from cinedex.search.query import SearchQuery

IndexDocument = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class FieldOption:
    """Per-field indexing options.

    Attributes
    ----------
    field_name: str
        Document key the options apply to.
    searchable: bool
        Whether free text is matched against this field.
    filter: bool
        Whether the field can be filtered, faceted and grouped on.
    numeric: bool
        Whether filter values are numbers (ranges compare numerically).
    multi_valued: bool
        Whether the document value is a list of values.
    """

    field_name: str
    searchable: bool = True
    filter: bool = False
    numeric: bool = False
    multi_valued: bool = False


@dataclass(frozen=True, slots=True)
class IndexOptions:
    """Configuration an index is created with."""

    index_path: Path
    fields_to_store: Tuple[str, ...]
    field_options: Tuple[FieldOption, ...] = ()
    # When False, free text is matched against every searchable field at once
    fielded_search: bool = False
    deletable: bool = False
    stopwords: frozenset = frozenset()
    # Stemmer language, matching the stopword list
    language: str = "en"

    def option_for(self, field_name: str) -> FieldOption:
        for option in self.field_options:
            if option.field_name == field_name:
                return option
        return FieldOption(field_name)


@dataclass(slots=True)
class EngineResult:
    """Raw engine answer: one page of stored hits plus match metadata.

    `facet_counts` maps facet code to {option: count}, where option is the
    range code for ranged facets and the raw value otherwise.
    """

    hits: List[Dict[str, Any]] = field(default_factory=list)
    facet_counts: Dict[str, Dict[str, int]] = field(default_factory=dict)
    total_count: int = 0


@dataclass(slots=True)
class IndexInfo:
    total_docs: int
    index_path: str
    fields: List[str] = field(default_factory=list)
    last_modified: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "totalDocs": self.total_docs,
            "indexPath": self.index_path,
            "fields": list(self.fields),
            "lastModified": self.last_modified,
        }


class BaseSearch(ABC):
    """Abstract interface for search index implementations.

    Every method is a coroutine; implementations backed by blocking libraries
    must not block the event loop.
    """

    @classmethod
    @abstractmethod
    async def create(cls, options: IndexOptions) -> BaseSearch:
        """Open (or create) the index described by `options`."""

    @abstractmethod
    async def add(
        self, docs: Sequence[IndexDocument], field_options: Sequence[FieldOption] = ()
    ) -> None:
        """Append a batch of documents to the index."""

    @abstractmethod
    async def search(self, query: SearchQuery) -> EngineResult:
        """Execute a query and return one page of hits with facet counts."""
        raise NotImplementedError

    @abstractmethod
    async def count(self) -> int:
        """Number of documents in the index."""

    @abstractmethod
    async def flush(self) -> None:
        """Persist any in-memory state durably."""

    @abstractmethod
    async def info(self) -> IndexInfo:
        """Describe the index (document count, location, fields)."""

    @abstractmethod
    async def snapshot(self, out: BinaryIO) -> None:
        """Write a byte-for-byte backup of the index into `out`."""

    @abstractmethod
    async def replicate(self, source: BinaryIO) -> None:
        """Restore the index from a backup previously produced by `snapshot`."""


def field_values(doc: Mapping[str, Any], field_name: str) -> List[Any]:
    """Values of `field_name` in `doc` as a list; missing fields give []."""
    value = doc.get(field_name)
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [v for v in value if v is not None]
    return [value]
