import asyncio
from typing import Any, BinaryIO, Callable, Dict, List, Optional, Sequence

import pytest

from cinedex.exceptions import EngineError
from cinedex.search.base_search import (
    BaseSearch,
    EngineResult,
    FieldOption,
    IndexDocument,
    IndexInfo,
    IndexOptions,
    field_values,
)
from cinedex.search.query import Filter, RangeFilter, SearchQuery

# ---------- In-memory engine ----------


def _matches(doc: Dict[str, Any], clause: Filter) -> bool:
    values = field_values(doc, clause.field_name)
    if isinstance(clause, RangeFilter):
        return any(
            (clause.lo is None or v >= clause.lo) and (clause.hi is None or v <= clause.hi) for v in values
        )
    return clause.value in values


class MemoryIndex(BaseSearch):
    """Small in-memory stand-in for the engine used by unit tests.

    Text matches are case-insensitive substring matches over string fields.
    `delay` may return a per-query sleep to shuffle completion order.
    """

    def __init__(self, docs: Optional[List[IndexDocument]] = None) -> None:
        self.docs: List[IndexDocument] = list(docs or [])
        self.batches: List[List[IndexDocument]] = []
        self.queries: List[SearchQuery] = []
        self.fail_on_batch: Optional[int] = None
        self.flush_error: Optional[Exception] = None
        self.flushes = 0
        self.restored: Optional[bytes] = None
        self.delay: Callable[[SearchQuery], float] = lambda q: 0.0

    @classmethod
    async def create(cls, options: IndexOptions) -> "MemoryIndex":
        return cls()

    async def add(self, docs: Sequence[IndexDocument], field_options: Sequence[FieldOption] = ()) -> None:
        if self.fail_on_batch is not None and len(self.batches) == self.fail_on_batch:
            raise EngineError(f"batch {self.fail_on_batch} rejected")
        self.batches.append(list(docs))
        self.docs.extend(docs)

    def _select(self, query: SearchQuery) -> List[IndexDocument]:
        out = []
        for doc in self.docs:
            if query.text and not any(
                query.text.lower() in str(v).lower() for v in doc.values() if isinstance(v, str)
            ):
                continue
            if all(any(_matches(doc, c) for c in group) for group in query.filters):
                out.append(doc)
        return out

    async def search(self, query: SearchQuery) -> EngineResult:
        self.queries.append(query)
        await asyncio.sleep(self.delay(query))
        matched = self._select(query)
        facet_counts: Dict[str, Dict[str, int]] = {}
        for code, facet in (query.facets or {}).items():
            counts: Dict[str, int] = {}
            for doc in matched:
                if facet.ranges is not None:
                    for r in facet.ranges:
                        if _matches(doc, RangeFilter(facet.field_name, *r.value_interval)):
                            counts[r.code] = counts.get(r.code, 0) + 1
                else:
                    for v in field_values(doc, facet.field_name):
                        counts[str(v)] = counts.get(str(v), 0) + 1
            facet_counts[code] = counts
        end = None if query.top is None else query.skip + query.top
        return EngineResult(hits=[dict(d) for d in matched[query.skip : end]], facet_counts=facet_counts, total_count=len(matched))

    async def count(self) -> int:
        return len(self.docs)

    async def flush(self) -> None:
        if self.flush_error is not None:
            raise self.flush_error
        self.flushes += 1

    async def info(self) -> IndexInfo:
        return IndexInfo(total_docs=len(self.docs), index_path=":memory:", fields=[])

    async def snapshot(self, out: BinaryIO) -> None:
        out.write(repr(self.docs).encode("utf-8"))

    async def replicate(self, source: BinaryIO) -> None:
        self.restored = source.read()


@pytest.fixture
def memory_index() -> MemoryIndex:
    return MemoryIndex()


def make_movie(code: str, title: str, year: int, movie_type: str = "Feature", **extra: Any) -> Dict[str, Any]:
    doc = {
        "code": code,
        "title": title,
        "originalTitle": title,
        "keywords": extra.pop("keywords", ""),
        "poster": None,
        "runtime": extra.pop("runtime", 120),
        "movieType": movie_type,
        "productionYear": year,
        "userRating": extra.pop("userRating", 3.5),
        "pressRating": extra.pop("pressRating", 3.0),
    }
    doc.update(extra)
    return doc
