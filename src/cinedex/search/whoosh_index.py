"""Persistent, append-only Whoosh index implementing `BaseSearch`.

Field layout
------------
Each document key maps to one primary Whoosh field named after it:

- searchable keys become ``TEXT`` fields analyzed with the stopword list;
- filter-only keys become ``ID`` (exact), ``KEYWORD`` (multi-valued, comma
  separated) or ``NUMERIC`` fields;
- stored-only keys become ``STORED`` fields.

A key that is both searchable and filterable gets a second, unstored exact
field ``<key>__filter`` used for filters and facet counts. Stored values are
written through ``_stored_<key>`` so hits give back the original Python
values (lists stay lists, numbers stay numbers).

Whoosh is synchronous; every call runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import shutil
import tarfile
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from loguru import logger
from whoosh import index as whoosh_index
from whoosh import sorting
from whoosh.analysis import StemmingAnalyzer
from whoosh.fields import ID, KEYWORD, NUMERIC, STORED, TEXT, FieldType, Schema
from whoosh.lang import has_stemmer, stemmer_for_language
from whoosh.qparser import FieldsPlugin, MultifieldParser, OrGroup
from whoosh.query import And, Every, NumericRange, Or, Query, Term, TermRange

from cinedex.exceptions import CinedexError, ConfigurationError, EngineError
from cinedex.search.base_search import (
    BaseSearch,
    EngineResult,
    FieldOption,
    IndexDocument,
    IndexInfo,
    IndexOptions,
    field_values,
)
from cinedex.search.facets import Facet, FacetSet
from cinedex.search.query import Filter, RangeFilter, SearchQuery

FILTER_SUFFIX = "__filter"

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class _FieldLayout:
    option: FieldOption
    stored: bool
    primary: str
    # Exact-match field used for filters and facets, None when not filterable
    filter_field: Optional[str]


def _filter_type(option: FieldOption, stored: bool) -> FieldType:
    if option.numeric:
        return NUMERIC(numtype=int, bits=64, stored=stored, signed=True)
    if option.multi_valued:
        return KEYWORD(stored=stored, commas=True)
    return ID(stored=stored)


def _make_schema(options: IndexOptions) -> Tuple[Schema, Dict[str, _FieldLayout]]:
    if not has_stemmer(options.language):
        raise ConfigurationError(f"No stemmer available for language '{options.language}'")
    analyzer = StemmingAnalyzer(
        stoplist=frozenset(options.stopwords), stemfn=stemmer_for_language(options.language)
    )
    names = list(options.fields_to_store)
    names += [o.field_name for o in options.field_options if o.field_name not in names]

    schema = Schema()
    layout: Dict[str, _FieldLayout] = {}
    for name in names:
        option = options.option_for(name)
        stored = name in options.fields_to_store
        filter_field = None
        if option.searchable:
            schema.add(name, TEXT(stored=stored, analyzer=analyzer))
            if option.filter:
                filter_field = name + FILTER_SUFFIX
                schema.add(filter_field, _filter_type(option, stored=False))
        elif option.filter:
            schema.add(name, _filter_type(option, stored=stored))
            filter_field = name
        elif stored:
            schema.add(name, STORED())
        else:
            continue
        layout[name] = _FieldLayout(option, stored, name, filter_field)
    return schema, layout


def _filter_value(option: FieldOption, values: List[Any]) -> Any:
    if option.numeric:
        return int(values[0])
    if option.multi_valued:
        return ",".join(str(v) for v in values)
    return str(values[0])


class WhooshIndex(BaseSearch):
    """Append-only Whoosh index stored in `options.index_path`."""

    def __init__(self, options: IndexOptions, ix: whoosh_index.Index, layout: Dict[str, _FieldLayout]) -> None:
        self.options = options
        self.path = Path(options.index_path)
        self._ix = ix
        self._layout = layout

    # ----- Lifecycle -----

    @classmethod
    async def create(cls, options: IndexOptions) -> WhooshIndex:
        if options.deletable:
            raise ConfigurationError("Whoosh indexes are opened append-only; deletable=True is not supported")
        schema, layout = _make_schema(options)

        def _open() -> whoosh_index.Index:
            path = Path(options.index_path)
            path.mkdir(parents=True, exist_ok=True)
            if whoosh_index.exists_in(str(path)):
                return whoosh_index.open_dir(str(path))
            return whoosh_index.create_in(str(path), schema)

        try:
            ix = await asyncio.to_thread(_open)
        except Exception as exc:
            raise EngineError(f"Unable to open search index at {options.index_path}: {exc}") from exc
        logger.info(f"[Whoosh] Index ready at '{options.index_path}' ({ix.doc_count()} documents)")
        return cls(options, ix, layout)

    async def _call(
        self,
        action: str,
        fn: Callable[..., T],
        *args: Any,
        passthrough: Tuple[type, ...] = (),
    ) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except passthrough:
            raise
        except CinedexError:
            raise
        except Exception as exc:
            raise EngineError(f"Whoosh {action} failed on '{self.path}': {exc}") from exc

    # ----- Writes -----

    def _to_fields(self, doc: IndexDocument) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        for name, layout in self._layout.items():
            values = field_values(doc, name)
            if not values:
                continue
            option = layout.option
            if option.searchable:
                fields[name] = " ".join(str(v) for v in values)
            elif option.filter:
                fields[name] = _filter_value(option, values)
            else:
                fields[name] = doc[name]
                continue
            if layout.filter_field and layout.filter_field != name:
                fields[layout.filter_field] = _filter_value(option, values)
            if layout.stored:
                fields["_stored_" + name] = doc[name]
        return fields

    def _add(self, docs: Sequence[IndexDocument]) -> None:
        writer = self._ix.writer()
        try:
            for doc in docs:
                writer.add_document(**self._to_fields(doc))
        except Exception:
            writer.cancel()
            raise
        writer.commit()

    async def add(self, docs: Sequence[IndexDocument], field_options: Sequence[FieldOption] = ()) -> None:
        unknown = [o.field_name for o in field_options if o not in self.options.field_options]
        if unknown:
            raise ConfigurationError(f"Field options differ from the index configuration: {unknown}")
        await self._call("add", self._add, list(docs))

    async def flush(self) -> None:
        # Merging every segment leaves a single durable, fully committed segment
        await self._call("flush", self._ix.optimize)

    # ----- Reads -----

    def _clause(self, clause: Filter) -> Query:
        layout = self._layout.get(clause.field_name)
        if layout is None or layout.filter_field is None:
            raise ConfigurationError(f"Field '{clause.field_name}' is not filterable")
        field = layout.filter_field
        numeric = layout.option.numeric
        if isinstance(clause, RangeFilter):
            if numeric:
                lo = None if clause.lo is None else int(clause.lo)
                hi = None if clause.hi is None else int(clause.hi)
                return NumericRange(field, lo, hi)
            lo = None if clause.lo is None else str(clause.lo)
            hi = None if clause.hi is None else str(clause.hi)
            return TermRange(field, lo, hi)
        return Term(field, int(clause.value) if numeric else str(clause.value))

    def _to_query(self, query: SearchQuery) -> Query:
        if query.text:
            searchable = [n for n, lay in self._layout.items() if lay.option.searchable]
            parser = MultifieldParser(searchable, schema=self._ix.schema, group=OrGroup)
            if not self.options.fielded_search:
                # "field:value" in free text stays plain text
                parser.remove_plugin_class(FieldsPlugin)
            q = parser.parse(query.text)
        else:
            q = Every()
        if query.filters:
            q = And([q] + [Or([self._clause(c) for c in group]) for group in query.filters])
        return q

    def _facet_type(self, facet: Facet) -> sorting.FacetType:
        layout = self._layout.get(facet.field_name)
        if layout is None or layout.filter_field is None:
            raise ConfigurationError(f"Facet '{facet.code}' uses field '{facet.field_name}' which is not filterable")
        if facet.ranges is not None:
            queries = {
                r.code: self._clause(RangeFilter(facet.field_name, *r.value_interval)) for r in facet.ranges
            }
            return sorting.QueryFacet(queries)
        return sorting.FieldFacet(layout.filter_field, allow_overlap=layout.option.multi_valued)

    def _decode_key(self, facet: Facet, key: Any) -> str:
        if isinstance(key, bytes):
            fieldobj = self._ix.schema[self._layout[facet.field_name].filter_field]
            key = fieldobj.from_bytes(key)
        return str(key)

    def _search(self, query: SearchQuery) -> EngineResult:
        facets: FacetSet = query.facets or FacetSet({})
        groupedby = {code: self._facet_type(facet) for code, facet in facets.items()}
        limit = None if query.top is None else max(query.skip + query.top, 1)
        end = None if query.top is None else query.skip + query.top

        with self._ix.searcher() as searcher:
            results = searcher.search(
                self._to_query(query),
                limit=limit,
                groupedby=groupedby or None,
                maptype=sorting.Count,
            )
            hits = [dict(hit.fields()) for hit in results[query.skip : end]]
            facet_counts: Dict[str, Dict[str, int]] = {}
            for code in groupedby:
                counts: Dict[str, int] = {}
                for key, count in results.groups(code).items():
                    if key is None or not count:
                        continue
                    counts[self._decode_key(facets[code], key)] = int(count)
                facet_counts[code] = counts
            return EngineResult(hits=hits, facet_counts=facet_counts, total_count=len(results))

    async def search(self, query: SearchQuery) -> EngineResult:
        return await self._call("search", self._search, query)

    async def count(self) -> int:
        return await self._call("count", self._ix.doc_count)

    def _info(self) -> IndexInfo:
        fields = [name for name in self._ix.schema.names() if not name.endswith(FILTER_SUFFIX)]
        return IndexInfo(
            total_docs=self._ix.doc_count(),
            index_path=str(self.path),
            fields=fields,
            last_modified=self._ix.last_modified(),
        )

    async def info(self) -> IndexInfo:
        return await self._call("info", self._info)

    # ----- Backup -----

    def _snapshot(self, out: BinaryIO) -> None:
        with tarfile.open(fileobj=out, mode="w|") as tar:
            for path in sorted(self.path.iterdir()):
                # Lock files belong to the running process, not to the index
                if path.is_file() and not path.name.endswith("LOCK"):
                    tar.add(str(path), arcname=path.name)

    async def snapshot(self, out: BinaryIO) -> None:
        await self._call("snapshot", self._snapshot, out, passthrough=(OSError,))

    def _replicate(self, source: BinaryIO) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{self.path.name}-", dir=self.path.parent))
        try:
            with tarfile.open(fileobj=source, mode="r|") as tar:
                tar.extractall(str(staging), filter="data")
            if not whoosh_index.exists_in(str(staging)):
                raise EngineError(f"Backup restored into '{self.path}' does not contain a search index")
            for path in self.path.iterdir():
                if path.is_file():
                    path.unlink()
            for path in staging.iterdir():
                shutil.move(str(path), str(self.path / path.name))
        finally:
            shutil.rmtree(staging, ignore_errors=True)
        self._ix = whoosh_index.open_dir(str(self.path))

    async def replicate(self, source: BinaryIO) -> None:
        await self._call("replicate", self._replicate, source, passthrough=(OSError,))
