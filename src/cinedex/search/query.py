"""Engine-neutral search queries.

`build_search_query` turns free text, the selected facet options and the
pagination window into a `SearchQuery`. Only the engine adapter interprets
the query; everything else treats it as a value object.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from cinedex.search.facets import Bound, Facet, FacetSet


@dataclass(frozen=True, slots=True)
class TermFilter:
    """Exact match of `value` on `field_name`."""

    field_name: str
    value: Any


@dataclass(frozen=True, slots=True)
class RangeFilter:
    """Inclusive range on `field_name`; a `None` bound is open."""

    field_name: str
    lo: Bound
    hi: Bound


Filter = Union[TermFilter, RangeFilter]


@dataclass(frozen=True, slots=True)
class SearchQuery:
    """A full-text query with facet filters, facet counting and pagination.

    `filters` is a conjunction of disjunctions: every inner tuple must have
    at least one matching clause. `top=None` means no limit; `top=0` asks for
    counts only.
    """

    text: str = ""
    filters: Tuple[Tuple[Filter, ...], ...] = ()
    facets: Optional[FacetSet] = None
    skip: int = 0
    top: Optional[int] = None

    def restrict(self, clause: Filter) -> SearchQuery:
        """Return a copy further restricted to documents matching `clause`."""
        return replace(self, filters=self.filters + ((clause,),))

    def page(self, *, skip: int = 0, top: Optional[int] = None) -> SearchQuery:
        return replace(self, skip=skip, top=top)


def option_filter(facet: Facet, option: Any) -> Filter:
    """Filter clause selecting one option (range code or raw value) of `facet`."""
    if facet.is_ranged:
        lo, hi = facet.get_range(str(option)).value_interval
        return RangeFilter(facet.field_name, lo, hi)
    return TermFilter(facet.field_name, option)


def build_search_query(
    text: Optional[str],
    facets: FacetSet,
    selected_facets: Optional[Mapping[str, Sequence[Any]]] = None,
    skip: int = 0,
    top: Optional[int] = None,
) -> SearchQuery:
    """Build the query for `text` restricted to `selected_facets`.

    Unknown facet or range codes raise `ConfigurationError`; facets with no
    selected option impose no restriction.
    """
    if skip < 0:
        raise ValueError(f"skip must be >= 0, got {skip}")
    if top is not None and top < 0:
        raise ValueError(f"top must be >= 0 or None, got {top}")

    filters: List[Tuple[Filter, ...]] = []
    for facet_code, options in (selected_facets or {}).items():
        facet = facets.get_facet(facet_code)
        if isinstance(options, (str, bytes)) or not isinstance(options, Sequence):
            options = [options]
        clauses = tuple(option_filter(facet, option) for option in options)
        if clauses:
            filters.append(clauses)

    return SearchQuery(
        text=(text or "").strip(),
        filters=tuple(filters),
        facets=facets,
        skip=skip,
        top=top,
    )


def describe(query: SearchQuery) -> Dict[str, Any]:
    """Compact representation used in debug logs."""
    return {
        "text": query.text,
        "filters": [[_describe_clause(c) for c in group] for group in query.filters],
        "skip": query.skip,
        "top": query.top,
    }


def _describe_clause(clause: Filter) -> str:
    if isinstance(clause, RangeFilter):
        return f"{clause.field_name}:[{clause.lo!r} TO {clause.hi!r}]"
    return f"{clause.field_name}:{clause.value!r}"
