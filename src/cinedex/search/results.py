"""Normalization of raw engine answers into the public result shape."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from cinedex.search.base_search import EngineResult
from cinedex.search.facets import Facet, FacetSet


@dataclass(slots=True)
class FacetValue:
    code: str
    label: str
    count: int

    def as_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "label": self.label, "count": self.count}


@dataclass(slots=True)
class FacetResult:
    code: str
    values: List[FacetValue] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "values": [v.as_dict() for v in self.values]}


@dataclass(slots=True)
class SearchResults:
    list: List[Dict[str, Any]]
    facets: List[FacetResult]
    total_count: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "list": self.list,
            "facets": [f.as_dict() for f in self.facets],
            "totalCount": self.total_count,
        }


@dataclass(slots=True)
class Group:
    code: str
    label: str
    total_count: int
    list: List[Dict[str, Any]]

    def as_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "label": self.label, "totalCount": self.total_count, "list": self.list}


@dataclass(slots=True)
class GroupedSearchResults:
    groups: List[Group]
    facets: List[FacetResult]
    total_count: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "groups": [g.as_dict() for g in self.groups],
            "facets": [f.as_dict() for f in self.facets],
            "totalCount": self.total_count,
        }


def _sort_key(value: Any) -> tuple:
    # Missing values last, numbers before text so mixed fields still compare
    if value is None:
        return (2, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value).lower())


def sort_hits(hits: List[Dict[str, Any]], field_name: str, desc: bool = False) -> List[Dict[str, Any]]:
    """Sort hits on `field_name`; hits without the field stay at the end."""
    present = [h for h in hits if h.get(field_name) is not None]
    missing = [h for h in hits if h.get(field_name) is None]
    present.sort(key=lambda h: _sort_key(h[field_name]), reverse=desc)
    return present + missing


def format_facet(facet: Facet, counts: Mapping[str, int]) -> FacetResult:
    """Translate raw {option: count} for one facet into labelled values.

    Ranged facets are listed in declaration order; plain facets by
    descending count, then value.
    """
    if facet.ranges is not None:
        values = [
            FacetValue(r.code, r.label, counts[r.code]) for r in facet.ranges if counts.get(r.code)
        ]
    else:
        ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        values = [FacetValue(code, code, count) for code, count in ordered if count]
    return FacetResult(facet.code, values)


def format_facets(facets: FacetSet, facet_counts: Mapping[str, Mapping[str, int]]) -> List[FacetResult]:
    return [format_facet(facet, facet_counts.get(code, {})) for code, facet in facets.items()]


def treat_search_results(
    result: EngineResult,
    sort_field_name: Optional[str],
    sort_desc: bool,
    facets: FacetSet,
) -> SearchResults:
    """Build `{list, facets, totalCount}` from a raw engine result."""
    hits = list(result.hits)
    if sort_field_name:
        hits = sort_hits(hits, sort_field_name, sort_desc)
    return SearchResults(
        list=hits,
        facets=format_facets(facets, result.facet_counts),
        total_count=result.total_count,
    )
