"""Facet definitions shared by the query builder, grouped search and formatter.

A facet is a filterable/groupable dimension over indexed documents. A ranged
facet partitions its field into ordered, labelled intervals; a plain facet
groups on the raw field values.

Raw facet specifications are plain mappings, as written in the entity
configuration modules::

    {
        "FCT_MOVIE_YEAR": {
            "fieldName": "productionYear",
            "ranges": [{"code": "R1", "value": [None, 1930], "label": "Before 1930"}, ...],
        },
        "FCT_MOVIE_TYPE": {"fieldName": "movieType"},
    }

`normalize_facets` turns them into an immutable `FacetSet`.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Tuple, Union

from cinedex.exceptions import ConfigurationError

# Upper bound for prefix ranges on text fields, e.g. ("A", "G" + TEXT_MAX) covers "Gone"
TEXT_MAX = "\uffff"

Bound = Optional[Union[int, float, str]]


@dataclass(frozen=True, slots=True)
class FacetRange:
    """A labelled inclusive interval of a ranged facet."""

    code: str
    value_interval: Tuple[Bound, Bound]
    label: str


@dataclass(frozen=True, slots=True)
class Facet:
    code: str
    field_name: str
    ranges: Optional[Tuple[FacetRange, ...]] = None

    @property
    def is_ranged(self) -> bool:
        return self.ranges is not None

    def get_range(self, range_code: str) -> FacetRange:
        for facet_range in self.ranges or ():
            if facet_range.code == range_code:
                return facet_range
        raise ConfigurationError(f"Unknown range '{range_code}' for facet '{self.code}'")

    def label_for(self, option_code: str) -> str:
        """Range label for ranged facets, the raw value itself otherwise."""
        if self.ranges is None:
            return option_code
        return self.get_range(option_code).label


class FacetSet(Mapping[str, Facet]):
    """Immutable mapping of facet code to `Facet`, in declaration order."""

    def __init__(self, facets: Mapping[str, Facet]) -> None:
        self._facets = MappingProxyType(dict(facets))

    def __getitem__(self, code: str) -> Facet:
        return self._facets[code]

    def __iter__(self) -> Iterator[str]:
        return iter(self._facets)

    def __len__(self) -> int:
        return len(self._facets)

    def __repr__(self) -> str:
        return f"FacetSet({list(self._facets)})"

    def get_facet(self, code: str) -> Facet:
        try:
            return self._facets[code]
        except KeyError:
            raise ConfigurationError(
                f"Unknown facet '{code}'. Known facets: {', '.join(self._facets)}"
            ) from None

    def field_name(self, code: str) -> str:
        """Resolve a facet code to the index field it is computed on."""
        return self.get_facet(code).field_name


def _normalize_range(facet_code: str, raw: Any) -> FacetRange:
    if isinstance(raw, FacetRange):
        return raw
    if not isinstance(raw, Mapping) or not raw.get("code"):
        raise ConfigurationError(f"Facet '{facet_code}' has a range without a code: {raw!r}")
    interval = raw.get("value", raw.get("value_interval"))
    if not isinstance(interval, (list, tuple)) or len(interval) != 2:
        raise ConfigurationError(
            f"Range '{raw['code']}' of facet '{facet_code}' needs a [lo, hi] interval, got {interval!r}"
        )
    lo, hi = interval
    # Empty strings are the historical spelling of an open bound
    return FacetRange(
        code=str(raw["code"]),
        value_interval=(None if lo == "" else lo, None if hi == "" else hi),
        label=str(raw.get("label") or raw["code"]),
    )


def _normalize_facet(key: str, raw: Any) -> Facet:
    if isinstance(raw, Facet):
        return raw
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Facet '{key}' must be a mapping, got {type(raw).__name__}")
    field_name = raw.get("fieldName") or raw.get("field_name")
    if not field_name:
        raise ConfigurationError(f"Facet '{key}' has no field name")

    ranges = None
    if raw.get("ranges") is not None:
        ranges = tuple(_normalize_range(key, r) for r in raw["ranges"])
        codes = [r.code for r in ranges]
        if len(set(codes)) != len(codes):
            raise ConfigurationError(f"Facet '{key}' declares duplicate range codes: {codes}")

    return Facet(code=str(raw.get("code") or key), field_name=str(field_name), ranges=ranges)


def normalize_facets(spec: Mapping[str, Any]) -> FacetSet:
    """Build a `FacetSet`, filling missing facet codes and range labels.

    A facet without a code takes its key; a range without a label takes its
    code. Normalizing an existing `FacetSet` returns an equal set.
    """
    facets = {}
    for key, raw in spec.items():
        facet = _normalize_facet(key, raw)
        if facet.code in facets:
            raise ConfigurationError(f"Duplicate facet code '{facet.code}'")
        facets[facet.code] = facet
    return FacetSet(facets)
