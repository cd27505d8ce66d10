"""Grouped search: one capped sub-search per option of a facet.

Options are the declared ranges of a ranged facet, in declaration order, or
the distinct values of a plain facet found by the base query, ordered by
descending match count then value. Options matching nothing are left out.
Sub-searches run concurrently; `asyncio.gather` returns them in submission
order, so completion order never affects the group order.
"""

from __future__ import annotations

import asyncio
from typing import List, Tuple

from loguru import logger

from cinedex.exceptions import ConfigurationError
from cinedex.search.base_search import BaseSearch
from cinedex.search.facets import FacetSet
from cinedex.search.query import SearchQuery, option_filter
from cinedex.search.results import Group, GroupedSearchResults, format_facets


async def grouped_search(
    index: BaseSearch,
    query: SearchQuery,
    group_field: str,
    group_code: str,
    group_top: int,
    facets: FacetSet,
) -> GroupedSearchResults:
    """Run `query` once per option of facet `group_code`.

    Each group holds at most `group_top` hits plus the option's total match
    count; the grand total is the sum of the group totals.
    """
    facet = facets.get_facet(group_code)
    if facet.field_name != group_field:
        raise ConfigurationError(
            f"Facet '{group_code}' is computed on '{facet.field_name}', not on '{group_field}'"
        )
    if group_top < 0:
        raise ValueError(f"group_top must be >= 0, got {group_top}")

    # Facet counts of the whole query tell which options have matches at all
    base = await index.search(query.page(skip=0, top=0))
    option_counts = base.facet_counts.get(group_code, {})

    options: List[Tuple[str, str]]
    if facet.ranges is not None:
        options = [(r.code, r.label) for r in facet.ranges if option_counts.get(r.code)]
    else:
        ordered = sorted(option_counts.items(), key=lambda item: (-item[1], item[0]))
        options = [(code, code) for code, count in ordered if count]

    logger.debug(f"[Grouping] {group_code}: {len(options)} groups, top {group_top} each")
    sub_results = await asyncio.gather(
        *(
            index.search(query.restrict(option_filter(facet, code)).page(skip=0, top=group_top))
            for code, _ in options
        )
    )

    groups = [
        Group(code=code, label=label, total_count=result.total_count, list=list(result.hits))
        for (code, label), result in zip(options, sub_results)
    ]
    return GroupedSearchResults(
        groups=groups,
        facets=format_facets(facets, base.facet_counts),
        total_count=sum(g.total_count for g in groups),
    )
