import pytest

from cinedex.exceptions import ConfigurationError
from cinedex.search.grouping import grouped_search
from cinedex.search.movie import MOVIE_FACETS
from cinedex.search.query import RangeFilter, TermFilter, build_search_query

from conftest import MemoryIndex, make_movie

# ---------- Helpers ----------


def _catalog() -> MemoryIndex:
    return MemoryIndex(
        [
            make_movie("m1", "Metropolis", 1927),
            make_movie("m2", "Nosferatu", 1922),
            make_movie("m3", "Sunrise", 1927),
            make_movie("m4", "Freaks", 1932, movie_type="Short"),
            make_movie("m5", "Inception", 2010),
            make_movie("m6", "Interstellar", 2014),
        ]
    )


def _reverse_by_year(query) -> float:
    # Older decades answer last so completion order is the reverse of declaration order
    for group in query.filters:
        for clause in group:
            if isinstance(clause, RangeFilter) and clause.field_name == "productionYear":
                return 0.05 if clause.hi is not None and clause.hi <= 1930 else 0.0
    return 0.0


# ---------- Tests ----------


@pytest.mark.asyncio
async def test_ranged_groups_follow_declaration_order() -> None:
    index = _catalog()
    index.delay = _reverse_by_year
    query = build_search_query("", MOVIE_FACETS)

    result = await grouped_search(index, query, "productionYear", "FCT_MOVIE_YEAR", 10, MOVIE_FACETS)

    assert [g.label for g in result.groups] == ["Before 1930", "1930s", "2000s", "After 2010"]
    assert [g.total_count for g in result.groups] == [3, 1, 1, 1]
    assert result.total_count == 6


@pytest.mark.asyncio
async def test_group_top_caps_hits_but_not_totals() -> None:
    index = _catalog()
    query = build_search_query("", MOVIE_FACETS)

    result = await grouped_search(index, query, "productionYear", "FCT_MOVIE_YEAR", 2, MOVIE_FACETS)

    first = result.groups[0]
    assert first.code == "R1"
    assert first.total_count == 3
    assert len(first.list) == 2
    assert all(len(g.list) <= 2 for g in result.groups)


@pytest.mark.asyncio
async def test_plain_facet_groups_by_count() -> None:
    index = _catalog()
    query = build_search_query("", MOVIE_FACETS)

    result = await grouped_search(index, query, "movieType", "FCT_MOVIE_TYPE", 10, MOVIE_FACETS)

    assert [(g.code, g.total_count) for g in result.groups] == [("Feature", 5), ("Short", 1)]
    assert result.as_dict()["groups"][1]["label"] == "Short"


@pytest.mark.asyncio
async def test_sub_searches_keep_the_base_restrictions() -> None:
    index = _catalog()
    query = build_search_query("", MOVIE_FACETS, {"FCT_MOVIE_TYPE": ["Feature"]})

    result = await grouped_search(index, query, "productionYear", "FCT_MOVIE_YEAR", 10, MOVIE_FACETS)

    assert [g.code for g in result.groups] == ["R1", "R9", "R10"]
    for sub in index.queries[1:]:
        assert (TermFilter("movieType", "Feature"),) in sub.filters
        assert sub.top == 10


@pytest.mark.asyncio
async def test_zero_group_top_returns_counts_only() -> None:
    result = await grouped_search(
        _catalog(), build_search_query("", MOVIE_FACETS), "movieType", "FCT_MOVIE_TYPE", 0, MOVIE_FACETS
    )
    assert all(g.list == [] for g in result.groups)
    assert result.total_count == 6


@pytest.mark.asyncio
async def test_group_field_must_match_facet() -> None:
    with pytest.raises(ConfigurationError):
        await grouped_search(
            _catalog(), build_search_query("", MOVIE_FACETS), "title", "FCT_MOVIE_YEAR", 10, MOVIE_FACETS
        )


@pytest.mark.asyncio
async def test_no_match_gives_no_groups() -> None:
    result = await grouped_search(
        _catalog(),
        build_search_query("zzz", MOVIE_FACETS),
        "productionYear",
        "FCT_MOVIE_YEAR",
        10,
        MOVIE_FACETS,
    )
    assert result.groups == []
    assert result.total_count == 0
