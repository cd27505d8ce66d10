"""Movie index configuration: stored fields, field options, facets and projections."""

from __future__ import annotations

from typing import Any, Dict, Mapping

from cinedex.search.base_search import FieldOption, IndexDocument
from cinedex.search.facets import TEXT_MAX, normalize_facets
from cinedex.search.service import EntityConfig, record_value

MOVIE_FIELDS_TO_STORE = (
    "code",
    "title",
    "originalTitle",
    "keywords",
    "poster",
    "runtime",
    "movieType",
    "productionYear",
    "userRating",
    "pressRating",
)

MOVIE_FIELD_OPTIONS = (
    FieldOption("code", searchable=False),
    FieldOption("title", filter=True),
    FieldOption("originalTitle"),
    FieldOption("keywords"),
    FieldOption("poster", searchable=False),
    FieldOption("runtime", searchable=False),
    FieldOption("movieType", filter=True, searchable=False),
    FieldOption("productionYear", filter=True, searchable=False, numeric=True),
    FieldOption("userRating", searchable=False),
    FieldOption("pressRating", searchable=False),
)

MOVIE_FACETS = normalize_facets(
    {
        "FCT_MOVIE_TITLE": {
            "fieldName": "title",
            "ranges": [
                {"code": "R1", "value": [None, "9" + TEXT_MAX], "label": "#"},
                {"code": "R2", "value": ["A", "G" + TEXT_MAX], "label": "A-G"},
                {"code": "R3", "value": ["H", "N" + TEXT_MAX], "label": "H-N"},
                {"code": "R4", "value": ["O", "T" + TEXT_MAX], "label": "O-T"},
                {"code": "R5", "value": ["U", "Z" + TEXT_MAX], "label": "U-Z"},
            ],
        },
        "FCT_MOVIE_TYPE": {"fieldName": "movieType"},
        "FCT_MOVIE_YEAR": {
            "fieldName": "productionYear",
            "ranges": [
                {"code": "R1", "value": [None, 1930], "label": "Before 1930"},
                {"code": "R2", "value": [1931, 1940], "label": "1930s"},
                {"code": "R3", "value": [1941, 1950], "label": "1940s"},
                {"code": "R4", "value": [1951, 1960], "label": "1950s"},
                {"code": "R5", "value": [1961, 1970], "label": "1960s"},
                {"code": "R6", "value": [1971, 1980], "label": "1970s"},
                {"code": "R7", "value": [1981, 1990], "label": "1980s"},
                {"code": "R8", "value": [1991, 2000], "label": "1990s"},
                {"code": "R9", "value": [2001, 2010], "label": "2000s"},
                {"code": "R10", "value": [2011, None], "label": "After 2010"},
            ],
        },
    }
)


def movie_to_document(movie: Any) -> IndexDocument:
    """Project a movie row (ORM object or mapping) into an index document."""
    return {
        "code": record_value(movie, "code"),
        "title": record_value(movie, "title"),
        "originalTitle": record_value(movie, "original_title"),
        "keywords": record_value(movie, "keywords"),
        "poster": record_value(movie, "poster"),
        "runtime": record_value(movie, "runtime"),
        "movieType": record_value(movie, "movie_type"),
        "productionYear": record_value(movie, "production_year"),
        "userRating": record_value(movie, "user_rating"),
        "pressRating": record_value(movie, "press_rating"),
    }


def parse_movie(hit: Mapping[str, Any]) -> Dict[str, Any]:
    return {name: hit.get(name) for name in MOVIE_FIELDS_TO_STORE}


MOVIE_CONFIG = EntityConfig(
    name="movie",
    fields_to_store=MOVIE_FIELDS_TO_STORE,
    field_options=MOVIE_FIELD_OPTIONS,
    facets=MOVIE_FACETS,
    to_document=movie_to_document,
    from_hit=parse_movie,
)
