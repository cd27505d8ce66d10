"""Person index configuration: stored fields, field options, facets and projections."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from cinedex.search.base_search import FieldOption, IndexDocument
from cinedex.search.facets import TEXT_MAX, normalize_facets
from cinedex.search.service import EntityConfig, record_value

ACTIVITY_SEPARATOR = ", "

PERSON_FIELDS_TO_STORE = (
    "code",
    "fullName",
    "sex",
    "photoUrl",
    "birthDate",
    "birthPlace",
    "activity",
)

PERSON_FIELD_OPTIONS = (
    FieldOption("code", searchable=False),
    FieldOption("activity", filter=True, searchable=False, multi_valued=True),
    FieldOption("fullName", filter=True),
    FieldOption("sex", filter=True, searchable=False),
    FieldOption("photoUrl", searchable=False),
    FieldOption("birthDate", searchable=False),
    FieldOption("birthPlace"),
)

# Plain facets leave their code out; normalization takes it from the key
PERSON_FACETS = normalize_facets(
    {
        "FCT_PERSON_NAME": {
            "fieldName": "fullName",
            "ranges": [
                {"code": "R1", "value": [None, "9" + TEXT_MAX], "label": "#"},
                {"code": "R2", "value": ["A", "G" + TEXT_MAX], "label": "A-G"},
                {"code": "R3", "value": ["H", "N" + TEXT_MAX], "label": "H-N"},
                {"code": "R4", "value": ["O", "T" + TEXT_MAX], "label": "O-T"},
                {"code": "R5", "value": ["U", "Z" + TEXT_MAX], "label": "U-Z"},
            ],
        },
        "FCT_PERSON_SEX": {"fieldName": "sex"},
        "FCT_PERSON_ACTIVITY": {"fieldName": "activity"},
    }
)


def split_activity(activity: Optional[str]) -> List[str]:
    if not activity:
        return []
    return [a.strip() for a in activity.split(ACTIVITY_SEPARATOR.strip()) if a.strip()]


def person_to_document(person: Any) -> IndexDocument:
    """Project a person row (ORM object or mapping) into an index document."""
    return {
        "code": record_value(person, "code"),
        "fullName": record_value(person, "full_name"),
        "sex": record_value(person, "sex"),
        "photoUrl": record_value(person, "photo_url"),
        "birthDate": record_value(person, "birth_date"),
        "birthPlace": record_value(person, "birth_place"),
        "activity": split_activity(record_value(person, "activity")),
    }


def parse_person(hit: Mapping[str, Any]) -> Dict[str, Any]:
    out = {name: hit.get(name) for name in PERSON_FIELDS_TO_STORE}
    out["activity"] = ACTIVITY_SEPARATOR.join(hit.get("activity") or [])
    return out


PERSON_CONFIG = EntityConfig(
    name="person",
    fields_to_store=PERSON_FIELDS_TO_STORE,
    field_options=PERSON_FIELD_OPTIONS,
    facets=PERSON_FACETS,
    to_document=person_to_document,
    from_hit=parse_person,
)
