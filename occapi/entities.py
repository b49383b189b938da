# occapi/entities.py
"""
Local entities built from OCCAPI resources.

Entities live in one table per type (``hei``, ``ounit``, ``programme``,
``course``). Each type has a unique ID column matching the remote resource,
and entity reference fields are rows in ``entity_references``. Compound
attribute values are stored as JSON text.
"""
import json
import logging

from . import jsonapi
from .db import insert, insert_many, query, update
from .fields import build_entity_data
from .tempstore import TYPE_COURSE, TYPE_HEI, TYPE_OUNIT, TYPE_PROGRAMME

logger = logging.getLogger(__name__)

ENTITY_HEI       = "hei"
ENTITY_OUNIT     = "ounit"
ENTITY_PROGRAMME = "programme"
ENTITY_COURSE    = "course"

TYPE_ENTITY = {
    TYPE_HEI:       ENTITY_HEI,
    TYPE_OUNIT:     ENTITY_OUNIT,
    TYPE_PROGRAMME: ENTITY_PROGRAMME,
    TYPE_COURSE:    ENTITY_COURSE,
}

# entity type -> reference field pointing at it
ENTITY_REF = {
    ENTITY_HEI:       "hei",
    ENTITY_OUNIT:     "ounit",
    ENTITY_PROGRAMME: "related_programme",
}

UNIQUE_ID = {
    ENTITY_HEI:       "hei_id",
    ENTITY_OUNIT:     "ounit_id",
    ENTITY_PROGRAMME: "remote_id",
    ENTITY_COURSE:    "remote_id",
}

# reference fields carried by each entity type
REFERENCE_FIELDS = {
    ENTITY_HEI:       [],
    ENTITY_OUNIT:     ["hei"],
    ENTITY_PROGRAMME: ["hei", "ounit"],
    ENTITY_COURSE:    ["hei", "ounit", "related_programme"],
}

JSON_FIELDS = {
    ENTITY_HEI:       ["url"],
    ENTITY_OUNIT:     ["url"],
    ENTITY_PROGRAMME: ["title", "description", "url"],
    ENTITY_COURSE:    ["title", "description", "learning_outcomes", "url", "meta"],
}

FIELD_REMOTE_ID  = "remote_id"
FIELD_REMOTE_URL = "remote_url"
FIELD_META       = "meta"

LABEL_KEY       = "label"
UNIQUE_KEY      = "unique_id"
ENTITY_TYPE_KEY = "entity_type"
TARGET_KEY      = "target_id"


def _check_type(entity_type: str) -> None:
    if entity_type not in UNIQUE_ID:
        raise ValueError(f"Unknown entity type {entity_type!r}")

def _encode(entity_type: str, values: dict) -> dict:
    encoded = {}
    for field, value in values.items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value, ensure_ascii=False)
        encoded[field] = value
    return encoded

def _json_or_raw(value):
    if not isinstance(value, str) or value[:1] not in ("[", "{"):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return value

def _decode(entity_type: str, row: dict) -> dict:
    entity = dict(row)
    for field in JSON_FIELDS[entity_type]:
        if field in entity:
            entity[field] = _json_or_raw(entity[field])
    return entity


def referenced_ids(entity_type: str, entity_id: int, field: str) -> list[int]:
    """Target IDs stored in a reference field of an entity."""
    rows = query("entity_references", {
        "entity_type": entity_type,
        "entity_id":   entity_id,
        "field":       field,
    }, order_by="rowid")
    return [row[TARGET_KEY] for row in rows]

def referencing_ids(entity_type: str, field: str, target_id: int) -> list[int]:
    """IDs of entities of a type whose reference field points at the target."""
    rows = query("entity_references", {
        "entity_type": entity_type,
        "field":       field,
        TARGET_KEY:    target_id,
    }, order_by="entity_id")
    return [row["entity_id"] for row in rows]

def load_entity(entity_type: str, entity_id: int) -> dict | None:
    """An entity with decoded JSON values and its reference target IDs."""
    _check_type(entity_type)
    rows = query(entity_type, {"id": entity_id})
    if not rows:
        return None

    entity = _decode(entity_type, rows[0])
    for field in REFERENCE_FIELDS[entity_type]:
        entity[field] = referenced_ids(entity_type, entity_id, field)
    return entity

def load_entities(entity_type: str, filters: dict | None = None) -> dict[int, dict]:
    _check_type(entity_type)
    rows = query(entity_type, filters, order_by="id")
    return {row["id"]: load_entity(entity_type, row["id"]) for row in rows}

def get_entity_by_unique_id(entity_type: str, unique: str) -> dict[int, dict] | None:
    """Entities keyed by ID whose unique ID field matches, or None."""
    if entity_type not in UNIQUE_ID:
        return None
    exists = load_entities(entity_type, {UNIQUE_ID[entity_type]: unique})
    return exists or None

def get_hei_by_hei_id(hei_id: str) -> dict[int, dict] | None:
    return get_entity_by_unique_id(ENTITY_HEI, hei_id)

def get_ounit_by_ounit_id(ounit_id: str) -> dict[int, dict] | None:
    return get_entity_by_unique_id(ENTITY_OUNIT, ounit_id)

def get_programme_by_remote_id(remote_id: str) -> dict[int, dict] | None:
    return get_entity_by_unique_id(ENTITY_PROGRAMME, remote_id)

def get_course_by_remote_id(remote_id: str) -> dict[int, dict] | None:
    return get_entity_by_unique_id(ENTITY_COURSE, remote_id)

def check_existing_entity(resource: dict) -> dict[int, dict] | None:
    """Local entities matching a resource by type and ID."""
    resource_type = jsonapi.get_resource_type(resource)
    entity_type = TYPE_ENTITY.get(resource_type)
    if not entity_type:
        return None
    return get_entity_by_unique_id(entity_type, jsonapi.get_resource_id(resource))


def build_entity_references(hei_id: str, relationships: dict | list) -> dict[str, list[dict]]:
    """
    Reference field values for an institution and a set of relationships.

    Related resources that have no local entity yet are left out.
    """
    references = {}

    hei = get_hei_by_hei_id(hei_id)
    if hei:
        references[ENTITY_REF[ENTITY_HEI]] = [{TARGET_KEY: list(hei)[0]}]
    else:
        logger.warning("No local institution with ID %s", hei_id)

    values = relationships.values() if isinstance(relationships, dict) else relationships or []

    for relationship in values:
        rel_data = jsonapi.get_resource_data(relationship) if isinstance(relationship, dict) else relationship
        for rel_item in jsonapi.as_list(rel_data):
            if not isinstance(rel_item, dict) or jsonapi.ID_KEY not in rel_item:
                continue
            entity_type = TYPE_ENTITY.get(rel_item.get(jsonapi.TYPE_KEY))
            if entity_type not in ENTITY_REF:
                continue
            field = ENTITY_REF[entity_type]
            for target_id in get_entity_by_unique_id(entity_type, rel_item[jsonapi.ID_KEY]) or {}:
                items = references.setdefault(field, [])
                if {TARGET_KEY: target_id} not in items:
                    items.append({TARGET_KEY: target_id})

    return references

def build_extra_fields(resource: dict) -> dict:
    """Remote ID and URL of a resource, plus its metadata for courses."""
    data = jsonapi.get_resource_data(resource)

    extra_fields = {
        FIELD_REMOTE_ID:  jsonapi.get_resource_id(resource),
        FIELD_REMOTE_URL: jsonapi.get_resource_link_by_type(resource, jsonapi.SELF_KEY),
    }

    if jsonapi.META_KEY in data and data.get(jsonapi.TYPE_KEY) == TYPE_COURSE:
        extra_fields[FIELD_META] = json.dumps(data[jsonapi.META_KEY], ensure_ascii=False)

    return extra_fields

def prepare_entity_data(resource: dict, hei_id: str) -> dict:
    """Everything needed to create an entity from a resource."""
    data = jsonapi.get_resource_data(resource)
    entity_type = TYPE_ENTITY[jsonapi.get_resource_type(resource)]

    entity_data = {
        LABEL_KEY:       jsonapi.get_resource_title(resource),
        UNIQUE_KEY:      jsonapi.get_resource_id(resource),
        ENTITY_TYPE_KEY: entity_type,
    }
    entity_data.update(build_entity_data(entity_type, data.get(jsonapi.ATTR_KEY) or {}))
    entity_data.update(build_entity_references(hei_id, data.get(jsonapi.REL_KEY) or {}))
    if entity_type in (ENTITY_PROGRAMME, ENTITY_COURSE):
        entity_data.update(build_extra_fields(resource))

    return entity_data

def _split(entity_type: str, entity_data: dict) -> tuple[dict, dict]:
    values = dict(entity_data)
    unique_id = values.pop(UNIQUE_KEY, None)
    values.pop(ENTITY_TYPE_KEY, None)

    references = {}
    for field in set(ENTITY_REF.values()):
        items = values.pop(field, None)
        if items and field in REFERENCE_FIELDS[entity_type]:
            references[field] = [item[TARGET_KEY] for item in items]

    if unique_id is not None:
        values[UNIQUE_ID[entity_type]] = unique_id

    return values, references

def create_entity(entity_type: str, entity_data: dict) -> dict | None:
    """Create an entity with its references and return it."""
    entity_type = entity_data.get(ENTITY_TYPE_KEY, entity_type)
    _check_type(entity_type)

    values, references = _split(entity_type, entity_data)
    entity_id = insert(entity_type, _encode(entity_type, values))

    insert_many("entity_references", [
        {"entity_type": entity_type, "entity_id": entity_id, "field": field, TARGET_KEY: target_id}
        for field, target_ids in references.items()
        for target_id in target_ids
    ])

    logger.info("Created %s %s", entity_type, entity_id)
    return load_entity(entity_type, entity_id)

def update_entity(entity_type: str, entity: dict, entity_data: dict) -> dict:
    """
    Append references from ``entity_data`` that the entity does not have.

    Other fields are left untouched.
    """
    _check_type(entity_type)
    entity_id = entity["id"]
    _, references = _split(entity_type, entity_data)

    new_rows = []
    for field, target_ids in references.items():
        existing = referenced_ids(entity_type, entity_id, field)
        for target_id in target_ids:
            if target_id not in existing:
                new_rows.append({
                    "entity_type": entity_type,
                    "entity_id":   entity_id,
                    "field":       field,
                    TARGET_KEY:    target_id,
                })

    if new_rows:
        insert_many("entity_references", new_rows)
        logger.info("Added %d references to %s %s", len(new_rows), entity_type, entity_id)

    return load_entity(entity_type, entity_id)

def update_fields(entity_type: str, entity_id: int, values: dict) -> int:
    _check_type(entity_type)
    return update(entity_type, _encode(entity_type, values), {"id": entity_id})

def create_hei(resource: dict) -> dict | None:
    """Institution entity from an OCCAPI ``hei`` resource, unless it exists."""
    hei_id = jsonapi.get_resource_id(resource)

    exists = get_hei_by_hei_id(hei_id)
    if exists:
        return list(exists.values())[0]

    attributes = jsonapi.get_resource_data(resource).get(jsonapi.ATTR_KEY) or {}
    entity_data = {
        LABEL_KEY:       jsonapi.get_resource_title(resource) or hei_id,
        UNIQUE_KEY:      hei_id,
        ENTITY_TYPE_KEY: ENTITY_HEI,
    }
    entity_data.update(build_entity_data(ENTITY_HEI, attributes))

    return create_entity(ENTITY_HEI, entity_data)

def create_ounit(resource: dict, hei_id: str) -> dict | None:
    """Organizational unit entity of an institution, unless it exists."""
    ounit_id = jsonapi.get_resource_id(resource)

    exists = get_ounit_by_ounit_id(ounit_id)
    if exists:
        return list(exists.values())[0]

    entity_data = prepare_entity_data(resource, hei_id)
    if not entity_data[LABEL_KEY]:
        entity_data[LABEL_KEY] = ounit_id

    return create_entity(ENTITY_OUNIT, entity_data)
