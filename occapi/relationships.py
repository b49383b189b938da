# occapi/relationships.py
"""
Relationship bookkeeping for filtered data.

A collection fetched through a parent resource (the courses of a programme,
the programmes of an organizational unit) does not always say so in the
resources themselves. ``add_from_filter`` writes the parent into the
``relationships`` of every resource, so that the relation survives once the
data is turned into local entities.
"""
import json
import logging

from . import jsonapi
from .tempstore import (
    PARAM_FILTER_ID, PARAM_FILTER_TYPE, PARAM_RESOURCE_ID, PARAM_RESOURCE_TYPE,
    params_from_key,
    validate_collection_key, validate_resource_key,
)

logger = logging.getLogger(__name__)


def _identifiers(relationship) -> list[dict]:
    data = jsonapi.get_resource_data(relationship) if isinstance(relationship, dict) else relationship
    return jsonapi.as_list(data)

def has_relationship(item: dict, rel_type: str, rel_id: str) -> bool:
    relationships = item.get(jsonapi.REL_KEY) or {}
    values = relationships.values() if isinstance(relationships, dict) else relationships
    for relationship in values:
        for identifier in _identifiers(relationship):
            if not isinstance(identifier, dict):
                continue
            if identifier.get(jsonapi.TYPE_KEY) == rel_type and identifier.get(jsonapi.ID_KEY) == rel_id:
                return True
    return False

def add(item: dict, rel_type: str, rel_id: str) -> dict:
    """
    Add a ``{type, id}`` relationship to a resource object unless present.

    Relationships are keyed by resource type, the JSON:API way; a legacy
    list of identifiers is appended to.
    """
    if has_relationship(item, rel_type, rel_id):
        return item

    identifier = {jsonapi.TYPE_KEY: rel_type, jsonapi.ID_KEY: rel_id}
    relationships = item.setdefault(jsonapi.REL_KEY, {})

    if isinstance(relationships, list):
        relationships.append(identifier)
        return item

    relationship = relationships.setdefault(rel_type, {jsonapi.DATA_KEY: []})
    existing = relationship.get(jsonapi.DATA_KEY)

    if existing is None:
        relationship[jsonapi.DATA_KEY] = [identifier]
    elif isinstance(existing, list):
        existing.append(identifier)
    else:
        relationship[jsonapi.DATA_KEY] = [existing, identifier]

    return item

def add_from_filter(data: str, temp_store_key: str) -> str:
    """Add the filter of a filtered key as a relationship on every resource."""
    params = params_from_key(temp_store_key)

    if params[PARAM_RESOURCE_ID]:
        error = validate_resource_key(temp_store_key, params[PARAM_RESOURCE_TYPE])
    else:
        error = validate_collection_key(temp_store_key)

    filter_type = params[PARAM_FILTER_TYPE]
    filter_id = params[PARAM_FILTER_ID]

    if error or not filter_type or not filter_id:
        return data

    try:
        decoded = json.loads(data)
    except ValueError:
        return data

    if not isinstance(decoded, dict) or not decoded.get(jsonapi.DATA_KEY):
        return data

    resources = decoded[jsonapi.DATA_KEY]

    for resource in jsonapi.as_list(resources):
        if isinstance(resource, dict):
            add(resource, filter_type, filter_id)

    logger.debug("Added %s %s relationship to %s", filter_type, filter_id, temp_store_key)

    return json.dumps(decoded, separators=(",", ":"), ensure_ascii=False)

def filter_hook(data: str, context: dict) -> str:
    """``occapi_data_load`` implementation of add_from_filter."""
    return add_from_filter(data, context["unalterable"])
