# occapi/formatter.py
"""
Table builders for OCCAPI data.

Every builder returns ``{"header": [...], "rows": [[...], ...]}``; cells are
plain values or ``markupsafe.Markup`` for links, ready for a Jinja template.
"""
import json

from markupsafe import Markup, escape

from . import jsonapi
from .entities import FIELD_META, FIELD_REMOTE_ID, FIELD_REMOTE_URL
from .fields import ENTITY_COURSE, get_field_map, reverse_field_map

NOT_AVAILABLE = "n/a"


def _empty(value) -> bool:
    return value in (None, "", [], {})

def external_link(uri: str, text: str) -> Markup:
    """Anchor opening in a new window."""
    return Markup('<a href="{}" target="_blank">{}</a>').format(uri, text)

def collection_table(collection: dict | list, url_for=None) -> dict:
    """
    One row per resource: type, ID, title and a link to the resource.

    ``url_for(resource_type, resource_id)`` links the ID when given.
    """
    header = [jsonapi.TYPE_KEY, jsonapi.ID_KEY, jsonapi.TITLE_KEY, jsonapi.LINKS_KEY]
    rows = []

    resources = collection.get(jsonapi.DATA_KEY) if isinstance(collection, dict) else collection

    for resource in resources or []:
        uri = jsonapi.get_resource_link_by_type(resource, jsonapi.SELF_KEY)
        resource_type = resource.get(jsonapi.TYPE_KEY, "")
        resource_id = resource.get(jsonapi.ID_KEY, "")
        if url_for and resource_type and resource_id:
            resource_id = Markup('<a href="{}">{}</a>').format(url_for(resource_type, resource_id), resource_id)
        rows.append([
            resource_type,
            resource_id,
            jsonapi.get_resource_title(resource) or NOT_AVAILABLE,
            external_link(uri, jsonapi.SELF_KEY) if uri else "",
        ])

    return {"header": header, "rows": rows}

def field_table(resource: dict, entity_type: str) -> dict:
    """
    How a resource maps onto the fields of a local entity.

    Compound attribute values are expanded to one row per item and property,
    so that the path of each value reads like ``title.0.string``.
    """
    header = ["API object", "API field key", "API field value", "Local field key"]
    rows = []

    if get_field_map(entity_type) is None:
        return {"header": header, "rows": rows}

    field_map = reverse_field_map(entity_type)
    data = jsonapi.get_resource_data(resource)
    attributes = data.get(jsonapi.ATTR_KEY) or {}
    obj = jsonapi.ATTR_KEY

    def local(field, *path):
        if field not in field_map:
            return ""
        return ".".join([field_map[field], *map(str, path)])

    for field, field_value in attributes.items():
        if _empty(field_value):
            continue

        if not isinstance(field_value, (dict, list)):
            rows.append([obj, field, field_value, local(field)])
            continue

        rows.append([obj, field, "", local(field)])

        items = enumerate(field_value) if isinstance(field_value, list) else [(None, field_value)]

        for i, item_value in items:
            path = [] if i is None else [i]
            if not isinstance(item_value, dict):
                rows.append([obj, ".".join(map(str, [field, *path])), item_value, local(field, *path)])
                continue
            if path:
                rows.append([obj, ".".join(map(str, [field, *path])), "", local(field, *path)])
            for prop, prop_value in item_value.items():
                if _empty(prop_value):
                    continue
                label = ".".join(map(str, [field, *path, prop]))
                value = prop_value if not isinstance(prop_value, (dict, list)) else json.dumps(prop_value)
                rows.append([obj, label, value, local(field, *path, prop)])

    if attributes:
        rows.append([jsonapi.ID_KEY, "", data.get(jsonapi.ID_KEY, ""), FIELD_REMOTE_ID])
        rows.append([
            jsonapi.LINKS_KEY,
            ".".join([jsonapi.SELF_KEY, jsonapi.HREF_KEY]),
            jsonapi.get_resource_link_by_type(resource, jsonapi.SELF_KEY),
            FIELD_REMOTE_URL,
        ])

    if entity_type == ENTITY_COURSE and jsonapi.META_KEY in data:
        rows.append([
            jsonapi.META_KEY,
            "",
            json.dumps(data[jsonapi.META_KEY], indent=4),
            FIELD_META,
        ])

    return {"header": header, "rows": rows}

def resource_table(resource: dict) -> dict:
    """A single resource as field/value pairs."""
    header = ["Field", "Value"]
    data = jsonapi.get_resource_data(resource)

    if not data:
        return {"header": header, "rows": []}

    rows = [
        [jsonapi.TYPE_KEY, data.get(jsonapi.TYPE_KEY, "")],
        [jsonapi.ID_KEY, data.get(jsonapi.ID_KEY, "")],
        [jsonapi.TITLE_KEY, jsonapi.get_resource_title(resource) or NOT_AVAILABLE],
    ]

    for field, value in (data.get(jsonapi.ATTR_KEY) or {}).items():
        if field == jsonapi.TITLE_KEY or _empty(value):
            continue
        if isinstance(value, (dict, list)):
            value = Markup("<pre>{}</pre>").format(json.dumps(value, indent=2, ensure_ascii=False))
        rows.append([field, value])

    uri = jsonapi.get_resource_link_by_type(resource, jsonapi.SELF_KEY)
    if uri:
        rows.append([jsonapi.LINKS_KEY, external_link(uri, escape(uri))])

    return {"header": header, "rows": rows}
