# occapi/jsonapi.py
"""
JSON:API document keys and helpers for reading OCCAPI resources.

All helpers accept either a full document (``{"data": {...}, "links": ...}``)
or a bare resource object.
"""
from . import settings

# JSON:API primary keys
DATA_KEY  = "data"
INC_KEY   = "included"
LINKS_KEY = "links"

# JSON:API data keys
TYPE_KEY = "type"
ID_KEY   = "id"
ATTR_KEY = "attributes"
REL_KEY  = "relationships"
META_KEY = "meta"

# JSON:API link keys
SELF_KEY = "self"
HREF_KEY = "href"

# Drupal JSON:API entity label
LABEL_KEY = "label"

# EWP compound field keys
STR_KEY   = "string"
MLSTR_KEY = "multiline"
URI_KEY   = "uri"
LANG_KEY  = "lang"

TITLE_KEY = "title"


def get_resource_data(resource: dict) -> dict:
    """Return the ``data`` member of a document, or the resource itself."""
    return resource[DATA_KEY] if DATA_KEY in resource else resource

def get_resource_type(resource: dict) -> str:
    return get_resource_data(resource)[TYPE_KEY]

def get_resource_id(resource: dict) -> str:
    return get_resource_data(resource)[ID_KEY]

def sort_by_lang(language_typed_data: list[dict], lang: str | None = None) -> list[dict]:
    """Move items in the preferred language to the front, keeping order otherwise."""
    lang = lang or settings.LANG_PREF
    preferred = [item for item in language_typed_data if item.get(LANG_KEY) == lang]
    remaining = [item for item in language_typed_data if item.get(LANG_KEY) != lang]
    return preferred + remaining

def as_list(node) -> list:
    """Wrap a single compound value in a list; None becomes []."""
    if node is None:
        return []
    return node if isinstance(node, list) else [node]

def get_resource_title(resource: dict) -> str:
    """
    Title of a resource.

    A Drupal ``label`` attribute wins; otherwise the ``title`` attribute, which
    may be a single ``{"string", "lang"}`` object or a list of them, is read in
    the preferred language first.
    """
    data = get_resource_data(resource)
    attributes = data.get(ATTR_KEY) or {}

    if not attributes:
        return ""

    if attributes.get(LABEL_KEY):
        return attributes[LABEL_KEY]

    title_items = as_list(attributes.get(TITLE_KEY))
    if not title_items:
        return ""

    ordered = sort_by_lang(title_items)
    return ordered[0].get(STR_KEY) or ""

def get_resource_attribute(resource: dict, attribute: str) -> dict:
    """Return ``{attribute: value}`` if the attribute exists, else ``{}``."""
    attributes = get_resource_data(resource).get(ATTR_KEY) or {}
    if attribute in attributes:
        return {attribute: attributes[attribute]}
    return {}

def get_resource_link_by_type(resource: dict, link_type: str) -> str:
    """
    URL of a link by key.

    The ``self`` link is read from the resource object first. Any link type
    falls back to the top level ``links`` member.
    """
    link = ""

    data = resource.get(DATA_KEY)
    data_links = (data.get(LINKS_KEY) if isinstance(data, dict) else None) or {}

    if data_links and link_type == SELF_KEY:
        link = _href(data_links.get(link_type))

    resource_links = resource.get(LINKS_KEY) or {}

    if not link and link_type in resource_links:
        link = _href(resource_links[link_type])

    return link

def _href(link) -> str:
    # links may be plain strings or {"href": ...} objects
    if isinstance(link, str):
        return link
    if isinstance(link, dict):
        return link.get(HREF_KEY) or ""
    return ""

def get_resource_titles(collection: dict) -> dict[str, str]:
    """Resource titles keyed by resource ID, using the ID when a title is missing."""
    titles = {}
    for resource in collection.get(DATA_KEY) or []:
        resource_id = get_resource_id(resource)
        titles[resource_id] = get_resource_title(resource) or resource_id
    return titles

def get_resource_links(collection: dict) -> dict[str, str]:
    """Resource ``self`` links keyed by resource ID."""
    links = {}
    for resource in collection.get(DATA_KEY) or []:
        links[get_resource_id(resource)] = get_resource_link_by_type(resource, SELF_KEY)
    return links
