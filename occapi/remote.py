# occapi/remote.py
"""
Remote API fields of imported entities: the remote ID and URL, and the
extended course data served at the remote URL.
"""
import logging

from markupsafe import Markup

from . import entities, jsonapi
from .fields import COURSE_EXTRA_FIELDS
from .loader import OccapiDataLoader
from .providers import get_providers_by_hei_id

logger = logging.getLogger(__name__)

REF_HEI    = entities.ENTITY_REF[entities.ENTITY_HEI]
UNIQUE_HEI = entities.UNIQUE_ID[entities.ENTITY_HEI]


def format_remote_id(remote_id: str | None, remote_url: str | None) -> Markup:
    """Remote ID markup, linked to the remote URL when there is one."""
    if not remote_id:
        return Markup("")

    if remote_url:
        code = Markup('<a href="{}" target="_blank">{}</a>').format(remote_url, remote_id)
    else:
        code = remote_id

    return Markup("<p><strong>Remote ID:</strong> <code>{}</code></p><hr />").format(code)

def course_provider_id(course: dict) -> str:
    """First provider covering the institution a course belongs to."""
    hei_refs = course.get(REF_HEI) or []
    if not hei_refs:
        return ""

    hei = entities.load_entity(entities.ENTITY_HEI, hei_refs[0])
    if not hei:
        return ""

    providers = get_providers_by_hei_id(hei[UNIQUE_HEI])
    return next(iter(providers), "")

def external_course_key(course: dict, loader: OccapiDataLoader | None = None) -> str:
    remote_id = course.get(entities.FIELD_REMOTE_ID)
    provider_id = course_provider_id(course)

    if not remote_id or not provider_id:
        return ""

    return (loader or OccapiDataLoader()).external_course_key(provider_id, remote_id)

def load_external_course(course: dict, refresh: bool = False,
                         loader: OccapiDataLoader | None = None) -> dict:
    """Course resource as served at the remote URL of a course entity."""
    loader = loader or OccapiDataLoader()
    remote_url = course.get(entities.FIELD_REMOTE_URL)
    temp_store_key = external_course_key(course, loader)

    if not temp_store_key or not remote_url:
        logger.info("No external data for course %s", course.get("id"))
        return {}

    return loader.load_external_course(temp_store_key, remote_url, refresh=refresh)

def extra_course_fields(resource: dict) -> list[dict]:
    """
    Extra course fields for display, one item per field and language::

        {"field": "bibliography", "lang": "en", "text": "..."}
    """
    if not resource:
        return []

    attributes = jsonapi.get_resource_data(resource).get(jsonapi.ATTR_KEY) or {}

    items = []
    for field in COURSE_EXTRA_FIELDS:
        for value in jsonapi.as_list(attributes.get(field)):
            if not isinstance(value, dict):
                continue
            items.append({
                "field": field,
                "lang":  value.get(jsonapi.LANG_KEY) or "",
                "text":  value.get(jsonapi.MLSTR_KEY) or value.get(jsonapi.STR_KEY) or "",
            })
    return items
