# occapi/importer.py
"""
Imports OCCAPI programmes and courses as local entities.

Every import returns a report::

    {"created": [...], "existing": [...], "failed": [...], "messages": [...]}

where the lists hold entity IDs (remote IDs for failures) and messages are
``(category, text)`` pairs using Flask flash categories.
"""
import logging
import sqlite3

from . import entities, hooks, jsonapi, relationships
from .loader import OccapiDataLoader
from .providers import get_provider
from .tempstore import (
    PARAM_FILTER_ID, PARAM_FILTER_TYPE, PARAM_PROVIDER, PARAM_RESOURCE_ID,
    TYPE_COURSE, TYPE_OUNIT, TYPE_PROGRAMME, params_from_key,
    validate_collection_key, validate_resource_key,
)

logger = logging.getLogger(__name__)


def register_hooks() -> None:
    """Keep filter relationships on every filtered collection served."""
    hooks.register(hooks.HOOK_DATA_LOAD, relationships.filter_hook)

register_hooks()


def _report() -> dict:
    return {"created": [], "existing": [], "failed": [], "messages": []}

def _message(report: dict, category: str, text: str) -> None:
    report["messages"].append((category, text))
    level = logging.WARNING if category in ("warning", "danger") else logging.INFO
    logger.log(level, text)

def _label(entity: dict) -> str:
    return f"{entity.get('label') or entity['id']} ({entity['id']})"


def validate_institution(hei_id: str) -> tuple[bool, str]:
    """Check that a local institution exists for an institution ID."""
    exists = entities.get_hei_by_hei_id(hei_id)

    if exists:
        hei = list(exists.values())[0]
        return True, f"Institution with ID {hei_id} already exists: {_label(hei)}"

    return False, f"Institution with ID {hei_id} does not exist!"

def import_institution(provider_id: str, loader: OccapiDataLoader | None = None) -> dict:
    """Create the institution entity of a provider from its remote data."""
    report = _report()
    provider = get_provider(provider_id)

    if not provider:
        _message(report, "danger", f"Unknown OCCAPI provider {provider_id}")
        return report

    status, message = validate_institution(provider["hei_id"])
    if status:
        report["existing"].extend(entities.get_hei_by_hei_id(provider["hei_id"]))
        _message(report, "info", message)
        return report

    resource = (loader or OccapiDataLoader()).load_institution(provider_id)

    if not resource or jsonapi.DATA_KEY not in resource:
        report["failed"].append(provider["hei_id"])
        _message(report, "danger", "Missing institution data!")
        return report

    if jsonapi.get_resource_id(resource) != provider["hei_id"]:
        report["failed"].append(provider["hei_id"])
        _message(report, "danger",
                 f"Provider serves institution {jsonapi.get_resource_id(resource)}, "
                 f"expected {provider['hei_id']}")
        return report

    hei = entities.create_hei(resource)
    report["created"].append(hei["id"])
    _message(report, "success", f"Institution successfully created: {_label(hei)}")

    return report

def _provider_hei(report: dict, provider_id: str) -> str | None:
    provider = get_provider(provider_id)

    if not provider:
        _message(report, "danger", f"Unknown OCCAPI provider {provider_id}")
        return None

    status, message = validate_institution(provider["hei_id"])
    if not status:
        _message(report, "danger", message)
        return None

    return provider["hei_id"]

def import_programme(temp_store_key: str, loader: OccapiDataLoader | None = None) -> dict:
    """Import a single programme from a ``provider.programme.<id>`` key."""
    report = _report()

    error = validate_resource_key(temp_store_key, TYPE_PROGRAMME)
    if error:
        _message(report, "danger", error)
        return report

    params = params_from_key(temp_store_key)
    provider_id = params[PARAM_PROVIDER]
    programme_id = params[PARAM_RESOURCE_ID]

    exists = entities.get_programme_by_remote_id(programme_id)
    if exists:
        programme = list(exists.values())[0]
        report["existing"].append(programme["id"])
        _message(report, "warning", f"Programme already exists: {_label(programme)}")
        return report

    hei_id = _provider_hei(report, provider_id)
    if not hei_id:
        report["failed"].append(programme_id)
        return report

    resource = (loader or OccapiDataLoader()).load_programme(provider_id, programme_id)

    if not resource:
        report["failed"].append(programme_id)
        _message(report, "danger", "Missing programme data!")
        return report

    if not jsonapi.get_resource_data(resource).get(jsonapi.ATTR_KEY):
        report["failed"].append(programme_id)
        _message(report, "danger", "Missing programme attributes!")
        return report

    entity_data = entities.prepare_entity_data(resource, hei_id)

    try:
        programme = entities.create_entity(entities.ENTITY_PROGRAMME, entity_data)
    except sqlite3.Error as e:
        logger.error("Error creating programme %s: %s", programme_id, e)
        programme = None

    if not programme:
        report["failed"].append(programme_id)
        _message(report, "danger", "Programme cannot be created")
        return report

    report["created"].append(programme["id"])
    _message(report, "success", f"Programme successfully created: {_label(programme)}")

    return report

def import_ounits(provider_id: str, loader: OccapiDataLoader | None = None) -> dict:
    """Create the organizational units of a provider that do not exist yet."""
    report = _report()

    hei_id = _provider_hei(report, provider_id)
    if not hei_id:
        return report

    collection = (loader or OccapiDataLoader()).load_ounits(provider_id)
    resources = collection.get(jsonapi.DATA_KEY) or []

    if not resources:
        _message(report, "warning", "No organizational units to import.")
        return report

    for resource in resources:
        ounit_id = resource.get(jsonapi.ID_KEY)
        if not ounit_id or not resource.get(jsonapi.ATTR_KEY):
            report["failed"].append(ounit_id)
            continue

        exists = entities.get_ounit_by_ounit_id(ounit_id)
        if exists:
            report["existing"].extend(exists)
            continue

        try:
            ounit = entities.create_ounit(resource, hei_id)
        except sqlite3.Error as e:
            logger.error("Error importing organizational unit %s: %s", ounit_id, e)
            ounit = None

        if ounit:
            report["created"].append(ounit["id"])
        else:
            report["failed"].append(ounit_id)

    if report["created"]:
        _message(report, "success", f"{len(report['created'])} organizational units created.")
    if report["existing"]:
        _message(report, "info", f"{len(report['existing'])} organizational units already exist.")
    if report["failed"]:
        _message(report, "danger", f"{len(report['failed'])} organizational units could not be imported.")

    return report

def _load_course_collection(loader: OccapiDataLoader, params: dict) -> dict:
    provider_id = params[PARAM_PROVIDER]
    filter_type = params[PARAM_FILTER_TYPE]
    filter_id = params[PARAM_FILTER_ID]

    if filter_type == TYPE_PROGRAMME:
        return loader.load_programme_courses(provider_id, filter_id)
    if filter_type == TYPE_OUNIT:
        return loader.load_ounit_courses(provider_id, filter_id)
    return loader.load_courses(provider_id)

def import_courses(temp_store_key: str, loader: OccapiDataLoader | None = None) -> dict:
    """
    Import a course collection, optionally filtered by programme or unit.

    Courses that already exist get the references they are missing, such as
    a programme they were not yet related to.
    """
    report = _report()

    error = validate_collection_key(temp_store_key, TYPE_COURSE)
    if error:
        _message(report, "danger", error)
        return report

    params = params_from_key(temp_store_key)

    hei_id = _provider_hei(report, params[PARAM_PROVIDER])
    if not hei_id:
        return report

    collection = _load_course_collection(loader or OccapiDataLoader(), params)
    resources = collection.get(jsonapi.DATA_KEY) or []

    if not resources:
        _message(report, "warning", "No courses to import.")
        return report

    for resource in resources:
        course_id = resource.get(jsonapi.ID_KEY)
        if not course_id or not resource.get(jsonapi.ATTR_KEY):
            report["failed"].append(course_id)
            continue

        entity_data = entities.prepare_entity_data(resource, hei_id)
        exists = entities.check_existing_entity(resource)

        try:
            if exists:
                for course in exists.values():
                    entities.update_entity(entities.ENTITY_COURSE, course, entity_data)
                    report["existing"].append(course["id"])
            else:
                course = entities.create_entity(entities.ENTITY_COURSE, entity_data)
                report["created"].append(course["id"])
        except sqlite3.Error as e:
            logger.error("Error importing course %s: %s", course_id, e)
            report["failed"].append(course_id)

    if report["created"]:
        _message(report, "success", f"{len(report['created'])} courses created.")
    if report["existing"]:
        _message(report, "info", f"{len(report['existing'])} courses already exist.")
    if report["failed"]:
        _message(report, "danger", f"{len(report['failed'])} courses could not be imported.")

    return report
