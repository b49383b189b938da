# occapi/metadata.py
"""
Course metadata relative to programmes.

A course carries its OCCAPI ``meta`` as JSON. Programme scoped metadata
lists the programmes a course belongs to::

    {"programme": [{"programmeId": "...", "year": 1, "mandatoryCourse": true}]}

Global metadata applies to every programme of an EQF level::

    {"global": {"eqfLevel": 6, "year": 2}}
"""
from markupsafe import Markup

from . import entities

SCOPE = "scope"

SCOPE_GLOBAL    = "global"
META_GLOBAL_EQF = "eqfLevel"

SCOPE_PROGRAMME   = "programme"
META_PROGRAMME_ID = "programmeId"
META_PROGRAMME_MC = "mandatoryCourse"

META_YEAR = "year"

FIELD_PROGRAMME_EQF = "eqf_level_provided"
FIELD_COURSE_TERM   = "academic_term"

REF_PROGRAMME = entities.ENTITY_REF[entities.ENTITY_PROGRAMME]

ENTITY_LABELS = {
    entities.ENTITY_PROGRAMME: "Programme",
    entities.ENTITY_COURSE:    "Course",
}


def related_courses(programme: dict) -> dict[int, dict]:
    """Courses referencing a programme, keyed by ID."""
    course_ids = entities.referencing_ids(entities.ENTITY_COURSE, REF_PROGRAMME, programme["id"])
    courses = {}
    for course_id in course_ids:
        course = entities.load_entity(entities.ENTITY_COURSE, course_id)
        if course:
            courses[course_id] = course
    return courses

def related_programmes(course: dict) -> dict[int, dict]:
    """Programmes referenced by a course, keyed by ID."""
    programmes = {}
    for programme_id in course.get(REF_PROGRAMME) or []:
        programme = entities.load_entity(entities.ENTITY_PROGRAMME, programme_id)
        if programme:
            programmes[programme_id] = programme
    return programmes

def _as_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None

def get_meta_by_course(course: dict, programmes: dict[int, dict]) -> dict[int, dict]:
    """Metadata of a course for each programme, empty where nothing applies."""
    data = course.get(entities.FIELD_META) or {}
    term = course.get(FIELD_COURSE_TERM)

    metadata = {}

    for programme_id, programme in programmes.items():
        metadata[programme_id] = {}

        if not isinstance(data, dict) or not data:
            continue

        if SCOPE_PROGRAMME in data:
            remote_id = programme.get(entities.FIELD_REMOTE_ID)
            for item in data[SCOPE_PROGRAMME] or []:
                if item.get(META_PROGRAMME_ID) == remote_id:
                    metadata[programme_id] = {
                        SCOPE:             SCOPE_PROGRAMME,
                        META_YEAR:         item.get(META_YEAR),
                        FIELD_COURSE_TERM: term,
                        META_PROGRAMME_MC: bool(item.get(META_PROGRAMME_MC)),
                    }

        elif SCOPE_GLOBAL in data:
            scope = data[SCOPE_GLOBAL] or {}
            eqf_level = _as_int(programme.get(FIELD_PROGRAMME_EQF))
            if eqf_level is not None and _as_int(scope.get(META_GLOBAL_EQF)) == eqf_level:
                metadata[programme_id] = {
                    SCOPE:             SCOPE_GLOBAL,
                    META_YEAR:         scope.get(META_YEAR, data.get(META_YEAR)),
                    FIELD_COURSE_TERM: term,
                    META_PROGRAMME_MC: False,
                }

    return metadata

def get_meta_by_programme(programme: dict, courses: dict[int, dict]) -> dict[int, dict]:
    """Metadata of each course relative to one programme."""
    programmes = {programme["id"]: programme}
    metadata = {}
    for course_id, course in courses.items():
        metadata[course_id] = get_meta_by_course(course, programmes)[programme["id"]]
    return metadata

def _sort_key(row: list):
    # year and term ascending, mandatory first
    year, term, mandatory = row[1], row[2], row[3]
    return (
        year in ("", None),
        _as_int(year) or 0,
        str(term or ""),
        not mandatory,
    )

def meta_table(metadata: dict[int, dict], entity_type: str, url_for=None) -> dict:
    """
    Table of metadata rows for entities of a type.

    ``url_for(entity_type, entity_id)`` links the entity label when given.
    """
    header = [ENTITY_LABELS.get(entity_type, entity_type), "Year", "Term", "Mandatory", "Scope"]
    rows = []

    for entity_id, value in metadata.items():
        entity = entities.load_entity(entity_type, entity_id)
        if not entity:
            continue

        label = entity.get("label") or str(entity_id)
        if url_for:
            label = Markup('<a href="{}">{}</a>').format(url_for(entity_type, entity_id), label)

        rows.append([
            label,
            "" if value.get(META_YEAR) is None else value[META_YEAR],
            value.get(FIELD_COURSE_TERM) or "",
            "Yes" if value.get(META_PROGRAMME_MC) else "",
            value.get(SCOPE, ""),
        ])

    rows.sort(key=_sort_key)

    return {"header": header, "rows": rows}
