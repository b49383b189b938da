# occapi/fields.py
"""
Curated OCCAPI attributes per resource type, and how they map onto the
columns of local entities.
"""
from .tempstore import TYPE_COURSE, TYPE_HEI, TYPE_OUNIT, TYPE_PROGRAMME

ENTITY_PROGRAMME = TYPE_PROGRAMME
ENTITY_COURSE    = TYPE_COURSE

_STRING = {"string": "string", "lang": "string"}
_MULTILINE = {"multiline": "string", "lang": "string"}
_URI = {"uri": "string", "lang": "string"}

HEI_FIELDS = {
    "title":        _STRING,
    "abbreviation": "string",
    "heiId":        "string",
    "url":          _URI,
}

OUNIT_FIELDS = {
    "title":        _STRING,
    "abbreviation": "string",
    "ounitId":      "string",
    "ounitCode":    "string",
    "url":          _URI,
}

PROGRAMME_FIELDS = {
    "title":                 _STRING,
    "code":                  "string",
    "description":           _MULTILINE,
    "ects":                  "integer",
    "eqfLevelProvided":      "integer",
    "iscedCode":             "string",
    "length":                "integer",
    "languageOfInstruction": "string",
    "url":                   _URI,
}

COURSE_FIELDS = {
    "title":                 _STRING,
    "code":                  "string",
    "description":           _MULTILINE,
    "learningOutcomes":      _MULTILINE,
    "academicTerm":          "string",
    "ects":                  "float",
    "languageOfInstruction": "string",
    "iscedCode":             "string",
    "subjectArea":           "string",
    "otherCategorization":   "string",
    "url":                   _URI,
}

# Only served by the external course endpoint.
COURSE_EXTRA_FIELDS = {
    "bibliography":       _MULTILINE,
    "courseContent":      _MULTILINE,
    "prerequisites":      _MULTILINE,
    "courseAvailability": _MULTILINE,
    "teachingMethod":     _MULTILINE,
    "assessmentMethod":   _MULTILINE,
}

RESOURCE_FIELDS = {
    TYPE_HEI:       HEI_FIELDS,
    TYPE_OUNIT:     OUNIT_FIELDS,
    TYPE_PROGRAMME: PROGRAMME_FIELDS,
    TYPE_COURSE:    COURSE_FIELDS,
}

# {local_field: apiAttribute}
PROGRAMME_FIELD_MAP = {
    "title":                   "title",
    "code":                    "code",
    "description":             "description",
    "ects":                    "ects",
    "eqf_level_provided":      "eqfLevelProvided",
    "isced_code":              "iscedCode",
    "language_of_instruction": "languageOfInstruction",
    "length":                  "length",
    "url":                     "url",
}

COURSE_FIELD_MAP = {
    "title":                   "title",
    "code":                    "code",
    "description":             "description",
    "learning_outcomes":       "learningOutcomes",
    "academic_term":           "academicTerm",
    "ects":                    "ects",
    "language_of_instruction": "languageOfInstruction",
    "isced_code":              "iscedCode",
    "subject_area":            "subjectArea",
    "other_categorization":    "otherCategorization",
    "url":                     "url",
}

HEI_FIELD_MAP = {
    "abbreviation": "abbreviation",
    "url":          "url",
}

OUNIT_FIELD_MAP = {
    "ounit_code":   "ounitCode",
    "abbreviation": "abbreviation",
    "url":          "url",
}


def get_fields(resource_type: str) -> dict | None:
    return RESOURCE_FIELDS.get(resource_type)

def get_field_map(entity_type: str) -> dict | None:
    """Field map of an entity type in the format {local_field: apiAttribute}."""
    return {
        ENTITY_PROGRAMME: PROGRAMME_FIELD_MAP,
        ENTITY_COURSE:    COURSE_FIELD_MAP,
        TYPE_HEI:         HEI_FIELD_MAP,
        TYPE_OUNIT:       OUNIT_FIELD_MAP,
    }.get(entity_type)

def reverse_field_map(entity_type: str) -> dict:
    """Field map in the format {apiAttribute: local_field}."""
    return {source: field for field, source in (get_field_map(entity_type) or {}).items()}

def build_entity_data(entity_type: str, attributes: dict) -> dict:
    """Entity field values read from resource attributes; empty values are dropped."""
    field_map = get_field_map(entity_type)

    if not field_map or not attributes:
        return {}

    entity_data = {}
    for field, source in field_map.items():
        value = attributes.get(source)
        if value not in (None, "", [], {}):
            entity_data[field] = value

    return entity_data
