import json

import pytest

from occapi import hooks, settings
from occapi.providers import save_provider
from occapi.schema import ensure_schema

BASE_URL = "https://occapi.example.edu/hei/example.edu"
HEI_ID   = "example.edu"


@pytest.fixture(autouse=True)
def db(tmp_path, monkeypatch):
    """Fresh sqlite file per test."""
    monkeypatch.setattr(settings, "DB_FILE", str(tmp_path / "occapi.db"))
    ensure_schema()
    return settings.DB_FILE

@pytest.fixture(autouse=True)
def clean_hooks(monkeypatch):
    monkeypatch.setattr(hooks, "_registry", hooks.defaultdict(list))

@pytest.fixture
def provider():
    return save_provider({
        "id": "uni",
        "label": "Example University",
        "base_url": BASE_URL,
        "hei_id": HEI_ID,
        "ounit_filter": True,
    })


def title(text, lang="en"):
    return [{"string": text, "lang": lang}]

def hei_document():
    return {
        "data": {
            "type": "hei",
            "id": HEI_ID,
            "attributes": {
                "title": title("Example University"),
                "abbreviation": "EU",
            },
        },
        "links": {
            "self": {"href": BASE_URL},
            "ounit": {"href": f"{BASE_URL}/ounit"},
            "programme": {"href": f"{BASE_URL}/programme"},
            "course": {"href": f"{BASE_URL}/course"},
        },
    }

def programme_item(programme_id, name):
    return {
        "type": "programme",
        "id": programme_id,
        "attributes": {"title": title(name)},
        "links": {"self": {"href": f"{BASE_URL}/programme/{programme_id}"}},
    }

def programme_document(programme_id="P1", name="Computer Science"):
    return {
        "data": {
            "type": "programme",
            "id": programme_id,
            "attributes": {
                "title": title(name),
                "code": "CS",
                "description": [{"multiline": "A programme.", "lang": "en"}],
                "ects": 180,
                "eqfLevelProvided": 6,
                "iscedCode": "0613",
                "length": 6,
                "languageOfInstruction": "en",
            },
            "links": {"self": {"href": f"{BASE_URL}/programme/{programme_id}"}},
        },
        "links": {
            "self": {"href": f"{BASE_URL}/programme/{programme_id}"},
            "course": {"href": f"{BASE_URL}/programme/{programme_id}/course"},
        },
    }

def ounit_item(ounit_id, name):
    return {
        "type": "ounit",
        "id": ounit_id,
        "attributes": {"title": title(name), "ounitCode": ounit_id.upper()},
        "links": {"self": {"href": f"{BASE_URL}/ounit/{ounit_id}"}},
    }

def course_item(course_id, name, meta=None):
    item = {
        "type": "course",
        "id": course_id,
        "attributes": {
            "title": title(name),
            "code": course_id.upper(),
            "ects": 6,
            "academicTerm": "1",
        },
        "links": {"self": {"href": f"{BASE_URL}/course/{course_id}"}},
    }
    if meta is not None:
        item["meta"] = meta
    return item

def mock_catalogue(requests_mock, programmes=None, courses=None, programme_courses=None, ounits=None):
    """Register the endpoints of a small OCCAPI provider."""
    programmes = programmes or [programme_item("P1", "Computer Science")]
    courses = courses or [course_item("c1", "Algorithms")]

    requests_mock.get(BASE_URL, json=hei_document())
    requests_mock.get(f"{BASE_URL}/programme", json={"data": programmes})
    requests_mock.get(f"{BASE_URL}/course", json={"data": courses})
    requests_mock.get(f"{BASE_URL}/ounit", json={"data": ounits or []})
    for item in programmes:
        requests_mock.get(f"{BASE_URL}/programme/{item['id']}", json=programme_document(item["id"]))
        requests_mock.get(
            f"{BASE_URL}/programme/{item['id']}/course",
            json={"data": programme_courses if programme_courses is not None else courses},
        )

def dumps(document):
    return json.dumps(document, separators=(",", ":"))
