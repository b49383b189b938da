import pytest

from conftest import HEI_ID, course_item, hei_document, programme_document
from occapi import entities, metadata


@pytest.fixture
def catalogue():
    entities.create_hei(hei_document())
    p1 = entities.create_entity("programme", entities.prepare_entity_data(programme_document("P1"), HEI_ID))
    p2 = entities.create_entity("programme", entities.prepare_entity_data(programme_document("P2"), HEI_ID))

    def course(course_id, meta, term):
        item = course_item(course_id, course_id.upper(), meta=meta)
        item["attributes"]["academicTerm"] = term
        item["relationships"] = {"programme": {"data": [
            {"type": "programme", "id": "P1"}, {"type": "programme", "id": "P2"},
        ]}}
        return entities.create_entity("course", entities.prepare_entity_data(item, HEI_ID))

    courses = {
        "a": course("a", {"programme": [
            {"programmeId": "P1", "year": 2, "mandatoryCourse": True},
        ]}, "1"),
        "b": course("b", {"global": {"eqfLevel": 6, "year": 1}}, "2"),
        "c": course("c", {"programme": [
            {"programmeId": "P1", "year": 1, "mandatoryCourse": False},
        ]}, "1"),
        "d": course("d", {"programme": [
            {"programmeId": "P1", "year": 1, "mandatoryCourse": True},
        ]}, "1"),
    }
    return {"p1": p1, "p2": p2, "courses": courses}


def test_related_courses_and_programmes(catalogue):
    related = metadata.related_courses(catalogue["p1"])
    assert sorted(related) == sorted(c["id"] for c in catalogue["courses"].values())

    programmes = metadata.related_programmes(catalogue["courses"]["a"])
    assert list(programmes) == [catalogue["p1"]["id"], catalogue["p2"]["id"]]

def test_meta_by_course_programme_scope(catalogue):
    course = catalogue["courses"]["a"]
    meta = metadata.get_meta_by_course(course, metadata.related_programmes(course))

    assert meta[catalogue["p1"]["id"]] == {
        "scope": "programme", "year": 2, "academic_term": "1", "mandatoryCourse": True,
    }
    assert meta[catalogue["p2"]["id"]] == {}

def test_meta_by_course_global_scope(catalogue):
    course = catalogue["courses"]["b"]
    meta = metadata.get_meta_by_course(course, metadata.related_programmes(course))

    for programme_meta in meta.values():
        assert programme_meta == {
            "scope": "global", "year": 1, "academic_term": "2", "mandatoryCourse": False,
        }

def test_meta_by_course_global_scope_other_level(catalogue):
    course = dict(catalogue["courses"]["b"], meta={"global": {"eqfLevel": 7, "year": 1}})
    meta = metadata.get_meta_by_course(course, {catalogue["p1"]["id"]: catalogue["p1"]})
    assert meta == {catalogue["p1"]["id"]: {}}

def test_meta_table_sorting(catalogue):
    programme = catalogue["p1"]
    meta = metadata.get_meta_by_programme(programme, metadata.related_courses(programme))
    table = metadata.meta_table(meta, "course")

    assert table["header"] == ["Course", "Year", "Term", "Mandatory", "Scope"]
    assert [row[0] for row in table["rows"]] == ["D", "C", "B", "A"]
    assert table["rows"][0][1:] == [1, "1", "Yes", "programme"]

def test_meta_table_links_labels(catalogue):
    programme = catalogue["p1"]
    meta = metadata.get_meta_by_programme(programme, metadata.related_courses(programme))
    table = metadata.meta_table(meta, "course", lambda entity_type, entity_id: f"/{entity_type}/{entity_id}")
    assert str(table["rows"][0][0]).startswith('<a href="/course/')
