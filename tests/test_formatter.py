from markupsafe import Markup

from conftest import course_item, programme_document, programme_item
from occapi import formatter


def test_collection_table():
    table = formatter.collection_table({"data": [
        programme_item("P1", "Computer Science"),
        {"type": "programme", "id": "P2", "attributes": {}},
    ]})

    assert table["header"] == ["type", "id", "title", "links"]
    first, second = table["rows"]
    assert first[:3] == ["programme", "P1", "Computer Science"]
    assert isinstance(first[3], Markup)
    assert 'target="_blank"' in first[3]
    assert second == ["programme", "P2", "n/a", ""]

def test_collection_table_links_ids():
    def url_for(resource_type, resource_id):
        return f"/occapi/uni/{resource_type}/{resource_id}"

    table = formatter.collection_table({"data": [programme_item("P1", "Computer Science")]}, url_for)
    row = table["rows"][0]
    assert row[1] == Markup('<a href="/occapi/uni/programme/P1">P1</a>')
    assert row[2] == "Computer Science"

def test_collection_table_of_empty_data():
    assert formatter.collection_table({})["rows"] == []

def test_field_table_maps_attributes():
    table = formatter.field_table(programme_document(), "programme")
    rows = {row[1]: row for row in table["rows"]}

    assert table["header"][3] == "Local field key"
    assert rows["code"] == ["attributes", "code", "CS", "code"]
    assert rows["eqfLevelProvided"][3] == "eqf_level_provided"
    assert rows["title"][2] == ""
    assert rows["title.0.string"] == ["attributes", "title.0.string", "Computer Science", "title.0.string"]
    assert rows[""][3] == "remote_id"
    assert rows["self.href"][2].endswith("/programme/P1")

def test_field_table_includes_course_meta():
    item = course_item("c1", "Algorithms", meta={"programme": []})
    rows = formatter.field_table(item, "course")["rows"]
    assert rows[-1][0] == "meta"
    assert rows[-1][3] == "meta"

def test_field_table_unknown_entity_type():
    assert formatter.field_table(programme_document(), "unknown")["rows"] == []

def test_resource_table():
    table = formatter.resource_table(programme_document())
    rows = dict((row[0], row[1]) for row in table["rows"])

    assert rows["type"] == "programme"
    assert rows["title"] == "Computer Science"
    assert rows["code"] == "CS"
    assert "<pre>" in rows["description"]
    assert "href=" in rows["links"]
