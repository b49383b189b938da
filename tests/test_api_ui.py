import pytest

from conftest import BASE_URL, HEI_ID, mock_catalogue, ounit_item
from occapi import api_ui, entities
from occapi.api_ui import ALL_PERMISSIONS, PERM_IMPORT, app, hash_password, verify_password
from occapi.db import insert_many
from occapi.providers import get_provider


def create_user(username, permissions):
    insert_many("users", [{
        "name": username.title(),
        "username": username,
        "password_hash": hash_password("secret"),
        "permissions": ",".join(permissions),
    }])

@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client

@pytest.fixture
def admin(client):
    create_user("admin", ALL_PERMISSIONS)
    client.post("/login", data={"username": "admin", "password": "secret"})
    return client


def test_password_hashing():
    stored = hash_password("secret")
    assert verify_password(stored, "secret")
    assert not verify_password(stored, "wrong")
    assert not verify_password("garbage", "secret")

def test_login_required(client):
    response = client.get("/providers")
    assert response.status_code == 302
    assert "/login" in response.headers["Location"]

def test_invalid_login(client):
    create_user("admin", ALL_PERMISSIONS)
    response = client.post("/login", data={"username": "admin", "password": "nope"})
    assert b"Invalid credentials" in response.data

def test_permission_required(client):
    create_user("importer", [PERM_IMPORT])
    client.post("/login", data={"username": "importer", "password": "secret"})
    assert client.get("/providers").status_code == 403

def test_provider_list(admin, provider):
    response = admin.get("/providers")
    assert response.status_code == 200
    assert b"Example University" in response.data

def test_add_provider(admin, requests_mock):
    mock_catalogue(requests_mock)
    response = admin.post("/providers/add", data={
        "id": "uni",
        "label": "Example University",
        "base_url": BASE_URL,
        "hei_id": HEI_ID,
        "status": "1",
    }, follow_redirects=True)

    assert response.status_code == 200
    assert b"Provider Example University created." in response.data
    assert b"Computer Science" in response.data
    assert get_provider("uni")["status"] == 1

def test_add_invalid_provider(admin):
    response = admin.post("/providers/add", data={"id": "Bad id", "label": "", "base_url": "x", "hei_id": ""})
    assert response.status_code == 400
    assert get_provider("Bad id") is None

def test_edit_provider(admin, provider, requests_mock):
    mock_catalogue(requests_mock)
    admin.post("/providers/uni/edit", data={
        "label": "Renamed", "base_url": BASE_URL, "hei_id": HEI_ID, "status": "1",
    })
    assert get_provider("uni")["label"] == "Renamed"

def test_delete_provider(admin, provider):
    response = admin.post("/providers/uni/delete", follow_redirects=True)
    assert b"Provider uni deleted." in response.data
    assert get_provider("uni") is None

def test_browse_and_import_programme(admin, provider, requests_mock):
    mock_catalogue(requests_mock)
    admin.post("/import/institution/uni")

    response = admin.get("/occapi/uni/programme/P1")
    assert response.status_code == 200
    assert b"eqf_level_provided" in response.data

    response = admin.post("/import/programme", data={"key": "uni.programme.P1"}, follow_redirects=True)
    assert b"Programme successfully created" in response.data
    assert b"Remote ID:" in response.data
    assert entities.get_programme_by_remote_id("P1")

def test_import_courses_and_course_page(admin, provider, requests_mock):
    mock_catalogue(requests_mock)
    admin.post("/import/institution/uni")
    admin.post("/import/courses", data={"key": "uni.course"})

    course_id = list(entities.get_course_by_remote_id("c1"))[0]
    response = admin.get(f"/course/{course_id}")
    assert response.status_code == 200
    assert b"Algorithms" in response.data

def test_course_extended(admin, provider, requests_mock):
    mock_catalogue(requests_mock)
    requests_mock.get(f"{BASE_URL}/course/c1", json={"data": {"type": "course", "id": "c1", "attributes": {
        "courseContent": [{"multiline": "Sorting and searching", "lang": "en"}],
    }}})
    admin.post("/import/institution/uni")
    admin.post("/import/courses", data={"key": "uni.course"})
    course_id = list(entities.get_course_by_remote_id("c1"))[0]

    response = admin.get(f"/course/{course_id}/extended")
    assert b"Sorting and searching" in response.data

def test_api_fields(admin, provider, requests_mock):
    mock_catalogue(requests_mock)
    admin.post("/import/institution/uni")
    admin.post("/import/courses", data={"key": "uni.course"})
    course_id = list(entities.get_course_by_remote_id("c1"))[0]

    admin.post(f"/course/{course_id}/api", data={
        "remote_id": "c1", "remote_url": "https://elsewhere/c1", "meta": '{"global": {"eqfLevel": 6}}',
    })
    course = entities.load_entity("course", course_id)
    assert course["remote_url"] == "https://elsewhere/c1"
    assert course["meta"] == {"global": {"eqfLevel": 6}}

def test_api_occapi(admin, provider, requests_mock):
    mock_catalogue(requests_mock)

    response = admin.get("/api/occapi/uni.programme")
    assert response.status_code == 200
    assert response.get_json()["titles"] == {"P1": "Computer Science"}

    assert admin.get("/api/occapi/uni.programme..course").status_code == 400

def test_api_providers(admin, provider):
    assert [p["id"] for p in admin.get("/api/providers").get_json()] == ["uni"]

def test_preview_links_to_browsing_and_imports(admin, provider, requests_mock):
    mock_catalogue(requests_mock)
    html = admin.get("/providers/uni/preview").get_data(as_text=True)

    assert 'href="/occapi/uni/programme/P1"' in html
    assert 'href="/occapi/uni/course"' in html
    assert 'action="/import/ounits/uni"' in html

    html = admin.get("/occapi/uni/programme/P1").get_data(as_text=True)
    assert 'href="/occapi/uni/programme/P1/course"' in html
    assert 'action="/import/programme"' in html

    html = admin.get("/occapi/uni/course").get_data(as_text=True)
    assert 'href="/occapi/uni/course/c1"' in html
    assert 'action="/import/courses"' in html

def test_import_ounits(admin, provider, requests_mock):
    mock_catalogue(requests_mock, ounits=[ounit_item("o1", "Faculty of Science")])
    admin.post("/import/institution/uni")

    response = admin.post("/import/ounits/uni", follow_redirects=True)
    assert b"1 organizational units created." in response.data
    assert entities.get_ounit_by_ounit_id("o1")

def test_schema_is_not_checked_per_request(client, monkeypatch):
    def fail():
        raise AssertionError("schema checked on request")
    monkeypatch.setattr(api_ui, "ensure_schema", fail)
    assert client.get("/login").status_code == 200
