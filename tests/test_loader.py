import pytest

from conftest import BASE_URL, course_item, mock_catalogue, programme_item
from occapi import hooks
from occapi.api_client import JsonDataFetcher
from occapi.db import update
from occapi.loader import OccapiDataLoader


@pytest.fixture
def loader():
    return OccapiDataLoader(JsonDataFetcher())


def test_unknown_provider(loader):
    assert loader.load_institution("missing") is None
    assert loader.load_programmes("missing") == {}
    assert loader.load_programme("missing", "P1") == {}

def test_load_institution(provider, loader, requests_mock):
    mock_catalogue(requests_mock)
    hei = loader.load_institution("uni")
    assert hei["data"]["id"] == "example.edu"
    assert loader.fetcher.store.get("uni.hei.example.edu")

def test_load_collection_discovers_endpoint(provider, loader, requests_mock):
    mock_catalogue(requests_mock, programmes=[programme_item("P1", "One"), programme_item("P2", "Two")])
    programmes = loader.load_programmes("uni")
    assert [item["id"] for item in programmes["data"]] == ["P1", "P2"]
    assert requests_mock.request_history[-1].url == f"{BASE_URL}/programme"

def test_fresh_collection_is_served_from_store(provider, loader, requests_mock):
    mock_catalogue(requests_mock)
    loader.load_courses("uni")
    calls = requests_mock.call_count

    assert loader.load_courses("uni")["data"][0]["id"] == "c1"
    assert requests_mock.call_count == calls

def test_invalid_collection_type(provider, loader):
    assert loader.load_collection("uni", "hei") == {}

def test_missing_collection_link(provider, loader, requests_mock):
    requests_mock.get(BASE_URL, json={"data": {"type": "hei", "id": "example.edu"}, "links": {}})
    assert loader.load_courses("uni") == {}

def test_load_resource_uses_self_link(provider, loader, requests_mock):
    mock_catalogue(requests_mock)
    programme = loader.load_programme("uni", "P1")
    assert programme["data"]["attributes"]["code"] == "CS"
    assert loader.fetcher.store.get("uni.programme.P1")

def test_load_resource_not_in_collection(provider, loader, requests_mock):
    mock_catalogue(requests_mock)
    assert loader.load_programme("uni", "P9") == {}

def test_load_filtered_collection(provider, loader, requests_mock):
    mock_catalogue(requests_mock, programme_courses=[course_item("c7", "Databases")])
    courses = loader.load_programme_courses("uni", "P1")
    assert [item["id"] for item in courses["data"]] == ["c7"]
    assert loader.fetcher.store.get("uni.programme.P1.course")

def test_invalid_filter(provider, loader):
    assert loader.load_filtered_collection("uni", "course", "c1", "programme") == {}
    assert loader.load_filtered_collection("uni", "programme", "", "course") == {}
    assert loader.load_filtered_collection("uni", "programme", "P1", "ounit") == {}

def test_stale_data_is_refetched(provider, loader, requests_mock):
    mock_catalogue(requests_mock)
    loader.load_courses("uni")
    loader.fetcher.update_index()
    # index newer than the cached collection
    update("tempstore", {"updated": 1}, {"key": "uni.course"})
    calls = requests_mock.call_count

    loader.load_courses("uni")
    assert requests_mock.call_count > calls

def test_load_external_course(provider, loader, requests_mock):
    url = "https://remote.example.edu/course/c1"
    requests_mock.get(url, json={"data": {"type": "course", "id": "c1", "attributes": {"bibliography": []}}})
    key = loader.external_course_key("uni", "c1")

    assert key == "uni.course.c1.external"
    assert loader.load_external_course(key, url)["data"]["id"] == "c1"
    assert loader.load_by_key(key)["data"]["id"] == "c1"

def test_load_by_key(provider, loader, requests_mock):
    mock_catalogue(requests_mock, programme_courses=[course_item("c7", "Databases")])
    assert loader.load_by_key("uni.hei.example.edu")["data"]["type"] == "hei"
    assert loader.load_by_key("uni.programme")["data"][0]["id"] == "P1"
    assert loader.load_by_key("uni.programme.P1")["data"]["id"] == "P1"
    assert loader.load_by_key("uni.programme.P1.course")["data"][0]["id"] == "c7"

def test_load_by_key_runs_load_hooks_on_external_data(provider, loader, requests_mock):
    url = "https://remote.example.edu/course/c1"
    requests_mock.get(url, json={"data": {"type": "course", "id": "c1"}})
    key = loader.external_course_key("uni", "c1")
    loader.load_external_course(key, url)
    hooks.register(hooks.HOOK_DATA_LOAD, lambda data, context: data.replace('"c1"', '"c2"'))

    assert loader.load_by_key(key)["data"]["id"] == "c2"
    assert requests_mock.call_count == 1
