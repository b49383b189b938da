from occapi.db import update
from occapi.store import SharedTempStore


def test_set_and_get():
    store = SharedTempStore()
    assert store.get("uni.programme") is None
    store.set("uni.programme", '{"data":[]}')
    assert store.get("uni.programme") == '{"data":[]}'

def test_set_replaces_and_stamps():
    store = SharedTempStore()
    store.set("key", "one")
    update("tempstore", {"updated": 1}, {"key": "key"})
    store.set("key", "two")
    assert store.get("key") == "two"
    assert store.get_metadata("key")["updated"] > 1

def test_metadata_of_missing_key():
    assert SharedTempStore().get_metadata("missing") is None

def test_delete():
    store = SharedTempStore()
    store.set("key", "value")
    store.delete("key")
    assert store.get("key") is None

def test_collections_are_isolated():
    one, two = SharedTempStore("one"), SharedTempStore("two")
    one.set("key", "1")
    assert two.get("key") is None
    assert one.keys() == ["key"]

def test_keys_and_delete_prefix():
    store = SharedTempStore()
    for key in ["uni.programme", "uni.course", "uni_2.course", "other.course"]:
        store.set(key, "x")

    assert store.keys("uni.") == ["uni.course", "uni.programme"]
    assert store.delete_prefix("uni.") == 2
    assert store.keys() == ["other.course", "uni_2.course"]
