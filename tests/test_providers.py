import pytest

from occapi.providers import (
    delete_provider, get_provider, get_providers, get_providers_by_hei_id,
    save_provider, validate_provider,
)
from occapi.store import SharedTempStore

VALID = {
    "id": "uni",
    "label": "Example University",
    "base_url": "https://occapi.example.edu/hei/example.edu/",
    "hei_id": "example.edu",
}


def test_validate_provider():
    assert validate_provider(VALID) == []

    errors = validate_provider({"id": "Bad Name", "label": "", "base_url": "ftp://x", "hei_id": ""})
    assert len(errors) == 4
    assert errors[0].startswith("Machine name may only contain")

def test_save_provider_normalizes():
    row = save_provider(VALID)
    assert row["base_url"] == "https://occapi.example.edu/hei/example.edu"
    assert row["status"] == 1
    assert row["ounit_filter"] == 0
    assert get_provider("uni")["label"] == "Example University"

def test_save_invalid_provider_raises():
    with pytest.raises(ValueError, match="Label is required"):
        save_provider({**VALID, "label": " "})

def test_get_providers():
    save_provider({**VALID, "id": "b_uni", "label": "B"})
    save_provider({**VALID, "id": "a_uni", "label": "A", "status": False})

    assert list(get_providers()) == ["a_uni", "b_uni"]
    assert list(get_providers(enabled_only=True)) == ["b_uni"]
    assert list(get_providers_by_hei_id("example.edu")) == ["a_uni", "b_uni"]
    assert get_providers_by_hei_id("other.edu") == {}

def test_delete_provider_clears_cache():
    save_provider(VALID)
    store = SharedTempStore()
    store.set("uni.programme", "{}")
    store.set("other.programme", "{}")

    assert delete_provider("uni", store)
    assert get_provider("uni") is None
    assert store.keys() == ["other.programme"]
    assert not delete_provider("uni", store)
