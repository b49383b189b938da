# occapi/providers.py
"""
OCCAPI providers: one remote endpoint serving the catalogue of one institution.
"""
import logging
import re
from urllib.parse import urlparse

from .db import delete, insert_many, query
from .store import SharedTempStore
from .tempstore import provider_prefix

logger = logging.getLogger(__name__)

MACHINE_NAME = re.compile(r"^[a-z0-9_]+$")

PROVIDER_FIELDS = ["id", "label", "base_url", "hei_id", "ounit_filter", "status", "description"]


def get_providers(enabled_only: bool = False) -> dict[str, dict]:
    """All providers keyed by ID, ordered by label."""
    filters = {"status": 1} if enabled_only else None
    rows = query("occapi_providers", filters, order_by="label")
    return {row["id"]: row for row in rows}

def get_provider(provider_id: str) -> dict | None:
    rows = query("occapi_providers", {"id": provider_id})
    return rows[0] if rows else None

def get_providers_by_hei_id(hei_id: str) -> dict[str, dict]:
    rows = query("occapi_providers", {"hei_id": hei_id}, order_by="id")
    return {row["id"]: row for row in rows}

def validate_provider(data: dict) -> list[str]:
    """Return a list of error messages, empty when the data can be saved."""
    errors = []

    provider_id = (data.get("id") or "").strip()
    if not provider_id:
        errors.append("Machine name is required.")
    elif not MACHINE_NAME.match(provider_id):
        errors.append("Machine name may only contain lowercase letters, numbers and underscores.")

    if not (data.get("label") or "").strip():
        errors.append("Label is required.")

    base_url = (data.get("base_url") or "").strip()
    parsed = urlparse(base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        errors.append(f"Base URL {base_url!r} is not a valid http(s) URL.")

    if not (data.get("hei_id") or "").strip():
        errors.append("Institution ID is required.")

    return errors

def save_provider(data: dict) -> dict:
    """
    Insert or replace a provider.

    Raises ValueError with the validation messages if the data is invalid.
    """
    errors = validate_provider(data)
    if errors:
        raise ValueError("; ".join(errors))

    row = {
        "id":           data["id"].strip(),
        "label":        data["label"].strip(),
        "base_url":     data["base_url"].strip().rstrip("/"),
        "hei_id":       data["hei_id"].strip(),
        "ounit_filter": 1 if data.get("ounit_filter") else 0,
        "status":       0 if data.get("status") in (False, 0, "0") else 1,
        "description":  data.get("description") or "",
    }
    insert_many("occapi_providers", [row])
    logger.info("Saved OCCAPI provider %s", row["id"])
    return row

def delete_provider(provider_id: str, store: SharedTempStore | None = None) -> bool:
    """Delete a provider together with its cached data."""
    removed = delete("occapi_providers", {"id": provider_id})
    if removed:
        cleared = (store or SharedTempStore()).delete_prefix(provider_prefix(provider_id))
        logger.info("Deleted OCCAPI provider %s and %d cached items", provider_id, cleared)
    return bool(removed)
