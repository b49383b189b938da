# occapi/api_client.py

import json
import logging
import time

import requests

from . import hooks, settings
from .store import SharedTempStore

logger = logging.getLogger(__name__)

INDEX_KEYWORD = "index"

ACCEPT_HEADER = "application/vnd.api+json, application/json"


class JsonDataFetcher:
    """
    Fetch JSON:API data from remote endpoints, keeping a copy in the store.

    Remote failures never raise: they are logged and the fetch yields an
    empty string, which is not written to the store.
    """

    def __init__(self, store: SharedTempStore | None = None,
                 session: requests.Session | None = None,
                 timeout: float | None = None):
        self.store = store or SharedTempStore()
        self.session = session or requests.Session()
        self.session.headers["Accept"] = ACCEPT_HEADER
        self.timeout = timeout or settings.REQUEST_TIMEOUT

    def load(self, temp_store_key: str, endpoint: str, refresh: bool = False) -> str | None:
        """
        Load JSON:API data from the store or from the endpoint.

        The endpoint is only requested when the key is missing from the store
        or ``refresh`` is set.
        """
        if not self.store.get(temp_store_key) or refresh:
            raw = self.get(endpoint)

            if raw:
                raw = self.preprocess(raw, temp_store_key)
                self.store.set(temp_store_key, raw)
                logger.info("Loaded %s into temporary storage", temp_store_key)
            else:
                logger.warning("Nothing loaded for %s from %r", temp_store_key, endpoint)

        data = self.store.get(temp_store_key)

        if data is None:
            return None

        return self.process(data, temp_store_key)

    def get(self, endpoint: str) -> str:
        """GET an endpoint and return its JSON body re-encoded compactly."""
        if not endpoint:
            logger.warning("No endpoint to fetch data from")
            return ""

        try:
            resp = self.session.get(endpoint, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Error fetching %s: %s", endpoint, e)
            return ""

        try:
            resp.raise_for_status()
        except requests.HTTPError as e:
            # JSON:API error documents are kept like any other response
            logger.warning("HTTP error from %s: %s", endpoint, e)

        try:
            decoded = resp.json()
        except ValueError:
            logger.error("Invalid JSON from %s", endpoint)
            return ""

        return json.dumps(decoded, separators=(",", ":"), ensure_ascii=False)

    def get_response_code(self, endpoint: str) -> int:
        """Status code of an endpoint, 0 when it cannot be reached."""
        try:
            resp = self.session.get(endpoint, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Error reaching %s: %s", endpoint, e)
            return 0
        return resp.status_code

    def preprocess(self, data: str, temp_store_key: str) -> str:
        """Normalize raw data and run the ``occapi_data_get`` hooks."""
        context = {"unalterable": temp_store_key}

        # Strip whitespace from the JSON data.
        try:
            data = json.dumps(json.loads(data), separators=(",", ":"), ensure_ascii=False)
        except ValueError:
            logger.warning("Storing non JSON data for %s", temp_store_key)

        return hooks.alter(hooks.HOOK_DATA_GET, data, context)

    def process(self, data: str, temp_store_key: str) -> str:
        """Run the ``occapi_data_load`` hooks on stored data."""
        context = {"unalterable": temp_store_key}
        return hooks.alter(hooks.HOOK_DATA_LOAD, data, context)

    def check_updated(self, temp_store_key: str) -> int | None:
        """UNIX timestamp of the stored item, or None."""
        if not self.store.get(temp_store_key):
            return None
        return self.store.get_metadata(temp_store_key)["updated"]

    def is_stale(self, temp_store_key: str) -> bool:
        """
        An item is fresh when it is stored and the index was not updated
        after it. A missing index is older than everything.
        """
        item_updated = self.check_updated(temp_store_key)

        if not item_updated:
            return True

        if temp_store_key == INDEX_KEYWORD:
            return False

        index_updated = self.check_updated(INDEX_KEYWORD) or 0

        return index_updated > item_updated

    def get_updated(self, temp_store_key: str, endpoint: str) -> str | None:
        """Load an item, refreshing it if the index is newer."""
        return self.load(temp_store_key, endpoint, refresh=self.is_stale(temp_store_key))

    def update_index(self) -> int:
        """Stamp the index so that every item stored before now is stale."""
        stamp = int(time.time())
        self.store.set(INDEX_KEYWORD, json.dumps({"updated": stamp}))
        logger.info("Index updated, cached data before %s is stale", stamp)
        return stamp
