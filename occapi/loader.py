# occapi/loader.py
"""
Loads OCCAPI resources for a provider, serving from the store when possible.

Endpoints are discovered by walking the API: the institution resource lives
at the provider base URL and links to the collections; a collection item
links to its own resource; a resource links to the collections filtered by
it. Discovery only happens when the cached copy is stale.
"""
import json
import logging

from . import jsonapi
from .api_client import JsonDataFetcher
from .providers import get_provider
from .tempstore import (
    PARAM_EXTERNAL, PARAM_FILTER_ID, PARAM_FILTER_TYPE, PARAM_PROVIDER,
    PARAM_RESOURCE_ID, PARAM_RESOURCE_TYPE, TYPE_COURSE, TYPE_HEI,
    TYPE_OUNIT, TYPE_PROGRAMME, key_from_params, params_from_key,
)

logger = logging.getLogger(__name__)

COLLECTION_TYPES          = [TYPE_OUNIT, TYPE_PROGRAMME, TYPE_COURSE]
FILTER_TYPES              = [TYPE_OUNIT, TYPE_PROGRAMME]
FILTERED_COLLECTION_TYPES = [TYPE_PROGRAMME, TYPE_COURSE]


def _decode(response: str | None) -> dict:
    if not response:
        return {}
    try:
        decoded = json.loads(response)
    except ValueError:
        logger.error("Stored data is not valid JSON")
        return {}
    return decoded if isinstance(decoded, dict) else {}


class OccapiDataLoader:

    def __init__(self, fetcher: JsonDataFetcher | None = None):
        self.fetcher = fetcher or JsonDataFetcher()

    def _key(self, provider_id, resource_type, resource_id=None,
             filter_type=None, filter_id=None, external=False) -> str:
        return key_from_params({
            PARAM_PROVIDER: provider_id,
            PARAM_FILTER_TYPE: filter_type,
            PARAM_FILTER_ID: filter_id,
            PARAM_RESOURCE_TYPE: resource_type,
            PARAM_RESOURCE_ID: resource_id,
            PARAM_EXTERNAL: PARAM_EXTERNAL if external else None,
        })

    def load_institution(self, provider_id: str) -> dict | None:
        """Institution resource of a provider, or None for an unknown provider."""
        provider = get_provider(provider_id)

        if not provider:
            logger.warning("Unknown OCCAPI provider %s", provider_id)
            return None

        temp_store_key = self._key(provider_id, TYPE_HEI, provider["hei_id"])

        response = self.fetcher.get_updated(temp_store_key, provider["base_url"])

        return _decode(response)

    def load_collection(self, provider_id: str, resource_type: str) -> dict:
        """Resource collection by type, linked from the institution resource."""
        provider = get_provider(provider_id)

        if not provider or resource_type not in COLLECTION_TYPES:
            return {}

        temp_store_key = self._key(provider_id, resource_type)

        # If data is present in the store the endpoint is ignored.
        endpoint = ""

        if self.fetcher.is_stale(temp_store_key):
            hei_data = self.load_institution(provider_id) or {}
            hei_links = hei_data.get(jsonapi.LINKS_KEY) or {}

            if resource_type not in hei_links:
                logger.warning("Institution of %s has no %s link", provider_id, resource_type)
                return {}

            endpoint = jsonapi.get_resource_link_by_type(hei_data, resource_type)

        response = self.fetcher.get_updated(temp_store_key, endpoint)

        return _decode(response)

    def load_filtered_collection(self, provider_id: str, filter_type: str,
                                 filter_id: str, resource_type: str) -> dict:
        """Resource collection by type, filtered by a parent resource."""
        provider = get_provider(provider_id)

        filter_is_valid = filter_type in FILTER_TYPES and bool(filter_id)
        type_is_valid = resource_type in FILTERED_COLLECTION_TYPES

        if not provider or not filter_is_valid or not type_is_valid:
            return {}

        temp_store_key = self._key(provider_id, resource_type,
                                   filter_type=filter_type, filter_id=filter_id)

        endpoint = ""

        if self.fetcher.is_stale(temp_store_key):
            filter_data = self.load_resource(provider_id, filter_type, filter_id)
            filter_links = filter_data.get(jsonapi.LINKS_KEY) or {}

            if resource_type not in filter_links:
                logger.warning("%s %s has no %s link", filter_type, filter_id, resource_type)
                return {}

            endpoint = jsonapi.get_resource_link_by_type(filter_data, resource_type)

        response = self.fetcher.get_updated(temp_store_key, endpoint)

        return _decode(response)

    def load_resource(self, provider_id: str, resource_type: str, resource_id: str) -> dict:
        """Single resource by type and ID, found through its collection."""
        collection = self.load_collection(provider_id, resource_type)

        if not collection or jsonapi.DATA_KEY not in collection:
            return {}

        temp_store_key = self._key(provider_id, resource_type, resource_id)

        endpoint = ""

        if self.fetcher.is_stale(temp_store_key):
            for resource in collection[jsonapi.DATA_KEY] or []:
                # Only one item at most will pass this check.
                if jsonapi.get_resource_id(resource) == resource_id:
                    endpoint = jsonapi.get_resource_link_by_type(resource, jsonapi.SELF_KEY)
                    break

            if not endpoint:
                logger.warning("No %s %s in collection of %s", resource_type, resource_id, provider_id)
                return {}

        response = self.fetcher.get_updated(temp_store_key, endpoint)

        return _decode(response)

    def load_external_course(self, temp_store_key: str, endpoint: str, refresh: bool = False) -> dict:
        """Course resource read directly from a remote URL."""
        response = self.fetcher.load(temp_store_key, endpoint, refresh=refresh)
        return _decode(response)

    def external_course_key(self, provider_id: str, course_id: str) -> str:
        return self._key(provider_id, TYPE_COURSE, course_id, external=True)

    def load_ounits(self, provider_id: str) -> dict:
        return self.load_collection(provider_id, TYPE_OUNIT)

    def load_ounit(self, provider_id: str, resource_id: str) -> dict:
        return self.load_resource(provider_id, TYPE_OUNIT, resource_id)

    def load_programmes(self, provider_id: str) -> dict:
        return self.load_collection(provider_id, TYPE_PROGRAMME)

    def load_ounit_programmes(self, provider_id: str, ounit_id: str) -> dict:
        return self.load_filtered_collection(provider_id, TYPE_OUNIT, ounit_id, TYPE_PROGRAMME)

    def load_programme(self, provider_id: str, resource_id: str) -> dict:
        return self.load_resource(provider_id, TYPE_PROGRAMME, resource_id)

    def load_courses(self, provider_id: str) -> dict:
        return self.load_collection(provider_id, TYPE_COURSE)

    def load_ounit_courses(self, provider_id: str, ounit_id: str) -> dict:
        return self.load_filtered_collection(provider_id, TYPE_OUNIT, ounit_id, TYPE_COURSE)

    def load_programme_courses(self, provider_id: str, programme_id: str) -> dict:
        return self.load_filtered_collection(provider_id, TYPE_PROGRAMME, programme_id, TYPE_COURSE)

    def load_course(self, provider_id: str, resource_id: str) -> dict:
        return self.load_resource(provider_id, TYPE_COURSE, resource_id)

    def load_by_key(self, temp_store_key: str) -> dict:
        """Load whatever a collection or resource key points at."""
        params = params_from_key(temp_store_key)
        provider_id = params[PARAM_PROVIDER]
        resource_type = params[PARAM_RESOURCE_TYPE]
        resource_id = params[PARAM_RESOURCE_ID]

        if params[PARAM_EXTERNAL]:
            return _decode(self.fetcher.load(temp_store_key, ""))

        if resource_type == TYPE_HEI:
            return self.load_institution(provider_id) or {}

        if params[PARAM_FILTER_TYPE] and not resource_id:
            return self.load_filtered_collection(
                provider_id, params[PARAM_FILTER_TYPE], params[PARAM_FILTER_ID], resource_type
            )

        if resource_id:
            return self.load_resource(provider_id, resource_type, resource_id)

        return self.load_collection(provider_id, resource_type)
