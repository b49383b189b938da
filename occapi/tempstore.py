# occapi/tempstore.py
"""
Cache key scheme for OCCAPI data.

A key is made of dot separated parts:

    provider[.filter_type.filter_id].resource_type[.resource_id][.external]

The ``external`` suffix marks data fetched straight from a remote URL rather
than discovered through the provider. Filtered keys are never external.
Institution keys (``provider.hei.<hei_id>``) are special cased because an
institution ID is usually a domain name and contains the separator.
"""

TYPE_HEI       = "hei"
TYPE_OUNIT     = "ounit"
TYPE_PROGRAMME = "programme"
TYPE_COURSE    = "course"

PARAM_PROVIDER      = "provider"
PARAM_FILTER_TYPE   = "filter_type"
PARAM_FILTER_ID     = "filter_id"
PARAM_RESOURCE_TYPE = "resource_type"
PARAM_RESOURCE_ID   = "resource_id"
PARAM_EXTERNAL      = "external"

KEY_SEPARATOR = "."

COLLECTION_TYPES = [TYPE_PROGRAMME, TYPE_COURSE]
FILTER_TYPES     = [TYPE_OUNIT, TYPE_PROGRAMME]


def _empty_params() -> dict:
    return {
        PARAM_PROVIDER: None,
        PARAM_FILTER_TYPE: None,
        PARAM_FILTER_ID: None,
        PARAM_RESOURCE_TYPE: None,
        PARAM_RESOURCE_ID: None,
        PARAM_EXTERNAL: None,
    }


def params_from_key(temp_store_key: str) -> dict:
    """Extract the parameters encoded in a cache key."""
    params = _empty_params()

    # Institution IDs may contain the separator.
    parts = temp_store_key.split(KEY_SEPARATOR, 2)
    params[PARAM_PROVIDER] = parts[0] or None

    if len(parts) > 1 and parts[1] == TYPE_HEI:
        params[PARAM_RESOURCE_TYPE] = TYPE_HEI
        params[PARAM_RESOURCE_ID] = parts[2] if len(parts) > 2 and parts[2] else None
        return params

    parts = temp_store_key.split(KEY_SEPARATOR)

    is_external = len(parts) > 2 and parts[-1] == PARAM_EXTERNAL
    if is_external:
        parts = parts[:-1]
        params[PARAM_EXTERNAL] = PARAM_EXTERNAL

    is_filtered = not is_external and len(parts) > 3

    if is_filtered:
        params[PARAM_FILTER_TYPE] = parts[1] or None
        params[PARAM_FILTER_ID] = parts[2] or None
        rest = parts[3:]
    else:
        rest = parts[1:]

    if rest:
        params[PARAM_RESOURCE_TYPE] = rest[0] or None
    if len(rest) > 1:
        params[PARAM_RESOURCE_ID] = KEY_SEPARATOR.join(rest[1:]) or None

    return params


def key_from_params(temp_store_params: dict) -> str:
    """Build a cache key from parameters; the inverse of params_from_key."""
    parts = [temp_store_params[PARAM_PROVIDER]]

    has_filter_type = bool(temp_store_params.get(PARAM_FILTER_TYPE))
    has_filter_id = bool(temp_store_params.get(PARAM_FILTER_ID))

    if has_filter_type and has_filter_id:
        parts.append(temp_store_params[PARAM_FILTER_TYPE])
        parts.append(temp_store_params[PARAM_FILTER_ID])

    parts.append(temp_store_params[PARAM_RESOURCE_TYPE])

    if temp_store_params.get(PARAM_RESOURCE_ID):
        parts.append(temp_store_params[PARAM_RESOURCE_ID])

    is_external = bool(temp_store_params.get(PARAM_EXTERNAL))

    if is_external and not has_filter_type and not has_filter_id:
        parts.append(PARAM_EXTERNAL)

    return KEY_SEPARATOR.join(str(part) for part in parts)


def validate_key(temp_store_key: str, single: bool = False) -> str | None:
    """
    Validate a cache key by its parameters.

    Returns an error message, or None when the key is valid.
    """
    params = params_from_key(temp_store_key)

    if not params[PARAM_PROVIDER]:
        return f"Empty parameter: {PARAM_PROVIDER}"

    if not params[PARAM_RESOURCE_TYPE]:
        return f"Empty parameter: {PARAM_RESOURCE_TYPE}"

    if single and not params[PARAM_RESOURCE_ID]:
        return "Missing resource ID for single resource."

    if not single and params[PARAM_RESOURCE_ID]:
        return "Unexpected resource ID for resource collection."

    has_filter_type = bool(params[PARAM_FILTER_TYPE])
    has_filter_id = bool(params[PARAM_FILTER_ID])

    if has_filter_type and not has_filter_id:
        return "Filter type provided, missing filter ID."

    if has_filter_id and not has_filter_type:
        return "Filter ID provided, missing filter type."

    if params[PARAM_EXTERNAL] and (has_filter_type or has_filter_id):
        return "External keys cannot be filtered."

    return None


def validate_resource_type(resource_type: str, allowed_types: list[str]) -> str | None:
    if resource_type not in allowed_types:
        allowed = ", ".join(allowed_types)
        return f"Resource type must be one of {allowed}, {resource_type} given."
    return None


def validate_collection_key(temp_store_key: str, resource_type: str | None = None,
                            filter_type: str | None = None) -> str | None:
    """Validate a collection key, optionally its resource and filter type."""
    error = validate_key(temp_store_key)
    if error:
        return error

    params = params_from_key(temp_store_key)

    if resource_type:
        error = validate_resource_type(resource_type, COLLECTION_TYPES)
        if error:
            return error

        if params[PARAM_RESOURCE_TYPE] != resource_type:
            return f"Data contains {params[PARAM_RESOURCE_TYPE]} instead of {resource_type}."

    if filter_type:
        error = validate_resource_type(filter_type, FILTER_TYPES)
        if error:
            return error

        if params[PARAM_FILTER_TYPE] != filter_type:
            return f"Data is filtered by {params[PARAM_FILTER_TYPE]} instead of {filter_type}."

    return None


def validate_resource_key(temp_store_key: str, resource_type: str) -> str | None:
    """Validate a single resource key and its resource type."""
    error = validate_key(temp_store_key, single=True)
    if error:
        return error

    params = params_from_key(temp_store_key)

    if resource_type:
        error = validate_resource_type(resource_type, COLLECTION_TYPES)
        if error:
            return error

        if params[PARAM_RESOURCE_TYPE] != resource_type:
            return f"Data contains {params[PARAM_RESOURCE_TYPE]} instead of {resource_type}."

    return None


def provider_prefix(provider_id: str) -> str:
    """Prefix shared by every key that belongs to a provider."""
    return f"{provider_id}{KEY_SEPARATOR}"
