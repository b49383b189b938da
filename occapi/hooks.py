# occapi/hooks.py
"""
Alter hooks for OCCAPI data.

Two hooks are invoked by the fetcher:

* ``occapi_data_get``: raw data fetched from a remote endpoint, before it is
  written to the store.
* ``occapi_data_load``: data read from the store, before it is served.

A hook is a callable ``func(data: str, context: dict) -> str | None``. The
context holds the cache key under ``"unalterable"``. Returning None keeps the
data unchanged.
"""
import logging
from collections import defaultdict

logger = logging.getLogger(__name__)

HOOK_DATA_GET  = "occapi_data_get"
HOOK_DATA_LOAD = "occapi_data_load"

_registry = defaultdict(list)


def register(hook: str, func) -> None:
    if func not in _registry[hook]:
        _registry[hook].append(func)

def unregister(hook: str, func) -> None:
    if func in _registry[hook]:
        _registry[hook].remove(func)

def implementations(hook: str) -> list:
    return list(_registry[hook])

def alter(hook: str, data: str, context: dict) -> str:
    """Pass data through every implementation of a hook, in registration order."""
    for func in _registry[hook]:
        altered = func(data, context)
        if altered is not None:
            logger.debug("%s altered by %r for %s", hook, func, context.get("unalterable"))
            data = altered
    return data
