from functools import partial

from occapi import hooks


def upper(data, context):
    return data.upper()

def nothing(data, context):
    return None


def test_register_once():
    hooks.register(hooks.HOOK_DATA_GET, upper)
    hooks.register(hooks.HOOK_DATA_GET, upper)
    assert hooks.implementations(hooks.HOOK_DATA_GET) == [upper]
    assert hooks.implementations(hooks.HOOK_DATA_LOAD) == []

def test_alter_in_order():
    hooks.register(hooks.HOOK_DATA_LOAD, nothing)
    hooks.register(hooks.HOOK_DATA_LOAD, upper)
    assert hooks.alter(hooks.HOOK_DATA_LOAD, "abc", {"unalterable": "key"}) == "ABC"

def test_unregister():
    hooks.register(hooks.HOOK_DATA_GET, upper)
    hooks.unregister(hooks.HOOK_DATA_GET, upper)
    hooks.unregister(hooks.HOOK_DATA_GET, upper)
    assert hooks.alter(hooks.HOOK_DATA_GET, "abc", {}) == "abc"

class Suffix:
    def __call__(self, data, context):
        return data + "?"

def suffix(data, context, text):
    return data + text

def test_alter_with_callable_objects():
    hooks.register(hooks.HOOK_DATA_LOAD, Suffix())
    hooks.register(hooks.HOOK_DATA_LOAD, partial(suffix, text="!"))
    assert hooks.alter(hooks.HOOK_DATA_LOAD, "abc", {"unalterable": "key"}) == "abc?!"
