# python
import pytest

from config_vault.formats import DISPATCHER
from config_vault.registry import InstanceRegistry
from config_vault.store import ConfigStore

COMPLEX = {"key1": "value1", "key2": 42, "key3": {"nestedKey": "nestedValue"}}


@pytest.fixture(autouse=True)
def reset_dispatcher():
    DISPATCHER.reset()
    yield
    DISPATCHER.reset()


@pytest.fixture
def store():
    return ConfigStore("test")


@pytest.fixture
def seeded_store(store):
    store.set("name", "example")
    store.set("complex", COMPLEX)
    return store


@pytest.fixture
def registry():
    reg = InstanceRegistry()
    yield reg
    reg.clear()
