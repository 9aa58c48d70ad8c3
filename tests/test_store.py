import copy
import io
import logging
import pickle
import threading

import pytest

from config_vault.exceptions import (
    ConfigArgumentError,
    ConfigConsumedError,
    ConfigNotFoundError,
    ConfigReentrancyError,
    ConfigValidationError,
)
from config_vault.formats import OutputFormat, set_output_format
from config_vault.store import DEFAULT_VERSION, ConfigStore

COMPLEX = {"key1": "value1", "key2": 42, "key3": {"nestedKey": "nestedValue"}}


def test_set_get_and_overwrite(store):
    store.set("port", 8080)
    assert store.get("port") == 8080
    store.set("port", "eighty")
    assert store.get("port") == "eighty"
    assert store["port"] == "eighty"


def test_get_missing_raises(store):
    with pytest.raises(ConfigNotFoundError) as exc:
        store.get("missing")
    assert exc.value.key == "missing"


def test_inspect_returns_values_in_order(seeded_store):
    assert seeded_store.inspect(["name", "complex"]) == ["example", COMPLEX]
    assert seeded_store.inspect(["complex", "nope"]) == [COMPLEX, {}]
    assert seeded_store.inspect([]) == []


def test_inspect_sees_writes_between_lookups(store):
    store.set("a", 1)
    store.set("b", "old")
    looked_up_a = threading.Event()
    b_written = threading.Event()
    original_get = store.get

    def gated_get(key):
        value = original_get(key)
        if key == "a":
            looked_up_a.set()
            assert b_written.wait(timeout=5)
        return value

    def writer():
        assert looked_up_a.wait(timeout=5)
        store.set("b", "new")
        b_written.set()

    store.get = gated_get  # type: ignore[method-assign]
    t = threading.Thread(target=writer)
    t.start()
    result = store.inspect(["a", "b"])
    t.join(timeout=5)

    assert result == [1, "new"]


def test_empty_and_non_string_keys_rejected(store):
    with pytest.raises(ConfigArgumentError):
        store.set("", 1)
    with pytest.raises(ConfigArgumentError):
        store.set(1, 1)  # type: ignore[arg-type]
    assert len(store) == 0


def test_example_key_only_accepts_strings(store):
    with pytest.raises(ConfigArgumentError):
        store.set("example", 42)
    assert not store.exists("example")
    store.set("example", "ok")
    assert store.get("example") == "ok"


def test_unsupported_value_rejected(store):
    with pytest.raises(ConfigArgumentError):
        store.set("bad", {1, 2})
    assert "bad" not in store


def test_get_returns_independent_copy(store):
    store.set("complex", COMPLEX)
    fetched = store.get("complex")
    fetched["key3"]["nestedKey"] = "changed"
    assert store.get("complex") == COMPLEX


def test_remove(store, caplog):
    store.set("a", 1)
    store.remove("a")
    assert not store.exists("a")

    store.remove("a")
    assert any("Unknown configuration key: a" in r.getMessage() for r in caplog.records)

    with pytest.raises(ConfigNotFoundError):
        store.remove("a", strict=True)
    with pytest.raises(ConfigNotFoundError):
        del store["a"]


def test_clear_and_mapping_protocol(seeded_store):
    assert len(seeded_store) == 2
    assert sorted(seeded_store) == ["complex", "name"]
    assert "name" in seeded_store
    assert 3 not in seeded_store
    seeded_store.clear()
    assert len(seeded_store) == 0
    assert seeded_store.get_all() == {}


def test_snapshot_is_read_only(seeded_store):
    snap = seeded_store.snapshot()
    with pytest.raises(TypeError):
        snap["name"] = "x"  # type: ignore[index]
    assert dict(snap) == seeded_store.get_all()


def test_listeners_called_in_order_with_key_and_value(store):
    calls = []
    store.add_change_listener(lambda k, v: calls.append(("first", k, v)))
    store.add_change_listener(lambda k, v: calls.append(("second", k, v)))
    store.set("a", [1, 2])
    assert calls == [("first", "a", [1, 2]), ("second", "a", [1, 2])]


def test_listener_does_not_fire_on_remove_or_clear(store):
    calls = []
    store.set("a", 1)
    store.add_change_listener(lambda k, v: calls.append(k))
    store.remove("a")
    store.clear()
    assert calls == []


def test_listener_error_propagates_but_value_is_kept(store):
    def bad(_k, _v):
        raise RuntimeError("listener failed")

    store.add_change_listener(bad)
    with pytest.raises(RuntimeError):
        store.set("a", 1)
    assert store.get("a") == 1


def test_listener_error_logged_when_failure_mode_is_log(caplog):
    store = ConfigStore("logged", listener_failure_mode="log")
    store.add_change_listener(lambda k, v: 1 / 0)
    store.set("a", 1)
    assert store.get("a") == 1
    assert any("failed for key='a'" in r.getMessage() for r in caplog.records)


def test_listener_calling_back_into_store_raises(store):
    store.set("other", 1)
    store.add_change_listener(lambda k, v: store.get("other"))
    with pytest.raises(ConfigReentrancyError):
        store.set("a", 1)
    # the store is usable again afterwards
    assert store.get("a") == 1
    assert store.get("other") == 1


def test_listener_may_use_a_different_store(store):
    mirror = ConfigStore("mirror")
    store.add_change_listener(lambda k, v: mirror.set(k, v))
    store.set("a", {"b": 2})
    assert mirror.get("a") == {"b": 2}


def test_listener_receives_a_copy(store):
    def mutate(_k, v):
        v.append(99)

    store.add_change_listener(mutate)
    store.set("items", [1])
    assert store.get("items") == [1]


def test_validate_passes(seeded_store):
    seeded_store.validate(
        {
            "name": lambda v: isinstance(v, str),
            "complex": lambda v: v["key2"] == 42,
        }
    )


def test_validate_missing_key(seeded_store):
    with pytest.raises(ConfigValidationError) as exc:
        seeded_store.validate({"absent": lambda v: True})
    assert exc.value.key == "absent"
    assert "absent" in exc.value.errors


def test_validate_predicate_false_and_raising(seeded_store):
    with pytest.raises(ConfigValidationError) as exc:
        seeded_store.validate({"name": lambda v: v == "other"})
    assert exc.value.value == "example"

    with pytest.raises(ConfigValidationError) as exc:
        seeded_store.validate({"complex": lambda v: v["nope"]})
    assert "Validator raised exception" in exc.value.errors["complex"]


def test_validate_ordered_pairs_stop_at_first_failure(seeded_store):
    seen = []

    def record(key, result):
        def check(_v):
            seen.append(key)
            return result

        return check

    with pytest.raises(ConfigValidationError) as exc:
        seeded_store.validate([("name", record("name", False)), ("complex", record("complex", True))])
    assert exc.value.key == "name"
    assert seen == ["name"]


def test_update_multiple_all_applied(store):
    calls = []
    store.add_change_listener(lambda k, v: calls.append(k))
    store.update_multiple({"a": 1, "b": 2})
    assert store.get_all() == {"a": 1, "b": 2}
    assert calls == ["a", "b"]


def test_update_multiple_stops_at_first_rejection(store, caplog):
    store.update_multiple({"a": 1, "example": 42, "c": 3})
    assert store.get("a") == 1
    assert not store.exists("example")
    assert not store.exists("c")
    assert any("Error in update_multiple" in r.getMessage() for r in caplog.records)


def test_move_from_transfers_everything(seeded_store):
    calls = []
    seeded_store.add_change_listener(lambda k, v: calls.append(k))
    seeded_store.load_from_env(environ={"name": "env"})

    moved = ConfigStore.move_from(seeded_store, name="moved")
    assert moved.name == "moved"
    assert moved.get("name") == "env"
    assert moved.env_overrides == {"name": "env"}
    moved.set("new", 1)
    assert calls == ["new"]

    assert seeded_store.consumed
    with pytest.raises(ConfigConsumedError):
        seeded_store.get("name")
    with pytest.raises(ConfigConsumedError):
        ConfigStore.move_from(seeded_store)


def test_store_cannot_be_copied_or_pickled(store):
    with pytest.raises(TypeError):
        copy.copy(store)
    with pytest.raises(TypeError):
        copy.deepcopy(store)
    with pytest.raises(TypeError):
        pickle.dumps(store)


def test_properties_and_repr(store):
    assert store.name == "test"
    assert store.version == DEFAULT_VERSION
    assert store.env_overrides == {}
    assert "test" in repr(store)


def test_display_writes_pretty_values(seeded_store):
    buf = io.StringIO()
    seeded_store.display(buf)
    text = buf.getvalue()
    assert text.startswith('name: "example"\ncomplex: {\n')
    assert '"nestedKey": "nestedValue"' in text


def test_display_never_raises(seeded_store, caplog):
    class Broken(io.StringIO):
        def write(self, s):
            raise OSError("closed")

    seeded_store.display(Broken())
    assert any("Error in display" in r.getMessage() for r in caplog.records)


def test_render_and_output_config(seeded_store):
    assert seeded_store.render() == (
        'name: "example"\n'
        'complex: {"key1":"value1","key2":42,"key3":{"nestedKey":"nestedValue"}}\n'
    )
    set_output_format(OutputFormat.CSV)
    buf = seeded_store.output_config(io.StringIO())
    assert buf.getvalue().splitlines()[0] == '"name","example"'
    assert seeded_store.render(OutputFormat.XML).startswith("<output>\n  <name>example</name>\n")


def test_concurrent_writers(store):
    def worker(i):
        for n in range(50):
            store.set(f"k{i}-{n}", n)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(store) == 400


def test_debug_log_redacts_secrets(store, caplog):
    caplog.set_level(logging.DEBUG, logger="config_vault.store")
    store.set("api_token", "s3cr3t")
    assert not any("s3cr3t" in r.getMessage() for r in caplog.records)
    assert any("***" in r.getMessage() for r in caplog.records)
