# python
import logging
import sys

from config_vault import ConfigFactory, InstanceRegistry, OutputFormat, set_format_and_output

if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)

    factory = ConfigFactory(InstanceRegistry())
    config = factory.create_config("app")
    config.add_change_listener(lambda key, value: print(f"changed: {key} -> {value!r}"))

    config.set("name", "example")
    config.set("complex", {"key1": "value1", "key2": 42, "key3": {"nestedKey": "nestedValue"}})
    print("Inspect:", config.inspect(["name", "complex", "missing"]))

    for fmt in OutputFormat:
        print(f"--- {fmt.value} ---")
        set_format_and_output(fmt, config, sys.stdout)
