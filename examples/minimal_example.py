# python
import tempfile
from pathlib import Path

from config_vault import ConfigStore

if __name__ == "__main__":
    config = ConfigStore()
    config.update_multiple({"db_host": "localhost", "db_port": 5432})

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "config.yaml"
        config.save_to_file(path, "2.0.0")
        print(path.read_text())

        restored = ConfigStore("restored")
        restored.load_from_file(path, "2.0.0")
        restored.load_from_env()
        print("Overrides from environment:", restored.env_overrides)
        restored.display()
