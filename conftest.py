"""Configure pytest."""

import sys
from pathlib import Path

import pytest

# Put the src layout on the import path for runs without an editable install
src_path = str(Path(__file__).parent / "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory, monkeypatch):
    """Keep tests away from the user's medialib config file and environment."""
    from medialib.utils import config

    config_dir = tmp_path_factory.mktemp("config") / "medialib"
    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_FILE", config_dir / "config.toml")
    for name in ("LIBRARY_DB_PATH", "SCAN_INCLUDE_HIDDEN", "SCAN_RECURSIVE", "EVENTS_BUFFER_SIZE"):
        monkeypatch.delenv(config.ENV_PREFIX + name, raising=False)
