"""Shared fixtures for CLI tests."""

from pathlib import Path

import pytest
import yaml


@pytest.fixture
def tmp_config_path(tmp_path: Path) -> Path:
    """Provide a config file whose database lives in the temporary directory."""
    config_path = tmp_path / "ragmem.yaml"
    with open(config_path, "w") as f:
        yaml.safe_dump({"memory": {"storage_path": str(tmp_path / "cli.db")}}, f)
    return config_path
