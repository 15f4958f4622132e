"""
Shared pytest fixtures and utilities for the romsync test suite.
"""

from pathlib import Path
from typing import Dict, Any, Callable

import pytest
import yaml

from romsync.config.layout import DirectoryLayout
from romsync.config.platforms import PlatformCatalog


@pytest.fixture
def base_config(tmp_path: Path) -> Dict[str, Any]:
    """
    Loaded-config shaped dictionary rooted at the temp directory.
    """
    return {
        "paths": {"base": str(tmp_path / "library")},
        "pipeline": {},
        "batch": {"concurrency_multiplier": 1},
        "logging": {"level": "INFO", "console": False},
    }


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[[Dict[str, Any]], Path]:
    """
    Create a minimal config.yaml in a temp directory.

    Usage:
        path = make_config({"batch": {"error_handling": "fail_fast"}})
    """

    def _builder(overrides: Dict[str, Any] | None = None) -> Path:
        base = {
            "paths": {"base": str(tmp_path / "library")},
            "batch": {"processing_strategy": "serial"},
            "logging": {"level": "INFO", "console": False},
        }
        if overrides:
            base = merge_dicts(base, overrides)

        cfg_path = tmp_path / "config.yaml"
        cfg_path.write_text(yaml.safe_dump(base))
        return cfg_path

    return _builder


@pytest.fixture
def layout(base_config: Dict[str, Any]) -> DirectoryLayout:
    """
    Directory layout under <tmp>/library with its fixed directories created.
    """
    resolved = DirectoryLayout.from_config(base_config)
    resolved.ensure()
    return resolved


@pytest.fixture
def catalog() -> PlatformCatalog:
    return PlatformCatalog.default()


@pytest.fixture
def incoming(tmp_path: Path) -> Path:
    """
    Source directory for ROM files, outside the library tree.
    """
    path = tmp_path / "incoming"
    path.mkdir()
    return path


@pytest.fixture
def write_rom(incoming: Path) -> Callable[..., Path]:
    """
    Write a small ROM file into the incoming directory.

    Usage:
        rom = write_rom("Game.nes", b"payload")
    """

    def _writer(name: str, content: bytes = b"rom-data", directory: Path | None = None) -> Path:
        target = (directory or incoming) / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return target

    return _writer


def merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow+deep merge helper for fixture config dictionaries.
    """
    result: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result
