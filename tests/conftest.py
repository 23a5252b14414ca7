"""Shared fixtures: a throwaway juliaup home with config, versions db and installs."""

import json
from pathlib import Path
from typing import Dict, Iterable, Optional

import pytest

from constants import Constants
from versioning.parser import current_platform


def make_install(root: Path, dirname: str) -> Path:
    """Create a fake install directory holding an (empty) julia binary."""
    binary = root.joinpath(dirname, *Constants.BINARY_RELATIVE_PATH)
    binary.parent.mkdir(parents=True, exist_ok=True)
    binary.write_text("")
    return binary


def versionsdb(channels: Dict[str, str], versions: Iterable[str] = ()) -> dict:
    """Minimal versions database document."""
    return {
        "AvailableVersions": {v: {"UrlPath": f"bin/julia-{v}.tar.gz"} for v in versions},
        "AvailableChannels": {name: {"Version": v} for name, v in channels.items()},
        "Version": "1.0.0",
    }


class JuliaupHome:
    """Helper around a temporary JULIAUP_HOME directory."""

    def __init__(self, path: Path):
        self.path = path
        self.platform = current_platform()

    @property
    def config_file(self) -> Path:
        return self.path / Constants.CONFIG_FILE

    @property
    def versiondb_file(self) -> Path:
        return self.path / Constants.VERSIONSDB_FILE_TEMPLATE.format(platform=self.platform)

    def write_config(self, data: dict) -> Path:
        self.config_file.write_text(json.dumps(data, indent=4), encoding="utf-8")
        return self.config_file

    def write_versionsdb(self, channels: Dict[str, str], versions: Iterable[str] = ()) -> Path:
        self.versiondb_file.write_text(json.dumps(versionsdb(channels, versions)), encoding="utf-8")
        return self.versiondb_file

    def install(self, version: str, dirname: Optional[str] = None) -> Path:
        return make_install(self.path, dirname or f"julia-{version}")

    @property
    def environ(self) -> Dict[str, str]:
        return {Constants.ENV_HOME: str(self.path)}


@pytest.fixture
def juliaup_home(tmp_path):
    """A fresh, empty juliaup home."""
    home = tmp_path / "juliaup"
    home.mkdir()
    return JuliaupHome(home)
