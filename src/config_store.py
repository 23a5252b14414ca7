"""Read-only view of the juliaup configuration file.

The file is loaded fully into memory once per invocation and validated
against a Draft-07 JSON Schema. Mutation belongs to the installer tooling;
nothing here writes the file back.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from jsonschema import Draft7Validator

from errors import ConfigCorruptedError
from versioning.models import Version
from versioning.parser import parse_version

logger = logging.getLogger(__name__)

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["InstalledVersions", "InstalledChannels"],
    "properties": {
        "Default": {"type": ["string", "null"]},
        "InstalledVersions": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "required": ["Path"],
                "properties": {"Path": {"type": "string"}},
            },
        },
        "InstalledChannels": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "Version": {"type": "string"},
                    "Command": {"type": "string"},
                    "Target": {"type": "string"},
                    "Args": _STRING_LIST,
                    "Path": {"type": "string"},
                    "Url": {"type": "string"},
                    "LocalETag": {"type": "string"},
                    "ServerETag": {"type": "string"},
                },
                "anyOf": [
                    {"required": ["Command"]},
                    {"required": ["Version"]},
                    {"required": ["Target"]},
                    {"required": ["Path"]},
                ],
            },
        },
        "Settings": {
            "type": "object",
            "properties": {
                "CheckChannelUpToDate": {"type": "boolean"},
                "ManifestVersionDetect": {"type": "boolean"},
            },
        },
        "Overrides": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["Path", "Channel"],
                "properties": {"Path": {"type": "string"}, "Channel": {"type": "string"}},
            },
        },
    },
}


def validate_config(data: Any) -> None:
    """Validate configuration data and raise on the first structural problem.

    Raises:
        ConfigCorruptedError: Naming the offending key path.
    """
    validator = Draft7Validator(CONFIG_SCHEMA)
    errs = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    if errs:
        first = errs[0]
        path = "/".join([str(p) for p in first.path]) or "<root>"
        raise ConfigCorruptedError(f"Invalid configuration at '{path}': {first.message}")


@dataclass
class ChannelEntry:
    """One ``InstalledChannels`` entry.

    ``path`` is set for direct-download channels (nightly, pull request
    builds), which own their install directory instead of pointing into
    ``InstalledVersions``.
    """
    name: str
    version: Optional[str] = None
    command: Optional[str] = None
    target: Optional[str] = None
    path: Optional[str] = None
    url: Optional[str] = None
    args: List[str] = field(default_factory=list)


@dataclass
class InstalledVersion:
    """One ``InstalledVersions`` entry, keyed by its normalized Version."""
    key: str
    version: Version
    path: str


@dataclass
class DirectoryOverride:
    path: str
    channel: str


class ConfigStore:
    """In-memory configuration: channels, installed versions and settings."""

    def __init__(self, data: Dict[str, Any], location: Path, default_platform: Optional[str] = None):
        validate_config(data)
        self.location = location
        self.directory = location.parent
        self.default_platform = default_platform
        self.default: Optional[str] = data.get("Default")
        settings = data.get("Settings", {})
        self.check_channel_up_to_date: bool = settings.get("CheckChannelUpToDate", True)
        self.manifest_version_detect: bool = settings.get("ManifestVersionDetect", False)
        self.overrides = [
            DirectoryOverride(path=o["Path"], channel=o["Channel"])
            for o in data.get("Overrides", [])
        ]
        self.channels = {
            name: ChannelEntry(
                name=name,
                version=entry.get("Version"),
                command=entry.get("Command"),
                target=entry.get("Target"),
                path=entry.get("Path"),
                url=entry.get("Url"),
                args=list(entry.get("Args") or []),
            )
            for name, entry in data["InstalledChannels"].items()
        }
        self.versions: Dict[Version, InstalledVersion] = {}
        for key, entry in data["InstalledVersions"].items():
            version = self.normalize(self._parse_key(key, "InstalledVersions"))
            if version in self.versions:
                raise ConfigCorruptedError(
                    f"The installed versions `{self.versions[version].key}` and `{key}` "
                    "refer to the same Julia version."
                )
            self.versions[version] = InstalledVersion(key=key, version=version, path=entry["Path"])

    @staticmethod
    def _parse_key(text: str, where: str) -> Version:
        try:
            return parse_version(text)
        except ValueError as e:
            raise ConfigCorruptedError(f"`{text}` in `{where}` is not a valid version ({e}).") from e

    def normalize(self, version: Version) -> Version:
        return version.with_platform(self.default_platform)

    def channel(self, name: str) -> Optional[ChannelEntry]:
        return self.channels.get(name)

    def bound_version(self, entry: ChannelEntry) -> Version:
        """Parsed, normalized Version bound to a channel entry."""
        if entry.version is None:
            raise ConfigCorruptedError(
                f"The juliaup configuration has neither a `Command` nor a `Version` element for channel `{entry.name}`."
            )
        return self.normalize(self._parse_key(entry.version, f"InstalledChannels/{entry.name}"))

    def installed(self, version: Version) -> Optional[InstalledVersion]:
        return self.versions.get(self.normalize(version))

    def is_version_installed(self, version: Version) -> bool:
        return self.installed(version) is not None

    def installed_versions(self) -> Set[Version]:
        return set(self.versions)

    def install_dir(self, installed: InstalledVersion) -> Path:
        """Absolute, lexically normalized install directory of ``installed``."""
        return self.resolve_path(installed.path)

    def resolve_path(self, path: str) -> Path:
        """``path`` relative to the configuration directory, lexically normalized."""
        return Path(os.path.normpath(self.directory / path))

    def override_for(self, cwd: Path) -> Optional[DirectoryOverride]:
        """Override whose path is the closest ancestor of (or equal to) ``cwd``."""
        best = None
        best_len = -1
        for override in self.overrides:
            base = Path(os.path.normpath(override.path))
            if base == cwd or base in cwd.parents:
                if len(base.parts) > best_len:
                    best, best_len = override, len(base.parts)
        return best


def load_config_store(location: Path, default_platform: Optional[str] = None) -> ConfigStore:
    """Read and validate the configuration file at ``location``.

    Raises:
        ConfigCorruptedError: If the file is missing, unreadable, not JSON or invalid.
    """
    try:
        with open(location, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigCorruptedError(f"Could not read configuration file at `{location}`.") from e
    except json.JSONDecodeError as e:
        raise ConfigCorruptedError(
            f"The juliaup configuration file is not a valid JSON file (`{e}`)."
        ) from e
    except OSError as e:
        raise ConfigCorruptedError(
            f"Could not read configuration file at `{location}`: {e.strerror or e}."
        ) from e

    logger.debug("Loaded configuration from %s", location)
    return ConfigStore(data, location, default_platform)
