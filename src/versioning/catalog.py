"""Version catalog: the known releases used for ordering and "latest" decisions."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import semantic_version

from common.logging_utils import extra_context, is_debug_enabled
from errors import CatalogNotFoundError, ConfigCorruptedError

from .models import Version, sort_key
from .parser import parse_db_version

logger = logging.getLogger(__name__)


def channel_range(components: Sequence[int]) -> semantic_version.SimpleSpec:
    """Convert leading version components into a SimpleSpec range.

    ``(1,)`` -> ``>=1.0.0,<2.0.0``; ``(1, 5)`` -> ``>=1.5.0,<1.6.0``;
    a full triple becomes an exact match.
    """
    if len(components) == 1:
        major = components[0]
        return semantic_version.SimpleSpec(f">={major}.0.0,<{major + 1}.0.0")
    if len(components) == 2:
        major, minor = components
        return semantic_version.SimpleSpec(f">={major}.{minor}.0,<{major}.{minor + 1}.0")
    if len(components) == 3:
        return semantic_version.SimpleSpec("==" + ".".join(str(c) for c in components))
    raise ValueError(f"channel must have 1 to 3 numeric components, got {len(components)}")


class Catalog:
    """Immutable, deduplicated, ascending set of known Versions.

    Entries without a platform tag are assigned ``default_platform`` so that
    platform matching is always exact.
    """

    def __init__(
        self,
        versions: Iterable[Version],
        channels: Optional[Dict[str, Version]] = None,
        default_platform: Optional[str] = None,
    ):
        self.default_platform = default_platform
        unique = {v.with_platform(default_platform) for v in versions}
        self._versions: Tuple[Version, ...] = tuple(
            sorted(unique, key=lambda v: (sort_key(v), v.platform or ""))
        )
        self._channels = {
            name: v.with_platform(default_platform) for name, v in (channels or {}).items()
        }

    def __iter__(self) -> Iterator[Version]:
        return iter(self._versions)

    def __len__(self) -> int:
        return len(self._versions)

    def __contains__(self, version: object) -> bool:
        if not isinstance(version, Version):
            return False
        return version.with_platform(self.default_platform) in self._versions

    @property
    def channel_names(self) -> List[str]:
        return sorted(self._channels)

    def channel_version(self, name: str) -> Optional[Version]:
        """Version currently published for a named channel, if known."""
        return self._channels.get(name)

    def matching(self, components: Sequence[int], platform: Optional[str] = None) -> List[Version]:
        """All releases whose leading components match, ascending.

        Pre-releases are known to the catalog but never match a numeric channel.
        """
        spec = channel_range(components)
        platform = platform or self.default_platform
        return [
            v for v in self._versions
            if v.platform == platform and not v.is_prerelease and spec.match(v.semver)
        ]

    def candidates(self, components: Sequence[int], platform: Optional[str] = None) -> List[Version]:
        """Matching versions in descending preference order."""
        return list(reversed(self.matching(components, platform)))

    def latest(self, components: Sequence[int], platform: Optional[str] = None) -> Optional[Version]:
        found = self.matching(components, platform)
        return found[-1] if found else None

    @classmethod
    def from_versionsdb(cls, data: Any, default_platform: Optional[str] = None) -> "Catalog":
        """Build a catalog from a parsed versions database document.

        Raises:
            ConfigCorruptedError: If required elements are missing or malformed.
        """
        if not isinstance(data, dict):
            raise ConfigCorruptedError("The versions database must be a JSON object.")
        if "AvailableChannels" not in data:
            raise ConfigCorruptedError(
                "Could not find `AvailableChannels` element in versions database."
            )
        raw_channels = data["AvailableChannels"]
        if not isinstance(raw_channels, dict):
            raise ConfigCorruptedError("The `AvailableChannels` element must be an object.")

        versions: List[Version] = []
        channels: Dict[str, Version] = {}
        skipped = 0

        for name, entry in raw_channels.items():
            if not isinstance(entry, dict) or not isinstance(entry.get("Version"), str):
                raise ConfigCorruptedError(
                    f"The `Version` element is missing for channel `{name}` in the versions database."
                )
            version = parse_db_version(entry["Version"])
            if version is None:
                skipped += 1
                continue
            channels[name] = version
            versions.append(version)

        available = data.get("AvailableVersions") or {}
        if not isinstance(available, dict):
            raise ConfigCorruptedError("The `AvailableVersions` element must be an object.")
        for key in available:
            version = parse_db_version(key)
            if version is None:
                skipped += 1
                continue
            versions.append(version)

        if skipped and is_debug_enabled(logger):
            logger.debug(
                "Skipped unparseable versions database entries",
                extra=extra_context(event="catalog_skip", component="catalog", count=skipped),
            )

        return cls(versions, channels, default_platform)


def load_catalog(search_paths: Iterable[Path], default_platform: Optional[str] = None) -> Catalog:
    """Load the first versions database found along ``search_paths``.

    Raises:
        CatalogNotFoundError: If none of the paths exists.
        ConfigCorruptedError: If the first found file is not valid JSON or malformed.
    """
    searched = []
    for path in search_paths:
        searched.append(str(path))
        if not path.is_file():
            continue
        logger.debug("Loading versions database from %s", path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigCorruptedError(
                f"The versions database file `{path}` is not a valid JSON file (`{e}`)."
            ) from e
        except OSError as e:
            raise ConfigCorruptedError(
                f"Could not read versions database file `{path}`: {e.strerror or e}."
            ) from e
        return Catalog.from_versionsdb(data, default_platform)

    raise CatalogNotFoundError(
        "Could not find any versions database.",
        hint="Searched: " + ", ".join(searched) + ".",
    )
