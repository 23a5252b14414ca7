"""Data models for channel specs, versions and resolution outcomes."""

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

import semantic_version


@dataclass(frozen=True)
class Version:
    """A concrete release with an optional pre-release part and platform tag.

    Equality and hashing include the platform; ordering (via ``semver``)
    never looks at it. Pre-releases sort before their release.
    """
    major: int
    minor: int
    patch: int
    platform: Optional[str] = None
    prerelease: Tuple[str, ...] = ()

    @property
    def semver(self) -> semantic_version.Version:
        return semantic_version.Version(
            major=self.major, minor=self.minor, patch=self.patch, prerelease=self.prerelease
        )

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def base(self) -> str:
        """Version text without the platform, e.g. ``1.11.0-rc1``."""
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        return text

    def with_platform(self, platform: Optional[str]) -> "Version":
        """Return a copy tagged with ``platform`` unless one is already set."""
        if self.platform or not platform:
            return self
        return replace(self, platform=platform)

    def __str__(self) -> str:
        if self.platform:
            sep = "~" if self.prerelease else "-"
            return f"{self.base}{sep}{self.platform}"
        return self.base


def sort_key(version: Version) -> semantic_version.Version:
    """Sort key implementing the major/minor/patch total order."""
    return version.semver


class SpecKind(Enum):
    """Shape of a requested channel."""
    EXACT = "exact"
    PARTIAL = "partial"
    NAMED = "named"


class ChannelSource(Enum):
    """Where the channel for this invocation came from."""
    COMMAND_LINE = "cmdline"
    ENVIRONMENT = "env"
    OVERRIDE = "override"
    MANIFEST = "manifest"
    DEFAULT = "default"

    @property
    def is_persisted(self) -> bool:
        """True when the channel was not typed by the user for this invocation."""
        return self in (ChannelSource.OVERRIDE, ChannelSource.MANIFEST, ChannelSource.DEFAULT)

    @property
    def label(self) -> str:
        return {
            ChannelSource.COMMAND_LINE: "at command line",
            ChannelSource.ENVIRONMENT: "in environment variable JULIAUP_CHANNEL",
            ChannelSource.OVERRIDE: "in directory override",
            ChannelSource.MANIFEST: "selected from the project manifest",
            ChannelSource.DEFAULT: "as the configured default",
        }[self]


@dataclass(frozen=True)
class ChannelSpec:
    """Normalized representation of a requested channel."""
    raw: str
    kind: SpecKind
    components: Tuple[int, ...] = ()
    name: Optional[str] = None
    platform: Optional[str] = None

    @property
    def base(self) -> str:
        """Channel text without the platform suffix."""
        if self.kind == SpecKind.NAMED:
            return self.name or ""
        return ".".join(str(c) for c in self.components)

    def exact_version(self) -> Version:
        """The concrete Version of an EXACT spec."""
        major, minor, patch = self.components
        return Version(major, minor, patch, self.platform)


@dataclass
class ResolutionResult:
    """Resolved executable plus everything the staleness check needs."""
    executable: Path
    spec: ChannelSpec
    version: Optional[Version] = None
    channel_name: Optional[str] = None
    args: List[str] = field(default_factory=list)
    via_command: bool = False


@dataclass(frozen=True)
class Advisory:
    """Non-fatal notice that a newer matching version exists."""
    channel: str
    current: Version
    latest: Version
    remediation: str

    def format(self) -> str:
        return (
            f"The latest version of Julia in the `{self.channel}` channel is {self.latest.base}. "
            f"You currently have {self.current.base} installed. Run:\n\n"
            f"  {self.remediation}\n\n"
            f"to install Julia {self.latest.base} and update the `{self.channel}` channel to that version."
        )
