"""Token parsing utilities for versions and channel specs."""

import platform as _platform
import re
from typing import Optional

import semantic_version

from .models import ChannelSpec, SpecKind, Version

KNOWN_PLATFORMS = frozenset({"x64", "x86", "aarch64", "armv7l", "powerpc64le"})

_MACHINE_ALIASES = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "aarch64": "aarch64",
    "arm64": "aarch64",
    "armv7l": "armv7l",
    "ppc64le": "powerpc64le",
}

_CHANNEL_NUMERIC = re.compile(
    r"^(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<patch>\d+))?"
    r"(?:[-~](?P<platform>[A-Za-z][A-Za-z0-9_]*))?$"
)
_CHANNEL_NAME = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.~+-]*$")


def current_platform(machine: Optional[str] = None) -> str:
    """Return the platform tag of the running interpreter (e.g. ``x64``)."""
    machine = (machine if machine is not None else _platform.machine()).lower()
    return _MACHINE_ALIASES.get(machine, machine)


def parse_version(text: str) -> Version:
    """Parse a concrete version string.

    Accepts ``1.6.1``, ``1.6.1-x86``, ``1.6.1~x86``, pre-releases such as
    ``1.11.0-rc1`` and the versions-database form ``1.6.1+0.x64`` (build
    number then platform). A lone pre-release tag naming a known platform
    is read as the platform.

    Raises:
        ValueError: If the text is not a concrete version.
    """
    text = text.strip()
    found_platform = None
    if "~" in text:
        text, found_platform = text.rsplit("~", 1)
        if not found_platform:
            raise ValueError("empty platform after `~`")

    parsed = semantic_version.Version(text)
    prerelease = tuple(parsed.prerelease)

    if len(prerelease) == 1 and prerelease[0] in KNOWN_PLATFORMS and found_platform is None:
        found_platform = prerelease[0]
        prerelease = ()

    if parsed.build and found_platform is None:
        if len(parsed.build) >= 2:
            found_platform = parsed.build[1]
        elif not parsed.build[0].isdigit():
            found_platform = parsed.build[0]

    return Version(parsed.major, parsed.minor, parsed.patch, found_platform, prerelease)


def parse_version_lenient(text: str) -> Optional[Version]:
    """Parse ``1``, ``1.11`` or a full version; missing components become 0.

    Used for manifest ``julia_version`` fields and versioned manifest names.
    """
    try:
        return parse_version(text)
    except ValueError:
        pass
    parts = text.strip().split(".")
    if len(parts) not in (1, 2) or not all(p.isdigit() for p in parts):
        return None
    parts += ["0"] * (3 - len(parts))
    return Version(*(int(p) for p in parts))


def parse_db_version(text: str) -> Optional[Version]:
    """Lenient variant used for versions-database entries; None on failure."""
    try:
        return parse_version(text)
    except ValueError:
        return None


def parse_channel_spec(raw: str) -> ChannelSpec:
    """Classify a channel token as EXACT, PARTIAL or NAMED.

    Raises:
        ValueError: If the token is empty or syntactically invalid.
    """
    token = raw.strip()
    if not token:
        raise ValueError("empty channel name")

    m = _CHANNEL_NUMERIC.match(token)
    # "1.10-nightly" style names share the numeric prefix but are named channels
    if m and (m.group("platform") is None or m.group("platform") in KNOWN_PLATFORMS):
        components = tuple(
            int(m.group(g)) for g in ("major", "minor", "patch") if m.group(g) is not None
        )
        kind = SpecKind.EXACT if len(components) == 3 else SpecKind.PARTIAL
        return ChannelSpec(raw=token, kind=kind, components=components, platform=m.group("platform"))

    if token[0].isdigit() and re.match(r"^[\d.]+$", token):
        raise ValueError(f"`{token}` is not a valid version or channel")

    if not _CHANNEL_NAME.match(token):
        raise ValueError(f"`{token}` contains characters not allowed in a channel name")

    return ChannelSpec(raw=token, kind=SpecKind.NAMED, name=token)
