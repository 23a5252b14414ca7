"""Error taxonomy shared by the resolver, configuration loader and launcher.

Every error carries a human readable ``message`` and an optional ``hint``
holding remediation text (usually the exact ``juliaup`` command to run).
``julialauncher.main`` renders them and exits with status 1.
"""

from __future__ import annotations

from typing import Optional


class LauncherError(Exception):
    """Base exception with user-facing remediation text."""

    prefix = ""

    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    def format(self) -> str:
        parts = [p for p in (self.prefix, self.message, self.hint) if p]
        return " ".join(parts)


class ConfigCorruptedError(LauncherError):
    """The persisted configuration is malformed or internally inconsistent."""

    prefix = "Configuration corrupted."


class UserInputError(LauncherError):
    """The user explicitly asked for a channel that cannot be honored."""

    prefix = "Invalid input."


class UnknownChannelError(LauncherError):
    """A named channel has no ``InstalledChannels`` entry.

    Never raised directly; see the two concrete subclasses below.
    """


class UnknownConfiguredChannelError(UnknownChannelError, ConfigCorruptedError):
    """Unknown channel sourced from persisted configuration."""


class UnknownRequestedChannelError(UnknownChannelError, UserInputError):
    """Unknown channel sourced from the command line or environment."""


class NoMatchingVersionError(LauncherError):
    """A partial channel matches nothing in the catalog."""


class NoInstalledVersionForChannelError(LauncherError):
    """A partial channel matches catalog entries but none is installed."""


class VersionNotInstalledError(LauncherError):
    """An exact version was requested that is not installed."""


class CorruptInstallationError(LauncherError):
    """The install directory is referenced but its binary is missing."""


class CatalogNotFoundError(LauncherError):
    """No versions database exists at any search location."""


class SpawnError(LauncherError):
    """The child process could not be created."""


class WaitError(LauncherError):
    """Waiting for the child process failed."""


class ManifestVersionError(LauncherError):
    """The active project's manifest names a Julia version no channel can serve."""
