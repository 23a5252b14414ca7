"""Channel resolution: map a requested channel to an installed executable."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Optional

from common.logging_utils import extra_context, is_debug_enabled
from config_store import ConfigStore, InstalledVersion
from constants import Constants
from errors import (
    ConfigCorruptedError,
    CorruptInstallationError,
    NoInstalledVersionForChannelError,
    NoMatchingVersionError,
    UnknownConfiguredChannelError,
    UnknownRequestedChannelError,
    UserInputError,
    VersionNotInstalledError,
)

from .catalog import Catalog
from .models import ChannelSource, ChannelSpec, ResolutionResult, SpecKind
from .parser import parse_channel_spec

logger = logging.getLogger(__name__)

TOOL = Constants.TOOL_NAME


class ChannelResolver:
    """Resolve channel specs against a catalog and a configuration store.

    Both inputs are read-only for the lifetime of the resolver. The
    ``source`` passed to :meth:`resolve` decides whether an unknown channel
    is reported as a configuration problem or as bad user input.
    """

    def __init__(self, catalog: Catalog, config: ConfigStore, platform: Optional[str] = None):
        self.catalog = catalog
        self.config = config
        self.platform = platform or config.default_platform

    def resolve_token(self, token: str, source: ChannelSource) -> ResolutionResult:
        """Parse ``token`` and resolve it; syntax errors are classified by source."""
        try:
            spec = parse_channel_spec(token)
        except ValueError as e:
            if source.is_persisted:
                raise ConfigCorruptedError(f"Invalid Juliaup channel `{token}` {source.label} ({e}).") from e
            raise UserInputError(f"Invalid Juliaup channel `{token}` {source.label} ({e}).") from e
        return self.resolve(spec, source)

    def resolve(self, spec: ChannelSpec, source: ChannelSource) -> ResolutionResult:
        handlers: Dict[SpecKind, Callable[..., ResolutionResult]] = {
            SpecKind.EXACT: self._resolve_exact,
            SpecKind.PARTIAL: self._resolve_partial,
            SpecKind.NAMED: self._resolve_named,
        }
        if is_debug_enabled(logger):
            logger.debug(
                "Resolving channel",
                extra=extra_context(
                    event="resolve", component="resolver",
                    channel=spec.raw, kind=spec.kind.value, source=source.value,
                ),
            )
        return handlers[spec.kind](spec, source)

    def _resolve_named(
        self, spec: ChannelSpec, source: ChannelSource, seen: FrozenSet[str] = frozenset()
    ) -> ResolutionResult:
        name = spec.name or spec.raw
        entry = self.config.channel(name)

        if entry is None:
            if source.is_persisted:
                raise UnknownConfiguredChannelError(
                    f"No channel with name `{name}` exists in the juliaup configuration file."
                )
            raise UnknownRequestedChannelError(
                f"Invalid Juliaup channel `{name}` {source.label}.",
                hint="Please use the name of an installed channel.",
            )

        if entry.command:
            logger.debug("Channel %s is linked to command %s", name, entry.command)
            return ResolutionResult(
                executable=Path(entry.command),
                spec=spec,
                channel_name=name,
                args=list(entry.args),
                via_command=True,
            )

        if entry.target:
            seen = seen | {name}
            if entry.target in seen:
                raise ConfigCorruptedError(f"The alias channel `{name}` forms a cycle.")
            target = self._parse_persisted(entry.target, name)
            if target.kind == SpecKind.NAMED:
                if self.config.channel(target.raw) is None:
                    raise ConfigCorruptedError(
                        f"The alias channel `{name}` points to `{target.raw}`, which does not exist."
                    )
                inner = self._resolve_named(target, ChannelSource.DEFAULT, seen)
            else:
                inner = self.resolve(target, ChannelSource.DEFAULT)
            inner.args = list(entry.args) + inner.args
            return inner

        if entry.path:
            # direct-download builds are not in the catalog and are never checked for updates
            logger.debug("Channel %s is a direct download installed at %s", name, entry.path)
            return ResolutionResult(
                executable=self._binary_in(self.config.resolve_path(entry.path), name),
                spec=spec,
                channel_name=name,
                args=list(entry.args),
            )

        version = self.config.bound_version(entry)
        installed = self.config.installed(version)
        if installed is None:
            raise ConfigCorruptedError(
                f"The channel `{name}` points to a Julia version that is not installed."
            )
        return ResolutionResult(
            executable=self._executable_for(installed),
            spec=spec,
            version=installed.version,
            channel_name=name,
            args=list(entry.args),
        )

    def _resolve_partial(self, spec: ChannelSpec, source: ChannelSource) -> ResolutionResult:
        platform = spec.platform or self.platform
        candidates = self.catalog.candidates(spec.components, platform)
        if not candidates:
            raise NoMatchingVersionError(
                f"No Julia version matching channel `{spec.raw}` exists.",
                hint=f"Run `{TOOL} list` to see the available channels.",
            )

        for candidate in candidates:
            installed = self.config.installed(candidate)
            if installed is not None:
                logger.debug("Channel %s resolved to installed version %s", spec.raw, candidate)
                return ResolutionResult(
                    executable=self._executable_for(installed),
                    spec=spec,
                    version=installed.version,
                )

        raise NoInstalledVersionForChannelError(
            f"No installed Julia version matches channel `{spec.raw}`.",
            hint=f"Run `{TOOL} add {spec.raw}` to install Julia {candidates[0]}.",
        )

    def _resolve_exact(self, spec: ChannelSpec, source: ChannelSource) -> ResolutionResult:
        version = spec.exact_version().with_platform(self.platform)
        installed = self.config.installed(version)
        if installed is None:
            raise VersionNotInstalledError(
                f"Julia version `{spec.raw}` is not installed.",
                hint=f"Run `{TOOL} add {spec.raw}` to install it.",
            )
        return ResolutionResult(
            executable=self._executable_for(installed),
            spec=spec,
            version=installed.version,
        )

    def _parse_persisted(self, token: str, owner: str) -> ChannelSpec:
        try:
            return parse_channel_spec(token)
        except ValueError as e:
            raise ConfigCorruptedError(
                f"The alias channel `{owner}` has an invalid target `{token}` ({e})."
            ) from e

    def _executable_for(self, installed: InstalledVersion) -> Path:
        return self._binary_in(self.config.install_dir(installed), installed.key)

    @staticmethod
    def _binary_in(install_dir: Path, label: str) -> Path:
        path = install_dir.joinpath(*Constants.BINARY_RELATIVE_PATH)
        if not path.is_file():
            raise CorruptInstallationError(
                f"The Julia installation for `{label}` has no executable at `{path}`.",
                hint=f"Run `{TOOL} remove {label}` and then `{TOOL} add {label}` to repair it.",
            )
        return path
