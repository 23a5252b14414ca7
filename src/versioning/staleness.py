"""Advisory check for channels whose installed version is behind the catalog."""

from __future__ import annotations

import logging
from typing import Optional

from constants import Constants

from .catalog import Catalog
from .models import Advisory, ChannelSpec, ResolutionResult, SpecKind, Version

logger = logging.getLogger(__name__)


def check_up_to_date(channel_name: str, selected: Version, catalog: Catalog) -> Optional[Advisory]:
    """Compare a named channel's bound version with the catalog's published one.

    Channels the catalog does not publish fall back to the newest release
    sharing the bound version's major.minor.
    """
    latest = catalog.channel_version(channel_name)
    if latest is None:
        logger.debug("Channel %s is not in the versions database; using %d.%d releases",
                     channel_name, selected.major, selected.minor)
        latest = catalog.latest((selected.major, selected.minor), selected.platform)
    if latest is None or latest.semver == selected.semver:
        return None
    return Advisory(
        channel=channel_name,
        current=selected,
        latest=latest,
        remediation=f"{Constants.TOOL_NAME} update",
    )


def check_partial_up_to_date(spec: ChannelSpec, selected: Version, catalog: Catalog) -> Optional[Advisory]:
    """Compare the version picked for a partial channel with the newest catalog match."""
    latest = catalog.latest(spec.components, selected.platform)
    if latest is None or latest.semver == selected.semver:
        return None
    target = latest.base
    if latest.platform != catalog.default_platform:
        target = f"{latest.base}~{latest.platform}"
    return Advisory(
        channel=spec.raw,
        current=selected,
        latest=latest,
        remediation=f"{Constants.TOOL_NAME} add {target}",
    )


def advisory_for(result: ResolutionResult, catalog: Catalog) -> Optional[Advisory]:
    """Staleness advisory for a resolution, or None.

    Exact versions and command-linked channels are pinned and never checked.
    """
    if result.via_command or result.version is None:
        return None
    if result.spec.kind == SpecKind.NAMED and result.channel_name:
        return check_up_to_date(result.channel_name, result.version, catalog)
    if result.spec.kind == SpecKind.PARTIAL:
        return check_partial_up_to_date(result.spec, result.version, catalog)
    return None
