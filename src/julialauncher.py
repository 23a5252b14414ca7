"""julialauncher - run the Julia version selected by a juliaup channel.

    Returns:
        int: Exit code of the launched Julia process, or 1 if the channel
        could not be resolved.
"""
import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Optional, Sequence, Tuple

from args import parse_args, LaunchArgs
from common.logging_utils import configure_logging
from common.paths import get_paths
from config_store import ConfigStore, load_config_store
from constants import Constants, ExitCodes
from errors import ConfigCorruptedError, LauncherError
from process_launcher import launch
from versioning.catalog import Catalog, load_catalog
from versioning.models import ChannelSource
from versioning.parser import current_platform
from versioning.project import manifest_channel
from versioning.resolver import ChannelResolver
from versioning.staleness import advisory_for

logger = logging.getLogger(__name__)


def select_channel(
    launch_args: LaunchArgs,
    config: ConfigStore,
    environ: Mapping[str, str],
    cwd: Path,
    catalog: Optional[Catalog] = None,
) -> Tuple[str, ChannelSource]:
    """Pick the channel for this invocation and remember where it came from.

    Priority: ``+channel`` argument, JULIAUP_CHANNEL, directory override,
    the active project's manifest (only with ``ManifestVersionDetect``
    enabled and a ``catalog`` given), configured default.
    """
    if launch_args.channel is not None:
        return launch_args.channel, ChannelSource.COMMAND_LINE

    env_channel = environ.get(Constants.ENV_CHANNEL)
    if env_channel:
        return env_channel, ChannelSource.ENVIRONMENT

    override = config.override_for(cwd)
    if override is not None:
        logger.debug("Using directory override %s -> %s", override.path, override.channel)
        return override.channel, ChannelSource.OVERRIDE

    if config.manifest_version_detect and catalog is not None:
        detected = manifest_channel(launch_args.forwarded, environ, cwd, catalog)
        if detected is not None:
            logger.debug("Using channel %s from the project manifest", detected)
            return detected, ChannelSource.MANIFEST

    if not config.default:
        raise ConfigCorruptedError("The juliaup configuration file is missing the `Default` element.")
    return config.default, ChannelSource.DEFAULT


def run(
    argv: Sequence[str],
    environ: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
) -> int:
    """Resolve the channel, print any staleness advisory and launch Julia.

    Raises:
        LauncherError: On any configuration, resolution or spawn failure.
    """
    environ = os.environ if environ is None else environ
    cwd = Path.cwd() if cwd is None else cwd

    launch_args = parse_args(argv)
    platform = current_platform()
    paths = get_paths(platform, environ)

    catalog = load_catalog(paths.versiondb_search, platform)
    config = load_config_store(paths.config_file, platform)

    channel, source = select_channel(launch_args, config, environ, cwd, catalog)
    resolver = ChannelResolver(catalog, config, platform)
    result = resolver.resolve_token(channel, source)
    logger.info("Channel %s resolved to %s", channel, result.executable)

    if config.check_channel_up_to_date:
        advisory = advisory_for(result, catalog)
        if advisory is not None:
            sys.stderr.write(advisory.format() + "\n")

    return launch(result.executable, result.args + launch_args.forwarded)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Console entry point."""
    configure_logging()
    try:
        exit_code = run(sys.argv[1:] if argv is None else argv)
    except LauncherError as e:
        sys.stderr.write(f"ERROR: {e.format()}\n")
        sys.exit(ExitCodes.FAILURE.value)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
