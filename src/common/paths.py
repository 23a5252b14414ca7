"""Well-known filesystem locations used by the launcher."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

from constants import Constants
from errors import ConfigCorruptedError


@dataclass
class GlobalPaths:
    """Resolved locations for one launcher invocation."""

    home: Path
    config_file: Path
    versiondb_search: List[Path] = field(default_factory=list)


def get_home_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Return the launcher home directory.

    Priority: JULIAUP_HOME, then the first JULIA_DEPOT_PATH entry joined with
    ``juliaup``, then ``~/.julia/juliaup``.
    """
    env = os.environ if environ is None else environ

    home = env.get(Constants.ENV_HOME)
    if home:
        path = Path(home)
    else:
        depot = env.get(Constants.ENV_DEPOT_PATH, "")
        first = depot.split(os.pathsep)[0] if depot else ""
        if first:
            path = Path(first) / Constants.HOME_DIR_PARTS[-1]
        else:
            path = Path.home().joinpath(*Constants.HOME_DIR_PARTS)

    if not path.is_absolute():
        raise ConfigCorruptedError(
            f"The launcher home directory `{path}` is not an absolute path."
        )
    return path


def get_launcher_dir() -> Path:
    """Directory of the running launcher script or frozen executable."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(sys.argv[0]).resolve().parent


def get_paths(platform: str, environ: Optional[Mapping[str, str]] = None) -> GlobalPaths:
    """Build the GlobalPaths for ``platform``."""
    home = get_home_path(environ)
    db_name = Constants.VERSIONSDB_FILE_TEMPLATE.format(platform=platform)
    return GlobalPaths(
        home=home,
        config_file=home / Constants.CONFIG_FILE,
        versiondb_search=[
            home / db_name,
            get_launcher_dir().parent / Constants.VERSIONSDB_BUNDLED_DIR / db_name,
        ],
    )
