"""Pick a channel from the Julia version recorded in the active project's manifest.

The active project is located the way Julia itself locates it: ``--project``
on the command line, then ``JULIA_PROJECT``, then the first ``JULIA_LOAD_PATH``
entry that has a manifest. The manifest's ``julia_version`` is then mapped
onto a channel known to the versions database.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

import semantic_version

from constants import Constants
from errors import ManifestVersionError

from .catalog import Catalog
from .models import Version
from .parser import parse_db_version, parse_version_lenient

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger(__name__)

PROJECT_NAMES = ("JuliaProject.toml", "Project.toml")
MANIFEST_NAMES = ("JuliaManifest.toml", "Manifest.toml")
VERSIONED_MANIFEST_PREFIXES = ("JuliaManifest-v", "Manifest-v")

_PROJECT_FLAGS = ("--project", "--projec", "--proje", "--proj")

# short options taking no argument (v h q i) or an optional one (O g)
_SHORT_WITHOUT_ARG = frozenset("vhqiOg")
_LONG_WITHOUT_ARG = frozenset({
    "--version", "--help", "--help-hidden", "--interactive", "--quiet",
    "--experimental", "--lisp", "--image-codegen", "--rr-detach",
    "--strip-metadata", "--strip-ir", "--gc-sweep-always-full",
    "--trace-compile-timing",
    "--project", "--code-coverage", "--track-allocation", "--optimize",
    "--min-optlevel", "--debug-info", "--worker", "--trim", "--trace-eval",
})


def _find_named_file(directory: Path, names: Iterable[str]) -> Optional[Path]:
    for name in names:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def _read_toml(path: Path) -> dict:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _depot_paths(environ: Mapping[str, str]) -> List[Path]:
    depot = environ.get(Constants.ENV_DEPOT_PATH, "")
    paths = [Path(p) for p in depot.split(os.pathsep) if p]
    return paths or [Path.home() / ".julia"]


def current_project(directory: Path, home: Optional[Path] = None) -> Optional[Path]:
    """Search ``directory`` and its parents for a project file, stopping at ``home``."""
    home = Path.home() if home is None else home
    for candidate in (directory, *directory.parents):
        found = _find_named_file(candidate, PROJECT_NAMES)
        if found is not None:
            return found
        if candidate == home:
            break
    return None


def load_path_expand(entry: str, cwd: Path, environ: Mapping[str, str]) -> Optional[Path]:
    """Turn a load path entry or ``--project`` value into a project file path.

    ``@`` and ``@stdlib`` expand to nothing, ``@.`` searches upward from
    ``cwd`` and ``@name`` names a depot environment. Anything else is a
    path; a directory holding a project file expands to that file.
    """
    if entry.startswith("@"):
        name = entry[1:]
        if name in ("", "stdlib"):
            return None
        if name == ".":
            return current_project(cwd)
        depots = _depot_paths(environ)
        for depot in depots:
            env_dir = depot / "environments" / name
            if env_dir.is_dir():
                found = _find_named_file(env_dir, PROJECT_NAMES)
                if found is not None:
                    return found
        return depots[0] / "environments" / name / PROJECT_NAMES[-1]

    path = Path(entry).expanduser()
    if not path.is_absolute():
        path = cwd / path
    if path.is_dir():
        found = _find_named_file(path, PROJECT_NAMES)
        if found is not None:
            return found
    return path


def julia_option_requires_arg(option: str) -> bool:
    """True when a Julia command line option consumes the following token."""
    if "=" in option:
        return False
    if len(option) == 2 and option[0] == "-" and option[1] != "-":
        return option[1] not in _SHORT_WITHOUT_ARG
    return option not in _LONG_WITHOUT_ARG


def project_from_args(args: Sequence[str]) -> Tuple[bool, Optional[str]]:
    """Scan Julia options for ``--project``.

    Scanning stops at ``--`` or the first positional argument. Returns
    ``(found, value)``; a bare ``--project`` yields ``(True, None)``.
    """
    found, value = False, None
    tokens = iter(args)
    for arg in tokens:
        if arg == "--" or not arg.startswith("-"):
            break
        if arg in _PROJECT_FLAGS:
            found, value = True, None
        elif "=" in arg and arg.split("=", 1)[0] in _PROJECT_FLAGS:
            found, value = True, arg.split("=", 1)[1]
        elif julia_option_requires_arg(arg):
            next(tokens, None)
    return found, value


def active_project(args: Sequence[str], environ: Mapping[str, str], cwd: Path) -> Optional[Path]:
    """Project file selected by ``--project`` or ``JULIA_PROJECT``, if any."""
    found, spec = project_from_args(args)
    if not found:
        spec = environ.get(Constants.ENV_PROJECT)
        if spec is None:
            return None
    if spec is None or not spec.strip():
        spec = "@."
    return load_path_expand(spec, cwd, environ)


def _manifest_version_in_name(filename: str) -> Optional[Tuple[semantic_version.Version, int]]:
    for rank, prefix in enumerate(VERSIONED_MANIFEST_PREFIXES):
        if filename.startswith(prefix) and filename.endswith(".toml"):
            version = parse_version_lenient(filename[len(prefix):-len(".toml")])
            if version is None:
                return None
            # JuliaManifest wins a tie
            return version.semver, -rank
    return None


def highest_versioned_manifest(directory: Path) -> Optional[Path]:
    """The ``JuliaManifest-vX.Y.toml`` / ``Manifest-vX.Y.toml`` with the highest version."""
    best = None
    best_path = None
    try:
        entries = list(directory.iterdir())
    except OSError:
        return None
    for entry in entries:
        key = _manifest_version_in_name(entry.name)
        if key is not None and (best is None or key > best):
            best, best_path = key, entry
    return best_path


def manifest_for_project(project_file: Path) -> Optional[Path]:
    """Locate the manifest belonging to ``project_file``.

    An explicit ``manifest`` key in the project wins, then the highest
    versioned manifest, then the unversioned names.
    """
    if not project_file.is_file():
        return None
    try:
        project = _read_toml(project_file)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.debug("Ignoring unreadable project file %s: %s", project_file, e)
        return None

    directory = project_file.parent
    explicit = project.get("manifest")
    if isinstance(explicit, str):
        candidate = Path(explicit)
        if not candidate.is_absolute():
            candidate = directory / candidate
        if candidate.is_file():
            return candidate

    return highest_versioned_manifest(directory) or _find_named_file(directory, MANIFEST_NAMES)


def project_from_load_path(load_path: str, cwd: Path, environ: Mapping[str, str]) -> Optional[Path]:
    """First ``JULIA_LOAD_PATH`` entry that expands to a project with a manifest."""
    for entry in (e.strip() for e in load_path.split(os.pathsep)):
        if entry in ("", "@", "@stdlib") or entry.startswith("@v"):
            continue
        project_file = load_path_expand(entry, cwd, environ)
        if project_file is not None and manifest_for_project(project_file) is not None:
            logger.debug("Found project with manifest in load path entry %s", entry)
            return project_file
    return None


def read_manifest_julia_version(manifest: Path) -> Optional[str]:
    """``julia_version`` recorded in ``manifest``.

    Raises:
        ManifestVersionError: If the manifest exists but is not valid TOML.
    """
    if not manifest.is_file():
        return None
    try:
        data = _read_toml(manifest)
    except OSError as e:
        raise ManifestVersionError(f"Failed to read manifest file `{manifest}`: {e.strerror or e}.") from e
    except tomllib.TOMLDecodeError as e:
        raise ManifestVersionError(f"Failed to parse manifest file `{manifest}` as TOML ({e}).") from e
    value = data.get("julia_version")
    return value if isinstance(value, str) else None


def project_julia_version(
    args: Sequence[str], environ: Mapping[str, str], cwd: Path
) -> Optional[str]:
    """Julia version required by the active project's manifest, if one is found."""
    project_file = active_project(args, environ, cwd)
    if project_file is None:
        load_path = environ.get(Constants.ENV_LOAD_PATH)
        if load_path:
            project_file = project_from_load_path(load_path, cwd, environ)
    if project_file is None:
        logger.debug("No active project found")
        return None

    manifest = manifest_for_project(project_file)
    if manifest is None:
        logger.debug("Project %s has no manifest", project_file)
        return None
    version = read_manifest_julia_version(manifest)
    logger.debug("Manifest %s records julia_version %s", manifest, version)
    return version


def _nightly(version: Version) -> str:
    return f"{version.major}.{version.minor}-nightly"


def resolve_manifest_channel(required: str, catalog: Catalog) -> str:
    """Map a manifest ``julia_version`` onto a channel name.

    A version that is itself a published channel is used as is. Pre-releases
    and versions newer than anything published go to the matching
    ``X.Y-nightly`` channel when it exists, else ``nightly``.

    Raises:
        ManifestVersionError: If ``required`` is not a version, or is an
            older release the versions database does not list.
    """
    channels = set(catalog.channel_names)
    if required in channels:
        return required

    wanted = parse_db_version(required)
    if wanted is None:
        raise ManifestVersionError(f"Failed to parse Julia version `{required}` from manifest.")

    versioned = _nightly(wanted)
    if wanted.is_prerelease:
        channel = versioned if versioned in channels else "nightly"
        logger.info("Manifest specifies prerelease Julia %s; using channel %s", required, channel)
        return channel

    series = [
        v.semver for v in (parse_db_version(name) for name in channels)
        if v is not None and (v.major, v.minor) == (wanted.major, wanted.minor)
    ]
    if series and wanted.semver > max(series):
        logger.info(
            "Manifest specifies Julia %s, newer than any known %s.%s release; using channel %s",
            required, wanted.major, wanted.minor, versioned,
        )
        return versioned

    known = [v.semver for v in catalog]
    if not known or wanted.semver > max(known):
        channel = versioned if versioned in channels else "nightly"
        logger.info("Manifest specifies Julia %s, newer than any known release; using channel %s", required, channel)
        return channel

    raise ManifestVersionError(
        f"Julia version `{required}` requested by Project.toml/Manifest.toml "
        "is not available in the versions database."
    )


def manifest_channel(
    args: Sequence[str], environ: Mapping[str, str], cwd: Path, catalog: Catalog
) -> Optional[str]:
    """Channel implied by the active project's manifest, or None without one."""
    required = project_julia_version(args, environ, cwd)
    if required is None:
        return None
    return resolve_manifest_channel(required, catalog)
