"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the launcher itself.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FAILURE = 1


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    CONFIG_FILE = "juliaup.json"
    VERSIONSDB_FILE_TEMPLATE = "versiondb-{platform}.json"
    VERSIONSDB_BUNDLED_DIR = "VersionsDB"
    HOME_DIR_PARTS = (".julia", "juliaup")

    ENV_HOME = "JULIAUP_HOME"
    ENV_DEPOT_PATH = "JULIA_DEPOT_PATH"
    ENV_PROJECT = "JULIA_PROJECT"
    ENV_LOAD_PATH = "JULIA_LOAD_PATH"
    ENV_CHANNEL = "JULIAUP_CHANNEL"
    ENV_LOG_LEVEL = "JULIAUP_LOG"
    ENV_LOG_FILE = "JULIAUP_LOG_FILE"

    CHANNEL_PREFIX = "+"
    BINARY_RELATIVE_PATH = (
        ("bin", "julia.exe") if os.name == "nt" else ("bin", "julia")
    )
    TOOL_NAME = "juliaup"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    DEFAULT_LOG_LEVEL = "WARNING"
