"""Argument handling for the launcher.

The launcher is a transparent proxy: every argument belongs to the launched
program except an optional leading ``+<channel>`` token.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from constants import Constants


@dataclass
class LaunchArgs:
    """Parsed launcher invocation."""

    channel: Optional[str] = None
    forwarded: List[str] = field(default_factory=list)


def parse_args(argv: Sequence[str]) -> LaunchArgs:
    """Split a leading ``+channel`` token from the forwarded arguments.

    Args:
        argv: Arguments without the program name.

    Returns:
        LaunchArgs with ``channel`` set only when the first argument starts with ``+``.
    """
    argv = list(argv)
    if argv and argv[0].startswith(Constants.CHANNEL_PREFIX):
        return LaunchArgs(channel=argv[0][len(Constants.CHANNEL_PREFIX):], forwarded=argv[1:])
    return LaunchArgs(forwarded=argv)
