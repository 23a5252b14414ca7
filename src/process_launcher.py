"""Spawn the resolved executable and proxy its exit status.

On POSIX the argument vector is handed to the OS as a list. Windows process
creation takes a single command-line string, so there each argument is
quoted such that ``CommandLineToArgvW`` gives back the original argument.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

from errors import SpawnError, WaitError

logger = logging.getLogger(__name__)

_NEEDS_QUOTING = frozenset(" \t\n\v\"")

FORWARDED_SIGNALS = ("SIGTERM", "SIGHUP")
# sent by the terminal to the whole foreground process group, child included
TERMINAL_SIGNALS = ("SIGINT", "SIGQUIT")


def quote_argument(argument: str, force: bool = False) -> str:
    """Quote one argument for a Windows command line.

    Arguments that are non-empty and free of whitespace and double quotes
    are returned verbatim. Otherwise the argument is wrapped in double
    quotes; backslashes are doubled when they precede a double quote or the
    closing quote, and left alone everywhere else.
    """
    if not force and argument and not any(c in _NEEDS_QUOTING for c in argument):
        return argument

    out = ['"']
    i = 0
    n = len(argument)
    while True:
        backslashes = 0
        while i < n and argument[i] == "\\":
            i += 1
            backslashes += 1

        if i == n:
            out.append("\\" * (backslashes * 2))
            break
        if argument[i] == '"':
            out.append("\\" * (backslashes * 2 + 1))
            out.append('"')
        else:
            out.append("\\" * backslashes)
            out.append(argument[i])
        i += 1

    out.append('"')
    return "".join(out)


def build_command_line(executable: Union[str, Path], args: Sequence[str]) -> str:
    """Join the executable and quoted arguments into one command-line string."""
    parts = [quote_argument(str(executable))]
    parts.extend(quote_argument(a) for a in args)
    return " ".join(parts)


def split_command_line(command_line: str) -> List[str]:
    """Split a command line the way the Microsoft C runtime does.

    Inverse of :func:`build_command_line`; the first element is the program.
    """
    args: List[str] = []
    i = 0
    n = len(command_line)

    while i < n:
        while i < n and command_line[i] in " \t":
            i += 1
        if i >= n:
            break

        buf: List[str] = []
        in_quotes = False
        while i < n:
            c = command_line[i]
            if c in " \t" and not in_quotes:
                break
            if c == "\\":
                start = i
                while i < n and command_line[i] == "\\":
                    i += 1
                count = i - start
                if i < n and command_line[i] == '"':
                    buf.append("\\" * (count // 2))
                    if count % 2:
                        buf.append('"')
                        i += 1
                else:
                    buf.append("\\" * count)
                continue
            if c == '"':
                if in_quotes and i + 1 < n and command_line[i + 1] == '"':
                    buf.append('"')
                    i += 2
                    continue
                in_quotes = not in_quotes
                i += 1
                continue
            buf.append(c)
            i += 1
        args.append("".join(buf))

    return args


def _signal_numbers(names: Sequence[str]) -> List[int]:
    return [getattr(signal, name) for name in names if hasattr(signal, name)]


class SignalRelay:
    """Signal handler that forwards to the child process once it exists.

    Signals received before :meth:`attach` are queued and delivered on attach.
    ``previous`` holds the dispositions the launcher replaced.
    """

    def __init__(self) -> None:
        self.proc: Optional[subprocess.Popen] = None
        self.pending: List[int] = []
        self.previous: Dict[int, Any] = {}

    def __call__(self, signum: int, _frame: Any) -> None:
        if self.proc is None:
            self.pending.append(signum)
            return
        self._send(signum)

    def attach(self, proc: subprocess.Popen) -> None:
        self.proc = proc
        pending, self.pending = self.pending, []
        for signum in pending:
            self._send(signum)

    def _send(self, signum: int) -> None:
        logger.debug("Forwarding signal %s to child %s", signum, self.proc.pid)
        try:
            self.proc.send_signal(signum)
        except OSError as e:
            logger.debug("Could not forward signal %s: %s", signum, e)

    def restore_child_signals(self) -> None:
        """Undo the launcher's dispositions; runs in the forked child before exec."""
        for signum, handler in self.previous.items():
            signal.signal(signum, signal.SIG_IGN if handler == signal.SIG_IGN else signal.SIG_DFL)


def _install(relay: SignalRelay, signum: int, handler: Any) -> None:
    try:
        relay.previous[signum] = signal.signal(signum, handler)
    except (ValueError, OSError) as e:
        logger.debug("Cannot install handler for signal %s: %s", signum, e)


@contextmanager
def forward_signals() -> Iterator[SignalRelay]:
    """Set up the launcher's signal dispositions for the lifetime of a child.

    Terminal signals (SIGINT, SIGQUIT) are ignored: the terminal already
    delivers them to the child. SIGTERM and SIGHUP are relayed to the child
    through the yielded :class:`SignalRelay`. Everything is installed before
    the child is spawned and restored on exit. Outside the main thread
    handlers cannot be installed and the launcher keeps its defaults.
    """
    relay = SignalRelay()
    for signum in _signal_numbers(TERMINAL_SIGNALS):
        _install(relay, signum, signal.SIG_IGN)
    for signum in _signal_numbers(FORWARDED_SIGNALS):
        _install(relay, signum, relay)

    try:
        yield relay
    finally:
        for signum, handler in relay.previous.items():
            if handler is not None:
                signal.signal(signum, handler)


def _exit_status(returncode: int) -> int:
    # POSIX reports death-by-signal as -N; shells use 128 + N
    if returncode < 0:
        return 128 - returncode
    return returncode


def _child_options(relay: SignalRelay) -> Dict[str, Any]:
    if os.name == "nt":
        return {}
    return {"preexec_fn": relay.restore_child_signals}


def launch(executable: Union[str, Path], args: Sequence[str], env: Optional[dict] = None) -> int:
    """Run ``executable`` with ``args`` and block until it exits.

    Standard handles and the environment are inherited. The executable path
    is used as given, without a PATH search.

    Returns:
        The child's exit code (128 + N if it was killed by signal N).

    Raises:
        SpawnError: If the child could not be created.
        WaitError: If waiting for the child failed.
    """
    executable = str(executable)
    if os.name == "nt":
        command: Union[str, List[str]] = build_command_line(executable, args)
    else:
        command = [executable, *args]

    logger.debug("Launching %s with %d argument(s)", executable, len(args))
    with forward_signals() as relay:
        try:
            proc = subprocess.Popen(  # noqa: S603
                command, executable=executable, env=env, **_child_options(relay)
            )
        except OSError as e:
            raise SpawnError(f"Could not start `{executable}`: {e.strerror or e}.") from e

        relay.attach(proc)
        try:
            returncode = proc.wait()
        except OSError as e:
            raise WaitError(f"Waiting for `{executable}` failed: {e.strerror or e}.") from e

    logger.debug("Child %s exited with %s", proc.pid, returncode)
    return _exit_status(returncode)
