"""
Provides logging utilities.
"""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Optional, Type, cast

from testbed import globals as G

@dataclass
class State:
    """Global state for logging."""

    indentation_level: int = 0
    """The current global indentation level."""

state: State = State()
"""The global logger state."""

def col(color_code: str) -> str:
    """Returns the given argument only if color is enabled."""
    if not isinstance(cast(Any, G.args), argparse.Namespace):
        use_color = os.getenv("NO_COLOR") is None
    else:
        use_color = not G.args.no_color

    return color_code if use_color else ""

class IndentationContext:
    """A context manager to modify the indentation level."""
    def __enter__(self) -> None:
        state.indentation_level += 1

    def __exit__(self, exc_type: Optional[Type[BaseException]], exc: Optional[BaseException], traceback: Optional[TracebackType]) -> None:
        _ = (exc_type, exc, traceback)
        state.indentation_level -= 1

def indent() -> IndentationContext:
    """Returns a context manager that increases the indentation level."""
    return IndentationContext()

def indent_prefix() -> str:
    """Returns the indentation prefix for the current indentation level."""
    return "  " * state.indentation_level

def print_indented(msg: str, **kwargs: Any) -> None:
    """Same as print(), but prefixes the message with the indentation prefix."""
    print(f"{indent_prefix()}{msg}", **kwargs)

class Logger:
    """
    The user-facing logger. An instance is created once from the parsed
    command line and handed to every component that wants to report progress.

    Messages are printed in increasing order of importance: debug, info, notify,
    warn and error. Debug messages are only shown if `debug` is set, info messages
    only if `verbose` is at least 1. Everything else is always shown.
    """

    def __init__(self, verbose: int = 0, debug: bool = False):
        self.verbose = 99 if debug else verbose
        self.is_debug = debug

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> Logger:
        """Creates a logger honoring the verbosity options of the given arguments."""
        return cls(verbose=args.verbose, debug=args.debug)

    def debug(self, msg: str) -> None:
        """Prints the given message only in debug mode."""
        if not self.is_debug:
            return
        print(f"{indent_prefix()}   {col('[1;34m')}DEBUG{col('[m')}: {msg}", file=sys.stderr)

    def debug_args(self, msg: str, args: dict[str, Any]) -> None:
        """Prints all given arguments when in debug mode."""
        if not self.is_debug:
            return

        str_args = ""
        args = {k: v for k,v in args.items() if k != "self"}
        if len(args) > 0:
            str_args = " " + ", ".join(f"{k}={v}" for k,v in args.items())
        self.debug(f"{msg}{str_args}")

    def info(self, msg: str) -> None:
        """Prints the given message if verbose output was requested."""
        if self.verbose < 1:
            return
        print_indented(f"{col('[37m')}{msg}{col('[m')}")

    def notify(self, msg: str) -> None:
        """Prints the given message unconditionally."""
        print_indented(msg)

    def warn(self, msg: str) -> None:
        """Prints the given message with a (possibly colored) 'warning: ' prefix."""
        print_indented(f"{col('[1;33m')}warning:{col('[m')} {msg}")

    def error(self, msg: str) -> None:
        """Prints the given message with a (possibly colored) 'error: ' prefix to stderr."""
        print_indented(f"{col('[1;31m')}error:{col('[m')} {msg}", file=sys.stderr)

def connection_init(logger: Logger, connector: Any) -> None:
    """Prints connection initialization information."""
    logger.debug(f"{col('[1;34m')}{connector.schema}{col('[m')} connecting to {connector.host.name}")

def host_status(host: Any, returncode: int) -> None:
    """Prints the final status of a command executed on the given host."""
    if returncode == 0:
        status = col("[1;32m") + "OK" + col("[m")
    else:
        status = col("[1;31m") + f"ERR ({returncode})" + col("[m")
    print_indented(f"{col('[1m')}{host.name}{col('[m')} {status}")
