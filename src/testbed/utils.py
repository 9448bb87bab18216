"""
Provides utility functions and the exception types used throughout testbed.
"""

from __future__ import annotations

import importlib.machinery
import importlib.util
import os
import sys
import uuid
from types import ModuleType
from typing import Any, Callable, NoReturn, Optional, Sequence

from testbed.logger import col

class FatalError(Exception):
    """An exception type for fatal errors, optionally including a file location."""
    def __init__(self, msg: str, loc: Optional[str] = None):
        super().__init__(msg)
        self.loc = loc

class InvalidArgumentError(ValueError):
    """A selection criterion was missing or invalid where one is required."""

class AmbiguousSelectionError(ValueError):
    """
    A selector that must resolve to at most one (or exactly one) host
    matched a different number of hosts.
    """

    def __init__(self, msg: str, role: str, hosts: Sequence[Any]):
        super().__init__(msg)
        self.role = role
        self.hosts: list[str] = [h.name for h in hosts]

class ProvisioningError(Exception):
    """An invocation of the external provisioning tool failed."""

    def __init__(self, msg: str, command: Optional[list[str]] = None, returncode: Optional[int] = None, output: Optional[str] = None):
        super().__init__(msg)
        self.command = command
        self.returncode = returncode
        self.output = output

def print_warning(msg: str) -> None:
    """Prints a message with a (possibly colored) 'warning: ' prefix."""
    print(f"{col('[1;33m')}warning:{col('[m')} {msg}")

def print_error(msg: str, loc: Optional[str] = None) -> None:
    """Prints a message with a (possibly colored) 'error: ' prefix."""
    if loc is None:
        print(f"{col('[1;31m')}error:{col('[m')} {msg}", file=sys.stderr)
    else:
        print(f"{col('[1m')}{loc}: {col('[1;31m')}error:{col('[m')} {msg}", file=sys.stderr)

def die_error(msg: str, loc: Optional[str] = None, status_code: int = 1) -> NoReturn:
    """Prints a message with a colored 'error: ' prefix, and exit with the given status code afterwards."""
    print_error(msg, loc=loc)
    sys.exit(status_code)

def load_py_module(file: str, pre_exec: Optional[Callable[[ModuleType], None]] = None) -> ModuleType:
    """
    Loads a module from the given filename and assigns a unique module name to it.
    Calling this function twice for the same file will yield distinct instances.
    """
    module_id = str(uuid.uuid4()).replace('-', '_')
    module_name = f"{os.path.splitext(os.path.basename(file))[0]}__dynamic__{module_id}"
    loader = importlib.machinery.SourceFileLoader(module_name, file)
    spec = importlib.util.spec_from_loader(loader.name, loader)
    if spec is None:
        raise ValueError(f"Failed to load module from file '{file}'")

    mod = importlib.util.module_from_spec(spec)
    # Run pre_exec callback after the module is loaded but before it is executed
    if pre_exec is not None:
        pre_exec(mod)
    loader.exec_module(mod)
    return mod
