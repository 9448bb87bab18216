"""
Defines the connector interface.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Type

if TYPE_CHECKING:
    from testbed.logger import Logger
    from testbed.types import Host

@dataclass
class CompletedRemoteCommand:
    """The return value of `Connector.run()`, representing a finished remote process."""
    stdout: Optional[bytes]
    stderr: Optional[bytes]
    returncode: int

class Connector:
    """
    The base class for all connectors.
    """

    schema: str
    """
    The schema of the connector. Must match the schema used in urls of this connector,
    such as `ssh` for `ssh://...`. May also appear in log messages.

    Overwrite this in your connector subclass. Must be unique among all connectors.
    """

    registered_connectors: dict[str, Type[Connector]] = {}
    """The list of all registered connectors."""

    def __init__(self, url: Optional[str], host: Host, logger: Logger):
        self.url = url
        self.host = host
        self.logger = logger

    def open(self) -> None:
        """
        Opens the connection to the remote host.
        """
        raise NotImplementedError("Must be overwritten by subclass.")

    def close(self) -> None:
        """
        Closes the connection to the remote host.
        """
        raise NotImplementedError("Must be overwritten by subclass.")

    def run(self,
            command: list[str],
            input: Optional[bytes] = None, # pylint: disable=redefined-builtin
            capture_output: bool = True,
            check: bool = True) -> CompletedRemoteCommand:
        """
        Runs the given command on the remote, returning a CompletedRemoteCommand
        containing the returned information (if any) and the status code.

        Parameters
        ----------
        command
            The command to be executed on the remote host.
        input
            Input to the remote command.
        capture_output
            Whether the output of the command should be captured.
        check
            Whether to raise an exception if the remote command returns with a non-zero exit status.

        Returns
        -------
        CompletedRemoteCommand
            The result of the remote command.

        Raises
        ------
        subprocess.CalledProcessError
            If check is True and the process returned a non-zero exit status.
        IOError
            An error occurred with the connection.
        """
        _ = (self, command, input, capture_output, check)
        raise NotImplementedError("Must be overwritten by subclass.")

class SubprocessConnector(Connector):
    """
    A connector that executes each command in a new local subprocess.
    Any subclass must override wrap_command().
    """

    def __init__(self, url: Optional[str], host: Host, logger: Logger):
        super().__init__(url, host, logger)
        self.is_open: bool = False

    def wrap_command(self, command: list[str]) -> list[str]:
        """Returns the local command line that executes the given command on the host."""
        raise NotImplementedError("Must be overwritten by subclass.")

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    def run(self,
            command: list[str],
            input: Optional[bytes] = None, # pylint: disable=redefined-builtin
            capture_output: bool = True,
            check: bool = True) -> CompletedRemoteCommand:
        if not self.is_open:
            raise IOError(f"Connection to {self.host.name} is not open")

        full_command = self.wrap_command(command)
        self.logger.debug_args(f"{self.schema}: run", {"command": full_command})
        ret = subprocess.run(full_command, input=input, capture_output=capture_output, check=False)
        if check and ret.returncode != 0:
            raise subprocess.CalledProcessError(returncode=ret.returncode, cmd=full_command, output=ret.stdout, stderr=ret.stderr)
        return CompletedRemoteCommand(stdout=ret.stdout, stderr=ret.stderr, returncode=ret.returncode)

def connector(schema: str) -> Callable[[Type[Connector]], Type[Connector]]:
    """
    The @connector class decorator used to register the connector
    to the global registry.

    Parameters
    ----------
    schema
        The schema for the connector, for example 'ssh'.
    """
    def wrapper(cls: Type[Connector]) -> Type[Connector]:
        cls.schema = schema
        Connector.registered_connectors[cls.schema] = cls
        return cls
    return wrapper
