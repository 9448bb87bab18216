"""
Provides a class to manage a connection via the host's connector.
"""

from __future__ import annotations

from types import TracebackType
from typing import Optional, Type

from testbed import logger as log
from testbed.connectors.connector import CompletedRemoteCommand, Connector
from testbed.logger import Logger
from testbed.types import Host

class Connection:
    """
    The connection class represents a connection to a host.
    It wraps the connector, which is actually responsible for
    providing remote access.
    """

    def __init__(self, host: Host, logger: Logger):
        self.host = host
        self.logger = logger
        self.connector: Connector = host.create_connector(logger)

    def open(self) -> None:
        """Opens the underlying connector."""
        log.connection_init(self.logger, self.connector)
        self.connector.open()

    def close(self) -> None:
        """Closes the underlying connector."""
        self.logger.debug(f"closing connection to {self.host.name}")
        self.connector.close()

    def __enter__(self) -> Connection:
        self.open()
        self.host.connection = self
        return self

    def __exit__(self, exc_type: Optional[Type[BaseException]], exc: Optional[BaseException], traceback: Optional[TracebackType]) -> None:
        _ = (exc_type, exc, traceback)
        self.host.connection = None
        self.close()

    def run(self,
            command: list[str],
            input: Optional[bytes] = None, # pylint: disable=redefined-builtin
            capture_output: bool = True,
            check: bool = True) -> CompletedRemoteCommand:
        """See `testbed.connectors.connector.Connector.run`."""
        self.logger.debug_args("Connection.run", locals())
        return self.connector.run(
            command=command,
            input=input,
            capture_output=capture_output,
            check=check)

def open_connection(host: Host, logger: Logger) -> Connection:
    """
    Returns a connection (context manager) that opens the connection when it is entered and
    closes it when it is exited. The connection can be obtained via host.connection,
    as long as it is opened.
    """
    return Connection(host, logger)
