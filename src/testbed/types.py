"""
Provides the data types shared by the selection, dispatch and provisioning code.
"""

# Connector imports happen inside functions to avoid a cyclic import.
# pylint: disable=import-outside-toplevel,cyclic-import

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

if TYPE_CHECKING:
    from testbed.connection import Connection
    from testbed.connectors.connector import Connector
    from testbed.logger import Logger

@dataclass
class Host:
    """
    A single machine of the test fleet. A host is identified by its `name`,
    but can also be found by its `vmhostname` or `ip`. The roles describe
    what the host is used for in a test, e.g. "master" or "agent".

    Roles are normalized to strings on construction, so that any object
    with a meaningful `str()` (such as an enum member) can be used as a role.
    """

    name: str
    """The name that is used to refer to this specific host. Must not be empty."""

    roles: list[str] = field(default_factory=list)
    """The roles of this host. Duplicates are removed, the order is irrelevant."""

    vmhostname: Optional[str] = None
    """The hostname of the virtual machine, if this host is a guest."""

    ip: Optional[str] = None
    """The ip address of this host, if known."""

    url: Optional[str] = None
    """
    The url used to connect to this host. The schema in this url will be used to
    determine which connector implementation is used to establish a connection,
    if the `connector` has not been explicitly overridden.
    """

    connector: Optional[Callable[..., Connector]] = None
    """The connector class to use. If `None`, the connector will be determined by the schema in the `url` when needed."""

    vars: dict[str, Any] = field(default_factory=dict)
    """Additional settings for this host, such as `ssh_config` or `user`."""

    connection: Optional[Connection] = field(default=None, repr=False, compare=False)
    """The active connection to this host, if one is opened."""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("A host must have a non-empty name!")
        self.roles = list(dict.fromkeys(str(r) for r in self.roles))

    def __repr__(self) -> str:
        return f"Host(name={repr(self.name)}, roles={repr(self.roles)})"

    def __str__(self) -> str:
        return self.name

    def __getitem__(self, key: str) -> Any:
        return self.vars[key]

    def get(self, key: str, default: Any = None) -> Any:
        """Returns the host setting `key`, or the given default if it isn't set."""
        return self.vars.get(key, default)

    def has_role(self, role: Any) -> bool:
        """Returns True if this host has the given role."""
        return str(role) in self.roles

    def create_connector(self, logger: Logger) -> Connector:
        """
        Creates a connector for this host.

        Parameters
        ----------
        logger
            The logger that the connector should report to.

        Raises
        ------
        FatalError
            The connector could not be resolved because either an invalid connector was specified
            or the scheme could not be matched against existing connectors.

        Returns
        -------
        Connector
            A connector for this host
        """
        from testbed.utils import FatalError
        from testbed.connectors.connector import Connector
        if self.connector is not None:
            return self.connector(self.url, self, logger=logger)

        if self.url is None:
            raise FatalError(f"Host '{self.name}' has no url, but no explicit connector was specified")

        if ':' not in self.url:
            raise FatalError(f"Url of host '{self.name}' doesn't include a schema and no connector was specified explicitly")
        schema = self.url.split(':', maxsplit=1)[0]
        if schema not in Connector.registered_connectors:
            raise FatalError(f"No connector found for schema '{schema}'")
        return Connector.registered_connectors[schema](self.url, self, logger=logger)

    def connect(self, logger: Logger) -> Connection:
        """
        Returns the active connection to this host, opening a new one if necessary.
        The connection stays open until `close()` is called.
        """
        from testbed.connection import Connection
        if self.connection is None:
            connection = Connection(self, logger)
            connection.open()
            self.connection = connection
        return self.connection

    def close(self) -> None:
        """Closes the active connection to this host, if any. Calling this on a closed host does nothing."""
        connection, self.connection = self.connection, None
        if connection is not None:
            connection.close()

@dataclass(frozen=True)
class ByRole:
    """Selects all hosts that have the given role."""
    role: str

@dataclass(frozen=True)
class ByName:
    """Selects all hosts whose name, vmhostname or ip starts with the given prefix."""
    prefix: str

Criterion = Optional[Union[ByRole, ByName]]
"""A selection criterion. `None` selects all hosts."""

@dataclass(frozen=True)
class NoHostsMatched:
    """
    Returned by a dispatch that resolved to an empty set of hosts, so the caller
    can tell "ran against nothing" apart from "ran and got no results".
    This object is falsy.
    """

    filter: Optional[str] = None
    """The filter that was applied, if any."""

    def __bool__(self) -> bool:
        return False
