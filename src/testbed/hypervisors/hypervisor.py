"""
Defines the hypervisor interface, which manages the lifecycle of
disposable hosts created by an external virtualization tool.
"""

from __future__ import annotations

import os
from enum import Enum
from types import TracebackType
from typing import IO, Any, Callable, Optional, Sequence, Type

from testbed.logger import Logger
from testbed.types import Host
from testbed.utils import FatalError

class ProvisioningState(Enum):
    """The lifecycle states of a hypervisor session."""
    UNPROVISIONED = "unprovisioned"
    PROVISIONING = "provisioning"
    PROVISIONED = "provisioned"
    DESTROYING = "destroying"
    DESTROYED = "destroyed"
    FAILED = "failed"

_transitions: dict[ProvisioningState, set[ProvisioningState]] = {
    ProvisioningState.UNPROVISIONED: {ProvisioningState.PROVISIONING, ProvisioningState.DESTROYING},
    ProvisioningState.PROVISIONING: {ProvisioningState.PROVISIONED, ProvisioningState.FAILED},
    ProvisioningState.PROVISIONED: {ProvisioningState.DESTROYING},
    ProvisioningState.DESTROYING: {ProvisioningState.DESTROYED, ProvisioningState.FAILED},
    # A failed provisioning still owns resources that must be cleaned up.
    ProvisioningState.FAILED: {ProvisioningState.DESTROYING},
    ProvisioningState.DESTROYED: set(),
}

class Hypervisor:
    """
    The base class for all hypervisors. A hypervisor instance is one provisioning
    session: it brings up a batch of hosts once, keeps the connection profile of
    each host in a temporary file, and destroys everything again on `cleanup()`.

    Subclasses implement `_provision` and `_destroy`, and must register every
    temporary file they create with `_track_temp_file` so it is released on cleanup.
    """

    name: str
    """The name of the hypervisor as used in inventories, such as `vagrant`."""

    registered_hypervisors: dict[str, Type[Hypervisor]] = {}
    """All registered hypervisors."""

    user: Optional[str] = None
    """The user to log in as on provisioned hosts."""

    def __init__(self, logger: Logger):
        self.logger = logger
        self.state = ProvisioningState.UNPROVISIONED
        self.ssh_configs: dict[str, str] = {}
        self._temp_files: list[IO[Any]] = []

    def _transition(self, new_state: ProvisioningState) -> None:
        if new_state not in _transitions[self.state]:
            raise RuntimeError(f"Invalid hypervisor state transition {self.state.value} -> {new_state.value}")
        self.logger.debug(f"{self.name}: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def _track_temp_file(self, f: IO[Any]) -> None:
        """Registers a temporary file that must be removed on cleanup."""
        self._temp_files.append(f)

    def provision(self, host_names: Sequence[str], host_configs: dict[str, dict[str, Any]], options: Optional[dict[str, Any]] = None) -> None:
        """
        Brings up the given hosts. Hosts that were already created are not
        destroyed if a later step fails, but `cleanup()` must still be called.

        Parameters
        ----------
        host_names
            The names of the hosts to provision.
        host_configs
            The configuration for each host, keyed by the host name.
        options
            Global options for this hypervisor.

        Raises
        ------
        ProvisioningError
            The external tool failed.
        RuntimeError
            This session was already provisioned.
        """
        self._transition(ProvisioningState.PROVISIONING)
        try:
            self._provision(list(host_names), host_configs, options or {})
        except BaseException:
            self._transition(ProvisioningState.FAILED)
            raise
        self._transition(ProvisioningState.PROVISIONED)

    def cleanup(self) -> list[Exception]:
        """
        Removes all temporary files of this session and destroys all hosts.
        Every step is attempted even if an earlier one fails. The session
        is destroyed afterwards regardless of the outcome.

        Returns
        -------
        list[Exception]
            All failures that occurred, in the order they occurred.
        """
        if self.state == ProvisioningState.DESTROYED:
            return []

        was_started = self.state != ProvisioningState.UNPROVISIONED
        self._transition(ProvisioningState.DESTROYING)
        failures: list[Exception] = []

        self.logger.debug(f"removing temporary ssh-config files per {self.name} box")
        temp_files, self._temp_files = self._temp_files, []
        for f in temp_files:
            try:
                _release_temp_file(f)
            except Exception as e: # pylint: disable=broad-except
                self.logger.warn(f"could not remove temporary file {f.name}: {e}")
                failures.append(e)
        self.ssh_configs.clear()

        if was_started:
            try:
                self._destroy()
            except Exception as e: # pylint: disable=broad-except
                self.logger.warn(f"could not destroy {self.name} boxes: {e}")
                failures.append(e)

        self._transition(ProvisioningState.DESTROYED)
        return failures

    def apply_to(self, hosts: Sequence[Host]) -> None:
        """
        Makes the provisioned hosts reachable by setting their ssh url,
        login user and ssh config file. Hosts that were not provisioned
        by this session are left untouched.
        """
        for host in hosts:
            if host.name not in self.ssh_configs:
                continue
            host.close()
            host.url = f"ssh://{host.name}"
            host.vars['ssh_config'] = self.ssh_configs[host.name]
            if self.user is not None:
                host.vars['user'] = self.user

    def _provision(self, host_names: list[str], host_configs: dict[str, dict[str, Any]], options: dict[str, Any]) -> None:
        _ = (self, host_names, host_configs, options)
        raise NotImplementedError("Must be overwritten by subclass.")

    def _destroy(self) -> None:
        raise NotImplementedError("Must be overwritten by subclass.")

    def __enter__(self) -> Hypervisor:
        return self

    def __exit__(self, exc_type: Optional[Type[BaseException]], exc: Optional[BaseException], traceback: Optional[TracebackType]) -> None:
        _ = (exc_type, exc, traceback)
        self.cleanup()

def _release_temp_file(f: IO[Any]) -> None:
    # The file is removed even if closing it fails.
    try:
        f.close()
    finally:
        os.unlink(f.name)

def hypervisor(name: str) -> Callable[[Type[Hypervisor]], Type[Hypervisor]]:
    """
    The @hypervisor class decorator used to register the hypervisor
    to the global registry.

    Parameters
    ----------
    name
        The name for the hypervisor, for example 'vagrant'.
    """
    def wrapper(cls: Type[Hypervisor]) -> Type[Hypervisor]:
        cls.name = name
        Hypervisor.registered_hypervisors[cls.name] = cls
        return cls
    return wrapper

def create_hypervisor(name: str, logger: Logger, **kwargs: Any) -> Hypervisor:
    """
    Creates a new session of the hypervisor with the given name.

    Raises
    ------
    FatalError
        No hypervisor with this name is registered.
    """
    # pylint: disable=import-outside-toplevel,cyclic-import
    import testbed.hypervisors # noqa: F401
    if name not in Hypervisor.registered_hypervisors:
        raise FatalError(f"No hypervisor found with name '{name}'")
    return Hypervisor.registered_hypervisors[name](logger=logger, **kwargs)
