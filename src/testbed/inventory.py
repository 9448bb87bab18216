"""Provides loading of inventory modules, which declare the hosts of a test fleet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from testbed.types import Host
from testbed.utils import FatalError, load_py_module

@dataclass
class HostDeclaration:
    """A declaration of a host in an inventory."""

    name: str
    """The name that will be used to refer to this specific host."""

    roles: list[str] = field(default_factory=list)
    """The roles of this host."""

    vmhostname: Optional[str] = None
    """The hostname of the virtual machine, if any."""

    ip: Optional[str] = None
    """The ip address of the host, if any."""

    url: Optional[str] = None
    """
    The url used to connect to this host. If it is given without a connection
    schema (like `schema:...`), `ssh://` will be used. If this is None, `ssh://{name}`
    will be used, unless the host is provisioned by a hypervisor.
    """

    box: Optional[str] = None
    """The base image for a hypervisor to create this host from."""

    box_url: Optional[str] = None
    """Where the hypervisor can fetch the base image from."""

    vars: dict[str, Any] = field(default_factory=dict)
    """Additional settings for the host."""

    def to_host(self) -> Host:
        """Creates the host described by this declaration."""
        return Host(name=self.name,
                    roles=list(self.roles),
                    vmhostname=self.vmhostname,
                    ip=self.ip,
                    url=qualify_url(self.url if self.url is not None else self.name),
                    vars=dict(self.vars))

    def hypervisor_config(self) -> dict[str, Any]:
        """Returns the per-host configuration that is passed to the hypervisor."""
        return {'box': self.box, 'box_url': self.box_url}

@dataclass
class Inventory:
    """A loaded inventory."""

    file: str
    """The file the inventory was loaded from."""

    hosts: list[Host] = field(default_factory=list)
    """All hosts in declaration order."""

    host_configs: dict[str, dict[str, Any]] = field(default_factory=dict)
    """The hypervisor configuration for each host."""

    hypervisor: Optional[str] = None
    """The name of the hypervisor that provisions the hosts, if any."""

    hypervisor_options: dict[str, Any] = field(default_factory=dict)
    """Global options for the hypervisor."""

    def guests(self) -> list[str]:
        """Returns the names of all hosts that declare a box and thus must be provisioned, in declaration order."""
        return [h.name for h in self.hosts if self.host_configs.get(h.name, {}).get('box') is not None]

def qualify_url(url: str) -> str:
    """Adds the default `ssh://` schema to the given url if it has none."""
    if ":" not in url:
        return f"ssh://{url}"
    return url

def _to_declaration(decl: Union[str, dict[str, Any], HostDeclaration], file: str) -> HostDeclaration:
    if isinstance(decl, HostDeclaration):
        return decl
    if isinstance(decl, str):
        return HostDeclaration(name=decl)
    if isinstance(decl, dict):
        try:
            return HostDeclaration(**decl)
        except TypeError as e:
            raise FatalError(f"Invalid host declaration {decl!r}: {e}", loc=file) from e
    raise FatalError(f"Invalid host declaration of type {type(decl)}!", loc=file)

def load_inventory(file: str) -> Inventory:
    """
    Loads an inventory from the given python module file. The module must
    define a list of `hosts`, each of which is either a host name, a dict
    or a `HostDeclaration`. It may define the `hypervisor` that provisions
    the hosts and `hypervisor_options`.

    Parameters
    ----------
    file
        The inventory module file (`*.py`).

    Returns
    -------
    Inventory
        The loaded inventory.

    Raises
    ------
    FatalError
        The loaded inventory was invalid.
    """
    module = load_py_module(file)

    if not hasattr(module, "hosts"):
        raise FatalError("Inventory must define a list of hosts!", loc=file)
    hosts = getattr(module, "hosts")
    if not isinstance(hosts, list):
        raise FatalError(f"`hosts` definition must be of type list, not {type(hosts)}!", loc=file)

    inventory = Inventory(file=file,
                          hypervisor=getattr(module, "hypervisor", None),
                          hypervisor_options=dict(getattr(module, "hypervisor_options", {})))
    for decl in map(lambda d: _to_declaration(d, file), hosts):
        if decl.name in inventory.host_configs:
            raise FatalError(f"Duplicate host '{decl.name}'!", loc=file)
        try:
            inventory.hosts.append(decl.to_host())
        except ValueError as e:
            raise FatalError(str(e), loc=file) from e
        inventory.host_configs[decl.name] = decl.hypervisor_config()

    return inventory
