"""
Provides functions to select hosts by role or by name.

None of these functions modify the given hosts, and all of them
preserve the relative order of the hosts they return.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from testbed.types import ByName, ByRole, Criterion, Host
from testbed.utils import AmbiguousSelectionError, InvalidArgumentError

def hosts_with_role(hosts: Sequence[Host], role: Optional[Any] = None) -> list[Host]:
    """
    Finds all hosts that have the desired role. If no role is given,
    all hosts are returned.

    Parameters
    ----------
    hosts
        The hosts to examine.
    role
        The role to look for. Will be compared in its string form.

    Returns
    -------
    list[Host]
        The hosts that have the desired role in their roles list.
    """
    if role is None:
        return list(hosts)
    return [h for h in hosts if h.has_role(role)]

def _name_matches(host: Host, name: str) -> bool:
    """Checks the name, vmhostname and ip of the host (in this order) for the given prefix."""
    for candidate in (host.name, host.vmhostname, host.ip):
        if candidate is not None and candidate.startswith(name):
            return True
    return False

def hosts_with_name(hosts: Sequence[Host], name: Optional[str] = None) -> list[Host]:
    """
    Finds all hosts whose name, vmhostname or ip starts with the given name.
    These are the three valid ways to identify an individual host. If no
    name is given, all hosts are returned.

    Parameters
    ----------
    hosts
        The hosts to examine.
    name
        The prefix to match against.

    Returns
    -------
    list[Host]
        The hosts that have the desired name, vmhostname or ip.
    """
    if name is None:
        return list(hosts)
    return [h for h in hosts if _name_matches(h, name)]

def _check_role(role: Optional[Any]) -> None:
    # A missing role would select every host
    if role is None:
        raise InvalidArgumentError("role cannot be None.")

def _ambiguous(role: Any, matches: list[Host]) -> AmbiguousSelectionError:
    host_string = ", ".join(h.name for h in matches)
    return AmbiguousSelectionError(
            f"There should be only one host with {role} defined, but I found {len(matches)} ({host_string})",
            role=str(role), hosts=matches)

def only_host_with_role(hosts: Sequence[Host], role: Any) -> Host:
    """
    Finds the single host with the given role.

    Parameters
    ----------
    hosts
        The hosts to examine.
    role
        The role the returned host must have.

    Returns
    -------
    Host
        The single host with the desired role.

    Raises
    ------
    InvalidArgumentError
        The role was None.
    AmbiguousSelectionError
        No host or more than one host has the given role.
    """
    _check_role(role)
    matches = hosts_with_role(hosts, role)
    if len(matches) == 0:
        raise AmbiguousSelectionError(f"There should be one host with {role} defined!", role=str(role), hosts=[])
    if len(matches) > 1:
        raise _ambiguous(role, matches)
    return matches[0]

def find_at_most_one_host_with_role(hosts: Sequence[Host], role: Any) -> Optional[Host]:
    """
    Finds at most one host with the given role.

    Parameters
    ----------
    hosts
        The hosts to examine.
    role
        The role the returned host must have.

    Returns
    -------
    Optional[Host]
        The single host with the desired role, or None if no host has it.

    Raises
    ------
    InvalidArgumentError
        The role was None.
    AmbiguousSelectionError
        More than one host has the given role.
    """
    _check_role(role)
    matches = hosts_with_role(hosts, role)
    if len(matches) > 1:
        raise _ambiguous(role, matches)
    return matches[0] if matches else None

def select(hosts: Sequence[Host], criterion: Criterion) -> list[Host]:
    """Applies the given selection criterion. `None` selects all hosts."""
    if criterion is None:
        return list(hosts)
    if isinstance(criterion, ByRole):
        return hosts_with_role(hosts, criterion.role)
    if isinstance(criterion, ByName):
        return hosts_with_name(hosts, criterion.prefix)
    raise InvalidArgumentError(f"Invalid selection criterion {criterion!r}")
