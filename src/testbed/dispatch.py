"""
Provides the dispatcher which runs a block of work against a selected set of hosts.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, Sequence, TypeVar, Union

from testbed.logger import Logger
from testbed.selection import hosts_with_name, hosts_with_role, select
from testbed.types import ByName, ByRole, Host, NoHostsMatched
from testbed.utils import InvalidArgumentError

T = TypeVar('T')

Filter = Optional[Union[str, ByRole, ByName]]
"""A role or name given as a string, an explicit criterion, or None to select all hosts."""

class Dispatcher:
    """
    Runs blocks of work against hosts. A dispatcher holds no state except for
    the logger it reports to, so a single instance can be used for any
    number of dispatches.
    """

    def __init__(self, logger: Logger):
        self.logger = logger

    def resolve(self, hosts: Union[Host, Sequence[Host]], filter: Filter = None) -> Union[Host, list[Host]]: # pylint: disable=redefined-builtin
        """
        Resolves the given hosts and filter to the target of a dispatch.
        A string filter is first tried as a role, and only if no host has
        that role, it is tried as a name prefix instead.

        Parameters
        ----------
        hosts
            A single host or a sequence of hosts.
        filter
            The optional filter to apply.

        Returns
        -------
        Union[Host, list[Host]]
            A single host if exactly one host was selected by the filter
            (or a single host was given), otherwise the list of selected hosts.

        Raises
        ------
        InvalidArgumentError
            A filter was given but there are no hosts to filter.
        """
        if isinstance(hosts, Host):
            if filter is None:
                return hosts
            hosts = [hosts]

        if filter is None:
            return list(hosts)

        if len(hosts) == 0:
            raise InvalidArgumentError(f"Unable to sort for {filter} type hosts when provided with [] as hosts")

        if isinstance(filter, (ByRole, ByName)):
            selected = select(hosts, filter)
        else:
            selected = hosts_with_role(hosts, filter)
            if len(selected) == 0:
                selected = hosts_with_name(hosts, str(filter))

        # A single match is handed to the block as a bare host
        if len(selected) == 1:
            return selected[0]
        return selected

    def run_block_on(self,
                     hosts: Union[Host, Sequence[Host]],
                     filter: Filter = None, # pylint: disable=redefined-builtin
                     parallel: bool = False,
                     block: Optional[Callable[[Host], T]] = None) -> Union[T, list[T], NoHostsMatched]:
        """
        Executes a block against the hosts matching the given filter.

        If the hosts resolve to a single host (because a single host was given,
        or the filter left only one host), the block's result is returned as is.
        Otherwise a list of results is returned in the order of the selected hosts,
        or `NoHostsMatched` if there was nothing to run on.

        In parallel mode, one thread is started per selected host, and each host's
        connection is closed once its block has finished. All blocks are run to
        completion even if some fail. In that case the exception of the first
        failed host (in selection order) is re-raised and all results are discarded.
        In sequential mode, the first exception aborts the dispatch.

        Parameters
        ----------
        hosts
            A single host or a sequence of hosts to run the block against.
        filter
            An optional role or name to limit the hosts.
        parallel
            Whether to run the block on all hosts concurrently.
        block
            The work to execute. Called once for each selected host.

        Returns
        -------
        Union[T, list[T], NoHostsMatched]
            The result(s) of the block.

        Raises
        ------
        InvalidArgumentError
            A filter was given but no hosts, or no block was given.
        Exception
            Any exception raised by the block is propagated unchanged.
        """
        if block is None:
            raise InvalidArgumentError("A block to execute must be given.")

        target = self.resolve(hosts, filter)
        if isinstance(target, Host):
            return block(target)

        if len(target) == 0:
            self.logger.info(f"Attempting to execute against an empty array of hosts ({_names(hosts)}, filtered to []), no execution will occur")
            return NoHostsMatched(filter=None if filter is None else str(filter))

        if parallel:
            return self._run_parallel(target, block)

        self.logger.debug(f"running sequentially on {_names(target)}")
        return [block(h) for h in target]

    def _run_parallel(self, target: list[Host], block: Callable[[Host], T]) -> list[T]:
        if len({id(h) for h in target}) != len(target):
            raise InvalidArgumentError(f"Cannot run in parallel on the same host twice ({_names(target)})")

        def _task(host: Host) -> T:
            # The task owns the host's connection until it returns.
            try:
                return block(host)
            finally:
                try:
                    host.close()
                except Exception as e: # pylint: disable=broad-except
                    self.logger.warn(f"could not close connection to {host.name}: {e}")

        self.logger.debug(f"running in parallel on {_names(target)}")
        futures: list[Future[T]] = []
        with ThreadPoolExecutor(max_workers=len(target), thread_name_prefix="testbed") as executor:
            for h in target:
                futures.append(executor.submit(_task, h))

        # Leaving the executor waits for all tasks, so result() never blocks here
        # and the first exception by selection order is the one re-raised.
        return [f.result() for f in futures]

def _names(hosts: Any) -> str:
    if isinstance(hosts, Host):
        return hosts.name
    return ", ".join(h.name for h in hosts)
