"""
Provides the top-level logic of testbed such as
the CLI interface and command dispatching.
"""

import argparse
import os
import sys
from typing import Any, NoReturn, Optional

from testbed import globals as G, logger as log, version
from testbed.dispatch import Dispatcher
from testbed.hypervisors.hypervisor import Hypervisor, create_hypervisor
from testbed.inventory import load_inventory
from testbed.logger import Logger
from testbed.types import Host, NoHostsMatched
from testbed.utils import AmbiguousSelectionError, FatalError, InvalidArgumentError, ProvisioningError, die_error, print_warning

def run_command(dispatcher: Dispatcher, hosts: list[Host], filter: Optional[str], parallel: bool, command: list[str]) -> int: # pylint: disable=redefined-builtin
    """
    Runs the given command on all hosts matching the filter and prints the status for each host.

    Returns
    -------
    int
        The number of hosts on which the command failed.
    """
    def _run(host: Host) -> tuple[Host, Any]:
        return host, host.connect(dispatcher.logger).run(command, check=False)

    result = dispatcher.run_block_on(hosts, filter, parallel=parallel, block=_run)
    if isinstance(result, NoHostsMatched):
        print_warning(f"No hosts matched '{filter}', nothing was executed.")
        return 0

    results = [result] if isinstance(result, tuple) else result
    failed = 0
    for host, ret in results:
        log.host_status(host, ret.returncode)
        if ret.stdout:
            with log.indent():
                for line in ret.stdout.decode("utf-8", "backslashreplace").splitlines():
                    log.print_indented(line)
        if ret.returncode != 0:
            failed += 1
    return failed

def main_run(args: argparse.Namespace) -> None:
    """
    Main method used to run a command on an inventory.

    Parameters
    ----------
    args
        The parsed arguments
    """
    logger = Logger.from_args(args)
    try:
        inventory = load_inventory(args.inventory)
    except FatalError as e:
        die_error(str(e), loc=e.loc)

    session: Optional[Hypervisor] = None
    if args.provision:
        if inventory.hypervisor is None:
            die_error("Cannot provision hosts, the inventory doesn't define a hypervisor", loc=inventory.file)
        try:
            session = create_hypervisor(inventory.hypervisor, logger=logger)
        except FatalError as e:
            die_error(str(e), loc=inventory.file)

    failed = 0
    try:
        if session is not None:
            session.provision(inventory.guests(), inventory.host_configs, inventory.hypervisor_options)
            session.apply_to(inventory.hosts)
        failed = run_command(Dispatcher(logger), inventory.hosts, args.filter, args.parallel, args.command)
    except FatalError as e:
        die_error(str(e), loc=e.loc)
    except ProvisioningError as e:
        if e.output:
            logger.error(f"output of the failed command:\n{e.output.rstrip()}")
        die_error(str(e))
    except (InvalidArgumentError, AmbiguousSelectionError) as e:
        die_error(str(e))
    finally:
        for host in inventory.hosts:
            host.close()
        if session is not None:
            for failure in session.cleanup():
                logger.warn(f"cleanup: {failure}")

    if failed > 0:
        sys.exit(1)

class ArgumentParserError(Exception):
    """Error class for argument parsing errors."""

class ThrowingArgumentParser(argparse.ArgumentParser):
    """An argument parser that throws when invalid argument types are passed."""

    def error(self, message: str) -> NoReturn:
        """Raises an exception on error."""
        raise ArgumentParserError(message)

def main(argv: Optional[list[str]] = None) -> None:
    """
    The main program entry point. This will parse arguments, load the inventory
    and run the given command. Defaults to sys.argv[1:] if argv is None.
    """
    if argv is None:
        argv = sys.argv[1:]
    parser = ThrowingArgumentParser(description="Runs a command on the hosts of a test fleet.")

    parser.add_argument('-V', '--version', action='version',
            version=f"%(prog)s version {version}")
    parser.add_argument('-f', '--filter', dest='filter', default=None, type=str,
            help="Only run on hosts with this role. If no host has this role, run on hosts whose name, vm hostname or ip starts with this value instead.")
    parser.add_argument('-p', '--parallel', dest='parallel', action='store_true',
            help="Run the command on all selected hosts in parallel.")
    parser.add_argument('--provision', dest='provision', action='store_true',
            help="Bring up all hosts with the hypervisor defined in the inventory before running the command, and destroy them afterwards.")
    parser.add_argument('-v', '--verbose', dest='verbose', action='count', default=0,
            help="Increase output verbosity. Can be given multiple times.")
    parser.add_argument('--debug', dest='debug', action='store_true',
            help="Enable debugging output. Forces verbosity to max value.")
    parser.add_argument('--no-color', dest='no_color', action='store_true',
            help="Disables any color output. Color can also be disabled by setting the NO_COLOR environment variable.")
    parser.add_argument('inventory', type=str,
            help="The inventory module (`*.py`) that declares the hosts.")
    parser.add_argument('command', nargs='+',
            help="The command to run on each selected host.")
    parser.set_defaults(func=main_run)

    try:
        args: argparse.Namespace = parser.parse_args(argv)
    except ArgumentParserError as e:
        die_error(str(e))

    # Force max verbosity with --debug
    if args.debug:
        args.verbose = 99

    # Disable color when NO_COLOR is set
    if os.getenv("NO_COLOR") is not None:
        args.no_color = True

    G.args = args
    args.func(args)
