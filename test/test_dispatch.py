import random
import threading
import time

import pytest

from testbed.dispatch import Dispatcher
from testbed.logger import Logger
from testbed.types import ByName, ByRole, Host, NoHostsMatched
from testbed.utils import InvalidArgumentError

class FakeConnection:
    def __init__(self):
        self.closed = 0

    def close(self):
        self.closed += 1

def make_hosts(n: int = 2):
    hosts = [Host("web1", ["master"]), Host("web2", ["agent"])]
    hosts += [Host(f"agent{i}", ["agent"]) for i in range(n - 2)]
    return hosts

def connect_all(hosts):
    conns = []
    for h in hosts:
        h.connection = FakeConnection()
        conns.append(h.connection)
    return conns

dispatcher = Dispatcher(Logger(verbose=1))

def test_sequential_all_hosts():
    hosts = make_hosts()
    assert dispatcher.run_block_on(hosts, None, parallel=False, block=lambda h: h.name) == ["web1", "web2"]

def test_single_host_is_not_wrapped():
    hosts = make_hosts()
    assert dispatcher.run_block_on(hosts[0], block=lambda h: h.name) == "web1"

def test_filter_to_single_host_is_not_wrapped():
    hosts = make_hosts()
    assert dispatcher.run_block_on(hosts, "master", block=lambda h: h.name) == "web1"
    assert dispatcher.run_block_on(hosts, "master", parallel=True, block=lambda h: h.name) == "web1"

def test_filter_on_single_host():
    host = Host("web1", ["master"])
    assert dispatcher.run_block_on(host, "master", block=lambda h: h.name) == "web1"
    assert isinstance(dispatcher.run_block_on(host, "agent", block=lambda h: h.name), NoHostsMatched)

def test_filter_role_before_name():
    hosts = [Host("agent-box", ["master"]), Host("web2", ["agent"]), Host("web3", ["agent"])]
    assert dispatcher.run_block_on(hosts, "agent", block=lambda h: h.name) == ["web2", "web3"]

def test_filter_falls_back_to_name():
    hosts = make_hosts(4)
    assert dispatcher.run_block_on(hosts, "web", block=lambda h: h.name) == ["web1", "web2"]
    assert dispatcher.run_block_on(hosts, "agent0", block=lambda h: h.name) == "agent0"

def test_filter_criterion():
    hosts = make_hosts(3)
    assert dispatcher.run_block_on(hosts, ByRole("agent"), block=lambda h: h.name) == ["web2", "agent0"]
    assert dispatcher.run_block_on(hosts, ByName("agent"), block=lambda h: h.name) == "agent0"

def test_filter_empty_hosts():
    called = []
    with pytest.raises(InvalidArgumentError, match=r"Unable to sort for agent type hosts"):
        dispatcher.run_block_on([], "agent", block=called.append)
    assert called == []

def test_no_block():
    with pytest.raises(InvalidArgumentError):
        dispatcher.run_block_on(make_hosts())

def test_empty_selection_is_noop(capsys):
    called = []
    result = dispatcher.run_block_on(make_hosts(), "missing", block=called.append)
    assert called == []
    assert isinstance(result, NoHostsMatched)
    assert result.filter == "missing"
    assert not result
    assert result != []
    assert "empty array of hosts" in capsys.readouterr().out

def test_empty_hosts_without_filter_is_noop():
    called = []
    for parallel in [False, True]:
        result = dispatcher.run_block_on([], parallel=parallel, block=called.append)
        assert isinstance(result, NoHostsMatched)
        assert result.filter is None
    assert called == []

def test_empty_selection_log_is_quiet_by_default(capsys):
    Dispatcher(Logger()).run_block_on(make_hosts(), "missing", block=lambda h: h)
    assert capsys.readouterr().out == ""

def test_parallel_preserves_order():
    hosts = make_hosts(8)

    def block(h):
        time.sleep(random.uniform(0.0, 0.05))
        return h.name

    assert dispatcher.run_block_on(hosts, parallel=True, block=block) == [h.name for h in hosts]

def test_parallel_reverse_completion_order():
    hosts = make_hosts(5)
    finished = []
    lock = threading.Lock()

    def block(h):
        # The first host finishes last.
        time.sleep(0.02 * (len(hosts) - hosts.index(h)))
        with lock:
            finished.append(h.name)
        return h.name

    assert dispatcher.run_block_on(hosts, parallel=True, block=block) == [h.name for h in hosts]
    assert finished == [h.name for h in reversed(hosts)]

def test_parallel_runs_concurrently():
    hosts = make_hosts(4)
    barrier = threading.Barrier(len(hosts), timeout=5)

    def block(h):
        # Only passes if all blocks are running at the same time.
        barrier.wait()
        return h.name

    assert dispatcher.run_block_on(hosts, parallel=True, block=block) == [h.name for h in hosts]

def test_parallel_closes_dispatched_hosts():
    hosts = make_hosts(4)
    conns = connect_all(hosts)
    dispatcher.run_block_on(hosts, "agent", parallel=True, block=lambda h: h.name)

    assert conns[0].closed == 0
    assert [c.closed for c in conns[1:]] == [1, 1, 1]
    assert hosts[0].connection is conns[0]
    assert all(h.connection is None for h in hosts[1:])

def test_sequential_keeps_connections():
    hosts = make_hosts(3)
    conns = connect_all(hosts)
    dispatcher.run_block_on(hosts, parallel=False, block=lambda h: h.name)
    assert all(c.closed == 0 for c in conns)

def test_parallel_same_host_twice():
    h = Host("web1")
    with pytest.raises(InvalidArgumentError, match=r"same host twice"):
        dispatcher.run_block_on([h, h], parallel=True, block=lambda h: h.name)

def test_sequential_fail_fast():
    hosts = make_hosts(4)
    called = []

    def block(h):
        called.append(h.name)
        if h.name == "web2":
            raise KeyError(h.name)
        return h.name

    with pytest.raises(KeyError, match=r"web2"):
        dispatcher.run_block_on(hosts, block=block)
    assert called == ["web1", "web2"]

def test_parallel_first_error_by_input_order():
    hosts = make_hosts(4)
    called = []
    lock = threading.Lock()

    class BlockError(Exception):
        pass

    def block(h):
        if h.name == "web2":
            # Fails last, but is first in input order.
            time.sleep(0.1)
            raise BlockError(h.name)
        if h.name == "agent1":
            raise RuntimeError(h.name)
        with lock:
            called.append(h.name)
        return h.name

    conns = connect_all(hosts)
    with pytest.raises(BlockError, match=r"web2"):
        dispatcher.run_block_on(hosts, parallel=True, block=block)

    # Every other task ran to completion and all connections were released.
    assert sorted(called) == ["agent0", "web1"]
    assert all(c.closed == 1 for c in conns)

class BrokenConnection:
    def close(self):
        raise OSError("transport gone")

def test_parallel_close_failure_keeps_result(capsys):
    hosts = make_hosts()
    for h in hosts:
        h.connection = BrokenConnection()
    assert dispatcher.run_block_on(hosts, parallel=True, block=lambda h: h.name) == ["web1", "web2"]
    assert all(h.connection is None for h in hosts)
    out = capsys.readouterr().out
    assert "could not close connection to web1: transport gone" in out
    assert "could not close connection to web2: transport gone" in out

def test_parallel_close_failure_keeps_work_error():
    hosts = make_hosts()
    for h in hosts:
        h.connection = BrokenConnection()

    def block(h):
        raise KeyError(h.name)

    with pytest.raises(KeyError, match=r"web1"):
        dispatcher.run_block_on(hosts, parallel=True, block=block)
