from dataclasses import dataclass
from typing import Any

import pytest

from testbed.connectors.local import LocalConnector
from testbed.connectors.ssh import SshConnector
from testbed.logger import Logger
from testbed.types import Host
from testbed.utils import FatalError

logger = Logger()

def test_explicit_connector():
    @dataclass
    class TestConnector:
        url: str
        host: Any
        logger: Any

    h = Host("herring", url="ssh://red@herring.sea", connector=TestConnector)
    assert isinstance(h.create_connector(logger), TestConnector)

def test_connector_no_url():
    h = Host("nourl")
    with pytest.raises(FatalError, match=r"Host 'nourl' has no url"):
        h.create_connector(logger)

def test_connector_invalid():
    h = Host("cannotresolve", url="cannotresolve")
    with pytest.raises(FatalError, match=r"doesn't include a schema and no connector was specified"):
        h.create_connector(logger)

def test_connector_ssh():
    h = Host("host", url="ssh://user@host.localhost")
    assert isinstance(h.create_connector(logger), SshConnector)

def test_connector_local():
    h = Host("host", url="local:")
    assert isinstance(h.create_connector(logger), LocalConnector)

def test_connector_unknown():
    h = Host("host", url="unknown://user@host.localhost")
    with pytest.raises(FatalError, match=r"No connector found for schema"):
        h.create_connector(logger)

def test_ssh_extract_hostname():
    assert SshConnector.extract_hostname("ssh://user@host.localhost:2222") == "host.localhost"
    assert SshConnector.extract_hostname("ssh://host") == "host"
    with pytest.raises(ValueError, match=r"without matching schema"):
        SshConnector.extract_hostname("local:host")

def test_ssh_command():
    h = Host("web1", url="ssh://root@web1.example.com", vars={"ssh_opts": ["-o", "BatchMode=yes"]})
    c = SshConnector(h.url, h, logger)
    assert c.wrap_command(["echo", "a b"]) == ["ssh", "-o", "BatchMode=yes", "ssh://root@web1.example.com", "--", "echo 'a b'"]

def test_ssh_command_with_ssh_config():
    h = Host("web1", url="ssh://web1", vars={"ssh_config": "/tmp/web1.ssh_config"})
    c = SshConnector(h.url, h, logger)
    assert c.wrap_command(["true"]) == ["ssh", "-F", "/tmp/web1.ssh_config", "web1", "--", "true"]

def test_ssh_default_url():
    h = Host("web1", connector=SshConnector)
    c = SshConnector(None, h, logger)
    assert c.url == "ssh://web1"

def test_ssh_command_with_user():
    h = Host("web1", url="ssh://web1", vars={"ssh_config": "/tmp/web1.ssh_config", "user": "vagrant"})
    c = SshConnector(h.url, h, logger)
    assert c.wrap_command(["true"]) == ["ssh", "-F", "/tmp/web1.ssh_config", "-l", "vagrant", "web1", "--", "true"]
