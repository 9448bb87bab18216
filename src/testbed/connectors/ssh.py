"""Contains a connector which handles connections to hosts via SSH."""

import shlex
from typing import Optional

from testbed.connectors.connector import SubprocessConnector, connector
from testbed.logger import Logger
from testbed.types import Host

@connector(schema='ssh')
class SshConnector(SubprocessConnector):
    """
    A connector that provides remote access via SSH. If the host has an
    `ssh_config` setting (as written by a hypervisor), that file is passed
    to ssh, and the host's name is used as the ssh destination. A `user`
    setting is passed as the login name.
    """

    def __init__(self, url: Optional[str], host: Host, logger: Logger):
        super().__init__(url, host, logger)

        self.ssh_opts: list[str] = list(host.get('ssh_opts', []))
        self.ssh_config: Optional[str] = host.get('ssh_config')
        self.user: Optional[str] = host.get('user')
        if url is not None and url.startswith(f"{self.schema}://"):
            self.url: str = url
        else:
            self.url = f"{self.schema}://{host.name}"

    def destination(self) -> str:
        """Returns the ssh destination, which is the url if no ssh config is used."""
        if self.ssh_config is not None:
            return self.extract_hostname(self.url)
        return self.url

    def wrap_command(self, command: list[str]) -> list[str]:
        """
        Constructs the full ssh command needed to execute
        the given command on the remote host.
        """
        ssh_command = ["ssh"]
        if self.ssh_config is not None:
            ssh_command.extend(["-F", self.ssh_config])
        if self.user is not None:
            ssh_command.extend(["-l", self.user])
        ssh_command.extend(self.ssh_opts)
        ssh_command.append(self.destination())
        ssh_command.append("--")
        ssh_command.append(shlex.join(command))
        return ssh_command

    @classmethod
    def extract_hostname(cls, url: str) -> str:
        """Extracts the bare hostname from an ssh url of the form ssh://[user@]hostname[:port]."""
        if not url.startswith(f"{cls.schema}:"):
            raise ValueError(f"Cannot extract hostname from url without matching schema (expected '{cls.schema}', got '{url}').")

        hostname = url[len(cls.schema) + 3:]

        # Remove user
        pos = hostname.find("@")
        if pos >= 0:
            hostname = hostname[pos + 1:]

        # Remove port
        pos = hostname.find(":")
        if pos >= 0:
            hostname = hostname[:pos]

        return hostname
