"""Contains a connector which executes commands on the local machine."""

from testbed.connectors.connector import SubprocessConnector, connector

@connector(schema='local')
class LocalConnector(SubprocessConnector):
    """A connector that provides access to the current local machine via a subprocess."""

    def wrap_command(self, command: list[str]) -> list[str]:
        return list(command)
