"""Contains the connectors which provide command execution on hosts."""

# Import all connectors so that they are registered.
from testbed.connectors import local, ssh # noqa: F401 pylint: disable=unused-import
