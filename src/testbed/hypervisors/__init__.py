"""Contains the hypervisors which provision disposable hosts."""

# Import all hypervisors so that they are registered.
from testbed.hypervisors import vagrant # noqa: F401 pylint: disable=unused-import
