"""Stores all global state."""

import argparse
from typing import cast
from jinja2 import Environment, PackageLoader, StrictUndefined

args: argparse.Namespace = cast(argparse.Namespace, None)
"""
The parsed command line arguments. This is None unless testbed
was started from the command line.
"""

jinja2_env: Environment = Environment(
    loader=PackageLoader("testbed", "templates"),
    autoescape=False,
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
    undefined=StrictUndefined)
"""The jinja2 environment used for templating."""
