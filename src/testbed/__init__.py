"""
The main module of testbed.

testbed selects hosts of a test fleet by role or name, runs work against them
sequentially or in parallel, and brings up disposable virtual hosts through
an external hypervisor tool.
"""

version = "0.1.0"
