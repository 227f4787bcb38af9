"""Storenode service initialization package.

This package prepares an already-initialized storage node to run as a
sub-service: it checks the remote sealer and sector index APIs, builds the
node configuration and hands it to the repo restore routine.
"""

__version__ = "0.1.0"
