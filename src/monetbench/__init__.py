"""Monetbench: MonetDB benchmark database provisioning."""

import logging

__version__ = "0.3.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
