"""regular — run a task over and over, optionally inside daily time windows."""

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
