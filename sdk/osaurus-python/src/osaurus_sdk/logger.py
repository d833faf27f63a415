"""Package logger shared by every SDK module."""

import logging

logger = logging.getLogger("osaurus_sdk")
