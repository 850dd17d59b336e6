"""Package-wide logger.

Every module logs through the single ``buffered_metrics`` logger so host
applications can tune verbosity with one ``logging.getLogger`` call. No
handler is attached here; unhandled flush failures still reach stderr via
Python's last-resort handler when the application has not configured logging.
"""

import logging

LOGGER_NAME = "buffered_metrics"

logger = logging.getLogger(LOGGER_NAME)
