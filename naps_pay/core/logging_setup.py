"""
Logging helpers for applications embedding the SDK.

The library itself only creates module loggers; handlers are the
application's decision.
"""

import logging
import sys
from typing import Union

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Union[str, int] = "INFO") -> logging.Logger:
    """Attach a single stream handler to the ``naps_pay`` logger."""
    sdk_logger = logging.getLogger("naps_pay")
    sdk_logger.setLevel(level.upper() if isinstance(level, str) else level)

    for handler in list(sdk_logger.handlers):
        sdk_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    sdk_logger.addHandler(handler)
    sdk_logger.propagate = False
    return sdk_logger
