"""
Logging Configuration

Configures logging for the catalog manager.
Output goes to stderr so host applications keep stdout for their own use.
Connection-pool chatter from requests/urllib3 is held at WARNING unless
HTTP debugging is asked for; the Graph API client already logs each call.
"""

import logging
import sys

HTTP_LOGGERS = ("urllib3", "requests")


def setup_logging(verbose: bool = False, quiet: bool = False, http_debug: bool = False) -> None:
    """
    Configure logging for the package.

    Args:
        verbose: If True, set level to DEBUG (logs every Graph API request)
        quiet: If True, set level to WARNING
        http_debug: If True, also let urllib3/requests log connection details
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s", "%H:%M:%S"))

    logger = logging.getLogger("catalog_manager")
    logger.setLevel(level)
    logger.handlers.clear()
    logger.addHandler(handler)

    for name in HTTP_LOGGERS:
        http_logger = logging.getLogger(name)
        if http_debug:
            http_logger.setLevel(logging.DEBUG)
            http_logger.handlers.clear()
            http_logger.addHandler(handler)
        else:
            http_logger.setLevel(logging.WARNING)
