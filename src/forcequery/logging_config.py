from __future__ import annotations

import logging
from typing import IO, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%H:%M:%S"

# urllib3 loggers and the level they are held at unless -vv asks for DEBUG.
_HTTP_LOGGERS = {
    "urllib3.connection": logging.ERROR,
    "urllib3.connectionpool": logging.WARNING,
}


def configure_logging(level: Optional[int], *, stream: Optional[IO[str]] = None) -> int:
    """Set up logging for the CLI and return the effective level.

    The root logger is configured only if nothing else has done so; the
    ``forcequery`` logger always follows ``level`` (WARNING when None).
    """
    lvl = level if level is not None else logging.WARNING
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(lvl)
    else:
        logging.basicConfig(level=lvl, format=LOG_FORMAT, datefmt=LOG_DATEFMT, stream=stream)

    logging.getLogger("forcequery").setLevel(lvl)

    for name, quiet_level in _HTTP_LOGGERS.items():
        # At DEBUG the connection pool shows each request line, useful next to --debug.
        if lvl <= logging.DEBUG and name == "urllib3.connectionpool":
            logging.getLogger(name).setLevel(logging.DEBUG)
        else:
            logging.getLogger(name).setLevel(quiet_level)
    return lvl
