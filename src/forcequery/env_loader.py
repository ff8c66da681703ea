# src/forcequery/env_loader.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from dotenv import load_dotenv

_logger = logging.getLogger(__name__)

ENV_FILE_NAMES = (".env", ".dotenv")


def load_env_files(
    candidates: Optional[Iterable[Path]] = None,
    *,
    quiet: bool = False,
) -> Optional[Path]:
    """Load SF_* settings from the first existing .env candidate.

    Existing environment variables win over file values. Returns the path
    that was loaded, or None.
    """
    if candidates is None:
        cwd = Path.cwd()
        candidates = [cwd / name for name in ENV_FILE_NAMES]

    for path in candidates:
        path = Path(path)
        if path.is_file():
            load_dotenv(path, override=False)
            if not quiet:
                _logger.debug("Loaded environment variables from %s", path)
            return path

    if not quiet:
        _logger.debug("No %s file found", "/".join(ENV_FILE_NAMES))
    return None
