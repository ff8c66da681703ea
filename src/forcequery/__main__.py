"""``python -m forcequery`` entry point (also the ``forcequery`` console script)."""

from __future__ import annotations

import sys
from typing import List, Optional

from .cli import cli


def _use_utf8_stdio() -> None:
    # Record values are arbitrary Unicode; a cp1252/ascii console must not crash output.
    for stream in (sys.stdout, sys.stderr):
        enc = (getattr(stream, "encoding", "") or "").lower().replace("-", "")
        if enc == "utf8" or not hasattr(stream, "reconfigure"):
            continue
        stream.reconfigure(encoding="utf-8", errors="backslashreplace")


def main(argv: Optional[List[str]] = None) -> None:
    _use_utf8_stdio()
    cli.main(args=argv, prog_name="forcequery")


if __name__ == "__main__":
    main()
