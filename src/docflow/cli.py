"""Console-script entrypoint.

The command implementations live in `docflow.engine.main`.
"""

from __future__ import annotations

from docflow.engine.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
