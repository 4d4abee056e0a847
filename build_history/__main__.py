#!/usr/bin/env python3
"""Module entrypoint for `build_history`.

Usage:
  - `python3 -m build_history 10`
"""

from __future__ import annotations

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
