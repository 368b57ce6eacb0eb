"""Module entrypoint for `python -m dem2tif`."""

from __future__ import annotations

from dem2tif.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
