"""Module entrypoint for ``python -m memmap_doc``."""

from __future__ import annotations

from memmap_doc.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
