"""Run script.

Why it exists:
- Lets `python -m main` work from `src/` during development.
- Keeps a simple entry point next to the `grant-pulse` console script.
"""

from __future__ import annotations

import sys

# Emoji in the newsletter break cp1252 terminals on Windows.
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")

from cli.main import run


def main() -> None:
    run()


if __name__ == "__main__":
    main()
