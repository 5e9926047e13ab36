"""`python -m treasuredata` entrypoint.

Why it exists:
- Runs the CLI without the `tdcli` console script (dev checkouts, frozen builds).
"""

from __future__ import annotations

import sys

# Windows terminals default to cp1252; rich tables and result rows need utf-8.
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")

from treasuredata.cli.main import run


def main() -> None:
    run()


if __name__ == "__main__":
    main()
