# src/rebasecore/__main__.py
from __future__ import annotations

from rebasecore.tools.replay import main

if __name__ == "__main__":
    raise SystemExit(main())
