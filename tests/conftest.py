from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

# Ensure local "src/" takes precedence over any globally-installed "rebasecore" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep REBASECORE_* settings from the developer shell out of tests."""
    for name in list(os.environ):
        if name.startswith("REBASECORE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("REBASECORE_DOTENV_PATH", str(tmp_path / "missing.env"))

    from rebasecore.runtime import metrics

    metrics.reset()
    yield
    metrics.reset()
