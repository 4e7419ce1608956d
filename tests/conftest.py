"""Pytest configuration shared by the unit and end-to-end suites.

What:
  Make the in-repo ``imapsweep`` sources importable and keep the process
  environment from pointing the job at a real configuration home.

Why:
  The suites must exercise the source tree rather than an installed wheel, and
  a developer's own ``~/.config/imapsweep/config.yaml`` must never leak into a
  test run.

How:
  Prepend ``imapsweep/src`` to ``sys.path`` at import time and clear the
  configuration-home variables for every test with :class:`pytest.MonkeyPatch`.

Interfaces:
  :func:`isolated_environment` (autouse pytest fixture).
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "imapsweep" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Point both configuration-home variables at an empty temporary directory."""

    monkeypatch.delenv("IMAPSWEEP_CONFIG_HOME", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    yield
