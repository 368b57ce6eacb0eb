from __future__ import annotations

import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

import pytest  # noqa: E402

from dem2tif.logging_utils import HumanFormatter, JsonFormatter  # noqa: E402
from dem2tif.perf import ENV_PROFILE_DIR  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_profile_dir(monkeypatch) -> None:
    """Prevent a local profile directory from bleeding into tests."""
    monkeypatch.delenv(ENV_PROFILE_DIR, raising=False)


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """Drop handlers installed by configure_logging."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, (HumanFormatter, JsonFormatter)):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
