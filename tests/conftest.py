from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_configure() -> None:
    root = Path(__file__).resolve().parents[1]
    if (root / "multiconf_example").exists():
        sys.path.insert(0, str(root))


@pytest.fixture(autouse=True)
def _clean_app_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("APP_PROPERTIES_FIRSTPROPERTY", "APP_PROPERTIES_SECONDPROPERTY", "MULTICONF_PROFILES"):
        monkeypatch.delenv(name, raising=False)
