"""
Pytest config.

Pin the repo root on sys.path so `import podcopy` and `import main` work when a
global `pytest` entrypoint is used without installing the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()


@pytest.fixture(autouse=True)
def _fresh_copy_config(monkeypatch: pytest.MonkeyPatch):
    """
    `load_copy_config()` is cached per process. Clear it around every test and drop any
    PODCOPY_* variables from the developer's shell so defaults are predictable.
    """
    from podcopy.config import load_copy_config

    for name in list(os.environ):
        if name.startswith("PODCOPY_"):
            monkeypatch.delenv(name, raising=False)
    load_copy_config.cache_clear()
    yield
    load_copy_config.cache_clear()
