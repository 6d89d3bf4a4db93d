"""Shared pytest configuration for tessera examples.

Each example directory holds an ``app.py`` that renders at import time
and a ``test_*.py`` that checks the module-level results. The
``example_app`` fixture executes that app.py afresh for every test, so
scope mutations made by one test never leak into the next.
"""

from __future__ import annotations

import importlib.util
from pathlib import Path
from types import ModuleType

import pytest


def _load_app(app_path: Path) -> ModuleType:
    spec = importlib.util.spec_from_file_location(f"example_{app_path.parent.name}", app_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load example app from {app_path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def example_app(request: pytest.FixtureRequest) -> ModuleType:
    """The sibling app.py of the requesting test, freshly executed."""
    return _load_app(Path(request.path).parent / "app.py")
