"""Pytest configuration and fixtures for Tessera tests."""

import pytest

from tessera import DictLoader, Environment, default_runtime
from tessera.environment import terminal


@pytest.fixture
def env():
    """Create a basic Tessera Environment."""
    return Environment()


@pytest.fixture
def env_plain():
    """Create a Tessera Environment with diagnostics disabled."""
    return Environment(diagnostics=False)


@pytest.fixture
def env_with_loader():
    """Create a Tessera Environment with DictLoader and test templates."""
    loader = DictLoader(
        {
            "counter.html": (
                '<div class="counter">'
                '<button @click="count -= 1">-</button>'
                "<span>{{ count }}</span>"
                '<button @click="count += 1">+</button>'
                "</div>"
            ),
            "todo_list.html": (
                "<ul>"
                '<li *for="t of todos; t[\'id\']" ~class="{\'done\': t[\'done\']}">'
                "{{ t['title'] }}"
                "</li>"
                "</ul>"
            ),
            "greeting.html": "<p>Hello, {{ name }}!</p>",
        }
    )
    return Environment(loader=loader)


@pytest.fixture
def logged():
    """A RuntimeEnv whose ``*log`` sink appends to the returned list."""
    seen: list = []
    runtime = default_runtime(log=seen.append)
    return runtime, seen


@pytest.fixture
def no_colors(monkeypatch):
    """Disable ANSI colours so error text can be compared literally."""
    monkeypatch.setattr(terminal, "_USE_COLORS", False)


@pytest.fixture
def render(env):
    """Compile a source string against a scope and serialize the result."""

    def _render(source: str, scope: dict | None = None, **kwargs) -> str:
        template = env.from_string(source, {} if scope is None else scope, **kwargs)
        return template.render_to_string()

    return _render
