"""Tests for CompiledTemplate: lazy compilation, caching and scope binding."""

from __future__ import annotations

import pytest

import tessera.environment.core as environment_core
from tessera import (
    CompiledTemplate,
    Compiler,
    Environment,
    ParseError,
    ScopeNotDefinedError,
    TemplateBuildError,
    compile_template,
    default_runtime,
    render_to_string,
)
from tessera.environment.exceptions import ErrorCode


@pytest.fixture
def parse_calls(monkeypatch):
    """Count how often the environment parses template source."""
    calls: list[str] = []
    original = environment_core.parse

    def counting_parse(source, name=None):
        calls.append(source)
        return original(source, name)

    monkeypatch.setattr(environment_core, "parse", counting_parse)
    return calls


class TestLazyCompilation:
    """Uncompiled → (first render) → Compiled → (render)*."""

    def test_rerender_reflects_scope_without_reparsing(self, parse_calls) -> None:
        scope = {"a": 1, "b": 2}
        t = CompiledTemplate("<p>{{a}}-{{b}}</p>", scope, environment=Environment())
        assert t.render_to_string() == "<p>1-2</p>"
        scope["a"] = 10
        scope["b"] = 20
        assert t.render_to_string() == "<p>10-20</p>"
        assert len(parse_calls) == 1

    def test_compiles_on_first_render_only(self, parse_calls) -> None:
        t = CompiledTemplate("<p>{{ x }}</p>", {"x": 1}, environment=Environment())
        assert not t.is_compiled
        assert parse_calls == []
        t.render()
        assert t.is_compiled
        t.render()
        assert len(parse_calls) == 1

    def test_same_source_shares_a_compiled_function(self, parse_calls) -> None:
        env = Environment()
        first = env.from_string("<p>{{ x }}</p>", {"x": 1})
        second = env.from_string("<p>{{ x }}</p>", {"x": 2})
        assert first.render_to_string() == "<p>1</p>"
        assert second.render_to_string() == "<p>2</p>"
        assert len(parse_calls) == 1

    def test_default_environment(self) -> None:
        t = CompiledTemplate("<b>{{ n }}</b>", {"n": 5})
        assert t.render_to_string() == "<b>5</b>"
        assert t.environment is CompiledTemplate("").environment

    def test_generated_source(self) -> None:
        t = CompiledTemplate("<p>{{ x }}</p>", {"x": 1})
        source = t.generated_source
        assert source.startswith("def render(_scope, _env):")
        assert "_lookup(_scope, 'x')" in source
        assert t.is_compiled

    def test_properties_are_read_only(self) -> None:
        t = CompiledTemplate("<p></p>", name="p.html")
        assert t.template_string == "<p></p>"
        assert t.name == "p.html"
        with pytest.raises(AttributeError):
            t.template_string = "<b></b>"

    def test_repr(self) -> None:
        t = CompiledTemplate("<p></p>", {}, name="p.html")
        assert repr(t) == "<CompiledTemplate p.html uncompiled>"
        t.render()
        assert repr(t) == "<CompiledTemplate p.html compiled>"


class TestScopeRequired:
    """Rendering needs a scope."""

    def test_render_without_scope(self) -> None:
        t = CompiledTemplate("<p>{{ x }}</p>", name="p.html")
        with pytest.raises(ScopeNotDefinedError) as exc_info:
            t.render()
        assert "p.html" in str(exc_info.value)
        assert exc_info.value.code == ErrorCode.SCOPE_NOT_DEFINED

    def test_scope_checked_before_compiling(self, parse_calls) -> None:
        t = CompiledTemplate("<p>unclosed", environment=Environment())
        with pytest.raises(ScopeNotDefinedError):
            t.render()
        assert not t.is_compiled
        assert parse_calls == []

    def test_scope_can_be_bound_later(self) -> None:
        t = CompiledTemplate("<p>{{ x }}</p>")
        t.scope = {"x": "late"}
        assert t.render_to_string() == "<p>late</p>"

    def test_parse_errors_surface_on_first_render(self) -> None:
        t = CompiledTemplate("<p>unclosed", {})
        with pytest.raises(ParseError, match="Unclosed tag <p>"):
            t.render()
        assert not t.is_compiled


class TestRuntimeSelection:
    """The runtime argument and the environment's factory."""

    def test_explicit_runtime(self) -> None:
        t = CompiledTemplate("<p>{{ x }}</p>", {"x": 1})
        out = t.render(default_runtime(html=lambda strings, values: (strings, values)))
        assert out == (("<p>", "</p>"), (1,))

    def test_environment_runtime_factory(self) -> None:
        env = Environment(runtime_factory=lambda: default_runtime(log=lambda value: None))
        assert env.make_runtime().log(1) is None

    def test_render_to_string_matches_fragment(self) -> None:
        t = CompiledTemplate("<i>{{ 'x' }}</i>", {})
        assert t.render_to_string() == render_to_string(t.render()) == str(t.render())


class TestCompileTemplate:
    """The one-step compile_template entry point."""

    def test_render_function(self) -> None:
        fn = compile_template("<p>{{ a }}</p>", name="p.html")
        assert fn.name == "p.html"
        assert fn.filename == "<tessera:p.html>"
        assert fn.diagnostics
        assert str(fn({"a": 3}, default_runtime())) == "<p>3</p>"

    def test_without_diagnostics_there_are_no_guards(self) -> None:
        fn = compile_template("<p>{{ a }}</p>", diagnostics=False)
        assert "_catch(_env, lambda" not in fn.source


class TestBuildErrors:
    """Generated code that fails to build."""

    def test_build_error_carries_listing(self, monkeypatch) -> None:
        monkeypatch.setattr(Compiler, "build_function_body", lambda self, nodes: "def render(:\n")
        with pytest.raises(TemplateBuildError) as exc_info:
            compile_template("<p></p>", name="broken.html")
        err = exc_info.value
        assert (err.lineno, err.col) == (0, 0)
        assert "def render(:" in err.listing
        assert str(err).startswith("Failed to build template function: SyntaxError")
        assert "broken.html:0:0" in str(err)
        assert err.code == ErrorCode.BUILD_FAILED
        assert isinstance(err.original, SyntaxError)
