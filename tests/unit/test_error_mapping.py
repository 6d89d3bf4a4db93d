"""Tests for mapping render-time failures back to template source.

With diagnostics on, each embedded expression is guarded; a failure is
reported at the statement's own template line and column, with the
template line, a caret and the generated listing.
"""

from __future__ import annotations

import pytest

from tessera import (
    Environment,
    TemplateRuntimeError,
    UndefinedError,
    compile_template,
    default_runtime,
)
from tessera.environment.exceptions import ErrorCode
from tessera.runtime.diagnostics import catch_error, format_listing, locate_failure

COUNTER = "<div>\n  <span>{{ count + label }}</span>\n</div>"


class TestLocatedFailures:
    """Failures report the exact template line and column."""

    def test_expression_failure(self, env: Environment, no_colors) -> None:
        t = env.from_string(COUNTER, {"count": 1, "label": "x"}, name="counter.html")
        with pytest.raises(TemplateRuntimeError) as exc_info:
            t.render()
        err = exc_info.value
        assert (err.lineno, err.col) == (2, 12)
        assert err.statement == "count + label"
        assert err.template_name == "counter.html"
        assert isinstance(err.original, TypeError)
        assert err.__cause__ is err.original
        assert err.message.startswith("TypeError: unsupported operand")
        assert err.code == ErrorCode.RUNTIME_ERROR

    def test_message_shows_template_line_and_caret(self, env: Environment, no_colors) -> None:
        t = env.from_string(COUNTER, {"count": 1, "label": "x"}, name="counter.html")
        with pytest.raises(TemplateRuntimeError) as exc_info:
            t.render()
        text = str(exc_info.value)
        assert text.startswith("Runtime Error: TypeError")
        assert "  Statement: count + label" in text
        assert "  Location: counter.html:2:12" in text
        assert ">  2 |   <span>{{ count + label }}</span>" in text
        assert "     |            ^^^^^^^^^^^^^" in text
        assert "  Generated code:" in text

    def test_listing_marks_the_failing_generated_line(self, env: Environment, no_colors) -> None:
        t = env.from_string("<p>\n{{ 1 // zero }}</p>", {"zero": 0})
        with pytest.raises(TemplateRuntimeError) as exc_info:
            t.render()
        marked = [line for line in exc_info.value.listing.splitlines() if line.startswith(">")]
        assert len(marked) == 1
        assert "1 // _lookup(_scope, 'zero')" in marked[0]

    def test_compact_format_omits_listing(self, env: Environment, no_colors) -> None:
        t = env.from_string("<p>{{ 1 / 0 }}</p>", {})
        with pytest.raises(TemplateRuntimeError) as exc_info:
            t.render()
        compact = exc_info.value.format_compact()
        assert compact.startswith("T-RUN-001: ZeroDivisionError")
        assert "Generated code" not in compact
        assert "<template>:1:7" in compact

    def test_attribute_value_failure(self, env: Environment) -> None:
        t = env.from_string('<a href="{{ 1 / 0 }}"></a>', {})
        with pytest.raises(TemplateRuntimeError) as exc_info:
            t.render()
        assert (exc_info.value.lineno, exc_info.value.col) == (1, 13)

    def test_multiline_expression_position(self, env: Environment) -> None:
        t = env.from_string("<p>\n  {{\n    missing\n  }}</p>", {})
        with pytest.raises(TemplateRuntimeError) as exc_info:
            t.render()
        assert (exc_info.value.lineno, exc_info.value.col) == (3, 5)

    def test_event_handler_failure(self, env: Environment) -> None:
        from tessera import iter_bindings

        fragment = env.from_string('<b>\n<i @click="1 / 0">x</i></b>', {}).render()
        (binding,) = iter_bindings(fragment)
        with pytest.raises(TemplateRuntimeError) as exc_info:
            binding.handler(None)
        assert (exc_info.value.lineno, exc_info.value.col) == (2, 12)

    def test_inner_error_is_not_remapped(self, env: Environment) -> None:
        source = '<ul><li *for="x of xs">{{ x.missing_attr }}</li></ul>'
        with pytest.raises(TemplateRuntimeError) as exc_info:
            env.from_string(source, {"xs": [1]}).render()
        assert exc_info.value.statement == "x.missing_attr"
        assert isinstance(exc_info.value.original, AttributeError)


class TestUndefinedNames:
    """Strict lookups."""

    def test_undefined_name_is_wrapped(self, env: Environment, no_colors) -> None:
        t = env.from_string("<p>{{ titel }}</p>", {"title": "x"})
        with pytest.raises(TemplateRuntimeError) as exc_info:
            t.render()
        original = exc_info.value.original
        assert isinstance(original, UndefinedError)
        assert original.name == "titel"
        assert "Did you mean 'title'?" in str(original)

    def test_undefined_name_without_diagnostics(self, env_plain: Environment) -> None:
        t = env_plain.from_string("<p>{{ missing }}</p>", {})
        with pytest.raises(UndefinedError):
            t.render()


class TestDiagnosticsOff:
    """Without diagnostics the original exception propagates."""

    def test_bare_exception(self, env_plain: Environment) -> None:
        with pytest.raises(ZeroDivisionError):
            env_plain.from_string("<p>{{ 1 / 0 }}</p>", {}).render()

    def test_do_failure_propagates(self, env_plain: Environment) -> None:
        with pytest.raises(KeyError):
            env_plain.from_string("<p *do=\"d['k']\">x</p>", {"d": {}}).render()


class TestUnguardedFailures:
    """Failures outside every guard are mapped by the template."""

    def test_primitive_failure_is_mapped(self, env: Environment) -> None:
        def repeat(items, key_fn, renderer):
            raise RuntimeError("host refused")

        t = env.from_string('<i *for="x of xs">{{ x }}</i>', {"xs": [1]})
        with pytest.raises(TemplateRuntimeError) as exc_info:
            t.render(default_runtime(repeat=repeat))
        err = exc_info.value
        assert err.message == "RuntimeError: host refused"
        assert err.statement is not None
        assert "_env.repeat(" in err.statement


class TestHelpers:
    """catch_error, locate_failure and format_listing directly."""

    def test_catch_error_returns_value(self) -> None:
        assert catch_error(default_runtime(), lambda: 42) == 42

    def test_catch_error_swallows_and_describes(self) -> None:
        assert catch_error(default_runtime(), lambda: {}["k"]) == "KeyError: 'k'"

    def test_catch_error_rethrows_mapped(self) -> None:
        with pytest.raises(TemplateRuntimeError) as exc_info:
            catch_error(default_runtime(), lambda: [][0], True, ("xs[0]", 4, 2))
        assert exc_info.value.statement == "xs[0]"
        assert (exc_info.value.lineno, exc_info.value.col) == (4, 2)

    def test_locate_failure_in_generated_code(self) -> None:
        fn = compile_template("<p>{{ 1 / 0 }}</p>", diagnostics=False)
        with pytest.raises(ZeroDivisionError) as exc_info:
            fn({}, default_runtime())
        line, _col = locate_failure(exc_info.value, fn.filename)
        assert "1 / 0" in fn.source.splitlines()[line - 1]

    def test_locate_failure_elsewhere(self) -> None:
        try:
            raise ValueError("x")
        except ValueError as e:
            assert locate_failure(e, "<tessera:none>") is None

    def test_format_listing(self, no_colors) -> None:
        assert format_listing("a\nb", 2) == "   1 | a\n>  2 | b"
