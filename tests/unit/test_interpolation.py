"""Tests for ``{{ }}`` splitting and position mapping."""

from __future__ import annotations

import pytest

from tessera.compiler.interpolation import Interpolation, position_at, split_interpolations
from tessera.environment.exceptions import ErrorCode, TemplateSyntaxError


class TestSplit:
    """Literal and interpolation parts, in order."""

    def test_plain_text(self) -> None:
        assert split_interpolations("hello", 1, 1) == ["hello"]

    def test_single_span(self) -> None:
        assert split_interpolations("a {{ x }} b", 1, 1) == [
            "a ",
            Interpolation("x", 1, 6),
            " b",
        ]

    def test_adjacent_spans(self) -> None:
        assert split_interpolations("{{a}}-{{b}}", 1, 4) == [
            Interpolation("a", 1, 6),
            "-",
            Interpolation("b", 1, 12),
        ]

    def test_first_closing_wins(self) -> None:
        parts = split_interpolations("{{ x }} }}", 1, 1)
        assert parts == [Interpolation("x", 1, 4), " }}"]

    def test_escaped_open_is_literal(self) -> None:
        assert split_interpolations(r"\{{ x }}", 1, 1) == ["{{ x }}"]

    def test_unclosed_open_is_literal(self) -> None:
        assert split_interpolations("a {{ b", 1, 1) == ["a {{ b"]

    def test_empty_span_is_an_error(self) -> None:
        with pytest.raises(TemplateSyntaxError) as exc_info:
            split_interpolations("x {{  }}", 3, 5, source="")
        err = exc_info.value
        assert err.message == "Empty interpolation {{ }}"
        assert (err.lineno, err.col) == (3, 7)
        assert err.code == ErrorCode.EMPTY_INTERPOLATION


class TestPositions:
    """Line/column of an offset inside located text."""

    def test_same_line(self) -> None:
        assert position_at("abcdef", 3, 2, 10) == (2, 13)

    def test_after_newline(self) -> None:
        assert position_at("ab\n  cd", 5, 4, 10) == (5, 3)

    def test_crlf_counts_once(self) -> None:
        assert position_at("ab\r\ncd", 5, 1, 1) == (2, 2)

    def test_multiline_span(self) -> None:
        parts = split_interpolations("<\n  {{ total }}", 7, 20)
        assert parts[-1] == Interpolation("total", 8, 6)
