"""RuntimeEnv: capabilities a render function calls into.

The render function never builds output itself. It calls the
primitives on the RuntimeEnv it is given, so a host can substitute its
own fragment representation (a DOM builder, a diffing renderer) by
supplying different callables. ``default_runtime()`` wires up the
string-producing primitives from ``tessera.runtime.fragments``.

The source fields (``original_code``, ``original_template``,
``code_filename``, ``template_name``) are filled in per render by the
CompiledTemplate so ``catch_error`` can map failures back to the
template.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from tessera.runtime.fragments import ClassMap, Fragment, RefBinding, Repeat, StyleMap

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RuntimeEnv:
    """Capability bag passed to every render call.

    Attributes:
        html: ``(strings, values) -> Fragment``
        repeat: ``(items, key_fn | None, renderer(item, index)) -> Fragment``
        conditional: ``(test, on_true, on_false) -> Fragment``
        style_map: ``(mapping) -> value`` for ``~style``
        class_map: ``(mapping) -> value`` for ``~class``
        ref: ``(callback) -> value`` for ``$ref``
        log: Sink for ``*log`` values
        catch_error: ``(env, thunk, rethrow, label) -> value``; None selects
            ``tessera.runtime.diagnostics.catch_error``
    """

    html: Callable[[tuple[str, ...], tuple[Any, ...]], Any]
    repeat: Callable[[Iterable[Any], Callable[[Any], Any] | None, Callable[[Any, int], Any]], Any]
    conditional: Callable[[Any, Callable[[], Any], Callable[[], Any]], Any]
    style_map: Callable[[Mapping[str, Any]], Any]
    class_map: Callable[[Mapping[str, Any]], Any]
    ref: Callable[[Callable[[Any], Any]], Any]
    log: Callable[[Any], None]
    catch_error: Callable[..., Any] | None = None
    original_code: str | None = None
    original_template: str | None = None
    code_filename: str | None = None
    template_name: str | None = None


def html(strings: tuple[str, ...], values: tuple[Any, ...]) -> Fragment:
    return Fragment(tuple(strings), tuple(values))


def repeat(
    items: Iterable[Any],
    key_fn: Callable[[Any], Any] | None,
    renderer: Callable[[Any, int], Any],
) -> Repeat:
    """Render ``items`` in order; keys come from ``key_fn`` or default to the index."""
    entries = []
    for index, item in enumerate(items):
        key = key_fn(item) if key_fn is not None else index
        entries.append((key, renderer(item, index)))
    return Repeat(tuple(entries))


def conditional(test: Any, on_true: Callable[[], Any], on_false: Callable[[], Any]) -> Any:
    return on_true() if test else on_false()


def style_map(styles: Mapping[str, Any]) -> StyleMap:
    return StyleMap(dict(styles or {}))


def class_map(classes: Mapping[str, Any]) -> ClassMap:
    return ClassMap(dict(classes or {}))


def ref(callback: Callable[[Any], Any]) -> RefBinding:
    return RefBinding(callback)


def log(value: Any) -> None:
    logger.info("%r", value)


def default_runtime(**overrides: Any) -> RuntimeEnv:
    """RuntimeEnv wired to the string-producing default primitives.

    Example:
        >>> env = default_runtime(log=print)
    """
    primitives: dict[str, Any] = {
        "html": html,
        "repeat": repeat,
        "conditional": conditional,
        "style_map": style_map,
        "class_map": class_map,
        "ref": ref,
        "log": log,
    }
    primitives.update(overrides)
    return RuntimeEnv(**primitives)
