"""Default fragment types and the string renderer.

A Fragment is what a render function returns: static markup strings
interleaved with dynamic values, like a tagged template literal. The
host decides what to do with it. ``render_to_string`` is the built-in
host: it serializes a fragment tree to HTML text. ``iter_bindings``
walks a fragment for the live parts a DOM host would attach (events,
properties, element refs).

Serialization rules:
    None / False-y boolean attributes  ->  ""
    str, int, ...                      ->  html-escaped text
    Fragment / Repeat                  ->  spliced in as markup
    StyleMap                           ->  "prop: value; ..."
    ClassMap                           ->  "a b c" (truthy keys)
    EventBinding / PropertyBinding / RefBinding  ->  "" (not markup)

"""

from __future__ import annotations

import html
import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Fragment:
    """Static strings and dynamic values; ``len(strings) == len(values) + 1``."""

    strings: tuple[str, ...]
    values: tuple[Any, ...]

    def __str__(self) -> str:
        return render_to_string(self)


@dataclass(frozen=True, slots=True)
class Repeat:
    """Output of ``repeat``: ``(key, fragment)`` entries in iteration order."""

    entries: tuple[tuple[Any, Any], ...]

    @property
    def keys(self) -> tuple[Any, ...]:
        return tuple(key for key, _ in self.entries)

    @property
    def fragments(self) -> tuple[Any, ...]:
        return tuple(fragment for _, fragment in self.entries)


@dataclass(frozen=True, slots=True)
class EventBinding:
    """``@name``: handler to attach for event ``name``."""

    name: str
    handler: Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class BooleanAttribute:
    """``?name``: attribute present iff ``value`` is truthy."""

    name: str
    value: Any


@dataclass(frozen=True, slots=True)
class PropertyBinding:
    """``.name``: value to assign to the element property ``name``."""

    name: str
    value: Any


@dataclass(frozen=True, slots=True)
class StyleMap:
    styles: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class ClassMap:
    classes: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class RefBinding:
    """``$ref``: callback to invoke with the rendered element."""

    callback: Callable[[Any], Any]


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def css_property_name(name: str) -> str:
    """``backgroundColor`` -> ``background-color``; custom properties pass through."""
    if name.startswith("--") or "-" in name:
        return name
    return _CAMEL_BOUNDARY.sub(r"-\1", name).lower()


def style_text(styles: Mapping[str, Any]) -> str:
    parts = []
    for prop, value in styles.items():
        if value is None or value is False:
            continue
        parts.append(f"{css_property_name(prop)}: {value};")
    return " ".join(parts)


def class_text(classes: Mapping[str, Any]) -> str:
    return " ".join(name for name, enabled in classes.items() if enabled)


def _serialize(value: Any, out: list[str]) -> None:
    if value is None:
        return
    if isinstance(value, Fragment):
        for i, string in enumerate(value.strings):
            out.append(string)
            if i < len(value.values):
                _serialize(value.values[i], out)
    elif isinstance(value, Repeat):
        for _, fragment in value.entries:
            _serialize(fragment, out)
    elif isinstance(value, BooleanAttribute):
        if value.value:
            out.append(f" {value.name}")
    elif isinstance(value, StyleMap):
        out.append(html.escape(style_text(value.styles), quote=True))
    elif isinstance(value, ClassMap):
        out.append(html.escape(class_text(value.classes), quote=True))
    elif isinstance(value, (EventBinding, PropertyBinding, RefBinding)):
        return
    else:
        out.append(html.escape(str(value), quote=True))


def render_to_string(value: Any) -> str:
    """Serialize a fragment tree to HTML text."""
    out: list[str] = []
    _serialize(value, out)
    return "".join(out)


def iter_bindings(value: Any) -> Iterator[Any]:
    """Yield EventBinding, PropertyBinding and RefBinding parts, depth-first."""
    if isinstance(value, Fragment):
        for item in value.values:
            yield from iter_bindings(item)
    elif isinstance(value, Repeat):
        for _, fragment in value.entries:
            yield from iter_bindings(fragment)
    elif isinstance(value, (EventBinding, PropertyBinding, RefBinding)):
        yield value
