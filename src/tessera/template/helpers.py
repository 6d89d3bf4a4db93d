"""Pure runtime helper functions injected into the generated namespace.

These functions are called by compiled template code at render time.
None of them close over Environment state: they use only their
parameters.

"""

from __future__ import annotations

import builtins
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from tessera.runtime.diagnostics import catch_error
from tessera.runtime.fragments import BooleanAttribute, EventBinding, PropertyBinding


def lookup(scope: Mapping[str, Any], var_name: str) -> Any:
    """Resolve a free name from an embedded expression.

    Order: scope key, then the scope object itself for ``scope``, then
    Python builtins. Anything else raises UndefinedError (strict mode)
    with the scope's keys offered as "Did you mean?" candidates.
    """
    try:
        return scope[var_name]
    except KeyError:
        pass
    if var_name == "scope":
        return scope
    try:
        return getattr(builtins, var_name)
    except AttributeError:
        from tessera.environment.exceptions import UndefinedError

        names = frozenset(k for k in scope if isinstance(k, str))
        raise UndefinedError(var_name, available_names=names) from None


def iter_values(source: Any) -> list[Any]:
    """Items for ``*for="x of source"``: mapping values, else the iterable itself."""
    if isinstance(source, Mapping):
        return list(source.values())
    return list(source)


def iter_keys(source: Any) -> list[Any]:
    """Items for ``*for="k in source"``.

    Mapping -> keys; sequence -> indices; other objects -> public
    attribute names (``vars()`` without ``_``-prefixed names).
    """
    if isinstance(source, Mapping):
        return list(source.keys())
    if isinstance(source, (Sequence, str)):
        return list(range(len(source)))
    if hasattr(source, "__dict__"):
        return [k for k in vars(source) if not k.startswith("_")]
    if isinstance(source, Iterable):
        return list(range(len(list(source))))
    raise TypeError(f"'{type(source).__name__}' object has no enumerable keys")


# =============================================================================
# Shared Base Namespace
# =============================================================================
# Copied once per build. Names are underscore-prefixed so they can never
# collide with template names (those resolve through _lookup).
# =============================================================================

STATIC_NAMESPACE: dict[str, Any] = {
    "__builtins__": {},
    "_lookup": lookup,
    "_iter_values": iter_values,
    "_iter_keys": iter_keys,
    "_default_catch": catch_error,
    "_EventBinding": EventBinding,
    "_BooleanAttribute": BooleanAttribute,
    "_PropertyBinding": PropertyBinding,
}
