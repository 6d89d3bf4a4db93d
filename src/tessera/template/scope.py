"""Observable scope: the mutable data a template renders from.

Any mutable mapping works as a scope. ``Scope`` adds what a host needs
to re-render on change: subscribers are notified whenever a public key
(one not starting with ``_``) is set or deleted, including assignments
made by the template's own ``*do``, ``@event`` and ``$ref`` statements.

Example:
    >>> scope = define_scope({"count": 0}, template="<b>{{ count }}</b>")
    >>> unsubscribe = scope.subscribe(lambda s, key: print("changed", key))
    >>> scope["count"] = 1
    changed count
    >>> scope.template.render_to_string()
    '<b>1</b>'

"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, MutableMapping
from typing import TYPE_CHECKING, Any

from tessera.environment.exceptions import ErrorCode, TemplateError

if TYPE_CHECKING:
    from tessera.template.core import CompiledTemplate

Subscriber = Callable[["Scope", "str | None"], None]


class Scope(MutableMapping[str, Any]):
    """Mutable mapping that notifies subscribers of public changes.

    Attributes:
        template: The CompiledTemplate bound to this scope. Reading it
            before one is bound raises TemplateError.
    """

    __slots__ = ("_data", "_subscribers", "_template")

    def __init__(self, data: Mapping[str, Any] | None = None, /, **values: Any):
        self._data: dict[str, Any] = dict(data or {})
        self._data.update(values)
        self._subscribers: list[Subscriber] = []
        self._template: CompiledTemplate | None = None

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value
        if not key.startswith("_"):
            self._notify(key)

    def __delitem__(self, key: str) -> None:
        del self._data[key]
        if not key.startswith("_"):
            self._notify(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Scope({self._data!r})"

    def _notify(self, key: str | None) -> None:
        for callback in list(self._subscribers):
            callback(self, key)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call ``callback(scope, key)`` on every public change.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def request_update(self) -> None:
        """Notify subscribers without a change (``key`` is None)."""
        self._notify(None)

    def raw(self) -> dict[str, Any]:
        """Copy of every entry, private keys included."""
        return dict(self._data)

    def public(self) -> dict[str, Any]:
        """Copy of the entries whose keys do not start with ``_``."""
        return {k: v for k, v in self._data.items() if not k.startswith("_")}

    @property
    def template(self) -> CompiledTemplate:
        if self._template is None:
            raise TemplateError(
                "Template is not defined for this scope. "
                "Pass template= to define_scope() or assign scope.template.",
                code=ErrorCode.TEMPLATE_NOT_BOUND,
            )
        return self._template

    @template.setter
    def template(self, template: CompiledTemplate) -> None:
        from tessera.template.core import CompiledTemplate

        if not isinstance(template, CompiledTemplate):
            raise TypeError(
                f"scope.template must be a CompiledTemplate, got {type(template).__name__}"
            )
        # The template's scope setter calls back into bind()
        template.scope = self

    def bind(self, template: CompiledTemplate) -> None:
        """Record ``template`` as this scope's template without rebinding it."""
        self._template = template


def define_scope(
    data: Mapping[str, Any] | None = None,
    *,
    template: CompiledTemplate | str | None = None,
    **values: Any,
) -> Scope:
    """Create a Scope and optionally bind a template to it.

    Args:
        data: Initial entries
        template: Template source text (compiled lazily) or a CompiledTemplate
        **values: More initial entries

    Raises:
        TypeError: ``template`` is neither a string nor a CompiledTemplate.
    """
    from tessera.template.core import CompiledTemplate

    scope = Scope(data, **values)
    if template is None:
        return scope
    if isinstance(template, str):
        template = CompiledTemplate(template)
    elif not isinstance(template, CompiledTemplate):
        raise TypeError(
            "Invalid value for template: expected str or CompiledTemplate, "
            f"found {type(template).__name__}"
        )
    scope.template = template
    return scope
