"""Template loaders for the Tessera environment.

A loader turns a template name into ``(source, filename)`` for
``Environment.get_template`` and can enumerate the names it knows.
``filename`` is informational (log lines, error context) and may be None.

Built-in Loaders:
- `FileSystemLoader`: component files under one or more directories
- `DictLoader`: an in-memory mapping (tests, single-file apps)
- `FunctionLoader`: any callable returning source

Component names may omit the extension: with the default
``extensions=(".html",)``, ``"todo_list"`` and ``"todo_list.html"`` load
the same file.

Custom Loaders:
Anything with ``get_source`` and ``list_templates`` works:
    ```python
    class RegistryLoader:
        def get_source(self, name: str) -> tuple[str, str | None]:
            component = registry.get(name)
            if component is None:
                raise TemplateNotFoundError(f"Template '{name}' not found")
            return component.markup, f"component://{name}"

        def list_templates(self) -> list[str]:
            return sorted(registry)
    ```

"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from difflib import get_close_matches
from pathlib import Path, PurePosixPath

from tessera.environment.exceptions import TemplateNotFoundError

_MAX_LISTED = 10


def not_found(name: str, known: Iterable[str], where: str | None = None) -> TemplateNotFoundError:
    """TemplateNotFoundError naming the closest known template, or a few of them."""
    known = sorted(known)
    msg = f"Template '{name}' not found"
    if where:
        msg += f" in: {where}"
    close = get_close_matches(name, known, n=1, cutoff=0.6)
    if close:
        return TemplateNotFoundError(f"{msg}. Did you mean '{close[0]}'?")
    if known:
        shown = ", ".join(known[:_MAX_LISTED])
        if len(known) > _MAX_LISTED:
            shown += f" ... ({len(known)} total)"
        msg += f". Available: {shown}"
    return TemplateNotFoundError(msg)


class FileSystemLoader:
    """Load component templates from directories; the first directory holding the name wins.

    Names are relative POSIX paths. Absolute names and names that climb out
    of a directory (``../secret.html``) are never resolved.

    Example:
            >>> loader = FileSystemLoader(["components/custom/", "components/base/"])
            >>> source, filename = loader.get_source("todo_list")
            >>> filename
            'components/custom/todo_list.html'

    Raises:
        TemplateNotFoundError: The name resolves in none of the directories
    """

    __slots__ = ("_encoding", "_extensions", "_paths")

    def __init__(
        self,
        paths: str | Path | Iterable[str | Path],
        encoding: str = "utf-8",
        extensions: tuple[str, ...] = (".html",),
    ):
        if isinstance(paths, (str, Path)):
            paths = [paths]
        self._paths = [Path(p) for p in paths]
        self._encoding = encoding
        self._extensions = extensions

    def _candidates(self, name: str) -> list[PurePosixPath]:
        relative = PurePosixPath(name)
        if not relative.name or relative.is_absolute() or ".." in relative.parts:
            return []
        if relative.suffix in self._extensions:
            return [relative]
        return [relative, *(relative.with_name(relative.name + ext) for ext in self._extensions)]

    def get_source(self, name: str) -> tuple[str, str]:
        candidates = self._candidates(name)
        for base in self._paths:
            for relative in candidates:
                path = base.joinpath(*relative.parts)
                if path.is_file():
                    return path.read_text(self._encoding), str(path)
        raise not_found(name, self.list_templates(), ", ".join(str(p) for p in self._paths))

    def list_templates(self) -> list[str]:
        found: set[str] = set()
        for base in self._paths:
            if not base.is_dir():
                continue
            for ext in self._extensions:
                found.update(p.relative_to(base).as_posix() for p in base.rglob(f"*{ext}"))
        return sorted(found)


class DictLoader:
    """Templates from a mapping of name to source; the filename is always None.

    Example:
            >>> env = Environment(loader=DictLoader({"badge.html": "<b>{{ n }}</b>"}))
            >>> env.get_template("badge.html", {"n": 3}).render_to_string()
            '<b>3</b>'
    """

    __slots__ = ("_mapping",)

    def __init__(self, mapping: Mapping[str, str]):
        self._mapping = mapping

    def get_source(self, name: str) -> tuple[str, None]:
        try:
            return self._mapping[name], None
        except KeyError:
            raise not_found(name, self._mapping) from None

    def list_templates(self) -> list[str]:
        return sorted(self._mapping)


class FunctionLoader:
    """Adapt ``load(name)`` to the loader interface.

    ``load`` returns the source, a ``(source, filename)`` pair, or None
    for an unknown name. A bare source string is reported with the
    filename ``"<function>"``.
    """

    __slots__ = ("_load",)

    def __init__(self, load: Callable[[str], str | tuple[str, str | None] | None]):
        self._load = load

    def get_source(self, name: str) -> tuple[str, str | None]:
        loaded = self._load(name)
        if loaded is None:
            raise not_found(name, ())
        return (loaded, "<function>") if isinstance(loaded, str) else loaded

    def list_templates(self) -> list[str]:
        """Always empty: a function cannot be enumerated."""
        return []
