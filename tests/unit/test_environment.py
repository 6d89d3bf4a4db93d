"""Tests for Environment configuration, loaders and the compile cache."""

from __future__ import annotations

import pytest

from tessera import (
    DictLoader,
    Environment,
    FileSystemLoader,
    FunctionLoader,
    TemplateNotFoundError,
    default_runtime,
)
from tessera.environment.core import default_environment
from tessera.environment.exceptions import ErrorCode


class TestDictLoader:
    """Templates from an in-memory mapping."""

    def test_get_template(self, env_with_loader: Environment) -> None:
        t = env_with_loader.get_template("greeting.html", {"name": "Ada"})
        assert t.name == "greeting.html"
        assert t.render_to_string() == "<p>Hello, Ada!</p>"

    def test_counter_component(self, env_with_loader: Environment) -> None:
        scope = {"count": 5}
        t = env_with_loader.get_template("counter.html", scope)
        assert "<span>5</span>" in t.render_to_string()

    def test_todo_list_component(self, env_with_loader: Environment) -> None:
        todos = [{"id": 1, "title": "a", "done": True}, {"id": 2, "title": "b", "done": False}]
        t = env_with_loader.get_template("todo_list.html", {"todos": todos})
        assert t.render_to_string() == '<ul><li class="done">a</li><li class="">b</li></ul>'

    def test_list_templates(self, env_with_loader: Environment) -> None:
        assert env_with_loader.list_templates() == [
            "counter.html",
            "greeting.html",
            "todo_list.html",
        ]

    def test_missing_with_suggestion(self, env_with_loader: Environment) -> None:
        with pytest.raises(TemplateNotFoundError) as exc_info:
            env_with_loader.get_template("greting.html")
        assert "Did you mean 'greeting.html'?" in str(exc_info.value)
        assert exc_info.value.code == ErrorCode.TEMPLATE_NOT_FOUND

    def test_missing_lists_available(self) -> None:
        env = Environment(loader=DictLoader({"a.html": ""}))
        with pytest.raises(TemplateNotFoundError, match=r"Available: a\.html"):
            env.get_template("zzzzzz")


class TestFileSystemLoader:
    """Templates from directories."""

    def test_load_from_directory(self, tmp_path) -> None:
        (tmp_path / "card.html").write_text("<div>{{ title }}</div>")
        env = Environment(loader=FileSystemLoader(tmp_path))
        t = env.get_template("card.html", {"title": "T"})
        assert t.render_to_string() == "<div>T</div>"

    def test_first_directory_wins(self, tmp_path) -> None:
        custom = tmp_path / "custom"
        base = tmp_path / "base"
        custom.mkdir()
        base.mkdir()
        (custom / "x.html").write_text("custom")
        (base / "x.html").write_text("base")
        (base / "y.html").write_text("only base")
        loader = FileSystemLoader([custom, str(base)])
        assert loader.get_source("x.html") == ("custom", str(custom / "x.html"))
        assert loader.get_source("y.html")[0] == "only base"

    def test_list_templates_recurses(self, tmp_path) -> None:
        (tmp_path / "widgets").mkdir()
        (tmp_path / "widgets" / "button.html").write_text("")
        (tmp_path / "page.html").write_text("")
        (tmp_path / "notes.txt").write_text("")
        loader = FileSystemLoader([tmp_path, tmp_path / "missing"])
        assert loader.list_templates() == ["page.html", "widgets/button.html"]

    def test_missing(self, tmp_path) -> None:
        loader = FileSystemLoader(tmp_path)
        with pytest.raises(TemplateNotFoundError, match="Template 'nope.html' not found in"):
            loader.get_source("nope.html")

    def test_extension_is_optional(self, tmp_path) -> None:
        (tmp_path / "widgets").mkdir()
        (tmp_path / "widgets" / "badge.html").write_text("<b></b>")
        loader = FileSystemLoader(tmp_path)
        assert loader.get_source("widgets/badge")[0] == "<b></b>"
        assert loader.get_source("widgets/badge.html")[0] == "<b></b>"

    def test_custom_extensions(self, tmp_path) -> None:
        (tmp_path / "card.tpl").write_text("tpl")
        (tmp_path / "card.html").write_text("html")
        loader = FileSystemLoader(tmp_path, extensions=(".tpl",))
        assert loader.get_source("card")[0] == "tpl"
        assert loader.list_templates() == ["card.tpl"]

    @pytest.mark.parametrize("name", ["../secret.html", "/etc/passwd", ""])
    def test_names_outside_the_directory_are_not_found(self, tmp_path, name: str) -> None:
        components = tmp_path / "components"
        components.mkdir()
        (tmp_path / "secret.html").write_text("secret")
        with pytest.raises(TemplateNotFoundError):
            FileSystemLoader(components).get_source(name)

    def test_missing_suggests_close_name(self, tmp_path) -> None:
        (tmp_path / "todo_list.html").write_text("")
        with pytest.raises(TemplateNotFoundError, match="Did you mean 'todo_list.html'"):
            FileSystemLoader(tmp_path).get_source("todo_lst.html")

    def test_encoding(self, tmp_path) -> None:
        (tmp_path / "latin.html").write_bytes("<p>café</p>".encode("latin-1"))
        loader = FileSystemLoader(tmp_path, encoding="latin-1")
        assert loader.get_source("latin.html")[0] == "<p>café</p>"


class TestFunctionLoader:
    """A callable as a loader."""

    def test_string_result(self) -> None:
        loader = FunctionLoader(lambda name: f"<b>{name}</b>" if name == "x" else None)
        assert loader.get_source("x") == ("<b>x</b>", "<function>")
        assert loader.list_templates() == []

    def test_tuple_result(self) -> None:
        loader = FunctionLoader(lambda name: ("<i></i>", "registry://i"))
        assert loader.get_source("i") == ("<i></i>", "registry://i")

    def test_none_is_not_found(self) -> None:
        env = Environment(loader=FunctionLoader(lambda name: None))
        with pytest.raises(TemplateNotFoundError, match="Template 'x' not found"):
            env.get_template("x")


class TestNoLoader:
    """An Environment without a loader still compiles strings."""

    def test_get_template_fails(self, env: Environment) -> None:
        with pytest.raises(TemplateNotFoundError, match="no loader configured"):
            env.get_template("page.html")

    def test_list_templates_is_empty(self, env: Environment) -> None:
        assert env.list_templates() == []

    def test_parse_only(self, env: Environment) -> None:
        (element,) = env.parse("<p>x</p>")
        assert element.tag_name == "p"


class TestCompileCache:
    """Compiled functions are cached by (name, source)."""

    def test_same_key_returns_same_function(self, env: Environment) -> None:
        assert env.compile("<p></p>") is env.compile("<p></p>")
        assert env.cache_info() == {"size": 1, "max_size": 256}

    def test_name_is_part_of_the_key(self, env: Environment) -> None:
        assert env.compile("<p></p>", "a.html") is not env.compile("<p></p>", "b.html")

    def test_least_recently_used_is_evicted(self) -> None:
        env = Environment(cache_size=2)
        a = env.compile("<a></a>")
        env.compile("<b></b>")
        assert env.compile("<a></a>") is a
        env.compile("<c></c>")
        assert env.cache_info()["size"] == 2
        assert env.compile("<a></a>") is a
        assert env.cache_info()["size"] == 2

    def test_clear_cache(self, env: Environment) -> None:
        first = env.compile("<p></p>")
        env.clear_cache()
        assert env.cache_info()["size"] == 0
        assert env.compile("<p></p>") is not first

    def test_diagnostics_setting_reaches_compiler(self, env_plain: Environment) -> None:
        fn = env_plain.compile("<p>{{ x }}</p>")
        assert not fn.diagnostics


class TestConfiguration:
    """Environment-wide settings."""

    def test_runtime_factory_is_used_by_render(self) -> None:
        seen = []
        env = Environment(runtime_factory=lambda: default_runtime(log=seen.append))
        env.from_string('<p *log="42">x</p>', {}).render()
        assert seen == [42]

    def test_from_string_name(self, env: Environment) -> None:
        t = env.from_string("<p></p>", {}, name="inline.html")
        assert t.name == "inline.html"
        assert t.environment is env

    def test_default_environment_is_shared(self) -> None:
        assert default_environment() is default_environment()

    def test_package_makes_no_free_threading_claim(self) -> None:
        import tessera

        assert not hasattr(tessera, "_Py_mod_gil")
