"""Tests for the dict_loader example."""


class TestDictLoaderApp:
    """Verify the dict_loader example renders correctly."""

    def test_page_content(self, example_app) -> None:
        assert "<h1>In-Memory Templates</h1>" in example_app.page_output
        assert "No filesystem required" in example_app.page_output

    def test_nav_items_rendered(self, example_app) -> None:
        output = example_app.nav_output
        assert '<a href="/" class="">Home</a>' in output
        assert '<a href="/about" class="active">About</a>' in output

    def test_list_templates(self, example_app) -> None:
        assert example_app.available == ["nav.html", "page.html"]
