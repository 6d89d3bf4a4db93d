"""DictLoader -- in-memory templates without a filesystem.

Templates from a dictionary. No components directory needed.
Use case: tests, generated templates, single-file apps.

Run:
    python app.py
"""

from tessera import DictLoader, Environment

templates = {
    "nav.html": """\
<nav>
  <a *for="item of nav_items; item['url']" href="{{ item['url'] }}"
     ~class="{'active': item['url'] == current}">{{ item['label'] }}</a>
</nav>
""",
    "page.html": """\
<main>
  <h1>{{ heading }}</h1>
  <p *if="message">{{ message }}</p>
</main>
""",
}

env = Environment(loader=DictLoader(templates))

scope = {
    "nav_items": [
        {"url": "/", "label": "Home"},
        {"url": "/about", "label": "About"},
    ],
    "current": "/about",
    "heading": "In-Memory Templates",
    "message": "No filesystem required. Templates loaded from a dict.",
}

nav_output = env.get_template("nav.html", scope).render_to_string()
page_output = env.get_template("page.html", scope).render_to_string()
available = env.list_templates()


def main() -> None:
    print(nav_output)
    print(page_output)
    print("Templates:", ", ".join(available))


if __name__ == "__main__":
    main()
