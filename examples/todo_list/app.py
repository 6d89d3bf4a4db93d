"""Todo list -- an interactive component driven by its scope.

Loads a component from disk with FileSystemLoader and binds it to an
observable Scope. A host (here, plain Python standing in for a browser)
collects the event handlers from each render and calls them; handlers
mutate the scope, subscribers hear about it, and the next render shows
the new state.

Run:
    python app.py
"""

from pathlib import Path

from tessera import Environment, FileSystemLoader, define_scope, iter_bindings
from tessera.runtime import EventBinding

components_dir = Path(__file__).parent / "components"
env = Environment(loader=FileSystemLoader(components_dir))

scope = define_scope(
    title="Groceries",
    draft="",
    next_id=3,
    todos=[
        {"id": 1, "title": "milk", "done": False},
        {"id": 2, "title": "bread", "done": True},
    ],
)
template = env.get_template("todo_list.html", scope)

changes: list[str | None] = []
scope.subscribe(lambda s, key: changes.append(key))


def handlers(event_name: str) -> list:
    """Render once and return the handlers bound to ``event_name``, in order."""
    return [
        binding.handler
        for binding in iter_bindings(template.render())
        if isinstance(binding, EventBinding) and binding.name == event_name
    ]


initial_output = template.render_to_string()

# Type "eggs" and press Add
handlers("input")[0]("eggs")
typed_output = template.render_to_string()
handlers("click")[0](None)
added_output = template.render_to_string()

# Tick off "milk" (the first item handler follows the Add button)
handlers("click")[1](None)
final_output = template.render_to_string()


def main() -> None:
    for label, output in [
        ("Initial", initial_output),
        ("After adding", added_output),
        ("After ticking off milk", final_output),
    ]:
        print(f"=== {label} ===")
        print(output)
        print()
    print("Scope changes:", changes)


if __name__ == "__main__":
    main()
