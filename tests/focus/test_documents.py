import unittest

from focus import Container, Entity, InMemoryDocumentStore
from focus.documents import (
    build_index,
    display_title,
    entity_at,
    find_path,
    update_at_path,
)


def _forest() -> tuple[Entity, ...]:
    return (
        Entity(
            id="lane-1",
            text="Lane 1",
            children=(
                Entity(id="a", text="A"),
                Entity(id="b", text="B", children=(Entity(id="b1", text="B1"),)),
            ),
        ),
        Entity(id="lane-2", text="Lane 2", children=(Entity(id="c", text="C"),)),
    )


class DocumentHelpersTests(unittest.TestCase):
    def test_display_title_uses_first_line_without_markup(self) -> None:
        self.assertEqual("Write report", display_title("<b>Write</b>&nbsp;report\nbody"))
        self.assertEqual("Untitled", display_title("<br>\nbody"))

    def test_find_path_and_entity_at(self) -> None:
        forest = _forest()
        path = find_path(forest, "b1")

        self.assertEqual((0, 1, 0), path)
        self.assertEqual("B1", entity_at(forest, path).text)
        self.assertIsNone(find_path(forest, "zzz"))

    def test_update_at_path_copies_only_ancestors(self) -> None:
        forest = _forest()

        updated = update_at_path(
            forest,
            (0, 1, 0),
            lambda entity: entity.with_text(entity.text + "!"),
        )

        self.assertEqual("B1!", updated[0].children[1].children[0].text)
        self.assertEqual("B1", forest[0].children[1].children[0].text)
        self.assertIsNot(forest[0], updated[0])
        self.assertIsNot(forest[0].children[1], updated[0].children[1])
        self.assertIs(forest[0].children[0], updated[0].children[0])
        self.assertIs(forest[1], updated[1])

    def test_update_at_path_rejects_empty_path(self) -> None:
        with self.assertRaises(ValueError):
            update_at_path(_forest(), (), lambda entity: entity)

    def test_build_index_keeps_first_owner(self) -> None:
        first = Container(id="first", name="first", children=_forest())
        second = Container(id="second", name="second", children=(Entity(id="a", text="A"),))

        index = build_index([first, second])

        self.assertIs(first, index["a"])
        self.assertIs(first, index["b1"])


class InMemoryDocumentStoreTests(unittest.TestCase):
    def test_replace_updates_in_place_or_appends(self) -> None:
        store = InMemoryDocumentStore([Container(id="x", name="x")])

        store.replace(Container(id="x", name="renamed"))
        store.replace(Container(id="y", name="y"))

        self.assertEqual(["renamed", "y"], [c.name for c in store.containers()])

        store.remove("x")
        self.assertEqual(["y"], [c.id for c in store.containers()])


if __name__ == "__main__":
    unittest.main()
