"""
Tests for the collection mutation surface.
"""

import pytest
from pydantic import ValidationError

from synthverify.curation.collection import ItemCollection
from synthverify.exceptions import ItemNotFoundError
from synthverify.models.item import Item


@pytest.fixture
def collection() -> ItemCollection:
    return ItemCollection(
        [
            Item(id="a", query="first", answer="one"),
            Item(id="b", query="second", answer="two"),
        ]
    )


class TestSetData:
    """Tests for whole-collection replacement."""

    def test_set_data_with_sequence(self, collection: ItemCollection):
        collection.set_data([Item(id="c", query="third")])

        assert [item.id for item in collection] == ["c"]
        assert collection.generation == 1

    def test_set_data_with_function_receives_current_tuple(
        self, collection: ItemCollection
    ):
        seen = []

        def append(items):
            seen.append(items)
            return list(items) + [Item(id="c")]

        result = collection.set_data(append)

        assert seen[0] is not result
        assert len(seen[0]) == 2
        assert [item.id for item in result] == ["a", "b", "c"]

    def test_previous_tuple_is_not_mutated(self, collection: ItemCollection):
        before = collection.items

        collection.update_item("a", answer="changed")

        assert before[0].answer == "one"
        assert collection.get("a").answer == "changed"
        assert collection.items is not before

    def test_duplicate_ids_rejected(self, collection: ItemCollection):
        with pytest.raises(ValueError, match="Duplicate item id"):
            collection.set_data([Item(id="x"), Item(id="x")])

        assert len(collection) == 2

    def test_listeners_receive_previous_and_current(self, collection: ItemCollection):
        calls = []
        collection.subscribe(lambda previous, current: calls.append((previous, current)))
        before = collection.items

        collection.set_data(lambda items: items[:1])

        assert len(calls) == 1
        assert calls[0][0] is before
        assert [item.id for item in calls[0][1]] == ["a"]

    def test_unsubscribe_stops_notifications(self, collection: ItemCollection):
        calls = []
        unsubscribe = collection.subscribe(lambda p, c: calls.append(c))

        unsubscribe()
        collection.set_data([])

        assert calls == []

    def test_failing_listener_does_not_break_update(self, collection: ItemCollection):
        def broken(previous, current):
            raise RuntimeError("listener failure")

        collection.subscribe(broken)
        collection.set_data([])

        assert len(collection) == 0


class TestItemUpdates:
    """Tests for single-item helpers."""

    def test_update_item_returns_new_version(self, collection: ItemCollection):
        updated = collection.update_item("b", score=0.5)

        assert updated.score == 0.5
        assert collection.get("b") is updated

    def test_update_missing_item_returns_none(self, collection: ItemCollection):
        generation = collection.generation

        assert collection.update_item("missing", score=1.0) is None
        assert collection.generation == generation

    def test_replace_item(self, collection: ItemCollection):
        assert collection.replace_item("a", Item(id="a", query="replaced")) is True
        assert collection.get("a").query == "replaced"
        assert collection.replace_item("missing", Item(id="missing")) is False

    def test_edit_item_marks_dirty(self, collection: ItemCollection):
        edited = collection.edit_item("a", {"answer": "edited", "notes": "reviewed"})

        assert edited.has_unsaved_changes is True
        assert edited.answer == "edited"
        assert edited.get_value("notes") == "reviewed"
        assert collection.dirty_items() == [edited]

    def test_edit_item_cannot_change_id(self, collection: ItemCollection):
        edited = collection.edit_item("a", {"id": "z", "answer": "edited"})

        assert edited.id == "a"

    def test_edit_missing_item_raises(self, collection: ItemCollection):
        with pytest.raises(ItemNotFoundError):
            collection.edit_item("missing", {"answer": "x"})

    def test_edit_with_invalid_value_leaves_collection_unchanged(self, collection: ItemCollection):
        generation = collection.generation

        with pytest.raises(ValidationError):
            collection.edit_item("a", {"is_discarded": "not-a-bool"})

        assert collection.generation == generation
        assert collection.get("a").has_unsaved_changes is False

    def test_require(self, collection: ItemCollection):
        assert collection.require("a").query == "first"
        with pytest.raises(ItemNotFoundError) as exc_info:
            collection.require("missing")
        assert exc_info.value.status_code == 404
