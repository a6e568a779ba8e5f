"""Unit tests for SessionState and OrderedIdSet."""

import pytest

from archive_gallery.core import ImageRecord, OrderedIdSet, SessionState


def make_images(archive_id: str, count: int, archive_name: str = "") -> list:
    images = []
    for i in range(count):
        image = ImageRecord(name=f"{archive_id}-{i}.jpg", source=f"{archive_id}/{i}.jpg", width=10, height=20)
        image.stamp_provenance(archive_name or archive_id, archive_id)
        images.append(image)
    return images


class TestOrderedIdSet:
    """Tests for the insertion-ordered id set."""

    def test_keeps_insertion_order(self):
        ids = OrderedIdSet(["b", "a", "c"])
        assert list(ids) == ["b", "a", "c"]
        assert ids.first() == "b"
        assert ids.last() == "c"

    def test_re_adding_keeps_original_position(self):
        ids = OrderedIdSet(["a", "b"])
        ids.add("a")
        assert list(ids) == ["a", "b"]
        assert len(ids) == 2

    def test_discard_and_membership(self):
        ids = OrderedIdSet(["a", "b", "c"])
        ids.discard("b")
        ids.discard("missing")
        assert "b" not in ids
        assert list(ids) == ["a", "c"]

    def test_empty_set_has_no_edges(self):
        ids = OrderedIdSet()
        assert ids.first() is None
        assert ids.last() is None
        assert not ids

    def test_compares_with_plain_sets(self):
        assert OrderedIdSet(["a", "b"]) == {"b", "a"}
        assert OrderedIdSet(["a", "b"]) != OrderedIdSet(["b", "a"])


class TestSessionState:
    """Tests for session mutations and the emptiness invariant."""

    def test_new_state_is_empty_and_consistent(self):
        state = SessionState()
        assert state.is_empty
        assert state.current_archive_id is None
        assert state.is_consistent()

    def test_replace_with_single_archive(self):
        state = SessionState()
        state.replace_with("old", make_images("old", 2), history_id="h-old")
        state.current_index = 1

        state.replace_with("new", make_images("new", 3), history_id="h-new")

        assert len(state.current_images) == 3
        assert state.current_index == 0
        assert state.loaded_archive_ids == {"new"}
        assert state.selected_history_items == {"h-new"}
        assert state.current_archive_id == "new"
        assert state.is_consistent()

    def test_append_leaves_index_untouched(self):
        state = SessionState()
        state.replace_with("a", make_images("a", 3))
        state.current_index = 2

        state.append_images(make_images("b", 4))
        state.add_archive("b")

        assert state.current_index == 2
        assert len(state.current_images) == 7
        assert state.is_consistent()

    def test_prepend_shifts_index_by_count(self):
        state = SessionState()
        state.replace_with("b", make_images("b", 3))
        viewed = state.current_images[1]
        state.current_index = 1

        state.prepend_images(make_images("a", 5))
        state.add_archive("a")

        assert state.current_index == 6
        assert state.current_images[state.current_index] is viewed

    def test_remove_archive_filters_images(self):
        state = SessionState()
        state.replace_with("a", make_images("a", 2), history_id="ha")
        state.append_images(make_images("b", 3))
        state.add_archive("b", history_id="hb")

        removed = state.remove_archive("a", history_id="ha")

        assert removed == 2
        assert all(image.original_archive_id == "b" for image in state.current_images)
        assert state.loaded_archive_ids == {"b"}
        assert state.selected_history_items == {"hb"}
        assert state.current_archive_id == "b"

    def test_remove_current_archive_reassigns_to_earliest_remaining(self):
        state = SessionState()
        state.replace_with("a", make_images("a", 1))
        for archive_id in ("b", "c"):
            state.append_images(make_images(archive_id, 1))
            state.add_archive(archive_id)
        assert state.current_archive_id == "c"

        state.remove_archive("c")

        assert state.current_archive_id == "a"

    def test_remove_archive_keeps_viewed_image(self):
        state = SessionState()
        state.replace_with("b", make_images("b", 2))
        state.prepend_images(make_images("a", 3))
        state.add_archive("a")
        state.current_index = 4
        viewed = state.current_images[4]

        state.remove_archive("a")

        assert state.current_images[state.current_index] is viewed

    def test_reset_returns_to_empty(self):
        state = SessionState()
        state.replace_with("a", make_images("a", 2), history_id="h")

        state.reset()

        assert state.current_images == []
        assert state.loaded_archive_ids == set()
        assert state.selected_history_items == set()
        assert state.current_archive_id is None
        assert state.is_consistent()

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda s: setattr(s, "current_archive_id", None),
            lambda s: s.loaded_archive_ids.clear(),
            lambda s: setattr(s, "current_images", []),
            lambda s: s.loaded_archive_ids.discard("a"),
        ],
    )
    def test_inconsistent_states_are_detected(self, mutate):
        state = SessionState()
        state.replace_with("a", make_images("a", 2))
        state.append_images(make_images("b", 1))
        state.add_archive("b")
        state.current_archive_id = "a"

        mutate(state)

        assert not state.is_consistent()
