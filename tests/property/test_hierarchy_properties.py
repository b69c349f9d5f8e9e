"""
Property-based tests for normalization, moves and windowing using Hypothesis.
"""

from hypothesis import assume, given, settings, strategies as st

from spectree.core.integrity import check_integrity
from spectree.core.models import PARENT_FIELDS, PARENT_TYPES, ItemType
from spectree.core.moves import (
    IDLE,
    MoveableItem,
    apply_move,
    execute_move,
    get_potential_parents,
    select_parent,
    start_move,
    validate_move,
)
from spectree.core.normalizer import denormalize, normalize
from spectree.core.virtual_tree import build_tree_nodes, flatten_tree, get_visible_range


titles = st.text(min_size=0, max_size=20)


@st.composite
def nested_payload(draw):
    """Generate a nested payload with unique ids at every level."""
    counter = iter(range(1_000_000))

    def next_id(prefix):
        return f"{prefix}-{next(counter)}"

    def tasks():
        return [
            {"documentId": next_id("task"), "title": draw(titles)}
            for _ in range(draw(st.integers(min_value=0, max_value=3)))
        ]

    def stories():
        return [
            {"documentId": next_id("story"), "title": draw(titles), "tasks": tasks()}
            for _ in range(draw(st.integers(min_value=0, max_value=3)))
        ]

    def features():
        return [
            {"documentId": next_id("feature"), "title": draw(titles), "userStories": stories()}
            for _ in range(draw(st.integers(min_value=0, max_value=3)))
        ]

    return {
        "epics": [
            {"documentId": next_id("epic"), "title": draw(titles), "features": features()}
            for _ in range(draw(st.integers(min_value=0, max_value=4)))
        ],
        "globalInformation": draw(titles),
    }


def _nested_links(payload):
    """(child_id, parent_id) pairs read straight from the nested shape."""
    links = []
    for epic in payload["epics"]:
        for feature in epic.get("features", []):
            links.append((feature["documentId"], epic["documentId"]))
            for story in feature.get("userStories", []):
                links.append((story["documentId"], feature["documentId"]))
                for task in story.get("tasks", []):
                    links.append((task["documentId"], story["documentId"]))
    return links


class TestNormalizationProperties:
    @given(nested_payload())
    @settings(max_examples=100)
    def test_parent_links_preserved(self, payload):
        store = normalize(payload, None, "app")
        for child_id, parent_id in _nested_links(payload):
            level = child_id.split("-")[0]
            item_type = {"feature": ItemType.FEATURE, "story": ItemType.USER_STORY, "task": ItemType.TASK}[level]
            assert store.parent_id_of(item_type, child_id) == parent_id
            assert child_id in store.child_ids_of(PARENT_TYPES[item_type], parent_id)

    @given(nested_payload())
    @settings(max_examples=100)
    def test_rebuilt_links_match_source(self, payload):
        rebuilt = denormalize(normalize(payload, None, "app"))
        assert _nested_links(rebuilt) == _nested_links(payload)

    @given(nested_payload())
    @settings(max_examples=100)
    def test_normalize_denormalize_idempotent(self, payload):
        once = denormalize(normalize(payload, "key", "app"))
        twice = denormalize(normalize(once, "key", "app"))
        assert once == twice

    @given(nested_payload())
    @settings(max_examples=100)
    def test_normalized_store_passes_integrity(self, payload):
        assert check_integrity(normalize(payload, None, "app")).is_valid


class TestMoveProperties:
    @given(nested_payload(), st.data())
    @settings(max_examples=100)
    def test_move_validation(self, payload, data):
        store = normalize(payload, None, "app")
        item_type = data.draw(st.sampled_from([ItemType.FEATURE, ItemType.USER_STORY, ItemType.TASK]))
        level = store.level(item_type)
        assume(level)

        item_id = data.draw(st.sampled_from(sorted(level)))
        current = getattr(level[item_id], PARENT_FIELDS[item_type])
        item = MoveableItem(id=item_id, type=item_type, title="", current_parent_id=current)

        assert not validate_move(item, current, store).valid
        assert not validate_move(item, "does-not-exist", store).valid
        for parent_id in store.level(PARENT_TYPES[item_type]):
            if parent_id != current:
                assert validate_move(item, parent_id, store).valid

    @given(nested_payload(), st.data())
    @settings(max_examples=100)
    def test_committed_move_keeps_invariants(self, payload, data):
        store = normalize(payload, None, "app")
        item_type = data.draw(st.sampled_from([ItemType.FEATURE, ItemType.USER_STORY, ItemType.TASK]))
        level = store.level(item_type)
        assume(level and len(store.level(PARENT_TYPES[item_type])) >= 2)

        item_id = data.draw(st.sampled_from(sorted(level)))
        current = getattr(level[item_id], PARENT_FIELDS[item_type])
        item = MoveableItem(id=item_id, type=item_type, title="", current_parent_id=current)
        candidates = [p for p in get_potential_parents(item_type, current, store) if not p.is_current]
        target = data.draw(st.sampled_from(candidates))

        state = select_parent(start_move(IDLE, item, store), target)
        next_state, result = execute_move(state, store)
        assert next_state is IDLE
        assert result.success

        moved = apply_move(store, result)
        assert check_integrity(moved).is_valid
        assert moved.counts() == store.counts()
        assert moved.parent_id_of(item_type, item_id) == target.id
        assert moved.child_ids_of(PARENT_TYPES[item_type], target.id)[-1] == item_id


class TestWindowProperties:
    @given(
        st.floats(min_value=0, max_value=1e6, allow_nan=False),
        st.floats(min_value=0, max_value=1e4, allow_nan=False),
        st.integers(min_value=0, max_value=10_000),
        st.integers(min_value=1, max_value=100),
        st.integers(min_value=0, max_value=20),
    )
    def test_range_is_well_formed(self, scroll, viewport, count, item_height, overscan):
        window = get_visible_range(scroll, viewport, count, item_height=item_height, overscan=overscan)
        assert 0 <= window.start_index <= window.end_index
        assert window.end_index <= max(0, count - 1)

    @given(
        st.integers(min_value=0, max_value=5_000),
        st.integers(min_value=1, max_value=2_000),
        st.integers(min_value=1, max_value=10_000),
    )
    def test_range_covers_viewport(self, scroll, viewport, count):
        window = get_visible_range(scroll, viewport, count)
        first_visible = scroll // 36
        last_visible = min(count - 1, (scroll + viewport - 1) // 36)
        if first_visible <= count - 1:
            assert window.start_index <= first_visible
            assert window.end_index >= last_visible

    @given(nested_payload())
    @settings(max_examples=50)
    def test_flatten_expansion_bounds(self, payload):
        store = normalize(payload, None, "app")
        nodes = build_tree_nodes(store)
        all_ids = set(store.epics) | set(store.features) | set(store.user_stories)

        assert len(flatten_tree(nodes, set())) == len(store.epics)
        assert len(flatten_tree(nodes, all_ids)) == sum(store.counts().values())
