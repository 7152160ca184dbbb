from hypothesis import given, settings, HealthCheck, strategies as st

from builders import thread_page
from hnreader.comments import build_forest, build_tree, CommentRecord
from hnreader.models import iter_forest


def contiguous_depths(raw):
    """Clamp arbitrary depths so each is at most one deeper than the last."""
    out = []
    prev = -1
    for d in raw:
        d = min(d, prev + 1)
        out.append(d)
        prev = d
    return out


depth_lists = st.lists(st.integers(min_value=0, max_value=6), max_size=40).map(contiguous_depths)


def check_depths(forest, parent_depth=None):
    for node in forest:
        if parent_depth is None:
            assert node.depth == 0
        else:
            assert node.depth == parent_depth + 1
        check_depths(node.children, node.depth)


@settings(suppress_health_check=[HealthCheck.too_slow], deadline=None)
@given(depth_lists)
def test_markup_forest_properties(depths):
    html = thread_page([d * 40 for d in depths])
    forest = build_forest(html)

    check_depths(forest)
    assert [c.id for c in iter_forest(forest)] == [100 + i for i in range(len(depths))]
    assert build_forest(html) == forest


@settings(deadline=None)
@given(st.lists(st.integers(min_value=0, max_value=50), max_size=200))
def test_tree_keeps_every_record_in_order(depths):
    """Holds for arbitrary depth sequences, including skipped levels."""
    records = [
        CommentRecord(id=i + 1, depth=d, author="a", age="", body="b")
        for i, d in enumerate(depths)
    ]
    forest = build_tree(records)

    assert [c.id for c in iter_forest(forest)] == [r.id for r in records]
    for root in forest:
        for node in root.walk():
            for child in node.children:
                assert child.depth > node.depth
