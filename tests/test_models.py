import dataclasses

import pytest

from hnreader.models import Comment, Section, StorySummary, count_comments, iter_forest


def test_section_paths():
    assert Section.TOP.path == "news"
    assert Section.NEW.path == "newest"
    assert Section("show") is Section.SHOW


def test_story_summary_defaults_are_neutral():
    story = StorySummary(id=1)
    assert (story.title, story.url, story.domain, story.author) == ("", None, "", "")
    assert (story.score, story.comment_count, story.rank) == (0, 0, 0)


def test_story_summary_dict_round_trip():
    story = StorySummary(id=5, title="T", url="https://a.b", domain="a.b", author="x", score=3, age="1 day ago", comment_count=2, rank=4)
    assert StorySummary.from_dict(story.to_dict()) == story


def test_values_are_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        StorySummary(id=1).title = "changed"  # type: ignore[misc]


def test_comment_walk_and_dict_round_trip():
    leaf = Comment(id=3, author="c", age="", body="x", depth=2)
    mid = Comment(id=2, author=None, age="", body=None, depth=1, children=(leaf,))
    root = Comment(id=1, author="a", age="", body="y", depth=0, children=(mid,))

    assert [c.id for c in root.walk()] == [1, 2, 3]
    assert mid.is_placeholder
    assert Comment.from_dict(root.to_dict()) == root
    assert count_comments([root, leaf]) == 4
    assert [c.id for c in iter_forest([])] == []
