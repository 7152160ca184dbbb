import pytest
from unittest.mock import patch

import cli
from builders import listing_page, story_rows, thread_page
from fakes import FakeFetcher
from hnreader.config import Settings
from hnreader.errors import FetchError
from hnreader.models import Comment, StorySummary
from hnreader.service import ContentService


def run_args(*argv):
    return cli.build_parser().parse_args(list(argv))


def test_parser_defaults():
    args = run_args("list")
    assert args.section == "top"
    assert args.page == 1
    assert args.refresh is False

    args = run_args("--refresh", "comments", "123", "--latest")
    assert args.story_id == 123
    assert args.latest and args.refresh


def test_render_listing_rows():
    stories = [StorySummary(id=i, title=f"T{i}", rank=i) for i in (1, 2)]
    table = cli.render_listing(stories, "top")
    assert table.row_count == 2


def test_render_comments_nests_children():
    child = Comment(id=2, author=None, age="", body=None, depth=1)
    root = Comment(id=1, author="a", age="1h", body="<p>hi</p>", depth=0, children=(child,))
    tree = cli.render_comments([root], "item 1")

    [root_branch] = tree.children
    assert len(root_branch.children) == 1
    assert cli.comment_text(child) == "[deleted]"
    assert cli.comment_text(root) == "hi"


@pytest.fixture
def fake_service(tmp_path):
    fetcher = FakeFetcher(
        {
            "/news": listing_page([story_rows(1), story_rows(2)]),
            "/news?p=2": listing_page([story_rows(3)]),
            "/news?p=3": "<html><body><p>No more items.</p></body></html>",
            "/item?id=123": thread_page([0, 40]),
            "/item?id=9": FetchError("https://news.ycombinator.com/item?id=9", "HTTP 502"),
        }
    )
    settings = Settings(cache_file=str(tmp_path / "cache.json"))
    with patch("cli.load_settings", return_value=settings), \
         patch("cli.configure_logging"), \
         patch("cli.ContentService.from_settings", side_effect=lambda s: ContentService(fetcher=fetcher)):
        yield fetcher, tmp_path / "cache.json"


@pytest.mark.asyncio
async def test_main_listing_saves_cache(fake_service):
    fetcher, cache_file = fake_service
    with patch("cli.console.print") as mock_print:
        assert await cli.main(run_args("list")) == 0
    mock_print.assert_called_once()
    assert fetcher.calls == ["/news"]
    assert cache_file.exists()

    # Second run is served from the snapshot
    with patch("cli.console.print"):
        assert await cli.main(run_args("list")) == 0
    assert fetcher.calls == ["/news"]


@pytest.mark.asyncio
async def test_main_comments(fake_service):
    fetcher, _ = fake_service
    with patch("cli.console.print"):
        assert await cli.main(run_args("comments", "123")) == 0
    assert fetcher.calls == ["/item?id=123"]


@pytest.mark.asyncio
async def test_main_reports_errors(fake_service):
    with patch("cli.console.print") as mock_print:
        assert await cli.main(run_args("comments", "9")) == 1
    assert "HTTP 502" in mock_print.call_args[0][0]


@pytest.mark.asyncio
async def test_main_multi_page_title_shows_collected_range(fake_service):
    fetcher, _ = fake_service
    with patch("cli.console.print") as mock_print:
        assert await cli.main(run_args("list", "--pages", "4")) == 0
    table = mock_print.call_args[0][0]
    assert table.title == "top (pages 1-2)"
    assert table.row_count == 3
    assert fetcher.calls == ["/news", "/news?p=2", "/news?p=3"]


@pytest.mark.asyncio
async def test_main_single_page_title(fake_service):
    with patch("cli.console.print") as mock_print:
        assert await cli.main(run_args("list", "--page", "2")) == 0
    assert mock_print.call_args[0][0].title == "top (page 2)"


def test_set_config_rejects_unknown_key():
    with patch("cli.save_setting", side_effect=ValueError("unknown setting 'colour'")), \
         patch("cli.console.print") as mock_print:
        assert cli.set_config(run_args("config", "colour", "red")) == 1
    assert "unknown setting" in mock_print.call_args[0][0]
