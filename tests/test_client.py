import httpx
import pytest
import respx
from httpx import Response

from hnreader.client import HNClient, ItemTarget, ListingTarget
from hnreader.errors import FetchError
from hnreader.models import Section


class TestTargets:
    def test_listing_first_page(self):
        assert ListingTarget(Section.TOP).path == "/news"
        assert ListingTarget(Section.SHOW, 1).path == "/show"

    def test_listing_later_page(self):
        assert ListingTarget(Section.ASK, 3).path == "/ask?p=3"
        assert ListingTarget(Section.JOBS, 2).path == "/jobs?p=2"

    def test_newest_without_cursor(self):
        assert ListingTarget(Section.NEW, 2).path == "/newest?n=31"
        assert ListingTarget(Section.NEW, 3).path == "/newest?n=61"

    def test_newest_with_cursor(self):
        target = ListingTarget(Section.NEW, 3, cursor=("41000000", "61"))
        assert target.path == "/newest?next=41000000&n=61"

    def test_cursor_ignored_for_other_sections(self):
        assert ListingTarget(Section.BEST, 2, cursor=("1", "31")).path == "/best?p=2"

    def test_item_paths(self):
        assert ItemTarget(123).path == "/item?id=123"
        assert ItemTarget(123, 2).path == "/item?id=123&p=2"
        assert ItemTarget(123, latest=True).path == "/latest?id=123"


@pytest.mark.asyncio
@respx.mock
async def test_fetch_returns_markup():
    respx.get("https://news.ycombinator.com/news?p=2").mock(
        return_value=Response(200, text="<html>listing</html>")
    )
    async with HNClient() as client:
        assert await client.fetch(ListingTarget(Section.TOP, 2)) == "<html>listing</html>"


@pytest.mark.asyncio
@respx.mock
async def test_fetch_sends_user_agent():
    route = respx.get("https://news.ycombinator.com/item?id=5").mock(
        return_value=Response(200, text="ok")
    )
    async with HNClient(user_agent="hn-reader-test") as client:
        await client.fetch(ItemTarget(5))
    assert route.calls.last.request.headers["User-Agent"] == "hn-reader-test"


@pytest.mark.asyncio
@respx.mock
async def test_http_error_status():
    respx.get("https://news.ycombinator.com/item?id=9").mock(return_value=Response(503))
    async with HNClient() as client:
        with pytest.raises(FetchError) as exc:
            await client.fetch(ItemTarget(9))
    assert exc.value.cause == "HTTP 503"
    assert exc.value.url == "https://news.ycombinator.com/item?id=9"


@pytest.mark.asyncio
@respx.mock
async def test_connect_error():
    respx.get("https://news.ycombinator.com/news").mock(side_effect=httpx.ConnectError("dns failure"))
    async with HNClient() as client:
        with pytest.raises(FetchError) as exc:
            await client.fetch(ListingTarget(Section.TOP))
    assert "dns failure" in str(exc.value)


@pytest.mark.asyncio
@respx.mock
async def test_timeout():
    respx.get("https://news.ycombinator.com/news").mock(side_effect=httpx.ReadTimeout("slow"))
    async with HNClient() as client:
        with pytest.raises(FetchError) as exc:
            await client.fetch(ListingTarget(Section.TOP))
    assert exc.value.cause.startswith("timeout")


@pytest.mark.asyncio
@respx.mock
async def test_fetch_is_not_retried():
    route = respx.get("https://news.ycombinator.com/ask").mock(return_value=Response(500))
    async with HNClient() as client:
        with pytest.raises(FetchError):
            await client.fetch(ListingTarget(Section.ASK))
    assert route.call_count == 1
