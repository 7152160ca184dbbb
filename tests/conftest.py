import pytest

from fakes import FakeClock, FakeFetcher
from hnreader.service import ContentService


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def service(fetcher, clock):
    return ContentService(fetcher=fetcher, listing_ttl=60, comments_ttl=60, clock=clock)
