import pytest

from tests.support import DEFAULT_LISTING, DEFAULT_MARKET, LISTING_PATH, MARKET_PATH, FakeClock, StubSite, listing_page


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def site():
    return StubSite(
        {
            MARKET_PATH: DEFAULT_MARKET,
            LISTING_PATH: listing_page(DEFAULT_LISTING),
        }
    )
