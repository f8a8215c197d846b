"""Unit test environment helpers."""

import pytest

from tests._support.fake_driver import SERVERS, FakeDriver

from dbconnect import DBConnect, EngineSettings


@pytest.fixture
def driver():
    """Fake driver where every server is reachable."""
    return FakeDriver()


@pytest.fixture
def make_engine(driver):
    """Build an engine over the fake driver with default settings."""

    def _make(servers=None, **settings):
        return DBConnect(
            SERVERS if servers is None else servers,
            driver=driver,
            settings=EngineSettings(**settings),
        )

    return _make
