"""Shared pytest fixtures for the MusicBrainz platform tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
import responses

from mbapi.platform.musicbrainz.client import MusicBrainzApi, MusicBrainzConfig
from mbapi.platform.musicbrainz.digest_auth import Credentials
from mbapi.platform.musicbrainz.rate_limit import RateLimiter

BASE_URL = "https://mb.test"


class FakeClock:
    """Deterministic monotonic clock whose ``sleep`` advances time."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mocked_responses() -> Iterator[responses.RequestsMock]:
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def api(clock: FakeClock, sleeps: list[float]) -> MusicBrainzApi:
    config = MusicBrainzConfig(
        base_url=BASE_URL,
        app_name="test-app",
        app_version="1.0",
        app_contact="tester@example.com",
        bot_account=Credentials("bot", "secret"),
        retry_limit=3,
    )
    limiter = RateLimiter(15, 18.0, clock=clock, sleep=clock.sleep)
    return MusicBrainzApi(config, rate_limiter=limiter, sleep=sleeps.append)
