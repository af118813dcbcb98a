"""Tests for the MusicBrainz facade: reads, XML posts and form edits."""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import pytest
import responses
from pytest_mock import MockerFixture

from mbapi.config.config import Config
from mbapi.platform.errors import (
    AuthenticationError,
    MalformedChallengeError,
    ResponseError,
    UsageError,
)
from mbapi.platform.musicbrainz.client import MusicBrainzApi, MusicBrainzConfig
from mbapi.platform.musicbrainz.digest_auth import Credentials
from mbapi.platform.musicbrainz.rate_limit import RateLimiter
from mbapi.platform.musicbrainz.types import LinkType, Recording
from mbapi.platform.musicbrainz.xml_metadata import XmlMetadata

BASE_URL = "https://mb.test"
MBID = "f27ec8db-af05-4f36-916e-3d57f91ecf5e"
CHALLENGE = 'Digest realm="musicbrainz.org", nonce="abc", qop="auth", algorithm=MD5'

LOGIN_PAGE = '<input name="csrf_session_key" value="K"><input name="csrf_token" value="T">'


def _query(call_index: int, mocked: responses.RequestsMock) -> dict[str, list[str]]:
    return parse_qs(urlsplit(mocked.calls[call_index].request.url).query)


def _metadata() -> XmlMetadata:
    metadata = XmlMetadata()
    metadata.push_recording(MBID).isrc_list.push_isrc("USRC17607839")
    return metadata


class TestReads:
    def test_lookup_builds_url_and_query(self, api: MusicBrainzApi, mocked_responses: responses.RequestsMock) -> None:
        _ = mocked_responses.get(f"{BASE_URL}/ws/2/artist/{MBID}", json={"id": MBID, "name": "Michael Jackson"})

        result = api.lookup("artist", MBID, ["aliases", "tags"])

        assert result["name"] == "Michael Jackson"
        request = mocked_responses.calls[0].request
        assert urlsplit(request.url).path == f"/ws/2/artist/{MBID}"
        assert _query(0, mocked_responses) == {"inc": ["aliases tags"], "fmt": ["json"]}
        assert request.headers["Accept"] == "application/json"
        assert request.headers["User-Agent"] == "test-app/1.0 ( tester@example.com )"

    def test_lookup_without_includes_omits_inc(
        self, api: MusicBrainzApi, mocked_responses: responses.RequestsMock
    ) -> None:
        _ = mocked_responses.get(f"{BASE_URL}/ws/2/release/{MBID}", json={})

        _ = api.lookup("release", MBID)

        assert _query(0, mocked_responses) == {"fmt": ["json"]}

    def test_browse_passes_query(self, api: MusicBrainzApi, mocked_responses: responses.RequestsMock) -> None:
        _ = mocked_responses.get(f"{BASE_URL}/ws/2/release", json={"releases": []})

        _ = api.browse("release", {"label": MBID, "limit": 2, "inc": ["labels", "media"]})

        assert _query(0, mocked_responses) == {
            "label": [MBID],
            "limit": ["2"],
            "inc": ["labels media"],
            "fmt": ["json"],
        }

    def test_search_with_paging(self, api: MusicBrainzApi, mocked_responses: responses.RequestsMock) -> None:
        _ = mocked_responses.get(f"{BASE_URL}/ws/2/area/", json={"areas": []})

        _ = api.search("area", "Île-de-France", offset=10, limit=5)

        assert urlsplit(mocked_responses.calls[0].request.url).path == "/ws/2/area/"
        assert _query(0, mocked_responses) == {
            "query": ["Île-de-France"],
            "offset": ["10"],
            "limit": ["5"],
            "fmt": ["json"],
        }

    def test_not_found_raises_response_error(
        self, api: MusicBrainzApi, mocked_responses: responses.RequestsMock
    ) -> None:
        _ = mocked_responses.get(f"{BASE_URL}/ws/2/artist/{MBID}", status=404, json={"error": "Not Found"})

        with pytest.raises(ResponseError) as excinfo:
            _ = api.lookup("artist", MBID)
        assert excinfo.value.status == 404

    def test_busy_server_is_retried_then_reported(
        self, api: MusicBrainzApi, mocked_responses: responses.RequestsMock, sleeps: list[float]
    ) -> None:
        _ = mocked_responses.get(f"{BASE_URL}/ws/2/artist/{MBID}", status=503)

        with pytest.raises(ResponseError) as excinfo:
            _ = api.lookup("artist", MBID)
        assert excinfo.value.status == 503
        assert len(mocked_responses.calls) == 3
        assert sleeps == [0.5, 0.5]

    def test_invalid_json_raises_response_error(
        self, api: MusicBrainzApi, mocked_responses: responses.RequestsMock
    ) -> None:
        _ = mocked_responses.get(f"{BASE_URL}/ws/2/artist/{MBID}", body="<html>")

        with pytest.raises(ResponseError, match="Invalid JSON"):
            _ = api.lookup("artist", MBID)

    def test_unknown_entity_raises_usage_error(self, api: MusicBrainzApi) -> None:
        with pytest.raises(UsageError):
            _ = api.lookup("spaceship", MBID)


class TestRateLimiterInjection:
    def test_one_admission_per_read(
        self, mocker: MockerFixture, mocked_responses: responses.RequestsMock, sleeps: list[float]
    ) -> None:
        limiter = mocker.Mock(spec=RateLimiter)
        api = MusicBrainzApi(MusicBrainzConfig(base_url=BASE_URL), rate_limiter=limiter, sleep=sleeps.append)
        _ = mocked_responses.get(f"{BASE_URL}/ws/2/artist/{MBID}", status=503)
        _ = mocked_responses.get(f"{BASE_URL}/ws/2/artist/{MBID}", json={})

        _ = api.lookup("artist", MBID)

        limiter.admit.assert_called_once_with()

    def test_clients_sharing_a_limiter_share_the_quota(
        self, mocker: MockerFixture, mocked_responses: responses.RequestsMock
    ) -> None:
        clock = mocker.Mock(side_effect=[0.0, 0.0, 0.0, 10.0])
        sleep = mocker.Mock()
        limiter = RateLimiter(2, 10.0, clock=clock, sleep=sleep)
        first = MusicBrainzApi(MusicBrainzConfig(base_url=BASE_URL), rate_limiter=limiter)
        second = MusicBrainzApi(MusicBrainzConfig(base_url=BASE_URL), rate_limiter=limiter)
        _ = mocked_responses.get(f"{BASE_URL}/ws/2/artist/{MBID}", json={})

        _ = first.lookup("artist", MBID)
        _ = second.lookup("artist", MBID)
        _ = first.lookup("artist", MBID)

        sleep.assert_called_once_with(10.0)

    def test_separate_clients_get_separate_limiters(self) -> None:
        first = MusicBrainzApi(MusicBrainzConfig(base_url=BASE_URL))
        second = MusicBrainzApi(MusicBrainzConfig(base_url=BASE_URL))

        assert first.rate_limiter is not second.rate_limiter
        assert first.rate_limiter.max_calls == 15
        assert first.rate_limiter.period == 18.0


class TestXmlPost:
    def test_digest_challenge_is_answered(
        self, api: MusicBrainzApi, mocked_responses: responses.RequestsMock
    ) -> None:
        url = f"{BASE_URL}/ws/2/recording/"
        _ = mocked_responses.post(url, status=401, headers={"WWW-Authenticate": CHALLENGE})
        _ = mocked_responses.post(url, body="<metadata/>")

        api.post_recording(_metadata())

        assert len(mocked_responses.calls) == 2
        first, second = (call.request for call in mocked_responses.calls)
        assert "Authorization" not in first.headers
        assert first.headers["Content-Type"] == "application/xml"
        assert _query(0, mocked_responses) == {"client": ["test.app-1.0"]}
        authorization = second.headers["Authorization"]
        assert authorization.startswith('Digest username="bot", realm="musicbrainz.org", nonce="abc"')
        assert 'uri="/ws/2/recording/?client=test.app-1.0"' in authorization
        assert "USRC17607839" in second.body

    def test_persistent_401_exhausts_attempts(
        self, api: MusicBrainzApi, mocked_responses: responses.RequestsMock
    ) -> None:
        _ = mocked_responses.post(f"{BASE_URL}/ws/2/recording/", status=401, headers={"WWW-Authenticate": CHALLENGE})

        with pytest.raises(AuthenticationError) as excinfo:
            api.post_recording(_metadata())
        assert excinfo.value.status == 401
        assert len(mocked_responses.calls) == 5

    def test_401_without_challenge_is_malformed(
        self, api: MusicBrainzApi, mocked_responses: responses.RequestsMock
    ) -> None:
        _ = mocked_responses.post(f"{BASE_URL}/ws/2/recording/", status=401)

        with pytest.raises(MalformedChallengeError):
            api.post_recording(_metadata())
        assert len(mocked_responses.calls) == 1

    def test_other_status_raises_response_error(
        self, api: MusicBrainzApi, mocked_responses: responses.RequestsMock
    ) -> None:
        _ = mocked_responses.post(f"{BASE_URL}/ws/2/recording/", status=400)

        with pytest.raises(ResponseError) as excinfo:
            api.post_recording(_metadata())
        assert excinfo.value.status == 400

    def test_post_requires_identity(self, mocked_responses: responses.RequestsMock) -> None:
        api = MusicBrainzApi(MusicBrainzConfig(base_url=BASE_URL, bot_account=Credentials("bot", "pw")))

        with pytest.raises(UsageError):
            api.post_recording(_metadata())
        assert len(mocked_responses.calls) == 0

    def test_post_requires_bot_account(self, mocked_responses: responses.RequestsMock) -> None:
        api = MusicBrainzApi(MusicBrainzConfig(base_url=BASE_URL, app_name="a", app_version="1"))

        with pytest.raises(UsageError):
            api.post_recording(_metadata())
        assert len(mocked_responses.calls) == 0


class TestFormEdits:
    @pytest.fixture
    def recording(self) -> Recording:
        return {"id": MBID, "title": "Thriller", "isrcs": ["USSM19902991"]}

    @staticmethod
    def _expect_edit(mocked: responses.RequestsMock) -> None:
        _ = mocked.get(f"{BASE_URL}/login", body=LOGIN_PAGE)
        _ = mocked.post(f"{BASE_URL}/recording/{MBID}/edit", status=302, headers={"Location": f"/recording/{MBID}"})

    def test_add_isrc_submits_all_isrcs(
        self, api: MusicBrainzApi, recording: Recording, mocked_responses: responses.RequestsMock
    ) -> None:
        self._expect_edit(mocked_responses)

        api.add_isrc(recording, "USSM10000001", "from tests")

        form = parse_qs(mocked_responses.calls[-1].request.body)
        assert form["edit-recording.isrcs.0"] == ["USSM19902991"]
        assert form["edit-recording.isrcs.1"] == ["USSM10000001"]
        assert form["edit-recording.edit_note"] == ["from tests"]
        assert form["csrf_session_key"] == ["K"]

    def test_add_isrc_skips_known_values(
        self, api: MusicBrainzApi, recording: Recording, mocked_responses: responses.RequestsMock
    ) -> None:
        api.add_isrc(recording, "USSM19902991")

        assert len(mocked_responses.calls) == 0

    def test_add_isrc_requires_loaded_isrcs(self, api: MusicBrainzApi) -> None:
        with pytest.raises(UsageError):
            api.add_isrc({"id": MBID, "title": "Thriller"}, "USSM10000001")

    def test_add_spotify_id(
        self, api: MusicBrainzApi, recording: Recording, mocked_responses: responses.RequestsMock
    ) -> None:
        self._expect_edit(mocked_responses)

        api.add_spotify_id_to_recording(recording, "2LlQb7Uoj1kKyGhlkBf9aC")

        form = parse_qs(mocked_responses.calls[-1].request.body)
        assert form["edit-recording.url.0.link_type_id"] == [str(int(LinkType.stream_for_free))]
        assert form["edit-recording.url.0.text"] == ["https://open.spotify.com/track/2LlQb7Uoj1kKyGhlkBf9aC"]
        assert form["edit-recording.make_votable"] == ["true"]

    def test_add_spotify_id_rejects_bad_length(self, api: MusicBrainzApi, recording: Recording) -> None:
        with pytest.raises(UsageError):
            api.add_spotify_id_to_recording(recording, "short")

    def test_login_logout_round_trip(self, api: MusicBrainzApi, mocked_responses: responses.RequestsMock) -> None:
        _ = mocked_responses.get(f"{BASE_URL}/login", body=LOGIN_PAGE)
        _ = mocked_responses.post(f"{BASE_URL}/login", status=302, headers={"Location": "/success"})
        _ = mocked_responses.get(f"{BASE_URL}/logout", status=302, headers={"Location": "/success"})

        assert api.login()
        assert api.session is not None and api.session.logged_in
        assert api.logout()
        assert api.session.logged_in is False


def test_from_app_config_maps_settings() -> None:
    config = Config(
        base_url="https://beta.mb.test",
        app_name="tagger",
        app_version="2.0",
        bot_username="bot",
        bot_password="pw",
        rate_limit_calls=3,
        rate_limit_period=5.0,
    )

    api = MusicBrainzApi.from_app_config(config)

    assert api.config.base_url == "https://beta.mb.test"
    assert api.config.bot_account == Credentials("bot", "pw")
    assert api.user_agent == "tagger/2.0"
    assert api.rate_limiter.max_calls == 3
    assert api.rate_limiter.period == 5.0
