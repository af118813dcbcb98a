"""Where: src/mbapi/platform/musicbrainz/client.py
What: Facade exposing MusicBrainz WS2 lookup, browse, search and edits.
Why: Delegate specialised responsibilities to focused collaborators while
     offering one object to downstream code.

This module delegates to smaller helpers:
- ``rate_limit`` admits one logical operation at a time into the quota
- ``http_client`` sends requests with busy-retry and cookie handling
- ``digest_auth`` answers the XML submission endpoint's 401 challenge
- ``session`` drives the HTML login form for form based edits
- ``user_agent`` centralises etiquette for outbound requests
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Final, Self
from urllib.parse import urlsplit

import requests

from mbapi.config.config import (
    DEFAULT_BASE_URL,
    DEFAULT_RATE_LIMIT_CALLS,
    DEFAULT_RATE_LIMIT_PERIOD,
    DEFAULT_RETRY_TIMEOUT,
    DEFAULT_TIMEOUT,
    Config,
)
from mbapi.platform.errors import AuthenticationError, ResponseError, UsageError
from mbapi.platform.logging import logger

from .digest_auth import Credentials, DigestAuthenticator
from .http_client import HttpTransport, Query
from .rate_limit import RateLimiter
from .session import Session, SessionManager
from .types import ENTITY_TYPES, JsonObject, LinkType, Recording
from .user_agent import resolve_user_agent
from .xml_metadata import XmlMetadata

_WS_PREFIX: Final[str] = "/ws/2"
_MAX_POST_ATTEMPTS: Final[int] = 5
_SPOTIFY_ID_LENGTH: Final[int] = 22


@dataclass(frozen=True, slots=True)
class MusicBrainzConfig:
    """Per-client settings.

    ``retry_limit`` is the number of attempts a read makes while the
    server answers 429/503.
    """

    base_url: str = DEFAULT_BASE_URL
    app_name: str | None = None
    app_version: str | None = None
    app_contact: str | None = None
    bot_account: Credentials | None = None
    timeout: float = DEFAULT_TIMEOUT
    retry_timeout: float = DEFAULT_RETRY_TIMEOUT
    retry_limit: int = 5

    @classmethod
    def from_app_config(cls, config: Config) -> "MusicBrainzConfig":
        bot_account = None
        if config.bot_username and config.bot_password:
            bot_account = Credentials(config.bot_username, config.bot_password)
        return cls(
            base_url=config.base_url,
            app_name=config.app_name,
            app_version=config.app_version,
            app_contact=config.app_contact,
            bot_account=bot_account,
            timeout=config.timeout,
            retry_timeout=config.retry_timeout,
        )


@dataclass(frozen=True, slots=True)
class UrlLink:
    link_type_id: LinkType | int
    text: str


def _check_entity(entity: str) -> None:
    if entity not in ENTITY_TYPES:
        raise UsageError(f"Unknown entity type: {entity!r}")


def _join_includes(inc: Iterable[str]) -> str | None:
    joined = " ".join(inc)
    return joined or None


class MusicBrainzApi:
    """MusicBrainz WS2 client.

    Args:
        config: Server, identity and bot account settings.
        rate_limiter: Shared quota. Pass the same instance to several clients
            to make them share it; a private limiter is created otherwise.
        session: Optional ``requests.Session`` whose adapters are reused for
            connection pooling. Its cookie jar is never read or written.
        sleep: Sleep function used between retries.
    """

    def __init__(
        self,
        config: MusicBrainzConfig | None = None,
        *,
        rate_limiter: RateLimiter | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or MusicBrainzConfig()
        self.rate_limiter = rate_limiter or RateLimiter(
            DEFAULT_RATE_LIMIT_CALLS, DEFAULT_RATE_LIMIT_PERIOD
        )
        self.user_agent: str = resolve_user_agent(
            self.config.app_name, self.config.app_version, self.config.app_contact
        )
        self.transport = HttpTransport(
            self.config.base_url,
            self.user_agent,
            timeout=self.config.timeout,
            retry_timeout=self.config.retry_timeout,
            session=session,
            sleep=sleep,
        )
        self._sessions = SessionManager(self.transport, self.config.bot_account)

    @classmethod
    def from_app_config(cls, config: Config | None = None, **kwargs: Any) -> Self:
        """Build a client from the TOML configuration file."""

        app_config = config or Config.load()
        if "rate_limiter" not in kwargs:
            kwargs["rate_limiter"] = RateLimiter(
                app_config.rate_limit_calls, app_config.rate_limit_period
            )
        return cls(MusicBrainzConfig.from_app_config(app_config), **kwargs)

    @property
    def session(self) -> Session | None:
        return self._sessions.session

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def rest_get(self, rel_url: str, query: Query | None = None) -> JsonObject:
        """GET ``/ws/2{rel_url}`` as JSON.

        Raises:
            ResponseError: on any non-2xx answer, including a 429/503 that
                outlived the retry budget.
        """

        params: dict[str, Any] = dict(query or {})
        params["fmt"] = "json"

        self.rate_limiter.admit()
        response = self.transport.get(
            f"{_WS_PREFIX}{rel_url}",
            query=params,
            headers={"Accept": "application/json"},
            retry_limit=self.config.retry_limit,
        )
        if not response.ok:
            logger.warning(
                "MusicBrainz HTTP error: status=%s",
                response.status_code,
                extra={"http_event": "http.request", "url": response.url, "status": response.status_code, "success": False},
            )
            raise ResponseError(
                "Got response status", status=response.status_code, reason=response.reason
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ResponseError(
                f"Invalid JSON in response: {exc}", status=response.status_code, reason=response.reason
            ) from exc

    def lookup(self, entity: str, mbid: str, inc: Iterable[str] = ()) -> JsonObject:
        """Lookup one entity by MBID, e.g. ``lookup("artist", mbid, ["aliases"])``."""

        _check_entity(entity)
        return self.rest_get(f"/{entity}/{mbid}", {"inc": _join_includes(inc)})

    def browse(self, entity: str, query: Query | None = None) -> JsonObject:
        """Browse entities linked to another one, e.g. ``{"label": mbid, "limit": 2}``."""

        _check_entity(entity)
        params: dict[str, Any] = dict(query or {})
        if isinstance(params.get("inc"), (list, tuple)):
            params["inc"] = _join_includes(params["inc"])
        return self.rest_get(f"/{entity}", params)

    def search(
        self,
        entity: str,
        query: str | None = None,
        *,
        offset: int | None = None,
        limit: int | None = None,
        inc: Iterable[str] = (),
        **fields: str,
    ) -> JsonObject:
        """Search with a Lucene query string plus optional paging."""

        _check_entity(entity)
        params: dict[str, Any] = {
            "query": query,
            "offset": offset,
            "limit": limit,
            "inc": _join_includes(inc),
            **fields,
        }
        return self.rest_get(f"/{entity}/", params)

    # ------------------------------------------------------------------
    # XML submission (digest protected)
    # ------------------------------------------------------------------

    def _client_id(self) -> str:
        if not self.config.app_name or not self.config.app_version:
            raise UsageError("XML-Post requires the app_name & app_version to be defined")
        return f"{self.config.app_name.replace('-', '.')}-{self.config.app_version}"

    def post(self, entity: str, xml_metadata: XmlMetadata) -> None:
        """POST ``xml_metadata`` to ``/ws/2/{entity}/``, answering digest challenges.

        Raises:
            UsageError: without application identity or bot account.
            AuthenticationError: when every attempt ended in a 401.
            MalformedChallengeError: on a 401 without a usable challenge.
            ResponseError: on any other unexpected status.
        """

        _check_entity(entity)
        client_id = self._client_id()
        if self.config.bot_account is None:
            raise UsageError("XML-Post requires a bot account")

        authenticator = DigestAuthenticator(self.config.bot_account)
        body = xml_metadata.to_xml()
        authorization: str | None = None

        for attempt in range(1, _MAX_POST_ATTEMPTS + 1):
            headers = {"Content-Type": "application/xml"}
            if authorization:
                headers["Authorization"] = authorization

            self.rate_limiter.admit()
            response = self.transport.post(
                f"{_WS_PREFIX}/{entity}/",
                query={"client": client_id},
                headers=headers,
                body=body,
                retry_limit=self.config.retry_limit,
            )
            if response.ok:
                return
            if response.status_code != HTTPStatus.UNAUTHORIZED:
                raise ResponseError(
                    "Unexpected response to XML post", status=response.status_code, reason=response.reason
                )

            if authenticator.sent_auth:
                logger.warning("Digest response rejected (attempt %s)", attempt)
            request = response.request
            split = urlsplit(request.url or "")
            uri = split.path + (f"?{split.query}" if split.query else "")
            authorization = authenticator.compute_authorization_header(
                request.method or "POST",
                uri,
                response.headers.get("WWW-Authenticate"),
            )

        raise AuthenticationError(
            "Exhausted digest retries", status=HTTPStatus.UNAUTHORIZED, reason="Unauthorized"
        )

    def post_recording(self, xml_metadata: XmlMetadata) -> None:
        self.post("recording", xml_metadata)

    # ------------------------------------------------------------------
    # Form based edits (session protected)
    # ------------------------------------------------------------------

    def login(self) -> bool:
        self.rate_limiter.admit()
        return self._sessions.login()

    def logout(self) -> bool:
        self.rate_limiter.admit()
        return self._sessions.logout()

    def edit_entity(self, entity: str, mbid: str, form: Mapping[str, object]) -> None:
        """Submit ``form`` to ``/{entity}/{mbid}/edit`` with fresh CSRF fields."""

        _check_entity(entity)
        self.rate_limiter.admit()
        self._sessions.edit_entity(entity, mbid, form)

    def add_url_to_recording(self, recording: Recording, url: UrlLink, edit_note: str = "") -> None:
        form: dict[str, object] = {
            "edit-recording.name": recording["title"],
            "edit-recording.comment": recording.get("disambiguation", ""),
            "edit-recording.make_votable": True,
            "edit-recording.url.0.link_type_id": int(url.link_type_id),
            "edit-recording.url.0.text": url.text,
        }
        for i, isrc in enumerate(recording.get("isrcs", [])):
            form[f"edit-recording.isrcs.{i}"] = isrc
        form["edit-recording.edit_note"] = edit_note
        self.edit_entity("recording", recording["id"], form)

    def add_isrc(self, recording: Recording, isrc: str, edit_note: str = "") -> None:
        """Add ``isrc`` unless the recording already carries it.

        The recording must have been fetched with ``inc=isrcs``.
        """

        isrcs = recording.get("isrcs")
        if isrcs is None:
            raise UsageError("You must retrieve recording with existing ISRC values")
        if isrc in isrcs:
            return

        isrcs.append(isrc)
        form: dict[str, object] = {"edit-recording.name": recording["title"]}
        for i, value in enumerate(isrcs):
            form[f"edit-recording.isrcs.{i}"] = value
        form["edit-recording.edit_note"] = edit_note
        self.edit_entity("recording", recording["id"], form)

    def add_spotify_id_to_recording(self, recording: Recording, spotify_id: str, edit_note: str = "") -> None:
        if len(spotify_id) != _SPOTIFY_ID_LENGTH:
            raise UsageError(f"Spotify track id must be {_SPOTIFY_ID_LENGTH} characters")
        self.add_url_to_recording(
            recording,
            UrlLink(LinkType.stream_for_free, f"https://open.spotify.com/track/{spotify_id}"),
            edit_note,
        )

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = [
    "MusicBrainzApi",
    "MusicBrainzConfig",
    "UrlLink",
]
