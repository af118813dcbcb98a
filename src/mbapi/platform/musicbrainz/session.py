"""Where: src/mbapi/platform/musicbrainz/session.py
What: CSRF scraping and the login/logout/edit lifecycle of a bot account.
Why: Form based edits need a fresh CSRF token plus the session cookies.

The CSRF scraper looks for ``name="<key>"`` followed by the nearest
``value="..."``. It is coupled to the markup of the MusicBrainz login form:
if the two hidden inputs ever change shape, ``fetch_csrf`` returns ``None``
fields and the following POST is rejected by the server.

A ``SessionManager`` is not locked; one thread at a time may drive it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from http import HTTPStatus
from typing import Final

import requests

from mbapi.platform.errors import RedirectExpectationError, UsageError
from mbapi.platform.logging import logger

from .digest_auth import Credentials
from .http_client import HttpTransport

SESSION_COOKIE: Final[str] = "remember_login"
LOGIN_REDIRECT: Final[str] = "/success"

_VALUE_MARKER: Final[str] = 'value="'


@dataclass(frozen=True, slots=True)
class CsrfSession:
    session_key: str | None
    token: str | None


@dataclass(slots=True)
class Session:
    csrf: CsrfSession
    logged_in: bool = False


def _fetch_value(html: str, key: str) -> str | None:
    pos = html.find(f'name="{key}"')
    if pos < 0:
        return None
    pos = html.find(_VALUE_MARKER, pos + len(key) + 7)
    if pos < 0:
        return None
    pos += len(_VALUE_MARKER)
    end = html.find('"', pos)
    if end < 0:
        return None
    return html[pos:end]


def fetch_csrf(html: str) -> CsrfSession:
    """Extract the ``csrf_session_key`` and ``csrf_token`` hidden fields."""

    return CsrfSession(
        session_key=_fetch_value(html, "csrf_session_key"),
        token=_fetch_value(html, "csrf_token"),
    )


def _redirected_to(response: requests.Response, target: str | None) -> bool:
    if response.status_code != HTTPStatus.FOUND:
        return False
    return target is None or response.headers.get("Location") == target


class SessionManager:
    """Drive the HTML login form of a MusicBrainz server."""

    def __init__(self, transport: HttpTransport, credentials: Credentials | None) -> None:
        self._transport = transport
        self._credentials = credentials
        self.session: Session | None = None

    def _require_credentials(self) -> Credentials:
        if self._credentials is None or not self._credentials.username:
            raise UsageError("bot username should be set")
        if not self._credentials.password:
            raise UsageError("bot password should be set")
        return self._credentials

    def fetch_session(self) -> Session:
        """Load the login page and scrape a fresh CSRF pair from it."""

        response = self._transport.get("login", follow_redirects=False)
        return Session(csrf=fetch_csrf(response.text))

    def _credential_form(self, session: Session, credentials: Credentials) -> dict[str, str]:
        return {
            "username": credentials.username,
            "password": credentials.password,
            "csrf_session_key": session.csrf.session_key or "",
            "csrf_token": session.csrf.token or "",
            "remember_me": "1",
        }

    def login(self) -> bool:
        """Log in with the bot account; True when the server redirects as expected."""

        credentials = self._require_credentials()

        if self.session is not None and self.session.logged_in:
            if self._transport.cookies.has_session_cookie(SESSION_COOKIE):
                return True

        self.session = self.fetch_session()
        response = self._transport.post_form(
            "login",
            self._credential_form(self.session, credentials),
            query={"returnto": LOGIN_REDIRECT},
            follow_redirects=False,
        )
        success = _redirected_to(response, LOGIN_REDIRECT)
        if success:
            self.session.logged_in = True
        logger.info(
            "Login %s",
            "succeeded" if success else f"failed (status={response.status_code})",
            extra={"http_event": "session.login", "success": success},
        )
        return success

    def logout(self) -> bool:
        """Log out; True when the server redirects as expected."""

        response = self._transport.get(
            "logout",
            query={"returnto": LOGIN_REDIRECT},
            follow_redirects=False,
        )
        success = _redirected_to(response, LOGIN_REDIRECT)
        if success and self.session is not None:
            self.session.logged_in = False
        logger.info(
            "Logout %s",
            "succeeded" if success else f"failed (status={response.status_code})",
            extra={"http_event": "session.logout", "success": success},
        )
        return success

    def edit_entity(self, entity: str, mbid: str, form: Mapping[str, object]) -> None:
        """Submit an entity edit form.

        Raises:
            RedirectExpectationError: when the server does not answer 302.
        """

        credentials = self._require_credentials()
        self.session = self.fetch_session()

        payload: dict[str, object] = dict(form)
        payload.update(self._credential_form(self.session, credentials))

        response = self._transport.post_form(
            f"{entity}/{mbid}/edit",
            payload,
            follow_redirects=False,
        )
        success = _redirected_to(response, None)
        logger.info(
            "Edit %s",
            "submitted" if success else "rejected",
            extra={"http_event": "session.edit", "success": success, "entity": entity, "mbid": mbid},
        )
        if success:
            return
        if response.status_code == HTTPStatus.OK:
            raise RedirectExpectationError(
                "Failed to submit form data", status=response.status_code, reason=response.reason
            )
        raise RedirectExpectationError(
            "Unexpected status code", status=response.status_code, reason=response.reason
        )


__all__ = [
    "CsrfSession",
    "LOGIN_REDIRECT",
    "SESSION_COOKIE",
    "Session",
    "SessionManager",
    "fetch_csrf",
]
