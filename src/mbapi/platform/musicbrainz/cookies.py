"""Where: src/mbapi/platform/musicbrainz/cookies.py
What: Per-client cookie store keyed by domain and path.
Why: Edit sessions live in server cookies; the jar is the source of truth
     for "still logged in".
"""

from __future__ import annotations

import threading
from typing import Final

import requests
from requests.cookies import RequestsCookieJar, extract_cookies_to_jar, get_cookie_header


class CookieJar:
    """Thread-safe wrapper around a ``requests`` cookie jar.

    One jar belongs to one client instance and is never shared.
    """

    def __init__(self) -> None:
        self._jar: Final[RequestsCookieJar] = RequestsCookieJar()
        self._lock: Final[threading.Lock] = threading.Lock()

    @property
    def store(self) -> RequestsCookieJar:
        """Underlying jar, handed to ``requests`` for redirect hops."""

        return self._jar

    def cookie_header(self, url: str) -> str | None:
        """Return the ``Cookie`` header value for ``url`` or ``None`` if empty."""

        prepared = requests.Request("GET", url).prepare()
        with self._lock:
            header = get_cookie_header(self._jar, prepared)
        return header or None

    def update_from_response(self, response: requests.Response) -> None:
        """Merge every ``Set-Cookie`` header of ``response`` and its redirect hops."""

        with self._lock:
            for hop in [*response.history, response]:
                if hop.request is None:
                    continue
                extract_cookies_to_jar(self._jar, hop.request, hop.raw)

    def set(self, name: str, value: str, *, domain: str = "", path: str = "/") -> None:
        """Store a cookie directly, mostly useful for restoring a saved session."""

        with self._lock:
            _ = self._jar.set(name, value, domain=domain, path=path)

    def has_session_cookie(self, name: str) -> bool:
        """Return True when any stored cookie is called ``name``."""

        with self._lock:
            return any(cookie.name == name for cookie in self._jar)

    def clear(self) -> None:
        with self._lock:
            self._jar.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jar)


__all__ = ["CookieJar"]
