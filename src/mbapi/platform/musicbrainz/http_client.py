"""Where: src/mbapi/platform/musicbrainz/http_client.py
What: HTTP transport with busy-retry, redirect control and cookie handling.
Why: Single chokepoint for cookie persistence and retry policy, shared by
     the read facade and the edit session.
"""

from __future__ import annotations

import errno
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, Final, TypeAlias
from urllib.parse import urlencode

import requests

from mbapi.platform.errors import NetworkError
from mbapi.platform.logging import logger

from .cookies import CookieJar

QueryValue: TypeAlias = str | int | float | bool | None | Sequence[str | int | float]
Query: TypeAlias = Mapping[str, QueryValue]

_BUSY_STATUSES: Final[frozenset[int]] = frozenset({429, 503})
_IDEMPOTENT_METHODS: Final[frozenset[str]] = frozenset({"GET", "HEAD"})
_RESET_RETRY_DELAY: Final[float] = 0.1
_MAX_RESET_RETRIES: Final[int] = 5


def encode_query(query: Query | None) -> str:
    """URL-encode ``query``; sequence values repeat the key once per element.

    ``None`` values are dropped and booleans are rendered in lower case.
    """

    if not query:
        return ""
    pairs: list[tuple[str, str]] = []
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, _scalar(item)) for item in value)
        else:
            pairs.append((key, _scalar(value)))
    return urlencode(pairs)


def _scalar(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def is_connection_reset(exc: BaseException) -> bool:
    """Return True when ``exc`` wraps an OS-level connection reset."""

    seen: set[int] = set()
    pending: list[object] = [exc]
    while pending:
        current = pending.pop()
        if not isinstance(current, BaseException) or id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, ConnectionResetError):
            return True
        if isinstance(current, OSError) and current.errno == errno.ECONNRESET:
            return True
        pending.extend(current.args)
        pending.extend([current.__cause__, current.__context__])
        reason = getattr(current, "reason", None)
        if reason is not None:
            pending.append(reason)
    return False


class HttpTransport:
    """Send requests relative to ``base_url`` for one client instance."""

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        *,
        timeout: float = 20.0,
        retry_timeout: float = 0.5,
        cookies: CookieJar | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout
        self.retry_timeout = retry_timeout
        self.cookies = cookies if cookies is not None else CookieJar()
        self._session = requests.Session()
        # Redirect hops followed inside requests read and write the same store.
        self._session.cookies = self.cookies.store
        self._borrowed_adapters = session is not None
        if session is not None:
            # Pools are shared with the caller's session, cookies are not.
            for prefix, adapter in session.adapters.items():
                self._session.mount(prefix, adapter)
            self._session.proxies.update(session.proxies)
            self._session.verify = session.verify
            self._session.cert = session.cert
            self._session.trust_env = session.trust_env
        self._sleep = sleep

    def build_url(self, path: str, query: Query | None = None) -> str:
        """Join ``path`` onto the base URL and append the encoded ``query``."""

        if path.startswith(("http://", "https://")):
            url = path
        elif path.startswith("/"):
            url = f"{self.base_url}{path}"
        else:
            url = f"{self.base_url}/{path}"
        encoded = encode_query(query)
        if encoded:
            url += ("&" if "?" in url else "?") + encoded
        return url

    def send(
        self,
        method: str,
        path: str,
        *,
        query: Query | None = None,
        headers: Mapping[str, str] | None = None,
        body: str | bytes | None = None,
        follow_redirects: bool = True,
        retry_limit: int = 1,
        retry_on_reset: bool | None = None,
    ) -> requests.Response:
        """Execute one logical request and return the final response.

        ``retry_limit`` is the total number of attempts allowed while the
        server answers 429/503; the last busy response is returned as-is.
        Connection resets are retried without touching that budget, by
        default only for GET and HEAD.

        Raises:
            NetworkError: on transport failures that are not retried.
        """

        method = method.upper()
        url = self.build_url(path, query)
        if retry_on_reset is None:
            retry_on_reset = method in _IDEMPOTENT_METHODS

        request_headers: dict[str, str] = dict(headers or {})
        request_headers["User-Agent"] = self.user_agent

        budget = max(retry_limit, 1)
        attempt = 0
        resets = 0
        while True:
            attempt += 1
            attempt_headers = dict(request_headers)
            cookie = self.cookies.cookie_header(url)
            if cookie:
                attempt_headers["Cookie"] = cookie
            logger.debug(
                "%s %s",
                method,
                url,
                extra={"http_event": "http.request", "method": method, "url": url, "attempt": attempt},
            )
            try:
                response = self._session.request(
                    method,
                    url,
                    headers=attempt_headers,
                    data=body,
                    allow_redirects=follow_redirects,
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                if retry_on_reset and is_connection_reset(exc) and resets < _MAX_RESET_RETRIES:
                    resets += 1
                    logger.warning(
                        "Connection reset by peer, resending %s %s",
                        method,
                        url,
                        extra={"http_event": "http.reset", "method": method, "url": url, "delay": _RESET_RETRY_DELAY},
                    )
                    self._sleep(_RESET_RETRY_DELAY)
                    attempt -= 1
                    continue
                raise NetworkError(f"{method} {url} failed: {exc}") from exc

            self.cookies.update_from_response(response)

            if response.status_code in _BUSY_STATUSES and attempt < budget:
                logger.warning(
                    "Server busy (status=%s), retrying in %.1fs",
                    response.status_code,
                    self.retry_timeout,
                    extra={
                        "http_event": "http.retry",
                        "method": method,
                        "url": url,
                        "status": response.status_code,
                        "attempt": attempt,
                        "delay": self.retry_timeout,
                    },
                )
                self._sleep(self.retry_timeout)
                continue
            return response

    def get(self, path: str, **kwargs: Any) -> requests.Response:
        return self.send("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> requests.Response:
        return self.send("POST", path, **kwargs)

    def post_form(
        self,
        path: str,
        form: Mapping[str, object] | Iterable[tuple[str, object]],
        **kwargs: Any,
    ) -> requests.Response:
        """POST ``form`` url-encoded; booleans become ``true``/``false``."""

        items = form.items() if isinstance(form, Mapping) else form
        body = urlencode([(key, _scalar(value)) for key, value in items])
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Content-Type"] = "application/x-www-form-urlencoded"
        return self.send("POST", path, body=body, headers=headers, **kwargs)

    def close(self) -> None:
        """Release pooled connections unless they belong to a caller's session."""

        if not self._borrowed_adapters:
            self._session.close()


__all__ = [
    "HttpTransport",
    "Query",
    "encode_query",
    "is_connection_reset",
]
