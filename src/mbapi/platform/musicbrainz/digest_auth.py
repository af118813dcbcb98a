"""Where: src/mbapi/platform/musicbrainz/digest_auth.py
What: RFC 2617 Digest responder for the legacy XML submission endpoint.
Why: MusicBrainz WS2 protects POST requests with Digest authentication.

Known limitations, acceptable for a responder that answers one challenge
with one request:

- ``qop="auth-int"`` is not supported.
- ``stale=true`` is not honoured.
- The nonce count is always ``00000001``.
"""

from __future__ import annotations

import hashlib
import re
import uuid
from dataclasses import dataclass
from typing import Final

from mbapi.platform.errors import MalformedChallengeError
from mbapi.platform.logging import logger


_CHALLENGE_ATTR: Final[re.Pattern[str]] = re.compile(
    r'([a-z0-9_-]+)=(?:"([^"]*)"|([a-z0-9_-]+))', re.IGNORECASE
)
_QOP_AUTH: Final[re.Pattern[str]] = re.compile(r"(^|,)\s*auth\s*($|,)", re.IGNORECASE)
_NONCE_COUNT: Final[str] = "00000001"
_BARE_FIELDS: Final[frozenset[str]] = frozenset({"qop", "nc", "algorithm"})


@dataclass(frozen=True, slots=True)
class Credentials:
    """Bot account credentials. ``repr`` never shows the password."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


@dataclass(slots=True)
class Challenge:
    """Fields decoded from a ``WWW-Authenticate: Digest`` header."""

    algorithm: str | None = None
    realm: str | None = None
    nonce: str | None = None
    opaque: str | None = None
    qop: str | None = None

    @classmethod
    def parse(cls, header: str | None) -> "Challenge":
        """Decode ``key=value`` / ``key="value"`` pairs, ignoring unknown keys."""

        if not header or not header.strip():
            raise MalformedChallengeError("Missing WWW-Authenticate header", status=401)

        challenge = cls()
        for match in _CHALLENGE_ATTR.finditer(header):
            key = match.group(1).lower()
            value = match.group(2) if match.group(2) is not None else match.group(3)
            if key in {"algorithm", "realm", "nonce", "opaque", "qop"}:
                setattr(challenge, key, value)

        if challenge.nonce is None:
            raise MalformedChallengeError(
                "WWW-Authenticate header carries no nonce", status=401
            )
        return challenge

    @property
    def wants_auth_qop(self) -> bool:
        return self.qop is not None and _QOP_AUTH.search(self.qop) is not None


def md5_hex(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()  # noqa: S324 (mandated by RFC 2617)


def compute_ha1(
    algorithm: str | None,
    username: str,
    realm: str | None,
    password: str,
    nonce: str | None,
    cnonce: str | None,
) -> str:
    """Compute HA1 for the ``MD5`` (default) and ``MD5-sess`` algorithms."""

    ha1 = md5_hex(f"{username}:{realm or ''}:{password}")
    if algorithm and algorithm.lower() == "md5-sess":
        return md5_hex(f"{ha1}:{nonce}:{cnonce}")
    return ha1


class DigestAuthenticator:
    """Answer a Digest challenge with an ``Authorization`` header value."""

    def __init__(self, credentials: Credentials) -> None:
        self._credentials = credentials
        self.sent_auth: bool = False

    @staticmethod
    def _new_cnonce() -> str:
        return uuid.uuid4().hex

    def compute_authorization_header(self, method: str, path: str, challenge_header: str | None) -> str:
        """Build the ``Authorization`` header for ``method`` on ``path``.

        Raises:
            MalformedChallengeError: when ``challenge_header`` is missing or
                has no nonce.
        """

        challenge = Challenge.parse(challenge_header)
        qop = "auth" if challenge.wants_auth_qop else None
        nc = _NONCE_COUNT if qop else None
        cnonce = self._new_cnonce() if qop else None

        username = self._credentials.username
        ha1 = compute_ha1(
            challenge.algorithm,
            username,
            challenge.realm,
            self._credentials.password,
            challenge.nonce,
            cnonce,
        )
        ha2 = md5_hex(f"{method}:{path}")
        if qop:
            response = md5_hex(f"{ha1}:{challenge.nonce}:{nc}:{cnonce}:{qop}:{ha2}")
        else:
            response = md5_hex(f"{ha1}:{challenge.nonce}:{ha2}")

        values: list[tuple[str, str | None]] = [
            ("username", username),
            ("realm", challenge.realm),
            ("nonce", challenge.nonce),
            ("uri", path),
            ("qop", qop),
            ("response", response),
            ("nc", nc),
            ("cnonce", cnonce),
            ("algorithm", challenge.algorithm),
            ("opaque", challenge.opaque),
        ]
        parts = [
            f"{key}={value}" if key in _BARE_FIELDS else f'{key}="{value}"'
            for key, value in values
            if value
        ]

        self.sent_auth = True
        logger.debug(
            "Answering digest challenge for realm %s",
            challenge.realm,
            extra={"http_event": "auth.digest"},
        )
        return "Digest " + ", ".join(parts)


__all__ = [
    "Challenge",
    "Credentials",
    "DigestAuthenticator",
    "compute_ha1",
    "md5_hex",
]
