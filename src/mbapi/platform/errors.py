"""Where: src/mbapi/platform/errors.py
What: Exception hierarchy raised by the MusicBrainz and Cover Art clients.
Why: Callers catch one base class instead of ``requests`` internals.
"""

from __future__ import annotations


class MusicBrainzError(Exception):
    """Base class for all exceptions raised by mbapi."""


class UsageError(MusicBrainzError):
    """Error related to misuse of the client API."""


class WebServiceError(MusicBrainzError):
    """Error related to a web service request or response."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.reason = reason

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        reason = f" {self.reason}" if self.reason else ""
        return f"{self.message} (status {self.status}{reason})"


class NetworkError(WebServiceError):
    """Problem communicating with the server."""


class ResponseError(WebServiceError):
    """Unexpected response status returned by the server."""


class AuthenticationError(WebServiceError):
    """The server kept rejecting the digest response."""


class MalformedChallengeError(WebServiceError):
    """A 401 response did not carry a usable ``WWW-Authenticate`` header."""


class RedirectExpectationError(WebServiceError):
    """A form submission did not answer with the expected redirect."""


__all__ = [
    "AuthenticationError",
    "MalformedChallengeError",
    "MusicBrainzError",
    "NetworkError",
    "RedirectExpectationError",
    "ResponseError",
    "UsageError",
    "WebServiceError",
]
