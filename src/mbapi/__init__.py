"""Typed client for the MusicBrainz web service and the Cover Art Archive."""

from __future__ import annotations

__version__ = "0.1.0"

from mbapi.platform.coverart.client import CoverArtArchiveApi, CoverArtUrl  # noqa: E402
from mbapi.platform.errors import (  # noqa: E402
    AuthenticationError,
    MalformedChallengeError,
    MusicBrainzError,
    NetworkError,
    RedirectExpectationError,
    ResponseError,
    UsageError,
    WebServiceError,
)
from mbapi.platform.musicbrainz.client import MusicBrainzApi, MusicBrainzConfig  # noqa: E402
from mbapi.platform.musicbrainz.digest_auth import Credentials  # noqa: E402
from mbapi.platform.musicbrainz.rate_limit import RateLimiter  # noqa: E402
from mbapi.platform.musicbrainz.types import EntityType, LinkType  # noqa: E402
from mbapi.platform.musicbrainz.xml_metadata import XmlMetadata  # noqa: E402

__all__ = [
    "AuthenticationError",
    "CoverArtArchiveApi",
    "CoverArtUrl",
    "Credentials",
    "EntityType",
    "LinkType",
    "MalformedChallengeError",
    "MusicBrainzApi",
    "MusicBrainzConfig",
    "MusicBrainzError",
    "NetworkError",
    "RateLimiter",
    "RedirectExpectationError",
    "ResponseError",
    "UsageError",
    "WebServiceError",
    "XmlMetadata",
    "__version__",
]
