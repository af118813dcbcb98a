"""Where: src/mbapi/platform/coverart/client.py
What: Cover Art Archive lookups on top of the shared HTTP transport.
Why: Cover images live on a separate host that answers with redirects.

The archive answers ``/release/{mbid}/front`` with a 307 whose
``Location`` is the image URL. A 503 is returned for releases it has no
data for, so it is reported as "no cover" rather than as an error.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Final, Literal, TypeAlias

import requests

from mbapi.platform.errors import ResponseError
from mbapi.platform.logging import logger
from mbapi.platform.musicbrainz.http_client import HttpTransport
from mbapi.platform.musicbrainz.rate_limit import RateLimiter
from mbapi.platform.musicbrainz.user_agent import resolve_user_agent

COVER_ART_HOST: Final[str] = "coverartarchive.org"

CoverKind: TypeAlias = Literal["release", "release-group"]
CoverType: TypeAlias = Literal["front", "back"]

_NO_COVER_STATUSES: Final[frozenset[int]] = frozenset(
    {HTTPStatus.NOT_FOUND, HTTPStatus.SERVICE_UNAVAILABLE}
)
_USAGE_STATUSES: Final[frozenset[int]] = frozenset(
    {HTTPStatus.BAD_REQUEST, HTTPStatus.METHOD_NOT_ALLOWED}
)


@dataclass(frozen=True, slots=True)
class CoverArtUrl:
    """Resolved image location; ``url`` is None when no cover exists."""

    url: str | None


class CoverArtArchiveApi:
    """Client for ``https://coverartarchive.org``."""

    def __init__(
        self,
        host: str = COVER_ART_HOST,
        *,
        user_agent: str | None = None,
        rate_limiter: RateLimiter | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.host = host
        self.rate_limiter = rate_limiter
        self.transport = HttpTransport(
            f"https://{host}",
            user_agent or resolve_user_agent(None, None, None),
            session=session,
            sleep=sleep,
        )

    @staticmethod
    def _path(kind: CoverKind, mbid: str, cover_type: CoverType | None = None) -> str:
        parts = [kind, mbid]
        if cover_type:
            parts.append(cover_type)
        return "/" + "/".join(parts)

    def _check_usage(self, response: requests.Response) -> None:
        if response.status_code in _USAGE_STATUSES:
            raise ResponseError(
                "Invalid Cover Art Archive request", status=response.status_code, reason=response.reason
            )

    def get_cover_url(
        self,
        mbid: str,
        kind: CoverKind = "release",
        cover_type: CoverType = "front",
    ) -> CoverArtUrl:
        """Resolve the ``front`` or ``back`` image URL without downloading the image."""

        if self.rate_limiter is not None:
            self.rate_limiter.admit()
        response = self.transport.get(self._path(kind, mbid, cover_type), follow_redirects=False)

        if response.status_code == HTTPStatus.TEMPORARY_REDIRECT:
            return CoverArtUrl(url=response.headers.get("Location"))
        if response.status_code in _NO_COVER_STATUSES:
            logger.debug("No cover art for %s %s (status=%s)", kind, mbid, response.status_code)
            return CoverArtUrl(url=None)
        self._check_usage(response)
        raise ResponseError(
            "Unexpected Cover Art Archive response", status=response.status_code, reason=response.reason
        )

    def _get_listing(self, kind: CoverKind, mbid: str) -> dict[str, Any] | None:
        if self.rate_limiter is not None:
            self.rate_limiter.admit()
        response = self.transport.get(self._path(kind, mbid), headers={"Accept": "application/json"})
        if response.status_code in _NO_COVER_STATUSES:
            return None
        self._check_usage(response)
        if not response.ok:
            raise ResponseError(
                "Unexpected Cover Art Archive response", status=response.status_code, reason=response.reason
            )
        info: dict[str, Any] = response.json()
        release = info.get("release")
        if isinstance(release, str) and release.startswith("http:"):
            info["release"] = "https" + release[4:]
        return info

    def get_release_covers(self, release_id: str) -> dict[str, Any] | None:
        """Image listing of a release, or None when the archive has none."""

        return self._get_listing("release", release_id)

    def get_release_group_covers(self, release_group_id: str) -> dict[str, Any] | None:
        """Image listing of a release group, or None when the archive has none."""

        return self._get_listing("release-group", release_group_id)

    def close(self) -> None:
        self.transport.close()


__all__ = [
    "COVER_ART_HOST",
    "CoverArtArchiveApi",
    "CoverArtUrl",
    "CoverKind",
    "CoverType",
]
