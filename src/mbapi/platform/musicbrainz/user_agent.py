"""Where: src/mbapi/platform/musicbrainz/user_agent.py
What: Build MusicBrainz-compliant User-Agent strings.
Why: The MusicBrainz usage policy asks every client to identify itself.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from mbapi import __version__
from mbapi.platform.errors import UsageError

_ENV_USER_AGENT: Final[str] = "MUSICBRAINZ_USER_AGENT"
_FALLBACK_APP: Final[str] = "mbapi"


def format_user_agent(app_name: str, app_version: str, contact: str | None) -> str:
    """Return ``App/Version ( contact )`` when contact information is available."""

    stripped = (contact or "").strip()
    if stripped:
        return f"{app_name}/{app_version} ( {stripped} )"
    return f"{app_name}/{app_version}"


def resolve_user_agent(
    app_name: str | None,
    app_version: str | None,
    contact: str | None,
    env: Mapping[str, str] | None = None,
) -> str:
    """Provide the user agent that outbound HTTP calls should send.

    An explicit application identity wins; otherwise the
    ``MUSICBRAINZ_USER_AGENT`` environment variable, then the library's own.

    Raises:
        UsageError: when only one of ``app_name`` and ``app_version`` is set.
    """

    if bool(app_name) != bool(app_version):
        raise UsageError("app_name and app_version must be set together")
    if app_name and app_version:
        return format_user_agent(app_name, app_version, contact)
    mapping = env if env is not None else os.environ
    override = (mapping.get(_ENV_USER_AGENT) or "").strip()
    if override:
        return override
    return format_user_agent(_FALLBACK_APP, __version__, contact)


__all__ = [
    "format_user_agent",
    "resolve_user_agent",
]
