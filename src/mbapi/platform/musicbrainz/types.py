"""Where: src/mbapi/platform/musicbrainz/types.py
What: Entity names, URL link types and the minimal recording shape.
Why: Edits need a few typed fields; full entity schemas stay plain JSON.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Final, Literal, NotRequired, TypeAlias, TypedDict, get_args

EntityType: TypeAlias = Literal[
    "area",
    "artist",
    "collection",
    "event",
    "instrument",
    "label",
    "place",
    "recording",
    "release",
    "release-group",
    "series",
    "work",
    "url",
]

ENTITY_TYPES: Final[frozenset[str]] = frozenset(get_args(EntityType))

JsonObject: TypeAlias = dict[str, Any]


class LinkType(IntEnum):
    """URL relationship type ids used when attaching links to recordings."""

    license = 302
    production = 256
    samples_IMDb_entry = 258
    get_the_music = 257
    purchase_for_download = 254
    download_for_free = 255
    stream_for_free = 268
    crowdfunding_page = 905
    other_databases = 306
    Allmusic = 285


class Recording(TypedDict):
    """Recording fields consumed by the edit helpers."""

    id: str
    title: str
    disambiguation: NotRequired[str]
    isrcs: NotRequired[list[str]]


__all__ = [
    "ENTITY_TYPES",
    "EntityType",
    "JsonObject",
    "LinkType",
    "Recording",
]
