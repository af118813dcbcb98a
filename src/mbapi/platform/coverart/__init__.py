"""Cover Art Archive client package."""

from .client import CoverArtArchiveApi, CoverArtUrl

__all__ = ["CoverArtArchiveApi", "CoverArtUrl"]
