"""MusicBrainz infrastructure package.

This package provides the request governance layer used to talk to the
MusicBrainz Web Service (WS2): a sliding-window rate limiter, a retrying
HTTP transport with its own cookie jar, an RFC 2617 Digest responder and
the CSRF based edit session, tied together by ``MusicBrainzApi``.
"""
