"""Rich console handler for structured request events.

Where: platform/logging/handlers.py
What: Render ``http_event`` log records with icons, colours and compact URLs.
Why: Throttling, retries and auth handshakes are easier to follow at a glance.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, override
from urllib.parse import urlsplit

from rich.console import ConsoleRenderable
from rich.logging import RichHandler
from rich.style import Style
from rich.text import Text


class RequestEventRichHandler(RichHandler):
    """Custom Rich handler that renders request lifecycle events."""

    _EVENT_STYLES: ClassVar[dict[str, tuple[str, str]]] = {
        "http.request": ("🌐", "blue"),
        "http.retry": ("🔁", "yellow"),
        "http.reset": ("⚡", "yellow"),
        "ratelimit.wait": ("⏳", "cyan"),
        "auth.digest": ("🔑", "magenta"),
        "session.login": ("👤", "green"),
        "session.logout": ("👋", "green"),
        "session.edit": ("✏️", "green"),
    }
    _FAILURE_COLOR: ClassVar[str] = "red"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        """Initialize the handler with custom settings.

        Args:
            *args: Positional arguments to pass to RichHandler.
            **kwargs: Keyword arguments to pass to RichHandler.
        """
        kwargs["show_time"] = False
        kwargs["show_path"] = False
        kwargs["show_level"] = False
        kwargs["rich_tracebacks"] = True
        kwargs["markup"] = False
        kwargs["omit_repeated_times"] = False
        super().__init__(*args, **kwargs)

    @staticmethod
    def _format_url(url: str) -> Text:
        """Render ``url`` as host plus path, dimming the query string."""

        parts = urlsplit(url)
        text = Text()
        if parts.netloc:
            _ = text.append(parts.netloc, style=Style(color="white", bold=True))
        _ = text.append(parts.path or "/", style=Style(color="white"))
        if parts.query:
            _ = text.append("?" + parts.query, style=Style(color="bright_black"))
        return text

    def _render_event(self, record: logging.LogRecord) -> Text | None:
        """Render a record carrying an ``http_event`` attribute."""

        event = getattr(record, "http_event", None)
        if not isinstance(event, str):
            return None

        icon, color = self._EVENT_STYLES.get(event, ("ℹ️", "blue"))
        if getattr(record, "success", None) is False:
            color = self._FAILURE_COLOR

        text = Text()
        _ = text.append(f"{icon} ", style=Style(color=color, bold=True))
        body = Text(style=Style(color=color))

        if event.startswith("http."):
            method = getattr(record, "method", None)
            if method:
                _ = body.append(f"{str(method).upper()} ")
            url = getattr(record, "url", None)
            if url:
                _ = body.append_text(self._format_url(str(url)))
            details: list[str] = []
            status = getattr(record, "status", None)
            if isinstance(status, int):
                details.append(f"status={status}")
            attempt = getattr(record, "attempt", None)
            if isinstance(attempt, int):
                details.append(f"attempt={attempt}")
            delay = getattr(record, "delay", None)
            if isinstance(delay, (int, float)):
                details.append(f"wait={delay:.2f}s")
            if details:
                _ = body.append(" [" + ", ".join(details) + "]")
        elif event == "ratelimit.wait":
            delay = getattr(record, "delay", None)
            _ = body.append("Client side rate limiter active")
            if isinstance(delay, (int, float)):
                _ = body.append(f", cooling down for {delay:.2f}s")
        else:
            _ = body.append(record.getMessage())
            entity = getattr(record, "entity", None)
            mbid = getattr(record, "mbid", None)
            if entity and mbid:
                _ = body.append(f" ({entity}/{mbid})")

        _ = text.append_text(body)
        return text

    @override
    def render_message(self, record: logging.LogRecord, message: str) -> ConsoleRenderable:
        """Render message with custom styling for request events."""

        event_text = self._render_event(record)
        if event_text is not None:
            return event_text
        return super().render_message(record, message)


__all__ = ["RequestEventRichHandler"]
