"""Configuration management for mbapi."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, ClassVar

from rich.console import Console

from mbapi.config.paths import default_config_path, default_log_file
from mbapi.platform.logging import logger, setup_logger


DEFAULT_BASE_URL = "https://musicbrainz.org"
DEFAULT_RATE_LIMIT_CALLS = 15
DEFAULT_RATE_LIMIT_PERIOD = 18.0
DEFAULT_TIMEOUT = 20.0
DEFAULT_RETRY_TIMEOUT = 0.5


def _path_field(default: Path | None = None) -> Any:
    """Create a field for Path objects with proper conversion."""
    return field(default=default, metadata={"path": True})


@dataclass
class Config:
    """Persisted client configuration."""

    # Web service endpoint
    base_url: str = DEFAULT_BASE_URL

    # Application identity sent in the User-Agent
    app_name: str | None = None
    app_version: str | None = None
    app_contact: str | None = None

    # Bot account used for edits and XML submissions
    bot_username: str | None = None
    bot_password: str | None = None

    # Client side throttling and transport
    rate_limit_calls: int = DEFAULT_RATE_LIMIT_CALLS
    rate_limit_period: float = DEFAULT_RATE_LIMIT_PERIOD
    timeout: float = DEFAULT_TIMEOUT
    retry_timeout: float = DEFAULT_RETRY_TIMEOUT

    # Log file path
    log_file: Path | None = _path_field()

    _instance: ClassVar["Config | None"] = None

    def __post_init__(self) -> None:
        """Convert string paths to ``Path`` objects using field metadata."""
        for f in fields(self):
            if not f.metadata.get("path", False):
                continue
            value = getattr(self, f.name)
            if isinstance(value, str):
                setattr(self, f.name, Path(value) if value else None)

        if self.rate_limit_calls <= 0:
            raise ValueError("rate_limit_calls must be a positive integer")
        if self.rate_limit_period <= 0:
            raise ValueError("rate_limit_period must be positive")

    def save(self) -> None:
        """Save configuration to file."""
        config_dict = asdict(self)

        try:
            target = default_config_path()
            target.parent.mkdir(parents=True, exist_ok=True)
            _ = target.write_text(self._render_toml(config_dict), encoding="utf-8")
            logger.info("Configuration saved to %s", target)
        except OSError as e:
            logger.error("Failed to save configuration: %s", e)
            raise

    def _render_toml(self, config: dict[str, Any]) -> str:
        """Render configuration as TOML with inline guidance."""

        lines: list[str] = ["# mbapi configuration file", ""]

        lines.append("# MusicBrainz server to talk to")
        lines.append(f"base_url = {self._format_toml_value(config['base_url'])}")
        lines.append("")

        lines.append("# Application identity, sent as 'name/version ( contact )'")
        for key in ("app_name", "app_version", "app_contact"):
            if config[key] is not None:
                lines.append(f"{key} = {self._format_toml_value(config[key])}")
        lines.append("")

        lines.append("# Bot account (required for edits and ISRC submissions)")
        for key in ("bot_username", "bot_password"):
            if config[key] is not None:
                lines.append(f"{key} = {self._format_toml_value(config[key])}")
        lines.append("")

        lines.append("# At most rate_limit_calls requests per rate_limit_period seconds")
        for key in ("rate_limit_calls", "rate_limit_period", "timeout", "retry_timeout"):
            lines.append(f"{key} = {self._format_toml_value(config[key])}")
        lines.append("")

        lines.append("# Log file path (optional)")
        if config["log_file"] is not None:
            lines.append(f"log_file = {self._format_toml_value(config['log_file'])}")

        return "\n".join(lines) + "\n"

    @staticmethod
    def _format_toml_value(value: Any) -> str:
        """Format a Python value as a TOML literal."""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (str, Path)):
            escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
            return f'"{escaped}"'
        return str(value)

    def setup_logging(
        self,
        console_level: int = logging.INFO,
        console: Console | None = None,
    ) -> logging.Logger:
        """Attach handlers to the library logger, writing to ``log_file``.

        Falls back to the repository ``logs/mbapi.log`` when no log file is
        configured.
        """
        log_file = self.log_file or default_log_file()
        return setup_logger(log_file=log_file, console_level=console_level, console=console)

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from file.

        A missing file yields the defaults without writing anything; the
        result is cached until ``reset`` is called.
        """
        if cls._instance is not None:
            return cls._instance

        config_file = default_config_path()

        if not config_file.exists():
            logger.debug("No configuration at %s, using defaults", config_file)
            instance = cls()
        else:
            try:
                with open(config_file, "rb") as f:
                    config_dict = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                logger.error("Failed to load configuration: %s", e)
                raise

            known = {f.name for f in fields(cls)}
            unknown = sorted(set(config_dict) - known)
            if unknown:
                logger.warning("Ignoring unknown configuration keys: %s", ", ".join(unknown))
            instance = cls(**{k: v for k, v in config_dict.items() if k in known})
            logger.info("Configuration loaded from %s", config_file)

        cls._instance = instance
        return instance

    @classmethod
    def reset(cls) -> None:
        """Forget the cached instance so the next ``load`` re-reads the file."""
        cls._instance = None


__all__ = [
    "Config",
    "DEFAULT_BASE_URL",
    "DEFAULT_RATE_LIMIT_CALLS",
    "DEFAULT_RATE_LIMIT_PERIOD",
    "DEFAULT_RETRY_TIMEOUT",
    "DEFAULT_TIMEOUT",
]
