"""Configuration loading for bookcheck (.bookcheck.yml)."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import yaml

from .logging import get_logger

CONFIG_FILENAME = ".bookcheck.yml"
DEFAULT_USER_AGENT = "bookcheck/0.1.0"

logger = get_logger("config")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass(frozen=True)
class LinkcheckConfig:
    """Settings that control how links are checked."""

    follow_web_links: bool = False
    exclude: Tuple[str, ...] = ()
    request_timeout: float = 30.0
    max_workers: int = 8
    user_agent: str = DEFAULT_USER_AGENT

    def is_excluded(self, url: str) -> bool:
        return any(re.search(pattern, url) for pattern in self.exclude)


@dataclass
class BookcheckConfig:
    """Represents the settings defined in .bookcheck.yml."""

    root: Path
    src: str = "src"
    linkcheck: LinkcheckConfig = field(default_factory=LinkcheckConfig)

    @property
    def src_dir(self) -> Path:
        return self.root / self.src


_KNOWN_KEYS = {
    "follow_web_links",
    "exclude",
    "request_timeout",
    "max_workers",
    "user_agent",
}


def load_config(config_path: Path) -> BookcheckConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return BookcheckConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    book_data = _as_dict(data.get("book"))
    src = _as_str(book_data.get("src")) if book_data else None

    return BookcheckConfig(
        root=root,
        src=src or "src",
        linkcheck=config_from_mapping(_as_dict(data.get("linkcheck"))),
    )


def config_from_mapping(data: Mapping[str, Any]) -> LinkcheckConfig:
    """Build a :class:`LinkcheckConfig` from kebab-case or snake_case keys."""
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        name = str(key).replace("-", "_")
        if name not in _KNOWN_KEYS:
            logger.warning("Ignoring unknown linkcheck option %r", key)
            continue
        normalized[name] = value

    defaults = LinkcheckConfig()

    follow = normalized.get("follow_web_links")
    follow_web_links = defaults.follow_web_links
    if follow is not None:
        coerced = _as_bool(follow)
        if coerced is None:
            raise ConfigError(f"follow-web-links must be a boolean, got {follow!r}")
        follow_web_links = coerced

    exclude = tuple(_as_str_list(normalized.get("exclude")))
    for pattern in exclude:
        try:
            re.compile(pattern)
        except re.error as exc:
            raise ConfigError(f"Invalid exclude pattern {pattern!r}: {exc}") from exc

    request_timeout = defaults.request_timeout
    if "request_timeout" in normalized:
        timeout = _as_float(normalized["request_timeout"])
        if timeout is None or timeout <= 0:
            raise ConfigError("request-timeout must be a positive number of seconds")
        request_timeout = timeout

    max_workers = defaults.max_workers
    if "max_workers" in normalized:
        workers = _as_int(normalized["max_workers"])
        if workers is None or workers < 1:
            raise ConfigError("max-workers must be a positive integer")
        max_workers = workers

    user_agent = _as_str(normalized.get("user_agent")) or defaults.user_agent

    return LinkcheckConfig(
        follow_web_links=follow_web_links,
        exclude=exclude,
        request_timeout=request_timeout,
        max_workers=max_workers,
        user_agent=user_agent,
    )


def config_from_render_context(payload: Mapping[str, Any]) -> LinkcheckConfig:
    """Read the ``output.linkcheck`` table of an mdBook render context."""
    config = _as_dict(payload.get("config"))
    output = _as_dict(config.get("output"))
    return config_from_mapping(_as_dict(output.get("linkcheck")))


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "BookcheckConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "LinkcheckConfig",
    "config_from_mapping",
    "config_from_render_context",
    "load_config",
]
