"""Log-safe formatting for jukebox-meta.

Lookup URLs carry the AcoustID client identifier and file paths carry the
user's directory layout. Helpers here keep both out of log output:
- client identifier redaction in URLs and config dumps
- file path relativization/hashing
- formatter and handler setup (plain stream or Rich)
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import httpx
from rich.console import Console
from rich.logging import RichHandler

# Config keys / query parameters whose values never reach the logs
REDACT_FIELDS = frozenset(
    {
        "client",
        "client_id",
        "api_key",
        "token",
        "secret",
        "password",
    }
)


def hash_path(file_path: Path | str, length: int = 12) -> str:
    """Deterministic, truncated SHA256 of the full path."""
    return hashlib.sha256(str(file_path).encode()).hexdigest()[:length]


def relativize_path(file_path: Path | str, library_root: Path | str | None = None) -> str:
    """Shorten a path to something identifying but not revealing.

    Relative to ``library_root`` when the path lives under it, otherwise
    just ``parent/filename``.
    """
    path = Path(file_path)

    if library_root:
        try:
            return str(path.relative_to(Path(library_root)))
        except ValueError:
            pass

    if path.parent.name:
        return f"{path.parent.name}/{path.name}"
    return path.name


def safe_path(
    file_path: Path | str,
    library_root: Path | str | None = None,
    use_hash: bool = False,
) -> str:
    """Get a safe representation of a path for logging."""
    if use_hash:
        return f"file:{hash_path(file_path)}"
    return relativize_path(file_path, library_root)


def redact_value(value: str, visible_chars: int = 4) -> str:
    """Redact a sensitive value, showing only first few characters (e.g. "cSpU***")."""
    if len(value) <= visible_chars:
        return "***"
    return f"{value[:visible_chars]}***"


def redact_url(url: httpx.URL | str) -> str:
    """Render a URL with sensitive query parameters redacted."""
    url = httpx.URL(str(url))
    if not url.params:
        return str(url)

    params = [
        (key, redact_value(value) if key.lower() in REDACT_FIELDS else value)
        for key, value in url.params.multi_items()
    ]
    return str(url.copy_with(params=httpx.QueryParams(params)))


def redact_dict(
    data: Mapping[str, Any],
    redact_fields: frozenset[str] = REDACT_FIELDS,
) -> dict[str, Any]:
    """Recursively redact sensitive string fields in a (config) mapping."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        key_lower = key.lower()
        sensitive = key_lower in redact_fields or any(f in key_lower for f in redact_fields)

        if sensitive and isinstance(value, str):
            result[key] = redact_value(value)
        elif isinstance(value, Mapping):
            result[key] = redact_dict(value, redact_fields)
        else:
            result[key] = value

    return result


class SafeLogFormatter(logging.Formatter):
    """Formatter that shortens paths and redacts URLs found in record args."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        hash_paths: bool = False,
        library_root: Path | None = None,
    ):
        super().__init__(fmt, datefmt)
        self.hash_paths = hash_paths
        self.library_root = library_root

    def format(self, record: logging.LogRecord) -> str:
        # Copy so other handlers still see the original record
        record = logging.makeLogRecord(record.__dict__)
        if record.args:
            record.args = self._sanitize_args(record.args)
        return super().format(record)

    def _sanitize_args(
        self, args: tuple[Any, ...] | Mapping[str, Any]
    ) -> tuple[Any, ...] | dict[str, Any]:
        if isinstance(args, Mapping):
            return {k: self._sanitize_value(v) for k, v in args.items()}
        return tuple(self._sanitize_value(arg) for arg in args)

    def _sanitize_value(self, value: Any) -> Any:
        if isinstance(value, Path):
            return safe_path(value, self.library_root, use_hash=self.hash_paths)
        if isinstance(value, httpx.URL):
            return redact_url(value)
        if isinstance(value, str) and value.startswith(("http://", "https://")):
            return redact_url(value)
        return value


def configure_safe_logging(
    level: int = logging.INFO,
    format_string: str | None = None,
    hash_paths: bool = False,
) -> None:
    """Configure root logging with a plain stream handler and SafeLogFormatter."""
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handler = logging.StreamHandler()
    handler.setFormatter(SafeLogFormatter(fmt=format_string, hash_paths=hash_paths))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)


def configure_rich_logging(
    level: int = logging.WARNING,
    hash_paths: bool = False,
    show_time: bool = True,
    show_path: bool = False,
) -> Console:
    """Configure root logging through Rich, writing to stderr.

    Returns:
        The Console the CLI should print its own output with
    """
    console = Console()
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=show_time,
        show_path=show_path,
        rich_tracebacks=True,
    )
    handler.setFormatter(SafeLogFormatter(fmt="%(message)s", hash_paths=hash_paths))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    return console


## Tests


def test_redact_url_hides_client():
    url = "https://api.acoustid.org/v2/lookup?format=json&client=cSpUJKpD&duration=180"
    redacted = redact_url(url)
    assert "cSpUJKpD" not in redacted
    assert "client=cSpU" in redacted
    assert "duration=180" in redacted


def test_redact_url_without_query():
    assert redact_url("https://coverartarchive.org/release-group/abc") == (
        "https://coverartarchive.org/release-group/abc"
    )


def test_redact_dict_nested():
    data = {
        "live_sources": {"acoustid_client_id": "abcdef123", "timeout_s": 30.0},
        "logging": {"level": "INFO"},
    }
    redacted = redact_dict(data)
    assert redacted["live_sources"]["acoustid_client_id"] == "abcd***"
    assert redacted["live_sources"]["timeout_s"] == 30.0
    assert redacted["logging"]["level"] == "INFO"


def test_safe_path():
    path = Path("/home/user/music/song.flac")
    assert safe_path(path) == "music/song.flac"
    assert safe_path(path, library_root="/home/user") == "music/song.flac"
    assert safe_path(path, use_hash=True).startswith("file:")


def test_safe_log_formatter_redacts_url_args():
    formatter = SafeLogFormatter(fmt="%(message)s")
    record = logging.LogRecord(
        name="test",
        level=logging.DEBUG,
        pathname="",
        lineno=0,
        msg="GET %s",
        args=(httpx.URL("https://api.acoustid.org/v2/lookup?client=secretkey"),),
        exc_info=None,
    )
    formatted = formatter.format(record)
    assert "secretkey" not in formatted
    assert "client=secr" in formatted


def test_safe_log_formatter_mapping_args():
    formatter = SafeLogFormatter(fmt="%(message)s", hash_paths=True)
    record = logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg="Fingerprinting %(path)s",
        args=({"path": Path("/home/user/music/song.flac")},),
        exc_info=None,
    )
    assert formatter.format(record).startswith("Fingerprinting file:")


def test_configure_logging_replaces_root_handlers():
    root_logger = logging.getLogger()
    saved_handlers, saved_level = root_logger.handlers[:], root_logger.level
    try:
        configure_safe_logging(level=logging.DEBUG)
        configure_safe_logging(level=logging.DEBUG)
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0].formatter, SafeLogFormatter)

        console = configure_rich_logging(level=logging.INFO)
        (handler,) = root_logger.handlers
        assert isinstance(handler, RichHandler)
        assert isinstance(console, Console)
        assert root_logger.level == logging.INFO
    finally:
        root_logger.handlers[:] = saved_handlers
        root_logger.setLevel(saved_level)
