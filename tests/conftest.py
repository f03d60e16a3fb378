"""Pytest configuration and shared fixtures for jukebox-meta tests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from service_fakes import FakeServices

from jukebox_meta.config import Config
from jukebox_meta.fingerprint import FingerprintData
from jukebox_meta.pipeline import MetadataPipeline

# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def services() -> FakeServices:
    """Fake AcoustID/MusicBrainz/Cover Art Archive answering the happy path."""
    return FakeServices()


@pytest.fixture
def config() -> Config:
    return Config.model_validate({"live_sources": {"acoustid_client_id": "test-client"}})


@pytest.fixture
def fingerprint() -> FingerprintData:
    return FingerprintData(duration=212.45, fingerprint="AQADtEmUaEkSRZEGAA")


@pytest.fixture
def make_pipeline(
    services: FakeServices, config: Config, fingerprint: FingerprintData
) -> Callable[..., MetadataPipeline]:
    """Build a pipeline over the fake services with a canned fingerprinter."""

    def _make(cfg: Config | None = None) -> MetadataPipeline:
        return MetadataPipeline(
            cfg or config,
            http_client=services.client(),
            fingerprinter=lambda _path: fingerprint,
        )

    return _make


# =============================================================================
# Fingerprint Fixtures
# =============================================================================


@pytest.fixture
def fake_fpcalc(tmp_path: Path) -> Callable[..., Path]:
    """Write an executable stand-in for fpcalc printing ``stdout`` and exiting with ``code``."""

    def _make(stdout: str, code: int = 0) -> Path:
        out_file = tmp_path / "fpcalc.out"
        out_file.write_text(stdout)
        script = tmp_path / "fpcalc"
        script.write_text(
            f'#!/bin/sh\ncat "{out_file}"\necho "fake fpcalc stderr" >&2\nexit {code}\n'
        )
        script.chmod(0o755)
        return script

    return _make


# =============================================================================
# Logging Fixtures
# =============================================================================


@pytest.fixture
def restore_root_logging() -> Iterator[None]:
    """Undo the root handler setup the CLI callback performs."""
    root_logger = logging.getLogger()
    saved_handlers, saved_level = root_logger.handlers[:], root_logger.level
    yield
    root_logger.handlers[:] = saved_handlers
    root_logger.setLevel(saved_level)
