from __future__ import annotations

import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

TRUE_VALUES = ("true", "1", "yes")


class LiveSourcesConfig(BaseModel):
    """Remote lookup service configuration."""

    # Read from ACOUSTID_CLIENT_ID if not provided
    acoustid_client_id: str | None = Field(default=None)

    acoustid_url: str = Field(default="https://api.acoustid.org/v2")
    musicbrainz_url: str = Field(default="https://musicbrainz.org/ws/2")
    coverart_url: str = Field(default="https://coverartarchive.org")

    user_agent: str = Field(
        default="jukebox-meta/0.1.0 ( https://github.com/jukebox-meta/jukebox-meta )"
    )
    timeout_s: float = Field(default=30.0, gt=0)


class FingerprintConfig(BaseModel):
    """fpcalc invocation settings."""

    fpcalc_path: Path | None = Field(default=None)  # None = look up in PATH
    timeout_s: int = Field(default=30, ge=1)


class PipelineConfig(BaseModel):
    """Resolution policy knobs."""

    # False: artwork transport failures degrade to no album art
    artwork_errors_fatal: bool = Field(default=True)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="WARNING")  # DEBUG, INFO, WARNING, ERROR
    format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    hash_paths: bool = Field(default=False)


class Config(BaseModel):
    """
    Main configuration for jukebox-meta.

    Loads from TOML file with optional environment variable overrides.
    """

    live_sources: LiveSourcesConfig = Field(default_factory=LiveSourcesConfig)
    fingerprint: FingerprintConfig = Field(default_factory=FingerprintConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """
        Load configuration from TOML file with environment variable overrides.

        Environment variables take precedence and follow the pattern:
        JUKEBOX_META_<SECTION>_<KEY> (e.g., JUKEBOX_META_LIVE_SOURCES_TIMEOUT_S).
        ACOUSTID_CLIENT_ID is honoured for the AcoustID client key.
        """
        config_dict: dict[str, object] = {}

        if config_path and config_path.exists():
            config_dict = tomllib.loads(config_path.read_text())

        config_dict = cls._merge_env_overrides(config_dict)
        return cls.model_validate(config_dict)

    @staticmethod
    def _section(config_dict: dict[str, object], name: str) -> dict[str, object]:
        section = config_dict.setdefault(name, {})
        if not isinstance(section, dict):
            section = {}
            config_dict[name] = section
        return section

    @classmethod
    def _merge_env_overrides(cls, config_dict: dict[str, object]) -> dict[str, object]:
        """Return the config dictionary with env vars applied, ready for validation."""
        env_prefix = "JUKEBOX_META_"

        live_sources = cls._section(config_dict, "live_sources")

        if client_id := os.getenv("ACOUSTID_CLIENT_ID"):
            live_sources["acoustid_client_id"] = client_id
        if client_id := os.getenv(f"{env_prefix}LIVE_SOURCES_ACOUSTID_CLIENT_ID"):
            live_sources["acoustid_client_id"] = client_id
        for key in ("acoustid_url", "musicbrainz_url", "coverart_url", "user_agent", "timeout_s"):
            if value := os.getenv(f"{env_prefix}LIVE_SOURCES_{key.upper()}"):
                live_sources[key] = value

        fingerprint = cls._section(config_dict, "fingerprint")

        if fpcalc := os.getenv(f"{env_prefix}FINGERPRINT_FPCALC_PATH"):
            fingerprint["fpcalc_path"] = fpcalc
        if fp_timeout := os.getenv(f"{env_prefix}FINGERPRINT_TIMEOUT_S"):
            fingerprint["timeout_s"] = fp_timeout

        pipeline = cls._section(config_dict, "pipeline")

        if art_fatal := os.getenv(f"{env_prefix}PIPELINE_ARTWORK_ERRORS_FATAL"):
            pipeline["artwork_errors_fatal"] = art_fatal.lower() in TRUE_VALUES

        logging_config = cls._section(config_dict, "logging")

        if log_level := os.getenv(f"{env_prefix}LOGGING_LEVEL"):
            logging_config["level"] = log_level
        if log_format := os.getenv(f"{env_prefix}LOGGING_FORMAT"):
            logging_config["format"] = log_format
        if log_hash_paths := os.getenv(f"{env_prefix}LOGGING_HASH_PATHS"):
            logging_config["hash_paths"] = log_hash_paths.lower() in TRUE_VALUES

        return config_dict

    def require_client_id(self) -> str:
        """
        Return the AcoustID client key, failing early if it is not configured.

        Raises:
            ValueError: If no client key is configured
        """
        client_id = self.live_sources.acoustid_client_id
        if not client_id:
            raise ValueError(
                "AcoustID client id required (set ACOUSTID_CLIENT_ID or "
                "live_sources.acoustid_client_id)"
            )
        return client_id


## Tests


def test_config_defaults():
    config = Config()
    assert config.live_sources.acoustid_client_id is None
    assert config.live_sources.acoustid_url == "https://api.acoustid.org/v2"
    assert config.live_sources.timeout_s == 30.0
    assert config.fingerprint.fpcalc_path is None
    assert config.pipeline.artwork_errors_fatal is True
    assert config.logging.level == "WARNING"


def test_config_from_dict():
    config = Config.model_validate(
        {
            "live_sources": {"acoustid_client_id": "abc", "timeout_s": 5},
            "pipeline": {"artwork_errors_fatal": False},
        }
    )
    assert config.live_sources.acoustid_client_id == "abc"
    assert config.live_sources.timeout_s == 5.0
    assert config.pipeline.artwork_errors_fatal is False


def test_config_require_client_id():
    import pytest

    with pytest.raises(ValueError):
        Config().require_client_id()
    assert Config.model_validate(
        {"live_sources": {"acoustid_client_id": "abc"}}
    ).require_client_id() == "abc"
