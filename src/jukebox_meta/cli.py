"""CLI for jukebox-meta using Typer and Rich.

Identifies audio files by fingerprint and prints the resolved metadata.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from enum import StrEnum
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from jukebox_meta.config import Config
from jukebox_meta.console import (
    print as cprint,
)
from jukebox_meta.console import print_error, set_console, status
from jukebox_meta.errors import ResolutionError
from jukebox_meta.pipeline import MetadataPipeline, SongMetadata
from jukebox_meta.safe_logging import (
    configure_rich_logging,
    configure_safe_logging,
    redact_dict,
)


class OutputFormat(StrEnum):
    """Output format for CLI commands."""

    TEXT = "text"
    JSON = "json"


class ExitCode:
    """Standard exit codes for CLI commands."""

    SUCCESS = 0
    ERROR = 1


app = typer.Typer(
    name="jukebox-meta",
    help="Identify audio files by acoustic fingerprint and resolve their metadata",
    no_args_is_help=True,
    add_completion=False,
)


class AppState:
    """Global application state passed between commands."""

    config: Config
    output_format: OutputFormat
    verbose: int


state = AppState()


@app.callback()
def main(
    config_path: Annotated[
        Path | None,
        typer.Option("--config", help="Path to configuration TOML file", exists=True),
    ] = None,
    client_id: Annotated[
        str | None,
        typer.Option("--client-id", help="AcoustID application client key"),
    ] = None,
    artwork_errors_fatal: Annotated[
        bool | None,
        typer.Option(
            "--artwork-errors-fatal/--artwork-errors-degrade",
            help="Fail the lookup when album art cannot be fetched",
        ),
    ] = None,
    output: Annotated[
        OutputFormat,
        typer.Option("--output", "-o", help="Output format"),
    ] = OutputFormat.TEXT,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Increase verbosity"),
    ] = 0,
) -> None:
    """jukebox-meta: fingerprint-based song metadata lookup."""
    logger = logging.getLogger(__name__)

    # Precedence: CLI > Env > Config File > Defaults
    cfg = Config.load(config_path)

    if client_id:
        cfg.live_sources.acoustid_client_id = client_id
    if artwork_errors_fatal is not None:
        cfg.pipeline.artwork_errors_fatal = artwork_errors_fatal

    if verbose >= 2:
        log_level = logging.DEBUG
    elif verbose == 1:
        log_level = logging.INFO
    else:
        log_level = getattr(logging, cfg.logging.level.upper(), logging.WARNING)

    if sys.stderr.isatty():
        console = configure_rich_logging(level=log_level, hash_paths=cfg.logging.hash_paths)
    else:
        # Redirected stderr gets plain log lines in the configured format
        configure_safe_logging(
            level=log_level,
            format_string=cfg.logging.format,
            hash_paths=cfg.logging.hash_paths,
        )
        console = Console()
    set_console(console)

    # Suppress external library logging unless very verbose (-vvv)
    if verbose < 3:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger.debug("Effective config: %s", redact_dict(cfg.model_dump(mode="json")))

    state.config = cfg
    state.output_format = output
    state.verbose = verbose


async def _identify_all(
    pipeline: MetadataPipeline, paths: list[Path]
) -> list[SongMetadata | BaseException]:
    # Independent lookups share nothing but the HTTP client
    return await asyncio.gather(
        *(pipeline.lookup_song(path) for path in paths), return_exceptions=True
    )


async def _run_identify(paths: list[Path]) -> list[SongMetadata | BaseException]:
    async with MetadataPipeline(state.config) as pipeline:
        return await _identify_all(pipeline, paths)


def _print_text(path: Path, meta: SongMetadata) -> None:
    cprint(f"[bold]{escape(path.name)}[/bold]")
    cprint(f"  title: {escape(meta.title)}")
    cprint(f"  album: {escape(meta.album)}")
    cprint(f"  artist: {escape(meta.artist)}")
    cprint(f"  album cover: {meta.album_art or 'Not found'}")
    cprint(f"  duration: {meta.duration:.1f}s")


@app.command()
def identify(
    paths: Annotated[
        list[Path],
        typer.Argument(help="Audio files to identify", exists=True, dir_okay=False),
    ],
) -> None:
    """Fingerprint audio files and resolve title, artist, album and album art.

    Examples:
        jukebox-meta identify song.flac
        jukebox-meta -o json identify *.mp3
    """
    try:
        state.config.require_client_id()
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.ERROR) from e

    with status(f"Identifying {len(paths)} file(s)..."):
        results = asyncio.run(_run_identify(paths))

    failed = 0
    records: list[dict[str, object]] = []
    for path, result in zip(paths, results, strict=True):
        if isinstance(result, ResolutionError):
            failed += 1
            records.append({"file": str(path), "error": str(result)})
            if state.output_format == OutputFormat.TEXT:
                print_error(escape(f"{path.name}: {result}"))
        elif isinstance(result, BaseException):
            raise result
        else:
            records.append({"file": str(path), "metadata": result.to_dict()})
            if state.output_format == OutputFormat.TEXT:
                _print_text(path, result)

    if state.output_format == OutputFormat.JSON:
        cprint(json.dumps(records, indent=2), markup=False, highlight=False, soft_wrap=True)

    raise typer.Exit(ExitCode.ERROR if failed else ExitCode.SUCCESS)


def cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
