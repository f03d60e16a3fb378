"""
Audio fingerprint generation via fpcalc (Chromaprint).

The fingerprint and duration produced here are the only input the
resolution pipeline needs from the audio file itself.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from jukebox_meta.errors import FingerprintError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FingerprintData:
    """Output of fpcalc: track length in seconds and the fingerprint string."""

    duration: float
    fingerprint: str


FingerprintProvider = Callable[[Path], FingerprintData]


def get_fpcalc_path() -> Path | None:
    """Find fpcalc executable in PATH."""
    path = shutil.which("fpcalc")
    return Path(path) if path else None


def parse_fpcalc_output(stdout: str) -> FingerprintData:
    """
    Parse the JSON document printed by ``fpcalc -json``.

    Raises:
        FingerprintError: If the output is not JSON or lacks required keys
    """
    try:
        data = json.loads(stdout)
    except json.JSONDecodeError as e:
        raise FingerprintError(f"Failed to parse fpcalc output: {e}") from e

    if not isinstance(data, dict):
        raise FingerprintError(f"Invalid fpcalc output: {stdout}")

    fingerprint = data.get("fingerprint")
    duration = data.get("duration")

    if not fingerprint or not isinstance(duration, int | float) or isinstance(duration, bool):
        raise FingerprintError(f"Invalid fpcalc output: {stdout}")

    return FingerprintData(duration=float(duration), fingerprint=str(fingerprint))


def calculate_fingerprint(
    file_path: Path,
    fpcalc_path: Path | None = None,
    timeout_sec: int = 30,
) -> FingerprintData:
    """
    Calculate Chromaprint fingerprint for audio file.

    Args:
        file_path: Path to audio file
        fpcalc_path: Optional path to fpcalc executable
        timeout_sec: Timeout for fpcalc execution

    Returns:
        FingerprintData with duration and fingerprint

    Raises:
        FingerprintError: If fpcalc is not available or fails
    """
    if fpcalc_path is None:
        fpcalc_path = get_fpcalc_path()

    if fpcalc_path is None:
        raise FingerprintError(
            "fpcalc not found in PATH. Install chromaprint-tools or "
            "download from https://acoustid.org/chromaprint"
        )

    try:
        result = subprocess.run(
            [str(fpcalc_path), "-json", str(file_path)],
            capture_output=True,
            text=True,
            timeout=timeout_sec,
        )
    except subprocess.TimeoutExpired as e:
        raise FingerprintError(f"fpcalc timed out after {timeout_sec}s") from e
    except OSError as e:
        raise FingerprintError(f"Could not run fpcalc: {e}") from e

    if result.returncode != 0:
        raise FingerprintError(f"fpcalc failed: {result.stderr.strip()}")

    fp = parse_fpcalc_output(result.stdout)
    logger.debug("Audio fingerprint for %s: %s", file_path, fp.fingerprint)
    return fp


## Tests


def test_parse_fpcalc_output():
    fp = parse_fpcalc_output('{"duration": 212.45, "fingerprint": "AQADtEmUaEkSRZEGAA"}')
    assert fp.duration == 212.45
    assert fp.fingerprint == "AQADtEmUaEkSRZEGAA"


def test_parse_fpcalc_output_integer_duration():
    fp = parse_fpcalc_output('{"duration": 180, "fingerprint": "ABC"}')
    assert fp.duration == 180.0
    assert isinstance(fp.duration, float)


def test_parse_fpcalc_output_rejects_garbage():
    import pytest

    with pytest.raises(FingerprintError):
        parse_fpcalc_output("ERROR: couldn't open the file")
    with pytest.raises(FingerprintError):
        parse_fpcalc_output('{"duration": 180}')
    with pytest.raises(FingerprintError):
        parse_fpcalc_output("[1, 2]")
