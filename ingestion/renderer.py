"""
ingestion/renderer.py — ffmpeg as the external filter-graph renderer and loudness meter.

FFmpegRenderer is the only module that spawns processes. Every call goes
through subprocess.run with a bounded timeout and a shared CircuitBreaker,
and every failure surfaces as a CollaboratorUnavailableError subtype:

    binary missing / non-zero exit  → CollaboratorUnavailableError
    subprocess timeout              → CollaboratorTimeoutError
    circuit open                    → CollaboratorUnavailableError
    unreadable loudnorm JSON        → CollaboratorParseError

Loudness is measured with the first pass of ffmpeg's ``loudnorm`` filter
(``print_format=json``), whose report is the last ``{...}`` block on stderr.
"""

from __future__ import annotations

import json
import logging
import math
import os
import subprocess
import tempfile
from collections.abc import Sequence
from pathlib import Path

from core.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from core.mix_master.collaborators import AudioCodec, ExternalLoudness
from core.mix_master.errors import (
    CollaboratorParseError,
    CollaboratorTimeoutError,
    CollaboratorUnavailableError,
)
from core.mix_master.filters import FilterDescriptor, filter_chain_string
from core.mix_master.types import AudioSample
from infrastructure.circuit_breaker import CircuitBreaker, CircuitOpenError

logger = logging.getLogger(__name__)

COLLABORATOR = "ffmpeg"

# loudnorm reports "-inf" for silence; these replace non-finite values.
_LEVEL_FLOOR_DB = -200.0
_LRA_FLOOR_LU = 0.0

_STDERR_TAIL_CHARS = 400


def parse_loudnorm_output(stderr: str) -> ExternalLoudness:
    """Parse the JSON report printed by a ``loudnorm=print_format=json`` pass.

    Raises:
        CollaboratorParseError: No JSON block, invalid JSON, or missing keys.
    """
    end = stderr.rfind("}")
    start = stderr.rfind("{", 0, end) if end != -1 else -1
    if start == -1:
        raise CollaboratorParseError(COLLABORATOR, "no loudnorm JSON block in output")
    try:
        report = json.loads(stderr[start : end + 1])
        values = {
            key: float(report[key])
            for key in ("input_i", "input_tp", "input_lra", "input_thresh")
        }
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
        raise CollaboratorParseError(COLLABORATOR, f"unreadable loudnorm report: {exc}") from exc

    if any(math.isnan(v) for v in values.values()):
        raise CollaboratorParseError(COLLABORATOR, f"loudnorm reported NaN: {values}")

    def finite(value: float, floor: float) -> float:
        return value if math.isfinite(value) else floor

    return ExternalLoudness(
        integrated=finite(values["input_i"], _LEVEL_FLOOR_DB),
        true_peak=finite(values["input_tp"], _LEVEL_FLOOR_DB),
        loudness_range=finite(values["input_lra"], _LRA_FLOOR_LU),
        threshold=finite(values["input_thresh"], _LEVEL_FLOOR_DB),
    )


def _default_output_path(input_path: str, suffix: str) -> str:
    source = Path(input_path)
    return str(source.with_name(f"{source.stem}_{suffix}.wav"))


class FFmpegRenderer:
    """FilterGraphRenderer implemented by invoking the ffmpeg binary.

    Args:
        binary:               ffmpeg executable name or path.
        timeout_seconds:      Upper bound for render and transcode calls.
        meter_timeout_seconds: Upper bound for a loudness measurement.
        breaker:              Shared breaker; one is created if omitted.
    """

    def __init__(
        self,
        binary: str = "ffmpeg",
        timeout_seconds: float = 120.0,
        meter_timeout_seconds: float = 60.0,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        """Initialize with binary, timeouts and breaker."""
        self.binary = binary
        self.timeout_seconds = timeout_seconds
        self.meter_timeout_seconds = meter_timeout_seconds
        self.breaker = breaker or CircuitBreaker(name=COLLABORATOR)

    @classmethod
    def from_config(
        cls, config: EngineConfig = DEFAULT_ENGINE_CONFIG, breaker: CircuitBreaker | None = None
    ) -> FFmpegRenderer:
        return cls(
            binary=config.ffmpeg_binary,
            timeout_seconds=config.renderer_timeout_seconds,
            meter_timeout_seconds=config.meter_timeout_seconds,
            breaker=breaker,
        )

    # ------------------------------------------------------------------
    # FilterGraphRenderer
    # ------------------------------------------------------------------

    def render(
        self,
        input_path: str,
        filters: Sequence[FilterDescriptor],
        output_path: str | None = None,
    ) -> str:
        """Render ``input_path`` through ``filters`` into a WAV file.

        Returns:
            The output path (``<input>_rendered.wav`` next to the input by default).

        Raises:
            FileNotFoundError: The input file does not exist.
            CollaboratorUnavailableError: ffmpeg absent, failing or timed out.
        """
        self._require_input(input_path)
        output = output_path or _default_output_path(input_path, "rendered")
        self._run(
            ["-y", "-i", input_path, "-af", filter_chain_string(filters), output],
            self.timeout_seconds,
        )
        logger.info("Rendered %s with %d filters -> %s", input_path, len(filters), output)
        return output

    def measure_loudness(self, input_path: str) -> ExternalLoudness:
        """First-pass loudnorm measurement of a file."""
        self._require_input(input_path)
        completed = self._run(
            ["-i", input_path, "-af", "loudnorm=print_format=json", "-f", "null", "-"],
            self.meter_timeout_seconds,
        )
        return parse_loudnorm_output(completed.stderr)

    def transcode_to_wav(self, input_path: str, output_path: str | None = None) -> str:
        """Convert any container ffmpeg reads into 16-bit PCM WAV."""
        self._require_input(input_path)
        output = output_path or _default_output_path(input_path, "decoded")
        self._run(["-y", "-i", input_path, "-acodec", "pcm_s16le", output], self.timeout_seconds)
        return output

    def status(self) -> dict:
        return self.breaker.status()

    # ------------------------------------------------------------------
    # Process invocation
    # ------------------------------------------------------------------

    @staticmethod
    def _require_input(input_path: str) -> None:
        if not Path(input_path).exists():
            raise FileNotFoundError(f"Audio file not found: {input_path}")

    def _run(self, args: list[str], timeout: float) -> subprocess.CompletedProcess[str]:
        try:
            return self.breaker.call(self._invoke, args, timeout)
        except CircuitOpenError as exc:
            raise CollaboratorUnavailableError(COLLABORATOR, str(exc)) from exc

    def _invoke(self, args: list[str], timeout: float) -> subprocess.CompletedProcess[str]:
        command = [self.binary, "-hide_banner", "-nostdin", *args]
        logger.debug("Running %s", " ".join(command))
        try:
            completed = subprocess.run(  # noqa: S603
                command,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise CollaboratorUnavailableError(
                COLLABORATOR, f"binary {self.binary!r} not found"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise CollaboratorTimeoutError(COLLABORATOR, timeout) from exc
        if completed.returncode != 0:
            tail = (completed.stderr or "")[-_STDERR_TAIL_CHARS:].strip()
            raise CollaboratorUnavailableError(
                COLLABORATOR, f"exit code {completed.returncode}: {tail}"
            )
        return completed


class RendererLoudnessAnalyzer:
    """LoudnessAnalyzer that measures a buffer by writing it to a temp WAV.

    Args:
        renderer: Anything with ``measure_loudness(path)``.
        codec:    Encoder for the temporary WAV file.
    """

    def __init__(self, renderer: FFmpegRenderer, codec: AudioCodec) -> None:
        """Initialize with renderer and codec."""
        self._renderer = renderer
        self._codec = codec

    def measure(self, sample: AudioSample) -> ExternalLoudness:
        fd, path = tempfile.mkstemp(prefix="mixmaster_meter_", suffix=".wav")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(self._codec.encode(sample))
            return self._renderer.measure_loudness(path)
        finally:
            Path(path).unlink(missing_ok=True)
