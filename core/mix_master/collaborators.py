"""
Collaborator interfaces consumed by the mix/master engine.

Defines the contracts for every external dependency so the engine can be
exercised without ffmpeg, a database or a log pipeline present. Concrete
implementations live in ingestion/; tests use in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from core.mix_master.filters import FilterDescriptor
    from core.mix_master.settings import MasterSettings, MixSettings
    from core.mix_master.types import AudioSample


@dataclass(frozen=True)
class ExternalLoudness:
    """Two-pass analyzer output (ffmpeg ``loudnorm`` first pass)."""

    integrated: float
    true_peak: float
    loudness_range: float
    threshold: float


@dataclass(frozen=True)
class Provenance:
    """Where a persisted settings record came from."""

    operation: str
    source: str
    confidence: float
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    details: Mapping[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-safe dict."""
        return {
            "operation": self.operation,
            "source": self.source,
            "confidence": self.confidence,
            "created_at": self.created_at.isoformat(),
            "details": dict(self.details),
        }


@runtime_checkable
class AudioCodec(Protocol):
    """Decode bytes to AudioSample and back."""

    def decode(self, data: bytes, mime_type: str) -> AudioSample:
        """Decode an encoded buffer.

        Raises:
            InputError: Empty, malformed or unsupported data.
        """
        ...

    def encode(self, sample: AudioSample) -> bytes:
        """Encode a sample as PCM WAV bytes."""
        ...


@runtime_checkable
class FilterGraphRenderer(Protocol):
    """External audio renderer (ffmpeg filter graph)."""

    def render(
        self,
        input_path: str,
        filters: Sequence[FilterDescriptor],
        output_path: str | None = None,
    ) -> str:
        """Render ``input_path`` through the filter chain and return the output path.

        Raises:
            CollaboratorUnavailableError: Renderer absent, failing or timed out.
        """
        ...

    def measure_loudness(self, input_path: str) -> ExternalLoudness:
        """Two-pass loudness measurement of a file.

        Raises:
            CollaboratorUnavailableError: Renderer absent, failing or timed out.
            CollaboratorParseError: Output could not be parsed.
        """
        ...

    def transcode_to_wav(self, input_path: str, output_path: str | None = None) -> str:
        """Convert any container the renderer reads into PCM WAV.

        Raises:
            CollaboratorUnavailableError: Renderer absent, failing or timed out.
        """
        ...


@runtime_checkable
class LoudnessAnalyzer(Protocol):
    """Buffer-level external loudness measurement."""

    def measure(self, sample: AudioSample) -> ExternalLoudness:
        """Measure a buffer. Raises CollaboratorUnavailableError on failure."""
        ...


@runtime_checkable
class SettingsStore(Protocol):
    """Persistence for computed mix/master settings."""

    def save_computed_settings(
        self,
        track_id: str,
        settings: MixSettings | MasterSettings,
        provenance: Provenance,
    ) -> None:
        """Store one computed settings record for a track."""
        ...

    def load_mix_settings(self, track_id: str) -> MixSettings | None:
        """Return the latest stored MixSettings for a track, or None."""
        ...


@runtime_checkable
class InferenceLogSink(Protocol):
    """Audit sink receiving one record per engine operation."""

    def log_inference(
        self,
        model_name: str,
        operation_type: str,
        input_summary: Mapping[str, Any],
        output_summary: Mapping[str, Any],
        confidence: float,
        elapsed_ms: float,
    ) -> None:
        """Record one operation."""
        ...
