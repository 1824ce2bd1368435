"""
Configuration dataclasses for the mix/master engine.

These immutable config objects keep tuning constants (frame sizes, gating
floors, collaborator timeouts) out of function signatures so one config can
be built at startup and passed to every component.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

# Prefix for every environment variable read by EngineConfig.from_env().
ENV_PREFIX = "MIXMASTER_"


@dataclass(frozen=True)
class EngineConfig:
    """
    Configuration for analysis, filtering and collaborator calls.

    Attributes:
        frame_size: FFT frame length in samples. Defaults to 4096.
        hop_size: Distance between frame starts. Defaults to 2048 (50% overlap).
        loudness_floor_lufs: Lower clamp for integrated loudness and the
            absolute gate of the internal meter. Defaults to -70.
        block_seconds: Gating block length of the internal meter (400 ms).
        lra_block_seconds: Block length used for loudness range (3 s).
        renderer_timeout_seconds: Upper bound for one render call.
        meter_timeout_seconds: Upper bound for one external loudness measurement.
        max_workers: Size of the CPU worker pool (one task per stem).
        default_genre: Genre used when an unknown genre id is requested.
        stems_dir: Directory for rendered stem WAV files. None keeps stems
            in memory only.
        ffmpeg_binary: Executable used by the ffmpeg renderer.

    Example:
        >>> config = EngineConfig(frame_size=2048, hop_size=1024)
    """

    frame_size: int = 4096
    hop_size: int = 2048
    loudness_floor_lufs: float = -70.0
    block_seconds: float = 0.4
    lra_block_seconds: float = 3.0
    renderer_timeout_seconds: float = 120.0
    meter_timeout_seconds: float = 60.0
    max_workers: int = 5
    default_genre: str = "hip_hop"
    stems_dir: str | None = None
    ffmpeg_binary: str = "ffmpeg"

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.frame_size <= 0 or self.frame_size % 2:
            raise ValueError(f"frame_size must be a positive even number, got {self.frame_size}")
        if not 0 < self.hop_size <= self.frame_size:
            raise ValueError(
                f"hop_size ({self.hop_size}) must be in (0, frame_size={self.frame_size}]"
            )
        if self.loudness_floor_lufs >= 0:
            raise ValueError(
                f"loudness_floor_lufs must be negative, got {self.loudness_floor_lufs}"
            )
        if self.block_seconds <= 0 or self.lra_block_seconds <= 0:
            raise ValueError("block_seconds and lra_block_seconds must be positive")
        if self.renderer_timeout_seconds <= 0 or self.meter_timeout_seconds <= 0:
            raise ValueError("collaborator timeouts must be positive")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if not self.default_genre:
            raise ValueError("default_genre must not be empty")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """Build a config from ``MIXMASTER_*`` environment variables.

        Unset variables keep their defaults. Call ``dotenv.load_dotenv()``
        first if a ``.env`` file should be honoured.

        Raises:
            ValueError: If a variable cannot be converted or fails validation.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        kwargs: dict[str, object] = {}
        for name, caster in _ENV_FIELDS.items():
            raw = env.get(ENV_PREFIX + name.upper())
            if raw is None or raw == "":
                continue
            try:
                kwargs[name] = caster(raw)
            except ValueError as exc:
                raise ValueError(f"Invalid {ENV_PREFIX}{name.upper()}={raw!r}: {exc}") from exc
        if not kwargs:
            return defaults
        return cls(**kwargs)  # type: ignore[arg-type]


_ENV_FIELDS: dict[str, type] = {
    "frame_size": int,
    "hop_size": int,
    "loudness_floor_lufs": float,
    "block_seconds": float,
    "lra_block_seconds": float,
    "renderer_timeout_seconds": float,
    "meter_timeout_seconds": float,
    "max_workers": int,
    "default_genre": str,
    "stems_dir": str,
    "ffmpeg_binary": str,
}


DEFAULT_ENGINE_CONFIG = EngineConfig()
"""Default configuration: 4096/2048 framing, -70 LUFS floor, five workers."""
