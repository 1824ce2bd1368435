"""
core/mix_master/settings.py — Mix and master parameter records.

MixSettings and MasterSettings are mutable records owned by the track or
request being processed. Catalog presets hold their own instances; every
function that derives new settings (intensity blending, reference matching)
returns a fresh copy and leaves its input untouched.

Units:
    gains and thresholds in dB, cutoffs and crossovers in Hz, attack/release
    and limiter timing in ms, delay time in seconds, wetness/drive/warmth and
    modulation amounts in 0–1, stereo width as a multiplier (1.0 = unchanged).
"""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Mix
# ---------------------------------------------------------------------------


@dataclass
class EQSettings:
    """Five-band EQ plus high-pass / low-pass cutoffs."""

    low_gain: float = 0.0
    low_mid_gain: float = 0.0
    mid_gain: float = 0.0
    high_mid_gain: float = 0.0
    high_gain: float = 0.0
    low_cut: float = 20.0
    high_cut: float = 20000.0


@dataclass
class CompressionSettings:
    """Bus compressor. Ratio 1.0 means no compression."""

    threshold: float = -20.0
    ratio: float = 2.0
    attack: float = 10.0
    release: float = 100.0
    makeup_gain: float = 0.0

    def __post_init__(self) -> None:
        """Validate the ratio."""
        if self.ratio < 1.0:
            raise ValueError(f"Compression ratio must be >= 1, got {self.ratio}")


@dataclass
class ReverbSettings:
    wetness: float = 0.15
    room_size: float = 0.5
    damping: float = 0.5


@dataclass
class DelaySettings:
    time: float = 0.25
    feedback: float = 0.3
    wetness: float = 0.1


@dataclass
class ChorusSettings:
    rate: float = 0.5
    depth: float = 0.3
    wetness: float = 0.1


@dataclass
class SaturationSettings:
    drive: float = 0.3
    warmth: float = 0.5


@dataclass
class EffectsSettings:
    """Send/insert effects."""

    reverb: ReverbSettings = field(default_factory=ReverbSettings)
    delay: DelaySettings = field(default_factory=DelaySettings)
    chorus: ChorusSettings = field(default_factory=ChorusSettings)
    saturation: SaturationSettings = field(default_factory=SaturationSettings)


@dataclass
class StereoImagingSettings:
    width: float = 1.0
    bass_mono_freq: float = 120.0


@dataclass
class MixSettings:
    """Complete mix parameter set for one track.

    ``genre_preset`` and ``preset_intensity`` record which preset produced
    the settings, when one did.
    """

    eq: EQSettings = field(default_factory=EQSettings)
    compression: CompressionSettings = field(default_factory=CompressionSettings)
    effects: EffectsSettings = field(default_factory=EffectsSettings)
    stereo_imaging: StereoImagingSettings = field(default_factory=StereoImagingSettings)
    genre_preset: str | None = None
    preset_intensity: float | None = None

    def copy(self) -> MixSettings:
        """Deep copy."""
        return copy.deepcopy(self)

    def as_dict(self) -> dict[str, Any]:
        """Return a nested JSON-safe dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MixSettings:
        """Build from the shape produced by ``as_dict`` (missing keys keep defaults)."""
        effects = data.get("effects", {})
        return cls(
            eq=EQSettings(**data.get("eq", {})),
            compression=CompressionSettings(**data.get("compression", {})),
            effects=EffectsSettings(
                reverb=ReverbSettings(**effects.get("reverb", {})),
                delay=DelaySettings(**effects.get("delay", {})),
                chorus=ChorusSettings(**effects.get("chorus", {})),
                saturation=SaturationSettings(**effects.get("saturation", {})),
            ),
            stereo_imaging=StereoImagingSettings(**data.get("stereo_imaging", {})),
            genre_preset=data.get("genre_preset"),
            preset_intensity=data.get("preset_intensity"),
        )


def default_mix_settings() -> MixSettings:
    """Settings assumed for a track that has none stored yet."""
    return MixSettings()


def neutral_baseline(mix: MixSettings) -> MixSettings:
    """The neutral point a preset is blended from (intensity 0).

    Every additive amount is zero, ratio and width are 1.0, and everything
    the intensity blend passes through (cutoffs, threshold, timing, room
    shape, delay time/feedback, chorus rate/depth, bass-mono crossover) is
    copied from ``mix``.
    """
    fx = mix.effects
    return MixSettings(
        eq=EQSettings(
            low_gain=0.0,
            low_mid_gain=0.0,
            mid_gain=0.0,
            high_mid_gain=0.0,
            high_gain=0.0,
            low_cut=mix.eq.low_cut,
            high_cut=mix.eq.high_cut,
        ),
        compression=CompressionSettings(
            threshold=mix.compression.threshold,
            ratio=1.0,
            attack=mix.compression.attack,
            release=mix.compression.release,
            makeup_gain=0.0,
        ),
        effects=EffectsSettings(
            reverb=ReverbSettings(
                wetness=0.0, room_size=fx.reverb.room_size, damping=fx.reverb.damping
            ),
            delay=DelaySettings(time=fx.delay.time, feedback=fx.delay.feedback, wetness=0.0),
            chorus=ChorusSettings(rate=fx.chorus.rate, depth=fx.chorus.depth, wetness=0.0),
            saturation=SaturationSettings(drive=0.0, warmth=0.0),
        ),
        stereo_imaging=StereoImagingSettings(
            width=1.0, bass_mono_freq=mix.stereo_imaging.bass_mono_freq
        ),
        genre_preset=mix.genre_preset,
        preset_intensity=mix.preset_intensity,
    )


# ---------------------------------------------------------------------------
# Master
# ---------------------------------------------------------------------------


class MaximizerCharacter(str, Enum):
    TRANSPARENT = "transparent"
    PUNCHY = "punchy"
    WARM = "warm"
    AGGRESSIVE = "aggressive"


class TargetPlatform(str, Enum):
    """Delivery targets. MASTERING means "use the genre's own loudness"."""

    SPOTIFY = "spotify"
    APPLE_MUSIC = "apple_music"
    YOUTUBE = "youtube"
    TIDAL = "tidal"
    SOUNDCLOUD = "soundcloud"
    MASTERING = "mastering"


@dataclass
class MultibandBand:
    threshold: float
    ratio: float
    gain: float
    frequency: float


@dataclass
class MultibandSettings:
    """Five-band multiband compressor; ``frequency`` is each band's upper crossover."""

    low: MultibandBand
    low_mid: MultibandBand
    mid: MultibandBand
    high_mid: MultibandBand
    high: MultibandBand


@dataclass
class LimiterSettings:
    ceiling: float = -1.0
    release: float = 50.0
    lookahead: float = 5.0


@dataclass
class MaximizerSettings:
    """Loudness maximizer. ``amount`` is 0–100."""

    amount: float = 60.0
    character: MaximizerCharacter = MaximizerCharacter.TRANSPARENT

    def __post_init__(self) -> None:
        """Validate amount and coerce the character."""
        if not 0.0 <= self.amount <= 100.0:
            raise ValueError(f"Maximizer amount must be in [0, 100], got {self.amount}")
        self.character = MaximizerCharacter(self.character)


@dataclass
class StereoEnhancerSettings:
    width: float = 1.1
    bass_width: float = 0.8


@dataclass
class SpectralBalanceSettings:
    low_shelf: float = 1.0
    high_shelf: float = 2.0
    presence: float = 1.5


@dataclass
class MasterSettings:
    """Complete mastering chain for one track."""

    multiband: MultibandSettings
    limiter: LimiterSettings = field(default_factory=LimiterSettings)
    maximizer: MaximizerSettings = field(default_factory=MaximizerSettings)
    stereo_enhancer: StereoEnhancerSettings = field(default_factory=StereoEnhancerSettings)
    spectral_balance: SpectralBalanceSettings = field(default_factory=SpectralBalanceSettings)
    target_lufs: float | None = None
    target_platform: TargetPlatform | None = None
    true_peak_limit: float | None = None

    def copy(self) -> MasterSettings:
        """Deep copy."""
        return copy.deepcopy(self)

    def as_dict(self) -> dict[str, Any]:
        """Return a nested JSON-safe dict (enums as their values)."""
        data = asdict(self)
        data["maximizer"]["character"] = self.maximizer.character.value
        data["target_platform"] = self.target_platform.value if self.target_platform else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MasterSettings:
        """Build from the shape produced by ``as_dict``."""
        bands = data["multiband"]
        platform = data.get("target_platform")
        return cls(
            multiband=MultibandSettings(
                **{name: MultibandBand(**bands[name]) for name in _MULTIBAND_NAMES}
            ),
            limiter=LimiterSettings(**data.get("limiter", {})),
            maximizer=MaximizerSettings(**data.get("maximizer", {})),
            stereo_enhancer=StereoEnhancerSettings(**data.get("stereo_enhancer", {})),
            spectral_balance=SpectralBalanceSettings(**data.get("spectral_balance", {})),
            target_lufs=data.get("target_lufs"),
            target_platform=TargetPlatform(platform) if platform else None,
            true_peak_limit=data.get("true_peak_limit"),
        )


_MULTIBAND_NAMES: tuple[str, ...] = ("low", "low_mid", "mid", "high_mid", "high")
