"""
core/mix_master/catalog.py — Read-only genre preset catalog.

Presets are bundled as YAML under core/mix_master/genre_presets/, one file
per genre plus ``_base.yaml`` (shared mastering chain and platform loudness
targets). The catalog is an explicitly constructed object: build it once at
startup with ``GenrePresetCatalog.from_package()`` and inject it wherever
presets are needed. Nothing in it changes after construction, so concurrent
reads need no locking.

Genre ids are a closed Enum. Lookups never fail: unknown ids fall back to
the catalog's default genre.
"""

from __future__ import annotations

import importlib.resources
import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

import yaml  # PyYAML

from core.mix_master.errors import InputError
from core.mix_master.settings import (
    LimiterSettings,
    MasterSettings,
    MaximizerSettings,
    MixSettings,
    MultibandBand,
    MultibandSettings,
    SpectralBalanceSettings,
    StereoEnhancerSettings,
    TargetPlatform,
)

logger = logging.getLogger(__name__)

_PRESET_PACKAGE = "core.mix_master.genre_presets"
_BASE_FILE = "_base.yaml"


class Genre(str, Enum):
    """Genres with a bundled preset."""

    HIP_HOP = "hip_hop"
    EDM = "edm"
    ROCK = "rock"
    POP = "pop"
    RNB = "rnb"
    JAZZ = "jazz"
    CLASSICAL = "classical"
    COUNTRY = "country"
    METAL = "metal"
    REGGAE = "reggae"
    LATIN = "latin"
    INDIE = "indie"
    FOLK = "folk"
    BLUES = "blues"
    FUNK = "funk"
    SOUL = "soul"
    HOUSE = "house"
    TECHNO = "techno"
    DUBSTEP = "dubstep"
    TRAP = "trap"


def normalize_genre_id(genre: str) -> str:
    """Lower-case, trim, and map spaces and dashes to underscores."""
    return genre.strip().lower().replace(" ", "_").replace("-", "_")


def parse_genre(genre: Genre | str) -> Genre | None:
    """Return the Genre for an id (case and separator insensitive), else None."""
    if isinstance(genre, Genre):
        return genre
    try:
        return Genre(normalize_genre_id(genre))
    except ValueError:
        return None


def parse_platform(platform: TargetPlatform | str) -> TargetPlatform:
    """Return the TargetPlatform for an id.

    Raises:
        InputError: If the platform is unknown.
    """
    if isinstance(platform, TargetPlatform):
        return platform
    try:
        return TargetPlatform(normalize_genre_id(platform))
    except ValueError as exc:
        raise InputError(f"Unknown target platform {platform!r}") from exc


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GenreCharacteristics:
    """Descriptive 0–1 scores of a genre's typical mix."""

    bass_emphasis: float
    vocal_clarity: float
    stereo_width: float
    brightness: float
    warmth: float
    punch: float

    def as_dict(self) -> dict[str, float]:
        return {
            "bass_emphasis": self.bass_emphasis,
            "vocal_clarity": self.vocal_clarity,
            "stereo_width": self.stereo_width,
            "brightness": self.brightness,
            "warmth": self.warmth,
            "punch": self.punch,
        }


@dataclass(frozen=True)
class GenrePreset:
    """One catalog entry.

    Presets handed out by GenrePresetCatalog hold copies of the catalog's
    settings; modifying them never changes the catalog.
    """

    genre: Genre
    display_name: str
    description: str
    target_loudness: float
    mix_settings: MixSettings
    master_settings: MasterSettings
    characteristics: GenreCharacteristics

    def summary(self) -> dict[str, Any]:
        """Short JSON-safe description for listings."""
        return {
            "genre": self.genre.value,
            "display_name": self.display_name,
            "description": self.description,
            "target_loudness": self.target_loudness,
        }


def _detached(preset: GenrePreset) -> GenrePreset:
    return replace(
        preset,
        mix_settings=preset.mix_settings.copy(),
        master_settings=preset.master_settings.copy(),
    )


@dataclass(frozen=True)
class PlatformTarget:
    target_lufs: float
    true_peak_limit: float


# ---------------------------------------------------------------------------
# YAML parsing
# ---------------------------------------------------------------------------


def _read_yaml(filename: str) -> dict[str, Any]:
    pkg = importlib.resources.files(_PRESET_PACKAGE)
    text = (pkg / filename).read_text(encoding="utf-8")
    data: dict[str, Any] = yaml.safe_load(text)
    return data


def _master_from_sections(sections: Mapping[str, Any]) -> MasterSettings:
    bands = sections["multiband"]
    return MasterSettings(
        multiband=MultibandSettings(
            low=MultibandBand(**bands["low"]),
            low_mid=MultibandBand(**bands["low_mid"]),
            mid=MultibandBand(**bands["mid"]),
            high_mid=MultibandBand(**bands["high_mid"]),
            high=MultibandBand(**bands["high"]),
        ),
        limiter=LimiterSettings(**sections["limiter"]),
        maximizer=MaximizerSettings(**sections["maximizer"]),
        stereo_enhancer=StereoEnhancerSettings(**sections["stereo_enhancer"]),
        spectral_balance=SpectralBalanceSettings(**sections["spectral_balance"]),
    )


def _preset_from_yaml(data: Mapping[str, Any], master_base: Mapping[str, Any]) -> GenrePreset:
    genre = Genre(data["genre"])
    mix = MixSettings.from_dict(data["mix"])
    mix.genre_preset = genre.value
    master_sections = {**master_base, **data.get("master_overrides", {})}
    master = _master_from_sections(master_sections)
    master.target_lufs = float(data["target_loudness"])
    return GenrePreset(
        genre=genre,
        display_name=str(data["display_name"]),
        description=str(data.get("description", "")),
        target_loudness=float(data["target_loudness"]),
        mix_settings=mix,
        master_settings=master,
        characteristics=GenreCharacteristics(**data["characteristics"]),
    )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class GenrePresetCatalog:
    """Immutable genre → preset table.

    Args:
        presets:       One preset per Genre member.
        platforms:     Loudness targets per delivery platform.
        default_genre: Fallback for unknown genre ids.

    Raises:
        ValueError: If a genre is missing or the default is unknown.
    """

    def __init__(
        self,
        presets: Mapping[Genre, GenrePreset],
        platforms: Mapping[TargetPlatform, PlatformTarget],
        default_genre: Genre | str = Genre.HIP_HOP,
    ) -> None:
        """Validate completeness and freeze the tables."""
        missing = [g.value for g in Genre if g not in presets]
        if missing:
            raise ValueError(f"Preset catalog is missing genres: {missing}")
        default = parse_genre(default_genre)
        if default is None:
            raise ValueError(f"Unknown default genre {default_genre!r}")
        self._presets: dict[Genre, GenrePreset] = dict(presets)
        self._platforms: dict[TargetPlatform, PlatformTarget] = dict(platforms)
        self._default = default

    @classmethod
    def from_package(cls, default_genre: Genre | str = Genre.HIP_HOP) -> GenrePresetCatalog:
        """Load every bundled YAML preset."""
        base = _read_yaml(_BASE_FILE)
        presets = {
            genre: _preset_from_yaml(_read_yaml(f"{genre.value}.yaml"), base["master"])
            for genre in Genre
        }
        platforms = {
            TargetPlatform(name): PlatformTarget(
                target_lufs=float(values["target_lufs"]),
                true_peak_limit=float(values["true_peak_limit"]),
            )
            for name, values in base.get("platforms", {}).items()
        }
        logger.info("Loaded %d genre presets (default=%s)", len(presets), default_genre)
        return cls(presets, platforms, default_genre)

    @property
    def default_genre(self) -> Genre:
        return self._default

    def get(self, genre: Genre | str) -> GenrePreset:
        """Return the preset for ``genre``; unknown ids get the default genre.

        The returned preset carries its own copies of the settings, so callers
        cannot alter the catalog through it.
        """
        return _detached(self._lookup(genre))

    def _lookup(self, genre: Genre | str) -> GenrePreset:
        parsed = parse_genre(genre)
        if parsed is None:
            logger.warning(
                "Unknown genre %r; falling back to %s preset", genre, self._default.value
            )
            parsed = self._default
        return self._presets[parsed]

    def __contains__(self, genre: object) -> bool:
        return isinstance(genre, (str, Genre)) and parse_genre(genre) is not None

    def __len__(self) -> int:
        return len(self._presets)

    def list_presets(self) -> list[GenrePreset]:
        """All presets in Genre declaration order."""
        return [_detached(self._presets[g]) for g in Genre]

    def summaries(self) -> list[dict[str, Any]]:
        return [p.summary() for p in self.list_presets()]

    def platform_target(self, platform: TargetPlatform | str) -> PlatformTarget | None:
        """Loudness target for a platform; None for MASTERING or unlisted platforms."""
        return self._platforms.get(parse_platform(platform))

    def master_settings_for(
        self,
        genre: Genre | str,
        platform: TargetPlatform | str | None = None,
    ) -> MasterSettings:
        """Mastering chain for a genre, targeted at a delivery platform.

        The platform's loudness and true-peak targets replace the genre target
        when the platform has one. Otherwise the genre target loudness and the
        limiter ceiling are used.

        Returns:
            A new MasterSettings the caller may modify.
        """
        preset = self._lookup(genre)
        master = preset.master_settings.copy()
        target = None
        if platform is not None:
            master.target_platform = parse_platform(platform)
            target = self.platform_target(master.target_platform)
        if target is not None:
            master.target_lufs = target.target_lufs
            master.true_peak_limit = target.true_peak_limit
        else:
            master.target_lufs = preset.target_loudness
            master.true_peak_limit = master.limiter.ceiling
        return master
