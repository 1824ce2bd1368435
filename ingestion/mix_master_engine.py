"""
ingestion/mix_master_engine.py — Mix/master decision engine orchestrator.

MixMasterEngine wires the pure core/mix_master modules to their collaborators:

    AudioSample
        │
        ├─ analyze_spectrum()        [core/mix_master/spectral.py]
        ├─ extract_stem() ×5         [core/mix_master/stems.py — worker pool]
        ├─ LoudnessMeter.measure()   [core/mix_master/loudness.py]
        │      └─ analyzer (ffmpeg loudnorm) → internal fallback, degraded
        ├─ catalog + apply_intensity [core/mix_master/catalog.py, intensity.py]
        ├─ match_reference()         [core/mix_master/reference.py]
        └─ plan_normalization()      [core/mix_master/normalization.py]
               │
               ├─ renderer.render()          (optional, fatal on failure)
               ├─ settings_store.save_*()    (fire-and-forget)
               └─ inference_log.log_*()      (fire-and-forget)

This module lives in `ingestion/` because it coordinates side effects
(rendering, persistence, audit logging, stem files on disk). Every
operation is timed, counted in Prometheus and audited. Persistence and
audit failures are logged and counted but never reach the caller.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from core.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from core.mix_master.catalog import GenrePreset, GenrePresetCatalog
from core.mix_master.collaborators import (
    AudioCodec,
    FilterGraphRenderer,
    InferenceLogSink,
    LoudnessAnalyzer,
    Provenance,
    SettingsStore,
)
from core.mix_master.errors import CollaboratorUnavailableError, InputError
from core.mix_master.filters import FilterDescriptor, mix_filter_chain
from core.mix_master.intensity import apply_intensity, intensity_from_percent
from core.mix_master.loudness import LoudnessMeter
from core.mix_master.normalization import NormalizationPlan, plan_normalization
from core.mix_master.reference import (
    ReferenceMatch,
    ReferenceProfile,
    build_reference_profile,
    match_reference,
)
from core.mix_master.settings import (
    MasterSettings,
    MixSettings,
    TargetPlatform,
    default_mix_settings,
)
from core.mix_master.spectral import analyze_spectrum
from core.mix_master.stems import extract_stem
from core.mix_master.stereo import measure_stereo_width
from core.mix_master.suggestions import AISuggestion, preset_suggestions
from core.mix_master.types import (
    AudioSample,
    LoudnessMetrics,
    SpectralProfile,
    StemExtractionResult,
    StemSeparationResult,
    StemType,
)
from infrastructure.metrics import (
    LatencyTimer,
    record_collaborator_failure,
    record_loudness_fallback,
    record_operation,
)

logger = logging.getLogger(__name__)

# Heuristic names recorded in the inference log
SPECTRAL_ANALYZER = "spectral_analyzer_v1"
FREQUENCY_BAND_FILTER = "frequency_band_filter_v1"
LOUDNESS_METER = "loudness_meter_v1"
GENRE_PRESET_ENGINE = "genre_preset_engine_v1"
REFERENCE_MATCHER = "reference_matcher_v1"

# Confidence reported for deterministic measurements
_MEASUREMENT_CONFIDENCE = 1.0
_DEGRADED_LOUDNESS_CONFIDENCE = 0.6
_PRESET_CONFIDENCE = 0.9


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PresetApplication:
    """Outcome of applying a genre preset at some intensity."""

    track_id: str
    preset: GenrePreset
    intensity: float
    settings: MixSettings
    filters: tuple[FilterDescriptor, ...]
    suggestions: tuple[AISuggestion, ...]
    output_path: str | None = None


@dataclass(frozen=True)
class NormalizationResult:
    """Outcome of normalizing a track to a loudness target."""

    track_id: str
    metrics: LoudnessMetrics
    plan: NormalizationPlan
    output_path: str | None = None

    @property
    def suggestions(self) -> tuple[AISuggestion, ...]:
        return self.plan.suggestions


# ---------------------------------------------------------------------------
# MixMasterEngine
# ---------------------------------------------------------------------------


@dataclass
class MixMasterEngine:
    """High-level orchestrator for analysis, presets, matching and normalization.

    Attributes:
        catalog:           Read-only genre preset catalog, built once at startup.
        config:            Framing, gating, timeout and pool parameters.
        codec:             Encoder used to write stem files. Optional.
        renderer:          External filter-graph renderer. Optional; without
                           one, requests that ask for rendering fail with
                           CollaboratorUnavailableError.
        loudness_analyzer: External loudness analyzer. Optional; without one
                           every measurement uses the internal meter.
        settings_store:    Persistence for computed settings. Optional.
        inference_log:     Audit sink. Optional.
    """

    catalog: GenrePresetCatalog
    config: EngineConfig = DEFAULT_ENGINE_CONFIG
    codec: AudioCodec | None = None
    renderer: FilterGraphRenderer | None = None
    loudness_analyzer: LoudnessAnalyzer | None = None
    settings_store: SettingsStore | None = None
    inference_log: InferenceLogSink | None = None

    _workers: ThreadPoolExecutor = field(init=False, repr=False)
    _side_effects: ThreadPoolExecutor = field(init=False, repr=False)
    _pending: set[Future[None]] = field(init=False, repr=False, default_factory=set)
    _pending_lock: threading.Lock = field(init=False, repr=False, default_factory=threading.Lock)
    _meter: LoudnessMeter = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._workers = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="mixmaster-dsp"
        )
        self._side_effects = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="mixmaster-side-effects"
        )
        self._meter = LoudnessMeter(
            analyzer=self.loudness_analyzer,
            config=self.config,
            on_fallback=record_loudness_fallback,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Drain pending side effects and stop both pools."""
        self._side_effects.shutdown(wait=True)
        self._workers.shutdown(wait=True)

    def __enter__(self) -> MixMasterEngine:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def flush(self, timeout: float | None = None) -> None:
        """Block until queued persistence and audit calls have finished."""
        with self._pending_lock:
            pending = set(self._pending)
        wait(pending, timeout=timeout)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze_spectrum(self, sample: AudioSample) -> SpectralProfile:
        """Spectral profile of a buffer."""
        with self._operation("analyze_spectrum") as t:
            profile = analyze_spectrum(sample, self.config)
        self._audit(
            SPECTRAL_ANALYZER,
            "analyze_spectrum",
            _sample_summary(sample),
            profile.as_dict(),
            _MEASUREMENT_CONFIDENCE,
            t.elapsed_ms,
        )
        return profile

    def extract_stem(self, sample: AudioSample, stem_type: StemType | str) -> StemExtractionResult:
        """Isolate one frequency-band stem.

        Raises:
            InputError: Unknown stem type.
        """
        with self._operation("extract_stem") as t:
            result = extract_stem(sample, stem_type, self.config)
        self._audit(
            FREQUENCY_BAND_FILTER,
            "extract_stem",
            {**_sample_summary(sample), "stem_type": result.stem_type.value},
            {"confidence": result.confidence, "bands": result.spectral_profile.band_energies()},
            result.confidence,
            t.elapsed_ms,
        )
        return result

    def extract_all_stems(
        self, sample: AudioSample, track_id: str | None = None
    ) -> StemSeparationResult:
        """Extract the five stems in parallel on the worker pool.

        When ``config.stems_dir`` and a codec are configured, each stem is
        also written as ``<track_id>_<stem>.wav`` and its path recorded.
        """
        with self._operation("extract_all_stems") as t:
            futures = {
                stem: self._workers.submit(extract_stem, sample, stem, self.config)
                for stem in StemType
            }
            stems = {stem: future.result() for stem, future in futures.items()}
            if self.config.stems_dir and self.codec is not None:
                stems = self._write_stems(
                    stems, self.codec, Path(self.config.stems_dir), track_id or "track"
                )
            overall = sum(s.confidence for s in stems.values()) / len(stems)
        result = StemSeparationResult(
            stems=stems, overall_confidence=overall, processing_time_ms=t.elapsed_ms
        )
        self._audit(
            FREQUENCY_BAND_FILTER,
            "extract_all_stems",
            {**_sample_summary(sample), "track_id": track_id},
            {s.value: r.confidence for s, r in stems.items()},
            overall,
            t.elapsed_ms,
        )
        return result

    def measure_loudness(self, sample: AudioSample) -> LoudnessMetrics:
        """Loudness via the external analyzer, or the internal meter when it is unavailable."""
        with self._operation("measure_loudness") as t:
            metrics = self._meter.measure(sample)
        self._audit(
            LOUDNESS_METER,
            "measure_loudness",
            _sample_summary(sample),
            metrics.as_dict(),
            _DEGRADED_LOUDNESS_CONFIDENCE if metrics.degraded else _MEASUREMENT_CONFIDENCE,
            t.elapsed_ms,
        )
        return metrics

    def analyze_reference(self, sample: AudioSample) -> ReferenceProfile:
        """Measure a reference track: spectrum, loudness and stereo width."""
        with self._operation("analyze_reference") as t:
            spectral = self._workers.submit(analyze_spectrum, sample, self.config)
            width = self._workers.submit(measure_stereo_width, sample)
            loudness = self._meter.measure(sample)
            profile = build_reference_profile(spectral.result(), loudness, width.result())
        self._audit(
            REFERENCE_MATCHER,
            "analyze_reference",
            _sample_summary(sample),
            profile.as_dict(),
            _DEGRADED_LOUDNESS_CONFIDENCE if loudness.degraded else _MEASUREMENT_CONFIDENCE,
            t.elapsed_ms,
        )
        return profile

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def get_preset(self, genre: str) -> GenrePreset:
        """Catalog lookup; unknown genres get the default preset."""
        return self.catalog.get(genre)

    def apply_genre_preset(
        self,
        track_id: str,
        genre: str,
        intensity_percent: float,
        input_path: str | None = None,
    ) -> PresetApplication:
        """Blend a genre preset at ``intensity_percent`` (0–100) and persist it.

        Raises:
            InputError: Non-finite intensity.
            CollaboratorUnavailableError: ``input_path`` given but rendering failed.
        """
        with self._operation("apply_genre_preset") as t:
            preset = self.catalog.get(genre)
            intensity = intensity_from_percent(intensity_percent)
            settings = apply_intensity(preset.mix_settings, intensity)
            filters = tuple(mix_filter_chain(settings))
            suggestions = tuple(preset_suggestions(preset, intensity))
            output_path = self._render(input_path, filters) if input_path else None
        self._persist(
            track_id,
            settings,
            Provenance(
                operation="apply_genre_preset",
                source=GENRE_PRESET_ENGINE,
                confidence=_PRESET_CONFIDENCE,
                details={"genre": preset.genre.value, "intensity": intensity},
            ),
        )
        self._audit(
            GENRE_PRESET_ENGINE,
            "apply_genre_preset",
            {"track_id": track_id, "genre": genre, "intensity_percent": intensity_percent},
            {"genre": preset.genre.value, "settings": settings.as_dict()},
            _PRESET_CONFIDENCE,
            t.elapsed_ms,
        )
        return PresetApplication(
            track_id=track_id,
            preset=preset,
            intensity=intensity,
            settings=settings,
            filters=filters,
            suggestions=suggestions,
            output_path=output_path,
        )

    def match_to_reference(self, track_id: str, reference: ReferenceProfile) -> ReferenceMatch:
        """Match a track's stored settings against a reference profile.

        The track's latest stored MixSettings are the starting point (defaults
        when none are stored). Adjusted settings are persisted.
        """
        with self._operation("match_to_reference") as t:
            current = self._load_mix_settings(track_id)
            match = match_reference(current, reference)
        self._persist(
            track_id,
            match.settings,
            Provenance(
                operation="match_to_reference",
                source=REFERENCE_MATCHER,
                confidence=match.confidence,
                details={"adjustments": match.adjustments},
            ),
        )
        self._audit(
            REFERENCE_MATCHER,
            "match_to_reference",
            {"track_id": track_id, "reference": reference.as_dict()},
            {
                "adjustments": match.adjustments,
                "suggestions": [s.suggestion for s in match.suggestions],
            },
            match.confidence,
            t.elapsed_ms,
        )
        return match

    def normalize_to(
        self,
        track_id: str,
        sample: AudioSample,
        target_lufs: float,
        input_path: str | None = None,
    ) -> NormalizationResult:
        """Measure, plan the gain to ``target_lufs`` and optionally render.

        Raises:
            InputError: Target outside [-70, 0] LUFS.
            CollaboratorUnavailableError: ``input_path`` given but rendering failed.
        """
        with self._operation("normalize_to") as t:
            metrics = self._meter.measure(sample)
            plan = plan_normalization(metrics, target_lufs)
            output_path = self._render(input_path, (plan.filter,)) if input_path else None
        self._audit(
            LOUDNESS_METER,
            "normalize_to",
            {"track_id": track_id, "target_lufs": target_lufs, **_sample_summary(sample)},
            {"gain_db": plan.gain_db, "measured_lufs": plan.measured_lufs, "degraded": plan.degraded},
            _DEGRADED_LOUDNESS_CONFIDENCE if plan.degraded else _MEASUREMENT_CONFIDENCE,
            t.elapsed_ms,
        )
        return NormalizationResult(
            track_id=track_id, metrics=metrics, plan=plan, output_path=output_path
        )

    def master_settings(
        self,
        track_id: str,
        genre: str,
        platform: TargetPlatform | str | None = None,
    ) -> MasterSettings:
        """Mastering chain for a genre and delivery platform, persisted for the track.

        Raises:
            InputError: Unknown platform.
        """
        with self._operation("master_settings") as t:
            settings = self.catalog.master_settings_for(genre, platform)
        self._persist(
            track_id,
            settings,
            Provenance(
                operation="master_settings",
                source=GENRE_PRESET_ENGINE,
                confidence=_PRESET_CONFIDENCE,
                details={"genre": genre, "platform": str(platform) if platform else None},
            ),
        )
        self._audit(
            GENRE_PRESET_ENGINE,
            "master_settings",
            {"track_id": track_id, "genre": genre, "platform": platform},
            settings.as_dict(),
            _PRESET_CONFIDENCE,
            t.elapsed_ms,
        )
        return settings

    # ------------------------------------------------------------------
    # Collaborator plumbing
    # ------------------------------------------------------------------

    def _operation(self, name: str) -> _TimedOperation:
        return _TimedOperation(name)

    def _render(self, input_path: str, filters: tuple[FilterDescriptor, ...]) -> str:
        if self.renderer is None:
            raise CollaboratorUnavailableError("renderer", "no renderer configured")
        try:
            return self.renderer.render(input_path, filters)
        except CollaboratorUnavailableError:
            record_collaborator_failure("renderer")
            raise

    def _load_mix_settings(self, track_id: str) -> MixSettings:
        if self.settings_store is None:
            return default_mix_settings()
        try:
            stored = self.settings_store.load_mix_settings(track_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not load settings for track %s: %s", track_id, exc)
            record_collaborator_failure("settings_store")
            return default_mix_settings()
        return stored if stored is not None else default_mix_settings()

    def _write_stems(
        self,
        stems: dict[StemType, StemExtractionResult],
        codec: AudioCodec,
        directory: Path,
        prefix: str,
    ) -> dict[StemType, StemExtractionResult]:
        directory.mkdir(parents=True, exist_ok=True)
        written = {}
        for stem, result in stems.items():
            path = directory / f"{prefix}_{stem.value}.wav"
            path.write_bytes(codec.encode(result.audio))
            written[stem] = replace(result, output_path=str(path))
        logger.info("Wrote %d stems to %s", len(written), directory)
        return written

    def _persist(
        self, track_id: str, settings: MixSettings | MasterSettings, provenance: Provenance
    ) -> None:
        if self.settings_store is None:
            return
        self._fire_and_forget(
            "settings_store",
            self.settings_store.save_computed_settings,
            track_id,
            settings.copy(),
            provenance,
        )

    def _audit(
        self,
        model_name: str,
        operation_type: str,
        input_summary: Mapping[str, Any],
        output_summary: Mapping[str, Any],
        confidence: float,
        elapsed_ms: float,
    ) -> None:
        if self.inference_log is None:
            return
        self._fire_and_forget(
            "inference_log",
            self.inference_log.log_inference,
            model_name,
            operation_type,
            input_summary,
            output_summary,
            confidence,
            elapsed_ms,
        )

    def _fire_and_forget(self, collaborator: str, func: Callable[..., Any], *args: Any) -> None:
        future = self._side_effects.submit(_guarded, collaborator, func, *args)
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future[None]) -> None:
        with self._pending_lock:
            self._pending.discard(future)


class _TimedOperation(LatencyTimer):
    """LatencyTimer that records the operation outcome on exit."""

    def __init__(self, name: str) -> None:
        super().__init__()
        self.name = name

    def __exit__(self, exc_type: type[BaseException] | None, *rest: object) -> None:
        super().__exit__(exc_type, *rest)
        record_operation(
            operation=self.name,
            status="ok" if exc_type is None else "error",
            latency_seconds=self.elapsed,
        )
        if exc_type is not None and not issubclass(exc_type, InputError):
            logger.warning("Operation %s failed after %.1f ms", self.name, self.elapsed_ms)


def _guarded(collaborator: str, func: Callable[..., Any], *args: Any) -> None:
    try:
        func(*args)
    except Exception as exc:  # noqa: BLE001
        logger.warning("%s call failed; result was still returned: %s", collaborator, exc)
        record_collaborator_failure(collaborator)


def _sample_summary(sample: AudioSample) -> dict[str, Any]:
    return {
        "sample_rate": sample.sample_rate,
        "channels": sample.channels,
        "duration_sec": round(sample.duration, 3),
    }
