"""
FastAPI dependency providers.

Builds the engine and its collaborators once per process: the preset
catalog, the ffmpeg renderer behind its circuit breaker, SQL persistence
and the inference log. Tests replace ``get_engine`` and
``get_audio_loader`` through ``app.dependency_overrides``.
"""

from collections.abc import Callable

from dotenv import load_dotenv

from core.config import EngineConfig
from core.mix_master.catalog import GenrePresetCatalog
from core.mix_master.types import AudioSample
from db.session import SessionLocal
from infrastructure.circuit_breaker import CircuitBreaker
from ingestion.audio_codec import LibrosaAudioCodec, load_audio_file
from ingestion.inference_log import SqlInferenceLog
from ingestion.mix_master_engine import MixMasterEngine
from ingestion.renderer import FFmpegRenderer, RendererLoudnessAnalyzer
from ingestion.settings_store import SqlSettingsStore

_config: EngineConfig | None = None


def get_config() -> EngineConfig:
    """Return the engine config, read once from ``.env`` and ``MIXMASTER_*`` variables."""
    global _config  # noqa: PLW0603
    if _config is None:
        load_dotenv()
        _config = EngineConfig.from_env()
    return _config


_catalog: GenrePresetCatalog | None = None


def get_catalog() -> GenrePresetCatalog:
    """Return the preset catalog singleton, loaded from bundled YAML on first call."""
    global _catalog  # noqa: PLW0603
    if _catalog is None:
        _catalog = GenrePresetCatalog.from_package(get_config().default_genre)
    return _catalog


# ---------------------------------------------------------------------------
# Circuit breaker — shared by every ffmpeg call
# ---------------------------------------------------------------------------

# Trips after 3 consecutive ffmpeg failures, probes again after 30s. Shared
# across requests so failure counts accumulate over the process lifetime.
_ffmpeg_breaker: CircuitBreaker | None = None


def get_ffmpeg_breaker() -> CircuitBreaker:
    """Return the ffmpeg circuit breaker singleton."""
    global _ffmpeg_breaker  # noqa: PLW0603
    if _ffmpeg_breaker is None:
        _ffmpeg_breaker = CircuitBreaker(
            name="ffmpeg",
            failure_threshold=3,
            reset_timeout_seconds=30.0,
        )
    return _ffmpeg_breaker


_engine: MixMasterEngine | None = None


def get_engine() -> MixMasterEngine:
    """Return the MixMasterEngine singleton with production collaborators."""
    global _engine  # noqa: PLW0603
    if _engine is None:
        config = get_config()
        renderer = FFmpegRenderer.from_config(config, breaker=get_ffmpeg_breaker())
        codec = LibrosaAudioCodec(renderer=renderer)
        _engine = MixMasterEngine(
            catalog=get_catalog(),
            config=config,
            codec=codec,
            renderer=renderer,
            loudness_analyzer=RendererLoudnessAnalyzer(renderer, codec),
            settings_store=SqlSettingsStore(SessionLocal),
            inference_log=SqlInferenceLog(SessionLocal),
        )
    return _engine


def get_audio_loader() -> Callable[[str], AudioSample]:
    """Return the function used to load audio files by path."""
    return load_audio_file
