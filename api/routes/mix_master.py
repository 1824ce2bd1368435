"""
api/routes/mix_master.py — Mix/master decision engine endpoints.

Endpoints
=========
    GET  /mix-master/presets              — List genre presets
    GET  /mix-master/presets/{genre}      — One preset (unknown genres get the default)
    POST /mix-master/spectrum             — Spectral profile of an audio file
    POST /mix-master/stems                — Five frequency-band stems with confidences
    POST /mix-master/loudness             — Loudness metrics (degraded flag on fallback)
    POST /mix-master/presets/apply        — Apply a genre preset at an intensity
    POST /mix-master/reference/match      — Match a track's settings to a reference
    POST /mix-master/normalize            — Gain plan (and optional render) to a LUFS target
    POST /mix-master/master-settings      — Mastering chain for genre and platform

All endpoints accept server-side file paths and delegate to MixMasterEngine.
They are thin HTTP controllers — no business logic lives here.

Error codes
===========
    422  — File not found, undecodable audio, out-of-range parameter, unknown stem/platform
    503  — External renderer or meter unavailable for an operation that needs it
    500  — Unexpected analysis failure
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_audio_loader, get_engine
from api.schemas.mix_master import (
    ApplyPresetRequest,
    AudioFileRequest,
    MasterSettingsRequest,
    NormalizeRequest,
    ReferenceMatchRequest,
    StemsRequest,
)
from core.mix_master.catalog import GenrePreset
from core.mix_master.errors import CollaboratorUnavailableError, InputError
from core.mix_master.types import AudioSample
from ingestion.mix_master_engine import MixMasterEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mix-master", tags=["mix-master"])

AudioLoader = Callable[[str], AudioSample]


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------


def _serialize_preset(preset: GenrePreset) -> dict[str, Any]:
    return {
        **preset.summary(),
        "mix_settings": preset.mix_settings.as_dict(),
        "master_settings": preset.master_settings.as_dict(),
        "characteristics": preset.characteristics.as_dict(),
    }


def _handle_engine_error(exc: Exception, context: str) -> None:
    """Translate engine errors to appropriate HTTP exceptions."""
    if isinstance(exc, (InputError, FileNotFoundError)):
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if isinstance(exc, CollaboratorUnavailableError):
        logger.warning("%s: %s", context, exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    logger.error("%s failed: %s", context, exc)
    raise HTTPException(status_code=500, detail=f"{context} failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------


@router.get("/presets")
def list_presets(engine: MixMasterEngine = Depends(get_engine)) -> dict[str, Any]:
    """List every genre preset with display name and target loudness."""
    catalog = engine.catalog
    return {"presets": catalog.summaries(), "default_genre": catalog.default_genre.value}


@router.get("/presets/{genre}")
def get_preset(genre: str, engine: MixMasterEngine = Depends(get_engine)) -> dict[str, Any]:
    """Return one preset. Unknown genre ids return the default genre's preset."""
    preset = engine.get_preset(genre)
    return {"requested": genre, "fallback": genre not in engine.catalog, **_serialize_preset(preset)}


@router.post("/presets/apply")
def apply_preset(
    request: ApplyPresetRequest,
    engine: MixMasterEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Blend a genre preset with a neutral baseline at the requested intensity.

    Raises:
        422: Invalid intensity or render path not found.
        503: Rendering requested but the renderer is unavailable.
    """
    try:
        result = engine.apply_genre_preset(
            request.track_id,
            request.genre,
            request.intensity,
            input_path=request.render_path,
        )
    except Exception as exc:
        _handle_engine_error(exc, "Preset application")

    return {
        "track_id": result.track_id,
        "genre": result.preset.genre.value,
        "intensity": result.intensity,
        "settings": result.settings.as_dict(),
        "filters": [f.as_dict() for f in result.filters],
        "suggestions": [s.as_dict() for s in result.suggestions],
        "output_path": result.output_path,
    }


@router.post("/master-settings")
def master_settings(
    request: MasterSettingsRequest,
    engine: MixMasterEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Mastering chain for a genre, targeted at a delivery platform."""
    try:
        settings = engine.master_settings(request.track_id, request.genre, request.platform)
    except Exception as exc:
        _handle_engine_error(exc, "Master settings")

    return {"track_id": request.track_id, "settings": settings.as_dict()}


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------


@router.post("/spectrum")
def spectrum(
    request: AudioFileRequest,
    engine: MixMasterEngine = Depends(get_engine),
    load_audio: AudioLoader = Depends(get_audio_loader),
) -> dict[str, Any]:
    """Five-band spectral profile plus centroid, rolloff and flux."""
    try:
        profile = engine.analyze_spectrum(load_audio(request.file_path))
    except Exception as exc:
        _handle_engine_error(exc, "Spectral analysis")

    return {"profile": profile.as_dict(), "band_shares": profile.band_shares()}


@router.post("/stems")
def stems(
    request: StemsRequest,
    engine: MixMasterEngine = Depends(get_engine),
    load_audio: AudioLoader = Depends(get_audio_loader),
) -> dict[str, Any]:
    """Frequency-band stems. Confidences are heuristics, not separation quality."""
    try:
        result = engine.extract_all_stems(load_audio(request.file_path), request.track_id)
    except Exception as exc:
        _handle_engine_error(exc, "Stem extraction")

    return {
        "stems": {
            stem.value: {
                "confidence": round(r.confidence, 4),
                "spectral_profile": r.spectral_profile.as_dict(),
                "output_path": r.output_path,
            }
            for stem, r in result.stems.items()
        },
        "overall_confidence": round(result.overall_confidence, 4),
        "processing_time_ms": round(result.processing_time_ms, 1),
    }


@router.post("/loudness")
def loudness(
    request: AudioFileRequest,
    engine: MixMasterEngine = Depends(get_engine),
    load_audio: AudioLoader = Depends(get_audio_loader),
) -> dict[str, Any]:
    """Loudness metrics; ``degraded`` is true when the internal meter was used."""
    try:
        metrics = engine.measure_loudness(load_audio(request.file_path))
    except Exception as exc:
        _handle_engine_error(exc, "Loudness measurement")

    return metrics.as_dict()


@router.post("/reference/match")
def match_reference(
    request: ReferenceMatchRequest,
    engine: MixMasterEngine = Depends(get_engine),
    load_audio: AudioLoader = Depends(get_audio_loader),
) -> dict[str, Any]:
    """Analyze a reference file and match the track's stored settings to it."""
    try:
        reference = engine.analyze_reference(load_audio(request.reference_path))
        match = engine.match_to_reference(request.track_id, reference)
    except Exception as exc:
        _handle_engine_error(exc, "Reference match")

    return {
        "track_id": request.track_id,
        "reference": reference.as_dict(),
        "suggestions": [s.as_dict() for s in match.suggestions],
        "adjustments": match.adjustments,
        "confidence": match.confidence,
        "settings": match.settings.as_dict(),
    }


@router.post("/normalize")
def normalize(
    request: NormalizeRequest,
    engine: MixMasterEngine = Depends(get_engine),
    load_audio: AudioLoader = Depends(get_audio_loader),
) -> dict[str, Any]:
    """Plan the gain to the target loudness; render when ``render`` is set."""
    try:
        result = engine.normalize_to(
            request.track_id,
            load_audio(request.file_path),
            request.target_lufs,
            input_path=request.file_path if request.render else None,
        )
    except Exception as exc:
        _handle_engine_error(exc, "Normalization")

    plan = result.plan
    return {
        "track_id": result.track_id,
        "measured": result.metrics.as_dict(),
        "target_lufs": plan.target_lufs,
        "gain_db": plan.gain_db,
        "recommendation": plan.recommendation,
        "suggestions": [s.as_dict() for s in plan.suggestions],
        "filter": plan.filter.as_dict(),
        "degraded": plan.degraded,
        "output_path": result.output_path,
    }
