"""
api/schemas/mix_master.py — Pydantic request models for the /mix-master endpoints.

All fields use snake_case. Audio is referenced by server-side file path.
Default values match MixMasterEngine defaults.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

_PLATFORMS = ("spotify", "apple_music", "youtube", "tidal", "soundcloud", "mastering")


class AudioFileRequest(BaseModel):
    """POST /mix-master/spectrum and /mix-master/loudness."""

    file_path: str = Field(..., description="Absolute path to audio file on server filesystem")


class StemsRequest(BaseModel):
    """POST /mix-master/stems — extract all five frequency-band stems."""

    file_path: str = Field(..., description="Absolute path to audio file on server filesystem")
    track_id: str | None = Field(
        None, description="Track id used to name stem files when a stems directory is configured"
    )


class ApplyPresetRequest(BaseModel):
    """POST /mix-master/presets/apply — blend a genre preset into a track's settings."""

    track_id: str = Field(..., min_length=1, description="Track the settings belong to")
    genre: str = Field(..., description="Genre id, e.g. 'hip_hop'; unknown ids use the default")
    intensity: float = Field(100.0, ge=0, le=100, description="Preset intensity in percent")
    render_path: str | None = Field(
        None, description="Optional audio file to render through the resulting filter chain"
    )


class ReferenceMatchRequest(BaseModel):
    """POST /mix-master/reference/match — match a track to a reference recording."""

    track_id: str = Field(..., min_length=1, description="Track whose stored settings are adjusted")
    reference_path: str = Field(..., description="Absolute path to the reference track")


class NormalizeRequest(BaseModel):
    """POST /mix-master/normalize — plan (and optionally render) loudness normalization."""

    track_id: str = Field(..., min_length=1, description="Track being normalized")
    file_path: str = Field(..., description="Absolute path to the track's audio file")
    target_lufs: float = Field(-14.0, ge=-70, le=0, description="Target integrated loudness")
    render: bool = Field(False, description="Render the normalized file with the external renderer")


class MasterSettingsRequest(BaseModel):
    """POST /mix-master/master-settings — mastering chain for a genre."""

    track_id: str = Field(..., min_length=1, description="Track the settings belong to")
    genre: str = Field(..., description="Genre id; unknown ids use the default")
    platform: str | None = Field(None, description=f"Delivery platform: {', '.join(_PLATFORMS)}")
