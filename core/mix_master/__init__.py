"""
core/mix_master — Audio analysis and mix/master decision engine.

Pure functions and value types: AudioSample / numpy arrays in, frozen
measurements and settings records out. No file, process, or network I/O in
this package; decoding, rendering, persistence and audit logging are
collaborators (see collaborators.py) implemented in ingestion/.

Public API:
    Types:          AudioSample, SpectralProfile, LoudnessMetrics, StemType,
                    StemExtractionResult, StemSeparationResult
    Settings:       MixSettings, MasterSettings, neutral_baseline
    Spectral:       analyze_spectrum
    Stems:          extract_stem, stem_confidence
    Loudness:       LoudnessMeter, measure_internal
    Catalog:        Genre, GenrePreset, GenrePresetCatalog
    Intensity:      apply_intensity, intensity_from_percent
    Reference:      ReferenceProfile, match_reference
    Normalization:  plan_normalization
    Errors:         InputError, CollaboratorUnavailableError,
                    CollaboratorTimeoutError, CollaboratorParseError
"""

from core.mix_master.catalog import Genre, GenrePreset, GenrePresetCatalog
from core.mix_master.errors import (
    CollaboratorParseError,
    CollaboratorTimeoutError,
    CollaboratorUnavailableError,
    InputError,
    MixMasterError,
)
from core.mix_master.intensity import apply_intensity, intensity_from_percent
from core.mix_master.loudness import LoudnessMeter, measure_internal
from core.mix_master.normalization import NormalizationPlan, plan_normalization
from core.mix_master.reference import ReferenceMatch, ReferenceProfile, match_reference
from core.mix_master.settings import MasterSettings, MixSettings, neutral_baseline
from core.mix_master.spectral import analyze_spectrum
from core.mix_master.stems import extract_stem, stem_confidence
from core.mix_master.suggestions import AISuggestion, Priority, SuggestionCategory
from core.mix_master.types import (
    AudioSample,
    LoudnessMetrics,
    SpectralProfile,
    StemExtractionResult,
    StemSeparationResult,
    StemType,
)

__all__ = [
    "AISuggestion",
    "AudioSample",
    "CollaboratorParseError",
    "CollaboratorTimeoutError",
    "CollaboratorUnavailableError",
    "Genre",
    "GenrePreset",
    "GenrePresetCatalog",
    "InputError",
    "LoudnessMeter",
    "LoudnessMetrics",
    "MasterSettings",
    "MixMasterError",
    "MixSettings",
    "NormalizationPlan",
    "Priority",
    "ReferenceMatch",
    "ReferenceProfile",
    "SpectralProfile",
    "StemExtractionResult",
    "StemSeparationResult",
    "StemType",
    "SuggestionCategory",
    "analyze_spectrum",
    "apply_intensity",
    "extract_stem",
    "intensity_from_percent",
    "match_reference",
    "measure_internal",
    "neutral_baseline",
    "plan_normalization",
    "stem_confidence",
]
