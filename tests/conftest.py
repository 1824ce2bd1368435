"""
Shared fixtures for the test suite.

Centralizes reusable test infrastructure so individual test files
don't need to repeat fake-collaborator and override boilerplate:
in-memory settings store and inference log, scriptable loudness analyzer
and renderer, the bundled preset catalog, an engine wired to fakes, and a
FastAPI TestClient whose audio loader serves synthetic buffers.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np
import pytest
from fastapi.testclient import TestClient

from api.deps import get_audio_loader, get_engine
from api.main import app
from core.config import EngineConfig
from core.mix_master.catalog import GenrePresetCatalog
from core.mix_master.collaborators import ExternalLoudness, Provenance
from core.mix_master.errors import CollaboratorUnavailableError
from core.mix_master.filters import FilterDescriptor
from core.mix_master.settings import MasterSettings, MixSettings
from core.mix_master.types import AudioSample
from ingestion.mix_master_engine import MixMasterEngine

SR = 48_000
"""Sample rate used by synthetic test buffers."""


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FakeLoudnessAnalyzer:
    """Returns a fixed measurement, or raises when ``available`` is False."""

    def __init__(
        self,
        result: ExternalLoudness | None = None,
        available: bool = True,
    ) -> None:
        self.result = result or ExternalLoudness(
            integrated=-12.0, true_peak=-0.8, loudness_range=6.0, threshold=-22.0
        )
        self.available = available
        self.calls = 0

    def measure(self, sample: AudioSample) -> ExternalLoudness:
        self.calls += 1
        if not self.available:
            raise CollaboratorUnavailableError("ffmpeg", "binary 'ffmpeg' not found")
        return self.result


class FakeRenderer:
    """Records render calls; raises CollaboratorUnavailableError when unavailable."""

    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.renders: list[tuple[str, list[FilterDescriptor]]] = []

    def render(
        self,
        input_path: str,
        filters: Sequence[FilterDescriptor],
        output_path: str | None = None,
    ) -> str:
        if not self.available:
            raise CollaboratorUnavailableError("ffmpeg", "exit code 1: boom")
        self.renders.append((input_path, list(filters)))
        return output_path or f"{input_path}.rendered.wav"

    def measure_loudness(self, input_path: str) -> ExternalLoudness:
        raise CollaboratorUnavailableError("ffmpeg", "not used in tests")

    def transcode_to_wav(self, input_path: str, output_path: str | None = None) -> str:
        raise CollaboratorUnavailableError("ffmpeg", "not used in tests")


class FakeSettingsStore:
    """In-memory SettingsStore keeping every save in order."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.saved: list[tuple[str, MixSettings | MasterSettings, Provenance]] = []

    def save_computed_settings(
        self,
        track_id: str,
        settings: MixSettings | MasterSettings,
        provenance: Provenance,
    ) -> None:
        if self.fail:
            raise ConnectionError("database is down")
        self.saved.append((track_id, settings, provenance))

    def load_mix_settings(self, track_id: str) -> MixSettings | None:
        for saved_id, settings, _ in reversed(self.saved):
            if saved_id == track_id and isinstance(settings, MixSettings):
                return settings.copy()
        return None


class FakeInferenceLog:
    """In-memory InferenceLogSink."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.records: list[dict[str, Any]] = []

    def log_inference(
        self,
        model_name: str,
        operation_type: str,
        input_summary: Mapping[str, Any],
        output_summary: Mapping[str, Any],
        confidence: float,
        elapsed_ms: float,
    ) -> None:
        if self.fail:
            raise TimeoutError("log pipeline unreachable")
        self.records.append(
            {
                "model_name": model_name,
                "operation_type": operation_type,
                "input_summary": dict(input_summary),
                "output_summary": dict(output_summary),
                "confidence": confidence,
                "elapsed_ms": elapsed_ms,
            }
        )


# ---------------------------------------------------------------------------
# Synthetic audio
# ---------------------------------------------------------------------------


def make_sine(
    freq: float = 440.0,
    seconds: float = 1.0,
    amplitude: float = 0.5,
    channels: int = 1,
    sr: int = SR,
) -> AudioSample:
    """Sine tone as an AudioSample with identical channels."""
    t = np.arange(int(seconds * sr)) / sr
    y = amplitude * np.sin(2 * np.pi * freq * t)
    return AudioSample(samples=np.tile(y, (channels, 1)), sample_rate=sr)


def make_noise(
    seconds: float = 1.0,
    amplitude: float = 0.3,
    channels: int = 1,
    seed: int = 7,
    sr: int = SR,
) -> AudioSample:
    """Uniform white noise, independent per channel."""
    rng = np.random.default_rng(seed)
    y = amplitude * rng.uniform(-1.0, 1.0, size=(channels, int(seconds * sr)))
    return AudioSample(samples=y, sample_rate=sr)


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def catalog() -> GenrePresetCatalog:
    """Bundled preset catalog, loaded once."""
    return GenrePresetCatalog.from_package()


@pytest.fixture()
def fakes() -> dict[str, Any]:
    return {
        "analyzer": FakeLoudnessAnalyzer(),
        "renderer": FakeRenderer(),
        "store": FakeSettingsStore(),
        "log": FakeInferenceLog(),
    }


@pytest.fixture()
def engine(catalog: GenrePresetCatalog, fakes: dict[str, Any]):
    """MixMasterEngine wired to in-memory fakes; closed after the test."""
    eng = MixMasterEngine(
        catalog=catalog,
        config=EngineConfig(max_workers=2),
        renderer=fakes["renderer"],
        loudness_analyzer=fakes["analyzer"],
        settings_store=fakes["store"],
        inference_log=fakes["log"],
    )
    yield eng
    eng.close()


# ---------------------------------------------------------------------------
# FastAPI test client fixture
# ---------------------------------------------------------------------------


@pytest.fixture()
def api_client(engine: MixMasterEngine):
    """FastAPI ``TestClient`` with the engine and audio loader overridden.

    The loader serves buffers from ``client.audio`` keyed by path and raises
    FileNotFoundError for anything else.
    """
    audio: dict[str, AudioSample] = {
        "/audio/tone.wav": make_sine(220.0, seconds=1.0, channels=2),
        "/audio/noise.wav": make_noise(seconds=1.0, channels=2),
    }

    def _load(path: str) -> AudioSample:
        if path not in audio:
            raise FileNotFoundError(f"Audio file not found: {path}")
        return audio[path]

    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_audio_loader] = lambda: _load

    with TestClient(app) as c:
        c.audio = audio  # type: ignore[attr-defined]
        c.engine = engine  # type: ignore[attr-defined]
        yield c

    app.dependency_overrides.clear()
