"""Tests for api/routes/mix_master.py and api/main.py.

The engine is wired to in-memory fakes and the audio loader serves synthetic
buffers (see the ``api_client`` fixture in conftest.py).

Covers:
- 200 responses and payload shape for every endpoint
- 422 for missing files, invalid parameters and unknown platforms
- 503 when a requested render cannot run
- /health and /metrics
"""

from __future__ import annotations

import pytest

TONE = "/audio/tone.wav"
NOISE = "/audio/noise.wav"


class TestPresets:
    def test_list(self, api_client) -> None:
        resp = api_client.get("/mix-master/presets")
        assert resp.status_code == 200
        body = resp.json()
        assert len(body["presets"]) == 20
        assert body["default_genre"] == "hip_hop"

    def test_get_known(self, api_client) -> None:
        body = api_client.get("/mix-master/presets/edm").json()
        assert body["genre"] == "edm"
        assert body["fallback"] is False
        assert body["master_settings"]["maximizer"]["character"] in {
            "transparent",
            "punchy",
            "warm",
            "aggressive",
        }

    def test_get_unknown_falls_back(self, api_client) -> None:
        body = api_client.get("/mix-master/presets/polka").json()
        assert body["requested"] == "polka"
        assert body["fallback"] is True
        assert body["genre"] == "hip_hop"

    def test_apply(self, api_client) -> None:
        resp = api_client.post(
            "/mix-master/presets/apply",
            json={"track_id": "t1", "genre": "hip_hop", "intensity": 50},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["intensity"] == 0.5
        assert body["settings"]["eq"]["low_gain"] == pytest.approx(2.0)
        assert len(body["suggestions"]) == 3
        assert body["output_path"] is None

    @pytest.mark.parametrize("intensity", [-1, 101])
    def test_apply_intensity_validated(self, api_client, intensity: float) -> None:
        resp = api_client.post(
            "/mix-master/presets/apply",
            json={"track_id": "t1", "genre": "hip_hop", "intensity": intensity},
        )
        assert resp.status_code == 422

    def test_apply_with_render(self, api_client) -> None:
        resp = api_client.post(
            "/mix-master/presets/apply",
            json={"track_id": "t1", "genre": "edm", "render_path": TONE},
        )
        assert resp.status_code == 200
        assert resp.json()["output_path"] == f"{TONE}.rendered.wav"

    def test_apply_render_unavailable(self, api_client) -> None:
        api_client.engine.renderer.available = False
        resp = api_client.post(
            "/mix-master/presets/apply",
            json={"track_id": "t1", "genre": "edm", "render_path": TONE},
        )
        assert resp.status_code == 503

    def test_master_settings(self, api_client) -> None:
        resp = api_client.post(
            "/mix-master/master-settings",
            json={"track_id": "t1", "genre": "pop", "platform": "apple_music"},
        )
        assert resp.status_code == 200
        settings = resp.json()["settings"]
        assert settings["target_lufs"] == -16.0
        assert settings["target_platform"] == "apple_music"

    def test_master_settings_unknown_platform(self, api_client) -> None:
        resp = api_client.post(
            "/mix-master/master-settings",
            json={"track_id": "t1", "genre": "pop", "platform": "myspace"},
        )
        assert resp.status_code == 422
        assert "platform" in resp.json()["detail"]


class TestAnalysis:
    def test_spectrum(self, api_client) -> None:
        resp = api_client.post("/mix-master/spectrum", json={"file_path": TONE})
        assert resp.status_code == 200
        body = resp.json()
        assert sum(body["band_shares"].values()) == pytest.approx(1.0)
        assert body["band_shares"]["low"] > 0.5

    def test_spectrum_missing_file(self, api_client) -> None:
        resp = api_client.post("/mix-master/spectrum", json={"file_path": "/audio/missing.wav"})
        assert resp.status_code == 422
        assert "not found" in resp.json()["detail"]

    def test_stems(self, api_client) -> None:
        resp = api_client.post("/mix-master/stems", json={"file_path": NOISE, "track_id": "t1"})
        assert resp.status_code == 200
        body = resp.json()
        assert set(body["stems"]) == {"vocals", "drums", "bass", "melody", "harmony"}
        assert all(0.76 <= s["confidence"] <= 0.95 for s in body["stems"].values())

    def test_loudness_external(self, api_client) -> None:
        body = api_client.post("/mix-master/loudness", json={"file_path": NOISE}).json()
        assert body["integrated"] == -12.0
        assert body["degraded"] is False
        assert body["source"] == "external"

    def test_loudness_degraded(self, api_client) -> None:
        api_client.engine.loudness_analyzer.available = False
        resp = api_client.post("/mix-master/loudness", json={"file_path": NOISE})
        assert resp.status_code == 200
        assert resp.json()["degraded"] is True
        assert resp.json()["source"] == "internal"


class TestReferenceAndNormalize:
    def test_reference_match(self, api_client) -> None:
        resp = api_client.post(
            "/mix-master/reference/match", json={"track_id": "t1", "reference_path": NOISE}
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["adjustments"]["target_lufs"] == -12.0
        assert body["reference"]["stereo_width"] > 1.5
        assert 0.0 < body["confidence"] <= 1.0

    def test_reference_missing(self, api_client) -> None:
        resp = api_client.post(
            "/mix-master/reference/match", json={"track_id": "t1", "reference_path": "/x.wav"}
        )
        assert resp.status_code == 422

    def test_normalize(self, api_client) -> None:
        resp = api_client.post(
            "/mix-master/normalize",
            json={"track_id": "t1", "file_path": TONE, "target_lufs": -14},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["gain_db"] == pytest.approx(-2.0)
        assert body["filter"]["name"] == "loudnorm"
        assert body["output_path"] is None

    def test_normalize_render(self, api_client) -> None:
        resp = api_client.post(
            "/mix-master/normalize",
            json={"track_id": "t1", "file_path": TONE, "render": True},
        )
        assert resp.status_code == 200
        assert resp.json()["output_path"] == f"{TONE}.rendered.wav"

    def test_normalize_target_validated(self, api_client) -> None:
        resp = api_client.post(
            "/mix-master/normalize",
            json={"track_id": "t1", "file_path": TONE, "target_lufs": 3},
        )
        assert resp.status_code == 422


class TestServiceEndpoints:
    def test_health(self, api_client) -> None:
        body = api_client.get("/health").json()
        assert body["status"] == "ok"
        assert body["renderer"]["name"] == "ffmpeg"

    def test_metrics(self, api_client) -> None:
        api_client.post("/mix-master/spectrum", json={"file_path": TONE})
        resp = api_client.get("/metrics")
        assert resp.status_code == 200
        assert "mixmaster_operations_total" in resp.text
