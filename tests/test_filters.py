"""Tests for core/mix_master/filters.py — renderer filter descriptors."""

from __future__ import annotations

import pytest

from core.mix_master.catalog import GenrePresetCatalog
from core.mix_master.filters import FilterDescriptor, filter_chain_string, mix_filter_chain
from core.mix_master.settings import MixSettings, neutral_baseline


class TestFilterDescriptor:
    def test_to_ffmpeg_formats_values(self) -> None:
        f = FilterDescriptor("equalizer", (("f", 80), ("width_type", "o"), ("g", 2.5)))
        assert f.to_ffmpeg() == "equalizer=f=80:width_type=o:g=2.5"

    def test_name_only(self) -> None:
        assert FilterDescriptor("anull").to_ffmpeg() == "anull"

    def test_get_missing_option(self) -> None:
        with pytest.raises(KeyError):
            FilterDescriptor("highpass", (("f", 30.0),)).get("g")

    def test_as_dict(self) -> None:
        assert FilterDescriptor("highpass", (("f", 30.0),)).as_dict() == {
            "name": "highpass",
            "params": {"f": 30.0},
        }

    def test_chain_string(self) -> None:
        chain = [
            FilterDescriptor("highpass", (("f", 30.0),)),
            FilterDescriptor("lowpass", (("f", 15000.0),)),
        ]
        assert filter_chain_string(chain) == "highpass=f=30,lowpass=f=15000"

    def test_empty_chain_is_passthrough(self) -> None:
        assert filter_chain_string([]) == "anull"


class TestMixFilterChain:
    def test_default_settings_only_compress(self) -> None:
        chain = mix_filter_chain(MixSettings())
        assert [f.name for f in chain] == ["acompressor"]
        assert chain[0].get("threshold") == "-20dB"
        assert chain[0].get("makeup") == "0dB"

    def test_neutral_baseline_keeps_cutoffs_only(self, catalog: GenrePresetCatalog) -> None:
        chain = mix_filter_chain(neutral_baseline(catalog.get("hip_hop").mix_settings))
        assert [f.name for f in chain] == ["highpass", "lowpass"]

    def test_hip_hop_chain(self, catalog: GenrePresetCatalog) -> None:
        chain = mix_filter_chain(catalog.get("hip_hop").mix_settings)
        names = [f.name for f in chain]
        # mid_gain is 0 dB and is omitted
        assert names.count("equalizer") == 4
        assert names[-3:] == ["highpass", "lowpass", "acompressor"]
        assert chain[0].get("f") == 80
        assert chain[0].get("g") == 4.0

    def test_width_rendered_and_clamped(self) -> None:
        mix = MixSettings()
        mix.stereo_imaging.width = 3.0
        stereo = mix_filter_chain(mix)[-1]
        assert stereo.name == "stereotools"
        assert stereo.get("mlev") == 2.0

    def test_compressor_options_clamped(self) -> None:
        mix = MixSettings()
        mix.compression.ratio = 40.0
        mix.compression.threshold = -90.0
        comp = mix_filter_chain(mix)[0]
        assert comp.get("ratio") == 20.0
        assert comp.get("threshold") == "-60dB"
