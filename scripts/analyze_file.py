#!/usr/bin/env python
"""Analyze one audio file with the mix/master engine — local runner.

Usage
-----
    # Spectrum + loudness (internal meter unless ffmpeg is on PATH)
    python scripts/analyze_file.py track.wav

    # Also extract stems and write them next to the track
    python scripts/analyze_file.py track.wav --stems --stems-dir out/

    # Apply a genre preset at 60% and plan normalization for Spotify
    python scripts/analyze_file.py track.wav --genre hip_hop --intensity 60 --target-lufs -14

    # Never call ffmpeg
    python scripts/analyze_file.py track.wav --no-ffmpeg

Exit codes
----------
    0  — success
    2  — input error (missing file, undecodable audio, bad parameter)
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv  # noqa: E402

load_dotenv()

from core.config import EngineConfig  # noqa: E402
from core.mix_master.catalog import GenrePresetCatalog  # noqa: E402
from core.mix_master.errors import InputError  # noqa: E402
from ingestion.audio_codec import LibrosaAudioCodec, load_audio_file  # noqa: E402
from ingestion.inference_log import LoggingInferenceLog  # noqa: E402
from ingestion.mix_master_engine import MixMasterEngine  # noqa: E402
from ingestion.renderer import FFmpegRenderer, RendererLoudnessAnalyzer  # noqa: E402

logger = logging.getLogger("analyze_file")


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Mix/master analysis of one audio file")
    p.add_argument("path", help="Audio file to analyze")
    p.add_argument("--track-id", default=None, help="Track id (default: file stem)")
    p.add_argument("--genre", default=None, help="Apply this genre preset")
    p.add_argument("--intensity", type=float, default=100.0, help="Preset intensity 0-100")
    p.add_argument("--target-lufs", type=float, default=None, help="Plan normalization to this target")
    p.add_argument("--stems", action="store_true", help="Extract the five frequency-band stems")
    p.add_argument("--stems-dir", default=None, help="Write stem WAV files to this directory")
    p.add_argument("--no-ffmpeg", action="store_true", help="Use the internal loudness meter only")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p.parse_args()


def build_engine(args: argparse.Namespace) -> MixMasterEngine:
    config = EngineConfig.from_env()
    if args.stems_dir:
        config = dataclasses.replace(config, stems_dir=args.stems_dir)
    codec = LibrosaAudioCodec()
    renderer = None if args.no_ffmpeg else FFmpegRenderer.from_config(config)
    return MixMasterEngine(
        catalog=GenrePresetCatalog.from_package(config.default_genre),
        config=config,
        codec=codec,
        renderer=renderer,
        loudness_analyzer=RendererLoudnessAnalyzer(renderer, codec) if renderer else None,
        inference_log=LoggingInferenceLog(),
    )


def run(args: argparse.Namespace) -> dict[str, Any]:
    sample = load_audio_file(args.path)
    track_id = args.track_id or Path(args.path).stem
    report: dict[str, Any] = {
        "file": args.path,
        "sample_rate": sample.sample_rate,
        "channels": sample.channels,
        "duration_sec": round(sample.duration, 2),
    }
    with build_engine(args) as engine:
        report["spectrum"] = engine.analyze_spectrum(sample).as_dict()
        report["loudness"] = engine.measure_loudness(sample).as_dict()
        if args.stems:
            stems = engine.extract_all_stems(sample, track_id)
            report["stems"] = {
                s.value: {"confidence": r.confidence, "output_path": r.output_path}
                for s, r in stems.stems.items()
            }
        if args.genre:
            applied = engine.apply_genre_preset(track_id, args.genre, args.intensity)
            report["preset"] = {
                "genre": applied.preset.genre.value,
                "settings": applied.settings.as_dict(),
                "suggestions": [s.as_dict() for s in applied.suggestions],
            }
        if args.target_lufs is not None:
            result = engine.normalize_to(track_id, sample, args.target_lufs)
            report["normalization"] = {
                "gain_db": result.plan.gain_db,
                "recommendation": result.plan.recommendation,
                "filter": result.plan.filter.to_ffmpeg(),
            }
    return report


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        report = run(args)
    except (FileNotFoundError, InputError) as exc:
        logger.error("%s", exc)
        return 2
    print(json.dumps(report, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
