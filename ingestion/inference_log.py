"""
ingestion/inference_log.py — Audit sinks for engine operations.

SqlInferenceLog writes one ``inference_log`` row per operation.
LoggingInferenceLog emits the same record as a log line, for deployments
without a database.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from sqlalchemy.orm import Session

from db.models import InferenceRecord

logger = logging.getLogger(__name__)


def _plain(summary: Mapping[str, Any]) -> dict[str, Any]:
    # round-trip through json so numpy scalars and enums become plain values
    return json.loads(json.dumps(dict(summary), default=str))


class SqlInferenceLog:
    """InferenceLogSink backed by the ``inference_log`` table."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        """Initialize with a session factory."""
        self._session_factory = session_factory

    def log_inference(
        self,
        model_name: str,
        operation_type: str,
        input_summary: Mapping[str, Any],
        output_summary: Mapping[str, Any],
        confidence: float,
        elapsed_ms: float,
    ) -> None:
        session = self._session_factory()
        try:
            session.add(
                InferenceRecord(
                    model_name=model_name,
                    operation_type=operation_type,
                    input_summary=_plain(input_summary),
                    output_summary=_plain(output_summary),
                    confidence=float(confidence),
                    elapsed_ms=int(round(elapsed_ms)),
                )
            )
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


class LoggingInferenceLog:
    """InferenceLogSink that writes one INFO line per operation."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        """Initialize with an optional target logger."""
        self._log = log or logger

    def log_inference(
        self,
        model_name: str,
        operation_type: str,
        input_summary: Mapping[str, Any],
        output_summary: Mapping[str, Any],
        confidence: float,
        elapsed_ms: float,
    ) -> None:
        self._log.info(
            "inference model=%s op=%s confidence=%.3f elapsed_ms=%.1f input=%s output=%s",
            model_name,
            operation_type,
            confidence,
            elapsed_ms,
            json.dumps(_plain(input_summary), sort_keys=True),
            json.dumps(_plain(output_summary), sort_keys=True),
        )
