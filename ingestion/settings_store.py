"""
ingestion/settings_store.py — SQL persistence for computed mix/master settings.

Rows hold the JSON ``as_dict()`` form of MixSettings / MasterSettings plus
the provenance of the computation. Writes retry on transient
OperationalError (locked SQLite file, dropped connection).
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from core.mix_master.collaborators import Provenance
from core.mix_master.settings import MasterSettings, MixSettings
from db.models import ComputedSettingsRecord
from infrastructure.retry import with_retry

logger = logging.getLogger(__name__)

KIND_MIX = "mix"
KIND_MASTER = "master"


class SqlSettingsStore:
    """SettingsStore backed by the ``computed_settings`` table.

    Args:
        session_factory: Zero-argument callable returning a Session, usually
            ``db.session.SessionLocal``.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        """Initialize with a session factory."""
        self._session_factory = session_factory

    def save_computed_settings(
        self,
        track_id: str,
        settings: MixSettings | MasterSettings,
        provenance: Provenance,
    ) -> None:
        """Insert one settings row for ``track_id``."""
        kind = KIND_MASTER if isinstance(settings, MasterSettings) else KIND_MIX
        record = ComputedSettingsRecord(
            track_id=track_id,
            kind=kind,
            operation=provenance.operation,
            settings=settings.as_dict(),
            provenance=provenance.as_dict(),
        )
        self._insert(record)
        logger.debug("Saved %s settings for track %s (%s)", kind, track_id, provenance.operation)

    def load_mix_settings(self, track_id: str) -> MixSettings | None:
        """Latest stored MixSettings for a track, or None."""
        data = self._latest(track_id, KIND_MIX)
        return MixSettings.from_dict(data) if data is not None else None

    def load_master_settings(self, track_id: str) -> MasterSettings | None:
        """Latest stored MasterSettings for a track, or None."""
        data = self._latest(track_id, KIND_MASTER)
        return MasterSettings.from_dict(data) if data is not None else None

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @with_retry(max_attempts=3, base_seconds=0.2, max_seconds=2.0, exceptions=(OperationalError,))
    def _insert(self, record: ComputedSettingsRecord) -> None:
        session = self._session_factory()
        try:
            session.add(record)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _latest(self, track_id: str, kind: str) -> dict | None:
        session = self._session_factory()
        try:
            stmt = (
                select(ComputedSettingsRecord.settings)
                .where(
                    ComputedSettingsRecord.track_id == track_id,
                    ComputedSettingsRecord.kind == kind,
                )
                .order_by(ComputedSettingsRecord.id.desc())
                .limit(1)
            )
            return session.execute(stmt).scalar_one_or_none()
        finally:
            session.close()
