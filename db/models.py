"""
SQLAlchemy ORM models for computed settings and the inference audit log.

JSON columns hold the ``as_dict()`` form of settings records and provenance,
so rows can be re-hydrated with ``MixSettings.from_dict`` /
``MasterSettings.from_dict`` without a schema per parameter.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, Index, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class ComputedSettingsRecord(Base):
    """One computed settings record for a track.

    ``kind`` is ``"mix"`` or ``"master"``. A track accumulates rows over
    time; the newest row of a kind is the current one.
    """

    __tablename__ = "computed_settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    track_id: Mapped[str] = mapped_column(String(128), index=True)
    kind: Mapped[str] = mapped_column(String(16), default="mix")
    operation: Mapped[str] = mapped_column(String(64))
    settings: Mapped[dict] = mapped_column(JSON)
    provenance: Mapped[dict] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (Index("idx_settings_track_kind", "track_id", "kind"),)


class InferenceRecord(Base):
    """Audit row for one engine inference (analysis or decision)."""

    __tablename__ = "inference_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    model_name: Mapped[str] = mapped_column(String(64), index=True)
    operation_type: Mapped[str] = mapped_column(String(64), index=True)
    input_summary: Mapped[dict] = mapped_column(JSON)
    output_summary: Mapped[dict] = mapped_column(JSON)
    confidence: Mapped[float] = mapped_column(Float)
    elapsed_ms: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
