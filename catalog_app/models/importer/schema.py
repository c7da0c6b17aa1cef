"""
SQLAlchemy models for product import bookkeeping.

One ``ProductImportRun`` row is written per CLI invocation; the counters of
every pass are merged into ``counts_json`` and the cross-pass run state is kept
in ``state_json`` so an interrupted import can be inspected afterwards.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Enum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import BaseModel, db


class ImportRunStatus(str, enum.Enum):
    """Lifecycle states for a product import run."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"


class ImportTargetKind(str, enum.Enum):
    """Where the spreadsheet rows are written."""

    PRODUCT_LIST = "product_list"
    INVENTORIES = "inventories"


class ProductImportRun(BaseModel):
    """Metadata describing a single product spreadsheet import."""

    __tablename__ = "product_import_runs"

    id: Mapped[int] = mapped_column(primary_key=True)
    source_filename: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    status: Mapped[ImportRunStatus] = mapped_column(
        Enum(ImportRunStatus, name="product_import_run_status_enum"),
        nullable=False,
        default=ImportRunStatus.PENDING,
        index=True,
    )
    import_into: Mapped[ImportTargetKind] = mapped_column(
        Enum(ImportTargetKind, name="product_import_target_enum"),
        nullable=False,
        default=ImportTargetKind.PRODUCT_LIST,
    )
    dry_run: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=False)
    started_at: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True))
    finished_at: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True))
    triggered_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    settings_json: Mapped[dict | None] = mapped_column(db.JSON, nullable=True)
    counts_json: Mapped[dict | None] = mapped_column(db.JSON, nullable=True)
    errors_json: Mapped[dict | None] = mapped_column(db.JSON, nullable=True)
    state_json: Mapped[dict | None] = mapped_column(
        db.JSON,
        nullable=True,
        comment="Serialized run state (ledger, created products, counters) after the latest pass.",
    )
    error_summary: Mapped[str | None] = mapped_column(db.Text, nullable=True)

    triggered_by_user = relationship("User", foreign_keys=[triggered_by_user_id])

    __table_args__ = (Index("idx_product_import_runs_started_at", "started_at"),)

    def __repr__(self) -> str:
        return f"<ProductImportRun id={self.id} status={self.status}>"
