"""
SQLAlchemy model for function model persistence.

The aggregate is stored as one row: scalar columns for the fields used
in queries, JSON columns for nodes, action nodes and permissions.
"""
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class FunctionModelRecord(Base):
    """SQLAlchemy model for function model state"""
    __tablename__ = "function_models"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="draft",
        index=True,
        comment="Model status: draft, published, archived"
    )

    version: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="1.0.0",
        comment="Semantic version"
    )

    version_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Save counter, checked by the ORM on every UPDATE"
    )

    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    # Aggregate parts as JSON
    permissions: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    nodes: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    action_nodes: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    metadata_json: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Additional metadata"
    )

    # Soft delete
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_by: Mapped[str | None] = mapped_column(String(128), nullable=True)

    # Timestamps
    last_saved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("idx_function_models_owner_deleted", "owner_id", "deleted_at"),
    )

    # UPDATE ... WHERE version_count = <loaded value>; the repository sets the new value
    __mapper_args__ = {
        "version_id_col": version_count,
        "version_id_generator": False,
    }

    def __repr__(self) -> str:
        return (
            f"<FunctionModelRecord(id={self.id}, name={self.name}, "
            f"status={self.status}, version_count={self.version_count})>"
        )
