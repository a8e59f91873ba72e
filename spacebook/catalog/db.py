# pyrefly: ignore-all-errors

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from typing import Any, Dict, List, Optional

from spacebook.database import Base, UTCDateTime, utc_now


class WorkspaceTypeDB(Base):
    __tablename__ = "workspace_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    default_capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    requires_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now
    )

    # Relationships
    workspaces: Mapped[List["WorkspaceDB"]] = relationship(
        "WorkspaceDB", back_populates="type"
    )


class AmenityDB(Base):
    __tablename__ = "amenities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now
    )


class WorkspaceDB(Base):
    __tablename__ = "workspaces"
    __table_args__ = (
        CheckConstraint("base_capacity > 0", name="workspaces_capacity_positive"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("workspace_types.id"), nullable=False
    )
    floor: Mapped[int] = mapped_column(Integer, nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    base_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    type_specific_attributes: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now
    )

    # Relationships
    type: Mapped["WorkspaceTypeDB"] = relationship(
        "WorkspaceTypeDB", back_populates="workspaces"
    )
    amenities: Mapped[List["WorkspaceAmenityDB"]] = relationship(
        "WorkspaceAmenityDB", back_populates="workspace", cascade="all, delete-orphan"
    )


class WorkspaceAmenityDB(Base):
    __tablename__ = "workspace_amenities"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="workspace_amenities_quantity_positive"),
    )

    workspace_id: Mapped[str] = mapped_column(
        String, ForeignKey("workspaces.id"), primary_key=True
    )
    amenity_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("amenities.id"), primary_key=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    workspace: Mapped["WorkspaceDB"] = relationship(
        "WorkspaceDB", back_populates="amenities"
    )
    amenity: Mapped["AmenityDB"] = relationship("AmenityDB")
