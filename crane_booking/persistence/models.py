"""SQLAlchemy ORM models for the crane booking engine."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Boolean, Date, DateTime, Enum, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from crane_booking.enterprise.core import ActorRole, NotifyState, ReservationStatus, VesselType

from .database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CraneRecord(Base):
    __tablename__ = "cranes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    capacity_t: Mapped[float] = mapped_column(Float, nullable=False)
    max_width_m: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)


class ReservationRecord(Base):
    __tablename__ = "reservations"
    __table_args__ = (Index("ix_reservations_crane_window", "crane_id", "start_at", "end_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    reservation_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    crane_id: Mapped[str] = mapped_column(String(36), ForeignKey("cranes.id"), nullable=False)
    requester_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(ReservationStatus), default=ReservationStatus.PENDING, nullable=False
    )
    vessel_type: Mapped[VesselType] = mapped_column(Enum(VesselType), default=VesselType.OTHER)
    vessel_name: Mapped[Optional[str]] = mapped_column(String(255))
    vessel_length_m: Mapped[Optional[float]] = mapped_column(Float)
    vessel_width_m: Mapped[Optional[float]] = mapped_column(Float)
    vessel_draft_m: Mapped[Optional[float]] = mapped_column(Float)
    vessel_weight_t: Mapped[Optional[float]] = mapped_column(Float)
    vessel_id: Mapped[Optional[str]] = mapped_column(String(36))
    purpose: Mapped[str] = mapped_column(Text, default="")
    contact_phone: Mapped[Optional[str]] = mapped_column(String(50))
    admin_note: Mapped[Optional[str]] = mapped_column(Text)
    cancel_reason: Mapped[Optional[str]] = mapped_column(Text)
    cancelled_by: Mapped[Optional[ActorRole]] = mapped_column(Enum(ActorRole))
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(64))
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)


class MaintenanceBlockRecord(Base):
    __tablename__ = "maintenance_blocks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    crane_id: Mapped[str] = mapped_column(String(36), ForeignKey("cranes.id"), nullable=False, index=True)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="Maintenance")
    created_by: Mapped[Optional[str]] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)


class WaitingListRecord(Base):
    __tablename__ = "waiting_list"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    crane_id: Mapped[str] = mapped_column(String(36), ForeignKey("cranes.id"), nullable=False, index=True)
    requester_id: Mapped[str] = mapped_column(String(64), nullable=False)
    requested_date: Mapped[date] = mapped_column(Date, nullable=False)
    slot_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    vessel_data: Mapped[dict] = mapped_column(JSON, default=dict)
    utc_offset_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    notify_state: Mapped[NotifyState] = mapped_column(Enum(NotifyState), default=NotifyState.NONE)
    consumed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reservation_id: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)


class VesselRecord(Base):
    __tablename__ = "vessels"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    profile: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)


class AuditRecord(Base):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, index=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[Optional[str]] = mapped_column(String(36))
    actor_id: Mapped[Optional[str]] = mapped_column(String(64))
    payload: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
