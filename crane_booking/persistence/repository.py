"""Repository helpers for storing scheduling data."""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crane_booking.enterprise.core import (
    ACTIVE_STATUSES,
    AuditEvent,
    Crane,
    LoadProfile,
    MaintenanceBlock,
    Reservation,
    ReservationQuery,
    VesselProfile,
    WaitingListEntry,
)
from crane_booking.enterprise.core.models import as_utc

from .models import (
    AuditRecord,
    CraneRecord,
    MaintenanceBlockRecord,
    ReservationRecord,
    VesselRecord,
    WaitingListRecord,
)


def _crane(record: CraneRecord) -> Crane:
    return Crane(
        id=record.id,
        name=record.name,
        capacity_t=record.capacity_t,
        max_width_m=record.max_width_m,
        description=record.description,
        location=record.location,
        is_active=record.is_active,
        updated_at=as_utc(record.updated_at),
    )


def _reservation(record: ReservationRecord) -> Reservation:
    return Reservation(
        id=record.id,
        reservation_number=record.reservation_number,
        crane_id=record.crane_id,
        requester_id=record.requester_id,
        start=record.start_at,
        end=record.end_at,
        status=record.status,
        load_profile=LoadProfile(
            vessel_type=record.vessel_type,
            name=record.vessel_name,
            length_m=record.vessel_length_m,
            width_m=record.vessel_width_m,
            draft_m=record.vessel_draft_m,
            weight_t=record.vessel_weight_t,
        ),
        vessel_id=record.vessel_id,
        purpose=record.purpose or "",
        contact_phone=record.contact_phone,
        admin_note=record.admin_note,
        cancel_reason=record.cancel_reason,
        cancelled_by=record.cancelled_by,
        reviewed_by=record.reviewed_by,
        reviewed_at=as_utc(record.reviewed_at) if record.reviewed_at else None,
        completed_at=as_utc(record.completed_at) if record.completed_at else None,
        created_at=as_utc(record.created_at),
        updated_at=as_utc(record.updated_at),
    )


def _apply_reservation(record: ReservationRecord, reservation: Reservation) -> ReservationRecord:
    profile = reservation.load_profile
    record.reservation_number = reservation.reservation_number
    record.crane_id = reservation.crane_id
    record.requester_id = reservation.requester_id
    record.start_at = reservation.start
    record.end_at = reservation.end
    record.status = reservation.status
    record.vessel_type = profile.vessel_type
    record.vessel_name = profile.name
    record.vessel_length_m = profile.length_m
    record.vessel_width_m = profile.width_m
    record.vessel_draft_m = profile.draft_m
    record.vessel_weight_t = profile.weight_t
    record.vessel_id = reservation.vessel_id
    record.purpose = reservation.purpose
    record.contact_phone = reservation.contact_phone
    record.admin_note = reservation.admin_note
    record.cancel_reason = reservation.cancel_reason
    record.cancelled_by = reservation.cancelled_by
    record.reviewed_by = reservation.reviewed_by
    record.reviewed_at = reservation.reviewed_at
    record.completed_at = reservation.completed_at
    record.created_at = reservation.created_at
    record.updated_at = reservation.updated_at
    return record


def _block(record: MaintenanceBlockRecord) -> MaintenanceBlock:
    return MaintenanceBlock(
        id=record.id,
        crane_id=record.crane_id,
        start=record.start_at,
        end=record.end_at,
        description=record.description,
        created_by=record.created_by,
        created_at=as_utc(record.created_at),
    )


def _entry(record: WaitingListRecord) -> WaitingListEntry:
    return WaitingListEntry(
        id=record.id,
        crane_id=record.crane_id,
        requester_id=record.requester_id,
        requested_date=record.requested_date,
        slot_count=record.slot_count,
        load_profile=LoadProfile.model_validate(record.vessel_data or {}),
        utc_offset_minutes=record.utc_offset_minutes,
        notify_state=record.notify_state,
        consumed=record.consumed,
        reservation_id=record.reservation_id,
        created_at=as_utc(record.created_at),
    )


def _apply_entry(record: WaitingListRecord, entry: WaitingListEntry) -> WaitingListRecord:
    record.crane_id = entry.crane_id
    record.requester_id = entry.requester_id
    record.requested_date = entry.requested_date
    record.slot_count = entry.slot_count
    record.vessel_data = entry.load_profile.model_dump(mode="json")
    record.utc_offset_minutes = entry.utc_offset_minutes
    record.notify_state = entry.notify_state
    record.consumed = entry.consumed
    record.reservation_id = entry.reservation_id
    record.created_at = entry.created_at
    return record


class SchedulingRepository:
    """High-level persistence operations backed by an :class:`AsyncSession`.

    The repository never commits; transaction boundaries belong to the unit
    of work that created the session.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def lock_cranes(self, crane_ids: Iterable[str]) -> None:
        """Take row locks on the given cranes for the rest of the transaction."""

        ids = sorted(set(crane_ids))
        if not ids:
            return
        stmt = select(CraneRecord.id).where(CraneRecord.id.in_(ids)).order_by(CraneRecord.id).with_for_update()
        await self.session.execute(stmt)

    # cranes

    async def get_crane(self, crane_id: str) -> Optional[Crane]:
        record = await self.session.get(CraneRecord, crane_id)
        return _crane(record) if record else None

    async def list_cranes(self, active_only: bool = True) -> List[Crane]:
        stmt = select(CraneRecord).order_by(CraneRecord.name)
        if active_only:
            stmt = stmt.where(CraneRecord.is_active.is_(True))
        result = await self.session.execute(stmt)
        return [_crane(record) for record in result.scalars()]

    async def save_crane(self, crane: Crane) -> None:
        record = await self.session.get(CraneRecord, crane.id)
        if record is None:
            record = CraneRecord(id=crane.id)
            self.session.add(record)
        record.name = crane.name
        record.capacity_t = crane.capacity_t
        record.max_width_m = crane.max_width_m
        record.description = crane.description
        record.location = crane.location
        record.is_active = crane.is_active
        record.updated_at = crane.updated_at
        await self.session.flush()

    # reservations

    async def get_reservation(self, reservation_id: str) -> Optional[Reservation]:
        record = await self.session.get(ReservationRecord, reservation_id)
        return _reservation(record) if record else None

    async def add_reservation(self, reservation: Reservation) -> None:
        self.session.add(_apply_reservation(ReservationRecord(id=reservation.id), reservation))
        await self.session.flush()

    async def save_reservation(self, reservation: Reservation) -> None:
        record = await self.session.get(ReservationRecord, reservation.id)
        if record is None:
            await self.add_reservation(reservation)
            return
        _apply_reservation(record, reservation)
        await self.session.flush()

    async def active_reservations(self, crane_id: str, start: datetime, end: datetime) -> List[Reservation]:
        """Pending/approved reservations on ``crane_id`` whose interval meets ``[start, end)``."""

        stmt = (
            select(ReservationRecord)
            .where(
                ReservationRecord.crane_id == crane_id,
                ReservationRecord.status.in_(list(ACTIVE_STATUSES)),
                ReservationRecord.start_at < end,
                ReservationRecord.end_at > start,
            )
            .order_by(ReservationRecord.start_at)
        )
        result = await self.session.execute(stmt)
        return [_reservation(record) for record in result.scalars()]

    async def list_reservations(self, query: ReservationQuery) -> List[Reservation]:
        stmt = select(ReservationRecord)
        if query.statuses:
            stmt = stmt.where(ReservationRecord.status.in_(list(query.statuses)))
        if query.crane_id:
            stmt = stmt.where(ReservationRecord.crane_id == query.crane_id)
        if query.requester_id:
            stmt = stmt.where(ReservationRecord.requester_id == query.requester_id)
        if query.window_start:
            stmt = stmt.where(ReservationRecord.end_at > query.window_start)
        if query.window_end:
            stmt = stmt.where(ReservationRecord.start_at < query.window_end)
        result = await self.session.execute(stmt.order_by(ReservationRecord.start_at))
        return [_reservation(record) for record in result.scalars()]

    async def count_active_reservations(self, requester_id: str) -> int:
        stmt = select(func.count()).select_from(ReservationRecord).where(
            ReservationRecord.requester_id == requester_id,
            ReservationRecord.status.in_(list(ACTIVE_STATUSES)),
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    # maintenance

    async def maintenance_blocks(
        self,
        crane_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[MaintenanceBlock]:
        stmt = select(MaintenanceBlockRecord)
        if crane_id:
            stmt = stmt.where(MaintenanceBlockRecord.crane_id == crane_id)
        if start:
            stmt = stmt.where(MaintenanceBlockRecord.end_at > start)
        if end:
            stmt = stmt.where(MaintenanceBlockRecord.start_at < end)
        result = await self.session.execute(stmt.order_by(MaintenanceBlockRecord.start_at))
        return [_block(record) for record in result.scalars()]

    async def get_maintenance_block(self, block_id: str) -> Optional[MaintenanceBlock]:
        record = await self.session.get(MaintenanceBlockRecord, block_id)
        return _block(record) if record else None

    async def add_maintenance_block(self, block: MaintenanceBlock) -> None:
        self.session.add(
            MaintenanceBlockRecord(
                id=block.id,
                crane_id=block.crane_id,
                start_at=block.start,
                end_at=block.end,
                description=block.description,
                created_by=block.created_by,
                created_at=block.created_at,
            )
        )
        await self.session.flush()

    async def delete_maintenance_block(self, block_id: str) -> bool:
        result = await self.session.execute(
            delete(MaintenanceBlockRecord).where(MaintenanceBlockRecord.id == block_id)
        )
        return bool(result.rowcount)

    # waiting list

    async def get_waiting_entry(self, entry_id: str) -> Optional[WaitingListEntry]:
        record = await self.session.get(WaitingListRecord, entry_id)
        return _entry(record) if record else None

    async def save_waiting_entry(self, entry: WaitingListEntry) -> None:
        record = await self.session.get(WaitingListRecord, entry.id)
        if record is None:
            record = WaitingListRecord(id=entry.id)
            self.session.add(record)
        _apply_entry(record, entry)
        await self.session.flush()

    async def delete_waiting_entry(self, entry_id: str) -> bool:
        result = await self.session.execute(delete(WaitingListRecord).where(WaitingListRecord.id == entry_id))
        return bool(result.rowcount)

    async def list_waiting_entries(
        self,
        crane_id: Optional[str] = None,
        requester_id: Optional[str] = None,
        requested_dates: Optional[Sequence[date]] = None,
        include_consumed: bool = False,
    ) -> List[WaitingListEntry]:
        stmt = select(WaitingListRecord)
        if crane_id:
            stmt = stmt.where(WaitingListRecord.crane_id == crane_id)
        if requester_id:
            stmt = stmt.where(WaitingListRecord.requester_id == requester_id)
        if requested_dates:
            stmt = stmt.where(WaitingListRecord.requested_date.in_(list(requested_dates)))
        if not include_consumed:
            stmt = stmt.where(WaitingListRecord.consumed.is_(False))
        result = await self.session.execute(stmt.order_by(WaitingListRecord.created_at))
        return [_entry(record) for record in result.scalars()]

    # vessels

    async def add_vessel(self, vessel: VesselProfile) -> None:
        self.session.add(
            VesselRecord(
                id=vessel.id,
                owner_id=vessel.owner_id,
                profile=vessel.profile.model_dump(mode="json"),
                created_at=vessel.created_at,
            )
        )
        await self.session.flush()

    async def get_vessel(self, vessel_id: str) -> Optional[VesselProfile]:
        record = await self.session.get(VesselRecord, vessel_id)
        if record is None:
            return None
        return VesselProfile(
            id=record.id,
            owner_id=record.owner_id,
            profile=LoadProfile.model_validate(record.profile),
            created_at=as_utc(record.created_at),
        )

    async def list_vessels(self, owner_id: str) -> List[VesselProfile]:
        stmt = select(VesselRecord).where(VesselRecord.owner_id == owner_id).order_by(VesselRecord.created_at.desc())
        result = await self.session.execute(stmt)
        return [
            VesselProfile(
                id=record.id,
                owner_id=record.owner_id,
                profile=LoadProfile.model_validate(record.profile),
                created_at=as_utc(record.created_at),
            )
            for record in result.scalars()
        ]

    async def delete_vessel(self, vessel_id: str) -> bool:
        result = await self.session.execute(delete(VesselRecord).where(VesselRecord.id == vessel_id))
        return bool(result.rowcount)

    # audit

    async def record_event(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        actor_id: Optional[str] = None,
        payload: Optional[dict] = None,
    ) -> None:
        self.session.add(
            AuditRecord(
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                actor_id=actor_id,
                payload=json.dumps(payload or {}, default=str),
            )
        )

    async def recent_events(self, limit: int = 50) -> List[AuditEvent]:
        stmt = select(AuditRecord).order_by(AuditRecord.created_at.desc(), AuditRecord.id.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return [
            AuditEvent(
                id=record.id,
                created_at=as_utc(record.created_at),
                action=record.action,
                entity_type=record.entity_type,
                entity_id=record.entity_id,
                actor_id=record.actor_id,
                payload=json.loads(record.payload),
            )
            for record in result.scalars()
        ]
