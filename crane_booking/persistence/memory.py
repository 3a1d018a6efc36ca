"""In-memory repository used when persistent storage is unavailable."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Set

from pydantic import BaseModel

from crane_booking.enterprise.core import (
    ACTIVE_STATUSES,
    AuditEvent,
    Crane,
    MaintenanceBlock,
    Reservation,
    ReservationQuery,
    VesselProfile,
    WaitingListEntry,
)

_TABLES = ("cranes", "reservations", "maintenance", "waiting", "vessels")


@dataclass
class InMemoryDatastore:
    """Process-local tables shared by every repository handle."""

    cranes: Dict[str, Crane] = field(default_factory=dict)
    reservations: Dict[str, Reservation] = field(default_factory=dict)
    maintenance: Dict[str, MaintenanceBlock] = field(default_factory=dict)
    waiting: Dict[str, WaitingListEntry] = field(default_factory=dict)
    vessels: Dict[str, VesselProfile] = field(default_factory=dict)
    events: List[AuditEvent] = field(default_factory=list)

    def table(self, name: str) -> Dict[str, BaseModel]:
        return getattr(self, name)

    def reset(self) -> None:
        for name in _TABLES:
            self.table(name).clear()
        self.events.clear()


class InMemorySchedulingRepository:
    """Repository over :class:`InMemoryDatastore` that stages its writes.

    Reads see the datastore plus this handle's staged writes. Nothing reaches
    the datastore until :meth:`commit`, so a handle that is discarded leaves
    the tables exactly as they were.
    """

    def __init__(self, store: InMemoryDatastore) -> None:
        self.store = store
        self._staged: Dict[str, Dict[str, BaseModel]] = {name: {} for name in _TABLES}
        self._removed: Dict[str, Set[str]] = {name: set() for name in _TABLES}
        self._events: List[AuditEvent] = []

    def commit(self) -> None:
        for name in _TABLES:
            table = self.store.table(name)
            for key in self._removed[name]:
                table.pop(key, None)
            table.update(self._staged[name])
        for event in self._events:
            self.store.events.append(event.model_copy(update={"id": len(self.store.events) + 1}))
        self.rollback()

    def rollback(self) -> None:
        for name in _TABLES:
            self._staged[name].clear()
            self._removed[name].clear()
        self._events.clear()

    def _rows(self, name: str) -> Iterable:
        merged = dict(self.store.table(name))
        merged.update(self._staged[name])
        return [row for key, row in merged.items() if key not in self._removed[name]]

    def _get(self, name: str, key: str):
        if key in self._removed[name]:
            return None
        if key in self._staged[name]:
            return self._staged[name][key]
        return self.store.table(name).get(key)

    def _put(self, name: str, key: str, row: BaseModel) -> None:
        self._removed[name].discard(key)
        self._staged[name][key] = row

    def _delete(self, name: str, key: str) -> bool:
        if self._get(name, key) is None:
            return False
        self._staged[name].pop(key, None)
        self._removed[name].add(key)
        return True

    async def lock_cranes(self, crane_ids: Iterable[str]) -> None:  # pragma: no cover - locks live in the unit of work
        return None

    # cranes

    async def get_crane(self, crane_id: str) -> Optional[Crane]:
        return self._get("cranes", crane_id)

    async def list_cranes(self, active_only: bool = True) -> List[Crane]:
        cranes = [crane for crane in self._rows("cranes") if crane.is_active or not active_only]
        return sorted(cranes, key=lambda crane: crane.name)

    async def save_crane(self, crane: Crane) -> None:
        self._put("cranes", crane.id, crane)

    # reservations

    async def get_reservation(self, reservation_id: str) -> Optional[Reservation]:
        return self._get("reservations", reservation_id)

    async def add_reservation(self, reservation: Reservation) -> None:
        self._put("reservations", reservation.id, reservation)

    async def save_reservation(self, reservation: Reservation) -> None:
        self._put("reservations", reservation.id, reservation)

    async def active_reservations(self, crane_id: str, start: datetime, end: datetime) -> List[Reservation]:
        found = [
            res
            for res in self._rows("reservations")
            if res.crane_id == crane_id and res.status in ACTIVE_STATUSES and res.start < end and res.end > start
        ]
        return sorted(found, key=lambda res: res.start)

    async def list_reservations(self, query: ReservationQuery) -> List[Reservation]:
        found = []
        for res in self._rows("reservations"):
            if query.statuses and res.status not in query.statuses:
                continue
            if query.crane_id and res.crane_id != query.crane_id:
                continue
            if query.requester_id and res.requester_id != query.requester_id:
                continue
            if query.window_start and res.end <= query.window_start:
                continue
            if query.window_end and res.start >= query.window_end:
                continue
            found.append(res)
        return sorted(found, key=lambda res: res.start)

    async def count_active_reservations(self, requester_id: str) -> int:
        return sum(
            1
            for res in self._rows("reservations")
            if res.requester_id == requester_id and res.status in ACTIVE_STATUSES
        )

    # maintenance

    async def maintenance_blocks(
        self,
        crane_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[MaintenanceBlock]:
        found = [
            block
            for block in self._rows("maintenance")
            if (not crane_id or block.crane_id == crane_id)
            and (start is None or block.end > start)
            and (end is None or block.start < end)
        ]
        return sorted(found, key=lambda block: block.start)

    async def get_maintenance_block(self, block_id: str) -> Optional[MaintenanceBlock]:
        return self._get("maintenance", block_id)

    async def add_maintenance_block(self, block: MaintenanceBlock) -> None:
        self._put("maintenance", block.id, block)

    async def delete_maintenance_block(self, block_id: str) -> bool:
        return self._delete("maintenance", block_id)

    # waiting list

    async def get_waiting_entry(self, entry_id: str) -> Optional[WaitingListEntry]:
        return self._get("waiting", entry_id)

    async def save_waiting_entry(self, entry: WaitingListEntry) -> None:
        self._put("waiting", entry.id, entry)

    async def delete_waiting_entry(self, entry_id: str) -> bool:
        return self._delete("waiting", entry_id)

    async def list_waiting_entries(
        self,
        crane_id: Optional[str] = None,
        requester_id: Optional[str] = None,
        requested_dates: Optional[Sequence[date]] = None,
        include_consumed: bool = False,
    ) -> List[WaitingListEntry]:
        found = [
            entry
            for entry in self._rows("waiting")
            if (not crane_id or entry.crane_id == crane_id)
            and (not requester_id or entry.requester_id == requester_id)
            and (not requested_dates or entry.requested_date in requested_dates)
            and (include_consumed or not entry.consumed)
        ]
        return sorted(found, key=lambda entry: entry.created_at)

    # vessels

    async def add_vessel(self, vessel: VesselProfile) -> None:
        self._put("vessels", vessel.id, vessel)

    async def get_vessel(self, vessel_id: str) -> Optional[VesselProfile]:
        return self._get("vessels", vessel_id)

    async def list_vessels(self, owner_id: str) -> List[VesselProfile]:
        found = [vessel for vessel in self._rows("vessels") if vessel.owner_id == owner_id]
        return sorted(found, key=lambda vessel: vessel.created_at, reverse=True)

    async def delete_vessel(self, vessel_id: str) -> bool:
        return self._delete("vessels", vessel_id)

    # audit

    async def record_event(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        actor_id: Optional[str] = None,
        payload: Optional[dict] = None,
    ) -> None:
        self._events.append(
            AuditEvent(
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                actor_id=actor_id,
                payload=dict(payload or {}),
            )
        )

    async def recent_events(self, limit: int = 50) -> List[AuditEvent]:
        return list(reversed(self.store.events))[:limit]
