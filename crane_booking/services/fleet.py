"""Crane administration and saved vessel profiles."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from crane_booking.enterprise.core import (
    Actor,
    Crane,
    ForbiddenError,
    LoadProfile,
    NotFoundError,
    ValidationError,
    VesselProfile,
    utcnow,
)
from crane_booking.observability.logging import get_logger
from crane_booking.persistence.unit_of_work import UnitOfWork

from .lifecycle import require_admin, require_writer

logger = get_logger(__name__)

_EDITABLE_FIELDS = frozenset({"name", "capacity_t", "max_width_m", "description", "location", "is_active"})


class FleetRegistry:
    """Cranes are never deleted, only deactivated, so history stays joinable."""

    def __init__(self, uow: UnitOfWork) -> None:
        self.uow = uow

    async def create_crane(
        self,
        actor: Actor,
        name: str,
        capacity_t: float,
        max_width_m: Optional[float] = None,
        description: Optional[str] = None,
        location: Optional[str] = None,
    ) -> Crane:
        require_admin(actor, "register cranes")
        crane = Crane(
            name=name,
            capacity_t=capacity_t,
            max_width_m=max_width_m,
            description=description,
            location=location,
        )
        async with self.uow.transaction() as repo:
            await repo.save_crane(crane)
            await repo.record_event("crane.created", "crane", crane.id, actor.id, {"name": name})
        logger.info("crane_created", crane_id=crane.id, name=name)
        return crane

    async def update_crane(self, actor: Actor, crane_id: str, **changes: Any) -> Crane:
        require_admin(actor, "edit cranes")
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown crane fields: {', '.join(sorted(unknown))}.")
        async with self.uow.transaction(crane_id) as repo:
            current = await self._load(repo, crane_id)
            data: Dict[str, Any] = current.model_dump()
            data.update(changes)
            data["updated_at"] = utcnow()
            try:
                updated = Crane.model_validate(data)
            except ValueError as exc:
                raise ValidationError(f"Invalid crane data: {exc}") from exc
            await repo.save_crane(updated)
            await repo.record_event(
                "crane.updated", "crane", crane_id, actor.id, {"changes": sorted(changes)}
            )
        return updated

    async def deactivate_crane(self, actor: Actor, crane_id: str) -> Crane:
        return await self.update_crane(actor, crane_id, is_active=False)

    async def list_cranes(self, active_only: bool = True) -> List[Crane]:
        async with self.uow.reader() as repo:
            return await repo.list_cranes(active_only=active_only)

    async def get_crane(self, crane_id: str) -> Crane:
        async with self.uow.reader() as repo:
            return await self._load(repo, crane_id)

    # vessels

    async def save_vessel(self, actor: Actor, profile: LoadProfile) -> VesselProfile:
        require_writer(actor)
        vessel = VesselProfile(owner_id=actor.id, profile=profile)
        async with self.uow.transaction() as repo:
            await repo.add_vessel(vessel)
        return vessel

    async def list_vessels(self, actor: Actor) -> List[VesselProfile]:
        async with self.uow.reader() as repo:
            return await repo.list_vessels(actor.id)

    async def delete_vessel(self, actor: Actor, vessel_id: str) -> None:
        async with self.uow.transaction() as repo:
            vessel = await repo.get_vessel(vessel_id)
            if vessel is None:
                raise NotFoundError("Vessel not found.", vessel_id=vessel_id)
            if vessel.owner_id != actor.id:
                raise ForbiddenError("You can only delete your own vessels.")
            await repo.delete_vessel(vessel_id)

    @staticmethod
    async def _load(repo, crane_id: str) -> Crane:
        crane = await repo.get_crane(crane_id)
        if crane is None:
            raise NotFoundError("Crane not found.", crane_id=crane_id)
        return crane
