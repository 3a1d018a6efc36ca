"""Physical capacity checks for a crane and the vessel it should lift."""

from __future__ import annotations

from crane_booking.enterprise.core import Crane, LoadProfile, ValidationError


class CapacityValidator:
    """Rejects loads a crane cannot physically handle.

    This is authoritative and runs at commit time for every create, promote
    and reschedule, whatever the client already showed the user. Dimensions
    that are missing from the profile are not checked.
    """

    def validate(self, crane: Crane, profile: LoadProfile) -> None:
        if profile.weight_t is not None and profile.weight_t > crane.capacity_t:
            raise ValidationError(
                f"Vessel weight {profile.weight_t:g} t exceeds capacity of {crane.name} ({crane.capacity_t:g} t).",
                field="weight_t",
                limit=crane.capacity_t,
            )
        if (
            crane.max_width_m is not None
            and profile.width_m is not None
            and profile.width_m > crane.max_width_m
        ):
            raise ValidationError(
                f"Vessel width {profile.width_m:g} m exceeds basin width of {crane.name} ({crane.max_width_m:g} m).",
                field="width_m",
                limit=crane.max_width_m,
            )
