"""Payloads for fitting, removing and swapping tires on a vehicle."""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from api.errors import ValidationError

from .vehicle import Vehicle

DEFAULT_SERVICE_REASON = "Regular service"


@dataclass
class ServiceOperation:
    """A tire-service call: the endpoint under /api/tire-service and its body."""

    endpoint: str
    payload: Dict[str, Any]


def _base(
    vehicle: Vehicle, reason: str, notes: str, performed_by: str, operation_type: str
) -> Dict[str, Any]:
    return {
        "vehicle_id": vehicle.id,
        "current_odometer": vehicle.current_odometer or 0,
        "reason": reason or DEFAULT_SERVICE_REASON,
        "notes": notes,
        "performed_by": performed_by,
        "operation_type": operation_type,
    }


def install_operation(
    vehicle: Vehicle,
    installations: Iterable[Tuple[Optional[int], str]],
    reason: str = "",
    notes: str = "",
    performed_by: str = "",
) -> ServiceOperation:
    """
    Fit tires from the store to free positions.

    Rows missing a tire or a position are dropped. One row uses the single
    install endpoint, more use the bulk one.
    """
    rows = [(tire_id, code) for tire_id, code in installations if tire_id and code]
    if not rows:
        raise ValidationError(["No valid installation items"])

    free = {p.position_code for p in vehicle.free_positions}
    taken = [code for _, code in rows if code not in free]
    if taken:
        raise ValidationError([f"Position {taken[0]} is not available"])
    codes = [code for _, code in rows]
    if len(set(codes)) != len(codes):
        raise ValidationError(["Each position can only take one tire"])

    if len(rows) == 1:
        tire_id, code = rows[0]
        payload = _base(vehicle, reason, notes, performed_by, "single_install")
        payload.update(tire_id=tire_id, position_code=code)
        return ServiceOperation("install", payload)

    payload = _base(vehicle, reason, notes, performed_by, "bulk_install")
    payload["installations"] = [{"tire_id": t, "position_code": c} for t, c in rows]
    return ServiceOperation("install/bulk", payload)


def removal_operation(
    vehicle: Vehicle,
    position_codes: Iterable[str],
    reason: str = "",
    notes: str = "",
    performed_by: str = "",
) -> ServiceOperation:
    """Take the tires at the given positions back to the store."""
    codes = [c for c in position_codes if c]
    if not codes:
        raise ValidationError(["No tires selected for removal"])

    mounted = vehicle.current_tires
    installation_ids: List[int] = []
    for code in codes:
        if code not in mounted:
            raise ValidationError([f"No tire found at position {code}"])
        installation_ids.append(mounted[code].id)

    if len(installation_ids) == 1:
        payload = _base(vehicle, reason, notes, performed_by, "single_remove")
        payload["installation_id"] = installation_ids[0]
        return ServiceOperation("remove", payload)

    payload = _base(vehicle, reason, notes, performed_by, "bulk_remove")
    payload["installation_ids"] = installation_ids
    return ServiceOperation("remove/bulk", payload)


def swap_operation(
    vehicle: Vehicle,
    from_position: str,
    to_position: str,
    reason: str = "",
    notes: str = "",
    performed_by: str = "",
) -> ServiceOperation:
    """Move a mounted tire to another position, swapping with any tire there."""
    if not from_position:
        raise ValidationError(["Please select a tire to swap from"])
    if not to_position:
        raise ValidationError(["Please select a position to swap to"])
    if from_position == to_position:
        raise ValidationError(["Cannot swap to the same position"])

    mounted = vehicle.current_tires
    from_tire = mounted.get(from_position)
    if from_tire is None:
        raise ValidationError(["No tire found at selected 'from' position"])

    payload = _base(vehicle, reason, notes, performed_by, "swap")
    payload.update(from_installation_id=from_tire.id, to_position_code=to_position)
    to_tire = mounted.get(to_position)
    if to_tire is not None:
        payload["to_installation_id"] = to_tire.id
    return ServiceOperation("swap", payload)
