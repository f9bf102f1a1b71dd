"""Vehicle class and its tire installation history."""

from dataclasses import dataclass
from typing import Dict, List, Optional

# Axles per wheel configuration; axle 1 steers on single wheels, the rest run duals
AXLES_BY_CONFIG = {"4x2": 2, "4x4": 2, "6x2": 3, "6x4": 3, "8x4": 4}

HISTORY_SORT_KEYS = ("date", "odometer", "position")


@dataclass
class TireInstallation:
    """One tire fitted to one wheel position, from install to removal."""

    id: int
    tire_id: int
    vehicle_id: int
    position_code: str
    install_date: str
    install_odometer: float
    serial_number: str
    size: str = ""
    brand: str = ""
    type: Optional[str] = None
    position_id: Optional[int] = None
    position_name: Optional[str] = None
    removal_date: Optional[str] = None
    removal_odometer: Optional[float] = None
    reason_for_change: str = ""
    created_by: str = ""
    created_at: Optional[str] = None
    vehicle_number: Optional[str] = None

    @property
    def is_current(self) -> bool:
        """Still mounted: no removal date recorded."""
        return not self.removal_date

    @property
    def tire_type(self) -> str:
        """Tire type, or UNKNOWN when the backend omits it."""
        return self.type or "UNKNOWN"


@dataclass
class WheelPosition:
    position_code: str
    position_name: str
    axle_number: int
    is_trailer: bool = False


def wheel_positions(wheel_config: Optional[str]) -> List[WheelPosition]:
    """
    Wheel positions for a configuration, front axle first.

    Axle 1 has A1-L and A1-R. Every other axle has duals, listed left
    outer to right outer: A2-L-Outer, A2-L-Inner, A2-R-Inner, A2-R-Outer.
    Unknown configurations have no positions.
    """
    axles = AXLES_BY_CONFIG.get(wheel_config or "", 0)
    positions = []
    for axle in range(1, axles + 1):
        if axle == 1:
            wheels = [("L", "Left"), ("R", "Right")]
        else:
            wheels = [
                ("L-Outer", "Left Outer"),
                ("L-Inner", "Left Inner"),
                ("R-Inner", "Right Inner"),
                ("R-Outer", "Right Outer"),
            ]
        for code, name in wheels:
            positions.append(
                WheelPosition(
                    position_code=f"A{axle}-{code}",
                    position_name=f"Axle {axle} {name}",
                    axle_number=axle,
                )
            )
    return positions


class Vehicle:
    """A fleet vehicle with its tire installation history."""

    def __init__(
        self,
        id: int,
        vehicle_number: str,
        make: str,
        model: str,
        wheel_config: Optional[str] = None,
        status: str = "ACTIVE",
        year: Optional[int] = None,
        current_odometer: Optional[float] = None,
        active_tires_count: int = 0,
        created_at: Optional[str] = None,
        retired_at: Optional[str] = None,
        retirement_reason: Optional[str] = None,
        retired_by: Optional[str] = None,
        history: Optional[List[TireInstallation]] = None,
        positions: Optional[List[WheelPosition]] = None,
    ):
        self.id = id
        self.vehicle_number = vehicle_number
        self.make = make
        self.model = model
        self.wheel_config = wheel_config
        self.status = status
        self.year = year
        self.current_odometer = current_odometer
        self.active_tires_count = active_tires_count
        self.created_at = created_at
        self.retired_at = retired_at
        self.retirement_reason = retirement_reason
        self.retired_by = retired_by
        self.history = history or []
        self._positions = positions or []

    @property
    def name(self) -> str:
        """Human-readable vehicle name."""
        base = f"{self.vehicle_number} ({self.make} {self.model})"
        return f"{base} {self.year}" if self.year else base

    @property
    def is_retired(self) -> bool:
        return self.status == "RETIRED"

    @property
    def current_tires(self) -> Dict[str, TireInstallation]:
        """Mounted tires keyed by wheel position code."""
        mounted = {}
        for record in sorted(self.history, key=lambda h: h.install_date):
            if record.is_current:
                mounted[record.position_code] = record
        return mounted

    @property
    def positions(self) -> List[WheelPosition]:
        """Positions sent by the backend, else those of the wheel configuration."""
        return self._positions or wheel_positions(self.wheel_config)

    @property
    def free_positions(self) -> List[WheelPosition]:
        """Positions with no tire mounted."""
        occupied = self.current_tires
        return [p for p in self.positions if p.position_code not in occupied]

    def get_history_sorted(
        self, sort_by: str = "date", reverse: bool = True
    ) -> List[TireInstallation]:
        """
        Installation records ordered for the history table.

        Args:
            sort_by: one of "date", "odometer" or "position"; anything else
                keeps backend order
            reverse: latest install or highest reading first when True
        """
        if sort_by == "date":
            return sorted(self.history, key=lambda h: h.install_date, reverse=reverse)
        elif sort_by == "odometer":
            return sorted(
                self.history, key=lambda h: h.install_odometer or 0, reverse=reverse
            )
        elif sort_by == "position":
            return sorted(
                self.history,
                key=lambda h: (h.position_code, h.install_date),
                reverse=reverse,
            )
        return self.history
