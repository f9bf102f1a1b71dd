"""Tire and inventory records."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Tire:
    id: int
    serial_number: str
    size: str
    brand: str = ""
    pattern: Optional[str] = None
    type: str = "NEW"
    status: str = "IN_STORE"
    position: Optional[str] = None
    purchase_date: Optional[str] = None
    purchase_cost: Optional[float] = None
    purchase_supplier: Optional[str] = None
    depth_remaining: Optional[float] = None


@dataclass
class InventoryBySize:
    """Stock counts for one tire size."""

    size: str
    new_count: int = 0
    retreaded_count: int = 0
    used_count: int = 0
    retread_candidates_count: int = 0

    @property
    def total(self) -> int:
        return self.new_count + self.retreaded_count + self.used_count


@dataclass
class InventoryStats:
    """Dashboard counters for the whole tire inventory."""

    in_store: int = 0
    on_vehicle: int = 0
    used_store: int = 0
    awaiting_retread: int = 0
    at_retreader: int = 0
    disposed: int = 0
    new_tires: int = 0
    retreaded_tires: int = 0
    total_value: float = 0.0

    @property
    def total_tires(self) -> int:
        return (
            self.in_store
            + self.on_vehicle
            + self.used_store
            + self.awaiting_retread
            + self.at_retreader
        )
