# File: src/smartpark/application/dtos.py
"""
Data Transfer Objects (DTOs) for the SmartPark parking management system

DTOs are immutable snapshots handed to the presentation layer. They are
taken under the parking service lock, so a snapshot never mixes state from
before and after a concurrent park or exit.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, List, Dict, Any

from ..domain.models import ParkingSlot, ParkingFloor, Token


@dataclass(frozen=True)
class SlotDTO:
    """Display snapshot of one slot"""
    slot_id: str
    vehicle_class: str
    is_occupied: bool
    registration: Optional[str] = None

    @classmethod
    def from_slot(cls, slot: ParkingSlot) -> 'SlotDTO':
        occupant = slot.occupant
        return cls(
            slot_id=slot.slot_id,
            vehicle_class=slot.compatible_class.value,
            is_occupied=occupant is not None,
            registration=occupant.registration if occupant else None,
        )


@dataclass(frozen=True)
class FloorStatusDTO:
    """Display snapshot of one floor"""
    floor_id: str
    total_slots: int
    occupied_slots: int
    available_slots: int
    slots: List[SlotDTO] = field(default_factory=list)

    @property
    def occupancy_rate(self) -> float:
        if self.total_slots == 0:
            return 0.0
        return self.occupied_slots / self.total_slots

    @classmethod
    def from_floor(cls, floor: ParkingFloor) -> 'FloorStatusDTO':
        slots = [SlotDTO.from_slot(slot) for slot in floor.slots]
        occupied = sum(1 for slot in slots if slot.is_occupied)
        return cls(
            floor_id=floor.floor_id,
            total_slots=len(slots),
            occupied_slots=occupied,
            available_slots=len(slots) - occupied,
            slots=slots,
        )

    def summary_line(self) -> str:
        return f"{self.floor_id}: {self.occupied_slots}/{self.total_slots} occupied"


@dataclass(frozen=True)
class ParkingSummaryDTO:
    """Facility-wide occupancy"""
    floors: List[FloorStatusDTO]
    active_tokens: int
    by_vehicle_class: Dict[str, Dict[str, int]]
    timestamp: datetime

    @property
    def total_slots(self) -> int:
        return sum(floor.total_slots for floor in self.floors)

    @property
    def occupied_slots(self) -> int:
        return sum(floor.occupied_slots for floor in self.floors)

    @property
    def available_slots(self) -> int:
        return self.total_slots - self.occupied_slots

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass(frozen=True)
class TokenDTO:
    """Snapshot of an issued token"""
    token_id: str
    slot_id: str
    registration: str
    vehicle_class: str
    entry_time: datetime
    exit_time: Optional[datetime] = None
    status: str = "active"

    @classmethod
    def from_token(cls, token: Token) -> 'TokenDTO':
        return cls(
            token_id=token.token_id,
            slot_id=token.slot_id,
            registration=token.registration,
            vehicle_class=token.vehicle_class.value,
            entry_time=token.entry_time,
            exit_time=token.exit_time,
            status=token.status.value,
        )
