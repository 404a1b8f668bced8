# File: src/smartpark/domain/models.py
"""
Domain Models for the SmartPark parking management system

This module contains:
1. Value Objects: Money and RegistrationNumber (immutable, validated)
2. Enums: VehicleClass with its hourly rate table, TokenStatus
3. Entities: Vehicle, ParkingSlot, ParkingFloor and Token
4. FloorRegistry: the static physical layout in priority order

Slot occupancy is the source of truth for who is parked where. Mutating
methods on slots and tokens are only called from inside the parking
service's critical section.
"""

from dataclasses import dataclass
from typing import Optional, List, Dict, Any, Iterable, Iterator, Tuple
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
import re
import uuid

from .exceptions import (
    ValidationError, InvalidRegistration, InvalidIdentifier, DuplicateSlot, DuplicateFloor,
    TokenAlreadyUsed, SlotStateError
)


# ============================================================================
# VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)
class Money:
    """
    Value Object: Monetary amount with currency
    Fees are whole rupees but kept as Decimal for safe arithmetic
    """
    amount: Decimal
    currency: str = "INR"

    SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€"}

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        if self.amount < Decimal('0'):
            raise ValueError("Money amount cannot be negative")
        if len(self.currency) != 3:
            raise ValueError(f"Currency must be 3-letter code: {self.currency}")

    def __add__(self, other: 'Money') -> 'Money':
        if self.currency != other.currency:
            raise ValueError(f"Cannot add {self.currency} to {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, multiplier: int) -> 'Money':
        if multiplier < 0:
            raise ValueError("Multiplier cannot be negative")
        return Money(self.amount * Decimal(multiplier), self.currency)

    def format(self) -> str:
        """Format money for display, e.g. ₹60.00"""
        symbol = self.SYMBOLS.get(self.currency, f"{self.currency} ")
        return f"{symbol}{self.amount:.2f}"

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": str(self.amount), "currency": self.currency}

    def __str__(self) -> str:
        return self.format()


_ALNUM = re.compile(r'[A-Za-z0-9]')
_WHITESPACE = re.compile(r'\s+')


@dataclass(frozen=True)
class RegistrationNumber:
    """
    Value Object: Vehicle registration number (e.g. "KA01AB1234")

    Stored trimmed and upper-cased. Must hold at least MIN_ALNUM_CHARS
    alphanumeric characters once whitespace is removed.
    """
    value: str

    MIN_ALNUM_CHARS = 6

    def __post_init__(self):
        raw = self.value
        if raw is None or not isinstance(raw, str) or not raw.strip():
            raise InvalidRegistration(raw, "Registration number cannot be empty")

        cleaned = _WHITESPACE.sub("", raw)
        alnum_count = len(_ALNUM.findall(cleaned))
        if alnum_count == 0:
            raise InvalidRegistration(raw, "Registration number must contain alphanumeric characters")
        if alnum_count < self.MIN_ALNUM_CHARS:
            raise InvalidRegistration(
                raw, f"Registration number must have at least {self.MIN_ALNUM_CHARS} alphanumeric characters"
            )

        object.__setattr__(self, 'value', raw.strip().upper())

    @staticmethod
    def normalize(raw: str) -> str:
        """Normalize a lookup key the same way stored registrations are"""
        return (raw or "").strip().upper()

    def __str__(self) -> str:
        return self.value


# ============================================================================
# ENUMS FOR DOMAIN TYPES
# ============================================================================

class VehicleClass(Enum):
    """
    Closed set of vehicle classes
    Each class has a fixed hourly rate and is compatible only with slots of the same class
    """
    TWO_WHEELER = "TWO_WHEELER"
    FOUR_WHEELER = "FOUR_WHEELER"
    HEAVY_VEHICLE = "HEAVY_VEHICLE"

    @property
    def hourly_rate(self) -> int:
        """Hourly rate in rupees"""
        return _HOURLY_RATES[self]

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: Any) -> 'VehicleClass':
        """
        Accept an enum member, its value/name in any case, a display name
        or the menu choice used by the front ends ("1", "2", "3")
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        if text in _MENU_CHOICES:
            return _MENU_CHOICES[text]
        key = text.upper().replace("-", "_").replace(" ", "_")
        try:
            return cls(key)
        except ValueError:
            pass
        for member in cls:
            if member.display_name.upper() == text.upper():
                return member
        raise ValidationError(f"Unknown vehicle class: {value!r}")

    def __str__(self) -> str:
        return self.value


_HOURLY_RATES = {
    VehicleClass.TWO_WHEELER: 10,
    VehicleClass.FOUR_WHEELER: 20,
    VehicleClass.HEAVY_VEHICLE: 30,
}

_DISPLAY_NAMES = {
    VehicleClass.TWO_WHEELER: "Two Wheeler",
    VehicleClass.FOUR_WHEELER: "Four Wheeler",
    VehicleClass.HEAVY_VEHICLE: "Heavy Vehicle",
}

_MENU_CHOICES = {
    "1": VehicleClass.TWO_WHEELER,
    "2": VehicleClass.FOUR_WHEELER,
    "3": VehicleClass.HEAVY_VEHICLE,
}


class TokenStatus(Enum):
    """Token lifecycle: ACTIVE until the vehicle exits, then CLOSED for good"""
    ACTIVE = "active"
    CLOSED = "closed"


# ============================================================================
# DOMAIN ENTITIES
# ============================================================================

class Vehicle:
    """
    Entity: A vehicle identified by its registration number
    Two vehicles with the same registration are the same vehicle.
    """

    def __init__(
        self,
        registration: str,
        vehicle_class: VehicleClass,
        owner_name: Optional[str] = None,
        contact_number: Optional[str] = None
    ):
        if isinstance(registration, RegistrationNumber):
            self._registration = registration
        else:
            self._registration = RegistrationNumber(registration)
        self._vehicle_class = VehicleClass.parse(vehicle_class)
        self.owner_name = owner_name
        self.contact_number = contact_number

    @property
    def registration(self) -> str:
        return self._registration.value

    @property
    def vehicle_class(self) -> VehicleClass:
        return self._vehicle_class

    @property
    def hourly_rate(self) -> int:
        return self._vehicle_class.hourly_rate

    def to_dict(self) -> Dict[str, Any]:
        return {
            "registration": self.registration,
            "vehicle_class": self.vehicle_class.value,
            "hourly_rate": self.hourly_rate,
            "owner_name": self.owner_name,
            "contact_number": self.contact_number,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vehicle):
            return NotImplemented
        return self.registration == other.registration

    def __hash__(self) -> int:
        return hash(self.registration)

    def __repr__(self) -> str:
        return f"Vehicle(registration={self.registration!r}, vehicle_class={self.vehicle_class.value})"

    def __str__(self) -> str:
        owner = self.owner_name or "N/A"
        return f"{self.vehicle_class.value} [Reg: {self.registration}, Owner: {owner}]"


def _require_identifier(value: Any, label: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidIdentifier(f"{label} cannot be empty")
    return str(value).strip()


class ParkingSlot:
    """
    Entity: Individual parking space
    The compatible class is fixed at creation; the slot holds at most one vehicle.
    """

    def __init__(self, slot_id: str, compatible_class: VehicleClass):
        self._slot_id = _require_identifier(slot_id, "Slot ID")
        self._compatible_class = VehicleClass.parse(compatible_class)
        self._occupant: Optional[Vehicle] = None

    @property
    def slot_id(self) -> str:
        return self._slot_id

    @property
    def compatible_class(self) -> VehicleClass:
        return self._compatible_class

    @property
    def occupant(self) -> Optional[Vehicle]:
        return self._occupant

    @property
    def is_occupied(self) -> bool:
        return self._occupant is not None

    def accepts(self, vehicle_class: VehicleClass) -> bool:
        """Free and compatible with the given class"""
        return self._occupant is None and self._compatible_class is vehicle_class

    def occupy(self, vehicle: Vehicle) -> None:
        """
        Park a vehicle in this slot
        Raises: SlotStateError if occupied or the class does not match
        """
        if self._occupant is not None:
            raise SlotStateError(f"Slot {self._slot_id} is already occupied")
        if vehicle.vehicle_class is not self._compatible_class:
            raise SlotStateError(
                f"Vehicle type {vehicle.vehicle_class} not compatible with slot "
                f"{self._slot_id} ({self._compatible_class})"
            )
        self._occupant = vehicle

    def vacate(self) -> Vehicle:
        """
        Free the slot
        Returns: the vehicle that was parked
        """
        if self._occupant is None:
            raise SlotStateError(f"Slot {self._slot_id} is already free")
        vehicle, self._occupant = self._occupant, None
        return vehicle

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParkingSlot):
            return NotImplemented
        return self._slot_id == other._slot_id

    def __hash__(self) -> int:
        return hash(self._slot_id)

    def __repr__(self) -> str:
        return f"ParkingSlot(slot_id={self._slot_id!r}, compatible_class={self._compatible_class.value})"

    def __str__(self) -> str:
        occupied = f"yes ({self._occupant.registration})" if self._occupant else "no"
        return f"Slot[{self._slot_id}, type={self._compatible_class}, occupied={occupied}]"


class ParkingFloor:
    """
    Entity: A floor holding an ordered, append-only sequence of slots
    Insertion order models distance from the entrance.
    """

    def __init__(self, floor_id: str, slots: Optional[Iterable[ParkingSlot]] = None):
        self._floor_id = _require_identifier(floor_id, "Floor ID")
        self._slots: List[ParkingSlot] = []
        self._slot_ids = set()
        for slot in slots or ():
            self.add_slot(slot)

    @property
    def floor_id(self) -> str:
        return self._floor_id

    @property
    def slots(self) -> Tuple[ParkingSlot, ...]:
        return tuple(self._slots)

    def add_slot(self, slot: ParkingSlot) -> None:
        """Append a slot; raises DuplicateSlot if the id is already on this floor"""
        if slot is None:
            raise InvalidIdentifier("Slot cannot be None")
        if slot.slot_id in self._slot_ids:
            raise DuplicateSlot(slot.slot_id, self._floor_id)
        self._slots.append(slot)
        self._slot_ids.add(slot.slot_id)

    def has_slot(self, slot_id: str) -> bool:
        return slot_id in self._slot_ids

    def find_available_slot(self, vehicle_class: VehicleClass) -> Optional[ParkingSlot]:
        """First free compatible slot in insertion order, or None"""
        for slot in self._slots:
            if slot.accepts(vehicle_class):
                return slot
        return None

    def count_available(self) -> int:
        return sum(1 for slot in self._slots if not slot.is_occupied)

    def count_occupied(self) -> int:
        return sum(1 for slot in self._slots if slot.is_occupied)

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[ParkingSlot]:
        return iter(tuple(self._slots))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParkingFloor):
            return NotImplemented
        return self._floor_id == other._floor_id

    def __hash__(self) -> int:
        return hash(self._floor_id)

    def __str__(self) -> str:
        return f"Floor {self._floor_id}: {self.count_occupied()}/{len(self._slots)} occupied"


class FloorRegistry:
    """
    The physical layout: floors in externally supplied priority order
    Slot ids are unique across the whole registry.
    """

    def __init__(self, floors: Optional[Iterable[ParkingFloor]] = None):
        self._floors: List[ParkingFloor] = []
        self._slot_floor: Dict[str, str] = {}
        for floor in floors or ():
            self.add_floor(floor)

    @property
    def floors(self) -> Tuple[ParkingFloor, ...]:
        return tuple(self._floors)

    def add_floor(self, floor: ParkingFloor) -> None:
        """Append a floor at the lowest priority"""
        if any(existing.floor_id == floor.floor_id for existing in self._floors):
            raise DuplicateFloor(floor.floor_id)
        for slot in floor.slots:
            if slot.slot_id in self._slot_floor:
                raise DuplicateSlot(slot.slot_id, self._slot_floor[slot.slot_id])
        self._floors.append(floor)
        for slot in floor.slots:
            self._slot_floor[slot.slot_id] = floor.floor_id

    def add_slot(self, floor_id: str, slot: ParkingSlot) -> None:
        """Append a slot to a registered floor, keeping slot ids globally unique"""
        floor = self.get_floor(floor_id)
        if slot.slot_id in self._slot_floor:
            raise DuplicateSlot(slot.slot_id, self._slot_floor[slot.slot_id])
        floor.add_slot(slot)
        self._slot_floor[slot.slot_id] = floor.floor_id

    def get_floor(self, floor_id: str) -> ParkingFloor:
        for floor in self._floors:
            if floor.floor_id == floor_id:
                return floor
        raise KeyError(f"Unknown floor: {floor_id}")

    def find_slot(self, slot_id: str) -> Optional[ParkingSlot]:
        """Locate a slot by id across all floors"""
        for floor in self._floors:
            for slot in floor.slots:
                if slot.slot_id == slot_id:
                    return slot
        return None

    def iter_slots(self) -> Iterator[ParkingSlot]:
        for floor in self._floors:
            yield from floor.slots

    def __len__(self) -> int:
        return len(self._floors)

    def __iter__(self) -> Iterator[ParkingFloor]:
        return iter(tuple(self._floors))


class Token:
    """
    Entity: Parking token issued when a vehicle is allocated a slot

    The entry time is fixed at creation. The exit time can be recorded
    exactly once, which closes the token.
    """

    def __init__(
        self,
        slot_id: str,
        registration: str,
        vehicle_class: VehicleClass,
        entry_time: datetime,
        token_id: Optional[str] = None
    ):
        self._token_id = token_id or str(uuid.uuid4())
        self._slot_id = _require_identifier(slot_id, "Slot ID")
        self._registration = _require_identifier(registration, "Vehicle registration")
        self._vehicle_class = VehicleClass.parse(vehicle_class)
        self._entry_time = entry_time
        self._exit_time: Optional[datetime] = None

    @property
    def token_id(self) -> str:
        return self._token_id

    @property
    def slot_id(self) -> str:
        return self._slot_id

    @property
    def registration(self) -> str:
        return self._registration

    @property
    def vehicle_class(self) -> VehicleClass:
        return self._vehicle_class

    @property
    def entry_time(self) -> datetime:
        return self._entry_time

    @property
    def exit_time(self) -> Optional[datetime]:
        return self._exit_time

    @property
    def status(self) -> TokenStatus:
        return TokenStatus.ACTIVE if self._exit_time is None else TokenStatus.CLOSED

    @property
    def is_active(self) -> bool:
        return self._exit_time is None

    def record_exit(self, exit_time: datetime) -> None:
        """
        Close the token
        Raises: TokenAlreadyUsed if an exit was already recorded
        """
        if self._exit_time is not None:
            raise TokenAlreadyUsed(self._token_id)
        self._exit_time = exit_time

    def parked_duration(self) -> Optional[timedelta]:
        if self._exit_time is None:
            return None
        return self._exit_time - self._entry_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token_id": self._token_id,
            "slot_id": self._slot_id,
            "registration": self._registration,
            "vehicle_class": self._vehicle_class.value,
            "entry_time": self._entry_time.isoformat(),
            "exit_time": self._exit_time.isoformat() if self._exit_time else None,
            "status": self.status.value,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Token):
            return NotImplemented
        return self._token_id == other._token_id

    def __hash__(self) -> int:
        return hash(self._token_id)

    def __str__(self) -> str:
        fmt = "%d-%b-%Y %I:%M %p"
        exit_str = self._exit_time.strftime(fmt) if self._exit_time else "N/A"
        return (
            f"Token[id={self._token_id}, slot={self._slot_id}, vehicle={self._registration}, "
            f"entry={self._entry_time.strftime(fmt)}, exit={exit_str}]"
        )
