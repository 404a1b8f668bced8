# File: src/smartpark/application/parking_service.py
"""
Parking Management Application Service

This module implements the stateful orchestrator of the parking core. It owns
the active-token index and the vehicle-to-slot index and composes the slot
allocator and the fee calculator.

Responsibilities:
1. Park a vehicle: allocate a slot, occupy it, issue a token
2. Exit a vehicle: close its token, free the slot, price the stay
3. Search for a parked vehicle and preview fees without side effects
4. Provide consistent read-only snapshots for the front ends

Concurrency:
Every operation that reads or writes slot occupancy or the indexes runs under
one mutex. The allocator search and the occupy step form a single critical
section, so two callers can never be handed the same slot. Events (and the
audit write behind them) are published after the lock is released.
"""

from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple, Union
import logging
import threading
import uuid

from ..domain.models import (
    Vehicle, VehicleClass, ParkingSlot, ParkingFloor, FloorRegistry,
    RegistrationNumber, Token, Money
)
from ..domain.strategies import AllocationStrategy, PricingStrategy, SlotAllocator, FeeCalculator
from ..domain.exceptions import (
    ValidationError, AlreadyParked, TokenNotFound, TokenAlreadyUsed,
    VehicleNotFound, RegistryConsistencyError, SlotStateError, ConsistencyError
)
from ..infrastructure.messaging import EventBus, EventType, DomainEvent
from .dtos import FloorStatusDTO, ParkingSummaryDTO, TokenDTO


def _new_token_id() -> str:
    return str(uuid.uuid4())


class ParkingService:
    """
    Main application service for parking management

    State (guarded by self._lock):
    - _active_tokens: token id -> active Token
    - _vehicle_slots: registration -> occupied ParkingSlot
    - _retired_tokens: ids of tokens that have already been used to exit

    Both indexes mirror slot occupancy: a registration is indexed exactly
    when some slot holds that vehicle and its token is still active.
    """

    def __init__(
        self,
        floors: Union[FloorRegistry, Iterable[ParkingFloor]],
        allocator: Optional[AllocationStrategy] = None,
        fee_calculator: Optional[PricingStrategy] = None,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = datetime.now,
        token_id_factory: Callable[[], str] = _new_token_id
    ):
        """
        Initialize the parking service

        Args:
            floors: the layout in priority order; treated as immutable input
            allocator: slot search strategy (defaults to SlotAllocator)
            fee_calculator: pricing strategy (defaults to FeeCalculator)
            event_bus: receives VEHICLE_PARKED / VEHICLE_EXITED events
            clock: source of entry and exit timestamps
            token_id_factory: source of globally unique token ids
        """
        self.logger = logging.getLogger(self.__class__.__name__)

        self._registry = floors if isinstance(floors, FloorRegistry) else FloorRegistry(floors)
        if len(self._registry) == 0:
            raise ValidationError("At least one floor must be provided")

        self._allocator = allocator or SlotAllocator()
        self._fee_calculator = fee_calculator or FeeCalculator()
        self._event_bus = event_bus
        self._clock = clock
        self._token_id_factory = token_id_factory

        self._lock = threading.Lock()
        self._active_tokens: Dict[str, Token] = {}
        self._vehicle_slots: Dict[str, ParkingSlot] = {}
        # never pruned: a second exit must still raise TokenAlreadyUsed
        self._retired_tokens: Set[str] = set()

        total = sum(len(floor) for floor in self._registry)
        self.logger.info(f"ParkingService initialized with {len(self._registry)} floors and {total} slots")

    # ------------------------------------------------------------------
    # Use cases
    # ------------------------------------------------------------------

    def park_vehicle(self, vehicle: Vehicle) -> Token:
        """
        Park a vehicle and issue a token

        Raises:
            AlreadyParked: the registration already occupies a slot
            NoSlotAvailable: no free slot matches the vehicle class
        """
        with self._lock:
            registration = vehicle.registration
            if registration in self._vehicle_slots:
                raise AlreadyParked(registration)

            slot = self._allocator.find_best_slot(vehicle.vehicle_class, self._registry.floors)
            token = Token(
                slot_id=slot.slot_id,
                registration=registration,
                vehicle_class=vehicle.vehicle_class,
                entry_time=self._clock(),
                token_id=self._token_id_factory(),
            )
            if token.token_id in self._active_tokens or token.token_id in self._retired_tokens:
                raise ConsistencyError(f"Token id {token.token_id} was issued twice")

            slot.occupy(vehicle)
            self._active_tokens[token.token_id] = token
            self._vehicle_slots[registration] = slot

        self.logger.info(f"Parked {registration} in slot {token.slot_id} (token {token.token_id})")
        self._publish(EventType.VEHICLE_PARKED, {
            "token_id": token.token_id,
            "slot_id": token.slot_id,
            "registration": registration,
            "vehicle_class": token.vehicle_class.value,
            "entry_time": token.entry_time.isoformat(),
        })
        return token

    def exit_vehicle(self, token_id: str) -> Money:
        """
        Close a token, free its slot and return the parking fee

        Raises:
            TokenNotFound: the id was never issued
            TokenAlreadyUsed: the token was already used to exit
            RegistryConsistencyError: the token's slot is missing from the registry
        """
        with self._lock:
            token = self._get_active_token(token_id)
            slot = self._resolve_slot(token)
            vehicle = slot.occupant

            # price first so a bad interval leaves everything untouched
            exit_time = self._clock()
            fee = self._fee_calculator.calculate_fee(vehicle.hourly_rate, token.entry_time, exit_time)

            token.record_exit(exit_time)
            slot.vacate()
            del self._vehicle_slots[vehicle.registration]
            del self._active_tokens[token.token_id]
            self._retired_tokens.add(token.token_id)

        self.logger.info(f"{vehicle.registration} left slot {slot.slot_id}; fee {fee.format()}")
        self._publish(EventType.VEHICLE_EXITED, {
            "token_id": token.token_id,
            "slot_id": slot.slot_id,
            "registration": vehicle.registration,
            "entry_time": token.entry_time.isoformat(),
            "exit_time": exit_time.isoformat(),
            "fee": fee.to_dict(),
        })
        return fee

    def search_vehicle(self, registration: str) -> ParkingSlot:
        """
        Find the slot a vehicle is parked in

        Raises: VehicleNotFound
        """
        key = RegistrationNumber.normalize(registration)
        with self._lock:
            slot = self._vehicle_slots.get(key)
        if slot is None:
            raise VehicleNotFound(key)
        return slot

    def calculate_fee_for_token(
        self,
        token_id: str,
        entry_time: Optional[datetime] = None,
        exit_time: Optional[datetime] = None
    ) -> Money:
        """
        Quote the fee for an active token without changing any state

        Defaults to the token's own entry time and the current time.
        Raises: TokenNotFound, TokenAlreadyUsed, InvalidInterval
        """
        with self._lock:
            token = self._get_active_token(token_id)
            rate = token.vehicle_class.hourly_rate
            start = entry_time if entry_time is not None else token.entry_time
            end = exit_time if exit_time is not None else self._clock()
        return self._fee_calculator.calculate_fee(rate, start, end)

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    @property
    def floors(self) -> Tuple[ParkingFloor, ...]:
        """Floors in priority order"""
        return self._registry.floors

    def get_token(self, token_id: str) -> TokenDTO:
        with self._lock:
            return TokenDTO.from_token(self._get_active_token(token_id))

    def get_active_tokens(self) -> List[TokenDTO]:
        with self._lock:
            return [TokenDTO.from_token(token) for token in self._active_tokens.values()]

    def is_parked(self, registration: str) -> bool:
        with self._lock:
            return RegistrationNumber.normalize(registration) in self._vehicle_slots

    def get_floor_statuses(self) -> List[FloorStatusDTO]:
        with self._lock:
            return [FloorStatusDTO.from_floor(floor) for floor in self._registry]

    def get_summary(self) -> ParkingSummaryDTO:
        with self._lock:
            floors = [FloorStatusDTO.from_floor(floor) for floor in self._registry]
            active = len(self._active_tokens)

        by_class: Dict[str, Dict[str, int]] = {
            vc.value: {"total": 0, "occupied": 0, "available": 0} for vc in VehicleClass
        }
        for floor in floors:
            for slot in floor.slots:
                counts = by_class[slot.vehicle_class]
                counts["total"] += 1
                counts["occupied" if slot.is_occupied else "available"] += 1

        return ParkingSummaryDTO(
            floors=floors,
            active_tokens=active,
            by_vehicle_class=by_class,
            timestamp=self._clock(),
        )

    # ------------------------------------------------------------------
    # Internals (call with self._lock held)
    # ------------------------------------------------------------------

    def _get_active_token(self, token_id: str) -> Token:
        token = self._active_tokens.get(token_id)
        if token is not None:
            return token
        if token_id in self._retired_tokens:
            raise TokenAlreadyUsed(token_id)
        raise TokenNotFound(token_id)

    def _resolve_slot(self, token: Token) -> ParkingSlot:
        slot = self._registry.find_slot(token.slot_id)
        if slot is None:
            self.logger.error(f"Token {token.token_id} references unknown slot {token.slot_id}")
            raise RegistryConsistencyError(token.slot_id, token.token_id)
        occupant = slot.occupant
        if occupant is None or occupant.registration != token.registration:
            self.logger.error(f"Slot {slot.slot_id} does not hold {token.registration} for token {token.token_id}")
            raise SlotStateError(f"Slot {slot.slot_id} does not hold vehicle {token.registration}")
        return slot

    def _publish(self, event_type: EventType, data: dict) -> None:
        if self._event_bus is None:
            return
        self._event_bus.publish(DomainEvent(event_type=event_type, data=data))
