# File: src/smartpark/domain/strategies.py
"""
Strategy Pattern Implementation for slot allocation and pricing

Key Strategies:
1. Allocation Strategies - which free slot a vehicle receives
2. Pricing Strategies - how a parking interval is turned into a fee

Both strategies are stateless. Pricing is a pure function and safe to call
from any thread. Allocation observes shared slot state, so the caller must
hold the parking service lock across the search and the occupy step.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Union
from datetime import datetime
from decimal import Decimal
import logging

from .models import ParkingFloor, ParkingSlot, VehicleClass, Money
from .exceptions import NoSlotAvailable, InvalidInterval


# ============================================================================
# STRATEGY INTERFACES
# ============================================================================

class AllocationStrategy(ABC):
    """
    Abstract base class for allocation strategies
    Defines the interface for slot search algorithms
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def find_best_slot(
        self,
        vehicle_class: VehicleClass,
        floors: Iterable[ParkingFloor]
    ) -> ParkingSlot:
        """
        Find the slot a vehicle of the given class should receive
        Raises: NoSlotAvailable if none is free
        """
        pass

    def get_strategy_name(self) -> str:
        return self.__class__.__name__.replace("Strategy", "")

    def __str__(self) -> str:
        return f"{self.get_strategy_name()} Strategy"


class PricingStrategy(ABC):
    """
    Abstract base class for pricing strategies
    Defines the interface for fee calculation algorithms
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def calculate_fee(
        self,
        hourly_rate: Union[int, Money],
        entry_time: datetime,
        exit_time: datetime
    ) -> Money:
        """
        Price the interval [entry_time, exit_time] at the given hourly rate
        Raises: InvalidInterval if exit_time precedes entry_time
        """
        pass


# ============================================================================
# ALLOCATION STRATEGIES
# ============================================================================

class SlotAllocator(AllocationStrategy):
    """
    Strategy: Nearest-to-entrance allocation
    - Floors are searched in the order supplied by the caller
    - Within a floor, slots are searched in insertion order
    - The first free, class-compatible slot wins

    Distance from the entrance is modelled purely by insertion order.
    """

    def find_best_slot(
        self,
        vehicle_class: VehicleClass,
        floors: Iterable[ParkingFloor]
    ) -> ParkingSlot:
        for floor in floors:
            slot = floor.find_available_slot(vehicle_class)
            if slot is not None:
                self.logger.debug(f"Selected slot {slot.slot_id} on floor {floor.floor_id} for {vehicle_class}")
                return slot

        self.logger.debug(f"No free slot for {vehicle_class}")
        raise NoSlotAvailable(vehicle_class)


# ============================================================================
# PRICING STRATEGIES
# ============================================================================

class FeeCalculator(PricingStrategy):
    """
    Grace-period pricing
    - Elapsed time is counted in whole minutes
    - The first GRACE_PERIOD_MINUTES are free (never below zero billable minutes)
    - Partial hours are rounded up
    - At least MINIMUM_BILLABLE_HOURS are always charged

    Example: rate 30, 75 minutes parked -> 65 billable minutes -> 2 hours -> 60
    """

    GRACE_PERIOD_MINUTES = 10
    MINIMUM_BILLABLE_HOURS = 1

    def __init__(self, currency: str = "INR"):
        super().__init__()
        self.currency = currency

    def billable_hours(self, entry_time: datetime, exit_time: datetime) -> int:
        if exit_time < entry_time:
            raise InvalidInterval(entry_time, exit_time)

        elapsed_minutes = int((exit_time - entry_time).total_seconds() // 60)
        billable_minutes = max(0, elapsed_minutes - self.GRACE_PERIOD_MINUTES)
        hours = (billable_minutes + 59) // 60
        return max(hours, self.MINIMUM_BILLABLE_HOURS)

    def calculate_fee(
        self,
        hourly_rate: Union[int, Money],
        entry_time: datetime,
        exit_time: datetime
    ) -> Money:
        rate = hourly_rate if isinstance(hourly_rate, Money) else Money(Decimal(hourly_rate), self.currency)
        hours = self.billable_hours(entry_time, exit_time)
        fee = rate * hours
        self.logger.debug(f"{hours}h at {rate.format()}/h -> {fee.format()}")
        return fee
