# File: src/smartpark/domain/exceptions.py
"""
Domain exceptions for the SmartPark parking management system

Every error raised by the core derives from ParkingError, grouped by kind:
1. ValidationError - bad input rejected before it reaches shared state
2. AllocationError - a vehicle could not be given a slot
3. TokenError - unknown or already used parking tokens
4. VehicleLookupError - a searched vehicle is not parked
5. IntervalError - impossible time intervals in fee calculation
6. ConsistencyError - broken internal invariants (programming errors)
"""

from typing import Any


class ParkingError(Exception):
    """Base exception for all parking errors"""
    pass


# ============================================================================
# VALIDATION
# ============================================================================

class ValidationError(ParkingError, ValueError):
    """Exception for invalid input rejected at construction time"""
    pass


class InvalidRegistration(ValidationError):
    """Registration number failed validation"""

    def __init__(self, registration: Any, reason: str):
        self.registration = registration
        self.reason = reason
        super().__init__(f"{reason}: {registration!r}")


class InvalidIdentifier(ValidationError):
    """Floor or slot identifier is empty"""
    pass


class DuplicateSlot(ValidationError):
    """A slot with the same id is already registered"""

    def __init__(self, slot_id: str, floor_id: str):
        self.slot_id = slot_id
        self.floor_id = floor_id
        super().__init__(f"Slot {slot_id} already exists on floor {floor_id}")


class DuplicateFloor(ValidationError):
    """A floor with the same id is already registered"""

    def __init__(self, floor_id: str):
        self.floor_id = floor_id
        super().__init__(f"Floor {floor_id} is already registered")


# ============================================================================
# ALLOCATION
# ============================================================================

class AllocationError(ParkingError):
    """Exception for failed slot allocation; no state was changed"""
    pass


class NoSlotAvailable(AllocationError):
    """No free slot is compatible with the requested vehicle class"""

    def __init__(self, vehicle_class: Any):
        self.vehicle_class = vehicle_class
        super().__init__(f"No available parking slots for vehicle type: {vehicle_class}")


class AlreadyParked(AllocationError):
    """The vehicle already occupies a slot"""

    def __init__(self, registration: str):
        self.registration = registration
        super().__init__(f"Vehicle with registration {registration} is already parked")


# ============================================================================
# TOKENS
# ============================================================================

class TokenError(ParkingError):
    """Exception for token lifecycle errors; no state was changed"""

    def __init__(self, token_id: str, message: str):
        self.token_id = token_id
        super().__init__(message)


class TokenNotFound(TokenError):
    """Token id was never issued"""

    def __init__(self, token_id: str):
        super().__init__(token_id, f"Invalid or expired token: {token_id}")


class TokenAlreadyUsed(TokenError):
    """Token has already been used to exit"""

    def __init__(self, token_id: str):
        super().__init__(token_id, f"Token {token_id} has already been used to exit")


# ============================================================================
# LOOKUP
# ============================================================================

class VehicleLookupError(ParkingError, LookupError):
    """Exception for read-only lookups that found nothing"""
    pass


class VehicleNotFound(VehicleLookupError):
    """No parked vehicle has the given registration"""

    def __init__(self, registration: str):
        self.registration = registration
        super().__init__(f"Vehicle not found with registration number: {registration}")


# ============================================================================
# FEE INTERVALS
# ============================================================================

class IntervalError(ParkingError, ValueError):
    """Exception for invalid time intervals"""
    pass


class InvalidInterval(IntervalError):
    """Exit time precedes entry time"""

    def __init__(self, entry_time: Any, exit_time: Any):
        self.entry_time = entry_time
        self.exit_time = exit_time
        super().__init__(
            f"Exit time cannot be before entry time (entry={entry_time}, exit={exit_time})"
        )


# ============================================================================
# INTERNAL CONSISTENCY
# ============================================================================

class ConsistencyError(ParkingError, RuntimeError):
    """
    A core invariant was violated.
    Indicates a bug, not a user-correctable condition.
    """
    pass


class RegistryConsistencyError(ConsistencyError):
    """A token references a slot id absent from the registry"""

    def __init__(self, slot_id: str, token_id: str):
        self.slot_id = slot_id
        self.token_id = token_id
        super().__init__(f"Parking slot {slot_id} referenced by token {token_id} not found")


class SlotStateError(ConsistencyError):
    """A slot was occupied twice, freed while empty or given an incompatible vehicle"""
    pass
