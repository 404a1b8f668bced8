# File: src/smartpark/presentation/controller.py
"""
Application controller shared by the graphical front end

Every action returns a (success, message) tuple so views only decide how to
show the message; parking adds the issued token id as a third item. Domain
errors become failed results. Consistency errors are logged and re-raised
because they indicate a bug.
"""

from typing import Callable, List, Optional, Tuple
import logging

from ..application.parking_service import ParkingService
from ..application.dtos import FloorStatusDTO
from ..domain.exceptions import ParkingError, ConsistencyError
from ..domain.models import VehicleClass
from ..infrastructure.factories import VehicleFactory, ParkingServiceFactory


class ParkingAppController:
    """Main application controller"""

    VEHICLE_CLASS_CHOICES = [vc.display_name for vc in VehicleClass]

    def __init__(self, parking_service: Optional[ParkingService] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.parking_service = parking_service or ParkingServiceFactory.create_default_service()

    def park_vehicle(self, registration: str, vehicle_class: str,
                     owner_name: Optional[str] = None) -> Tuple[bool, str, Optional[str]]:
        """
        Park a vehicle

        Returns: (success, message, token_id); token_id is None on failure.
        Each call carries its own token id, so concurrent parks never mix them up.
        """
        if not registration or not registration.strip():
            return False, "Registration number is required", None

        issued: List[str] = []

        def park() -> str:
            vehicle = VehicleFactory.create(registration, vehicle_class, owner_name=owner_name)
            token = self.parking_service.park_vehicle(vehicle)
            issued.append(token.token_id)
            return f"Vehicle parked in slot {token.slot_id}.\nToken: {token.token_id}"

        success, message = self._execute(park)
        return success, message, issued[0] if issued else None

    def exit_vehicle(self, token_id: str) -> Tuple[bool, str]:
        """Exit a vehicle by token"""
        if not token_id or not token_id.strip():
            return False, "Token ID is required"

        def leave() -> str:
            fee = self.parking_service.exit_vehicle(token_id.strip())
            return f"Vehicle exited. Parking fee: {fee.format()}"

        return self._execute(leave)

    def search_vehicle(self, registration: str) -> Tuple[bool, str]:
        if not registration or not registration.strip():
            return False, "Registration number is required"

        def search() -> str:
            slot = self.parking_service.search_vehicle(registration)
            return f"Vehicle found in slot: {slot.slot_id}"

        return self._execute(search)

    def preview_fee(self, token_id: str) -> Tuple[bool, str]:
        if not token_id or not token_id.strip():
            return False, "Token ID is required"

        def preview() -> str:
            fee = self.parking_service.calculate_fee_for_token(token_id.strip())
            return f"Fee if the vehicle exits now: {fee.format()}"

        return self._execute(preview)

    def floor_statuses(self) -> List[FloorStatusDTO]:
        return self.parking_service.get_floor_statuses()

    def status_text(self) -> str:
        summary = self.parking_service.get_summary()
        return (f"Occupied {summary.occupied_slots}/{summary.total_slots} | "
                f"Active tokens: {summary.active_tokens}")

    def _execute(self, action: Callable[[], str]) -> Tuple[bool, str]:
        try:
            return True, action()
        except ConsistencyError:
            self.logger.error("Internal consistency error", exc_info=True)
            raise
        except ParkingError as e:
            self.logger.warning(f"Request rejected: {e}")
            return False, str(e)
