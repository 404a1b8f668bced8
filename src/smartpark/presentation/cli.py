# File: src/smartpark/presentation/cli.py
"""
Command-line front end for the SmartPark parking management system

A menu loop around ParkingService. All formatting lives here; the service
only raises domain errors, which are turned into "Error: ..." lines.
"""

from typing import Callable, List, Optional
import logging

from ..application.parking_service import ParkingService
from ..application.dtos import FloorStatusDTO
from ..domain.exceptions import ParkingError, ConsistencyError
from ..infrastructure.factories import VehicleFactory


MENU = """
=== SMART PARKING MANAGEMENT SYSTEM ===
1. Park Vehicle
2. Exit Vehicle
3. View Available Slots
4. Search Vehicle
5. View Parking Summary
6. Preview Fee
7. Exit"""


def format_slot_grid(floors: List[FloorStatusDTO]) -> str:
    """One line per floor, [X] for occupied and [ ] for free slots"""
    lines = ["--- Parking Slots Status ---"]
    for floor in floors:
        lines.append(f"{floor.floor_id}: ")
        lines.append("".join("[X]" if slot.is_occupied else "[ ]" for slot in floor.slots))
    return "\n".join(lines)


def format_summary(floors: List[FloorStatusDTO]) -> str:
    lines = ["---- Parking Summary ----"]
    lines.extend(floor.summary_line() for floor in floors)
    return "\n".join(lines)


class ParkingCLI:
    """Interactive console menu"""

    def __init__(
        self,
        parking_service: ParkingService,
        input_func: Optional[Callable[[str], str]] = None,
        output: Optional[Callable[[str], None]] = None
    ):
        self.parking_service = parking_service
        self._input = input_func or input
        self._output = output or print
        self.logger = logging.getLogger(self.__class__.__name__)

        self._handlers = {
            "1": self.handle_park_vehicle,
            "2": self.handle_exit_vehicle,
            "3": self.handle_view_available_slots,
            "4": self.handle_search_vehicle,
            "5": self.handle_view_parking_summary,
            "6": self.handle_preview_fee,
        }

    def start(self) -> None:
        """Run the menu loop until the user quits or input ends"""
        while True:
            self._output(MENU)
            try:
                choice = self._input("Enter choice: ").strip()
            except EOFError:
                break

            if choice == "7":
                self._output("Exiting system. Goodbye!")
                break
            handler = self._handlers.get(choice)
            if handler is None:
                self.print_error("Invalid choice. Please enter 1-7.")
                continue
            try:
                handler()
            except EOFError:
                break

    # ------------------------------------------------------------------
    # Menu actions
    # ------------------------------------------------------------------

    def handle_park_vehicle(self) -> None:
        registration = self._input("Enter registration number: ").strip()
        if not registration:
            self.print_error("Registration number cannot be empty")
            return

        type_choice = self._input(
            "Enter vehicle type (1=Two Wheeler, 2=Four Wheeler, 3=Heavy Vehicle): "
        ).strip()
        if type_choice not in ("1", "2", "3"):
            self.print_error("Invalid vehicle type choice")
            return

        owner_name = self._input("Owner name (optional): ").strip()

        def park():
            vehicle = VehicleFactory.create(registration, type_choice, owner_name=owner_name)
            token = self.parking_service.park_vehicle(vehicle)
            self._output(f"Vehicle parked. Token ID: {token.token_id}")
            self._output(f"Slot allocated: {token.slot_id}")

        self._run(park)

    def handle_exit_vehicle(self) -> None:
        token_id = self._input("Enter token ID: ").strip()
        if not token_id:
            self.print_error("Token ID cannot be empty")
            return

        def leave():
            fee = self.parking_service.exit_vehicle(token_id)
            self._output(f"Vehicle exited. Parking fee: {fee.format()}")

        self._run(leave)

    def handle_view_available_slots(self) -> None:
        self._output(format_slot_grid(self.parking_service.get_floor_statuses()))

    def handle_search_vehicle(self) -> None:
        registration = self._input("Enter registration number to search: ").strip()
        if not registration:
            self.print_error("Registration number cannot be empty")
            return

        def search():
            slot = self.parking_service.search_vehicle(registration)
            self._output(f"Vehicle found in slot: {slot.slot_id}")

        self._run(search)

    def handle_view_parking_summary(self) -> None:
        self._output(format_summary(self.parking_service.get_floor_statuses()))

    def handle_preview_fee(self) -> None:
        token_id = self._input("Enter token ID: ").strip()
        if not token_id:
            self.print_error("Token ID cannot be empty")
            return

        def preview():
            fee = self.parking_service.calculate_fee_for_token(token_id)
            self._output(f"Fee if you exit now: {fee.format()}")

        self._run(preview)

    # ------------------------------------------------------------------

    def print_error(self, message: str) -> None:
        self._output(f"Error: {message}")

    def _run(self, action: Callable[[], None]) -> Optional[bool]:
        try:
            action()
            return True
        except ConsistencyError:
            self.logger.error("Internal consistency error", exc_info=True)
            raise
        except ParkingError as e:
            self.logger.warning(str(e))
            self.print_error(str(e))
            return False
