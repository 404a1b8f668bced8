# File: src/smartpark/presentation/parking_gui.py
"""
SmartPark Parking Management GUI

Tkinter front end:
1. One row of slot widgets per floor, coloured by class and occupancy
2. A control panel to park, exit, search and preview fees
3. A status bar with facility-wide occupancy

Each button press runs its controller call on a worker thread, so several
requests can reach the parking service at once. Results come back to the
Tk main loop through a queue.
"""

import tkinter as tk
from tkinter import ttk, messagebox
from typing import Callable, Dict, Optional, Tuple
import logging
import queue
import threading

from ..application.dtos import SlotDTO
from .controller import ParkingAppController


class AppConfig:
    """GUI configuration"""
    APP_NAME = "SmartPark - Parking Management System"
    DEFAULT_WIDTH = 1100
    DEFAULT_HEIGHT = 650
    POLL_INTERVAL_MS = 100

    FONTS = {
        "heading": ("Segoe UI", 14, "bold"),
        "body": ("Segoe UI", 10),
        "slot": ("Segoe UI", 8, "bold"),
    }


class SlotWidget(tk.Canvas):
    """Visual representation of a parking slot"""

    COLORS = {
        "occupied": "#dc3545",         # Red
        "TWO_WHEELER": "#28a745",      # Green
        "FOUR_WHEELER": "#17a2b8",     # Blue
        "HEAVY_VEHICLE": "#ffc107",    # Yellow
    }

    def __init__(self, parent, slot: SlotDTO, size: int = 64, **kwargs):
        super().__init__(parent, width=size, height=size, highlightthickness=1,
                         highlightbackground="#dee2e6", **kwargs)
        self.size = size
        self.slot = slot
        self._draw()

    def update_slot(self, slot: SlotDTO) -> None:
        self.slot = slot
        self._draw()

    def _draw(self) -> None:
        self.delete("all")
        color = self.COLORS["occupied"] if self.slot.is_occupied else self.COLORS[self.slot.vehicle_class]
        self.create_rectangle(2, 2, self.size - 2, self.size - 2, fill=color, outline="")
        self.create_text(self.size // 2, self.size // 2 - 8, text=self.slot.slot_id,
                         fill="white" if self.slot.is_occupied else "black", font=AppConfig.FONTS["slot"])
        if self.slot.registration:
            self.create_text(self.size // 2, self.size // 2 + 10, text=self.slot.registration,
                             fill="white", font=AppConfig.FONTS["slot"])


class ControlPanel(ttk.Frame):
    """Form for park / exit / search / preview requests"""

    def __init__(self, parent, app: 'ParkingManagementApp'):
        super().__init__(parent, padding=10)
        self.app = app

        ttk.Label(self, text="Park Vehicle", font=AppConfig.FONTS["heading"]).pack(anchor="w", pady=(0, 10))
        ttk.Label(self, text="Registration *").pack(anchor="w")
        self.registration = ttk.Entry(self)
        self.registration.pack(fill="x", pady=(0, 8))

        ttk.Label(self, text="Vehicle Type *").pack(anchor="w")
        self.vehicle_class = ttk.Combobox(self, values=ParkingAppController.VEHICLE_CLASS_CHOICES, state="readonly")
        self.vehicle_class.set(ParkingAppController.VEHICLE_CLASS_CHOICES[0])
        self.vehicle_class.pack(fill="x", pady=(0, 8))

        ttk.Label(self, text="Owner (optional)").pack(anchor="w")
        self.owner = ttk.Entry(self)
        self.owner.pack(fill="x", pady=(0, 8))

        ttk.Button(self, text="Park", command=self._park).pack(fill="x", pady=(0, 4))
        ttk.Button(self, text="Search", command=self._search).pack(fill="x", pady=(0, 16))

        ttk.Label(self, text="Exit Vehicle", font=AppConfig.FONTS["heading"]).pack(anchor="w", pady=(0, 10))
        ttk.Label(self, text="Token ID *").pack(anchor="w")
        self.token_id = ttk.Entry(self)
        self.token_id.pack(fill="x", pady=(0, 8))
        ttk.Button(self, text="Preview Fee", command=self._preview).pack(fill="x", pady=(0, 4))
        ttk.Button(self, text="Exit", command=self._exit).pack(fill="x")

    def _park(self) -> None:
        registration = self.registration.get()
        vehicle_class = self.vehicle_class.get()
        owner = self.owner.get().strip() or None

        def done(success: bool, message: str, token_id: Optional[str] = None) -> None:
            if success:
                self.registration.delete(0, tk.END)
                self.owner.delete(0, tk.END)
                self.token_id.delete(0, tk.END)
                self.token_id.insert(0, token_id or "")

        self.app.submit(lambda: self.app.controller.park_vehicle(registration, vehicle_class, owner), done)

    def _search(self) -> None:
        registration = self.registration.get()
        self.app.submit(lambda: self.app.controller.search_vehicle(registration))

    def _preview(self) -> None:
        token_id = self.token_id.get()
        self.app.submit(lambda: self.app.controller.preview_fee(token_id))

    def _exit(self) -> None:
        token_id = self.token_id.get()

        def done(success: bool, message: str) -> None:
            if success:
                self.token_id.delete(0, tk.END)

        self.app.submit(lambda: self.app.controller.exit_vehicle(token_id), done)


class ParkingManagementApp:
    """Main application window"""

    def __init__(self, controller: Optional[ParkingAppController] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.controller = controller or ParkingAppController()
        self._results: "queue.Queue[Tuple[tuple, Optional[Callable]]]" = queue.Queue()
        self._slot_widgets: Dict[str, SlotWidget] = {}

        self.root = tk.Tk()
        self.root.title(AppConfig.APP_NAME)
        self.root.geometry(f"{AppConfig.DEFAULT_WIDTH}x{AppConfig.DEFAULT_HEIGHT}")
        self._setup_ui()
        self.refresh()
        self.root.after(AppConfig.POLL_INTERVAL_MS, self._poll_results)

    def _setup_ui(self) -> None:
        self.control_panel = ControlPanel(self.root, self)
        self.control_panel.pack(side="right", fill="y")

        grid_frame = ttk.Frame(self.root, padding=10)
        grid_frame.pack(side="left", fill="both", expand=True)
        for floor in self.controller.floor_statuses():
            floor_frame = ttk.LabelFrame(grid_frame, text=f"Floor {floor.floor_id}", padding=5)
            floor_frame.pack(fill="x", pady=5)
            for index, slot in enumerate(floor.slots):
                widget = SlotWidget(floor_frame, slot)
                widget.grid(row=index // 8, column=index % 8, padx=2, pady=2)
                self._slot_widgets[slot.slot_id] = widget

        self.status_var = tk.StringVar()
        ttk.Label(self.root, textvariable=self.status_var, relief="sunken", anchor="w").pack(side="bottom", fill="x")

    def submit(self, action: Callable[[], tuple], on_done: Optional[Callable[..., None]] = None) -> None:
        """
        Run a controller call on a worker thread

        on_done receives the whole result tuple, starting with (success, message).
        """
        def worker():
            try:
                result = action()
            except Exception as e:
                self.logger.error(f"Unexpected error: {e}", exc_info=True)
                result = (False, f"Unexpected error: {e}")
            self._results.put((result, on_done))

        threading.Thread(target=worker, daemon=True).start()

    def _poll_results(self) -> None:
        try:
            while True:
                result, on_done = self._results.get_nowait()
                success, message = result[0], result[1]
                if success:
                    messagebox.showinfo("Success", message)
                else:
                    messagebox.showerror("Error", message)
                if on_done is not None:
                    on_done(*result)
                self.refresh()
        except queue.Empty:
            pass
        self.root.after(AppConfig.POLL_INTERVAL_MS, self._poll_results)

    def refresh(self) -> None:
        for floor in self.controller.floor_statuses():
            for slot in floor.slots:
                widget = self._slot_widgets.get(slot.slot_id)
                if widget is not None:
                    widget.update_slot(slot)
        self.status_var.set(self.controller.status_text())

    def run(self) -> None:
        self.logger.info("Starting GUI")
        self.root.mainloop()
