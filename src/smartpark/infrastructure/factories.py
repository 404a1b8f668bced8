# File: src/smartpark/infrastructure/factories.py
"""
Factory Pattern Implementation for the SmartPark parking management system

This module centralises object creation:
1. VehicleFactory - vehicles from front-end input
2. FloorLayoutFactory - the floor/slot registry from configuration
3. ParkingServiceFactory - a fully wired ParkingService (bootstrap)

The layout is built once, before the service exists, and is never
regenerated afterwards.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
import json
import logging

from ..domain.models import Vehicle, VehicleClass, ParkingSlot, ParkingFloor, FloorRegistry
from ..domain.exceptions import ValidationError
from ..application.parking_service import ParkingService
from ..config import AppConfig
from .messaging import EventBus, EventType, RedisEventPublisher
from .repositories import (
    TokenAuditLog, FileTokenAuditLog, SQLAlchemyTokenAuditLog,
    AsyncAuditWriter, TokenAuditHandler
)


logger = logging.getLogger(__name__)


class VehicleFactory:
    """Factory for creating Vehicle domain objects"""

    @staticmethod
    def create(
        registration: str,
        vehicle_class: Union[VehicleClass, str],
        owner_name: Optional[str] = None,
        contact_number: Optional[str] = None
    ) -> Vehicle:
        """
        vehicle_class accepts an enum member, its name, a display name
        or a menu choice ("1" two wheeler, "2" four wheeler, "3" heavy vehicle)
        """
        return Vehicle(
            registration,
            VehicleClass.parse(vehicle_class),
            owner_name=owner_name or None,
            contact_number=contact_number or None,
        )

    @staticmethod
    def create_from_dict(data: Dict[str, Any]) -> Vehicle:
        return VehicleFactory.create(
            registration=data["registration"],
            vehicle_class=data["vehicle_class"],
            owner_name=data.get("owner_name"),
            contact_number=data.get("contact_number"),
        )


class FloorLayoutFactory:
    """
    Factory for the physical layout

    Layout format:
        {"floors": [{"floor_id": "G1",
                     "slots": [{"prefix": "TW", "vehicle_class": "TWO_WHEELER",
                                "start": 1, "count": 5}]}]}

    Slot ids are "<floor_id>-<prefix>-<n>". Floors keep the listed order.
    """

    # (prefix, class, first number, count) on every default floor
    DEFAULT_SLOT_GROUPS: Sequence[Tuple[str, VehicleClass, int, int]] = (
        ("TW", VehicleClass.TWO_WHEELER, 1, 5),
        ("FW", VehicleClass.FOUR_WHEELER, 6, 7),
        ("HV", VehicleClass.HEAVY_VEHICLE, 13, 3),
    )
    DEFAULT_FLOOR_IDS: Sequence[str] = ("G1", "F1")

    @classmethod
    def create_floor(cls, floor_id: str, slot_groups: Sequence[Dict[str, Any]]) -> ParkingFloor:
        floor = ParkingFloor(floor_id)
        for group in slot_groups:
            vehicle_class = VehicleClass.parse(group["vehicle_class"])
            prefix = group.get("prefix") or _default_prefix(vehicle_class)
            start = int(group.get("start", 1))
            count = int(group["count"])
            if count < 0:
                raise ValidationError(f"Slot count cannot be negative on floor {floor_id}")
            for number in range(start, start + count):
                floor.add_slot(ParkingSlot(f"{floor_id}-{prefix}-{number}", vehicle_class))
        return floor

    @classmethod
    def create_from_dict(cls, data: Dict[str, Any]) -> FloorRegistry:
        floors_data = data.get("floors")
        if not floors_data:
            raise ValidationError("Layout must define at least one floor")
        registry = FloorRegistry()
        for floor_data in floors_data:
            registry.add_floor(cls.create_floor(floor_data["floor_id"], floor_data.get("slots", [])))
        logger.info(f"Built layout with {len(registry)} floors")
        return registry

    @classmethod
    def create_from_file(cls, path: Union[str, Path]) -> FloorRegistry:
        with open(path, "r", encoding="utf-8") as fh:
            return cls.create_from_dict(json.load(fh))

    @classmethod
    def default_layout_dict(cls) -> Dict[str, Any]:
        return {
            "floors": [
                {
                    "floor_id": floor_id,
                    "slots": [
                        {"prefix": prefix, "vehicle_class": vc.value, "start": start, "count": count}
                        for prefix, vc, start, count in cls.DEFAULT_SLOT_GROUPS
                    ],
                }
                for floor_id in cls.DEFAULT_FLOOR_IDS
            ]
        }

    @classmethod
    def create_default_layout(cls) -> FloorRegistry:
        return cls.create_from_dict(cls.default_layout_dict())


def _default_prefix(vehicle_class: VehicleClass) -> str:
    return {
        VehicleClass.TWO_WHEELER: "TW",
        VehicleClass.FOUR_WHEELER: "FW",
        VehicleClass.HEAVY_VEHICLE: "HV",
    }[vehicle_class]


class ParkingServiceFactory:
    """Factory for creating fully wired ParkingService instances"""

    @staticmethod
    def create_audit_log(config: AppConfig) -> Optional[TokenAuditLog]:
        if config.audit_db_url:
            return SQLAlchemyTokenAuditLog(config.audit_db_url)
        if config.audit_file:
            return FileTokenAuditLog(config.audit_file)
        return None

    @staticmethod
    def create_event_bus(config: AppConfig) -> Tuple[EventBus, List[Any]]:
        """
        Returns: (event_bus, closeables) - closeables must be closed on shutdown
        """
        event_bus = EventBus()
        closeables: List[Any] = []

        try:
            audit_log = ParkingServiceFactory.create_audit_log(config)
            if audit_log is not None:
                writer = AsyncAuditWriter(audit_log)
                event_bus.subscribe(EventType.VEHICLE_PARKED, TokenAuditHandler(writer))
                closeables.append(writer)

            if config.redis_url:
                publisher = RedisEventPublisher(config.redis_url, channel=config.redis_channel)
                event_bus.subscribe(EventType.VEHICLE_PARKED, publisher)
                event_bus.subscribe(EventType.VEHICLE_EXITED, publisher)
                closeables.append(publisher)
        except Exception:
            logger.error("Failed to build event backends; closing the ones already created")
            for resource in closeables:
                resource.close()
            raise

        return event_bus, closeables

    @staticmethod
    def create_service(config: Optional[AppConfig] = None) -> Tuple[ParkingService, List[Any]]:
        config = config or AppConfig()
        if config.layout_path:
            registry = FloorLayoutFactory.create_from_file(config.layout_path)
        else:
            registry = FloorLayoutFactory.create_default_layout()
        event_bus, closeables = ParkingServiceFactory.create_event_bus(config)
        return ParkingService(registry, event_bus=event_bus), closeables

    @staticmethod
    def create_default_service() -> ParkingService:
        """In-memory service on the default layout with no audit or redis backends"""
        return ParkingService(FloorLayoutFactory.create_default_layout())
