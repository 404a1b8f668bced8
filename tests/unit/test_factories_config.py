#!/usr/bin/env python3
"""
Factory and Configuration Unit Tests
"""

import unittest
import json
import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from smartpark.config import AppConfig
from smartpark.domain.models import VehicleClass
from smartpark.domain.exceptions import ValidationError, InvalidRegistration, DuplicateSlot
from smartpark.infrastructure.factories import VehicleFactory, FloorLayoutFactory, ParkingServiceFactory
from smartpark.infrastructure.messaging import EventType
from smartpark.infrastructure.repositories import (
    AsyncAuditWriter, FileTokenAuditLog, SQLAlchemyTokenAuditLog, TokenRecord
)


class TestVehicleFactory(unittest.TestCase):

    def test_create_from_menu_choice(self):
        vehicle = VehicleFactory.create("ka01ab1234", "3", owner_name="")
        self.assertIs(vehicle.vehicle_class, VehicleClass.HEAVY_VEHICLE)
        self.assertEqual(vehicle.registration, "KA01AB1234")
        self.assertIsNone(vehicle.owner_name)

    def test_unknown_class_is_validation_error(self):
        with self.assertRaises(ValidationError):
            VehicleFactory.create("KA01AB1234", "9")

    def test_invalid_registration(self):
        with self.assertRaises(InvalidRegistration):
            VehicleFactory.create("AB1", "1")

    def test_create_from_dict(self):
        vehicle = VehicleFactory.create_from_dict({
            "registration": "KA01AB1234",
            "vehicle_class": "FOUR_WHEELER",
            "contact_number": "9876543210",
        })
        self.assertIs(vehicle.vehicle_class, VehicleClass.FOUR_WHEELER)
        self.assertEqual(vehicle.contact_number, "9876543210")


class TestFloorLayoutFactory(unittest.TestCase):

    def test_default_layout(self):
        registry = FloorLayoutFactory.create_default_layout()
        self.assertEqual([f.floor_id for f in registry], ["G1", "F1"])

        ground = registry.get_floor("G1")
        self.assertEqual(len(ground), 15)
        ids = [s.slot_id for s in ground.slots]
        self.assertEqual(ids[0], "G1-TW-1")
        self.assertEqual(ids[5], "G1-FW-6")
        self.assertEqual(ids[-1], "G1-HV-15")
        counts = {vc: sum(1 for s in ground.slots if s.compatible_class is vc) for vc in VehicleClass}
        self.assertEqual(counts, {
            VehicleClass.TWO_WHEELER: 5,
            VehicleClass.FOUR_WHEELER: 7,
            VehicleClass.HEAVY_VEHICLE: 3,
        })

    def test_layout_from_dict(self):
        registry = FloorLayoutFactory.create_from_dict({"floors": [
            {"floor_id": "B1", "slots": [{"vehicle_class": "HEAVY_VEHICLE", "count": 2}]},
        ]})
        self.assertEqual([s.slot_id for s in registry.iter_slots()], ["B1-HV-1", "B1-HV-2"])

    def test_layout_needs_floors(self):
        with self.assertRaises(ValidationError):
            FloorLayoutFactory.create_from_dict({"floors": []})

    def test_negative_count(self):
        with self.assertRaises(ValidationError):
            FloorLayoutFactory.create_from_dict({"floors": [
                {"floor_id": "G1", "slots": [{"vehicle_class": "TWO_WHEELER", "count": -1}]},
            ]})

    def test_overlapping_ranges_are_duplicates(self):
        with self.assertRaises(DuplicateSlot):
            FloorLayoutFactory.create_from_dict({"floors": [
                {"floor_id": "G1", "slots": [
                    {"prefix": "S", "vehicle_class": "TWO_WHEELER", "start": 1, "count": 3},
                    {"prefix": "S", "vehicle_class": "FOUR_WHEELER", "start": 3, "count": 2},
                ]},
            ]})

    def test_layout_from_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = os.path.join(temp_dir, "layout.json")
            with open(path, "w", encoding="utf-8") as fh:
                json.dump(FloorLayoutFactory.default_layout_dict(), fh)
            registry = FloorLayoutFactory.create_from_file(path)
        self.assertEqual(sum(len(f) for f in registry), 30)


class TestAppConfig(unittest.TestCase):

    def test_defaults(self):
        config = AppConfig()
        self.assertEqual(config.audit_file, "tokens.txt")
        self.assertIsNone(config.audit_db_url)
        self.assertIsNone(config.redis_url)
        self.assertEqual(config.log_level, "INFO")

    def test_from_dict_rejects_unknown_keys(self):
        with self.assertRaises(ValueError):
            AppConfig.from_dict({"parking_rate": 10})

    def test_from_env(self):
        config = AppConfig.from_env({
            "SMARTPARK_REDIS_URL": "redis://cache:6379/0",
            "SMARTPARK_AUDIT_FILE": "",
            "UNRELATED": "x",
        })
        self.assertEqual(config.redis_url, "redis://cache:6379/0")
        self.assertIsNone(config.audit_file)

    def test_empty_env_for_required_setting_is_rejected(self):
        for name in ("SMARTPARK_LOG_DIR", "SMARTPARK_LOG_LEVEL", "SMARTPARK_REDIS_CHANNEL"):
            with self.assertRaises(ValueError, msg=name):
                AppConfig.from_env({name: ""})

    def test_empty_env_switches_off_optional_backends(self):
        base = AppConfig(layout_path="layout.json", audit_db_url="sqlite://", redis_url="redis://localhost")
        config = AppConfig.from_env({
            "SMARTPARK_LAYOUT_PATH": "",
            "SMARTPARK_AUDIT_DB_URL": "",
            "SMARTPARK_REDIS_URL": "",
        }, base=base)
        self.assertIsNone(config.layout_path)
        self.assertIsNone(config.audit_db_url)
        self.assertIsNone(config.redis_url)
        self.assertEqual(config.log_dir, "logs")

    def test_precedence(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = os.path.join(temp_dir, "config.json")
            with open(path, "w", encoding="utf-8") as fh:
                json.dump({"log_level": "DEBUG", "audit_file": "from_file.txt"}, fh)
            config = AppConfig.from_file(path)

        config = AppConfig.from_env({"SMARTPARK_AUDIT_FILE": "from_env.txt"}, base=config)
        self.assertEqual(config.log_level, "DEBUG")
        self.assertEqual(config.audit_file, "from_env.txt")

        config = config.with_overrides(audit_file="from_flag.txt", log_level=None)
        self.assertEqual(config.audit_file, "from_flag.txt")
        self.assertEqual(config.log_level, "DEBUG")


class TestParkingServiceFactory(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.temp_dir.cleanup()

    def _close(self, closeables):
        for resource in closeables:
            resource.close()

    def test_no_backends(self):
        service, closeables = ParkingServiceFactory.create_service(AppConfig(audit_file=None))
        self.assertEqual(closeables, [])
        self.assertEqual(len(service.floors), 2)

    def test_audit_database_preferred_over_file(self):
        config = AppConfig(audit_file="tokens.txt", audit_db_url="sqlite://")
        audit_log = ParkingServiceFactory.create_audit_log(config)
        self.assertIsInstance(audit_log, SQLAlchemyTokenAuditLog)
        audit_log.close()

    def test_file_audit_end_to_end(self):
        path = os.path.join(self.temp_dir.name, "tokens.txt")
        service, closeables = ParkingServiceFactory.create_service(AppConfig(audit_file=path))
        try:
            token = service.park_vehicle(VehicleFactory.create("KA01AB1234", "1"))
        finally:
            self._close(closeables)

        self.assertEqual(FileTokenAuditLog(path).records(),
                         [TokenRecord(token.token_id, "G1-TW-1", "KA01AB1234")])

    def test_redis_publisher_subscribed_to_both_events(self):
        config = AppConfig(audit_file=None, redis_url="redis://localhost:6379/0")
        with patch("smartpark.infrastructure.messaging.redis.Redis.from_url") as from_url:
            event_bus, closeables = ParkingServiceFactory.create_event_bus(config)
        from_url.assert_called_once_with("redis://localhost:6379/0")
        self.assertEqual(event_bus.subscriber_count(EventType.VEHICLE_PARKED), 1)
        self.assertEqual(event_bus.subscriber_count(EventType.VEHICLE_EXITED), 1)
        self._close(closeables)

    def test_failed_redis_setup_closes_audit_writer(self):
        config = AppConfig(audit_file=os.path.join(self.temp_dir.name, "t.txt"), redis_url="not-a-url")
        with patch("smartpark.infrastructure.factories.AsyncAuditWriter") as writer_cls, \
                patch("smartpark.infrastructure.factories.RedisEventPublisher",
                      side_effect=ValueError("Redis URL must specify one of the supported schemes")):
            with self.assertLogs("smartpark.infrastructure.factories", level="ERROR"):
                with self.assertRaises(ValueError):
                    ParkingServiceFactory.create_event_bus(config)
        writer_cls.return_value.close.assert_called_once()

    def test_audit_writer_is_closeable(self):
        config = AppConfig(audit_file=os.path.join(self.temp_dir.name, "t.txt"))
        _, closeables = ParkingServiceFactory.create_event_bus(config)
        self.assertEqual(len(closeables), 1)
        self.assertIsInstance(closeables[0], AsyncAuditWriter)
        self._close(closeables)

    def test_layout_path(self):
        path = os.path.join(self.temp_dir.name, "layout.json")
        with open(path, "w", encoding="utf-8") as fh:
            json.dump({"floors": [{"floor_id": "P1", "slots": [{"vehicle_class": "FOUR_WHEELER", "count": 1}]}]}, fh)
        service, closeables = ParkingServiceFactory.create_service(AppConfig(layout_path=path, audit_file=None))
        self.assertEqual([f.floor_id for f in service.floors], ["P1"])
        self._close(closeables)


if __name__ == "__main__":
    unittest.main()
