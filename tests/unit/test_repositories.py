#!/usr/bin/env python3
"""
Token Audit Trail Unit Tests

Tests for the file, SQLAlchemy and in-memory audit logs, the background
writer and the event handler that feeds it.
"""

import unittest
import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import Mock

from sqlalchemy.exc import IntegrityError

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from smartpark.infrastructure.repositories import (
    TokenRecord, InMemoryTokenAuditLog, FileTokenAuditLog, SQLAlchemyTokenAuditLog,
    AsyncAuditWriter, TokenAuditHandler, TokenAuditLog
)
from smartpark.infrastructure.messaging import DomainEvent, EventType


class TestTokenRecord(unittest.TestCase):

    def test_line_format(self):
        record = TokenRecord("t-1", "G1-TW-1", "KA01AB1234")
        self.assertEqual(record.to_line(), "t-1,G1-TW-1,KA01AB1234")
        self.assertEqual(TokenRecord.from_line("t-1,G1-TW-1,KA01AB1234\n"), record)


class TestFileTokenAuditLog(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.temp_dir.name, "audit", "tokens.txt")
        self.log = FileTokenAuditLog(self.path)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_appends_one_line_per_record(self):
        self.log.append(TokenRecord("t-1", "G1-TW-1", "KA01AB1234"))
        self.log.append(TokenRecord("t-2", "G1-FW-6", "KA01CD5678"))

        with open(self.path, encoding="utf-8") as fh:
            lines = fh.read().splitlines()
        self.assertEqual(lines, ["t-1,G1-TW-1,KA01AB1234", "t-2,G1-FW-6,KA01CD5678"])
        self.assertEqual([r.token_id for r in self.log.records()], ["t-1", "t-2"])

    def test_never_truncates_existing_file(self):
        self.log.append(TokenRecord("t-1", "G1-TW-1", "KA01AB1234"))
        FileTokenAuditLog(self.path).append(TokenRecord("t-2", "G1-TW-2", "KA01AB9999"))
        self.assertEqual(len(self.log.records()), 2)

    def test_missing_file_has_no_records(self):
        self.assertEqual(FileTokenAuditLog(os.path.join(self.temp_dir.name, "none.txt")).records(), [])


class TestSQLAlchemyTokenAuditLog(unittest.TestCase):

    def setUp(self):
        self.log = SQLAlchemyTokenAuditLog("sqlite://")

    def tearDown(self):
        self.log.close()

    def test_append_and_read_back(self):
        self.log.append(TokenRecord("t-1", "G1-TW-1", "KA01AB1234"))
        self.log.append(TokenRecord("t-2", "F1-HV-13", "KA01HV0001"))
        self.assertEqual(self.log.records(), [
            TokenRecord("t-1", "G1-TW-1", "KA01AB1234"),
            TokenRecord("t-2", "F1-HV-13", "KA01HV0001"),
        ])

    def test_duplicate_token_id_rejected(self):
        self.log.append(TokenRecord("t-1", "G1-TW-1", "KA01AB1234"))
        with self.assertRaises(IntegrityError):
            self.log.append(TokenRecord("t-1", "G1-TW-2", "KA01AB9999"))
        self.assertEqual(len(self.log.records()), 1)


class TestAsyncAuditWriter(unittest.TestCase):

    def test_records_written_in_order(self):
        audit_log = InMemoryTokenAuditLog()
        writer = AsyncAuditWriter(audit_log)
        for i in range(20):
            writer.submit(TokenRecord(f"t-{i}", f"G1-TW-{i}", f"KA01AB{i:04d}"))
        writer.flush(timeout=5)
        self.assertEqual([r.token_id for r in audit_log.records()], [f"t-{i}" for i in range(20)])
        writer.close()

    def test_failed_write_is_logged(self):
        audit_log = Mock(spec=TokenAuditLog)
        audit_log.append.side_effect = OSError("disk full")
        writer = AsyncAuditWriter(audit_log)

        with self.assertLogs("AsyncAuditWriter", level="ERROR") as logs:
            future = writer.submit(TokenRecord("t-1", "G1-TW-1", "KA01AB1234"))
            writer.flush(timeout=5)
            writer.close()
        self.assertIsInstance(future.exception(), OSError)
        self.assertIn("t-1", logs.output[0])

    def test_submit_after_close_is_dropped(self):
        audit_log = InMemoryTokenAuditLog()
        writer = AsyncAuditWriter(audit_log)
        writer.close()
        with self.assertLogs("AsyncAuditWriter", level="WARNING"):
            self.assertIsNone(writer.submit(TokenRecord("t-1", "G1-TW-1", "KA01AB1234")))
        self.assertEqual(audit_log.records(), [])


class TestTokenAuditHandler(unittest.TestCase):

    def setUp(self):
        self.audit_log = InMemoryTokenAuditLog()
        self.writer = AsyncAuditWriter(self.audit_log)
        self.handler = TokenAuditHandler(self.writer)

    def tearDown(self):
        self.writer.close()

    def test_records_parked_events(self):
        event = DomainEvent(event_type=EventType.VEHICLE_PARKED, data={
            "token_id": "t-1", "slot_id": "G1-TW-1", "registration": "KA01AB1234", "vehicle_class": "TWO_WHEELER",
        })
        self.assertTrue(self.handler.can_handle(event))
        self.handler.handle(event)
        self.writer.flush(timeout=5)
        self.assertEqual(self.audit_log.records(), [TokenRecord("t-1", "G1-TW-1", "KA01AB1234")])

    def test_ignores_exit_events(self):
        event = DomainEvent(event_type=EventType.VEHICLE_EXITED, data={"token_id": "t-1"})
        self.assertFalse(self.handler.can_handle(event))


if __name__ == "__main__":
    unittest.main()
