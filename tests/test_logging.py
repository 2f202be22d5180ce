"""
Tests for structured logging and redaction.
"""

import json
import logging
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from monitoring import LoggingContext
from monitoring.logging import (
    ConsoleFormatter,
    JSONFormatter,
    get_request_context,
    redact_sensitive_data,
    redact_string,
)


def make_record(msg, level=logging.INFO, **extra):
    record = logging.LogRecord("ledger_service", level, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRedaction:
    def test_ssn_and_ein(self):
        assert redact_string("payee ssn 123-45-6789") == "payee ssn ***-**-6789"
        assert redact_string("ein 12-3456789") == "ein **-***6789"

    def test_email(self):
        assert redact_string("send to jane@example.com") == "send to [...]@example.com"

    def test_iban(self):
        assert redact_string("iban GB82WEST12345698765432") == "iban GB**...5432"

    def test_key_value_secret(self):
        assert "hunter2" not in redact_string("password=hunter2")

    def test_payee_fields(self):
        data = {"name": "Jane", "tax_id": "12-3456789", "details": {"routing_number": "021000021"}}
        result = redact_sensitive_data(data)
        assert result["name"] == "Jane"
        assert result["tax_id"] == "[REDACTED]"
        assert result["details"]["routing_number"] == "[REDACTED]"

    def test_identifiers_untouched(self):
        assert redact_string("work USABC2400001 under contract_1a2b") == "work USABC2400001 under contract_1a2b"


class TestJSONFormatter:
    def test_extra_fields_and_redaction(self):
        record = make_record("Party added", party_id="party_1", tax_id="12-3456789")
        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "Party added"
        assert entry["level"] == "INFO"
        assert entry["party_id"] == "party_1"
        assert entry["tax_id"] == "[REDACTED]"
        assert "location" not in entry

    def test_warning_includes_location(self):
        entry = json.loads(JSONFormatter().format(make_record("Finalize blocked", logging.WARNING)))
        assert entry["location"]["line"] == 10

    def test_context_included(self):
        with LoggingContext(contract_id="contract_1", operation="update_share"):
            entry = json.loads(JSONFormatter().format(make_record("Share updated")))
        assert entry["context"] == {"contract_id": "contract_1", "operation": "update_share"}

    def test_console_format(self):
        line = ConsoleFormatter().format(make_record("Work finalized", work_id="work_1"))
        assert "Work finalized" in line
        assert "work_id=work_1" in line


class TestLoggingContext:
    def test_nested_context_restored(self):
        with LoggingContext(request_id="abc"):
            with LoggingContext(contract_id="contract_1"):
                assert get_request_context() == {"request_id": "abc", "contract_id": "contract_1"}
            assert get_request_context() == {"request_id": "abc"}
        assert get_request_context() == {}
