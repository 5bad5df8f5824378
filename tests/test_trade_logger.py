# File: tests/test_trade_logger.py
import json
import logging
from decimal import Decimal

import pytest

from trade_logger import LOGGER_NAME, log_event, log_oracle_failure, log_signal


@pytest.fixture
def records(caplog):
    caplog.set_level(logging.INFO, logger=LOGGER_NAME)
    return caplog


def decoded(caplog):
    return [json.loads(r.getMessage()) for r in caplog.records if r.name == LOGGER_NAME]


def test_log_event_emits_one_json_line(records):
    log_event("FALLBACK_USED", {"symbol": "XAUUSD", "price": Decimal("2350.5")})

    [event] = decoded(records)
    assert event["event_type"] == "FALLBACK_USED"
    assert event["payload"] == {"symbol": "XAUUSD", "price": "2350.5"}
    assert event["timestamp_utc"].endswith("+00:00")


def test_log_signal(records):
    log_signal({"symbol": "EURUSD", "accountSize": 5000})

    [event] = decoded(records)
    assert event["event_type"] == "SIGNAL_REQUESTED"
    assert event["payload"]["accountSize"] == "5000"


def test_oracle_failure_is_a_warning(records):
    log_oracle_failure("rate limited", "generate-signal")

    [record] = [r for r in records.records if r.name == LOGGER_NAME]
    assert record.levelno == logging.WARNING
    assert json.loads(record.getMessage())["payload"] == {"endpoint": "generate-signal", "reason": "rate limited"}


def test_bad_payload_never_raises(records):
    log_event("BROKEN", None)

    [record] = [r for r in records.records if r.name == LOGGER_NAME]
    assert record.levelno == logging.ERROR
    assert "BROKEN" in record.getMessage()
