# file: trade_logger.py
import json
import logging
from datetime import datetime, timezone

LOGGER_NAME = "signal_desk"

logger = logging.getLogger(LOGGER_NAME)


def configure_logging(level: str = "INFO"):
    """Sets up the root handler once; repeated calls only adjust the level."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))


def log_event(event_type: str, payload: dict, level: int = logging.INFO):
    """
    Single entry point for logging anything that happens while serving a request.
    Emits one JSON line per event through the `signal_desk` logger.

    Args:
        event_type (str): Event name, e.g. 'SIGNAL_REQUESTED', 'FALLBACK_USED'.
        payload (dict): Extra data about the event.
    """
    try:
        # Stringify values so Decimals, pydantic models, exceptions etc. never break serialization.
        serializable_payload = {k: str(v) for k, v in payload.items()}
        record = {
            "timestamp_utc": datetime.now(timezone.utc).isoformat(timespec='microseconds'),
            "event_type": event_type,
            "payload": serializable_payload,
        }
        logger.log(level, json.dumps(record))
    except Exception as e:
        # Logging must never take a request down with it.
        logger.error("Failed to log event '%s': %s", event_type, e)


def log_signal(signal: dict):
    """Helper for logging an incoming signal request."""
    log_event("SIGNAL_REQUESTED", payload=signal)


def log_oracle_failure(reason: str, endpoint: str):
    """Helper for logging an oracle call that fell back to the heuristic."""
    log_event("ORACLE_UNAVAILABLE", {"endpoint": endpoint, "reason": reason}, level=logging.WARNING)
