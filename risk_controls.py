# file: risk_controls.py
import math
from functools import wraps
from typing import Any, List, Tuple

import numpy as np
from fastapi import HTTPException

from errors import InvalidRequest
from models import AGGRESSIVE_RISK_PCT, RiskInputs
from trade_logger import log_event

MIN_VARIANT_RISK_PCT = 0.1
MAX_VARIANT_RISK_PCT = 5.0
DEFAULT_VARIATIONS = 2
MAX_VARIATIONS = 3

INVALID_INPUT_MESSAGE = "Missing or invalid symbol, accountSize, or tradeRiskPercent."


def _finite(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _require_basics(symbol: str, account_size: float, risk_percent: float) -> str:
    clean = (symbol or "").strip().upper()
    if not clean or not _finite(account_size) or not _finite(risk_percent):
        raise InvalidRequest(INVALID_INPUT_MESSAGE)
    if account_size <= 0:
        raise InvalidRequest("accountSize must be a positive number.")
    return clean


def validate_direct_request(symbol: str, account_size: float, risk_percent: float) -> Tuple[str, RiskInputs]:
    """Single-signal endpoints reject risk outside (0, 100] instead of clamping it."""
    clean = _require_basics(symbol, account_size, risk_percent)
    if not 0 < risk_percent <= 100:
        raise InvalidRequest("tradeRiskPercent must be greater than 0 and at most 100.")
    return clean, RiskInputs(account_size=account_size, risk_percent=risk_percent)


def clamp_variations(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return DEFAULT_VARIATIONS
    try:
        count = float(value)
    except (TypeError, ValueError):
        return DEFAULT_VARIATIONS
    if not math.isfinite(count) or count < 1:
        return DEFAULT_VARIATIONS
    return int(min(count, MAX_VARIATIONS))


def validate_variants_request(
    symbol: str, account_size: float, risk_percent: float, num_variations: Any
) -> Tuple[str, RiskInputs, int]:
    """Variant generation clamps risk into [0.1, 5] and the count into [1, 3]."""
    clean = _require_basics(symbol, account_size, risk_percent)
    clamped = float(np.clip(risk_percent, MIN_VARIANT_RISK_PCT, MAX_VARIANT_RISK_PCT))
    if clamped != risk_percent:
        log_event("RISK_CLAMPED", {"symbol": clean, "requested": risk_percent, "used": clamped})
    inputs = RiskInputs(account_size=account_size, risk_percent=clamped)
    return clean, inputs, clamp_variations(num_variations)


def risk_warnings(risk_percent: float) -> List[str]:
    warnings = []
    if risk_percent > AGGRESSIVE_RISK_PCT:
        warnings.append(
            f"Risking {risk_percent:g}% per trade is aggressive; 1-2% is a common ceiling."
        )
    return warnings


def reject_invalid_requests(func):
    """Turns InvalidRequest raised anywhere in the handler into a 400 before any calculation leaks out."""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except InvalidRequest as e:
            log_event("INVALID_REQUEST", {"endpoint": func.__name__, "reason": str(e)})
            raise HTTPException(status_code=400, detail=str(e))
    return wrapper
