# file: signal_parser.py
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from trade_logger import log_event

# Canonical field -> keys the oracle is known to use for it, in preference order.
FIELD_KEYS = {
    "side": ("side", "direction"),
    "order_type": ("entryType", "orderType", "entry_type", "order_type"),
    "entry_price": ("entryPrice", "entry", "entry_price"),
    "stop_loss": ("stopLoss", "stop_loss", "sl"),
    "take_profit1": ("takeProfit1", "tp1", "take_profit1"),
    "take_profit2": ("takeProfit2", "tp2", "take_profit2"),
    "time_frame": ("timeFrame", "timeframe", "time_frame"),
    "comment": ("comment", "notes"),
}

REQUIRED_PRICE_FIELDS = ("entry_price", "stop_loss", "take_profit1", "take_profit2")


@dataclass(frozen=True)
class ParsedTrade:
    """Oracle output that has the right shape. Values are still untrusted."""
    fields: Dict[str, Any]
    risk_amount: Any = None
    label: Optional[str] = None


@dataclass(frozen=True)
class ParseFailure:
    reason: str
    details: Dict[str, Any] = field(default_factory=dict)


ParseResult = Union[ParsedTrade, ParseFailure]


def extract_json(raw_text: str) -> Optional[Any]:
    """Decodes JSON from model output, tolerating ```json fenced blocks."""
    if not raw_text or not isinstance(raw_text, str):
        return None

    text = raw_text.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def _pick(obj: dict, keys) -> Any:
    for key in keys:
        if obj.get(key) is not None:
            return obj[key]
    return None


def parse_trade_object(obj: Any, risk: Any = None, label: Optional[str] = None) -> ParseResult:
    if not isinstance(obj, dict):
        return ParseFailure("trade is not an object")

    fields = {name: _pick(obj, keys) for name, keys in FIELD_KEYS.items()}
    missing = [name for name in REQUIRED_PRICE_FIELDS if fields[name] is None]
    if missing:
        return ParseFailure("missing required price fields", {"missing": missing})

    risk_amount = risk.get("riskAmount") if isinstance(risk, dict) else None
    return ParsedTrade(fields=fields, risk_amount=risk_amount, label=label)


def parse_trade_content(content: str) -> ParseResult:
    """
    Parses a single trade idea. Accepts the {"signal": {...}, "risk": {...}}
    envelope or a bare object carrying the price fields.
    """
    data = extract_json(content)
    if not isinstance(data, dict):
        log_event("ORACLE_PARSE_FAILED", {"reason": "not a JSON object"})
        return ParseFailure("content is not a JSON object")

    trade = data.get("signal", data)
    result = parse_trade_object(trade, risk=data.get("risk"))
    if isinstance(result, ParseFailure):
        log_event("ORACLE_PARSE_FAILED", {"reason": result.reason, **result.details})
    return result


def parse_variations_content(content: str) -> Union[List[ParseResult], ParseFailure]:
    """Parses {"variations": [{"label", "signal", "risk"}, ...]} item by item."""
    data = extract_json(content)
    if not isinstance(data, dict) or not isinstance(data.get("variations"), list):
        log_event("ORACLE_PARSE_FAILED", {"reason": "no variations array"})
        return ParseFailure("content has no variations array")

    results: List[ParseResult] = []
    for item in data["variations"]:
        if not isinstance(item, dict):
            results.append(ParseFailure("variation is not an object"))
            continue
        label = item.get("label") if isinstance(item.get("label"), str) else None
        results.append(parse_trade_object(item.get("signal", item), risk=item.get("risk"), label=label))
    return results
