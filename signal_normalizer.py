# file: signal_normalizer.py
import asyncio
import math
from string import ascii_uppercase
from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional, Tuple

import httpx
import numpy as np

from errors import OracleUnavailable
from market_data import mock_reference_price
from models import AGGRESSIVE_RISK_PCT, ProposedTrade
from signal_parser import (
    ParseFailure,
    ParsedTrade,
    ParseResult,
    parse_trade_content,
    parse_variations_content,
)
from trade_logger import log_event, log_oracle_failure

# Fractional distance from entry for heuristic levels.
STOP_OFFSET_PCT = 0.01
TP1_OFFSET_PCT = 0.02
TP2_OFFSET_PCT = 0.03

# Fallback variants widen their levels from 1x to this multiple of the base offsets.
MAX_VARIANT_SCALE = 2.0

DEFAULT_COMMENT = (
    "Heuristic setup built around the current reference price. "
    "Not financial advice: size the position for the stop and accept the loss if it is hit."
)
AGGRESSIVE_NOTE = "Risk above 3% per trade is aggressive."

ContentFetcher = Callable[[], Awaitable[str]]

ABSORBED_ERRORS = (OracleUnavailable, httpx.HTTPError, asyncio.TimeoutError)


# --- Parsers: return None when the value is unusable ---

def parse_price(value: Any) -> Optional[float]:
    """Strict finite positive number. Numeric strings are accepted, booleans are not."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def _parse_side(value: Any) -> Optional[str]:
    return value if value in ("buy", "sell") else None


def _parse_order_type(value: Any) -> Optional[str]:
    return value if value in ("market", "limit") else None


def _parse_label(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def offset_levels(entry: float, side: str, scale: float = 1.0) -> Tuple[float, float, float]:
    """Stop, TP1 and TP2 at fixed fractions of entry on the correct sides for `side`."""
    sign = 1.0 if side == "buy" else -1.0
    stop = entry * (1 - sign * STOP_OFFSET_PCT * scale)
    tp1 = entry * (1 + sign * TP1_OFFSET_PCT * scale)
    tp2 = entry * (1 + sign * TP2_OFFSET_PCT * scale)
    return stop, tp1, tp2


class Coercion(NamedTuple):
    parser: Callable[[Any], Any]
    default: Callable[[Dict[str, Any]], Any]


# Applied in order; defaults may read fields coerced before them.
FIELD_COERCIONS: Dict[str, Coercion] = {
    "side": Coercion(_parse_side, lambda ctx: "buy"),
    "order_type": Coercion(_parse_order_type, lambda ctx: "market"),
    "entry_price": Coercion(parse_price, lambda ctx: ctx["reference_price"]),
    "stop_loss": Coercion(parse_price, lambda ctx: offset_levels(ctx["entry_price"], ctx["side"], ctx["scale"])[0]),
    "take_profit1": Coercion(parse_price, lambda ctx: offset_levels(ctx["entry_price"], ctx["side"], ctx["scale"])[1]),
    "take_profit2": Coercion(parse_price, lambda ctx: offset_levels(ctx["entry_price"], ctx["side"], ctx["scale"])[2]),
    "time_frame": Coercion(_parse_label, lambda ctx: ctx["default_time_frame"]),
    "comment": Coercion(_parse_label, lambda ctx: DEFAULT_COMMENT),
}


def coerce_fields(raw_fields: Dict[str, Any], context: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    """Runs every field through FIELD_COERCIONS. Returns the values and the names that fell back to defaults."""
    ctx = dict(context)
    defaulted = []
    for name, coercion in FIELD_COERCIONS.items():
        value = coercion.parser(raw_fields.get(name))
        if value is None:
            value = coercion.default(ctx)
            defaulted.append(name)
        ctx[name] = value
    return {name: ctx[name] for name in FIELD_COERCIONS}, defaulted


def is_ordered(side: str, entry: float, stop: float, tp1: float, tp2: float) -> bool:
    if not all(math.isfinite(p) for p in (entry, stop, tp1, tp2)):
        return False
    if side == "buy":
        return stop < entry < tp1 < tp2
    return stop > entry > tp1 > tp2


def _offsets_usable(entry: float, side: str, scale: float) -> bool:
    """False when offsets overflow to inf or collapse onto entry (extreme or subnormal prices)."""
    return is_ordered(side, entry, *offset_levels(entry, side, scale))


def _with_risk_note(comment: str, risk_percent: float) -> str:
    if risk_percent > AGGRESSIVE_RISK_PCT and "aggressive" not in comment.lower():
        return f"{comment} {AGGRESSIVE_NOTE}"
    return comment


def _reference(symbol: str, reference_price: Any, scale: float = 1.0) -> float:
    """Reference price to build levels around; the static mock price when offsets would not be ordered."""
    price = parse_price(reference_price)
    if price is None or not all(_offsets_usable(price, side, scale) for side in ("buy", "sell")):
        price = mock_reference_price(symbol)
        log_event("REFERENCE_REPLACED", {"symbol": symbol, "requested": reference_price, "used": price})
    return price


def fallback_trade(
    symbol: str,
    reference_price: float,
    risk_percent: float,
    *,
    side: str = "buy",
    time_frame: str = "M15",
    scale: float = 1.0,
) -> ProposedTrade:
    """Heuristic trade at the reference price, used whenever the oracle gives nothing usable."""
    entry = _reference(symbol, reference_price, scale)
    stop, tp1, tp2 = offset_levels(entry, side, scale)
    return ProposedTrade(
        symbol=symbol.upper(),
        side=side,
        order_type="market",
        entry_price=entry,
        stop_loss=stop,
        take_profit1=tp1,
        take_profit2=tp2,
        time_frame=time_frame,
        comment=_with_risk_note(DEFAULT_COMMENT, risk_percent),
        origin="fallback",
    )


def normalize(
    raw: Optional[ParseResult],
    symbol: str,
    account_size: float,
    risk_percent: float,
    *,
    reference_price: float,
    force_time_frame: Optional[str] = None,
    default_time_frame: str = "M15",
    fallback_side: str = "buy",
    scale: float = 1.0,
) -> ProposedTrade:
    """
    Turns an untrusted proposal into a usable, internally consistent trade.
    Never raises: a missing or failed proposal becomes the heuristic fallback.
    """
    time_frame = force_time_frame or default_time_frame

    if not isinstance(raw, ParsedTrade):
        reason = raw.reason if isinstance(raw, ParseFailure) else "no proposal"
        log_event("FALLBACK_USED", {"symbol": symbol, "reason": reason})
        return fallback_trade(
            symbol, reference_price, risk_percent,
            side=fallback_side, time_frame=time_frame, scale=scale,
        )

    context = {
        "reference_price": _reference(symbol, reference_price, scale),
        "default_time_frame": default_time_frame,
        "scale": scale,
    }
    values, defaulted = coerce_fields(raw.fields, context)
    if defaulted:
        log_event("FIELDS_DEFAULTED", {"symbol": symbol, "fields": ",".join(defaulted)})

    repaired = False
    if not is_ordered(values["side"], values["entry_price"], values["stop_loss"],
                      values["take_profit1"], values["take_profit2"]):
        log_event("ORDERING_REPAIRED", {
            "symbol": symbol, "side": values["side"], "entry": values["entry_price"],
            "stop": values["stop_loss"], "tp1": values["take_profit1"], "tp2": values["take_profit2"],
        })
        values["stop_loss"], values["take_profit1"], values["take_profit2"] = offset_levels(
            values["entry_price"], values["side"], scale
        )
        repaired = True
        if not is_ordered(values["side"], values["entry_price"], values["stop_loss"],
                          values["take_profit1"], values["take_profit2"]):
            log_event("FALLBACK_USED", {"symbol": symbol, "reason": "levels not representable",
                                        "entry": values["entry_price"]})
            return fallback_trade(
                symbol, reference_price, risk_percent,
                side=values["side"], time_frame=force_time_frame or values["time_frame"], scale=scale,
            )

    oracle_risk = parse_price(raw.risk_amount)
    expected_risk = account_size * risk_percent / 100
    if oracle_risk is not None and not math.isclose(oracle_risk, expected_risk, rel_tol=1e-6):
        # The recomputed amount is authoritative; the oracle's value is only reported.
        log_event("ORACLE_RISK_MISMATCH", {"symbol": symbol, "oracle": oracle_risk, "recomputed": expected_risk})

    return ProposedTrade(
        symbol=symbol.upper(),
        side=values["side"],
        order_type=values["order_type"],
        entry_price=values["entry_price"],
        stop_loss=values["stop_loss"],
        take_profit1=values["take_profit1"],
        take_profit2=values["take_profit2"],
        time_frame=force_time_frame or values["time_frame"],
        comment=_with_risk_note(values["comment"], risk_percent),
        origin="oracle",
        repaired=repaired,
    )


async def acquire_trade(
    fetch_content: ContentFetcher,
    symbol: str,
    account_size: float,
    risk_percent: float,
    *,
    reference_price: float,
    force_time_frame: Optional[str] = None,
    default_time_frame: str = "M15",
    endpoint: str = "generate-signal",
) -> ProposedTrade:
    """Asks the oracle once; any transport or parse problem degrades to the fallback trade."""
    try:
        content = await fetch_content()
    except ABSORBED_ERRORS as e:
        log_oracle_failure(str(e) or type(e).__name__, endpoint)
        raw: ParseResult = ParseFailure(str(e) or type(e).__name__)
    else:
        raw = parse_trade_content(content)

    return normalize(
        raw, symbol, account_size, risk_percent,
        reference_price=reference_price,
        force_time_frame=force_time_frame,
        default_time_frame=default_time_frame,
    )


def variant_label(index: int) -> str:
    return f"Setup {ascii_uppercase[index % len(ascii_uppercase)]}"


async def acquire_variations(
    fetch_content: ContentFetcher,
    count: int,
    symbol: str,
    account_size: float,
    risk_percent: float,
    *,
    reference_price: float,
    default_time_frame: str = "H1",
    endpoint: str = "generate-signal-variants",
) -> List[Tuple[str, ProposedTrade]]:
    """
    Returns exactly `count` labelled trades. Oracle variations are normalized
    one by one; missing or broken ones are replaced by fallback setups that
    alternate side and widen their levels.
    """
    try:
        content = await fetch_content()
    except ABSORBED_ERRORS as e:
        log_oracle_failure(str(e) or type(e).__name__, endpoint)
        parsed: List[ParseResult] = []
    else:
        result = parse_variations_content(content)
        parsed = [] if isinstance(result, ParseFailure) else result

    scales = np.linspace(1.0, MAX_VARIANT_SCALE, count) if count > 1 else np.array([1.0])
    variations = []
    for index in range(count):
        raw = parsed[index] if index < len(parsed) else None
        trade = normalize(
            raw, symbol, account_size, risk_percent,
            reference_price=reference_price,
            default_time_frame=default_time_frame,
            fallback_side="buy" if index % 2 == 0 else "sell",
            scale=float(scales[index]),
        )
        label = raw.label if isinstance(raw, ParsedTrade) and raw.label else variant_label(index)
        variations.append((label, trade))
    return variations
