# file: signal_service.py
from datetime import datetime, timezone
from functools import partial
from typing import Optional, Tuple

from config import Settings
from errors import InvalidRequest
from market_data import PriceCache, PriceQuote, fetch_reference_price
from models import (
    ExplainRequest,
    ExplainResponse,
    FlatSignalRequest,
    FlatSignalResponse,
    ProposedTrade,
    RiskBlock,
    RiskInputs,
    SignalRequest,
    SignalResponse,
    VariantsRequest,
    VariantsResponse,
    Variation,
)
from oracle_client import (
    EXPLAIN_STYLES,
    explain_messages,
    request_completion,
    signal_messages,
    variants_messages,
)
from reward_metrics import compute_derived
from risk_controls import risk_warnings, validate_direct_request, validate_variants_request
from risk_sizer import compute_sizing, round_for_display
from signal_normalizer import ABSORBED_ERRORS, acquire_trade, acquire_variations
from trade_logger import log_event, log_oracle_failure, log_signal

MOVE_STOP_NOTE = "When trade hits TP1, move SL to entry"

FALLBACK_EXPLANATIONS = {
    "brief": (
        "- This is a rule-based setup, not financial advice.\n"
        "- The stop loss defines the whole risk; the position size is derived from it.\n"
        "- TP1 locks in a partial result, TP2 is the stretch target.\n"
        "- Accept the loss if the stop is hit and do not add to a losing position."
    ),
    "detailed": (
        "This setup was built from the current reference price with fixed distances to the stop "
        "and the two targets. The position size is calculated so that hitting the stop costs exactly "
        "the amount you chose to risk, nothing more.\n\n"
        "Treat TP1 as the point to reduce exposure or move the stop to entry, and TP2 as an optional "
        "extension. Markets can gap through levels, so the real loss can exceed the plan. "
        "This is not financial advice; size conservatively and be prepared for the trade to fail."
    ),
    "risk": (
        "Risk management first: the stop loss is fixed before entry and the position size follows "
        "from it, so a loss is capped at the chosen percentage of the account. Keep risk per trade "
        "small, avoid leverage beyond what the stop allows, never average down, and remember that "
        "slippage and gaps can make losses larger than planned. This is not financial advice."
    ),
}


def build_risk_block(trade: ProposedTrade, inputs: RiskInputs) -> RiskBlock:
    """Sizes the trade at full precision and rounds only what is displayed."""
    sizing = compute_sizing(inputs, trade.entry_price, trade.stop_loss, trade.symbol)
    derived = compute_derived(
        trade.side, trade.entry_price, trade.stop_loss, trade.take_profit1, trade.take_profit2,
        sizing.units, sizing.risk_amount, sizing.value_per_unit,
    )
    units = round_for_display(sizing.units)
    return RiskBlock(
        account_size=inputs.account_size,
        trade_risk_percent=inputs.risk_percent,
        risk_amount=sizing.risk_amount,
        stop_distance=sizing.stop_distance,
        position_size=units,
        recommended_units=units,
        recommended_lots=round_for_display(sizing.lots),
        profit_at_tp1=round_for_display(derived.profit_at_tp1),
        profit_at_tp2=round_for_display(derived.profit_at_tp2),
        risk_reward_tp1=round_for_display(derived.risk_reward_tp1),
        risk_reward_tp2=round_for_display(derived.risk_reward_tp2),
        aggressive=inputs.aggressive,
        warnings=risk_warnings(inputs.risk_percent),
    )


async def _sized_signal(
    symbol: str, inputs: RiskInputs, settings: Settings, cache: Optional[PriceCache]
) -> Tuple[ProposedTrade, RiskBlock, PriceQuote]:
    quote = await fetch_reference_price(symbol, cache, settings=settings)
    messages = signal_messages(
        symbol, quote.price, inputs.account_size, inputs.risk_percent, settings.SIGNAL_TIME_FRAME
    )
    trade = await acquire_trade(
        partial(request_completion, messages, settings, temperature=0.6),
        symbol, inputs.account_size, inputs.risk_percent,
        reference_price=quote.price,
        force_time_frame=settings.SIGNAL_TIME_FRAME,
        default_time_frame=settings.SIGNAL_TIME_FRAME,
    )
    return trade, build_risk_block(trade, inputs), quote


async def generate_signal(
    request: SignalRequest, settings: Settings, cache: Optional[PriceCache] = None
) -> SignalResponse:
    symbol, inputs = validate_direct_request(request.symbol, request.account_size, request.trade_risk_percent)
    log_signal({"symbol": symbol, "accountSize": inputs.account_size, "riskPercent": inputs.risk_percent})

    trade, risk, quote = await _sized_signal(symbol, inputs, settings, cache)
    log_event("SIGNAL_GENERATED", {"symbol": symbol, "source": trade.origin, "units": risk.recommended_units})
    return SignalResponse(signal=trade, risk=risk, source=trade.origin, reference_price=quote.price)


async def generate_flat_signal(
    request: FlatSignalRequest, settings: Settings, cache: Optional[PriceCache] = None
) -> FlatSignalResponse:
    symbol, inputs = validate_direct_request(request.symbol, request.account_size, request.risk_percent)
    log_signal({"symbol": symbol, "accountSize": inputs.account_size, "riskPercent": inputs.risk_percent})

    trade, risk, _ = await _sized_signal(symbol, inputs, settings, cache)
    return FlatSignalResponse(
        symbol=trade.symbol,
        direction=trade.side,
        order_type=trade.order_type,
        entry_price=trade.entry_price,
        stop_loss=trade.stop_loss,
        take_profit1=trade.take_profit1,
        take_profit2=trade.take_profit2,
        timestamp=datetime.now(timezone.utc).isoformat(),
        account_size=inputs.account_size,
        risk_percent=inputs.risk_percent,
        lot_size=risk.recommended_lots,
        units=risk.recommended_units,
        notes=[MOVE_STOP_NOTE, *risk.warnings],
        risk_amount_usd=risk.risk_amount,
        profit_tp1_usd=risk.profit_at_tp1,
        profit_tp2_usd=risk.profit_at_tp2,
        rr_tp1=risk.risk_reward_tp1,
        rr_tp2=risk.risk_reward_tp2,
        source=trade.origin,
    )


async def generate_variants(
    request: VariantsRequest, settings: Settings, cache: Optional[PriceCache] = None
) -> VariantsResponse:
    symbol, inputs, count = validate_variants_request(
        request.symbol, request.account_size, request.trade_risk_percent, request.num_variations
    )
    log_signal({"symbol": symbol, "accountSize": inputs.account_size,
                "riskPercent": inputs.risk_percent, "variations": count})

    quote = await fetch_reference_price(symbol, cache, settings=settings)
    messages = variants_messages(symbol, quote.price, inputs.account_size, inputs.risk_percent, count)
    labelled = await acquire_variations(
        partial(request_completion, messages, settings, temperature=0.7),
        count, symbol, inputs.account_size, inputs.risk_percent,
        reference_price=quote.price,
        default_time_frame=settings.VARIANT_TIME_FRAME,
    )
    return VariantsResponse(variations=[
        Variation(label=label, signal=trade, risk=build_risk_block(trade, inputs), source=trade.origin)
        for label, trade in labelled
    ])


def _fallback_explanation(mode: str, risk: dict) -> str:
    text = FALLBACK_EXPLANATIONS[mode]
    try:
        risk_percent = float(risk.get("tradeRiskPercent"))
    except (TypeError, ValueError):
        return text
    warnings = risk_warnings(risk_percent)
    return text + ("\n\n" + " ".join(warnings) if warnings else "")


async def explain_signal(request: ExplainRequest, settings: Settings) -> ExplainResponse:
    data = request.signal_data or {}
    signal, risk = data.get("signal"), data.get("risk")
    if not isinstance(signal, dict) or not isinstance(risk, dict):
        raise InvalidRequest("Missing signal or risk data in request body.")

    mode = request.explanation_mode if request.explanation_mode in EXPLAIN_STYLES else "brief"
    try:
        explanation = await request_completion(
            explain_messages(signal, risk, mode), settings, temperature=0.5, json_mode=False
        )
    except ABSORBED_ERRORS as e:
        log_oracle_failure(str(e) or type(e).__name__, "explain-signal")
        return ExplainResponse(explanation=_fallback_explanation(mode, risk), fallback=True)
    return ExplainResponse(explanation=explanation.strip(), fallback=False)
