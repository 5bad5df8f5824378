# file: tests/test_signal_normalizer.py
import itertools
import json
from unittest.mock import AsyncMock

import httpx
import pytest

from errors import OracleUnavailable
from signal_normalizer import (
    DEFAULT_COMMENT,
    acquire_trade,
    acquire_variations,
    fallback_trade,
    is_ordered,
    normalize,
    parse_price,
)
from signal_parser import ParseFailure, ParsedTrade


def parsed(**overrides) -> ParsedTrade:
    fields = {
        "side": "buy", "order_type": "market", "entry_price": 100.0, "stop_loss": 98.0,
        "take_profit1": 104.0, "take_profit2": 106.0, "time_frame": "H1", "comment": "Trend continuation.",
    }
    fields.update(overrides)
    return ParsedTrade(fields=fields)


def run(raw, **kwargs):
    kwargs.setdefault("reference_price", 100.0)
    return normalize(raw, "xauusd", 10000, 1, **kwargs)


def assert_trade_ordered(trade):
    assert is_ordered(trade.side, trade.entry_price, trade.stop_loss, trade.take_profit1, trade.take_profit2)


@pytest.mark.parametrize("value, expected", [
    (1.5, 1.5), (3, 3.0), ("2.25", 2.25), (" 7 ", 7.0),
    (True, None), ("abc", None), (float("nan"), None), (float("inf"), None),
    (-1, None), (0, None), (None, None), ([1], None),
])
def test_parse_price(value, expected):
    assert parse_price(value) == expected


def test_valid_proposal_passes_through():
    trade = run(parsed())
    assert trade.origin == "oracle"
    assert not trade.repaired
    assert trade.symbol == "XAUUSD"
    assert (trade.entry_price, trade.stop_loss, trade.take_profit1, trade.take_profit2) == (100.0, 98.0, 104.0, 106.0)
    assert trade.time_frame == "H1"
    assert trade.comment == "Trend continuation."


@pytest.mark.parametrize("side, expected", [
    ("sell", "sell"), ("buy", "buy"), ("SELL", "buy"), ("short", "buy"), (None, "buy"), (1, "buy"),
])
def test_only_exact_sell_is_a_sell(side, expected):
    assert run(parsed(side=side)).side == expected


@pytest.mark.parametrize("order_type, expected", [
    ("limit", "limit"), ("market", "market"), ("LIMIT", "market"), ("stop", "market"), (None, "market"),
])
def test_only_exact_limit_is_a_limit(order_type, expected):
    assert run(parsed(order_type=order_type)).order_type == expected


def test_invalid_fields_take_defaults():
    trade = run(parsed(stop_loss="n/a", take_profit1=None, comment="   "))
    assert trade.stop_loss == pytest.approx(99.0)
    assert trade.take_profit1 == pytest.approx(102.0)
    assert trade.take_profit2 == 106.0
    assert trade.comment == DEFAULT_COMMENT
    assert not trade.repaired


def test_invalid_entry_uses_reference_price():
    trade = run(parsed(entry_price="NaN", stop_loss=None, take_profit1=None, take_profit2=None), reference_price=250.0)
    assert trade.entry_price == 250.0
    assert trade.stop_loss == pytest.approx(247.5)
    assert trade.take_profit2 == pytest.approx(257.5)


def test_ordering_violation_is_repaired():
    # A "buy" with the stop above entry.
    trade = run(parsed(stop_loss=101.0))
    assert trade.repaired
    assert trade.entry_price == 100.0
    assert trade.stop_loss == pytest.approx(99.0)
    assert trade.take_profit1 == pytest.approx(102.0)
    assert trade.take_profit2 == pytest.approx(103.0)


def test_sell_levels_are_repaired_on_the_sell_side():
    trade = run(parsed(side="sell", stop_loss=98.0, take_profit1=104.0, take_profit2=106.0))
    assert trade.side == "sell"
    assert trade.repaired
    assert trade.stop_loss == pytest.approx(101.0)
    assert trade.take_profit1 == pytest.approx(98.0)
    assert trade.take_profit2 == pytest.approx(97.0)


def test_ordering_holds_for_any_garbage_combination():
    prices = [100.0, 50.0, 150.0, -5, "x", None, float("inf"), 100.0000001]
    for side, stop, tp1, tp2 in itertools.product(["buy", "sell", "???"], prices, prices, prices):
        trade = run(parsed(side=side, stop_loss=stop, take_profit1=tp1, take_profit2=tp2))
        assert_trade_ordered(trade)


def test_failure_becomes_fallback():
    trade = run(ParseFailure("malformed JSON"), reference_price=2350.0)
    assert trade.origin == "fallback"
    assert trade.entry_price == 2350.0
    assert trade.side == "buy"
    assert trade.order_type == "market"
    assert_trade_ordered(trade)


def test_no_proposal_becomes_fallback():
    assert run(None).origin == "fallback"


def test_forced_time_frame_overrides_oracle():
    assert run(parsed(time_frame="H4"), force_time_frame="M15").time_frame == "M15"
    assert run(ParseFailure("x"), force_time_frame="M15").time_frame == "M15"
    assert run(parsed(time_frame="H4")).time_frame == "H4"
    assert run(parsed(time_frame=None), default_time_frame="D1").time_frame == "D1"


def test_aggressive_risk_is_noted_in_comment():
    trade = normalize(parsed(), "EURUSD", 10000, 4, reference_price=1.1)
    assert "aggressive" in trade.comment
    calm = normalize(parsed(), "EURUSD", 10000, 2, reference_price=1.1)
    assert "aggressive" not in calm.comment


def test_oracle_symbol_is_ignored():
    trade = normalize(parsed(symbol="BTCUSD"), "eurusd", 1000, 1, reference_price=1.1)
    assert trade.symbol == "EURUSD"


def test_fallback_trade_scales_offsets():
    trade = fallback_trade("EURUSD", 1.0, 1, side="sell", scale=2.0)
    assert trade.stop_loss == pytest.approx(1.02)
    assert trade.take_profit1 == pytest.approx(0.96)
    assert trade.take_profit2 == pytest.approx(0.94)


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    OracleUnavailable("rate limited"),
    httpx.ConnectTimeout("timed out"),
])
async def test_acquire_absorbs_oracle_errors(error):
    fetch = AsyncMock(side_effect=error)
    trade = await acquire_trade(fetch, "XAUUSD", 10000, 2, reference_price=2350.0, force_time_frame="M15")

    fetch.assert_awaited_once()
    assert trade.origin == "fallback"
    assert trade.time_frame == "M15"
    assert_trade_ordered(trade)


@pytest.mark.asyncio
async def test_acquire_falls_back_on_malformed_content():
    fetch = AsyncMock(return_value="I think gold goes up")
    trade = await acquire_trade(fetch, "XAUUSD", 10000, 2, reference_price=2350.0)
    assert trade.origin == "fallback"


@pytest.mark.asyncio
async def test_acquire_uses_valid_oracle_content():
    content = json.dumps({"signal": {
        "side": "sell", "entryType": "limit", "entryPrice": 2000, "stopLoss": 2020,
        "takeProfit1": 1960, "takeProfit2": 1940, "timeFrame": "H1", "comment": "Fade the spike.",
    }})
    trade = await acquire_trade(AsyncMock(return_value=content), "XAUUSD", 10000, 2,
                                reference_price=2350.0, force_time_frame="M15")
    assert trade.origin == "oracle"
    assert trade.side == "sell"
    assert trade.entry_price == 2000
    assert trade.time_frame == "M15"


@pytest.mark.asyncio
async def test_acquire_variations_pads_with_fallbacks():
    content = json.dumps({"variations": [{"label": "Range fade", "signal": {
        "side": "buy", "entryPrice": 100, "stopLoss": 99, "takeProfit1": 102, "takeProfit2": 104,
    }}]})
    variations = await acquire_variations(AsyncMock(return_value=content), 3, "US30", 5000, 1, reference_price=100.0)

    assert [label for label, _ in variations] == ["Range fade", "Setup B", "Setup C"]
    trades = [trade for _, trade in variations]
    assert [t.origin for t in trades] == ["oracle", "fallback", "fallback"]
    assert [t.side for t in trades] == ["buy", "sell", "buy"]
    # Fallback levels widen across the set.
    assert trades[1].stop_loss == pytest.approx(101.5)
    assert trades[2].stop_loss == pytest.approx(98.0)
    for trade in trades:
        assert_trade_ordered(trade)
        assert trade.time_frame == "H1"


@pytest.mark.asyncio
async def test_acquire_variations_survives_oracle_failure():
    fetch = AsyncMock(side_effect=OracleUnavailable("timeout"))
    variations = await acquire_variations(fetch, 2, "EURUSD", 5000, 1, reference_price=1.1)
    assert [label for label, _ in variations] == ["Setup A", "Setup B"]
    assert all(trade.origin == "fallback" for _, trade in variations)


def test_is_ordered_rejects_non_finite_levels():
    assert not is_ordered("buy", 1.0, 0.5, 2.0, float("inf"))
    assert not is_ordered("sell", float("nan"), 2.0, 0.5, 0.4)


@pytest.mark.parametrize("side, entry", [
    ("buy", 1.75e308),
    ("buy", 5e-324),
    ("sell", 5e-324),
])
def test_unrepresentable_levels_fall_back_to_reference(side, entry):
    trade = run(parsed(side=side, entry_price=entry))

    assert trade.origin == "fallback"
    assert trade.entry_price == 100.0
    assert trade.side == side
    assert_trade_ordered(trade)


def test_huge_sell_entry_is_still_repairable():
    trade = run(parsed(side="sell", entry_price=1.75e308))
    assert trade.origin == "oracle"
    assert trade.repaired
    assert_trade_ordered(trade)


@pytest.mark.parametrize("symbol, reference, side, expected", [
    ("XAUUSD", 1.75e308, "buy", 2350.0),
    ("EURUSD", 5e-324, "sell", 1.10),
    ("US30", None, "buy", 39000.0),
])
def test_unusable_reference_price_uses_mock_price(symbol, reference, side, expected):
    trade = fallback_trade(symbol, reference, 1, side=side, scale=2.0)
    assert trade.entry_price == expected
    assert_trade_ordered(trade)
