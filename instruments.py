# file: instruments.py
import re

from models import InstrumentMetadata

FOREX_UNITS_PER_LOT = 100000
PIP = 0.0001
JPY_PIP = 0.01

_SEPARATORS = re.compile(r"[/\-_\s]")

# ISO codes used to decide whether an unknown 6-letter symbol looks like a currency pair.
CURRENCY_CODES = frozenset({
    "USD", "EUR", "GBP", "JPY", "AUD", "NZD", "CAD", "CHF", "SEK", "NOK", "DKK",
    "PLN", "HUF", "CZK", "TRY", "ZAR", "MXN", "SGD", "HKD", "CNH", "CNY", "INR",
})

_FOREX_PAIRS = (
    "EURUSD", "GBPUSD", "USDJPY", "AUDUSD", "USDCAD", "USDCHF", "NZDUSD",
    "AUDCAD", "AUDCHF", "AUDJPY", "AUDNZD", "CADCHF", "CADJPY", "CHFJPY",
    "EURAUD", "EURCAD", "EURCHF", "EURGBP", "EURJPY", "EURNZD",
    "GBPAUD", "GBPCAD", "GBPCHF", "GBPJPY", "GBPNZD",
    "NZDCAD", "NZDCHF", "NZDJPY",
)

_LOT_SIZES = {
    # Indices: 1 lot = 1 contract
    "SPX500": 1,
    "US100": 1,
    "US30": 1,
    # Metals: troy ounces per lot
    "XAUUSD": 100,
    "XAGUSD": 5000,
    "XPDUSD": 100,
    "GOLD": 100,
    # Crypto: 1 lot = 1 coin
    "BTCUSD": 1,
    "BTCEUR": 1,
    "ETHUSD": 1,
    "LTCUSD": 1,
    "XRPUSD": 1,
    "BTCUSDT": 1,
    "ETHUSDT": 1,
}


def canonical_symbol(symbol: str) -> str:
    """'eur/usd' -> 'EURUSD'."""
    return _SEPARATORS.sub("", (symbol or "").upper())


def _pip_for(pair: str) -> float:
    return JPY_PIP if pair.endswith("JPY") else PIP


def is_forex_pair(symbol: str) -> bool:
    s = canonical_symbol(symbol)
    return len(s) == 6 and s[:3] in CURRENCY_CODES and s[3:] in CURRENCY_CODES


def _build_table() -> dict:
    table = {
        sym: InstrumentMetadata(symbol=sym, units_per_lot=lot)
        for sym, lot in _LOT_SIZES.items()
    }
    for pair in _FOREX_PAIRS:
        table[pair] = InstrumentMetadata(
            symbol=pair, units_per_lot=FOREX_UNITS_PER_LOT, pip_size=_pip_for(pair)
        )
    return table


INSTRUMENTS = _build_table()


def lookup(symbol: str) -> InstrumentMetadata:
    """
    Returns contract-size metadata for a symbol. Never fails: unknown
    currency pairs get a standard forex lot, anything else one unit per lot.
    """
    key = canonical_symbol(symbol)
    known = INSTRUMENTS.get(key)
    if known is not None:
        return known
    if is_forex_pair(key):
        return InstrumentMetadata(symbol=key, units_per_lot=FOREX_UNITS_PER_LOT, pip_size=_pip_for(key))
    return InstrumentMetadata(symbol=key, units_per_lot=1)
