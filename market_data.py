# file: market_data.py
import asyncio
import math
import time
from dataclasses import dataclass
from typing import Dict, Optional

import ccxt.async_support as ccxt
import httpx

from config import Settings
from instruments import canonical_symbol, is_forex_pair
from trade_logger import log_event

ALPHA_VANTAGE_URL = "https://www.alphavantage.co/query"

CRYPTO_BASES = ("BTC", "ETH", "LTC", "XRP", "SOL", "BNB", "DOGE", "ADA")

# Static reference prices used when no provider answers. First match wins.
MOCK_PRICES = (
    ("XAU", 2350.0),
    ("GOLD", 2350.0),
    ("XAG", 28.0),
    ("XPD", 1000.0),
    ("BTC", 55000.0),
    ("ETH", 3000.0),
    ("SPX500", 5200.0),
    ("US100", 18000.0),
    ("US30", 39000.0),
)
DEFAULT_MOCK_PRICE = 1.10
JPY_MOCK_PRICE = 150.0


@dataclass(frozen=True)
class CachedPrice:
    value: float
    timestamp: float


@dataclass(frozen=True)
class PriceQuote:
    price: float
    source: str


class PriceCache:
    """
    Plain key -> CachedPrice store. It never expires anything itself: the
    caller compares timestamps against its TTL. Concurrent writers simply
    overwrite each other, which is harmless for reference prices.
    """

    def __init__(self):
        self._store: Dict[str, CachedPrice] = {}

    def get(self, key: str) -> Optional[CachedPrice]:
        return self._store.get(key)

    def set(self, key: str, value: float, timestamp: float):
        self._store[key] = CachedPrice(value=value, timestamp=timestamp)

    def clear(self):
        self._store.clear()


def is_crypto(symbol: str) -> bool:
    return canonical_symbol(symbol).startswith(CRYPTO_BASES)


def ccxt_symbol(symbol: str) -> str:
    """BTCUSDT / BTCUSD -> BTC/USDT, BTCEUR -> BTC/EUR."""
    s = canonical_symbol(symbol)
    if s.endswith("USDT"):
        return s[:-4] + "/USDT"
    if s.endswith("USD"):
        return s[:-3] + "/USDT"
    if s.endswith("EUR"):
        return s[:-3] + "/EUR"
    return s


def alpha_vantage_pair(symbol: str):
    s = canonical_symbol(symbol)
    if s == "GOLD":
        return "XAU", "USD"
    return s[:3], (s[3:6] or "USD")


def mock_reference_price(symbol: str) -> float:
    s = canonical_symbol(symbol)
    for needle, price in MOCK_PRICES:
        if needle in s:
            return price
    if is_forex_pair(s) and s.endswith("JPY"):
        return JPY_MOCK_PRICE
    return DEFAULT_MOCK_PRICE


def _valid(price) -> bool:
    return isinstance(price, float) and math.isfinite(price) and price > 0


async def fetch_ccxt_price(symbol: str, settings: Settings) -> Optional[float]:
    """Last traded price from the configured exchange's public ticker."""
    exchange_cls = getattr(ccxt, settings.CCXT_EXCHANGE, None)
    if exchange_cls is None:
        log_event("PRICE_PROVIDER_ERROR", {"provider": "ccxt", "error": f"unknown exchange {settings.CCXT_EXCHANGE}"})
        return None

    exchange = exchange_cls({"timeout": int(settings.OUTBOUND_TIMEOUT_SECONDS * 1000)})
    try:
        ticker = await exchange.fetch_ticker(ccxt_symbol(symbol))
        return float(ticker["last"])
    except (ccxt.BaseError, asyncio.TimeoutError, KeyError, TypeError, ValueError) as e:
        log_event("PRICE_PROVIDER_ERROR", {"provider": "ccxt", "symbol": symbol, "error": type(e).__name__})
        return None
    finally:
        await exchange.close()


async def fetch_alpha_vantage_price(
    symbol: str, settings: Settings, client: Optional[httpx.AsyncClient] = None
) -> Optional[float]:
    if not settings.ALPHA_VANTAGE_KEY:
        return None

    from_currency, to_currency = alpha_vantage_pair(symbol)
    params = {
        "function": "CURRENCY_EXCHANGE_RATE",
        "from_currency": from_currency,
        "to_currency": to_currency,
        "apikey": settings.ALPHA_VANTAGE_KEY,
    }
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=settings.OUTBOUND_TIMEOUT_SECONDS)
    try:
        r = await client.get(ALPHA_VANTAGE_URL, params=params)
        r.raise_for_status()
        data = r.json()
        return float(data["Realtime Currency Exchange Rate"]["5. Exchange Rate"])
    except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
        log_event("PRICE_PROVIDER_ERROR", {"provider": "alphavantage", "symbol": symbol, "error": type(e).__name__})
        return None
    finally:
        if owns_client:
            await client.aclose()


async def fetch_reference_price(
    symbol: str,
    cache: Optional[PriceCache] = None,
    *,
    settings: Settings,
    now: Optional[float] = None,
) -> PriceQuote:
    """
    Current reference price for a symbol: cache if fresh, then the live
    providers, then a static mock price. Never raises.
    """
    key = canonical_symbol(symbol)
    now = time.time() if now is None else now

    if cache is not None:
        cached = cache.get(key)
        if cached is not None and now - cached.timestamp < settings.PRICE_CACHE_TTL_SECONDS:
            return PriceQuote(price=cached.value, source="cache")

    price, source = None, "mock"
    if is_crypto(key):
        price, source = await fetch_ccxt_price(key, settings), "ccxt"
    if not _valid(price):
        price, source = await fetch_alpha_vantage_price(key, settings), "alphavantage"
    if not _valid(price):
        price, source = mock_reference_price(key), "mock"
        log_event("PRICE_FALLBACK", {"symbol": key, "price": price})

    if cache is not None:
        cache.set(key, price, now)
    return PriceQuote(price=price, source=source)
