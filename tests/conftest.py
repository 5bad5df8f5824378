# file: tests/conftest.py
import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

CREDENTIAL_VARS = ("OPENAI_API_KEY", "ALPHA_VANTAGE_KEY", "FINNHUB_API_KEY")


@pytest.fixture(scope="function", autouse=True)
def setup_for_every_test(monkeypatch, mocker):
    # 1. No real credentials: each test opts into a provider by mocking it
    for var in CREDENTIAL_VARS:
        monkeypatch.delenv(var, raising=False)

    # 2. No live exchange calls for crypto reference prices
    mocker.patch('market_data.fetch_ccxt_price', new_callable=AsyncMock, return_value=None)

    # 3. Prices cached by a previous test must not leak
    from main import price_cache
    price_cache.clear()

    yield


@pytest.fixture
def test_app_client():
    """TestClient with lifespan; the autouse fixture has already isolated env and providers."""
    from main import app
    with TestClient(app) as client:
        yield client


@pytest.fixture
def crashing_app_client():
    """Like test_app_client but returns 500 responses instead of re-raising server errors."""
    from main import app
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest.fixture
def mock_oracle(mocker):
    """Replaces the chat-completions call used by the signal service."""
    return mocker.patch('signal_service.request_completion', new_callable=AsyncMock)


def assert_ordered(signal: dict):
    """Buy: stop < entry < tp1 < tp2. Sell: the reverse."""
    entry, stop = signal["entryPrice"], signal["stopLoss"]
    tp1, tp2 = signal["takeProfit1"], signal["takeProfit2"]
    if signal["side"] == "buy":
        assert stop < entry < tp1 < tp2
    else:
        assert stop > entry > tp1 > tp2
