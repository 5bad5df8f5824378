# file: config.py
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    OPENAI_API_KEY: str
    OPENAI_MODEL: str
    OPENAI_BASE_URL: str
    ALPHA_VANTAGE_KEY: str
    FINNHUB_API_KEY: str
    CCXT_EXCHANGE: str
    OUTBOUND_TIMEOUT_SECONDS: float
    PRICE_CACHE_TTL_SECONDS: float
    SIGNAL_TIME_FRAME: str
    VARIANT_TIME_FRAME: str
    LOG_LEVEL: str
    CORS_ORIGINS: str
    SIGNAL_API_URL: str


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def get_settings() -> Settings:
    """
    Reads the environment on every call, so tests can patch variables
    with monkeypatch.setenv without reloading modules.
    """
    return Settings(
        OPENAI_API_KEY=os.getenv("OPENAI_API_KEY", ""),
        OPENAI_MODEL=os.getenv("OPENAI_MODEL", "gpt-4.1-mini"),
        OPENAI_BASE_URL=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"),
        ALPHA_VANTAGE_KEY=os.getenv("ALPHA_VANTAGE_KEY", ""),
        FINNHUB_API_KEY=os.getenv("FINNHUB_API_KEY", ""),
        CCXT_EXCHANGE=os.getenv("CCXT_EXCHANGE", "bybit"),
        OUTBOUND_TIMEOUT_SECONDS=_float_env("OUTBOUND_TIMEOUT_SECONDS", 8.0),
        PRICE_CACHE_TTL_SECONDS=_float_env("PRICE_CACHE_TTL_SECONDS", 30.0),
        SIGNAL_TIME_FRAME=os.getenv("SIGNAL_TIME_FRAME", "M15"),
        VARIANT_TIME_FRAME=os.getenv("VARIANT_TIME_FRAME", "H1"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        CORS_ORIGINS=os.getenv("CORS_ORIGINS", "*"),
        SIGNAL_API_URL=os.getenv("SIGNAL_API_URL", "http://127.0.0.1:8000"),
    )
