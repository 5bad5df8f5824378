# file: main.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings, get_settings
from economic_calendar import fetch_calendar
from market_data import PriceCache
from models import (
    CalendarResponse,
    ExplainRequest,
    ExplainResponse,
    FlatSignalRequest,
    FlatSignalResponse,
    SignalRequest,
    SignalResponse,
    VariantsRequest,
    VariantsResponse,
)
from risk_controls import INVALID_INPUT_MESSAGE, reject_invalid_requests
from signal_service import explain_signal, generate_flat_signal, generate_signal, generate_variants
from trade_logger import configure_logging, log_event

INTERNAL_ERROR_MESSAGE = "Internal error while generating signal."

price_cache = PriceCache()


def get_price_cache() -> PriceCache:
    return price_cache


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    log_event("APP_STARTUP", {
        "model": settings.OPENAI_MODEL,
        "oracle_configured": bool(settings.OPENAI_API_KEY),
        "price_ttl_s": settings.PRICE_CACHE_TTL_SECONDS,
    })

    yield

    price_cache.clear()
    log_event("APP_SHUTDOWN", {"message": "Price cache cleared."})


app = FastAPI(title="AI Signal Desk", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in get_settings().CORS_ORIGINS.split(",") if o.strip()],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    log_event("INVALID_REQUEST", {"path": request.url.path, "errors": len(exc.errors())})
    return JSONResponse(status_code=400, content={"error": INVALID_INPUT_MESSAGE})


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    # Details stay in the server log; the caller gets a generic message.
    log_event("INTERNAL_ERROR", {"path": request.url.path, "type": type(exc).__name__, "error": exc})
    return JSONResponse(status_code=500, content={"error": INTERNAL_ERROR_MESSAGE})


@app.get("/ping")
async def ping():
    return {"status": "ok"}


@app.post("/api/generate-signal", response_model=SignalResponse)
@reject_invalid_requests
async def generate_signal_endpoint(
    body: SignalRequest,
    settings: Settings = Depends(get_settings),
    cache: PriceCache = Depends(get_price_cache),
):
    return await generate_signal(body, settings, cache)


@app.post("/api/generate-signal-variants", response_model=VariantsResponse)
@reject_invalid_requests
async def generate_variants_endpoint(
    body: VariantsRequest,
    settings: Settings = Depends(get_settings),
    cache: PriceCache = Depends(get_price_cache),
):
    return await generate_variants(body, settings, cache)


@app.post("/api/explain-signal", response_model=ExplainResponse)
@reject_invalid_requests
async def explain_signal_endpoint(body: ExplainRequest, settings: Settings = Depends(get_settings)):
    return await explain_signal(body, settings)


@app.get("/api/economic-calendar", response_model=CalendarResponse)
async def economic_calendar_endpoint(
    date_from: Optional[str] = Query(default=None, alias="from"),
    date_to: Optional[str] = Query(default=None, alias="to"),
    settings: Settings = Depends(get_settings),
):
    return await fetch_calendar(date_from, date_to, settings)


@app.post("/.netlify/functions/generate-signal", response_model=FlatSignalResponse)
@reject_invalid_requests
async def flat_signal_endpoint(
    body: FlatSignalRequest,
    settings: Settings = Depends(get_settings),
    cache: PriceCache = Depends(get_price_cache),
):
    return await generate_flat_signal(body, settings, cache)


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run("main:app", host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", 8000)))
