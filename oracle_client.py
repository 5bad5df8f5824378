# file: oracle_client.py
from typing import Dict, List, Optional

import httpx

from config import Settings
from errors import OracleUnavailable
from trade_logger import log_event

SIGNAL_SYSTEM_PROMPT = """
You are a cautious trading assistant generating INTRADAY trading ideas.

You MUST:
- Work strictly on the {time_frame} timeframe.
- Always include: side (buy/sell), entry type (market/limit), entry price, stop loss, TP1, TP2, timeframe, and a brief comment.
- Use realistic stop-loss and take-profit distances for that timeframe, close to the reference price given.
- Treat risk per trade above 3% as aggressive and mention that in the comment.
- NEVER suggest over-leverage, martingale, or adding to losing positions.
- Emphasise that this is not financial advice.
"""

SIGNAL_USER_PROMPT = """
Generate ONE trading idea for the following:

Symbol: {symbol}
Reference price: {price}
Account size: {account_size}
Risk per trade (% of account): {risk_percent}

Return JSON ONLY in this exact structure:

{{
  "signal": {{
    "symbol": "{symbol}",
    "side": "buy",
    "entryType": "market",
    "entryPrice": 1234.56,
    "stopLoss": 1230.00,
    "takeProfit1": 1240.00,
    "takeProfit2": 1245.00,
    "timeFrame": "{time_frame}",
    "comment": "Short explanation of the idea and risk..."
  }},
  "risk": {{
    "accountSize": {account_size},
    "tradeRiskPercent": {risk_percent},
    "riskAmount": 200
  }}
}}

All numeric fields must be numbers, NOT strings.
"""

VARIANTS_SYSTEM_PROMPT = """
You are an experienced, conservative trading strategist proposing several alternative setups for the same market.
Each setup must:
- Use the same account size and risk percentage provided by the user.
- Use realistic stop losses and take profits (no 0 values, no "infinite" distances).
- Treat risk per trade above 3% as aggressive and mention that in the comment.
- NEVER promise profit or certainty. This is not financial advice.
"""

VARIANTS_USER_PROMPT = """
Generate {count} alternative trading setups.

Symbol: {symbol}
Reference price: {price}
Account size: {account_size}
Risk per trade (% of account): {risk_percent}

For each setup decide side ("buy"/"sell"), entry type ("market"/"limit"), entry price, stop loss,
take profit 1, take profit 2, timeframe (e.g. "H1", "H4", "D1") and a 1-3 sentence comment.

Output JSON ONLY:

{{
  "variations": [
    {{
      "label": "Setup A",
      "signal": {{
        "side": "buy", "entryType": "market", "entryPrice": 1234.56, "stopLoss": 1230.00,
        "takeProfit1": 1240.00, "takeProfit2": 1245.00, "timeFrame": "H1", "comment": "..."
      }},
      "risk": {{"accountSize": {account_size}, "tradeRiskPercent": {risk_percent}, "riskAmount": 200}}
    }}
  ]
}}

Use an array with {count} objects. All numeric fields must be numbers.
"""

EXPLAIN_SYSTEM_PROMPT = """
You are a professional trading coach and risk manager. Explain the given setup to a retail trader
in a conservative, risk-aware way. Emphasize that this is not financial advice, highlight the risk
per trade, warn clearly when it is above 3%, never promise profits, and encourage respecting the stop loss.
"""

EXPLAIN_STYLES = {
    "brief": "Write a short, punchy explanation (max 120 words) in 3-5 bullet points.",
    "detailed": "Write a detailed but clear explanation (around 200-250 words) with short paragraphs.",
    "risk": (
        "Focus mainly on risk management: why the stop loss and position size are conservative, "
        "what could go wrong, and how to manage the trade safely. 150-200 words."
    ),
}


def signal_messages(symbol: str, price: float, account_size: float, risk_percent: float, time_frame: str) -> List[Dict]:
    fmt = dict(symbol=symbol, price=price, account_size=account_size, risk_percent=risk_percent, time_frame=time_frame)
    return [
        {"role": "system", "content": SIGNAL_SYSTEM_PROMPT.format(**fmt)},
        {"role": "user", "content": SIGNAL_USER_PROMPT.format(**fmt)},
    ]


def variants_messages(symbol: str, price: float, account_size: float, risk_percent: float, count: int) -> List[Dict]:
    fmt = dict(symbol=symbol, price=price, account_size=account_size, risk_percent=risk_percent, count=count)
    return [
        {"role": "system", "content": VARIANTS_SYSTEM_PROMPT},
        {"role": "user", "content": VARIANTS_USER_PROMPT.format(**fmt)},
    ]


def explain_messages(signal: dict, risk: dict, mode: str) -> List[Dict]:
    style = EXPLAIN_STYLES.get(mode, EXPLAIN_STYLES["brief"])
    user = (
        "Here is the trading setup:\n\n"
        f"Symbol: {signal.get('symbol')}\n"
        f"Side: {signal.get('side')}\n"
        f"Order type: {signal.get('orderType') or signal.get('entryType')}\n"
        f"Timeframe: {signal.get('timeFrame')}\n"
        f"Entry: {signal.get('entryPrice')}\n"
        f"Stop loss: {signal.get('stopLoss')}\n"
        f"Take profit 1: {signal.get('takeProfit1')}\n"
        f"Take profit 2: {signal.get('takeProfit2')}\n\n"
        f"Account size: {risk.get('accountSize')}\n"
        f"Risk per trade (% of account): {risk.get('tradeRiskPercent')}\n"
        f"Risk amount in currency: {risk.get('riskAmount')}\n"
        f"Position size (units): {risk.get('positionSize')}\n\n"
        f"Explanation style requested: {mode.upper()}.\n\n{style}\n\n"
        "Write in plain English, no code. Do NOT restate the raw numbers line by line."
    )
    return [
        {"role": "system", "content": EXPLAIN_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


async def request_completion(
    messages: List[Dict],
    settings: Settings,
    *,
    temperature: float = 0.6,
    json_mode: bool = True,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """
    One chat-completions call, no retries. Every failure is raised as
    OracleUnavailable so callers can fall back without inspecting httpx errors.
    """
    if not settings.OPENAI_API_KEY:
        raise OracleUnavailable("OPENAI_API_KEY is not configured")

    body = {"model": settings.OPENAI_MODEL, "temperature": temperature, "messages": messages}
    if json_mode:
        body["response_format"] = {"type": "json_object"}
    headers = {"Authorization": f"Bearer {settings.OPENAI_API_KEY}"}
    url = f"{settings.OPENAI_BASE_URL.rstrip('/')}/chat/completions"

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=settings.OUTBOUND_TIMEOUT_SECONDS)
    try:
        r = await client.post(url, json=body, headers=headers)
        if r.status_code == 429:
            raise OracleUnavailable("rate limited")
        r.raise_for_status()
        data = r.json()
    except httpx.TimeoutException:
        raise OracleUnavailable("timeout")
    except httpx.HTTPStatusError as e:
        log_event("ORACLE_HTTP_ERROR", {"status": e.response.status_code})
        raise OracleUnavailable(f"HTTP {e.response.status_code}")
    except httpx.HTTPError as e:
        raise OracleUnavailable(f"transport error: {type(e).__name__}")
    except httpx.InvalidURL:
        raise OracleUnavailable("invalid OPENAI_BASE_URL")
    except ValueError:
        raise OracleUnavailable("response body is not JSON")
    finally:
        if owns_client:
            await client.aclose()

    # {'choices': [{'message': {'content': '...'}}]}
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None
    if not isinstance(content, str) or not content.strip():
        raise OracleUnavailable("missing content")
    return content
