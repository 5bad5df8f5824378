# File: dashboard.py
import pandas as pd
import requests
import streamlit as st

from config import get_settings

# --- Configuration ---
API_BASE_URL = get_settings().SIGNAL_API_URL
REQUEST_TIMEOUT_SECONDS = 30
CALENDAR_REFRESH_SECONDS = 300

st.set_page_config(
    page_title="AI Signal Desk",
    layout="wide",
)


# --- API calls ---
def post_json(path: str, payload: dict) -> dict:
    """POSTs to the signal API and returns the JSON body, or {'error': ...}."""
    try:
        response = requests.post(f"{API_BASE_URL}{path}", json=payload, timeout=REQUEST_TIMEOUT_SECONDS)
    except requests.exceptions.RequestException as e:
        return {"error": f"API not reachable: {e}"}
    try:
        body = response.json()
    except ValueError:
        return {"error": f"Unexpected response ({response.status_code})."}
    if response.status_code != 200:
        return {"error": body.get("error", f"Request failed ({response.status_code}).")}
    return body


@st.cache_data(ttl=CALENDAR_REFRESH_SECONDS)
def get_calendar() -> dict:
    try:
        response = requests.get(f"{API_BASE_URL}/api/economic-calendar", timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException:
        return {"events": []}


def signal_table(signal: dict) -> pd.DataFrame:
    rows = [
        ("Symbol", signal["symbol"]),
        ("Side", signal["side"].upper()),
        ("Order type", signal["orderType"].upper()),
        ("Entry", signal["entryPrice"]),
        ("Stop loss", signal["stopLoss"]),
        ("Take profit 1", signal["takeProfit1"]),
        ("Take profit 2", signal["takeProfit2"]),
        ("Timeframe", signal["timeFrame"]),
    ]
    return pd.DataFrame(rows, columns=["Field", "Value"]).astype({"Value": str})


def risk_table(risk: dict) -> pd.DataFrame:
    rows = [
        ("Account size", f"{risk['accountSize']:,.2f}"),
        ("Risk per trade", f"{risk['tradeRiskPercent']:g}%"),
        ("Amount at risk", f"{risk['riskAmount']:,.2f}"),
        ("Units", f"{risk['recommendedUnits']:,.2f}"),
        ("Lots", f"{risk['recommendedLots']:,.2f}"),
        ("Profit at TP1", f"{risk['profitAtTP1']:,.2f}"),
        ("Profit at TP2", f"{risk['profitAtTP2']:,.2f}"),
        ("R:R at TP1", f"1:{risk['riskRewardTP1']:.2f}"),
        ("R:R at TP2", f"1:{risk['riskRewardTP2']:.2f}"),
    ]
    return pd.DataFrame(rows, columns=["Metric", "Value"])


def render_signal(result: dict):
    signal, risk = result["signal"], result["risk"]
    if result.get("source") == "fallback":
        st.info("The AI service was unavailable; showing a rule-based setup around the reference price.")
    for warning in risk.get("warnings", []):
        st.warning(warning)
    left, right = st.columns(2)
    left.dataframe(signal_table(signal), use_container_width=True, hide_index=True)
    right.dataframe(risk_table(risk), use_container_width=True, hide_index=True)
    st.caption(signal["comment"])


# --- Layout ---
st.title("AI Signal Desk")
st.caption("Trade ideas with fixed-fractional position sizing. Not financial advice.")

with st.form("signal_form"):
    c1, c2, c3 = st.columns(3)
    symbol = c1.text_input("Symbol", value="XAUUSD")
    account_size = c2.number_input("Account size", min_value=1.0, value=10000.0, step=100.0)
    risk_percent = c3.number_input("Risk per trade (%)", min_value=0.1, max_value=100.0, value=1.0, step=0.1)
    submitted = st.form_submit_button("Generate signal")

payload = {"symbol": symbol, "accountSize": account_size, "tradeRiskPercent": risk_percent}

if submitted:
    st.session_state["last_signal"] = post_json("/api/generate-signal", payload)

# --- Section 1: Signal ---
result = st.session_state.get("last_signal")
if result:
    if "error" in result:
        st.error(result["error"])
    else:
        st.subheader("📊 Signal")
        render_signal(result)

        mode = st.radio("Explanation", ["brief", "detailed", "risk"], horizontal=True)
        if st.button("Explain this setup"):
            explained = post_json("/api/explain-signal", {"signalData": result, "explanationMode": mode})
            st.markdown(explained.get("explanation") or explained.get("error", ""))

        if st.button("Show alternative setups"):
            variants = post_json("/api/generate-signal-variants", payload)
            for variation in variants.get("variations", []):
                with st.expander(variation["label"]):
                    render_signal(variation)

# --- Section 2: Notes (kept in this browser session only) ---
st.subheader("📝 Notes")
st.session_state.setdefault("notes", "")
st.session_state["notes"] = st.text_area("Trade notes", value=st.session_state["notes"], height=120)

# --- Section 3: Economic calendar ---
st.subheader("📅 Economic Calendar")
calendar = get_calendar()
if calendar.get("note"):
    st.caption(calendar["note"])
if calendar.get("events"):
    st.dataframe(pd.DataFrame(calendar["events"]), use_container_width=True, hide_index=True)
else:
    st.info("No upcoming events or API not reachable.")
