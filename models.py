# file: models.py
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Side = Literal["buy", "sell"]
OrderType = Literal["market", "limit"]
Origin = Literal["oracle", "fallback"]

AGGRESSIVE_RISK_PCT = 3.0


class CamelModel(BaseModel):
    """Base for everything that crosses the HTTP boundary: camelCase on the wire, snake_case in code."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Core domain ---

class InstrumentMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    units_per_lot: float = Field(..., gt=0)
    value_per_unit: float = Field(default=1.0, gt=0)
    pip_size: Optional[float] = None


class RiskInputs(BaseModel):
    """Account size and percent risked per trade, already validated for the sizing engine."""
    model_config = ConfigDict(frozen=True)

    account_size: float = Field(..., gt=0, allow_inf_nan=False)
    risk_percent: float = Field(..., gt=0, le=100, allow_inf_nan=False)

    @property
    def aggressive(self) -> bool:
        return self.risk_percent > AGGRESSIVE_RISK_PCT


class ProposedTrade(CamelModel):
    """A trade idea after normalization. Prices always satisfy the side's ordering."""
    symbol: str
    side: Side
    order_type: OrderType
    entry_price: float
    stop_loss: float
    take_profit1: float
    take_profit2: float
    time_frame: str
    comment: str
    origin: Origin = "oracle"
    repaired: bool = False


class PositionSizing(BaseModel):
    model_config = ConfigDict(frozen=True)

    risk_amount: float
    stop_distance: float
    units: float
    lots: float
    units_per_lot: float
    value_per_unit: float


class DerivedMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    profit_at_tp1: float
    profit_at_tp2: float
    risk_reward_tp1: float
    risk_reward_tp2: float


# --- Requests ---

class SignalRequest(CamelModel):
    symbol: str = ""
    account_size: float
    trade_risk_percent: float


class VariantsRequest(SignalRequest):
    num_variations: Optional[Any] = None


class FlatSignalRequest(CamelModel):
    symbol: str = ""
    account_size: float
    risk_percent: float


class ExplainRequest(CamelModel):
    signal_data: Optional[dict] = None
    explanation_mode: str = "brief"


# --- Responses ---

class RiskBlock(CamelModel):
    account_size: float
    trade_risk_percent: float
    risk_amount: float
    stop_distance: float
    position_size: float
    recommended_units: float
    recommended_lots: float
    profit_at_tp1: float = Field(alias="profitAtTP1")
    profit_at_tp2: float = Field(alias="profitAtTP2")
    risk_reward_tp1: float = Field(alias="riskRewardTP1")
    risk_reward_tp2: float = Field(alias="riskRewardTP2")
    aggressive: bool = False
    warnings: List[str] = Field(default_factory=list)


class SignalResponse(CamelModel):
    signal: ProposedTrade
    risk: RiskBlock
    source: Origin
    reference_price: float


class Variation(CamelModel):
    label: str
    signal: ProposedTrade
    risk: RiskBlock
    source: Origin


class VariantsResponse(CamelModel):
    variations: List[Variation]


class ExplainResponse(CamelModel):
    explanation: str
    fallback: bool = False


class CalendarEvent(CamelModel):
    event_time: str = Field(alias="datetime")
    country: str
    event: str
    impact: Optional[str] = None
    previous: Optional[Union[str, float]] = None
    actual: Optional[Union[str, float]] = None
    forecast: Optional[Union[str, float]] = None


class CalendarResponse(CamelModel):
    events: List[CalendarEvent]
    date_from: str = Field(alias="from")
    date_to: str = Field(alias="to")
    note: Optional[str] = None


class FlatSignalResponse(CamelModel):
    """Single flat payload used by the alternate function-routing convention."""
    symbol: str
    direction: Side
    order_type: OrderType
    entry_price: float
    stop_loss: float
    take_profit1: float
    take_profit2: float
    timestamp: str
    account_size: float
    risk_percent: float
    lot_size: float
    units: float
    notes: List[str]
    risk_amount_usd: float = Field(alias="riskAmountUSD")
    profit_tp1_usd: float = Field(alias="profitTP1USD")
    profit_tp2_usd: float = Field(alias="profitTP2USD")
    rr_tp1: float = Field(alias="rrTP1")
    rr_tp2: float = Field(alias="rrTP2")
    source: Origin
