# file: reward_metrics.py
import math

from models import DerivedMetrics


def _profit(units: float, target: float, entry: float, value_per_unit: float) -> float:
    profit = units * abs(target - entry) * value_per_unit
    return profit if math.isfinite(profit) else 0.0


def _ratio(profit: float, risk_amount: float) -> float:
    if not math.isfinite(risk_amount) or risk_amount <= 0:
        return 0.0
    ratio = profit / risk_amount
    return ratio if math.isfinite(ratio) else 0.0


def compute_derived(
    direction: str,
    entry_price: float,
    stop_loss: float,
    tp1: float,
    tp2: float,
    units: float,
    risk_amount: float,
    value_per_unit: float = 1.0,
) -> DerivedMetrics:
    """
    Projected profit at each target and its ratio to the amount risked.

    Profits are magnitudes: the direction is already encoded in where the
    targets sit relative to entry, so `direction` and `stop_loss` only
    document the trade and do not change the arithmetic.
    """
    profit_tp1 = _profit(units, tp1, entry_price, value_per_unit)
    profit_tp2 = _profit(units, tp2, entry_price, value_per_unit)
    return DerivedMetrics(
        profit_at_tp1=profit_tp1,
        profit_at_tp2=profit_tp2,
        risk_reward_tp1=_ratio(profit_tp1, risk_amount),
        risk_reward_tp2=_ratio(profit_tp2, risk_amount),
    )
