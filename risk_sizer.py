# File: risk_sizer.py
import math

from instruments import lookup
from models import PositionSizing, RiskInputs

DISPLAY_DECIMALS = 2


def risk_amount_for(inputs: RiskInputs) -> float:
    return inputs.account_size * inputs.risk_percent / 100


def compute_sizing(
    inputs: RiskInputs,
    entry_price: float,
    stop_loss: float,
    symbol: str,
) -> PositionSizing:
    """
    Fixed-fractional sizing: risk a percent of the account over the stop distance.
    Units and lots keep full precision; round with round_for_display at the response boundary.
    """
    instrument = lookup(symbol)
    risk_amount = risk_amount_for(inputs)

    stop_distance = abs(entry_price - stop_loss)
    if not math.isfinite(stop_distance) or stop_distance == 0:
        return PositionSizing(
            risk_amount=risk_amount,
            stop_distance=stop_distance if math.isfinite(stop_distance) else 0.0,
            units=0.0,
            lots=0.0,
            units_per_lot=instrument.units_per_lot,
            value_per_unit=instrument.value_per_unit,
        )

    units = risk_amount / (stop_distance * instrument.value_per_unit)
    lots = units / instrument.units_per_lot

    return PositionSizing(
        risk_amount=risk_amount,
        stop_distance=stop_distance,
        units=units,
        lots=lots,
        units_per_lot=instrument.units_per_lot,
        value_per_unit=instrument.value_per_unit,
    )


def round_for_display(value: float, decimals: int = DISPLAY_DECIMALS) -> float:
    if not math.isfinite(value):
        return 0.0
    # max() also folds -0.0 into 0.0
    return max(0.0, round(value, decimals))
