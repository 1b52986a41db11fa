# setups/momentum.py
from typing import List, Sequence

from models import (
    CurveTrend,
    IndicatorOutcome,
    IndicatorResult,
    InsufficientData,
    MacroTrend,
)

RSI_PERIOD = 20
SMOOTHING_PERIOD = 20
MIN_CANDLES = 50
MIN_SMOOTHED_VALUES = 20

CURVE_WINDOW = 10
CURVE_THRESHOLD = 0.9

MACRO_LOOKBACK = 3


def compute_rsi_series(closes: Sequence[float], period: int = RSI_PERIOD) -> List[float]:
    """
    Wilder RSI over the whole series.
    The first value covers closes[0..period]; each value is rounded to 2 decimals.
    """
    if len(closes) < period + 1:
        return []

    gains = []
    losses = []
    for i in range(1, len(closes)):
        diff = closes[i] - closes[i - 1]
        gains.append(diff if diff > 0 else 0.0)
        losses.append(-diff if diff < 0 else 0.0)

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period

    values = [_rsi_value(avg_gain, avg_loss)]
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period
        values.append(_rsi_value(avg_gain, avg_loss))
    return values


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    if avg_gain == 0:
        return 0.0
    rs = avg_gain / avg_loss
    return round(100 - (100 / (1 + rs)), 2)


def compute_sma_series(values: Sequence[float], period: int = SMOOTHING_PERIOD) -> List[float]:
    if len(values) < period:
        return []

    window_sum = sum(values[:period])
    out = [window_sum / period]
    for i in range(period, len(values)):
        window_sum += values[i] - values[i - period]
        out.append(window_sum / period)
    return out


def classify_curve(window: Sequence[float], threshold: float = CURVE_THRESHOLD) -> CurveTrend:
    increasing = 0
    decreasing = 0
    for prev, cur in zip(window, window[1:]):
        if cur > prev:
            increasing += 1
        elif cur < prev:
            decreasing += 1

    comparisons = len(window) - 1
    if comparisons <= 0:
        return CurveTrend.NEUTRAL
    if decreasing >= comparisons * threshold:
        return CurveTrend.DOWN
    if increasing >= comparisons * threshold:
        return CurveTrend.UP
    return CurveTrend.NEUTRAL


def calculate_indicators(
    closes: Sequence[float],
    highs: Sequence[float],
    lows: Sequence[float],
) -> IndicatorOutcome:
    """
    Smoothed momentum (SMA-20 of RSI-20), its last slope and the shape of the
    curve over the 10 values preceding the latest one.
    Short input at any stage gives InsufficientData; nothing here raises.
    """
    if not closes or len(closes) < MIN_CANDLES:
        return InsufficientData(f"need {MIN_CANDLES} candles, got {len(closes or [])}")

    rsi_values = compute_rsi_series(closes, RSI_PERIOD)
    if len(rsi_values) < SMOOTHING_PERIOD:
        return InsufficientData(f"only {len(rsi_values)} RSI values")

    smoothed = compute_sma_series(rsi_values, SMOOTHING_PERIOD)
    if len(smoothed) < MIN_SMOOTHED_VALUES:
        return InsufficientData(f"only {len(smoothed)} smoothed values")

    current = smoothed[-1]
    slope = current - smoothed[-2]

    recent = smoothed[-(CURVE_WINDOW + 1):-1]
    curve_trend = classify_curve(recent)

    slope_history = tuple(
        smoothed[-i] - smoothed[-i - 1] for i in range(1, MACRO_LOOKBACK + 1)
    )

    return IndicatorResult(
        smoothed_value=current,
        slope=slope,
        curve_trend=curve_trend,
        current_price=float(closes[-1]),
        slope_history=slope_history,
    )


def compute_macro_trend(outcome: IndicatorOutcome, lookback: int = MACRO_LOOKBACK) -> MacroTrend:
    """
    Higher-timeframe trend: the latest `lookback` slopes all positive -> BULLISH,
    all negative -> BEARISH.
    """
    if not isinstance(outcome, IndicatorResult):
        return MacroTrend.NEUTRAL

    slopes = outcome.slope_history[:lookback]
    if len(slopes) < lookback:
        return MacroTrend.NEUTRAL
    if all(s > 0 for s in slopes):
        return MacroTrend.BULLISH
    if all(s < 0 for s in slopes):
        return MacroTrend.BEARISH
    return MacroTrend.NEUTRAL
