# engine/alert_evaluator.py
from __future__ import annotations

import logging

from models import (
    AlertDecision,
    Classification,
    IndicatorResult,
    MacroTrend,
)
from setups.classifier import is_macro_confirmed

from .state_store import StateStore

logger = logging.getLogger(__name__)

ALERT_COOLDOWN_MS = 12 * 60 * 60 * 1000


class AlertEvaluator:
    """
    Per (symbol, timeframe) decision whether a terrain classification becomes
    an individual alert.

    Order of checks:
      1. terrain only, euphoria / in-progress states never fire;
      2. macro trend must agree, otherwise nothing is stored;
      3. the same candle is never evaluated twice;
      4. at most one alert per pair every 12h; the candle is still marked seen;
      5. fire.
    """

    def __init__(self, store: StateStore, cooldown_ms: int = ALERT_COOLDOWN_MS):
        self.store = store
        self.cooldown_ms = cooldown_ms

    def observe(
        self,
        symbol: str,
        timeframe: str,
        classification: Classification,
        indicators: IndicatorResult,
        macro_status: str,
    ) -> None:
        state = self.store.state_for(symbol, timeframe)
        state.current_label = classification.label
        state.current_emoji = classification.emoji
        state.current_price = indicators.current_price
        state.slope = indicators.slope
        state.macro_status = macro_status

    def evaluate(
        self,
        symbol: str,
        timeframe: str,
        classification: Classification,
        macro: MacroTrend,
        candle_time_ms: int,
        now_ms: int,
    ) -> AlertDecision:
        signal = classification.terrain
        if signal is None:
            return AlertDecision(fire=False, reason="no_terrain")

        if not is_macro_confirmed(classification, macro):
            return AlertDecision(fire=False, reason="no_macro", signal=signal)

        state = self.store.state_for(symbol, timeframe)

        if state.last_candle_time_ms == candle_time_ms:
            return AlertDecision(fire=False, reason="same_candle", signal=signal)

        if state.last_alert_time_ms is not None and now_ms - state.last_alert_time_ms < self.cooldown_ms:
            state.last_candle_time_ms = candle_time_ms
            state.last_entry_type = signal
            logger.debug("⏳ %s %s: %s terrain in cooldown", symbol, timeframe, signal.value)
            return AlertDecision(fire=False, reason="cooldown", signal=signal)

        state.last_signal = signal
        state.last_candle_time_ms = candle_time_ms
        state.last_alert_time_ms = now_ms
        state.last_entry_type = signal
        return AlertDecision(fire=True, reason="fired", signal=signal)
