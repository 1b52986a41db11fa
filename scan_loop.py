# scan_loop.py
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional, Protocol, Tuple

from engine.alert_evaluator import AlertEvaluator
from engine.market_summary import asleep_summary, build_market_summary, paused_summary
from engine.schedule import ScheduleTransition, WeeklySchedule
from engine.state_store import StateStore
from engine.terrain import ConsolidatedAlertDetector, TerrainTracker
from models import (
    CandleSeries,
    Classification,
    ConsolidatedAlert,
    Direction,
    IndicatorResult,
    InsufficientData,
    MacroTrend,
    Notification,
)
from setups.classifier import classify_state, is_macro_confirmed, macro_status_text, macro_text
from setups.momentum import calculate_indicators, compute_macro_trend
from signal_formatter import (
    SHUTDOWN_TEXT,
    WAKEUP_TEXT,
    format_alert,
    format_consolidated_alert,
)
from signal_router import SignalRouter

logger = logging.getLogger(__name__)


class CandleProvider(Protocol):
    def fetch(self, symbol: str, timeframe: str, limit: int = ...) -> Optional[CandleSeries]:
        ...


def now_ms() -> int:
    return int(time.time() * 1000)


class ScanLoop:
    """
    Drives one full market pass per tick.

    Ticks never overlap: the next one starts `poll_sec` after the previous one
    finished. Inside a tick every fetch is sequential and preceded by
    `request_delay_sec`. Clock and sleep are injectable so tests can run many
    ticks without waiting.
    """

    def __init__(
        self,
        store: StateStore,
        source: CandleProvider,
        router: SignalRouter,
        symbols: List[str],
        timeframes: List[str],
        macro_timeframe: str = "4h",
        tz: str = "America/Lima",
        poll_sec: float = 180.0,
        request_delay_sec: float = 0.25,
        candle_limit: int = 100,
        clock: Callable[[], int] = now_ms,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.source = source
        self.router = router
        self.symbols = list(symbols)
        self.timeframes = list(timeframes)
        self.macro_timeframe = macro_timeframe
        self.poll_sec = poll_sec
        self.request_delay_sec = request_delay_sec
        self.candle_limit = candle_limit
        self.clock = clock
        self.sleep = sleep

        self.evaluator = AlertEvaluator(store)
        self.tracker = TerrainTracker(store)
        self.detector = ConsolidatedAlertDetector(store, self.tracker, tz=tz)
        self.schedule = WeeklySchedule(store, tz=tz)

        self._stopped = threading.Event()

        for symbol, timeframe in self.pairs:
            store.state_for(symbol, timeframe)

    @property
    def pairs(self) -> List[Tuple[str, str]]:
        return [(s, tf) for s in self.symbols for tf in self.timeframes]

    # ---------- scheduling ----------

    def run(self, max_ticks: Optional[int] = None) -> None:
        logger.info("🟢 Market scan started: %d pairs every %ss", len(self.pairs), self.poll_sec)
        ticks = 0
        while not self._stopped.is_set():
            try:
                self.run_tick()
            except Exception as e:
                logger.exception("❌ Tick failed: %s", e)
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            self.sleep(self.poll_sec)

    def stop(self) -> None:
        self._stopped.set()

    def run_tick(self) -> str:
        """
        One pass. Returns "paused", "asleep" or "scanned".
        """
        now = self.clock()

        if not self.store.system_active:
            logger.info("⏸ System paused (admin switch OFF)")
            self.store.summary = paused_summary(self.store.summary)
            self.store.commit(now)
            return "paused"

        transition = self.schedule.check(now)
        if transition == ScheduleTransition.SHUTDOWN:
            logger.info("💤 Bot switched off automatically (weekend)")
            self.router.route(Notification(SHUTDOWN_TEXT, "schedule"))
        elif transition == ScheduleTransition.WAKEUP:
            logger.info("☀️ Bot switched on automatically (Monday)")
            self.router.route(Notification(WAKEUP_TEXT, "schedule"))

        if self.store.is_shutdown:
            self.store.summary = asleep_summary(self.store.summary)
            self.store.commit(now)
            return "asleep"

        self._scan(now)
        self.store.commit(now)
        return "scanned"

    # ---------- market pass ----------

    def _scan(self, now: int) -> None:
        logger.info("🔎 Scanning %d pairs...", len(self.pairs))
        self.tracker.prune(now)

        weights: List[int] = []
        for symbol, timeframe in self.pairs:
            try:
                weight = self._process_pair(symbol, timeframe, now)
            except Exception as e:
                logger.error("❌ %s %s: %s", symbol, timeframe, e)
                continue
            if weight is not None:
                weights.append(weight)

        self.store.summary = build_market_summary(
            weights,
            instrument_count=len(self.pairs),
            long_terrain=len(self.tracker.active(Direction.LONG, now)),
            short_terrain=len(self.tracker.active(Direction.SHORT, now)),
        )

        consolidated = self.detector.check(now)
        if consolidated:
            self._fire_consolidated(consolidated, now)

    def _process_pair(self, symbol: str, timeframe: str, now: int) -> Optional[int]:
        series = self._fetch(symbol, timeframe)
        if series is None:
            return None

        outcome = calculate_indicators(series.closes, series.highs, series.lows)
        if isinstance(outcome, InsufficientData):
            logger.warning("⚠️ %s %s: insufficient data (%s)", symbol, timeframe, outcome.reason)
            return None

        classification = classify_state(outcome.slope, outcome.curve_trend)

        macro = MacroTrend.NEUTRAL
        if classification.terrain:
            macro = self._macro_trend(symbol)

        self.evaluator.observe(
            symbol, timeframe, classification, outcome,
            macro_status_text(classification, macro, self.macro_timeframe),
        )

        if is_macro_confirmed(classification, macro):
            self.tracker.track(classification.terrain, symbol, now)

        decision = self.evaluator.evaluate(
            symbol, timeframe, classification, macro, series.last_close_time_ms, now,
        )
        if decision.fire:
            self._fire_alert(symbol, timeframe, classification, outcome, macro, now)

        return classification.weight

    def _fetch(self, symbol: str, timeframe: str) -> Optional[CandleSeries]:
        self.sleep(self.request_delay_sec)
        try:
            return self.source.fetch(symbol, timeframe, self.candle_limit)
        except Exception as e:
            logger.error("❌ %s %s: fetch failed: %s", symbol, timeframe, e)
            return None

    def _macro_trend(self, symbol: str) -> MacroTrend:
        series = self._fetch(symbol, self.macro_timeframe)
        if series is None:
            return MacroTrend.NEUTRAL
        return compute_macro_trend(calculate_indicators(series.closes, series.highs, series.lows))

    # ---------- side effects ----------

    def _fire_alert(
        self,
        symbol: str,
        timeframe: str,
        classification: Classification,
        indicators: IndicatorResult,
        macro: MacroTrend,
        now: int,
    ) -> None:
        macro_line = macro_text(macro, self.macro_timeframe)
        text = format_alert(
            symbol, timeframe, indicators.current_price,
            classification.label, classification.emoji, macro_line,
        )
        logger.info("🚀 Alert %s %s: %s", symbol, timeframe, classification.label)
        sent = self.router.route(Notification(text, "alert", symbol=symbol))

        self.store.record_history(
            created_at_ms=now,
            symbol=symbol,
            timeframe=timeframe,
            signal=classification.terrain,
            label=classification.label,
            emoji=classification.emoji,
            slope=indicators.slope,
            price=indicators.current_price,
            macro_text=macro_line,
            sent_messages=tuple(sent),
        )

    def _fire_consolidated(self, alert: ConsolidatedAlert, now: int) -> None:
        sent = self.router.route(Notification(format_consolidated_alert(alert), "consolidated"))
        self.store.record_history(
            created_at_ms=now,
            symbol="MARKET",
            timeframe="Global",
            signal=alert.direction,
            label=f"Consolidated {alert.direction.value}",
            emoji="🚀" if alert.direction == Direction.LONG else "🔻",
            sent_messages=tuple(sent),
            is_consolidated=True,
            consolidated_date_str=alert.date_str,
            consolidated_dominants=alert.dominants,
        )
