# admin.py
from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from engine.state_store import StateStore
from models import CandleSeries, Classification, HistoryEntry, InsufficientData, MacroTrend, Notification
from notifier import RecipientPreferences
from scan_loop import CandleProvider
from setups.classifier import classify_state, macro_text
from setups.momentum import calculate_indicators, compute_macro_trend
from signal_formatter import (
    format_admin_broadcast,
    format_history_entry,
    format_manual_report,
    format_market_report,
)
from signal_router import SignalRouter

logger = logging.getLogger(__name__)

SYMBOL_ALIASES = {"RNDR": "RENDER"}


class AdminAuthError(Exception):
    pass


class UnknownSignalError(LookupError):
    pass


class UnknownSymbolError(LookupError):
    pass


class UnknownRecipientError(LookupError):
    pass


class ReportUnavailableError(Exception):
    pass


def check_admin_password(password: Optional[str], expected: str) -> None:
    """
    The only authorization check of the admin surface.
    A single shared password; replace this function for real credentials.
    """
    if not expected or password != expected:
        raise AdminAuthError("Unauthorized")


class MessageEditor(Protocol):
    def edit_message(
        self,
        chat_id: str,
        message_id: int,
        text: str,
        sent_at_ms: Optional[int] = None,
    ) -> bool:
        ...


@dataclass(frozen=True)
class SymbolReport:
    symbol: str
    timeframe: str
    price: float
    slope: float
    classification: Classification
    macro: MacroTrend
    text: str


@dataclass(frozen=True)
class MarketReport:
    dominant_state: str
    macro: MacroTrend
    votes: Dict[MacroTrend, int] = field(default_factory=dict)
    text: str = ""


class AdminService:
    """
    Admin actions and on-demand reports.
    Reports read market data directly and never touch cooldown or terrain state.
    """

    def __init__(
        self,
        store: StateStore,
        source: CandleProvider,
        router: SignalRouter,
        editor: MessageEditor,
        symbols: List[str],
        timeframe: str,
        admin_password: str,
        macro_timeframe: str = "4h",
        large_caps: Optional[List[str]] = None,
        quote: str = "USDT",
        candle_limit: int = 100,
        recipients: Optional[RecipientPreferences] = None,
        request_delay_sec: float = 0.25,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.source = source
        self.router = router
        self.editor = editor
        self.symbols = list(symbols)
        self.timeframe = timeframe
        self.admin_password = admin_password
        self.macro_timeframe = macro_timeframe
        self.large_caps = list(large_caps or self.symbols[:4])
        self.quote = quote
        self.candle_limit = candle_limit
        self.recipients = recipients if recipients is not None else RecipientPreferences()
        self.request_delay_sec = request_delay_sec
        self.sleep = sleep

    # ---------- admin actions ----------

    def set_system_active(self, password: Optional[str], active: bool) -> bool:
        check_admin_password(password, self.admin_password)
        self.store.set_system_active(active)
        logger.info("🔌 System %s by admin", "ENABLED" if active else "DISABLED")
        return self.store.system_active

    def add_observation(self, password: Optional[str], entry_id: int, observation: str) -> HistoryEntry:
        """
        Attach an observation to a sent alert and edit every delivered copy.
        """
        check_admin_password(password, self.admin_password)

        entry = self.store.annotate_history(entry_id, observation)
        if entry is None:
            raise UnknownSignalError(f"Signal {entry_id} not found")

        logger.info("📝 Signal %s annotated: %s", entry_id, observation)
        text = format_history_entry(entry)
        for handle in entry.sent_messages:
            self.editor.edit_message(handle.chat_id, handle.message_id, text, sent_at_ms=entry.created_at_ms)
        return entry

    def broadcast_message(self, password: Optional[str], message: str) -> int:
        check_admin_password(password, self.admin_password)
        if not message or not message.strip():
            raise ValueError("Empty message")

        sent = self.router.route(Notification(format_admin_broadcast(message), "admin"))
        logger.info("📢 Admin message delivered to %d chats", len(sent))
        return len(sent)

    # ---------- recipients ----------

    def list_recipients(self, password: Optional[str]) -> Dict[str, Optional[List[str]]]:
        """Known chats and their subscribed symbols (None = every symbol)."""
        check_admin_password(password, self.admin_password)
        return self.recipients.all()

    def update_preferences(self, password: Optional[str], chat_id: str, symbols: Iterable[str]) -> List[str]:
        """
        Restrict a known chat to the given symbols. General messages still reach it.
        """
        check_admin_password(password, self.admin_password)
        chat_id = str(chat_id).strip()
        if chat_id not in self.recipients:
            raise UnknownRecipientError(f"Chat {chat_id} not found")

        normalized = list(dict.fromkeys(self.normalize_symbol(s) for s in symbols if s.strip()))
        unknown = [s for s in normalized if s not in self.symbols]
        if unknown:
            raise UnknownSymbolError(f"Symbols not monitored: {', '.join(unknown)}")

        self.recipients.set(chat_id, normalized)
        logger.info("👤 Chat %s now follows: %s", chat_id, ", ".join(normalized) or "nothing")
        return normalized

    def delete_recipient(self, password: Optional[str], chat_id: str) -> None:
        check_admin_password(password, self.admin_password)
        chat_id = str(chat_id).strip()
        if not self.recipients.remove(chat_id):
            raise UnknownRecipientError(f"Chat {chat_id} not found")
        logger.info("🗑️ Chat %s removed from recipients", chat_id)

    # ---------- reports ----------

    def normalize_symbol(self, raw: str) -> str:
        base = raw.strip().upper()
        if "/" in base:
            return base
        if base.endswith(self.quote):
            base = base[: -len(self.quote)]
        base = SYMBOL_ALIASES.get(base, base)
        return f"{base}/{self.quote}"

    def report_symbol(self, raw_symbol: str) -> SymbolReport:
        symbol = self.normalize_symbol(raw_symbol)
        if symbol not in self.symbols:
            raise UnknownSymbolError(f"Symbol not monitored: {symbol}")

        try:
            series = self._fetch(symbol, self.timeframe)
        except Exception as e:
            raise ReportUnavailableError(f"Could not fetch data for {symbol}: {e}") from e
        if series is None:
            raise ReportUnavailableError(f"Could not fetch data for {symbol}")

        outcome = calculate_indicators(series.closes, series.highs, series.lows)
        if isinstance(outcome, InsufficientData):
            raise ReportUnavailableError(f"Could not compute indicators for {symbol}: {outcome.reason}")

        classification = classify_state(outcome.slope, outcome.curve_trend)
        macro = self._macro_trend(symbol)
        text = format_manual_report(
            symbol, self.timeframe, outcome.current_price, classification,
            macro_text(macro, self.macro_timeframe, show_neutral=True),
        )
        return SymbolReport(
            symbol=symbol,
            timeframe=self.timeframe,
            price=outcome.current_price,
            slope=outcome.slope,
            classification=classification,
            macro=macro,
            text=text,
        )

    def report_market(self) -> MarketReport:
        """
        Dominant state of the last tick plus the macro vote of the large caps:
        a side wins only with more votes than each of the other two.
        """
        votes = Counter({trend: 0 for trend in MacroTrend})
        for symbol in self.large_caps:
            votes[self._macro_trend(symbol)] += 1

        macro = MacroTrend.NEUTRAL
        for side in (MacroTrend.BULLISH, MacroTrend.BEARISH):
            others = [votes[t] for t in MacroTrend if t != side]
            if all(votes[side] > n for n in others):
                macro = side

        dominant = self.store.snapshot().summary.dominant_state_label
        text = format_market_report(dominant, macro_text(macro, self.macro_timeframe, show_neutral=True))
        return MarketReport(dominant_state=dominant, macro=macro, votes=dict(votes), text=text)

    def _macro_trend(self, symbol: str) -> MacroTrend:
        try:
            series = self._fetch(symbol, self.macro_timeframe)
        except Exception as e:
            logger.error("❌ %s %s: macro fetch failed: %s", symbol, self.macro_timeframe, e)
            return MacroTrend.NEUTRAL
        if series is None:
            return MacroTrend.NEUTRAL
        return compute_macro_trend(calculate_indicators(series.closes, series.highs, series.lows))

    def _fetch(self, symbol: str, timeframe: str) -> Optional[CandleSeries]:
        self.sleep(self.request_delay_sec)
        return self.source.fetch(symbol, timeframe, self.candle_limit)
