from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple, Union


class Direction(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class CurveTrend(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    NEUTRAL = "NEUTRAL"


class MacroTrend(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


RGB = Tuple[int, int, int]


# ==========================
# MARKET DATA
# ==========================

@dataclass(frozen=True)
class CandleSeries:
    """
    Candle history of one instrument on one timeframe, most recent last.
    Owned by the tick that fetched it.
    """
    symbol: str
    timeframe: str
    closes: Tuple[float, ...]
    highs: Tuple[float, ...]
    lows: Tuple[float, ...]
    close_times_ms: Tuple[int, ...]

    def __len__(self) -> int:
        return len(self.closes)

    @property
    def last_close_time_ms(self) -> int:
        return self.close_times_ms[-1]


@dataclass(frozen=True)
class IndicatorResult:
    smoothed_value: float
    slope: float
    curve_trend: CurveTrend
    current_price: float
    # first differences of the smoothed series, newest first
    slope_history: Tuple[float, ...] = ()


@dataclass(frozen=True)
class InsufficientData:
    reason: str


IndicatorOutcome = Union[IndicatorResult, InsufficientData]


@dataclass(frozen=True)
class Classification:
    label: str
    emoji: str
    weight: int
    terrain: Optional[Direction] = None


# ==========================
# ALERT STATE
# ==========================

@dataclass
class InstrumentAlertState:
    """
    Alert bookkeeping for one (symbol, timeframe) pair.
    Only the alert evaluator writes to it.
    """
    symbol: str
    timeframe: str
    last_signal: Optional[Direction] = None
    last_candle_time_ms: Optional[int] = None
    last_alert_time_ms: Optional[int] = None
    last_entry_type: Optional[Direction] = None
    macro_status: str = ""

    # informational, shown in status snapshots
    current_label: Optional[str] = None
    current_emoji: Optional[str] = None
    current_price: Optional[float] = None
    slope: Optional[float] = None

    @property
    def key(self) -> str:
        return alert_key(self.symbol, self.timeframe)


def alert_key(symbol: str, timeframe: str) -> str:
    return f"{symbol}_{timeframe}"


@dataclass(frozen=True)
class AlertDecision:
    fire: bool
    reason: str  # no_terrain | no_macro | same_candle | cooldown | fired
    signal: Optional[Direction] = None


@dataclass
class TerrainEntry:
    symbol: str
    timestamp_ms: int


@dataclass
class ConsolidatedAlertState:
    last_fired_at_ms: Dict[Direction, int] = field(
        default_factory=lambda: {Direction.LONG: 0, Direction.SHORT: 0}
    )
    last_general_alert_time_ms: int = 0


@dataclass(frozen=True)
class ConsolidatedAlert:
    direction: Direction
    symbols: Tuple[str, ...]
    date_str: str

    @property
    def dominants(self) -> str:
        return ", ".join(s.split("/")[0] for s in self.symbols)


# ==========================
# SUMMARY / HISTORY
# ==========================

@dataclass(frozen=True)
class MarketSummary:
    gauge_angle: float
    color: RGB
    dominant_state_label: str
    terrain_note: str
    saturation: float
    opacity: float
    fire_intensity: float

    @property
    def color_css(self) -> str:
        r, g, b = self.color
        return f"rgb({r}, {g}, {b})"


INITIAL_SUMMARY = MarketSummary(
    gauge_angle=-90.0,
    color=(156, 163, 175),
    dominant_state_label="Calculating...",
    terrain_note="Indecision (no trade)",
    saturation=0.0,
    opacity=0.5,
    fire_intensity=0.0,
)


@dataclass(frozen=True)
class SentMessage:
    chat_id: str
    message_id: int


@dataclass(frozen=True)
class Notification:
    """
    Outgoing text. `symbol` restricts delivery to chats subscribed to it.
    """
    text: str
    kind: str  # alert | consolidated | schedule | admin
    symbol: Optional[str] = None


@dataclass
class HistoryEntry:
    """
    One fired alert, individual or consolidated.
    Everything except `observation` is fixed once the entry is recorded.
    """
    id: int
    created_at_ms: int
    symbol: str
    timeframe: str
    signal: Direction
    label: str
    emoji: str
    slope: float = 0.0
    price: Optional[float] = None
    macro_text: str = ""
    sent_messages: Tuple[SentMessage, ...] = ()
    observation: Optional[str] = None
    is_consolidated: bool = False
    consolidated_date_str: Optional[str] = None
    consolidated_dominants: Optional[str] = None
