from datetime import datetime
from zoneinfo import ZoneInfo

from models import CandleSeries, CurveTrend, IndicatorResult, Notification, SentMessage

HOUR_MS = 60 * 60 * 1000
LIMA = ZoneInfo("America/Lima")


def lima_ms(year, month, day, hour=12, minute=0) -> int:
    return int(datetime(year, month, day, hour, minute, tzinfo=LIMA).timestamp() * 1000)


# Wednesday noon in Lima, well inside the trading week
WEDNESDAY_NOON = lima_ms(2024, 1, 10, 12, 0)


def indicator(slope=0.0, curve=CurveTrend.NEUTRAL, price=100.0, history=None) -> IndicatorResult:
    return IndicatorResult(
        smoothed_value=50.0,
        slope=slope,
        curve_trend=curve,
        current_price=price,
        slope_history=tuple(history) if history is not None else (slope, slope, slope),
    )


BULLISH_MACRO = indicator(slope=0.5, curve=CurveTrend.UP, history=(0.5, 0.4, 0.3))
BEARISH_MACRO = indicator(slope=-0.5, curve=CurveTrend.DOWN, history=(-0.5, -0.4, -0.3))
MIXED_MACRO = indicator(slope=0.5, curve=CurveTrend.UP, history=(0.5, -0.4, 0.3))
LONG_TERRAIN_IND = indicator(slope=0.02, curve=CurveTrend.DOWN)
SHORT_TERRAIN_IND = indicator(slope=-0.02, curve=CurveTrend.UP)
INDECISION_IND = indicator(slope=0.0, curve=CurveTrend.NEUTRAL)
LONG_EUPHORIA_IND = indicator(slope=2.0, curve=CurveTrend.UP)


class FakeMarket:
    """
    Candle source whose series carry an index in their close prices,
    paired with a calculator that maps that index back to a planned outcome.
    """

    def __init__(self):
        self.outcomes = {}
        self.candle_times = {}
        self.failing = set()
        self.calls = []

    def set(self, symbol, timeframe, outcome, candle_time_ms=1_000):
        self.outcomes[(symbol, timeframe)] = outcome
        self.candle_times[(symbol, timeframe)] = candle_time_ms

    def fetch(self, symbol, timeframe, limit=100):
        key = (symbol, timeframe)
        self.calls.append(key)
        if key in self.failing:
            raise RuntimeError(f"network down for {symbol}")
        if key not in self.outcomes:
            return None
        marker = float(list(self.outcomes).index(key))
        last = self.candle_times[key]
        return CandleSeries(
            symbol=symbol,
            timeframe=timeframe,
            closes=(marker,) * 60,
            highs=(marker,) * 60,
            lows=(marker,) * 60,
            close_times_ms=tuple(last - (59 - i) * HOUR_MS for i in range(60)),
        )

    def calculate(self, closes, highs, lows):
        key = list(self.outcomes)[int(closes[0])]
        return self.outcomes[key]


class RecordingHandler:
    """Router handler that records notifications and hands back fake message ids."""

    def __init__(self, recipients=("100", "200")):
        self.recipients = recipients
        self.notifications = []
        self._next_id = 1

    def __call__(self, notification: Notification):
        self.notifications.append(notification)
        sent = []
        for chat_id in self.recipients:
            sent.append(SentMessage(chat_id=chat_id, message_id=self._next_id))
            self._next_id += 1
        return sent

    def texts(self, kind=None):
        return [n.text for n in self.notifications if kind is None or n.kind == kind]


class FakeEditor:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.edits = []

    def edit_message(self, chat_id, message_id, text, sent_at_ms=None):
        if chat_id in self.failing:
            return False
        self.edits.append((chat_id, message_id, text, sent_at_ms))
        return True


class FakeClock:
    def __init__(self, start_ms=WEDNESDAY_NOON):
        self.now = start_ms

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms
