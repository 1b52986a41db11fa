import pytest

from models import CandleSeries, CurveTrend, Direction, InsufficientData, MacroTrend
from scan_loop import ScanLoop
from setups.momentum import calculate_indicators, compute_macro_trend
from signal_formatter import SHUTDOWN_TEXT, WAKEUP_TEXT

from helpers import (
    BEARISH_MACRO,
    BULLISH_MACRO,
    HOUR_MS,
    INDECISION_IND,
    LONG_EUPHORIA_IND,
    LONG_TERRAIN_IND,
    FakeClock,
    lima_ms,
)


@pytest.fixture
def sleeps():
    return []


def make_loop(store, market, router, clock, sleeps, symbols=("BTC/USDT",), timeframes=("2h",)):
    return ScanLoop(
        store,
        market,
        router,
        symbols=list(symbols),
        timeframes=list(timeframes),
        clock=clock,
        sleep=sleeps.append,
    )


def test_confirmed_terrain_fires_alert_and_records_history(store, market, router, handler, clock, sleeps):
    market.set("BTC/USDT", "2h", LONG_TERRAIN_IND, candle_time_ms=5_000)
    market.set("BTC/USDT", "4h", BULLISH_MACRO)
    loop = make_loop(store, market, router, clock, sleeps)

    assert loop.run_tick() == "scanned"

    alerts = handler.texts("alert")
    assert len(alerts) == 1
    assert "BTC/USDT (2h)" in alerts[0]
    assert "LONG terrain 🍏" in alerts[0]
    assert "Bullish" in alerts[0]
    assert handler.notifications[0].symbol == "BTC/USDT"

    entry = store.snapshot().history[0]
    assert entry.symbol == "BTC/USDT"
    assert entry.signal == Direction.LONG
    assert [m.chat_id for m in entry.sent_messages] == ["100", "200"]

    state = store.snapshot().alert_states["BTC/USDT_2h"]
    assert state.current_label == "LONG terrain"
    assert state.macro_status == "Macro confirmation (4h) 🚀"
    assert state.last_alert_time_ms == clock.now


def test_same_candle_does_not_fire_twice(store, market, router, handler, clock, sleeps):
    market.set("BTC/USDT", "2h", LONG_TERRAIN_IND, candle_time_ms=5_000)
    market.set("BTC/USDT", "4h", BULLISH_MACRO)
    loop = make_loop(store, market, router, clock, sleeps)

    for _ in range(3):
        loop.run_tick()
        clock.advance(3 * 60_000)

    assert len(handler.texts("alert")) == 1
    assert len(store.history) == 1


def test_unconfirmed_terrain_is_silent(store, market, router, handler, clock, sleeps):
    market.set("BTC/USDT", "2h", LONG_TERRAIN_IND)
    market.set("BTC/USDT", "4h", BEARISH_MACRO)
    loop = make_loop(store, market, router, clock, sleeps)

    loop.run_tick()

    assert handler.notifications == []
    assert store.terrain[Direction.LONG] == []
    assert store.snapshot().alert_states["BTC/USDT_2h"].macro_status.startswith("No macro")


def test_macro_fetched_only_for_terrain(store, market, router, clock, sleeps):
    market.set("BTC/USDT", "2h", LONG_EUPHORIA_IND)
    market.set("BTC/USDT", "4h", BULLISH_MACRO)
    loop = make_loop(store, market, router, clock, sleeps)

    loop.run_tick()

    assert market.calls == [("BTC/USDT", "2h")]


def test_paused_tick_does_no_work(store, market, router, handler, clock, sleeps):
    market.set("BTC/USDT", "2h", LONG_TERRAIN_IND)
    loop = make_loop(store, market, router, clock, sleeps)
    store.set_system_active(False)

    assert loop.run_tick() == "paused"

    assert market.calls == []
    assert handler.notifications == []
    assert store.snapshot().summary.dominant_state_label == "SYSTEM DISABLED 🛑"


def test_weekend_notifies_once_and_wakes_up(store, market, router, handler, sleeps):
    market.set("BTC/USDT", "2h", INDECISION_IND)
    clock = FakeClock(lima_ms(2024, 1, 13, 10, 0))
    loop = make_loop(store, market, router, clock, sleeps)

    assert loop.run_tick() == "asleep"
    clock.advance(HOUR_MS)
    assert loop.run_tick() == "asleep"

    assert handler.texts("schedule") == [SHUTDOWN_TEXT]
    assert market.calls == []
    assert store.snapshot().is_shutdown
    assert store.snapshot().summary.dominant_state_label.startswith("SLEEP MODE")

    clock.now = lima_ms(2024, 1, 15, 0, 1)
    assert loop.run_tick() == "scanned"
    assert handler.texts("schedule") == [SHUTDOWN_TEXT, WAKEUP_TEXT]
    assert market.calls == [("BTC/USDT", "2h")]


def test_failing_pair_does_not_abort_tick(store, market, router, handler, clock, sleeps):
    market.set("ETH/USDT", "2h", LONG_TERRAIN_IND)
    market.set("BTC/USDT", "2h", LONG_TERRAIN_IND)
    market.set("BTC/USDT", "4h", BULLISH_MACRO)
    market.failing.add(("ETH/USDT", "2h"))
    loop = make_loop(store, market, router, clock, sleeps, symbols=("ETH/USDT", "BTC/USDT"))

    assert loop.run_tick() == "scanned"

    assert len(handler.texts("alert")) == 1
    assert store.history[0].symbol == "BTC/USDT"


def test_insufficient_data_is_skipped(store, market, router, handler, clock, sleeps):
    market.set("BTC/USDT", "2h", InsufficientData("only 30 candles"))
    market.set("ETH/USDT", "2h", LONG_EUPHORIA_IND)
    loop = make_loop(store, market, router, clock, sleeps, symbols=("BTC/USDT", "ETH/USDT"))

    loop.run_tick()

    summary = store.snapshot().summary
    # one euphoria weight over two instruments
    assert summary.gauge_angle == -45
    assert summary.dominant_state_label == "LONG euphoria"
    assert store.snapshot().alert_states["BTC/USDT_2h"].current_label is None


def test_consolidated_alert_after_three_instruments(store, market, router, handler, clock, sleeps):
    symbols = ("BTC/USDT", "ETH/USDT", "SOL/USDT")
    for symbol in symbols:
        market.set(symbol, "2h", LONG_TERRAIN_IND)
        market.set(symbol, "4h", BULLISH_MACRO)
    loop = make_loop(store, market, router, clock, sleeps, symbols=symbols)

    loop.run_tick()

    assert len(handler.texts("alert")) == 3
    consolidated = handler.texts("consolidated")
    assert len(consolidated) == 1
    assert "Dominant: BTC, ETH, SOL" in consolidated[0]

    entry = store.history[0]
    assert entry.is_consolidated
    assert entry.symbol == "MARKET"
    assert entry.consolidated_dominants == "BTC, ETH, SOL"
    assert store.snapshot().summary.dominant_state_label == "LONG terrain"

    clock.advance(10 * 60_000)
    loop.run_tick()
    assert len(handler.texts("consolidated")) == 1


def test_every_fetch_is_throttled(store, market, router, clock, sleeps):
    market.set("BTC/USDT", "2h", INDECISION_IND)
    loop = make_loop(store, market, router, clock, sleeps)

    loop.run(max_ticks=2)

    assert sleeps == [0.25, 180.0, 0.25]


def test_run_survives_a_failing_tick(store, market, router, clock, sleeps):
    market.set("BTC/USDT", "2h", INDECISION_IND)
    loop = make_loop(store, market, router, clock, sleeps)

    def boom(now_ms):
        raise RuntimeError("detector exploded")

    loop.detector.check = boom
    loop.run(max_ticks=2)

    assert market.calls == [("BTC/USDT", "2h"), ("BTC/USDT", "2h")]


def test_stop_ends_the_loop(store, market, router, clock):
    market.set("BTC/USDT", "2h", INDECISION_IND)
    loop = make_loop(store, market, router, clock, [])
    loop.sleep = lambda seconds: loop.stop()

    loop.run()

    assert market.calls == [("BTC/USDT", "2h")]


class CandleFeed:
    """Serves fixed close prices per timeframe, as an exchange would."""

    def __init__(self, closes_by_timeframe):
        self.closes_by_timeframe = closes_by_timeframe

    def fetch(self, symbol, timeframe, limit=100):
        closes = tuple(self.closes_by_timeframe[timeframe])
        start = 1_700_000_000_000
        return CandleSeries(
            symbol=symbol,
            timeframe=timeframe,
            closes=closes,
            highs=closes,
            lows=closes,
            close_times_ms=tuple(start + (i + 1) * 2 * HOUR_MS for i in range(len(closes))),
        )


def climb(start, steps, step):
    return [start + step * (i + 1) for i in range(steps)]


def test_long_terrain_from_raw_candles(store, router, handler, clock):
    # a long rally, a nine-candle pullback that bends momentum down, then a spike
    # that leaves the smoothed slope almost flat
    closes_2h = [100.0] + climb(100.0, 70, 1.0)
    closes_2h += climb(closes_2h[-1], 9, -1.0)
    closes_2h.append(closes_2h[-1] + 10_000.0)
    # falling then recovering: every recent smoothed slope is positive
    closes_4h = [200.0] + climb(200.0, 40, -1.0)
    closes_4h += climb(closes_4h[-1], 40, 1.0)

    outcome = calculate_indicators(closes_2h, closes_2h, closes_2h)
    assert outcome.curve_trend == CurveTrend.DOWN
    assert abs(outcome.slope) < 0.1
    assert compute_macro_trend(calculate_indicators(closes_4h, closes_4h, closes_4h)) == MacroTrend.BULLISH

    feed = CandleFeed({"2h": closes_2h, "4h": closes_4h})
    loop = ScanLoop(store, feed, router, ["BTC/USDT"], ["2h"], clock=clock, sleep=lambda s: None)

    assert loop.run_tick() == "scanned"

    alerts = handler.texts("alert")
    assert len(alerts) == 1
    assert "LONG terrain 🍏" in alerts[0]
    assert "Bullish" in alerts[0]
    assert "$10161" in alerts[0]
    entry = store.snapshot().history[0]
    assert entry.signal == Direction.LONG
    assert entry.price == 10161.0
    assert store.snapshot().terrain[Direction.LONG][0].symbol == "BTC/USDT"
