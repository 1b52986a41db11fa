# utils/timeframes.py
import ccxt


def tf_seconds(exchange: ccxt.Exchange, timeframe: str) -> int:
    """
    Timeframe length in seconds ("2h" -> 7200), as the exchange parses it.
    """
    return exchange.parse_timeframe(timeframe)


def ts_close_from_open(t_open_ms: int, timeframe_sec: int) -> int:
    return t_open_ms + timeframe_sec * 1000
