# candle_source.py
from __future__ import annotations

import logging
import threading
from typing import List, Optional

import ccxt

from models import CandleSeries
from utils.timeframes import tf_seconds, ts_close_from_open

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100


class CandleFetchError(Exception):
    pass


def make_exchange(exchange_id: str, default_type: str = "spot", timeout_ms: int = 10000) -> ccxt.Exchange:
    exchange_class = getattr(ccxt, exchange_id)
    return exchange_class(
        {
            "enableRateLimit": True,
            "timeout": timeout_ms,
            "options": {"defaultType": default_type},
        }
    )


def futures_symbol(symbol: str) -> str:
    """BTC/USDT -> BTC/USDT:USDT (linear perpetual)."""
    if ":" in symbol or "/" not in symbol:
        return symbol
    quote = symbol.split("/")[1]
    return f"{symbol}:{quote}"


class CandleSource:
    """
    Candle history from the primary (spot) exchange, with one retry on the
    fallback (futures) exchange for instruments the primary does not list.

    The last, still forming candle is kept: its close price is the current
    price and its close time identifies the period being evaluated.

    The scan loop and the report endpoints share the exchange objects; one
    lock keeps their calls (and ccxt's rate limiter) sequential.
    """

    def __init__(self, exchange: ccxt.Exchange, fallback: Optional[ccxt.Exchange] = None):
        self.exchange = exchange
        self.fallback = fallback
        self._lock = threading.Lock()

    def fetch(self, symbol: str, timeframe: str, limit: int = DEFAULT_LIMIT) -> Optional[CandleSeries]:
        with self._lock:
            return self._fetch_locked(symbol, timeframe, limit)

    def _fetch_locked(self, symbol: str, timeframe: str, limit: int) -> Optional[CandleSeries]:
        try:
            return self._fetch_from(self.exchange, symbol, symbol, timeframe, limit)
        except Exception as e:
            primary_error = e

        if self.fallback is None:
            logger.error("❌ %s %s: candle fetch failed: %s", symbol, timeframe, primary_error)
            return None

        try:
            series = self._fetch_from(self.fallback, symbol, futures_symbol(symbol), timeframe, limit)
            logger.info("↪️ %s %s: served by fallback exchange %s", symbol, timeframe, self.fallback.id)
            return series
        except Exception as e:
            logger.error(
                "❌ %s %s: candle fetch failed (primary: %s; fallback: %s)",
                symbol, timeframe, primary_error, e,
            )
            return None

    def _fetch_from(
        self,
        exchange: ccxt.Exchange,
        symbol: str,
        market_symbol: str,
        timeframe: str,
        limit: int,
    ) -> CandleSeries:
        raw = exchange.fetch_ohlcv(market_symbol, timeframe=timeframe, limit=limit)
        if not raw:
            raise CandleFetchError(f"empty OHLCV for {market_symbol} {timeframe}")

        timeframe_sec = tf_seconds(exchange, timeframe)

        rows: List[tuple] = []
        for row in raw:
            if len(row) < 5:
                raise CandleFetchError(f"malformed OHLCV row for {market_symbol}: {row!r}")
            t_open_ms, _o, h, l, c, *_ = row
            rows.append((ts_close_from_open(int(t_open_ms), timeframe_sec), float(c), float(h), float(l)))

        rows.sort(key=lambda r: r[0])

        return CandleSeries(
            symbol=symbol,
            timeframe=timeframe,
            closes=tuple(r[1] for r in rows),
            highs=tuple(r[2] for r in rows),
            lows=tuple(r[3] for r in rows),
            close_times_ms=tuple(r[0] for r in rows),
        )
