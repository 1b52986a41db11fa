# engine/terrain.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from models import ConsolidatedAlert, Direction, TerrainEntry

from .state_store import StateStore

logger = logging.getLogger(__name__)

TERRAIN_WINDOW_MS = 60 * 60 * 1000
CONSOLIDATED_MIN_INSTRUMENTS = 3
CONSOLIDATED_DIRECTION_COOLDOWN_MS = 60 * 60 * 1000
CONSOLIDATED_GENERAL_COOLDOWN_MS = 12 * 60 * 60 * 1000


class TerrainTracker:
    """
    Instruments seen in a macro-confirmed terrain during the last hour,
    one list per direction.
    """

    def __init__(self, store: StateStore, window_ms: int = TERRAIN_WINDOW_MS):
        self.store = store
        self.window_ms = window_ms

    def prune(self, now_ms: int) -> None:
        for direction, entries in self.store.terrain.items():
            entries[:] = [e for e in entries if now_ms - e.timestamp_ms < self.window_ms]

    def track(self, direction: Direction, symbol: str, now_ms: int) -> None:
        entries = self.store.terrain[direction]
        for entry in entries:
            if entry.symbol == symbol:
                entry.timestamp_ms = now_ms
                return
        entries.append(TerrainEntry(symbol=symbol, timestamp_ms=now_ms))

    def active(self, direction: Direction, now_ms: int) -> List[TerrainEntry]:
        return [
            e for e in self.store.terrain[direction]
            if now_ms - e.timestamp_ms < self.window_ms
        ]


class ConsolidatedAlertDetector:
    """
    Fires one market-wide alert when enough instruments share the same terrain.
    Runs once per tick after every instrument has been processed.
    """

    def __init__(
        self,
        store: StateStore,
        tracker: TerrainTracker,
        tz: str = "America/Lima",
        min_instruments: int = CONSOLIDATED_MIN_INSTRUMENTS,
        direction_cooldown_ms: int = CONSOLIDATED_DIRECTION_COOLDOWN_MS,
        general_cooldown_ms: int = CONSOLIDATED_GENERAL_COOLDOWN_MS,
    ):
        self.store = store
        self.tracker = tracker
        self.tz = tz
        self.min_instruments = min_instruments
        self.direction_cooldown_ms = direction_cooldown_ms
        self.general_cooldown_ms = general_cooldown_ms

    def check(self, now_ms: int) -> Optional[ConsolidatedAlert]:
        state = self.store.consolidated

        # any consolidated alert blocks both directions for 12h
        if state.last_general_alert_time_ms and now_ms - state.last_general_alert_time_ms < self.general_cooldown_ms:
            return None

        for direction in (Direction.LONG, Direction.SHORT):
            hits = self.tracker.active(direction, now_ms)
            symbols = list(dict.fromkeys(e.symbol for e in hits))
            if len(symbols) < self.min_instruments:
                continue
            if now_ms - state.last_fired_at_ms.get(direction, 0) <= self.direction_cooldown_ms:
                continue

            state.last_fired_at_ms[direction] = now_ms
            state.last_general_alert_time_ms = now_ms

            alert = ConsolidatedAlert(
                direction=direction,
                symbols=tuple(symbols),
                date_str=datetime.fromtimestamp(now_ms / 1000, ZoneInfo(self.tz)).strftime("%d/%m/%y"),
            )
            logger.info("🚨 Consolidated %s terrain: %s", direction.value, alert.dominants)
            return alert

        return None
