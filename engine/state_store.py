# engine/state_store.py
from __future__ import annotations

import copy
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Iterable, List, Optional, Tuple

from models import (
    INITIAL_SUMMARY,
    ConsolidatedAlertState,
    Direction,
    HistoryEntry,
    InstrumentAlertState,
    MarketSummary,
    TerrainEntry,
    alert_key,
)

HISTORY_LIMIT = 20


@dataclass(frozen=True)
class StoreSnapshot:
    summary: MarketSummary
    alert_states: Dict[str, InstrumentAlertState]
    history: Tuple[HistoryEntry, ...]
    terrain: Dict[Direction, Tuple[TerrainEntry, ...]]
    system_active: bool
    is_shutdown: bool
    committed_at_ms: int


class StateStore:
    """
    All mutable state of the scan loop in one place.

    The scan loop works on the live attributes and calls commit() at the end of
    every tick. Readers on other threads only get the committed snapshot.
    """

    def __init__(self, pairs: Iterable[Tuple[str, str]] = (), history_limit: int = HISTORY_LIMIT):
        self._lock = threading.Lock()

        self.alert_states: Dict[str, InstrumentAlertState] = {}
        for symbol, timeframe in pairs:
            self.state_for(symbol, timeframe)

        self.terrain: Dict[Direction, List[TerrainEntry]] = {
            Direction.LONG: [],
            Direction.SHORT: [],
        }
        self.consolidated = ConsolidatedAlertState()
        self.summary: MarketSummary = INITIAL_SUMMARY
        self.history: Deque[HistoryEntry] = deque(maxlen=history_limit)
        self.is_shutdown = False

        self._system_active = True
        self._next_history_id = 1
        self._snapshot = self._build_snapshot(0)

    # ---------- scan loop side ----------

    def state_for(self, symbol: str, timeframe: str) -> InstrumentAlertState:
        key = alert_key(symbol, timeframe)
        state = self.alert_states.get(key)
        if state is None:
            state = InstrumentAlertState(symbol=symbol, timeframe=timeframe)
            self.alert_states[key] = state
        return state

    def record_history(self, **fields) -> HistoryEntry:
        """
        Newest entry goes first; past the limit the oldest one is dropped.
        """
        with self._lock:
            entry = HistoryEntry(id=self._next_history_id, **fields)
            self._next_history_id += 1
            self.history.appendleft(entry)
        return entry

    def commit(self, now_ms: int) -> StoreSnapshot:
        with self._lock:
            self._snapshot = self._build_snapshot(now_ms)
            return self._snapshot

    def _build_snapshot(self, now_ms: int) -> StoreSnapshot:
        return StoreSnapshot(
            summary=self.summary,
            alert_states=copy.deepcopy(self.alert_states),
            history=tuple(copy.deepcopy(list(self.history))),
            terrain={d: tuple(copy.deepcopy(entries)) for d, entries in self.terrain.items()},
            system_active=self._system_active,
            is_shutdown=self.is_shutdown,
            committed_at_ms=now_ms,
        )

    # ---------- shared ----------

    @property
    def system_active(self) -> bool:
        with self._lock:
            return self._system_active

    def set_system_active(self, active: bool) -> None:
        with self._lock:
            self._system_active = bool(active)

    def snapshot(self) -> StoreSnapshot:
        with self._lock:
            return self._snapshot

    def annotate_history(self, entry_id: int, observation: str) -> Optional[HistoryEntry]:
        """
        Attach an observation to a history entry, both live and in the last
        committed snapshot, so readers see it without waiting for a tick.
        """
        with self._lock:
            target = None
            for entry in self.history:
                if entry.id == entry_id:
                    entry.observation = observation
                    target = entry
            for entry in self._snapshot.history:
                if entry.id == entry_id:
                    entry.observation = observation
            return copy.deepcopy(target) if target else None
