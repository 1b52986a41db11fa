# engine/schedule.py
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

from .state_store import StateStore

FRIDAY = 4
SATURDAY = 5
SUNDAY = 6

SHUTDOWN_HOUR = 15
SHUTDOWN_MINUTE = 30


class ScheduleTransition(str, Enum):
    SHUTDOWN = "shutdown"
    WAKEUP = "wakeup"


class WeeklySchedule:
    """
    Weekend shutdown: off from Friday 15:30 until Monday 00:00 local time.
    The latch lives in the store so each edge is reported exactly once.
    """

    def __init__(self, store: StateStore, tz: str = "America/Lima"):
        self.store = store
        self.tz = ZoneInfo(tz)

    def is_off(self, moment: datetime) -> bool:
        day = moment.weekday()
        if day == FRIDAY:
            return (moment.hour, moment.minute) >= (SHUTDOWN_HOUR, SHUTDOWN_MINUTE)
        return day in (SATURDAY, SUNDAY)

    def local_time(self, now_ms: int) -> datetime:
        return datetime.fromtimestamp(now_ms / 1000, self.tz)

    def check(self, now_ms: int) -> Optional[ScheduleTransition]:
        should_be_off = self.is_off(self.local_time(now_ms))

        if should_be_off and not self.store.is_shutdown:
            self.store.is_shutdown = True
            return ScheduleTransition.SHUTDOWN
        if not should_be_off and self.store.is_shutdown:
            self.store.is_shutdown = False
            return ScheduleTransition.WAKEUP
        return None
