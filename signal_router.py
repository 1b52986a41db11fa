# signal_router.py
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from models import Notification, SentMessage

logger = logging.getLogger(__name__)

NotificationHandler = Callable[[Notification], Optional[List[SentMessage]]]


@dataclass
class SignalRouter:
    """
    Central dispatcher for outgoing notifications.
    Every notification goes through every handler; message handles returned by
    the handlers are collected so sent alerts can be edited later.
    """
    handlers: List[NotificationHandler]

    def route(self, notification: Notification) -> List[SentMessage]:
        sent: List[SentMessage] = []
        for handler in self.handlers:
            try:
                handles = handler(notification)
                if handles:
                    sent.extend(handles)
            except Exception as e:
                logger.error("❌ Notification handler %s failed: %s", getattr(handler, "__name__", handler), e)
        return sent
