# handlers/log_handler.py
import logging

from models import Notification

logger = logging.getLogger("alerts")


def log_handler(notification: Notification):
    first_line = notification.text.splitlines()[0] if notification.text else ""
    logger.info(
        "LOG: %s %s %s",
        notification.kind,
        notification.symbol or "GENERAL",
        first_line,
    )
