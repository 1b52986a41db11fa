# handlers/telegram_handler.py
from models import Notification
from notifier import TelegramNotifier


def make_telegram_handler(notifier: TelegramNotifier):
    def telegram_handler(notification: Notification):
        return notifier.broadcast(notification.text, notification.symbol)
    return telegram_handler
