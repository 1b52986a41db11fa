# notifier.py
from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

import requests

from models import SentMessage
from utils.formatting import local_time_str

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


def send_telegram_message(
    token: str,
    chat_id: str,
    text: str,
    thread_id: Optional[int] = None,
    session: Optional[requests.Session] = None,
    timeout: float = 10,
) -> int:
    """
    Send one HTML message and return its message_id.
    Raises requests.RequestException on transport or API errors.
    """
    payload = {
        "chat_id": chat_id,
        "text": text,
        "parse_mode": "HTML",
        "disable_web_page_preview": True,
    }
    if thread_id:
        payload["message_thread_id"] = thread_id

    http = session or requests
    r = http.post(f"{TELEGRAM_API_URL}/bot{token}/sendMessage", json=payload, timeout=timeout)
    r.raise_for_status()
    return int(r.json()["result"]["message_id"])


def edit_telegram_message(
    token: str,
    chat_id: str,
    message_id: int,
    text: str,
    session: Optional[requests.Session] = None,
    timeout: float = 10,
) -> None:
    http = session or requests
    r = http.post(
        f"{TELEGRAM_API_URL}/bot{token}/editMessageText",
        json={
            "chat_id": chat_id,
            "message_id": message_id,
            "text": text,
            "parse_mode": "HTML",
        },
        timeout=timeout,
    )
    r.raise_for_status()


class RecipientPreferences:
    """
    Registry of known chats and the symbols each one subscribed to.
    A chat without a symbol list gets everything. Removing a chat stops
    all deliveries to it. Kept in memory; persisting it is somebody else's job.
    """

    def __init__(
        self,
        initial: Optional[Dict[str, Iterable[str]]] = None,
        chat_ids: Iterable[str] = (),
    ):
        self._lock = threading.Lock()
        self._prefs: Dict[str, Optional[List[str]]] = {
            str(chat_id): list(symbols) for chat_id, symbols in (initial or {}).items()
        }
        for chat_id in chat_ids:
            self.register(chat_id)

    def register(self, chat_id: str) -> None:
        chat_id = str(chat_id).strip()
        if not chat_id:
            return
        with self._lock:
            self._prefs.setdefault(chat_id, None)

    def set(self, chat_id: str, symbols: Iterable[str]) -> None:
        with self._lock:
            self._prefs[str(chat_id)] = list(symbols)

    def remove(self, chat_id: str) -> bool:
        with self._lock:
            return self._prefs.pop(str(chat_id), False) is not False

    def get(self, chat_id: str) -> Optional[List[str]]:
        with self._lock:
            prefs = self._prefs.get(str(chat_id))
            return list(prefs) if prefs is not None else None

    def __contains__(self, chat_id: object) -> bool:
        with self._lock:
            return str(chat_id) in self._prefs

    def all(self) -> Dict[str, Optional[List[str]]]:
        with self._lock:
            return {
                chat_id: list(symbols) if symbols is not None else None
                for chat_id, symbols in self._prefs.items()
            }

    def chats_for(self, symbol: Optional[str] = None) -> List[str]:
        """Chats that should receive a message about `symbol` (None = general)."""
        with self._lock:
            return [
                chat_id for chat_id, symbols in self._prefs.items()
                if symbol is None or symbols is None or symbol in symbols
            ]


class TelegramNotifier:
    """
    Broadcasts alerts to every recipient, one chat after another.
    A failed chat is logged and skipped; the others still get the message.

    The HTTP session is shared by the scan thread and the API threads, so every
    request goes through one lock.
    """

    def __init__(
        self,
        token: str,
        chat_ids: Iterable[str],
        preferences: Optional[RecipientPreferences] = None,
        tz: str = "America/Lima",
        tz_label: str = "PE",
        report_group_id: Optional[str] = None,
        thread_id: Optional[int] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 10,
    ):
        self.token = token
        self.preferences = preferences if preferences is not None else RecipientPreferences()
        for chat_id in chat_ids:
            self.preferences.register(chat_id)
        self.tz = tz
        self.tz_label = tz_label
        self.report_group_id = str(report_group_id).strip() if report_group_id else None
        self.thread_id = thread_id
        self.session = session or requests.Session()
        self.timeout = timeout
        self._lock = threading.Lock()

    def recipients(self, symbol: Optional[str] = None) -> List[str]:
        return self.preferences.chats_for(symbol)

    def _thread_for(self, chat_id: str) -> Optional[int]:
        if self.report_group_id and chat_id == self.report_group_id:
            return self.thread_id
        return None

    def with_footer(self, text: str, at_ms: Optional[int] = None) -> str:
        """Append the "🕒 03:45 PM (PE)" footer, for now or for `at_ms`."""
        moment = datetime.fromtimestamp(at_ms / 1000, timezone.utc) if at_ms is not None else None
        return f"{text}\n\n🕒 {local_time_str(self.tz, moment)} ({self.tz_label})"

    def broadcast(self, text: str, symbol: Optional[str] = None) -> List[SentMessage]:
        if not self.token:
            logger.warning("⚠️ TELEGRAM_BOT_TOKEN is empty, skipping broadcast")
            return []

        full_text = self.with_footer(text)
        recipients = self.recipients(symbol)
        logger.info("📢 Broadcasting to %d recipients (symbol: %s)", len(recipients), symbol or "GENERAL")

        sent: List[SentMessage] = []
        for chat_id in recipients:
            try:
                with self._lock:
                    message_id = send_telegram_message(
                        self.token,
                        chat_id,
                        full_text,
                        thread_id=self._thread_for(chat_id),
                        session=self.session,
                        timeout=self.timeout,
                    )
                sent.append(SentMessage(chat_id=chat_id, message_id=message_id))
            except Exception as e:
                logger.error("❌ Telegram send to %s failed: %s", chat_id, e)
        return sent

    def edit_message(
        self,
        chat_id: str,
        message_id: int,
        text: str,
        sent_at_ms: Optional[int] = None,
    ) -> bool:
        """
        Replace the text of a delivered message. The footer keeps the time the
        message was originally sent.
        """
        try:
            with self._lock:
                edit_telegram_message(
                    self.token, chat_id, message_id, self.with_footer(text, sent_at_ms),
                    session=self.session, timeout=self.timeout,
                )
            return True
        except Exception as e:
            logger.error("❌ Telegram edit of %s/%s failed: %s", chat_id, message_id, e)
            return False
