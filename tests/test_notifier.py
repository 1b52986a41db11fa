import requests

from models import SentMessage
from notifier import RecipientPreferences, TelegramNotifier, send_telegram_message


class FakeResponse:
    def __init__(self, message_id=1, status=200):
        self.message_id = message_id
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        return {"ok": True, "result": {"message_id": self.message_id}}


class FakeSession:
    def __init__(self, failing_chats=()):
        self.failing_chats = set(failing_chats)
        self.posts = []

    def post(self, url, json=None, timeout=None):
        self.posts.append((url, json))
        if json["chat_id"] in self.failing_chats:
            return FakeResponse(status=403)
        return FakeResponse(message_id=len(self.posts))


def test_send_message_payload():
    session = FakeSession()
    message_id = send_telegram_message("TOKEN", "100", "hello", thread_id=7, session=session)

    url, payload = session.posts[0]
    assert url.endswith("/botTOKEN/sendMessage")
    assert payload["parse_mode"] == "HTML"
    assert payload["message_thread_id"] == 7
    assert message_id == 1


def test_recipients_follow_preferences():
    prefs = RecipientPreferences({"300": ["BTC/USDT"], "400": ["ETH/USDT"]})
    notifier = TelegramNotifier("TOKEN", ["100", "300"], preferences=prefs, session=FakeSession())

    assert notifier.recipients("BTC/USDT") == ["300", "100"]
    assert notifier.recipients("SOL/USDT") == ["100"]
    # general messages go to everyone
    assert notifier.recipients(None) == ["300", "400", "100"]


def test_preferences_can_change():
    prefs = RecipientPreferences()
    prefs.set(100, ["BTC/USDT"])
    assert prefs.get("100") == ["BTC/USDT"]
    prefs.remove("100")
    assert prefs.get("100") is None


def test_broadcast_isolates_failures():
    session = FakeSession(failing_chats={"200"})
    notifier = TelegramNotifier("TOKEN", ["100", "200", "300"], session=session)

    sent = notifier.broadcast("🚀 TERRAIN ALERT", symbol="BTC/USDT")

    assert [m.chat_id for m in sent] == ["100", "300"]
    assert all(isinstance(m, SentMessage) for m in sent)
    assert len(session.posts) == 3
    text = session.posts[0][1]["text"]
    assert text.startswith("🚀 TERRAIN ALERT")
    assert text.rstrip().endswith("(PE)")


def test_report_group_gets_thread():
    session = FakeSession()
    notifier = TelegramNotifier(
        "TOKEN", ["100", "-500"], report_group_id="-500", thread_id=9, session=session,
    )

    notifier.broadcast("hi")

    payloads = {p["chat_id"]: p for _, p in session.posts}
    assert "message_thread_id" not in payloads["100"]
    assert payloads["-500"]["message_thread_id"] == 9


def test_no_token_sends_nothing():
    session = FakeSession()
    notifier = TelegramNotifier("", ["100"], session=session)
    assert notifier.broadcast("hi") == []
    assert session.posts == []


def test_edit_message_reports_failure():
    session = FakeSession(failing_chats={"200"})
    notifier = TelegramNotifier("TOKEN", ["100"], session=session)

    assert notifier.edit_message("100", 5, "edited")
    assert not notifier.edit_message("200", 6, "edited")
    assert session.posts[0][0].endswith("/editMessageText")


def test_edit_keeps_original_send_time():
    session = FakeSession()
    notifier = TelegramNotifier("TOKEN", ["100"], tz="America/Lima", session=session)
    sent_at_ms = 1_704_917_100_000  # 2024-01-10 20:05 UTC

    notifier.edit_message("100", 5, "edited", sent_at_ms=sent_at_ms)

    text = session.posts[0][1]["text"]
    assert text.startswith("edited")
    assert text.endswith("🕒 03:05 PM (PE)")


def test_session_calls_are_serialized():
    notifier = TelegramNotifier("TOKEN", ["100", "200"])
    held = []

    class LockCheckingSession(FakeSession):
        def post(self, url, json=None, timeout=None):
            held.append(notifier._lock.locked())
            return super().post(url, json=json, timeout=timeout)

    notifier.session = LockCheckingSession()
    notifier.broadcast("hi")
    notifier.edit_message("100", 1, "edited")

    assert held == [True, True, True]
