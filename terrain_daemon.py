# terrain_daemon.py

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import uvicorn
from dotenv import load_dotenv

from admin import AdminService
from candle_source import CandleSource, make_exchange
from engine.state_store import StateStore
from handlers.log_handler import log_handler
from handlers.telegram_handler import make_telegram_handler
from notifier import RecipientPreferences, TelegramNotifier
from scan_loop import ScanLoop
from signal_router import SignalRouter
from utils.logging_setup import setup_logging
from web.backend.app.main import create_app

logger = logging.getLogger(__name__)

CATEGORIES: Dict[str, List[str]] = {
    "Large Caps": ["BTC/USDT", "ETH/USDT", "SOL/USDT", "BNB/USDT"],
    "Mid Caps": ["DOGE/USDT", "AVAX/USDT", "ADA/USDT"],
    "Small Caps": ["RENDER/USDT", "NEAR/USDT", "WLD/USDT", "SUI/USDT"],
}
DEFAULT_SYMBOLS = [s for group in CATEGORIES.values() for s in group]


@dataclass
class Config:
    exchange_id: str
    fallback_exchange_id: str
    symbols: List[str]
    timeframes: List[str]
    macro_timeframe: str
    tz: str
    tg_token: str
    tg_chat_ids: List[str]
    tg_report_group_id: Optional[str] = None
    tg_thread_id: Optional[int] = None
    poll_sec: float = 180.0
    request_delay_sec: float = 0.25
    candle_limit: int = 100
    large_caps: List[str] = field(default_factory=lambda: list(CATEGORIES["Large Caps"]))
    admin_password: str = ""
    web_host: str = "0.0.0.0"
    web_port: int = 3000
    log_level: str = "INFO"


def _split(value: Optional[str], default: str) -> List[str]:
    return [s.strip() for s in (value or default).split(",") if s.strip()]


def load_config() -> Config:
    load_dotenv()
    thread_id = (os.getenv("TELEGRAM_THREAD_ID") or "").strip()
    return Config(
        exchange_id=(os.getenv("EXCHANGE_ID") or "binance").strip(),
        fallback_exchange_id=(os.getenv("FALLBACK_EXCHANGE_ID") or "binanceusdm").strip(),
        symbols=_split(os.getenv("SYMBOLS"), ",".join(DEFAULT_SYMBOLS)),
        timeframes=_split(os.getenv("TIMEFRAMES"), "2h"),
        macro_timeframe=(os.getenv("MACRO_TIMEFRAME") or "4h").strip(),
        tz=(os.getenv("TZ") or "America/Lima").strip(),
        tg_token=(os.getenv("TELEGRAM_BOT_TOKEN") or "").strip(),
        tg_chat_ids=_split(os.getenv("TELEGRAM_CHAT_ID"), ""),
        tg_report_group_id=(os.getenv("TELEGRAM_REPORT_GROUP_ID") or "").strip() or None,
        tg_thread_id=int(thread_id) if thread_id else None,
        poll_sec=float(os.getenv("POLL_SEC") or 180),
        request_delay_sec=float(os.getenv("REQUEST_DELAY_SEC") or 0.25),
        candle_limit=int(os.getenv("CANDLE_LIMIT") or 100),
        large_caps=_split(os.getenv("LARGE_CAPS"), ",".join(CATEGORIES["Large Caps"])),
        admin_password=os.getenv("ADMIN_PASSWORD") or "",
        web_host=(os.getenv("WEB_HOST") or "0.0.0.0").strip(),
        web_port=int(os.getenv("WEB_PORT") or 3000),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip(),
    )


@dataclass
class Runtime:
    store: StateStore
    loop: ScanLoop
    admin: AdminService
    notifier: TelegramNotifier


def build_runtime(cfg: Config) -> Runtime:
    source = CandleSource(
        make_exchange(cfg.exchange_id, "spot"),
        fallback=make_exchange(cfg.fallback_exchange_id, "future"),
    )

    notifier = TelegramNotifier(
        cfg.tg_token,
        cfg.tg_chat_ids,
        preferences=RecipientPreferences(),
        tz=cfg.tz,
        report_group_id=cfg.tg_report_group_id,
        thread_id=cfg.tg_thread_id,
    )
    router = SignalRouter(handlers=[make_telegram_handler(notifier), log_handler])

    store = StateStore()
    loop = ScanLoop(
        store,
        source,
        router,
        symbols=cfg.symbols,
        timeframes=cfg.timeframes,
        macro_timeframe=cfg.macro_timeframe,
        tz=cfg.tz,
        poll_sec=cfg.poll_sec,
        request_delay_sec=cfg.request_delay_sec,
        candle_limit=cfg.candle_limit,
    )
    admin = AdminService(
        store,
        source,
        router,
        notifier,
        symbols=cfg.symbols,
        timeframe=cfg.timeframes[0],
        admin_password=cfg.admin_password,
        macro_timeframe=cfg.macro_timeframe,
        large_caps=cfg.large_caps,
        candle_limit=cfg.candle_limit,
        recipients=notifier.preferences,
        request_delay_sec=cfg.request_delay_sec,
    )
    return Runtime(store=store, loop=loop, admin=admin, notifier=notifier)


def main():
    cfg = load_config()
    setup_logging(cfg.log_level)

    if not cfg.admin_password:
        logger.warning("⚠️ ADMIN_PASSWORD is empty, admin endpoints will reject every request")

    runtime = build_runtime(cfg)

    scanner = threading.Thread(target=runtime.loop.run, name="scan-loop", daemon=True)
    scanner.start()

    app = create_app(runtime.store, runtime.admin)
    try:
        uvicorn.run(app, host=cfg.web_host, port=cfg.web_port, log_level=cfg.log_level.lower())
    finally:
        runtime.loop.stop()


if __name__ == "__main__":
    main()
