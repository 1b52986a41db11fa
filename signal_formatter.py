# signal_formatter.py
from typing import Optional

from models import Classification, ConsolidatedAlert, Direction, HistoryEntry
from utils.formatting import format_price

OBSERVATION_EMOJIS = {
    "Doubtful signal": "🤔",
    "FALSE signal": "❌",
    "Liquidations in favour": "💰",
    "Liquidations against": "💀",
    "Signal approved": "✅",
}

SHUTDOWN_TEXT = (
    "💤 BOT OFF: weekends and thin liquidity don't mix, see you on Monday :D"
)
WAKEUP_TEXT = "☀️ Bot is back on! Monday means opportunities. Let's trade! 🚀"


def format_alert(
    symbol: str,
    timeframe: str,
    price: Optional[float],
    label: str,
    emoji: str,
    macro_line: str = "",
    observation: Optional[str] = None,
) -> str:
    """
    Individual terrain alert.
    """
    text = (
        f"🚀 TERRAIN ALERT\n\n"
        f"💎 <b>{symbol} ({timeframe})</b>\n\n"
        f"💰 <b>Price:</b> ${format_price(price)}\n"
        f"📸 <b>State:</b> {label} {emoji}"
    )
    if macro_line:
        text += f"\n🪐 {macro_line}"
    if observation:
        text += f"\n\n{format_observation(observation)}"
    return text


def format_consolidated(
    direction: Direction,
    date_str: str,
    dominants: str,
    observation: Optional[str] = None,
) -> str:
    text = (
        f"🚨 MARKET ALERT - {date_str}\n\n"
        f"{direction.value} terrain,\n"
        f"TIME TO TRADE! 🚀🔥\n\n"
        f"Dominant: {dominants}"
    )
    if observation:
        text += f"\n\n{format_observation(observation)}"
    return text


def format_consolidated_alert(alert: ConsolidatedAlert) -> str:
    return format_consolidated(alert.direction, alert.date_str, alert.dominants)


def format_observation(observation: str) -> str:
    emoji = OBSERVATION_EMOJIS.get(observation, "")
    return f"Observation: {observation} {emoji}".rstrip()


def format_history_entry(entry: HistoryEntry) -> str:
    """
    Text of an already sent alert, including its observation if any.
    Used to edit the delivered messages in place.
    """
    if entry.is_consolidated:
        return format_consolidated(
            entry.signal,
            entry.consolidated_date_str or "",
            entry.consolidated_dominants or "",
            observation=entry.observation,
        )
    return format_alert(
        entry.symbol,
        entry.timeframe,
        entry.price,
        entry.label,
        entry.emoji,
        macro_line=entry.macro_text,
        observation=entry.observation,
    )


def format_manual_report(
    symbol: str,
    timeframe: str,
    price: float,
    classification: Classification,
    macro_line: str,
) -> str:
    return (
        f"✍️ MANUAL REPORT\n\n"
        f"💎 <b>{symbol} ({timeframe})</b>\n\n"
        f"💰 <b>Price:</b> ${format_price(price)}\n"
        f"📸 <b>State:</b> {classification.label} {classification.emoji}\n"
        f"🪐 {macro_line}"
    )


def format_market_report(dominant_state: str, macro_line: str) -> str:
    return (
        f"📊 MARKET REPORT\n\n"
        f"📸 <b>Dominant state:</b> {dominant_state}\n"
        f"🪐 {macro_line}"
    )


def format_admin_broadcast(message: str) -> str:
    return f"📢 GENERAL MESSAGE:\n\n{message}"
