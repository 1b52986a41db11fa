# engine/market_summary.py
import math
from dataclasses import replace
from typing import Sequence, Tuple

from models import RGB, MarketSummary

NEUTRAL_COLOR: RGB = (156, 163, 175)
LONG_COLOR: RGB = (74, 222, 128)
SHORT_COLOR: RGB = (248, 113, 113)
PAUSED_COLOR: RGB = (75, 85, 99)
ASLEEP_COLOR: RGB = (55, 65, 81)

MAX_WEIGHT = 10
FIRE_START_ANGLE = -15.0
FADE_START_ANGLE = 15.0

INDECISION_NOTE = "Indecision (no trade) ⚖️"


def gauge_angle(total_weight: float, instrument_count: int) -> float:
    if instrument_count <= 0:
        return 0.0
    angle = (total_weight / (instrument_count * MAX_WEIGHT)) * 90
    return max(-90.0, min(90.0, angle))


def fire_intensity(angle: float) -> float:
    """Bullish cue: 0 above -15 degrees, 1 at -90."""
    if angle > FIRE_START_ANGLE:
        return 0.0
    return (angle - FIRE_START_ANGLE) / (-90.0 - FIRE_START_ANGLE)


def fade(angle: float) -> Tuple[float, float]:
    """Bearish cue: (saturation, opacity), full colour below 15 degrees."""
    if angle >= FADE_START_ANGLE:
        factor = (angle - 90.0) / (FADE_START_ANGLE - 90.0)
        return factor, 0.4 + 0.6 * factor
    return 1.0, 1.0


def gauge_color(angle: float) -> RGB:
    target = LONG_COLOR if angle < 0 else SHORT_COLOR
    t = min(abs(angle) / 90.0, 1.0)
    return tuple(
        int(math.floor(start + (end - start) * t))
        for start, end in zip(NEUTRAL_COLOR, target)
    )


def dominant_state(angle: float, long_terrain: int, short_terrain: int) -> str:
    if long_terrain or short_terrain:
        return "LONG terrain" if long_terrain >= short_terrain else "SHORT terrain"
    if angle >= 45:
        return "SHORT euphoria"
    if angle > 15:
        return "SHORT in progress"
    if angle <= -45:
        return "LONG euphoria"
    if angle < -15:
        return "LONG in progress"
    return "Indecision"


def terrain_note(long_terrain: int, short_terrain: int) -> str:
    if not (long_terrain or short_terrain):
        return INDECISION_NOTE
    return "LONG terrain 🚀" if long_terrain >= short_terrain else "SHORT terrain 🔻"


def build_market_summary(
    weights: Sequence[int],
    instrument_count: int,
    long_terrain: int,
    short_terrain: int,
) -> MarketSummary:
    """
    Fold this tick's classification weights into one gauge.

    `long_terrain` / `short_terrain` are the sizes of the pruned terrain lists.
    """
    angle = gauge_angle(sum(weights), instrument_count)
    saturation, opacity = fade(angle)

    return MarketSummary(
        gauge_angle=angle,
        color=gauge_color(angle),
        dominant_state_label=dominant_state(angle, long_terrain, short_terrain),
        terrain_note=terrain_note(long_terrain, short_terrain),
        saturation=saturation,
        opacity=opacity,
        fire_intensity=fire_intensity(angle),
    )


def paused_summary(previous: MarketSummary) -> MarketSummary:
    return replace(
        previous,
        color=PAUSED_COLOR,
        dominant_state_label="SYSTEM DISABLED 🛑",
        terrain_note="Waiting for manual activation...",
        fire_intensity=0.0,
        saturation=0.0,
    )


def asleep_summary(previous: MarketSummary) -> MarketSummary:
    return replace(
        previous,
        color=ASLEEP_COLOR,
        dominant_state_label="SLEEP MODE 💤 (weekend)",
        terrain_note="Bot resting...",
        fire_intensity=0.0,
    )
