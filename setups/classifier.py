# setups/classifier.py
from models import Classification, CurveTrend, Direction, MacroTrend

EUPHORIA_SLOPE = 1.0
IN_PROGRESS_SLOPE = 0.10

LONG_EUPHORIA = Classification("LONG euphoria", "🚀", -10)
LONG_IN_PROGRESS = Classification("LONG in progress", "🟢", -5)
SHORT_EUPHORIA = Classification("SHORT euphoria", "🩸", 10)
SHORT_IN_PROGRESS = Classification("SHORT in progress", "🔴", 5)
LONG_TERRAIN = Classification("LONG terrain", "🍏", 0, terrain=Direction.LONG)
SHORT_TERRAIN = Classification("SHORT terrain", "🍎", 0, terrain=Direction.SHORT)
INDECISION = Classification("Indecision", "🦀", 0)


def classify_state(slope: float, curve_trend: CurveTrend) -> Classification:
    """
    Market state from the momentum slope; first matching threshold wins.
    Negative weight favours bulls, positive favours bears.
    """
    if slope > EUPHORIA_SLOPE:
        return LONG_EUPHORIA
    if slope > IN_PROGRESS_SLOPE:
        return LONG_IN_PROGRESS
    if slope < -EUPHORIA_SLOPE:
        return SHORT_EUPHORIA
    if slope < -IN_PROGRESS_SLOPE:
        return SHORT_IN_PROGRESS

    # calm slope: a falling curve means selling is exhausted, and vice versa
    if curve_trend == CurveTrend.DOWN:
        return LONG_TERRAIN
    if curve_trend == CurveTrend.UP:
        return SHORT_TERRAIN
    return INDECISION


def is_macro_confirmed(classification: Classification, macro: MacroTrend) -> bool:
    if classification.terrain == Direction.LONG:
        return macro == MacroTrend.BULLISH
    if classification.terrain == Direction.SHORT:
        return macro == MacroTrend.BEARISH
    return False


def macro_status_text(classification: Classification, macro: MacroTrend, macro_timeframe: str = "4h") -> str:
    if not classification.terrain:
        return ""
    if not is_macro_confirmed(classification, macro):
        return f"No macro confirmation ({macro_timeframe}) ⚠️"
    icon = "🚀" if classification.terrain == Direction.LONG else "🔻"
    return f"Macro confirmation ({macro_timeframe}) {icon}"


def macro_text(macro: MacroTrend, macro_timeframe: str = "4h", show_neutral: bool = False) -> str:
    """
    Macro line for notification texts. Neutral is only spelled out in reports.
    """
    if macro == MacroTrend.BULLISH:
        return f"<b>Macro strength ({macro_timeframe}):</b> Bullish 🚀"
    if macro == MacroTrend.BEARISH:
        return f"<b>Macro strength ({macro_timeframe}):</b> Bearish 🔻"
    if show_neutral:
        return f"<b>Macro strength ({macro_timeframe}):</b> Neutral ⚖️"
    return ""
