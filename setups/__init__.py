#__init__.py
from .classifier import classify_state, is_macro_confirmed
from .momentum import calculate_indicators, compute_macro_trend

__all__ = [
    "calculate_indicators",
    "classify_state",
    "compute_macro_trend",
    "is_macro_confirmed",
]
