# Application Profile Package
from .ceiling import CeilingCalculator, CeilingResult
from .service import ProfileSnapshot, recalculate_profile
from .streak import StreakResult, compute_streak

__all__ = [
    "CeilingCalculator",
    "CeilingResult",
    "ProfileSnapshot",
    "recalculate_profile",
    "StreakResult",
    "compute_streak",
]
