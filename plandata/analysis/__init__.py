"""
Analysis over retrieved planning data.
"""

from plandata.analysis.authority import (
    calculate_local_authority_stats,
    classify_climate,
    decision_days,
)

__all__ = [
    "calculate_local_authority_stats",
    "classify_climate",
    "decision_days",
]
