"""Stock signal tools."""

from stock_signals.tools.fundamentals import fundamentals_score
from stock_signals.tools.scoring import score_composite, score_series
from stock_signals.tools.summary import overall_summary
from stock_signals.tools.technical import technical_recommendation

__all__ = [
    "fundamentals_score",
    "overall_summary",
    "score_composite",
    "score_series",
    "technical_recommendation",
]
