"""Technical signal synthesis and composite scoring engine.

Pure, synchronous functions: no I/O and no shared state, so identical
inputs always produce identical outputs.
"""

from stock_signals.scoring.composite import (
    blend_sentiment,
    bucket_ytd,
    defaulted_inputs,
    label_for_score,
    sentiment_label,
    synthesize_composite,
    technical_points,
)
from stock_signals.scoring.fundamentals import explain_fundamentals, score_fundamentals
from stock_signals.scoring.recommendation import (
    aggregate_recommendation,
    insufficient_data_result,
    recommend,
)
from stock_signals.scoring.technical import (
    analyze_alignment,
    analyze_momentum,
    analyze_oscillator_zone,
)

__all__ = [
    # Per-indicator analyzers
    "analyze_alignment",
    "analyze_momentum",
    "analyze_oscillator_zone",
    # Aggregation
    "aggregate_recommendation",
    "insufficient_data_result",
    "recommend",
    # Fundamentals
    "explain_fundamentals",
    "score_fundamentals",
    # Composite
    "blend_sentiment",
    "bucket_ytd",
    "defaulted_inputs",
    "label_for_score",
    "sentiment_label",
    "synthesize_composite",
    "technical_points",
]
