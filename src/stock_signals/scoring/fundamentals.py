"""Fundamentals ratio scoring (0-100)."""

import logging
import math
from dataclasses import dataclass

from stock_signals.config import DEFAULT_CONFIG, ScoringConfig
from stock_signals.models import FundamentalsSnapshot
from stock_signals.scoring.rules import Rule, always, first_match

logger = logging.getLogger(__name__)

BASE_SCORE = 50


@dataclass(frozen=True)
class Ratios:
    """Snapshot with missing fields already replaced by the configured default."""

    roe: float
    net_margin: float
    gross_margin: float
    revenue_growth_ttm: float
    revenue_growth_3y: float
    eps_growth_ttm: float
    pe_ratio: float
    peg_ratio: float
    current_ratio: float
    debt_to_equity: float
    interest_coverage: float

    @classmethod
    def resolve(cls, snapshot: FundamentalsSnapshot, default: float) -> "Ratios":
        def pick(value: float | None) -> float:
            if value is None:
                return default
            value = float(value)
            return default if math.isnan(value) else value

        return cls(
            roe=pick(snapshot.roe),
            net_margin=pick(snapshot.net_margin),
            gross_margin=pick(snapshot.gross_margin),
            revenue_growth_ttm=pick(snapshot.revenue_growth_ttm),
            revenue_growth_3y=pick(snapshot.revenue_growth_3y),
            eps_growth_ttm=pick(snapshot.eps_growth_ttm),
            pe_ratio=pick(snapshot.pe_ratio),
            peg_ratio=pick(snapshot.peg_ratio),
            current_ratio=pick(snapshot.current_ratio),
            debt_to_equity=pick(snapshot.debt_to_equity),
            interest_coverage=pick(snapshot.interest_coverage),
        )


# Each group is its own ordered table; every group is scored, and within a
# group the first matching row decides the adjustment.
FUNDAMENTALS_RULE_GROUPS: dict[str, tuple[Rule[Ratios, int], ...]] = {
    "roe": (
        Rule("roe_excellent", lambda r: r.roe >= 20, 8),
        Rule("roe_strong", lambda r: r.roe >= 15, 6),
        Rule("roe_fair", lambda r: r.roe >= 10, 3),
        Rule("roe_weak", lambda r: r.roe < 5, -5),
        Rule("roe_none", always, 0),
    ),
    "net_margin": (
        Rule("net_margin_high", lambda r: r.net_margin > 15, 6),
        Rule("net_margin_fair", lambda r: r.net_margin > 5, 3),
        Rule("net_margin_thin", lambda r: r.net_margin <= 5, -4),
        Rule("net_margin_none", always, 0),
    ),
    "gross_margin": (
        Rule("gross_margin_high", lambda r: r.gross_margin > 40, 3),
        Rule("gross_margin_low", lambda r: r.gross_margin < 20, -3),
        Rule("gross_margin_none", always, 0),
    ),
    "growth_ttm": (
        Rule(
            "revenue_and_eps_growth",
            lambda r: r.revenue_growth_ttm > 10 and r.eps_growth_ttm > 10,
            8,
        ),
        Rule("revenue_growth", lambda r: r.revenue_growth_ttm > 5, 4),
        Rule("revenue_decline", lambda r: r.revenue_growth_ttm < 0, -6),
        Rule("growth_ttm_none", always, 0),
    ),
    "growth_3y": (
        Rule("revenue_3y_growth", lambda r: r.revenue_growth_3y > 5, 4),
        Rule("revenue_3y_decline", lambda r: r.revenue_growth_3y < 0, -4),
        Rule("growth_3y_none", always, 0),
    ),
    "pe": (
        Rule("pe_low", lambda r: r.pe_ratio < 15, 4),
        Rule("pe_high", lambda r: r.pe_ratio > 30, -4),
        Rule("pe_none", always, 0),
    ),
    "peg": (
        Rule("peg_low", lambda r: r.peg_ratio < 1, 4),
        Rule("peg_high", lambda r: r.peg_ratio > 2, -4),
        Rule("peg_none", always, 0),
    ),
    "financial_health": (
        Rule(
            "fortress_balance_sheet",
            lambda r: r.current_ratio >= 1.5 and r.debt_to_equity <= 0.5 and r.interest_coverage >= 5,
            8,
        ),
        Rule(
            "adequate_balance_sheet",
            lambda r: r.current_ratio >= 1 and r.debt_to_equity <= 1,
            4,
        ),
        Rule("weak_balance_sheet", always, -6),
    ),
}


def explain_fundamentals(
    snapshot: FundamentalsSnapshot,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> dict[str, dict[str, str | int]]:
    """
    Per-group rule and adjustment, for audit output.

    Returns:
        {group: {"rule": rule_name, "delta": adjustment}}
    """
    ratios = Ratios.resolve(snapshot, config.missing_ratio_default)
    explanation: dict[str, dict[str, str | int]] = {}
    for group, table in FUNDAMENTALS_RULE_GROUPS.items():
        rule = first_match(table, ratios)
        explanation[group] = {"rule": rule.name, "delta": rule.outcome}
    return explanation


def score_fundamentals(
    snapshot: FundamentalsSnapshot | None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> int:
    """
    Score a fundamentals snapshot from 0 to 100, starting at 50.

    Missing ratios compare as `config.missing_ratio_default` (0), so a
    missing P/E reads as cheap and a missing current ratio as illiquid.

    Args:
        snapshot: Fundamentals ratios, or None when nothing was fetched
        config: Scoring config

    Returns:
        Integer score clamped to [0, 100]; the neutral score when snapshot is None
    """
    if snapshot is None:
        return int(config.neutral_score)

    score = BASE_SCORE
    for adjustment in explain_fundamentals(snapshot, config).values():
        score += int(adjustment["delta"])

    clamped = max(0, min(100, score))
    logger.debug(f"Fundamentals score: raw={score} clamped={clamped}")
    return clamped
