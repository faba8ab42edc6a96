from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from strategy_web.domain.models import Competitor, Factor, KsfItem, StrategicData, SwotItem

UNNAMED_FACTOR = "Unnamed Factor"
UNNAMED_KSF = "Unnamed KSF"
SWOT_LABELS = ("Strengths", "Weaknesses", "Opportunities", "Threats")


# -----------------------------
# Chart series
# -----------------------------
@dataclass(frozen=True)
class MatrixRadarSeries:
    labels: List[str]
    weighted_score: List[float]
    weight: List[float]
    rating: List[float]


@dataclass(frozen=True)
class KsfRadarSeries:
    labels: List[str]
    achievement: List[float]
    weighted_score: List[float]


@dataclass(frozen=True)
class SwotCounts:
    labels: List[str]
    counts: List[int]


@dataclass(frozen=True)
class CompetitorSeries:
    competitor_id: str
    name: str
    ratings: List[float]


@dataclass(frozen=True)
class CpmRadarSeries:
    labels: List[str]
    competitors: List[CompetitorSeries]


# -----------------------------
# Totals
# -----------------------------
def matrix_total(factors: Iterable[Factor]) -> float:
    return sum((f.weighted_score for f in factors), 0)


def matrix_weight_total(factors: Iterable[Factor]) -> float:
    # Expected to be 1.0 for a well-formed matrix; reported as-is.
    return sum((f.weight for f in factors), 0)


def _ksf_term(item: KsfItem) -> float:
    return (item.weight / 100) * (item.performance / 100) * 100


def ksf_score(items: Iterable[KsfItem]) -> float:
    return sum((_ksf_term(i) for i in items), 0)


def competitor_score(competitor: Competitor, ksf: Sequence[KsfItem]) -> float:
    """
    Weighted CPM total. Ratings against a KSF that no longer exists
    contribute nothing.
    """
    weights = {k.id: k.weight for k in ksf}
    total = 0
    for ksf_id, rating in competitor.ratings.items():
        weight = weights.get(ksf_id)
        if weight is not None:
            total += weight * rating
    return total


def radar_series(factors: Sequence[Factor]) -> MatrixRadarSeries:
    return MatrixRadarSeries(
        labels=[f.description or UNNAMED_FACTOR for f in factors],
        weighted_score=[f.weighted_score for f in factors],
        weight=[f.weight for f in factors],
        rating=[f.rating for f in factors],
    )


def ksf_radar_series(items: Sequence[KsfItem]) -> KsfRadarSeries:
    return KsfRadarSeries(
        labels=[i.description or UNNAMED_KSF for i in items],
        achievement=[i.performance for i in items],
        weighted_score=[_ksf_term(i) for i in items],
    )


def swot_counts(
    strengths: Sequence[SwotItem],
    weaknesses: Sequence[SwotItem],
    opportunities: Sequence[SwotItem],
    threats: Sequence[SwotItem],
) -> SwotCounts:
    return SwotCounts(
        labels=list(SWOT_LABELS),
        counts=[len(strengths), len(weaknesses), len(opportunities), len(threats)],
    )


def cpm_radar_series(
    competitors: Sequence[Competitor],
    ksf: Sequence[KsfItem],
    selected_ids: Optional[Iterable[str]] = None,
) -> CpmRadarSeries:
    selected = None if selected_ids is None else set(selected_ids)
    return CpmRadarSeries(
        labels=[k.description or UNNAMED_KSF for k in ksf],
        competitors=[
            CompetitorSeries(
                competitor_id=c.id,
                name=c.name,
                ratings=[c.ratings.get(k.id, 0) for k in ksf],
            )
            for c in competitors
            if selected is None or c.id in selected
        ],
    )


# -----------------------------
# Summary for callers that want everything at once
# -----------------------------
@dataclass(frozen=True)
class ScoreSummary:
    ife_total: float
    ife_weight_total: float
    efe_total: float
    efe_weight_total: float
    ksf_score: float
    competitor_scores: Dict[str, float]


def score_summary(data: StrategicData) -> ScoreSummary:
    return ScoreSummary(
        ife_total=matrix_total(data.ife),
        ife_weight_total=matrix_weight_total(data.ife),
        efe_total=matrix_total(data.efe),
        efe_weight_total=matrix_weight_total(data.efe),
        ksf_score=ksf_score(data.ksf),
        competitor_scores={c.id: competitor_score(c, data.ksf) for c in data.competitors},
    )
