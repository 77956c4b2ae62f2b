"""
Visibility Trends

Builds the trend series shown next to a domain's current score:
- Daily visibility score (last score of each UTC day, smoothed with a
  trailing rolling mean, 7 days by default)
- Daily citation counts for the target domain
- The same smoothed score for the target's top two competitors

Summary: current visibility, last run-over-run change, and peak smoothed score.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .helpers import as_utc

logger = logging.getLogger(__name__)

RANGE_DAYS: Dict[str, int] = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_RANGE = "30d"
DEFAULT_SMOOTHING_DAYS = 7


@dataclass(frozen=True)
class ScoreSnapshot:
    """One row of the append-only score history."""
    domain: str
    score: float
    computed_at: datetime


@dataclass
class TrendPoint:
    date: str
    score: Optional[float] = None
    score_competitor1: Optional[float] = None
    score_competitor2: Optional[float] = None
    citation_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "score": self.score,
            "score_competitor1": self.score_competitor1,
            "score_competitor2": self.score_competitor2,
            "citation_count": self.citation_count,
        }


@dataclass
class TrendSummary:
    current_visibility: float = 0.0
    change: Optional[float] = None
    peak_score: float = 0.0


@dataclass
class TrendsReport:
    """Trend series and summary for one domain."""
    domain: str
    range: str
    summary: TrendSummary
    competitor1: Optional[str] = None
    competitor2: Optional[str] = None
    series: List[TrendPoint] = field(default_factory=list)

    @property
    def status(self) -> str:
        return "ok" if self.series else "empty"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "range": self.range,
            "status": self.status,
            "summary": {
                "current_visibility": self.summary.current_visibility,
                "change": self.summary.change,
                "peak_score": self.summary.peak_score,
            },
            "domains": {
                "target": self.domain,
                "competitor1": self.competitor1,
                "competitor2": self.competitor2,
            },
            "series": [p.to_dict() for p in self.series],
        }


def resolve_range(range_key: Optional[str]) -> Tuple[str, int]:
    """
    Map a range key to (key, days). Unknown keys fall back to 30 days.
    """
    key = (range_key or "").strip()
    if key in RANGE_DAYS:
        return key, RANGE_DAYS[key]
    return DEFAULT_RANGE, RANGE_DAYS[DEFAULT_RANGE]


def daily_last_scores(snapshots: Sequence[ScoreSnapshot]) -> Dict[str, Dict[date, float]]:
    """
    Keep the latest score of each UTC day per domain.

    Returns:
        domain -> {day: score}
    """
    latest: Dict[Tuple[str, date], Tuple[datetime, float]] = {}
    for snap in snapshots:
        at = as_utc(snap.computed_at)
        key = (snap.domain, at.date())
        current = latest.get(key)
        if current is None or at > current[0]:
            latest[key] = (at, snap.score)

    daily: Dict[str, Dict[date, float]] = defaultdict(dict)
    for (domain, day), (_, score) in latest.items():
        daily[domain][day] = score
    return dict(daily)


def smooth_series(daily: Mapping[date, float], window: int = DEFAULT_SMOOTHING_DAYS) -> Dict[date, float]:
    """
    Trailing rolling mean over the last `window` recorded days.

    Same as avg(score) OVER (ORDER BY day ROWS BETWEEN window-1 PRECEDING AND CURRENT ROW).
    """
    if window < 1:
        raise ValueError("window must be >= 1")

    days = sorted(daily)
    smoothed: Dict[date, float] = {}
    for index, day in enumerate(days):
        frame = [daily[d] for d in days[max(0, index - window + 1):index + 1]]
        smoothed[day] = sum(frame) / len(frame)
    return smoothed


def build_trends(
    domain: str,
    range_key: str,
    snapshots: Sequence[ScoreSnapshot],
    citation_days: Mapping[date, int],
    competitors: Sequence[str] = (),
    current_score: Optional[float] = None,
    current_change: Optional[float] = None,
    smoothing_days: int = DEFAULT_SMOOTHING_DAYS,
) -> TrendsReport:
    """
    Assemble the trend series for a domain.

    Args:
        domain: Target domain
        range_key: Range label echoed in the report ("7d", "30d", "90d")
        snapshots: Score history rows for the target and competitors, already
            restricted to the requested range
        citation_days: UTC day -> citation count for the target
        competitors: Competitor domains in rank order (first two are used)
        current_score: Target's current score, if computed
        current_change: Target's last change, if any
        smoothing_days: Rolling mean window

    Returns:
        TrendsReport with one point per day that has any data
    """
    competitor1 = competitors[0] if len(competitors) > 0 else None
    competitor2 = competitors[1] if len(competitors) > 1 else None

    smoothed = {
        d: smooth_series(series, smoothing_days)
        for d, series in daily_last_scores(snapshots).items()
    }

    all_days = set(citation_days)
    for series in smoothed.values():
        all_days.update(series)

    target_series = smoothed.get(domain, {})
    comp1_series = smoothed.get(competitor1, {}) if competitor1 else {}
    comp2_series = smoothed.get(competitor2, {}) if competitor2 else {}

    points = [
        TrendPoint(
            date=day.isoformat(),
            score=target_series.get(day),
            score_competitor1=comp1_series.get(day),
            score_competitor2=comp2_series.get(day),
            citation_count=max(0, int(citation_days.get(day, 0))),
        )
        for day in sorted(all_days)
    ]

    if target_series:
        peak = max(target_series.values())
    else:
        peak = current_score or 0.0

    summary = TrendSummary(
        current_visibility=round(current_score, 1) if current_score is not None else 0.0,
        change=round(current_change, 1) if current_change is not None else None,
        peak_score=round(peak, 1),
    )

    return TrendsReport(
        domain=domain,
        range=range_key,
        summary=summary,
        competitor1=competitor1,
        competitor2=competitor2,
        series=points,
    )
