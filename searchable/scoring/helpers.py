"""
Scoring Helper Functions and Constants

Contains the Visibility Score weights, recency decay parameters, and the
ranking/time utilities shared by the aggregation, scoring and competitor
calculations.
"""

import math
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Hashable, Mapping, Optional


# ============================================================================
# VISIBILITY SCORE WEIGHTS
# ============================================================================

VISIBILITY_WEIGHTS: Dict[str, Decimal] = {
    "citation_share": Decimal("0.4"),   # Share of all citations
    "query_coverage": Decimal("0.3"),   # Share of all queries
    "position": Decimal("0.2"),         # Early citations within responses
    "recency": Decimal("0.1"),          # Recent citation mass
}

SCORE_PRECISION = Decimal("0.0001")


def quantize_score(value: Decimal) -> Decimal:
    """Round to 4 decimal places, half up."""
    return value.quantize(SCORE_PRECISION, rounding=ROUND_HALF_UP)


def to_decimal(value) -> Decimal:
    """
    Convert a number to Decimal through its shortest string form.

    Going through str() keeps 0.1 as Decimal("0.1") instead of the binary
    expansion of the float.
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


# ============================================================================
# RECENCY DECAY
# ============================================================================

DEFAULT_HALF_LIFE_DAYS = 15.0
DEFAULT_RECENCY_WINDOW_DAYS = 30
DEFAULT_POSITION_DECAY_RANGE = 10

SECONDS_PER_DAY = 86400.0


def recency_lambda(half_life_days: float = DEFAULT_HALF_LIFE_DAYS) -> float:
    """
    Decay constant for a given half-life.

    ln(2) / 15 ≈ 0.0462
    """
    if half_life_days <= 0:
        raise ValueError("half_life_days must be positive")
    return math.log(2) / half_life_days


def recency_weight(
    age_days: float,
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
    window_days: float = DEFAULT_RECENCY_WINDOW_DAYS,
) -> float:
    """
    Exponential-decay weight of a single citation.

    Args:
        age_days: Citation age in days (future timestamps count as age 0)
        half_life_days: Days for the weight to halve
        window_days: Citations older than this contribute 0

    Returns:
        Weight in (0, 1], or 0.0 outside the window
    """
    age = max(0.0, age_days)
    if age > window_days:
        return 0.0
    return math.exp(-recency_lambda(half_life_days) * age)


# ============================================================================
# TIME
# ============================================================================

def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite drops tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def age_in_days(created_at: datetime, now: datetime) -> float:
    """Fractional days between created_at and now."""
    return (as_utc(now) - as_utc(created_at)).total_seconds() / SECONDS_PER_DAY


# ============================================================================
# RANKING
# ============================================================================

def competition_rank(values: Mapping[Hashable, Optional[float]]) -> Dict[Hashable, Optional[int]]:
    """
    Rank keys by value descending with standard competition ranking.

    Ties share a rank and the following rank is skipped (1, 1, 3), the same
    as SQL RANK(). Keys with a None value are left unranked.

    Args:
        values: Mapping of key -> value

    Returns:
        Mapping of key -> rank (1 = highest), None for None values
    """
    ranked = sorted(
        ((key, value) for key, value in values.items() if value is not None),
        key=lambda item: item[1],
        reverse=True,
    )

    ranks: Dict[Hashable, Optional[int]] = {key: None for key in values}
    previous_value = None
    current_rank = 0
    for index, (key, value) in enumerate(ranked, start=1):
        if previous_value is None or value != previous_value:
            current_rank = index
            previous_value = value
        ranks[key] = current_rank
    return ranks
