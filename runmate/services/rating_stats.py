# runmate/services/rating_stats.py
# Rating statistics for a user, computed on read from approved ratings.

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from runmate.models.rating import RATING_CATEGORIES, Rating

DEFAULT_LEVEL = "Ny löpare"
RECENT_RATINGS = 5

# (min ratings, min average, level, badge), best tier first
LEVEL_TIERS: Tuple[Tuple[int, float, str, str], ...] = (
    (5, 4.5, "Superlöpare", "superstar"),
    (3, 4.0, "Pålitlig löpare", "trusted"),
    (1, 3.5, "Erfaren löpare", "experienced"),
)


def _round1(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def level_for(total: int, average: float) -> Tuple[str, Optional[str]]:
    for min_count, min_avg, level, badge in LEVEL_TIERS:
        if total >= min_count and average >= min_avg:
            return level, badge
    return DEFAULT_LEVEL, None


def compute_rating_stats(ratings: Sequence[Rating]) -> Dict[str, Any]:
    """
    ``ratings`` are the approved ratings in chronological order.
    The tier uses the unrounded mean; the reported mean is rounded half-up
    to one decimal.
    """
    if not ratings:
        return {
            "average_rating": 0,
            "total_ratings": 0,
            "category_stats": {},
            "level": DEFAULT_LEVEL,
            "badge": None,
            "recent_ratings": [],
        }

    total = len(ratings)
    average = sum(r.overall_rating for r in ratings) / total

    category_stats = {name: 0 for name in RATING_CATEGORIES}
    for r in ratings:
        for name in RATING_CATEGORIES:
            if getattr(r, name):
                category_stats[name] += 1

    level, badge = level_for(total, average)
    recent: List[Rating] = list(ratings[-RECENT_RATINGS:])
    recent.reverse()

    return {
        "average_rating": _round1(average),
        "total_ratings": total,
        "category_stats": category_stats,
        "level": level,
        "badge": badge,
        "recent_ratings": recent,
    }
