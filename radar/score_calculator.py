"""
Opportunity Score - SINGLE SOURCE OF TRUTH for radar scoring

Three independent factors, 10 points max each:
- Age: newer is better
- Liquidity: deeper is better
- Momentum: bigger initial move is better
"""
from .models import MAX_SCORE, SPIKE_THRESHOLD

SUB_SCORE_CAP = 10

# (exclusive upper bound, points) - first bound the age is below wins
AGE_BUCKETS = [(5, 10), (15, 8), (30, 5)]

# (exclusive lower bound, points) - first bound the value exceeds wins
LIQUIDITY_BUCKETS = [(20000, 10), (10000, 8), (5000, 6), (2000, 3)]
MOMENTUM_BUCKETS = [(100, 10), (50, 8), (25, 6), (10, 3)]


def age_score(age_minutes) -> int:
    for bound, points in AGE_BUCKETS:
        if age_minutes < bound:
            return min(points, SUB_SCORE_CAP)
    return 0


def liquidity_score(liquidity_usd) -> int:
    for bound, points in LIQUIDITY_BUCKETS:
        if liquidity_usd > bound:
            return min(points, SUB_SCORE_CAP)
    return 0


def momentum_score(price_change_percent) -> int:
    for bound, points in MOMENTUM_BUCKETS:
        if price_change_percent > bound:
            return min(points, SUB_SCORE_CAP)
    return 0


def calculate_score(age_minutes, liquidity_usd, price_change_percent) -> int:
    """
    Score a token from its age, liquidity and price momentum.

    Args:
        age_minutes: Minutes since detection (>= 0)
        liquidity_usd: Pool liquidity in USD (>= 0)
        price_change_percent: Price change since launch in percent (>= 0)

    Returns:
        Integer score in [0, 30]
    """
    score = (
        age_score(age_minutes)
        + liquidity_score(liquidity_usd)
        + momentum_score(price_change_percent)
    )
    return max(0, min(MAX_SCORE, score))


def is_spiking(score: int, threshold: int = SPIKE_THRESHOLD) -> bool:
    return score >= threshold
