"""
Matching Service - exact matching, scoring and ranking of posted trips

Runs after the coarse candidate query:
- Deviation filter (origin and destination checked independently)
- Booking distance and cost estimate
- Composite score (price, deviation, driver rating)
- Sorting by the requested key and pagination
"""

from typing import Callable, Dict, Iterable, List, Tuple

from .domain import Coordinate, MatchResult, PostedRoute, SortKey
from .utils import distance_km


# Practical ceiling for price normalization, in rupees per km
MAX_PRICE_PER_KM = 100.0
MAX_RATING = 5.0

# Normalized rating component for drivers with no ratings yet (equivalent to 2.5 stars).
# A cold-start policy choice, not derived from data.
NEUTRAL_RATING_SCORE = 0.5

PRICE_WEIGHT = 0.4
DEVIATION_WEIGHT = 0.35
RATING_WEIGHT = 0.25


def filter_matches(
    candidates: Iterable[PostedRoute],
    pickup: Coordinate,
    drop: Coordinate,
    deviation_km: float,
) -> List[MatchResult]:
    """
    Keep candidates whose origin is within deviation_km of the pickup AND
    whose destination is within deviation_km of the drop.

    The two limits are independent: a route cannot spend unused origin
    allowance on its destination.

    Returns: MatchResults with distance metrics populated, score unset
    """
    booking_distance = distance_km(pickup, drop)

    matches = []
    for route in candidates:
        origin_deviation = distance_km(route.origin.location, pickup)
        if origin_deviation > deviation_km:
            continue

        dest_deviation = distance_km(route.destination.location, drop)
        if dest_deviation > deviation_km:
            continue

        matches.append(
            MatchResult(
                route=route,
                origin_deviation_km=origin_deviation,
                dest_deviation_km=dest_deviation,
                total_deviation_km=origin_deviation + dest_deviation,
                booking_distance_km=booking_distance,
                estimated_cost_rupees=booking_distance * route.price_per_km,
            )
        )

    return matches


def price_score(price_per_km: float) -> float:
    return min(price_per_km / MAX_PRICE_PER_KM, 1.0)


def deviation_score(total_deviation_km: float, deviation_km: float) -> float:
    """Total deviation relative to the largest combined deviation the search allows"""
    if deviation_km <= 0:
        return 0.0
    return total_deviation_km / (2 * deviation_km)


def rating_score(rating) -> float:
    if rating is None:
        return NEUTRAL_RATING_SCORE
    return (MAX_RATING - rating) / MAX_RATING


def calculate_match_score(match: MatchResult, deviation_km: float) -> float:
    """
    Weighted composite score for ranking within a single search.

    Lower is better: cheaper, closer to the requested route, better rated.
    Components are not clamped, so outliers can push the score outside [0, 1].
    """
    return (
        price_score(match.price_per_km) * PRICE_WEIGHT +
        deviation_score(match.total_deviation_km, deviation_km) * DEVIATION_WEIGHT +
        rating_score(match.driver_rating) * RATING_WEIGHT
    )


def score_matches(matches: Iterable[MatchResult], deviation_km: float) -> List[MatchResult]:
    return [m.with_score(calculate_match_score(m, deviation_km)) for m in matches]


# key function and reverse flag per sort key
_SORT_KEYS: Dict[SortKey, Tuple[Callable[[MatchResult], float], bool]] = {
    SortKey.SCORE: (lambda m: m.score, False),
    SortKey.RECOMMENDED: (lambda m: m.score, False),
    SortKey.PRICE_LOW: (lambda m: m.price_per_km, False),
    SortKey.PRICE_HIGH: (lambda m: m.price_per_km, True),
    SortKey.RATING: (lambda m: m.driver_rating or 0.0, True),
    SortKey.NEAREST: (lambda m: m.origin_deviation_km, False),
    SortKey.DEVIATION: (lambda m: m.total_deviation_km, False),
}


def sort_matches(matches: Iterable[MatchResult], sort_by: SortKey = SortKey.SCORE) -> List[MatchResult]:
    """Stable sort; ties keep their incoming order for both directions"""
    key, reverse = _SORT_KEYS.get(sort_by, _SORT_KEYS[SortKey.SCORE])
    return sorted(matches, key=key, reverse=reverse)


def paginate(matches: List[MatchResult], page: int, page_size: int) -> Tuple[List[MatchResult], int]:
    """
    Slice one 1-indexed page.

    Returns: (page slice, total before pagination). Pages past the end are empty.
    """
    start = (page - 1) * page_size
    return matches[start:start + page_size], len(matches)
