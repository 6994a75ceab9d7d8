"""
Trip search entry point.

Wires candidate retrieval -> deviation filter -> scoring -> sorting ->
pagination for one request. Nothing is shared between calls.
"""

import logging
import math
from typing import Optional

from .domain import Coordinate, SearchConfig, SearchQuery, SearchResult, SortKey
from .errors import InvalidQuery, SearchUnavailable
from .matching_service import filter_matches, paginate, score_matches, sort_matches
from .repository import CandidateRetriever, RouteStore

logger = logging.getLogger(__name__)


def parse_coordinate(lng, lat, label: str) -> Coordinate:
    """Build a Coordinate from raw values, raising InvalidQuery when missing or malformed"""
    if lng is None or lat is None or lng == "" or lat == "":
        raise InvalidQuery(f"{label} coordinates are required")
    try:
        return Coordinate(lng=float(lng), lat=float(lat))
    except (TypeError, ValueError) as e:
        raise InvalidQuery(f"Invalid {label} coordinates: {e}") from e


class TripSearchService:
    def __init__(self, store: RouteStore, config: Optional[SearchConfig] = None):
        self.config = config or SearchConfig()
        self.retriever = CandidateRetriever(store, self.config)

    def resolve_deviation(self, requested: Optional[float]) -> float:
        """Requested radius capped at the configured maximum; never an error unless negative or not finite"""
        if requested is None:
            requested = self.config.default_deviation_km
        if not math.isfinite(requested):
            raise InvalidQuery("Deviation must be a finite number")
        if requested < 0:
            raise InvalidQuery("Deviation cannot be negative")
        return min(float(requested), self.config.max_deviation_km)

    def resolve_page_size(self, requested: Optional[int]) -> int:
        if requested is None:
            return self.config.default_page_size
        if requested < 1:
            raise InvalidQuery("Page size must be at least 1")
        return min(requested, self.config.max_page_size)

    def validate(self, query: SearchQuery) -> None:
        if query.pickup is None or query.drop is None:
            raise InvalidQuery("Pickup and drop coordinates are required")
        if not isinstance(query.pickup, Coordinate) or not isinstance(query.drop, Coordinate):
            raise InvalidQuery("Pickup and drop must be coordinates")
        if query.page < 1:
            raise InvalidQuery("Page must be at least 1")

    def search(self, query: SearchQuery) -> SearchResult:
        """
        Run one trip search.

        Raises:
            InvalidQuery: before any storage access, for malformed input
            SearchUnavailable: when the route store fails; no partial results
        """
        self.validate(query)
        deviation_km = self.resolve_deviation(query.deviation_km)
        page_size = self.resolve_page_size(query.page_size)

        try:
            candidates = self.retriever.retrieve(
                query.pickup,
                deviation_km,
                target_date=query.date,
                truck_type=query.truck_type,
            )
        except SearchUnavailable:
            logger.exception("Trip search failed while fetching candidates")
            raise

        matches = filter_matches(candidates, query.pickup, query.drop, deviation_km)
        scored = score_matches(matches, deviation_km)
        sort_by = query.sort_by or SortKey.SCORE
        ordered = sort_matches(scored, sort_by)
        page_matches, total = paginate(ordered, query.page, page_size)

        logger.info(
            "Trip search: %d candidates, %d matches, deviation %.1f km, sort %s, page %d",
            len(candidates), total, deviation_km, sort_by.value, query.page,
        )

        return SearchResult(
            matches=page_matches,
            total=total,
            deviation_km_used=deviation_km,
            page=query.page,
            page_size=page_size,
        )
