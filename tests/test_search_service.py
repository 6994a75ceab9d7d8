from datetime import datetime, timedelta, timezone

import pytest

from freightmatch.domain import Coordinate, SearchConfig, SearchQuery, SortKey, TripStatus
from freightmatch.errors import InvalidQuery, SearchUnavailable
from freightmatch.search_service import TripSearchService, parse_coordinate

from conftest import DROP, PICKUP, SEARCH_DAY, FailingRouteStore, InMemoryRouteStore, make_route


def query(**kwargs):
    params = dict(pickup=PICKUP, drop=DROP, date=SEARCH_DAY)
    params.update(kwargs)
    return SearchQuery(**params)


def test_single_match_scenario():
    store = InMemoryRouteStore([make_route(price_per_km=20)])
    result = TripSearchService(store).search(query(deviation_km=50))

    assert result.total == 1
    assert result.deviation_km_used == 50
    match = result.matches[0]
    assert 1100 < match.booking_distance_km < 1200
    assert match.estimated_cost_rupees == pytest.approx(match.booking_distance_km * 20)
    assert match.score is not None


def test_coarse_query_uses_buffered_radius_and_cap():
    store = InMemoryRouteStore([])
    config = SearchConfig(candidate_limit=25, coarse_buffer_km=50)
    TripSearchService(store, config).search(query(deviation_km=30, truck_type="tanker"))

    call = store.calls[0]
    assert call["point"] == PICKUP
    assert call["radius_km"] == 80
    assert call["limit"] == 25
    assert call["truck_type"] == "tanker"
    assert call["window"].start == SEARCH_DAY
    assert call["window"].end == SEARCH_DAY + timedelta(days=1)


def test_deviation_is_clamped_to_maximum():
    store = InMemoryRouteStore([])
    result = TripSearchService(store, SearchConfig(max_deviation_km=100)).search(query(deviation_km=500))

    assert result.deviation_km_used == 100
    assert store.calls[0]["radius_km"] == 150


def test_default_deviation_applies_when_not_requested():
    result = TripSearchService(InMemoryRouteStore([])).search(query())
    assert result.deviation_km_used == 50


def test_negative_deviation_is_rejected():
    store = InMemoryRouteStore([])
    with pytest.raises(InvalidQuery):
        TripSearchService(store).search(query(deviation_km=-1))
    assert store.calls == []


@pytest.mark.parametrize("deviation", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_deviation_is_rejected(deviation):
    store = InMemoryRouteStore([])
    with pytest.raises(InvalidQuery):
        TripSearchService(store).search(query(deviation_km=deviation))
    assert store.calls == []


@pytest.mark.parametrize("field", ["pickup", "drop"])
def test_missing_coordinates_fail_before_storage(field):
    store = InMemoryRouteStore([make_route()])
    with pytest.raises(InvalidQuery):
        TripSearchService(store).search(query(**{field: None}))
    assert store.calls == []


@pytest.mark.parametrize("page, page_size", [(0, 10), (1, 0)])
def test_invalid_paging_is_rejected(page, page_size):
    with pytest.raises(InvalidQuery):
        TripSearchService(InMemoryRouteStore([])).search(query(page=page, page_size=page_size))


def test_page_size_is_capped():
    result = TripSearchService(InMemoryRouteStore([]), SearchConfig(max_page_size=50)).search(query(page_size=1000))
    assert result.page_size == 50


def test_storage_failure_surfaces_as_unavailable():
    store = FailingRouteStore()
    with pytest.raises(SearchUnavailable):
        TripSearchService(store).search(query())
    assert store.calls == 1


def test_no_matches_is_an_empty_result():
    far_away = make_route(origin=(88.36, 22.57), destination=(80.27, 13.08))
    result = TripSearchService(InMemoryRouteStore([far_away])).search(query())

    assert result.matches == []
    assert result.total == 0
    assert result.pages == 0


def test_only_active_routes_in_window_are_matched():
    routes = [
        make_route(1),
        make_route(2, status=TripStatus.BOOKED),
        make_route(3, available_date=SEARCH_DAY + timedelta(days=1)),
        make_route(4, available_date=SEARCH_DAY + timedelta(hours=23)),
    ]
    result = TripSearchService(InMemoryRouteStore(routes)).search(query())
    assert sorted(m.route.id for m in result.matches) == [1, 4]


def test_total_is_independent_of_paging():
    routes = [make_route(i, price_per_km=10 + i) for i in range(1, 13)]
    service = TripSearchService(InMemoryRouteStore(routes))

    pages = [service.search(query(page=p, page_size=5)) for p in (1, 2, 3, 4)]

    assert [r.total for r in pages] == [12, 12, 12, 12]
    assert [len(r.matches) for r in pages] == [5, 5, 2, 0]
    assert pages[0].pages == 3
    seen = [m.route.id for r in pages for m in r.matches]
    assert sorted(seen) == list(range(1, 13))


def test_cheaper_route_is_recommended_first():
    routes = [make_route(1, price_per_km=90), make_route(2, price_per_km=10)]
    result = TripSearchService(InMemoryRouteStore(routes)).search(query())
    assert [m.route.id for m in result.matches] == [2, 1]


def test_rating_sort_puts_best_rated_first():
    routes = [
        make_route(1, origin=(77.11, 28.70), price_per_km=10, rating=3.0),
        make_route(2, origin=(77.40, 28.90), price_per_km=80, rating=4.8),
    ]
    result = TripSearchService(InMemoryRouteStore(routes)).search(query(sort_by=SortKey.RATING))
    assert [m.route.id for m in result.matches] == [2, 1]


def test_timezone_aware_date_is_normalized_to_utc():
    store = InMemoryRouteStore([])
    ist = timezone(timedelta(hours=5, minutes=30))
    TripSearchService(store).search(query(date=datetime(2026, 10, 20, 5, 30, tzinfo=ist)))
    assert store.calls[0]["window"].start == SEARCH_DAY


def test_missing_date_searches_from_now():
    store = InMemoryRouteStore([])
    before = datetime.utcnow()
    TripSearchService(store).search(query(date=None))
    window = store.calls[0]["window"]
    assert before <= window.start <= datetime.utcnow()
    assert window.end - window.start == timedelta(days=1)


@pytest.mark.parametrize("lng, lat", [(None, 28.7), ("", "28.7"), ("abc", "28.7"), ("200", "28.7"), ("77.1", "-91")])
def test_parse_coordinate_rejects_bad_input(lng, lat):
    with pytest.raises(InvalidQuery):
        parse_coordinate(lng, lat, "pickup")


def test_parse_coordinate_accepts_strings():
    assert parse_coordinate("77.10", "28.70", "pickup") == Coordinate(lng=77.10, lat=28.70)
