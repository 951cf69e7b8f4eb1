"""
Derived view of a flight list: price statistics, filter defaults, the filter
predicate, sorting, pagination, the price histogram and the facet lists.

Everything here is a pure function of ``(flights, filters, sort, page)``
except ``ResultsSession``, which only remembers those four inputs and decides
when the page resets.
"""
import math
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence

from skysearch.config import settings
from skysearch.schemas.flight_schemas import (
    AirlineFacet,
    Facets,
    FilterState,
    Flight,
    PriceBucket,
    PriceStats,
)
from skysearch.services.transformer import duration_to_minutes


class SortKey(str, Enum):
    PRICE = "price"
    DURATION = "duration"
    DEPARTURE = "departure"
    STOPS = "stops"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortKey":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.PRICE


def price_stats(flights: Sequence[Flight]) -> Optional[PriceStats]:
    if not flights:
        return None
    prices = [f.price for f in flights]
    return PriceStats(
        min=min(prices),
        max=max(prices),
        average=round(sum(prices) / len(prices)),
    )


def recompute_defaults(flights: Sequence[Flight]) -> FilterState:
    """Reset filters for a new result set: no constraints, full observed price range."""
    stats = price_stats(flights)
    if stats is None:
        return FilterState()
    return FilterState(price_range=(math.floor(stats.min), math.ceil(stats.max)))


def effective_stops(flight: Flight) -> int:
    # Round trips are judged by their worse leg
    if flight.return_flight is not None:
        return max(flight.stops, flight.return_flight.stops)
    return flight.stops


def matches_filters(flight: Flight, filters: FilterState) -> bool:
    if filters.stops and effective_stops(flight) not in filters.stops:
        return False
    if not filters.price_unbounded:
        low, high = filters.price_range
        if not (low <= flight.price <= high):
            return False
    if filters.airlines and flight.airline_code not in filters.airlines:
        return False
    return True


def filter_flights(flights: Sequence[Flight], filters: FilterState) -> List[Flight]:
    return [f for f in flights if matches_filters(f, filters)]


def is_filter_active(filters: FilterState, defaults: FilterState) -> bool:
    if filters.stops or filters.airlines:
        return True
    if filters.price_unbounded or defaults.price_unbounded:
        return False
    return filters.price_range[0] > defaults.price_range[0] or filters.price_range[1] < defaults.price_range[1]


def _departure_key(flight: Flight):
    try:
        return (0, datetime.fromisoformat(flight.departure.time.replace("Z", "+00:00")).replace(tzinfo=None))
    except ValueError:
        # Unreadable timestamps sort after everything else
        return (1, datetime.max)


def _duration_key(flight: Flight):
    minutes = duration_to_minutes(flight.duration)
    return (minutes is None, minutes or 0)


SORT_KEYS = {
    SortKey.PRICE: lambda f: f.price,
    SortKey.DURATION: _duration_key,
    SortKey.DEPARTURE: _departure_key,
    SortKey.STOPS: effective_stops,
}


def sort_flights(flights: Sequence[Flight], sort: SortKey = SortKey.PRICE) -> List[Flight]:
    # sorted() is stable, so ties keep their input order and pages stay deterministic
    return sorted(flights, key=SORT_KEYS[SortKey(sort)])


def page_count(total: int, page_size: Optional[int] = None) -> int:
    size = page_size or settings.page_size
    return max(1, math.ceil(total / size))


def paginate(flights: Sequence[Flight], page: int, page_size: Optional[int] = None) -> List[Flight]:
    """1-based page slice; pages outside the list are empty, never an error."""
    size = page_size or settings.page_size
    if page < 1:
        return []
    start = (page - 1) * size
    return list(flights[start:start + size])


def _money(value: float) -> str:
    return f"${round(value):,}"


def price_histogram(flights: Sequence[Flight], max_buckets: Optional[int] = None) -> List[PriceBucket]:
    """
    Split [min, max] into min(max_buckets, len(flights)) equal-width buckets.
    Buckets are half-open except the last, which also includes max, so every
    flight is counted exactly once.
    """
    if not flights:
        return []

    prices = [f.price for f in flights]
    low = min(prices)
    high = max(prices)
    spread = high - low

    if spread == 0:
        return [PriceBucket(low=low, high=high, midpoint=round(low), count=len(prices), label=_money(low))]

    bucket_count = min(max_buckets or settings.histogram_max_buckets, len(prices))
    width = spread / bucket_count

    buckets = []
    for i in range(bucket_count):
        bucket_low = low + i * width
        last = i == bucket_count - 1
        bucket_high = high if last else low + (i + 1) * width
        count = sum(1 for p in prices if bucket_low <= p and (p <= bucket_high if last else p < bucket_high))
        buckets.append(PriceBucket(
            low=bucket_low,
            high=bucket_high,
            midpoint=round(bucket_low + width / 2),
            count=count,
            label=f"{_money(bucket_low)} - {_money(bucket_high)}",
        ))
    return buckets


def facets(flights: Sequence[Flight], carriers: Optional[Dict[str, str]] = None) -> Facets:
    carriers = carriers or {}
    stops = sorted({effective_stops(f) for f in flights})

    airlines: Dict[str, AirlineFacet] = {}
    for f in flights:
        existing = airlines.get(f.airline_code)
        if existing:
            airlines[f.airline_code] = existing.model_copy(update={"count": existing.count + 1})
        else:
            airlines[f.airline_code] = AirlineFacet(
                code=f.airline_code,
                name=carriers.get(f.airline_code) or f.airline,
                count=1,
            )

    return Facets(
        stops=stops,
        airlines=sorted(airlines.values(), key=lambda a: (-a.count, a.code)),
    )


class ResultsView:
    """One computed page plus the totals the list header needs."""

    def __init__(self, flights: List[Flight], total: int, page: int, page_count: int):
        self.flights = flights
        self.total = total
        self.page = page
        self.page_count = page_count


def build_view(flights: Sequence[Flight],
               filters: FilterState,
               sort: SortKey = SortKey.PRICE,
               page: int = 1,
               page_size: Optional[int] = None) -> ResultsView:
    filtered = filter_flights(flights, filters)
    ordered = sort_flights(filtered, sort)
    return ResultsView(
        flights=paginate(ordered, page, page_size),
        total=len(ordered),
        page=page,
        page_count=page_count(len(ordered), page_size),
    )


class ResultsSession:
    """
    Current flight list together with the user's filter, sort and page.

    The page goes back to 1 only when a new search loads a new list. Filter
    and sort changes keep the page, so a page beyond the filtered list is
    simply empty.
    """

    def __init__(self, page_size: Optional[int] = None):
        self.page_size = page_size or settings.page_size
        self.flights: List[Flight] = []
        self.defaults = FilterState()
        self.filters = FilterState()
        self.sort = SortKey.PRICE
        self.page = 1

    def load(self, flights: Sequence[Flight]) -> None:
        self.flights = list(flights)
        self.defaults = recompute_defaults(self.flights)
        self.filters = self.defaults
        self.page = 1

    def apply_filters(self, filters: FilterState) -> None:
        self.filters = filters

    def set_sort(self, sort: SortKey) -> None:
        self.sort = SortKey(sort)

    def set_page(self, page: int) -> None:
        self.page = page

    def reset_filters(self) -> None:
        self.filters = self.defaults

    @property
    def filters_active(self) -> bool:
        return is_filter_active(self.filters, self.defaults)

    def view(self) -> ResultsView:
        return build_view(self.flights, self.filters, self.sort, self.page, self.page_size)
