"""
Query-string form of a search and of the results view, so a results page can
be bookmarked, shared and navigated with back/forward.
"""
from typing import Dict, List, Mapping, Optional, Tuple

from skysearch.schemas.flight_schemas import FilterState, SearchRequest
from skysearch.services.derived_state import SortKey


def search_to_query(req: SearchRequest) -> Dict[str, str]:
    query = {
        "origin": req.origin,
        "destination": req.destination,
        "departureDate": req.departure_date.isoformat(),
        "adults": str(req.adults),
    }
    if req.return_date:
        query["returnDate"] = req.return_date.isoformat()
    if req.children:
        query["children"] = str(req.children)
    if req.infants:
        query["infants"] = str(req.infants)
    if req.non_stop:
        query["nonStop"] = "true"
    if req.max_price:
        query["maxPrice"] = str(req.max_price)
    if req.included_airline_codes:
        query["includedAirlineCodes"] = ",".join(req.included_airline_codes)
    return query


def _number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def view_to_query(filters: FilterState,
                  sort: SortKey = SortKey.PRICE,
                  page: int = 1,
                  defaults: Optional[FilterState] = None) -> Dict[str, str]:
    """Encode only what differs from the defaults."""
    defaults = defaults or FilterState()
    query = {}

    if SortKey(sort) != SortKey.PRICE:
        query["sort"] = SortKey(sort).value
    if page != 1:
        query["page"] = str(page)
    if filters.stops:
        query["stops"] = ",".join(str(s) for s in sorted(filters.stops))
    if filters.airlines:
        query["airlines"] = ",".join(filters.airlines)
    if not filters.price_unbounded and tuple(filters.price_range) != tuple(defaults.price_range):
        query["minPrice"] = _number(filters.price_range[0])
        query["maxPrice"] = _number(filters.price_range[1])
    return query


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _parse_stops(value: Optional[str]) -> Tuple[int, ...]:
    stops = []
    for part in _split(value):
        if part.isdigit() and int(part) not in stops:
            stops.append(int(part))
    return tuple(sorted(stops))


def _parse_price(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        price = float(value)
    except ValueError:
        return None
    return price if price >= 0 else None


def view_from_query(params: Mapping[str, Optional[str]],
                    defaults: Optional[FilterState] = None) -> Tuple[FilterState, SortKey, int]:
    """
    Decode ``sort``, ``page``, ``stops``, ``minPrice``, ``maxPrice`` and
    ``airlines``. Anything malformed falls back to its default.
    """
    defaults = defaults or FilterState()

    sort = SortKey.parse(params.get("sort"))

    try:
        page = int(params.get("page") or 1)
    except ValueError:
        page = 1
    if page < 1:
        page = 1

    low = _parse_price(params.get("minPrice"))
    high = _parse_price(params.get("maxPrice"))
    price_range = defaults.price_range
    if low is not None or high is not None:
        low = low if low is not None else defaults.price_range[0]
        high = high if high is not None else defaults.price_range[1]
        if low <= high:
            price_range = (low, high)

    airlines = []
    for code in _split(params.get("airlines")):
        code = code.upper()
        if code not in airlines:
            airlines.append(code)

    filters = FilterState(
        stops=_parse_stops(params.get("stops")),
        price_range=price_range,
        airlines=tuple(airlines),
    )
    return filters, sort, page
