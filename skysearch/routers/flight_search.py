from fastapi import APIRouter, Depends, Request
from typing import Dict, List, Tuple
import logging

from skysearch.config import settings
from skysearch.exceptions import ProviderError
from skysearch.schemas.flight_schemas import Flight, FlightResultsResponse, FlightSearchResponse
from skysearch.services import derived_state
from skysearch.services.amadeus_service import AmadeusService, get_amadeus_service
from skysearch.services.transformer import transform_offer
from skysearch.services.url_state import view_from_query
from skysearch.services.validator import validate

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/flights",
    tags=["flights"]
)


async def _search(request: Request, amadeus_svc: AmadeusService) -> Tuple[List[Flight], Dict[str, str]]:
    """Validate -> provider search -> transform. Validation fails before any outbound call."""
    search_request = validate(dict(request.query_params))

    offers, carriers, aircraft = await amadeus_svc.search_offers(search_request)

    try:
        flights = [transform_offer(offer, carriers, aircraft) for offer in offers]
    except ValueError as e:
        logger.exception(f"Failed to transform flight offers for {search_request.origin}-{search_request.destination}")
        raise ProviderError("Failed to process flight offers") from e

    logger.info(f"{len(flights)} offers for {search_request.origin}-{search_request.destination} "
                f"on {search_request.departure_date}")
    return flights, carriers


@router.get("", response_model=FlightSearchResponse)
async def search_flights(request: Request, amadeus_svc: AmadeusService = Depends(get_amadeus_service)):
    """
    Search flight offers and return them in the flat display model together
    with the carrier dictionary.
    """
    flights, carriers = await _search(request, amadeus_svc)
    return FlightSearchResponse(flights=flights, carriers=carriers)


@router.get("/results", response_model=FlightResultsResponse)
async def search_results(request: Request, amadeus_svc: AmadeusService = Depends(get_amadeus_service)):
    """
    Same search, with filtering, sorting, pagination, histogram and facets
    applied from the view parameters in the URL.
    """
    flights, carriers = await _search(request, amadeus_svc)

    defaults = derived_state.recompute_defaults(flights)
    filters, sort, page = view_from_query(request.query_params, defaults)
    view = derived_state.build_view(flights, filters, sort, page)

    return FlightResultsResponse(
        flights=view.flights,
        total=view.total,
        page=view.page,
        page_count=view.page_count,
        page_size=settings.page_size,
        sort=sort.value,
        filters=filters,
        price_stats=derived_state.price_stats(flights),
        histogram=derived_state.price_histogram(flights),
        facets=derived_state.facets(flights, carriers),
        carriers=carriers,
    )
