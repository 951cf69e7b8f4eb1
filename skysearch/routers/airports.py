from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from typing import Optional
import logging

from skysearch.exceptions import FlightSearchError
from skysearch.schemas.flight_schemas import AirportSearchResponse
from skysearch.services.amadeus_service import AmadeusService, MIN_KEYWORD_LENGTH, get_amadeus_service
from skysearch.services.transformer import transform_location

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/airports",
    tags=["airports"]
)

@router.get("", response_model=AirportSearchResponse)
async def search_airports(keyword: Optional[str] = None,
                          amadeus_svc: AmadeusService = Depends(get_amadeus_service)):
    """
    Airport/city autocomplete. Short keywords get an empty list without
    touching the provider.
    """
    keyword = (keyword or "").strip()
    if len(keyword) < MIN_KEYWORD_LENGTH:
        return AirportSearchResponse(airports=[])

    try:
        locations = await amadeus_svc.search_locations(keyword)
    except FlightSearchError as e:
        logger.error(f"Airport search failed for '{keyword}': {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to search airports"})

    return AirportSearchResponse(airports=[transform_location(loc) for loc in locations])
