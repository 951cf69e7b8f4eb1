import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pydantic

from skysearch.config import settings
from skysearch.exceptions import ProviderError, ValidationError
from skysearch.schemas.flight_schemas import ProviderLocation, ProviderOffer, SearchRequest
from skysearch.services.token_cache import TokenCache

logger = logging.getLogger(__name__)

LOCATIONS_PATH = "/v1/reference-data/locations"
FLIGHT_OFFERS_PATH = "/v2/shopping/flight-offers"

MIN_KEYWORD_LENGTH = 2


def _first_error_detail(response: httpx.Response) -> Optional[str]:
    """Pull ``errors[0].detail`` out of an Amadeus error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    errors = body.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        detail = errors[0].get("detail")
        if detail:
            return str(detail)
    return None


def build_offer_params(req: SearchRequest) -> Dict[str, str]:
    """
    Translate a SearchRequest into flight-offers query parameters.
    Optional filters are only sent when they carry a non-default value.
    """
    params = {
        "originLocationCode": req.origin,
        "destinationLocationCode": req.destination,
        "departureDate": req.departure_date.isoformat(),
        "adults": str(req.adults),
        "currencyCode": settings.currency_code,
        "max": str(settings.max_offers),
    }

    if req.return_date:
        params["returnDate"] = req.return_date.isoformat()
    if req.children > 0:
        params["children"] = str(req.children)
    if req.infants > 0:
        params["infants"] = str(req.infants)
    if req.non_stop:
        params["nonStop"] = "true"
    if req.max_price:
        params["maxPrice"] = str(req.max_price)
    if req.included_airline_codes:
        params["includedAirlineCodes"] = ",".join(req.included_airline_codes)

    return params


class AmadeusService:
    def __init__(self,
                 token_cache: Optional[TokenCache] = None,
                 base_url: Optional[str] = None,
                 timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url or settings.amadeus_base_url
        self.timeout = timeout or settings.search_timeout_seconds
        self._transport = transport
        self.tokens = token_cache or TokenCache(base_url=self.base_url, transport=transport)

    async def _get(self, path: str, params: Dict[str, str], fallback_message: str) -> Dict[str, Any]:
        """
        Authenticated GET. A 401 triggers exactly one forced token refresh and
        one retry; a second 401 is final.
        """
        token = await self.tokens.get_token()

        try:
            async with httpx.AsyncClient(base_url=self.base_url,
                                         timeout=self.timeout,
                                         transport=self._transport) as client:
                response = await client.get(path, params=params, headers=self._headers(token))

                if response.status_code == 401:
                    logger.warning(f"Amadeus rejected the access token on {path}; refreshing once and retrying")
                    token = await self.tokens.refresh(stale_token=token)
                    response = await client.get(path, params=params, headers=self._headers(token))
        except httpx.TimeoutException as e:
            logger.error(f"Amadeus request to {path} timed out")
            raise ProviderError(fallback_message) from e
        except httpx.RequestError as e:
            logger.error(f"Network error querying Amadeus {path}: {e}")
            raise ProviderError(fallback_message) from e

        if response.status_code == 429:
            logger.warning("Amadeus Rate Limit Exceeded")
        if response.is_error:
            detail = _first_error_detail(response)
            logger.error(f"Amadeus {path} failed: status {response.status_code} ({detail or 'no detail'})")
            raise ProviderError(detail or fallback_message, upstream_status=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Amadeus {path} returned a non-JSON body")
            raise ProviderError(fallback_message, upstream_status=response.status_code) from e

    @staticmethod
    def _headers(token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.amadeus+json"
        }

    async def search_locations(self, keyword: str) -> List[ProviderLocation]:
        """Airport/city lookup by keyword, most travelled first."""
        keyword = (keyword or "").strip()
        if len(keyword) < MIN_KEYWORD_LENGTH:
            raise ValidationError("Keyword must be at least 2 characters")

        params = {
            "subType": "AIRPORT,CITY",
            "keyword": keyword,
            "page[limit]": str(settings.location_limit),
            "sort": "analytics.travelers.score",
            "view": "LIGHT",
        }
        data = await self._get(LOCATIONS_PATH, params, "Failed to search airports")

        locations = []
        for item in data.get("data", []) or []:
            try:
                locations.append(ProviderLocation.model_validate(item))
            except pydantic.ValidationError as e:
                # A location without an IATA code cannot be selected anyway
                logger.debug(f"Dropping unusable location entry: {e.error_count()} errors")
        return locations

    async def search_offers(self, req: SearchRequest) -> Tuple[List[ProviderOffer], Dict[str, str], Dict[str, str]]:
        """
        Queries the Amadeus Flight Offers Search API.
        Returns the offers plus the carrier and aircraft dictionaries.
        """
        data = await self._get(FLIGHT_OFFERS_PATH, build_offer_params(req), "Failed to search flights")

        dictionaries = data.get("dictionaries", {}) or {}
        carriers = dictionaries.get("carriers", {}) or {}
        aircraft = dictionaries.get("aircraft", {}) or {}

        try:
            offers = [ProviderOffer.model_validate(item) for item in data.get("data", []) or []]
        except pydantic.ValidationError as e:
            logger.error(f"Amadeus returned a malformed flight offer: {e}")
            raise ProviderError("Provider returned a malformed flight offer") from e

        return offers, carriers, aircraft


# One service per process; it owns the token cache shared by all requests
_amadeus_svc: Optional[AmadeusService] = None


def get_amadeus_service() -> AmadeusService:
    global _amadeus_svc
    if _amadeus_svc is None:
        _amadeus_svc = AmadeusService()
    return _amadeus_svc
