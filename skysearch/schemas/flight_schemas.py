from datetime import date
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Immutable model serialized with camelCase keys for the browser client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# --- Search input ---

class SearchRequest(CamelModel):
    origin: str = Field(..., min_length=3, max_length=3, description="IATA code, uppercase.")
    destination: str = Field(..., min_length=3, max_length=3, description="IATA code, uppercase.")
    departure_date: date
    return_date: Optional[date] = None
    adults: int = Field(1, ge=1, le=9)
    children: int = Field(0, ge=0)
    infants: int = Field(0, ge=0)
    non_stop: Optional[bool] = None
    max_price: Optional[int] = Field(None, gt=0)
    included_airline_codes: Optional[Tuple[str, ...]] = None

    @property
    def is_round_trip(self) -> bool:
        return self.return_date is not None


# --- Provider payload (Amadeus shapes, read-only) ---

class ProviderModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class ProviderEndpoint(ProviderModel):
    iataCode: str
    at: str
    terminal: Optional[str] = None


class ProviderAircraft(ProviderModel):
    code: str


class ProviderSegment(ProviderModel):
    departure: ProviderEndpoint
    arrival: ProviderEndpoint
    carrierCode: str
    number: str
    aircraft: ProviderAircraft
    duration: Optional[str] = None
    numberOfStops: int = 0


class ProviderItinerary(ProviderModel):
    duration: Optional[str] = None
    segments: List[ProviderSegment]


class ProviderPrice(ProviderModel):
    total: str
    currency: str


class ProviderOffer(ProviderModel):
    id: str
    itineraries: List[ProviderItinerary]
    price: ProviderPrice
    validatingAirlineCodes: List[str] = Field(default_factory=list)
    numberOfBookableSeats: Optional[int] = None


class ProviderLocationAddress(ProviderModel):
    cityName: Optional[str] = None
    cityCode: Optional[str] = None
    countryName: Optional[str] = None
    countryCode: Optional[str] = None


class ProviderLocation(ProviderModel):
    id: Optional[str] = None
    iataCode: str
    name: str
    subType: str
    detailedName: Optional[str] = None
    address: Optional[ProviderLocationAddress] = None


# --- Display model ---

class Airport(CamelModel):
    id: str
    code: str
    name: str
    city: str
    country: str
    type: str


class FlightEndpoint(CamelModel):
    airport: str
    time: str
    terminal: Optional[str] = None


class ReturnLeg(CamelModel):
    airline: str
    airline_code: str
    flight_number: str
    departure: FlightEndpoint
    arrival: FlightEndpoint
    duration: Optional[str] = None
    stops: int = Field(..., ge=0)
    aircraft: str


class Flight(CamelModel):
    id: str
    airline: str
    airline_code: str
    flight_number: str
    departure: FlightEndpoint
    arrival: FlightEndpoint
    duration: Optional[str] = None
    stops: int = Field(..., ge=0)
    price: float = Field(..., gt=0)
    currency: str
    aircraft: str
    seats_available: Optional[int] = None
    return_flight: Optional[ReturnLeg] = None


# --- Filter / results view ---

class FilterState(CamelModel):
    stops: Tuple[int, ...] = ()
    # [0, 0] means no price constraint
    price_range: Tuple[float, float] = (0, 0)
    airlines: Tuple[str, ...] = ()

    @property
    def price_unbounded(self) -> bool:
        return self.price_range[0] == 0 and self.price_range[1] == 0


class PriceStats(CamelModel):
    min: float
    max: float
    average: int


class PriceBucket(CamelModel):
    low: float
    high: float
    midpoint: int
    count: int
    label: str


class AirlineFacet(CamelModel):
    code: str
    name: str
    count: int


class Facets(CamelModel):
    stops: List[int]
    airlines: List[AirlineFacet]


class AirportSearchResponse(CamelModel):
    airports: List[Airport]


class FlightSearchResponse(CamelModel):
    flights: List[Flight]
    carriers: Dict[str, str]


class FlightResultsResponse(CamelModel):
    flights: List[Flight]
    total: int
    page: int
    page_count: int
    page_size: int
    sort: str
    filters: FilterState
    price_stats: Optional[PriceStats] = None
    histogram: List[PriceBucket]
    facets: Facets
    carriers: Dict[str, str]
