import re
from typing import Dict, Optional

from skysearch.schemas.flight_schemas import (
    Airport,
    Flight,
    FlightEndpoint,
    ProviderItinerary,
    ProviderLocation,
    ProviderOffer,
    ReturnLeg,
)

# ISO-8601 durations as Amadeus sends them: PT2H30M, PT45M, PT5H, P1DT2H
ISO_DURATION_RE = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:\d+(?:\.\d+)?S)?)?$")
# Already humanized: "2h 30m", "2h", "45m"
HUMAN_DURATION_RE = re.compile(r"^(?:(\d+)h)?\s*(?:(\d+)m)?$")


def _duration_parts(value: Optional[str]):
    if not value or not isinstance(value, str):
        return None
    v = value.strip()

    m = ISO_DURATION_RE.match(v)
    if m and v not in ("P", "PT"):
        days, hours, minutes = (int(g) if g else 0 for g in m.groups())
        return days * 24 + hours, minutes

    m = HUMAN_DURATION_RE.match(v)
    if m and any(m.groups()):
        hours, minutes = (int(g) if g else 0 for g in m.groups())
        return hours, minutes

    return None


def parse_duration(value: Optional[str]) -> Optional[str]:
    """
    Render a provider duration as "{hours}h {minutes}m".
    Missing or unreadable input is returned unchanged.
    """
    parts = _duration_parts(value)
    if parts is None:
        return value
    hours, minutes = parts
    return f"{hours}h {minutes}m"


def duration_to_minutes(value: Optional[str]) -> Optional[int]:
    parts = _duration_parts(value)
    if parts is None:
        return None
    hours, minutes = parts
    return hours * 60 + minutes


def _leg(itinerary: ProviderItinerary, carriers: Dict[str, str], aircraft: Dict[str, str]) -> dict:
    """Summary of one direction of travel: only the end airports surface."""
    segments = itinerary.segments
    if not segments:
        raise ValueError("Itinerary has no segments")

    first = segments[0]
    last = segments[-1]
    return {
        "airline": carriers.get(first.carrierCode) or first.carrierCode,
        "airline_code": first.carrierCode,
        "flight_number": f"{first.carrierCode}{first.number}",
        "departure": FlightEndpoint(
            airport=first.departure.iataCode,
            time=first.departure.at,
            terminal=first.departure.terminal,
        ),
        "arrival": FlightEndpoint(
            airport=last.arrival.iataCode,
            time=last.arrival.at,
            terminal=last.arrival.terminal,
        ),
        "duration": parse_duration(itinerary.duration),
        "stops": len(segments) - 1,
        "aircraft": aircraft.get(first.aircraft.code) or first.aircraft.code,
    }


def transform_offer(offer: ProviderOffer, carriers: Dict[str, str], aircraft: Dict[str, str]) -> Flight:
    """
    Flatten one provider offer into the display model.

    Raises ValueError for offers without itineraries or segments, or with a
    price that is not a positive number.
    """
    if not offer.itineraries:
        raise ValueError(f"Offer {offer.id} has no itineraries")

    outbound = _leg(offer.itineraries[0], carriers, aircraft)

    return_flight = None
    if len(offer.itineraries) > 1:
        return_flight = ReturnLeg(**_leg(offer.itineraries[1], carriers, aircraft))

    return Flight(
        id=offer.id,
        price=float(offer.price.total),
        currency=offer.price.currency,
        seats_available=offer.numberOfBookableSeats,
        return_flight=return_flight,
        **outbound,
    )


def transform_location(location: ProviderLocation) -> Airport:
    address = location.address
    return Airport(
        id=location.id or f"{location.subType[:1]}{location.iataCode}",
        code=location.iataCode,
        name=location.name,
        city=(address.cityName if address else None) or "",
        country=(address.countryName if address else None) or "",
        type=location.subType,
    )
