import json
from datetime import date, timedelta

import httpx
import pytest

from skysearch.schemas.flight_schemas import Flight, FlightEndpoint, ReturnLeg


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def segment(origin, destination, carrier="AA", number="100", aircraft="738",
            dep_at="2030-06-01T08:00:00", arr_at="2030-06-01T10:00:00", terminal=None):
    seg = {
        "departure": {"iataCode": origin, "at": dep_at},
        "arrival": {"iataCode": destination, "at": arr_at},
        "carrierCode": carrier,
        "number": number,
        "aircraft": {"code": aircraft},
        "duration": "PT2H",
        "numberOfStops": 0,
    }
    if terminal:
        seg["departure"]["terminal"] = terminal
    return seg


def offer(offer_id="1", itineraries=None, total="250.50", currency="USD", seats=7):
    if itineraries is None:
        itineraries = [{"duration": "PT2H30M", "segments": [segment("JFK", "LAX")]}]
    return {
        "type": "flight-offer",
        "id": offer_id,
        "source": "GDS",
        "itineraries": itineraries,
        "price": {"currency": currency, "total": total, "base": total, "grandTotal": total},
        "validatingAirlineCodes": ["AA"],
        "numberOfBookableSeats": seats,
    }


def offers_payload(offers, carriers=None, aircraft=None):
    return {
        "meta": {"count": len(offers)},
        "data": offers,
        "dictionaries": {
            "carriers": carriers if carriers is not None else {"AA": "AMERICAN AIRLINES"},
            "aircraft": aircraft if aircraft is not None else {"738": "BOEING 737-800"},
        },
    }


class AmadeusStub:
    """
    Minimal stand-in for the Amadeus HTTP API, served through httpx.MockTransport.
    Records every request so tests can assert on what was sent.
    """

    def __init__(self, offers_body=None, locations_body=None, token_expires_in=1799):
        self.requests = []
        self.token_calls = 0
        self.token_expires_in = token_expires_in
        self.token_status = 200
        self.offers_body = offers_body if offers_body is not None else offers_payload([offer()])
        self.offers_status = 200
        self.locations_body = locations_body if locations_body is not None else {"data": []}
        self.locations_status = 200
        # Statuses to return (in order) before falling back to the normal response
        self.search_status_queue = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/v1/security/oauth2/token":
            self.token_calls += 1
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_client"})
            return httpx.Response(200, json={
                "access_token": f"token-{self.token_calls}",
                "expires_in": self.token_expires_in,
            })

        if self.search_status_queue:
            status = self.search_status_queue.pop(0)
            return httpx.Response(status, json={"errors": [{"status": status, "detail": "Access token expired"}]})

        if path == "/v2/shopping/flight-offers":
            return httpx.Response(self.offers_status, content=json.dumps(self.offers_body))
        if path == "/v1/reference-data/locations":
            return httpx.Response(self.locations_status, content=json.dumps(self.locations_body))
        return httpx.Response(404, json={"errors": [{"detail": "Not found"}]})

    @property
    def transport(self):
        return httpx.MockTransport(self.handler)

    def search_requests(self):
        return [r for r in self.requests if r.url.path != "/v1/security/oauth2/token"]


def make_flight(flight_id="1", price=100.0, stops=0, airline_code="AA", duration="2h 0m",
                departure_time="2030-06-01T08:00:00", return_stops=None, airline=None):
    return_flight = None
    if return_stops is not None:
        return_flight = ReturnLeg(
            airline=airline or airline_code,
            airline_code=airline_code,
            flight_number=f"{airline_code}2",
            departure=FlightEndpoint(airport="LAX", time="2030-06-08T08:00:00"),
            arrival=FlightEndpoint(airport="JFK", time="2030-06-08T16:00:00"),
            duration="5h 0m",
            stops=return_stops,
            aircraft="738",
        )
    return Flight(
        id=flight_id,
        airline=airline or airline_code,
        airline_code=airline_code,
        flight_number=f"{airline_code}1",
        departure=FlightEndpoint(airport="JFK", time=departure_time),
        arrival=FlightEndpoint(airport="LAX", time="2030-06-01T12:00:00"),
        duration=duration,
        stops=stops,
        price=price,
        currency="USD",
        aircraft="738",
        seats_available=9,
        return_flight=return_flight,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stub():
    return AmadeusStub()


@pytest.fixture
def today():
    return date(2030, 5, 1)


@pytest.fixture
def future_date():
    return (date.today() + timedelta(days=30)).isoformat()
