from datetime import date

import pydantic
import pytest

from skysearch.exceptions import ValidationError
from skysearch.services.validator import SearchParams, validate

TODAY = date(2030, 5, 1)


def params(**overrides):
    raw = {
        "origin": "jfk",
        "destination": "LAX",
        "departureDate": "2030-06-01",
        "adults": "1",
    }
    raw.update(overrides)
    return raw


def error_for(raw):
    with pytest.raises(ValidationError) as exc:
        validate(raw, today=TODAY)
    return exc.value.message


def test_valid_one_way_is_normalized():
    req = validate(params(), today=TODAY)
    assert req.origin == "JFK"
    assert req.destination == "LAX"
    assert req.departure_date == date(2030, 6, 1)
    assert req.return_date is None
    assert req.adults == 1
    assert req.children == 0
    assert req.infants == 0
    assert not req.is_round_trip


def test_adults_default_to_one():
    raw = params()
    del raw["adults"]
    assert validate(raw, today=TODAY).adults == 1


@pytest.mark.parametrize("code", ["JF", "JFKX", "J1K", "", None])
def test_bad_airport_code(code):
    assert error_for(params(origin=code)) == "Invalid airport code"


@pytest.mark.parametrize("code", ["LAX", "lax", " Lax "])
def test_same_origin_and_destination(code):
    assert error_for(params(origin=code)) == "Origin and destination cannot be the same"


def test_departure_in_the_past():
    assert error_for(params(departureDate="2030-04-30")) == "Departure date cannot be in the past"


def test_departure_today_passes():
    assert validate(params(departureDate="2030-05-01"), today=TODAY).departure_date == TODAY


@pytest.mark.parametrize("value", ["", "06/01/2030", "2030-13-01", "2030-02-30", "tomorrow"])
def test_invalid_departure_format(value):
    assert error_for(params(departureDate=value)) == "Invalid departure date format"


def test_return_before_departure():
    assert error_for(params(returnDate="2030-05-31")) == "Return date cannot be before departure date"


def test_invalid_return_format():
    assert error_for(params(returnDate="2030/06/10")) == "Invalid return date format"


def test_return_same_day_is_round_trip():
    req = validate(params(returnDate="2030-06-01"), today=TODAY)
    assert req.return_date == date(2030, 6, 1)
    assert req.is_round_trip


def test_empty_return_date_means_one_way():
    assert validate(params(returnDate=""), today=TODAY).return_date is None


def test_zero_adults():
    assert error_for(params(adults="0")) == "At least 1 adult is required"


def test_non_numeric_passengers():
    assert error_for(params(children="two")) == "Invalid passenger count"


@pytest.mark.parametrize("adults,children,infants", [(9, 1, 0), (5, 3, 2), (10, 0, 0)])
def test_too_many_passengers(adults, children, infants):
    raw = params(adults=str(adults), children=str(children), infants=str(infants))
    assert error_for(raw) == "Total passengers cannot exceed 9"


@pytest.mark.parametrize("adults,children,infants", [(9, 0, 0), (3, 3, 3), (1, 7, 1)])
def test_up_to_nine_passengers_pass(adults, children, infants):
    raw = params(adults=str(adults), children=str(children), infants=str(infants))
    req = validate(raw, today=TODAY)
    assert req.adults + req.children + req.infants == adults + children + infants


def test_more_infants_than_adults():
    assert error_for(params(adults="1", infants="2")) == "Each infant must be accompanied by an adult"


def test_first_failure_wins():
    # Same airports and a past date: the airport rule comes first
    raw = params(origin="LAX", departureDate="2000-01-01")
    assert error_for(raw) == "Origin and destination cannot be the same"


def test_optional_hints_are_parsed():
    req = validate(params(nonStop="true", maxPrice="800", includedAirlineCodes="aa, dl,AA"), today=TODAY)
    assert req.non_stop is True
    assert req.max_price == 800
    assert req.included_airline_codes == ("AA", "DL")


@pytest.mark.parametrize("non_stop,max_price,airlines", [
    ("maybe", "cheap", ",,"),
    ("", "-5", "TOOLONG"),
    (None, "0", None),
])
def test_malformed_hints_degrade_to_absent(non_stop, max_price, airlines):
    req = validate(params(nonStop=non_stop, maxPrice=max_price, includedAirlineCodes=airlines), today=TODAY)
    assert req.non_stop is None
    assert req.max_price is None
    assert req.included_airline_codes is None


def test_unpadded_date_is_rejected():
    assert error_for(params(departureDate="2030-6-1")) == "Invalid departure date format"


def test_params_model_reports_every_broken_field_in_rule_order():
    raw = params(origin="XX", departureDate="soon", adults="0")
    with pytest.raises(pydantic.ValidationError) as exc:
        SearchParams.model_validate(raw, context={"today": TODAY})

    messages = [str(e["ctx"]["error"]) for e in exc.value.errors()]
    assert messages == ["Invalid airport code", "Invalid departure date format", "At least 1 adult is required"]


def test_params_model_reads_query_keys():
    parsed = SearchParams.model_validate(params(returnDate="2030-06-05", nonStop="no"), context={"today": TODAY})
    assert parsed.departure_date == date(2030, 6, 1)
    assert parsed.return_date == date(2030, 6, 5)
    assert parsed.non_stop is False


def test_party_rules_run_after_field_rules():
    # Fields are individually fine; only the combination is not
    assert error_for(params(adults="2", infants="3")) == "Each infant must be accompanied by an adult"
