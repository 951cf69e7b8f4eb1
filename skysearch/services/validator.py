from datetime import date, datetime
from typing import Mapping, Optional, Tuple

import pydantic
import pytz
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from skysearch.config import settings
from skysearch.exceptions import ValidationError
from skysearch.schemas.flight_schemas import SearchRequest

MAX_PASSENGERS = 9


def today_in_zone(tz_name: Optional[str] = None) -> date:
    """Calendar date right now in the configured timezone."""
    return datetime.now(pytz.timezone(tz_name or settings.timezone)).date()


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def _iata(value) -> str:
    code = _text(value).upper()
    if len(code) != 3 or not code.isalpha() or not code.isascii():
        raise ValueError("Invalid airport code")
    return code


def _date(value, message: str) -> date:
    text = _text(value)
    # strptime alone would also take unpadded "2030-6-1"
    if len(text) != 10:
        raise ValueError(message)
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(message)


def _count(value, default: int) -> int:
    if _text(value) == "":
        return default
    try:
        return int(_text(value))
    except ValueError:
        raise ValueError("Invalid passenger count")


class SearchParams(BaseModel):
    """
    Raw search query parameters, keyed as the browser sends them.

    Fields are checked in declaration order and each check raises its
    user-facing message, so the first error pydantic reports is the one
    shown to the user.
    """

    model_config = ConfigDict(validate_default=True, extra="ignore")

    origin: str = ""
    destination: str = ""
    departure_date: Optional[date] = Field(None, alias="departureDate")
    return_date: Optional[date] = Field(None, alias="returnDate")
    adults: int = 1
    children: int = 0
    infants: int = 0

    # Provider hints; anything unreadable is treated as absent
    non_stop: Optional[bool] = Field(None, alias="nonStop")
    max_price: Optional[int] = Field(None, alias="maxPrice")
    included_airline_codes: Optional[Tuple[str, ...]] = Field(None, alias="includedAirlineCodes")

    @field_validator("origin", mode="before")
    def validate_origin(cls, v):
        return _iata(v)

    @field_validator("destination", mode="before")
    def validate_destination(cls, v, info):
        code = _iata(v)
        if info.data.get("origin") == code:
            raise ValueError("Origin and destination cannot be the same")
        return code

    @field_validator("departure_date", mode="before")
    def validate_departure(cls, v, info):
        departure = _date(v, "Invalid departure date format")
        today = (info.context or {}).get("today") or today_in_zone()
        if departure < today:
            raise ValueError("Departure date cannot be in the past")
        return departure

    @field_validator("return_date", mode="before")
    def validate_return(cls, v, info):
        if _text(v) == "":
            return None
        returning = _date(v, "Invalid return date format")
        departure = info.data.get("departure_date")
        if departure and returning < departure:
            raise ValueError("Return date cannot be before departure date")
        return returning

    @field_validator("adults", mode="before")
    def validate_adults(cls, v):
        adults = _count(v, 1)
        if adults < 1:
            raise ValueError("At least 1 adult is required")
        return adults

    @field_validator("children", "infants", mode="before")
    def validate_minors(cls, v):
        count = _count(v, 0)
        if count < 0:
            raise ValueError("Invalid passenger count")
        return count

    @field_validator("non_stop", mode="before")
    def parse_non_stop(cls, v):
        v = _text(v).lower()
        if v in ("true", "1", "yes"):
            return True
        if v in ("false", "0", "no"):
            return False
        return None

    @field_validator("max_price", mode="before")
    def parse_max_price(cls, v):
        try:
            price = int(float(_text(v)))
        except (ValueError, OverflowError):
            return None
        return price if price > 0 else None

    @field_validator("included_airline_codes", mode="before")
    def parse_airline_codes(cls, v):
        codes = []
        for part in _text(v).split(","):
            code = part.strip().upper()
            if len(code) == 2 and code.isalnum() and code.isascii() and code not in codes:
                codes.append(code)
        return tuple(codes) or None

    @model_validator(mode="after")
    def check_party(self):
        if self.adults + self.children + self.infants > MAX_PASSENGERS:
            raise ValueError(f"Total passengers cannot exceed {MAX_PASSENGERS}")
        if self.infants > self.adults:
            raise ValueError("Each infant must be accompanied by an adult")
        return self


def _first_message(e: pydantic.ValidationError) -> str:
    error = e.errors()[0]
    cause = (error.get("ctx") or {}).get("error")
    return str(cause) if cause is not None else error["msg"]


def validate(raw: Mapping[str, Optional[str]], today: Optional[date] = None) -> SearchRequest:
    """
    Turn raw query parameters into a SearchRequest.

    Rules run in a fixed order and the first failure is raised as a
    ValidationError carrying a single user-facing message.
    """
    try:
        params = SearchParams.model_validate(dict(raw), context={"today": today})
    except pydantic.ValidationError as e:
        raise ValidationError(_first_message(e)) from e

    return SearchRequest(**params.model_dump(exclude_none=True))
