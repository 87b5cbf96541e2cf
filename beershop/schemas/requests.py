"""Request schemas for every route that accepts client data.

JSON bodies are validated strictly: a numeric string is not a price and
``true`` is not a number. Query strings, path segments and XML text arrive as
text, so their models coerce numbers from strings.
"""

from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints

from beershop.core.security import EMAIL_MAX_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
ALPHANUMERIC_PATTERN = r"^[A-Za-z0-9]+$"
# Basename of a stored picture: no separators, allow-listed image extension.
PICTURE_NAME_PATTERN = r"^[A-Za-z0-9_-]+\.(?i:jpg|jpeg|png)$"

MAX_BATCH_ITEMS = 50
MAX_PRICE = 99_999_999.99
# Largest id the database can bind.
MAX_ID = 2**63 - 1


def _reject_nul(value: str) -> str:
    if "\x00" in value:
        raise ValueError("must not contain a NUL character")
    return value


def text(strip: bool = True, **constraints):
    """A string type with length or pattern constraints. NUL is never accepted."""
    # Surrounding whitespace is dropped before length and pattern checks.
    return Annotated[
        str,
        StringConstraints(strip_whitespace=strip, **constraints),
        AfterValidator(_reject_nul),
    ]


Price = Annotated[float, Field(gt=0, le=MAX_PRICE, allow_inf_nan=False)]


class BodyModel(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)


class TextModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class RegisterRequest(BodyModel):
    name: text(min_length=2, max_length=50)
    email: text(max_length=EMAIL_MAX_LEN, pattern=EMAIL_PATTERN)
    password: text(strip=False, min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    address: text(max_length=100) | None = None
    profile_pic: text(max_length=255, pattern=PICTURE_NAME_PATTERN) | None = None


class LoginRequest(BodyModel):
    """Credentials for login."""

    email: text(max_length=EMAIL_MAX_LEN, pattern=EMAIL_PATTERN)
    password: text(strip=False, min_length=1, max_length=PASSWORD_MAX_LEN)


class NewBeerRequest(BodyModel):
    name: text(min_length=2, max_length=50)
    price: Price
    picture: text(max_length=255, pattern=PICTURE_NAME_PATTERN) | None = None


class XmlBeer(TextModel):
    """Values extracted from an uploaded <beer> document."""

    name: text(min_length=2, max_length=50)
    price: Price


class InitBeer(BodyModel):
    name: text(min_length=1, max_length=50)
    price: Annotated[float, Field(gt=0, allow_inf_nan=False)]


class BeerInitRequest(BodyModel):
    beers: list[InitBeer] = Field(max_length=MAX_BATCH_ITEMS)


class StatusBrand(TextModel):
    brand: text(min_length=2, max_length=30, pattern=ALPHANUMERIC_PATTERN)


class BeerPageQuery(TextModel):
    id: int = Field(ge=1, le=MAX_ID)
    relationship: text(max_length=100) | None = None


class BeerPictureQuery(TextModel):
    # Not stripped: the resolver sees the name exactly as sent.
    picture: text(strip=False, max_length=255)


class TargetUrlQuery(TextModel):
    url: text(max_length=2048)


class SearchById(TextModel):
    query: int = Field(ge=1, le=MAX_ID)


class SearchByName(TextModel):
    query: text(min_length=1, max_length=50)


class SearchByPrice(TextModel):
    query: float = Field(ge=0, le=MAX_PRICE, allow_inf_nan=False)


REGISTER = RegisterRequest
LOGIN = LoginRequest
NEW_BEER = NewBeerRequest
XML_BEER = XmlBeer
BEER_INIT = BeerInitRequest
STATUS_BRAND = StatusBrand
BEER_PAGE = BeerPageQuery
BEER_PICTURE = BeerPictureQuery
TARGET_URL = TargetUrlQuery

# One model per allow-listed search filter; anything else never reaches a query.
SEARCH_BY: dict[str, type[TextModel]] = {
    "id": SearchById,
    "name": SearchByName,
    "price": SearchByPrice,
}
