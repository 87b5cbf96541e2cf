"""Response schemas for beer listings, search and admin creation."""

from pydantic import BaseModel, ConfigDict, Field


class UserSummary(BaseModel):
    """Public view of a user attached to a beer: no email, address or password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str | None = None


class BeerSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: float
    currency: str | None = None


class OrderItem(BeerSummary):
    users: list[UserSummary] = Field(default_factory=list)


class BeerDetail(BeerSummary):
    """Beer as created by the admin endpoints."""

    picture: str | None = None
    stock: str | None = None
