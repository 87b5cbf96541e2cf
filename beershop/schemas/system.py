"""Response schemas for the status proxy, batch init and outbound test endpoints."""

from pydantic import BaseModel, Field


class StatusResponse(BaseModel):
    status: int = Field(..., description="HTTP status returned by the status service")


class InitResponse(BaseModel):
    message: str
    count: int = Field(..., ge=0)


class FetchResponse(BaseModel):
    """Outcome of a guarded outbound GET. Redirects are reported, never followed."""

    status: int
    location: str | None = None
