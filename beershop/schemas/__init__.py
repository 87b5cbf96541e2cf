"""Pydantic response schemas and declared request schemas."""

from beershop.schemas.auth import AuthResponse, CsrfTokenResponse, MessageResponse
from beershop.schemas.beer import BeerDetail, BeerSummary, OrderItem, UserSummary
from beershop.schemas.health import HealthResponse
from beershop.schemas.system import FetchResponse, InitResponse, StatusResponse
from beershop.schemas.upload import UploadResponse

__all__ = [
    "AuthResponse",
    "BeerDetail",
    "BeerSummary",
    "CsrfTokenResponse",
    "FetchResponse",
    "HealthResponse",
    "InitResponse",
    "MessageResponse",
    "OrderItem",
    "StatusResponse",
    "UploadResponse",
    "UserSummary",
]
