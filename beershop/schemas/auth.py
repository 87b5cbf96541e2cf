"""Response schemas for registration, login, logout and CSRF token issue."""

from pydantic import BaseModel, Field


class AuthResponse(BaseModel):
    """Returned by register and login; the session itself travels in the cookie."""

    message: str
    user_id: int = Field(..., serialization_alias="userId", description="Id of the signed-in user")


class MessageResponse(BaseModel):
    message: str


class CsrfTokenResponse(BaseModel):
    """Token the client echoes in the CSRF header on state-changing /v1 and /admin calls."""

    csrf_token: str = Field(..., serialization_alias="csrfToken")
