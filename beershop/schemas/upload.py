"""Response schema for the admin picture upload."""

from pydantic import BaseModel, Field


class UploadResponse(BaseModel):
    """Stored picture; filename is server-generated and unrelated to the client's name."""

    filename: str = Field(..., description="Randomised name the picture is stored under")
    mimetype: str = Field(..., description="Content type established from the file signature")
    size: int = Field(..., ge=0, description="Stored size in bytes")
