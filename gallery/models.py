from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

class ImageMeta(BaseModel):
    """Projected image entity (no payload)"""
    model_config = ConfigDict(frozen=True)

    key: str
    id: str = ""  # Decimal string; may be empty or non-numeric
    prompt: str = ""

class Pagination(BaseModel):
    """Page coordinates for the reverse and search paths"""
    model_config = ConfigDict(populate_by_name=True)

    page: int
    per_page: int = Field(alias="perPage")
    total: int  # Estimated from the anchor unless the full list was loaded
    total_pages: int = Field(alias="totalPages")

class ImagesResponse(BaseModel):
    """Response model for /api/images (reverse and search paths)"""
    images: List[ImageMeta]
    pagination: Pagination

class SessionImagesResponse(BaseModel):
    """Response model for /api/images when served from a cursor session"""
    model_config = ConfigDict(populate_by_name=True)

    images: List[ImageMeta]
    session_id: str = Field(alias="sessionId")
    has_more: bool = Field(alias="hasMore")

class ProgressEvent(BaseModel):
    """Payload of a streamed `progress` event"""
    status: str
    count: int = 0

class ErrorResponse(BaseModel):
    """Error response model"""
    error: str
    detail: Optional[str] = None
