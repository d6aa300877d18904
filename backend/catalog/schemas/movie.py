"""
Movie Catalog Backend: Pydantic Request/Response Schemas
===========================================================

What:  The API contract between the front end and this service.
How:   FastAPI validates request bodies against these models and serializes
       responses through them; the same models back the OpenAPI docs.

Input validation happens here, at the boundary. Field limits (length, strict
formats) come from the Settings passed as validation context:

    MovieCreate.model_validate(body, context={"settings": app_settings})

Without a context the process-wide settings apply.
"""

import re
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from catalog.config import Settings, settings

# First commercial film screening; anything earlier is a typo.
EARLIEST_YEAR = 1888

YEAR_PATTERN = re.compile(r"^\d{4}$")
RATING_PATTERN = re.compile(r"^\d{1,2}(\.\d)?$")


def field_rules(info: ValidationInfo) -> Settings:
    """Settings that govern field limits for this validation run."""
    context = info.context or {}
    return context.get("settings") or settings


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class MovieCreate(BaseModel):
    """
    Body of POST /movies.

    All three fields are required and must be non-empty after trimming.
    JSON numbers are accepted for year and rating and stored as text, so
    {"year": 2010, "rating": 9} and {"year": "2010", "rating": "9"} are
    equivalent.
    """

    name: str = Field(description="Movie title", examples=["Inception"])
    year: str = Field(description="Release year, stored as text", examples=["2010"])
    rating: str = Field(description="Rating 0-10, stored as text", examples=["9.0"])

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("year", "rating", mode="before")
    @classmethod
    def numbers_to_text(cls, v: Any) -> Any:
        if isinstance(v, bool):
            return v
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @field_validator("name", "year", "rating")
    @classmethod
    def non_empty_and_bounded(cls, v: str, info: ValidationInfo) -> str:
        if not v:
            raise ValueError("must not be empty")
        limit = field_rules(info).max_field_length
        if len(v) > limit:
            raise ValueError(f"must be at most {limit} characters")
        return v

    @model_validator(mode="after")
    def strict_formats(self, info: ValidationInfo) -> "MovieCreate":
        """Year and rating format checks, only with STRICT_FIELD_VALIDATION on."""
        if not field_rules(info).strict_field_validation:
            return self

        latest_year = datetime.now(timezone.utc).year + 1
        if not YEAR_PATTERN.match(self.year) or not (
            EARLIEST_YEAR <= int(self.year) <= latest_year
        ):
            raise ValueError(
                f"year must be a four-digit year between {EARLIEST_YEAR} and {latest_year}"
            )

        if not RATING_PATTERN.match(self.rating) or float(self.rating) > 10:
            raise ValueError("rating must be a number from 0 to 10 with at most one decimal")
        return self


class MovieDeleteRequest(BaseModel):
    """Body of POST /delete. The id is checked for ObjectId syntax by the service."""

    id: str = Field(description="Id of the movie to delete", examples=["65a1f0c2e4b0a1b2c3d4e5f6"])

    model_config = ConfigDict(str_strip_whitespace=True)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class MovieResponse(BaseModel):
    """
    A stored movie as the front end sees it.

    The id is serialized as "_id", the key the demo front end reads.
    """

    id: str = Field(alias="_id", description="Store-assigned id (24 hex characters)")
    name: str
    year: str
    rating: str

    model_config = ConfigDict(populate_by_name=True)


class MovieCreatedResponse(BaseModel):
    """Returned by POST /movies with HTTP 201."""

    message: str = Field(default="Movie added successfully")
    movie: MovieResponse


class DeleteResult(BaseModel):
    """
    Outcome of a delete attempt.

    deleted_count is 0 when no document had the id (already deleted or never
    existed) and 1 otherwise.
    """

    deleted_count: int = Field(ge=0, le=1)
    acknowledged: bool = Field(description="Whether the store acknowledged the write")


class MovieDeletedResponse(BaseModel):
    message: str
    result: DeleteResult


# ══════════════════════════════════════════════════════════════════════════
# Error and Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Error body shared by every endpoint.

    Example:
        {
            "error": "validation_error",
            "message": "Missing or invalid fields: name",
            "details": {"fields": {"name": "must not be empty"}},
            "request_id": "3f2a9c1e"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="healthy or unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    uptime_seconds: float

