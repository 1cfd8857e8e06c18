"""
Request and response models for the generic proxy gateway.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator

HttpMethod = Literal["GET", "POST", "PATCH", "PUT", "DELETE"]


class RequestDescriptor(BaseModel):
    """Abstract upstream call accepted by POST /api/airtable/request."""

    method: HttpMethod = Field(default="GET", description="HTTP method to use upstream")
    # Emptiness is checked by the dispatcher, after the credential check.
    path: Optional[str] = Field(default=None, description="Resource path in the upstream dialect")
    body: Optional[Any] = Field(default=None, description="JSON body for POST, PATCH and PUT")
    headers: Dict[str, str] = Field(
        default_factory=dict, description="Headers overriding the gateway defaults"
    )

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, v):
        if v is None:
            return "GET"
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("headers", mode="before")
    @classmethod
    def default_headers(cls, v):
        return {} if v is None else v


class UpstreamResponse(BaseModel):
    """Parsed reply from an upstream service."""

    status_code: int
    body: Optional[Any] = None


class ErrorResponse(BaseModel):
    """JSON body returned for every failed operation."""

    error: str
