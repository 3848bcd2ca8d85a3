"""Pydantic schemas for registry lookup requests and responses.

Field names on the wire are camelCase (``apiKey``, ``innList``,
``requestsUsedToday``...) to stay compatible with existing front-end clients.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class CredentialRequest(BaseModel):
    """Body carrying only the caller's registry API key."""

    model_config = ConfigDict(populate_by_name=True)

    api_key: str | None = Field(
        default=None,
        alias="apiKey",
        description="Registry API key. May also be sent as the X-API-Key header.",
    )


class LookupRequest(CredentialRequest):
    """Body for single-entity lookups."""

    inn: str | None = Field(
        default=None,
        description="Entity tax identifier (INN).",
    )


class BatchRequest(CredentialRequest):
    """Body for batch lookups."""

    inn_list: list[str] | None = Field(
        default=None,
        alias="innList",
        description="Entity identifiers; each costs two quota units.",
    )


class UsageFields(BaseModel):
    """Quota figures attached to every response."""

    model_config = ConfigDict(populate_by_name=True)

    requests_used_today: int = Field(
        ...,
        alias="requestsUsedToday",
        ge=0,
        description="Registry calls recorded for this API key today.",
    )
    remaining_requests: int = Field(
        ...,
        alias="remainingRequests",
        ge=0,
        description="Calls still allowed today (max(0, limit - used)).",
    )


class LookupResponse(UsageFields):
    """Response for check-connection and single-entity lookups."""

    status: Literal["ok", "error"] = "ok"
    message: str | None = None
    data: Any = Field(
        default=None,
        description="Registry payload, passed through unchanged.",
    )


class BatchItem(BaseModel):
    """Both datasets for one successfully looked-up entity."""

    inn: str
    company: Any
    finances: Any


class BatchError(BaseModel):
    """Failure for one entity of a batch."""

    inn: str
    code: str
    error: str = Field(..., description="Human-readable failure message.")


class BatchResponse(UsageFields):
    """Response for batch lookups.

    ``errors`` is omitted when every entity succeeded.
    """

    status: Literal["ok", "error"] = "ok"
    message: str | None = None
    data: list[BatchItem] = Field(default_factory=list)
    errors: list[BatchError] | None = None


class ErrorBody(BaseModel):
    """Envelope returned for any failed request (documentation only)."""

    model_config = ConfigDict(populate_by_name=True)

    status: Literal["error"] = "error"
    code: str
    message: str
    request_id: str | None = None
    requests_used_today: int | None = Field(default=None, alias="requestsUsedToday")
    remaining_requests: int | None = Field(default=None, alias="remainingRequests")
    details: dict[str, Any] | None = None
