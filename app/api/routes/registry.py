from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Response, status

from app.adapters.registry.base import LookupKind
from app.core.dependencies import get_lookup_service
from app.schemas.lookup import (
    BatchRequest,
    BatchResponse,
    CredentialRequest,
    ErrorBody,
    LookupRequest,
    LookupResponse,
)
from app.services.lookup_service import LookupService

router = APIRouter(tags=["Registry"])

Service = Annotated[LookupService, Depends(get_lookup_service)]
HeaderApiKey = Annotated[str | None, Header(alias="X-API-Key")]

ERROR_RESPONSES = {
    code: {"model": ErrorBody}
    for code in (400, 401, 403, 404, 422, 429, 502, 504)
}


@router.post(
    "/check-connection",
    response_model=LookupResponse,
    response_model_exclude_unset=True,
    responses=ERROR_RESPONSES,
)
async def check_connection(
    service: Service,
    body: CredentialRequest | None = None,
    x_api_key: HeaderApiKey = None,
) -> LookupResponse:
    """Validate an API key against the registry.

    Looks up a fixed, known-valid reference company. The probe does not count
    against the key's daily quota.
    """
    credential = (body.api_key if body else None) or x_api_key
    return await service.check_connection(credential)


@router.post(
    "/company",
    response_model=LookupResponse,
    response_model_exclude_unset=True,
    responses=ERROR_RESPONSES,
)
async def company(
    service: Service,
    body: LookupRequest | None = None,
    x_api_key: HeaderApiKey = None,
) -> LookupResponse:
    """Fetch the registry profile of one company (1 quota unit)."""
    body = body or LookupRequest()
    return await service.lookup(body.api_key or x_api_key, body.inn, LookupKind.PROFILE)


@router.post(
    "/finances",
    response_model=LookupResponse,
    response_model_exclude_unset=True,
    responses=ERROR_RESPONSES,
)
async def finances(
    service: Service,
    body: LookupRequest | None = None,
    x_api_key: HeaderApiKey = None,
) -> LookupResponse:
    """Fetch the financial statements of one company (1 quota unit)."""
    body = body or LookupRequest()
    return await service.lookup(
        body.api_key or x_api_key, body.inn, LookupKind.FINANCIALS
    )


@router.post(
    "/batch",
    response_model=BatchResponse,
    response_model_exclude_unset=True,
    responses=ERROR_RESPONSES,
)
async def batch(
    service: Service,
    response: Response,
    body: BatchRequest | None = None,
    x_api_key: HeaderApiKey = None,
) -> BatchResponse:
    """Fetch profile and financials for a list of companies.

    Costs two quota units per company and is rejected upfront when the
    remaining quota cannot cover the whole list. Per-company failures are
    reported in ``errors``; the response is 502 only when every company failed.
    """
    body = body or BatchRequest()
    result = await service.batch(body.api_key or x_api_key, body.inn_list)
    if result.status == "error":
        response.status_code = status.HTTP_502_BAD_GATEWAY
    return result
