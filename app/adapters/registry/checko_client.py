"""Checko v2 registry client adapter."""

import logging
from typing import Any

import httpx

from app.adapters.quota import digest_credential
from app.adapters.registry.base import AbstractRegistryClient, LookupKind
from app.core.errors import (
    AccessDeniedError,
    InvalidCredentialError,
    NotFoundError,
    TransportFailureError,
    UpstreamAppError,
    UpstreamError,
    UpstreamRateLimitedError,
)

logger = logging.getLogger(__name__)

# Upstream error bodies are echoed back to callers, so keep them short.
MAX_ERROR_BODY_CHARS = 500


class CheckoClient(AbstractRegistryClient):
    """Client for the Checko company registry.

    Every lookup is a single ``POST {base_url}{path}`` with the caller's key as
    a bearer token and ``{"inn": ...}`` as the JSON body. Failures are never
    retried here.
    """

    def __init__(
        self,
        base_url: str,
        *,
        company_path: str = "/company",
        finances_path: str = "/finances",
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the async HTTP client.

        Args:
            base_url: Registry API base URL (e.g. "https://api.checko.ru/v2").
            company_path: Path of the company profile endpoint.
            finances_path: Path of the financial statements endpoint.
            timeout_seconds: Timeout for requests in seconds.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self.paths = {
            LookupKind.PROFILE: company_path,
            LookupKind.FINANCIALS: finances_path,
        }

    async def aclose(self) -> None:
        await self.client.aclose()

    async def lookup(
        self,
        credential: str,
        inn: str,
        kind: LookupKind,
    ) -> dict[str, Any]:
        """Fetch one entity's profile or financials.

        Args:
            credential: Caller-supplied Checko API key.
            inn: Entity tax identifier.
            kind: Dataset to fetch.

        Returns:
            dict[str, Any]: Parsed JSON payload from the registry.

        Raises:
            InvalidCredentialError: 401 from the registry.
            AccessDeniedError: 402/403 from the registry.
            NotFoundError: 404, or an empty ``data`` member in the payload.
            UpstreamRateLimitedError: 429 from the registry.
            UpstreamError: Any other non-2xx status, or a body that cannot be
                decoded or parsed as JSON.
            TransportFailureError: Connection failed or timed out.
            InvalidCredentialError: The key cannot be encoded into a header.
        """
        path = self.paths[kind]
        log_extra = {
            "credential_hash": digest_credential(credential)[:16],
            "inn": inn,
            "kind": kind.value,
            "path": path,
        }

        try:
            response = await self.client.post(
                path,
                json={"inn": inn},
                headers={"Authorization": f"Bearer {credential}"},
            )
        except httpx.TransportError as exc:
            logger.warning(
                "registry.transport_failed",
                extra={**log_extra, "error_type": type(exc).__name__},
            )
            raise TransportFailureError(
                code="transport_failure",
                message=f"Could not reach the registry: {type(exc).__name__}",
                details={"inn": inn, "kind": kind.value},
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "registry.response_unreadable",
                extra={**log_extra, "error_type": type(exc).__name__},
            )
            raise UpstreamError(
                code="upstream_error",
                message=f"Registry response could not be read: {type(exc).__name__}",
                details={"inn": inn, "kind": kind.value, "upstream_message": str(exc)},
            ) from exc
        except UnicodeEncodeError as exc:
            # header values must be ASCII
            raise InvalidCredentialError(
                code="invalid_credential",
                message="API key contains characters that cannot be sent to the registry",
                details={"inn": inn, "kind": kind.value},
            ) from exc

        if not response.is_success:
            error = _classify_status(response, inn, kind)
            logger.warning(
                "registry.lookup_failed",
                extra={
                    **log_extra,
                    "status_code": response.status_code,
                    "error_code": error.code,
                },
            )
            raise error

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(
                code="upstream_error",
                message="Registry returned a non-JSON response",
                details={
                    "http_status": response.status_code,
                    "upstream_message": _error_body(response),
                    "inn": inn,
                    "kind": kind.value,
                },
            ) from exc

        if isinstance(payload, dict) and "data" in payload and not payload["data"]:
            logger.info("registry.no_data", extra=log_extra)
            raise NotFoundError(
                code="not_found",
                message=f"No {kind.value} data found for INN {inn}",
                details={"inn": inn, "kind": kind.value},
            )

        logger.info(
            "registry.lookup_succeeded",
            extra={**log_extra, "status_code": response.status_code},
        )
        return payload


def _error_body(response: httpx.Response) -> str:
    text = response.text.strip()
    return text[:MAX_ERROR_BODY_CHARS]


def _classify_status(
    response: httpx.Response,
    inn: str,
    kind: LookupKind,
) -> UpstreamAppError:
    """Map a non-success registry response onto the error taxonomy."""
    status = response.status_code
    details = {"http_status": status, "inn": inn, "kind": kind.value}

    if status == 401:
        return InvalidCredentialError(
            code="invalid_credential",
            message="Registry rejected the API key",
            details=details,
        )
    if status in (402, 403):
        return AccessDeniedError(
            code="access_denied",
            message="API key is not allowed to perform this lookup",
            details=details,
        )
    if status == 404:
        return NotFoundError(
            code="not_found",
            message=f"No {kind.value} data found for INN {inn}",
            details=details,
        )
    if status == 429:
        return UpstreamRateLimitedError(
            code="upstream_rate_limited",
            message="Registry rate limit exceeded",
            details=details,
        )

    body = _error_body(response)
    return UpstreamError(
        code="upstream_error",
        message=f"Registry error: {status} - {body or 'no details'}",
        details={**details, "upstream_message": body},
    )
