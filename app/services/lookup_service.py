"""Registry lookup workflow with daily quota enforcement.

This service sits between the HTTP routes and the two collaborators that hold
state or talk to the network:
- the quota tracker answers "may this key call again" and records calls
- the registry client performs one upstream lookup per call

Quota is checked before any upstream call and recorded only after an upstream
call succeeds, so a failed attempt never consumes quota. The tracker is never
consulted while an upstream call is in flight.
"""

import asyncio
import logging
import re
from typing import Any

from app.adapters.quota import AbstractQuotaTracker, digest_credential
from app.adapters.registry.base import AbstractRegistryClient, LookupKind
from app.core.errors import MissingInputError, QuotaExceededError, UpstreamAppError
from app.schemas.lookup import BatchError, BatchItem, BatchResponse, LookupResponse

logger = logging.getLogger(__name__)

# Each batch entity needs a profile call and a financials call.
UNITS_PER_BATCH_ENTITY = 2

# The key travels in an Authorization header: visible ASCII only.
_HEADER_SAFE_KEY = re.compile(r"[\x21-\x7e]+")


def _credential_hash(credential: str) -> str:
    return digest_credential(credential)[:16]


def _require_credential(credential: str | None) -> str:
    if not credential or not credential.strip():
        raise MissingInputError(
            code="missing_api_key",
            message="API key is required",
        )
    if not _HEADER_SAFE_KEY.fullmatch(credential):
        raise MissingInputError(
            code="invalid_api_key",
            message="API key may only contain visible ASCII characters",
        )
    return credential


def _require_inn(inn: str | None) -> str:
    if not inn or not inn.strip():
        raise MissingInputError(
            code="missing_inn",
            message="API key and INN are required",
        )
    return inn.strip()


class LookupService:
    """Orchestrates quota checks, registry calls and usage recording.

    Attributes:
        tracker: Daily quota tracker shared by all requests.
        client: Registry client adapter.
        reference_inn: Known-valid identifier used to validate API keys.
        batch_concurrency: Max entities looked up at once in a batch.
    """

    def __init__(
        self,
        tracker: AbstractQuotaTracker,
        client: AbstractRegistryClient,
        *,
        reference_inn: str,
        batch_concurrency: int = 1,
    ) -> None:
        if batch_concurrency < 1:
            raise ValueError("batch_concurrency must be >= 1")
        self.tracker = tracker
        self.client = client
        self.reference_inn = reference_inn
        self.batch_concurrency = batch_concurrency

    def _usage_response(self, credential: str, **fields: Any) -> LookupResponse:
        usage = self.tracker.usage(credential)
        return LookupResponse(
            status="ok",
            requests_used_today=usage.used,
            remaining_requests=usage.remaining,
            **fields,
        )

    def _attach_usage(self, exc: UpstreamAppError, credential: str) -> None:
        usage = self.tracker.usage(credential)
        exc.with_usage(usage.used, usage.remaining)

    async def check_connection(self, credential: str | None) -> LookupResponse:
        """Validate an API key with a lookup of the reference entity.

        The probe is not recorded against the caller's quota.

        Raises:
            MissingInputError: If the API key is blank.
            UpstreamAppError: If the registry rejects the probe.
        """
        credential = _require_credential(credential)

        try:
            await self.client.lookup(credential, self.reference_inn, LookupKind.PROFILE)
        except UpstreamAppError as exc:
            logger.info(
                "lookup.check_connection_failed",
                extra={
                    "credential_hash": _credential_hash(credential),
                    "error_code": exc.code,
                },
            )
            self._attach_usage(exc, credential)
            raise

        logger.info(
            "lookup.check_connection_ok",
            extra={"credential_hash": _credential_hash(credential)},
        )
        return self._usage_response(credential, message="Connection successful")

    async def lookup(
        self,
        credential: str | None,
        inn: str | None,
        kind: LookupKind,
    ) -> LookupResponse:
        """Look up one entity, spending one quota unit on success.

        Args:
            credential: Caller's registry API key.
            inn: Entity identifier.
            kind: Dataset to fetch.

        Returns:
            LookupResponse with the registry payload and updated usage.

        Raises:
            MissingInputError: If the API key or INN is blank.
            QuotaExceededError: If no quota remains today (registry not called).
            UpstreamAppError: Classified registry failure, usage unchanged.
        """
        credential = _require_credential(credential)
        inn = _require_inn(inn)
        key_hash = _credential_hash(credential)

        usage = self.tracker.usage(credential)
        if usage.remaining <= 0:
            logger.warning(
                "lookup.quota_exceeded",
                extra={"credential_hash": key_hash, "kind": kind.value, "used": usage.used},
            )
            raise QuotaExceededError(
                code="quota_exceeded",
                message=f"Daily limit of {usage.limit} requests exhausted",
                details={"required": 1},
            ).with_usage(usage.used, usage.remaining)

        try:
            data = await self.client.lookup(credential, inn, kind)
        except UpstreamAppError as exc:
            self._attach_usage(exc, credential)
            raise

        used = self.tracker.record_usage(credential)
        logger.info(
            "lookup.completed",
            extra={"credential_hash": key_hash, "kind": kind.value, "used": used},
        )
        return self._usage_response(credential, data=data)

    async def _lookup_entity(self, credential: str, inn: str) -> BatchItem:
        company = await self.client.lookup(credential, inn, LookupKind.PROFILE)
        self.tracker.record_usage(credential)

        finances = await self.client.lookup(credential, inn, LookupKind.FINANCIALS)
        self.tracker.record_usage(credential)

        return BatchItem(inn=inn, company=company, finances=finances)

    async def batch(
        self,
        credential: str | None,
        inn_list: list[str] | None,
    ) -> BatchResponse:
        """Look up profile and financials for every entity in the list.

        The whole batch is rejected upfront when the remaining quota cannot
        cover two calls per entity. Otherwise each entity is processed
        independently: one failing entity is reported in ``errors`` and does
        not stop the others, whatever it raises. Each successful upstream call
        consumes one unit, so an entity failing on its financials call still
        spends the unit of its profile call.

        Raises:
            MissingInputError: If the API key is blank or the list is empty
                or contains a blank identifier.
            QuotaExceededError: If remaining quota < 2 * len(inn_list).
        """
        credential = _require_credential(credential)
        if not inn_list:
            raise MissingInputError(
                code="missing_inn_list",
                message="API key and a non-empty INN list are required",
            )
        inns = [_require_inn(inn) for inn in inn_list]
        key_hash = _credential_hash(credential)

        required = len(inns) * UNITS_PER_BATCH_ENTITY
        usage = self.tracker.usage(credential)
        if usage.remaining < required:
            logger.warning(
                "batch.quota_insufficient",
                extra={
                    "credential_hash": key_hash,
                    "required": required,
                    "remaining": usage.remaining,
                },
            )
            raise QuotaExceededError(
                code="quota_exceeded",
                message=(
                    f"Not enough requests left. Required: {required}, "
                    f"remaining: {usage.remaining}"
                ),
                details={"required": required},
            ).with_usage(usage.used, usage.remaining)

        semaphore = asyncio.Semaphore(self.batch_concurrency)

        async def run(inn: str) -> BatchItem | BatchError:
            async with semaphore:
                try:
                    return await self._lookup_entity(credential, inn)
                except UpstreamAppError as exc:
                    logger.warning(
                        "batch.entity_failed",
                        extra={
                            "credential_hash": key_hash,
                            "inn": inn,
                            "error_code": exc.code,
                        },
                    )
                    return BatchError(inn=inn, code=exc.code, error=exc.message)
                except Exception:
                    # Confined to this entity; gather must not abort while
                    # sibling lookups are still recording usage.
                    logger.exception(
                        "batch.entity_crashed",
                        extra={"credential_hash": key_hash, "inn": inn},
                    )
                    return BatchError(
                        inn=inn,
                        code="internal_error",
                        error="Unexpected error while looking up this entity",
                    )

        outcomes = await asyncio.gather(*(run(inn) for inn in inns))
        results = [o for o in outcomes if isinstance(o, BatchItem)]
        errors = [o for o in outcomes if isinstance(o, BatchError)]

        usage = self.tracker.usage(credential)
        logger.info(
            "batch.completed",
            extra={
                "credential_hash": key_hash,
                "entities": len(inns),
                "succeeded": len(results),
                "failed": len(errors),
                "used": usage.used,
            },
        )

        # Only explicitly set fields are serialized, so optional ones are
        # passed only when present.
        extra: dict[str, Any] = {}
        if errors:
            extra["errors"] = errors
        if not results:
            extra["message"] = "All lookups failed"

        return BatchResponse(
            status="error" if not results else "ok",
            data=results,
            requests_used_today=usage.used,
            remaining_requests=usage.remaining,
            **extra,
        )
