"""
Payment authority client wrapper using httpx sync client.
Called from the async gateway through asyncio.to_thread; every call goes
through the "payment_authority" circuit breaker.
"""
import logging
import threading
from datetime import datetime
from typing import Literal

import httpx
import pybreaker
from pydantic import BaseModel, ValidationError, field_validator

from promptgate.core.config import settings
from promptgate.entitlements.errors import VerificationFailure
from promptgate.entitlements.models import ensure_utc
from promptgate.services.circuit_breaker import get_circuit_breaker

logger = logging.getLogger(__name__)

VERIFICATIONS_PATH = "/v1/verifications"
SUCCESS_STATUSES = frozenset({"completed", "verified"})


class VerificationRequest(BaseModel):
    session_id: str
    payment_initiated: bool
    is_subscription: bool


class VerificationResult(BaseModel):
    """Ответ провайдера. Для pending/failed идентификаторов может не быть."""

    status: Literal["completed", "verified", "pending", "failed"]
    payment_id: str | None = None
    subscription_id: str | None = None
    email: str | None = None
    amount: str | None = None
    currency: str | None = None
    renewal_at: datetime | None = None

    @field_validator("renewal_at")
    @classmethod
    def aware_renewal_at(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    @property
    def succeeded(self) -> bool:
        return self.status in SUCCESS_STATUSES


class PaymentAuthorityClient:
    """
    Sync client for the external payment authority.
    Raises VerificationFailure on transport errors, non-2xx replies,
    malformed replies, or while the breaker is open.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        breaker: pybreaker.CircuitBreaker | None = None,
    ) -> None:
        self._base_url = (base_url or settings.payment_authority_url).rstrip("/")
        self._api_key = api_key if api_key is not None else settings.payment_authority_api_key
        self._timeout = timeout or settings.payment_authority_timeout
        self._breaker = breaker or get_circuit_breaker("payment_authority")
        self._client: httpx.Client | None = None
        self._client_lock = threading.Lock()

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of httpx client. The instance is shared across worker threads."""
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
                    self._client = httpx.Client(base_url=self._base_url, timeout=self._timeout, headers=headers)
        return self._client

    def verify(self, request: VerificationRequest) -> VerificationResult:
        try:
            return self._breaker.call(self._post_verification, request)
        except pybreaker.CircuitBreakerError as e:
            raise VerificationFailure("payment authority circuit open", {"error": str(e)}) from e

    def _post_verification(self, request: VerificationRequest) -> VerificationResult:
        try:
            resp = self.client.post(VERIFICATIONS_PATH, json=request.model_dump())
        except httpx.HTTPError as e:
            raise VerificationFailure(
                "payment authority unreachable",
                {"error": type(e).__name__, "session_id": request.session_id},
            ) from e

        if resp.status_code >= 400:
            raise VerificationFailure(
                f"payment authority returned {resp.status_code}",
                {"status_code": resp.status_code, "session_id": request.session_id},
            )

        try:
            result = VerificationResult.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise VerificationFailure("malformed payment authority reply", {"error": str(e)}) from e

        if result.succeeded:
            ref = result.subscription_id if request.is_subscription else result.payment_id
            if not ref:
                raise VerificationFailure(
                    "payment authority reply has no identifier",
                    {"status": result.status, "session_id": request.session_id},
                )
        return result

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
