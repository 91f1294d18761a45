from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status

from promptgate.core.config import settings
from promptgate.services.inference.api_keys import ApiKeyStore
from promptgate.services.payments.authority import PaymentAuthorityClient
from promptgate.services.sessions.service import EntitlementSession


def get_session_id(request: Request) -> str:
    """Session id of the calling browser tab."""
    session_id = (request.headers.get(settings.session_id_header) or "").strip()
    if not session_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{settings.session_id_header} header is required",
        )
    return session_id


@lru_cache
def get_payment_authority() -> PaymentAuthorityClient:
    return PaymentAuthorityClient()


def get_entitlement_session(
    session_id: str = Depends(get_session_id),
    authority: PaymentAuthorityClient = Depends(get_payment_authority),
) -> EntitlementSession:
    """Coordinators are rebuilt per request from the store, then checked."""
    return EntitlementSession(session_id, authority=authority).start()


def get_api_key_store(session_id: str = Depends(get_session_id)) -> ApiKeyStore:
    return ApiKeyStore(session_id)
