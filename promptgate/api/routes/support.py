"""
Support routes: block a code for this session's store and wipe the session.
"""
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel

from promptgate.api.deps import get_entitlement_session
from promptgate.api.routes.payments import _state_out
from promptgate.entitlements.errors import StorageError
from promptgate.services.sessions.service import EntitlementSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/support", tags=["support"])


class DeactivateRequest(BaseModel):
    code: str


@router.post("/deactivate")
def deactivate_code(
    body: DeactivateRequest = Body(...),
    session: EntitlementSession = Depends(get_entitlement_session),
) -> dict:
    try:
        ok = session.codes.deactivate_access_code(body.code)
    except StorageError as e:
        logger.warning("access_code_deactivate_failed", extra={"session_id": session.session_id, "error": str(e)})
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage unavailable")
    if not ok:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Malformed access code")
    state = session.access.check_access_status()
    return {"ok": True, "state": state.as_dict()}


@router.post("/reset")
def reset_session(session: EntitlementSession = Depends(get_entitlement_session)) -> dict:
    session.reset_all()
    return {"access": session.access.state.as_dict(), "payments": _state_out(session.payments.state)}
