"""
Access routes: state, check, redeem, revoke.
Notifications emitted while handling the request are returned in the body.
"""
from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from promptgate.api.deps import get_entitlement_session
from promptgate.services.sessions.service import EntitlementSession

router = APIRouter(prefix="/access", tags=["access"])


class RedeemRequest(BaseModel):
    code: str


@router.get("")
def get_access(session: EntitlementSession = Depends(get_entitlement_session)) -> dict:
    return session.access.state.as_dict()


@router.post("/check")
def check_access(session: EntitlementSession = Depends(get_entitlement_session)) -> dict:
    with session.bus.collect() as notes:
        state = session.access.check_access_status()
    return {"state": state.as_dict(), "notifications": [n.model_dump(mode="json") for n in notes]}


@router.post("/redeem")
def redeem_code(
    body: RedeemRequest = Body(...),
    session: EntitlementSession = Depends(get_entitlement_session),
) -> dict:
    with session.bus.collect() as notes:
        ok = session.access.validate_code(body.code)
    return {
        "ok": ok,
        "state": session.access.state.as_dict(),
        "notifications": [n.model_dump(mode="json") for n in notes],
    }


@router.post("/revoke")
def revoke_access(session: EntitlementSession = Depends(get_entitlement_session)) -> dict:
    with session.bus.collect() as notes:
        session.access.revoke_access()
    return {"state": session.access.state.as_dict(), "notifications": [n.model_dump(mode="json") for n in notes]}
