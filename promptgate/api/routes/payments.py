"""
Payment routes: status, verify (after checkout), refresh, reset.
"""
from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from promptgate.api.deps import get_entitlement_session
from promptgate.services.payment_status.coordinator import PaymentState
from promptgate.services.sessions.service import EntitlementSession

router = APIRouter(prefix="/payments", tags=["payments"])


class VerifyRequest(BaseModel):
    initiated: bool = True
    is_subscription: bool = False


def _state_out(state: PaymentState) -> dict:
    out = state.model_dump(mode="json")
    out["is_loading"] = state.is_loading
    return out


@router.get("")
def get_payment_status(session: EntitlementSession = Depends(get_entitlement_session)) -> dict:
    return _state_out(session.payments.state)


@router.post("/verify")
async def verify_payment(
    body: VerifyRequest = Body(...),
    session: EntitlementSession = Depends(get_entitlement_session),
) -> dict:
    access_code = None
    with session.bus.collect() as notes:
        if body.initiated:
            access_code = await session.complete_checkout(body.is_subscription)
            ok = access_code is not None
        else:
            ok = await session.payments.verify_payment_status(False, body.is_subscription)
    return {
        "ok": ok,
        "access_code": access_code,
        "state": _state_out(session.payments.state),
        "access": session.access.state.as_dict(),
        "notifications": [n.model_dump(mode="json") for n in notes],
    }


@router.post("/refresh")
async def refresh_payment_status(session: EntitlementSession = Depends(get_entitlement_session)) -> dict:
    with session.bus.collect() as notes:
        state = await session.refresh()
    return {
        "state": _state_out(state),
        "access": session.access.state.as_dict(),
        "notifications": [n.model_dump(mode="json") for n in notes],
    }


@router.post("/reset")
def reset_payment(session: EntitlementSession = Depends(get_entitlement_session)) -> dict:
    with session.bus.collect() as notes:
        state = session.payments.reset_payment()
    return {"state": _state_out(state), "notifications": [n.model_dump(mode="json") for n in notes]}
