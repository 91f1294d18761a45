"""
Inference routes. Generation is available only while the session has access.
"""
from typing import Literal

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel, Field

from promptgate.api.deps import get_api_key_store, get_entitlement_session
from promptgate.services.inference import ApiKeyStore, ChatMessage, InferenceClient, InferenceRequest
from promptgate.services.sessions.service import EntitlementSession

router = APIRouter(prefix="/inference", tags=["inference"])


class ApiKeyBody(BaseModel):
    provider: str
    api_key: str = Field(..., min_length=1)


class MessageBody(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class GenerateBody(BaseModel):
    messages: list[MessageBody]
    model: str | None = None
    temperature: float | None = Field(None, ge=0, le=2)
    max_tokens: int | None = Field(None, gt=0)
    provider: str | None = None


@router.put("/key")
def set_api_key(body: ApiKeyBody = Body(...), keys: ApiKeyStore = Depends(get_api_key_store)) -> dict:
    try:
        keys.set(body.provider, body.api_key)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return {"ok": True, "provider": body.provider.lower()}


@router.delete("/key/{provider}")
def clear_api_key(provider: str, keys: ApiKeyStore = Depends(get_api_key_store)) -> dict:
    keys.clear(provider)
    return {"ok": True, "provider": provider.lower()}


@router.post("/generate")
def generate(
    body: GenerateBody = Body(...),
    session: EntitlementSession = Depends(get_entitlement_session),
    keys: ApiKeyStore = Depends(get_api_key_store),
) -> dict:
    if not session.has_access:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail="Access code required")
    request = InferenceRequest(
        messages=[ChatMessage(role=m.role, content=m.content) for m in body.messages],
        model=body.model,
        temperature=body.temperature,
        max_tokens=body.max_tokens,
        provider=body.provider,
    )
    text = InferenceClient(keys).generate(request)
    return {"ok": text is not None, "text": text}
