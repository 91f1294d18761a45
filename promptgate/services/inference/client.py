"""
Inference client: pass-through to OpenAI-compatible chat completions.
Returns text, or None on any failure (no key, unknown provider, API error).
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Literal

from openai import OpenAI, OpenAIError

from promptgate.core.config import settings
from promptgate.services.inference.api_keys import ApiKeyStore
from promptgate.utils.metrics import inference_request_duration_seconds, inference_requests_total

logger = logging.getLogger(__name__)


@dataclass
class ChatMessage:
    role: Literal["system", "user", "assistant"]
    content: str


@dataclass
class InferenceRequest:
    """Request for text generation."""
    messages: list[ChatMessage] = field(default_factory=list)
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    provider: str | None = None


class InferenceClient:
    def __init__(self, keys: ApiKeyStore):
        self.keys = keys

    def _client_for(self, provider: str, api_key: str) -> OpenAI:
        base_url = settings.inference_provider_urls[provider]
        return OpenAI(api_key=api_key, base_url=base_url, timeout=settings.inference_timeout)

    def generate(self, request: InferenceRequest) -> str | None:
        provider = (request.provider or settings.inference_default_provider).lower()
        model = request.model or settings.inference_default_model

        if provider not in settings.inference_provider_urls:
            logger.warning("inference_unknown_provider", extra={"provider": provider})
            return None
        if not request.messages:
            logger.warning("inference_empty_messages", extra={"provider": provider})
            return None
        api_key = self.keys.get(provider)
        if not api_key:
            logger.info("inference_api_key_missing", extra={"provider": provider})
            return None

        kwargs: dict = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in request.messages],
        }
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature
        if request.max_tokens is not None:
            kwargs["max_tokens"] = request.max_tokens

        start = time.time()
        try:
            response = self._client_for(provider, api_key).chat.completions.create(**kwargs)
        except OpenAIError as e:
            inference_requests_total.labels(provider=provider, status="error").inc()
            logger.warning(
                "inference_request_failed",
                extra={"provider": provider, "model": model, "error": type(e).__name__},
            )
            return None
        finally:
            inference_request_duration_seconds.labels(provider=provider).observe(time.time() - start)

        text = response.choices[0].message.content if response.choices else None
        if not text:
            inference_requests_total.labels(provider=provider, status="empty").inc()
            return None
        inference_requests_total.labels(provider=provider, status="success").inc()
        return text
