"""
Text generation pass-through with per-session provider API keys.
"""
from .api_keys import ApiKeyStore
from .client import ChatMessage, InferenceClient, InferenceRequest

__all__ = [
    "ApiKeyStore",
    "ChatMessage",
    "InferenceClient",
    "InferenceRequest",
]
