"""
Таксономия ошибок доступа. Наружу из координаторов не выходит ни одна:
на границе координатора каждая превращается в bool/None + уведомление.
"""
from typing import Any


class EntitlementError(Exception):
    """Base class; detail holds structured fields for logging."""

    def __init__(self, message: str, detail: dict[str, Any] | None = None):
        super().__init__(message)
        self.detail = detail or {}


class StorageError(EntitlementError):
    """Store unreachable, or a stored record is corrupt / tampered."""


class ValidationFailure(EntitlementError):
    """Code is malformed, deactivated or otherwise not acceptable."""


class VerificationFailure(EntitlementError):
    """Payment authority unreachable, refused, or answered garbage."""


class SynthesisFailure(EntitlementError):
    """Store write failed while persisting a synthesized access code."""


class InvalidTransition(Exception):
    """State machine transition not allowed from the current phase."""

    def __init__(self, machine: str, old_phase: str, new_phase: str):
        super().__init__(f"{machine}: {old_phase} -> {new_phase} is not allowed")
        self.machine = machine
        self.old_phase = old_phase
        self.new_phase = new_phase
