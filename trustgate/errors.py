"""Error types shared across trust gating and lifecycle hooks."""

from typing import Optional


class TrustGateError(Exception):
    """Base class for all trustgate errors."""


class ValidationError(TrustGateError):
    """Raised when a directory cannot be added to the workspace."""
    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason or f"Invalid directory: {path}"
        super().__init__(self.reason)


class TrustStoreError(TrustGateError):
    """Raised when persisted trust settings cannot be read or written."""
    def __init__(self, location: str, reason: str = ""):
        self.location = location
        self.reason = reason or f"Trust settings unavailable: {location}"
        super().__init__(self.reason)


class HookTransportError(TrustGateError):
    """Raised by a hook transport when the hook could not produce a verdict."""
    def __init__(self, event_name: str, message: str):
        self.event_name = event_name
        self.message = message
        super().__init__(f"Hook '{event_name}' failed: {message}")


class HookTimeoutError(HookTransportError):
    """Raised when a hook did not answer within its deadline."""
    def __init__(self, event_name: str, timeout: float):
        self.timeout = timeout
        super().__init__(event_name, f"no response within {timeout:g}s")


class ConfirmationAlreadyResolvedError(TrustGateError):
    """Raised when a pending confirmation is resolved a second time."""
    def __init__(self, confirmation_id: str, outcome: Optional[str] = None):
        self.confirmation_id = confirmation_id
        self.outcome = outcome
        super().__init__(
            f"Confirmation {confirmation_id} was already resolved"
            + (f" ({outcome})" if outcome else "")
        )


class DuplicateCorrelationError(TrustGateError):
    """Raised when a hook is fired with a correlation id that is still in flight."""
    def __init__(self, correlation_id: str):
        self.correlation_id = correlation_id
        super().__init__(f"A hook call for correlation id '{correlation_id}' is already outstanding")
