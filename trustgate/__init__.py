"""trustgate - folder trust gating and lifecycle hooks for an assistant CLI."""

from .errors import (
    TrustGateError,
    ValidationError,
    TrustStoreError,
    HookTransportError,
    HookTimeoutError,
    ConfirmationAlreadyResolvedError,
    DuplicateCorrelationError,
)
from .trust import TrustLevel, TrustStore, TrustFileBackend, TrustResolver, TrustClassification, ClassificationResult
from .workspace import WorkspaceContext
from .confirmation import (
    PendingConfirmation,
    TrustChoice,
    ConfirmationState,
    ConfirmationOutcome,
    CompletionReport,
)
from .hooks import HookChannel, HookDecision, HookEventName
from .coordinator import LifecycleCoordinator, TurnRequest, TurnResult, MessageKind

__version__ = "0.1.0"

__all__ = [
    "TrustGateError",
    "ValidationError",
    "TrustStoreError",
    "HookTransportError",
    "HookTimeoutError",
    "ConfirmationAlreadyResolvedError",
    "DuplicateCorrelationError",
    "TrustLevel",
    "TrustStore",
    "TrustFileBackend",
    "TrustResolver",
    "TrustClassification",
    "ClassificationResult",
    "WorkspaceContext",
    "PendingConfirmation",
    "TrustChoice",
    "ConfirmationState",
    "ConfirmationOutcome",
    "CompletionReport",
    "HookChannel",
    "HookDecision",
    "HookEventName",
    "LifecycleCoordinator",
    "TurnRequest",
    "TurnResult",
    "MessageKind",
]
