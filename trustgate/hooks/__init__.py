"""Lifecycle hooks.

Hooks are external policy processes consulted before and after each agent
turn. They can block a turn, ask for it to continue, or add context.
"""

from .models import (
    HookEventName,
    HookEvent,
    HookRequest,
    HookResponse,
    HookDecision,
    BLOCKING_DECISIONS,
)
from .transport import (
    HookTransport,
    CommandHookTransport,
    HttpHookTransport,
    CallableHookTransport,
    parse_response,
)
from .channel import (
    HookChannel,
    HookDiagnostic,
    RegisteredHook,
    DEFAULT_HOOK_TIMEOUT,
)
from .registry import build_channel, build_transport

__all__ = [
    "HookEventName",
    "HookEvent",
    "HookRequest",
    "HookResponse",
    "HookDecision",
    "BLOCKING_DECISIONS",
    "HookTransport",
    "CommandHookTransport",
    "HttpHookTransport",
    "CallableHookTransport",
    "parse_response",
    "HookChannel",
    "HookDiagnostic",
    "RegisteredHook",
    "DEFAULT_HOOK_TIMEOUT",
    "build_channel",
    "build_transport",
]
