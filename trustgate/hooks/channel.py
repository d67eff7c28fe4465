"""Hook channel - dispatches lifecycle events to registered hooks with a deadline"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, TYPE_CHECKING

from trustgate.errors import DuplicateCorrelationError, HookTimeoutError, HookTransportError

from .models import HookDecision, HookEvent, HookRequest
from .transport import HookTransport

if TYPE_CHECKING:
    from trustgate.audit import AuditLog

logger = logging.getLogger(__name__)

DEFAULT_HOOK_TIMEOUT = 60.0


@dataclass
class RegisteredHook:
    event_name: str
    transport: HookTransport
    timeout: float = DEFAULT_HOOK_TIMEOUT
    name: str = ""


@dataclass
class HookDiagnostic:
    """A hook that failed or timed out and was treated as absent."""
    event_name: str
    correlation_id: str
    message: str
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.event_name}] {self.message}"


class HookChannel:
    """Request/response bridge between the agent loop and external hooks.

    A broken, slow or missing hook is reported as a diagnostic and otherwise
    behaves like no hook at all; it never raises into the turn.
    """

    def __init__(
        self,
        enabled: bool = True,
        on_diagnostic: Optional[Callable[[HookDiagnostic], None]] = None,
        audit: Optional["AuditLog"] = None,
        max_diagnostics: int = 100,
    ):
        self.enabled = enabled
        self._hooks: dict[str, RegisteredHook] = {}
        self._outstanding: set[str] = set()
        self._on_diagnostic = on_diagnostic
        self._audit = audit
        self._max_diagnostics = max_diagnostics
        self.diagnostics: list[HookDiagnostic] = []

    def register(
        self,
        event_name: str,
        transport: HookTransport,
        timeout: float = DEFAULT_HOOK_TIMEOUT,
        name: str = "",
    ) -> RegisteredHook:
        if timeout <= 0:
            raise ValueError("Hook timeout must be positive")
        hook = RegisteredHook(event_name=event_name, transport=transport, timeout=timeout, name=name or event_name)
        if event_name in self._hooks:
            logger.info(f"Replacing hook for {event_name}")
        self._hooks[event_name] = hook
        return hook

    def unregister(self, event_name: str) -> bool:
        return self._hooks.pop(event_name, None) is not None

    def has_hook(self, event_name: str) -> bool:
        return self.enabled and event_name in self._hooks

    def get_hooks(self) -> list[RegisteredHook]:
        return list(self._hooks.values())

    def is_outstanding(self, correlation_id: str) -> bool:
        return correlation_id in self._outstanding

    async def fire(self, event_name: str, payload: str, correlation_id: str) -> HookDecision:
        hook = self._hooks.get(event_name) if self.enabled else None
        if hook is None:
            return HookDecision.not_run()

        if correlation_id in self._outstanding:
            raise DuplicateCorrelationError(correlation_id)

        request = HookRequest.from_event(HookEvent(name=event_name, payload=payload, correlation_id=correlation_id))
        self._outstanding.add(correlation_id)
        start_time = time.time()
        try:
            response = await asyncio.wait_for(hook.transport.send(request), timeout=hook.timeout)
        except asyncio.TimeoutError:
            self._report(hook, correlation_id, HookTimeoutError(event_name, hook.timeout), start_time)
            return HookDecision.not_run()
        except HookTransportError as e:
            self._report(hook, correlation_id, e, start_time)
            return HookDecision.not_run()
        except Exception as e:
            self._report(hook, correlation_id, HookTransportError(event_name, f"{type(e).__name__}: {e}"), start_time)
            return HookDecision.not_run()
        finally:
            self._outstanding.discard(correlation_id)

        decision = HookDecision.from_response(response)
        duration_ms = int((time.time() - start_time) * 1000)
        logger.debug(
            f"Hook {hook.name} for {event_name} ({correlation_id}) returned "
            f"{'block' if decision.blocked else 'continue'} in {duration_ms}ms"
        )
        if self._audit:
            self._audit.log_hook(
                event_name, correlation_id,
                blocked=decision.blocked, reason=decision.reason, duration_ms=duration_ms,
            )
        return decision

    def _report(self, hook: RegisteredHook, correlation_id: str, error: HookTransportError, start_time: float):
        diagnostic = HookDiagnostic(event_name=hook.event_name, correlation_id=correlation_id, message=error.message)
        logger.warning(f"Hook {hook.name} ignored: {error}")

        self.diagnostics.append(diagnostic)
        if len(self.diagnostics) > self._max_diagnostics:
            self.diagnostics = self.diagnostics[-self._max_diagnostics:]

        if self._audit:
            self._audit.log_hook(
                hook.event_name, correlation_id,
                error=error.message, duration_ms=int((time.time() - start_time) * 1000),
            )
        if self._on_diagnostic:
            try:
                self._on_diagnostic(diagnostic)
            except Exception as e:
                logger.error(f"Hook diagnostic callback failed: {e}")
