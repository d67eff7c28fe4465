"""Lifecycle coordinator - directory-add workflow and per-turn hook firing"""

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol, Sequence, Union, TYPE_CHECKING

from trustgate.confirmation import CompletionReport, PendingConfirmation, bullet_list
from trustgate.errors import ValidationError
from trustgate.hooks.channel import HookChannel
from trustgate.hooks.models import HookDecision, HookEventName
from trustgate.paths import dedupe_paths, normalize_path, split_path_list
from trustgate.trust.resolver import TrustResolver
from trustgate.trust.store import TrustStore
from trustgate.workspace.context import WorkspaceContext

if TYPE_CHECKING:
    from trustgate.audit import AuditLog

logger = logging.getLogger(__name__)


UNTRUSTED_DIRECTORIES_MESSAGE = (
    "The following directories are explicitly untrusted and cannot be added to a trusted workspace:\n- {paths}\n"
    "Please use the permissions command to modify their trust level."
)


class MessageKind(str, Enum):
    INFO = "info"
    ERROR = "error"


class MessageSink(Protocol):
    def add_item(self, kind: MessageKind, text: str) -> None: ...


class ConfirmationPresenter(Protocol):
    """Shows a pending confirmation and eventually calls ``choose`` on it once."""
    async def present(self, confirmation: PendingConfirmation) -> None: ...


@dataclass
class TurnRequest:
    """Outgoing request to the model, after before-agent hooks ran."""
    prompt: str
    correlation_id: str
    additional_context: list[str] = field(default_factory=list)

    def to_prompt_text(self) -> str:
        if not self.additional_context:
            return self.prompt
        return "\n\n".join([self.prompt, *self.additional_context])


class ModelBackend(Protocol):
    async def generate(self, request: TurnRequest) -> str: ...


@dataclass
class TurnResult:
    """What the agent loop should do with a finished (or stopped) turn."""
    correlation_id: str
    before: HookDecision
    after: Optional[HookDecision] = None
    response: Optional[str] = None
    blocked: bool = False
    message: Optional[str] = None
    continue_requested: bool = False
    continuation_reason: Optional[str] = None

    @property
    def completed(self) -> bool:
        return not self.blocked and not self.continue_requested


MemoryRefresher = Callable[[list[str]], Awaitable[None]]


class LifecycleCoordinator:
    """Composes workspace, trust resolution, confirmations and hooks."""

    def __init__(
        self,
        workspace: WorkspaceContext,
        channel: Optional[HookChannel] = None,
        resolver: Optional[TrustResolver] = None,
        presenter: Optional[ConfirmationPresenter] = None,
        messages: Optional[MessageSink] = None,
        trust_gating_enabled: bool = False,
        workspace_is_trusted: Optional[bool] = None,
        store_loader: Optional[Callable[[], TrustStore]] = None,
        memory_refresher: Optional[MemoryRefresher] = None,
        audit: Optional["AuditLog"] = None,
    ):
        self.workspace = workspace
        self.channel = channel or HookChannel()
        self._store_loader = store_loader or TrustStore.load
        self.resolver = resolver or TrustResolver(self._store_loader)
        self.presenter = presenter
        self.messages = messages
        self.trust_gating_enabled = trust_gating_enabled
        self.workspace_is_trusted = workspace_is_trusted
        self.memory_refresher = memory_refresher
        self.audit = audit
        self._pending: dict[str, PendingConfirmation] = {}

    def get_pending_confirmations(self) -> list[PendingConfirmation]:
        return sorted(self._pending.values(), key=lambda c: c.created_at)

    # Directory-add flow

    async def add_directories(self, raw: Union[str, Sequence[str]]) -> CompletionReport:
        """Add user-supplied directories, asking for trust where none is stored.

        ``raw`` is either comma separated text or a sequence of paths.
        """
        paths = split_path_list(raw) if isinstance(raw, str) else [p.strip() for p in raw if p and p.strip()]
        if not paths:
            self._emit(MessageKind.ERROR, "Please provide at least one path to add.")
            return CompletionReport()

        already_added, to_process = [], []
        for original, normalized in dedupe_paths(paths):
            if self.workspace.contains(normalized):
                already_added.append(original)
            else:
                to_process.append(original)

        if already_added:
            self._emit(
                MessageKind.INFO,
                f"The following directories are already in the workspace:\n- {bullet_list(already_added)}",
            )
        if not to_process:
            return CompletionReport()

        classification = self.resolver.classify(to_process, self.trust_gating_enabled, self.workspace_is_trusted)
        errors = list(classification.warnings)

        if classification.untrusted:
            errors.append(UNTRUSTED_DIRECTORIES_MESSAGE.format(paths=bullet_list(classification.untrusted)))
            if self.audit:
                for path in classification.untrusted:
                    self.audit.log_directory(normalize_path(path), added=False, reason="untrusted")

        added = []
        for path in classification.trusted:
            try:
                self.workspace.add_directory(path)
                added.append(path)
                if self.audit:
                    self.audit.log_directory(normalize_path(path), added=True)
            except ValidationError as e:
                errors.append(f"Error adding '{path}': {e}")

        if classification.unknown:
            confirmation = PendingConfirmation(
                classification.unknown,
                self.workspace,
                trusted_added=added,
                errors=errors,
                store_loader=self._store_loader,
                audit=self.audit,
            )
            report = await self._await_confirmation(confirmation)
        else:
            report = CompletionReport(added=added, errors=errors)

        return await self._finish(report)

    async def _await_confirmation(self, confirmation: PendingConfirmation) -> CompletionReport:
        if self.presenter is None:
            logger.warning("No confirmation presenter configured; unknown directories were not added")
            return confirmation.interrupt()

        self._pending[confirmation.id] = confirmation
        try:
            await self.presenter.present(confirmation)
            return await confirmation.wait()
        except asyncio.CancelledError:
            confirmation.interrupt()
            raise
        except Exception as e:
            logger.error(f"Confirmation presenter failed: {e}")
            report = confirmation.interrupt()
            return report if report is not None else await confirmation.wait()
        finally:
            self._pending.pop(confirmation.id, None)

    async def _finish(self, report: CompletionReport) -> CompletionReport:
        if report.added and self.memory_refresher:
            try:
                await self.memory_refresher([normalize_path(p) for p in report.added])
            except Exception as e:
                report.errors.append(f"Error refreshing memory: {e}")

        if report.added:
            self._emit(MessageKind.INFO, f"Successfully added directories:\n- {bullet_list(report.added)}")
        if report.errors:
            self._emit(MessageKind.ERROR, "\n".join(report.errors))
        return report

    def show_directories(self) -> str:
        directory_list = "\n".join(f"- {d}" for d in self.workspace.get_directories())
        text = f"Current workspace directories:\n{directory_list}"
        self._emit(MessageKind.INFO, text)
        return text

    # Turn hook flow

    async def fire_before_agent(self, prompt: str, correlation_id: str) -> HookDecision:
        payload = json.dumps({"prompt": prompt})
        return await self.channel.fire(HookEventName.BEFORE_AGENT.value, payload, correlation_id)

    async def fire_after_agent(self, prompt: str, response_text: str, correlation_id: str) -> HookDecision:
        payload = json.dumps({"prompt": prompt, "response": response_text})
        return await self.channel.fire(HookEventName.AFTER_AGENT.value, payload, correlation_id)

    async def run_turn(self, prompt: str, backend: ModelBackend, correlation_id: Optional[str] = None) -> TurnResult:
        """Run one turn with before/after hooks around the model call."""
        correlation_id = correlation_id or f"turn_{uuid.uuid4().hex[:12]}"

        before = await self.fire_before_agent(prompt, correlation_id)
        if before.is_blocking_decision():
            message = before.get_effective_reason() or "Request blocked by before-agent hook."
            logger.info(f"Turn {correlation_id} blocked before model call")
            self._emit(MessageKind.ERROR, message)
            return TurnResult(correlation_id=correlation_id, before=before, blocked=True, message=message)

        request = TurnRequest(prompt=prompt, correlation_id=correlation_id)
        context = before.get_additional_context()
        if context:
            request.additional_context.append(context)

        response = await backend.generate(request)

        after = await self.fire_after_agent(prompt, response, correlation_id)
        result = TurnResult(correlation_id=correlation_id, before=before, after=after, response=response)
        if after.is_blocking_decision():
            result.continue_requested = True
            result.continuation_reason = after.get_effective_reason()
            logger.info(f"Turn {correlation_id} kept open by after-agent hook")
        return result

    def _emit(self, kind: MessageKind, text: str):
        if self.messages:
            self.messages.add_item(kind, text)
