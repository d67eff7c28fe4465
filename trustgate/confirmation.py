"""Pending trust confirmations for directories with no stored trust level.

A ``PendingConfirmation`` is handed to the UI, which calls ``choose`` exactly
once. The directory-add flow awaits ``wait()`` for the resulting report.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, TYPE_CHECKING

from trustgate.errors import ConfirmationAlreadyResolvedError, TrustStoreError
from trustgate.paths import normalize_path
from trustgate.trust.store import TrustLevel, TrustStore
from trustgate.workspace.context import WorkspaceContext

if TYPE_CHECKING:
    from trustgate.audit import AuditLog

logger = logging.getLogger(__name__)


class TrustChoice(str, Enum):
    """User's answer to a folder trust prompt."""
    ADD_ONCE = "once"
    ADD_AND_REMEMBER = "remember"
    REJECT = "reject"
    CANCEL = "cancel"


class ConfirmationState(str, Enum):
    OPEN = "open"
    RESOLVING = "resolving"
    CLOSED = "closed"


class ConfirmationOutcome(str, Enum):
    APPLIED = "applied"
    CANCELLED = "cancelled"


@dataclass
class CompletionReport:
    """Result of a directory-add batch."""
    added: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {"added": list(self.added), "errors": list(self.errors)}


def bullet_list(paths: list[str]) -> str:
    return "\n- ".join(paths)


class PendingConfirmation:
    """An unresolved trust decision for one batch of unknown directories."""

    def __init__(
        self,
        unknown_paths: list[str],
        workspace: WorkspaceContext,
        trusted_added: Optional[list[str]] = None,
        errors: Optional[list[str]] = None,
        store_loader: Optional[Callable[[], TrustStore]] = None,
        audit: Optional["AuditLog"] = None,
    ):
        if not unknown_paths:
            raise ValueError("A pending confirmation needs at least one unknown path")

        self.id = f"confirm_{uuid.uuid4().hex[:8]}"
        self.unknown_paths = list(unknown_paths)
        self.trusted_added = list(trusted_added or [])
        self.errors = list(errors or [])
        self.created_at = datetime.now()
        self.state = ConfirmationState.OPEN
        self.outcome: Optional[ConfirmationOutcome] = None
        self.choice: Optional[TrustChoice] = None
        self.interrupted = False

        self._workspace = workspace
        self._store_loader = store_loader or TrustStore.load
        self._audit = audit
        self._report: Optional[CompletionReport] = None
        self._future: Optional[asyncio.Future] = None
        self._state_callbacks: list[Callable[["PendingConfirmation"], None]] = []

    @property
    def is_open(self) -> bool:
        return self.state == ConfirmationState.OPEN

    @property
    def is_applying(self) -> bool:
        return self.state == ConfirmationState.RESOLVING

    @property
    def report(self) -> Optional[CompletionReport]:
        return self._report

    def on_state_change(self, callback: Callable[["PendingConfirmation"], None]):
        """Register a callback so the UI can render the transitional state."""
        self._state_callbacks.append(callback)

    async def choose(self, choice: TrustChoice) -> CompletionReport:
        """Resolve the confirmation. Calling this twice is an error."""
        choice = TrustChoice(choice)
        if self.state != ConfirmationState.OPEN:
            if self.interrupted and self._report is not None:
                # Late answer from a dialog that was already torn down
                logger.warning(f"Discarding late choice '{choice.value}' for interrupted confirmation {self.id}")
                return self._report
            raise ConfirmationAlreadyResolvedError(self.id, self.outcome.value if self.outcome else self.state.value)

        self.choice = choice
        self._set_state(ConfirmationState.RESOLVING)

        if choice == TrustChoice.CANCEL:
            report = self._cancelled_report()
        elif choice == TrustChoice.REJECT:
            report = self._rejected_report()
        else:
            report = await self._apply(remember=choice == TrustChoice.ADD_AND_REMEMBER)

        if self._audit:
            self._audit.log_confirmation(self.id, choice.value, self.unknown_paths)

        self._close(report, ConfirmationOutcome.CANCELLED if choice == TrustChoice.CANCEL else ConfirmationOutcome.APPLIED)
        return report

    async def cancel(self) -> CompletionReport:
        return await self.choose(TrustChoice.CANCEL)

    def interrupt(self) -> Optional[CompletionReport]:
        """Cancel from outside the UI (e.g. the owning task was interrupted).

        Returns None when the confirmation was already resolved.
        """
        if self.state != ConfirmationState.OPEN:
            return None
        self.interrupted = True
        self.choice = TrustChoice.CANCEL
        self._set_state(ConfirmationState.RESOLVING)
        report = self._cancelled_report()
        self._close(report, ConfirmationOutcome.CANCELLED)
        logger.info(f"Confirmation {self.id} interrupted")
        return report

    async def wait(self) -> CompletionReport:
        """Wait until the confirmation is resolved and return its report."""
        if self._report is not None:
            return self._report
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return await asyncio.shield(self._future)

    async def _apply(self, remember: bool) -> CompletionReport:
        added = list(self.trusted_added)
        errors = list(self.errors)
        store = None

        if remember:
            try:
                store = self._store_loader()
            except TrustStoreError as e:
                # The user still agreed to add the directories for this session
                logger.warning(f"Cannot remember trust for confirmation {self.id}: {e}")
                errors.append(
                    f"Could not remember trust for the following directories ({e.reason}):\n- "
                    + bullet_list(self.unknown_paths)
                )

        for path in self.unknown_paths:
            if store is not None:
                # Trust is recorded before the add so a failed add can be retried
                try:
                    store.set_value(path, TrustLevel.TRUST_FOLDER)
                    if self._audit:
                        self._audit.log_trust_update(normalize_path(path), TrustLevel.TRUST_FOLDER.value)
                except TrustStoreError as e:
                    logger.warning(f"Cannot remember trust for {path}: {e}")
                    errors.append(f"Could not remember trust for '{path}': {e.reason}")
                    # Later writes would fail the same way
                    store = None
            try:
                self._workspace.add_directory(path)
                added.append(path)
                if self._audit:
                    self._audit.log_directory(normalize_path(path), added=True)
            except Exception as e:
                logger.warning(f"Failed to add directory {path}: {e}")
                errors.append(f"Error adding '{path}': {e}")
            await asyncio.sleep(0)

        return CompletionReport(added=added, errors=errors)

    def _rejected_report(self) -> CompletionReport:
        errors = list(self.errors)
        errors.append(
            "The following directories were not added because they were not trusted:\n- "
            + bullet_list(self.unknown_paths)
        )
        if self._audit:
            for path in self.unknown_paths:
                self._audit.log_directory(normalize_path(path), added=False, reason="not trusted")
        return CompletionReport(added=list(self.trusted_added), errors=errors)

    def _cancelled_report(self) -> CompletionReport:
        errors = list(self.errors)
        errors.append(
            "Operation cancelled. The following directories were not added:\n- "
            + bullet_list(self.unknown_paths)
        )
        return CompletionReport(added=list(self.trusted_added), errors=errors)

    def _close(self, report: CompletionReport, outcome: ConfirmationOutcome):
        self._report = report
        self.outcome = outcome
        self._set_state(ConfirmationState.CLOSED)
        if self._future is not None and not self._future.done():
            self._future.set_result(report)

    def _set_state(self, state: ConfirmationState):
        self.state = state
        for callback in list(self._state_callbacks):
            try:
                callback(self)
            except Exception as e:
                logger.error(f"Confirmation state callback failed: {e}")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "unknown_paths": list(self.unknown_paths),
            "trusted_added": list(self.trusted_added),
            "errors": list(self.errors),
            "state": self.state.value,
            "outcome": self.outcome.value if self.outcome else None,
            "created_at": self.created_at.isoformat(),
        }
