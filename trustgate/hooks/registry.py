"""Build a hook channel from configuration"""

import logging
from typing import Callable, Optional, TYPE_CHECKING

from trustgate.config.schema import HookDefinition, HooksConfig

from .channel import HookChannel, HookDiagnostic
from .transport import CommandHookTransport, HookTransport, HttpHookTransport

if TYPE_CHECKING:
    from trustgate.audit import AuditLog

logger = logging.getLogger(__name__)


def build_transport(definition: HookDefinition) -> HookTransport:
    if definition.type == "http":
        return HttpHookTransport(definition.url, headers=definition.headers)
    return CommandHookTransport(definition.command, env=definition.env or None)


def build_channel(
    config: HooksConfig,
    audit: Optional["AuditLog"] = None,
    on_diagnostic: Optional[Callable[[HookDiagnostic], None]] = None,
) -> HookChannel:
    """Create a channel with one hook per enabled definition."""
    channel = HookChannel(enabled=config.enabled, on_diagnostic=on_diagnostic, audit=audit)
    for event_name, definition in config.definitions.items():
        if not definition.enabled:
            logger.debug(f"Hook for {event_name} disabled in config")
            continue
        target = definition.command if definition.type == "command" else definition.url
        channel.register(event_name, build_transport(definition), timeout=definition.timeout, name=target or event_name)
    logger.info(f"Hook channel ready with {len(channel.get_hooks())} hooks")
    return channel
