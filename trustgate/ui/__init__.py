"""Terminal front-ends for trust prompts."""

from .console import ConsoleMessageSink, ConsolePresenter, TRUST_OPTIONS

__all__ = ["ConsoleMessageSink", "ConsolePresenter", "TRUST_OPTIONS"]
