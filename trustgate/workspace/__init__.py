"""Workspace directory management."""

from .context import WorkspaceContext, DirectoriesListener

__all__ = ["WorkspaceContext", "DirectoriesListener"]
