"""Workspace context - the set of directories the assistant may operate on"""

import logging
import os
import threading
from collections import deque
from typing import Callable, Iterable, Optional

from trustgate.errors import ValidationError
from trustgate.paths import is_within, normalize_path

logger = logging.getLogger(__name__)

DirectoriesListener = Callable[[list[str]], None]


class WorkspaceContext:
    """Ordered, unique set of validated workspace directories.

    Every mutation funnels through ``_apply`` under one lock. Changes are
    queued and delivered outside the lock, in registration order, and every
    listener sees one change before any listener sees the next. A listener
    may mutate the workspace; that change is delivered once the current one
    has reached all listeners. A change made on another thread while a
    dispatch is running is delivered by the thread already dispatching.
    """

    def __init__(self, target_dir: Optional[str] = None, additional_directories: Iterable[str] = ()):
        self._lock = threading.RLock()
        self._directories: list[str] = []
        self._members: set[str] = set()
        self._listeners: list[DirectoriesListener] = []
        self._notifications: deque[tuple[list[str], list[DirectoriesListener]]] = deque()
        self._dispatching = False

        initial = ([target_dir] if target_dir else []) + list(additional_directories)
        for path in initial:
            try:
                self._apply([self.resolve_and_validate(path)], replace=False)
            except ValidationError as e:
                logger.warning(f"Skipping initial workspace directory: {e.reason}")

    def get_directories(self) -> list[str]:
        with self._lock:
            return list(self._directories)

    def contains(self, path: str) -> bool:
        with self._lock:
            return normalize_path(path) in self._members

    def is_path_within_workspace(self, path: str) -> bool:
        normalized = normalize_path(path)
        return any(is_within(normalized, d) for d in self.get_directories())

    def resolve_and_validate(self, path: str) -> str:
        """Normalize ``path`` and check it is an accessible directory."""
        normalized = normalize_path(path)
        if not os.path.exists(normalized):
            raise ValidationError(normalized, f"Directory does not exist: {normalized}")
        if not os.path.isdir(normalized):
            raise ValidationError(normalized, f"Path is not a directory: {normalized}")
        if not os.access(normalized, os.R_OK | os.X_OK):
            raise ValidationError(normalized, f"Directory is not accessible: {normalized}")
        return normalized

    def add_directory(self, path: str) -> str:
        """Add one directory. Returns the normalized path that was stored."""
        normalized = self.resolve_and_validate(path)
        with self._lock:
            if normalized in self._members:
                raise ValidationError(normalized, f"Directory is already in the workspace: {normalized}")
            should_dispatch = self._record([normalized], replace=False)
        if should_dispatch:
            self._dispatch()
        logger.info(f"Added workspace directory: {normalized}")
        return normalized

    def set_directories(self, paths: Iterable[str]):
        """Replace all directories. Nothing changes unless every path validates."""
        validated = []
        seen = set()
        for path in paths:
            normalized = self.resolve_and_validate(path)
            if normalized not in seen:
                seen.add(normalized)
                validated.append(normalized)
        self._apply(validated, replace=True)

    def on_directories_changed(self, listener: DirectoriesListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _apply(self, paths: list[str], replace: bool):
        with self._lock:
            should_dispatch = self._record(paths, replace)
        if should_dispatch:
            self._dispatch()

    def _record(self, paths: list[str], replace: bool) -> bool:
        """Apply a change and queue its notification. Caller holds the lock.

        Returns True when the caller has to run the dispatch loop.
        """
        if replace:
            self._directories = []
            self._members = set()
        for path in paths:
            if path not in self._members:
                self._members.add(path)
                self._directories.append(path)
        self._notifications.append((list(self._directories), list(self._listeners)))
        if self._dispatching:
            # The active dispatch loop delivers this change after the current one
            return False
        self._dispatching = True
        return True

    def _dispatch(self):
        """Deliver queued changes in order, outside the lock."""
        while True:
            with self._lock:
                if not self._notifications:
                    self._dispatching = False
                    return
                snapshot, listeners = self._notifications.popleft()
            for listener in listeners:
                try:
                    listener(snapshot)
                except Exception as e:
                    logger.error(f"Workspace listener failed: {e}")
