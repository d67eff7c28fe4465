"""Persistence for folder trust levels"""

import json
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Optional

from trustgate.errors import TrustStoreError
from trustgate.paths import normalize_path

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "trustgate"
TRUSTED_FOLDERS_FILE = CONFIG_DIR / "trustedFolders.json"


class TrustLevel(str, Enum):
    """A stored trust decision for a folder."""
    TRUST_FOLDER = "TRUST_FOLDER"
    TRUST_PARENT = "TRUST_PARENT"
    DO_NOT_TRUST = "DO_NOT_TRUST"


def default_trusted_folders_path() -> Path:
    env_path = os.getenv("TRUSTGATE_TRUSTED_FOLDERS_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return TRUSTED_FOLDERS_FILE


class TrustFileBackend:
    """JSON file holding ``{path: level}``. Read on every load, never cached."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else default_trusted_folders_path()

    def load(self) -> dict[str, TrustLevel]:
        if not self.path.exists():
            return {}

        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as e:
            raise TrustStoreError(str(self.path), f"Cannot read trust settings from {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise TrustStoreError(str(self.path), f"Trust settings in {self.path} must be a JSON object")

        rules = {}
        for path, level in data.items():
            try:
                rules[normalize_path(path)] = TrustLevel(level)
            except ValueError:
                raise TrustStoreError(
                    str(self.path), f"Unknown trust level '{level}' for {path} in {self.path}"
                ) from None
        return rules

    def save(self, rules: dict[str, TrustLevel]):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps({p: level.value for p, level in rules.items()}, indent=2))
            tmp.replace(self.path)
        except OSError as e:
            raise TrustStoreError(str(self.path), f"Cannot write trust settings to {self.path}: {e}") from e


class TrustStore:
    """Point-in-time snapshot of the trust rules.

    Updates write the whole snapshot back, so concurrent writers resolve as
    last-writer-wins.
    """

    def __init__(self, backend: TrustFileBackend, rules: Optional[dict[str, TrustLevel]] = None):
        self.backend = backend
        self._rules: dict[str, TrustLevel] = dict(rules or {})

    @classmethod
    def load(cls, backend: Optional[TrustFileBackend] = None) -> "TrustStore":
        backend = backend or TrustFileBackend()
        return cls(backend, backend.load())

    @property
    def rules(self) -> dict[str, TrustLevel]:
        return dict(self._rules)

    def get(self, path: str) -> Optional[TrustLevel]:
        return self._rules.get(normalize_path(path))

    def set_value(self, path: str, level: TrustLevel):
        level = TrustLevel(level)
        normalized = normalize_path(path)
        self._rules[normalized] = level
        self.backend.save(self._rules)
        logger.info(f"Trust level for {normalized} set to {level.value}")

    def unset(self, path: str) -> bool:
        normalized = normalize_path(path)
        if normalized not in self._rules:
            return False
        del self._rules[normalized]
        self.backend.save(self._rules)
        logger.info(f"Trust level for {normalized} removed")
        return True
