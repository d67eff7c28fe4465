"""Classify candidate directories against stored trust levels."""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional

from trustgate.errors import TrustStoreError
from trustgate.paths import ancestors, dedupe_paths, is_within

from .store import TrustLevel, TrustStore

logger = logging.getLogger(__name__)


class TrustClassification(str, Enum):
    TRUSTED = "trusted"
    UNTRUSTED = "untrusted"
    UNKNOWN = "unknown"


@dataclass
class ClassificationResult:
    """Partition of a batch of paths.

    Each bucket keeps input order and holds the path as the user wrote it.
    """
    trusted: list[str] = field(default_factory=list)
    untrusted: list[str] = field(default_factory=list)
    unknown: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def bucket(self, classification: TrustClassification) -> list[str]:
        return getattr(self, classification.value)

    @property
    def all_paths(self) -> list[str]:
        return self.trusted + self.untrusted + self.unknown


def evaluate_path(path: str, rules: dict[str, TrustLevel]) -> TrustClassification:
    """Classify a single normalized path.

    Precedence, highest first:
    1. an explicit TRUST_FOLDER or DO_NOT_TRUST record on the path itself
    2. DO_NOT_TRUST on any ancestor
    3. TRUST_FOLDER on an ancestor, or TRUST_PARENT whose parent covers the path
       (a TRUST_PARENT record on the path itself included)
    """
    level = rules.get(path)
    if level == TrustLevel.DO_NOT_TRUST:
        return TrustClassification.UNTRUSTED
    if level == TrustLevel.TRUST_FOLDER:
        return TrustClassification.TRUSTED

    parents = ancestors(path)
    if any(rules.get(a) == TrustLevel.DO_NOT_TRUST for a in parents):
        return TrustClassification.UNTRUSTED

    for rule_path, rule_level in rules.items():
        if rule_level == TrustLevel.TRUST_FOLDER and rule_path in parents:
            return TrustClassification.TRUSTED
        if rule_level == TrustLevel.TRUST_PARENT and is_within(path, os.path.dirname(rule_path)):
            return TrustClassification.TRUSTED

    return TrustClassification.UNKNOWN


class TrustResolver:
    """Splits paths into trusted / untrusted / unknown buckets.

    A fresh store snapshot is loaded on every call.
    """

    def __init__(self, store_loader: Optional[Callable[[], TrustStore]] = None):
        self._store_loader = store_loader or TrustStore.load

    def classify(
        self,
        paths: Iterable[str],
        trust_gating_enabled: bool,
        workspace_is_trusted: Optional[bool],
    ) -> ClassificationResult:
        result = ClassificationResult()
        candidates = dedupe_paths(paths)

        # Gating only applies inside a workspace that is itself trusted
        if not trust_gating_enabled or workspace_is_trusted is not True:
            result.trusted = [original for original, _ in candidates]
            return result

        try:
            rules = self._store_loader().rules
        except TrustStoreError as e:
            logger.warning(f"Treating all directories as unknown: {e}")
            result.unknown = [original for original, _ in candidates]
            result.warnings.append(
                f"Could not read trusted folders ({e.reason}). "
                f"Trust for the requested directories must be confirmed again."
            )
            return result

        for original, normalized in candidates:
            classification = evaluate_path(normalized, rules)
            result.bucket(classification).append(original)

        logger.debug(
            f"Classified {len(candidates)} paths: {len(result.trusted)} trusted, "
            f"{len(result.untrusted)} untrusted, {len(result.unknown)} unknown"
        )
        return result
