"""Folder trust levels and classification."""

from .store import (
    TrustLevel,
    TrustStore,
    TrustFileBackend,
    default_trusted_folders_path,
)
from .resolver import (
    TrustClassification,
    ClassificationResult,
    TrustResolver,
    evaluate_path,
)

__all__ = [
    "TrustLevel",
    "TrustStore",
    "TrustFileBackend",
    "default_trusted_folders_path",
    "TrustClassification",
    "ClassificationResult",
    "TrustResolver",
    "evaluate_path",
]
