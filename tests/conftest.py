"""Shared fixtures"""

import json

import pytest

from trustgate.trust.store import TrustFileBackend, TrustStore


@pytest.fixture
def trust_file(tmp_path):
    return tmp_path / "config" / "trustedFolders.json"


@pytest.fixture
def backend(trust_file):
    return TrustFileBackend(trust_file)


@pytest.fixture
def store_loader(backend):
    return lambda: TrustStore.load(backend)


@pytest.fixture
def write_rules(trust_file):
    def write(rules: dict):
        trust_file.parent.mkdir(parents=True, exist_ok=True)
        trust_file.write_text(json.dumps(rules))
    return write


@pytest.fixture
def make_dirs(tmp_path):
    """Create directories under tmp_path and return their paths as strings."""
    def make(*names):
        paths = []
        for name in names:
            path = tmp_path / name
            path.mkdir(parents=True, exist_ok=True)
            paths.append(str(path))
        return paths
    return make
