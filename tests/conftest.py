from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure tests always import the local src tree, not an older installed wheel.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from dbacl.core.config import SECURITY_CONFIG_FILE  # noqa: E402
from dbacl.core.identity import TransactionId  # noqa: E402
from dbacl.core.manager import AccessControlManager  # noqa: E402


@pytest.fixture
def resources() -> Path:
    """Directory holding the JSON rule files used by the tests."""
    return ROOT / "tests" / "resources"


@pytest.fixture
def tx() -> TransactionId:
    return TransactionId.create()


@pytest.fixture
def new_manager(resources: Path):
    """Return a factory for managers running the rule-file provider on a test resource."""

    def _make(resource_name: str) -> AccessControlManager:
        manager = AccessControlManager()
        manager.set_system_access_control(
            "file", {SECURITY_CONFIG_FILE: str(resources / resource_name)}
        )
        return manager

    return _make
