"""
Test configuration: ensures repo root is in sys.path + isolation guards.

This allows tests to import blockplan without installation.
Every test gets a throwaway BLOCKPLAN_HOME so nothing reads or writes the
user's real ~/.blockplan configuration.
"""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add repo root to sys.path so tests can import blockplan.* and tests.fixtures
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


# =============================================================================
# ISOLATION GUARD: Never touch the user's app home
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_app_home(monkeypatch, tmp_path):
    """Point BLOCKPLAN_HOME at a temp dir and clear template overrides."""
    monkeypatch.setenv("BLOCKPLAN_HOME", str(tmp_path / "blockplan_home"))
    monkeypatch.delenv("BLOCKPLAN_TEMPLATE", raising=False)


# =============================================================================
# REFERENCE TIME
# =============================================================================


@pytest.fixture
def now():
    """Monday 2026-02-16 08:00, the fixed reference time for engine tests."""
    return datetime(2026, 2, 16, 8, 0)
