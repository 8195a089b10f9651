# conftest.py
# Ensure the repository root is on sys.path so pytest can import the
# package-style modules (apps.services.verifier, libs.core) consistently,
# and provide the fake clock and singleton reset shared by the verifier tests.

import sys
from pathlib import Path

import pytest

# conftest is at: apps/tests/conftest.py
# Walk up two levels to reach the repository root.
ROOT = Path(__file__).resolve().parents[2]
ROOT_STR = str(ROOT)

if ROOT_STR not in sys.path:
    # Insert at front so repo root takes precedence during imports
    sys.path.insert(0, ROOT_STR)

from apps.services.verifier import dependencies  # noqa: E402
from libs.core.config import get_settings  # noqa: E402


class FakeClock:
    """Monotonic clock the test advances by hand (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def fresh_singletons():
    """Every test starts with unbuilt singletons and freshly read settings."""
    get_settings.cache_clear()
    dependencies.reset_all()
    yield
    dependencies.reset_all()
    get_settings.cache_clear()
