"""
Shared fixtures and pytest configuration for gridscan tests.
"""

import sys
from pathlib import Path

import pytest

# Ensure the src layout is importable without installing
src_root = Path(__file__).parent.parent / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from gridscan.graphics.uniforms import GridScanConfig
from gridscan.hosts.offscreen import OffscreenContainer


# ============================================================================
# Pytest Hooks
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "websocket: mark test as involving WebSocket communication",
    )
    config.addinivalue_line(
        "markers",
        "render: mark test as rendering full frames",
    )


def pytest_collection_modifyitems(config, items):
    """Mark WebSocket tests by name."""
    for item in items:
        if "websocket" in item.name.lower():
            item.add_marker(pytest.mark.websocket)


# ============================================================================
# Shared Fixtures
# ============================================================================


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def config():
    """Default look of the effect."""
    return GridScanConfig()


@pytest.fixture
def container():
    """Small offscreen host so frames render quickly."""
    return OffscreenContainer(64, 36, pixel_ratio=1.0)
