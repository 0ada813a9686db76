"""
Pytest fixtures for sockmatch testing.

Frames are synthesized in memory, so no test data needs to be downloaded.
"""

import sys
from pathlib import Path

import pytest

# Make the src layout and the testing helpers importable from a checkout
ROOT_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT_DIR / "src"))
sys.path.insert(0, str(ROOT_DIR))

from sockmatch.config import default_settings

from testing.frames import GRAY, RED, blank_frame, two_rect_frame


@pytest.fixture(scope="session")
def settings():
    """Default caller settings (grid 15, min 2000, max 100000, color threshold 35)."""
    return default_settings()


@pytest.fixture
def gray_pair_frame():
    """Two identical gray 60x150 rectangles on white."""
    return two_rect_frame(GRAY, GRAY)


@pytest.fixture
def mismatched_frame():
    """A gray and a strongly red 60x150 rectangle on white."""
    return two_rect_frame(GRAY, RED)


@pytest.fixture
def white_frame():
    """All-white 200x400 frame."""
    return blank_frame(200, 400)
