"""Shared fixtures for the review pipeline tests."""

import pytest

from stubs import TWO_FILE_DIFF


@pytest.fixture
def two_file_diff():
    return TWO_FILE_DIFF


@pytest.fixture
def recorded_sleeps():
    """Sleep replacement that records the requested delays."""
    delays = []
    return delays.append, delays
