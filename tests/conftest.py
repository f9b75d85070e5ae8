# ABOUTME: Shared fixtures for engine tests.
# ABOUTME: Exposes the stepping clock and score builder as fixtures.

import pytest

from tests.factories import StepClock, build_score


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def make_score():
    return build_score
