from datetime import UTC, datetime

import pytest

from puzzle.logic.content import parse_chain_content, parse_lineup_content, parse_recall_content
from puzzle.tests.mocks import FakeLinkValidator, InMemoryAttemptRepository
from puzzle.tests.sample_content import CHAIN_CONTENT, LINEUP_CONTENT, RECALL_CONTENT

FIXED_NOW = datetime(2026, 3, 1, 9, 30, tzinfo=UTC)


@pytest.fixture
def recall_content():
    return parse_recall_content(RECALL_CONTENT)


@pytest.fixture
def lineup_content():
    return parse_lineup_content(LINEUP_CONTENT)


@pytest.fixture
def chain_content():
    return parse_chain_content(CHAIN_CONTENT)


@pytest.fixture
def repository():
    return InMemoryAttemptRepository()


@pytest.fixture
def link_validator():
    return FakeLinkValidator()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def attempt_ids():
    counter = iter(range(1, 1000))
    return lambda: f"attempt-{next(counter)}"
