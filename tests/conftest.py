"""Pytest configuration and shared fixtures."""
import os
from datetime import date, datetime

os.environ.setdefault("ENVIRONMENT", "test")

import pytest

from training_tracker import DomainMapper
from tracker_models import ColleagueEntity, GoalEntity, GoalStatus, TrainingPlanEntity


@pytest.fixture
def mapper():
    """Mapper with cycle detection and strict assignment switched on."""
    return DomainMapper(detect_cycles=True, strict_assignment=True)


@pytest.fixture
def mock_colleague():
    """Colleague entity as loaded from the data layer."""
    return ColleagueEntity(
        id=5,
        first_name="Bob",
        last_name="Marsh",
        email="bob.marsh@example.com",
        start_date=date(2021, 3, 1),
    )


@pytest.fixture
def mock_goals(mock_colleague):
    """Two goals owned by the same colleague."""
    return [
        GoalEntity(
            id=11,
            title="Finish AWS practitioner course",
            status=GoalStatus.IN_PROGRESS,
            due_date=date(2024, 6, 30),
            tags=["cloud", "certification"],
            owner=mock_colleague,
        ),
        GoalEntity(
            id=12,
            title="Shadow a production release",
            status=GoalStatus.NOT_STARTED,
            tags=["devops"],
            owner=mock_colleague,
        ),
    ]


@pytest.fixture
def mock_training_plan(mock_colleague, mock_goals):
    """Training plan entity with a colleague and goals attached."""
    return TrainingPlanEntity(
        id=1,
        name="2024 development plan",
        created_at=datetime(2024, 1, 8, 9, 30),
        colleague=mock_colleague,
        goals=mock_goals,
    )
