"""Shared fixtures: project configs, frontier nodes and a throwaway data dir."""

import pytest

from forest.config import ProjectConfig
from forest.models import BranchKind, BranchTag, FrontierNode, Priority
from forest.service import ForestService, ProjectHandle
from forest.store import JsonStore


def make_config(wake="8:00 AM", sleep="12:00 AM", **overrides) -> ProjectConfig:
    request = {
        "project_id": overrides.pop("project_id", "proj"),
        "goal": overrides.pop("goal", "Learn guitar"),
        "specific_interests": overrides.pop("specific_interests", []),
        "life_structure_preferences": {
            "wake_time": wake,
            "sleep_time": sleep,
            "meal_times": overrides.pop("meal_times", None),
            "focus_duration": overrides.pop("focus_duration", "flexible"),
        },
        "current_habits": overrides.pop("current_habits", {}),
    }
    request.update(overrides)
    return ProjectConfig.from_request(request)


def make_node(node_id="n1", title=None, kind=BranchKind.PRACTICAL, magnitude=5,
              estimated_time="30 minutes", priority=Priority.MEDIUM, **kwargs) -> FrontierNode:
    return FrontierNode(
        id=node_id,
        title=title or f"Task {node_id}",
        branch_type=BranchTag(kind),
        estimated_time=estimated_time,
        priority=priority,
        magnitude=magnitude,
        **kwargs,
    )


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def store(tmp_path):
    return JsonStore(tmp_path / "data")


@pytest.fixture
def service(store):
    return ForestService(store)


@pytest.fixture
def project(service):
    """A created project with a built HTA on the general path."""
    result = service.create_project({
        "project_id": "guitar",
        "goal": "Learn guitar",
        "specific_interests": ["Play Wonderwall"],
        "life_structure_preferences": {"wake_time": "8:00 AM", "sleep_time": "11:00 PM"},
        "current_habits": {"habit_goals": ["daily practice log"]},
    })
    handle = result.payload
    service.build_hta(handle)
    return handle


@pytest.fixture
def handle():
    return ProjectHandle("guitar")
