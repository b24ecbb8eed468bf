# forest/config.py
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import InputError
from .models import now_iso
from .timeconv import parse_time_result, resolve_window


@dataclass
class SchedulerPrefs:
    slot_minutes: int = 15
    meal_minutes: int = 30
    break_minutes: int = 10
    break_every: int = 3               # every third leftover slot is a break
    high_magnitude: int = 7            # magnitude >= this prefers high-energy windows
    morning_window_minutes: int = 180  # [wake, wake + this)
    afternoon_start: str = "2:00 PM"
    afternoon_end: str = "4:00 PM"
    habit_tolerance_minutes: int = 30
    habit_morning_offset: int = 30     # after wake
    habit_evening_offset: int = 60     # before sleep
    default_meal_times: List[str] = field(default_factory=lambda: ["12:00 PM", "6:00 PM"])


@dataclass
class LearningPath:
    path_name: str
    interests: List[str] = field(default_factory=list)
    priority: str = "medium"
    created_dynamically: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path_name": self.path_name,
            "interests": list(self.interests),
            "priority": self.priority,
            "created_dynamically": self.created_dynamically,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LearningPath":
        return cls(
            path_name=d["path_name"],
            interests=list(d.get("interests", [])),
            priority=d.get("priority", "medium"),
            created_dynamically=bool(d.get("created_dynamically", False)),
        )


@dataclass
class ProjectConfig:
    project_id: str
    goal: str
    wake_time: str
    sleep_time: str
    wake_minutes: int = 0
    sleep_minutes: int = 0
    meal_times: Optional[List[str]] = None  # None = defaults, [] = no meals
    focus_duration: str = "flexible"
    specific_interests: List[str] = field(default_factory=list)
    learning_paths: List[LearningPath] = field(default_factory=list)
    active_learning_path: Optional[str] = None
    path_focus_duration: Optional[str] = None
    context: str = ""
    constraints: Dict[str, Any] = field(default_factory=dict)
    current_habits: Dict[str, List[str]] = field(default_factory=dict)
    urgency_level: str = "medium"
    success_metrics: List[str] = field(default_factory=list)
    knowledge_level: int = 0
    breakthroughs: int = 0
    created: str = field(default_factory=now_iso)

    @property
    def end_minutes(self) -> int:
        return resolve_window(self.wake_minutes, self.sleep_minutes)

    @property
    def day_hours(self) -> int:
        return round((self.end_minutes - self.wake_minutes) / 60)

    def learning_path(self, name: Optional[str]) -> Optional[LearningPath]:
        if not name:
            return None
        for p in self.learning_paths:
            if p.path_name.lower() == name.lower():
                return p
        return None

    def habit_goals(self) -> List[str]:
        return list(self.current_habits.get("habit_goals") or [])

    def good_habits(self) -> List[str]:
        return list(self.current_habits.get("good_habits") or [])

    def bad_habits(self) -> List[str]:
        return list(self.current_habits.get("bad_habits") or [])

    @classmethod
    def from_request(cls, request: Dict[str, Any]) -> "ProjectConfig":
        """
        Build a config from a create-project request.

        Wake/sleep live under life_structure_preferences; a missing
        project id, goal, wake or sleep time raises InputError.
        """
        prefs = request.get("life_structure_preferences") or {}
        project_id = request.get("project_id")
        goal = request.get("goal")
        wake_time = prefs.get("wake_time")
        sleep_time = prefs.get("sleep_time")
        if not project_id or not goal or not wake_time or not sleep_time:
            raise InputError("Missing required project parameters: project_id, goal, wake_time, sleep_time")

        wake = parse_time_result(wake_time)
        sleep = parse_time_result(sleep_time)
        if not wake.ok or not sleep.ok:
            raise InputError(f"Unreadable wake/sleep time: {wake_time!r} / {sleep_time!r}")

        paths = []
        for p in request.get("learning_paths") or []:
            paths.append(LearningPath.from_dict(p) if isinstance(p, dict) else LearningPath(str(p)))

        return cls(
            project_id=project_id,
            goal=goal,
            wake_time=wake_time,
            sleep_time=sleep_time,
            wake_minutes=wake.minutes,
            sleep_minutes=sleep.minutes,
            meal_times=prefs.get("meal_times"),
            focus_duration=prefs.get("focus_duration") or "flexible",
            specific_interests=list(request.get("specific_interests") or []),
            learning_paths=paths,
            context=request.get("context", ""),
            constraints=dict(request.get("constraints") or {}),
            current_habits=dict(request.get("current_habits") or {}),
            urgency_level=request.get("urgency_level", "medium"),
            success_metrics=list(request.get("success_metrics") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "goal": self.goal,
            "wake_time": self.wake_time,
            "sleep_time": self.sleep_time,
            "wake_minutes": self.wake_minutes,
            "sleep_minutes": self.sleep_minutes,
            "meal_times": None if self.meal_times is None else list(self.meal_times),
            "focus_duration": self.focus_duration,
            "specific_interests": list(self.specific_interests),
            "learning_paths": [p.to_dict() for p in self.learning_paths],
            "active_learning_path": self.active_learning_path,
            "path_focus_duration": self.path_focus_duration,
            "context": self.context,
            "constraints": dict(self.constraints),
            "current_habits": dict(self.current_habits),
            "urgency_level": self.urgency_level,
            "success_metrics": list(self.success_metrics),
            "knowledge_level": self.knowledge_level,
            "breakthroughs": self.breakthroughs,
            "created": self.created,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ProjectConfig":
        if not d.get("wake_time") or not d.get("sleep_time"):
            raise InputError(f"Project {d.get('project_id')!r} has no wake/sleep time configured")
        data = dict(d)
        data["learning_paths"] = [LearningPath.from_dict(p) for p in d.get("learning_paths", [])]
        fields = cls.__dataclass_fields__
        return cls(**{k: v for k, v in data.items() if k in fields})
