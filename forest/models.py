# forest/models.py
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .timeconv import format_time


def new_id() -> str:
    return secrets.token_hex(5)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class NodeStatus(str, Enum):
    READY = "ready"
    BLOCKED = "blocked"
    FUTURE = "future"


class BlockType(str, Enum):
    LEARNING = "learning"
    HABIT = "habit"
    MEAL = "meal"
    BREAK = "break"
    TRANSITION = "transition"
    LIFE_STRUCTURE = "life_structure"


class BranchKind(str, Enum):
    INTEREST_DRIVEN = "interest_driven"
    EXPLORATION = "exploration"
    SAMPLING = "sampling"
    FUNDAMENTALS = "fundamentals"
    TOOLS = "tools"
    PRACTICAL = "practical"
    RESEARCH = "research"
    PREPARATION = "preparation"
    REFLECTION = "reflection"
    MICRO_REVIEW = "micro-review"
    MICRO_CONCEPT = "micro-concept"
    BREAKTHROUGH_AMPLIFICATION = "breakthrough_amplification"
    SERENDIPITY_PATHWAY = "serendipity_pathway"
    HIDDEN_TALENT_DEVELOPMENT = "hidden_talent_development"
    EXTERNAL_OPPORTUNITY = "external_opportunity"
    CUSTOM = "custom"


@dataclass(frozen=True)
class BranchTag:
    """A task category: one of the known kinds, or CUSTOM carrying its own label
    (learning-path names end up here)."""
    kind: BranchKind
    label: Optional[str] = None

    @classmethod
    def of(cls, value: Any) -> "BranchTag":
        if isinstance(value, BranchTag):
            return value
        if isinstance(value, BranchKind):
            return cls(value)
        text = str(value or "").strip()
        try:
            kind = BranchKind(text.lower())
        except ValueError:
            return cls(BranchKind.CUSTOM, text)
        if kind is BranchKind.CUSTOM:
            return cls(BranchKind.CUSTOM, text)
        return cls(kind)

    @classmethod
    def custom(cls, label: str) -> "BranchTag":
        return cls(BranchKind.CUSTOM, label)

    @property
    def value(self) -> str:
        if self.kind is BranchKind.CUSTOM:
            return self.label or BranchKind.CUSTOM.value
        return self.kind.value

    def is_custom(self, label: str) -> bool:
        return self.kind is BranchKind.CUSTOM and (self.label or "").lower() == label.lower()

    def __str__(self) -> str:
        return self.value


@dataclass
class FrontierNode:
    id: str
    title: str
    description: str = ""
    branch_type: BranchTag = field(default_factory=lambda: BranchTag(BranchKind.PRACTICAL))
    estimated_time: str = "As long as needed"
    priority: Priority = Priority.MEDIUM
    status: NodeStatus = NodeStatus.READY
    magnitude: int = 5
    prerequisites: List[str] = field(default_factory=list)
    learning_outcomes: List[str] = field(default_factory=list)
    interest_based: bool = False
    path_priority: bool = False
    path_focus: Optional[str] = None
    generated_from: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    _FIELDS = (
        "id", "title", "description", "branch_type", "estimated_time", "priority",
        "status", "magnitude", "prerequisites", "learning_outcomes", "interest_based",
        "path_priority", "path_focus", "generated_from",
    )

    def __post_init__(self):
        self.branch_type = BranchTag.of(self.branch_type)
        self.priority = Priority(self.priority)
        self.status = NodeStatus(self.status)
        self.magnitude = int(self.magnitude)
        # ordered set
        self.prerequisites = list(dict.fromkeys(self.prerequisites or []))

    @property
    def is_ready(self) -> bool:
        return self.status is NodeStatus.READY

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out.update({
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "branch_type": self.branch_type.value,
            "estimated_time": self.estimated_time,
            "priority": self.priority.value,
            "status": self.status.value,
            "magnitude": self.magnitude,
            "prerequisites": list(self.prerequisites),
            "learning_outcomes": list(self.learning_outcomes),
        })
        if self.interest_based:
            out["interest_based"] = True
        if self.path_priority:
            out["path_priority"] = True
        if self.path_focus:
            out["path_focus"] = self.path_focus
        if self.generated_from:
            out["generated_from"] = self.generated_from
        return out

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FrontierNode":
        known = {k: d[k] for k in cls._FIELDS if k in d and d[k] is not None}
        extra = {k: v for k, v in d.items() if k not in cls._FIELDS}
        for k in ("completed_date", "actual_difficulty"):
            extra.pop(k, None)
        return cls(extra=extra, **known)


@dataclass
class CompletedNode:
    node: FrontierNode
    completed_date: str
    actual_difficulty: int

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def title(self) -> str:
        return self.node.title

    def to_dict(self) -> Dict[str, Any]:
        out = self.node.to_dict()
        out["completed_date"] = self.completed_date
        out["actual_difficulty"] = self.actual_difficulty
        return out

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CompletedNode":
        return cls(
            node=FrontierNode.from_dict(d),
            completed_date=d.get("completed_date", ""),
            actual_difficulty=int(d.get("actual_difficulty", 3)),
        )


@dataclass
class Branch:
    id: str
    title: str
    description: str = ""
    status: str = "active"  # active | future
    priority: Priority = Priority.MEDIUM
    sequence: int = 1
    focus_areas: List[str] = field(default_factory=list)
    interest_driven: bool = False
    path_specific: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": Priority(self.priority).value,
            "sequence": self.sequence,
            "focus_areas": list(self.focus_areas),
            "interest_driven": self.interest_driven,
            "path_specific": self.path_specific,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Branch":
        return cls(
            id=d["id"],
            title=d["title"],
            description=d.get("description", ""),
            status=d.get("status", "active"),
            priority=Priority(d.get("priority", "medium")),
            sequence=int(d.get("sequence", 1)),
            focus_areas=list(d.get("focus_areas", [])),
            interest_driven=bool(d.get("interest_driven", False)),
            path_specific=bool(d.get("path_specific", False)),
        )


@dataclass
class HabitNode:
    id: str
    title: str
    description: str = ""
    habit_type: str = "habit_building"  # habit_building | habit_maintenance
    priority: Priority = Priority.MEDIUM
    status: str = "ready"  # maintenance habits are "active" and never scheduled
    sequence: int = 1
    tracking_metrics: List[str] = field(default_factory=list)
    success_criteria: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.habit_type,
            "title": self.title,
            "description": self.description,
            "target_frequency": "daily",
            "priority": Priority(self.priority).value,
            "status": self.status,
            "sequence": self.sequence,
            "tracking_metrics": list(self.tracking_metrics),
            "success_criteria": self.success_criteria,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "HabitNode":
        return cls(
            id=d["id"],
            title=d["title"],
            description=d.get("description", ""),
            habit_type=d.get("type", "habit_building"),
            priority=Priority(d.get("priority", "medium")),
            status=d.get("status", "ready"),
            sequence=int(d.get("sequence", 1)),
            tracking_metrics=list(d.get("tracking_metrics", [])),
            success_criteria=d.get("success_criteria", ""),
        )


@dataclass
class TimeBlock:
    id: str
    type: BlockType
    start: int                      # absolute minutes, may run past midnight
    minutes: int
    action: str
    description: str = ""
    duration_text: Optional[str] = None
    strategic_purpose: Optional[str] = None
    learning_outcomes: List[str] = field(default_factory=list)
    magnitude: Optional[int] = None
    energy_type: Optional[str] = None
    fixed: bool = False
    details: Dict[str, Any] = field(default_factory=dict)
    completed: Optional[str] = None
    outcome: Optional[str] = None
    learned: Optional[str] = None
    next_questions: Optional[str] = None
    energy_after: Optional[int] = None
    difficulty_rating: Optional[int] = None
    breakthrough: Optional[bool] = None

    def __post_init__(self):
        self.type = BlockType(self.type)

    @property
    def end(self) -> int:
        return self.start + self.minutes

    @property
    def time(self) -> str:
        return format_time(self.start)

    @property
    def duration(self) -> str:
        return self.duration_text or f"{self.minutes} min"

    def mark_completed(self, outcome: str, learned: str = "", next_questions: str = "",
                       energy_after: Optional[int] = None, difficulty_rating: int = 3,
                       breakthrough: bool = False) -> None:
        self.completed = now_iso()
        self.outcome = outcome
        self.learned = learned
        self.next_questions = next_questions
        self.energy_after = energy_after
        self.difficulty_rating = difficulty_rating
        self.breakthrough = breakthrough

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "id": self.id,
            "type": self.type.value,
            "time": self.time,
            "start_minutes": self.start,
            "duration": self.duration,
            "duration_minutes": self.minutes,
            "action": self.action,
            "description": self.description,
            "strategic_purpose": self.strategic_purpose,
            "learning_outcomes": list(self.learning_outcomes),
            "magnitude": self.magnitude,
            "energy_type": self.energy_type,
            "fixed": self.fixed,
            "details": dict(self.details),
            "completed": self.completed,
        }
        if self.completed:
            out.update({
                "outcome": self.outcome,
                "learned": self.learned,
                "next_questions": self.next_questions,
                "energy_after": self.energy_after,
                "difficulty_rating": self.difficulty_rating,
                "breakthrough": self.breakthrough,
            })
        return out

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TimeBlock":
        return cls(
            id=d["id"],
            type=BlockType(d["type"]),
            start=int(d["start_minutes"]),
            minutes=int(d["duration_minutes"]),
            action=d.get("action", ""),
            description=d.get("description", ""),
            duration_text=d.get("duration"),
            strategic_purpose=d.get("strategic_purpose"),
            learning_outcomes=list(d.get("learning_outcomes") or []),
            magnitude=d.get("magnitude"),
            energy_type=d.get("energy_type"),
            fixed=bool(d.get("fixed", False)),
            details=dict(d.get("details") or {}),
            completed=d.get("completed"),
            outcome=d.get("outcome"),
            learned=d.get("learned"),
            next_questions=d.get("next_questions"),
            energy_after=d.get("energy_after"),
            difficulty_rating=d.get("difficulty_rating"),
            breakthrough=d.get("breakthrough"),
        )


@dataclass
class DailySchedule:
    date: str
    wake_minutes: int
    end_minutes: int
    time_blocks: List[TimeBlock] = field(default_factory=list)
    project_id: Optional[str] = None
    north_star: str = ""
    energy_level: int = 3
    focus_type: str = "mixed"
    unscheduled: List[str] = field(default_factory=list)
    created: str = field(default_factory=now_iso)

    @property
    def total_blocks(self) -> int:
        return len(self.time_blocks)

    @property
    def completed(self) -> int:
        return sum(1 for b in self.time_blocks if b.completed)

    def blocks_of(self, block_type: BlockType) -> List[TimeBlock]:
        return [b for b in self.time_blocks if b.type is block_type]

    def find_block(self, block_id: str) -> Optional[TimeBlock]:
        for b in self.time_blocks:
            if b.id == block_id:
                return b
        # fall back to the action title, case-insensitive
        wanted = block_id.lower()
        for b in self.time_blocks:
            if b.action.lower() == wanted:
                return b
        return None

    def next_open_block(self) -> Optional[TimeBlock]:
        return next((b for b in self.time_blocks if not b.completed), None)

    def coverage_problems(self) -> List[str]:
        """Describe every gap or overlap between wake and the resolved end."""
        problems = []
        cursor = self.wake_minutes
        for b in sorted(self.time_blocks, key=lambda x: x.start):
            if b.start > cursor:
                problems.append(f"gap {format_time(cursor)}-{format_time(b.start)}")
            elif b.start < cursor:
                problems.append(f"overlap at {b.time} ({b.action})")
            cursor = max(cursor, b.end)
        if cursor != self.end_minutes:
            problems.append(f"coverage ends at {format_time(cursor)}, expected {format_time(self.end_minutes)}")
        return problems

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "date": self.date,
            "north_star": self.north_star,
            "wake_minutes": self.wake_minutes,
            "end_minutes": self.end_minutes,
            "time_blocks": [b.to_dict() for b in self.time_blocks],
            "total_blocks": self.total_blocks,
            "completed": self.completed,
            "energy_level": self.energy_level,
            "focus_type": self.focus_type,
            "unscheduled": list(self.unscheduled),
            "created": self.created,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DailySchedule":
        return cls(
            date=d["date"],
            wake_minutes=int(d["wake_minutes"]),
            end_minutes=int(d["end_minutes"]),
            time_blocks=[TimeBlock.from_dict(b) for b in d.get("time_blocks", [])],
            project_id=d.get("project_id"),
            north_star=d.get("north_star", ""),
            energy_level=int(d.get("energy_level", 3)),
            focus_type=d.get("focus_type", "mixed"),
            unscheduled=list(d.get("unscheduled", [])),
            created=d.get("created") or now_iso(),
        )


@dataclass
class CompletedTopic:
    topic: str
    date: str
    learned: str = ""
    difficulty: int = 3
    breakthrough: bool = False


@dataclass
class KnowledgeGap:
    question: str
    discovered: str
    from_topic: str


@dataclass
class LearningHistory:
    completed_topics: List[CompletedTopic] = field(default_factory=list)
    knowledge_gaps: List[KnowledgeGap] = field(default_factory=list)
    insights: List[str] = field(default_factory=list)

    def topics(self) -> List[str]:
        return [t.topic for t in self.completed_topics]

    def record(self, topic: str, date: str, learned: str = "", difficulty: int = 3,
               breakthrough: bool = False, next_questions: str = "") -> None:
        self.completed_topics.append(CompletedTopic(topic, date, learned, difficulty, breakthrough))
        if next_questions:
            self.knowledge_gaps.append(KnowledgeGap(next_questions, date, topic))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "completed_topics": [vars(t).copy() for t in self.completed_topics],
            "knowledge_gaps": [vars(g).copy() for g in self.knowledge_gaps],
            "insights": list(self.insights),
        }

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "LearningHistory":
        d = d or {}
        return cls(
            completed_topics=[CompletedTopic(**t) for t in d.get("completed_topics", [])],
            knowledge_gaps=[KnowledgeGap(**g) for g in d.get("knowledge_gaps", [])],
            insights=list(d.get("insights", [])),
        )
