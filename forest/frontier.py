# forest/frontier.py
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .models import Branch, CompletedNode, FrontierNode, HabitNode, Priority, now_iso


@dataclass
class FrontierStore:
    """
    The HTA of one project/learning path: branches, the live frontier and the
    append-only completed list.
    """
    project_id: str
    path_name: str = "general"
    north_star: str = ""
    learning_style: str = "mixed"
    branches: List[Branch] = field(default_factory=list)
    frontier_nodes: List[FrontierNode] = field(default_factory=list)
    completed_nodes: List[CompletedNode] = field(default_factory=list)
    habit_nodes: List[HabitNode] = field(default_factory=list)
    created: str = field(default_factory=now_iso)
    last_evolution: str = field(default_factory=now_iso)
    sequence_repairs: int = 0

    def ready_nodes(self) -> List[FrontierNode]:
        return [n for n in self.frontier_nodes if n.is_ready]

    def ready_habits(self) -> List[HabitNode]:
        return [h for h in self.habit_nodes if h.status == "ready"]

    def find(self, node_id: str) -> Optional[FrontierNode]:
        return next((n for n in self.frontier_nodes if n.id == node_id), None)

    def completed_ids(self) -> List[str]:
        return [c.id for c in self.completed_nodes]

    def completed_titles(self) -> List[str]:
        return [c.title for c in self.completed_nodes]

    def pop(self, node_id: str) -> Optional[FrontierNode]:
        for i, n in enumerate(self.frontier_nodes):
            if n.id == node_id:
                return self.frontier_nodes.pop(i)
        return None

    def complete(self, node: FrontierNode, difficulty: int, when: Optional[str] = None) -> CompletedNode:
        done = CompletedNode(node=node, completed_date=when or now_iso(), actual_difficulty=difficulty)
        self.completed_nodes.append(done)
        return done

    def extend(self, nodes: Iterable[FrontierNode]) -> None:
        self.frontier_nodes.extend(nodes)

    def touch(self) -> None:
        self.last_evolution = now_iso()

    def check_invariants(self) -> List[str]:
        problems = []
        seen = set()
        for n in self.frontier_nodes:
            if n.id in seen:
                problems.append(f"duplicate frontier id {n.id}")
            seen.add(n.id)
            if not 1 <= n.magnitude <= 10:
                problems.append(f"{n.id}: magnitude {n.magnitude} outside 1-10")
            if n.priority not in Priority:
                problems.append(f"{n.id}: unknown priority {n.priority}")
        for c in self.completed_nodes:
            if c.id in seen:
                problems.append(f"{c.id} is both live and completed")
        return problems

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "path_name": self.path_name,
            "north_star": self.north_star,
            "learning_style": self.learning_style,
            "branches": [b.to_dict() for b in self.branches],
            "frontier_nodes": [n.to_dict() for n in self.frontier_nodes],
            "completed_nodes": [c.to_dict() for c in self.completed_nodes],
            "habit_nodes": [h.to_dict() for h in self.habit_nodes],
            "created": self.created,
            "last_evolution": self.last_evolution,
            "sequence_repairs": self.sequence_repairs,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FrontierStore":
        return cls(
            project_id=d["project_id"],
            path_name=d.get("path_name", "general"),
            north_star=d.get("north_star", ""),
            learning_style=d.get("learning_style", "mixed"),
            branches=[Branch.from_dict(b) for b in d.get("branches", [])],
            frontier_nodes=[FrontierNode.from_dict(n) for n in d.get("frontier_nodes", [])],
            completed_nodes=[CompletedNode.from_dict(n) for n in d.get("completed_nodes", [])],
            habit_nodes=[HabitNode.from_dict(h) for h in d.get("habit_nodes", [])],
            created=d.get("created") or now_iso(),
            last_evolution=d.get("last_evolution") or now_iso(),
            sequence_repairs=int(d.get("sequence_repairs", 0)),
        )
