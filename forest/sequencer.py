# forest/sequencer.py
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .config import ProjectConfig
from .errors import InputError, NotFoundError
from .frontier import FrontierStore
from .generators import (
    generate_frontier_nodes, generate_path_frontier_nodes, generate_smart_next_tasks, is_relevant_to_path,
)
from .models import (
    BranchKind, BranchTag, CompletedNode, FrontierNode, LearningHistory, NodeStatus, Priority, new_id,
)
from .opportunities import CompletionContext, OpportunityDetector
from .timeconv import parse_duration

logger = logging.getLogger(__name__)

BRANCH_SCORES = {
    BranchKind.INTEREST_DRIVEN: 300,
    BranchKind.EXPLORATION: 250,
    BranchKind.SAMPLING: 250,
    BranchKind.FUNDAMENTALS: 200,
    BranchKind.TOOLS: 150,
    BranchKind.PRACTICAL: 100,
    BranchKind.RESEARCH: 25,
}
PRIORITY_SCORES = {
    Priority.CRITICAL: 50,
    Priority.HIGH: 35,
    Priority.MEDIUM: 20,
}
PATH_PRIORITY_SCORE = 500
ORPHAN_PENALTY = 25
CONTEXT_MATCH_SCORE = 15
SHORT_TASK_SCORE = 5
SHORT_TASK_MINUTES = 30

MAGNITUDE_FLOOR = 3
MAGNITUDE_CEILING = 10


@dataclass
class NoEligibleTask:
    """Nothing can be handed out; not an error."""
    reason: str
    completed_count: int = 0


@dataclass
class FrontierDelta:
    completed: CompletedNode
    outcome: str
    added: List[FrontierNode] = field(default_factory=list)
    invalidated: List[FrontierNode] = field(default_factory=list)
    magnitude_shift: int = 0


def energy_required(node: FrontierNode) -> int:
    if node.magnitude > 7:
        return 4
    if node.magnitude > 5:
        return 3
    return 2


def rebalance(nodes: Iterable[FrontierNode], difficulty_rating: int) -> int:
    """Shift every magnitude one step against the reported difficulty; returns the shift."""
    if difficulty_rating == 5:
        for n in nodes:
            if n.magnitude > MAGNITUDE_FLOOR:
                n.magnitude -= 1
        return -1
    if difficulty_rating == 1:
        for n in nodes:
            if n.magnitude < MAGNITUDE_CEILING:
                n.magnitude += 1
        return 1
    return 0


class SequenceEngine:
    def __init__(self, detector: Optional[OpportunityDetector] = None):
        self.detector = detector or OpportunityDetector()

    # -- eligibility ---------------------------------------------------

    @staticmethod
    def prerequisite_met(prereq: str, completed_ids: Sequence[str], completed_titles: Sequence[str],
                         completed_topics: Sequence[str]) -> bool:
        # producers have written ids, titles and topic names into prerequisites
        if prereq in completed_ids:
            return True
        if prereq in completed_titles:
            return True
        return prereq in completed_topics

    def eligible_nodes(self, nodes: Sequence[FrontierNode], completed_ids: Sequence[str],
                       completed_titles: Sequence[str], completed_topics: Sequence[str],
                       active_path: Optional[str] = None) -> List[FrontierNode]:
        ids, titles, topics = set(completed_ids), set(completed_titles), set(completed_topics)
        out = []
        for node in nodes:
            if not node.is_ready:
                continue
            if not all(self.prerequisite_met(p, ids, titles, topics) for p in node.prerequisites):
                continue
            if active_path and not is_relevant_to_path(node, active_path):
                continue
            out.append(node)
        return out

    # -- selection -----------------------------------------------------

    def score(self, node: FrontierNode, context: str = "") -> int:
        score = 0
        if node.path_priority:
            score += PATH_PRIORITY_SCORE
        if node.interest_based:
            score += BRANCH_SCORES[BranchKind.INTEREST_DRIVEN]
        else:
            score += BRANCH_SCORES.get(node.branch_type.kind, 0)
        score += PRIORITY_SCORES.get(node.priority, 0)
        if not node.prerequisites:
            score -= ORPHAN_PENALTY
        if context and context.lower() in (node.description or "").lower():
            score += CONTEXT_MATCH_SCORE
        if parse_duration(node.estimated_time) <= SHORT_TASK_MINUTES:
            score += SHORT_TASK_SCORE
        return score

    def rank(self, nodes: Sequence[FrontierNode], context: str = "") -> List[Tuple[int, FrontierNode]]:
        # sorted() is stable, so ties keep frontier order
        return sorted(((self.score(n, context), n) for n in nodes), key=lambda pair: -pair[0])

    def suitable_nodes(self, candidates: Sequence[FrontierNode], time_budget: str,
                       energy_level: int) -> List[FrontierNode]:
        budget = parse_duration(time_budget)
        suitable = [
            n for n in candidates
            if parse_duration(n.estimated_time) <= budget and energy_required(n) <= energy_level
        ]
        if suitable or not candidates:
            return suitable
        # nothing fits: fall back to the single easiest node
        return [min(candidates, key=lambda n: n.magnitude)]

    def choose(self, candidates: Sequence[FrontierNode], time_budget: str = "30 minutes",
               energy_level: int = 3, context: str = "") -> Union[FrontierNode, NoEligibleTask]:
        suitable = self.suitable_nodes(candidates, time_budget, energy_level)
        if not suitable:
            return NoEligibleTask("no ready task has its prerequisites met")
        return self.rank(suitable, context)[0][1]

    def select_next_task(self, ready_nodes: Sequence[FrontierNode], completed_ids: Sequence[str],
                         completed_titles: Sequence[str], completed_topics: Sequence[str],
                         time_budget: str = "30 minutes", energy_level: int = 3, context: str = "",
                         active_path: Optional[str] = None) -> Union[FrontierNode, NoEligibleTask]:
        candidates = self.eligible_nodes(ready_nodes, completed_ids, completed_titles,
                                         completed_topics, active_path)
        result = self.choose(candidates, time_budget, energy_level, context)
        if isinstance(result, NoEligibleTask):
            result.completed_count = len(completed_ids)
        return result

    # -- evolution -----------------------------------------------------

    def complete_task(self, store: FrontierStore, node_id: str, outcome: str, difficulty_rating: int,
                      context: Optional[CompletionContext] = None) -> FrontierDelta:
        """
        Move a node to completed and evolve the frontier around it:
        continuation, research for a follow-up question, emergent
        opportunities, invalidation of redundant nodes, then difficulty
        rebalancing across the whole frontier.
        """
        if not 1 <= difficulty_rating <= 5:
            raise InputError(f"difficulty rating must be 1-5, got {difficulty_rating}")
        context = context or CompletionContext()

        node = store.pop(node_id)
        if node is None:
            raise NotFoundError(f"Task {node_id} is not in the frontier")
        done = store.complete(node, difficulty_rating)

        added = [self.continuation(node)]
        question = context.next_questions.strip()
        if question:
            added.append(self.research(node, question))
        added += self.detector.detect(node, context)

        invalidated = self.detector.invalidate(store.frontier_nodes, node, context)
        if invalidated:
            dropped = {id(n) for n in invalidated}
            store.frontier_nodes = [n for n in store.frontier_nodes if id(n) not in dropped]
            logger.info("Invalidated %d nodes after %r: %s", len(invalidated), node.title,
                        ", ".join(n.title for n in invalidated))

        store.extend(added)
        shift = rebalance(store.frontier_nodes, difficulty_rating)
        store.touch()

        logger.info("Completed %r (difficulty %d): +%d nodes, -%d nodes, shift %+d",
                    node.title, difficulty_rating, len(added), len(invalidated), shift)
        return FrontierDelta(done, outcome, added, invalidated, shift)

    @staticmethod
    def continuation(node: FrontierNode) -> FrontierNode:
        return FrontierNode(
            id=new_id(),
            title=f"Continue: Build on {node.title}",
            description=f"Apply and extend what you learned from: {node.title}",
            branch_type=node.branch_type,
            estimated_time="As long as needed",
            priority=Priority.HIGH,
            status=NodeStatus.READY,
            magnitude=max(4, node.magnitude - 1),
            prerequisites=[node.id],
            learning_outcomes=[f"Apply {node.title} knowledge", "Deepen understanding", "Build practical skills"],
            path_focus=node.path_focus,
            generated_from="task_completion",
        )

    @staticmethod
    def research(node: FrontierNode, question: str) -> FrontierNode:
        return FrontierNode(
            id=new_id(),
            title=f"Research: {question[:50]}...",
            description=f"Investigate: {question}",
            branch_type=BranchTag(BranchKind.RESEARCH),
            estimated_time="As long as needed",
            priority=Priority.MEDIUM,
            status=NodeStatus.READY,
            magnitude=5,
            prerequisites=[node.id],
            learning_outcomes=[f"Answer: {question}", "Fill knowledge gaps", "Prepare for advanced topics"],
            generated_from="curiosity",
        )

    def focus_path(self, store: FrontierStore, path_name: str) -> List[FrontierNode]:
        """Flag the frontier nodes relevant to a learning path; returns them."""
        relevant = []
        for node in store.frontier_nodes:
            if is_relevant_to_path(node, path_name):
                node.path_priority = True
                node.path_focus = path_name
                relevant.append(node)
            else:
                node.path_priority = False
        return relevant

    # -- repair --------------------------------------------------------

    def repair_sequence(self, store: FrontierStore, config: ProjectConfig, history: LearningHistory,
                        force_rebuild: bool = False) -> List[str]:
        """
        Drop prerequisites that point nowhere and regenerate the frontier when
        asked to or when nothing is left. Returns the actions taken.
        """
        actions = []
        if force_rebuild:
            actions.append("Complete rebuild requested")
            store.frontier_nodes = self.initial_frontier(store, config)
            actions.append(f"Generated {len(store.frontier_nodes)} fresh tasks")
        else:
            known = set(store.completed_ids()) | set(store.completed_titles()) | set(history.topics())
            known |= {n.id for n in store.frontier_nodes} | {n.title for n in store.frontier_nodes}
            for node in store.frontier_nodes:
                dangling = [p for p in node.prerequisites if p not in known]
                if dangling:
                    node.prerequisites = [p for p in node.prerequisites if p not in dangling]
                    actions.append(f"Fixed orphaned task: {node.title} (removed invalid prereqs: "
                                   f"{', '.join(dangling)})")

            if not store.frontier_nodes:
                actions.append("No valid frontier tasks found - generating new sequence")
                store.frontier_nodes = self.initial_frontier(store, config)
            elif len(store.ready_nodes()) < 2:
                extra = generate_smart_next_tasks(config, history)
                store.extend(extra)
                actions.append(f"Added {len(extra)} new tasks to maintain flow")

        store.sequence_repairs += 1
        store.touch()
        for action in actions:
            logger.info("repair %s: %s", store.project_id, action)
        return actions

    @staticmethod
    def initial_frontier(store: FrontierStore, config: ProjectConfig) -> List[FrontierNode]:
        if store.path_name and store.path_name != "general":
            return generate_path_frontier_nodes(store.path_name, config.learning_path(store.path_name), config)
        return generate_frontier_nodes(config)
