# forest/opportunities.py
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from .models import BranchKind, BranchTag, FrontierNode, NodeStatus, Priority, new_id

logger = logging.getLogger(__name__)

_INTEREST_WORDS = ("viral", "interested")


@dataclass
class ExternalFeedback:
    source: str = "Unknown"
    content: str = ""
    sentiment: str = "neutral"

    @classmethod
    def of(cls, raw: Union["ExternalFeedback", Dict[str, Any], str]) -> "ExternalFeedback":
        if isinstance(raw, ExternalFeedback):
            return raw
        if isinstance(raw, str):
            return cls(content=raw)
        return cls(
            source=raw.get("source") or "Unknown",
            content=raw.get("content") or "",
            sentiment=(raw.get("sentiment") or "neutral").lower(),
        )

    @property
    def is_opportunity(self) -> bool:
        text = self.content.lower()
        return self.sentiment == "positive" or any(w in text for w in _INTEREST_WORDS)


@dataclass
class CompletionContext:
    engagement_level: int = 5
    unexpected_results: List[str] = field(default_factory=list)
    new_skills_revealed: List[str] = field(default_factory=list)
    external_feedback: List[ExternalFeedback] = field(default_factory=list)
    shorter_path_discovered: bool = False
    next_questions: str = ""
    learned: str = ""
    breakthrough: bool = False
    energy_after: Optional[int] = None

    def __post_init__(self):
        self.external_feedback = [ExternalFeedback.of(f) for f in self.external_feedback or []]

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "CompletionContext":
        d = d or {}
        return cls(
            engagement_level=int(d.get("engagement_level") or 5),
            unexpected_results=list(d.get("unexpected_results") or []),
            new_skills_revealed=list(d.get("new_skills_revealed") or []),
            external_feedback=list(d.get("external_feedback") or []),
            shorter_path_discovered=bool(d.get("shorter_path_discovered", False)),
            next_questions=d.get("next_questions") or "",
            learned=d.get("learned") or "",
            breakthrough=bool(d.get("breakthrough", False)),
            energy_after=d.get("energy_after"),
        )


class OpportunityDetector:
    """Turns rich completion feedback into new frontier nodes, and finds
    frontier nodes the completion made redundant."""

    high_engagement = 8

    def detect(self, completed: FrontierNode, context: CompletionContext) -> List[FrontierNode]:
        found: List[FrontierNode] = []

        if context.engagement_level >= self.high_engagement:
            found.append(self._node(
                completed,
                title=f"Amplify Success: {completed.title}",
                description=f'Your high engagement with "{completed.title}" suggests deeper potential. '
                            "Let's explore this further.",
                kind=BranchKind.BREAKTHROUGH_AMPLIFICATION,
                estimated_time=completed.estimated_time or "25 minutes",
                priority=Priority.HIGH,
                magnitude=max(3, completed.magnitude - 1),
                generated_from="high_engagement_detection",
                outcomes=["Explore natural talent", "Build on momentum", "Discover hidden capabilities"],
            ))

        for result in context.unexpected_results:
            found.append(self._node(
                completed,
                title=f"Explore Unexpected: {result}",
                description=f'The unexpected result "{result}" from "{completed.title}" '
                            "may open new pathways we hadn't considered.",
                kind=BranchKind.SERENDIPITY_PATHWAY,
                estimated_time="15 minutes",
                priority=Priority.MEDIUM,
                magnitude=4,
                generated_from="unexpected_result_detection",
                outcomes=["Investigate serendipity", "Explore new directions", "Follow emerging opportunities"],
            ))

        for skill in context.new_skills_revealed:
            found.append(self._node(
                completed,
                title=f"Develop Hidden Talent: {skill}",
                description=f'Completing "{completed.title}" revealed you have natural ability in {skill}. '
                            "Let's build on this.",
                kind=BranchKind.HIDDEN_TALENT_DEVELOPMENT,
                estimated_time="30 minutes",
                priority=Priority.HIGH,
                magnitude=5,
                generated_from="skill_revelation_detection",
                outcomes=[f"Develop {skill}", "Build confidence", "Explore natural abilities"],
            ))

        for feedback in context.external_feedback:
            if not feedback.is_opportunity:
                continue
            found.append(self._node(
                completed,
                title=f"Leverage External Interest: {feedback.source}",
                description=f'External feedback on "{completed.title}": "{feedback.content}". '
                            "This could be an opportunity.",
                kind=BranchKind.EXTERNAL_OPPORTUNITY,
                estimated_time="20 minutes",
                priority=Priority.CRITICAL,
                magnitude=6,
                generated_from="external_feedback_detection",
                outcomes=["Capitalize on interest", "Build external connections", "Amplify reach"],
            ))

        if found:
            logger.info("%d opportunities detected from %r", len(found), completed.title)
        return found

    def invalidate(self, frontier: Sequence[FrontierNode], completed: FrontierNode,
                   context: CompletionContext) -> List[FrontierNode]:
        """Return the nodes the completion made unnecessary."""
        return [n for n in frontier if self.is_invalidated(n, completed, context)]

    def is_invalidated(self, node: FrontierNode, completed: FrontierNode,
                       context: CompletionContext) -> bool:
        title = node.title.lower()
        description = (node.description or "").lower()

        # natural aptitude makes basic theory redundant
        if (node.branch_type.kind is BranchKind.FUNDAMENTALS
                and completed.branch_type.kind is not BranchKind.FUNDAMENTALS
                and any(skill and skill.lower() in title for skill in context.new_skills_revealed)):
            return True

        # a discovery subsumed a lesser task
        if (node.magnitude <= completed.magnitude
                and any(result and result.lower() in description for result in context.unexpected_results)):
            return True

        # a shortcut bypassed the prep work
        return (context.shorter_path_discovered
                and node.branch_type.kind is BranchKind.PREPARATION
                and completed.id in node.prerequisites)

    @staticmethod
    def _node(completed: FrontierNode, title: str, description: str, kind: BranchKind,
              estimated_time: str, priority: Priority, magnitude: int,
              generated_from: str, outcomes: List[str]) -> FrontierNode:
        return FrontierNode(
            id=new_id(),
            title=title,
            description=description,
            branch_type=BranchTag(kind),
            estimated_time=estimated_time,
            priority=priority,
            status=NodeStatus.READY,
            magnitude=magnitude,
            prerequisites=[completed.id],
            learning_outcomes=outcomes,
            generated_from=generated_from,
        )
