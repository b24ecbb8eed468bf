from forest.frontier import FrontierStore
from forest.models import BranchKind, BranchTag, FrontierNode, NodeStatus, Priority, TimeBlock

from conftest import make_node


def test_branch_tag_parsing():
    assert BranchTag.of("fundamentals") == BranchTag(BranchKind.FUNDAMENTALS)
    assert BranchTag.of("Micro-Review").kind is BranchKind.MICRO_REVIEW
    jazz = BranchTag.of("Jazz Guitar")
    assert jazz.kind is BranchKind.CUSTOM
    assert jazz.value == "Jazz Guitar"
    assert jazz.is_custom("jazz guitar")


def test_node_coercion_and_prerequisite_dedup():
    node = FrontierNode(id="a", title="A", branch_type="research", priority="high", status="ready",
                        magnitude="7", prerequisites=["x", "y", "x"])
    assert node.branch_type.kind is BranchKind.RESEARCH
    assert node.priority is Priority.HIGH
    assert node.status is NodeStatus.READY
    assert node.magnitude == 7
    assert node.prerequisites == ["x", "y"]


def test_pop_and_complete():
    store = FrontierStore(project_id="p", frontier_nodes=[make_node("a"), make_node("b")])
    node = store.pop("a")
    done = store.complete(node, 2, when="2025-11-03T10:00:00+00:00")

    assert [n.id for n in store.frontier_nodes] == ["b"]
    assert store.completed_ids() == ["a"]
    assert store.completed_titles() == ["Task a"]
    assert done.completed_date.startswith("2025-11-03")
    assert store.pop("a") is None


def test_ready_nodes():
    store = FrontierStore(project_id="p", frontier_nodes=[make_node("a"), make_node("b", status="future")])
    assert [n.id for n in store.ready_nodes()] == ["a"]


def test_invariant_checks():
    store = FrontierStore(project_id="p", frontier_nodes=[make_node("a"), make_node("a", magnitude=11)])
    store.complete(make_node("a"), 3)
    problems = store.check_invariants()
    assert "duplicate frontier id a" in problems
    assert "a: magnitude 11 outside 1-10" in problems
    assert "a is both live and completed" in problems
    assert FrontierStore(project_id="p", frontier_nodes=[make_node("ok")]).check_invariants() == []


def test_time_block_completion_fields():
    block = TimeBlock(id="b", type="learning", start=1500, minutes=45, action="Scales")
    assert block.time == "1:00 AM"
    assert block.end == 1545
    assert block.duration == "45 min"
    assert "outcome" not in block.to_dict()

    block.mark_completed("done", learned="pentatonic", difficulty_rating=2, breakthrough=True)
    restored = TimeBlock.from_dict(block.to_dict())
    assert restored.completed == block.completed
    assert restored.learned == "pentatonic"
    assert restored.breakthrough is True
