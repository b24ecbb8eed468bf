import pytest

from forest.models import BranchKind, NodeStatus, Priority
from forest.opportunities import CompletionContext, ExternalFeedback, OpportunityDetector

from conftest import make_node


@pytest.fixture
def detector():
    return OpportunityDetector()


@pytest.fixture
def completed():
    return make_node("done", title="Record a cover", magnitude=6)


class TestDetect:
    def test_emission_count(self, detector, completed):
        ctx = CompletionContext(
            engagement_level=9,
            unexpected_results=["X", "Y"],
            new_skills_revealed=["Z"],
            external_feedback=[{"source": "YouTube", "content": "nice", "sentiment": "positive"}],
        )
        found = detector.detect(completed, ctx)

        assert len(found) == 5
        kinds = [n.branch_type.kind for n in found]
        assert kinds == [
            BranchKind.BREAKTHROUGH_AMPLIFICATION,
            BranchKind.SERENDIPITY_PATHWAY,
            BranchKind.SERENDIPITY_PATHWAY,
            BranchKind.HIDDEN_TALENT_DEVELOPMENT,
            BranchKind.EXTERNAL_OPPORTUNITY,
        ]
        assert all(n.status is NodeStatus.READY for n in found)
        assert all(n.prerequisites == ["done"] for n in found)
        assert all(n.generated_from for n in found)

    def test_quiet_completion_emits_nothing(self, detector, completed):
        assert detector.detect(completed, CompletionContext()) == []

    def test_amplification_magnitude_and_priority(self, detector, completed):
        [node] = detector.detect(completed, CompletionContext(engagement_level=8))
        assert node.magnitude == 5
        assert node.priority is Priority.HIGH

    def test_amplification_magnitude_floor(self, detector):
        easy = make_node("easy", magnitude=2)
        [node] = detector.detect(easy, CompletionContext(engagement_level=10))
        assert node.magnitude == 3

    def test_fixed_magnitudes(self, detector, completed):
        ctx = CompletionContext(unexpected_results=["loops"], new_skills_revealed=["timing"],
                                external_feedback=["Everyone is interested in this"])
        serendipity, talent, external = detector.detect(completed, ctx)
        assert (serendipity.magnitude, serendipity.priority) == (4, Priority.MEDIUM)
        assert (talent.magnitude, talent.priority) == (5, Priority.HIGH)
        assert (external.magnitude, external.priority) == (6, Priority.CRITICAL)

    @pytest.mark.parametrize("raw, expected", [
        ({"sentiment": "positive", "content": "ok"}, True),
        ({"sentiment": "Positive"}, True),
        ({"sentiment": "neutral", "content": "this went viral"}, True),
        ({"sentiment": "negative", "content": "meh"}, False),
        ("Not for me", False),
    ])
    def test_feedback_opportunity(self, raw, expected):
        assert ExternalFeedback.of(raw).is_opportunity is expected


class TestInvalidate:
    def test_revealed_skill_drops_fundamentals(self, detector, completed):
        basics = make_node("b", title="Rhythm Fundamentals", kind=BranchKind.FUNDAMENTALS)
        ctx = CompletionContext(new_skills_revealed=["rhythm"])
        assert detector.invalidate([basics], completed, ctx) == [basics]

    def test_skill_rule_needs_non_fundamentals_completion(self, detector):
        done = make_node("done", kind=BranchKind.FUNDAMENTALS)
        basics = make_node("b", title="Rhythm Fundamentals", kind=BranchKind.FUNDAMENTALS)
        ctx = CompletionContext(new_skills_revealed=["rhythm"])
        assert detector.invalidate([basics], done, ctx) == []

    def test_skill_rule_needs_fundamentals_node(self, detector, completed):
        practice = make_node("p", title="Rhythm drills", kind=BranchKind.PRACTICAL)
        ctx = CompletionContext(new_skills_revealed=["rhythm"])
        assert detector.invalidate([practice], completed, ctx) == []

    def test_unexpected_result_subsumes_smaller_tasks(self, detector, completed):
        smaller = make_node("s", magnitude=6, description="Try looping a riff")
        bigger = make_node("b", magnitude=7, description="Try looping a whole song")
        ctx = CompletionContext(unexpected_results=["looping"])
        assert detector.invalidate([smaller, bigger], completed, ctx) == [smaller]

    def test_shortcut_drops_dependent_preparation(self, detector, completed):
        prep = make_node("prep", kind=BranchKind.PREPARATION, prerequisites=["done"])
        other_prep = make_node("other", kind=BranchKind.PREPARATION, prerequisites=["elsewhere"])
        ctx = CompletionContext(shorter_path_discovered=True)
        assert detector.invalidate([prep, other_prep], completed, ctx) == [prep]
        assert detector.invalidate([prep], completed, CompletionContext()) == []

    def test_empty_keywords_match_nothing(self, detector, completed):
        basics = make_node("b", kind=BranchKind.FUNDAMENTALS, magnitude=1)
        ctx = CompletionContext(new_skills_revealed=[""], unexpected_results=[""])
        assert detector.invalidate([basics], completed, ctx) == []


def test_context_from_dict():
    ctx = CompletionContext.from_dict({
        "engagement_level": "9",
        "external_feedback": [{"source": "Reddit", "content": "interested!"}],
        "next_questions": "What next?",
    })
    assert ctx.engagement_level == 9
    assert ctx.external_feedback[0].source == "Reddit"
    assert ctx.next_questions == "What next?"
    assert CompletionContext.from_dict(None) == CompletionContext()
    assert CompletionContext.from_dict({"engagement_level": None}).engagement_level == 5
