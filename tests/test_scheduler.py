import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from forest.config import SchedulerPrefs
from forest.models import BlockType, BranchKind, HabitNode
from forest.scheduler import synthesize_schedule
from forest.slots import build_slots, free_intervals, high_energy_periods
from forest.timeconv import format_time

from conftest import make_config, make_node


def assert_contiguous(schedule):
    blocks = sorted(schedule.time_blocks, key=lambda b: b.start)
    assert blocks[0].start == schedule.wake_minutes
    for prev, nxt in zip(blocks, blocks[1:]):
        assert prev.end == nxt.start, f"{prev.action} ends {prev.end}, {nxt.action} starts {nxt.start}"
    assert blocks[-1].end == schedule.end_minutes


class TestSlots:
    def test_free_intervals_cut_around_busy(self):
        assert free_intervals(480, 1440, [(720, 750), (1080, 1110)]) == [(480, 720), (750, 1080), (1110, 1440)]

    def test_busy_at_edges(self):
        assert free_intervals(480, 600, [(480, 510), (570, 600)]) == [(510, 570)]

    def test_trailing_slot_may_be_short(self):
        slots = build_slots(480, 520, [], SchedulerPrefs())
        assert list(slots["minutes"]) == [15, 15, 10]
        assert slots["available"].all()

    def test_runs_break_at_fixed_blocks(self):
        slots = build_slots(480, 600, [(525, 555)], SchedulerPrefs())
        assert list(slots["run"]) == [0, 0, 0, 1, 1, 1]
        assert list(slots["start"]) == [480, 495, 510, 555, 570, 585]

    def test_high_energy_periods(self):
        assert high_energy_periods(480, 1440, SchedulerPrefs()) == [(480, 660), (840, 960)]

    def test_afternoon_window_follows_late_wake(self):
        # 2 PM is already past for a 3 PM riser: next day, clipped at the window end
        periods = high_energy_periods(900, 900 + 1440, SchedulerPrefs())
        assert periods == [(900, 1080), (840 + 1440, 900 + 1440)]


class TestWindowCoverage:
    def test_eight_to_midnight_covers_sixteen_hours(self):
        config = make_config("8:00 AM", "12:00 AM")
        nodes = [make_node(f"n{i}", magnitude=4 + i) for i in range(4)]
        schedule = synthesize_schedule(config, nodes, [], "2025-11-03")

        assert schedule.end_minutes == 1440
        assert sum(b.minutes for b in schedule.time_blocks) == 960
        assert schedule.coverage_problems() == []
        assert_contiguous(schedule)

    def test_wake_equals_sleep_is_a_full_day(self):
        config = make_config("7:00 AM", "7:00 AM")
        schedule = synthesize_schedule(config, [], [], "2025-11-03")
        assert schedule.end_minutes - schedule.wake_minutes == 1440
        assert_contiguous(schedule)

    def test_blocks_sorted_by_start(self):
        config = make_config("9:00 PM", "5:00 AM")
        schedule = synthesize_schedule(config, [make_node()], [], "2025-11-03")
        starts = [b.start for b in schedule.time_blocks]
        assert starts == sorted(starts)
        assert schedule.end_minutes == 300 + 1440

    @settings(max_examples=60, deadline=None)
    @given(
        wake=st.integers(min_value=0, max_value=1439),
        sleep=st.integers(min_value=0, max_value=1439),
        n_nodes=st.integers(min_value=0, max_value=8),
        magnitude=st.integers(min_value=1, max_value=10),
    )
    def test_any_window_is_gap_free(self, wake, sleep, n_nodes, magnitude):
        config = make_config(format_time(wake), format_time(sleep))
        nodes = [make_node(f"n{i}", magnitude=magnitude, estimated_time="45 minutes") for i in range(n_nodes)]
        habits = [HabitNode(id="h1", title="Establish: stretch")]
        schedule = synthesize_schedule(config, nodes, habits, "2025-11-03")

        assert_contiguous(schedule)
        assert sum(b.minutes for b in schedule.time_blocks) == schedule.end_minutes - schedule.wake_minutes


class TestLearningPlacement:
    def test_interest_node_lands_in_first_high_energy_window(self):
        config = make_config("8:00 AM", "12:00 AM")
        node = make_node("quick", kind=BranchKind.INTEREST_DRIVEN, magnitude=6, interest_based=True)
        schedule = synthesize_schedule(config, [node], [], "2025-11-03")

        assert schedule.total_blocks >= 15
        block = schedule.find_block("quick")
        assert block is not None
        assert block.type is BlockType.LEARNING
        assert 480 <= block.start < 480 + 180

    def test_hard_nodes_jump_ahead_into_energy_windows(self):
        config = make_config("8:00 AM", "11:00 PM")
        easy = make_node("easy", magnitude=3)
        hard = make_node("hard", magnitude=8)
        schedule = synthesize_schedule(config, [easy, hard], [], "2025-11-03")

        hard_block = schedule.find_block("hard")
        assert hard_block.start == 480
        assert hard_block.energy_type == "high-focus"
        assert schedule.find_block("easy").start == hard_block.end

    def test_duration_consumes_consecutive_slots(self):
        config = make_config("8:00 AM", "11:00 PM")
        schedule = synthesize_schedule(config, [make_node("long", estimated_time="1-2 hours")], [], "2025-11-03")
        block = schedule.find_block("long")
        assert block.minutes == 120
        assert block.duration == "1-2 hours"

    def test_more_nodes_than_slots_leaves_the_rest_unscheduled(self):
        config = make_config("8:00 AM", "11:00 PM")
        nodes = [make_node(f"n{i}", estimated_time="2 hours") for i in range(20)]
        schedule = synthesize_schedule(config, nodes, [], "2025-11-03")

        learning = schedule.blocks_of(BlockType.LEARNING)
        assert 0 < len(learning) < 20
        assert schedule.unscheduled == [n.id for n in nodes[len(learning):]]
        assert_contiguous(schedule)

    def test_non_ready_nodes_are_ignored(self):
        config = make_config()
        blocked = make_node("blocked", status="blocked")
        schedule = synthesize_schedule(config, [blocked], [], "2025-11-03")
        assert schedule.find_block("blocked") is None
        assert schedule.unscheduled == []


class TestFixedBlocks:
    def test_default_meals(self):
        schedule = synthesize_schedule(make_config(), [], [], "2025-11-03")
        meals = schedule.blocks_of(BlockType.MEAL)
        assert [(m.action, m.start, m.minutes) for m in meals] == [("Lunch", 720, 30), ("Dinner", 1080, 30)]

    def test_meal_too_close_to_sleep_is_skipped(self):
        config = make_config("8:00 AM", "11:00 PM", meal_times=["12:00 PM", "10:45 PM"])
        schedule = synthesize_schedule(config, [], [], "2025-11-03")
        assert [m.action for m in schedule.blocks_of(BlockType.MEAL)] == ["Lunch"]

    def test_meal_outside_window_is_skipped(self):
        config = make_config("8:00 AM", "11:00 PM", meal_times=["6:00 AM"])
        schedule = synthesize_schedule(config, [], [], "2025-11-03")
        assert schedule.blocks_of(BlockType.MEAL) == []

    def test_overlapping_meal_is_skipped(self):
        config = make_config("8:00 AM", "11:00 PM", meal_times=["12:00 PM", "12:15 PM"])
        schedule = synthesize_schedule(config, [], [], "2025-11-03")
        assert len(schedule.blocks_of(BlockType.MEAL)) == 1

    def test_off_grid_meal_keeps_coverage(self):
        config = make_config("8:00 AM", "11:00 PM", meal_times=["12:07 PM"])
        schedule = synthesize_schedule(config, [], [], "2025-11-03")
        assert_contiguous(schedule)

    def test_no_meals(self):
        config = make_config(meal_times=[])
        schedule = synthesize_schedule(config, [], [], "2025-11-03")
        assert schedule.blocks_of(BlockType.MEAL) == []
        assert_contiguous(schedule)


class TestHabitsAndStructure:
    def test_habits_near_morning_and_evening_anchors(self):
        config = make_config("8:00 AM", "12:00 AM")
        habits = [HabitNode(id=f"h{i}", title=f"Establish: habit {i}") for i in range(3)]
        schedule = synthesize_schedule(config, [], habits, "2025-11-03")

        placed = schedule.blocks_of(BlockType.HABIT)
        assert [h.id for h in placed] == ["h0", "h1"]
        assert placed[0].start == 480 + 30
        assert placed[1].start == 1440 - 60

    def test_maintenance_habits_are_not_scheduled(self):
        habits = [HabitNode(id="keep", title="Maintain: walk", habit_type="habit_maintenance", status="active")]
        schedule = synthesize_schedule(make_config(), [], habits, "2025-11-03")
        assert schedule.blocks_of(BlockType.HABIT) == []

    def test_leftover_capacity_becomes_breaks_and_transitions(self):
        schedule = synthesize_schedule(make_config(), [], [], "2025-11-03")
        breaks = schedule.blocks_of(BlockType.BREAK)
        transitions = schedule.blocks_of(BlockType.TRANSITION)
        assert breaks and transitions
        assert all(b.minutes <= 10 for b in breaks)

    def test_north_star_defaults_to_goal(self):
        schedule = synthesize_schedule(make_config(goal="Learn piano"), [], [], "2025-11-03")
        assert schedule.north_star == "Learn piano"
        assert schedule.project_id == "proj"


@pytest.mark.parametrize("energy_level", [1, 5])
def test_energy_and_focus_are_recorded(energy_level):
    schedule = synthesize_schedule(make_config(), [], [], "2025-11-03", energy_level=energy_level, focus_type="deep")
    assert schedule.energy_level == energy_level
    assert schedule.focus_type == "deep"
