# forest/scheduler.py
import logging
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .config import ProjectConfig, SchedulerPrefs
from .models import BlockType, DailySchedule, FrontierNode, HabitNode, TimeBlock, new_id
from .slots import build_energy_mask, build_slots, high_energy_periods, take_run
from .timeconv import format_time, parse_duration, parse_time_result, resolve_window, to_window

logger = logging.getLogger(__name__)

_MEAL_NAMES = ("Lunch", "Dinner")


def schedule_fixed_blocks(config: ProjectConfig, wake: int, end: int,
                          prefs: SchedulerPrefs) -> List[TimeBlock]:
    meal_times = prefs.default_meal_times if config.meal_times is None else config.meal_times
    blocks: List[TimeBlock] = []

    for index, meal_time in enumerate(meal_times):
        parsed = parse_time_result(meal_time)
        if not parsed.ok:
            continue
        start = to_window(parsed.minutes, wake)
        if start + prefs.meal_minutes > end:
            logger.debug("Meal at %s falls outside the day, skipped", meal_time)
            continue
        if any(start < b.end and b.start < start + prefs.meal_minutes for b in blocks):
            logger.debug("Meal at %s overlaps another meal, skipped", meal_time)
            continue
        blocks.append(TimeBlock(
            id=new_id(),
            type=BlockType.MEAL,
            start=start,
            minutes=prefs.meal_minutes,
            action=_MEAL_NAMES[index] if index < len(_MEAL_NAMES) else f"Meal {index + 1}",
            description="Nourishment and mental break",
            fixed=True,
            details={"energy_impact": "restorative"},
        ))
    return blocks


def _learning_block(node: FrontierNode, slots: pd.DataFrame, first: int,
                    energy_type: str, focus_minutes: int) -> TimeBlock:
    needed = parse_duration(node.estimated_time) if node.estimated_time else focus_minutes
    taken = take_run(slots, first, needed)
    slots.loc[taken, "available"] = False
    start = int(slots.at[taken[0], "start"])
    return TimeBlock(
        id=node.id,
        type=BlockType.LEARNING,
        start=start,
        minutes=int(slots.at[taken[-1], "end"]) - start,
        action=node.title,
        description=node.description,
        duration_text=node.estimated_time or f"{focus_minutes} min",
        strategic_purpose=node.branch_type.value,
        learning_outcomes=list(node.learning_outcomes),
        magnitude=node.magnitude,
        energy_type=energy_type,
    )


def schedule_learning_blocks(nodes: Sequence[FrontierNode], slots: pd.DataFrame,
                             energy_mask: np.ndarray, config: ProjectConfig,
                             prefs: SchedulerPrefs) -> List[TimeBlock]:
    """
    Greedy placement in frontier order: challenging nodes take the first free
    slot inside a high-energy window, then everything left takes the next
    free slot of the day.
    """
    focus_minutes = parse_duration(config.focus_duration)
    blocks: List[TimeBlock] = []
    placed = set()

    for i, node in enumerate(nodes):
        if node.magnitude < prefs.high_magnitude:
            continue
        candidates = np.flatnonzero(slots["available"].values & energy_mask)
        if not len(candidates):
            break
        blocks.append(_learning_block(node, slots, int(candidates[0]), "high-focus", focus_minutes))
        placed.add(i)

    for i, node in enumerate(nodes):
        if i in placed:
            continue
        candidates = np.flatnonzero(slots["available"].values)
        if not len(candidates):
            break
        energy_type = "high-focus" if node.magnitude >= prefs.high_magnitude else "moderate"
        blocks.append(_learning_block(node, slots, int(candidates[0]), energy_type, focus_minutes))
        placed.add(i)

    return blocks


def schedule_habit_blocks(habits: Sequence[HabitNode], slots: pd.DataFrame, wake: int, end: int,
                          prefs: SchedulerPrefs) -> List[TimeBlock]:
    anchors = [wake + prefs.habit_morning_offset, end - prefs.habit_evening_offset]
    blocks: List[TimeBlock] = []

    for habit, target in zip(habits, anchors):
        distance = np.abs(slots["start"].values - target)
        ok = slots["available"].values & (distance < prefs.habit_tolerance_minutes)
        candidates = np.flatnonzero(ok)
        if not len(candidates):
            logger.debug("No slot near %s for habit %r", format_time(target), habit.title)
            continue
        i = int(candidates[np.argmin(distance[candidates])])
        slots.at[i, "available"] = False
        blocks.append(TimeBlock(
            id=habit.id,
            type=BlockType.HABIT,
            start=int(slots.at[i, "start"]),
            minutes=int(slots.at[i, "minutes"]),
            action=habit.title,
            description=habit.description,
            details={
                "habit_type": habit.habit_type,
                "tracking_metrics": list(habit.tracking_metrics),
                "success_criteria": habit.success_criteria,
            },
        ))
    return blocks


def schedule_life_structure(slots: pd.DataFrame, prefs: SchedulerPrefs) -> List[TimeBlock]:
    """Turn every slot still free into a break (every third one) or a transition."""
    blocks: List[TimeBlock] = []
    open_slots = np.flatnonzero(slots["available"].values)

    for k, i in enumerate(open_slots):
        start = int(slots.at[i, "start"])
        minutes = int(slots.at[i, "minutes"])
        if k % prefs.break_every == 0 and k + 1 < len(open_slots):
            rest = min(prefs.break_minutes, minutes)
            blocks.append(TimeBlock(
                id=new_id(),
                type=BlockType.BREAK,
                start=start,
                minutes=rest,
                action="Restorative Break",
                description="Rest, stretch, hydrate, or light movement",
                details={"energy_impact": "restorative"},
            ))
            start += rest
            minutes -= rest
        if minutes > 0:
            blocks.append(TimeBlock(
                id=new_id(),
                type=BlockType.TRANSITION,
                start=start,
                minutes=minutes,
                action="Transition & Preparation",
                description="Prepare for next activity, organize workspace, mindful transition",
                details={"energy_impact": "neutral"},
            ))
        slots.at[i, "available"] = False
    return blocks


def synthesize_schedule(config: ProjectConfig,
                        ready_nodes: Sequence[FrontierNode],
                        habit_nodes: Sequence[HabitNode],
                        date: str,
                        energy_level: int = 3,
                        focus_type: str = "mixed",
                        prefs: Optional[SchedulerPrefs] = None,
                        north_star: str = "") -> DailySchedule:
    """
    Build a gap-free day from wake to sleep.

    Meals are fixed first, the rest of the window becomes a slot grid,
    learning and habit blocks claim slots, and whatever is left turns into
    breaks and transitions. Nodes that do not fit are listed in
    `unscheduled`.
    """
    prefs = prefs or SchedulerPrefs()
    wake = config.wake_minutes
    end = resolve_window(wake, config.sleep_minutes)

    fixed = schedule_fixed_blocks(config, wake, end, prefs)
    slots = build_slots(wake, end, [(b.start, b.end) for b in fixed], prefs)
    energy_mask = build_energy_mask(slots, high_energy_periods(wake, end, prefs))

    nodes = [n for n in ready_nodes if n.is_ready]
    learning = schedule_learning_blocks(nodes, slots, energy_mask, config, prefs)
    ready_habits = [h for h in habit_nodes if h.status == "ready"]
    habits = schedule_habit_blocks(ready_habits[:2], slots, wake, end, prefs)
    structure = schedule_life_structure(slots, prefs)

    scheduled = {b.id for b in learning}
    schedule = DailySchedule(
        date=date,
        wake_minutes=wake,
        end_minutes=end,
        time_blocks=sorted(fixed + learning + habits + structure, key=lambda b: b.start),
        project_id=config.project_id,
        north_star=north_star or config.goal,
        energy_level=energy_level,
        focus_type=focus_type,
        unscheduled=[n.id for n in nodes if n.id not in scheduled],
    )

    problems = schedule.coverage_problems()
    if problems:
        raise ValueError(f"schedule for {date} is not contiguous: {'; '.join(problems)}")

    logger.info("Synthesized %d blocks for %s (%s -> %s), %d nodes unscheduled",
                schedule.total_blocks, date, format_time(wake), format_time(end),
                len(schedule.unscheduled))
    return schedule
