# forest/slots.py
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import SchedulerPrefs
from .timeconv import MINUTES_PER_DAY, parse_time, to_window

Interval = Tuple[int, int]


def free_intervals(start: int, end: int, busy: Sequence[Interval]) -> List[Interval]:
    """[start, end) minus the busy intervals, in order."""
    out = []
    cursor = start
    for s, e in sorted(busy):
        if s > cursor:
            out.append((cursor, min(s, end)))
        cursor = max(cursor, e)
        if cursor >= end:
            break
    if cursor < end:
        out.append((cursor, end))
    return out


def build_slots(start: int, end: int, fixed: Sequence[Interval], prefs: SchedulerPrefs) -> pd.DataFrame:
    """
    Create the grid of candidate slots for the day.

    Each free stretch between fixed blocks is its own "run", cut into
    slot_minutes pieces from its start; the last piece of a run may be
    shorter so the grid covers the window exactly.
    """
    rows = []
    for run, (s, e) in enumerate(free_intervals(start, end, fixed)):
        for t in range(s, e, prefs.slot_minutes):
            rows.append((t, min(t + prefs.slot_minutes, e), run))

    slots = pd.DataFrame(rows, columns=["start", "end", "run"]).astype(int)
    slots["minutes"] = slots["end"] - slots["start"]
    slots["available"] = True
    return slots


def high_energy_periods(wake: int, end: int, prefs: SchedulerPrefs) -> List[Interval]:
    """Morning window right after wake, then the mid-afternoon window, clipped to the day."""
    afternoon_start = to_window(parse_time(prefs.afternoon_start), wake)
    afternoon_len = (parse_time(prefs.afternoon_end) - parse_time(prefs.afternoon_start)) % MINUTES_PER_DAY
    periods = [
        (wake, wake + prefs.morning_window_minutes),
        (afternoon_start, afternoon_start + afternoon_len),
    ]
    return [(max(s, wake), min(e, end)) for s, e in periods if s < end and e > wake]


def build_energy_mask(slots: pd.DataFrame, periods: Sequence[Interval]) -> np.ndarray:
    mask = np.zeros(len(slots), dtype=bool)
    for s, e in periods:
        mask |= ((slots["start"] >= s) & (slots["start"] < e)).values
    return mask


def take_run(slots: pd.DataFrame, first: int, needed: int) -> List[int]:
    """Consecutive available slots of one run starting at `first`, until `needed` minutes are covered."""
    taken = [first]
    total = int(slots.at[first, "minutes"])
    run = slots.at[first, "run"]
    i = first + 1
    while total < needed and i < len(slots) and slots.at[i, "run"] == run and slots.at[i, "available"]:
        taken.append(i)
        total += int(slots.at[i, "minutes"])
        i += 1
    return taken
