# forest/metrics.py
from prometheus_client import Counter, Summary

SCHEDULE_TIME = Summary(
    "forest_schedule_synthesis_seconds",
    "Time spent synthesizing a daily schedule",
)

COMPLETIONS = Counter(
    "forest_task_completions_total",
    "Count of completed tasks by reported difficulty",
    ["difficulty"],  # label = rating 1-5
)

NEXT_TASK_OUTCOMES = Counter(
    "forest_next_task_total",
    "Next-task requests by outcome",
    ["outcome"],  # selected | generated | stuck
)
