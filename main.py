# main.py
import logging
import tempfile

import matplotlib.pyplot as plt

from forest.models import BlockType
from forest.service import ForestService
from forest.store import JsonStore
from forest.timeconv import format_time

BLOCK_COLORS = {
    BlockType.LEARNING: "#1f77b4",
    BlockType.HABIT: "#2ca02c",
    BlockType.MEAL: "#ff7f0e",
    BlockType.BREAK: "#9467bd",
    BlockType.TRANSITION: "#c7c7c7",
}


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    service = ForestService(JsonStore(tempfile.mkdtemp(prefix="forest-demo-")))

    created = service.create_project({
        "project_id": "demo",
        "goal": "Python programming",
        "specific_interests": ["Build a CLI budget tracker"],
        "life_structure_preferences": {
            "wake_time": "8:00 AM",
            "sleep_time": "12:00 AM",
            "meal_times": ["12:30 PM", "6:30 PM"],
            "focus_duration": "1 hour",
        },
        "current_habits": {"habit_goals": ["morning journaling"], "good_habits": ["daily walk"]},
    })
    handle = created.payload
    print(created)

    print(service.build_hta(handle, learning_style="hands-on"))

    result = service.synthesize_schedule(handle, date="2025-11-03", energy_level=4)
    schedule = result.payload

    print("=== Schedule ===")
    for block in schedule.time_blocks:
        print(f"{block.time:>9}  {block.minutes:>3} min  {block.type.value:<10} {block.action}")

    nxt = service.select_next_task(handle, time_available="2 hours", energy_level=4)
    print(nxt)

    if nxt.ok and hasattr(nxt.payload, "id"):
        done = service.complete_task(handle, nxt.payload.id, "Got the first version working", difficulty_rating=2,
                                     context={"engagement_level": 9, "next_questions": "How do I persist data?"})
        print(done)

    # Plot the day as a timeline
    fig, ax = plt.subplots(figsize=(12, 2.5))
    for block in schedule.time_blocks:
        ax.broken_barh([(block.start / 60, block.minutes / 60)], (0, 1),
                       facecolors=BLOCK_COLORS.get(block.type, "#7f7f7f"), edgecolor="white")
    ticks = range(schedule.wake_minutes, schedule.end_minutes + 1, 120)
    ax.set_xticks([t / 60 for t in ticks])
    ax.set_xticklabels([format_time(t) for t in ticks], rotation=30)
    ax.set_yticks([])
    ax.set_title(f"Daily schedule {schedule.date}")
    ax.legend(handles=[plt.Rectangle((0, 0), 1, 1, color=c) for c in BLOCK_COLORS.values()],
              labels=[t.value for t in BLOCK_COLORS], loc="upper center", ncol=5, bbox_to_anchor=(0.5, -0.35))
    plt.tight_layout()
    plt.show()


if __name__ == "__main__":
    main()
