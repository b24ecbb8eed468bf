import logging
from datetime import date

import pandas as pd
import plotly.express as px
import streamlit as st
from prometheus_client import start_http_server
from streamlit_calendar import calendar

from forest.errors import run_operation
from forest.models import BlockType
from forest.service import ForestService, ProjectHandle
from forest.store import JsonStore

logging.basicConfig(level=logging.INFO)

BLOCK_COLORS = {
    BlockType.LEARNING: "#1f77b4",
    BlockType.HABIT: "#2ca02c",
    BlockType.MEAL: "#ff7f0e",
    BlockType.BREAK: "#9467bd",
    BlockType.TRANSITION: "#c7c7c7",
}

# Start metrics server only once
if "metrics_started" not in st.session_state:
    start_http_server(8000)
    st.session_state.metrics_started = True

# Session State Setup
if "service" not in st.session_state:
    st.session_state.service = ForestService(JsonStore())

if "project_id" not in st.session_state:
    st.session_state.project_id = None

if "schedule" not in st.session_state:
    st.session_state.schedule = None

if "message" not in st.session_state:
    st.session_state.message = None

service: ForestService = st.session_state.service


def show(result):
    """Keep the outcome of the last action around for the main panel."""
    st.session_state.message = result
    return result


def split_lines(text: str):
    return [line.strip() for line in text.splitlines() if line.strip()]


# Sidebar: Project
st.sidebar.title("Forest Learning Planner")

projects = service.store.list_projects()
if projects:
    current = st.session_state.project_id if st.session_state.project_id in projects else projects[0]
    st.session_state.project_id = st.sidebar.selectbox("Project", projects, index=projects.index(current))

st.sidebar.subheader("New Project")
with st.sidebar.form("project_form"):
    p_id = st.text_input("Project id")
    p_goal = st.text_input("Goal")
    p_interests = st.text_area("Specific interests (one per line)")
    p_wake = st.text_input("Wake time", "8:00 AM")
    p_sleep = st.text_input("Sleep time", "11:00 PM")
    p_meals = st.text_input("Meal times (comma separated)", "12:00 PM, 6:00 PM")
    p_focus = st.selectbox("Focus duration", ["flexible", "25 minutes", "1 hour", "deep work", "10 minutes"])
    p_habits = st.text_area("Habits to build (one per line)")
    create = st.form_submit_button("Create Project")
    if create:
        result = show(run_operation(service.create_project, {
            "project_id": p_id.strip(),
            "goal": p_goal.strip(),
            "specific_interests": split_lines(p_interests),
            "life_structure_preferences": {
                "wake_time": p_wake,
                "sleep_time": p_sleep,
                "meal_times": [m.strip() for m in p_meals.split(",") if m.strip()],
                "focus_duration": p_focus,
            },
            "current_habits": {"habit_goals": split_lines(p_habits)},
        }))
        if result.ok:
            st.session_state.project_id = result.payload.project_id
            run_operation(service.build_hta, result.payload)
            st.rerun()

if not st.session_state.project_id:
    st.title("Forest Learning Planner")
    st.info("Create a project in the sidebar to get started.")
    st.stop()

handle = ProjectHandle(st.session_state.project_id)

# Sidebar: Learning path
st.sidebar.subheader("Learning Path")
with st.sidebar.form("path_form"):
    path_name = st.text_input("Focus on path")
    path_duration = st.text_input("For how long (optional)")
    focus = st.form_submit_button("Focus")
    if focus and path_name.strip():
        show(run_operation(service.focus_learning_path, handle, path_name.strip(), path_duration or None))

if st.sidebar.button("Repair sequence"):
    show(run_operation(service.repair_sequence, handle))
if st.sidebar.button("Rebuild from scratch"):
    show(run_operation(service.repair_sequence, handle, force_rebuild=True))


# Main: Daily schedule
st.title("Daily Learning Schedule")

col1, col2, col3 = st.columns(3)
with col1:
    day = st.date_input("Day", value=date.today())
with col2:
    energy = st.slider("Energy level", 1, 5, 3)
with col3:
    focus_type = st.selectbox("Focus type", ["mixed", "deep", "light"])

if st.button("Generate Schedule"):
    result = show(run_operation(service.synthesize_schedule, handle, day.isoformat(), energy, focus_type))
    if result.ok:
        st.session_state.schedule = result.payload
else:
    stored = service.store.load_schedule(handle.project_id, day.isoformat())
    if stored is not None:
        st.session_state.schedule = stored

if st.session_state.message is not None:
    msg = st.session_state.message
    (st.success if msg.ok else st.error)(msg.summary)

schedule = st.session_state.schedule
if schedule is not None and schedule.project_id == handle.project_id:
    st.markdown("## Day View")
    day_start = pd.Timestamp(schedule.date)

    events = []
    for block in schedule.time_blocks:
        start = day_start + pd.Timedelta(minutes=block.start)
        events.append({
            "title": ("✓ " if block.completed else "") + block.action,
            "start": start.isoformat(),
            "end": (start + pd.Timedelta(minutes=block.minutes)).isoformat(),
            "id": block.id,
            "color": BLOCK_COLORS.get(block.type, "#7f7f7f"),
        })

    cal_options = {
        "initialView": "timeGridDay",
        "initialDate": schedule.date,
        "slotMinTime": f"{schedule.wake_minutes // 60:02d}:00:00",
        "slotMaxTime": f"{(schedule.end_minutes + 59) // 60:02d}:00:00",
        "allDaySlot": False,
        "nowIndicator": True,
    }
    calendar(events=events, options=cal_options, key=f"calendar-{schedule.date}")

    # Completion form
    st.markdown("### Complete a block")
    open_blocks = [b for b in schedule.time_blocks if not b.completed]
    if open_blocks:
        with st.form("block_form"):
            sel = st.selectbox("Block", open_blocks, format_func=lambda b: f"{b.time} {b.action}")
            outcome = st.text_input("Outcome")
            learned = st.text_area("What did you learn?")
            questions = st.text_input("Follow-up questions")
            difficulty = st.slider("Difficulty (1 too easy, 5 too hard)", 1, 5, 3)
            after = st.slider("Energy afterwards", 1, 5, 3)
            breakthrough = st.checkbox("Breakthrough?")
            engagement = st.slider("Engagement", 1, 10, 5)
            done = st.form_submit_button("Mark complete")
        if done:
            result = show(run_operation(
                service.complete_block, handle, sel.id, outcome or "completed",
                learned=learned, next_questions=questions, energy_level=after,
                difficulty_rating=difficulty, breakthrough=breakthrough,
                context={"engagement_level": engagement}, date=schedule.date,
            ))
            st.session_state.schedule = service.store.load_schedule(handle.project_id, schedule.date)
            st.rerun()
    else:
        st.write("All blocks completed.")
else:
    st.info("Build your learning tree and click **Generate Schedule** to see the day.")


# Next task
st.markdown("---")
st.markdown("### What should I do next?")
with st.form("next_form"):
    available = st.text_input("Time available", "30 minutes")
    next_energy = st.slider("Energy right now", 1, 5, 3)
    context = st.text_input("Context (optional)")
    ask = st.form_submit_button("Suggest")
if ask:
    show(run_operation(service.select_next_task, handle, available, next_energy, context))
    st.rerun()


# Frontier overview
st.markdown("---")
status = run_operation(service.hta_status, handle)
if status.ok:
    hta = status.payload
    st.markdown("### Learning Frontier")
    if hta.frontier_nodes:
        frontier = pd.DataFrame([{
            "title": n.title,
            "branch": n.branch_type.value,
            "priority": n.priority.value,
            "magnitude": n.magnitude,
            "status": n.status.value,
            "estimated_time": n.estimated_time,
        } for n in hta.frontier_nodes])
        fig = px.bar(frontier, x="title", y="magnitude", color="branch",
                     labels={"title": "Task", "magnitude": "Magnitude"})
        st.plotly_chart(fig, use_container_width=True)
        st.dataframe(frontier)
    st.caption(f"{len(hta.completed_nodes)} tasks completed, {hta.sequence_repairs} sequence repairs")
else:
    st.write(status.summary)
    if st.button("Build learning tree"):
        show(run_operation(service.build_hta, handle))
        st.rerun()
