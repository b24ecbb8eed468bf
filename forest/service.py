# forest/service.py
import logging
from dataclasses import dataclass
from datetime import date as date_cls
from typing import Any, Dict, List, Optional, Sequence, Union

from .config import LearningPath, ProjectConfig, SchedulerPrefs
from .errors import InputError, NotFoundError, OperationResult, PersistenceError
from .frontier import FrontierStore
from .generators import (
    generate_adaptive_tasks, generate_branches, generate_frontier_nodes, generate_habit_nodes,
    generate_life_structure_branches, generate_path_branches, generate_path_frontier_nodes,
    generate_smart_next_tasks,
)
from .metrics import COMPLETIONS, NEXT_TASK_OUTCOMES, SCHEDULE_TIME
from .models import BlockType, DailySchedule, FrontierNode, LearningHistory
from .opportunities import CompletionContext
from .scheduler import synthesize_schedule
from .sequencer import FrontierDelta, NoEligibleTask, SequenceEngine
from .store import GENERAL_PATH, JsonStore
from .timeconv import format_time

logger = logging.getLogger(__name__)

ContextArg = Union[CompletionContext, Dict[str, Any], None]


@dataclass(frozen=True)
class ProjectHandle:
    """Which project (and optionally which learning path) an operation acts on."""
    project_id: str
    path_name: Optional[str] = None


def today() -> str:
    return date_cls.today().isoformat()


def _context(context: ContextArg) -> CompletionContext:
    if isinstance(context, CompletionContext):
        return context
    return CompletionContext.from_dict(context)


class ForestService:
    def __init__(self, store: Optional[JsonStore] = None, engine: Optional[SequenceEngine] = None,
                 prefs: Optional[SchedulerPrefs] = None):
        self.store = store or JsonStore()
        self.engine = engine or SequenceEngine()
        self.prefs = prefs or SchedulerPrefs()

    # -- loading / saving ----------------------------------------------

    def _config(self, handle: ProjectHandle) -> ProjectConfig:
        config = self.store.load_config(handle.project_id)
        if config is None:
            raise NotFoundError(f'Project "{handle.project_id}" not found')
        return config

    def _path(self, handle: ProjectHandle, config: ProjectConfig) -> str:
        return handle.path_name or config.active_learning_path or GENERAL_PATH

    def _hta(self, handle: ProjectHandle, config: ProjectConfig, required: bool = True) -> Optional[FrontierStore]:
        path = self._path(handle, config)
        hta = self.store.load_hta(handle.project_id, path)
        if hta is None and path != GENERAL_PATH:
            hta = self.store.load_hta(handle.project_id, GENERAL_PATH)
        if hta is None and required:
            raise NotFoundError("No HTA tree found for this project/path. Build one first.")
        return hta

    @staticmethod
    def _check(saved: bool, what: str) -> None:
        if not saved:
            raise PersistenceError(f"Failed to save {what}")

    def _save_evolved(self, hta: FrontierStore, what: str = "HTA tree") -> None:
        for problem in hta.check_invariants():
            logger.warning("HTA %s/%s: %s", hta.project_id, hta.path_name, problem)
        self._check(self.store.save_hta(hta), what)

    def _merge_generated(self, hta: FrontierStore, nodes: List[FrontierNode]) -> List[FrontierNode]:
        """
        Add generated tasks to the frontier, reusing ready nodes that already
        carry the same title and provenance. Returns the merged tasks.
        """
        existing = {(n.title, n.generated_from): n for n in hta.ready_nodes()}
        fresh = [n for n in nodes if (n.title, n.generated_from) not in existing]
        if fresh:
            hta.extend(fresh)
            hta.touch()
            self._check(self.store.save_hta(hta), "HTA tree")
        return [existing.get((n.title, n.generated_from), n) for n in nodes]

    # -- projects ------------------------------------------------------

    def create_project(self, request: Dict[str, Any]) -> OperationResult:
        config = ProjectConfig.from_request(request)
        if self.store.load_config(config.project_id) is not None:
            raise InputError(f'Project "{config.project_id}" already exists')

        self._check(self.store.save_config(config), "project configuration")
        self._check(self.store.register_project(config.project_id), "project index")
        logger.info("Created project %s", config.project_id)

        summary = (
            f'Project created: "{config.project_id}"\n'
            f'Goal: "{config.goal}"\n'
            f"Daily structure: {config.wake_time} -> {config.sleep_time} ({config.day_hours} hours)\n"
            f"Focus sessions: {config.focus_duration}"
        )
        if config.habit_goals():
            summary += f"\nBuilding habits: {', '.join(config.habit_goals())}"
        return OperationResult(summary, ProjectHandle(config.project_id))

    def build_hta(self, handle: ProjectHandle, learning_style: str = "mixed",
                  focus_areas: Sequence[str] = ()) -> OperationResult:
        config = self._config(handle)
        path_name = self._path(handle, config)
        path = config.learning_path(path_name)

        if path is None and path_name != GENERAL_PATH:
            path = LearningPath(path_name, created_dynamically=True)
            config.learning_paths.append(path)
            if not config.active_learning_path:
                config.active_learning_path = path_name
            self._check(self.store.save_config(config), "project configuration")

        if path_name == GENERAL_PATH:
            north_star = config.goal
            branches = generate_branches(config, focus_areas)
            nodes = generate_frontier_nodes(config)
        else:
            north_star = f"{config.goal} - {path_name}"
            branches = generate_path_branches(path_name, path, focus_areas)
            nodes = generate_path_frontier_nodes(path_name, path, config)

        hta = FrontierStore(
            project_id=config.project_id,
            path_name=path_name,
            north_star=north_star,
            learning_style=learning_style,
            branches=branches + generate_life_structure_branches(config),
            frontier_nodes=nodes,
            habit_nodes=generate_habit_nodes(config),
        )
        self._check(self.store.save_hta(hta), "HTA tree")
        logger.info("Built HTA for %s/%s: %d branches, %d frontier nodes",
                    config.project_id, path_name, len(hta.branches), len(nodes))

        preview = "\n".join(f"- {n.title} ({n.estimated_time})" for n in nodes[:3])
        summary = (f'HTA built for path "{path_name}"\nNorth star: {north_star}\n'
                   f"Branches: {len(hta.branches)}\nNext steps:\n{preview}")
        return OperationResult(summary, hta)

    def focus_learning_path(self, handle: ProjectHandle, path_name: str,
                            duration: Optional[str] = None) -> OperationResult:
        config = self._config(handle)
        if config.learning_path(path_name) is None:
            config.learning_paths.append(LearningPath(path_name, created_dynamically=True))
        config.active_learning_path = path_name
        config.path_focus_duration = duration
        self._check(self.store.save_config(config), "path focus")

        relevant = []
        hta = self._hta(ProjectHandle(handle.project_id, path_name), config, required=False)
        if hta is not None:
            relevant = [n for n in self.engine.focus_path(hta, path_name) if n.is_ready]
            self._check(self.store.save_hta(hta), "HTA tree")

        lines = "\n".join(f"- {n.title}" for n in relevant[:3])
        summary = f'Focused on learning path "{path_name}"\nPath-relevant tasks: {len(relevant)}\n{lines}'
        return OperationResult(summary.rstrip(), relevant)

    # -- scheduling ----------------------------------------------------

    def synthesize_schedule(self, handle: ProjectHandle, date: Optional[str] = None, energy_level: int = 3,
                            focus_type: str = "mixed") -> OperationResult:
        config = self._config(handle)
        hta = self._hta(handle, config)
        target = date or today()

        with SCHEDULE_TIME.time():
            schedule = synthesize_schedule(
                config, hta.ready_nodes(), hta.ready_habits(), target,
                energy_level=energy_level, focus_type=focus_type, prefs=self.prefs,
                north_star=hta.north_star,
            )
        self._check(self.store.save_schedule(schedule), "daily schedule")
        return OperationResult(self._schedule_summary(schedule), schedule)

    @staticmethod
    def _schedule_summary(schedule: DailySchedule) -> str:
        counts = {t: len(schedule.blocks_of(t)) for t in BlockType}
        preview = "\n".join(f"{b.time}: {b.action} ({b.duration})" for b in schedule.time_blocks[:8])
        text = (
            f"Daily schedule for {schedule.date}\n"
            f"Goal: {schedule.north_star}\n"
            f"Energy level: {schedule.energy_level}/5\n"
            f"{schedule.total_blocks} blocks from {format_time(schedule.wake_minutes)} "
            f"to {format_time(schedule.end_minutes)} (no gaps)\n"
            f"- {counts[BlockType.LEARNING]} learning, {counts[BlockType.HABIT]} habit, "
            f"{counts[BlockType.MEAL]} meal, {counts[BlockType.BREAK]} break blocks\n"
            f"First blocks:\n{preview}"
        )
        if schedule.unscheduled:
            text += f"\n{len(schedule.unscheduled)} ready tasks did not fit today"
        return text

    # -- sequencing ----------------------------------------------------

    def select_next_task(self, handle: ProjectHandle, time_available: str = "30 minutes",
                         energy_level: int = 3, context: str = "") -> OperationResult:
        """
        Hand out the best eligible task. With nothing eligible, grow the
        frontier adaptively and retry, then try continuation tasks, and only
        then report the sequence as stuck.
        """
        config = self._config(handle)
        hta = self._hta(handle, config)
        history = self.store.load_history(handle.project_id, hta.path_name)

        def attempt():
            return self.engine.select_next_task(
                hta.frontier_nodes, hta.completed_ids(), hta.completed_titles(), history.topics(),
                time_available, energy_level, context, config.active_learning_path,
            )

        result = attempt()
        outcome = "selected"
        if isinstance(result, NoEligibleTask):
            outcome = "generated"
            if self._merge_generated(hta, generate_adaptive_tasks(config, history, context)):
                result = attempt()

            if isinstance(result, NoEligibleTask):
                smart = self._merge_generated(hta, generate_smart_next_tasks(config, history))
                if smart:
                    result = self.engine.choose(smart, time_available, energy_level, context)

        if isinstance(result, NoEligibleTask):
            NEXT_TASK_OUTCOMES.labels(outcome="stuck").inc()
            summary = (
                "Sequence appears stuck. Try one of these:\n"
                "1. repair_sequence - fix the task flow\n"
                "2. repair_sequence with force_rebuild - complete restart\n"
                f'Goal: "{config.goal}"\nProgress: {len(hta.completed_nodes)} tasks completed'
            )
            return OperationResult(summary, result)

        NEXT_TASK_OUTCOMES.labels(outcome=outcome).inc()
        summary = (
            f'Next task: "{result.title}"\n'
            f"{result.description}\n"
            f"Estimated time: {result.estimated_time}\n"
            f"Branch: {result.branch_type} | priority {result.priority.value} | magnitude {result.magnitude}"
        )
        if result.learning_outcomes:
            summary += f"\nYou'll learn: {result.learning_outcomes[0]}"
        if result.prerequisites:
            summary += f"\nPrerequisites met: {', '.join(result.prerequisites)}"
        return OperationResult(summary, result)

    def _record_completion(self, handle: ProjectHandle, config: ProjectConfig, path_name: str,
                           topic: str, difficulty_rating: int, ctx: CompletionContext) -> LearningHistory:
        history = self.store.load_history(handle.project_id, path_name)
        history.record(topic, today(), ctx.learned, difficulty_rating, ctx.breakthrough, ctx.next_questions)
        self._check(self.store.save_history(handle.project_id, path_name, history), "learning history")

        config.knowledge_level = min(100, config.knowledge_level + 1)
        if ctx.breakthrough:
            config.breakthroughs += 1
        self._check(self.store.save_config(config), "project configuration")
        COMPLETIONS.labels(difficulty=str(difficulty_rating)).inc()
        return history

    @staticmethod
    def _delta_summary(delta: FrontierDelta, difficulty_rating: int) -> str:
        text = (f'"{delta.completed.title}" completed\nOutcome: {delta.outcome}\n'
                f"Difficulty: {difficulty_rating}/5\n"
                f"New tasks: {', '.join(n.title for n in delta.added)}")
        if delta.invalidated:
            text += f"\nNo longer needed: {', '.join(n.title for n in delta.invalidated)}"
        if delta.magnitude_shift < 0:
            text += "\nTask was very difficult. Remaining tasks were made easier."
        elif delta.magnitude_shift > 0:
            text += "\nTask was too easy. Remaining tasks were made more challenging."
        return text

    def complete_task(self, handle: ProjectHandle, node_id: str, outcome: str, difficulty_rating: int = 3,
                      context: ContextArg = None) -> OperationResult:
        config = self._config(handle)
        hta = self._hta(handle, config)
        ctx = _context(context)

        delta = self.engine.complete_task(hta, node_id, outcome, difficulty_rating, ctx)
        self._save_evolved(hta)
        self._record_completion(handle, config, hta.path_name, delta.completed.title, difficulty_rating, ctx)
        return OperationResult(self._delta_summary(delta, difficulty_rating), delta)

    def complete_block(self, handle: ProjectHandle, block_id: str, outcome: str, learned: str = "",
                       next_questions: str = "", energy_level: Optional[int] = None,
                       difficulty_rating: int = 3, breakthrough: bool = False,
                       context: ContextArg = None, date: Optional[str] = None) -> OperationResult:
        if not 1 <= difficulty_rating <= 5:
            raise InputError(f"difficulty rating must be 1-5, got {difficulty_rating}")
        config = self._config(handle)
        target = date or today()
        schedule = self.store.load_schedule(handle.project_id, target)
        if schedule is None:
            raise NotFoundError(f"No schedule found for {target} in this project")
        block = schedule.find_block(block_id)
        if block is None:
            raise NotFoundError(f"Block {block_id} not found")

        block.mark_completed(outcome, learned, next_questions, energy_level, difficulty_rating, breakthrough)
        self._check(self.store.save_schedule(schedule), "schedule update")

        ctx = _context(context)
        ctx.learned = learned or ctx.learned
        ctx.next_questions = next_questions or ctx.next_questions
        ctx.breakthrough = breakthrough or ctx.breakthrough
        ctx.energy_after = energy_level

        hta = self._hta(handle, config, required=False)
        path_name = hta.path_name if hta else self._path(handle, config)
        delta = None
        if block.type is BlockType.LEARNING and hta is not None and hta.find(block.id) is not None:
            delta = self.engine.complete_task(hta, block.id, outcome, difficulty_rating, ctx)
            self._save_evolved(hta)
        self._record_completion(handle, config, path_name, block.action, difficulty_rating, ctx)

        summary = (f'"{block.action}" completed\nOutcome: {outcome}\n'
                   f"Learned: {learned or 'No specific learnings noted'}\n"
                   f"Difficulty: {difficulty_rating}/5")
        if breakthrough:
            summary += "\nBreakthrough logged."
        if delta is not None:
            summary += f"\nNew tasks: {len(delta.added)}, no longer needed: {len(delta.invalidated)}"
        upcoming = schedule.next_open_block()
        summary += (f"\nNext: {upcoming.time} - {upcoming.action}" if upcoming
                    else "\nDay complete!")
        return OperationResult(summary, block)

    def repair_sequence(self, handle: ProjectHandle, force_rebuild: bool = False) -> OperationResult:
        config = self._config(handle)
        hta = self._hta(handle, config)
        history = self.store.load_history(handle.project_id, hta.path_name)

        actions = self.engine.repair_sequence(hta, config, history, force_rebuild)
        self._save_evolved(hta, "repaired sequence")

        ready = hta.ready_nodes()
        summary = "Sequence repair complete\n"
        if actions:
            summary += "\n".join(f"- {a}" for a in actions) + "\n"
        summary += f"{len(hta.frontier_nodes)} tasks in frontier, {len(ready)} ready"
        return OperationResult(summary, hta)

    # -- status --------------------------------------------------------

    def current_status(self, handle: ProjectHandle, date: Optional[str] = None) -> OperationResult:
        config = self._config(handle)
        target = date or today()
        schedule = self.store.load_schedule(handle.project_id, target)
        if schedule is None:
            summary = (f'No schedule exists for {target} in project "{config.project_id}"\n'
                       f"Goal: {config.goal}\nKnowledge level: {config.knowledge_level}%")
            return OperationResult(summary, None)

        summary = (f"Project: {config.project_id}\nGoal: {config.goal}\n"
                   f"Progress: {schedule.completed}/{schedule.total_blocks} blocks completed\n"
                   f"Knowledge level: {config.knowledge_level}%")
        upcoming = schedule.next_open_block()
        if upcoming:
            summary += f"\nNext: {upcoming.time}: {upcoming.action} ({upcoming.duration})"
            if upcoming.learning_outcomes:
                summary += f"\nYou'll learn: {upcoming.learning_outcomes[0]}"
        else:
            summary += "\nAll scheduled actions complete."
        return OperationResult(summary, schedule)

    def hta_status(self, handle: ProjectHandle) -> OperationResult:
        config = self._config(handle)
        hta = self._hta(handle, config)
        active = [b for b in hta.branches if b.status == "active"]
        ready = hta.ready_nodes()
        branch_lines = "\n".join(f"- {b.title}: {b.priority.value} priority (step {b.sequence})" for b in active)
        ready_lines = "\n".join(f"- {n.title} ({n.estimated_time})" for n in ready[:5])
        summary = (f'HTA status: "{hta.project_id}" / {hta.path_name}\nNorth star: {hta.north_star}\n'
                   f"Active branches ({len(active)}):\n{branch_lines}\n"
                   f"Ready actions ({len(ready)}):\n{ready_lines}\n"
                   f"Progress: {len(hta.completed_nodes)} completed actions")
        return OperationResult(summary, hta)
