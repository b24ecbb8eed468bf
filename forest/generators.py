# forest/generators.py
from typing import List, Optional, Sequence

from .config import LearningPath, ProjectConfig
from .models import (
    Branch, BranchKind, BranchTag, FrontierNode, HabitNode, LearningHistory, Priority, new_id,
)
from .timeconv import parse_duration


def estimated_time_for(focus_style: str, complexity: str = "simple") -> str:
    """Turn the user's focus preference into a free-text task estimate."""
    style = (focus_style or "flexible").lower()
    simple = complexity == "simple"

    # micro-focus sessions
    focus_minutes = parse_duration(style)
    if focus_minutes <= 10:
        return f"{focus_minutes} minutes" if simple else f"{min(focus_minutes * 2, 15)} minutes"

    if style == "flexible" or "natural" in style or "variable" in style:
        return "As long as needed"
    if "25" in style or "pomodoro" in style:
        return "25 minutes" if simple else "50 minutes"
    if "hour" in style or "60" in style:
        return "30-60 minutes" if simple else "1-2 hours"
    if "deep" in style or "long" in style:
        return "1-2 hours" if simple else "2-4 hours"
    return "Until natural stopping point"


def generate_branches(config: ProjectConfig, focus_areas: Sequence[str] = ()) -> List[Branch]:
    goal = config.goal
    goal_lower = goal.lower()
    interests = config.specific_interests
    branches = []

    # interests first, they carry motivation
    for index, interest in enumerate(interests):
        branches.append(Branch(
            id=new_id(),
            title=f"Direct Path: {interest}",
            description=f"Learn exactly what you need to accomplish: {interest}",
            priority=Priority.CRITICAL,
            sequence=index + 1,
            interest_driven=True,
        ))

    base = len(interests)
    branches += [
        Branch(new_id(), f"{goal} Foundation Skills", "Core concepts that support your specific interests",
               "active", Priority.HIGH, base + 1),
        Branch(new_id(), f"{goal} Tools & Resources", "Essential tools, platforms, and resources for practice",
               "active", Priority.HIGH, base + 2),
        Branch(new_id(), f"{goal} Advanced Application", "Building on your interests to explore deeper concepts",
               "future", Priority.MEDIUM, base + 3),
    ]

    if "marketing" in goal_lower or "business" in goal_lower:
        branches.append(Branch(new_id(), "Analytics & Measurement",
                               "Data analysis, metrics, and performance tracking",
                               "active", Priority.MEDIUM, 4))
    if any(w in goal_lower for w in ("programming", "development", "coding")):
        branches.append(Branch(new_id(), "Code Projects & Portfolio",
                               "Building demonstrable projects and portfolio pieces",
                               "active", Priority.HIGH, 4))
    if "design" in goal_lower or "creative" in goal_lower:
        branches.append(Branch(new_id(), "Creative Portfolio Development",
                               "Building and refining creative work examples",
                               "active", Priority.HIGH, 4))

    branches.append(Branch(new_id(), f"{goal} Professional Development",
                           "Industry knowledge, networking, and career advancement",
                           "future", Priority.MEDIUM, 5))

    for index, area in enumerate(focus_areas):
        branches.append(Branch(new_id(), f"Specialized: {area}",
                               f"Deep dive into {area} as it relates to {goal}",
                               "future", Priority.MEDIUM, 6 + index))
    return branches


def generate_path_branches(path_name: str, path: Optional[LearningPath],
                           focus_areas: Sequence[str] = ()) -> List[Branch]:
    interests = path.interests if path else []
    branches = [
        Branch(new_id(), f"{path_name}: {interest}", f"Master {interest} within your {path_name} learning path",
               "active", Priority.CRITICAL, index + 1, path_specific=True)
        for index, interest in enumerate(interests)
    ]
    base = len(interests)
    branches += [
        Branch(new_id(), f"{path_name} Fundamentals", f"Core concepts and foundations specific to {path_name}",
               "active", Priority.HIGH, base + 1, path_specific=True),
        Branch(new_id(), f"{path_name} Practice & Application",
               f"Hands-on {path_name} exercises and real-world application",
               "active", Priority.HIGH, base + 2, path_specific=True),
        Branch(new_id(), f"{path_name} Advanced Techniques", f"Advanced {path_name} skills and specialized techniques",
               "future", Priority.MEDIUM, base + 3, path_specific=True),
    ]
    for area in focus_areas:
        branches.append(Branch(new_id(), f"{path_name}: {area}", f"Specialized focus on {area} within {path_name}",
                               "future", Priority.MEDIUM, len(branches) + 1, path_specific=True))
    return branches


def generate_frontier_nodes(config: ProjectConfig) -> List[FrontierNode]:
    """Opening frontier: start from the first interest, or explore gently when there is none."""
    goal = config.goal
    interests = config.specific_interests
    estimate = estimated_time_for(config.focus_duration)
    nodes = []

    if interests:
        first = interests[0]
        nodes.append(FrontierNode(
            id=new_id(),
            title=f"Quick Start: {first}",
            description=f"Jump right into working toward: {first}. Learn by doing, fill gaps as needed.",
            branch_type=BranchTag(BranchKind.INTEREST_DRIVEN),
            estimated_time=estimate,
            priority=Priority.CRITICAL,
            magnitude=6,
            learning_outcomes=[f"Take first steps toward {first}", "Identify what specific skills you need",
                               "Build motivation through progress"],
            interest_based=True,
        ))
    else:
        exploration = FrontierNode(
            id=new_id(),
            title=f"Explore: What's Possible in {goal}",
            description=f"Gentle overview to discover what interests you most about {goal}",
            branch_type=BranchTag(BranchKind.EXPLORATION),
            estimated_time=estimate,
            priority=Priority.CRITICAL,
            magnitude=5,
            learning_outcomes=[f"See examples of what's possible in {goal}", "Identify what catches your interest",
                               "Discover different paths you could take"],
        )
        nodes.append(exploration)
        nodes.append(FrontierNode(
            id=new_id(),
            title=f"Sample: Try Something Small in {goal}",
            description="Quick, low-pressure hands-on experience to see what resonates",
            branch_type=BranchTag(BranchKind.SAMPLING),
            estimated_time=estimate,
            priority=Priority.HIGH,
            magnitude=6,
            prerequisites=[exploration.id],
            learning_outcomes=["Get hands-on experience", "Discover what you enjoy",
                               "Identify your natural starting point"],
        ))

    nodes.append(FrontierNode(
        id=new_id(),
        title=f"{goal}: Core Concepts",
        description=(f"Supporting knowledge for your interests: {', '.join(interests)}" if interests
                     else f"Essential {goal} concepts - available when you're ready"),
        branch_type=BranchTag(BranchKind.FUNDAMENTALS),
        estimated_time=estimate,
        priority=Priority.MEDIUM if interests else Priority.HIGH,
        magnitude=7,
        learning_outcomes=[f"Understand key {goal} concepts", "Build foundation knowledge",
                           "Support your practical learning"],
    ))
    return nodes


def generate_path_frontier_nodes(path_name: str, path: Optional[LearningPath],
                                 config: ProjectConfig) -> List[FrontierNode]:
    interests = path.interests if path else []
    estimate = estimated_time_for(config.focus_duration)
    tag = BranchTag.custom(path_name)
    nodes = []

    if interests:
        first = interests[0]
        nodes.append(FrontierNode(
            id=new_id(),
            title=f"{path_name}: Quick Start - {first}",
            description=f"Jump right into {path_name} by working toward: {first}",
            branch_type=tag,
            estimated_time=estimate,
            priority=Priority.CRITICAL,
            magnitude=6,
            learning_outcomes=[f"Take first steps toward {first}", f"Learn {path_name} basics through practice",
                               "Build motivation through progress"],
            path_focus=path_name,
        ))
    else:
        exploration = FrontierNode(
            id=new_id(),
            title=f"{path_name}: Explore Possibilities",
            description=f"Discover what's possible and interesting in {path_name}",
            branch_type=tag,
            estimated_time=estimate,
            priority=Priority.CRITICAL,
            magnitude=5,
            learning_outcomes=[f"Explore {path_name} landscape", "Identify interesting areas",
                               "Discover your natural starting point"],
            path_focus=path_name,
        )
        nodes.append(exploration)
        nodes.append(FrontierNode(
            id=new_id(),
            title=f"{path_name}: Try Something Basic",
            description=f"Get hands-on experience with basic {path_name} concepts",
            branch_type=tag,
            estimated_time=estimate,
            priority=Priority.HIGH,
            magnitude=6,
            prerequisites=[exploration.id],
            learning_outcomes=[f"Get hands-on {path_name} experience", "Discover what you enjoy",
                               "Build foundation skills"],
            path_focus=path_name,
        ))

    nodes.append(FrontierNode(
        id=new_id(),
        title=f"{path_name}: Core Foundations",
        description=f"Essential {path_name} concepts and foundational knowledge",
        branch_type=tag,
        estimated_time=estimate,
        priority=Priority.MEDIUM if interests else Priority.HIGH,
        magnitude=7,
        learning_outcomes=[f"Understand {path_name} fundamentals", "Build solid foundation",
                           "Prepare for advanced topics"],
        path_focus=path_name,
    ))
    return nodes


def generate_life_structure_branches(config: ProjectConfig) -> List[Branch]:
    branches = [
        Branch(new_id(), "Daily Routine Optimization",
               "Establish and refine daily routines that support your learning goal",
               "active", Priority.HIGH, 1,
               focus_areas=["morning routine", "evening routine", "meal timing", "transition periods"]),
        Branch(new_id(), "Constraint Management",
               "Work effectively within your personal and practical constraints",
               "active", Priority.HIGH, 2,
               focus_areas=["time limitations", "energy management", "space optimization",
                            "resource allocation"]),
    ]
    if config.constraints.get("personal_challenges"):
        branches.append(Branch(new_id(), "Personal Challenge Integration",
                               "Adapt learning approach to work with current personal challenges",
                               "active", Priority.MEDIUM, 3,
                               focus_areas=["stress management", "flexibility planning", "backup strategies"]))
    if config.bad_habits():
        branches.append(Branch(new_id(), "Habit Replacement",
                               "Replace limiting habits with goal-supporting behaviors",
                               "active", Priority.MEDIUM, 4, focus_areas=config.bad_habits()))
    return branches


def generate_habit_nodes(config: ProjectConfig) -> List[HabitNode]:
    habits = [
        HabitNode(
            id=new_id(),
            title=f"Establish: {habit}",
            description=f"Build the habit of {habit} into your daily routine",
            habit_type="habit_building",
            priority=Priority.MEDIUM,
            status="ready",
            sequence=index + 1,
            tracking_metrics=["consistency", "quality", "integration"],
            success_criteria=f"{habit} performed daily for 7 consecutive days",
        )
        for index, habit in enumerate(config.habit_goals())
    ]
    # existing good habits are tracked but never scheduled
    habits += [
        HabitNode(
            id=new_id(),
            title=f"Maintain: {habit}",
            description=f"Continue and optimize existing habit: {habit}",
            habit_type="habit_maintenance",
            priority=Priority.LOW,
            status="active",
            sequence=100 + index,
            tracking_metrics=["consistency", "optimization_opportunities"],
            success_criteria=f"Maintain {habit} while integrating new learning activities",
        )
        for index, habit in enumerate(config.good_habits())
    ]
    return habits


def generate_adaptive_tasks(config: ProjectConfig, history: LearningHistory,
                            context: str = "") -> List[FrontierNode]:
    """Fresh tasks for a frontier with nothing eligible, based on progress so far."""
    topics = history.topics()
    focus_minutes = parse_duration(config.focus_duration)
    tasks = []

    if focus_minutes <= 10:
        tasks.append(FrontierNode(
            id=new_id(),
            title=f"Quick Review: {config.goal}",
            description=f"Spend {focus_minutes} minutes reviewing recent progress",
            branch_type=BranchTag(BranchKind.MICRO_REVIEW),
            estimated_time=f"{focus_minutes} minutes",
            priority=Priority.MEDIUM,
            magnitude=3,
            learning_outcomes=["Refresh memory", "Maintain momentum", "Low cognitive load"],
        ))
        tasks.append(FrontierNode(
            id=new_id(),
            title="Micro-Learning: One Concept",
            description=f"Focus on understanding just one small concept for {focus_minutes} minutes",
            branch_type=BranchTag(BranchKind.MICRO_CONCEPT),
            estimated_time=f"{focus_minutes} minutes",
            priority=Priority.HIGH,
            magnitude=4,
            learning_outcomes=["Learn one new thing", "Build understanding slowly", "Prevent overwhelm"],
        ))

    if len(topics) >= 3 and config.knowledge_level >= 20:
        tasks.append(FrontierNode(
            id=new_id(),
            title=f"Intermediate Practice: {config.goal}",
            description="Apply what you've learned so far in a practical exercise",
            branch_type=BranchTag(BranchKind.PRACTICAL),
            estimated_time="45 minutes",
            priority=Priority.HIGH,
            magnitude=6,
            prerequisites=topics[-2:],
            learning_outcomes=["Apply knowledge practically", "Identify skill gaps", "Build confidence"],
        ))

    if len(topics) >= 2 and len(topics) % 3 == 0:
        tasks.append(FrontierNode(
            id=new_id(),
            title="Learning Reflection & Planning",
            description="Reflect on progress and identify next learning priorities",
            branch_type=BranchTag(BranchKind.REFLECTION),
            estimated_time="20 minutes",
            priority=Priority.MEDIUM,
            magnitude=4,
            learning_outcomes=["Assess current understanding", "Identify knowledge gaps", "Plan next steps"],
        ))

    if context and history.knowledge_gaps:
        gap = history.knowledge_gaps[-1]
        tasks.append(FrontierNode(
            id=new_id(),
            title=f"Explore: {gap.question[:50]}...",
            description=f"Research and answer: {gap.question}",
            branch_type=BranchTag(BranchKind.RESEARCH),
            estimated_time="35 minutes",
            priority=Priority.HIGH,
            magnitude=6,
            prerequisites=[gap.from_topic],
            learning_outcomes=[f"Answer: {gap.question}", "Fill knowledge gap", "Advance understanding"],
        ))
    return tasks


def generate_smart_next_tasks(config: ProjectConfig, history: LearningHistory) -> List[FrontierNode]:
    tasks = []
    recent = history.completed_topics[-3:]
    if recent:
        last = recent[-1].topic
        tasks.append(FrontierNode(
            id=new_id(),
            title=f"Build On: {last}",
            description=f"Apply and extend what you learned from: {last}",
            branch_type=BranchTag(BranchKind.PRACTICAL),
            estimated_time="As long as needed",
            priority=Priority.HIGH,
            magnitude=6,
            learning_outcomes=[f"Apply {last} knowledge", "Deepen understanding", "Build confidence"],
            generated_from="recent_completion",
        ))
    for interest in config.specific_interests:
        tasks.append(FrontierNode(
            id=new_id(),
            title=f"Progress Toward: {interest}",
            description=f"Continue working toward your goal: {interest}",
            branch_type=BranchTag(BranchKind.INTEREST_DRIVEN),
            estimated_time="As long as needed",
            priority=Priority.CRITICAL,
            magnitude=6,
            learning_outcomes=[f"Make progress on {interest}", "Maintain motivation", "Build practical skills"],
            interest_based=True,
            generated_from="interest_continuation",
        ))
    return tasks[:3]


def is_relevant_to_path(node: FrontierNode, path_name: str) -> bool:
    path_lower = path_name.lower()
    if node.path_focus and node.path_focus.lower() == path_lower:
        return True
    if path_lower in node.title.lower():
        return True
    if path_lower in (node.description or "").lower():
        return True
    if node.branch_type.is_custom(path_name) or node.branch_type.value == path_lower:
        return True
    return any(path_lower in outcome.lower() for outcome in node.learning_outcomes)
