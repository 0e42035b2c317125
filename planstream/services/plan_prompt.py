"""Prompt construction for markdown plan generation."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

DEFAULT_DURATION_DAYS = 90
DAYS_PER_WEEK = 7
WEEKS_PER_MONTH = 4

# (phase name, share of the plan's tasks)
PLAN_PHASES: Tuple[Tuple[str, float], ...] = (
    ("Research & Planning", 0.25),
    ("Foundation & Setup", 0.30),
    ("Implementation & Execution", 0.25),
    ("Optimization & Refinement", 0.20),
)


@dataclass(frozen=True)
class WeekLayout:
    number: int
    days: int = DAYS_PER_WEEK


@dataclass(frozen=True)
class PlanLayout:
    """Skeleton the generator must fill: months of weeks, or bare weeks."""

    months: Tuple[Tuple[WeekLayout, ...], ...]
    has_month_layer: bool = True

    @property
    def week_count(self) -> int:
        return sum(len(weeks) for weeks in self.months)

    @property
    def day_count(self) -> int:
        return sum(week.days for weeks in self.months for week in weeks)


def _full_weeks(first: int, count: int) -> Tuple[WeekLayout, ...]:
    return tuple(WeekLayout(number) for number in range(first, first + count))


CANONICAL_LAYOUTS: Dict[int, PlanLayout] = {
    7: PlanLayout(months=(_full_weeks(1, 1),), has_month_layer=False),
    30: PlanLayout(months=(_full_weeks(1, 4),)),
    90: PlanLayout(months=(_full_weeks(1, 4), _full_weeks(5, 4), _full_weeks(9, 4))),
}


def plan_layout(duration_days: int) -> PlanLayout:
    """Month/week skeleton for a plan of ``duration_days`` days."""
    canonical = CANONICAL_LAYOUTS.get(duration_days)
    if canonical is not None:
        return canonical

    weeks_needed = math.ceil(duration_days / DAYS_PER_WEEK)
    months_needed = math.ceil(weeks_needed / WEEKS_PER_MONTH)
    last_week_days = duration_days - DAYS_PER_WEEK * (weeks_needed - 1)

    months: List[Tuple[WeekLayout, ...]] = []
    for month in range(months_needed):
        first_week = month * WEEKS_PER_MONTH + 1
        last_week = min(first_week + WEEKS_PER_MONTH - 1, weeks_needed)
        months.append(
            tuple(
                WeekLayout(number, last_week_days if number == weeks_needed else DAYS_PER_WEEK)
                for number in range(first_week, last_week + 1)
            )
        )
    return PlanLayout(months=tuple(months))


def phase_allocation(duration_days: int) -> List[Tuple[str, int]]:
    """Split the task count across the plan phases; the last phase absorbs rounding."""
    allocation: List[Tuple[str, int]] = []
    assigned = 0
    for name, share in PLAN_PHASES[:-1]:
        count = round(duration_days * share)
        allocation.append((name, count))
        assigned += count
    allocation.append((PLAN_PHASES[-1][0], max(0, duration_days - assigned)))
    return allocation


def render_skeleton(goal: str, layout: PlanLayout) -> str:
    lines = [f"# Goal: {goal}"]
    week_prefix = "###" if layout.has_month_layer else "##"
    for month_number, weeks in enumerate(layout.months, start=1):
        lines.append("")
        if layout.has_month_layer:
            lines.append(f"## Month {month_number}: [Monthly milestone for Month {month_number}]")
        for week in weeks:
            lines.append(f"{week_prefix} Week {week.number}: [Weekly objective for Week {week.number}]")
            lines.extend(
                f"- Day {day}: [Specific actionable task for Day {day}]" for day in range(1, week.days + 1)
            )
    return "\n".join(lines)


def build_plan_prompt(goal: str, duration_days: Optional[int] = None) -> str:
    """Prompt asking for a markdown plan that follows an explicit day-by-day skeleton."""
    goal = goal.strip()
    days = duration_days or DEFAULT_DURATION_DAYS
    layout = plan_layout(days)

    if duration_days:
        duration_context = (
            f"This is a {days}-day plan. Create exactly {days} specific, actionable tasks - one for each day."
        )
    else:
        duration_context = (
            f"Create a comprehensive {days}-day plan with exactly {days} specific, actionable tasks."
        )

    phases_block = "\n".join(
        f"{index}. {name}: about {count} tasks" for index, (name, count) in enumerate(phase_allocation(days), start=1)
    )

    return (
        f"You are an expert project planner. Break down this goal into EXACTLY {days} unique, sequential steps:\n\n"
        f'GOAL: "{goal}"\n\n'
        f"{duration_context}\n\n"
        "### PLAN STRUCTURE REQUIREMENTS\n"
        f"- Create exactly {days} different tasks (one per day)\n"
        "- Each task must be completely unique; no task may be similar to any other task\n"
        "- Tasks must form a logical progression toward the goal\n\n"
        "### PHASES\n"
        f"Move through these phases in order and spread the {days} tasks across them, "
        "keeping variety inside each phase:\n"
        f"{phases_block}\n\n"
        "### FORMATTING\n"
        "Use EXACTLY this structure with NO variations:\n\n"
        f"{render_skeleton(goal, layout)}\n\n"
        "### CRITICAL RULES\n"
        "- NEVER repeat the same task description, even with different wording\n"
        "- Progress from basic concepts to advanced implementation\n"
        "- Make each task specific and actionable\n"
        "- Avoid generic tasks like 'work on X' or 'continue Y'\n"
        "- If you run out of unique ideas, use different angles, tools, or approaches\n\n"
        "OUTPUT: Only the formatted structure, no extra text."
    )
