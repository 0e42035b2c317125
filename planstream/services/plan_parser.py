"""Line-oriented parser turning generated markdown into a Plan.

Expected shape of the generator output::

    # Goal: <goal>
    ## Month 1: <milestone>
    ### Week 1: <objective>
    - Day 1: <task>
    - Day 2: <task>

The parser is tolerant by construction: unknown lines are ignored, week
headers without an enclosing month are grouped into synthesized months,
and in streaming mode a half-written buffer yields whatever structure is
already visible instead of an error.
"""
from __future__ import annotations

import logging
import math
import re
from typing import Dict, Optional

from planstream.services.plan_models import DailyTask, MonthlyMilestone, ParseResult, Plan, WeeklyObjective
from planstream.services.task_dedup import DEFAULT_SIMILARITY_THRESHOLD, TaskDeduplicator
from planstream.services.text_normalizer import strip_decoration

logger = logging.getLogger(__name__)

MONTH_HEADER_RE = re.compile(r"^#+\s*Month\s*(\d+):?\s*(.*)$", re.IGNORECASE)
WEEK_HEADER_RE = re.compile(r"^#+\s*Week\s*(\d+):?\s*(.*)$", re.IGNORECASE)
TASK_LINE_RE = re.compile(r"^(-|\*)\s*(?:Day\s*(\d+):?)?\s*(.*)$", re.IGNORECASE)

WEEKS_PER_MONTH = 4


def synthesized_month_index(week_number: int) -> int:
    return math.ceil(week_number / WEEKS_PER_MONTH)


class _PlanBuilder:
    """Cursor state for one pass over the text."""

    def __init__(self, goal: str, dedup_threshold: float) -> None:
        self.plan = Plan(goal=goal)
        self.current_month: Optional[MonthlyMilestone] = None
        self.current_week: Optional[WeeklyObjective] = None
        self.day_counter = 0
        self.saw_week_header = False
        self.synthesized: Dict[int, MonthlyMilestone] = {}
        self.dedup = TaskDeduplicator(dedup_threshold)

    def feed(self, line: str) -> None:
        month_match = MONTH_HEADER_RE.match(line)
        if month_match:
            self._open_month(int(month_match.group(1)), month_match.group(2).strip())
            return

        week_match = WEEK_HEADER_RE.match(line)
        if week_match:
            self._open_week(int(week_match.group(1)), week_match.group(2).strip())
            return

        task_match = TASK_LINE_RE.match(line)
        if task_match and self.current_week is not None:
            self._add_task(task_match.group(2), task_match.group(3))

    def _open_month(self, number: int, title: str) -> None:
        month = MonthlyMilestone(index=number, title=title or f"Month {number} Milestone")
        self.plan.months.append(month)
        self.current_month = month
        self.current_week = None

    def _open_week(self, number: int, title: str) -> None:
        self.saw_week_header = True
        month = self.current_month
        if month is None or month.synthesized:
            month = self._synthesized_month_for(number)
            self.current_month = month

        week = WeeklyObjective(index=number, title=title or f"Week {number} Objective")
        month.weeks.append(week)
        self.current_week = week
        self.day_counter = 0

    def _synthesized_month_for(self, week_number: int) -> MonthlyMilestone:
        index = synthesized_month_index(week_number)
        month = self.synthesized.get(index)
        if month is None:
            month = MonthlyMilestone(index=index, title=f"Month {index} Objectives", synthesized=True)
            self.synthesized[index] = month
            self.plan.months.append(month)
        return month

    def _add_task(self, explicit_day: Optional[str], raw_description: str) -> None:
        self.day_counter += 1
        description = strip_decoration(raw_description.strip())
        if not description:
            return
        if not self.dedup.admit(description):
            return
        day = int(explicit_day) if explicit_day else self.day_counter
        self.current_week.tasks.append(DailyTask(day=day, description=description))

    @property
    def found_structure(self) -> bool:
        return bool(self.plan.months) or self.saw_week_header


def parse_plan(
    text: str,
    goal: str,
    expected_duration: Optional[int] = None,
    *,
    streaming: bool = False,
    dedup_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> ParseResult:
    """Parse generator output into a :class:`ParseResult`.

    Streaming mode always answers ``PARTIAL``; the plan may have no months
    yet. Final mode answers ``FAILED`` when neither a month nor a week
    header was found and ``COMPLETE`` otherwise. Task-count validation is
    left to the caller; ``expected_duration`` is only carried through.
    """
    builder = _PlanBuilder(goal, dedup_threshold)
    for line in (text or "").splitlines():
        stripped = line.strip()
        if stripped:
            builder.feed(stripped)

    if streaming:
        return ParseResult.partial(builder.plan, expected_duration)

    if not builder.found_structure:
        logger.warning("No month or week headers found in %d characters of generated text", len(text or ""))
        return ParseResult.failed(expected_duration)

    return ParseResult.complete(builder.plan, expected_duration)
