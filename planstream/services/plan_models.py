"""Typed plan structures produced by the plan parser."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class DailyTask(BaseModel):
    """A single completable step of the plan."""

    day: int = Field(..., ge=0, description="Day number within the week, as written or auto-assigned.")
    description: str
    completed: bool = False


class WeeklyObjective(BaseModel):
    index: int = Field(..., ge=0)
    title: str
    tasks: List[DailyTask] = Field(default_factory=list)


class MonthlyMilestone(BaseModel):
    index: int = Field(..., ge=0)
    title: str
    weeks: List[WeeklyObjective] = Field(default_factory=list)
    synthesized: bool = Field(default=False, exclude=True)


class Plan(BaseModel):
    """Months -> weeks -> daily tasks for one goal."""

    goal: str
    months: List[MonthlyMilestone] = Field(default_factory=list)

    def iter_tasks(self):
        for month in self.months:
            for week in month.weeks:
                yield from week.tasks

    def task_count(self) -> int:
        return sum(1 for _ in self.iter_tasks())


class ParseStatus(str, Enum):
    PARTIAL = "partial"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class ParseResult:
    """Outcome of one parser call.

    ``PARTIAL`` comes from streaming mode and may hold an empty plan.
    ``COMPLETE`` always carries at least one month. ``FAILED`` has no plan.
    """

    status: ParseStatus
    plan: Optional[Plan] = None
    task_count: int = 0
    expected_duration: Optional[int] = None

    def __post_init__(self) -> None:
        if self.status is ParseStatus.FAILED:
            if self.plan is not None:
                raise ValueError("a failed parse carries no plan")
            return
        if self.plan is None:
            raise ValueError(f"{self.status.value} parse requires a plan")
        if self.status is ParseStatus.COMPLETE and not self.plan.months:
            raise ValueError("a complete plan needs at least one month")

    @classmethod
    def partial(cls, plan: Plan, expected_duration: Optional[int] = None) -> "ParseResult":
        return cls(ParseStatus.PARTIAL, plan, plan.task_count(), expected_duration)

    @classmethod
    def complete(cls, plan: Plan, expected_duration: Optional[int] = None) -> "ParseResult":
        return cls(ParseStatus.COMPLETE, plan, plan.task_count(), expected_duration)

    @classmethod
    def failed(cls, expected_duration: Optional[int] = None) -> "ParseResult":
        return cls(ParseStatus.FAILED, None, 0, expected_duration)

    @property
    def is_complete(self) -> bool:
        return self.status is ParseStatus.COMPLETE
