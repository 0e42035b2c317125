from __future__ import annotations

from typing import Iterator, List

import pytest

from planstream.services.generation_errors import ParseFailure, StreamTransportError
from planstream.services.plan_models import DailyTask, MonthlyMilestone, Plan, WeeklyObjective
from planstream.services.plan_refiner import FALLBACK_GOAL, build_revision_prompt, refine_plan, revise_plan
from planstream.services.text_generation import GenerationConfig

REVISED = """# Goal: Something the model invented
## Month 1: Warm up
### Week 1: Gentle start
- Day 1: Walk for twenty minutes
- Day 2: Stretch after waking up
- Day 3: Walk for twenty minutes
"""


def _plan() -> Plan:
    week = WeeklyObjective(index=1, title="Start", tasks=[DailyTask(day=1, description="Run one mile")])
    return Plan(goal="Run a marathon", months=[MonthlyMilestone(index=1, title="Base", weeks=[week])])


class CompletingTextGenerator:
    def __init__(self, answer: str | Exception) -> None:
        self.answer = answer
        self.calls: List[tuple[str, GenerationConfig]] = []

    def stream(self, prompt: str, config: GenerationConfig) -> Iterator[str]:
        raise AssertionError("revisions use a single completion")

    def complete(self, prompt: str, config: GenerationConfig) -> str:
        self.calls.append((prompt, config))
        if isinstance(self.answer, Exception):
            raise self.answer
        return self.answer


def test_refine_keeps_existing_goal_and_deduplicates() -> None:
    plan = refine_plan(REVISED, "Get fit")

    assert plan.goal == "Get fit"
    assert plan.months[0].title == "Warm up"
    assert [task.description for task in plan.iter_tasks()] == ["Walk for twenty minutes", "Stretch after waking up"]


def test_refine_without_goal_uses_fallback() -> None:
    assert refine_plan(REVISED, "   ").goal == FALLBACK_GOAL
    assert refine_plan(REVISED).goal == FALLBACK_GOAL


def test_refine_accepts_any_task_count() -> None:
    plan = refine_plan("## Week 9: Taper\n- Rest", "Run a marathon")

    assert plan.task_count() == 1
    assert plan.months[0].index == 3


def test_refine_rejects_text_without_structure() -> None:
    with pytest.raises(ParseFailure):
        refine_plan("Sure! Let me know what you would like to change.", "Get fit")


def test_revision_prompt_embeds_plan_and_request() -> None:
    prompt = build_revision_prompt(_plan(), "  Add more rest days  ")

    assert '"goal": "Run a marathon"' in prompt
    assert "# Goal: Run a marathon" in prompt
    assert "USER REQUEST: Add more rest days\n" in prompt


def test_revise_uses_single_completion_and_keeps_goal() -> None:
    text_generator = CompletingTextGenerator(REVISED)

    revised = revise_plan(text_generator, _plan(), "Make it gentler")

    assert revised.goal == "Run a marathon"
    assert revised.task_count() == 2
    (prompt, config), = text_generator.calls
    assert "Make it gentler" in prompt
    assert config.temperature == 0.6


def test_revise_propagates_transport_and_parse_errors() -> None:
    with pytest.raises(StreamTransportError):
        revise_plan(CompletingTextGenerator(StreamTransportError("down")), _plan(), "Shorter")
    with pytest.raises(ParseFailure):
        revise_plan(CompletingTextGenerator("I can't do that."), _plan(), "Shorter")


def test_revise_requires_instructions_and_months() -> None:
    with pytest.raises(ValueError):
        revise_plan(CompletingTextGenerator(REVISED), _plan(), "  ")
    with pytest.raises(ValueError):
        revise_plan(CompletingTextGenerator(REVISED), Plan(goal="Empty"), "Shorter")
