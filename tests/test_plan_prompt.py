import re

import pytest

from planstream.services.plan_prompt import build_plan_prompt, phase_allocation, plan_layout


def _day_markers(prompt: str) -> list[str]:
    return re.findall(r"^- Day \d+:", prompt, flags=re.MULTILINE)


def test_default_prompt_targets_ninety_days() -> None:
    prompt = build_plan_prompt("  Learn Rust  ")

    assert 'GOAL: "Learn Rust"' in prompt
    assert "EXACTLY 90 unique" in prompt
    assert "# Goal: Learn Rust" in prompt
    assert prompt.count("## Month ") == 3
    assert prompt.count("### Week ") == 12
    assert len(_day_markers(prompt)) == 84


def test_thirty_day_prompt_has_one_month_of_four_weeks() -> None:
    prompt = build_plan_prompt("Write a novel", 30)

    assert "This is a 30-day plan." in prompt
    assert prompt.count("## Month ") == 1
    assert prompt.count("### Week ") == 4
    assert len(_day_markers(prompt)) == 28


def test_seven_day_prompt_has_no_month_layer() -> None:
    prompt = build_plan_prompt("Tidy the garage", 7)

    assert "## Month" not in prompt
    assert "## Week 1:" in prompt
    assert len(_day_markers(prompt)) == 7


@pytest.mark.parametrize("days, weeks, months", [(14, 2, 1), (45, 7, 2), (100, 15, 4), (365, 53, 14)])
def test_generic_layout(days: int, weeks: int, months: int) -> None:
    layout = plan_layout(days)

    assert layout.week_count == weeks
    assert len(layout.months) == months
    assert layout.day_count == days
    assert all(len(month) <= 4 for month in layout.months)


def test_generic_prompt_lists_remaining_days_in_last_week() -> None:
    prompt = build_plan_prompt("Learn piano", 10)

    assert "### Week 2:" in prompt
    assert len(_day_markers(prompt)) == 10


def test_phase_allocation_sums_to_duration() -> None:
    allocation = phase_allocation(90)

    assert [name for name, _ in allocation] == [
        "Research & Planning",
        "Foundation & Setup",
        "Implementation & Execution",
        "Optimization & Refinement",
    ]
    assert sum(count for _, count in allocation) == 90
    assert allocation[1][1] == 27


def test_prompt_asks_for_unique_tasks() -> None:
    prompt = build_plan_prompt("Learn Go", 30)

    assert "NEVER repeat the same task description" in prompt
    assert "OUTPUT: Only the formatted structure" in prompt
