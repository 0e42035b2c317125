"""Revised plans: re-parsing edited markdown and asking the model for revisions."""
from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Optional

from planstream.core.config import settings
from planstream.observability.metrics import log_metric
from planstream.observability.tracing import annotate, trace
from planstream.services.generation_errors import ParseFailure
from planstream.services.plan_models import Plan
from planstream.services.plan_parser import parse_plan
from planstream.services.text_generation import GenerationConfig, TextGenerator

logger = logging.getLogger(__name__)

FALLBACK_GOAL = "Updated Plan"


def refine_plan(text: str, goal: Optional[str] = None, *, dedup_threshold: Optional[float] = None) -> Plan:
    """Parse revised plan text in final mode and keep ``goal`` as the plan's goal.

    Task counts are not validated here; a revision may shorten or extend the
    plan. Raises :class:`ParseFailure` when no month or week header is found.
    """
    goal = (goal or "").strip() or FALLBACK_GOAL
    threshold = settings.plan_dedup_threshold if dedup_threshold is None else dedup_threshold

    result = parse_plan(text, goal, streaming=False, dedup_threshold=threshold)
    if not result.is_complete:
        logger.warning("Revised plan text (%d characters) had no recognizable structure", len(text or ""))
        raise ParseFailure("received text could not be structured into an updated plan")

    log_metric("plan.refine.tasks_found", result.task_count)
    return result.plan


def build_revision_prompt(plan: Plan, instructions: str) -> str:
    plan_json = json.dumps(plan.model_dump(mode="json"), indent=2)
    return (
        "You are an AI assistant supporting a user with their plan.\n\n"
        "CONTEXT:\n"
        f"Here is their current plan structure:\n{plan_json}\n\n"
        "TASK:\n"
        "Apply the user's request below to the plan. Your response MUST contain ONLY the complete, revised plan. "
        "ABSOLUTELY NO other text, introductions, explanations, or confirmations are allowed before or after the plan. "
        'The response MUST start directly with "# Goal:" and follow the precise Markdown structure shown below. '
        "Ensure every day has a task.\n\n"
        "REQUIRED MARKDOWN FORMAT:\n"
        f"# Goal: {plan.goal}\n\n"
        "## Month 1: [Milestone Title]\n"
        "### Week 1: [Objective Title]\n"
        "- Day 1: [Task Description]\n"
        "- Day 2: [Task Description]\n"
        "...\n"
        "(Repeat for all months, weeks, and days)\n\n"
        f"USER REQUEST: {instructions.strip()}\n\n"
        "OUTPUT: Only the Markdown plan."
    )


def revision_config() -> GenerationConfig:
    return replace(GenerationConfig.from_settings(), temperature=settings.plan_revision_temperature)


def revise_plan(
    text_generator: TextGenerator,
    plan: Plan,
    instructions: str,
    *,
    config: Optional[GenerationConfig] = None,
) -> Plan:
    """Ask the model to rewrite ``plan`` per ``instructions`` and parse the answer.

    Transport errors propagate as :class:`StreamTransportError`; an answer
    without plan structure raises :class:`ParseFailure`. There is no retry.
    """
    if not instructions.strip():
        raise ValueError("instructions must not be empty")
    if not plan.months:
        raise ValueError("cannot revise a plan without months")

    prompt = build_revision_prompt(plan, instructions)
    with trace(
        "plan.revision",
        metadata={"task_count": plan.task_count(), "instructions_length": len(instructions)},
    ) as span:
        text = text_generator.complete(prompt, config or revision_config())
        revised = refine_plan(text, plan.goal)
        annotate(span, revised_task_count=revised.task_count())
    return revised
