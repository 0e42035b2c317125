"""Streamed plan generation with validation and bounded retries."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Any, Callable, Dict, Generator, Iterator, List, Optional

from planstream.core.config import settings
from planstream.observability.metrics import log_metric
from planstream.observability.tracing import annotate, trace
from planstream.services.generation_errors import (
    GenerationInProgressError,
    ParseFailure,
    PlanGenerationError,
    RetriesExhausted,
    ValidationShortfall,
)
from planstream.services.plan_cache import PlanCache, plan_cache, plan_cache_key
from planstream.services.plan_models import ParseResult, Plan
from planstream.services.plan_parser import parse_plan
from planstream.services.plan_prompt import DEFAULT_DURATION_DAYS, build_plan_prompt
from planstream.services.text_generation import GenerationConfig, TextGenerator

logger = logging.getLogger(__name__)


class GenerationState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    VALIDATING = "validating"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class GenerationAttempt:
    goal: str
    duration_days: Optional[int]
    attempt_number: int
    expected_task_count: int


@dataclass(frozen=True)
class GenerationEvent:
    """Progress notification emitted while a plan is generated.

    ``partial`` follows every received chunk and carries the accumulated
    text plus the best-effort parse of it. ``retry`` reports a rejected
    attempt. ``complete`` carries the validated plan and is always last.
    """

    kind: str
    attempt: int
    text: str = ""
    plan: Optional[Plan] = None
    found: Optional[int] = None
    expected: Optional[int] = None
    reason: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"event": self.kind, "attempt": self.attempt}
        if self.plan is not None:
            payload["plan"] = self.plan.model_dump(mode="json")
        if self.kind == "partial":
            payload["text_length"] = len(self.text)
        for key in ("found", "expected", "reason"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


PartialCallback = Callable[[GenerationEvent], None]


def expected_task_count(duration_days: Optional[int]) -> int:
    return duration_days or DEFAULT_DURATION_DAYS


def validate_parse_result(result: ParseResult, expected: int, min_task_ratio: float) -> int:
    """Return the accepted task count, or raise when the attempt should be retried."""
    if not result.is_complete:
        raise ParseFailure(expected=expected)

    found = result.task_count
    if found < expected * min_task_ratio:
        raise ValidationShortfall(found, expected)
    if found != expected:
        logger.warning("Task count mismatch: found %d, expected %d; accepting plan", found, expected)
    return found


class PlanGenerator:
    """One plan-generation session.

    A session runs at most one generation at a time. Each attempt streams
    a fresh response, previews it chunk by chunk, then parses and validates
    the full text. Parse failures and shortfalls are retried up to
    ``max_retries`` times before :class:`RetriesExhausted` is raised;
    transport errors are raised immediately.
    """

    def __init__(
        self,
        text_generator: TextGenerator,
        *,
        cache: Optional[PlanCache] = plan_cache,
        config: Optional[GenerationConfig] = None,
        max_retries: Optional[int] = None,
        min_task_ratio: Optional[float] = None,
        dedup_threshold: Optional[float] = None,
    ) -> None:
        self._text_generator = text_generator
        self._cache = cache
        self.config = config or GenerationConfig.from_settings()
        self.max_retries = settings.plan_max_retries if max_retries is None else max_retries
        self.min_task_ratio = settings.plan_min_task_ratio if min_task_ratio is None else min_task_ratio
        self.dedup_threshold = settings.plan_dedup_threshold if dedup_threshold is None else dedup_threshold
        self.state = GenerationState.IDLE
        self.last_outcome: Optional[GenerationState] = None
        self.attempts: List[GenerationAttempt] = []
        self._lock = Lock()
        self._active = False

    def generate(
        self,
        goal: str,
        duration_days: Optional[int] = None,
        *,
        on_partial: Optional[PartialCallback] = None,
    ) -> Plan:
        """Generate and return a validated plan, reporting previews to ``on_partial``."""
        for event in self.iter_generation(goal, duration_days):
            if event.kind == "partial" and on_partial is not None:
                on_partial(event)
            elif event.kind == "complete" and event.plan is not None:
                return event.plan
        raise PlanGenerationError("generation finished without a plan")

    def iter_generation(self, goal: str, duration_days: Optional[int] = None) -> Iterator[GenerationEvent]:
        """Yield generation events; terminal failures are raised from the iterator."""
        goal = goal.strip()
        if not goal:
            raise ValueError("goal must not be empty")

        self._acquire()
        try:
            yield from self._run(goal, duration_days)
        except PlanGenerationError:
            self.last_outcome = GenerationState.FAILED
            raise
        finally:
            self.state = GenerationState.IDLE
            self._release()

    @property
    def in_flight(self) -> bool:
        return self._active

    def _acquire(self) -> None:
        with self._lock:
            if self._active:
                raise GenerationInProgressError("a plan is already being generated for this session")
            self._active = True
        self.attempts = []

    def _release(self) -> None:
        with self._lock:
            self._active = False

    def _run(self, goal: str, duration_days: Optional[int]) -> Generator[GenerationEvent, None, None]:
        expected = expected_task_count(duration_days)
        prompt = build_plan_prompt(goal, duration_days)
        max_attempts = self.max_retries + 1
        last_found = 0
        metric_metadata = {"duration_days": expected, "model": self.config.model}

        for attempt_number in range(1, max_attempts + 1):
            attempt = GenerationAttempt(goal, duration_days, attempt_number, expected)
            self.attempts.append(attempt)
            log_metric("plan.generation.attempts", attempt_number, metric_metadata)

            failure: Optional[PlanGenerationError] = None
            plan: Optional[Plan] = None
            with trace("plan.attempt", metadata={**metric_metadata, "attempt": attempt_number}) as span:
                text = yield from self._stream_attempt(attempt, prompt)
                self.state = GenerationState.VALIDATING
                try:
                    plan = self._finalize(attempt, text)
                except (ParseFailure, ValidationShortfall) as exc:
                    failure = exc
                found = plan.task_count() if plan is not None else getattr(failure, "found", 0)
                annotate(span, attempt=attempt_number, found=found, expected=expected, accepted=plan is not None)
            log_metric("plan.generation.tasks_found", found, metric_metadata)

            if plan is not None:
                self.state = GenerationState.DONE
                self.last_outcome = GenerationState.DONE
                log_metric("plan.generation.success", 1, metric_metadata)
                yield GenerationEvent("complete", attempt_number, text=text, plan=plan, found=found, expected=expected)
                return

            last_found = found
            if attempt_number >= max_attempts:
                break
            logger.warning("Attempt %d/%d rejected (%s); retrying", attempt_number, max_attempts, failure)
            log_metric("plan.generation.retry", 1, metric_metadata)
            yield GenerationEvent("retry", attempt_number, found=found, expected=expected, reason=str(failure))

        self.state = GenerationState.FAILED
        log_metric("plan.generation.success", 0, metric_metadata)
        logger.error("Plan generation gave up after %d attempts: %d/%d unique tasks", max_attempts, last_found, expected)
        raise RetriesExhausted(last_found, expected, max_attempts)

    def _stream_attempt(self, attempt: GenerationAttempt, prompt: str) -> Generator[GenerationEvent, None, str]:
        self.state = GenerationState.STREAMING
        accumulated = ""
        for chunk in self._text_generator.stream(prompt, self.config):
            accumulated += chunk
            preview: Optional[Plan] = None
            try:
                preview = parse_plan(
                    accumulated,
                    attempt.goal,
                    attempt.duration_days,
                    streaming=True,
                    dedup_threshold=self.dedup_threshold,
                ).plan
            except Exception:
                logger.debug("Streaming parse failed on %d characters", len(accumulated), exc_info=True)
            yield GenerationEvent("partial", attempt.attempt_number, text=accumulated, plan=preview)
        return accumulated

    def _finalize(self, attempt: GenerationAttempt, text: str) -> Plan:
        key = plan_cache_key(text, attempt.goal, attempt.duration_days)
        if self._cache is not None:
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug("Plan cache hit for attempt %d", attempt.attempt_number)
                return cached

        result = parse_plan(
            text,
            attempt.goal,
            attempt.duration_days,
            streaming=False,
            dedup_threshold=self.dedup_threshold,
        )
        validate_parse_result(result, attempt.expected_task_count, self.min_task_ratio)
        if self._cache is not None:
            self._cache.put(key, result.plan)
        return result.plan
