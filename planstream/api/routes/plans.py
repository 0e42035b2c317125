"""Plan generation, revision and storage endpoints."""
from __future__ import annotations

import json
import logging
from time import perf_counter
from typing import Any, Dict, Iterator, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from planstream.api.deps import enforce_plan_rate_limit, get_plan_saved_hooks, get_text_generator
from planstream.api.schemas.plan import (
    PlanGenerateRequest,
    PlanGenerateResponse,
    PlanRefineRequest,
    PlanRefineResponse,
    PlanReviseRequest,
    PlanSaveRequest,
    StoredPlanResponse,
)
from planstream.db.deps import get_db
from planstream.observability.metrics import log_metric
from planstream.observability.tracing import annotate, trace
from planstream.services.generation_errors import (
    GenerationInProgressError,
    ParseFailure,
    PlanGenerationError,
    RetriesExhausted,
    StreamTransportError,
)
from planstream.services.plan_generator import PlanGenerator, expected_task_count
from planstream.services.plan_models import Plan
from planstream.services.plan_refiner import refine_plan, revise_plan
from planstream.services.plan_store import PlanSavedHook, PlanStoreError, load_plan, save_plan
from planstream.services.text_generation import TextGenerator

logger = logging.getLogger(__name__)

router = APIRouter()

INCOMPLETE_DETAIL = "Plan generation was incomplete. Please try again."
TRANSPORT_DETAIL = "Failed to generate plan. Please try again."
REFINE_DETAIL = "Received a response, but it could not be structured into an updated plan."


def _http_error_for(exc: PlanGenerationError) -> HTTPException:
    if isinstance(exc, GenerationInProgressError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A plan is already being generated")
    if isinstance(exc, RetriesExhausted):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=INCOMPLETE_DETAIL)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=TRANSPORT_DETAIL)


@router.post(
    "/plans/generate",
    response_model=PlanGenerateResponse,
    tags=["plans"],
    dependencies=[Depends(enforce_plan_rate_limit)],
)
def generate_plan_endpoint(
    payload: PlanGenerateRequest,
    http_request: Request,
    text_generator: TextGenerator = Depends(get_text_generator),
    hooks: List[PlanSavedHook] = Depends(get_plan_saved_hooks),
    db: Session = Depends(get_db),
) -> PlanGenerateResponse:
    """Generate a validated plan and optionally store it for ``user_id``."""
    goal = payload.goal.strip()
    if not goal:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="goal must not be empty")
    request_id = getattr(http_request.state, "request_id", None)
    expected = expected_task_count(payload.duration_days)
    base_metadata: Dict[str, Any] = {
        "route": "/plans/generate",
        "duration_days": expected,
        "goal_length": len(goal),
    }

    generator = PlanGenerator(text_generator)
    start_time = perf_counter()
    success = False
    plan_id: Optional[UUID] = None
    try:
        with trace(
            "plan.generation",
            metadata=base_metadata,
            user_id=str(payload.user_id) if payload.user_id else None,
            request_id=request_id,
        ) as span:
            plan = generator.generate(goal, payload.duration_days)
            if payload.user_id is not None:
                plan_id = save_plan(
                    db,
                    plan,
                    user_id=payload.user_id,
                    duration_days=payload.duration_days,
                    on_saved=hooks,
                )
            annotate(span, **base_metadata, task_count=plan.task_count(), attempts=len(generator.attempts))
            success = True
    except RetriesExhausted as exc:
        logger.warning("Plan generation incomplete: %d/%d unique tasks", exc.found, exc.expected)
        raise _http_error_for(exc) from exc
    except PlanGenerationError as exc:
        raise _http_error_for(exc) from exc
    except PlanStoreError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to store plan") from exc
    finally:
        latency_ms = (perf_counter() - start_time) * 1000
        log_metric("plan.request.success", 1 if success else 0, metadata=base_metadata)
        log_metric("plan.request.latency_ms", latency_ms, metadata=base_metadata)

    return PlanGenerateResponse(
        plan=plan,
        task_count=plan.task_count(),
        expected_task_count=expected,
        attempts=len(generator.attempts),
        plan_id=plan_id,
        request_id=request_id or "",
    )


@router.post(
    "/plans/generate/stream",
    tags=["plans"],
    dependencies=[Depends(enforce_plan_rate_limit)],
)
def stream_plan_endpoint(
    payload: PlanGenerateRequest,
    text_generator: TextGenerator = Depends(get_text_generator),
) -> StreamingResponse:
    """Stream generation progress as newline-delimited JSON events."""
    goal = payload.goal.strip()
    if not goal:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="goal must not be empty")
    generator = PlanGenerator(text_generator)
    return StreamingResponse(
        _event_lines(generator, goal, payload.duration_days),
        media_type="application/x-ndjson",
        headers={"Cache-Control": "no-store"},
    )


def _event_lines(generator: PlanGenerator, goal: str, duration_days: Optional[int]) -> Iterator[str]:
    try:
        for event in generator.iter_generation(goal, duration_days):
            yield json.dumps(event.to_payload()) + "\n"
    except PlanGenerationError as exc:
        if isinstance(exc, RetriesExhausted):
            logger.warning("Streamed plan generation incomplete: %d/%d unique tasks", exc.found, exc.expected)
        error = _http_error_for(exc)
        yield json.dumps({"event": "error", "status": error.status_code, "detail": error.detail}) + "\n"


def _store_revision(
    db: Session,
    plan: Plan,
    user_id: Optional[UUID],
    duration_days: Optional[int],
    hooks: List[PlanSavedHook],
) -> Optional[UUID]:
    # A revised plan is still returned when storing it fails.
    if user_id is None:
        return None
    try:
        return save_plan(db, plan, user_id=user_id, duration_days=duration_days, on_saved=hooks)
    except PlanStoreError:
        logger.warning("Revised plan for user %s was not stored", user_id)
        return None


@router.post("/plans/refine", response_model=PlanRefineResponse, tags=["plans"])
def refine_plan_endpoint(
    payload: PlanRefineRequest,
    http_request: Request,
    hooks: List[PlanSavedHook] = Depends(get_plan_saved_hooks),
    db: Session = Depends(get_db),
) -> PlanRefineResponse:
    """Parse revised plan markdown (e.g. a chat answer) and optionally store it."""
    try:
        plan = refine_plan(payload.text, payload.goal)
    except ParseFailure as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=REFINE_DETAIL) from exc

    plan_id = _store_revision(db, plan, payload.user_id, payload.duration_days, hooks)
    return PlanRefineResponse(
        plan=plan,
        task_count=plan.task_count(),
        plan_id=plan_id,
        request_id=getattr(http_request.state, "request_id", None) or "",
    )


@router.post(
    "/plans/revise",
    response_model=PlanRefineResponse,
    tags=["plans"],
    dependencies=[Depends(enforce_plan_rate_limit)],
)
def revise_plan_endpoint(
    payload: PlanReviseRequest,
    http_request: Request,
    text_generator: TextGenerator = Depends(get_text_generator),
    hooks: List[PlanSavedHook] = Depends(get_plan_saved_hooks),
    db: Session = Depends(get_db),
) -> PlanRefineResponse:
    """Have the model apply ``instructions`` to an existing plan."""
    if not payload.plan.months:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="plan must contain at least one month")
    if not payload.instructions.strip():
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="instructions must not be empty")

    try:
        plan = revise_plan(text_generator, payload.plan, payload.instructions)
    except ParseFailure as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=REFINE_DETAIL) from exc
    except StreamTransportError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=TRANSPORT_DETAIL) from exc

    plan_id = _store_revision(db, plan, payload.user_id, payload.duration_days, hooks)
    return PlanRefineResponse(
        plan=plan,
        task_count=plan.task_count(),
        plan_id=plan_id,
        request_id=getattr(http_request.state, "request_id", None) or "",
    )


@router.post(
    "/plans",
    response_model=StoredPlanResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["plans"],
)
def save_plan_endpoint(
    payload: PlanSaveRequest,
    hooks: List[PlanSavedHook] = Depends(get_plan_saved_hooks),
    db: Session = Depends(get_db),
) -> StoredPlanResponse:
    """Store a finalized plan, e.g. one received over the streaming endpoint."""
    if not payload.plan.months:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="plan must contain at least one month")
    try:
        plan_id = save_plan(
            db,
            payload.plan,
            user_id=payload.user_id,
            duration_days=payload.duration_days,
            on_saved=hooks,
        )
    except PlanStoreError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to store plan") from exc
    return StoredPlanResponse(id=plan_id, plan=payload.plan)


@router.get("/plans/{plan_id}", response_model=StoredPlanResponse, tags=["plans"])
def get_plan_endpoint(plan_id: UUID, db: Session = Depends(get_db)) -> StoredPlanResponse:
    plan = load_plan(db, plan_id)
    if plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plan not found")
    return StoredPlanResponse(id=plan_id, plan=plan)
