"""Persistence of finalized plans and post-save follow-ups."""
from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from planstream.db.models.plan_record import PlanRecord
from planstream.observability.metrics import log_metric
from planstream.services.plan_models import Plan

logger = logging.getLogger(__name__)

PlanSavedHook = Callable[[UUID, Plan], None]


class PlanStoreError(RuntimeError):
    """The plan could not be written."""


def save_plan(
    db: Session,
    plan: Plan,
    *,
    user_id: Optional[UUID] = None,
    duration_days: Optional[int] = None,
    on_saved: Iterable[PlanSavedHook] = (),
) -> UUID:
    """Persist ``plan`` and return its id.

    ``on_saved`` hooks run in order once the commit has succeeded, never
    before. A failing hook is logged and does not undo the save.
    """
    if not plan.months:
        raise ValueError("refusing to store a plan without months")

    record = PlanRecord(
        user_id=user_id,
        goal=plan.goal,
        duration_days=duration_days,
        task_count=plan.task_count(),
        payload=plan.model_dump(mode="json"),
    )
    db.add(record)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to store plan for user %s", user_id)
        raise PlanStoreError("failed to store plan") from exc
    db.refresh(record)

    plan_id: UUID = record.id
    log_metric("plan.saved", 1, {"task_count": record.task_count})
    for hook in on_saved:
        try:
            hook(plan_id, plan)
        except Exception:
            logger.exception("Post-save hook %r failed for plan %s", hook, plan_id)
    return plan_id


def load_plan(db: Session, plan_id: UUID) -> Optional[Plan]:
    record = db.get(PlanRecord, plan_id)
    if record is None:
        return None
    return Plan.model_validate(record.payload)
