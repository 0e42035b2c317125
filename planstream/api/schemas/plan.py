"""Schemas for plan generation, revision and storage endpoints."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from planstream.core.config import settings
from planstream.services.plan_models import Plan


class PlanGenerateRequest(BaseModel):
    goal: str = Field(..., min_length=1, max_length=settings.goal_max_length)
    duration_days: Optional[int] = Field(default=None, ge=1, le=365)
    user_id: Optional[UUID] = Field(default=None, description="Store the finished plan for this user.")


class PlanGenerateResponse(BaseModel):
    plan: Plan
    task_count: int
    expected_task_count: int
    attempts: int
    plan_id: Optional[UUID] = None
    request_id: str


class PlanSaveRequest(BaseModel):
    plan: Plan
    user_id: Optional[UUID] = None
    duration_days: Optional[int] = Field(default=None, ge=1, le=365)


class StoredPlanResponse(BaseModel):
    id: UUID
    plan: Plan


class PlanRefineRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=settings.plan_text_max_length, description="Revised plan markdown.")
    goal: Optional[str] = Field(default=None, max_length=settings.goal_max_length)
    user_id: Optional[UUID] = Field(default=None, description="Store the parsed plan for this user.")
    duration_days: Optional[int] = Field(default=None, ge=1, le=365)


class PlanReviseRequest(BaseModel):
    plan: Plan
    instructions: str = Field(..., min_length=1, max_length=settings.revision_instructions_max_length)
    user_id: Optional[UUID] = None
    duration_days: Optional[int] = Field(default=None, ge=1, le=365)


class PlanRefineResponse(BaseModel):
    plan: Plan
    task_count: int
    plan_id: Optional[UUID] = None
    request_id: str
