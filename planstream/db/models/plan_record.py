"""Stored plan ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, Integer, Text, func
from sqlalchemy.dialects.postgresql import UUID

from planstream.db.base import Base
from planstream.db.types import JSONPayload


class PlanRecord(Base):
    __tablename__ = "plans"
    __table_args__ = (Index("ix_plans_user_id", "user_id"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    # Owned by the auth service; no local users table to reference.
    user_id = Column(UUID(as_uuid=True), nullable=True)
    goal = Column(Text, nullable=False)
    duration_days = Column(Integer, nullable=True)
    task_count = Column(Integer, nullable=False, default=0)
    payload = Column(JSONPayload, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
