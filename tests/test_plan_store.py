from __future__ import annotations

from uuid import UUID, uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from planstream.db.models.plan_record import PlanRecord
from planstream.services.plan_models import DailyTask, MonthlyMilestone, Plan, WeeklyObjective
from planstream.services.plan_store import PlanStoreError, load_plan, save_plan


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    PlanRecord.__table__.create(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    engine.dispose()


def _plan() -> Plan:
    tasks = [DailyTask(day=day, description=f"Step {day}") for day in range(1, 4)]
    week = WeeklyObjective(index=1, title="Start", tasks=tasks)
    return Plan(goal="Learn Go", months=[MonthlyMilestone(index=1, title="Basics", weeks=[week])])


def test_save_and_load_round_trip(session_factory) -> None:
    user_id = uuid4()
    with session_factory() as db:
        plan_id = save_plan(db, _plan(), user_id=user_id, duration_days=30)

    with session_factory() as db:
        record = db.get(PlanRecord, plan_id)
        assert record.user_id == user_id
        assert record.task_count == 3
        assert record.duration_days == 30
        assert load_plan(db, plan_id) == _plan()


def test_load_missing_plan_returns_none(session_factory) -> None:
    with session_factory() as db:
        assert load_plan(db, uuid4()) is None


def test_hooks_run_after_commit(session_factory, monkeypatch) -> None:
    order = []

    def hook(plan_id: UUID, plan: Plan) -> None:
        with session_factory() as other:
            assert other.get(PlanRecord, plan_id) is not None
        order.append(("hook", plan.goal))

    with session_factory() as db:
        real_commit = db.commit

        def recording_commit() -> None:
            real_commit()
            order.append(("commit", None))

        monkeypatch.setattr(db, "commit", recording_commit)
        save_plan(db, _plan(), on_saved=[hook])

    assert order == [("commit", None), ("hook", "Learn Go")]


def test_failing_hook_does_not_undo_save(session_factory) -> None:
    calls = []

    def broken(plan_id: UUID, plan: Plan) -> None:
        raise RuntimeError("insights service down")

    with session_factory() as db:
        plan_id = save_plan(db, _plan(), on_saved=[broken, lambda pid, _: calls.append(pid)])

    assert calls == [plan_id]
    with session_factory() as db:
        assert db.query(PlanRecord).count() == 1


def test_commit_failure_skips_hooks(session_factory, monkeypatch) -> None:
    calls = []

    with session_factory() as db:
        def failing_commit() -> None:
            raise OperationalError("INSERT", {}, Exception("disk full"))

        monkeypatch.setattr(db, "commit", failing_commit)
        with pytest.raises(PlanStoreError):
            save_plan(db, _plan(), on_saved=[lambda pid, plan: calls.append(pid)])

    assert calls == []
    with session_factory() as db:
        assert db.query(PlanRecord).count() == 0


def test_empty_plan_is_refused(session_factory) -> None:
    with session_factory() as db:
        with pytest.raises(ValueError):
            save_plan(db, Plan(goal="Nothing"))
