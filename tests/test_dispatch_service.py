import pytest
from freezegun import freeze_time
from sqlmodel import Session, select

from dispatch_app.db.config import build_engine
from dispatch_app.db.init import init_db
from dispatch_app.models.dispatch import Dispatch, DispatchTask
from dispatch_app.models.user import User
from dispatch_app.services.dispatch_service import DispatchService
from dispatch_app.services.errors import DispatchFinalizedError, DispatchNotFoundError, TaskNotFoundError
from dispatch_app.services.task_service import TaskService


@pytest.fixture
def dispatches(session):
    return DispatchService(session)


@pytest.fixture
def tasks(session):
    return TaskService(session)


def link_rows(session, dispatch_id):
    return session.exec(select(DispatchTask).where(DispatchTask.dispatch_id == dispatch_id)).all()


def test_get_or_create_is_idempotent(dispatches, user):
    first = dispatches.get_or_create_dispatch(user.id, "2026-02-21")
    second = dispatches.get_or_create_dispatch(user.id, "2026-02-21")
    assert first.id == second.id
    assert first.summary == ""
    assert not first.finalized


def test_get_or_create_rejects_bad_date(dispatches, user):
    with pytest.raises(ValueError):
        dispatches.get_or_create_dispatch(user.id, "21/02/2026")


def test_get_or_create_recovers_from_concurrent_insert(dispatches, session, user, monkeypatch):
    existing = dispatches.get_or_create_dispatch(user.id, "2026-02-21")
    real_find = dispatches._find_by_date
    calls = {"n": 0}

    def stale_find(user_id, date):
        # First lookup misses, as if another request inserted in between
        calls["n"] += 1
        return None if calls["n"] == 1 else real_find(user_id, date)

    monkeypatch.setattr(dispatches, "_find_by_date", stale_find)
    recovered = dispatches.get_or_create_dispatch(user.id, "2026-02-21")
    assert recovered.id == existing.id
    assert len(session.exec(select(Dispatch)).all()) == 1


def test_today_dispatch_uses_user_zone(dispatches, make_user):
    tokyo = make_user(user_id="tokyo", time_zone="Asia/Tokyo")
    with freeze_time("2026-02-21 20:00:00"):
        assert dispatches.get_today_dispatch(tokyo.id).date == "2026-02-22"
        assert dispatches.get_today_dispatch(tokyo.id, time_zone="UTC").date == "2026-02-21"


def test_link_twice_keeps_one_row(dispatches, tasks, session, user):
    dispatch = dispatches.get_or_create_dispatch(user.id, "2026-02-21")
    task = tasks.create_task(user.id, "Write")
    dispatches.link_task(dispatch.id, task.id, user.id)
    dispatches.link_task(dispatch.id, task.id, user.id)
    assert len(link_rows(session, dispatch.id)) == 1


def test_link_requires_live_owned_task(dispatches, tasks, make_user):
    alice = make_user(user_id="a")
    bob = make_user(user_id="b")
    dispatch = dispatches.get_or_create_dispatch(alice.id, "2026-02-21")
    foreign = tasks.create_task(bob.id, "Not yours")
    deleted = tasks.create_task(alice.id, "Gone")
    tasks.delete_task(deleted.id, alice.id)

    with pytest.raises(TaskNotFoundError):
        dispatches.link_task(dispatch.id, foreign.id, alice.id)
    with pytest.raises(TaskNotFoundError):
        dispatches.link_task(dispatch.id, deleted.id, alice.id)
    with pytest.raises(DispatchNotFoundError):
        dispatches.link_task(dispatch.id, foreign.id, bob.id)


def test_unlink_missing_pair_is_noop(dispatches, tasks, session, user):
    dispatch = dispatches.get_or_create_dispatch(user.id, "2026-02-21")
    task = tasks.create_task(user.id, "Write")
    dispatches.link_task(dispatch.id, task.id, user.id)
    dispatches.unlink_task(dispatch.id, task.id, user.id)
    dispatches.unlink_task(dispatch.id, task.id, user.id)
    assert link_rows(session, dispatch.id) == []


def test_summary_limits(dispatches, user):
    dispatch = dispatches.get_or_create_dispatch(user.id, "2026-02-21")
    assert dispatches.update_summary(dispatch.id, "Good day", user.id).summary == "Good day"
    with pytest.raises(ValueError):
        dispatches.update_summary(dispatch.id, "x" * 10001, user.id)


def test_deleted_tasks_are_hidden_from_dispatch(dispatches, tasks, user):
    dispatch = dispatches.get_or_create_dispatch(user.id, "2026-02-21")
    keep = tasks.create_task(user.id, "Keep")
    drop = tasks.create_task(user.id, "Drop")
    dispatches.link_task(dispatch.id, keep.id, user.id)
    dispatches.link_task(dispatch.id, drop.id, user.id)
    tasks.delete_task(drop.id, user.id)
    assert [t.id for t in dispatches.list_dispatch_tasks(dispatch.id, user.id)] == [keep.id]


class TestCompleteDispatch:
    def test_rolls_unfinished_tasks_forward(self, dispatches, tasks, session, user):
        dispatch = dispatches.get_or_create_dispatch(user.id, "2026-02-21")
        done = tasks.create_task(user.id, "Done", status="done")
        open_task = tasks.create_task(user.id, "Open")
        in_progress = tasks.create_task(user.id, "Half", status="in_progress")
        for task in (done, open_task, in_progress):
            dispatches.link_task(dispatch.id, task.id, user.id)

        completion = dispatches.complete_dispatch(dispatch.id, user.id)

        assert completion.dispatch.finalized
        assert completion.rolled_over == 2
        upcoming = session.get(Dispatch, completion.next_dispatch_id)
        assert upcoming.date == "2026-02-22"
        assert not upcoming.finalized
        assert {row.task_id for row in link_rows(session, upcoming.id)} == {open_task.id, in_progress.id}
        assert len(link_rows(session, dispatch.id)) == 3

    def test_second_completion_fails_without_side_effects(self, dispatches, tasks, session, user):
        dispatch = dispatches.get_or_create_dispatch(user.id, "2026-02-21")
        task = tasks.create_task(user.id, "Open")
        dispatches.link_task(dispatch.id, task.id, user.id)
        first = dispatches.complete_dispatch(dispatch.id, user.id)

        with pytest.raises(DispatchFinalizedError):
            dispatches.complete_dispatch(dispatch.id, user.id)

        assert len(session.exec(select(Dispatch)).all()) == 2
        assert len(link_rows(session, first.next_dispatch_id)) == 1

    def test_reuses_existing_next_dispatch(self, dispatches, tasks, session, user):
        dispatch = dispatches.get_or_create_dispatch(user.id, "2026-02-28")
        upcoming = dispatches.get_or_create_dispatch(user.id, "2026-03-01")
        task = tasks.create_task(user.id, "Carry")
        dispatches.link_task(dispatch.id, task.id, user.id)
        dispatches.link_task(upcoming.id, task.id, user.id)

        completion = dispatches.complete_dispatch(dispatch.id, user.id)

        assert completion.next_dispatch_id == upcoming.id
        assert len(link_rows(session, upcoming.id)) == 1

    def test_nothing_to_roll_creates_no_dispatch(self, dispatches, tasks, session, user):
        dispatch = dispatches.get_or_create_dispatch(user.id, "2026-02-21")
        done = tasks.create_task(user.id, "Done", status="done")
        dispatches.link_task(dispatch.id, done.id, user.id)

        completion = dispatches.complete_dispatch(dispatch.id, user.id)

        assert completion.rolled_over == 0
        assert completion.next_dispatch_id is None
        assert len(session.exec(select(Dispatch)).all()) == 1

    def test_old_dispatch_rolls_to_its_own_next_day(self, dispatches, tasks, user, frozen_time):
        dispatch = dispatches.get_or_create_dispatch(user.id, "2025-12-31")
        task = tasks.create_task(user.id, "Late")
        dispatches.link_task(dispatch.id, task.id, user.id)
        completion = dispatches.complete_dispatch(dispatch.id, user.id)
        assert dispatches.get_dispatch(completion.next_dispatch_id, user.id).date == "2026-01-01"

    def test_finalized_next_day_blocks_rollover(self, dispatches, tasks, session, user):
        dispatch = dispatches.get_or_create_dispatch(user.id, "2026-02-21")
        upcoming = dispatches.get_or_create_dispatch(user.id, "2026-02-22")
        dispatches.complete_dispatch(upcoming.id, user.id)
        task = tasks.create_task(user.id, "Stuck")
        dispatches.link_task(dispatch.id, task.id, user.id)

        with pytest.raises(DispatchFinalizedError):
            dispatches.complete_dispatch(dispatch.id, user.id)

        session.refresh(dispatch)
        assert not dispatch.finalized

    def test_finalized_dispatch_is_read_only(self, dispatches, tasks, user):
        dispatch = dispatches.get_or_create_dispatch(user.id, "2026-02-21")
        task = tasks.create_task(user.id, "Late addition")
        dispatches.complete_dispatch(dispatch.id, user.id)

        with pytest.raises(DispatchFinalizedError):
            dispatches.link_task(dispatch.id, task.id, user.id)
        with pytest.raises(DispatchFinalizedError):
            dispatches.unlink_task(dispatch.id, task.id, user.id)
        with pytest.raises(DispatchFinalizedError):
            dispatches.update_summary(dispatch.id, "too late", user.id)

    def test_recurring_task_completed_today_still_rolls(self, dispatches, tasks, session, user):
        dispatch = dispatches.get_or_create_dispatch(user.id, "2026-02-21")
        task = tasks.create_task(user.id, "Daily", due_date="2026-02-21", recurrence_type="daily")
        dispatches.link_task(dispatch.id, task.id, user.id)
        tasks.complete_task(task.id, user.id)

        completion = dispatches.complete_dispatch(dispatch.id, user.id)
        assert completion.rolled_over == 1

    def test_unknown_dispatch(self, dispatches, user):
        with pytest.raises(DispatchNotFoundError):
            dispatches.complete_dispatch("missing", user.id)

    def test_failed_rollover_leaves_dispatch_open(self, dispatches, tasks, session, user, monkeypatch):
        dispatch = dispatches.get_or_create_dispatch(user.id, "2026-02-21")
        task = tasks.create_task(user.id, "Carry")
        dispatches.link_task(dispatch.id, task.id, user.id)

        def broken_link(dispatch_id, task_id):
            raise RuntimeError("disk full")

        monkeypatch.setattr(dispatches, "_add_link", broken_link)
        with pytest.raises(RuntimeError):
            dispatches.complete_dispatch(dispatch.id, user.id)

        assert not dispatches.get_dispatch(dispatch.id, user.id).finalized
        assert dispatches._find_by_date(user.id, "2026-02-22") is None

        monkeypatch.undo()
        completion = dispatches.complete_dispatch(dispatch.id, user.id)
        assert completion.rolled_over == 1
        assert [row.task_id for row in link_rows(session, completion.next_dispatch_id)] == [task.id]

    def test_failed_next_dispatch_creation_leaves_dispatch_open(self, dispatches, tasks, user, monkeypatch):
        dispatch = dispatches.get_or_create_dispatch(user.id, "2026-02-21")
        task = tasks.create_task(user.id, "Carry")
        dispatches.link_task(dispatch.id, task.id, user.id)

        def broken_create(user_id, date):
            raise RuntimeError("connection lost")

        monkeypatch.setattr(dispatches, "_ensure_dispatch", broken_create)
        with pytest.raises(RuntimeError):
            dispatches.complete_dispatch(dispatch.id, user.id)

        assert not dispatches.get_dispatch(dispatch.id, user.id).finalized


class TestConcurrentCompletion:
    """Two sessions against one on-disk database, as two requests would be."""

    @pytest.fixture
    def file_engine(self, tmp_path):
        engine = build_engine(f"sqlite:///{tmp_path / 'dispatch.db'}")
        init_db(engine)
        yield engine
        engine.dispose()

    @pytest.fixture
    def seeded(self, file_engine):
        with Session(file_engine) as setup:
            setup.add(User(id="alice", email="alice@example.com", name="alice", time_zone="UTC"))
            setup.commit()
            dispatch = DispatchService(setup).get_or_create_dispatch("alice", "2026-02-21")
            task = TaskService(setup).create_task("alice", "Open")
            DispatchService(setup).link_task(dispatch.id, task.id, "alice")
            return dispatch.id, task.id

    def test_only_one_completion_wins(self, file_engine, seeded):
        dispatch_id, task_id = seeded
        with Session(file_engine) as first, Session(file_engine) as second:
            # Both requests see the dispatch open before either finalizes it
            assert not DispatchService(first).get_dispatch(dispatch_id, "alice").finalized
            assert not DispatchService(second).get_dispatch(dispatch_id, "alice").finalized

            completion = DispatchService(first).complete_dispatch(dispatch_id, "alice")
            assert completion.rolled_over == 1

            with pytest.raises(DispatchFinalizedError):
                DispatchService(second).complete_dispatch(dispatch_id, "alice")

        with Session(file_engine) as check:
            assert len(check.exec(select(Dispatch)).all()) == 2
            rolled = link_rows(check, completion.next_dispatch_id)
            assert [row.task_id for row in rolled] == [task_id]

    def test_next_day_finalized_by_another_request(self, file_engine, seeded):
        dispatch_id, _ = seeded
        with Session(file_engine) as first, Session(file_engine) as second:
            # First request already holds tomorrow's dispatch as open
            upcoming = DispatchService(first).get_or_create_dispatch("alice", "2026-02-22")
            upcoming_id = upcoming.id
            assert not upcoming.finalized

            DispatchService(second).complete_dispatch(upcoming_id, "alice")

            with pytest.raises(DispatchFinalizedError):
                DispatchService(first).complete_dispatch(dispatch_id, "alice")

        with Session(file_engine) as check:
            assert not check.get(Dispatch, dispatch_id).finalized
            assert link_rows(check, upcoming_id) == []
