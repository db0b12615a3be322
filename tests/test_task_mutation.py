# tests/test_task_mutation.py

from __future__ import annotations

import pytest
from sqlmodel import select

from taskbuddy.exceptions import StorageError, TaskNotFoundError
from taskbuddy.models import Task, TaskAttachment, TaskTag
from taskbuddy.schemas.task import TaskCreate
from taskbuddy.services.live import ChangeKind
from taskbuddy.services.task_mutation import Attachment, TaskMutationService
from taskbuddy.storage import ATTACHMENTS_BUCKET

from .conftest import FIXED_NOW, OTHER_USER, USER
from .fakes import FailingStorage


def test_positions_append_to_status_column(make_task, session) -> None:
    t1 = make_task("T1")
    t2 = make_task("T2")

    assert session.get(Task, t1).position == 0
    assert session.get(Task, t2).position == 1


def test_positions_are_per_status_and_per_user(make_task, session) -> None:
    make_task("todo 0")
    make_task("todo 1")
    doing = make_task("doing", status="In Progress")
    theirs = make_task("theirs", user_id=OTHER_USER)

    assert session.get(Task, doing).position == 0
    assert session.get(Task, theirs).position == 0


def test_explicit_position_is_kept(make_task, session) -> None:
    make_task("first")
    pinned = make_task("pinned", position=7)
    after = make_task("after")

    assert session.get(Task, pinned).position == 7
    assert session.get(Task, after).position == 8


def test_update_in_place(make_task, mutations, session) -> None:
    task_id = make_task("draft", description="old")

    saved = mutations.save_task(
        USER,
        TaskCreate(title="final", description="new", category="Personal", status="To Do", position=0),
        task_id=task_id,
    )

    task = session.get(Task, saved)
    assert saved == task_id
    assert (task.title, task.description, task.category) == ("final", "new", "Personal")


def test_update_without_position_moves_to_end_of_column(make_task, mutations, session) -> None:
    a = make_task("a")
    make_task("b")

    mutations.save_task(USER, TaskCreate(title="a edited"), task_id=a)

    # The task being saved is left out of its own lookup
    assert session.get(Task, a).position == 2


def test_update_unknown_or_foreign_task(make_task, mutations) -> None:
    task_id = make_task("mine")

    with pytest.raises(TaskNotFoundError):
        mutations.save_task(USER, TaskCreate(title="x"), task_id="nope")
    with pytest.raises(TaskNotFoundError):
        mutations.save_task(OTHER_USER, TaskCreate(title="x"), task_id=task_id)


def test_attachment_uploaded_then_linked(mutations, session, storage) -> None:
    task_id = mutations.save_task(
        USER,
        TaskCreate(title="with file"),
        attachment=Attachment(filename="report.final.pdf", content=b"%PDF"),
    )

    link = session.exec(select(TaskAttachment).where(TaskAttachment.task_id == task_id)).one()
    expected = f"{USER}/{task_id}-{int(FIXED_NOW * 1000)}.pdf"
    assert link.file_url == expected
    assert storage.download(ATTACHMENTS_BUCKET, expected) == b"%PDF"


def test_attachment_without_extension_uses_whole_name() -> None:
    assert Attachment(filename="README", content=b"").extension == "README"


def test_failed_upload_raises_but_keeps_task(session, feed) -> None:
    failing = FailingStorage()
    service = TaskMutationService(session, failing, feed, clock=lambda: FIXED_NOW)

    with pytest.raises(StorageError):
        service.save_task(
            USER,
            TaskCreate(title="orphan"),
            attachment=Attachment(filename="a.png", content=b"png"),
        )

    tasks = session.exec(select(Task).where(Task.user_id == USER)).all()
    assert [t.title for t in tasks] == ["orphan"]
    assert session.exec(select(TaskAttachment)).all() == []
    assert len(failing.attempts) == 1


def test_delete_removes_task_and_children(make_task, mutations, session) -> None:
    task_id = make_task("doomed")
    session.add(TaskTag(task_id=task_id, tag="x"))
    session.commit()

    assert mutations.delete_task(USER, task_id) is True
    assert session.get(Task, task_id) is None
    assert session.exec(select(TaskTag)).all() == []
    assert mutations.delete_task(USER, task_id) is False


def test_delete_is_owner_scoped(make_task, mutations, session) -> None:
    task_id = make_task("mine")

    assert mutations.delete_task(OTHER_USER, task_id) is False
    assert session.get(Task, task_id) is not None


def test_update_status_only_touches_status(make_task, mutations, session) -> None:
    make_task("a")
    b = make_task("b")

    change = mutations.update_status(USER, b, "Completed")

    task = session.get(Task, b)
    assert task.status == "Completed"
    assert task.position == 1
    assert change.task.status == "Completed"
    assert change.navigate_to == "/home"


def test_update_status_unknown_task(mutations) -> None:
    with pytest.raises(TaskNotFoundError):
        mutations.update_status(USER, "missing", "Completed")


def test_update_positions_rewrites_column(make_task, mutations, session) -> None:
    a = make_task("a")
    b = make_task("b")
    c = make_task("c")
    theirs = make_task("theirs", user_id=OTHER_USER)

    written = mutations.update_positions(USER, [c, "ghost", a, theirs, b], "To Do")

    assert written == 3
    assert session.get(Task, c).position == 0
    assert session.get(Task, a).position == 2
    assert session.get(Task, b).position == 4
    assert session.get(Task, theirs).position == 0


def test_bulk_operations_report_per_item(make_task, mutations, session) -> None:
    a = make_task("a")
    b = make_task("b")

    ok, failed = mutations.bulk_update_status(USER, [a, "ghost", b], "In Progress")
    assert ok == [a, b]
    assert failed == ["ghost"]
    assert {session.get(Task, a).status, session.get(Task, b).status} == {"In Progress"}

    ok, failed = mutations.bulk_delete(USER, [a, b, "ghost"])
    assert ok == [a, b]
    assert failed == ["ghost"]


def test_changes_are_published(make_task, mutations, feed) -> None:
    seen = []
    feed.subscribe(USER, seen.append)

    task_id = make_task("live")
    mutations.update_status(USER, task_id, "Completed")
    mutations.delete_task(USER, task_id)

    assert [e.kind for e in seen] == [ChangeKind.INSERT, ChangeKind.UPDATE, ChangeKind.DELETE]
    assert [e.revision for e in seen] == sorted(e.revision for e in seen)
    assert seen[1].task.status == "Completed"
    assert seen[2].task is None
