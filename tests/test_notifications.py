import asyncio

import pytest

from core.exceptions import NotFoundError, ValidationFailedError
from models import CourseAssignment, Notification, NotificationType, User
from services import enrollments, notifications
from services.course_refs import CatalogCourseRef, ResolvedCourse
from services.enrollments import PaymentDetails
from services.notifications import NotificationOutbox
from tests.conftest import create_course, create_student, create_teacher


async def test_outbox_writes_batch_on_exit(student, teacher):
    async with NotificationOutbox() as outbox:
        outbox.add(student.user_id, NotificationType.GENERAL, "Hello", sender_id=teacher.user_id)
        outbox.add(None, NotificationType.GENERAL, "Nobody")
        outbox.add_many([teacher.user_id], NotificationType.REMINDER, "Class at 5", data={"a": 1})
        assert len(outbox) == 2

    assert outbox.written == 2
    stored = await Notification.all().order_by("id")
    assert [(n.receiver_id, n.type) for n in stored] == [
        (student.user_id, NotificationType.GENERAL),
        (teacher.user_id, NotificationType.REMINDER),
    ]
    assert stored[1].data == {"a": 1}
    assert stored[0].sender_id == teacher.user_id


async def test_outbox_swallows_errors_and_keeps_drafts(student):
    async with NotificationOutbox() as outbox:
        outbox.add(student.user_id, NotificationType.GENERAL, "Collected before the error")
        raise RuntimeError("teacher lookup failed")

    assert outbox.written == 1
    assert await Notification.all().count() == 1


async def test_outbox_write_failure_is_logged(student, monkeypatch, caplog):
    async def broken_bulk_create(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(Notification, "bulk_create", broken_bulk_create)

    outbox = NotificationOutbox()
    outbox.add(student.user_id, NotificationType.GENERAL, "Hello")

    assert await outbox.flush() == 0
    assert "Failed to write 1 notification(s)" in caplog.text


async def test_outbox_does_not_swallow_cancellation(db):
    with pytest.raises(asyncio.CancelledError):
        async with NotificationOutbox():
            raise asyncio.CancelledError()


async def test_failed_notification_does_not_undo_transition(student, payment_admin, monkeypatch):
    enrollment, _ = await enrollments.enroll(
        student, 101, PaymentDetails(amount_paid=100, requires_verification=True)
    )

    async def broken_bulk_create(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(Notification, "bulk_create", broken_bulk_create)

    enrollment = await enrollments.verify_payment(enrollment.id, payment_admin)

    assert enrollment.status.value == "active"


async def test_owning_teacher_resolution_order(db):
    owner = await create_teacher("Owen Owner", "owen@example.com")
    assigned = await create_teacher("Ada Assigned", "ada@example.com")
    await CourseAssignment.create(teacher=assigned, course_key="catalog:9")

    owned = ResolvedCourse(ref=CatalogCourseRef(9), title="Owned", teacher_id=owner.id)
    assert (await notifications.resolve_owning_teacher(owned)).id == owner.id

    placeholder = ResolvedCourse(ref=CatalogCourseRef(9), title="Placeholder")
    assert (await notifications.resolve_owning_teacher(placeholder)).id == assigned.id

    orphan = ResolvedCourse(ref=CatalogCourseRef(10), title="Orphan")
    assert (await notifications.resolve_owning_teacher(orphan)).id == owner.id
    assert await notifications.resolve_owning_teacher(orphan, fallback_to_first=False) is None


async def test_no_teachers_means_no_sender(db):
    orphan = ResolvedCourse(ref=CatalogCourseRef(10), title="Orphan")
    assert await notifications.notification_sender_id(orphan) is None


async def test_broadcast_reaches_each_student_once(teacher):
    first = await create_course(teacher, title="First")
    second = await create_course(teacher, title="Second")
    student = await create_student()
    other = await create_student("Omar Other", "omar@example.com")
    pending = await create_student("Pia Pending", "pia@example.com")

    await enrollments.enroll(student, first.id)
    await enrollments.enroll(student, second.id)
    await enrollments.enroll(other, second.id)
    await enrollments.enroll(pending, first.id, PaymentDetails(requires_verification=True))

    written = await notifications.broadcast_to_students(teacher, NotificationType.ANNOUNCEMENT, " Exam on Friday ")

    assert written == 2
    stored = await Notification.filter(type=NotificationType.ANNOUNCEMENT)
    assert sorted(n.receiver_id for n in stored) == sorted([student.user_id, other.user_id])
    assert all(n.message == "Exam on Friday" for n in stored)
    assert all(n.sender_id == teacher.user_id for n in stored)


async def test_broadcast_requires_message(teacher):
    with pytest.raises(ValidationFailedError):
        await notifications.broadcast_to_students(teacher, NotificationType.GENERAL, "   ")


async def test_broadcast_without_courses(teacher):
    assert await notifications.broadcast_to_students(teacher, NotificationType.GENERAL, "Hi") == 0


async def test_read_and_delete(student, teacher):
    user = await User.get(id=student.user_id)
    outsider = await User.get(id=teacher.user_id)
    async with NotificationOutbox() as outbox:
        outbox.add_many([user.id, user.id], NotificationType.GENERAL, "Hello")

    items, unread = await notifications.list_notifications(user)
    assert len(items) == 2
    assert unread == 2

    await notifications.mark_as_read(user, items[0].id)
    items, unread = await notifications.list_notifications(user, unread_only=True)
    assert len(items) == 1
    assert unread == 1

    with pytest.raises(NotFoundError):
        await notifications.mark_as_read(outsider, items[0].id)

    assert await notifications.mark_all_as_read(user) == 1

    await notifications.delete_notification(user, items[0].id)
    with pytest.raises(NotFoundError):
        await notifications.delete_notification(user, items[0].id)
