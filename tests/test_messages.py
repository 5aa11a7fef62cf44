import pytest

from core.exceptions import ForbiddenError, NotFoundError, ValidationFailedError
from models import Message, MessageType, Notification, NotificationType, User
from services import enrollments, messages
from tests.conftest import create_course, create_student, create_teacher


@pytest.fixture
async def course(teacher):
    return await create_course(teacher)


async def test_send_to_enrolled_students_only(teacher, student, course):
    outsider = await create_student("Omar Other", "omar@example.com")
    await enrollments.enroll(student, course.id)

    sent = await messages.send_to_students(
        teacher, course.id, [student.id, outsider.id], "Welcome aboard"
    )

    assert [m.student_id for m in sent] == [student.id]
    assert sent[0].message_type == MessageType.INFO
    # Plain messages raise no notification
    assert await Notification.all().count() == 0


async def test_announcement_notifies_with_preview(teacher, student, course):
    await enrollments.enroll(student, course.id)
    text = "Exam moved to Friday. " * 10

    await messages.send_to_students(
        teacher, course.id, [student.id], text, message_type=MessageType.ANNOUNCEMENT
    )

    notification = await Notification.get(type=NotificationType.ANNOUNCEMENT)
    assert notification.receiver_id == student.user_id
    assert notification.message.endswith("...")
    assert len(notification.message) == 103


async def test_meeting_link_requires_link(teacher, student, course):
    await enrollments.enroll(student, course.id)

    with pytest.raises(ValidationFailedError):
        await messages.send_to_students(
            teacher, course.id, [student.id], "Join", message_type=MessageType.ZOOM_LINK
        )

    await messages.send_to_students(
        teacher, course.id, [student.id], "Join", message_type=MessageType.ZOOM_LINK,
        zoom_link="https://zoom.example.com/j/1", meeting_time="17:00",
    )

    link = await messages.latest_meeting_link(course.id)
    assert link.zoom_link == "https://zoom.example.com/j/1"
    assert await messages.latest_meeting_link(99) is None


async def test_only_instructor_may_send(student, course):
    stranger = await create_teacher("Olga Other", "olga@example.com")

    with pytest.raises(ForbiddenError):
        await messages.send_to_students(stranger, course.id, [student.id], "Hi")


async def test_student_replies_and_inboxes(teacher, student, course):
    await enrollments.enroll(student, course.id)
    sent = await messages.send_to_students(teacher, course.id, [student.id], "How is it going?")

    reply = await messages.send_to_teacher(student, teacher.id, course.id, "Great!", reply_to_id=sent[0].id)
    assert reply.reply_to_id == sent[0].id

    teacher_views = await messages.teacher_inbox(teacher)
    assert len(teacher_views) == 2
    assert teacher_views[0].message.message == "Great!"
    assert teacher_views[0].student_name == "Sara Student"
    assert teacher_views[0].course_title == "Python Basics"

    student_views = await messages.student_inbox(student)
    assert {v.message.message for v in student_views} == {"How is it going?", "Great!"}

    with pytest.raises(NotFoundError):
        await messages.send_to_teacher(student, teacher.id, course.id, "Hm", reply_to_id=9999)


async def test_mark_message_read(teacher, student, course):
    await enrollments.enroll(student, course.id)
    sent = await messages.send_to_students(teacher, course.id, [student.id], "Read me")
    student_user = await User.get(id=student.user_id)
    outsider = await create_student("Omar Other", "omar@example.com")
    outsider_user = await User.get(id=outsider.user_id)

    with pytest.raises(ForbiddenError):
        await messages.mark_message_read(outsider_user, sent[0].id)

    message = await messages.mark_message_read(student_user, sent[0].id)
    assert message.is_read
    assert (await Message.get(id=sent[0].id)).is_read
