from core.security import BLOCKED_MESSAGE
from models import Enrollment, EnrollmentStatus, User
from tests.conftest import auth_headers, create_course

API = "/api/v1"


async def user_of(profile) -> User:
    return await User.get(id=profile.user_id)


async def test_signup_and_login(client):
    response = await client.post(f"{API}/auth/signup", json={
        "name": "Sara Student",
        "email": "sara@example.com",
        "password": "secret123",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "User created successfully"
    assert body["user"]["role"] == "student"
    assert body["token"]["access_token"]

    response = await client.post(f"{API}/auth/login", data={
        "username": "sara@example.com",
        "password": "secret123",
    })
    assert response.status_code == 200
    token = response.json()["token"]["access_token"]

    response = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.json()["email"] == "sara@example.com"


async def test_errors_carry_a_message(client):
    response = await client.post(f"{API}/auth/login", data={"username": "x@example.com", "password": "nope"})
    assert response.status_code == 400
    assert response.json() == {"message": "Invalid email or password"}

    response = await client.post(f"{API}/auth/signup", json={"name": "No Email", "password": "secret123"})
    assert response.status_code == 400
    assert "email" in response.json()["message"]

    response = await client.get(f"{API}/students/enrollments")
    assert response.status_code == 401
    assert response.json() == {"message": "Not authenticated"}


async def test_blocked_account_is_refused(client, student):
    user = await user_of(student)
    user.is_blocked = True
    await user.save()

    response = await client.get(f"{API}/students/enrollments", headers=auth_headers(user))

    assert response.status_code == 403
    assert response.json() == {"message": BLOCKED_MESSAGE}


async def test_enrollment_payment_flow(client, student, payment_admin, teacher):
    headers = auth_headers(await user_of(student))
    payload = {"course_id": 101, "requires_verification": True}

    response = await client.post(f"{API}/students/enroll", json=payload, headers=headers)
    assert response.status_code == 201
    enrollment = response.json()["enrollment"]
    assert enrollment["status"] == "pending"
    assert enrollment["course_id"] == 101
    assert enrollment["course_title"] == "Course 101"

    payload.update(transaction_id="TX-9", amount_paid=5000)
    response = await client.post(f"{API}/students/enroll", json=payload, headers=headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Enrollment updated successfully"
    assert response.json()["enrollment"]["id"] == enrollment["id"]

    # Teachers cannot review payments
    response = await client.put(
        f"{API}/enrollments/{enrollment['id']}/verify-payment",
        headers=auth_headers(await user_of(teacher)),
    )
    assert response.status_code == 403

    response = await client.get(f"{API}/enrollments/payments", headers=auth_headers(payment_admin))
    assert response.json()["page_info"]["total_items"] == 1

    url = f"{API}/enrollments/{enrollment['id']}/verify-payment"
    response = await client.put(url, headers=auth_headers(payment_admin))
    assert response.status_code == 200
    assert response.json()["enrollment"]["status"] == "active"

    response = await client.put(url, headers=auth_headers(payment_admin))
    assert response.status_code == 400
    assert "not pending" in response.json()["message"]

    response = await client.get(f"{API}/notifications", headers=headers)
    assert [n["type"] for n in response.json()["notifications"]] == ["payment_approved"]


async def test_reject_payment_over_http(client, student, payment_admin):
    headers = auth_headers(await user_of(student))
    response = await client.post(
        f"{API}/students/enroll", json={"course_id": "3", "requires_verification": True}, headers=headers
    )
    enrollment_id = response.json()["enrollment"]["id"]

    response = await client.put(
        f"{API}/enrollments/{enrollment_id}/reject-payment",
        json={"reason": "bad screenshot"},
        headers=auth_headers(payment_admin),
    )

    assert response.status_code == 200
    assert response.json()["enrollment"]["status"] == "cancelled"
    assert response.json()["enrollment"]["rejection_reason"] == "bad screenshot"


async def test_progress_completion_and_review(client, student, teacher, general_admin):
    course = await create_course(teacher)
    headers = auth_headers(await user_of(student))

    response = await client.post(f"{API}/students/enroll", json={"course_id": course.id}, headers=headers)
    assert response.status_code == 201
    enrollment_id = response.json()["enrollment"]["id"]

    response = await client.get(f"{API}/reviews/can-review/{teacher.id}/{course.id}", headers=headers)
    assert response.json()["can_review"] is False
    assert response.json()["reason"] == "not_completed"

    response = await client.put(
        f"{API}/students/enrollments/{enrollment_id}/progress", json={"progress": 150}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["course_completed"] is True
    assert response.json()["enrollment"]["progress"] == 100

    response = await client.get(f"{API}/reviews/can-review/{teacher.id}/{course.id}", headers=headers)
    assert response.json()["can_review"] is True

    response = await client.post(f"{API}/reviews", json={
        "teacher_id": teacher.id,
        "course_id": course.id,
        "rating": 5,
        "review_text": "Excellent",
    }, headers=headers)
    assert response.status_code == 201
    assert response.json()["review"]["course_title"] == "Python Basics"

    response = await client.get(f"{API}/reviews/teacher/{teacher.id}")
    assert response.json()["average_rating"] == 5

    response = await client.get(f"{API}/enrollments/certificates", headers=auth_headers(general_admin))
    assert response.json()["total"] == 1


async def test_second_enrollment_is_rejected_over_http(client, student):
    headers = auth_headers(await user_of(student))
    await client.post(f"{API}/students/enroll", json={"course_id": 2}, headers=headers)

    response = await client.post(f"{API}/students/enroll", json={"course_id": 2}, headers=headers)

    assert response.status_code == 400
    assert response.json() == {"message": "Already enrolled in this course"}
    assert await Enrollment.filter(status=EnrollmentStatus.ACTIVE).count() == 1


async def test_catalog_course_placeholder(client):
    response = await client.get(f"{API}/courses/9")

    assert response.status_code == 200
    assert response.json()["is_placeholder"] is True
    assert response.json()["course_title"] == "The Web Developer Bootcamp 2024"

    response = await client.get(f"{API}/courses/5000")
    assert response.status_code == 404


async def test_teacher_creates_course_for_approval(client, teacher, general_admin):
    response = await client.post(f"{API}/courses", json={
        "course_title": "Rust for Pythonistas",
        "short_description": "Systems programming",
        "long_description": "Ownership and borrowing",
        "course_categories": ["Programming"],
        "course_level": ["Intermediate"],
        "original_price": 8000,
        "course_image": "https://example.com/rust.png",
        "learning_outcomes": ["Write safe Rust"],
        "requirements": ["Python"],
        "content": [{"section_title": "Introduction", "topic_title": "Why Rust"}],
    }, headers=auth_headers(await user_of(teacher)))

    assert response.status_code == 201
    course = response.json()["course"]
    assert course["is_approved"] is False

    response = await client.get(f"{API}/courses/pending", headers=auth_headers(general_admin))
    assert [c["id"] for c in response.json()["courses"]] == [course["id"]]

    response = await client.put(f"{API}/courses/{course['id']}/approve", headers=auth_headers(general_admin))
    assert response.json()["course"]["is_approved"] is True


async def test_admin_user_listing_is_paginated(client, general_admin, student, teacher):
    response = await client.get(
        f"{API}/users", params={"page_size": 2}, headers=auth_headers(general_admin)
    )

    assert response.status_code == 200
    body = response.json()
    assert len(body["items"]) == 2
    assert body["page_info"]["total_items"] == 3
    assert body["page_info"]["has_next"] is True


async def test_teacher_broadcast(client, teacher, student):
    course = await create_course(teacher)
    await client.post(
        f"{API}/students/enroll", json={"course_id": course.id}, headers=auth_headers(await user_of(student))
    )

    response = await client.post(
        f"{API}/notifications/broadcast",
        json={"type": "announcement", "message": "Exam on Friday"},
        headers=auth_headers(await user_of(teacher)),
    )

    assert response.status_code == 200
    assert response.json()["count"] == 1
