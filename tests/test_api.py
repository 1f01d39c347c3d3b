from datetime import datetime, timezone
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.enums import Role


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


CONFLICT_CHECK = {
    "weekly_schedule": {"monday": [{"start": "09:00", "end": "10:00"}]},
    "start_date": "2025-01-01",
    "end_date": "2025-01-31",
}


@pytest.mark.asyncio
async def test_requests_without_token_are_rejected(client: AsyncClient) -> None:
    response = await client.post("/api/v1/scheduling/conflicts", json=CONFLICT_CHECK)
    assert response.status_code == 401

    response = await client.post(
        "/api/v1/scheduling/conflicts",
        json=CONFLICT_CHECK,
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_conflict_check_endpoint(client: AsyncClient, make_class, auth_headers) -> None:
    student_id = uuid4()
    await make_class(title="Piano", student_ids=[student_id], sessions=[(utc(2025, 1, 13, 8), utc(2025, 1, 13, 11))])

    response = await client.post(
        "/api/v1/scheduling/conflicts",
        json={**CONFLICT_CHECK, "student_ids": [str(student_id)]},
        headers=auth_headers(uuid4(), Role.MODERATOR),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["has_conflict"] is True
    conflict = data["results"][0]["conflicts"][0]
    assert conflict["day"] == 0
    assert conflict["existing_slot"] == {"start": "08:00", "end": "11:00"}
    assert conflict["message"] == 'Conflicts with existing class "Piano"'


@pytest.mark.asyncio
async def test_students_cannot_run_conflict_checks(client: AsyncClient, auth_headers) -> None:
    response = await client.post(
        "/api/v1/scheduling/conflicts",
        json=CONFLICT_CHECK,
        headers=auth_headers(uuid4(), Role.STUDENT),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_invalid_slot_is_a_400(client: AsyncClient, auth_headers) -> None:
    response = await client.post(
        "/api/v1/scheduling/conflicts",
        json={**CONFLICT_CHECK, "weekly_schedule": {"monday": [{"start": "10:00", "end": "09:00"}]}},
        headers=auth_headers(uuid4(), Role.ADMIN),
    )
    assert response.status_code == 400
    assert "end must be after start" in response.json()["detail"]


@pytest.mark.asyncio
async def test_create_class_status_codes(client: AsyncClient, make_class, auth_headers) -> None:
    student_id = uuid4()
    await make_class(title="Piano", student_ids=[student_id], sessions=[(utc(2025, 1, 13, 8), utc(2025, 1, 13, 11))])
    headers = auth_headers(uuid4(), Role.MODERATOR)
    payload = {
        "title": "Violin",
        "subject": "Music",
        "start_date": "2025-01-06",
        "end_date": "2025-01-19",
        "weekly_schedule": {"monday": [{"start": "09:00", "end": "10:00"}]},
        "teacher_ids": [str(uuid4())],
        "student_ids": [str(student_id)],
    }

    blocked = await client.post("/api/v1/classes", json=payload, headers=headers)
    assert blocked.status_code == 200
    assert blocked.json()["created"] is False

    forced = await client.post("/api/v1/classes", json={**payload, "force": True}, headers=headers)
    assert forced.status_code == 201
    body = forced.json()
    assert body["sessions_created"] == 2

    sessions = await client.get(f"/api/v1/classes/{body['academy_class']['id']}/sessions", headers=headers)
    assert sessions.status_code == 200
    assert len(sessions.json()) == 2


@pytest.mark.asyncio
async def test_teacher_sets_own_availability_only(client: AsyncClient, auth_headers) -> None:
    teacher_id = uuid4()
    payload = {"weekly_schedule": {"tuesday": [{"start": "08:00", "end": "12:00"}]}}

    own = await client.put(
        f"/api/v1/scheduling/availability/{teacher_id}", json=payload, headers=auth_headers(teacher_id, Role.TEACHER)
    )
    assert own.status_code == 200
    assert own.json()["weekly_schedule"]["tuesday"] == [{"start": "08:00", "end": "12:00"}]

    other = await client.put(
        f"/api/v1/scheduling/availability/{uuid4()}", json=payload, headers=auth_headers(teacher_id, Role.TEACHER)
    )
    assert other.status_code == 403


@pytest.mark.asyncio
async def test_billing_flow(client: AsyncClient, db_session: AsyncSession, make_class, auth_headers) -> None:
    student_id = uuid4()
    moderator = auth_headers(uuid4(), Role.MODERATOR)

    missing = await client.get(
        f"/api/v1/billing/students/{student_id}",
        params={"period_start": "2025-03-01", "period_end": "2025-03-31"},
        headers=moderator,
    )
    assert missing.status_code == 404
    assert "no active subscription" in missing.json()["detail"]

    plan = await client.post(
        "/api/v1/subscriptions",
        json={"name": "Standard", "hourly_rate": "20.00", "max_free_absences": 2},
        headers=moderator,
    )
    assert plan.status_code == 201
    activated = await client.post(
        "/api/v1/student-subscriptions",
        json={
            "student_id": str(student_id),
            "subscription_id": plan.json()["id"],
            "start_date": "2025-03-01",
            "end_date": "2025-04-01",
        },
        headers=moderator,
    )
    assert activated.status_code == 201
    assert activated.json()["every_month"] is False

    _, sessions = await make_class(
        student_ids=[student_id],
        sessions=[(utc(2025, 3, 3, 9), utc(2025, 3, 3, 10)), (utc(2025, 3, 10, 9), utc(2025, 3, 10, 10))],
    )
    marked = await client.post(
        f"/api/v1/attendance/sessions/{sessions[0].id}",
        json={"records": [{"student_id": str(student_id), "status": "present"}]},
        headers=auth_headers(uuid4(), Role.TEACHER),
    )
    assert marked.status_code == 201

    # Students can read their own bill
    bill = await client.get(
        f"/api/v1/billing/students/{student_id}",
        params={"period_start": "2025-03-01", "period_end": "2025-03-31"},
        headers=auth_headers(student_id, Role.STUDENT),
    )
    assert bill.status_code == 200
    data = bill.json()
    assert data["sessions_scheduled"] == 2
    assert data["sessions_attended"] == 1
    assert data["free_absences_used"] == 1
    assert data["formatted_total_amount"] == "$20.00"

    ledger = await client.get(
        f"/api/v1/attendance/students/{student_id}",
        params={"start_date": "2025-03-01", "end_date": "2025-03-31"},
        headers=auth_headers(student_id, Role.STUDENT),
    )
    assert [e["outcome"] for e in ledger.json()["entries"]] == ["present", "unmarked"]

    someone_else = await client.get(
        f"/api/v1/billing/students/{student_id}",
        params={"period_start": "2025-03-01", "period_end": "2025-03-31"},
        headers=auth_headers(uuid4(), Role.STUDENT),
    )
    assert someone_else.status_code == 403
