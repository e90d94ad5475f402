"""Endpoint tests over the ASGI app."""

import uuid

from pathway.db.enums import Role
from pathway.db.models import Member

from conftest import auth_headers, make_member, make_quiz, make_text_activity


# =============================================================================
# Platform
# =============================================================================


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_request_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


async def test_missing_token_is_unauthorized(client):
    response = await client.get("/auth/me")

    assert response.status_code == 401
    assert response.json()["detail"] == "Token not provided"


async def test_invalid_token_is_unauthorized(client):
    response = await client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


async def test_inactive_member_is_unauthorized(client, db, test_org):
    member = make_member(db, Role.INSTRUCTOR, test_org, is_active=False)

    response = await client.get("/auth/me", headers=auth_headers(member))

    assert response.status_code == 401
    assert response.json()["detail"] == "Account disabled"


# =============================================================================
# Registration and admission
# =============================================================================


async def test_registration_then_approval_grants_access(client, db, test_org, supervisor, dispatcher):
    response = await client.post(
        "/auth/register",
        json={"name": "Nova", "email": "nova@test.com", "organization_id": str(test_org.id)},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "under_review"

    applicant = db.get(Member, uuid.UUID(body["member_id"]))
    pending = await client.get("/auth/me", headers=auth_headers(applicant))
    assert pending.status_code == 401
    assert pending.json()["detail"] == "Entry request not approved yet"

    listing = await client.get("/entry-requests", headers=auth_headers(supervisor))
    assert listing.status_code == 200
    assert [r["id"] for r in listing.json()] == [body["request_id"]]
    assert listing.json()[0]["applicant"]["email"] == "nova@test.com"

    approve = await client.post(
        f"/entry-requests/{body['request_id']}/approve", headers=auth_headers(supervisor)
    )
    assert approve.status_code == 200
    assert approve.json()["status"] == "approved"
    assert len(dispatcher.sent) == 1

    me = await client.get("/auth/me", headers=auth_headers(applicant))
    assert me.status_code == 200
    assert me.json()["organization_id"] == str(test_org.id)
    assert me.json()["organization_name"] == test_org.name
    assert me.json()["phase"] == "1"


async def test_rejected_applicant_applies_again(client, db, test_org, supervisor):
    registered = await client.post(
        "/auth/register",
        json={"name": "Remy", "email": "remy@test.com", "organization_id": str(test_org.id)},
    )
    first_request = registered.json()["request_id"]
    reject = await client.post(
        f"/entry-requests/{first_request}/reject", headers=auth_headers(supervisor)
    )
    assert reject.status_code == 200

    again = await client.post(
        "/entry-requests",
        json={"email": "remy@test.com", "organization_id": str(test_org.id)},
    )

    assert again.status_code == 201
    assert again.json()["member_id"] == registered.json()["member_id"]
    assert again.json()["request_id"] != first_request
    assert again.json()["status"] == "under_review"

    duplicate = await client.post(
        "/entry-requests",
        json={"email": "remy@test.com", "organization_id": str(test_org.id)},
    )
    assert duplicate.status_code == 409


async def test_apply_with_unknown_email_is_not_found(client, test_org):
    response = await client.post(
        "/entry-requests",
        json={"email": "ghost@test.com", "organization_id": str(test_org.id)},
    )

    assert response.status_code == 404


async def test_register_administrator_role_is_bad_request(client, test_org):
    response = await client.post(
        "/auth/register",
        json={
            "name": "Root",
            "email": "root@test.com",
            "role": "administrator",
            "organization_id": str(test_org.id),
        },
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "role"


async def test_register_unknown_organization_is_bad_request(client, db):
    response = await client.post(
        "/auth/register",
        json={"name": "Lost", "email": "lost@test.com", "organization_id": str(uuid.uuid4())},
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "organization_id"


async def test_register_validation_reports_each_field(client):
    response = await client.post(
        "/auth/register",
        json={"name": "X", "email": "not-an-email", "organization_id": "nope"},
    )

    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["errors"]}
    assert fields == {"name", "email", "organization_id"}


async def test_duplicate_registration_conflicts(client, test_org):
    payload = {"name": "Twin", "email": "twin@test.com", "organization_id": str(test_org.id)}
    await client.post("/auth/register", json=payload)

    response = await client.post("/auth/register", json=payload)

    assert response.status_code == 409


async def test_learner_cannot_list_entry_requests(client, learner):
    response = await client.get("/entry-requests", headers=auth_headers(learner))

    assert response.status_code == 403


async def test_approve_unknown_request_is_not_found(client, admin):
    response = await client.post(
        f"/entry-requests/{uuid.uuid4()}/approve", headers=auth_headers(admin)
    )

    assert response.status_code == 404


async def test_reject_request(client, test_org, supervisor):
    registered = await client.post(
        "/auth/register",
        json={"name": "Nope", "email": "nope@test.com", "organization_id": str(test_org.id)},
    )

    response = await client.post(
        f"/entry-requests/{registered.json()['request_id']}/reject",
        headers=auth_headers(supervisor),
    )

    assert response.status_code == 200
    assert response.json()["status"] == "rejected"


# =============================================================================
# Organizations, members, content
# =============================================================================


async def test_organization_lifecycle(client, admin, test_org):
    created = await client.post(
        "/organizations", json={"name": "North"}, headers=auth_headers(admin)
    )
    assert created.status_code == 201

    deactivated = await client.post(
        f"/organizations/{created.json()['id']}/deactivate", headers=auth_headers(admin)
    )
    assert deactivated.status_code == 200
    assert deactivated.json()["is_active"] is False

    listing = await client.get("/organizations")
    assert [o["name"] for o in listing.json()] == [test_org.name]


async def test_only_admin_creates_organizations(client, supervisor):
    response = await client.post(
        "/organizations", json={"name": "Rogue"}, headers=auth_headers(supervisor)
    )

    assert response.status_code == 403


async def test_admin_provisions_members(client, admin, test_org, supervisor):
    created = await client.post(
        "/members",
        json={
            "name": "Ivy Instructor",
            "email": "ivy@test.com",
            "role": "instructor",
            "organization_id": str(test_org.id),
        },
        headers=auth_headers(admin),
    )
    assert created.status_code == 201
    assert created.json()["is_approved"] is True

    second_supervisor = await client.post(
        "/members",
        json={
            "name": "Second Supervisor",
            "email": "second@test.com",
            "role": "supervisor",
            "organization_id": str(test_org.id),
        },
        headers=auth_headers(admin),
    )
    assert second_supervisor.status_code == 409


async def test_supervisor_moves_learner_phase(client, supervisor, learner):
    response = await client.patch(
        f"/members/{learner.id}/phase", json={"phase": "2"}, headers=auth_headers(supervisor)
    )

    assert response.status_code == 200
    assert response.json()["phase"] == "2"


async def test_admin_deactivates_member(client, admin, instructor):
    response = await client.patch(
        f"/members/{instructor.id}/status", json={"is_active": False}, headers=auth_headers(admin)
    )
    assert response.status_code == 200

    blocked = await client.get("/auth/me", headers=auth_headers(instructor))
    assert blocked.status_code == 401


async def test_content_returns_catalog(client, learner):
    response = await client.get("/content", headers=auth_headers(learner))

    assert response.status_code == 200
    assert [p["id"] for p in response.json()["phases"]] == ["1", "2"]


# =============================================================================
# Activities and submissions
# =============================================================================


async def test_create_activity_validation(client, supervisor):
    headers = auth_headers(supervisor)

    bad_phase = await client.post(
        "/activities", json={"title": "T", "type": "text", "phases": [17]}, headers=headers
    )
    assert bad_phase.status_code == 400
    assert bad_phase.json()["errors"][0]["field"] == "phases"

    no_questions = await client.post(
        "/activities", json={"title": "Q", "type": "quiz", "phases": [1]}, headers=headers
    )
    assert no_questions.status_code == 400

    created = await client.post(
        "/activities",
        json={
            "title": "Quiz",
            "type": "quiz",
            "phases": [1, 2],
            "questions": [{"text": "2 + 2", "options": ["3", "4"], "correct_option": "4"}],
        },
        headers=headers,
    )
    assert created.status_code == 201
    assert created.json()["phases"] == [1, 2]
    assert created.json()["questions"][0]["correct_option"] == "4"


async def test_learner_cannot_create_activity(client, learner):
    response = await client.post(
        "/activities", json={"title": "T", "type": "text", "phases": [1]}, headers=auth_headers(learner)
    )

    assert response.status_code == 403


async def test_learner_never_sees_correct_option(client, db, supervisor, learner):
    quiz = make_quiz(db, supervisor)

    detail = await client.get(f"/activities/{quiz.id}", headers=auth_headers(learner))
    listing = await client.get("/activities", headers=auth_headers(learner))

    assert detail.status_code == 200
    assert all(q["correct_option"] is None for q in detail.json()["questions"])
    assert all(q["correct_option"] is None for q in listing.json()[0]["questions"])


async def test_quiz_submission_flow(client, db, supervisor, instructor, learner):
    quiz = make_quiz(db, supervisor)
    answers = [
        {"question_id": str(q.id), "answer": q.correct_option} for q in quiz.questions
    ]

    created = await client.post(
        f"/activities/{quiz.id}/submissions",
        json={"quiz_answers": answers},
        headers=auth_headers(learner),
    )
    assert created.status_code == 201
    assert created.json()["score"] == 10
    assert created.json()["status"] == "graded"
    assert created.json()["is_auto_graded"] is True

    again = await client.post(
        f"/activities/{quiz.id}/submissions",
        json={"quiz_answers": answers},
        headers=auth_headers(learner),
    )
    assert again.status_code == 409

    listing = await client.get(f"/activities/{quiz.id}/submissions", headers=auth_headers(instructor))
    assert listing.status_code == 200
    assert len(listing.json()) == 1

    forbidden = await client.get(f"/activities/{quiz.id}/submissions", headers=auth_headers(learner))
    assert forbidden.status_code == 403


async def test_malformed_quiz_answers_are_bad_request(client, db, supervisor, learner):
    quiz = make_quiz(db, supervisor)

    response = await client.post(
        f"/activities/{quiz.id}/submissions",
        json={"quiz_answers": [{"question_id": "not-a-uuid", "answer": "4"}]},
        headers=auth_headers(learner),
    )

    assert response.status_code == 400


async def test_out_of_scope_submission_is_forbidden(client, db, supervisor, learner):
    activity = make_text_activity(db, supervisor, phases=(5,))

    response = await client.post(
        f"/activities/{activity.id}/submissions",
        json={"answer_text": "Hi"},
        headers=auth_headers(learner),
    )

    assert response.status_code == 403


async def test_grade_edit_and_delete(client, db, supervisor, instructor, learner, dispatcher):
    activity = make_text_activity(db, supervisor)
    submitted = await client.post(
        f"/activities/{activity.id}/submissions",
        json={"answer_text": "My essay"},
        headers=auth_headers(learner),
    )
    submission_id = submitted.json()["id"]

    out_of_range = await client.post(
        f"/submissions/{submission_id}/grade", json={"score": 12}, headers=auth_headers(instructor)
    )
    assert out_of_range.status_code == 400

    graded = await client.post(
        f"/submissions/{submission_id}/grade",
        json={"score": 8, "feedback": "Nice"},
        headers=auth_headers(instructor),
    )
    assert graded.status_code == 200
    assert graded.json()["graded_by_id"] == str(instructor.id)

    edited = await client.put(
        f"/activities/{activity.id}",
        json={"title": "Essay v2"},
        headers=auth_headers(supervisor),
    )
    assert edited.status_code == 200
    assert edited.json()["is_edited"] is True

    submissions = await client.get(
        f"/activities/{activity.id}/submissions", headers=auth_headers(supervisor)
    )
    assert [s["status"] for s in submissions.json()] == ["returned"]
    assert submissions.json()[0]["score"] is None

    blocked = await client.delete(f"/activities/{activity.id}", headers=auth_headers(supervisor))
    assert blocked.status_code == 409

    kinds = [m.kind.value for m in dispatcher.sent]
    assert kinds == ["submission_graded", "activity_returned"]


async def test_delete_activity_without_submissions(client, db, supervisor):
    activity = make_text_activity(db, supervisor)

    response = await client.delete(f"/activities/{activity.id}", headers=auth_headers(supervisor))

    assert response.status_code == 200
    missing = await client.get(f"/activities/{activity.id}", headers=auth_headers(supervisor))
    assert missing.status_code == 404


# =============================================================================
# Progress
# =============================================================================


async def test_progress_endpoints(client, learner, instructor, test_org, db):
    headers = auth_headers(learner)

    marked = await client.post(
        f"/members/{learner.id}/progress",
        json={"phase_id": "1", "topic_id": "t1"},
        headers=headers,
    )
    assert marked.status_code == 200
    assert marked.json()["progress"] == 0.2

    unknown = await client.post(
        f"/members/{learner.id}/progress",
        json={"phase_id": "1", "topic_id": "zzz"},
        headers=headers,
    )
    assert unknown.status_code == 400

    staff_view = await client.get(f"/members/{learner.id}/progress", headers=auth_headers(instructor))
    assert staff_view.status_code == 200
    assert [p["completed_topics"] for p in staff_view.json()] == [1, 0]

    classmate = make_member(db, Role.LEARNER, test_org)
    denied = await client.get(f"/members/{learner.id}/progress", headers=auth_headers(classmate))
    assert denied.status_code == 403


# =============================================================================
# Staff pushes
# =============================================================================


async def test_staff_push_endpoints(client, db, test_org, instructor, learner, dispatcher):
    single = await client.post(
        "/notifications/push",
        headers=auth_headers(instructor),
        json={"member_id": str(learner.id), "title": "Reminder", "message": "Bring your notes"},
    )
    assert single.status_code == 200
    assert single.json()["accepted"] == 1

    second = make_member(db, Role.LEARNER, test_org)
    bulk = await client.post(
        "/notifications/push/bulk",
        headers=auth_headers(instructor),
        json={
            "member_ids": [str(learner.id), str(second.id)],
            "title": "Schedule",
            "message": "No class next week",
        },
    )
    assert bulk.status_code == 200
    assert bulk.json()["accepted"] == 2

    assert [m.member_id for m in dispatcher.sent] == [learner.id, learner.id, second.id]
    assert dispatcher.sent[0].kind.value == "general"


async def test_learner_cannot_push(client, learner):
    response = await client.post(
        "/notifications/push",
        headers=auth_headers(learner),
        json={"member_id": str(learner.id), "title": "Hi", "message": "There"},
    )

    assert response.status_code == 403


async def test_bulk_push_requires_recipients(client, instructor):
    response = await client.post(
        "/notifications/push/bulk",
        headers=auth_headers(instructor),
        json={"member_ids": [], "title": "Hi", "message": "There"},
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "member_ids"
