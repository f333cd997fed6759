"""
gate_portal/tests/test_api_routes.py
API contract tests

These tests verify:
1. Error responses follow the standard format
2. Role checks on every endpoint
3. Schedule -> submit -> results flow end to end
4. Students never see the answer key
"""
from datetime import timedelta

import pytest

from gate_portal.errors import ErrorCode
from gate_portal.orm.base import utc_now
from gate_portal.tests.helpers import (
    DEPARTMENT,
    STUDENT_ID,
    TEACHER_ID,
    bearer,
    make_token,
    schedule_payload,
)


async def schedule(client, teacher_headers, **overrides):
    response = await client.post("/api/tests/schedule", json=schedule_payload(**overrides), headers=teacher_headers)
    assert response.status_code == 201, response.text
    return response.json()["test"]


def answers_for(test, *texts):
    return [{"question_id": q["id"], "answer": text} for q, text in zip(test["questions"], texts)]


class TestHealthEndpoints:

    @pytest.mark.asyncio
    async def test_main_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_errors_health(self, client):
        response = await client.get("/api/errors/health")
        assert response.status_code == 200
        data = response.json()
        assert "status_codes" in data
        assert ErrorCode.ALREADY_SUBMITTED in data["error_codes"]


class TestErrorResponseFormat:

    @pytest.mark.asyncio
    async def test_401_without_token(self, client):
        response = await client.get("/api/tests")
        assert response.status_code == 401
        data = response.json()
        assert data["success"] is False
        assert data["code"] == ErrorCode.AUTH_REQUIRED

    @pytest.mark.asyncio
    async def test_401_bad_signature(self, client):
        token = make_token(STUDENT_ID, "student", secret="someone-else")
        response = await client.get("/api/tests", headers=bearer(token))
        assert response.status_code == 401
        assert response.json()["code"] == ErrorCode.AUTH_INVALID

    @pytest.mark.asyncio
    async def test_401_expired(self, client):
        token = make_token(STUDENT_ID, "student", expires_in=timedelta(minutes=-5))
        response = await client.get("/api/tests", headers=bearer(token))
        assert response.status_code == 401
        assert response.json()["code"] == ErrorCode.AUTH_EXPIRED

    @pytest.mark.asyncio
    async def test_401_unknown_role(self, client):
        response = await client.get("/api/tests", headers=bearer(make_token("x", "admin")))
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_403_student_cannot_schedule(self, client, student_headers):
        response = await client.post("/api/tests/schedule", json=schedule_payload(), headers=student_headers)
        assert response.status_code == 403
        assert response.json()["code"] == ErrorCode.FORBIDDEN

    @pytest.mark.asyncio
    async def test_403_teacher_cannot_submit(self, client, teacher_headers):
        response = await client.post(
            "/api/tests/submit-test", json={"test_id": 1, "answers": []}, headers=teacher_headers
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_422_validation_format(self, client, student_headers):
        response = await client.post("/api/tests/submit-test", json={"answers": []}, headers=student_headers)
        assert response.status_code == 422
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "Validation Error"
        assert isinstance(data["details"], list)

    @pytest.mark.asyncio
    async def test_400_invalid_question(self, client, teacher_headers):
        payload = schedule_payload(questions=[{"question_text": "?", "type": "mcq", "options": ["a"]}])
        response = await client.post("/api/tests/schedule", json=payload, headers=teacher_headers)
        assert response.status_code == 400
        data = response.json()
        assert data["code"] == ErrorCode.INVALID_QUESTION
        assert data["details"] == {"question_index": 0}

    @pytest.mark.asyncio
    async def test_404_unknown_test(self, client, student_headers):
        response = await client.post(
            "/api/tests/submit-test", json={"test_id": 9999, "answers": []}, headers=student_headers
        )
        assert response.status_code == 404
        assert response.json()["code"] == ErrorCode.TEST_NOT_FOUND


class TestSubmissionFlow:

    @pytest.mark.asyncio
    async def test_submit_scores_and_records(self, client, teacher_headers, student_headers):
        test = await schedule(client, teacher_headers)

        response = await client.post(
            "/api/tests/submit-test",
            json={"test_id": test["id"], "answers": answers_for(test, "Paris", "Z,X", "42.0")},
            headers={**student_headers, "X-Forwarded-For": "203.0.113.9, 10.0.0.1", "User-Agent": "pytest-browser"},
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["message"] == "Test submitted successfully!"
        assert data["submission_id"] is not None
        assert data["score"] == 5
        assert [r["is_correct"] for r in data["results"]] == [True, True, False]
        assert data["time_taken"] == 3600
        assert data["summary"]["total_marks"] == 6
        assert data["summary"]["percentage"] == 83.33
        assert data["summary"]["is_passed"] is True

        submissions = await client.get(f"/api/tests/{test['id']}/submissions", headers=teacher_headers)
        assert submissions.status_code == 200
        [stored] = submissions.json()
        assert stored["student_id"] == STUDENT_ID
        assert stored["ip_address"] == "203.0.113.9"
        assert stored["status"] == "completed"

    @pytest.mark.asyncio
    async def test_not_answered_questions(self, client, teacher_headers, student_headers):
        test = await schedule(client, teacher_headers)

        response = await client.post(
            "/api/tests/submit-test",
            json={"test_id": str(test["id"]), "answers": answers_for(test, "", "  ")},
            headers=student_headers,
        )

        data = response.json()
        assert data["score"] == 0
        assert [r["status"] for r in data["results"]] == ["not_answered"] * 3
        assert all(r["submitted_answer"] == "Not Answered" for r in data["results"])

    @pytest.mark.asyncio
    async def test_second_submission_conflicts(self, client, teacher_headers, student_headers):
        test = await schedule(client, teacher_headers)
        body = {"test_id": test["id"], "answers": answers_for(test, "Paris")}

        first = await client.post("/api/tests/submit-test", json=body, headers=student_headers)
        second = await client.post("/api/tests/submit-test", json=body, headers=student_headers)

        assert first.status_code == 200
        assert second.status_code == 409
        assert second.json()["code"] == ErrorCode.ALREADY_SUBMITTED

    @pytest.mark.asyncio
    async def test_analytics_and_teacher_results(self, client, teacher_headers, student_headers):
        test = await schedule(client, teacher_headers)
        other_student = bearer(make_token("student-2", "student", department=DEPARTMENT))

        await client.post(
            "/api/tests/submit-test",
            json={"test_id": test["id"], "answers": answers_for(test, "Paris", "X,Z", "42")},
            headers=student_headers,
        )
        await client.post(
            "/api/tests/submit-test",
            json={"test_id": test["id"], "answers": answers_for(test, "Rome")},
            headers=other_student,
        )

        analytics = (await client.get(f"/api/tests/{test['id']}/analytics", headers=teacher_headers)).json()
        assert analytics["total_submissions"] == 2
        assert analytics["average_score"] == 3.0
        assert analytics["highest_score"] == 6
        assert analytics["lowest_score"] == 0
        assert analytics["pass_rate"] == 50.0
        assert [b["count"] for b in analytics["score_distribution"]] == [1, 0, 0, 0, 1]

        results = (await client.get("/api/tests/teacher/results", headers=teacher_headers)).json()
        assert results[0]["id"] == test["id"]
        assert results[0]["submission_count"] == 2
        assert results[0]["average_score"] == 3.0

    @pytest.mark.asyncio
    async def test_analytics_without_submissions(self, client, teacher_headers):
        test = await schedule(client, teacher_headers)

        response = await client.get(f"/api/tests/{test['id']}/analytics", headers=teacher_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_submissions"] == 0
        assert data["average_score"] == 0.0
        assert data["pass_rate"] == 0.0

    @pytest.mark.asyncio
    async def test_student_cannot_read_analytics(self, client, teacher_headers, student_headers):
        test = await schedule(client, teacher_headers)
        response = await client.get(f"/api/tests/{test['id']}/analytics", headers=student_headers)
        assert response.status_code == 403


class TestCatalogue:

    @pytest.mark.asyncio
    async def test_student_view_hides_answers(self, client, teacher_headers, student_headers):
        test = await schedule(client, teacher_headers)

        student_view = (await client.get(f"/api/tests/{test['id']}", headers=student_headers)).json()
        teacher_view = (await client.get(f"/api/tests/{test['id']}", headers=teacher_headers)).json()

        assert all("correct_answer" not in q for q in student_view["questions"])
        assert teacher_view["questions"][0]["correct_answer"] == ["A"]

    @pytest.mark.asyncio
    async def test_unknown_test_detail(self, client, student_headers):
        response = await client.get("/api/tests/9999", headers=student_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_department_listing(self, client, teacher_headers, student_headers):
        await schedule(client, teacher_headers)
        await schedule(client, teacher_headers, department="ECE", test_title="ECE Mock")

        own = (await client.get("/api/tests/department", headers=student_headers)).json()
        ece = (await client.get("/api/tests/department", params={"department": "ECE"}, headers=student_headers)).json()

        assert [t["department"] for t in own] == [DEPARTMENT]
        assert [t["test_title"] for t in ece] == ["ECE Mock"]

    @pytest.mark.asyncio
    async def test_department_required(self, client):
        headers = bearer(make_token("student-9", "student"))
        response = await client.get("/api/tests/department", headers=headers)
        assert response.status_code == 400
        assert response.json()["code"] == ErrorCode.MISSING_FIELD

    @pytest.mark.asyncio
    async def test_scheduled_excludes_finished_tests(self, client, teacher_headers, student_headers):
        await schedule(client, teacher_headers)
        payload = schedule_payload(test_title="Old")
        past = utc_now() - timedelta(days=2)
        payload["start_time"] = past.isoformat()
        payload["end_time"] = (past + timedelta(hours=3)).isoformat()
        await client.post("/api/tests/schedule", json=payload, headers=teacher_headers)

        response = await client.get("/api/tests/scheduled", headers=student_headers)

        assert [t["test_title"] for t in response.json()] == ["GATE Mock 1"]

    @pytest.mark.asyncio
    async def test_listing_by_role(self, client, teacher_headers, student_headers):
        await schedule(client, teacher_headers)
        other_teacher = bearer(make_token("teacher-2", "teacher"))
        await schedule(client, other_teacher, test_title="Someone else's")

        mine = (await client.get("/api/tests", headers=teacher_headers)).json()
        students = (await client.get("/api/tests", headers=student_headers)).json()
        teacher_tests = (await client.get("/api/tests/teacher", headers=teacher_headers)).json()

        assert [t["created_by"] for t in mine] == [TEACHER_ID]
        assert len(students) == 2
        assert [t["test_title"] for t in teacher_tests] == ["GATE Mock 1"]
        assert teacher_tests[0]["submission_count"] == 0
