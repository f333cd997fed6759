"""Test data builders shared by the unit and API tests."""
from datetime import timedelta

from jose import jwt

from gate_portal.orm.base import utc_now

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_SECRET = "test-secret-key"

TEACHER_ID = "teacher-1"
STUDENT_ID = "student-1"
DEPARTMENT = "CSE"


class FixedClock:
    def __init__(self, now):
        self._now = now

    def now(self):
        return self._now


def make_token(sub, role, department=None, secret=TEST_SECRET, expires_in=timedelta(hours=1)):
    payload = {"sub": sub, "role": role, "exp": utc_now() + expires_in}
    if department is not None:
        payload["department"] = department
    return jwt.encode(payload, secret, algorithm="HS256")


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def schedule_payload(**overrides):
    """A valid schedule request with one question of each type."""
    now = utc_now()
    payload = {
        "department": DEPARTMENT,
        "test_title": "GATE Mock 1",
        "subject_name": "General Aptitude",
        "duration_minutes": 60,
        "start_time": (now - timedelta(hours=1)).isoformat(),
        "end_time": (now + timedelta(hours=2)).isoformat(),
        "questions": [
            {
                "question_text": "Capital of France?",
                "type": "mcq",
                "options": ["Paris", "Rome", "Berlin", "Madrid"],
                "correct_answer": "A",
                "mark": 2,
            },
            {
                "question_text": "Pick the first and last",
                "type": "msq",
                "options": ["X", "Y", "Z"],
                "correct_answer": ["A", "C"],
                "mark": 3,
            },
            {
                "question_text": "6 * 7 = ?",
                "type": "nat",
                "correct_answer": "42",
                "mark": 1,
            },
        ],
    }
    payload.update(overrides)
    return payload
