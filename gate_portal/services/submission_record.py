"""
gate_portal/services/submission_record.py
Submission record model and its derived values

Every derived field of a submission (percentage, pass flag, elapsed time,
summary counts) is computed here and only here. The ORM row stores what
this module produces.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from gate_portal.orm.submission import AnswerStatus, SubmissionStatus
from gate_portal.services.scoring_engine import AnswerVerdict


PASS_PERCENTAGE = 50.0


@dataclass(frozen=True)
class RequestMeta:
    """What the request tells us about the client."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    screen_resolution: Optional[str] = None
    timezone: Optional[str] = None


@dataclass(frozen=True)
class ElapsedTime:
    seconds: int
    # Seconds the clock ran backwards, when the raw difference was negative.
    clock_skew_seconds: Optional[int] = None


def compute_percentage(score: float, total_marks: float) -> float:
    if total_marks > 0:
        return (score / total_marks) * 100
    return 0.0


def is_passing(percentage: float) -> bool:
    return percentage >= PASS_PERCENTAGE


def compute_time_taken(
    start_time: datetime,
    end_time: Optional[datetime],
    submitted_at: Optional[datetime] = None,
) -> ElapsedTime:
    """
    Whole seconds between start and end, never negative.

    end_time falls back to submitted_at when unknown. A negative difference
    (client clock ahead of the server, reversed timestamps) is clamped to 0
    and the skew is reported so it can be stored with the record.
    """
    finished = end_time if end_time is not None else submitted_at
    if finished is None:
        return ElapsedTime(seconds=0)

    delta = (finished - start_time).total_seconds()
    if delta < 0:
        return ElapsedTime(seconds=0, clock_skew_seconds=math.ceil(-delta))
    return ElapsedTime(seconds=math.floor(delta))


@dataclass(frozen=True)
class SubmissionRecord:
    """
    The result of one test attempt.

    Built once by the submission service and persisted as-is.
    """

    student_id: str
    test_id: str
    score: float
    total_marks: float
    answers: Tuple[AnswerVerdict, ...]
    start_time: datetime
    end_time: Optional[datetime]
    submitted_at: datetime
    time_taken_seconds: int
    duration_minutes: int
    percentage: float
    is_passed: bool
    status: SubmissionStatus = SubmissionStatus.COMPLETED
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    is_auto_submitted: bool = False
    attempt_number: int = 1
    warning_count: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: Optional[int] = None

    @property
    def answered_count(self) -> int:
        return sum(1 for a in self.answers if a.status == AnswerStatus.ANSWERED)

    @property
    def correct_count(self) -> int:
        return sum(1 for a in self.answers if a.is_correct)

    def get_summary(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "total_marks": self.total_marks,
            "percentage": round(self.percentage, 2),
            "is_passed": self.is_passed,
            "time_taken": self.time_taken_seconds,
            "answered_count": self.answered_count,
            "correct_count": self.correct_count,
            "total_questions": len(self.answers),
        }
