from .base import Base, BaseModel, utc_now, to_naive_utc

from .scheduled_test import ScheduledTest, TestQuestion, QuestionType
from .submission import Submission, SubmissionAnswer, SubmissionStatus, AnswerStatus

__all__ = [
    "Base",
    "BaseModel",
    "utc_now",
    "to_naive_utc",
    "ScheduledTest",
    "TestQuestion",
    "QuestionType",
    "Submission",
    "SubmissionAnswer",
    "SubmissionStatus",
    "AnswerStatus",
]
