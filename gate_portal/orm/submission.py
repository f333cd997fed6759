"""
gate_portal/orm/submission.py
Test submission records

Key Design:
- One row per (student, test, attempt); enforced by a unique index
- Score, percentage and timing are written once by the submission service
  and never recomputed here
- Per-question verdicts are child rows in answer-key order
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, Float, Boolean, ForeignKey, Index, Enum as SQLEnum, JSON
from sqlalchemy.orm import relationship
from enum import Enum
from gate_portal.orm.base import BaseModel


class SubmissionStatus(str, Enum):
    IN_PROGRESS = "inprogress"
    COMPLETED = "completed"
    ABORTED = "aborted"


class AnswerStatus(str, Enum):
    ANSWERED = "answered"
    NOT_ANSWERED = "not_answered"


class Submission(BaseModel):
    """
    Immutable audit record of one test attempt.
    """

    __tablename__ = "submissions"

    student_id = Column(
        String(64),
        nullable=False,
        index=True,
        comment="Authenticated student who submitted"
    )

    test_id = Column(
        Integer,
        ForeignKey("scheduled_tests.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    score = Column(Float, nullable=False)

    total_marks = Column(Float, nullable=False)

    status = Column(
        SQLEnum(SubmissionStatus),
        nullable=False,
        default=SubmissionStatus.COMPLETED,
        index=True
    )

    start_time = Column(DateTime, nullable=False)

    end_time = Column(DateTime, nullable=True)

    submitted_at = Column(DateTime, nullable=False)

    time_taken_seconds = Column(Integer, nullable=False, default=0)

    duration_minutes = Column(
        Integer,
        nullable=False,
        comment="Allowed duration copied from the test"
    )

    percentage = Column(Float, nullable=False)

    is_passed = Column(Boolean, nullable=False)

    ip_address = Column(String(64), nullable=True)

    user_agent = Column(String(500), nullable=True)

    is_auto_submitted = Column(Boolean, nullable=False, default=False)

    attempt_number = Column(Integer, nullable=False, default=1)

    warning_count = Column(
        Integer,
        nullable=False,
        default=0,
        comment="Fullscreen / tab-switch warnings raised during the attempt"
    )

    # "metadata" is reserved on declarative classes
    submission_metadata = Column("metadata", JSON, nullable=False, default=dict)

    answers = relationship(
        "SubmissionAnswer",
        back_populates="submission",
        order_by="SubmissionAnswer.position",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    __table_args__ = (
        Index(
            "ix_submission_student_test_attempt",
            "student_id", "test_id", "attempt_number",
            unique=True
        ),
    )

    def __repr__(self):
        return f"<Submission(id={self.id}, student={self.student_id}, test={self.test_id}, score={self.score})>"

    def to_dict(self, include_answers: bool = True) -> dict:
        """Convert to dictionary for API responses."""
        data = {
            "id": self.id,
            "student_id": self.student_id,
            "test_id": self.test_id,
            "score": self.score,
            "total_marks": self.total_marks,
            "status": self.status.value if self.status else None,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "time_taken_seconds": self.time_taken_seconds,
            "duration_minutes": self.duration_minutes,
            "percentage": self.percentage,
            "is_passed": self.is_passed,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "is_auto_submitted": self.is_auto_submitted,
            "attempt_number": self.attempt_number,
            "warning_count": self.warning_count,
            "metadata": dict(self.submission_metadata or {}),
        }

        if include_answers:
            data["answers"] = [a.to_dict() for a in self.answers]

        return data


class SubmissionAnswer(BaseModel):
    """Verdict for one question of a submission."""

    __tablename__ = "submission_answers"

    submission_id = Column(
        Integer,
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    question_id = Column(String(64), nullable=False)

    position = Column(Integer, nullable=False)

    submitted_answer = Column(Text, nullable=False)

    is_correct = Column(Boolean, nullable=False, default=False)

    status = Column(SQLEnum(AnswerStatus), nullable=False)

    submission = relationship("Submission", back_populates="answers")

    __table_args__ = (
        Index("ix_submission_answer_question", "submission_id", "question_id", unique=True),
    )

    def to_dict(self) -> dict:
        return {
            "question_id": self.question_id,
            "submitted_answer": self.submitted_answer,
            "is_correct": self.is_correct,
            "status": self.status.value if self.status else None,
        }
