"""
gate_portal/services/exam_store.py
Persistence for answer keys and submissions

The submission service talks to storage only through this class:
- find_answer_key(test_id)   -> AnswerKey | None
- insert_submission(record)  -> record with its id
- query_by_test(test_id)     -> [SubmissionRecord]

insert_submission writes the submission and all of its verdict rows in one
transaction. On any failure the transaction is rolled back, so readers
never see a half-written submission.
"""

import logging
from dataclasses import replace
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gate_portal.errors import PersistenceError, SubmissionConflictError, new_log_id
from gate_portal.orm.scheduled_test import ScheduledTest
from gate_portal.orm.submission import Submission, SubmissionAnswer, SubmissionStatus
from gate_portal.services.answer_key import AnswerKey, answer_key_from_test
from gate_portal.services.scoring_engine import AnswerVerdict
from gate_portal.services.submission_record import SubmissionRecord

logger = logging.getLogger(__name__)


def parse_id(value: Any) -> Optional[int]:
    """Database id from an opaque identifier, None when it cannot be one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def record_from_row(row: Submission) -> SubmissionRecord:
    return SubmissionRecord(
        id=row.id,
        student_id=row.student_id,
        test_id=str(row.test_id),
        score=row.score,
        total_marks=row.total_marks,
        answers=tuple(
            AnswerVerdict(
                question_id=a.question_id,
                submitted_answer=a.submitted_answer,
                is_correct=a.is_correct,
                status=a.status,
            )
            for a in row.answers
        ),
        start_time=row.start_time,
        end_time=row.end_time,
        submitted_at=row.submitted_at,
        time_taken_seconds=row.time_taken_seconds,
        duration_minutes=row.duration_minutes,
        percentage=row.percentage,
        is_passed=row.is_passed,
        status=row.status,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        is_auto_submitted=row.is_auto_submitted,
        attempt_number=row.attempt_number,
        warning_count=row.warning_count,
        metadata=dict(row.submission_metadata or {}),
    )


def row_from_record(record: SubmissionRecord) -> Submission:
    row = Submission(
        student_id=record.student_id,
        test_id=parse_id(record.test_id),
        score=record.score,
        total_marks=record.total_marks,
        status=record.status,
        start_time=record.start_time,
        end_time=record.end_time,
        submitted_at=record.submitted_at,
        time_taken_seconds=record.time_taken_seconds,
        duration_minutes=record.duration_minutes,
        percentage=record.percentage,
        is_passed=record.is_passed,
        ip_address=record.ip_address,
        user_agent=record.user_agent,
        is_auto_submitted=record.is_auto_submitted,
        attempt_number=record.attempt_number,
        warning_count=record.warning_count,
        submission_metadata=dict(record.metadata),
    )
    row.answers = [
        SubmissionAnswer(
            question_id=verdict.question_id,
            position=position,
            submitted_answer=verdict.submitted_answer,
            is_correct=verdict.is_correct,
            status=verdict.status,
        )
        for position, verdict in enumerate(record.answers)
    ]
    return row


class ExamStore:
    """SQLAlchemy-backed store bound to one AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_test(self, test_id: Any) -> Optional[ScheduledTest]:
        pk = parse_id(test_id)
        if pk is None:
            return None
        result = await self.db.execute(select(ScheduledTest).where(ScheduledTest.id == pk))
        return result.scalar_one_or_none()

    async def find_answer_key(self, test_id: Any) -> Optional[AnswerKey]:
        test = await self.get_test(test_id)
        if test is None:
            return None
        return answer_key_from_test(test)

    async def insert_submission(self, record: SubmissionRecord) -> SubmissionRecord:
        row = row_from_record(record)
        try:
            self.db.add(row)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(
                f"Duplicate submission rejected: student={record.student_id} "
                f"test={record.test_id} attempt={record.attempt_number}: {e.orig}"
            )
            raise SubmissionConflictError(record.test_id, record.attempt_number)
        except SQLAlchemyError as e:
            await self.db.rollback()
            log_id = new_log_id()
            logger.error(f"[{log_id}] Failed to persist submission for test {record.test_id}: {e}")
            raise PersistenceError(log_id=log_id)

        logger.info(
            f"Stored submission {row.id}: student={record.student_id} test={record.test_id} "
            f"score={record.score}/{record.total_marks}"
        )
        return replace(record, id=row.id)

    async def query_by_test(
        self,
        test_id: Any,
        status: Optional[SubmissionStatus] = None
    ) -> List[SubmissionRecord]:
        pk = parse_id(test_id)
        if pk is None:
            return []
        stmt = select(Submission).where(Submission.test_id == pk)
        if status is not None:
            stmt = stmt.where(Submission.status == status)
        stmt = stmt.order_by(Submission.submitted_at.desc(), Submission.id.desc())
        result = await self.db.execute(stmt)
        return [record_from_row(row) for row in result.scalars().all()]
