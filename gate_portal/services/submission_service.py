"""
gate_portal/services/submission_service.py
Test submission use-case

LIFECYCLE:
1. Load the answer key for the test (404 if unknown)
2. Score the raw answers
3. Work out when the attempt started:
   - the client's start marker, if sent and parseable
   - otherwise now - test duration (best-effort estimate)
4. end_time = submitted_at = server clock, the only trusted clock
5. Elapsed time in whole seconds, clamped to 0 on clock skew
6. Capture IP / user agent / client display info
7. Persist the record and its verdicts in one transaction
8. Return the stored record with a summary

Concurrent double submissions are not deduplicated here; the unique
(student, test, attempt) index in storage rejects the second one.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional, Protocol

from gate_portal.errors import ErrorCode, NotFoundError
from gate_portal.orm.base import to_naive_utc, utc_now
from gate_portal.orm.submission import SubmissionStatus
from gate_portal.services.answer_key import AnswerKey, RawAnswer
from gate_portal.services.scoring_engine import score
from gate_portal.services.submission_record import (
    RequestMeta,
    SubmissionRecord,
    compute_percentage,
    compute_time_taken,
    is_passing,
)

logger = logging.getLogger(__name__)

CURRENT_ATTEMPT = 1


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Server wall clock, naive UTC."""

    def now(self) -> datetime:
        return utc_now()


class SubmissionStore(Protocol):
    async def find_answer_key(self, test_id: Any) -> Optional[AnswerKey]:
        ...

    async def insert_submission(self, record: SubmissionRecord) -> SubmissionRecord:
        ...


@dataclass(frozen=True)
class SubmissionOutcome:
    record: SubmissionRecord
    summary: Dict[str, Any]


def parse_client_start_time(value: Any) -> Optional[datetime]:
    """
    Parse the client's start marker.

    Accepts ISO-8601 strings (naive values are taken as UTC, "Z" and
    offsets are honoured), epoch milliseconds as sent by JavaScript's
    Date.now(), and datetime objects. Anything else yields None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.isdigit():
            return parse_client_start_time(int(text))
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_naive_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


class SubmissionService:
    """
    Scores and records test submissions.

    The store and clock are injected so the service never reaches for
    global state; route handlers build one per request.
    """

    def __init__(self, store: SubmissionStore, clock: Optional[Clock] = None):
        self.store = store
        self.clock = clock or SystemClock()

    def resolve_start_time(self, client_start_time: Any, now: datetime, duration_minutes: int) -> datetime:
        start_time = parse_client_start_time(client_start_time)
        if start_time is not None:
            return start_time
        if client_start_time is not None:
            logger.warning(f"Unparseable client start time {client_start_time!r}; inferring from duration")
        return now - timedelta(minutes=duration_minutes or 0)

    async def submit(
        self,
        test_id: Any,
        student_id: str,
        raw_answers: Iterable[RawAnswer],
        client_start_time: Any = None,
        is_auto_submitted: bool = False,
        request_meta: Optional[RequestMeta] = None,
        warning_count: int = 0,
    ) -> SubmissionOutcome:
        request_meta = request_meta or RequestMeta()

        answer_key = await self.store.find_answer_key(test_id)
        if answer_key is None:
            raise NotFoundError("Test", test_id, code=ErrorCode.TEST_NOT_FOUND)

        result = score(answer_key, list(raw_answers))

        now = self.clock.now()
        start_time = self.resolve_start_time(client_start_time, now, answer_key.duration_minutes)
        elapsed = compute_time_taken(start_time, end_time=now, submitted_at=now)

        total_marks = answer_key.total_marks
        percentage = compute_percentage(result.total_score, total_marks)

        metadata = {
            "browser_info": request_meta.user_agent,
            "screen_resolution": request_meta.screen_resolution,
            "timezone": request_meta.timezone,
        }
        if elapsed.clock_skew_seconds is not None:
            metadata["clock_skew_seconds"] = elapsed.clock_skew_seconds
            logger.warning(
                f"Clock skew on submission: student={student_id} test={test_id} "
                f"start={start_time.isoformat()} end={now.isoformat()}"
            )

        record = SubmissionRecord(
            student_id=str(student_id),
            test_id=answer_key.test_id,
            score=result.total_score,
            total_marks=total_marks,
            answers=result.verdicts,
            status=SubmissionStatus.COMPLETED,
            start_time=start_time,
            end_time=now,
            submitted_at=now,
            time_taken_seconds=elapsed.seconds,
            duration_minutes=answer_key.duration_minutes,
            percentage=percentage,
            is_passed=is_passing(percentage),
            ip_address=request_meta.ip_address,
            user_agent=request_meta.user_agent,
            is_auto_submitted=bool(is_auto_submitted),
            attempt_number=CURRENT_ATTEMPT,
            warning_count=max(int(warning_count or 0), 0),
            metadata=metadata,
        )

        stored = await self.store.insert_submission(record)

        logger.info(
            f"Test {answer_key.test_id} submitted by {student_id}: "
            f"{result.total_score}/{total_marks} in {elapsed.seconds}s"
            f"{' (auto)' if is_auto_submitted else ''}"
        )

        return SubmissionOutcome(record=stored, summary=stored.get_summary())
