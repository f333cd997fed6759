"""
gate_portal/services/analytics_service.py
Per-test result analytics

Read-side only. Aggregates completed submissions of one test into:
- total submissions, average / highest / lowest score
- pass rate (percentage of submissions at or above the pass mark)
- score distribution over five percentage bands

DISTRIBUTION BANDS:
Band score limits are total_marks * fraction. Bands are half-open
[min, max) except the last, which is closed [min, max], so each score is
counted in exactly one band. A score sitting on a boundary belongs to the
upper band.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from gate_portal.errors import ErrorCode, NotFoundError
from gate_portal.orm.submission import SubmissionStatus
from gate_portal.services.exam_store import ExamStore
from gate_portal.services.submission_record import SubmissionRecord, is_passing

logger = logging.getLogger(__name__)


# (label, lower fraction, upper fraction)
SCORE_BANDS: Tuple[Tuple[str, float, float], ...] = (
    ("0-20%", 0.0, 0.2),
    ("21-40%", 0.2, 0.4),
    ("41-60%", 0.4, 0.6),
    ("61-80%", 0.6, 0.8),
    ("81-100%", 0.8, 1.0),
)


@dataclass(frozen=True)
class DistributionBand:
    range: str
    min_score: float
    max_score: float
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "range": self.range,
            "min_score": self.min_score,
            "max_score": self.max_score,
            "count": self.count,
        }


@dataclass(frozen=True)
class AnalyticsResult:
    total_submissions: int = 0
    average_score: float = 0.0
    highest_score: float = 0.0
    lowest_score: float = 0.0
    pass_rate: float = 0.0
    score_distribution: Tuple[DistributionBand, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_submissions": self.total_submissions,
            "average_score": round(self.average_score, 2),
            "highest_score": self.highest_score,
            "lowest_score": self.lowest_score,
            "pass_rate": round(self.pass_rate, 2),
            "score_distribution": [band.to_dict() for band in self.score_distribution],
        }


def score_distribution(scores: Sequence[float], total_marks: float) -> List[DistributionBand]:
    bands = []
    last = len(SCORE_BANDS) - 1
    for i, (label, low, high) in enumerate(SCORE_BANDS):
        min_score = total_marks * low
        max_score = total_marks * high
        if i == last:
            count = sum(1 for s in scores if min_score <= s <= max_score)
        else:
            count = sum(1 for s in scores if min_score <= s < max_score)
        bands.append(DistributionBand(label, min_score, max_score, count))
    return bands


def aggregate(records: Sequence[SubmissionRecord], total_marks: float) -> AnalyticsResult:
    """Aggregate one test's submissions. Empty input gives an all-zero result."""
    if not records:
        return AnalyticsResult()

    scores = [r.score for r in records]
    passed = sum(1 for r in records if is_passing(r.percentage))

    return AnalyticsResult(
        total_submissions=len(records),
        average_score=sum(scores) / len(scores),
        highest_score=max(scores),
        lowest_score=min(scores),
        pass_rate=(passed / len(records)) * 100,
        score_distribution=tuple(score_distribution(scores, total_marks)),
    )


async def get_test_analytics(test_id: Any, db: AsyncSession) -> Dict[str, Any]:
    """Analytics over the completed submissions of one test."""
    store = ExamStore(db)
    test = await store.get_test(test_id)
    if test is None:
        raise NotFoundError("Test", test_id, code=ErrorCode.TEST_NOT_FOUND)

    records = await store.query_by_test(test.id, status=SubmissionStatus.COMPLETED)
    result = aggregate(records, test.total_marks)

    logger.info(f"Computed analytics for test {test.id}: {result.total_submissions} submissions")

    return {
        "test_id": test.id,
        "test_title": test.test_title,
        "total_marks": test.total_marks,
        **result.to_dict(),
    }
