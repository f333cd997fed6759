"""
gate_portal/services/scoring_engine.py
Test submission scoring engine

Takes a test's answer key and the student's raw answers, and produces one
verdict per question (in answer-key order) plus the total score.

SCORING RULES:
1. Raw answers are matched to questions by id (compared as strings).
   Unknown ids are ignored. If the same id appears more than once, the
   LAST occurrence in submission order is used.
2. Empty or whitespace-only text means "not answered": incorrect, 0 marks,
   submitted answer recorded as "Not Answered".
3. Single-select: trimmed answer must equal the trimmed text of the
   correct option exactly (no case-folding).
4. Multi-select: the comma-separated answer, trimmed, de-blanked and
   sorted, must equal the sorted texts of the correct options. All or
   nothing, no partial credit.
5. Numerical: trimmed answer must equal the trimmed canonical answer as a
   string. "42.0" is not "42".
6. A correct answer earns the question's mark (1 if unset).

Malformed keys never raise: a letter outside the option list or a question
without options simply resolves to no correct text, so the answer is
marked incorrect.

NO I/O, NO SHARED STATE - same inputs -> same verdicts.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from gate_portal.errors import InternalComputationError
from gate_portal.orm.submission import AnswerStatus
from gate_portal.services.answer_key import (
    AnswerKey,
    MultiSelectQuestion,
    NumericalQuestion,
    Question,
    RawAnswer,
    SingleSelectQuestion,
    effective_mark,
    option_text_for_letter,
)

logger = logging.getLogger(__name__)

NOT_ANSWERED = "Not Answered"


@dataclass(frozen=True)
class AnswerVerdict:
    question_id: str
    submitted_answer: str
    is_correct: bool
    status: AnswerStatus

    def to_dict(self) -> dict:
        return {
            "question_id": self.question_id,
            "submitted_answer": self.submitted_answer,
            "is_correct": self.is_correct,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class ScoringResult:
    verdicts: Tuple[AnswerVerdict, ...]
    total_score: float

    @property
    def answered_count(self) -> int:
        return sum(1 for v in self.verdicts if v.status == AnswerStatus.ANSWERED)

    @property
    def correct_count(self) -> int:
        return sum(1 for v in self.verdicts if v.is_correct)


def index_raw_answers(raw_answers: Iterable[RawAnswer]) -> Dict[str, RawAnswer]:
    """Map question id -> raw answer; later duplicates replace earlier ones."""
    latest: Dict[str, RawAnswer] = {}
    for raw in raw_answers:
        latest[str(raw.question_id)] = raw
    return latest


def _is_single_select_correct(question: SingleSelectQuestion, answer: str) -> bool:
    correct_text = option_text_for_letter(question.options, question.correct_letter)
    if correct_text is None:
        return False
    return answer.strip() == correct_text.strip()


def _split_selection(answer: str) -> List[str]:
    return sorted(piece.strip() for piece in answer.split(",") if piece.strip())


def _is_multi_select_correct(question: MultiSelectQuestion, answer: str) -> bool:
    correct_texts = []
    for letter in question.correct_letters:
        text = option_text_for_letter(question.options, letter)
        if text is not None and text.strip():
            correct_texts.append(text.strip())
    if not correct_texts:
        return False
    return _split_selection(answer) == sorted(correct_texts)


def _is_numerical_correct(question: NumericalQuestion, answer: str) -> bool:
    return answer.strip() == str(question.correct_value).strip()


def is_answer_correct(question: Question, answer: str) -> bool:
    """Evaluate one non-empty answer against its question."""
    if isinstance(question, SingleSelectQuestion):
        return _is_single_select_correct(question, answer)
    if isinstance(question, MultiSelectQuestion):
        return _is_multi_select_correct(question, answer)
    if isinstance(question, NumericalQuestion):
        return _is_numerical_correct(question, answer)
    raise InternalComputationError(
        f"Unsupported question variant: {type(question).__name__}"
    )


def score_question(question: Question, raw: Optional[RawAnswer]) -> Tuple[AnswerVerdict, float]:
    """Verdict and marks earned for a single question."""
    if raw is None or not raw.has_answer:
        verdict = AnswerVerdict(
            question_id=question.id,
            submitted_answer=NOT_ANSWERED,
            is_correct=False,
            status=AnswerStatus.NOT_ANSWERED,
        )
        return verdict, 0

    is_correct = is_answer_correct(question, raw.answer_text)
    verdict = AnswerVerdict(
        question_id=question.id,
        submitted_answer=raw.answer_text,
        is_correct=is_correct,
        status=AnswerStatus.ANSWERED,
    )
    return verdict, effective_mark(question) if is_correct else 0


def score(answer_key: AnswerKey, raw_answers: Iterable[RawAnswer]) -> ScoringResult:
    """
    Score a submission.

    Args:
        answer_key: The test's questions, in order
        raw_answers: Client answers in submission order (subset, superset
            or exact match of the key)

    Returns:
        ScoringResult with exactly one verdict per question
    """
    answers_by_id = index_raw_answers(raw_answers)

    verdicts = []
    total_score = 0
    for question in answer_key:
        verdict, earned = score_question(question, answers_by_id.get(question.id))
        verdicts.append(verdict)
        total_score += earned

    logger.debug(
        f"Scored test {answer_key.test_id}: {total_score}/{answer_key.total_marks} "
        f"({len(verdicts)} questions)"
    )

    return ScoringResult(verdicts=tuple(verdicts), total_score=total_score)
