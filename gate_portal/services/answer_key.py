"""
gate_portal/services/answer_key.py
Answer key model

A test's answer key is an ordered tuple of questions. Each question is one
of three closed variants, and every variant carries exactly the fields its
scoring rule needs:

- SingleSelectQuestion: options + one correct option letter
- MultiSelectQuestion:  options + a tuple of correct option letters
- NumericalQuestion:    the canonical answer string

Option letters map to positions: "A" -> 0, "B" -> 1, ...

Building a key from stored rows is lenient on purpose. Rows that break the
scheduling invariants (letters outside the option list, missing options)
still produce a key; the scoring engine marks such questions incorrect
instead of failing the whole submission.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Iterator, List, Optional, Sequence, Tuple, Union

from gate_portal.orm.scheduled_test import QuestionType, ScheduledTest, TestQuestion


# Question-type tags accepted from uploaded question banks.
QUESTION_TYPE_ALIASES = {
    "mcq": QuestionType.SINGLE_SELECT,
    "single": QuestionType.SINGLE_SELECT,
    "single_select": QuestionType.SINGLE_SELECT,
    "single-select": QuestionType.SINGLE_SELECT,
    "msq": QuestionType.MULTI_SELECT,
    "multi": QuestionType.MULTI_SELECT,
    "multi_select": QuestionType.MULTI_SELECT,
    "multi-select": QuestionType.MULTI_SELECT,
    "nat": QuestionType.NUMERICAL,
    "numerical": QuestionType.NUMERICAL,
}

DEFAULT_MARK = 1


def normalize_question_type(raw: Any) -> Optional[QuestionType]:
    """Map an uploaded type tag (case-insensitive) to a QuestionType."""
    if isinstance(raw, QuestionType):
        return raw
    if not isinstance(raw, str):
        return None
    return QUESTION_TYPE_ALIASES.get(raw.strip().lower())


def letter_to_index(letter: Any) -> Optional[int]:
    """
    Position of an option letter, or None when it cannot index anything.

    Only the first character counts and no case-folding happens, so "a"
    does not mean "A".
    """
    if not isinstance(letter, str):
        return None
    letter = letter.strip()
    if not letter:
        return None
    index = ord(letter[0]) - ord("A")
    return index if index >= 0 else None


def index_to_letter(index: int) -> str:
    return chr(ord("A") + index)


def option_text_for_letter(options: Sequence[str], letter: Any) -> Optional[str]:
    """Option text a letter points at, None when the letter is out of range."""
    index = letter_to_index(letter)
    if index is None or index >= len(options):
        return None
    return options[index]


@dataclass(frozen=True)
class SingleSelectQuestion:
    id: str
    options: Tuple[str, ...]
    correct_letter: str
    mark: Optional[float] = DEFAULT_MARK

    type: ClassVar[QuestionType] = QuestionType.SINGLE_SELECT


@dataclass(frozen=True)
class MultiSelectQuestion:
    id: str
    options: Tuple[str, ...]
    correct_letters: Tuple[str, ...]
    mark: Optional[float] = DEFAULT_MARK

    type: ClassVar[QuestionType] = QuestionType.MULTI_SELECT


@dataclass(frozen=True)
class NumericalQuestion:
    id: str
    correct_value: str
    mark: Optional[float] = DEFAULT_MARK

    type: ClassVar[QuestionType] = QuestionType.NUMERICAL


Question = Union[SingleSelectQuestion, MultiSelectQuestion, NumericalQuestion]


def effective_mark(question: Question) -> float:
    """Marks awarded for a fully correct answer; unset counts as 1."""
    return question.mark if question.mark else DEFAULT_MARK


@dataclass(frozen=True)
class AnswerKey:
    """Ordered, immutable question set for one test."""

    test_id: str
    questions: Tuple[Question, ...]
    duration_minutes: int = 0

    def __len__(self) -> int:
        return len(self.questions)

    def __iter__(self) -> Iterator[Question]:
        return iter(self.questions)

    @property
    def total_marks(self) -> float:
        return sum(effective_mark(q) for q in self.questions)


@dataclass(frozen=True)
class RawAnswer:
    """A student's response for one question, as sent by the client."""

    question_id: str
    answer_text: Optional[str] = None

    @property
    def has_answer(self) -> bool:
        return bool(self.answer_text and self.answer_text.strip())


def _option_text(option: Any) -> str:
    if isinstance(option, dict):
        return str(option.get("text") or "")
    if option is None:
        return ""
    return str(option)


def _coerce_options(raw_options: Any) -> Tuple[str, ...]:
    if not raw_options:
        return ()
    return tuple(_option_text(o) for o in raw_options)


def _coerce_answer_list(raw: Any) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return [str(item) for item in raw if item is not None]
    return [str(raw)]


def question_from_row(row: TestQuestion) -> Question:
    """Build the scoring variant for one stored question row."""
    question_id = str(row.id)
    answers = _coerce_answer_list(row.correct_answer)

    if row.question_type == QuestionType.SINGLE_SELECT:
        return SingleSelectQuestion(
            id=question_id,
            options=_coerce_options(row.options),
            correct_letter=answers[0] if answers else "",
            mark=row.mark,
        )
    if row.question_type == QuestionType.MULTI_SELECT:
        return MultiSelectQuestion(
            id=question_id,
            options=_coerce_options(row.options),
            correct_letters=tuple(answers),
            mark=row.mark,
        )
    return NumericalQuestion(
        id=question_id,
        correct_value=answers[0] if answers else "",
        mark=row.mark,
    )


def answer_key_from_test(test: ScheduledTest) -> AnswerKey:
    """Answer key for a scheduled test, questions in upload order."""
    rows = sorted(test.questions, key=lambda q: q.position)
    return AnswerKey(
        test_id=str(test.id),
        questions=tuple(question_from_row(row) for row in rows),
        duration_minutes=test.duration_minutes or 0,
    )
