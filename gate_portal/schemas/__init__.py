from .scheduled_tests import (
    AnswerInput,
    OptionInput,
    QuestionInput,
    ScheduleTestRequest,
    SubmitTestRequest,
)

__all__ = [
    "AnswerInput",
    "OptionInput",
    "QuestionInput",
    "ScheduleTestRequest",
    "SubmitTestRequest",
]
