from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, Sequence
from uuid import UUID

SINGLE_CHOICE_TYPES = ("single-select", "true-false")


@dataclass(frozen=True)
class OptionSchema:
    id: UUID
    is_correct: bool


@dataclass(frozen=True)
class QuestionSchema:
    id: UUID
    type: str  # single-select | multi-select | true-false
    options: tuple[OptionSchema, ...]

    @property
    def option_ids(self) -> frozenset[UUID]:
        return frozenset(o.id for o in self.options)

    @property
    def correct_ids(self) -> frozenset[UUID]:
        return frozenset(o.id for o in self.options if o.is_correct)


@dataclass(frozen=True)
class SubmittedAnswer:
    question_id: UUID
    option_ids: tuple[UUID, ...]


@dataclass(frozen=True)
class Violation:
    code: str
    message: str
    question_id: UUID | None = None
    option_id: UUID | None = None

    def to_dict(self) -> dict:
        out = {"code": self.code, "message": self.message}
        if self.question_id is not None:
            out["question_id"] = str(self.question_id)
        if self.option_id is not None:
            out["option_id"] = str(self.option_id)
        return out


@dataclass(frozen=True)
class GradedAnswer:
    question_id: UUID
    option_ids: tuple[UUID, ...]
    is_correct: bool


@dataclass(frozen=True)
class GradeResult:
    answers: tuple[GradedAnswer, ...] = field(default_factory=tuple)

    @property
    def score(self) -> int:
        return sum(1 for a in self.answers if a.is_correct)

    @property
    def total(self) -> int:
        return len(self.answers)


class InvalidAnswerSet(ValueError):
    def __init__(self, violations: Sequence[Violation]):
        self.violations = list(violations)
        super().__init__(self.violations[0].message if self.violations else "invalid answer set")


def is_answer_correct(question: QuestionSchema, selected: Iterable[UUID]) -> bool:
    """
    All-or-nothing grading rule for one question.
      - single-select / true-false: the one selected option must be correct
      - multi-select: selected set must equal the correct set exactly
    """
    chosen = frozenset(selected)
    if question.type in SINGLE_CHOICE_TYPES:
        if len(chosen) != 1:
            return False
        (only,) = chosen
        return only in question.correct_ids
    return chosen == question.correct_ids


def validate_answer_set(
    questions: Sequence[QuestionSchema], answers: Sequence[SubmittedAnswer]
) -> list[Violation]:
    """
    Structural checks on a full submission, in one pass.
    Returns every violation found (empty list = valid), ordered by the position
    of the offending answer, then unanswered questions in contest order.
    """
    by_id = {q.id: q for q in questions}
    seen: set[UUID] = set()
    out: list[Violation] = []

    for a in answers:
        qid = a.question_id
        if qid in seen:
            out.append(Violation("DUPLICATE_QUESTION", f"Duplicate answer for question {qid}", question_id=qid))
            continue
        seen.add(qid)

        q = by_id.get(qid)
        if q is None:
            out.append(Violation("UNKNOWN_QUESTION", f"Question {qid} not found in this contest", question_id=qid))
            continue

        if not a.option_ids:
            out.append(Violation("EMPTY_SELECTION", f"No option selected for question {qid}", question_id=qid))
            continue

        if len(set(a.option_ids)) != len(a.option_ids):
            out.append(Violation("DUPLICATE_OPTION", f"Duplicate option selected for question {qid}", question_id=qid))

        valid = q.option_ids
        for oid in a.option_ids:
            if oid not in valid:
                out.append(Violation(
                    "UNKNOWN_OPTION", f"Option {oid} is not valid for question {qid}",
                    question_id=qid, option_id=oid,
                ))

        if q.type in SINGLE_CHOICE_TYPES and len(set(a.option_ids)) != 1:
            out.append(Violation(
                "SELECTION_COUNT",
                f"Question {qid} is {q.type} and requires exactly one option",
                question_id=qid,
            ))

    for q in questions:
        if q.id not in seen:
            out.append(Violation("UNANSWERED_QUESTION", f"Question {q.id} was not answered", question_id=q.id))

    return out


def grade(questions: Sequence[QuestionSchema], answers: Sequence[SubmittedAnswer]) -> GradeResult:
    """Validate then grade a submission. Raises InvalidAnswerSet on any violation."""
    violations = validate_answer_set(questions, answers)
    if violations:
        raise InvalidAnswerSet(violations)
    by_id = {q.id: q for q in questions}
    return GradeResult(answers=tuple(
        GradedAnswer(
            question_id=a.question_id,
            option_ids=tuple(dict.fromkeys(a.option_ids)),
            is_correct=is_answer_correct(by_id[a.question_id], a.option_ids),
        )
        for a in answers
    ))
