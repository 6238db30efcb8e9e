from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Iterable

STATUS_PENDING = "Pending"
STATUS_SUBMITTED = "Submitted"
EVALUATION_STATUSES = (STATUS_PENDING, STATUS_SUBMITTED)

ASSESSOR_ROLES = ("Supervisor", "Co-Supervisor", "ST", "RA", "TA", "External Examiner")

# Checked top-down, lower bound inclusive.
GRADE_BANDS: tuple[tuple[float, str, str], ...] = (
    (85, "A", "Excellent"),
    (70, "B", "Good"),
    (55, "C", "Satisfactory"),
    (40, "D", "Pass"),
)
FAIL_GRADE = ("F", "Fail")


@dataclass(frozen=True)
class CriterionScore:
    name: str
    max_score: float
    score: float | None = None
    comment: str = ""

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "max_score": self.max_score}
        if self.score is not None:
            payload["score"] = self.score
        if self.comment:
            payload["comment"] = self.comment
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "CriterionScore":
        raw_score = data.get("score")
        return CriterionScore(
            name=str(data["name"]),
            max_score=_to_number(data["max_score"]),
            score=_to_number(raw_score) if raw_score is not None else None,
            comment=str(data.get("comment") or ""),
        )


DEFAULT_RUBRIC: tuple[CriterionScore, ...] = (
    CriterionScore("Problem Definition", 15),
    CriterionScore("Methodology", 25),
    CriterionScore("Implementation", 30),
    CriterionScore("Documentation", 15),
    CriterionScore("Presentation", 15),
)


@dataclass(frozen=True)
class Evaluation:
    project_id: str
    assessor_id: str
    assessor_name: str
    assessor_role: str
    criteria: tuple[CriterionScore, ...] = ()
    total_score: float = 0
    status: str = STATUS_PENDING

    @property
    def is_submitted(self) -> bool:
        return self.status == STATUS_SUBMITTED


@dataclass(frozen=True)
class Grade:
    letter: str
    label: str

    def __str__(self) -> str:
        return f"{self.letter} ({self.label})"

    def to_dict(self) -> dict[str, str]:
        return {"grade": self.letter, "label": self.label}


@dataclass(frozen=True)
class CriteriaSummary:
    name: str
    average: float
    max_score: float

    @property
    def percentage(self) -> float:
        if self.max_score <= 0:
            return 0.0
        return (self.average / self.max_score) * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "average": self.average,
            "max_score": self.max_score,
            "percentage": self.percentage,
        }


@dataclass(frozen=True)
class EvaluationSummary:
    average_total: float
    submitted_count: int
    total_count: int
    criteria_summary: list[CriteriaSummary] = field(default_factory=list)

    @property
    def grade(self) -> Grade:
        return grade_for(self.average_total)

    def to_dict(self) -> dict[str, Any]:
        return {
            "average_total": self.average_total,
            "submitted_count": self.submitted_count,
            "total_count": self.total_count,
            "criteria_summary": [item.to_dict() for item in self.criteria_summary],
            "grade": self.grade.to_dict(),
        }


def grade_for(score: float) -> Grade:
    for threshold, letter, label in GRADE_BANDS:
        if score >= threshold:
            return Grade(letter, label)
    return Grade(*FAIL_GRADE)


def summarize(evaluations: Iterable[Evaluation]) -> EvaluationSummary:
    """Aggregate the submitted evaluations of one project.

    Pending evaluations only count towards ``total_count``. Criteria are
    matched by position against the first submitted evaluation, and a
    criterion without a score is left out of that criterion's average
    instead of counting as zero.
    """
    evaluations = list(evaluations)
    submitted = [item for item in evaluations if item.status == STATUS_SUBMITTED]
    submitted_count = len(submitted)

    if not submitted:
        return EvaluationSummary(average_total=0, submitted_count=0, total_count=len(evaluations))

    average_total = sum(item.total_score for item in submitted) / submitted_count

    criteria_summary: list[CriteriaSummary] = []
    for index, criterion in enumerate(submitted[0].criteria):
        scores = [
            item.criteria[index].score
            for item in submitted
            if index < len(item.criteria) and item.criteria[index].score is not None
        ]
        average = sum(scores) / len(scores) if scores else 0
        criteria_summary.append(CriteriaSummary(criterion.name, average, criterion.max_score))

    return EvaluationSummary(
        average_total=average_total,
        submitted_count=submitted_count,
        total_count=len(evaluations),
        criteria_summary=criteria_summary,
    )


def compute_total(criteria: Iterable[CriterionScore]) -> float:
    return sum(item.score for item in criteria if item.score is not None)


def completion_percentage(criteria: Iterable[CriterionScore]) -> float:
    criteria = list(criteria)
    if not criteria:
        return 0.0
    filled = len([item for item in criteria if item.score is not None])
    return (filled / len(criteria)) * 100


def validate_score(criterion: CriterionScore, score: float) -> float:
    value = _to_number(score)
    if not math.isfinite(value) or value < 0 or value > criterion.max_score:
        raise ValueError(f"Score for {criterion.name} must be between 0 and {criterion.max_score:g}.")
    return value


def apply_scores(
    criteria: Iterable[CriterionScore],
    scores: list[float | None] | None = None,
    comments: list[str | None] | None = None,
) -> tuple[CriterionScore, ...]:
    """Return criteria with new scores/comments applied by position.

    ``None`` entries keep the current value.
    """
    current = list(criteria)
    if scores is not None and not isinstance(scores, (list, tuple)):
        raise ValueError("scores must be a list ordered like the rubric.")
    if comments is not None and not isinstance(comments, (list, tuple)):
        raise ValueError("comments must be a list ordered like the rubric.")
    if scores is not None and len(scores) > len(current):
        raise ValueError("More scores were given than the rubric has criteria.")
    if comments is not None and len(comments) > len(current):
        raise ValueError("More comments were given than the rubric has criteria.")

    updated: list[CriterionScore] = []
    for index, criterion in enumerate(current):
        if scores is not None and index < len(scores) and scores[index] is not None:
            criterion = replace(criterion, score=validate_score(criterion, scores[index]))
        if comments is not None and index < len(comments) and comments[index] is not None:
            criterion = replace(criterion, comment=str(comments[index]))
        updated.append(criterion)
    return tuple(updated)


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("Score must be a number.")
    if isinstance(value, (int, float)):
        return value
    try:
        number = float(str(value).strip())
    except ValueError as error:
        raise ValueError(f"Score must be a number, got {value!r}.") from error
    return int(number) if number.is_integer() else number
