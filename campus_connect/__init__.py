from .booking import Reservation, find_conflicts, has_time_overlap, is_available, parse_time_of_day
from .evaluation import CriterionScore, Evaluation, EvaluationSummary, grade_for, summarize
from .resources import DEFAULT_CATALOG, Resource, ResourceCatalog
from .session import Session, SessionError, session_from_headers
from .yaml_store import (
	CampusStorageError,
	EvaluationNotFoundError,
	EvaluationRecord,
	EvaluationYamlRepository,
	ReservationConflictError,
	ReservationNotFoundError,
	ReservationRecord,
	ReservationYamlRepository,
)

__all__ = [
	"Reservation",
	"find_conflicts",
	"has_time_overlap",
	"is_available",
	"parse_time_of_day",
	"CriterionScore",
	"Evaluation",
	"EvaluationSummary",
	"grade_for",
	"summarize",
	"DEFAULT_CATALOG",
	"Resource",
	"ResourceCatalog",
	"Session",
	"SessionError",
	"session_from_headers",
	"CampusStorageError",
	"EvaluationNotFoundError",
	"EvaluationRecord",
	"EvaluationYamlRepository",
	"ReservationConflictError",
	"ReservationNotFoundError",
	"ReservationRecord",
	"ReservationYamlRepository",
]
