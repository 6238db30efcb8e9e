from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Iterable
import shutil
from uuid import uuid4

import holidays as pyholidays
import yaml

from .booking import (
    RESERVATION_TYPES,
    USER_TYPES,
    Reservation,
    availability_by_resource,
    find_conflicts,
    normalize_date,
)
from .evaluation import (
    ASSESSOR_ROLES,
    DEFAULT_RUBRIC,
    STATUS_PENDING,
    STATUS_SUBMITTED,
    CriterionScore,
    Evaluation,
    EvaluationSummary,
    apply_scores,
    compute_total,
    summarize,
)
from .resources import CAMPUS_OPEN_HOUR, CLOSING_HOUR_BY_TYPE, DEFAULT_CATALOG, Resource, ResourceCatalog

DEFAULT_HOLIDAY_COUNTRY = "BD"
_HOLIDAY_CACHE: dict[tuple[str, int], set[date]] = {}


class CampusStorageError(RuntimeError):
    pass


class ReservationConflictError(ValueError):
    def __init__(self, message: str, conflicts: list[Reservation]) -> None:
        super().__init__(message)
        self.conflicts = conflicts


class ReservationNotFoundError(ValueError):
    pass


class EvaluationNotFoundError(ValueError):
    pass


@dataclass(frozen=True)
class ReservationRecord:
    reservation_id: str
    reservation: Reservation
    created_at: datetime
    cancelled_at: datetime | None = None

    def to_dict(self) -> dict[str, str]:
        payload = {"reservation_id": self.reservation_id}
        payload.update(self.reservation.to_dict())
        payload["created_at"] = self.created_at.isoformat(timespec="seconds")
        if self.cancelled_at is not None:
            payload["cancelled_at"] = self.cancelled_at.isoformat(timespec="seconds")
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ReservationRecord":
        return ReservationRecord(
            reservation_id=str(data["reservation_id"]),
            reservation=Reservation.from_dict(data),
            created_at=datetime.fromisoformat(str(data["created_at"])),
            cancelled_at=(datetime.fromisoformat(str(data["cancelled_at"])) if data.get("cancelled_at") else None),
        )


@dataclass(frozen=True)
class EvaluationRecord:
    evaluation_id: str
    project_id: str
    assessor_id: str
    assessor_name: str
    assessor_role: str
    criteria: tuple[CriterionScore, ...]
    created_at: datetime
    updated_at: datetime
    total_score: float = 0
    status: str = STATUS_PENDING
    final_comment: str = ""
    submitted_at: datetime | None = None

    def to_evaluation(self) -> Evaluation:
        return Evaluation(
            project_id=self.project_id,
            assessor_id=self.assessor_id,
            assessor_name=self.assessor_name,
            assessor_role=self.assessor_role,
            criteria=self.criteria,
            total_score=self.total_score,
            status=self.status,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "evaluation_id": self.evaluation_id,
            "project_id": self.project_id,
            "assessor_id": self.assessor_id,
            "assessor_name": self.assessor_name,
            "assessor_role": self.assessor_role,
            "criteria": [criterion.to_dict() for criterion in self.criteria],
            "total_score": self.total_score,
            "status": self.status,
            "final_comment": self.final_comment,
            "created_at": self.created_at.isoformat(timespec="seconds"),
            "updated_at": self.updated_at.isoformat(timespec="seconds"),
        }
        if self.submitted_at is not None:
            payload["submitted_at"] = self.submitted_at.isoformat(timespec="seconds")
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "EvaluationRecord":
        return EvaluationRecord(
            evaluation_id=str(data["evaluation_id"]),
            project_id=str(data["project_id"]),
            assessor_id=str(data["assessor_id"]),
            assessor_name=str(data.get("assessor_name", "")),
            assessor_role=str(data.get("assessor_role", "")),
            criteria=tuple(CriterionScore.from_dict(row) for row in data.get("criteria") or []),
            created_at=datetime.fromisoformat(str(data["created_at"])),
            updated_at=datetime.fromisoformat(str(data["updated_at"])),
            total_score=data.get("total_score", 0) or 0,
            status=str(data.get("status", STATUS_PENDING)),
            final_comment=str(data.get("final_comment") or ""),
            submitted_at=(datetime.fromisoformat(str(data["submitted_at"])) if data.get("submitted_at") else None),
        )


class _YamlStore:
    """Shared file handling for the campus repositories.

    Every data file holds a YAML list of mappings. Writes go through a temp
    file and ``replace`` so a reader never sees a half-written list. A file
    that fails to parse is copied aside as ``<stem>.corrupt.<timestamp>.yaml``
    and reset to an empty list, with a ``YAML_RECOVERED`` entry in
    ``campus_events.yaml``. Non-mapping rows are dropped on read and logged as
    ``YAML_ROW_SKIPPED``.
    """

    def __init__(self, base_dir: str | Path, data_files: Iterable[str]) -> None:
        self.base_dir = Path(base_dir)
        self.log_file = self.base_dir / "campus_events.yaml"
        self._data_files = [self.base_dir / name for name in data_files]
        self._ensure_files()

    def _ensure_files(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        for path in (*self._data_files, self.log_file):
            if not path.exists():
                path.write_text("[]\n", encoding="utf-8")

    def _read_yaml_list(self, path: Path) -> list[dict[str, Any]]:
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            path.write_text("[]\n", encoding="utf-8")
            return []
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            self._recover_corrupted_yaml(path, error)
            return []

        if payload is None:
            return []
        if not isinstance(payload, list):
            self._recover_corrupted_yaml(path, ValueError("top-level YAML is not a list"))
            return []

        sanitized: list[dict[str, Any]] = []
        for index, row in enumerate(payload):
            if isinstance(row, dict):
                sanitized.append(row)
            else:
                self._log_event(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(path.name),
                        "index": index,
                        "reason": "row is not a mapping",
                    },
                )
        return sanitized

    def _write_yaml_list(self, path: Path, rows: list[dict[str, Any]]) -> None:
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            temp_path.write_text(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False), encoding="utf-8")
            temp_path.replace(path)
        except OSError as error:
            raise CampusStorageError(f"Failed to write YAML file: {path}") from error
        finally:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)

    def _recover_corrupted_yaml(self, path: Path, error: Exception) -> None:
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        backup_path = path.with_name(f"{path.stem}.corrupt.{timestamp}{path.suffix}")
        backup_name: str | None = backup_path.name
        try:
            if path.exists():
                shutil.copy2(path, backup_path)
        except OSError:
            backup_name = None

        path.write_text("[]\n", encoding="utf-8")
        if path != self.log_file:
            self._log_event(
                "YAML_RECOVERED",
                {
                    "file": str(path.name),
                    "backup": backup_name,
                    "reason": str(error),
                },
            )

    def _log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = (event_time or datetime.now()).isoformat(timespec="seconds")
        events = self._read_yaml_list(self.log_file)
        events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
        self._write_yaml_list(self.log_file, events)

    def get_events(self, event_type: str | None = None) -> list[dict[str, Any]]:
        events = self._read_yaml_list(self.log_file)
        return [event for event in events if event_type is None or event.get("event_type") == event_type]


class ReservationYamlRepository(_YamlStore):
    def __init__(
        self,
        base_dir: str | Path = "data",
        catalog: ResourceCatalog = DEFAULT_CATALOG,
        holiday_country: str | None = DEFAULT_HOLIDAY_COUNTRY,
    ) -> None:
        self.active_file = Path(base_dir) / "active_reservations.yaml"
        self.cancelled_file = Path(base_dir) / "cancelled_reservations.yaml"
        self.catalog = catalog
        self.holiday_country = holiday_country
        super().__init__(base_dir, [self.active_file.name, self.cancelled_file.name])

    def get_active_reservations(self) -> list[ReservationRecord]:
        rows = self._read_yaml_list(self.active_file)
        return [ReservationRecord.from_dict(row) for row in rows]

    def get_cancelled_reservations(self) -> list[ReservationRecord]:
        rows = self._read_yaml_list(self.cancelled_file)
        return [ReservationRecord.from_dict(row) for row in rows]

    def get_reservation(self, reservation_id: str) -> ReservationRecord | None:
        for record in self.get_active_reservations():
            if record.reservation_id == reservation_id:
                return record
        return None

    def list_reservations(
        self,
        reservation_date: str | date | None = None,
        resource_name: str | None = None,
        user_name: str | None = None,
    ) -> list[ReservationRecord]:
        target_date = normalize_date(reservation_date) if reservation_date else None
        records = [
            record
            for record in self.get_active_reservations()
            if (target_date is None or record.reservation.date == target_date)
            and (resource_name is None or record.reservation.resource_name == resource_name)
            and (user_name is None or record.reservation.user_name == user_name)
        ]
        records.sort(
            key=lambda record: (
                record.reservation.date,
                record.reservation.start_minute,
                record.reservation.resource_name,
            )
        )
        return records

    def add_reservation(
        self,
        resource_name: str,
        reservation_date: str | date,
        start_time: str,
        end_time: str,
        user_name: str,
        user_type: str = "student",
        purpose: str = "",
        reservation_type: str | None = None,
        now: datetime | None = None,
    ) -> ReservationRecord:
        effective_now = now or datetime.now()
        resource = self._resolve_resource(resource_name, reservation_type)

        user_name = _require_text(user_name, "user_name")
        user_type = str(user_type or "").strip().lower()
        if user_type not in USER_TYPES:
            raise ValueError(f"user_type must be one of: {', '.join(USER_TYPES)}")

        reservation = Reservation(
            resource_name=resource.name,
            date=normalize_date(reservation_date),
            start_time=str(start_time).strip(),
            end_time=str(end_time).strip(),
            user_name=user_name,
            user_type=user_type,
            purpose=str(purpose or "").strip() or _default_purpose(resource.resource_type),
            reservation_type=resource.resource_type,
        )
        _validate_bookable_request(reservation, effective_now, self.holiday_country)

        active = [record.reservation for record in self.get_active_reservations()]
        conflicts = find_conflicts(
            active,
            reservation.resource_name,
            reservation.date,
            reservation.start_time,
            reservation.end_time,
        )
        if conflicts:
            raise ReservationConflictError(
                f"{reservation.resource_name} is already booked for the selected time slot "
                "(reservation overlaps with an existing reservation).",
                conflicts,
            )

        record = ReservationRecord(
            reservation_id=str(uuid4()),
            reservation=reservation,
            created_at=effective_now,
        )
        rows = self._read_yaml_list(self.active_file)
        rows.append(record.to_dict())
        self._write_yaml_list(self.active_file, rows)

        self._log_event("RESERVATION_CREATED", record.to_dict(), effective_now)
        return record

    def cancel_reservation(self, reservation_id: str, now: datetime | None = None) -> ReservationRecord:
        effective_now = now or datetime.now()

        rows = self._read_yaml_list(self.active_file)
        found_index = -1
        for index, row in enumerate(rows):
            if str(row.get("reservation_id")) == reservation_id:
                found_index = index
                break

        if found_index < 0:
            raise ReservationNotFoundError("reservation_id not found in active reservations")

        cancelled = replace(ReservationRecord.from_dict(rows.pop(found_index)), cancelled_at=effective_now)
        cancelled_rows = self._read_yaml_list(self.cancelled_file)
        cancelled_rows.append(cancelled.to_dict())
        self._write_yaml_list(self.active_file, rows)
        self._write_yaml_list(self.cancelled_file, cancelled_rows)

        self._log_event(
            "RESERVATION_CANCELLED",
            {
                "reservation_id": reservation_id,
                "resource_name": cancelled.reservation.resource_name,
                "date": cancelled.reservation.date,
                "start_time": cancelled.reservation.start_time,
                "end_time": cancelled.reservation.end_time,
            },
            effective_now,
        )
        return cancelled

    def check_availability(self, resource_name: str, reservation_date: str | date, start_time: str, end_time: str) -> bool:
        active = [record.reservation for record in self.get_active_reservations()]
        return not find_conflicts(active, resource_name, reservation_date, start_time, end_time)

    def availability_board(
        self,
        reservation_type: str | None,
        reservation_date: str | date,
        start_time: str,
        end_time: str,
    ) -> list[tuple[Resource, bool]]:
        if reservation_type is not None and reservation_type not in RESERVATION_TYPES:
            raise ValueError(f"reservation_type must be one of: {', '.join(RESERVATION_TYPES)}")

        resources = self.catalog.by_type(reservation_type)
        active = [record.reservation for record in self.get_active_reservations()]
        flags = availability_by_resource(
            active,
            [resource.name for resource in resources],
            reservation_date,
            start_time,
            end_time,
        )
        return [(resource, flags[resource.name]) for resource in resources]

    def _resolve_resource(self, resource_name: str, reservation_type: str | None) -> Resource:
        name = _require_text(resource_name, "resource_name")
        resource = self.catalog.get(name)
        if resource is None:
            raise ValueError(f"Unknown resource: {name}")
        if reservation_type is not None and reservation_type != resource.resource_type:
            raise ValueError(f"{name} is a {resource.resource_type}, not a {reservation_type}.")
        return resource


class EvaluationYamlRepository(_YamlStore):
    def __init__(
        self,
        base_dir: str | Path = "data",
        default_rubric: Iterable[CriterionScore] = DEFAULT_RUBRIC,
    ) -> None:
        self.evaluations_file = Path(base_dir) / "evaluations.yaml"
        self.rubrics_file = Path(base_dir) / "rubrics.yaml"
        self.default_rubric = tuple(CriterionScore(item.name, item.max_score) for item in default_rubric)
        if not self.default_rubric:
            raise ValueError("default_rubric must contain at least one criterion")
        super().__init__(base_dir, [self.evaluations_file.name, self.rubrics_file.name])

    def project_rubric(self, project_id: str) -> tuple[CriterionScore, ...] | None:
        for row in self._read_yaml_list(self.rubrics_file):
            if str(row.get("project_id")) == project_id:
                return tuple(CriterionScore.from_dict(item) for item in row.get("criteria") or [])
        return None

    def _pin_rubric(self, project_id: str, now: datetime) -> tuple[CriterionScore, ...]:
        existing = self.project_rubric(project_id)
        if existing is not None:
            return existing

        rows = self._read_yaml_list(self.rubrics_file)
        rows.append(
            {
                "project_id": project_id,
                "criteria": [criterion.to_dict() for criterion in self.default_rubric],
                "pinned_at": now.isoformat(timespec="seconds"),
            }
        )
        self._write_yaml_list(self.rubrics_file, rows)
        self._log_event(
            "RUBRIC_PINNED",
            {"project_id": project_id, "criteria": [criterion.name for criterion in self.default_rubric]},
            now,
        )
        return self.default_rubric

    def get_evaluation(self, evaluation_id: str) -> EvaluationRecord | None:
        for row in self._read_yaml_list(self.evaluations_file):
            if str(row.get("evaluation_id")) == evaluation_id:
                return EvaluationRecord.from_dict(row)
        return None

    def list_evaluations(self, project_id: str | None = None, assessor_id: str | None = None) -> list[EvaluationRecord]:
        records = [EvaluationRecord.from_dict(row) for row in self._read_yaml_list(self.evaluations_file)]
        return [
            record
            for record in records
            if (project_id is None or record.project_id == project_id)
            and (assessor_id is None or record.assessor_id == assessor_id)
        ]

    def assign_assessor(
        self,
        project_id: str,
        assessor_id: str,
        assessor_name: str,
        assessor_role: str,
        now: datetime | None = None,
    ) -> EvaluationRecord:
        effective_now = now or datetime.now()
        project_id = _require_text(project_id, "project_id")
        assessor_id = _require_text(assessor_id, "assessor_id")
        assessor_name = str(assessor_name or "").strip() or assessor_id
        if assessor_role not in ASSESSOR_ROLES:
            raise ValueError(f"assessor_role must be one of: {', '.join(ASSESSOR_ROLES)}")

        if self.list_evaluations(project_id=project_id, assessor_id=assessor_id):
            raise ValueError("Assessor is already assigned to this project.")

        rubric = self._pin_rubric(project_id, effective_now)
        record = EvaluationRecord(
            evaluation_id=str(uuid4()),
            project_id=project_id,
            assessor_id=assessor_id,
            assessor_name=assessor_name,
            assessor_role=assessor_role,
            criteria=rubric,
            created_at=effective_now,
            updated_at=effective_now,
        )
        rows = self._read_yaml_list(self.evaluations_file)
        rows.append(record.to_dict())
        self._write_yaml_list(self.evaluations_file, rows)

        self._log_event(
            "EVALUATION_ASSIGNED",
            {
                "evaluation_id": record.evaluation_id,
                "project_id": project_id,
                "assessor_id": assessor_id,
                "assessor_role": assessor_role,
            },
            effective_now,
        )
        return record

    def update_scores(
        self,
        evaluation_id: str,
        scores: list[float | None] | None = None,
        comments: list[str | None] | None = None,
        final_comment: str | None = None,
        now: datetime | None = None,
    ) -> EvaluationRecord:
        effective_now = now or datetime.now()
        rows, index, current = self._find(evaluation_id)
        if current.status == STATUS_SUBMITTED:
            raise ValueError("Submitted evaluations can no longer be changed.")

        updated = self._with_scores(current, scores, comments, final_comment, effective_now)
        rows[index] = updated.to_dict()
        self._write_yaml_list(self.evaluations_file, rows)

        self._log_event(
            "EVALUATION_UPDATED",
            {
                "evaluation_id": evaluation_id,
                "project_id": updated.project_id,
                "total_score": updated.total_score,
            },
            effective_now,
        )
        return updated

    def submit_evaluation(
        self,
        evaluation_id: str,
        scores: list[float | None] | None = None,
        comments: list[str | None] | None = None,
        final_comment: str | None = None,
        now: datetime | None = None,
    ) -> EvaluationRecord:
        effective_now = now or datetime.now()
        rows, index, current = self._find(evaluation_id)
        if current.status == STATUS_SUBMITTED:
            raise ValueError("Evaluation has already been submitted.")

        updated = self._with_scores(current, scores, comments, final_comment, effective_now)
        missing = [criterion.name for criterion in updated.criteria if criterion.score is None]
        if missing:
            raise ValueError(f"Please fill in all scores before submitting (missing: {', '.join(missing)}).")

        submitted = replace(updated, status=STATUS_SUBMITTED, submitted_at=effective_now)
        rows[index] = submitted.to_dict()
        self._write_yaml_list(self.evaluations_file, rows)

        self._log_event(
            "EVALUATION_SUBMITTED",
            {
                "evaluation_id": evaluation_id,
                "project_id": submitted.project_id,
                "assessor_id": submitted.assessor_id,
                "total_score": submitted.total_score,
            },
            effective_now,
        )
        return submitted

    def delete_evaluation(self, evaluation_id: str, now: datetime | None = None) -> EvaluationRecord:
        effective_now = now or datetime.now()
        rows, index, current = self._find(evaluation_id)
        if current.status == STATUS_SUBMITTED:
            raise ValueError("Submitted evaluations cannot be deleted.")

        rows.pop(index)
        self._write_yaml_list(self.evaluations_file, rows)
        self._log_event(
            "EVALUATION_DELETED",
            {"evaluation_id": evaluation_id, "project_id": current.project_id},
            effective_now,
        )
        return current

    def summarize_project(self, project_id: str) -> EvaluationSummary:
        return summarize(record.to_evaluation() for record in self.list_evaluations(project_id=project_id))

    def _find(self, evaluation_id: str) -> tuple[list[dict[str, Any]], int, EvaluationRecord]:
        rows = self._read_yaml_list(self.evaluations_file)
        for index, row in enumerate(rows):
            if str(row.get("evaluation_id")) == evaluation_id:
                return rows, index, EvaluationRecord.from_dict(row)
        raise EvaluationNotFoundError("evaluation_id not found")

    @staticmethod
    def _with_scores(
        current: EvaluationRecord,
        scores: list[float | None] | None,
        comments: list[str | None] | None,
        final_comment: str | None,
        now: datetime,
    ) -> EvaluationRecord:
        criteria = apply_scores(current.criteria, scores, comments)
        return replace(
            current,
            criteria=criteria,
            total_score=compute_total(criteria),
            final_comment=current.final_comment if final_comment is None else str(final_comment).strip(),
            updated_at=now,
        )


def _require_text(value: str | None, field_name: str) -> str:
    if value is None:
        raise ValueError(f"{field_name} must not be None")

    normalized = str(value).strip()
    if not normalized:
        raise ValueError(f"{field_name} must not be empty")
    return normalized


def _default_purpose(resource_type: str) -> str:
    return {
        "desk": "Desk reservation",
        "lab": "Lab session",
        "meeting-room": "Meeting",
    }.get(resource_type, "Reservation")


def _validate_bookable_request(reservation: Reservation, now: datetime, holiday_country: str | None) -> None:
    start_minute = reservation.start_minute
    end_minute = reservation.end_minute
    if start_minute >= end_minute:
        raise ValueError("End time must be after start time.")

    closing_hour = CLOSING_HOUR_BY_TYPE.get(reservation.reservation_type, CLOSING_HOUR_BY_TYPE["desk"])
    if start_minute < CAMPUS_OPEN_HOUR * 60 or end_minute > closing_hour * 60:
        raise ValueError(f"Reservation must be within campus hours ({CAMPUS_OPEN_HOUR:02d}:00-{closing_hour:02d}:00).")

    day = date.fromisoformat(reservation.date)
    start = datetime.combine(day, time(start_minute // 60, start_minute % 60))
    if start < now:
        raise ValueError("Reservation start time cannot be in the past.")

    if holiday_country and _is_public_holiday(day, holiday_country):
        raise ValueError("Campus is closed on public holidays.")


def _is_public_holiday(target_date: date, country: str) -> bool:
    key = (country, target_date.year)
    if key not in _HOLIDAY_CACHE:
        holiday_map = pyholidays.country_holidays(country, years=[target_date.year])
        _HOLIDAY_CACHE[key] = set(holiday_map.keys())
    return target_date in _HOLIDAY_CACHE[key]
