from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from flask import Flask, jsonify, request

from .evaluation import completion_percentage, grade_for
from .session import Session, SessionError, session_from_headers
from .yaml_store import (
    DEFAULT_HOLIDAY_COUNTRY,
    EvaluationNotFoundError,
    EvaluationRecord,
    EvaluationYamlRepository,
    ReservationConflictError,
    ReservationNotFoundError,
    ReservationYamlRepository,
)

EVALUATION_MANAGER_ROLES = ("faculty", "admin")
ASSESSING_ROLES = ("faculty", "admin", "assessor")


def create_app(
    data_dir: str | Path = "data",
    now_provider: Callable[[], datetime] | None = None,
    holiday_country: str | None = DEFAULT_HOLIDAY_COUNTRY,
) -> Flask:
    app = Flask(__name__)
    reservations = ReservationYamlRepository(data_dir, holiday_country=holiday_country)
    evaluations = EvaluationYamlRepository(data_dir)
    clock: Callable[[], datetime] = now_provider or datetime.now

    def _error(message: str, status: int) -> Any:
        return jsonify({"ok": False, "message": message}), status

    def _current_session() -> Session:
        return session_from_headers(request.headers)

    def _json_object() -> dict[str, Any] | None:
        payload = request.get_json(silent=True)
        if payload is None:
            return {}
        return payload if isinstance(payload, dict) else None

    def _load_owned_evaluation(
        session: Session, evaluation_id: str, allow_admin: bool = False
    ) -> EvaluationRecord:
        record = evaluations.get_evaluation(evaluation_id)
        if record is None:
            raise EvaluationNotFoundError("Evaluation not found.")
        if record.assessor_id == session.user_id:
            return record
        if allow_admin and session.has_role("admin"):
            return record
        raise PermissionError("Only the assigned assessor can change this evaluation.")

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type,X-User-Id,X-User-Role,X-User-Name"
        return response

    @app.errorhandler(SessionError)
    def handle_session_error(error: SessionError) -> Any:
        return _error(str(error), 401)

    @app.errorhandler(PermissionError)
    def handle_permission_error(error: PermissionError) -> Any:
        return _error(str(error), 403)

    @app.errorhandler(ReservationNotFoundError)
    @app.errorhandler(EvaluationNotFoundError)
    def handle_not_found(error: ValueError) -> Any:
        return _error(str(error), 404)

    @app.get("/api/resources")
    def list_resources() -> Any:
        resource_type = request.args.get("type") or None
        items = reservations.catalog.by_type(resource_type)
        return jsonify({"ok": True, "resources": [item.to_dict() for item in items]})

    @app.get("/api/reservations")
    def list_reservations() -> Any:
        try:
            records = reservations.list_reservations(
                reservation_date=request.args.get("date") or None,
                resource_name=request.args.get("resource") or None,
                user_name=request.args.get("user") or None,
            )
        except ValueError as error:
            return _error(str(error), 400)
        return jsonify({"ok": True, "reservations": [record.to_dict() for record in records]})

    @app.get("/api/reservations/availability")
    def check_availability() -> Any:
        resource = str(request.args.get("resource", "")).strip()
        reservation_date = str(request.args.get("date", "")).strip()
        start = str(request.args.get("start", "")).strip()
        end = str(request.args.get("end", "")).strip()
        if not (resource and reservation_date and start and end):
            return _error("resource, date, start and end are required.", 400)

        try:
            available = reservations.check_availability(resource, reservation_date, start, end)
        except ValueError as error:
            return _error(str(error), 400)
        return jsonify(
            {
                "ok": True,
                "resource": resource,
                "date": reservation_date,
                "start": start,
                "end": end,
                "available": available,
            }
        )

    @app.get("/api/reservations/board")
    def availability_board() -> Any:
        reservation_type = request.args.get("type") or None
        reservation_date = str(request.args.get("date", "")).strip()
        start = str(request.args.get("start", "")).strip()
        end = str(request.args.get("end", "")).strip()
        if not (reservation_date and start and end):
            return _error("date, start and end are required.", 400)

        try:
            board = reservations.availability_board(reservation_type, reservation_date, start, end)
        except ValueError as error:
            return _error(str(error), 400)
        return jsonify(
            {
                "ok": True,
                "date": reservation_date,
                "start": start,
                "end": end,
                "resources": [{**resource.to_dict(), "available": available} for resource, available in board],
            }
        )

    @app.post("/api/reservations")
    def create_reservation() -> Any:
        payload = _json_object()
        if payload is None:
            return _error("JSON object body is required.", 400)
        required = ("resource_name", "date", "start_time", "end_time", "user_name")
        if any(not str(payload.get(key, "")).strip() for key in required):
            return _error("Please fill in all fields.", 400)

        try:
            created = reservations.add_reservation(
                resource_name=str(payload["resource_name"]),
                reservation_date=str(payload["date"]),
                start_time=str(payload["start_time"]),
                end_time=str(payload["end_time"]),
                user_name=str(payload["user_name"]),
                user_type=str(payload.get("user_type", "student")),
                purpose=str(payload.get("purpose", "")),
                reservation_type=payload.get("reservation_type") or None,
                now=clock(),
            )
        except ReservationConflictError as error:
            return (
                jsonify(
                    {
                        "ok": False,
                        "message": str(error),
                        "conflicts": [conflict.to_dict() for conflict in error.conflicts],
                    }
                ),
                409,
            )
        except ValueError as error:
            return _error(str(error), 400)
        except Exception:
            return _error("An unexpected error occurred while saving the reservation.", 500)

        return jsonify({"ok": True, "reservation": created.to_dict()}), 201

    @app.post("/api/reservations/cancel")
    def cancel_reservation() -> Any:
        payload = _json_object()
        if payload is None:
            return _error("JSON object body is required.", 400)
        reservation_id = str(payload.get("reservation_id", "")).strip()
        if not reservation_id:
            return _error("reservation_id is required.", 400)

        cancelled = reservations.cancel_reservation(reservation_id, now=clock())
        return jsonify({"ok": True, "reservation": cancelled.to_dict()})

    @app.get("/api/evaluations")
    def list_evaluations() -> Any:
        records = evaluations.list_evaluations(
            project_id=request.args.get("project_id") or None,
            assessor_id=request.args.get("assessor_id") or None,
        )
        return jsonify({"ok": True, "evaluations": [_serialize_evaluation(record) for record in records]})

    @app.get("/api/evaluations/<evaluation_id>")
    def get_evaluation(evaluation_id: str) -> Any:
        record = evaluations.get_evaluation(evaluation_id)
        if record is None:
            raise EvaluationNotFoundError("Evaluation not found.")
        return jsonify({"ok": True, "evaluation": _serialize_evaluation(record)})

    @app.post("/api/evaluations")
    def assign_evaluation() -> Any:
        session = _current_session()
        session.require_role(*EVALUATION_MANAGER_ROLES)

        payload = _json_object()
        if payload is None:
            return _error("JSON object body is required.", 400)
        project_id = str(payload.get("project_id", "")).strip()
        assessor_role = str(payload.get("assessor_role", "")).strip()
        if not project_id or not assessor_role:
            return _error("project_id and assessor_role are required.", 400)

        # Faculty assign themselves; admins may assign someone else.
        assessor_id = session.user_id
        assessor_name = session.display_name
        if session.has_role("admin") and payload.get("assessor_id"):
            assessor_id = str(payload["assessor_id"]).strip()
            assessor_name = str(payload.get("assessor_name") or assessor_id).strip()

        try:
            created = evaluations.assign_assessor(
                project_id,
                assessor_id,
                assessor_name,
                assessor_role,
                now=clock(),
            )
        except ValueError as error:
            return _error(str(error), 400)

        return jsonify({"ok": True, "evaluation": _serialize_evaluation(created)}), 201

    @app.post("/api/evaluations/update")
    def update_evaluation() -> Any:
        session = _current_session()
        session.require_role(*ASSESSING_ROLES)

        payload = _json_object()
        if payload is None:
            return _error("JSON object body is required.", 400)
        evaluation_id = str(payload.get("evaluation_id", "")).strip()
        if not evaluation_id:
            return _error("evaluation_id is required.", 400)
        _load_owned_evaluation(session, evaluation_id)

        try:
            updated = evaluations.update_scores(
                evaluation_id,
                scores=payload.get("scores"),
                comments=payload.get("comments"),
                final_comment=payload.get("final_comment"),
                now=clock(),
            )
        except ValueError as error:
            return _error(str(error), 400)

        return jsonify({"ok": True, "evaluation": _serialize_evaluation(updated)})

    @app.post("/api/evaluations/submit")
    def submit_evaluation() -> Any:
        session = _current_session()
        session.require_role(*ASSESSING_ROLES)

        payload = _json_object()
        if payload is None:
            return _error("JSON object body is required.", 400)
        evaluation_id = str(payload.get("evaluation_id", "")).strip()
        if not evaluation_id:
            return _error("evaluation_id is required.", 400)
        _load_owned_evaluation(session, evaluation_id)

        try:
            submitted = evaluations.submit_evaluation(
                evaluation_id,
                scores=payload.get("scores"),
                comments=payload.get("comments"),
                final_comment=payload.get("final_comment"),
                now=clock(),
            )
        except ValueError as error:
            return _error(str(error), 400)

        return jsonify({"ok": True, "evaluation": _serialize_evaluation(submitted)})

    @app.post("/api/evaluations/delete")
    def delete_evaluation() -> Any:
        session = _current_session()
        session.require_role(*ASSESSING_ROLES)

        payload = _json_object()
        if payload is None:
            return _error("JSON object body is required.", 400)
        evaluation_id = str(payload.get("evaluation_id", "")).strip()
        if not evaluation_id:
            return _error("evaluation_id is required.", 400)
        _load_owned_evaluation(session, evaluation_id, allow_admin=True)

        try:
            deleted = evaluations.delete_evaluation(evaluation_id, now=clock())
        except ValueError as error:
            return _error(str(error), 400)

        return jsonify({"ok": True, "evaluation": _serialize_evaluation(deleted)})

    @app.get("/api/evaluations/project/<project_id>/summary")
    def project_summary(project_id: str) -> Any:
        records = evaluations.list_evaluations(project_id=project_id)
        summary = evaluations.summarize_project(project_id)
        submitted = [record for record in records if record.to_evaluation().is_submitted]
        return jsonify(
            {
                "ok": True,
                "project_id": project_id,
                "summary": summary.to_dict(),
                "assessors": [
                    {
                        "evaluation_id": record.evaluation_id,
                        "assessor_name": record.assessor_name,
                        "assessor_role": record.assessor_role,
                        "total_score": record.total_score,
                        "grade": grade_for(record.total_score).to_dict(),
                        "submitted_at": record.submitted_at.isoformat(timespec="seconds") if record.submitted_at else None,
                    }
                    for record in submitted
                ],
            }
        )

    return app


def _serialize_evaluation(record: EvaluationRecord) -> dict[str, Any]:
    payload = record.to_dict()
    payload["grade"] = grade_for(record.total_score).to_dict()
    payload["completion"] = completion_percentage(record.criteria)
    return payload


if __name__ == "__main__":
    app = create_app()
    app.run(host="127.0.0.1", port=5000, debug=False)
