from __future__ import annotations

from datetime import date
from functools import wraps

import structlog
from flask import Flask, jsonify, request, session

from ..common.datetime_utils import parse_iso_date
from ..common.validators import require_int, require_month, require_positive_int
from ..container import Container
from ..core.exceptions import (
    CalculationError,
    DomainError,
    ReconciliationConflictError,
    SessionStateError,
    ValidationError,
)
from .service import build_coordinate, parse_status, parse_work_location, session_to_dict

logger = structlog.get_logger(__name__)

ADMIN_ROLE = "admin"


def _status_for(exc: DomainError) -> int:
    if isinstance(exc, (SessionStateError, ReconciliationConflictError)):
        return 409
    if isinstance(exc, CalculationError):
        return 422
    return 400


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "employee_id" not in session:
                return jsonify({"success": False, "error": "unauthorized", "message": "Please log in to continue."}), 401
            return view(*args, **kwargs)

        return wrapper

    def admin_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "employee_id" not in session:
                return jsonify({"success": False, "error": "unauthorized", "message": "Please log in to continue."}), 401
            if str(session.get("role", "")).lower() != ADMIN_ROLE:
                return jsonify({"success": False, "error": "forbidden", "message": "Administrator access required."}), 403
            return view(*args, **kwargs)

        return wrapper

    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        status = _status_for(exc)
        logger.info("request_rejected", path=request.path, error=exc.code, status=status)
        return jsonify({"success": False, "error": exc.code, "message": str(exc)}), status

    def _payload() -> dict:
        data = request.get_json(silent=True)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data

    @app.route("/api/attendance/start-day", methods=["POST"], endpoint="api_start_day")
    @login_required
    def start_day():
        data = _payload()
        if data.get("latitude") is None or data.get("longitude") is None:
            raise ValidationError("latitude and longitude are required to start your day")
        location = build_coordinate(data.get("latitude"), data.get("longitude"), data.get("accuracy"))
        work_session = service.start_day(
            int(session["employee_id"]),
            location,
            work_location=parse_work_location(data.get("work_location")),
        )
        return jsonify({"success": True, "session": session_to_dict(work_session)}), 201

    @app.route("/api/attendance/end-day", methods=["POST"], endpoint="api_end_day")
    @login_required
    def end_day():
        data = _payload()
        location = None
        if data.get("latitude") is not None and data.get("longitude") is not None:
            location = build_coordinate(data.get("latitude"), data.get("longitude"), data.get("accuracy"))
        closure = service.end_day(int(session["employee_id"]), location)
        return jsonify(
            {
                "success": True,
                "session": session_to_dict(closure.session),
                "record": closure.record.to_dict() if closure.record is not None else None,
            }
        )

    @app.route("/api/attendance/live", methods=["GET"], endpoint="api_live_attendance")
    @admin_required
    def live_attendance():
        date_s = request.args.get("date")
        work_date = parse_iso_date(date_s) if date_s else date.today()
        snapshot = service.get_live_attendance(
            work_date,
            department=request.args.get("department") or None,
            status=parse_status(request.args.get("status")),
            work_location=parse_work_location(request.args.get("work_location")),
        )
        return jsonify({"success": True, **snapshot})

    @app.route("/api/biometric/upload", methods=["POST"], endpoint="api_biometric_upload")
    @admin_required
    def biometric_upload():
        data = _payload()
        rows = data.get("rows")
        if not isinstance(rows, list):
            raise ValidationError("rows must be a list of punch rows")
        summary = service.upload_biometric(rows, source_file_id=data.get("source_file_id"))
        return jsonify({"success": True, **summary})

    @app.route("/api/salary/<int:employee_id>/<int:year>/<int:month>", methods=["GET"], endpoint="api_salary")
    @login_required
    def salary(employee_id: int, year: int, month: int):
        is_admin = str(session.get("role", "")).lower() == ADMIN_ROLE
        if not is_admin and int(session["employee_id"]) != employee_id:
            return jsonify({"success": False, "error": "forbidden", "message": "You can only view your own salary."}), 403
        working_days = request.args.get("working_days")
        calculation = service.calculate_salary(
            employee_id,
            year,
            month,
            require_positive_int(working_days, "working_days") if working_days else None,
        )
        return jsonify({"success": True, "calculation": calculation.to_dict()})

    @app.route("/api/salary/bulk", methods=["POST"], endpoint="api_salary_bulk")
    @admin_required
    def salary_bulk():
        data = _payload()
        year, month = require_month(data.get("year"), data.get("month"))
        working_days = data.get("working_days")
        employee_ids = data.get("employee_ids")
        if employee_ids is not None:
            if not isinstance(employee_ids, list):
                raise ValidationError("employee_ids must be a list")
            employee_ids = [require_int(e, "employee_ids") for e in employee_ids]
        result = service.calculate_bulk_salary(
            year,
            month,
            require_positive_int(working_days, "working_days") if working_days is not None else None,
            employee_ids=employee_ids,
        )
        return jsonify({"success": True, **result.to_dict()})

    @app.route("/api/attendance/auto-close", methods=["POST"], endpoint="api_auto_close")
    @admin_required
    def auto_close():
        report = service.run_auto_close()
        return jsonify({"success": True, **report.to_dict()})
