from __future__ import annotations

from flask import Flask, request

from ..common.http import json_body, ok, query_date
from ..common.datetime_utils import parse_iso_date
from ..common.validators import parse_semester
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.exceptions import NotFound, ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    sessions = container.session_service

    def _submit(*, stream, semester, subject, body: dict):
        session_id = sessions.submit(
            stream=stream,
            semester=semester,
            subject=subject,
            date=body.get("date"),
            time=body.get("time"),
            students_present=body.get("studentsPresent"),
            total_students=body.get("totalStudents"),
        )
        return ok(attendanceId=session_id, status=201)

    @app.route("/api/attendance/<stream>/<semester>/<subject>", methods=["POST"], endpoint="submit_attendance")
    def submit_attendance(stream: str, semester: str, subject: str):
        return _submit(stream=stream, semester=semester, subject=subject, body=json_body())

    @app.route("/api/attendance", methods=["POST"], endpoint="submit_attendance_body")
    def submit_attendance_body():
        body = json_body()
        return _submit(
            stream=body.get("stream"),
            semester=body.get("semester"),
            subject=body.get("subject"),
            body=body,
        )

    @app.route("/api/attendance", methods=["GET"], endpoint="list_attendance")
    def list_attendance():
        args = request.args
        try:
            page = int(args.get("page", 1))
            limit = int(args.get("limit", DEFAULT_PAGE_SIZE))
        except ValueError:
            raise ValidationError("page and limit must be integers")

        result = sessions.list_sessions(
            stream=args.get("stream"),
            semester=args.get("semester"),
            subject=args.get("subject"),
            on_date=query_date("date"),
            time=args.get("time"),
            start=query_date("startDate"),
            end=query_date("endDate"),
            page=page,
            limit=limit,
        )
        return ok(result.to_dict())

    @app.route("/api/attendance/<session_id>", methods=["GET"], endpoint="get_attendance")
    def get_attendance(session_id: str):
        return ok(record=sessions.get(session_id).to_dict())

    @app.route("/api/attendance/<session_id>", methods=["PUT"], endpoint="update_attendance")
    def update_attendance(session_id: str):
        record = sessions.update(session_id, json_body())
        return ok(record=record.to_dict())

    @app.route("/api/attendance/<session_id>", methods=["DELETE"], endpoint="delete_attendance")
    def delete_attendance(session_id: str):
        if not sessions.delete(session_id):
            raise NotFound("Record not found")
        return ok(message="Deleted successfully")

    @app.route("/api/attendance/delete", methods=["POST"], endpoint="delete_attendance_many")
    def delete_attendance_many():
        """Delete a selection (`ids`) or a subject's sessions between two dates."""

        body = json_body()
        if "ids" in body:
            ids = body["ids"]
            if not isinstance(ids, list):
                raise ValidationError("ids must be a non-empty array")
            deleted = sessions.delete_many(ids)
        else:
            deleted = sessions.delete_range(
                stream=body.get("stream"),
                semester=body.get("semester"),
                subject=body.get("subject"),
                start=parse_iso_date(body.get("startDate")),
                end=parse_iso_date(body.get("endDate")),
            )
        return ok(deletedCount=deleted, message=f"Deleted {deleted} attendance records")

    @app.route("/api/attendance/stats/<stream>/<semester>", methods=["GET"], endpoint="attendance_stats")
    def attendance_stats(stream: str, semester: str):
        stats = sessions.subject_stats(stream=stream, semester=semester)
        return ok(stats=[s.to_dict() for s in stats], stream=stream, semester=parse_semester(semester))
