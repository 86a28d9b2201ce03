from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import parse_iso_date
from ..common.http import json_body, ok
from ..common.validators import parse_semester
from ..container import Container


def register(app: Flask, container: Container) -> None:
    edits = container.edit_service

    @app.route("/api/attendance/session/<session_id>", methods=["PUT"], endpoint="edit_session")
    def edit_session(session_id: str):
        body = json_body()
        session = edits.update_session(
            session_id,
            students_present=body.get("studentsPresent"),
            total_students=body.get("totalStudents"),
        )
        return ok(message="Session updated successfully", session=session.to_dict())

    @app.route("/api/attendance/bulk", methods=["PUT"], endpoint="bulk_edit")
    def bulk_edit():
        result = edits.bulk_update(json_body().get("updates"))
        return ok(result.to_dict(), message=f"Updated {result.modified} attendance records")

    @app.route(
        "/api/attendance/bulk/<stream>/<semester>/<subject>/<day>",
        methods=["PUT"],
        endpoint="bulk_edit_for_day",
    )
    def bulk_edit_for_day(stream: str, semester: str, subject: str, day: str):
        # path only scopes the request; each update names its own session
        parse_semester(semester)
        parse_iso_date(day)
        result = edits.bulk_update(json_body().get("updates"), stream=stream)
        return ok(result.to_dict(), message=f"Updated {result.modified} attendance records")
