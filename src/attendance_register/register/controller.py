from __future__ import annotations

import csv
import io

from flask import Flask

from ..common.datetime_utils import parse_iso_date
from ..common.http import ok
from ..container import Container
from .model import RegisterView


def register(app: Flask, container: Container) -> None:
    builder = container.register_builder

    def _write_register_csv(*, view: RegisterView, filename: str):
        session_headers = [f"{s.date.strftime('%Y-%m-%d')} {s.time}" for s in view.sessions]
        fieldnames = ["studentID", "name", "rollNumber", *session_headers, "present", "absent", "percentage"]

        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=fieldnames)
        writer.writeheader()
        for row in view.students:
            line = {
                "studentID": row.student_id,
                "name": row.name,
                "rollNumber": row.roll_number or "",
                "present": row.present_count,
                "absent": row.absent_count,
                "percentage": f"{row.percentage:.2f}",
            }
            for header, cell in zip(session_headers, row.cells):
                line[header] = cell.status.value
            writer.writerow(line)

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route(
        "/api/attendance/register/<stream>/<semester>/<subject>",
        methods=["GET"],
        endpoint="attendance_register",
    )
    def attendance_register(stream: str, semester: str, subject: str):
        view = builder.build_full_register(stream=stream, semester=semester, subject=subject)
        return ok(view.to_dict())

    @app.route(
        "/api/attendance/register/<stream>/<semester>/<subject>/export.csv",
        methods=["GET"],
        endpoint="attendance_register_csv",
    )
    def attendance_register_csv(stream: str, semester: str, subject: str):
        view = builder.build_full_register(stream=stream, semester=semester, subject=subject)
        filename = f"register_{view.stream}_sem{view.semester}_{view.subject}.csv".replace(" ", "_")
        return _write_register_csv(view=view, filename=filename)

    @app.route(
        "/api/attendance/date/<stream>/<semester>/<subject>/<day>",
        methods=["GET"],
        endpoint="attendance_by_date",
    )
    def attendance_by_date(stream: str, semester: str, subject: str, day: str):
        view = builder.build_single_date_register(
            stream=stream, semester=semester, subject=subject, day=parse_iso_date(day)
        )
        return ok(view.to_dict())

    @app.route(
        "/api/reports/student-subject-report/<stream>/<semester>",
        methods=["GET"],
        endpoint="student_subject_report",
    )
    def student_subject_report(stream: str, semester: str):
        report = builder.build_subject_report(stream=stream, semester=semester)
        return ok(report.to_dict())

    @app.route(
        "/api/attendance-students/<stream>/<semester>/<subject>",
        methods=["GET"],
        endpoint="attendance_students",
    )
    def attendance_students(stream: str, semester: str, subject: str):
        roster = builder.build_attendance_roster(stream=stream, semester=semester, subject=subject)
        return ok(roster.to_dict())
