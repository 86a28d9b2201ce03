from __future__ import annotations

from flask import Flask

from ..common.http import json_body, ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    promotion = container.promotion_service

    @app.route("/api/simple-promotion-preview/<stream>", methods=["GET"], endpoint="promotion_preview")
    def promotion_preview(stream: str):
        return ok(promotion.preview(stream).to_dict())

    @app.route("/api/simple-promotion/<stream>", methods=["POST"], endpoint="promotion_execute")
    def promotion_execute(stream: str):
        return ok(promotion.execute(stream).to_dict())

    @app.route("/api/can-undo-promotion/<stream>", methods=["GET"], endpoint="promotion_can_undo")
    def promotion_can_undo(stream: str):
        return ok(promotion.can_undo(stream).to_dict())

    @app.route("/api/undo-promotion/<stream>", methods=["POST"], endpoint="promotion_undo")
    def promotion_undo(stream: str):
        return ok(promotion.undo(stream).to_dict())

    @app.route("/api/add-student/<stream>/sem1", methods=["POST"], endpoint="admit_student")
    def admit_student(stream: str):
        body = json_body()
        student = promotion.admit(
            stream,
            student_id=body.get("studentID"),
            name=body.get("name"),
            parent_phone=body.get("parentPhone"),
        )
        return ok(
            message=f"Student {student.student_id} added to {student.stream} Semester {student.semester}",
            student=student.to_dict(),
            status=201,
        )
