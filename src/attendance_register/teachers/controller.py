from __future__ import annotations

from flask import Flask, request

from ..common.http import json_body, ok
from ..container import Container
from ..core.enums import WorkList
from ..core.exceptions import ValidationError

# list -> (url segment, body key for a new entry, response key for listing)
_ROUTES = {
    WorkList.SUBJECTS: ("subjects", "subject", "subjects"),
    WorkList.QUEUE: ("queue", "item", "queueData"),
    WorkList.COMPLETED: ("completed", "completedClass", "completedClasses"),
}


def register(app: Flask, container: Container) -> None:
    teachers = container.teacher_service

    def _email_arg() -> str:
        email = request.args.get("email")
        if not email:
            raise ValidationError("Email parameter is required")
        return email

    def _teacher_email_for_delete() -> str:
        body = request.get_json(silent=True) or {}
        email = body.get("teacherEmail") if isinstance(body, dict) else None
        email = email or request.args.get("email")
        if not email:
            raise ValidationError("Teacher email is required")
        return email

    @app.route("/api/teacher/profile", methods=["POST"], endpoint="teacher_save_profile")
    def teacher_save_profile():
        body = json_body()
        profile = teachers.save_profile(
            firebase_uid=body.get("firebaseUid"),
            email=body.get("email"),
            name=body.get("name"),
        )
        return ok(teacher=profile.to_dict())

    @app.route("/api/teacher/profile/<firebase_uid>", methods=["GET"], endpoint="teacher_profile_by_uid")
    def teacher_profile_by_uid(firebase_uid: str):
        return ok(teacher=teachers.profile_by_uid(firebase_uid).to_dict())

    @app.route("/api/teacher/profile/email/<email>", methods=["GET"], endpoint="teacher_profile_by_email")
    def teacher_profile_by_email(email: str):
        return ok(teacher=teachers.profile_by_email(email).to_dict())

    @app.route("/api/teacher/stats/<email>", methods=["GET"], endpoint="teacher_stats")
    def teacher_stats(email: str):
        return ok(stats=teachers.stats(email).to_dict())

    @app.route("/api/teacher/queue", methods=["PUT"], endpoint="teacher_save_queue")
    def teacher_save_queue():
        body = json_body()
        profile = teachers.save_queue(body.get("teacherEmail"), body.get("queueData"))
        return ok(teacher=profile.to_dict())

    def _add_work_list_routes(kind: WorkList) -> None:
        segment, body_key, list_key = _ROUTES[kind]

        def list_items():
            limit = request.args.get("limit")
            if limit is not None and not limit.isdigit():
                raise ValidationError("limit must be a positive integer")
            items = teachers.list_items(_email_arg(), kind, limit=int(limit) if limit else None)
            return ok({list_key: [i.to_dict(kind) for i in items]})

        def add_item():
            body = json_body()
            profile = teachers.append(body.get("teacherEmail"), kind, body.get(body_key))
            return ok(teacher=profile.to_dict(), status=201)

        def remove_item(item_id: str):
            profile = teachers.remove(_teacher_email_for_delete(), kind, item_id)
            return ok(teacher=profile.to_dict())

        app.add_url_rule(f"/api/teacher/{segment}", f"teacher_list_{segment}", list_items, methods=["GET"])
        app.add_url_rule(f"/api/teacher/{segment}", f"teacher_add_{segment}", add_item, methods=["POST"])
        app.add_url_rule(
            f"/api/teacher/{segment}/<item_id>", f"teacher_remove_{segment}", remove_item, methods=["DELETE"]
        )

    for kind in WorkList:
        _add_work_list_routes(kind)
