from __future__ import annotations

from flask import Flask

from ..common.http import ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    catalog = container.catalog_service

    @app.route("/api/streams", methods=["GET"], endpoint="list_streams")
    def list_streams():
        streams = [s.to_dict() for s in catalog.list_streams()]
        return ok(streams=streams, count=len(streams))

    @app.route("/api/semesters/<stream>", methods=["GET"], endpoint="list_semesters")
    def list_semesters(stream: str):
        return ok(stream=stream, semesters=list(catalog.semesters_of(stream)))

    @app.route("/api/subjects/<stream>/<semester>", methods=["GET"], endpoint="list_subjects")
    def list_subjects(stream: str, semester: str):
        found, subjects = catalog.subjects_of(stream=stream, semester=semester)
        payload = {
            "stream": stream,
            "streamName": found.name if found else None,
            "subjects": [s.to_dict() for s in subjects],
            "count": len(subjects),
        }
        if not found:
            payload["message"] = "Stream not found"
        return ok(payload)
