"""Attendance Register package.

Feature modules (sessions, register, edits, promotion, teachers, ...) each keep a
thin Flask controller layer on top of service and repository layers.
"""
