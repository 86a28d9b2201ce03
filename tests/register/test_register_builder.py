from __future__ import annotations

from datetime import date, datetime

import pytest

from attendance_register.catalog.model import Subject
from attendance_register.core.enums import Mark, RosterFilter
from attendance_register.core.exceptions import StoreError


def _dbms_week(submit):
    first = submit("2025-01-10", ["S1", "S2"])
    second = submit("2025-01-11", ["S1", "S3"])
    return first, second


def test_full_register_percentages_and_average(submit, container):
    first, second = _dbms_week(submit)

    view = container.register_builder.build_full_register(stream="BCA", semester=2, subject="DBMS")

    by_id = {r.student_id: r for r in view.students}
    assert by_id["S1"].percentage == 100.0
    assert by_id["S2"].percentage == 50.0
    assert by_id["S3"].percentage == 50.0
    assert view.average_attendance == 66.67
    assert view.total_possible_attendances == 6
    assert [c.session_id for c in view.sessions] == [first, second]
    assert view.cell("S2", second) is Mark.ABSENT


def test_every_row_has_one_cell_per_session(submit, container):
    submit("2025-01-11", ["S1"], time="2:00 PM - 3:00 PM")
    submit("2025-01-11", ["S2"], time="9:00 AM - 10:00 AM")
    submit("2025-01-10", ["S3"])

    view = container.register_builder.build_full_register(stream="bca", semester="2", subject="dbms")

    assert len(view.students) == 3
    for row in view.students:
        assert len(row.cells) == len(view.sessions) == 3
        assert row.present_count + row.absent_count == row.total_sessions
    times = [(c.date.day, c.time) for c in view.sessions]
    assert times == [(10, "10:00 AM - 11:00 AM"), (11, "9:00 AM - 10:00 AM"), (11, "2:00 PM - 3:00 PM")]


def test_correcting_a_session_flips_exactly_one_cell(submit, container):
    first, second = _dbms_week(submit)
    before = container.register_builder.build_full_register(stream="BCA", semester=2, subject="DBMS")

    container.edit_service.update_session(first, students_present=["S1", "S2", "S3"], total_students=3)
    after = container.register_builder.build_full_register(stream="BCA", semester=2, subject="DBMS")

    flipped = [
        (r.student_id, c.session_id)
        for r in after.students
        for c in r.cells
        if c.status is not before.cell(r.student_id, c.session_id)
    ]
    assert flipped == [("S3", first)]


def test_present_ids_off_the_roster_get_no_row(submit, container):
    submit("2025-01-10", ["S1", "S9"], total=4)

    view = container.register_builder.build_full_register(stream="BCA", semester=2, subject="DBMS")

    assert {r.student_id for r in view.students} == {"S1", "S2", "S3"}
    assert view.sessions[0].unrostered_present == ("S9",)
    assert view.sessions[0].present_count == 2


def test_register_without_sessions(container):
    view = container.register_builder.build_full_register(stream="BCA", semester=2, subject="DBMS")

    assert view.sessions == ()
    assert all(r.percentage == 0.0 for r in view.students)
    assert view.average_attendance == 0.0
    assert view.to_dict()["statistics"]["totalPossibleAttendances"] == 0


def test_date_view_without_attendance_returns_bare_roster(submit, container):
    submit("2025-01-10", ["S1"])

    view = container.register_builder.build_single_date_register(
        stream="BCA", semester=2, subject="DBMS", day=date(2025, 1, 12)
    )
    payload = view.to_dict()

    assert payload["hasAttendance"] is False
    assert [s["studentID"] for s in payload["students"]] == ["S1", "S2", "S3"]
    assert "sessions" not in payload["students"][0]


def test_date_view_lists_every_period_of_the_day(submit, container):
    morning = submit("2025-01-10", ["S1"], time="9:00 AM - 10:00 AM")
    noon = submit("2025-01-10", ["S2"], time="12:00 PM - 1:00 PM")
    submit("2025-01-11", ["S3"])

    payload = container.register_builder.build_single_date_register(
        stream="BCA", semester=2, subject="DBMS", day=datetime(2025, 1, 10, 15, 30)
    ).to_dict()

    assert payload["hasAttendance"] is True
    s2 = next(s for s in payload["students"] if s["studentID"] == "S2")
    assert s2["sessions"] == [
        {"time": "9:00 AM - 10:00 AM", "status": "A", "sessionId": morning},
        {"time": "12:00 PM - 1:00 PM", "status": "P", "sessionId": noon},
    ]


def test_subject_report_groups_subjects_case_insensitively(submit, container, fixed_now):
    _dbms_week(submit)
    submit("2025-01-12", ["S1"], subject="dbms")
    submit("2025-01-12", ["S2"], subject="Networks")

    report = container.register_builder.build_subject_report(stream="BCA", semester=2, now=fixed_now)
    payload = report.to_dict()

    assert payload["subjects"] == ["DBMS", "Networks"]
    s1 = next(s for s in payload["students"] if s["studentID"] == "S1")
    assert s1["subjects"]["DBMS"] == {"present": 3, "total": 3, "percentage": 100}
    assert s1["subjects"]["Networks"] == {"present": 0, "total": 1, "percentage": 0}
    assert payload["reportDate"] == "2025-01-12"


def test_failed_roster_fetch_caches_nothing(submit, container, students_repo, cache):
    _dbms_week(submit)
    students_repo.fail_list = True

    with pytest.raises(StoreError):
        container.register_builder.build_full_register(stream="BCA", semester=2, subject="DBMS")
    assert len(cache) == 0

    students_repo.fail_list = False
    view = container.register_builder.build_full_register(stream="BCA", semester=2, subject="DBMS")
    assert len(view.students) == 3


def test_register_read_racing_an_edit_is_not_cached(submit, container, sessions_repo, monkeypatch):
    sid = submit("2025-01-10", ["S1"])
    original_find = sessions_repo.find
    raced = []

    def find_then_edit(*args, **kwargs):
        rows = original_find(*args, **kwargs)
        if not raced:
            raced.append(sid)
            container.edit_service.update_session(sid, students_present=["S1", "S2"], total_students=3)
        return rows

    monkeypatch.setattr(sessions_repo, "find", find_then_edit)

    stale = container.register_builder.build_full_register(stream="BCA", semester=2, subject="DBMS")
    assert stale.cell("S2", sid) is Mark.ABSENT

    fresh = container.register_builder.build_full_register(stream="BCA", semester=2, subject="DBMS")
    assert fresh.cell("S2", sid) is Mark.PRESENT
    by_id = {r.student_id: r for r in fresh.students}
    assert by_id["S2"].present_count == 1


@pytest.fixture
def optional_subjects(students_repo, catalog_repo):
    catalog_repo.subjects += [
        Subject(subject_id="sub3", name="Hindi", code="BCA203", stream="BCA", semester=2, is_language_subject=True),
        Subject(subject_id="sub4", name="Marketing", code="BCA204", stream="BCA", semester=2, subject_type="ELECTIVE"),
    ]
    students_repo.add("S5", "Esha", "BCA", 2, language_subject="HINDI", elective_subject="Finance")
    students_repo.add("S4", "Dev", "BCA", 2, language_subject="Kannada", elective_subject="Marketing")
    students_repo.add("S6", "Farah", "BCA", 2, language_subject="Hindi", elective_subject="marketing")


def test_language_subject_roster_keeps_its_takers(optional_subjects, container):
    roster = container.register_builder.build_attendance_roster(stream="BCA", semester="sem2", subject="hindi")

    assert roster.filter_applied is RosterFilter.LANGUAGE
    assert [s.student_id for s in roster.students] == ["S5", "S6"]
    payload = roster.to_dict()
    assert payload["count"] == 2
    assert payload["filterApplied"] == "language"
    assert payload["students"][0]["languageSubject"] == "HINDI"


def test_elective_roster_keeps_its_takers(optional_subjects, container):
    roster = container.register_builder.build_attendance_roster(stream="BCA", semester=2, subject="Marketing")

    assert roster.filter_applied is RosterFilter.ELECTIVE
    assert [s.student_id for s in roster.students] == ["S4", "S6"]
    assert roster.students[0].elective_subject == "Marketing"


def test_core_and_unknown_subjects_list_the_whole_class(optional_subjects, container):
    core = container.register_builder.build_attendance_roster(stream="BCA", semester=2, subject="DBMS")
    unknown = container.register_builder.build_attendance_roster(stream="BCA", semester=2, subject="Yoga")

    expected = ["S1", "S2", "S3", "S4", "S5", "S6"]
    assert [s.student_id for s in core.students] == expected
    assert core.filter_applied is RosterFilter.NONE
    assert [s.student_id for s in unknown.students] == expected
    assert unknown.to_dict()["filterApplied"] == "none"


def test_roster_is_cached_until_the_stream_changes(optional_subjects, container, students_repo):
    container.register_builder.build_attendance_roster(stream="BCA", semester=2, subject="Hindi")
    container.register_builder.build_attendance_roster(stream="bca", semester=2, subject="HINDI")
    assert students_repo.calls["list_active"] == 1

    container.cache.invalidate_stream("BCA")
    container.register_builder.build_attendance_roster(stream="BCA", semester=2, subject="Hindi")
    assert students_repo.calls["list_active"] == 2
