from __future__ import annotations

import pytest

from attendance_register.core.exceptions import NotFound, ValidationError


def test_update_session_recomputes_counts(submit, container):
    sid = submit("2025-01-10", ["S1"])

    updated = container.edit_service.update_session(sid, students_present=["S2", "S3"], total_students=3)

    assert updated.present_count == 2
    assert updated.absent_count == 1


def test_update_session_unknown_id(container):
    with pytest.raises(NotFound):
        container.edit_service.update_session("000000000000000000000abc", students_present=[], total_students=1)


def test_bulk_update_reports_partial_success(submit, container, sessions_repo):
    a = submit("2025-01-10", ["S1"])
    b = submit("2025-01-11", ["S1"])
    c = submit("2025-01-12", ["S1"])
    sessions_repo.fail_ids = {c}

    result = container.edit_service.bulk_update(
        [
            {"sessionId": a, "studentsPresent": ["S1", "S2"], "totalStudents": 3},
            {"sessionId": b, "studentsPresent": ["S1"], "totalStudents": 3},
            {"sessionId": c, "studentsPresent": [], "totalStudents": 3},
            {"sessionId": "ffffffffffffffffffffffff", "studentsPresent": [], "totalStudents": 3},
        ],
        stream="BCA",
    )

    assert result.requested == 4
    assert result.matched == 2
    assert result.modified == 1
    assert result.failed == (c,)
    assert not result.complete
    assert sessions_repo.get(a).present_count == 2


def test_bulk_update_rejects_whole_batch_on_invalid_item(submit, container, sessions_repo):
    a = submit("2025-01-10", ["S1"])

    with pytest.raises(ValidationError):
        container.edit_service.bulk_update(
            [
                {"sessionId": a, "studentsPresent": ["S1", "S2"], "totalStudents": 3},
                {"sessionId": a, "studentsPresent": ["S1", "S2", "S3", "S4"], "totalStudents": 3},
            ]
        )
    assert sessions_repo.get(a).present_count == 1


def test_bulk_update_rejects_duplicate_session_ids(submit, container):
    a = submit("2025-01-10", ["S1"])
    with pytest.raises(ValidationError):
        container.edit_service.bulk_update(
            [
                {"sessionId": a, "studentsPresent": ["S1"], "totalStudents": 3},
                {"sessionId": a, "studentsPresent": ["S2"], "totalStudents": 3},
            ]
        )


@pytest.mark.parametrize("updates", [None, [], "abc", {"sessionId": "x"}])
def test_bulk_update_requires_non_empty_array(container, updates):
    with pytest.raises(ValidationError):
        container.edit_service.bulk_update(updates)


def test_bulk_update_invalidates_cached_register(submit, container):
    a = submit("2025-01-10", ["S1"])
    before = container.register_builder.build_full_register(stream="BCA", semester=2, subject="DBMS")
    assert before.average_attendance == 33.33

    container.edit_service.bulk_update([{"sessionId": a, "studentsPresent": ["S1", "S2", "S3"], "totalStudents": 3}])

    after = container.register_builder.build_full_register(stream="BCA", semester=2, subject="DBMS")
    assert after.average_attendance == 100.0
