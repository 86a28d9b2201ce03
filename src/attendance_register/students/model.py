from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Student:
    """Roster entry. `student_id` is the business key referenced by sessions."""

    student_id: str
    name: str
    stream: str
    semester: int
    roll_number: Optional[str] = None
    is_active: bool = True
    parent_phone: Optional[str] = None
    language_subject: Optional[str] = None
    elective_subject: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "studentID": self.student_id,
            "name": self.name,
            "rollNumber": self.roll_number,
        }


@dataclass(frozen=True)
class NewStudent:
    student_id: str
    name: str
    stream: str
    semester: int
    parent_phone: Optional[str] = None
    roll_number: Optional[str] = None
    language_subject: Optional[str] = None
    elective_subject: Optional[str] = None
    academic_year: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "studentID": self.student_id,
            "name": self.name,
            "stream": self.stream,
            "semester": self.semester,
            "parentPhone": self.parent_phone,
            "languageSubject": self.language_subject,
            "electiveSubject": self.elective_subject,
            "academicYear": self.academic_year,
            "isActive": True,
        }
