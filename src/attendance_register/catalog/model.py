from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Stream:
    """A programme of study, e.g. name "BCA" with streamCode "bca"."""

    name: str
    stream_code: Optional[str]
    semesters: int
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "streamCode": self.stream_code,
            "name": self.name,
            "semesters": self.semesters,
        }


@dataclass(frozen=True)
class Subject:
    """A subject of a stream/semester.

    Language subjects are taken only by students whose `languageSubject` names them,
    electives only by those whose `electiveSubject` does; core subjects by everyone.
    """

    subject_id: str
    name: str
    code: str
    stream: str
    semester: int
    subject_type: str = "CORE"
    is_language_subject: bool = False

    @property
    def is_elective(self) -> bool:
        return self.subject_type.upper() == "ELECTIVE"

    def to_dict(self) -> dict:
        return {
            "_id": self.subject_id,
            "name": self.name,
            "code": self.code,
            "subjectType": self.subject_type,
            "isLanguageSubject": self.is_language_subject,
        }
