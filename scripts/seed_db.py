from __future__ import annotations

import importlib

from dotenv import load_dotenv

from attendance_register.common.datetime_utils import utcnow
from attendance_register.common.logging_setup import configure_logging
from attendance_register.config import get_settings_module
from attendance_register.database.bootstrap import ensure_demo_teacher, ensure_indexes
from attendance_register.database.connection import DatabaseConnection, MongoConfig

STREAMS = [
    {"name": "BCA", "streamCode": "bca", "semesters": 6, "isActive": True},
    {"name": "BCom", "streamCode": "bcom", "semesters": 6, "isActive": True},
]

SUBJECTS = [
    {"name": "DBMS", "code": "BCA201", "stream": "BCA", "semester": 2, "subjectType": "CORE", "isActive": True},
    {"name": "Data Structures", "code": "BCA202", "stream": "BCA", "semester": 2, "subjectType": "CORE", "isActive": True},
    {
        "name": "Hindi",
        "code": "BCA203",
        "stream": "BCA",
        "semester": 2,
        "subjectType": "LANGUAGE",
        "isLanguageSubject": True,
        "isActive": True,
    },
    {"name": "Marketing", "code": "BCA204", "stream": "BCA", "semester": 2, "subjectType": "ELECTIVE", "isActive": True},
    {"name": "Accounting", "code": "BCOM101", "stream": "BCom", "semester": 1, "subjectType": "CORE", "isActive": True},
]

# (studentID, name, stream, semester, languageSubject, electiveSubject)
STUDENTS = [
    ("BCA2001", "Asha Rao", "BCA", 2, "HINDI", "Marketing"),
    ("BCA2002", "Bilal Khan", "BCA", 2, "KANNADA", None),
    ("BCA2003", "Chitra Nair", "BCA", 2, "HINDI", None),
    ("BCOM1001", "Dev Mehta", "BCom", 1, None, None),
]


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(level=getattr(settings, "LOG_LEVEL", "INFO"))
    mongo = dict(settings.MONGO_CONFIG)

    conn = DatabaseConnection(MongoConfig(uri=mongo["uri"], database=mongo["database"]))
    db = conn.db
    now = utcnow()
    try:
        ensure_indexes(db)
        for stream in STREAMS:
            db["streams"].update_one({"name": stream["name"]}, {"$setOnInsert": stream}, upsert=True)
        for subject in SUBJECTS:
            key = {"name": subject["name"], "stream": subject["stream"], "semester": subject["semester"]}
            db["subjects"].update_one(key, {"$setOnInsert": subject}, upsert=True)
        for roll, (student_id, name, stream, semester, language, elective) in enumerate(STUDENTS, start=1):
            db["students"].update_one(
                {"studentID": student_id},
                {
                    "$setOnInsert": {
                        "studentID": student_id,
                        "name": name,
                        "stream": stream,
                        "semester": semester,
                        "rollNumber": str(roll),
                        "languageSubject": language,
                        "electiveSubject": elective,
                        "isActive": True,
                        "academicYear": now.year,
                        "createdAt": now,
                        "updatedAt": now,
                    }
                },
                upsert=True,
            )
        ensure_demo_teacher(db, email="teacher@example.com", name="Demo Teacher", firebase_uid="demo-teacher-uid")
    finally:
        conn.close()

    print(f"OK: Seeded database -> {mongo['database']}")


if __name__ == "__main__":
    main()
