import pytest
from django.contrib.auth import get_user_model
from django.db import connection

from attendance.archive_tables import list_archive_tables
from attendance.models import AttendanceLog, School, Student


@pytest.fixture
def archive_db(transactional_db):
    """Database access for tests that create archive tables (DDL cannot run inside the test transaction)."""
    yield
    with connection.schema_editor() as editor:
        for name in list_archive_tables():
            editor.execute(editor.sql_delete_table % {"table": editor.quote_name(name)})


@pytest.fixture
def school():
    return School.objects.create(name="BUNHS")


@pytest.fixture
def make_student():
    counter = {"n": 0}

    def _make(school, **kwargs):
        counter["n"] += 1
        n = counter["n"]
        defaults = {
            "first_name": f"Juan{n}",
            "last_name": "Dela Cruz",
            "grade": "7",
            "section": "Sampaguita",
            "rfid_code": f"RFID-{school.pk}-{n:04d}",
            "student_id_number": f"SID-{school.pk}-{n:04d}",
        }
        defaults.update(kwargs)
        return Student.objects.create(school=school, **defaults)

    return _make


@pytest.fixture
def student(school, make_student):
    return make_student(school)


@pytest.fixture
def make_log():
    def _make(student, scanned_at, direction="in"):
        return AttendanceLog.objects.create(
            student=student,
            school_id=student.school_id,
            rfid_code=student.rfid_code or "",
            scanned_at=scanned_at,
            direction=direction,
        )

    return _make


@pytest.fixture
def make_user():
    def _make(username, **kwargs):
        return get_user_model().objects.create_user(username=username, password="secret", **kwargs)

    return _make
