import json
from datetime import datetime
from io import StringIO

import openpyxl
import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from attendance.archive_tables import list_archive_tables
from attendance.models import AttendanceLog, School


def aware(*args):
    return timezone.make_aware(datetime(*args))


def run_archive(*args):
    out, err = StringIO(), StringIO()
    call_command("archive_attendance_logs", *args, stdout=out, stderr=err)
    return out.getvalue(), err.getvalue()


def test_archive_command_reports_progress(archive_db, student, make_log):
    make_log(student, aware(2023, 11, 2, 7, 0))
    make_log(student, aware(2025, 7, 1, 7, 0))

    out, err = run_archive("--as-of=2025-09-10")

    assert err == ""
    assert "Current school year starts: 2025" in out
    assert "Cutoff date for archiving: 2025-06-01 00:00:00" in out
    assert "Created archive table: attendance_logs_2023" in out
    assert "Success! Archived 1 records for SY 2023-2024." in out
    assert "Success! Archived 0 records for SY 2024-2025." in out
    assert "Done. 1 records archived." in out
    assert AttendanceLog.objects.count() == 1


def test_archive_command_with_school_option(archive_db, student, make_log):
    make_log(student, aware(2024, 2, 1, 7, 0))

    out, _ = run_archive("--as-of=2025-09-10", "--school=bun")

    assert "Filtering archive ONLY for school: BUNHS" in out
    assert list_archive_tables() == ["attendance_logs_bunhs_2023", "attendance_logs_bunhs_2024"]


def test_archive_command_unknown_school_is_not_fatal(archive_db, student, make_log):
    make_log(student, aware(2024, 2, 1, 7, 0))

    out, err = run_archive("--as-of=2025-09-10", "--school=Atlantis")

    assert "School matching 'Atlantis' not found." in err
    assert AttendanceLog.objects.count() == 1
    assert list_archive_tables() == []


def test_archive_command_json_output(archive_db, student, make_log):
    make_log(student, aware(2024, 2, 1, 7, 0))

    out, _ = run_archive("--as-of=2025-09-10", "--json")

    report = json.loads(out)
    assert report["current_school_year"] == "2025-2026"
    assert report["total_rows"] == 1
    assert [b["table"] for b in report["brackets"]] == ["attendance_logs_2023", "attendance_logs_2024"]
    assert report["school"] is None


def test_archive_command_rejects_bad_date(db):
    with pytest.raises(CommandError):
        run_archive("--as-of=10/09/2025")


def test_archive_command_surfaces_prefix_collision(archive_db, make_student, make_log):
    first = School.objects.create(name="St. Mary")
    School.objects.create(name="St Mary")
    make_log(make_student(first), aware(2023, 1, 5, 7, 0))

    with pytest.raises(CommandError):
        run_archive("--as-of=2025-09-10", "--school=St. Mary")


def test_export_archive_writes_workbook(archive_db, student, make_log, tmp_path):
    make_log(student, aware(2024, 2, 1, 7, 0))
    make_log(student, aware(2024, 2, 1, 16, 30), "out")
    run_archive("--as-of=2025-09-10")
    target = tmp_path / "sy2023.xlsx"

    out = StringIO()
    call_command("export_attendance_archive", "2023", f"--output={target}", stdout=out)

    assert "Exported 2 records from attendance_logs_2023" in out.getvalue()
    ws = openpyxl.load_workbook(target).active
    rows = list(ws.iter_rows(values_only=True))
    assert rows[0][:6] == ("ID", "Student ID", "School ID", "RFID Code", "Scanned At", "Direction")
    assert [r[5] for r in rows[1:]] == ["in", "out"]
    assert rows[1][4] == datetime(2024, 2, 1, 7, 0)


def test_export_archive_missing_table(archive_db):
    with pytest.raises(CommandError):
        call_command("export_attendance_archive", "2019", stdout=StringIO())
