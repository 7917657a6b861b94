from datetime import datetime

import pytest
from django.utils import timezone

from attendance.exceptions import DuplicateScan, UnknownCard
from attendance.models import AttendanceLog, Notification, School, Teacher
from attendance.notifications import fan_out_scan_notifications
from attendance.scans import record_scan


def aware(*args):
    return timezone.make_aware(datetime(*args))


@pytest.mark.django_db
def test_first_scan_of_the_day_is_in_then_out(student, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=False):
        arrival = record_scan(student.rfid_code, student.school_id, now=aware(2025, 9, 10, 7, 0))
        departure = record_scan(student.rfid_code, student.school_id, now=aware(2025, 9, 10, 16, 0))
        back = record_scan(student.rfid_code, student.school_id, now=aware(2025, 9, 10, 17, 0))

    assert arrival.direction == "in"
    assert arrival.message == f"Welcome, {student.full_name}!"
    assert departure.direction == "out"
    assert departure.message.startswith("Goodbye")
    assert back.direction == "in"
    assert AttendanceLog.objects.filter(student=student).count() == 3


@pytest.mark.django_db
def test_new_day_starts_with_in(student, make_log, django_capture_on_commit_callbacks):
    make_log(student, aware(2025, 9, 9, 7, 0), "in")

    with django_capture_on_commit_callbacks(execute=False):
        result = record_scan(student.rfid_code, student.school_id, now=aware(2025, 9, 10, 7, 0))

    assert result.direction == "in"


@pytest.mark.django_db
def test_repeat_tap_within_cooldown_is_rejected(student, settings, django_capture_on_commit_callbacks):
    settings.KIOSK_SCAN_COOLDOWN_MINUTES = 5
    with django_capture_on_commit_callbacks(execute=False):
        record_scan(student.rfid_code, student.school_id, now=aware(2025, 9, 10, 7, 0))
        with pytest.raises(DuplicateScan) as excinfo:
            record_scan(student.rfid_code, student.school_id, now=aware(2025, 9, 10, 7, 4))

    assert excinfo.value.student == student
    assert AttendanceLog.objects.count() == 1


@pytest.mark.django_db
def test_unknown_card_or_wrong_school_is_rejected(student):
    other = School.objects.create(name="Rizal High School")

    with pytest.raises(UnknownCard):
        record_scan("NOT-A-CARD", student.school_id)
    with pytest.raises(UnknownCard):
        record_scan(student.rfid_code, other.pk)
    assert AttendanceLog.objects.count() == 0


@pytest.mark.django_db
def test_scan_notifies_parent_and_section_teachers(school, make_student, make_user, django_capture_on_commit_callbacks):
    parent = make_user("parent")
    adviser = make_user("adviser", first_name="Maria", last_name="Santos")
    other_section = make_user("other")
    kid = make_student(school, parent=parent, first_name="Ana", last_name="Reyes")
    Teacher.objects.create(user=adviser, school=school, grade=kid.grade, section=kid.section)
    Teacher.objects.create(user=other_section, school=school, grade=kid.grade, section="Rosal")

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        result = record_scan(kid.rfid_code, school.pk, now=aware(2025, 9, 10, 7, 5))

    assert len(callbacks) == 1
    assert result.adviser_name == "Maria Santos"
    notes = {n.user_id: n for n in Notification.objects.all()}
    assert set(notes) == {parent.pk, adviser.pk}
    assert notes[parent.pk].title == "Student Arrived at School"
    assert notes[parent.pk].body == "Your child Ana Reyes has arrived at BUNHS at 7:05 AM on Sep 10, 2025."
    assert notes[adviser.pk].title == "Student Arrived"
    assert notes[adviser.pk].type == "attendance_in"
    assert notes[adviser.pk].data["attendance_log_id"] == result.log.pk
    assert notes[adviser.pk].data["direction"] == "in"


@pytest.mark.django_db
def test_departure_without_parent_only_notifies_teachers(school, student, make_log, make_user):
    teacher = make_user("teacher")
    Teacher.objects.create(user=teacher, school=school, grade=student.grade, section=student.section)
    log = make_log(student, aware(2025, 9, 10, 16, 0), "out")

    created = fan_out_scan_notifications(log.pk)

    assert [n.user_id for n in created] == [teacher.pk]
    assert created[0].title == "Student Departed"
    assert "has left BUNHS at 4:00 PM" in created[0].body


@pytest.mark.django_db
def test_fan_out_for_archived_log_does_nothing():
    assert fan_out_scan_notifications(987654) == []
    assert Notification.objects.count() == 0


@pytest.mark.django_db
def test_adviser_placeholder_when_section_has_no_teacher(student, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=False):
        result = record_scan(student.rfid_code, student.school_id, now=aware(2025, 9, 10, 7, 0))

    assert result.adviser_name == "No Adviser Assigned"
