import logging

from django.utils import timezone

from .models import DIRECTION_IN, AttendanceLog, Notification, Teacher

logger = logging.getLogger(__name__)


def _payload(log):
    student = log.student
    return {
        "student_id": student.id,
        "student_name": student.full_name,
        "grade": student.grade,
        "section": student.section,
        "school_name": log.school.name,
        "direction": log.direction,
        "scanned_at": log.scanned_at.isoformat(),
        "attendance_log_id": log.id,
    }


def fan_out_scan_notifications(log_id):
    """Notify the student's parent and the teachers of the student's section about a gate scan.

    Returns the created notifications. The log may already have been archived
    when this runs late; nothing is sent in that case.
    """
    log = AttendanceLog.objects.select_related("student", "school").filter(pk=log_id).first()
    if log is None:
        logger.info("Attendance log %s no longer in the live table; skipping notifications", log_id)
        return []

    student = log.student
    school = log.school
    arrived = log.direction == DIRECTION_IN
    verb = "arrived at" if arrived else "left"
    local = timezone.localtime(log.scanned_at) if timezone.is_aware(log.scanned_at) else log.scanned_at
    time = local.strftime("%I:%M %p").lstrip("0")
    day = local.strftime("%b %d, %Y")
    kind = "attendance_in" if arrived else "attendance_out"
    data = _payload(log)

    created = []
    if student.parent_id:
        created.append(Notification(
            user_id=student.parent_id,
            title="Student Arrived at School" if arrived else "Student Left School",
            body=f"Your child {student.full_name} has {verb} {school.name} at {time} on {day}.",
            type=kind,
            data=data,
        ))

    teachers = Teacher.objects.filter(
        school_id=student.school_id,
        grade=student.grade,
        section=student.section,
    ).only("user_id")
    for teacher in teachers:
        created.append(Notification(
            user_id=teacher.user_id,
            title="Student Arrived" if arrived else "Student Departed",
            body=(
                f"Student {student.full_name} (Grade {student.grade} - Section {student.section}) "
                f"has {verb} {school.name} at {time}."
            ),
            type=kind,
            data=data,
        ))

    Notification.objects.bulk_create(created)
    logger.debug("Created %s notification(s) for attendance log %s", len(created), log.id)
    return created
