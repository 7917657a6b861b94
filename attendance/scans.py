"""Gate kiosk scan ingestion: turns an RFID tap into an attendance log."""
import logging
from collections import namedtuple
from datetime import timedelta
from functools import partial

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .exceptions import DuplicateScan, UnknownCard
from .models import DIRECTION_IN, DIRECTION_OUT, AttendanceLog, Student, Teacher
from .notifications import fan_out_scan_notifications

logger = logging.getLogger(__name__)

ScanResult = namedtuple("ScanResult", ["log", "student", "direction", "adviser_name", "message"])


def infer_direction(student, now):
    """'out' when today's latest 'in' scan has no later 'out' scan, otherwise 'in'."""
    today = timezone.localdate(now) if timezone.is_aware(now) else now.date()
    last_in = (
        AttendanceLog.objects.filter(student=student, direction=DIRECTION_IN, scanned_at__date=today)
        .order_by("-scanned_at")
        .first()
    )
    if last_in is None:
        return DIRECTION_IN
    left_since = AttendanceLog.objects.filter(
        student=student,
        direction=DIRECTION_OUT,
        scanned_at__gt=last_in.scanned_at,
    ).exists()
    return DIRECTION_IN if left_since else DIRECTION_OUT


def adviser_name(student):
    teacher = (
        Teacher.objects.filter(school_id=student.school_id, grade=student.grade, section=student.section)
        .select_related("user")
        .order_by("id")
        .first()
    )
    if teacher is None:
        return "No Adviser Assigned"
    return teacher.user.get_full_name() or teacher.user.get_username()


@transaction.atomic
def record_scan(rfid_code, school_id, now=None):
    """Record a kiosk scan and schedule parent/teacher notifications once committed.

    Raises UnknownCard when no student of the school holds the card and
    DuplicateScan when the student tapped within the cooldown window.
    """
    now = now or timezone.now()
    student = Student.objects.filter(rfid_code=rfid_code, school_id=school_id).first()
    if student is None:
        logger.info("Unknown RFID card %s at school %s", rfid_code, school_id)
        raise UnknownCard(rfid_code, school_id)

    cooldown = timedelta(minutes=settings.KIOSK_SCAN_COOLDOWN_MINUTES)
    recent = (
        AttendanceLog.objects.filter(student=student, scanned_at__gte=now - cooldown, scanned_at__lte=now)
        .order_by("-scanned_at")
        .first()
    )
    if recent is not None:
        raise DuplicateScan(student, recent)

    direction = infer_direction(student, now)
    log = AttendanceLog.objects.create(
        student=student,
        school_id=student.school_id,
        rfid_code=rfid_code,
        scanned_at=now,
        direction=direction,
    )
    transaction.on_commit(partial(fan_out_scan_notifications, log.pk))

    if direction == DIRECTION_IN:
        message = f"Welcome, {student.full_name}!"
    else:
        message = f"Goodbye, {student.full_name}! Stay safe."
    logger.info("Scan recorded: student %s %s at school %s", student.pk, direction, student.school_id)
    return ScanResult(log, student, direction, adviser_name(student), message)
