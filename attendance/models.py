from django.db import models
from django.conf import settings

# Gate scan directions
DIRECTION_IN = "in"
DIRECTION_OUT = "out"
DIRECTION_CHOICES = (
    (DIRECTION_IN, "In"),
    (DIRECTION_OUT, "Out"),
)


class School(models.Model):
    name = models.CharField(max_length=150, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Student(models.Model):
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name="students")
    parent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="children",
    )
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    grade = models.CharField(max_length=20)
    section = models.CharField(max_length=50)
    rfid_code = models.CharField(max_length=100, unique=True, null=True, blank=True)
    student_id_number = models.CharField(max_length=50, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["last_name", "first_name"]
        indexes = [
            models.Index(fields=["school", "grade", "section"], name="idx_stu_school_grade_sec"),
        ]

    def __str__(self):
        return f"{self.last_name}, {self.first_name}"

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"


class Teacher(models.Model):
    """Assigns a user to one grade/section of a school (advisers, subject teachers)."""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="teaching_assignments")
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name="teachers")
    grade = models.CharField(max_length=20)
    section = models.CharField(max_length=50)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("user", "grade", "section")
        indexes = [
            models.Index(fields=["school", "grade", "section"], name="idx_tch_school_grade_sec"),
        ]

    def __str__(self):
        return f"{self.user} - {self.grade} {self.section}"


class AttendanceLog(models.Model):
    """One RFID scan at the school gate.

    Rows older than the current school year are moved out of this table by
    ``attendance.archiving.SchoolYearArchiver`` into ``attendance_logs_<year>``
    tables that share these columns and indexes.
    """
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="attendance_logs")
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name="attendance_logs")
    rfid_code = models.CharField(max_length=255)
    scanned_at = models.DateTimeField()
    direction = models.CharField(max_length=10, choices=DIRECTION_CHOICES, default=DIRECTION_IN)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "attendance_logs"
        ordering = ["-scanned_at"]
        indexes = [
            models.Index(fields=["school", "scanned_at"], name="idx_att_school_scanned"),
            models.Index(fields=["student", "scanned_at"], name="idx_att_student_scanned"),
            models.Index(fields=["student"], name="idx_att_student"),
            models.Index(fields=["created_at"], name="idx_att_created"),
            models.Index(fields=["school"], name="idx_att_school"),
        ]

    def __str__(self):
        return f"{self.student_id} {self.direction} @ {self.scanned_at:%Y-%m-%d %H:%M}"


class Notification(models.Model):
    TYPE_CHOICES = (
        ("general", "General"),
        ("attendance_in", "Arrival"),
        ("attendance_out", "Departure"),
    )

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="gate_notifications")
    title = models.CharField(max_length=255)
    body = models.TextField()
    type = models.CharField(max_length=32, choices=TYPE_CHOICES, default="general")
    data = models.JSONField(null=True, blank=True)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "read_at"], name="idx_notif_user_read"),
            models.Index(fields=["user", "created_at"], name="idx_notif_user_created"),
        ]

    def __str__(self):
        return f"{self.user}: {self.title}"

    @property
    def is_read(self):
        return self.read_at is not None
