from django.contrib import admin
from .models import (
    School,
    Student,
    Teacher,
    AttendanceLog,
    Notification,
)


@admin.register(School)
class SchoolAdmin(admin.ModelAdmin):
    list_display = ("name", "created_at")
    search_fields = ("name",)


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = (
        "last_name", "first_name", "school", "grade", "section",
        "student_id_number", "rfid_code", "parent",
    )
    list_filter = ("school", "grade", "section")
    search_fields = ("last_name", "first_name", "student_id_number", "rfid_code")


@admin.register(Teacher)
class TeacherAdmin(admin.ModelAdmin):
    list_display = ("user", "school", "grade", "section")
    list_filter = ("school", "grade")
    search_fields = ("user__username", "user__first_name", "user__last_name", "section")


@admin.register(AttendanceLog)
class AttendanceLogAdmin(admin.ModelAdmin):
    list_display = ("student", "school", "direction", "scanned_at", "rfid_code")
    list_filter = ("school", "direction")
    search_fields = ("student__last_name", "student__first_name", "rfid_code")
    date_hierarchy = "scanned_at"
    list_select_related = ("student", "school")


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("user", "created_at", "title", "type", "read_at")
    list_filter = ("type", "read_at")
    search_fields = ("title", "body", "user__username", "user__first_name", "user__last_name")
    date_hierarchy = "created_at"
