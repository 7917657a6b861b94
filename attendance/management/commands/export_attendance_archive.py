from pathlib import Path

import openpyxl
from openpyxl.styles import Alignment, Font
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from attendance.archive_tables import archive_model, archive_table_exists
from attendance.models import School
from attendance.school_year import SchoolYearBracket, school_prefix

HEADERS = ["ID", "Student ID", "School ID", "RFID Code", "Scanned At", "Direction", "Created At", "Updated At"]


def _cell_time(value):
    # openpyxl rejects tz-aware datetimes
    if value is not None and timezone.is_aware(value):
        return timezone.make_naive(value)
    return value


class Command(BaseCommand):
    help = "Export one school year's attendance archive table to an Excel workbook."

    def add_arguments(self, parser):
        parser.add_argument("start_year", type=int, help="First calendar year of the school year, e.g. 2023 for SY 2023-2024.")
        parser.add_argument("--school", help="Export the per-school archive of the first school whose name contains this text.")
        parser.add_argument("--output", help="Destination .xlsx path (default: <table name>.xlsx).")
        parser.add_argument("--database", default="default")

    def handle(self, *args, **options):
        using = options["database"]
        prefix = ""
        if options.get("school"):
            school = School.objects.using(using).filter(name__icontains=options["school"]).order_by("id").first()
            if school is None:
                raise CommandError(f"School matching '{options['school']}' not found.")
            prefix = school_prefix(school.name)

        bracket = SchoolYearBracket.starting(options["start_year"])
        model = archive_model(bracket.start_year, prefix)
        table_name = model._meta.db_table
        if not archive_table_exists(model, using=using):
            raise CommandError(f"Archive table {table_name} does not exist.")

        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = f"SY {bracket.label}"
        for c, h in enumerate(HEADERS, 1):
            cell = ws.cell(row=1, column=c, value=h)
            cell.font = Font(bold=True)
            cell.alignment = Alignment(horizontal="center")

        rows = 0
        for log in model.objects.using(using).order_by("scanned_at", "id").iterator():
            ws.append([
                log.id,
                log.student_id,
                log.school_id,
                log.rfid_code,
                _cell_time(log.scanned_at),
                log.direction,
                _cell_time(log.created_at),
                _cell_time(log.updated_at),
            ])
            rows += 1

        output = Path(options.get("output") or f"{table_name}.xlsx")
        wb.save(output)
        self.stdout.write(self.style.SUCCESS(f"Exported {rows} records from {table_name} to {output}"))
