import json
from datetime import datetime

from django.core.management.base import BaseCommand, CommandError
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

from attendance.archiving import SchoolYearArchiver
from attendance.exceptions import ArchiveError, SchoolNotFound


def _as_of(value):
    try:
        day = datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise CommandError(f"--as-of expects YYYY-MM-DD, got '{value}'")
    return timezone.make_aware(day)


class Command(BaseCommand):
    help = "Archive attendance logs older than the current school year into yearly tables."

    def add_arguments(self, parser):
        parser.add_argument(
            "--school",
            help="Only archive logs of the first school whose name contains this text (case-insensitive).",
        )
        parser.add_argument(
            "--as-of",
            dest="as_of",
            help="Treat this date (YYYY-MM-DD) as today when working out the current school year.",
        )
        parser.add_argument(
            "--batch-size",
            dest="batch_size",
            type=int,
            help="Rows moved per transaction (default: ATTENDANCE_ARCHIVE_BATCH_SIZE).",
        )
        parser.add_argument(
            "--json",
            action="store_true",
            help="Print the final report as JSON instead of status lines.",
        )
        parser.add_argument("--database", default="default", help="Database alias to archive.")

    def handle(self, *args, **options):
        as_json = options["json"]
        now = _as_of(options["as_of"]) if options.get("as_of") else None
        progress = None if as_json or options["verbosity"] < 1 else self.stdout.write

        if progress:
            self.stdout.write("Starting attendance logs archiving process...")
        try:
            archiver = SchoolYearArchiver(
                batch_size=options.get("batch_size"),
                using=options["database"],
                progress=progress,
            )
        except ValueError as exc:
            raise CommandError(str(exc))

        try:
            report = archiver.run(now=now, school_filter=options.get("school"))
        except SchoolNotFound as exc:
            # Not a process failure: report and stop without side effects.
            self.stderr.write(self.style.ERROR(str(exc)))
            return
        except ArchiveError as exc:
            raise CommandError(str(exc)) from exc

        if as_json:
            self.stdout.write(json.dumps(report.as_dict(), cls=DjangoJSONEncoder, indent=2))
            return
        for result in report.brackets:
            self.stdout.write(f"  SY {result.bracket.label}: {result.rows_moved} rows -> {result.table_name}")
        self.stdout.write(self.style.SUCCESS(f"Done. {report.total_rows} records archived."))
