"""Move attendance logs of finished school years into per-year archive tables.

Rows are moved in id-ordered batches. Each batch is inserted into the archive
table and deleted from ``attendance_logs`` inside one transaction, so a row is
never in both tables nor in neither. Pagination is keyed on ``id > last_id``
because moved rows disappear from the source while the bracket is drained.
A run that stops between batches is resumed by running it again.
"""
import logging
from collections import namedtuple

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, DatabaseError, transaction
from django.utils import timezone

from .archive_tables import archive_model, ensure_archive_table
from .exceptions import (
    ArchiveError,
    ArchiveTransactionFailed,
    SchoolNotFound,
    SchoolPrefixCollision,
)
from .models import AttendanceLog, School
from .school_year import SchoolYearBracket, school_prefix

logger = logging.getLogger(__name__)

LOG_COLUMNS = (
    "id",
    "student_id",
    "school_id",
    "rfid_code",
    "scanned_at",
    "direction",
    "created_at",
    "updated_at",
)


class LiveRowsChanged(Exception):
    """The live rows of a batch changed between reading and deleting them."""


class BracketResult(namedtuple("BracketResult", ["bracket", "table_name", "rows_moved", "batches", "table_created"])):
    __slots__ = ()

    def as_dict(self):
        return {
            "school_year": self.bracket.label,
            "start_year": self.bracket.start_year,
            "table": self.table_name,
            "rows_moved": self.rows_moved,
            "batches": self.batches,
            "table_created": self.table_created,
        }


class ArchiveReport:
    def __init__(self, now, current_bracket, school=None):
        self.now = now
        self.current_bracket = current_bracket
        self.school = school
        self.brackets = []

    @property
    def cutoff(self):
        return self.current_bracket.start

    @property
    def total_rows(self):
        return sum(b.rows_moved for b in self.brackets)

    def as_dict(self):
        return {
            "now": self.now,
            "current_school_year": self.current_bracket.label,
            "cutoff": self.cutoff,
            "school": {"id": self.school.pk, "name": self.school.name} if self.school else None,
            "brackets": [b.as_dict() for b in self.brackets],
            "total_rows": self.total_rows,
        }


class SchoolYearArchiver:
    """Drains every finished school year from ``attendance_logs``, oldest first.

    ``progress`` receives each human-readable status line in addition to the
    module logger, e.g. a management command's ``stdout.write``.
    """

    def __init__(self, batch_size=None, using=DEFAULT_DB_ALIAS, progress=None):
        self.batch_size = batch_size or settings.ATTENDANCE_ARCHIVE_BATCH_SIZE
        if self.batch_size < 1:
            raise ValueError("batch_size must be a positive integer")
        self.using = using
        self.progress = progress

    def _say(self, message, *args):
        logger.info(message, *args)
        if self.progress is not None:
            self.progress(message % args if args else message)

    def run(self, now=None, school_filter=None):
        """Archive all logs scanned before the current school year.

        Raises SchoolNotFound (before touching anything) when ``school_filter``
        matches no school, ArchiveTableCreationFailed or ArchiveTransactionFailed
        when a bracket cannot be completed. Errors carry the partial report.
        """
        now = now or timezone.now()
        school, prefix = self._resolve_school(school_filter)

        current = SchoolYearBracket.containing(now)
        report = ArchiveReport(now, current, school)
        self._say("Current school year starts: %s", current.start_year)
        self._say("Cutoff date for archiving: %s", _display(current.start))

        oldest = (
            self._live_logs(school)
            .filter(scanned_at__lt=current.start)
            .order_by("scanned_at", "id")
            .values_list("scanned_at", flat=True)
            .first()
        )
        if oldest is None:
            self._say("No attendance logs require archiving at this time.")
            return report

        bracket = SchoolYearBracket.containing(oldest)
        self._say("Oldest unarchived log belongs to SY %s", bracket.label)

        # Brackets run one after another; the current one is never archived.
        while bracket.start_year < current.start_year:
            try:
                report.brackets.append(self.archive_bracket(bracket, school, prefix))
            except ArchiveError as exc:
                exc.report = report
                raise
            bracket = bracket.next()

        self._say(
            "Archiving process completed: %s records across %s school year(s).",
            report.total_rows, len(report.brackets),
        )
        return report

    def _resolve_school(self, school_filter):
        if not school_filter:
            return None, ""
        school = (
            School.objects.using(self.using)
            .filter(name__icontains=school_filter)
            .order_by("id")
            .first()
        )
        if school is None:
            logger.warning("No school matches '%s'; nothing archived", school_filter)
            raise SchoolNotFound(school_filter)

        prefix = school_prefix(school.name)
        others = [
            s for s in School.objects.using(self.using).exclude(pk=school.pk).only("id", "name")
            if school_prefix(s.name) == prefix
        ]
        if others:
            raise SchoolPrefixCollision(school, others, prefix)

        self._say("Filtering archive ONLY for school: %s (ID: %s)", school.name, school.pk)
        return school, prefix

    def _live_logs(self, school=None):
        qs = AttendanceLog.objects.using(self.using)
        if school is not None:
            qs = qs.filter(school_id=school.pk)
        return qs

    def archive_bracket(self, bracket, school=None, prefix=""):
        """Move one school year's live logs into its archive table."""
        model = archive_model(bracket.start_year, prefix)
        table_name = model._meta.db_table

        created = ensure_archive_table(model, using=self.using)
        if created:
            self._say("Created archive table: %s", table_name)
        self._say("Moving records for SY %s to %s...", bracket.label, table_name)

        window = self._live_logs(school).filter(
            scanned_at__gte=bracket.start,
            scanned_at__lt=bracket.next_start,
        )
        rows_moved = 0
        batches = 0
        last_id = 0
        while True:
            batch = list(
                window.filter(id__gt=last_id)
                .order_by("id")
                .values(*LOG_COLUMNS)[:self.batch_size]
            )
            if not batch:
                break
            try:
                self._move_batch(model, batch)
            except (DatabaseError, LiveRowsChanged) as exc:
                logger.exception(
                    "Archiving batch after id %s into %s failed; %s batch(es) were committed",
                    last_id, table_name, batches,
                )
                raise ArchiveTransactionFailed(table_name, batches, rows_moved, exc) from exc
            batches += 1
            rows_moved += len(batch)
            last_id = batch[-1]["id"]
            logger.debug("Archived batch %s (%s rows, up to id %s) into %s", batches, len(batch), last_id, table_name)

        self._say("Success! Archived %s records for SY %s.", rows_moved, bracket.label)
        return BracketResult(bracket, table_name, rows_moved, batches, created)

    def _move_batch(self, model, batch):
        ids = [row["id"] for row in batch]
        with transaction.atomic(using=self.using):
            model.objects.using(self.using).bulk_create([model(**row) for row in batch])
            deleted = self._delete_live(ids)
            if deleted != len(ids):
                raise LiveRowsChanged(f"expected to delete {len(ids)} rows, deleted {deleted}")

    def _delete_live(self, ids):
        deleted, _ = AttendanceLog.objects.using(self.using).filter(id__in=ids).delete()
        return deleted


def _display(moment):
    if timezone.is_aware(moment):
        moment = timezone.localtime(moment)
    return moment.strftime("%Y-%m-%d %H:%M:%S")
