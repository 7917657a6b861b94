"""School-year ("bracket") arithmetic used by the attendance archiver.

A school year runs from June 1 00:00:00 to May 31 23:59:59 of the next
calendar year, in the project time zone. A bracket is named after the
calendar year it starts in.
"""
import re
from collections import namedtuple
from datetime import datetime

from django.conf import settings
from django.utils import timezone

SCHOOL_YEAR_START_MONTH = 6
ARCHIVE_TABLE_BASE = "attendance_logs_"

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


class SchoolYearBracket(namedtuple("SchoolYearBracket", ["start_year", "end_year"])):
    __slots__ = ()

    @classmethod
    def starting(cls, start_year):
        return cls(start_year, start_year + 1)

    @classmethod
    def containing(cls, moment):
        return cls.starting(bracket_start_year(moment))

    @property
    def start(self):
        """First instant of the bracket: June 1 00:00:00."""
        return _local(datetime(self.start_year, SCHOOL_YEAR_START_MONTH, 1))

    @property
    def end(self):
        """Last whole second of the bracket: May 31 23:59:59."""
        return _local(datetime(self.end_year, SCHOOL_YEAR_START_MONTH - 1, 31, 23, 59, 59))

    @property
    def next_start(self):
        """First instant of the following bracket (exclusive upper bound)."""
        return _local(datetime(self.end_year, SCHOOL_YEAR_START_MONTH, 1))

    @property
    def label(self):
        return f"{self.start_year}-{self.end_year}"

    def next(self):
        return SchoolYearBracket.starting(self.start_year + 1)


def _local(naive):
    return timezone.make_aware(naive) if settings.USE_TZ else naive


def bracket_start_year(moment):
    """June or later belongs to the bracket starting that year, earlier months to the previous one."""
    if isinstance(moment, datetime) and timezone.is_aware(moment):
        moment = timezone.localtime(moment)
    return moment.year if moment.month >= SCHOOL_YEAR_START_MONTH else moment.year - 1


def school_prefix(name):
    """Table-safe prefix for a school's archive tables, e.g. 'B.U.N.H.S.' -> 'bunhs_'."""
    return _NON_ALNUM.sub("", name).lower() + "_"


def archive_table_name(start_year, prefix=""):
    return f"{ARCHIVE_TABLE_BASE}{prefix}{start_year}"
