class ArchiveError(Exception):
    """Base class for failures of the school-year archiving job."""


class SchoolNotFound(ArchiveError):
    def __init__(self, pattern):
        self.pattern = pattern
        super().__init__(f"School matching '{pattern}' not found.")


class SchoolPrefixCollision(ArchiveError):
    """Another school's name collapses to the same archive-table prefix."""

    def __init__(self, school, others, prefix):
        self.school = school
        self.others = list(others)
        self.prefix = prefix
        names = ", ".join(o.name for o in self.others)
        super().__init__(
            f"Archive prefix '{prefix}' of school '{school.name}' is shared with: {names}. "
            "Rename one of the schools before archiving."
        )


class ArchiveTableCreationFailed(ArchiveError):
    def __init__(self, table_name, cause=None):
        self.table_name = table_name
        self.cause = cause
        super().__init__(f"Could not create archive table {table_name}: {cause}")


class ArchiveTransactionFailed(ArchiveError):
    """A batch failed to move; earlier batches stay committed."""

    def __init__(self, table_name, batches_committed, rows_archived, cause=None):
        self.table_name = table_name
        self.batches_committed = batches_committed
        self.rows_archived = rows_archived
        self.cause = cause
        super().__init__(
            f"Archiving into {table_name} failed after {batches_committed} batch(es) "
            f"({rows_archived} rows archived): {cause}"
        )


class ScanRejected(Exception):
    """Base class for kiosk scans that do not produce an attendance log."""


class UnknownCard(ScanRejected):
    def __init__(self, rfid_code, school_id):
        self.rfid_code = rfid_code
        self.school_id = school_id
        super().__init__("Unrecognized RFID card. Please contact the admin.")


class DuplicateScan(ScanRejected):
    def __init__(self, student, last_scan):
        self.student = student
        self.last_scan = last_scan
        super().__init__("Already scanned recently. Please wait before scanning again.")
