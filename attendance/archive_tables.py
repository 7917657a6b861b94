"""Per-school-year archive tables for attendance logs.

Each archive table is described by a model built at runtime and kept in its
own app registry, so ``makemigrations`` never picks them up. The columns and
secondary indexes mirror ``AttendanceLog``; the student and school references
are plain integers so archived rows survive deletion of the referenced rows.
"""
import logging

from django.apps.registry import Apps
from django.db import DEFAULT_DB_ALIAS, DatabaseError, connections, models

from .exceptions import ArchiveTableCreationFailed
from .models import DIRECTION_CHOICES, DIRECTION_IN
from .school_year import ARCHIVE_TABLE_BASE, archive_table_name

logger = logging.getLogger(__name__)

archive_apps = Apps()

_registry = {}


def archive_model(start_year, prefix=""):
    """Model class for the ``(start_year, prefix)`` archive table, built once per process."""
    key = (start_year, prefix)
    model = _registry.get(key)
    if model is None:
        model = _build_model(archive_table_name(start_year, prefix))
        _registry[key] = model
    return model


def _build_model(table_name):
    meta = type("Meta", (), {
        "app_label": "attendance",
        "apps": archive_apps,
        "db_table": table_name,
        "ordering": ["scanned_at", "id"],
        # Same secondary indexes as the live table; names are derived from the table name.
        "indexes": [
            models.Index(fields=["school_id", "scanned_at"]),
            models.Index(fields=["student_id", "scanned_at"]),
            models.Index(fields=["student_id"]),
            models.Index(fields=["created_at"]),
            models.Index(fields=["school_id"]),
        ],
    })
    attrs = {
        "__module__": __name__,
        "Meta": meta,
        "id": models.BigAutoField(primary_key=True),
        "student_id": models.BigIntegerField(),
        "school_id": models.BigIntegerField(),
        "rfid_code": models.CharField(max_length=255),
        "scanned_at": models.DateTimeField(),
        "direction": models.CharField(max_length=10, choices=DIRECTION_CHOICES, default=DIRECTION_IN),
        "created_at": models.DateTimeField(),
        "updated_at": models.DateTimeField(),
    }
    class_name = "ArchivedAttendanceLog_" + table_name[len(ARCHIVE_TABLE_BASE):]
    return type(class_name, (models.Model,), attrs)


def archive_table_exists(model, using=DEFAULT_DB_ALIAS):
    connection = connections[using]
    return model._meta.db_table in connection.introspection.table_names()


def ensure_archive_table(model, using=DEFAULT_DB_ALIAS):
    """Create the archive table unless it already exists. Returns True when it was created."""
    if archive_table_exists(model, using=using):
        return False
    table_name = model._meta.db_table
    logger.info("Creating archive table %s", table_name)
    try:
        with connections[using].schema_editor() as editor:
            editor.create_model(model)
    except DatabaseError as exc:
        logger.exception("Creating archive table %s failed", table_name)
        raise ArchiveTableCreationFailed(table_name, exc) from exc
    return True


def list_archive_tables(using=DEFAULT_DB_ALIAS):
    """Names of all attendance archive tables present in the database."""
    names = connections[using].introspection.table_names()
    return sorted(n for n in names if n.startswith(ARCHIVE_TABLE_BASE))
