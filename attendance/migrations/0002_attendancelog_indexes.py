from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("attendance", "0001_initial"),
    ]

    # Single-column lookups used by audits and by the school-year archiver
    operations = [
        migrations.AddIndex(
            model_name="attendancelog",
            index=models.Index(fields=["student"], name="idx_att_student"),
        ),
        migrations.AddIndex(
            model_name="attendancelog",
            index=models.Index(fields=["created_at"], name="idx_att_created"),
        ),
        migrations.AddIndex(
            model_name="attendancelog",
            index=models.Index(fields=["school"], name="idx_att_school"),
        ),
    ]
