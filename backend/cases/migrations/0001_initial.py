import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

CATEGORY_CHOICES = [
    ("Grievance", "Grievance"),
    ("TempleLetter", "Temple Letter"),
    ("CMRelief", "CM Relief Fund"),
    ("Dispute", "Dispute"),
    ("CSRIndustrial", "CSR Industrial"),
    ("EducationSupport", "Education Support"),
    ("Appointment", "Appointment"),
    ("Program", "Program"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Case",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("id", models.CharField(editable=False, max_length=32, primary_key=True, serialize=False, verbose_name="Case ID")),
                ("category", models.CharField(choices=CATEGORY_CHOICES, db_index=True, max_length=20, verbose_name="Category")),
                ("status", models.CharField(db_index=True, help_text="Member of the category's status vocabulary.", max_length=30, verbose_name="Current Status")),
                ("priority", models.CharField(blank=True, choices=[("P1", "P1 (48 hours)"), ("P2", "P2 (5 days)"), ("P3", "P3 (10 days)"), ("P4", "P4 (20 days)")], help_text="SLA priority. Empty on SLA-bearing categories means P3.", max_length=2, null=True, verbose_name="Priority")),
                ("title", models.CharField(max_length=255, verbose_name="Title")),
                ("applicant", models.CharField(blank=True, default="", max_length=255, verbose_name="Applicant")),
                ("description", models.TextField(blank=True, default="", verbose_name="Description")),
                ("district", models.CharField(blank=True, default="", max_length=100, verbose_name="District")),
                ("details", models.JSONField(blank=True, default=dict, help_text="Category-specific intake fields (amounts, dates, parties, ...).", verbose_name="Category Details")),
                ("assigned_to", models.CharField(blank=True, db_index=True, default="", help_text="Officer name or department id.", max_length=255, verbose_name="Assigned To")),
                ("assigned_to_kind", models.CharField(blank=True, choices=[("officer", "Officer"), ("department", "Department")], default="", max_length=12, verbose_name="Assignee Kind")),
                ("created_by", models.CharField(blank=True, default="", help_text="Actor id of the intake submitter.", max_length=64, verbose_name="Created By")),
                ("version", models.PositiveIntegerField(default=1, verbose_name="Version")),
                ("closed_at", models.DateTimeField(blank=True, help_text="When the case entered a terminal status; freezes the SLA clock.", null=True, verbose_name="Closed At")),
            ],
            options={
                "verbose_name": "Case",
                "verbose_name_plural": "Cases",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["category", "status"], name="cases_case_categor_3c9e1a_idx")],
            },
        ),
        migrations.CreateModel(
            name="CaseSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("prefix", models.CharField(max_length=3)),
                ("district_code", models.CharField(max_length=3)),
                ("year", models.PositiveSmallIntegerField()),
                ("last_value", models.PositiveIntegerField(default=0)),
            ],
            options={
                "verbose_name": "Case Sequence",
                "constraints": [models.UniqueConstraint(fields=("prefix", "district_code", "year"), name="unique_case_sequence")],
            },
        ),
        migrations.CreateModel(
            name="OutwardSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("department_code", models.CharField(max_length=8)),
                ("date", models.DateField()),
                ("last_value", models.PositiveIntegerField(default=0)),
            ],
            options={
                "verbose_name": "Outward Sequence",
                "constraints": [models.UniqueConstraint(fields=("department_code", "date"), name="unique_outward_sequence")],
            },
        ),
        migrations.CreateModel(
            name="RoutingRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("department", models.CharField(max_length=32, verbose_name="Department")),
                ("department_code", models.CharField(max_length=8, verbose_name="Department Code")),
                ("officer", models.CharField(blank=True, default="", max_length=255, verbose_name="Officer")),
                ("memo", models.TextField(blank=True, default="", verbose_name="Memo")),
                ("priority", models.CharField(choices=[("urgent", "Urgent"), ("high", "High"), ("normal", "Normal")], default="normal", max_length=10, verbose_name="Routing Priority")),
                ("expected_date", models.DateField(blank=True, null=True, verbose_name="Expected Response Date")),
                ("outward_number", models.CharField(max_length=40, unique=True, verbose_name="Outward Number")),
                ("routed_by", models.CharField(max_length=255, verbose_name="Routed By")),
                ("routed_at", models.DateTimeField(default=django.utils.timezone.now, verbose_name="Routed At")),
                ("case", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="routings", to="cases.case", verbose_name="Case")),
            ],
            options={
                "verbose_name": "Routing Record",
                "verbose_name_plural": "Routing Records",
                "ordering": ["-routed_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="TimelineEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now, verbose_name="Timestamp")),
                ("actor", models.CharField(max_length=255, verbose_name="Actor")),
                ("actor_id", models.CharField(blank=True, default="", max_length=64, verbose_name="Actor ID")),
                ("action", models.CharField(max_length=255, verbose_name="Action")),
                ("detail", models.TextField(blank=True, default="", verbose_name="Detail")),
                ("kind", models.CharField(choices=[("system", "System"), ("user", "User"), ("status", "Status Change"), ("assignment", "Assignment")], max_length=12, verbose_name="Kind")),
                ("case", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="timeline", to="cases.case", verbose_name="Case")),
            ],
            options={
                "verbose_name": "Timeline Event",
                "verbose_name_plural": "Timeline Events",
                "ordering": ["id"],
            },
        ),
    ]
