import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("cases", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="VerificationCase",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("current_stage", models.PositiveSmallIntegerField(default=1, help_text="1 = executive review, 2 = master review.", verbose_name="Current Stage")),
                ("overall_status", models.CharField(choices=[("INITIAL_WORK", "Initial Work"), ("STAGE_1_REVIEW", "Stage 1 Review"), ("STAGE_2_REVIEW", "Stage 2 Review"), ("VERIFIED", "Verified"), ("REJECTED", "Rejected")], db_index=True, default="INITIAL_WORK", max_length=16, verbose_name="Overall Status")),
                ("stage1_completed_at", models.DateTimeField(blank=True, null=True, verbose_name="Stage 1 Completed At")),
                ("stage2_completed_at", models.DateTimeField(blank=True, null=True, verbose_name="Stage 2 Completed At")),
                ("rejected_at", models.DateTimeField(blank=True, null=True, verbose_name="Rejected At")),
                ("rejection_reason", models.TextField(blank=True, default="", verbose_name="Rejection Reason")),
                ("case", models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name="verification", to="cases.case", verbose_name="Case")),
            ],
            options={
                "verbose_name": "Verification Case",
                "verbose_name_plural": "Verification Cases",
            },
        ),
        migrations.CreateModel(
            name="DocumentReview",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255, verbose_name="File Name")),
                ("size", models.PositiveBigIntegerField(default=0, verbose_name="Size (bytes)")),
                ("uploaded_at", models.DateTimeField(default=django.utils.timezone.now, verbose_name="Uploaded At")),
                ("uploaded_by", models.CharField(blank=True, default="", max_length=255, verbose_name="Uploaded By")),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("STAGE_1_APPROVED", "Stage 1 Approved"), ("STAGE_1_REJECTED", "Stage 1 Rejected"), ("STAGE_2_APPROVED", "Stage 2 Approved"), ("STAGE_2_REJECTED", "Stage 2 Rejected"), ("VERIFIED", "Verified")], db_index=True, default="PENDING", max_length=20, verbose_name="Status")),
                ("stage1_reviewer", models.CharField(blank=True, default="", max_length=255)),
                ("stage1_reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("stage1_comments", models.TextField(blank=True, default="")),
                ("stage2_reviewer", models.CharField(blank=True, default="", max_length=255)),
                ("stage2_reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("stage2_comments", models.TextField(blank=True, default="")),
                ("supersedes", models.OneToOneField(blank=True, help_text="Rejected document this submission corrects.", null=True, on_delete=django.db.models.deletion.PROTECT, related_name="superseded_by", to="verification.documentreview", verbose_name="Supersedes")),
                ("verification", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="documents", to="verification.verificationcase", verbose_name="Verification")),
            ],
            options={
                "verbose_name": "Document Review",
                "verbose_name_plural": "Document Reviews",
                "ordering": ["uploaded_at", "id"],
            },
        ),
    ]
