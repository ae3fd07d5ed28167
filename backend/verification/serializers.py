"""
Verification app serializers.

Read serializers for the verification state attached to a case and the
request bodies of the document-review commands.  The commands themselves
are exposed as actions of ``cases.views.CaseViewSet``.
"""

from __future__ import annotations

from rest_framework import serializers

from .models import DocumentReview, VerificationCase
from .services import VerificationWorkflow


# ═══════════════════════════════════════════════════════════════════
#  Read Serializers
# ═══════════════════════════════════════════════════════════════════


class DocumentReviewSerializer(serializers.ModelSerializer):
    superseded_by = serializers.SerializerMethodField()

    class Meta:
        model = DocumentReview
        fields = [
            "id",
            "name",
            "size",
            "uploaded_at",
            "uploaded_by",
            "status",
            "stage1_reviewer",
            "stage1_reviewed_at",
            "stage1_comments",
            "stage2_reviewer",
            "stage2_reviewed_at",
            "stage2_comments",
            "supersedes",
            "superseded_by",
        ]
        read_only_fields = fields

    def get_superseded_by(self, obj: DocumentReview) -> int | None:
        replacement = getattr(obj, "superseded_by", None)
        return replacement.pk if replacement is not None else None


class VerificationCaseSerializer(serializers.ModelSerializer):
    documents = DocumentReviewSerializer(many=True, read_only=True)
    progress = serializers.SerializerMethodField()

    class Meta:
        model = VerificationCase
        fields = [
            "case",
            "current_stage",
            "overall_status",
            "progress",
            "stage1_completed_at",
            "stage2_completed_at",
            "rejected_at",
            "rejection_reason",
            "documents",
        ]
        read_only_fields = fields

    def get_progress(self, obj: VerificationCase) -> int:
        return VerificationWorkflow.progress(obj)


# ═══════════════════════════════════════════════════════════════════
#  Command Serializers
# ═══════════════════════════════════════════════════════════════════


class _Versioned(serializers.Serializer):
    version = serializers.IntegerField(
        required=False,
        min_value=1,
        help_text="Case version the client last read; a mismatch yields 409.",
    )


class DocumentSubmitSerializer(_Versioned):
    """
    Request body for ``POST /api/cases/{id}/documents/``.

    File transfer is handled elsewhere; only the document metadata is
    registered for review.  ``supersedes`` names the rejected document a
    corrective submission replaces.
    """

    name = serializers.CharField(max_length=255)
    size = serializers.IntegerField(min_value=0, default=0)
    supersedes = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class DocumentDecisionSerializer(_Versioned):
    """Request body for ``POST /api/cases/{id}/documents/{doc}/review/``."""

    DECISION_CHOICES = [("approve", "Approve"), ("reject", "Reject")]

    decision = serializers.ChoiceField(choices=DECISION_CHOICES)
    comments = serializers.CharField(required=False, allow_blank=True, default="", max_length=2000)

    def validate(self, attrs):
        if attrs["decision"] == "reject" and not attrs.get("comments", "").strip():
            raise serializers.ValidationError(
                {"comments": "Comments are required when rejecting a document."}
            )
        return attrs


class CompleteStageSerializer(_Versioned):
    stage = serializers.ChoiceField(choices=[(1, "Stage 1"), (2, "Stage 2")])


class RejectVerificationSerializer(_Versioned):
    reason = serializers.CharField(max_length=2000)
