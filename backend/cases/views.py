"""
Cases app ViewSets.

Architecture: Views are intentionally thin.
Every view follows the strict three-step pattern:

    1. Parse / validate input via a serializer.
    2. Delegate all business logic to the appropriate service class.
    3. Serialize the result and return a DRF ``Response``.

Domain exceptions raised by the services are turned into responses by
``core.domain.exception_handler``; views only catch
``StageAlreadyCompleted``, which is answered as a no-op success.

The engine trusts the actor it is given.  *Who may call* each command is
decided here from the authenticated user's role:

    transition / assign / route / reject   → executive or master
    document review, stage completion      → executive (stage 1) or master (stage 2)
    create, submit documents, reads        → any authenticated user

ViewSets
--------
- ``CaseViewSet`` — all case endpoints, with @action methods for the
  lifecycle commands and the verification sub-resource.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from core.constants import ROLE_EXEC_ADMIN, ROLE_MASTER_ADMIN
from core.domain.access import Actor, require_role
from core.domain.exceptions import StageAlreadyCompleted
from verification.serializers import (
    CompleteStageSerializer,
    DocumentDecisionSerializer,
    DocumentReviewSerializer,
    DocumentSubmitSerializer,
    RejectVerificationSerializer,
    VerificationCaseSerializer,
)

from .registry import all_workflows, get_workflow, statuses_for
from .serializers import (
    AssignCaseSerializer,
    BulkTransitionSerializer,
    CaseCreateSerializer,
    CaseDetailSerializer,
    CaseFilterSerializer,
    CaseListSerializer,
    CaseTransitionSerializer,
    RouteCaseSerializer,
    RoutingRecordSerializer,
    SlaQuerySerializer,
    TimelineEventSerializer,
    serialize_sla,
)
from .services import CaseLifecycleService, CaseQueryService

logger = logging.getLogger(__name__)

_STAFF_ROLES = (ROLE_EXEC_ADMIN, ROLE_MASTER_ADMIN)
_STAGE_ROLE = {1: ROLE_EXEC_ADMIN, 2: ROLE_MASTER_ADMIN}


def _workflow_payload(workflow) -> dict:
    return {
        "category": workflow.category,
        "label": workflow.label,
        "prefix": workflow.prefix,
        "statuses": statuses_for(workflow.category),
        "initial_status": workflow.initial_status,
        "terminal_statuses": [s for s in workflow.statuses if s in workflow.terminal_statuses],
        "transitions": {s: list(workflow.transitions.get(s, ())) for s in workflow.statuses},
        "sla_bearing": workflow.sla_bearing,
    }


class CaseViewSet(viewsets.ViewSet):
    """
    Central ViewSet for the cases app.

    Uses ``viewsets.ViewSet`` (not ``ModelViewSet``) so every action is
    explicitly defined; cases are never updated or deleted directly.
    """

    permission_classes = [IsAuthenticated]

    # ── Helpers ──────────────────────────────────────────────────────

    @staticmethod
    def _actor(request: Request) -> Actor:
        return Actor.from_user(request.user)

    @staticmethod
    def _detail(case_id: str) -> dict:
        return CaseDetailSerializer(CaseQueryService.get_case(case_id)).data

    # ── Standard CRUD ────────────────────────────────────────────────

    @extend_schema(
        summary="List cases",
        description="List cases across categories with optional filtering.",
        parameters=[CaseFilterSerializer],
        responses={200: OpenApiResponse(response=CaseListSerializer(many=True), description="Filtered list of cases.")},
        tags=["Cases"],
    )
    def list(self, request: Request) -> Response:
        """GET /api/cases/"""
        filter_serializer = CaseFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        filters = dict(filter_serializer.validated_data)
        category = filters.pop("category", None)

        cases = CaseQueryService.list_cases(category, filters)
        return Response(CaseListSerializer(cases, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Create a case",
        description="Register a new case in its category's initial status. Open to any authenticated user.",
        request=CaseCreateSerializer,
        responses={
            201: OpenApiResponse(response=CaseDetailSerializer, description="Case created."),
            400: OpenApiResponse(description="Validation error, unknown category or misplaced priority."),
        },
        tags=["Cases"],
    )
    def create(self, request: Request) -> Response:
        """POST /api/cases/"""
        serializer = CaseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        category = data.pop("category")

        case = CaseLifecycleService.create_case(category, data, self._actor(request))
        return Response(CaseDetailSerializer(case).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve a case",
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Full case detail."),
            404: OpenApiResponse(description="Case not found."),
        },
        tags=["Cases"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        """GET /api/cases/{id}/"""
        return Response(self._detail(pk), status=status.HTTP_200_OK)

    # ── Registry ─────────────────────────────────────────────────────

    @action(detail=False, methods=["get"], url_path="statuses")
    @extend_schema(
        summary="Status vocabularies",
        description="Ordered statuses and transition graph per category.",
        parameters=[
            OpenApiParameter(name="category", type=str, location=OpenApiParameter.QUERY, description="Restrict to one category."),
        ],
        tags=["Cases"],
    )
    def statuses(self, request: Request) -> Response:
        """GET /api/cases/statuses/"""
        category = request.query_params.get("category")
        if category:
            return Response(_workflow_payload(get_workflow(category)))
        return Response([_workflow_payload(wf) for wf in all_workflows()])

    # ── Lifecycle commands ───────────────────────────────────────────

    @action(detail=True, methods=["post"], url_path="transition")
    @extend_schema(
        summary="Transition status",
        description="Move the case along its category graph. Requires an executive or master role.",
        request=CaseTransitionSerializer,
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Status updated."),
            400: OpenApiResponse(description="Unknown status."),
            403: OpenApiResponse(description="Role not allowed."),
            409: OpenApiResponse(description="Illegal transition, verification required or concurrent modification."),
        },
        tags=["Cases - Lifecycle"],
    )
    def transition(self, request: Request, pk: str = None) -> Response:
        """POST /api/cases/{id}/transition/"""
        actor = self._actor(request)
        require_role(actor, *_STAFF_ROLES)
        serializer = CaseTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        case = CaseLifecycleService.transition_status(
            pk,
            data["target_status"],
            actor,
            message=data["message"],
            expected_version=data.get("version"),
        )
        return Response(CaseDetailSerializer(case).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["post"], url_path="bulk-transition")
    @extend_schema(
        summary="Bulk transition",
        description=(
            "Move several cases at once, typically approvals picked from the "
            "work queue. Each case is transitioned on its own; the response "
            "reports the outcome per case. Requires an executive or master role."
        ),
        request=BulkTransitionSerializer,
        responses={
            200: OpenApiResponse(description="Per-case results."),
            400: OpenApiResponse(description="Empty, oversized or duplicated batch."),
            403: OpenApiResponse(description="Role not allowed."),
        },
        tags=["Cases - Lifecycle"],
    )
    def bulk_transition(self, request: Request) -> Response:
        """POST /api/cases/bulk-transition/"""
        actor = self._actor(request)
        require_role(actor, *_STAFF_ROLES)
        serializer = BulkTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        results = CaseLifecycleService.bulk_transition(data["items"], actor, message=data["message"])
        return Response(
            {"applied": sum(1 for r in results if r["ok"]), "results": results},
            status=status.HTTP_200_OK,
        )

    @action(detail=True, methods=["post"], url_path="assign")
    @extend_schema(
        summary="Assign case",
        description="Assign the case to an officer or department. Requires an executive or master role.",
        request=AssignCaseSerializer,
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Assignee updated."),
            404: OpenApiResponse(description="Case or department not found."),
            409: OpenApiResponse(description="Case closed or concurrent modification."),
        },
        tags=["Cases - Assignment"],
    )
    def assign(self, request: Request, pk: str = None) -> Response:
        """POST /api/cases/{id}/assign/"""
        actor = self._actor(request)
        require_role(actor, *_STAFF_ROLES)
        serializer = AssignCaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        case = CaseLifecycleService.assign_case(
            pk,
            data["assignee"],
            actor,
            kind=data["kind"],
            notes=data["notes"],
            expected_version=data.get("version"),
        )
        return Response(CaseDetailSerializer(case).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="route")
    @extend_schema(
        summary="Route to department",
        description="Forward the case to a department with an outward number. Status is unchanged.",
        request=RouteCaseSerializer,
        responses={
            201: OpenApiResponse(response=RoutingRecordSerializer, description="Routing recorded."),
            404: OpenApiResponse(description="Case, department or officer not found."),
        },
        tags=["Cases - Assignment"],
    )
    def route(self, request: Request, pk: str = None) -> Response:
        """POST /api/cases/{id}/route/"""
        actor = self._actor(request)
        require_role(actor, *_STAFF_ROLES)
        serializer = RouteCaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        record = CaseLifecycleService.route_to_department(
            pk,
            data["department"],
            actor,
            officer=data["officer"],
            memo=data["memo"],
            priority=data["priority"],
            expected_date=data.get("expected_date"),
            expected_version=data.get("version"),
        )
        return Response(RoutingRecordSerializer(record).data, status=status.HTTP_201_CREATED)

    # ── Read-side sub-resources ──────────────────────────────────────

    @action(detail=True, methods=["get"], url_path="timeline")
    @extend_schema(
        summary="Case timeline",
        responses={200: OpenApiResponse(response=TimelineEventSerializer(many=True), description="Append-only audit log.")},
        tags=["Cases"],
    )
    def timeline(self, request: Request, pk: str = None) -> Response:
        """GET /api/cases/{id}/timeline/"""
        events = CaseQueryService.get_timeline(pk)
        return Response(TimelineEventSerializer(events, many=True).data)

    @action(detail=True, methods=["get"], url_path="sla")
    @extend_schema(
        summary="SLA status",
        description="Deadline and breach state. ``applicable`` is false for categories without an SLA.",
        parameters=[SlaQuerySerializer],
        tags=["Cases"],
    )
    def sla(self, request: Request, pk: str = None) -> Response:
        """GET /api/cases/{id}/sla/"""
        query = SlaQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        snapshot = CaseQueryService.sla_status(pk, query.validated_data.get("now"))
        return Response(serialize_sla(snapshot))

    # ── Verification ─────────────────────────────────────────────────

    @action(detail=True, methods=["get", "post"], url_path="documents")
    @extend_schema(
        summary="List or submit documents",
        description=(
            "GET lists the case's documents under review. POST registers a "
            "document (opening the verification on first use); pass "
            "``supersedes`` to replace a rejected document."
        ),
        request=DocumentSubmitSerializer,
        responses={
            200: OpenApiResponse(response=DocumentReviewSerializer(many=True), description="Documents."),
            201: OpenApiResponse(response=DocumentReviewSerializer, description="Document submitted."),
            409: OpenApiResponse(description="Case closed or verification closed."),
        },
        tags=["Cases - Verification"],
    )
    def documents(self, request: Request, pk: str = None) -> Response:
        """GET / POST /api/cases/{id}/documents/"""
        if request.method == "GET":
            verification = CaseQueryService.get_verification(pk)
            documents = verification.documents.all() if verification else []
            return Response(DocumentReviewSerializer(documents, many=True).data)

        serializer = DocumentSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        document = CaseLifecycleService.submit_document(
            pk,
            self._actor(request),
            name=data["name"],
            size=data["size"],
            supersedes=data.get("supersedes"),
            expected_version=data.get("version"),
        )
        return Response(DocumentReviewSerializer(document).data, status=status.HTTP_201_CREATED)

    @action(
        detail=True,
        methods=["post"],
        url_path=r"documents/(?P<document_pk>\d+)/review",
    )
    @extend_schema(
        summary="Review a document",
        description=(
            "Approve or reject a document at the reviewer's stage: executives "
            "review stage 1, masters stage 2."
        ),
        request=DocumentDecisionSerializer,
        responses={
            200: OpenApiResponse(response=DocumentReviewSerializer, description="Decision recorded."),
            403: OpenApiResponse(description="Role does not review documents."),
            409: OpenApiResponse(description="Stage mismatch, document not pending or verification closed."),
        },
        tags=["Cases - Verification"],
    )
    def review_document(self, request: Request, pk: str = None, document_pk: str = None) -> Response:
        """POST /api/cases/{id}/documents/{document_pk}/review/"""
        actor = self._actor(request)
        require_role(actor, *_STAFF_ROLES)
        serializer = DocumentDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        document = CaseLifecycleService.review_document(
            pk,
            int(document_pk),
            actor,
            approve=data["decision"] == "approve",
            comments=data["comments"],
            expected_version=data.get("version"),
        )
        return Response(DocumentReviewSerializer(document).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["get"], url_path="verification")
    @extend_schema(
        summary="Verification progress",
        description="Coarse progress (10/33/66/100) plus the full verification state.",
        tags=["Cases - Verification"],
    )
    def verification(self, request: Request, pk: str = None) -> Response:
        """GET /api/cases/{id}/verification/"""
        payload = CaseQueryService.verification_progress(pk)
        verification = CaseQueryService.get_verification(pk)
        payload["verification"] = VerificationCaseSerializer(verification).data if verification else None
        return Response(payload)

    @action(detail=True, methods=["post"], url_path="verification/complete-stage")
    @extend_schema(
        summary="Complete verification stage",
        description=(
            "Close stage 1 (executive) or stage 2 (master) once every active "
            "document is approved. Repeating a completed stage returns 200 "
            "with ``already_completed`` set."
        ),
        request=CompleteStageSerializer,
        responses={
            200: OpenApiResponse(response=VerificationCaseSerializer, description="Stage completed (or already completed)."),
            409: OpenApiResponse(description="Documents still blocking, stage mismatch or verification closed."),
        },
        tags=["Cases - Verification"],
    )
    def complete_stage(self, request: Request, pk: str = None) -> Response:
        """POST /api/cases/{id}/verification/complete-stage/"""
        serializer = CompleteStageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        stage = data["stage"]

        actor = self._actor(request)
        require_role(actor, _STAGE_ROLE[stage])

        already_completed = False
        try:
            verification = CaseLifecycleService.complete_verification_stage(
                pk, stage, actor, expected_version=data.get("version"),
            )
        except StageAlreadyCompleted as exc:
            logger.info("Duplicate completion of stage %d on case %s by %s: %s", stage, pk, actor, exc)
            already_completed = True
            verification = CaseQueryService.get_verification(pk)

        payload = dict(VerificationCaseSerializer(verification).data)
        payload["already_completed"] = already_completed
        return Response(payload, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="verification/reject")
    @extend_schema(
        summary="Reject verification",
        description="End the verification as REJECTED. Requires an executive or master role.",
        request=RejectVerificationSerializer,
        responses={
            200: OpenApiResponse(response=VerificationCaseSerializer, description="Verification rejected."),
            409: OpenApiResponse(description="Verification not started or already closed."),
        },
        tags=["Cases - Verification"],
    )
    def reject_verification(self, request: Request, pk: str = None) -> Response:
        """POST /api/cases/{id}/verification/reject/"""
        actor = self._actor(request)
        require_role(actor, *_STAFF_ROLES)
        serializer = RejectVerificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        verification = CaseLifecycleService.reject_verification(
            pk, actor, data["reason"], expected_version=data.get("version"),
        )
        return Response(VerificationCaseSerializer(verification).data, status=status.HTTP_200_OK)
