"""
Queues app views.

Thin read-only views over ``WorkQueueService``.  Queues are a staff
concern: citizens receive ``403``.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from core.constants import ROLE_EXEC_ADMIN, ROLE_MASTER_ADMIN
from core.domain.access import Actor, require_role

from .serializers import (
    ApprovalsPageSerializer,
    QueuePageSerializer,
    QueueQuerySerializer,
    SlaSummarySerializer,
    VerificationStatsSerializer,
    WorkloadSerializer,
)
from .services import WorkQueueService


class _StaffQueueView(APIView):
    permission_classes = [IsAuthenticated]

    def _staff_actor(self, request: Request) -> Actor:
        actor = Actor.from_user(request.user)
        require_role(
            actor,
            ROLE_EXEC_ADMIN,
            ROLE_MASTER_ADMIN,
            message="Work queues are only available to reviewing officers.",
        )
        return actor

    def _queue_page(self, request: Request, scope: str) -> dict:
        actor = self._staff_actor(request)
        params = QueueQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        data = params.validated_data
        return WorkQueueService.work_queue(
            actor,
            scope=scope,
            search=data.get("search"),
            filters=params.filters(),
            sort_by=data.get("sort_by"),
            descending=data["descending"],
            page=data["page"],
            page_size=data.get("page_size"),
            now=data.get("now"),
        )


class AllItemsView(_StaffQueueView):
    """GET /api/queues/all/ — every case across categories."""

    @extend_schema(
        summary="All cases queue",
        parameters=[QueueQuerySerializer],
        responses={200: QueuePageSerializer, 403: OpenApiResponse(description="Not a reviewing officer.")},
        tags=["Queues"],
    )
    def get(self, request: Request) -> Response:
        page = self._queue_page(request, "all")
        return Response(QueuePageSerializer(page).data, status=status.HTTP_200_OK)


class MyApprovalsView(_StaffQueueView):
    """
    GET /api/queues/my-approvals/ — cases waiting on the requester's role,
    either by category status or by verification stage.
    """

    @extend_schema(
        summary="My approvals queue",
        parameters=[QueueQuerySerializer],
        responses={200: ApprovalsPageSerializer, 403: OpenApiResponse(description="Not a reviewing officer.")},
        tags=["Queues"],
    )
    def get(self, request: Request) -> Response:
        page = self._queue_page(request, "approvals")
        actor = Actor.from_user(request.user)
        page["summary"] = WorkQueueService.approval_summary(WorkQueueService.my_approvals(actor))
        return Response(ApprovalsPageSerializer(page).data, status=status.HTTP_200_OK)


class WorkloadView(_StaffQueueView):
    """GET /api/queues/workload/?assignee=<name> — open cases held."""

    @extend_schema(
        summary="Officer workload",
        parameters=[
            OpenApiParameter(name="assignee", type=str, required=True, description="Officer name or department id."),
        ],
        responses={200: WorkloadSerializer},
        tags=["Queues"],
    )
    def get(self, request: Request) -> Response:
        self._staff_actor(request)
        data = WorkQueueService.workload(request.query_params.get("assignee", ""))
        return Response(WorkloadSerializer(data).data, status=status.HTTP_200_OK)


class SlaSummaryView(_StaffQueueView):
    """GET /api/queues/sla-summary/ — compliance over SLA-bearing cases."""

    @extend_schema(
        summary="SLA compliance summary",
        parameters=[
            OpenApiParameter(name="category", type=str, required=False),
            OpenApiParameter(name="now", type=str, required=False, description="ISO 8601 instant."),
        ],
        responses={200: SlaSummarySerializer},
        tags=["Queues"],
    )
    def get(self, request: Request) -> Response:
        self._staff_actor(request)
        params = QueueQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        data = WorkQueueService.sla_summary(
            now=params.validated_data.get("now"),
            category=params.validated_data.get("category"),
        )
        return Response(SlaSummarySerializer(data).data, status=status.HTTP_200_OK)


class VerificationStatsView(_StaffQueueView):
    """GET /api/queues/verification-stats/ — document-review pipeline counts."""

    @extend_schema(
        summary="Verification statistics",
        responses={200: VerificationStatsSerializer},
        tags=["Queues"],
    )
    def get(self, request: Request) -> Response:
        self._staff_actor(request)
        data = WorkQueueService.verification_stats()
        return Response(VerificationStatsSerializer(data).data, status=status.HTTP_200_OK)
