"""
Integration tests for the staff work-queue endpoints under /api/queues/.
"""

from __future__ import annotations

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Role
from cases.models import Case
from cases.services import CaseLifecycleService
from core.domain.access import Actor

User = get_user_model()


class TestQueueEndpoints(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.password = "Queue!Pass77"
        cls.citizen = User.objects.create_user(
            username="queue_citizen", password=cls.password, email="qc@example.com",
            phone_number="9840000001", first_name="Padma", last_name="Latha", role=Role.CITIZEN,
        )
        cls.executive = User.objects.create_user(
            username="queue_exec", password=cls.password, email="qe@example.com",
            phone_number="9840000002", first_name="Ravi", last_name="Kumar", role=Role.EXEC_ADMIN,
        )
        cls.master = User.objects.create_user(
            username="queue_master", password=cls.password, email="qm@example.com",
            phone_number="9840000003", first_name="Suresh", last_name="Naidu", role=Role.MASTER_ADMIN,
        )

        citizen = Actor.from_user(cls.citizen)
        cls.grievance = CaseLifecycleService.create_case(
            "Grievance", {"title": "Street flooding", "applicant": "Padma Latha", "priority": "P1"}, citizen,
        )
        cls.dispute = CaseLifecycleService.create_case(
            "Dispute", {"title": "Land boundary", "applicant": "Padma Latha"}, citizen,
        )
        cls.letter = CaseLifecycleService.create_case(
            "TempleLetter", {"title": "Darshan letter", "applicant": "Rao"}, citizen,
        )
        # The grievance is two days old and past its 48 hour deadline.
        Case.objects.filter(pk=cls.grievance.pk).update(created_at=timezone.now() - timedelta(hours=50))

    def setUp(self):
        self.client = APIClient()

    def login_as(self, user) -> None:
        self.client.credentials()
        resp = self.client.post(
            reverse("accounts:login"),
            {"identifier": user.username, "password": self.password},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['access']}")

    def test_citizens_cannot_open_queues(self):
        self.login_as(self.citizen)
        for name in ("queues:all-items", "queues:my-approvals", "queues:sla-summary", "queues:verification-stats"):
            with self.subTest(name=name):
                resp = self.client.get(reverse(name))
                self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
                self.assertEqual(resp.data["code"], "PermissionDenied")

    def test_all_items_page(self):
        self.login_as(self.executive)
        resp = self.client.get(reverse("queues:all-items"), {"page_size": 2})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["count"], 3)
        self.assertEqual(resp.data["total_pages"], 2)
        self.assertEqual(len(resp.data["results"]), 2)

    def test_all_items_search_filter_and_sort(self):
        self.login_as(self.executive)
        url = reverse("queues:all-items")

        resp = self.client.get(url, {"search": "temple"})
        self.assertEqual([r["id"] for r in resp.data["results"]], [self.letter.pk])

        resp = self.client.get(url, {"sla_state": "breached"})
        self.assertEqual([r["id"] for r in resp.data["results"]], [self.grievance.pk])

        resp = self.client.get(url, {"sort_by": "sla_due_at"})
        ids = [r["id"] for r in resp.data["results"]]
        self.assertEqual(ids, [self.grievance.pk, self.dispute.pk, self.letter.pk])

    def test_unknown_sort_column_is_rejected(self):
        self.login_as(self.executive)
        resp = self.client.get(reverse("queues:all-items"), {"sort_by": "password"})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_my_approvals_depends_on_role(self):
        self.login_as(self.executive)
        resp = self.client.get(reverse("queues:my-approvals"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["count"], 3)
        summary = {s["category"]: s for s in resp.data["summary"]}
        self.assertEqual(summary["Grievance"]["worst_sla_state"], "breached")
        self.assertIsNone(summary["TempleLetter"]["worst_sla_state"])

        self.login_as(self.master)
        resp = self.client.get(reverse("queues:my-approvals"))
        self.assertEqual(resp.data["count"], 0)
        self.assertEqual(resp.data["summary"], [])

    def test_sla_summary(self):
        self.login_as(self.master)
        resp = self.client.get(reverse("queues:sla-summary"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["total"], 2)
        self.assertEqual(resp.data["breached"], 1)
        self.assertEqual(resp.data["compliance"], 50.0)
        self.assertFalse(resp.data["meets_target"])

    def test_workload_requires_assignee(self):
        self.login_as(self.executive)
        resp = self.client.get(reverse("queues:workload"))
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        CaseLifecycleService.assign_case(self.dispute.pk, "Mediator Rao", Actor.from_user(self.executive))
        resp = self.client.get(reverse("queues:workload"), {"assignee": "Mediator Rao"})
        self.assertEqual(resp.data, {"assignee": "Mediator Rao", "open_cases": 1})

    def test_verification_stats(self):
        CaseLifecycleService.submit_document(self.grievance.pk, Actor.from_user(self.citizen), name="photo.jpg")
        self.login_as(self.executive)
        resp = self.client.get(reverse("queues:verification-stats"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["total"], 1)
        self.assertEqual(resp.data["pending_stage1"], 1)
