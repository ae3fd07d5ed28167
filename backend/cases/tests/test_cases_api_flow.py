"""
Integration tests for the case endpoints, executed through real HTTP
requests with JWT authentication obtained from the login endpoint.
"""

from __future__ import annotations

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Role
from cases.models import Case

User = get_user_model()


class CaseApiTestBase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.password = "Portal!Pass42"
        cls.citizen = User.objects.create_user(
            username="citizen_lakshmi",
            password=cls.password,
            email="lakshmi@example.com",
            phone_number="9800000001",
            first_name="Lakshmi",
            last_name="Devi",
            role=Role.CITIZEN,
        )
        cls.executive = User.objects.create_user(
            username="exec_ravi",
            password=cls.password,
            email="ravi@example.com",
            phone_number="9800000002",
            first_name="Ravi",
            last_name="Kumar",
            role=Role.EXEC_ADMIN,
        )
        cls.master = User.objects.create_user(
            username="master_suresh",
            password=cls.password,
            email="suresh@example.com",
            phone_number="9800000003",
            first_name="Suresh",
            last_name="Naidu",
            role=Role.MASTER_ADMIN,
        )

    def setUp(self):
        self.client = APIClient()
        self.login_url = reverse("accounts:login")

    def login_as(self, user) -> str:
        """
        Authenticate through POST /api/accounts/auth/login/ and set Bearer token.
        """
        self.client.credentials()
        resp = self.client.post(
            self.login_url,
            {"identifier": user.username, "password": self.password},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=f"Login failed: {resp.data}")
        token = resp.data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        return token

    def create_case(self, category="Grievance", **extra) -> dict:
        payload = {
            "category": category,
            "title": "Drinking water contamination",
            "applicant": "Lakshmi Devi",
            "district": "SPSR Nellore",
        }
        payload.update(extra)
        resp = self.client.post(reverse("case-list"), payload, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=f"Create failed: {resp.data}")
        return resp.data


class TestCaseIntakeAndLifecycle(CaseApiTestBase):

    def test_requires_authentication(self):
        resp = self.client.post(reverse("case-list"), {"category": "Grievance", "title": "x"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_citizen_creates_a_grievance(self):
        self.login_as(self.citizen)
        data = self.create_case(priority="P2")

        self.assertEqual(data["status"], "NEW")
        self.assertEqual(data["version"], 1)
        self.assertTrue(data["id"].startswith("GRV-AP-NLR-"))
        self.assertEqual(data["next_statuses"], ["TRIAGED", "ASSIGNED", "CLOSED"])
        self.assertEqual(data["sla"]["state"], "onTime")
        self.assertEqual(data["created_by"], str(self.citizen.pk))
        self.assertEqual(len(data["timeline"]), 1)

    def test_priority_on_non_sla_category_is_a_bad_request(self):
        self.login_as(self.citizen)
        resp = self.client.post(
            reverse("case-list"),
            {"category": "Appointment", "title": "Meet the MLA", "priority": "P1"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "DomainError")

    def test_citizen_cannot_transition(self):
        self.login_as(self.citizen)
        case = self.create_case()
        resp = self.client.post(
            reverse("case-transition", kwargs={"pk": case["id"]}),
            {"target_status": "TRIAGED"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["code"], "PermissionDenied")

    def test_transition_errors_map_to_http_codes(self):
        self.login_as(self.citizen)
        case = self.create_case()
        url = reverse("case-transition", kwargs={"pk": case["id"]})
        self.login_as(self.executive)

        resp = self.client.post(url, {"target_status": "RESOLVED"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "InvalidTransition")
        self.assertEqual(resp.data["allowed"], ["TRIAGED", "ASSIGNED", "CLOSED"])

        resp = self.client.post(url, {"target_status": "SANCTIONED"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "UnknownStatus")

        resp = self.client.post(url, {"target_status": "TRIAGED", "version": 1}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["version"], 2)

        resp = self.client.post(url, {"target_status": "ASSIGNED", "version": 1}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "ConcurrentModification")

        resp = self.client.post(
            reverse("case-transition", kwargs={"pk": "GRV-AP-NLR-2025-999999-00"}),
            {"target_status": "TRIAGED"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_assign_route_and_timeline(self):
        self.login_as(self.citizen)
        case = self.create_case()
        self.login_as(self.executive)

        resp = self.client.post(
            reverse("case-assign", kwargs={"pk": case["id"]}),
            {"assignee": "Chief Engineer - Water", "notes": "Contamination report"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertEqual(resp.data["assigned_to"], "Chief Engineer - Water")

        resp = self.client.post(
            reverse("case-route", kwargs={"pk": case["id"]}),
            {"department": "water", "officer": "Chief Engineer - Water", "priority": "urgent"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        self.assertTrue(resp.data["outward_number"].startswith("OUT/WSD/"))
        self.assertTrue(resp.data["outward_number"].endswith("/001"))

        resp = self.client.get(reverse("case-timeline", kwargs={"pk": case["id"]}))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [e["kind"] for e in resp.data],
            ["system", "assignment", "system"],
        )

    def test_sla_endpoint(self):
        self.login_as(self.citizen)
        case = self.create_case(priority="P1")
        created = Case.objects.get(pk=case["id"]).created_at

        url = reverse("case-sla", kwargs={"pk": case["id"]})
        resp = self.client.get(url, {"now": (created + timedelta(hours=47, minutes=1)).isoformat()})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data["applicable"])
        self.assertEqual(resp.data["state"], "nearBreach")
        self.assertEqual(resp.data["remaining_seconds"], 59 * 60)

        resp = self.client.get(url, {"now": (created + timedelta(hours=48, seconds=1)).isoformat()})
        self.assertEqual(resp.data["state"], "breached")
        self.assertEqual(resp.data["overdue_seconds"], 1)

        letter = self.create_case(category="TempleLetter", title="Darshan letter")
        resp = self.client.get(reverse("case-sla", kwargs={"pk": letter["id"]}))
        self.assertEqual(resp.data, {"applicable": False})

    def test_list_filters_by_category_and_search(self):
        self.login_as(self.citizen)
        self.create_case(title="Broken streetlight")
        self.create_case(category="Dispute", title="Shop boundary")

        resp = self.client.get(reverse("case-list"), {"category": "Dispute"})
        self.assertEqual([c["category"] for c in resp.data], ["Dispute"])

        resp = self.client.get(reverse("case-list"), {"search": "streetlight"})
        self.assertEqual(len(resp.data), 1)
        self.assertEqual(resp.data[0]["title"], "Broken streetlight")

    def test_open_only_hides_closed_cases(self):
        self.login_as(self.citizen)
        closed = self.create_case(title="Duplicate complaint")
        kept = self.create_case(title="Open complaint")

        self.login_as(self.executive)
        resp = self.client.post(
            reverse("case-transition", kwargs={"pk": closed["id"]}),
            {"target_status": "CLOSED", "message": "Duplicate"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data["is_terminal"])
        self.assertIsNotNone(resp.data["closed_at"])

        resp = self.client.get(reverse("case-list"), {"open_only": "true"})
        self.assertEqual([c["id"] for c in resp.data], [kept["id"]])

        resp = self.client.post(
            reverse("case-assign", kwargs={"pk": closed["id"]}),
            {"assignee": "Executive Engineer"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "CaseClosed")

    def test_statuses_endpoint(self):
        self.login_as(self.citizen)
        resp = self.client.get(reverse("case-statuses"), {"category": "CMRelief"})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["prefix"], "CMR")
        self.assertEqual(resp.data["terminal_statuses"], ["CLOSED"])


class TestVerificationEndpoints(CaseApiTestBase):

    def test_two_stage_review_over_http(self):
        self.login_as(self.citizen)
        case = self.create_case(category="EducationSupport", title="Scholarship for B.Tech")
        docs_url = reverse("case-documents", kwargs={"pk": case["id"]})
        doc = self.client.post(docs_url, {"name": "marks_memo.pdf", "size": 1024}, format="json").data

        complete_url = reverse("case-complete-stage", kwargs={"pk": case["id"]})
        review_url = reverse("case-review-document", kwargs={"pk": case["id"], "document_pk": doc["id"]})

        # Citizens can neither review nor complete.
        resp = self.client.post(review_url, {"decision": "approve"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        self.login_as(self.executive)
        resp = self.client.post(complete_url, {"stage": 1}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "StageIncomplete")
        self.assertEqual(resp.data["blocking_documents"], [doc["id"]])

        resp = self.client.post(review_url, {"decision": "reject"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        resp = self.client.post(review_url, {"decision": "approve"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["status"], "STAGE_1_APPROVED")

        resp = self.client.post(complete_url, {"stage": 1}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(resp.data["already_completed"])
        self.assertEqual(resp.data["overall_status"], "STAGE_2_REVIEW")

        resp = self.client.post(complete_url, {"stage": 1}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data["already_completed"])

        resp = self.client.post(complete_url, {"stage": 2}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        self.login_as(self.master)
        resp = self.client.post(review_url, {"decision": "approve"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        resp = self.client.post(complete_url, {"stage": 2}, format="json")
        self.assertEqual(resp.data["overall_status"], "VERIFIED")

        resp = self.client.get(reverse("case-verification", kwargs={"pk": case["id"]}))
        self.assertEqual(resp.data["progress"], 100)
        self.assertEqual(resp.data["verification"]["documents"][0]["status"], "VERIFIED")

    def test_gated_transition_over_http(self):
        self.login_as(self.citizen)
        case = self.create_case(category="EducationSupport", title="Fee support")
        self.login_as(self.executive)
        url = reverse("case-transition", kwargs={"pk": case["id"]})
        for target in ("UNDER_REVIEW", "RECOMMENDED"):
            self.assertEqual(self.client.post(url, {"target_status": target}, format="json").status_code, 200)

        resp = self.client.post(url, {"target_status": "APPROVED"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "VerificationRequired")

    def test_reject_verification(self):
        self.login_as(self.citizen)
        case = self.create_case(category="CMRelief", title="Medical bills")
        doc = self.client.post(
            reverse("case-documents", kwargs={"pk": case["id"]}), {"name": "bill.pdf"}, format="json",
        ).data

        self.login_as(self.executive)
        reject_url = reverse("case-reject-verification", kwargs={"pk": case["id"]})
        resp = self.client.post(reject_url, {"reason": "Too early"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

        self.client.post(
            reverse("case-review-document", kwargs={"pk": case["id"], "document_pk": doc["id"]}),
            {"decision": "reject", "comments": "Illegible scan"},
            format="json",
        )
        resp = self.client.post(reject_url, {"reason": "Bills are not genuine"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["overall_status"], "REJECTED")

        resp = self.client.get(reverse("case-documents", kwargs={"pk": case["id"]}))
        self.assertEqual(resp.data[0]["stage1_comments"], "Illegible scan")

    def test_non_numeric_document_id_is_not_found(self):
        self.login_as(self.citizen)
        case = self.create_case(category="CMRelief", title="Medical bills")
        self.login_as(self.executive)

        url = reverse("case-review-document", kwargs={"pk": case["id"], "document_pk": 1})
        resp = self.client.post(
            url.replace("/documents/1/", "/documents/abc/"), {"decision": "approve"}, format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

        resp = self.client.post(url, {"decision": "approve"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)


class TestBulkTransitionEndpoint(CaseApiTestBase):

    def test_reports_outcome_per_case(self):
        self.login_as(self.citizen)
        grievance = self.create_case(title="Broken culvert")
        relief = self.create_case(category="CMRelief", title="Medical bills")
        url = reverse("case-bulk-transition")
        payload = {
            "items": [
                {"case_id": grievance["id"], "target_status": "TRIAGED", "version": 1},
                {"case_id": relief["id"], "target_status": "DOCS_VERIFIED"},
            ],
        }

        resp = self.client.post(url, payload, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        self.login_as(self.executive)
        resp = self.client.post(url, payload, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["applied"], 1)
        first, second = resp.data["results"]
        self.assertTrue(first["ok"])
        self.assertEqual(first["status"], "TRIAGED")
        self.assertFalse(second["ok"])
        self.assertEqual(second["code"], "VerificationRequired")
        self.assertEqual(Case.objects.get(pk=relief["id"]).status, "INTAKE")

        resp = self.client.post(url, {"items": []}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
