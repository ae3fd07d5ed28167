"""
Tests for ``queues.services.WorkQueueService``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_timezone

from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone

from cases.models import Case
from cases.registry import Category
from cases.services import CaseLifecycleService
from core.constants import ROLE_CITIZEN, ROLE_EXEC_ADMIN, ROLE_MASTER_ADMIN
from core.domain.access import Actor
from core.domain.exceptions import DomainError
from queues.services import WorkQueueService

CITIZEN = Actor(id="citizen-5", name="Padma", role=ROLE_CITIZEN)
EXEC = Actor(id="exec-2", name="Ravi Kumar", role=ROLE_EXEC_ADMIN)
MASTER = Actor(id="master-2", name="Suresh Naidu", role=ROLE_MASTER_ADMIN)

ROWS = [
    {"id": "GRV-1", "category": "Grievance", "category_label": "Grievance", "title": "Water leak",
     "applicant": "Padma", "status": "NEW", "priority": "P2", "assigned_to": "", "age_days": 3,
     "sla_state": "onTime"},
    {"id": "TDL-1", "category": "TempleLetter", "category_label": "Temple Letter", "title": "Darshan",
     "applicant": "Rao", "status": "REQUESTED", "priority": None, "assigned_to": "Clerk", "age_days": 1,
     "sla_state": None},
    {"id": "DIS-1", "category": "Dispute", "category_label": "Dispute", "title": "Boundary wall",
     "applicant": "Padma", "status": "NEW", "priority": "P1", "assigned_to": "Clerk", "age_days": 7,
     "sla_state": "breached"},
]


class TestPureTransforms(SimpleTestCase):

    def test_search_matches_any_visible_column_case_insensitively(self):
        ids = [r["id"] for r in WorkQueueService.search_rows(ROWS, "padma")]
        self.assertEqual(ids, ["GRV-1", "DIS-1"])
        ids = [r["id"] for r in WorkQueueService.search_rows(ROWS, "temple")]
        self.assertEqual(ids, ["TDL-1"])
        self.assertEqual(WorkQueueService.search_rows(ROWS, "  "), ROWS)

    def test_filters_are_equality_and_ignore_blanks(self):
        rows = WorkQueueService.filter_rows(ROWS, {"status": "NEW", "assigned_to": "Clerk", "priority": ""})
        self.assertEqual([r["id"] for r in rows], ["DIS-1"])

    def test_sort_keeps_missing_values_last_in_both_directions(self):
        asc = WorkQueueService.sort_rows(ROWS, "priority")
        desc = WorkQueueService.sort_rows(ROWS, "priority", descending=True)
        self.assertEqual([r["id"] for r in asc], ["DIS-1", "GRV-1", "TDL-1"])
        self.assertEqual([r["id"] for r in desc], ["GRV-1", "DIS-1", "TDL-1"])

    def test_sort_by_unknown_column(self):
        with self.assertRaises(DomainError):
            WorkQueueService.sort_rows(ROWS, "secret")

    def test_paginate_uses_fixed_pages(self):
        page = WorkQueueService.paginate(ROWS, page=2, page_size=2)
        self.assertEqual(page["count"], 3)
        self.assertEqual(page["total_pages"], 2)
        self.assertEqual([r["id"] for r in page["results"]], ["DIS-1"])
        self.assertEqual(WorkQueueService.paginate(ROWS, page=5, page_size=2)["results"], [])

    @override_settings(CASE_ENGINE={"QUEUE_PAGE_SIZE": 1})
    def test_default_page_size_comes_from_settings(self):
        self.assertEqual(WorkQueueService.paginate(ROWS)["page_size"], 1)

    def test_approval_summary_reports_worst_sla_state(self):
        summary = WorkQueueService.approval_summary(ROWS + [dict(ROWS[0], id="GRV-2", sla_state="nearBreach")])
        by_category = {e["category"]: e for e in summary}
        self.assertEqual(by_category["Grievance"]["count"], 2)
        self.assertEqual(by_category["Grievance"]["worst_sla_state"], "nearBreach")
        self.assertEqual(by_category["Dispute"]["worst_sla_state"], "breached")
        self.assertIsNone(by_category["TempleLetter"]["worst_sla_state"])


class TestQueuesOverCases(TestCase):

    def setUp(self):
        self.grievance = CaseLifecycleService.create_case(
            Category.GRIEVANCE, {"title": "Garbage not collected", "priority": "P1"}, CITIZEN,
        )
        self.dispute = CaseLifecycleService.create_case(
            Category.DISPUTE, {"title": "Land boundary"}, CITIZEN,
        )
        self.appointment = CaseLifecycleService.create_case(
            Category.APPOINTMENT, {"title": "Meet the collector"}, CITIZEN,
        )
        self.relief = CaseLifecycleService.create_case(
            Category.CM_RELIEF, {"title": "Flood relief"}, CITIZEN,
        )

    def test_all_items_flattens_every_category(self):
        rows = WorkQueueService.all_items()
        self.assertEqual(len(rows), 4)
        row = next(r for r in rows if r["id"] == self.appointment.pk)
        self.assertEqual(row["category_label"], "Appointment")
        self.assertIsNone(row["sla_state"])
        self.assertEqual(row["age_days"], 0)

    def test_executive_approvals_follow_category_subsets(self):
        ids = {r["id"] for r in WorkQueueService.my_approvals(EXEC)}
        # Grievance NEW, Dispute NEW, Appointment REQUESTED, CM Relief INTAKE.
        self.assertEqual(ids, {self.grievance.pk, self.dispute.pk, self.appointment.pk, self.relief.pk})

        CaseLifecycleService.transition_status(self.appointment.pk, "CONFIRMED", EXEC)
        ids = {r["id"] for r in WorkQueueService.my_approvals(EXEC)}
        self.assertNotIn(self.appointment.pk, ids)

    def test_master_sees_cases_awaiting_stage_2_review(self):
        self.assertEqual(WorkQueueService.my_approvals(MASTER), [])

        doc = CaseLifecycleService.submit_document(self.relief.pk, CITIZEN, name="bank_passbook.pdf")
        CaseLifecycleService.review_document(self.relief.pk, doc.pk, EXEC, approve=True)
        CaseLifecycleService.complete_verification_stage(self.relief.pk, 1, EXEC)

        rows = WorkQueueService.my_approvals(MASTER)
        self.assertEqual([r["id"] for r in rows], [self.relief.pk])
        self.assertEqual(rows[0]["awaiting_stage"], 2)

    def test_citizens_have_no_approvals(self):
        self.assertEqual(WorkQueueService.my_approvals(CITIZEN), [])

    def test_work_queue_pipeline(self):
        result = WorkQueueService.work_queue(
            EXEC, scope="all", search="land", sort_by="created_at", descending=True,
        )
        self.assertEqual(result["count"], 1)
        self.assertEqual(result["results"][0]["id"], self.dispute.pk)

    def test_sla_summary_counts_only_sla_bearing_cases(self):
        Case.objects.filter(pk=self.grievance.pk).update(created_at=timezone.now() - timedelta(hours=50))

        summary = WorkQueueService.sla_summary()
        self.assertEqual(summary["total"], 3)
        self.assertEqual(summary["breached"], 1)
        self.assertEqual(summary["compliance"], 66.7)
        self.assertFalse(summary["meets_target"])

    def test_sla_summary_at_a_given_instant(self):
        later = datetime.now(dt_timezone.utc) + timedelta(days=30)
        summary = WorkQueueService.sla_summary(now=later, category=Category.DISPUTE)
        self.assertEqual(summary["total"], 1)
        self.assertEqual(summary["breached"], 1)

    def test_workload(self):
        CaseLifecycleService.assign_case(self.grievance.pk, "Health Officer", EXEC)
        self.assertEqual(
            WorkQueueService.workload("Health Officer"),
            {"assignee": "Health Officer", "open_cases": 1},
        )
        with self.assertRaises(DomainError):
            WorkQueueService.workload("")

    def test_closed_case_leaves_the_review_queue(self):
        CaseLifecycleService.submit_document(self.relief.pk, CITIZEN, name="hospital_bill.pdf")
        row = next(r for r in WorkQueueService.my_approvals(EXEC) if r["id"] == self.relief.pk)
        self.assertEqual(row["awaiting_stage"], 1)
        self.assertEqual(WorkQueueService.verification_stats()["pending_stage1"], 1)

        CaseLifecycleService.transition_status(self.relief.pk, "CLOSED", EXEC)

        ids = {r["id"] for r in WorkQueueService.my_approvals(EXEC)}
        self.assertNotIn(self.relief.pk, ids)
        row = next(r for r in WorkQueueService.all_items() if r["id"] == self.relief.pk)
        self.assertIsNone(row["awaiting_stage"])
        stats = WorkQueueService.verification_stats()
        self.assertEqual(stats["total"], 1)
        self.assertEqual(stats["pending_stage1"], 0)
