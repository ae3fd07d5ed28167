"""
Integration tests for core endpoints.

Scope in this file:
- GET /api/core/constants/
"""

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient


class TestSystemConstantsEndpoint(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.url = reverse("core:system-constants")

    def test_constants_are_public(self):
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        for key in ("categories", "priorities", "routing_priorities", "departments", "roles"):
            self.assertIn(key, resp.data)

    def test_categories_carry_their_vocabularies(self):
        resp = self.client.get(self.url)
        categories = {c["value"]: c for c in resp.data["categories"]}

        self.assertEqual(len(categories), 8)
        grievance = categories["Grievance"]
        self.assertEqual(grievance["prefix"], "GRV")
        self.assertTrue(grievance["sla_bearing"])
        self.assertEqual(grievance["initial_status"], "NEW")
        self.assertEqual(grievance["terminal_statuses"], ["CLOSED"])

        appointment = categories["Appointment"]
        self.assertFalse(appointment["sla_bearing"])
        self.assertEqual(appointment["terminal_statuses"], ["CANCELLED", "COMPLETED", "NO_SHOW"])

    def test_priorities_expose_sla_hours(self):
        resp = self.client.get(self.url)
        hours = {p["value"]: p["sla_hours"] for p in resp.data["priorities"]}
        self.assertEqual(hours, {"P1": 48, "P2": 120, "P3": 240, "P4": 480})

    def test_departments_and_roles(self):
        resp = self.client.get(self.url)
        departments = {d["id"]: d for d in resp.data["departments"]}
        self.assertEqual(departments["water"]["name"], "Water Supply Department")
        self.assertEqual(departments["roads"]["code"], "RBD")
        self.assertIn("Chief Engineer - Water", departments["water"]["officers"])

        roles = [r["value"] for r in resp.data["roles"]]
        self.assertEqual(roles, ["L1_MASTER_ADMIN", "L2_EXEC_ADMIN", "L3_CITIZEN"])
        self.assertEqual(
            [p["value"] for p in resp.data["routing_priorities"]],
            ["urgent", "high", "normal"],
        )
