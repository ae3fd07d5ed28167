"""
Queues app URL configuration.

Included in the project-level ``urls.py`` as::

    path('api/queues/', include('queues.urls')),

Endpoint Map
------------
    GET  /all/                    → AllItemsView
    GET  /my-approvals/           → MyApprovalsView
    GET  /workload/?assignee=     → WorkloadView
    GET  /sla-summary/            → SlaSummaryView
    GET  /verification-stats/     → VerificationStatsView
"""

from django.urls import path

from . import views

app_name = "queues"

urlpatterns = [
    path("all/", views.AllItemsView.as_view(), name="all-items"),
    path("my-approvals/", views.MyApprovalsView.as_view(), name="my-approvals"),
    path("workload/", views.WorkloadView.as_view(), name="workload"),
    path("sla-summary/", views.SlaSummaryView.as_view(), name="sla-summary"),
    path(
        "verification-stats/",
        views.VerificationStatsView.as_view(),
        name="verification-stats",
    ),
]
