"""
Cases app URL configuration.

All routes are registered under the ``/api/cases/`` prefix.

Route Hierarchy
---------------
  /api/cases/                             → list / create
  /api/cases/{id}/                        → retrieve
  /api/cases/statuses/                    → status vocabularies per category

  ── Lifecycle @actions ──────────────────────────────────────────
  POST /api/cases/{id}/transition/        → move along the category graph
  POST /api/cases/{id}/assign/            → set officer / department
  POST /api/cases/{id}/route/             → forward to a department

  ── Read-side @actions ──────────────────────────────────────────
  GET  /api/cases/{id}/timeline/
  GET  /api/cases/{id}/sla/

  ── Verification @actions ───────────────────────────────────────
  GET  /api/cases/{id}/documents/
  POST /api/cases/{id}/documents/
  POST /api/cases/{id}/documents/{document_pk}/review/
  GET  /api/cases/{id}/verification/
  POST /api/cases/{id}/verification/complete-stage/
  POST /api/cases/{id}/verification/reject/
"""

from rest_framework.routers import DefaultRouter

from .views import CaseViewSet

router = DefaultRouter()
router.register(
    prefix=r"cases",
    viewset=CaseViewSet,
    basename="case",
)

urlpatterns = router.urls
