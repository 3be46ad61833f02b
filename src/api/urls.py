"""Main API URL router for /api/."""
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from api.auth_views import (
    CookieTokenObtainPairView,
    CookieTokenRefreshView,
    CSRFTokenAPIView,
    LogoutAPIView,
    MeView,
)
from commissions import commission_views
from reports import report_views

router = DefaultRouter()
router.register(r"companies", commission_views.CompanyViewSet, basename="company")
router.register(r"representatives", commission_views.RepresentativeViewSet, basename="representative")
router.register(r"commission-rules", commission_views.CommissionRuleViewSet, basename="commission-rule")
router.register(r"sales-records", commission_views.SalesRecordViewSet, basename="sales-record")
router.register(r"collection-records", commission_views.CollectionRecordViewSet, basename="collection-record")
router.register(r"discount-items", commission_views.DiscountItemViewSet, basename="discount-item")
router.register(r"financial-audits", commission_views.FinancialAuditViewSet, basename="financial-audit")

urlpatterns = [
    # Auth
    path("auth/token/", CookieTokenObtainPairView.as_view(), name="token-obtain"),
    path("auth/token/refresh/", CookieTokenRefreshView.as_view(), name="token-refresh"),
    path("auth/logout/", LogoutAPIView.as_view(), name="auth-logout"),
    path("auth/csrf/", CSRFTokenAPIView.as_view(), name="auth-csrf"),
    path("auth/me/", MeView.as_view(), name="auth-me"),
    # Reports
    path("reports/", report_views.CommissionReportView.as_view(), name="report-period"),
    path(
        "reports/representative/<uuid:pk>/",
        report_views.RepresentativeReportView.as_view(),
        name="report-representative",
    ),
    path("reports/analysis/", report_views.PeriodAnalysisView.as_view(), name="report-analysis"),
    path("reports/ranking/", report_views.BalancedRankingView.as_view(), name="report-ranking"),
    path("reports/net-sales/", report_views.NetSalesReportView.as_view(), name="report-net-sales"),
    path("reports/export/", report_views.CommissionReportExportView.as_view(), name="report-export"),
    # Engine
    path("commission/preview/", commission_views.CommissionPreviewView.as_view(), name="commission-preview"),
    path("", include(router.urls)),
]
