"""API views for reference data, sales, collections and financial audits."""
from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from api.v1.permissions import IsCommissionAdmin, IsCommissionAdminOrReadOnly, IsFinancialAuditor
from commissions.commission_serializers import (
    AuditPeriodSerializer,
    CollectionRecordSerializer,
    CommissionPreviewSerializer,
    CommissionRuleSerializer,
    CompanySerializer,
    DiscountItemSerializer,
    FinancialAuditSerializer,
    RepresentativeSerializer,
    SalesRecordSerializer,
)
from commissions.engine import (
    CommissionBreakdown,
    achievement_percentage,
    calculate_commission,
    quantize_money,
)
from commissions.models import (
    CollectionRecord,
    CommissionRule,
    Company,
    DiscountItem,
    FinancialAudit,
    Representative,
    SalesRecord,
)
from commissions.services import audit_candidates, export_sales_workbook, import_sales_workbook

logger = logging.getLogger("tracker")


# ────────────────────────────────────────────────────────────
# Reference data
# ────────────────────────────────────────────────────────────

class CompanyViewSet(viewsets.ModelViewSet):
    queryset = Company.objects.all()
    serializer_class = CompanySerializer
    permission_classes = [IsCommissionAdminOrReadOnly]
    filterset_fields = ["is_active"]
    search_fields = ["name"]
    ordering_fields = ["name", "created_at"]


class RepresentativeViewSet(viewsets.ModelViewSet):
    queryset = Representative.objects.all()
    serializer_class = RepresentativeSerializer
    permission_classes = [IsCommissionAdminOrReadOnly]
    filterset_fields = ["is_active"]
    search_fields = ["name", "email"]
    ordering_fields = ["name", "created_at"]


class CommissionRuleViewSet(viewsets.ModelViewSet):
    queryset = CommissionRule.objects.all()
    serializer_class = CommissionRuleSerializer
    permission_classes = [IsCommissionAdminOrReadOnly]
    search_fields = ["category"]
    ordering_fields = ["category"]


# ────────────────────────────────────────────────────────────
# Sales & collections
# ────────────────────────────────────────────────────────────

class UpsertCreateMixin:
    """POST creates or updates on the natural key: 201 when created, 200 otherwise."""

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        code = status.HTTP_201_CREATED if serializer.was_created else status.HTTP_200_OK
        return Response(serializer.data, status=code, headers=self.get_success_headers(serializer.data))


class SalesRecordViewSet(UpsertCreateMixin, viewsets.ModelViewSet):
    """Monthly sales rows. Each row embeds its achievement and commission breakdown."""

    queryset = SalesRecord.objects.select_related("representative", "company")
    serializer_class = SalesRecordSerializer
    permission_classes = [IsCommissionAdminOrReadOnly]
    filterset_fields = ["year", "month", "representative", "company", "category"]
    search_fields = ["category", "representative__name", "company__name"]
    ordering_fields = ["year", "month", "sales", "target", "category"]

    @action(
        detail=False,
        methods=["post"],
        url_path="import",
        permission_classes=[IsCommissionAdmin],
        parser_classes=[MultiPartParser, FormParser],
    )
    def import_file(self, request):
        upload = request.FILES.get("file")
        if upload is None:
            raise ValidationError({"file": "Ce champ est requis."})
        try:
            result = import_sales_workbook(upload)
        except DjangoValidationError as exc:
            raise ValidationError({"file": exc.messages}) from exc
        logger.info(
            "Import ventes par %s: %d cree(s), %d mis a jour, %d erreur(s).",
            request.user, result["created"], result["updated"], result["errors"],
        )
        return Response(result, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="export")
    def export(self, request):
        return export_sales_workbook(self.filter_queryset(self.get_queryset()))


class CollectionRecordViewSet(UpsertCreateMixin, viewsets.ModelViewSet):
    queryset = CollectionRecord.objects.select_related("representative", "company")
    serializer_class = CollectionRecordSerializer
    permission_classes = [IsCommissionAdminOrReadOnly]
    filterset_fields = ["year", "month", "representative", "company"]
    ordering_fields = ["year", "month", "amount"]


# ────────────────────────────────────────────────────────────
# Commission preview
# ────────────────────────────────────────────────────────────

class CommissionPreviewView(APIView):
    """
    POST /api/commission/preview/

    Computes the breakdown for ``sales``/``target`` with the rule of
    ``category`` or with explicit rates. Nothing is stored.
    """

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = CommissionPreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        rule_found = True
        if "category" in data:
            rule = CommissionRule.objects.filter(category=data["category"]).first()
            rule_found = rule is not None
            rates = (rule.tier1_rate, rule.tier2_rate, rule.tier3_rate) if rule_found else None
        else:
            rates = (data["tier1_rate"], data["tier2_rate"], data["tier3_rate"])

        # No rule for the category: zero on every tier.
        breakdown = (
            calculate_commission(data["sales"], data["target"], *rates)
            if rates is not None
            else CommissionBreakdown()
        )
        return Response({
            "sales": data["sales"],
            "target": data["target"],
            "category": data.get("category"),
            "rule_found": rule_found,
            "achievement_percentage": quantize_money(
                achievement_percentage(data["sales"], data["target"])
            ),
            "commission": breakdown.as_dict(),
        })


# ────────────────────────────────────────────────────────────
# Financial audits
# ────────────────────────────────────────────────────────────

class DiscountItemViewSet(viewsets.ModelViewSet):
    queryset = DiscountItem.objects.all()
    serializer_class = DiscountItemSerializer
    permission_classes = [IsCommissionAdminOrReadOnly]
    search_fields = ["name"]
    ordering_fields = ["name", "percentage"]


class FinancialAuditViewSet(UpsertCreateMixin, viewsets.ModelViewSet):
    """Monthly deductions per representative and company, with the net total."""

    queryset = FinancialAudit.objects.select_related("representative", "company", "discount_item")
    serializer_class = FinancialAuditSerializer
    permission_classes = [IsFinancialAuditor]
    filterset_fields = ["year", "month", "representative", "company", "discount_item"]
    search_fields = ["representative__name", "company__name"]
    ordering_fields = ["year", "month", "total_sales"]

    @action(detail=False, methods=["get"], url_path="candidates")
    def candidates(self, request):
        """Gross sales per representative and company for ``?year=&month=``."""
        query = AuditPeriodSerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        return Response(audit_candidates(**query.validated_data))
