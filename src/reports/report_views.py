"""Report API views: period, representative, analysis, ranking, net sales and export."""
from __future__ import annotations

from rest_framework import permissions, serializers
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from rest_framework.views import APIView

from api.v1.permissions import IsFinancialAuditor
from commissions.aggregation import Period, PeriodRange
from commissions.models import YEAR_MAX, YEAR_MIN, Representative
from reports.services import (
    build_balanced_ranking,
    build_net_sales_report,
    build_period_analysis,
    build_representative_report,
    export_period_report_csv,
    get_cached_period_report,
)


# ────────────────────────────────────────────────────────────
# Query parameters
# ────────────────────────────────────────────────────────────

class PeriodQuerySerializer(serializers.Serializer):
    year = serializers.IntegerField(required=False, min_value=YEAR_MIN, max_value=YEAR_MAX)
    month = serializers.IntegerField(required=False, min_value=1, max_value=12)


class RangeQuerySerializer(serializers.Serializer):
    start = serializers.CharField()
    end = serializers.CharField()

    def _period(self, value):
        try:
            period = Period.parse(value)
        except ValueError:
            raise serializers.ValidationError("Format attendu : AAAA-MM.") from None
        if not YEAR_MIN <= period.year <= YEAR_MAX:
            raise serializers.ValidationError(f"L'annee doit etre comprise entre {YEAR_MIN} et {YEAR_MAX}.")
        return period

    def validate_start(self, value):
        return self._period(value)

    def validate_end(self, value):
        return self._period(value)

    def validate(self, attrs):
        try:
            attrs["range"] = PeriodRange(attrs["start"], attrs["end"])
        except ValueError as exc:
            raise serializers.ValidationError({"end": str(exc)}) from exc
        return attrs


def _period_params(request) -> dict:
    # ``?year=&month=`` means no filter, like omitting the parameters.
    present = {key: value for key, value in request.query_params.items() if value.strip()}
    query = PeriodQuerySerializer(data=present)
    query.is_valid(raise_exception=True)
    return {
        "year": query.validated_data.get("year"),
        "month": query.validated_data.get("month"),
    }


# ────────────────────────────────────────────────────────────
# Views
# ────────────────────────────────────────────────────────────

class CommissionReportView(APIView):
    """GET /api/reports/?year=&month= - overall and per-representative commissions."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(get_cached_period_report(**_period_params(request)))


class RepresentativeReportView(APIView):
    """GET /api/reports/representative/<id>/?year=&month="""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        params = _period_params(request)
        try:
            report = build_representative_report(pk, **params)
        except Representative.DoesNotExist:
            raise NotFound("Commercial introuvable.") from None
        return Response(report)


class PeriodAnalysisView(APIView):
    """GET /api/reports/analysis/?start=YYYY-MM&end=YYYY-MM - range vs. previous range."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        query = RangeQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        return Response(build_period_analysis(query.validated_data["range"]))


class BalancedRankingView(APIView):
    """GET /api/reports/ranking/?year=&month= - 50/30/20 balanced ranking."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(build_balanced_ranking(**_period_params(request)))


class CommissionReportExportView(APIView):
    """GET /api/reports/export/?year=&month= - CSV, one row per sales line."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return export_period_report_csv(**_period_params(request))


class NetSalesReportView(APIView):
    """GET /api/reports/net-sales/?year=&month= - net sales per category after audit deductions."""

    permission_classes = [IsFinancialAuditor]

    def get(self, request):
        return Response(build_net_sales_report(**_period_params(request)))
