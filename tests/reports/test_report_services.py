from decimal import Decimal

import pytest
from django.test import override_settings

from commissions.aggregation import Period, PeriodRange
from commissions.models import DiscountItem, Representative
from commissions.services import upsert_financial_audit, upsert_sales_record
from reports.services import (
    build_balanced_ranking,
    build_net_sales_report,
    build_period_analysis,
    build_period_report,
    build_representative_report,
    export_period_report_csv,
    get_cached_period_report,
    invalidate_report_cache,
    report_cache_key,
)


@pytest.mark.django_db
class TestPeriodReport:
    def test_summary_and_representatives(self, period_data):
        report = build_period_report(2024, 1)

        assert report["period"] == {"year": 2024, "month": 1}
        summary = report["summary"]
        assert summary["total_sales"] == Decimal("2410.00")
        assert summary["total_target"] == Decimal("3000.00")
        assert summary["total_collection"] == Decimal("900.00")
        assert summary["total_commission"] == Decimal("240.00")
        assert summary["achievement_percentage"] == Decimal("80.33")
        assert summary["collection_rate"] == Decimal("37.34")
        assert summary["representatives_count"] == 2

        names = [rep["representative_name"] for rep in report["representatives"]]
        assert names == ["Fatou Bello", "Jean Kamga"]

        jean = report["representatives"][1]
        assert jean["totals"]["commission"] == Decimal("140.00")
        assert jean["totals"]["achievement_percentage"] == Decimal("85.00")
        assert len(jean["sales_details"]) == 2
        assert jean["collection_records"][0]["amount"] == Decimal("900.00")

        detail = next(d for d in jean["sales_details"] if d["category"] == "Medicaments")
        assert detail["commission"]["tier3_commission"] == Decimal("40.00")
        assert detail["achievement_percentage"] == Decimal("120.00")

    def test_empty_period_is_zeroed(self, period_data):
        report = build_period_report(2024, 6)

        assert report["representatives"] == []
        assert report["summary"]["total_sales"] == 0
        assert report["summary"]["achievement_percentage"] == 0
        assert report["summary"]["representatives_count"] == 0

    def test_without_filters_every_record_counts(self, period_data, representative, company):
        upsert_sales_record(
            representative=representative, company=company, category="Medicaments",
            year=2023, month=12, sales=Decimal("90"), target=Decimal("0"),
        )

        assert build_period_report()["summary"]["total_sales"] == Decimal("2500.00")
        assert build_period_report(year=2023)["summary"]["total_sales"] == Decimal("90.00")


@pytest.mark.django_db
class TestRepresentativeReport:
    def test_scoped_to_one_representative(self, period_data):
        jean = period_data["jean"]
        report = build_representative_report(jean.pk, 2024, 1)

        assert report["representative_id"] == str(jean.pk)
        assert report["summary"]["total_sales"] == Decimal("1700.00")
        assert report["summary"]["collection_rate"] == Decimal("52.94")
        assert len(report["sales_details"]) == 2
        assert len(report["collection_records"]) == 1

    def test_representative_without_data(self, db):
        rep = Representative.objects.create(name="Nouveau")
        report = build_representative_report(rep.pk)

        assert report["representative_name"] == "Nouveau"
        assert report["summary"]["total_commission"] == 0
        assert report["sales_details"] == []

    def test_unknown_representative(self, db):
        with pytest.raises(Representative.DoesNotExist):
            build_representative_report("7f1f3a64-0000-4000-8000-000000000000")


@pytest.mark.django_db
class TestPeriodAnalysis:
    def test_compares_with_previous_range(self, period_data, representative, company):
        upsert_sales_record(
            representative=representative, company=company, category="Medicaments",
            year=2024, month=2, sales=Decimal("1500"), target=Decimal("1000"),
        )

        report = build_period_analysis(PeriodRange(Period(2024, 2), Period(2024, 2)))

        assert report["range"] == {"start": "2024-02", "end": "2024-02"}
        assert report["previous_range"] == {"start": "2024-01", "end": "2024-01"}
        assert report["current"]["total_commission"] == Decimal("200.00")
        assert report["previous"]["total_commission"] == Decimal("240.00")
        assert report["changes"]["sales"] == Decimal("-37.76")
        assert report["changes"]["commission"] == Decimal("-16.67")
        assert report["highlights"]["top_seller"]["label"] == "Jean Kamga"
        assert report["highlights"]["top_category"]["key"] == "Medicaments"
        assert [m["period"] for m in report["monthly"]] == ["2024-02"]

    def test_empty_previous_range(self, period_data):
        report = build_period_analysis(PeriodRange(Period(2024, 1), Period(2024, 2)))

        assert report["previous_range"] == {"start": "2023-11", "end": "2023-12"}
        assert report["changes"]["sales"] == Decimal("100.00")
        assert [m["period"] for m in report["monthly"]] == ["2024-01", "2024-02"]
        assert report["monthly"][1]["sales"] == 0
        assert report["highlights"]["lowest_performer"]["label"] == "Fatou Bello"


@pytest.mark.django_db
def test_balanced_ranking(period_data):
    report = build_balanced_ranking(2024, 1)
    ranking = report["ranking"]

    assert [row["representative_name"] for row in ranking] == ["Jean Kamga", "Fatou Bello"]
    assert ranking[0]["rank"] == 1
    assert ranking[0]["balanced_score"] == Decimal("92.50")
    assert ranking[1]["collection_norm"] == 0
    assert report["weights"]["achievement"] == Decimal("0.5")


@pytest.mark.django_db
class TestReportCache:
    @override_settings(COMMISSION_REPORT_CACHE_SECONDS=300)
    def test_cached_until_data_changes(
        self, period_data, representative, company, django_capture_on_commit_callbacks,
    ):
        first = get_cached_period_report(2024, 1)
        assert first["summary"]["total_sales"] == Decimal("2410.00")

        with django_capture_on_commit_callbacks(execute=True):
            upsert_sales_record(
                representative=representative, company=company, category="Medicaments",
                year=2024, month=1, sales=Decimal("1300"), target=Decimal("1000"),
            )

        assert get_cached_period_report(2024, 1)["summary"]["total_sales"] == Decimal("2510.00")

    @override_settings(COMMISSION_REPORT_CACHE_SECONDS=300)
    def test_cache_serves_stale_data_without_invalidation(self, period_data, representative, company):
        get_cached_period_report(2024, 1)
        # Callbacks of the test transaction are never run.
        upsert_sales_record(
            representative=representative, company=company, category="Medicaments",
            year=2024, month=1, sales=Decimal("1300"), target=Decimal("1000"),
        )

        assert get_cached_period_report(2024, 1)["summary"]["total_sales"] == Decimal("2410.00")

    def test_invalidation_rotates_keys(self):
        before = report_cache_key(2024, 1)
        invalidate_report_cache()

        assert report_cache_key(2024, 1) != before
        assert report_cache_key(2024, 1).endswith(":2024:1")
        assert report_cache_key().endswith(":all:all")


@pytest.mark.django_db
def test_csv_export(period_data):
    response = export_period_report_csv(2024, 1)
    content = response.content.decode("utf-8-sig").splitlines()

    assert response["Content-Type"].startswith("text/csv")
    assert 'filename="commissions_2024_1.csv"' in response["Content-Disposition"]
    assert content[0].startswith("Commercial,Societe,Categorie")
    assert len(content) == 4
    assert content[1].startswith("Fatou Bello,Societe Test,Medicaments,2024,1,710.00,1000.00,71.00")


@pytest.mark.django_db
class TestNetSalesReport:
    def test_audit_deductions_are_shared_by_category(self, period_data, company):
        jean = period_data["jean"]
        item = DiscountItem.objects.create(name="Remise", percentage=Decimal("10"))
        upsert_financial_audit(
            representative=jean, company=company, year=2024, month=1,
            deduction_operating=Decimal("170"), discount_item=item,
        )

        report = build_net_sales_report(2024, 1)

        lines = {(row["representative_name"], row["category"]): row for row in report["lines"]}
        medicaments = lines[("Jean Kamga", "Medicaments")]
        assert medicaments["net_total_sales"] == Decimal("1530.00")
        assert medicaments["net_sales"] == Decimal("1080.00")
        assert medicaments["net_percentage"] == Decimal("90.00")
        assert lines[("Jean Kamga", "Sans regle")]["net_sales"] == Decimal("450.00")
        assert lines[("Fatou Bello", "Medicaments")]["net_sales"] == Decimal("710.00")
        assert lines[("Fatou Bello", "Medicaments")]["has_financial_audit"] is False

        summary = report["summary"]
        assert summary["total_sales"] == Decimal("2410.00")
        assert summary["net_sales"] == Decimal("2240.00")
        assert summary["total_deductions"] == Decimal("170.00")
        assert summary["total_discount"] == Decimal("170.00")
        assert summary["audits_count"] == 1

    def test_lines_are_ordered_by_representative_then_latest_month(
        self, representative, other_representative, company,
    ):
        for rep, month, category in [
            (representative, 1, "B"), (representative, 2, "A"), (other_representative, 1, "A"),
            (representative, 1, "A"),
        ]:
            upsert_sales_record(
                representative=rep, company=company, category=category,
                year=2024, month=month, sales=Decimal("10"), target=Decimal("0"),
            )

        lines = build_net_sales_report(year=2024)["lines"]

        assert [(row["representative_name"], row["month"], row["category"]) for row in lines] == [
            ("Fatou Bello", 1, "A"),
            ("Jean Kamga", 2, "A"),
            ("Jean Kamga", 1, "A"),
            ("Jean Kamga", 1, "B"),
        ]

    def test_empty_period(self):
        report = build_net_sales_report(2030, 1)

        assert report["lines"] == []
        assert report["summary"]["net_sales"] == 0
        assert report["summary"]["net_percentage"] == 0
