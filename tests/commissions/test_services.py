from decimal import Decimal
from io import BytesIO

import openpyxl
import pytest
from django.core.exceptions import ValidationError
from django.db import IntegrityError

from commissions.models import CollectionRecord, CommissionRule, Company, SalesRecord
from commissions.services import (
    IMPORT_COLUMNS,
    InvalidAmount,
    build_sales_workbook,
    export_sales_workbook,
    import_sales_workbook,
    parse_amount,
    upsert_collection_record,
    upsert_sales_record,
)


def _workbook(rows):
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(IMPORT_COLUMNS)
    for row in rows:
        ws.append(row)
    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer


class TestParseAmount:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("1250", Decimal("1250")),
            ("1,250.50", Decimal("1250.50")),
            ("1 250", Decimal("1250")),
            ("١٢٥٠", Decimal("1250")),
            ("٣٫٥", Decimal("3.5")),
            ("۱۲", Decimal("12")),
            ("  42.5 ", Decimal("42.5")),
            (1250, Decimal("1250")),
            (0.1, Decimal("0.1")),
            (Decimal("7.25"), Decimal("7.25")),
        ],
    )
    def test_accepts(self, value, expected):
        assert parse_amount(value) == expected

    @pytest.mark.parametrize("value", ["", "   ", None, "abc", "12abc", "NaN", "Infinity", float("inf"), True])
    def test_rejects(self, value):
        with pytest.raises(InvalidAmount):
            parse_amount(value)

    def test_invalid_amount_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_amount("x")


@pytest.mark.django_db
class TestUpserts:
    def test_sales_record_created_then_updated(self, representative, company):
        record, created = upsert_sales_record(
            representative=representative, company=company, category="Medicaments",
            year=2024, month=1, sales=Decimal("100"), target=Decimal("200"),
        )
        assert created is True

        again, created = upsert_sales_record(
            representative=representative, company=company, category="Medicaments",
            year=2024, month=1, sales=Decimal("150"), target=Decimal("200"),
        )
        assert created is False
        assert again.pk == record.pk
        assert SalesRecord.objects.count() == 1
        again.refresh_from_db()
        assert again.sales == Decimal("150")

    def test_other_category_is_a_new_row(self, representative, company):
        for category in ("Medicaments", "Parapharmacie"):
            upsert_sales_record(
                representative=representative, company=company, category=category,
                year=2024, month=1, sales=Decimal("1"), target=Decimal("1"),
            )
        assert SalesRecord.objects.count() == 2

    def test_other_company_updates_the_same_row(self, representative, company):
        other_company = Company.objects.create(name="Autre Societe")
        upsert_sales_record(
            representative=representative, company=company, category="Medicaments",
            year=2024, month=1, sales=Decimal("100"), target=Decimal("200"),
        )

        record, created = upsert_sales_record(
            representative=representative, company=other_company, category="Medicaments",
            year=2024, month=1, sales=Decimal("300"), target=Decimal("200"),
        )

        assert created is False
        assert SalesRecord.objects.count() == 1
        record.refresh_from_db()
        assert record.company == other_company
        assert record.sales == Decimal("300")

    def test_one_collection_per_representative_and_month(self, representative, company):
        upsert_collection_record(representative=representative, year=2024, month=1, amount=Decimal("10"))
        record, created = upsert_collection_record(
            representative=representative, year=2024, month=1, amount=Decimal("25"), company=company,
        )

        assert created is False
        assert CollectionRecord.objects.count() == 1
        record.refresh_from_db()
        assert record.amount == Decimal("25")
        assert record.company == company


@pytest.mark.django_db
def test_rule_bounds_are_validated():
    rule = CommissionRule(
        category="X", tier1_rate=Decimal("0.1"), tier2_rate=Decimal("0.1"), tier3_rate=Decimal("0.1"),
        tier1_from=80, tier1_to=70,
    )
    with pytest.raises(ValidationError):
        rule.full_clean()


@pytest.mark.django_db
class TestImportSalesWorkbook:
    def test_imports_rows_and_collections(self, representative, other_representative, company):
        upload = _workbook([
            ["jean kamga", "Societe Test", "Medicaments", 2024, 1, 1000, 2000, 500],
            ["Jean Kamga", "Societe Test", "Parapharmacie", 2024, 1, "1 500", 1000, 999],
            ["Fatou Bello", "societe test", "Medicaments", 2024, 2, 300.5, 0, None],
        ])

        result = import_sales_workbook(upload)

        assert result == {
            "created": 3, "updated": 0, "collections": 1, "errors": 0, "error_details": [],
        }
        record = SalesRecord.objects.get(representative=representative, category="Parapharmacie")
        assert record.sales == Decimal("1500")
        # The first row carrying a collection wins for the month.
        assert CollectionRecord.objects.get(representative=representative).amount == Decimal("500")

    def test_reimport_updates(self, representative, company):
        row = ["Jean Kamga", "Societe Test", "Medicaments", 2024, 1, 1000, 2000, None]
        import_sales_workbook(_workbook([row]))
        row[5] = 1200

        result = import_sales_workbook(_workbook([row]))

        assert result["created"] == 0
        assert result["updated"] == 1
        assert SalesRecord.objects.get().sales == Decimal("1200")

    def test_reimport_under_other_company_moves_the_row(self, representative, company):
        other_company = Company.objects.create(name="Autre Societe")
        import_sales_workbook(_workbook([["Jean Kamga", "Societe Test", "Medicaments", 2024, 1, 1000, 2000, None]]))

        result = import_sales_workbook(
            _workbook([["Jean Kamga", "Autre Societe", "Medicaments", 2024, 1, 1000, 2000, None]])
        )

        assert result["updated"] == 1
        assert SalesRecord.objects.get().company == other_company

    def test_bad_rows_are_reported_and_skipped(self, representative, company):
        upload = _workbook([
            ["Inconnu", "Societe Test", "Medicaments", 2024, 1, 1, 1, None],
            ["Jean Kamga", "Autre", "Medicaments", 2024, 1, 1, 1, None],
            ["Jean Kamga", "Societe Test", "", 2024, 1, 1, 1, None],
            ["Jean Kamga", "Societe Test", "Medicaments", 2024, 13, 1, 1, None],
            ["Jean Kamga", "Societe Test", "Medicaments", 2024, 1, "abc", 1, None],
            ["Jean Kamga", "Societe Test", "Medicaments", 2024, 1, -5, 1, None],
            [None, None, None, None, None, None, None, None],
            ["Jean Kamga", "Societe Test", "Medicaments", 2024, 1, 10, 20, None],
        ])

        result = import_sales_workbook(upload)

        assert result["created"] == 1
        assert result["errors"] == 6
        assert [e["row"] for e in result["error_details"]] == [2, 3, 4, 5, 6, 7]
        assert "Inconnu" in result["error_details"][0]["error"]
        assert SalesRecord.objects.count() == 1

    def test_workbook_is_closed_when_the_import_fails(self, representative, company, monkeypatch):
        closed = []
        real_load = openpyxl.load_workbook

        def tracking_load(*args, **kwargs):
            wb = real_load(*args, **kwargs)
            real_close = wb.close

            def close():
                closed.append(True)
                real_close()

            wb.close = close
            return wb

        def failing_upsert(**kwargs):
            raise IntegrityError("doublon")

        monkeypatch.setattr(openpyxl, "load_workbook", tracking_load)
        monkeypatch.setattr("commissions.services.upsert_sales_record", failing_upsert)

        with pytest.raises(IntegrityError):
            import_sales_workbook(
                _workbook([["Jean Kamga", "Societe Test", "Medicaments", 2024, 1, 10, 20, None]])
            )
        assert closed == [True]

    def test_unreadable_file(self):
        with pytest.raises(ValidationError):
            import_sales_workbook(BytesIO(b"not a workbook"))


@pytest.mark.django_db
class TestExportSalesWorkbook:
    def test_rows_carry_achievement_and_commission(self, representative, company, rule):
        upsert_sales_record(
            representative=representative, company=company, category="Medicaments",
            year=2024, month=1, sales=Decimal("1200"), target=Decimal("1000"),
        )
        upsert_sales_record(
            representative=representative, company=company, category="Sans regle",
            year=2024, month=1, sales=Decimal("500"), target=Decimal("1000"),
        )
        queryset = SalesRecord.objects.select_related("representative", "company").order_by("category")

        ws = build_sales_workbook(queryset).active
        rows = list(ws.iter_rows(min_row=2, values_only=True))

        assert ws.cell(row=1, column=1).value == "Commercial"
        assert rows[0][:3] == ("Jean Kamga", "Societe Test", "Medicaments")
        assert rows[0][7] == 120.0
        assert rows[0][8] == 140.0
        assert rows[1][8] == 0.0

    def test_response_is_xlsx_download(self, representative, company):
        queryset = SalesRecord.objects.select_related("representative", "company")
        response = export_sales_workbook(queryset)

        assert response.status_code == 200
        assert "spreadsheetml" in response["Content-Type"]
        assert 'filename="ventes.xlsx"' in response["Content-Disposition"]
        wb = openpyxl.load_workbook(BytesIO(response.content))
        assert wb.active.max_row == 1
