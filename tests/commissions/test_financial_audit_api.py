"""API tests for financial audits, discount items and audit candidates."""
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from accounts.models import User
from commissions.models import DiscountItem, FinancialAudit
from commissions.services import upsert_financial_audit, upsert_sales_record


@pytest.fixture
def auditor_client(db):
    auditor = User.objects.create_user(
        email="audit@test.com",
        password="testpass123",
        first_name="Awa",
        last_name="Diop",
        role=User.Role.AUDITOR,
    )
    client = APIClient()
    client.force_authenticate(user=auditor)
    return client


def _audit_payload(representative, company, **overrides):
    payload = {
        "representative": str(representative.pk),
        "company": str(company.pk),
        "year": 2024,
        "month": 1,
        "deduction_operating": "100",
        "deduction_transportation": "50",
        "deduction_general": "25",
    }
    payload.update(overrides)
    return payload


@pytest.mark.django_db
class TestFinancialAudits:
    def test_total_sales_defaults_to_the_sales_rows(
        self, auditor_client, period_data, representative, company,
    ):
        response = auditor_client.post(
            "/api/financial-audits/", _audit_payload(representative, company), format="json",
        )

        assert response.status_code == 201
        assert response.data["total_sales"] == "1700.00"
        assert response.data["total_deductions"] == Decimal("175.00")
        assert response.data["net_total_sales"] == Decimal("1525.00")
        assert response.data["representative_name"] == "Jean Kamga"
        assert response.data["discount_item_name"] is None

    def test_same_key_updates(self, auditor_client, representative, company):
        auditor_client.post(
            "/api/financial-audits/",
            _audit_payload(representative, company, total_sales="1000"),
            format="json",
        )
        response = auditor_client.post(
            "/api/financial-audits/",
            _audit_payload(representative, company, total_sales="1000", deduction_general="400"),
            format="json",
        )

        assert response.status_code == 200
        assert FinancialAudit.objects.count() == 1
        assert response.data["net_total_sales"] == Decimal("450.00")

    def test_deductions_above_sales_give_zero_net(self, auditor_client, representative, company):
        response = auditor_client.post(
            "/api/financial-audits/",
            _audit_payload(representative, company, total_sales="100", deduction_operating="500"),
            format="json",
        )

        assert response.status_code == 201
        assert response.data["net_total_sales"] == 0

    def test_several_custom_deductions_are_summed(self, auditor_client, representative, company):
        response = auditor_client.post(
            "/api/financial-audits/",
            _audit_payload(
                representative, company, total_sales="1000",
                custom_deductions=[{"label": "Loyer", "amount": "40"}, {"label": "Carburant", "amount": "10"}],
            ),
            format="json",
        )

        assert response.status_code == 201
        assert response.data["deduction_custom_label"] == "Deductions multiples"
        assert response.data["deduction_custom_amount"] == "50.00"
        assert "custom_deductions" not in response.data
        assert response.data["net_total_sales"] == Decimal("775.00")

    def test_discount_item_gives_discount_value(self, auditor_client, representative, company):
        item = DiscountItem.objects.create(name="Remise fidelite", percentage=Decimal("2.5"))

        response = auditor_client.post(
            "/api/financial-audits/",
            _audit_payload(representative, company, total_sales="1234.56", discount_item=str(item.pk)),
            format="json",
        )

        assert response.status_code == 201
        assert response.data["discount_item_name"] == "Remise fidelite"
        assert response.data["discount_value"] == Decimal("30.86")

    @pytest.mark.parametrize(
        "field, value",
        [("deduction_operating", "-1"), ("total_sales", "abc"), ("month", 13), ("year", 1999)],
    )
    def test_invalid_input_is_rejected(self, auditor_client, representative, company, field, value):
        response = auditor_client.post(
            "/api/financial-audits/",
            _audit_payload(representative, company, **{field: value}),
            format="json",
        )

        assert response.status_code == 400
        assert field in response.data
        assert FinancialAudit.objects.count() == 0

    def test_update_onto_existing_key_is_rejected(self, auditor_client, representative, company):
        upsert_financial_audit(representative=representative, company=company, year=2024, month=1)
        other, _ = upsert_financial_audit(representative=representative, company=company, year=2024, month=2)

        response = auditor_client.patch(f"/api/financial-audits/{other.pk}/", {"month": 1}, format="json")

        assert response.status_code == 400

    def test_reader_is_denied(self, user_client):
        response = user_client.get("/api/financial-audits/")
        assert response.status_code == 403

    def test_auditor_cannot_delete(self, auditor_client, admin_client, representative, company):
        audit, _ = upsert_financial_audit(representative=representative, company=company, year=2024, month=1)

        denied = auditor_client.delete(f"/api/financial-audits/{audit.pk}/")
        allowed = admin_client.delete(f"/api/financial-audits/{audit.pk}/")

        assert denied.status_code == 403
        assert allowed.status_code == 204
        assert FinancialAudit.objects.count() == 0

    def test_candidates_flag_audited_pairs(self, auditor_client, period_data, representative, company):
        upsert_financial_audit(representative=representative, company=company, year=2024, month=1)

        response = auditor_client.get("/api/financial-audits/candidates/", {"year": 2024, "month": 1})

        assert response.status_code == 200
        rows = {row["representative_name"]: row for row in response.data}
        assert rows["Jean Kamga"]["total_sales"] == Decimal("1700.00")
        assert rows["Jean Kamga"]["has_financial_audit"] is True
        assert rows["Fatou Bello"]["has_financial_audit"] is False

    @pytest.mark.parametrize("params", [{}, {"year": 2024}, {"year": 2024, "month": 0}])
    def test_candidates_need_a_month(self, auditor_client, params):
        response = auditor_client.get("/api/financial-audits/candidates/", params)
        assert response.status_code == 400


@pytest.mark.django_db
class TestDiscountItems:
    def test_admin_creates(self, admin_client):
        response = admin_client.post(
            "/api/discount-items/", {"name": " Remise volume ", "percentage": "5"}, format="json",
        )

        assert response.status_code == 201
        assert DiscountItem.objects.get().name == "Remise volume"

    def test_percentage_is_optional_and_bounded(self, admin_client):
        without = admin_client.post("/api/discount-items/", {"name": "Libre"}, format="json")
        too_high = admin_client.post(
            "/api/discount-items/", {"name": "Trop", "percentage": "150"}, format="json",
        )

        assert without.status_code == 201
        assert without.data["percentage"] is None
        assert too_high.status_code == 400

    def test_regular_user_cannot_write(self, user_client):
        response = user_client.post("/api/discount-items/", {"name": "X"}, format="json")
        assert response.status_code == 403


@pytest.mark.django_db
def test_changed_sales_do_not_rewrite_a_stored_audit(representative, company):
    upsert_sales_record(
        representative=representative, company=company, category="A",
        year=2024, month=1, sales=Decimal("100"), target=Decimal("0"),
    )
    audit, _ = upsert_financial_audit(representative=representative, company=company, year=2024, month=1)
    upsert_sales_record(
        representative=representative, company=company, category="A",
        year=2024, month=1, sales=Decimal("900"), target=Decimal("0"),
    )

    audit.refresh_from_db()
    assert audit.total_sales == Decimal("100")
