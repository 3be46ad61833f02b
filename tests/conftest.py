from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from accounts.models import User
from commissions.models import CommissionRule, Company, Representative
from commissions.services import upsert_collection_record, upsert_sales_record


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email="admin@test.com",
        password="testpass123",
        first_name="Admin",
        last_name="User",
        role=User.Role.ADMIN,
    )


@pytest.fixture
def regular_user(db):
    return User.objects.create_user(
        email="user@test.com",
        password="testpass123",
        first_name="Regular",
        last_name="User",
        role=User.Role.USER,
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture
def user_client(regular_user):
    client = APIClient()
    client.force_authenticate(user=regular_user)
    return client


@pytest.fixture
def company(db):
    return Company.objects.create(name="Societe Test")


@pytest.fixture
def representative(db):
    return Representative.objects.create(name="Jean Kamga", email="jean@test.com")


@pytest.fixture
def other_representative(db):
    return Representative.objects.create(name="Fatou Bello", email="fatou@test.com")


@pytest.fixture
def rule(db):
    return CommissionRule.objects.create(
        category="Medicaments",
        tier1_rate=Decimal("0.1000"),
        tier2_rate=Decimal("0.1000"),
        tier3_rate=Decimal("0.2000"),
    )


@pytest.fixture
def period_data(representative, other_representative, company, rule):
    """January 2024: Jean 1200/1000 + 500/1000 (no rule), 900 collected; Fatou 710/1000."""
    upsert_sales_record(
        representative=representative, company=company, category="Medicaments",
        year=2024, month=1, sales=Decimal("1200"), target=Decimal("1000"),
    )
    upsert_sales_record(
        representative=representative, company=company, category="Sans regle",
        year=2024, month=1, sales=Decimal("500"), target=Decimal("1000"),
    )
    upsert_sales_record(
        representative=other_representative, company=company, category="Medicaments",
        year=2024, month=1, sales=Decimal("710"), target=Decimal("1000"),
    )
    upsert_collection_record(
        representative=representative, company=company, year=2024, month=1, amount=Decimal("900"),
    )
    return {"jean": representative, "fatou": other_representative}
