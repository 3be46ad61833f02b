"""Seed database with demo companies, representatives, rules and monthly figures."""
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction


class Command(BaseCommand):
    help = "Seed database with companies, representatives, commission rules, sales and collections"

    DEMO_USERS = [
        {"email": "admin@commissions.local", "first_name": "Admin", "last_name": "Systeme", "role": "ADMIN", "password": "admin123!"},
        {"email": "audit@commissions.local", "first_name": "Awa", "last_name": "Diop", "role": "AUDITOR", "password": "audit123!"},
        {"email": "lecteur@commissions.local", "first_name": "Marie", "last_name": "Ngo", "role": "USER", "password": "lecteur123!"},
    ]

    COMPANIES = ["Atlas Distribution", "Sahel Pharma"]

    REPRESENTATIVES = [
        {"name": "Jean Kamga", "email": "jean.kamga@commissions.local"},
        {"name": "Fatou Bello", "email": "fatou.bello@commissions.local"},
        {"name": "Ibrahim Moussa", "email": "ibrahim.moussa@commissions.local"},
    ]

    RULES = [
        {"category": "Medicaments", "tier1_rate": "0.0100", "tier2_rate": "0.0200", "tier3_rate": "0.0300"},
        {"category": "Parapharmacie", "tier1_rate": "0.0150", "tier2_rate": "0.0250", "tier3_rate": "0.0400"},
    ]

    # (representative index, company index, category, sales, target, collection)
    MONTHLY = [
        (0, 0, "Medicaments", "95000", "100000", "80000"),
        (0, 0, "Parapharmacie", "30000", "25000", None),
        (1, 1, "Medicaments", "60000", "100000", "45000"),
        (2, 1, "Parapharmacie", "125000", "100000", "110000"),
    ]

    def add_arguments(self, parser):
        parser.add_argument("--flush", action="store_true", help="Delete existing commission data first")
        parser.add_argument("--year", type=int, default=2024)
        parser.add_argument("--months", type=int, default=3, help="Number of months to generate, from January")

    def handle(self, *args, **options):
        if options["flush"]:
            self.stdout.write("Flushing existing data...")
            self._flush()

        self.stdout.write("Seeding data...")
        with transaction.atomic():
            users = self._create_users()
            companies = self._create_companies()
            representatives = self._create_representatives()
            rules = self._create_rules()
            rows = self._create_records(
                companies, representatives, options["year"], options["months"],
            )

        self.stdout.write(self.style.SUCCESS(
            f"Seed complete: {len(users)} users, {len(companies)} companies, "
            f"{len(representatives)} representatives, {len(rules)} rules, "
            f"{rows} sales rows"
        ))

    def _flush(self):
        from commissions.models import (
            CollectionRecord,
            CommissionRule,
            Company,
            DiscountItem,
            FinancialAudit,
            Representative,
            SalesRecord,
        )

        models = [
            FinancialAudit, DiscountItem, CollectionRecord, SalesRecord,
            CommissionRule, Representative, Company,
        ]
        for model in models:
            model.objects.all().delete()

    def _create_users(self):
        from accounts.models import User

        users = []
        for ud in self.DEMO_USERS:
            is_admin = ud["role"] == "ADMIN"
            user, created = User.objects.get_or_create(
                email=ud["email"],
                defaults={
                    "first_name": ud["first_name"],
                    "last_name": ud["last_name"],
                    "role": ud["role"],
                    "is_staff": is_admin,
                },
            )
            if created:
                user.set_password(ud["password"])
                user.save(update_fields=["password"])
                self.stdout.write(f"  User: {user.email} ({ud['role']})")
            users.append(user)
        return users

    def _create_companies(self):
        from commissions.models import Company

        return [Company.objects.get_or_create(name=name)[0] for name in self.COMPANIES]

    def _create_representatives(self):
        from commissions.models import Representative

        reps = []
        for rd in self.REPRESENTATIVES:
            rep, _ = Representative.objects.get_or_create(
                name=rd["name"], defaults={"email": rd["email"]},
            )
            reps.append(rep)
        return reps

    def _create_rules(self):
        from commissions.models import CommissionRule

        rules = []
        for rd in self.RULES:
            rule, _ = CommissionRule.objects.update_or_create(
                category=rd["category"],
                defaults={
                    "tier1_rate": Decimal(rd["tier1_rate"]),
                    "tier2_rate": Decimal(rd["tier2_rate"]),
                    "tier3_rate": Decimal(rd["tier3_rate"]),
                },
            )
            rules.append(rule)
        return rules

    def _create_records(self, companies, representatives, year, months):
        from commissions.services import upsert_collection_record, upsert_sales_record

        count = 0
        for month in range(1, max(1, min(months, 12)) + 1):
            # Small month-to-month drift so period comparisons are not flat.
            factor = Decimal("1") + Decimal(month - 1) / Decimal("20")
            for rep_idx, company_idx, category, sales, target, collection in self.MONTHLY:
                representative = representatives[rep_idx]
                company = companies[company_idx]
                upsert_sales_record(
                    representative=representative,
                    company=company,
                    category=category,
                    year=year,
                    month=month,
                    sales=(Decimal(sales) * factor).quantize(Decimal("0.01")),
                    target=Decimal(target),
                )
                count += 1
                if collection is not None:
                    upsert_collection_record(
                        representative=representative,
                        company=company,
                        year=year,
                        month=month,
                        amount=(Decimal(collection) * factor).quantize(Decimal("0.01")),
                    )
        return count
