import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


def _money(label):
    return models.DecimalField(
        decimal_places=2,
        default=Decimal("0"),
        max_digits=14,
        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
        verbose_name=label,
    )


def _base_fields():
    return [
        ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
        ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
    ]


class Migration(migrations.Migration):

    dependencies = [
        ("commissions", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="DiscountItem",
            fields=_base_fields() + [
                ("name", models.CharField(max_length=150, unique=True, verbose_name="nom")),
                (
                    "percentage",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=5,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("100")),
                        ],
                        verbose_name="pourcentage",
                    ),
                ),
                ("notes", models.TextField(blank=True, default="", verbose_name="notes")),
            ],
            options={
                "verbose_name": "remise",
                "verbose_name_plural": "remises",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="FinancialAudit",
            fields=_base_fields() + [
                (
                    "year",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(2000),
                            django.core.validators.MaxValueValidator(2100),
                        ],
                        verbose_name="annee",
                    ),
                ),
                (
                    "month",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ],
                        verbose_name="mois",
                    ),
                ),
                ("total_sales", _money("ventes totales")),
                ("deduction_operating", _money("frais d'exploitation")),
                ("deduction_transportation", _money("frais de transport")),
                ("deduction_general", _money("frais generaux")),
                (
                    "deduction_custom_label",
                    models.CharField(blank=True, default="", max_length=150, verbose_name="libelle deduction libre"),
                ),
                ("deduction_custom_amount", _money("deduction libre")),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="financial_audits",
                        to="commissions.company",
                        verbose_name="societe",
                    ),
                ),
                (
                    "discount_item",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="financial_audits",
                        to="commissions.discountitem",
                        verbose_name="remise",
                    ),
                ),
                (
                    "representative",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="financial_audits",
                        to="commissions.representative",
                        verbose_name="commercial",
                    ),
                ),
            ],
            options={
                "verbose_name": "audit financier",
                "verbose_name_plural": "audits financiers",
                "ordering": ["-year", "-month", "representative__name", "company__name"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("representative", "company", "year", "month"),
                        name="uniq_financial_audit_rep_company_period",
                    ),
                ],
            },
        ),
    ]
