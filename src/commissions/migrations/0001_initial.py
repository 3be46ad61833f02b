import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


def _rate(label):
    return models.DecimalField(
        decimal_places=4,
        default=Decimal("0"),
        max_digits=6,
        validators=[
            django.core.validators.MinValueValidator(Decimal("0")),
            django.core.validators.MaxValueValidator(Decimal("1")),
        ],
        verbose_name=label,
    )


def _bound(label, default):
    return models.DecimalField(
        decimal_places=2,
        default=Decimal(default),
        max_digits=5,
        validators=[
            django.core.validators.MinValueValidator(Decimal("0")),
            django.core.validators.MaxValueValidator(Decimal("100")),
        ],
        verbose_name=label,
    )


def _money(label):
    return models.DecimalField(
        decimal_places=2,
        default=Decimal("0"),
        max_digits=14,
        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
        verbose_name=label,
    )


def _year():
    return models.PositiveSmallIntegerField(
        validators=[
            django.core.validators.MinValueValidator(2000),
            django.core.validators.MaxValueValidator(2100),
        ],
        verbose_name="annee",
    )


def _month():
    return models.PositiveSmallIntegerField(
        validators=[
            django.core.validators.MinValueValidator(1),
            django.core.validators.MaxValueValidator(12),
        ],
        verbose_name="mois",
    )


def _base_fields():
    return [
        ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
        ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Company",
            fields=_base_fields() + [
                ("name", models.CharField(max_length=150, unique=True, verbose_name="nom")),
                ("is_active", models.BooleanField(default=True, verbose_name="active")),
            ],
            options={
                "verbose_name": "societe",
                "verbose_name_plural": "societes",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Representative",
            fields=_base_fields() + [
                ("name", models.CharField(max_length=150, unique=True, verbose_name="nom")),
                ("email", models.EmailField(blank=True, default="", max_length=254, verbose_name="adresse e-mail")),
                ("phone", models.CharField(blank=True, default="", max_length=30, verbose_name="telephone")),
                ("is_active", models.BooleanField(default=True, verbose_name="actif")),
            ],
            options={
                "verbose_name": "commercial",
                "verbose_name_plural": "commerciaux",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="CommissionRule",
            fields=_base_fields() + [
                ("category", models.CharField(max_length=100, unique=True, verbose_name="categorie")),
                ("tier1_rate", _rate("taux palier 1")),
                ("tier2_rate", _rate("taux palier 2")),
                ("tier3_rate", _rate("taux palier 3")),
                ("tier1_from", _bound("palier 1 de (%)", "0")),
                ("tier1_to", _bound("palier 1 a (%)", "70")),
                ("tier2_from", _bound("palier 2 de (%)", "71")),
                ("tier2_to", _bound("palier 2 a (%)", "100")),
                ("tier3_from", _bound("palier 3 a partir de (%)", "100")),
            ],
            options={
                "verbose_name": "regle de commission",
                "verbose_name_plural": "regles de commission",
                "ordering": ["category"],
            },
        ),
        migrations.CreateModel(
            name="SalesRecord",
            fields=_base_fields() + [
                ("category", models.CharField(db_index=True, max_length=100, verbose_name="categorie")),
                ("sales", _money("ventes")),
                ("target", _money("objectif")),
                ("year", _year()),
                ("month", _month()),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales_records",
                        to="commissions.company",
                        verbose_name="societe",
                    ),
                ),
                (
                    "representative",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sales_records",
                        to="commissions.representative",
                        verbose_name="commercial",
                    ),
                ),
            ],
            options={
                "verbose_name": "vente mensuelle",
                "verbose_name_plural": "ventes mensuelles",
                "ordering": ["-year", "-month", "representative__name", "category"],
                "indexes": [models.Index(fields=["year", "month"], name="idx_sales_record_period")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("representative", "category", "year", "month"),
                        name="uniq_sales_record_rep_category_period",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CollectionRecord",
            fields=_base_fields() + [
                ("amount", _money("montant encaisse")),
                ("year", _year()),
                ("month", _month()),
                (
                    "company",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="collection_records",
                        to="commissions.company",
                        verbose_name="societe",
                    ),
                ),
                (
                    "representative",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="collection_records",
                        to="commissions.representative",
                        verbose_name="commercial",
                    ),
                ),
            ],
            options={
                "verbose_name": "encaissement",
                "verbose_name_plural": "encaissements",
                "ordering": ["-year", "-month", "representative__name"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("representative", "year", "month"),
                        name="uniq_collection_record_rep_period",
                    ),
                ],
            },
        ),
    ]
