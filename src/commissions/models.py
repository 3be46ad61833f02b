"""Models for sales, targets, collections and commission rules."""
from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.models import TimeStampedModel

YEAR_MIN = 2000
YEAR_MAX = 2100

_non_negative = MinValueValidator(Decimal("0"))
_year_validators = [MinValueValidator(YEAR_MIN), MaxValueValidator(YEAR_MAX)]
_month_validators = [MinValueValidator(1), MaxValueValidator(12)]
_rate_validators = [MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("1"))]
_bound_validators = [MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))]


class Company(TimeStampedModel):
    name = models.CharField("nom", max_length=150, unique=True)
    is_active = models.BooleanField("active", default=True)

    class Meta:
        verbose_name = "societe"
        verbose_name_plural = "societes"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Representative(TimeStampedModel):
    """Sales representative whose sales, targets and collections are tracked."""

    name = models.CharField("nom", max_length=150, unique=True)
    email = models.EmailField("adresse e-mail", blank=True, default="")
    phone = models.CharField("telephone", max_length=30, blank=True, default="")
    is_active = models.BooleanField("actif", default=True)

    class Meta:
        verbose_name = "commercial"
        verbose_name_plural = "commerciaux"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class CommissionRule(TimeStampedModel):
    """Tier rates for one product category.

    The ``*_from`` / ``*_to`` bounds are kept for reference only: tier
    amounts are derived from the target (70% / 30% / overage), never from
    these fields.
    """

    category = models.CharField("categorie", max_length=100, unique=True)
    tier1_rate = models.DecimalField(
        "taux palier 1", max_digits=6, decimal_places=4,
        default=Decimal("0"), validators=_rate_validators,
    )
    tier2_rate = models.DecimalField(
        "taux palier 2", max_digits=6, decimal_places=4,
        default=Decimal("0"), validators=_rate_validators,
    )
    tier3_rate = models.DecimalField(
        "taux palier 3", max_digits=6, decimal_places=4,
        default=Decimal("0"), validators=_rate_validators,
    )
    tier1_from = models.DecimalField(
        "palier 1 de (%)", max_digits=5, decimal_places=2,
        default=Decimal("0"), validators=_bound_validators,
    )
    tier1_to = models.DecimalField(
        "palier 1 a (%)", max_digits=5, decimal_places=2,
        default=Decimal("70"), validators=_bound_validators,
    )
    tier2_from = models.DecimalField(
        "palier 2 de (%)", max_digits=5, decimal_places=2,
        default=Decimal("71"), validators=_bound_validators,
    )
    tier2_to = models.DecimalField(
        "palier 2 a (%)", max_digits=5, decimal_places=2,
        default=Decimal("100"), validators=_bound_validators,
    )
    tier3_from = models.DecimalField(
        "palier 3 a partir de (%)", max_digits=5, decimal_places=2,
        default=Decimal("100"), validators=_bound_validators,
    )

    class Meta:
        verbose_name = "regle de commission"
        verbose_name_plural = "regles de commission"
        ordering = ["category"]

    def __str__(self) -> str:
        return self.category

    def clean(self) -> None:
        if self.tier1_from > self.tier1_to:
            raise ValidationError("Palier 1 : la borne de debut depasse la borne de fin.")
        if self.tier2_from > self.tier2_to:
            raise ValidationError("Palier 2 : la borne de debut depasse la borne de fin.")


class SalesRecord(TimeStampedModel):
    """Monthly sales and target of one representative for one company and category."""

    representative = models.ForeignKey(
        Representative,
        on_delete=models.CASCADE,
        related_name="sales_records",
        verbose_name="commercial",
    )
    company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name="sales_records",
        verbose_name="societe",
    )
    category = models.CharField("categorie", max_length=100, db_index=True)
    sales = models.DecimalField(
        "ventes", max_digits=14, decimal_places=2,
        default=Decimal("0"), validators=[_non_negative],
    )
    target = models.DecimalField(
        "objectif", max_digits=14, decimal_places=2,
        default=Decimal("0"), validators=[_non_negative],
    )
    year = models.PositiveSmallIntegerField("annee", validators=_year_validators)
    month = models.PositiveSmallIntegerField("mois", validators=_month_validators)

    class Meta:
        verbose_name = "vente mensuelle"
        verbose_name_plural = "ventes mensuelles"
        ordering = ["-year", "-month", "representative__name", "category"]
        constraints = [
            models.UniqueConstraint(
                fields=["representative", "category", "year", "month"],
                name="uniq_sales_record_rep_category_period",
            ),
        ]
        indexes = [
            models.Index(fields=["year", "month"], name="idx_sales_record_period"),
        ]

    def __str__(self) -> str:
        return f"{self.representative} - {self.category} ({self.year}-{self.month:02d})"


class CollectionRecord(TimeStampedModel):
    """Amount collected by a representative for a month, all categories included."""

    representative = models.ForeignKey(
        Representative,
        on_delete=models.CASCADE,
        related_name="collection_records",
        verbose_name="commercial",
    )
    company = models.ForeignKey(
        Company,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="collection_records",
        verbose_name="societe",
    )
    amount = models.DecimalField(
        "montant encaisse", max_digits=14, decimal_places=2,
        default=Decimal("0"), validators=[_non_negative],
    )
    year = models.PositiveSmallIntegerField("annee", validators=_year_validators)
    month = models.PositiveSmallIntegerField("mois", validators=_month_validators)

    class Meta:
        verbose_name = "encaissement"
        verbose_name_plural = "encaissements"
        ordering = ["-year", "-month", "representative__name"]
        constraints = [
            models.UniqueConstraint(
                fields=["representative", "year", "month"],
                name="uniq_collection_record_rep_period",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.representative} - {self.amount} ({self.year}-{self.month:02d})"


class DiscountItem(TimeStampedModel):
    """Named discount applied to an audited month, as a percentage of its sales."""

    name = models.CharField("nom", max_length=150, unique=True)
    percentage = models.DecimalField(
        "pourcentage", max_digits=5, decimal_places=2,
        null=True, blank=True, validators=_bound_validators,
    )
    notes = models.TextField("notes", blank=True, default="")

    class Meta:
        verbose_name = "remise"
        verbose_name_plural = "remises"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class FinancialAudit(TimeStampedModel):
    """Monthly deductions of one representative for one company.

    ``total_sales`` is the gross amount the deductions apply to; it defaults
    to the sum of the matching sales rows when the audit is entered.
    """

    representative = models.ForeignKey(
        Representative,
        on_delete=models.CASCADE,
        related_name="financial_audits",
        verbose_name="commercial",
    )
    company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name="financial_audits",
        verbose_name="societe",
    )
    year = models.PositiveSmallIntegerField("annee", validators=_year_validators)
    month = models.PositiveSmallIntegerField("mois", validators=_month_validators)
    total_sales = models.DecimalField(
        "ventes totales", max_digits=14, decimal_places=2,
        default=Decimal("0"), validators=[_non_negative],
    )
    deduction_operating = models.DecimalField(
        "frais d'exploitation", max_digits=14, decimal_places=2,
        default=Decimal("0"), validators=[_non_negative],
    )
    deduction_transportation = models.DecimalField(
        "frais de transport", max_digits=14, decimal_places=2,
        default=Decimal("0"), validators=[_non_negative],
    )
    deduction_general = models.DecimalField(
        "frais generaux", max_digits=14, decimal_places=2,
        default=Decimal("0"), validators=[_non_negative],
    )
    deduction_custom_label = models.CharField(
        "libelle deduction libre", max_length=150, blank=True, default="",
    )
    deduction_custom_amount = models.DecimalField(
        "deduction libre", max_digits=14, decimal_places=2,
        default=Decimal("0"), validators=[_non_negative],
    )
    discount_item = models.ForeignKey(
        DiscountItem,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="financial_audits",
        verbose_name="remise",
    )

    class Meta:
        verbose_name = "audit financier"
        verbose_name_plural = "audits financiers"
        ordering = ["-year", "-month", "representative__name", "company__name"]
        constraints = [
            models.UniqueConstraint(
                fields=["representative", "company", "year", "month"],
                name="uniq_financial_audit_rep_company_period",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.representative} / {self.company} ({self.year}-{self.month:02d})"
