"""
Service functions for the commissions app.

Data entry for sales, targets, collections and financial audits: amount
parsing, upserts on the natural keys, bulk import from Excel and export to
Excel using openpyxl.
"""
import logging
from decimal import Decimal, InvalidOperation
from io import BytesIO

import openpyxl
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Sum
from django.http import HttpResponse
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from commissions.aggregation import (
    AuditEntry,
    CollectionEntry,
    SalesEntry,
    TierRates,
    commission_for,
    index_rules,
)
from commissions.engine import achievement_percentage, quantize_money, to_decimal
from commissions.models import (
    YEAR_MAX,
    YEAR_MIN,
    CollectionRecord,
    CommissionRule,
    Company,
    FinancialAudit,
    Representative,
    SalesRecord,
)

logger = logging.getLogger("tracker")


class InvalidAmount(ValueError):
    """Raised when a user-entered amount cannot be read as a number."""


# Arabic-Indic and extended (Persian) digits.
_DIGITS = str.maketrans(
    "\u0660\u0661\u0662\u0663\u0664\u0665\u0666\u0667\u0668\u0669"
    "\u06f0\u06f1\u06f2\u06f3\u06f4\u06f5\u06f6\u06f7\u06f8\u06f9",
    "01234567890123456789",
)
# Grouping characters are dropped; the Arabic decimal separator becomes ".".
_SEPARATORS = str.maketrans({
    ",": None,
    " ": None,
    "\u00a0": None,
    "\u202f": None,
    "\u066c": None,
    "\u066b": ".",
})


def parse_amount(value) -> Decimal:
    """Read a user-entered amount ("1 250", "١٢٥٠", 1250.0...) as a Decimal."""
    if isinstance(value, bool):
        raise InvalidAmount(f"Montant invalide: {value!r}")
    if isinstance(value, (int, float, Decimal)):
        amount = to_decimal(value)
    else:
        text = "" if value is None else str(value)
        text = text.translate(_DIGITS).translate(_SEPARATORS).strip()
        if not text:
            raise InvalidAmount("Montant vide.")
        try:
            amount = Decimal(text)
        except InvalidOperation as exc:
            raise InvalidAmount(f"Montant invalide: {value!r}") from exc
    if not amount.is_finite():
        raise InvalidAmount(f"Montant invalide: {value!r}")
    return amount


def _parse_non_negative(value, label: str) -> Decimal:
    try:
        amount = parse_amount(value)
    except InvalidAmount:
        raise InvalidAmount(f"{label} doit etre un nombre.") from None
    if amount < 0:
        raise InvalidAmount(f"{label} doit etre positif ou nul.")
    return amount


def _parse_int(value, label: str, low: int, high: int) -> int:
    try:
        number = parse_amount(value)
    except InvalidAmount:
        raise ValueError(f"{label} invalide.") from None
    if number != number.to_integral_value() or not low <= number <= high:
        raise ValueError(f"{label} doit etre compris entre {low} et {high}.")
    return int(number)


# =========================================================================
# UPSERTS
# =========================================================================

def upsert_sales_record(*, representative, company, category, year, month, sales, target):
    """Create or update the sales row keyed on (representative, category, year, month).

    The company is part of the update, not of the key.
    """
    record, created = SalesRecord.objects.update_or_create(
        representative=representative,
        category=category,
        year=year,
        month=month,
        defaults={"company": company, "sales": sales, "target": target},
    )
    logger.debug(
        "Vente %s: %s %s %04d-%02d",
        "creee" if created else "mise a jour", representative, category, year, month,
    )
    return record, created


def upsert_collection_record(*, representative, year, month, amount, company=None):
    """Create or update the single collection of a representative for a month."""
    defaults = {"amount": amount}
    if company is not None:
        defaults["company"] = company
    record, created = CollectionRecord.objects.update_or_create(
        representative=representative,
        year=year,
        month=month,
        defaults=defaults,
    )
    return record, created


def gross_sales_for(*, representative, company, year, month) -> Decimal:
    """Sum of the sales rows of a representative for a company and month."""
    total = SalesRecord.objects.filter(
        representative=representative, company=company, year=year, month=month,
    ).aggregate(total=Sum("sales"))["total"]
    return total if total is not None else Decimal("0")


def upsert_financial_audit(*, representative, company, year, month, total_sales=None, **fields):
    """Create or update the audit keyed on (representative, company, year, month).

    Without ``total_sales`` the gross amount is taken from the sales rows.
    """
    if total_sales is None:
        total_sales = gross_sales_for(
            representative=representative, company=company, year=year, month=month,
        )
    audit, created = FinancialAudit.objects.update_or_create(
        representative=representative,
        company=company,
        year=year,
        month=month,
        defaults={"total_sales": total_sales, **fields},
    )
    logger.info(
        "Audit financier %s: %s / %s %04d-%02d",
        "cree" if created else "mis a jour", representative, company, year, month,
    )
    return audit, created


def audit_candidates(*, year, month) -> list[dict]:
    """Gross sales per representative and company for a month, flagged when audited."""
    audited = set(
        FinancialAudit.objects.filter(year=year, month=month)
        .values_list("representative_id", "company_id")
    )
    rows = (
        SalesRecord.objects.filter(year=year, month=month)
        .values("representative_id", "representative__name", "company_id", "company__name")
        .annotate(total_sales=Sum("sales"))
        .order_by("representative__name", "company__name")
    )
    return [
        {
            "representative_id": str(row["representative_id"]),
            "representative_name": row["representative__name"],
            "company_id": str(row["company_id"]),
            "company_name": row["company__name"],
            "year": year,
            "month": month,
            "total_sales": row["total_sales"],
            "has_financial_audit": (row["representative_id"], row["company_id"]) in audited,
        }
        for row in rows
    ]


# =========================================================================
# SNAPSHOTS
# =========================================================================

def sales_entry_from_record(record: SalesRecord) -> SalesEntry:
    """Expects ``representative`` and ``company`` to be select_related."""
    return SalesEntry(
        representative_id=str(record.representative_id),
        category=record.category,
        sales=record.sales,
        target=record.target,
        year=record.year,
        month=record.month,
        representative_name=record.representative.name,
        company_id=str(record.company_id),
        company_name=record.company.name,
        record_id=str(record.pk),
    )


def collection_entry_from_record(record: CollectionRecord) -> CollectionEntry:
    return CollectionEntry(
        representative_id=str(record.representative_id),
        amount=record.amount,
        year=record.year,
        month=record.month,
        representative_name=record.representative.name,
        company_id=str(record.company_id) if record.company_id else None,
        record_id=str(record.pk),
    )


def audit_entry_from_record(audit: FinancialAudit) -> AuditEntry:
    """Expects ``discount_item`` to be select_related."""
    discount = audit.discount_item
    return AuditEntry(
        representative_id=str(audit.representative_id),
        company_id=str(audit.company_id),
        year=audit.year,
        month=audit.month,
        total_sales=audit.total_sales,
        deduction_operating=audit.deduction_operating,
        deduction_transportation=audit.deduction_transportation,
        deduction_general=audit.deduction_general,
        deduction_custom=audit.deduction_custom_amount,
        discount_percentage=discount.percentage if discount is not None else None,
        record_id=str(audit.pk),
    )


def tier_rates_from_rule(rule: CommissionRule) -> TierRates:
    return TierRates(
        category=rule.category,
        tier1_rate=rule.tier1_rate,
        tier2_rate=rule.tier2_rate,
        tier3_rate=rule.tier3_rate,
    )


def load_tier_rates() -> list[TierRates]:
    return [tier_rates_from_rule(rule) for rule in CommissionRule.objects.all()]


# =========================================================================
# IMPORT
# =========================================================================

IMPORT_COLUMNS = [
    "representant",  # A - representative name
    "societe",       # B - company name
    "categorie",     # C - category
    "annee",         # D - year
    "mois",          # E - month (1-12)
    "ventes",        # F - sales
    "objectif",      # G - target
    "encaissement",  # H - collection (optional)
]


def _by_name(queryset) -> dict:
    return {obj.name.strip().lower(): obj for obj in queryset}


def _parse_import_row(row, representatives, companies) -> dict:
    padded = list(row) + [None] * (len(IMPORT_COLUMNS) - len(row))
    (
        rep_name,
        company_name,
        category,
        year,
        month,
        sales,
        target,
        collection,
    ) = padded[:len(IMPORT_COLUMNS)]

    representative = representatives.get(str(rep_name or "").strip().lower())
    if representative is None:
        raise ValueError(f"Commercial introuvable: {rep_name!r}.")
    company = companies.get(str(company_name or "").strip().lower())
    if company is None:
        raise ValueError(f"Societe introuvable: {company_name!r}.")
    category = str(category or "").strip()
    if not category:
        raise ValueError("La categorie est obligatoire.")

    parsed = {
        "representative": representative,
        "company": company,
        "category": category,
        "year": _parse_int(year, "L'annee", YEAR_MIN, YEAR_MAX),
        "month": _parse_int(month, "Le mois", 1, 12),
        "sales": _parse_non_negative(sales, "Les ventes"),
        "target": _parse_non_negative(target, "L'objectif"),
        "collection": None,
    }
    if collection not in (None, ""):
        parsed["collection"] = _parse_non_negative(collection, "L'encaissement")
    return parsed


def import_sales_workbook(file) -> dict:
    """
    Import monthly sales, targets and collections from an Excel (.xlsx) file.

    Expected columns (first row is header)::

        representant | societe | categorie | annee | mois | ventes | objectif | encaissement

    Representatives and companies must already exist (matched on name,
    case-insensitive). Rows are upserted on (representative, category, year,
    month). A collection repeated on several category rows of the same month
    is taken once, from the first row that carries it.

    Returns a dict with counts::

        {"created": int, "updated": int, "collections": int,
         "errors": int, "error_details": list[dict]}
    """
    try:
        wb = openpyxl.load_workbook(file, read_only=True, data_only=True)
    except Exception as exc:
        logger.warning("Import ventes - fichier illisible: %s", exc)
        raise ValidationError("Fichier invalide : un classeur Excel (.xlsx) est attendu.") from exc
    ws = wb.active

    representatives = _by_name(Representative.objects.all())
    companies = _by_name(Company.objects.all())

    created = 0
    updated = 0
    error_details: list[dict] = []
    collections: dict[tuple, dict] = {}

    try:
        with transaction.atomic():
            rows = ws.iter_rows(min_row=2, values_only=True)  # skip header
            for row_idx, row in enumerate(rows, start=2):
                if not any(cell not in (None, "") for cell in row):
                    continue
                try:
                    parsed = _parse_import_row(row, representatives, companies)
                except ValueError as exc:
                    error_details.append({"row": row_idx, "error": str(exc)})
                    logger.warning("Import ventes - Ligne %d: %s", row_idx, exc)
                    continue

                _, was_created = upsert_sales_record(
                    representative=parsed["representative"],
                    company=parsed["company"],
                    category=parsed["category"],
                    year=parsed["year"],
                    month=parsed["month"],
                    sales=parsed["sales"],
                    target=parsed["target"],
                )
                if was_created:
                    created += 1
                else:
                    updated += 1

                if parsed["collection"] is not None:
                    key = (parsed["representative"].pk, parsed["year"], parsed["month"])
                    collections.setdefault(key, parsed)

            for parsed in collections.values():
                upsert_collection_record(
                    representative=parsed["representative"],
                    company=parsed["company"],
                    year=parsed["year"],
                    month=parsed["month"],
                    amount=parsed["collection"],
                )
    finally:
        # Read-only workbooks keep the file open until closed.
        wb.close()

    logger.info(
        "Import ventes termine: %d cree(s), %d mis a jour, %d encaissement(s), %d erreur(s).",
        created, updated, len(collections), len(error_details),
    )

    return {
        "created": created,
        "updated": updated,
        "collections": len(collections),
        "errors": len(error_details),
        "error_details": error_details,
    }


# =========================================================================
# EXPORT
# =========================================================================

EXPORT_HEADERS = [
    "Commercial",
    "Societe",
    "Categorie",
    "Annee",
    "Mois",
    "Ventes",
    "Objectif",
    "Realisation %",
    "Commission",
]


def build_sales_workbook(queryset, rules=None) -> openpyxl.Workbook:
    """Write sales rows, with achievement and commission, to a new workbook."""
    rules_by_category = index_rules(load_tier_rates() if rules is None else rules)

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Ventes"

    header_font = Font(bold=True, color="FFFFFF", size=11)
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    for col_num, header in enumerate(EXPORT_HEADERS, 1):
        cell = ws.cell(row=1, column=col_num, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center", vertical="center")

    for row_num, record in enumerate(queryset.iterator(), start=2):
        entry = sales_entry_from_record(record)
        breakdown = commission_for(entry, rules_by_category)
        ws.cell(row=row_num, column=1, value=entry.representative_name)
        ws.cell(row=row_num, column=2, value=entry.company_name)
        ws.cell(row=row_num, column=3, value=entry.category)
        ws.cell(row=row_num, column=4, value=entry.year)
        ws.cell(row=row_num, column=5, value=entry.month)
        ws.cell(row=row_num, column=6, value=float(entry.sales))
        ws.cell(row=row_num, column=7, value=float(entry.target))
        ws.cell(
            row=row_num, column=8,
            value=float(quantize_money(achievement_percentage(entry.sales, entry.target))),
        )
        ws.cell(row=row_num, column=9, value=float(breakdown.total_commission))

    for col_num, header in enumerate(EXPORT_HEADERS, 1):
        ws.column_dimensions[get_column_letter(col_num)].width = max(len(header) + 4, 14)

    return wb


def export_sales_workbook(queryset, rules=None) -> HttpResponse:
    """Export sales rows as an ``.xlsx`` download."""
    buffer = BytesIO()
    build_sales_workbook(queryset, rules).save(buffer)

    response = HttpResponse(
        buffer.getvalue(),
        content_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
    response["Content-Disposition"] = 'attachment; filename="ventes.xlsx"'
    return response
