"""DRF Serializers for the commissions module."""
from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from commissions.aggregation import combine_custom_deductions, commission_for, index_rules
from commissions.engine import achievement_percentage, quantize_money
from commissions.models import (
    YEAR_MAX,
    YEAR_MIN,
    CollectionRecord,
    CommissionRule,
    Company,
    DiscountItem,
    FinancialAudit,
    Representative,
    SalesRecord,
)
from commissions.services import (
    InvalidAmount,
    audit_entry_from_record,
    load_tier_rates,
    parse_amount,
    sales_entry_from_record,
    upsert_collection_record,
    upsert_financial_audit,
    upsert_sales_record,
)


class AmountField(serializers.DecimalField):
    """Non-negative money amount; accepts Arabic-Indic digits and thousands separators."""

    def __init__(self, **kwargs):
        kwargs.setdefault("max_digits", 14)
        kwargs.setdefault("decimal_places", 2)
        kwargs.setdefault("min_value", Decimal("0"))
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        try:
            data = parse_amount(data)
        except InvalidAmount:
            self.fail("invalid")
        return super().to_internal_value(data)


class RateField(serializers.DecimalField):
    def __init__(self, **kwargs):
        kwargs.setdefault("max_digits", 6)
        kwargs.setdefault("decimal_places", 4)
        kwargs.setdefault("min_value", Decimal("0"))
        kwargs.setdefault("max_value", Decimal("1"))
        super().__init__(**kwargs)


# ────────────────────────────────────────────────────────────
# Reference data
# ────────────────────────────────────────────────────────────

class CompanySerializer(serializers.ModelSerializer):
    class Meta:
        model = Company
        fields = ["id", "name", "is_active", "created_at"]
        read_only_fields = ["id", "created_at"]


class RepresentativeSerializer(serializers.ModelSerializer):
    class Meta:
        model = Representative
        fields = ["id", "name", "email", "phone", "is_active", "created_at"]
        read_only_fields = ["id", "created_at"]


class CommissionRuleSerializer(serializers.ModelSerializer):
    tier1_rate = RateField()
    tier2_rate = RateField()
    tier3_rate = RateField()

    class Meta:
        model = CommissionRule
        fields = [
            "id", "category",
            "tier1_rate", "tier2_rate", "tier3_rate",
            "tier1_from", "tier1_to", "tier2_from", "tier2_to", "tier3_from",
            "created_at", "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_category(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("La categorie est obligatoire.")
        return value

    def validate(self, attrs):
        def current(name):
            if name in attrs:
                return attrs[name]
            if self.instance is not None:
                return getattr(self.instance, name)
            return CommissionRule._meta.get_field(name).default

        if current("tier1_from") > current("tier1_to"):
            raise serializers.ValidationError(
                {"tier1_to": "La borne de fin doit etre superieure ou egale a la borne de debut."}
            )
        if current("tier2_from") > current("tier2_to"):
            raise serializers.ValidationError(
                {"tier2_to": "La borne de fin doit etre superieure ou egale a la borne de debut."}
            )
        return attrs


# ────────────────────────────────────────────────────────────
# Sales & collections
# ────────────────────────────────────────────────────────────

class _UpsertMixin:
    """Creation goes through an upsert; ``was_created`` tells which happened."""

    natural_key: tuple[str, ...] = ()
    duplicate_message = ""

    was_created = True

    def validate(self, attrs):
        attrs = super().validate(attrs)
        if self.instance is not None:
            key = {
                name: attrs.get(name, getattr(self.instance, name))
                for name in self.natural_key
            }
            model = self.Meta.model
            if model.objects.filter(**key).exclude(pk=self.instance.pk).exists():
                raise serializers.ValidationError(self.duplicate_message)
        return attrs


class SalesRecordSerializer(_UpsertMixin, serializers.ModelSerializer):
    representative_name = serializers.CharField(source="representative.name", read_only=True)
    company_name = serializers.CharField(source="company.name", read_only=True)
    sales = AmountField()
    target = AmountField()
    achievement_percentage = serializers.SerializerMethodField()
    commission = serializers.SerializerMethodField()

    natural_key = ("representative", "category", "year", "month")
    duplicate_message = "Une vente existe deja pour ce commercial, cette categorie et cette periode."

    class Meta:
        model = SalesRecord
        fields = [
            "id", "representative", "representative_name",
            "company", "company_name", "category",
            "sales", "target", "year", "month",
            "achievement_percentage", "commission",
            "created_at", "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]
        # Duplicates on the natural key are upserted, not rejected.
        validators = []

    def validate_category(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("La categorie est obligatoire.")
        return value

    def _rules(self):
        rules = self.context.get("rules")
        if rules is None:
            rules = self.context["rules"] = index_rules(load_tier_rates())
        return rules

    def get_achievement_percentage(self, obj):
        return quantize_money(achievement_percentage(obj.sales, obj.target))

    def get_commission(self, obj):
        return commission_for(sales_entry_from_record(obj), self._rules()).as_dict()

    def create(self, validated_data):
        record, self.was_created = upsert_sales_record(**validated_data)
        return record


class CollectionRecordSerializer(_UpsertMixin, serializers.ModelSerializer):
    representative_name = serializers.CharField(source="representative.name", read_only=True)
    amount = AmountField()

    natural_key = ("representative", "year", "month")
    duplicate_message = "Un encaissement existe deja pour ce commercial et cette periode."

    class Meta:
        model = CollectionRecord
        fields = [
            "id", "representative", "representative_name", "company",
            "amount", "year", "month", "created_at", "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]
        validators = []

    def create(self, validated_data):
        record, self.was_created = upsert_collection_record(**validated_data)
        return record


# ────────────────────────────────────────────────────────────
# Commission preview
# ────────────────────────────────────────────────────────────

class CommissionPreviewSerializer(serializers.Serializer):
    """Either a ``category`` (its rule is looked up) or the three rates."""

    sales = AmountField()
    target = AmountField()
    category = serializers.CharField(required=False, allow_blank=False)
    tier1_rate = RateField(required=False)
    tier2_rate = RateField(required=False)
    tier3_rate = RateField(required=False)

    def validate(self, attrs):
        rates = [attrs.get(f"tier{i}_rate") for i in (1, 2, 3)]
        if "category" not in attrs and any(rate is None for rate in rates):
            raise serializers.ValidationError(
                "Indiquez une categorie ou les trois taux de commission."
            )
        return attrs


# ────────────────────────────────────────────────────────────
# Financial audits
# ────────────────────────────────────────────────────────────

class DiscountItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = DiscountItem
        fields = ["id", "name", "percentage", "notes", "created_at"]
        read_only_fields = ["id", "created_at"]

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Le nom est obligatoire.")
        return value


class CustomDeductionSerializer(serializers.Serializer):
    label = serializers.CharField(max_length=150)
    amount = AmountField()


class FinancialAuditSerializer(_UpsertMixin, serializers.ModelSerializer):
    """Audit with its computed net total.

    ``custom_deductions`` replaces the free-form deduction: one item keeps
    its label, several are summed under a common label.
    """

    representative_name = serializers.CharField(source="representative.name", read_only=True)
    company_name = serializers.CharField(source="company.name", read_only=True)
    discount_item_name = serializers.CharField(
        source="discount_item.name", read_only=True, allow_null=True,
    )
    total_sales = AmountField(required=False)
    deduction_operating = AmountField(required=False)
    deduction_transportation = AmountField(required=False)
    deduction_general = AmountField(required=False)
    deduction_custom_amount = AmountField(required=False)
    custom_deductions = CustomDeductionSerializer(many=True, write_only=True, required=False)
    total_deductions = serializers.SerializerMethodField()
    net_total_sales = serializers.SerializerMethodField()
    discount_value = serializers.SerializerMethodField()

    natural_key = ("representative", "company", "year", "month")
    duplicate_message = "Un audit existe deja pour ce commercial, cette societe et cette periode."

    class Meta:
        model = FinancialAudit
        fields = [
            "id", "representative", "representative_name", "company", "company_name",
            "year", "month", "total_sales",
            "deduction_operating", "deduction_transportation", "deduction_general",
            "deduction_custom_label", "deduction_custom_amount", "custom_deductions",
            "total_deductions", "net_total_sales",
            "discount_item", "discount_item_name", "discount_value",
            "created_at", "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]
        validators = []

    def validate(self, attrs):
        custom = attrs.pop("custom_deductions", None)
        if custom is not None:
            label, amount = combine_custom_deductions(
                (item["label"], item["amount"]) for item in custom
            )
            attrs["deduction_custom_label"] = label
            attrs["deduction_custom_amount"] = amount
        return super().validate(attrs)

    def get_total_deductions(self, obj):
        return quantize_money(audit_entry_from_record(obj).total_deductions)

    def get_net_total_sales(self, obj):
        return quantize_money(audit_entry_from_record(obj).net_total_sales)

    def get_discount_value(self, obj):
        return audit_entry_from_record(obj).discount_value

    def create(self, validated_data):
        audit, self.was_created = upsert_financial_audit(**validated_data)
        return audit


class AuditPeriodSerializer(serializers.Serializer):
    year = serializers.IntegerField(min_value=YEAR_MIN, max_value=YEAR_MAX)
    month = serializers.IntegerField(min_value=1, max_value=12)
