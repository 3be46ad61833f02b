"""Django admin for the commissions module."""
from django.contrib import admin

from commissions.models import (
    CollectionRecord,
    CommissionRule,
    Company,
    DiscountItem,
    FinancialAudit,
    Representative,
    SalesRecord,
)


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("name", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name",)


@admin.register(Representative)
class RepresentativeAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "phone", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "email")


@admin.register(CommissionRule)
class CommissionRuleAdmin(admin.ModelAdmin):
    list_display = ("category", "tier1_rate", "tier2_rate", "tier3_rate", "updated_at")
    search_fields = ("category",)
    readonly_fields = ("created_at", "updated_at")
    fieldsets = (
        (None, {"fields": ("category",)}),
        ("Taux", {"fields": ("tier1_rate", "tier2_rate", "tier3_rate")}),
        ("Bornes (%)", {
            "fields": ("tier1_from", "tier1_to", "tier2_from", "tier2_to", "tier3_from"),
            "classes": ("collapse",),
        }),
        ("Dates", {"fields": ("created_at", "updated_at")}),
    )


@admin.register(SalesRecord)
class SalesRecordAdmin(admin.ModelAdmin):
    list_display = ("representative", "company", "category", "period", "sales", "target")
    list_filter = ("year", "month", "company", "category")
    search_fields = ("representative__name", "company__name", "category")
    list_select_related = ("representative", "company")
    ordering = ("-year", "-month")

    def period(self, obj):
        return f"{obj.year:04d}-{obj.month:02d}"
    period.short_description = "Periode"


@admin.register(CollectionRecord)
class CollectionRecordAdmin(admin.ModelAdmin):
    list_display = ("representative", "company", "year", "month", "amount")
    list_filter = ("year", "month")
    search_fields = ("representative__name",)
    list_select_related = ("representative", "company")
    ordering = ("-year", "-month")


@admin.register(DiscountItem)
class DiscountItemAdmin(admin.ModelAdmin):
    list_display = ("name", "percentage", "updated_at")
    search_fields = ("name",)


@admin.register(FinancialAudit)
class FinancialAuditAdmin(admin.ModelAdmin):
    list_display = (
        "representative", "company", "year", "month", "total_sales",
        "deduction_operating", "deduction_transportation", "deduction_general",
        "deduction_custom_amount", "discount_item",
    )
    list_filter = ("year", "month", "company")
    search_fields = ("representative__name", "company__name")
    list_select_related = ("representative", "company", "discount_item")
    readonly_fields = ("created_at", "updated_at")
    ordering = ("-year", "-month")
    fieldsets = (
        (None, {"fields": ("representative", "company", "year", "month", "total_sales")}),
        ("Deductions", {"fields": (
            "deduction_operating", "deduction_transportation", "deduction_general",
            "deduction_custom_label", "deduction_custom_amount",
        )}),
        ("Remise", {"fields": ("discount_item",)}),
        ("Dates", {"fields": ("created_at", "updated_at")}),
    )
