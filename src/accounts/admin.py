from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("email", "get_full_name", "role", "can_manage", "is_active", "created_at")
    list_filter = ("role", "is_active")
    search_fields = ("email", "first_name", "last_name")
    ordering = ("last_name", "first_name")
    readonly_fields = ("created_at", "updated_at", "last_login")
    actions = ("grant_admin_role", "revoke_admin_role")

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Identite", {"fields": ("first_name", "last_name", "phone")}),
        ("Acces", {"fields": ("role", "is_active", "is_staff", "is_superuser")}),
        ("Historique", {"fields": ("last_login", "created_at", "updated_at")}),
    )
    add_fieldsets = (
        (None, {
            "classes": ("wide",),
            "fields": ("email", "first_name", "last_name", "role", "password1", "password2"),
        }),
    )

    @admin.display(boolean=True, description="Gestion des commissions")
    def can_manage(self, obj):
        return obj.can_manage_commissions

    @admin.action(description="Donner le role administrateur")
    def grant_admin_role(self, request, queryset):
        queryset.filter(role=User.Role.USER).update(role=User.Role.ADMIN)

    @admin.action(description="Retirer le role administrateur")
    def revoke_admin_role(self, request, queryset):
        queryset.filter(role=User.Role.ADMIN).update(role=User.Role.USER)
