"""Admin configuration for the clients app."""
from django.contrib import admin

from .models import ClientCompany


@admin.register(ClientCompany)
class ClientCompanyAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "industry",
        "relationship_tier",
        "contact_person",
        "is_active",
        "created_at",
    )
    list_filter = ("is_active", "relationship_tier")
    search_fields = ("name", "industry", "contact_person", "email")
    list_editable = ("is_active",)
    readonly_fields = ("id", "created_at", "updated_at")
    fieldsets = (
        (None, {
            "fields": ("name", "industry", "relationship_tier"),
        }),
        ("Contact", {
            "fields": ("contact_person", "email", "phone", "address"),
        }),
        ("Suivi", {
            "fields": ("notes", "is_active", "created_by", "id", "created_at", "updated_at"),
        }),
    )
