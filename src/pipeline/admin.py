"""Admin registrations for the pipeline module."""
from django.contrib import admin, messages

from pipeline.models import (
    Opportunity,
    OpportunityActivity,
    ProbabilityCoefficient,
    RevenueDistribution,
)
from pipeline.services import deactivate_coefficient, upsert_coefficient


@admin.register(ProbabilityCoefficient)
class ProbabilityCoefficientAdmin(admin.ModelAdmin):
    list_display = ("factor_type", "factor_value", "coefficient", "is_active", "updated_at")
    list_filter = ("factor_type", "is_active")
    search_fields = ("factor_value",)
    readonly_fields = ("is_active", "created_at", "updated_at")
    actions = ("deactivate_selected",)

    def has_delete_permission(self, request, obj=None):
        return False

    def get_readonly_fields(self, request, obj=None):
        # The factor pair identifies the row; editing it would leave the old pair active.
        if obj is not None:
            return ("factor_type", "factor_value") + self.readonly_fields
        return self.readonly_fields

    def save_model(self, request, obj, form, change):
        # Route through the service so the coefficient cache is cleared.
        saved = upsert_coefficient(obj.factor_type, obj.factor_value, obj.coefficient)
        obj.pk = saved.pk

    @admin.action(description="Desactiver les coefficients selectionnes")
    def deactivate_selected(self, request, queryset):
        for coefficient in queryset:
            deactivate_coefficient(coefficient)
        self.message_user(request, "Coefficients desactives.", messages.SUCCESS)


class RevenueDistributionInline(admin.TabularInline):
    model = RevenueDistribution
    extra = 0
    can_delete = False
    fields = ("year", "month", "sales_amount", "gross_margin_amount", "is_forecast")
    readonly_fields = fields


class OpportunityActivityInline(admin.TabularInline):
    model = OpportunityActivity
    extra = 0
    can_delete = False
    fields = ("created_at", "activity_type", "user", "description")
    readonly_fields = fields


@admin.register(Opportunity)
class OpportunityAdmin(admin.ModelAdmin):
    list_display = (
        "project_name",
        "owner",
        "team",
        "status",
        "stage",
        "original_amount",
        "probability_score",
        "weighted_amount",
        "closing_date",
    )
    list_filter = ("status", "stage", "team", "service_type", "sector_type")
    search_fields = ("project_name", "owner__email", "client__name")
    list_select_related = ("owner", "team", "client")
    # Derived fields only change through the lifecycle services.
    readonly_fields = (
        "probability_score",
        "weighted_amount",
        "gross_margin_amount",
        "duration_months",
        "created_by",
        "last_modified_by",
        "created_at",
        "updated_at",
    )
    inlines = (RevenueDistributionInline, OpportunityActivityInline)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(OpportunityActivity)
class OpportunityActivityAdmin(admin.ModelAdmin):
    list_display = ("created_at", "opportunity", "activity_type", "user")
    list_filter = ("activity_type",)
    search_fields = ("opportunity__project_name", "description")
    readonly_fields = ("opportunity", "user", "activity_type", "description", "old_value", "new_value", "created_at")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
