"""Query-string filters for the opportunity list."""
import django_filters

from pipeline.models import Opportunity


class OpportunityFilter(django_filters.FilterSet):
    min_amount = django_filters.NumberFilter(field_name="original_amount", lookup_expr="gte")
    max_amount = django_filters.NumberFilter(field_name="original_amount", lookup_expr="lte")
    min_probability = django_filters.NumberFilter(field_name="probability_score", lookup_expr="gte")
    max_probability = django_filters.NumberFilter(field_name="probability_score", lookup_expr="lte")
    start_date_from = django_filters.DateFilter(field_name="starting_date", lookup_expr="gte")
    start_date_to = django_filters.DateFilter(field_name="starting_date", lookup_expr="lte")
    close_date_from = django_filters.DateFilter(field_name="closing_date", lookup_expr="gte")
    close_date_to = django_filters.DateFilter(field_name="closing_date", lookup_expr="lte")

    class Meta:
        model = Opportunity
        fields = ["status", "stage", "owner", "team", "client", "service_type", "sector_type"]
