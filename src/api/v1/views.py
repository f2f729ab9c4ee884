"""ViewSets for the sales pipeline API."""
from __future__ import annotations

import logging

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from api.v1.filters import OpportunityFilter
from api.v1.pagination import StandardResultsSetPagination
from api.v1.permissions import (
    CanAccessOpportunity,
    IsAdmin,
    IsManagerOrAdmin,
    opportunity_scope_q,
)
from api.v1.serializers import (
    CoefficientUpsertSerializer,
    ForecastQuerySerializer,
    OpportunityActivityCreateSerializer,
    OpportunityActivitySerializer,
    OpportunityBulkUpdateSerializer,
    OpportunityDetailSerializer,
    OpportunityDuplicateSerializer,
    OpportunitySerializer,
    OpportunityStatusSerializer,
    ProbabilityCoefficientSerializer,
)
from pipeline.models import Opportunity, ProbabilityCoefficient
from pipeline.services import (
    OpportunityValidationError,
    add_activity,
    bulk_update_opportunities,
    change_status,
    create_opportunity,
    deactivate_coefficient,
    duplicate_opportunity,
    forecast_for_opportunities,
    grouped_coefficients,
    revenue_distribution_for,
    update_opportunity,
    upsert_coefficient,
)

logger = logging.getLogger("pipeline")


def _validation_error(exc: OpportunityValidationError) -> ValidationError:
    return ValidationError({"detail": str(exc)})


class OpportunityViewSet(viewsets.ModelViewSet):
    """CRUD + lifecycle actions for opportunities."""

    serializer_class = OpportunitySerializer
    queryset = Opportunity.objects.select_related("owner", "team", "client")
    pagination_class = StandardResultsSetPagination
    permission_classes = [IsAuthenticated, CanAccessOpportunity]
    filterset_class = OpportunityFilter
    search_fields = ["project_name", "update_notes"]
    ordering_fields = [
        "created_at",
        "updated_at",
        "project_name",
        "original_amount",
        "weighted_amount",
        "probability_score",
        "starting_date",
        "closing_date",
    ]

    def get_permissions(self):
        if self.action == "bulk_update":
            return [IsAuthenticated(), IsManagerOrAdmin()]
        return super().get_permissions()

    def get_queryset(self):
        return self.queryset.filter(opportunity_scope_q(self.request.user))

    def get_serializer_class(self):
        if self.action == "retrieve":
            return OpportunityDetailSerializer
        return super().get_serializer_class()

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            opportunity = create_opportunity(serializer.validated_data, actor=request.user)
        except OpportunityValidationError as exc:
            raise _validation_error(exc)
        return Response(self.get_serializer(opportunity).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        try:
            opportunity = update_opportunity(instance, serializer.validated_data, actor=request.user)
        except OpportunityValidationError as exc:
            raise _validation_error(exc)
        return Response(self.get_serializer(opportunity).data)

    def perform_destroy(self, instance):
        logger.info("Opportunity %s deleted by %s", instance.pk, self.request.user)
        super().perform_destroy(instance)

    @action(detail=True, methods=["post"])
    def duplicate(self, request, pk=None):
        opportunity = self.get_object()
        serializer = OpportunityDuplicateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            copy = duplicate_opportunity(
                opportunity,
                new_name=serializer.validated_data["project_name"],
                actor=request.user,
            )
        except OpportunityValidationError as exc:
            raise _validation_error(exc)
        return Response(OpportunitySerializer(copy, context=self.get_serializer_context()).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["put"], url_path="status")
    def update_status(self, request, pk=None):
        opportunity = self.get_object()
        serializer = OpportunityStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            updated = change_status(
                opportunity,
                status=data["status"],
                stage=data.get("stage"),
                notes=data.get("notes"),
                actor=request.user,
            )
        except OpportunityValidationError as exc:
            raise _validation_error(exc)
        return Response(OpportunitySerializer(updated, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["get", "post"])
    def activities(self, request, pk=None):
        opportunity = self.get_object()
        if request.method == "POST":
            serializer = OpportunityActivityCreateSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            try:
                activity = add_activity(
                    opportunity,
                    actor=request.user,
                    activity_type=serializer.validated_data["activity_type"],
                    description=serializer.validated_data["description"],
                )
            except OpportunityValidationError as exc:
                raise _validation_error(exc)
            return Response(OpportunityActivitySerializer(activity).data, status=status.HTTP_201_CREATED)

        queryset = opportunity.activities.select_related("user").order_by("-created_at")
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(OpportunityActivitySerializer(page, many=True).data)
        return Response(OpportunityActivitySerializer(queryset, many=True).data)

    @action(detail=True, methods=["get"], url_path="revenue-distribution")
    def revenue_distribution(self, request, pk=None):
        opportunity = self.get_object()
        return Response({"opportunity_id": str(opportunity.pk), **revenue_distribution_for(opportunity)})

    @action(detail=False, methods=["post"], url_path="bulk-update")
    def bulk_update(self, request):
        serializer = OpportunityBulkUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        ids = data.pop("opportunity_ids")
        try:
            result = bulk_update_opportunities(
                ids,
                data,
                actor=request.user,
                queryset=self.get_queryset(),
            )
        except OpportunityValidationError as exc:
            raise _validation_error(exc)
        return Response(result)

    @action(detail=False, methods=["get"])
    def forecast(self, request):
        query = ForecastQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        ids = self.filter_queryset(self.get_queryset()).values_list("id", flat=True)
        summary = forecast_for_opportunities(
            ids,
            start_year=query.validated_data.get("start_year"),
            end_year=query.validated_data.get("end_year"),
        )
        return Response(summary.as_dict())


class CoefficientViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """Probability coefficient table: read for everyone, write for admins."""

    serializer_class = ProbabilityCoefficientSerializer
    queryset = ProbabilityCoefficient.objects.filter(is_active=True).order_by("factor_type", "factor_value")
    pagination_class = None
    filterset_fields = ["factor_type"]

    def get_permissions(self):
        if self.action in ("create", "deactivate"):
            return [IsAuthenticated(), IsAdmin()]
        return [IsAuthenticated()]

    def list(self, request, *args, **kwargs):
        items = self.get_serializer(self.filter_queryset(self.get_queryset()), many=True).data
        return Response({"items": items, "grouped": grouped_coefficients()})

    def create(self, request, *args, **kwargs):
        serializer = CoefficientUpsertSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            row = upsert_coefficient(data["factor_type"], data["factor_value"], data["coefficient"])
        except OpportunityValidationError as exc:
            raise _validation_error(exc)
        return Response(self.get_serializer(row).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def deactivate(self, request, pk=None):
        row = self.get_object()
        deactivate_coefficient(row)
        return Response(self.get_serializer(row).data)
