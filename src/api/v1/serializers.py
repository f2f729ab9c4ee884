"""Serializers for the sales pipeline API."""
from __future__ import annotations

from rest_framework import serializers

from accounts.models import Team, User
from api.v1.permissions import is_manager_or_admin
from pipeline.models import (
    FactorType,
    Opportunity,
    OpportunityActivity,
    ProbabilityCoefficient,
)
from pipeline.scoring import ProbabilityFactors, get_scoring_engine
from pipeline.services import OPPORTUNITY_TRACKED_FIELDS


class OpportunitySerializer(serializers.ModelSerializer):
    owner_name = serializers.CharField(source="owner.get_full_name", read_only=True)
    team_name = serializers.CharField(source="team.name", read_only=True, default=None)
    client_name = serializers.CharField(source="client.name", read_only=True, default=None)

    class Meta:
        model = Opportunity
        fields = [
            "id",
            *OPPORTUNITY_TRACKED_FIELDS,
            "owner_name",
            "team_name",
            "client_name",
            "probability_score",
            "weighted_amount",
            "gross_margin_amount",
            "duration_months",
            "created_by",
            "last_modified_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "probability_score",
            "weighted_amount",
            "gross_margin_amount",
            "duration_months",
            "created_by",
            "last_modified_by",
            "created_at",
            "updated_at",
        ]
        extra_kwargs = {
            "owner": {"required": False},
            "stage": {"required": False},
            "status": {"required": False},
        }

    def validate_owner(self, owner):
        request = self.context.get("request")
        if request and owner and owner != request.user and not is_manager_or_admin(request.user):
            raise serializers.ValidationError("Vous ne pouvez pas attribuer une opportunite a un autre commercial.")
        return owner

    def validate_team(self, team):
        request = self.context.get("request")
        if not request or team is None or is_manager_or_admin(request.user):
            return team
        allowed = {request.user.team_id}
        if self.instance is not None:
            allowed.add(self.instance.team_id)
        if team.pk not in allowed:
            raise serializers.ValidationError("Vous ne pouvez pas deplacer une opportunite vers une autre equipe.")
        return team


class OpportunityDetailSerializer(OpportunitySerializer):
    probability_breakdown = serializers.SerializerMethodField()

    class Meta(OpportunitySerializer.Meta):
        fields = OpportunitySerializer.Meta.fields + ["probability_breakdown"]

    def get_probability_breakdown(self, obj):
        engine = self.context.get("scoring_engine") or get_scoring_engine()
        breakdown = engine.score_with_breakdown(ProbabilityFactors.from_opportunity(obj)).as_dict()
        # A manual override replaces the computed score on the opportunity.
        override = obj.win_probability_override
        breakdown["override"] = None if override is None else str(override)
        return breakdown


class OpportunityStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Opportunity.Status.choices)
    stage = serializers.ChoiceField(choices=Opportunity.Stage.choices, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class OpportunityDuplicateSerializer(serializers.Serializer):
    project_name = serializers.CharField(max_length=255)


class OpportunityBulkUpdateSerializer(serializers.Serializer):
    opportunity_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    stage = serializers.ChoiceField(choices=Opportunity.Stage.choices, required=False)
    status = serializers.ChoiceField(choices=Opportunity.Status.choices, required=False)
    owner_id = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(is_active=True),
        source="owner",
        required=False,
    )
    team_id = serializers.PrimaryKeyRelatedField(
        queryset=Team.objects.all(),
        source="team",
        required=False,
    )

    def validate(self, attrs):
        changes = {key: value for key, value in attrs.items() if key != "opportunity_ids"}
        if not changes:
            raise serializers.ValidationError("Aucune modification fournie.")
        return attrs


class OpportunityActivitySerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source="user.get_full_name", read_only=True, default=None)

    class Meta:
        model = OpportunityActivity
        fields = [
            "id",
            "opportunity",
            "user",
            "user_name",
            "activity_type",
            "description",
            "old_value",
            "new_value",
            "created_at",
        ]
        read_only_fields = fields


class OpportunityActivityCreateSerializer(serializers.Serializer):
    activity_type = serializers.ChoiceField(
        choices=[(value, OpportunityActivity.Type(value).label) for value in OpportunityActivity.MANUAL_TYPES],
    )
    description = serializers.CharField()


class ProbabilityCoefficientSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProbabilityCoefficient
        fields = ["id", "factor_type", "factor_value", "coefficient", "is_active", "created_at", "updated_at"]
        read_only_fields = ["id", "is_active", "created_at", "updated_at"]


class CoefficientUpsertSerializer(serializers.Serializer):
    factor_type = serializers.ChoiceField(choices=FactorType.choices)
    factor_value = serializers.CharField(max_length=120)
    coefficient = serializers.DecimalField(max_digits=5, decimal_places=4, min_value=0)


class ForecastQuerySerializer(serializers.Serializer):
    start_year = serializers.IntegerField(required=False, min_value=1900, max_value=9999)
    end_year = serializers.IntegerField(required=False, min_value=1900, max_value=9999)

    def validate(self, attrs):
        start, end = attrs.get("start_year"), attrs.get("end_year")
        if start is not None and end is not None and end < start:
            raise serializers.ValidationError({"end_year": "L'annee de fin doit etre posterieure a l'annee de debut."})
        return attrs
