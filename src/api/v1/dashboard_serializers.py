"""Serializers for the pipeline dashboards (not model-bound)."""
from rest_framework import serializers

from api.v1.serializers import OpportunityActivitySerializer


def _amount(**kwargs):
    return serializers.DecimalField(max_digits=17, decimal_places=2, **kwargs)


class DashboardMetricsSerializer(serializers.Serializer):
    total_users = serializers.IntegerField(required=False)
    total_teams = serializers.IntegerField(required=False)
    total_members = serializers.IntegerField(required=False)
    total_opportunities = serializers.IntegerField()
    active_opportunities = serializers.IntegerField()
    won_opportunities = serializers.IntegerField()
    lost_opportunities = serializers.IntegerField()
    pipeline_value = _amount()
    weighted_pipeline_value = _amount()
    won_value = _amount()
    win_rate = serializers.DecimalField(max_digits=5, decimal_places=2)
    average_deal_size = _amount()


class StageBreakdownSerializer(serializers.Serializer):
    stage = serializers.CharField()
    count = serializers.IntegerField()
    total_value = _amount()


class StatusBreakdownSerializer(serializers.Serializer):
    status = serializers.CharField()
    count = serializers.IntegerField()
    total_value = _amount()


class MonthlyForecastSerializer(serializers.Serializer):
    year = serializers.IntegerField()
    month = serializers.IntegerField()
    sales_amount = _amount()
    gross_margin_amount = _amount(source="margin_amount")


class MemberPerformanceSerializer(serializers.Serializer):
    user_id = serializers.UUIDField()
    name = serializers.CharField()
    opportunities_count = serializers.IntegerField()
    pipeline_value = _amount()
    won_count = serializers.IntegerField()
    won_value = _amount()


class TeamPerformanceSerializer(serializers.Serializer):
    team_id = serializers.UUIDField()
    team_name = serializers.CharField()
    members_count = serializers.IntegerField()
    opportunities_count = serializers.IntegerField()
    pipeline_value = _amount()
    won_count = serializers.IntegerField()
    won_value = _amount()


class DashboardUserSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    name = serializers.CharField()
    email = serializers.EmailField()
    team = serializers.CharField(allow_null=True)


class DashboardTeamSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    name = serializers.CharField()
    manager = serializers.CharField(allow_null=True)


class IndividualDashboardSerializer(serializers.Serializer):
    user = DashboardUserSerializer()
    metrics = DashboardMetricsSerializer()
    opportunities_by_stage = StageBreakdownSerializer(many=True)
    opportunities_by_status = StatusBreakdownSerializer(many=True)
    monthly_forecast = MonthlyForecastSerializer(many=True)
    recent_activities = OpportunityActivitySerializer(many=True)


class TeamDashboardSerializer(serializers.Serializer):
    team = DashboardTeamSerializer()
    metrics = DashboardMetricsSerializer()
    members_performance = MemberPerformanceSerializer(many=True)
    opportunities_by_stage = StageBreakdownSerializer(many=True)
    opportunities_by_status = StatusBreakdownSerializer(many=True)
    monthly_forecast = MonthlyForecastSerializer(many=True)


class GlobalDashboardSerializer(serializers.Serializer):
    metrics = DashboardMetricsSerializer()
    teams_performance = TeamPerformanceSerializer(many=True)
    opportunities_by_stage = StageBreakdownSerializer(many=True)
    opportunities_by_status = StatusBreakdownSerializer(many=True)
    monthly_forecast = MonthlyForecastSerializer(many=True)
    recent_activities = OpportunityActivitySerializer(many=True)
