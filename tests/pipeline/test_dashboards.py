from datetime import date
from decimal import Decimal

import pytest

from pipeline.models import Opportunity
from pipeline.services import (
    change_status,
    create_opportunity,
    global_dashboard,
    individual_dashboard,
    team_dashboard,
)


@pytest.fixture
def pipeline(coefficients, sales_user, manager_user, other_sales_user, opportunity_data):
    """One active and one won deal in the north team, one lost deal in the south team."""
    active = create_opportunity(dict(opportunity_data), actor=sales_user)
    won = create_opportunity(
        dict(opportunity_data, project_name="Fitout siege", original_amount=Decimal("200000.00")),
        actor=sales_user,
    )
    change_status(won, status=Opportunity.Status.WON, actor=sales_user)
    lost = create_opportunity(
        dict(opportunity_data, project_name="Entrepot Kribi", original_amount=Decimal("50000.00")),
        actor=other_sales_user,
    )
    change_status(lost, status=Opportunity.Status.LOST, actor=other_sales_user)
    return {"active": active, "won": won, "lost": lost}


@pytest.mark.django_db
class TestIndividualDashboard:
    def test_metrics_split_active_and_won_deals(self, pipeline, sales_user):
        metrics = individual_dashboard(sales_user)["metrics"]

        assert metrics["total_opportunities"] == 2
        assert metrics["active_opportunities"] == 1
        assert metrics["won_opportunities"] == 1
        assert metrics["lost_opportunities"] == 0
        assert metrics["pipeline_value"] == Decimal("100000.00")
        assert metrics["weighted_pipeline_value"] == Decimal("47250.00")
        assert metrics["won_value"] == Decimal("200000.00")
        assert metrics["win_rate"] == Decimal("100.00")
        assert metrics["average_deal_size"] == Decimal("200000.00")

    def test_breakdowns_and_forecast(self, pipeline, sales_user):
        dashboard = individual_dashboard(sales_user)

        assert dashboard["user"]["team"] == "Equipe Nord"
        assert dashboard["opportunities_by_stage"] == [
            {"stage": "Proposal", "count": 1, "total_value": Decimal("100000.00")},
        ]
        assert dashboard["opportunities_by_status"] == [
            {"status": "Active", "count": 1, "total_value": Decimal("100000.00")},
            {"status": "Won", "count": 1, "total_value": Decimal("200000.00")},
        ]
        # Only the active deal feeds the forecast.
        forecast = dashboard["monthly_forecast"]
        assert [(row.year, row.month) for row in forecast] == [(2025, 1), (2025, 2), (2025, 3)]
        assert all(row.sales_amount == Decimal("15750.00") for row in forecast)
        assert all(row.margin_amount == Decimal("2047.50") for row in forecast)

    def test_recent_activities_are_newest_first(self, pipeline, sales_user):
        activities = individual_dashboard(sales_user)["recent_activities"]

        assert len(activities) == 4
        assert activities[0].created_at >= activities[-1].created_at
        assert {activity.opportunity_id for activity in activities} == {pipeline["active"].pk, pipeline["won"].pk}

    def test_empty_pipeline_has_zero_rates(self, sales_user):
        metrics = individual_dashboard(sales_user)["metrics"]

        assert metrics["total_opportunities"] == 0
        assert metrics["pipeline_value"] == Decimal("0.00")
        assert metrics["win_rate"] == Decimal("0.00")
        assert metrics["average_deal_size"] == Decimal("0.00")

    def test_forecast_is_capped_at_twelve_months(self, coefficients, sales_user, opportunity_data):
        create_opportunity(dict(opportunity_data, closing_date=date(2026, 6, 30)), actor=sales_user)

        forecast = individual_dashboard(sales_user)["monthly_forecast"]

        assert len(forecast) == 12
        assert (forecast[0].year, forecast[0].month) == (2025, 1)
        assert (forecast[-1].year, forecast[-1].month) == (2025, 12)


@pytest.mark.django_db
def test_team_dashboard_lists_every_member(pipeline, team, manager_user, sales_user):
    dashboard = team_dashboard(team)

    assert dashboard["team"]["manager"] == "Manager User"
    assert dashboard["metrics"]["total_members"] == 2
    assert dashboard["metrics"]["total_opportunities"] == 2
    assert dashboard["members_performance"] == [
        {
            "user_id": manager_user.pk,
            "name": "Manager User",
            "opportunities_count": 0,
            "pipeline_value": Decimal("0.00"),
            "won_count": 0,
            "won_value": Decimal("0.00"),
        },
        {
            "user_id": sales_user.pk,
            "name": "Sales User",
            "opportunities_count": 2,
            "pipeline_value": Decimal("100000.00"),
            "won_count": 1,
            "won_value": Decimal("200000.00"),
        },
    ]


@pytest.mark.django_db
def test_global_dashboard_rolls_up_teams(pipeline, team, other_team):
    dashboard = global_dashboard()
    metrics = dashboard["metrics"]

    assert metrics["total_users"] == 3
    assert metrics["total_teams"] == 2
    assert metrics["total_opportunities"] == 3
    assert metrics["win_rate"] == Decimal("50.00")
    assert [row["team_name"] for row in dashboard["teams_performance"]] == ["Equipe Nord", "Equipe Sud"]
    south = dashboard["teams_performance"][1]
    assert south["team_id"] == other_team.pk
    assert south["members_count"] == 1
    assert south["opportunities_count"] == 1
    assert south["pipeline_value"] == Decimal("0.00")
    assert south["won_count"] == 0
