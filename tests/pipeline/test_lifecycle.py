import uuid
from datetime import date
from decimal import Decimal

import pytest
from django.db import DatabaseError

from pipeline import services
from pipeline.models import Opportunity, OpportunityActivity, RevenueDistribution
from pipeline.scoring import CoefficientCache
from pipeline.services import (
    OpportunityValidationError,
    add_activity,
    bulk_update_opportunities,
    change_status,
    create_opportunity,
    diff_opportunity,
    duplicate_opportunity,
    duration_in_months,
    update_opportunity,
    upsert_coefficient,
)


def _distribution(opportunity):
    return list(
        RevenueDistribution.objects.filter(opportunity=opportunity)
        .order_by("year", "month")
        .values_list("id", "year", "month", "sales_amount", "gross_margin_amount")
    )


def test_duration_counts_raw_dates():
    assert duration_in_months(date(2025, 1, 15), date(2025, 3, 20)) == 3
    assert duration_in_months(date(2025, 1, 15), date(2025, 3, 10)) == 2
    assert duration_in_months(date(2025, 1, 31), date(2025, 2, 28)) == 2
    assert duration_in_months(date(2025, 3, 31), date(2025, 4, 30)) == 2
    # month-end beyond the next month does not complete it
    assert duration_in_months(date(2025, 1, 31), date(2025, 4, 30)) == 3
    assert duration_in_months(date(2024, 11, 30), date(2025, 2, 28)) == 4
    assert duration_in_months(date(2025, 1, 1), date(2025, 12, 31)) == 12


@pytest.mark.django_db
class TestCreateOpportunity:
    def test_create_computes_valuation_and_distribution(self, coefficients, sales_user, team, opportunity_data):
        opportunity = create_opportunity(opportunity_data, actor=sales_user)

        assert opportunity.probability_score == Decimal("0.4725")
        assert opportunity.weighted_amount == Decimal("47250.00")
        assert opportunity.gross_margin_amount == Decimal("13000.00")
        assert opportunity.gross_margin_percentage == Decimal("0.1300")
        assert opportunity.duration_months == 3
        assert opportunity.owner == sales_user
        assert opportunity.team == team
        assert opportunity.status == Opportunity.Status.ACTIVE
        assert opportunity.stage == Opportunity.Stage.PROPOSAL

        rows = _distribution(opportunity)
        assert [(year, month) for _, year, month, _, _ in rows] == [(2025, 1), (2025, 2), (2025, 3)]
        assert all(sales == Decimal("15750.00") for _, _, _, sales, _ in rows)
        assert all(margin == Decimal("2047.50") for _, _, _, _, margin in rows)

        activity = opportunity.activities.get()
        assert activity.activity_type == OpportunityActivity.Type.CREATED
        assert activity.user == sales_user
        assert "Maintenance site Douala" in activity.description

    def test_duration_and_distribution_count_can_differ(self, coefficients, sales_user, opportunity_data):
        opportunity_data["closing_date"] = date(2025, 3, 10)

        opportunity = create_opportunity(opportunity_data, actor=sales_user)

        assert opportunity.duration_months == 2
        assert len(_distribution(opportunity)) == 3

    @pytest.mark.parametrize("closing", [date(2025, 1, 15), date(2024, 12, 31)])
    def test_closing_date_must_follow_starting_date(self, coefficients, sales_user, opportunity_data, closing):
        opportunity_data["closing_date"] = closing

        with pytest.raises(OpportunityValidationError):
            create_opportunity(opportunity_data, actor=sales_user)
        assert not Opportunity.objects.exists()

    def test_missing_factor_is_rejected(self, coefficients, sales_user, opportunity_data):
        del opportunity_data["client_relationship"]

        with pytest.raises(OpportunityValidationError, match="client_relationship"):
            create_opportunity(opportunity_data, actor=sales_user)

    def test_margin_out_of_range_is_rejected(self, coefficients, sales_user, opportunity_data):
        opportunity_data["gross_margin_percentage"] = Decimal("1.5")

        with pytest.raises(OpportunityValidationError):
            create_opportunity(opportunity_data, actor=sales_user)

    def test_probability_override_wins_over_factors(self, coefficients, sales_user, opportunity_data):
        opportunity_data["win_probability_override"] = Decimal("0")

        opportunity = create_opportunity(opportunity_data, actor=sales_user)

        assert opportunity.probability_score == Decimal("0.0000")
        assert opportunity.weighted_amount == Decimal("0.00")
        assert all(sales == Decimal("0.00") for _, _, _, sales, _ in _distribution(opportunity))

    def test_injected_engine_is_used(self, static_engine, sales_user, opportunity_data):
        opportunity_data["conservative_approach"] = True

        opportunity = create_opportunity(opportunity_data, actor=sales_user, engine=static_engine)

        assert opportunity.probability_score == Decimal("0.4253")
        assert opportunity.weighted_amount == Decimal("42530.00")

    def test_distribution_failure_rolls_back_create(self, coefficients, sales_user, opportunity_data, monkeypatch):
        def failing_distribution(opportunity):
            raise DatabaseError("insert failed")

        monkeypatch.setattr(services, "regenerate_revenue_distribution", failing_distribution)

        with pytest.raises(DatabaseError):
            create_opportunity(opportunity_data, actor=sales_user)

        assert not Opportunity.objects.exists()
        assert not RevenueDistribution.objects.exists()
        assert not OpportunityActivity.objects.exists()


@pytest.mark.django_db
class TestUpdateOpportunity:
    @pytest.fixture
    def opportunity(self, coefficients, sales_user, opportunity_data):
        return create_opportunity(opportunity_data, actor=sales_user)

    def test_update_with_identical_values_is_a_no_op(self, opportunity, sales_user, opportunity_data):
        before = _distribution(opportunity)
        updated_at = opportunity.updated_at

        result = update_opportunity(opportunity, dict(opportunity_data), actor=sales_user)

        assert result.updated_at == updated_at
        assert _distribution(opportunity) == before
        assert opportunity.activities.count() == 1

    def test_notes_only_change_skips_recalculation(self, opportunity, sales_user):
        before = _distribution(opportunity)

        result = update_opportunity(opportunity, {"update_notes": "Relance client"}, actor=sales_user)

        assert result.update_notes == "Relance client"
        assert result.probability_score == Decimal("0.4725")
        assert result.weighted_amount == Decimal("47250.00")
        assert _distribution(opportunity) == before
        activity = opportunity.activities.filter(activity_type=OpportunityActivity.Type.UPDATED).get()
        assert activity.old_value == {"update_notes": ""}
        assert activity.new_value == {"update_notes": "Relance client"}

    def test_relationship_change_regenerates_everything(self, opportunity, sales_user):
        before_ids = {row[0] for row in _distribution(opportunity)}

        result = update_opportunity(
            opportunity,
            {"client_relationship": "5 - Excellent", "status": "On Hold"},
            actor=sales_user,
        )

        # 0.45 x 1.05 x 1.10 = 0.51975
        assert result.probability_score == Decimal("0.5198")
        assert result.weighted_amount == Decimal("51980.00")
        rows = _distribution(opportunity)
        assert len(rows) == 3
        assert before_ids.isdisjoint({row[0] for row in rows})
        assert all(sales == Decimal("17326.67") for _, _, _, sales, _ in rows)

        activity = opportunity.activities.filter(activity_type=OpportunityActivity.Type.UPDATED).get()
        assert activity.old_value == {"client_relationship": "3 - Good", "status": "Active"}
        assert activity.new_value == {"client_relationship": "5 - Excellent", "status": "On Hold"}

    def test_date_change_updates_duration_and_distribution(self, opportunity, sales_user):
        result = update_opportunity(opportunity, {"closing_date": "2025-06-30"}, actor=sales_user)

        assert result.duration_months == 6
        assert len(_distribution(opportunity)) == 6

    def test_invalid_dates_roll_back(self, opportunity, sales_user):
        before = _distribution(opportunity)

        with pytest.raises(OpportunityValidationError):
            update_opportunity(opportunity, {"closing_date": date(2025, 1, 1)}, actor=sales_user)

        opportunity.refresh_from_db()
        assert opportunity.closing_date == date(2025, 3, 20)
        assert _distribution(opportunity) == before

    def test_distribution_failure_rolls_back_update(self, opportunity, sales_user, monkeypatch):
        before = _distribution(opportunity)

        def failing_distribution(target):
            # Old rows are already gone when the insert fails.
            RevenueDistribution.objects.filter(opportunity=target).delete()
            raise DatabaseError("insert failed")

        monkeypatch.setattr(services, "regenerate_revenue_distribution", failing_distribution)

        with pytest.raises(DatabaseError):
            update_opportunity(opportunity, {"client_relationship": "5 - Excellent"}, actor=sales_user)

        opportunity.refresh_from_db()
        assert opportunity.client_relationship == "3 - Good"
        assert opportunity.probability_score == Decimal("0.4725")
        assert opportunity.weighted_amount == Decimal("47250.00")
        assert _distribution(opportunity) == before
        assert opportunity.activities.count() == 1

    def test_clearing_override_restores_computed_score(self, opportunity, sales_user):
        update_opportunity(opportunity, {"win_probability_override": "0.8"}, actor=sales_user)
        opportunity.refresh_from_db()
        assert opportunity.probability_score == Decimal("0.8000")

        result = update_opportunity(opportunity, {"win_probability_override": None}, actor=sales_user)

        assert result.probability_score == Decimal("0.4725")

    def test_unknown_field_is_rejected(self, opportunity, sales_user):
        with pytest.raises(OpportunityValidationError):
            update_opportunity(opportunity, {"probability_score": "0.99"}, actor=sales_user)

    def test_diff_compares_related_objects_by_key(self, opportunity, sales_user, client_company):
        assert diff_opportunity(opportunity, {"owner": sales_user, "client": client_company}) == []


@pytest.mark.django_db
class TestLifecycleActions:
    @pytest.fixture
    def opportunity(self, coefficients, sales_user, opportunity_data):
        opportunity_data["win_probability_override"] = Decimal("0.9")
        return create_opportunity(opportunity_data, actor=sales_user)

    def test_duplicate_copies_inputs_and_revalues(self, opportunity, manager_user):
        copy = duplicate_opportunity(opportunity, new_name="Maintenance site Kribi", actor=manager_user)

        assert copy.pk != opportunity.pk
        assert copy.project_name == "Maintenance site Kribi"
        assert copy.update_notes == "Dupliquee depuis : Maintenance site Douala"
        assert copy.owner == manager_user
        assert copy.client_id == opportunity.client_id
        assert copy.win_probability_override is None
        assert copy.probability_score == Decimal("0.4725")
        assert len(_distribution(copy)) == 3
        assert copy.activities.filter(activity_type=OpportunityActivity.Type.CREATED).exists()

    def test_duplicate_requires_a_name(self, opportunity, sales_user):
        with pytest.raises(OpportunityValidationError):
            duplicate_opportunity(opportunity, new_name="  ", actor=sales_user)

    def test_change_status_logs_status_and_stage(self, opportunity, sales_user):
        result = change_status(
            opportunity,
            status=Opportunity.Status.WON,
            stage=Opportunity.Stage.CLOSED,
            notes="Bon de commande recu",
            actor=sales_user,
        )

        assert result.status == Opportunity.Status.WON
        assert result.stage == Opportunity.Stage.CLOSED
        assert result.update_notes == "Bon de commande recu"
        kinds = set(opportunity.activities.values_list("activity_type", flat=True))
        assert {"status_changed", "stage_changed", "updated"} <= kinds
        status_activity = opportunity.activities.get(activity_type="status_changed")
        assert status_activity.old_value == {"status": "Active"}
        assert status_activity.new_value == {"status": "Won"}

    def test_repeated_status_is_not_logged_twice(self, opportunity, sales_user):
        change_status(opportunity, status=Opportunity.Status.LOST, actor=sales_user)
        change_status(opportunity, status=Opportunity.Status.LOST, actor=sales_user)

        assert opportunity.activities.filter(activity_type="status_changed").count() == 1

    def test_manual_activity(self, opportunity, sales_user):
        activity = add_activity(
            opportunity,
            actor=sales_user,
            activity_type=OpportunityActivity.Type.CALL_MADE,
            description="  Appel de qualification  ",
        )

        assert activity.description == "Appel de qualification"
        assert activity.user == sales_user

    def test_system_activity_types_are_not_manual(self, opportunity, sales_user):
        with pytest.raises(OpportunityValidationError):
            add_activity(opportunity, actor=sales_user, activity_type="created", description="Faux")


@pytest.mark.django_db
def test_bulk_update_reports_failures(coefficients, sales_user, manager_user, opportunity_data):
    first = create_opportunity(opportunity_data, actor=sales_user)
    second = create_opportunity(dict(opportunity_data, project_name="Extension"), actor=sales_user)
    missing = uuid.uuid4()

    result = bulk_update_opportunities(
        [first.pk, second.pk, missing],
        {"stage": Opportunity.Stage.NEGOTIATION, "owner": manager_user},
        actor=manager_user,
    )

    assert result == {"updated_count": 2, "failed": [str(missing)]}
    assert set(Opportunity.objects.values_list("stage", flat=True)) == {"Negotiation"}
    assert set(Opportunity.objects.values_list("owner", flat=True)) == {manager_user.pk}


@pytest.mark.django_db
def test_bulk_update_only_accepts_assignment_fields(sales_user):
    with pytest.raises(OpportunityValidationError):
        bulk_update_opportunities([uuid.uuid4()], {"original_amount": 10}, actor=sales_user)


@pytest.mark.django_db
def test_coefficient_change_is_visible_to_next_score(coefficients, sales_user, opportunity_data):
    CoefficientCache().get()

    upsert_coefficient("project_maturity", "RFQ", "0.50")
    opportunity = create_opportunity(opportunity_data, actor=sales_user)

    # 0.50 x 1.05
    assert opportunity.probability_score == Decimal("0.5250")
