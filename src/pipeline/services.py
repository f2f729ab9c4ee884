"""Business-logic / service functions for the pipeline app.

Every write keeps an opportunity's derived fields (probability, weighted
amount, margin amount, duration) and its revenue distribution consistent with
its inputs inside a single transaction.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from django.conf import settings
from django.db import DatabaseError, models, transaction
from django.db.models import Count, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils.dateparse import parse_date

from accounts.models import Team, User
from pipeline.distribution import (
    ForecastSummary,
    aggregate_forecast,
    calculate_monthly_distribution,
    yearly_summary,
)
from pipeline.models import (
    FactorType,
    Opportunity,
    OpportunityActivity,
    ProbabilityCoefficient,
    RevenueDistribution,
)
from pipeline.scoring import (
    CoefficientCache,
    ProbabilityFactors,
    ProbabilityScoringEngine,
    get_scoring_engine,
)
from pipeline.utils import money, ratio, to_decimal

logger = logging.getLogger("pipeline")


class OpportunityValidationError(ValueError):
    """Input the caller can correct (dates, missing factor, out-of-range value)."""


@dataclass(frozen=True)
class FieldChange:
    field: str
    old_value: Any
    new_value: Any


# Inputs a caller may change; derived fields are never accepted directly.
OPPORTUNITY_TRACKED_FIELDS = (
    "project_name",
    "update_notes",
    "service_type",
    "sector_type",
    "original_amount",
    "gross_margin_percentage",
    "project_type",
    "project_maturity",
    "client_type",
    "client_relationship",
    "conservative_approach",
    "win_probability_override",
    "starting_date",
    "closing_date",
    "status",
    "stage",
    "client",
    "owner",
    "team",
)

RECALCULATION_FIELDS = frozenset({
    "project_type",
    "project_maturity",
    "client_type",
    "client_relationship",
    "conservative_approach",
    "win_probability_override",
    "original_amount",
    "gross_margin_percentage",
    "starting_date",
    "closing_date",
})

DATE_FIELDS = frozenset({"starting_date", "closing_date"})

REQUIRED_CREATE_FIELDS = (
    "project_name",
    "service_type",
    "sector_type",
    "original_amount",
    "project_maturity",
    "client_type",
    "client_relationship",
    "starting_date",
    "closing_date",
)

MANDATORY_FACTORS = ("project_maturity", "client_type", "client_relationship")

BULK_UPDATE_FIELDS = frozenset({"stage", "status", "owner", "team"})

DUPLICATED_FIELDS = (
    "service_type",
    "sector_type",
    "original_amount",
    "gross_margin_percentage",
    "project_type",
    "project_maturity",
    "client_type",
    "client_relationship",
    "conservative_approach",
    "starting_date",
    "closing_date",
    "client",
    "team",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def duration_in_months(starting_date: date, closing_date: date) -> int:
    """Whole months elapsed between the two raw dates, plus one.

    Unlike the distribution month count, the days matter here: 15 Jan to
    10 Mar spans two months. The last month is complete once the closing
    day reaches the starting day. Two closings also complete it: from
    28 February on, and the last day of the month right after the start.
    """
    months = (closing_date.year - starting_date.year) * 12 + closing_date.month - starting_date.month
    if months >= 1 and closing_date.day < starting_date.day:
        late_february = closing_date.month == 2 and closing_date.day > 27
        end_of_next_month = months == 1 and _is_last_day_of_month(closing_date)
        if not (late_february or end_of_next_month):
            months -= 1
    return months + 1


def _is_last_day_of_month(value: date) -> bool:
    if value.month == 12:
        next_month = date(value.year + 1, 1, 1)
    else:
        next_month = date(value.year, value.month + 1, 1)
    return (next_month - value).days == 1


def _coerce_date(name: str, value) -> date:
    if isinstance(value, date):
        return value
    parsed = parse_date(str(value)) if value else None
    if parsed is None:
        raise OpportunityValidationError(f"Date invalide pour '{name}'.")
    return parsed


def _coerce_decimal(name: str, value) -> Decimal:
    try:
        return to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise OpportunityValidationError(f"Valeur numerique invalide pour '{name}'.")


CHOICE_FIELDS = {
    "service_type": Opportunity.ServiceType,
    "sector_type": Opportunity.SectorType,
    "project_maturity": Opportunity.ProjectMaturity,
    "client_type": Opportunity.ClientType,
    "client_relationship": Opportunity.ClientRelationship,
    "status": Opportunity.Status,
    "stage": Opportunity.Stage,
}


def _normalize_input(name: str, value):
    """Bring a raw input to the type stored on the model."""
    if name in CHOICE_FIELDS and value not in (None, ""):
        if value not in CHOICE_FIELDS[name].values:
            raise OpportunityValidationError(f"Valeur invalide pour '{name}' : {value}.")
        return value
    if name in DATE_FIELDS:
        return _coerce_date(name, value)
    if name == "original_amount":
        return money(_coerce_decimal(name, value))
    if name == "gross_margin_percentage":
        return ratio(_coerce_decimal(name, value))
    if name == "win_probability_override":
        return None if value is None else ratio(_coerce_decimal(name, value))
    if name == "project_type":
        return value or None
    if name == "update_notes":
        return value or ""
    if name == "conservative_approach":
        return bool(value)
    return value


def _comparable(value):
    if isinstance(value, models.Model):
        return value.pk
    return value


def _json_value(value):
    if isinstance(value, models.Model):
        return str(value.pk)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def diff_opportunity(opportunity: Opportunity, changes: dict[str, Any]) -> list[FieldChange]:
    """Compare normalized ``changes`` with the stored values, field by field."""
    diff = []
    for name in OPPORTUNITY_TRACKED_FIELDS:
        if name not in changes:
            continue
        old_value = getattr(opportunity, name)
        new_value = changes[name]
        if _comparable(old_value) != _comparable(new_value):
            diff.append(FieldChange(name, old_value, new_value))
    return diff


def _validate_dates(starting_date: date, closing_date: date) -> None:
    if closing_date <= starting_date:
        raise OpportunityValidationError(
            "La date de cloture doit etre posterieure a la date de debut."
        )


def _validate_inputs(opportunity: Opportunity) -> None:
    missing = [name for name in MANDATORY_FACTORS if not getattr(opportunity, name)]
    if missing:
        raise OpportunityValidationError(
            f"Facteurs obligatoires manquants : {', '.join(missing)}."
        )
    if opportunity.original_amount < 0:
        raise OpportunityValidationError("Le montant ne peut pas etre negatif.")
    if not Decimal("0") <= opportunity.gross_margin_percentage <= Decimal("1"):
        raise OpportunityValidationError("Le taux de marge doit etre compris entre 0 et 1.")
    override = opportunity.win_probability_override
    if override is not None and not Decimal("0") <= override <= Decimal("1"):
        raise OpportunityValidationError("La probabilite forcee doit etre comprise entre 0 et 1.")


def _apply_valuation(opportunity: Opportunity, engine: ProbabilityScoringEngine) -> None:
    """Recompute probability, weighted amount and margin amount in place."""
    if opportunity.win_probability_override is not None:
        probability = ratio(opportunity.win_probability_override)
    else:
        probability = engine.score(ProbabilityFactors.from_opportunity(opportunity))

    amount = to_decimal(opportunity.original_amount)
    opportunity.probability_score = probability
    opportunity.weighted_amount = money(amount * probability)
    opportunity.gross_margin_amount = money(amount * to_decimal(opportunity.gross_margin_percentage))


# ---------------------------------------------------------------------------
# Activity trail
# ---------------------------------------------------------------------------

def record_activity(
    opportunity: Opportunity,
    actor,
    kind: str,
    description: str,
    old_value: dict[str, Any] | None = None,
    new_value: dict[str, Any] | None = None,
) -> OpportunityActivity:
    """Append an entry to the opportunity's activity trail."""
    return OpportunityActivity.objects.create(
        opportunity=opportunity,
        user=actor,
        activity_type=kind,
        description=description,
        old_value=old_value,
        new_value=new_value,
    )


def add_activity(opportunity: Opportunity, *, actor, activity_type: str, description: str) -> OpportunityActivity:
    """Log a manual activity (call, meeting, e-mail...)."""
    if activity_type not in OpportunityActivity.MANUAL_TYPES:
        raise OpportunityValidationError("Type d'activite non autorise.")
    if not (description or "").strip():
        raise OpportunityValidationError("La description est obligatoire.")
    return record_activity(opportunity, actor, activity_type, description.strip())


# ---------------------------------------------------------------------------
# Revenue distribution
# ---------------------------------------------------------------------------

@transaction.atomic
def regenerate_revenue_distribution(opportunity: Opportunity) -> list[RevenueDistribution]:
    """Replace every distribution row of ``opportunity`` with a fresh spread."""
    RevenueDistribution.objects.filter(opportunity=opportunity).delete()
    months = calculate_monthly_distribution(
        opportunity.weighted_amount,
        opportunity.gross_margin_percentage,
        opportunity.starting_date,
        opportunity.closing_date,
    )
    return RevenueDistribution.objects.bulk_create([
        RevenueDistribution(
            opportunity=opportunity,
            year=month.year,
            month=month.month,
            sales_amount=month.sales_amount,
            gross_margin_amount=month.margin_amount,
            is_forecast=month.is_forecast,
        )
        for month in months
    ])


def revenue_distribution_for(opportunity: Opportunity) -> dict[str, list[dict]]:
    """Stored monthly rows of one opportunity plus their yearly summary."""
    rows = list(opportunity.revenue_distribution.order_by("year", "month"))
    return {
        "monthly_distribution": [
            {
                "year": row.year,
                "month": row.month,
                "sales_amount": str(row.sales_amount),
                "gross_margin_amount": str(row.gross_margin_amount),
                "is_forecast": row.is_forecast,
            }
            for row in rows
        ],
        "yearly_summary": [summary.as_dict() for summary in yearly_summary(rows)],
    }


def forecast_for_opportunities(
    opportunity_ids: Iterable,
    start_year: int | None = None,
    end_year: int | None = None,
) -> ForecastSummary:
    """Monthly and yearly forecast totals across several opportunities."""
    rows = RevenueDistribution.objects.filter(opportunity_id__in=list(opportunity_ids))
    if start_year is not None:
        rows = rows.filter(year__gte=start_year)
    if end_year is not None:
        rows = rows.filter(year__lte=end_year)
    return aggregate_forecast(rows.only("year", "month", "sales_amount", "gross_margin_amount"))


# ---------------------------------------------------------------------------
# Opportunity lifecycle
# ---------------------------------------------------------------------------

@transaction.atomic
def create_opportunity(data: dict[str, Any], *, actor, engine: ProbabilityScoringEngine | None = None) -> Opportunity:
    """Create an opportunity with its valuation and revenue distribution.

    Parameters
    ----------
    data : dict
        Input fields (see ``OPPORTUNITY_TRACKED_FIELDS``). ``owner`` defaults
        to ``actor``, ``team`` to the owner's team, ``gross_margin_percentage``
        to ``settings.DEFAULT_GROSS_MARGIN_PERCENTAGE`` and ``stage`` to the
        stage matching the project maturity.
    actor : accounts.models.User
    engine : ProbabilityScoringEngine, optional

    Raises
    ------
    OpportunityValidationError
        If a required field is missing or a value is out of range.
    """
    missing = [name for name in REQUIRED_CREATE_FIELDS if data.get(name) in (None, "")]
    if missing:
        raise OpportunityValidationError(f"Champs obligatoires manquants : {', '.join(missing)}.")

    values = {
        name: _normalize_input(name, data[name])
        for name in OPPORTUNITY_TRACKED_FIELDS
        if name in data
    }
    if values.get("gross_margin_percentage") is None:
        values["gross_margin_percentage"] = ratio(settings.DEFAULT_GROSS_MARGIN_PERCENTAGE)
    _validate_dates(values["starting_date"], values["closing_date"])

    owner = values.pop("owner", None) or actor
    team = values.pop("team", None) or getattr(owner, "team", None)
    if not values.get("stage"):
        values["stage"] = Opportunity.STAGE_FOR_MATURITY.get(
            values["project_maturity"], Opportunity.Stage.PROSPECTION
        )
    if not values.get("status"):
        values["status"] = Opportunity.Status.ACTIVE

    opportunity = Opportunity(
        **values,
        owner=owner,
        team=team,
        created_by=actor,
        last_modified_by=actor,
    )
    _validate_inputs(opportunity)
    opportunity.duration_months = duration_in_months(opportunity.starting_date, opportunity.closing_date)
    _apply_valuation(opportunity, engine or get_scoring_engine())
    opportunity.save()

    regenerate_revenue_distribution(opportunity)
    record_activity(
        opportunity,
        actor,
        OpportunityActivity.Type.CREATED,
        f'Opportunite "{opportunity.project_name}" creee',
    )
    logger.info(
        "Opportunity %s created by %s (probability=%s, weighted=%s)",
        opportunity.pk, actor, opportunity.probability_score, opportunity.weighted_amount,
    )
    return opportunity


@transaction.atomic
def update_opportunity(
    opportunity: Opportunity,
    changes: dict[str, Any],
    *,
    actor,
    engine: ProbabilityScoringEngine | None = None,
) -> Opportunity:
    """Apply ``changes`` and keep the derived state consistent.

    Only fields whose value actually changes count. When none does, nothing
    is written and no activity is recorded. When a valuation input changes,
    the probability, both derived amounts and the whole revenue distribution
    are recomputed.
    """
    unknown = sorted(set(changes) - set(OPPORTUNITY_TRACKED_FIELDS))
    if unknown:
        raise OpportunityValidationError(f"Champs non modifiables : {', '.join(unknown)}.")

    opportunity = Opportunity.objects.select_for_update().get(pk=opportunity.pk)
    normalized = {name: _normalize_input(name, value) for name, value in changes.items()}
    diff = diff_opportunity(opportunity, normalized)
    if not diff:
        logger.debug("Opportunity %s update is a no-op", opportunity.pk)
        return opportunity

    for change in diff:
        setattr(opportunity, change.field, change.new_value)
    changed = {change.field for change in diff}

    _validate_inputs(opportunity)
    if changed & DATE_FIELDS:
        _validate_dates(opportunity.starting_date, opportunity.closing_date)
        opportunity.duration_months = duration_in_months(opportunity.starting_date, opportunity.closing_date)

    needs_recalculation = bool(changed & RECALCULATION_FIELDS)
    if needs_recalculation:
        _apply_valuation(opportunity, engine or get_scoring_engine())

    opportunity.last_modified_by = actor
    opportunity.save()

    if needs_recalculation:
        regenerate_revenue_distribution(opportunity)

    record_activity(
        opportunity,
        actor,
        OpportunityActivity.Type.UPDATED,
        "Opportunite mise a jour",
        old_value={change.field: _json_value(change.old_value) for change in diff},
        new_value={change.field: _json_value(change.new_value) for change in diff},
    )
    logger.info(
        "Opportunity %s updated by %s (fields=%s, recalculated=%s)",
        opportunity.pk, actor, ",".join(sorted(changed)), needs_recalculation,
    )
    return opportunity


def duplicate_opportunity(
    opportunity: Opportunity,
    *,
    new_name: str,
    actor,
    engine: ProbabilityScoringEngine | None = None,
) -> Opportunity:
    """Create a copy of ``opportunity`` valued afresh with today's coefficients."""
    if not (new_name or "").strip():
        raise OpportunityValidationError("Le nom de la nouvelle opportunite est obligatoire.")

    data = {name: getattr(opportunity, name) for name in DUPLICATED_FIELDS}
    data["project_name"] = new_name.strip()
    data["update_notes"] = f"Dupliquee depuis : {opportunity.project_name}"
    return create_opportunity(data, actor=actor, engine=engine)


@transaction.atomic
def change_status(
    opportunity: Opportunity,
    *,
    status: str,
    actor,
    stage: str | None = None,
    notes: str | None = None,
) -> Opportunity:
    """Move an opportunity to any status/stage; every combination is accepted."""
    opportunity = Opportunity.objects.select_for_update().get(pk=opportunity.pk)
    old_status, old_stage = opportunity.status, opportunity.stage
    changes: dict[str, Any] = {"status": status}
    if stage:
        changes["stage"] = stage
    if notes:
        changes["update_notes"] = notes

    updated = update_opportunity(opportunity, changes, actor=actor)
    if updated.status != old_status:
        record_activity(
            updated,
            actor,
            OpportunityActivity.Type.STATUS_CHANGED,
            f"Statut change en {updated.status}",
            old_value={"status": old_status},
            new_value={"status": updated.status},
        )
    if updated.stage != old_stage:
        record_activity(
            updated,
            actor,
            OpportunityActivity.Type.STAGE_CHANGED,
            f"Etape changee en {updated.stage}",
            old_value={"stage": old_stage},
            new_value={"stage": updated.stage},
        )
    return updated


def bulk_update_opportunities(ids: Iterable, changes: dict[str, Any], *, actor, queryset=None) -> dict[str, Any]:
    """Apply the same stage/status/owner/team change to several opportunities.

    Each opportunity is updated in its own transaction; a failure on one is
    reported in ``failed`` and does not stop the others.
    """
    unknown = sorted(set(changes) - BULK_UPDATE_FIELDS)
    if unknown:
        raise OpportunityValidationError(f"Champs non modifiables en masse : {', '.join(unknown)}.")

    base = queryset if queryset is not None else Opportunity.objects.all()
    updated_count = 0
    failed = []
    for opportunity_id in ids:
        try:
            opportunity = base.get(pk=opportunity_id)
            update_opportunity(opportunity, changes, actor=actor)
        except (Opportunity.DoesNotExist, ValueError, DatabaseError) as exc:
            logger.warning("Bulk update skipped opportunity %s: %s", opportunity_id, exc)
            failed.append(str(opportunity_id))
            continue
        updated_count += 1
    return {"updated_count": updated_count, "failed": failed}


# ---------------------------------------------------------------------------
# Coefficient table administration
# ---------------------------------------------------------------------------

@transaction.atomic
def upsert_coefficient(
    factor_type: str,
    factor_value: str,
    coefficient,
    *,
    cache: CoefficientCache | None = None,
) -> ProbabilityCoefficient:
    """Create or overwrite the active coefficient of one factor value.

    The coefficient cache is cleared right away so scoring never waits for
    the TTL to pick up the new weight.
    """
    if factor_type not in FactorType.values:
        raise OpportunityValidationError(f"Type de facteur inconnu : {factor_type}.")
    if not (factor_value or "").strip():
        raise OpportunityValidationError("La valeur du facteur est obligatoire.")
    weight = ratio(_coerce_decimal("coefficient", coefficient))
    if weight < 0:
        raise OpportunityValidationError("Le coefficient ne peut pas etre negatif.")

    existing = (
        ProbabilityCoefficient.objects.select_for_update()
        .filter(factor_type=factor_type, factor_value=factor_value)
        .order_by("-is_active", "-updated_at")
        .first()
    )
    if existing:
        existing.coefficient = weight
        existing.is_active = True
        existing.save(update_fields=["coefficient", "is_active", "updated_at"])
        row = existing
    else:
        row = ProbabilityCoefficient.objects.create(
            factor_type=factor_type,
            factor_value=factor_value,
            coefficient=weight,
            is_active=True,
        )

    _invalidate_after_commit(cache)
    logger.info("Coefficient %s:%s set to %s", factor_type, factor_value, weight)
    return row


@transaction.atomic
def deactivate_coefficient(coefficient: ProbabilityCoefficient, *, cache: CoefficientCache | None = None) -> ProbabilityCoefficient:
    """Retire a coefficient; its factor value falls back to the neutral weight."""
    if coefficient.is_active:
        coefficient.is_active = False
        coefficient.save(update_fields=["is_active", "updated_at"])
        _invalidate_after_commit(cache)
        logger.info("Coefficient %s:%s deactivated", coefficient.factor_type, coefficient.factor_value)
    return coefficient


def grouped_coefficients(cache: CoefficientCache | None = None) -> dict[str, list[dict[str, str]]]:
    """Active coefficients grouped by factor type."""
    grouped: dict[str, list[dict[str, str]]] = {}
    for row in (cache or CoefficientCache()).get():
        grouped.setdefault(row.factor_type, []).append({
            "factor_value": row.factor_value,
            "coefficient": str(row.coefficient),
        })
    return grouped


def _invalidate_after_commit(cache: CoefficientCache | None) -> None:
    target = cache or CoefficientCache()
    # Clear now and again after commit, so a reload racing the write cannot
    # re-cache the previous weights.
    target.invalidate()
    transaction.on_commit(target.invalidate)


# ---------------------------------------------------------------------------
# Dashboards
# ---------------------------------------------------------------------------

ZERO_AMOUNT = Decimal("0.00")
DASHBOARD_FORECAST_MONTHS = 12

IS_ACTIVE = Q(status=Opportunity.Status.ACTIVE)
IS_WON = Q(status=Opportunity.Status.WON)
IS_LOST = Q(status=Opportunity.Status.LOST)


def _amount_sum(field: str, condition: Q | None = None):
    return Coalesce(Sum(field, filter=condition), Value(ZERO_AMOUNT))


def _pipeline_metrics(opportunities) -> dict[str, Any]:
    """Headline figures shared by every dashboard.

    Pipeline values cover Active deals; won value and average deal size
    cover Won deals; win rate is Won over Won + Lost, as a percentage.
    """
    totals = opportunities.aggregate(
        total_opportunities=Count("id"),
        active_opportunities=Count("id", filter=IS_ACTIVE),
        won_opportunities=Count("id", filter=IS_WON),
        lost_opportunities=Count("id", filter=IS_LOST),
        pipeline_value=_amount_sum("original_amount", IS_ACTIVE),
        weighted_pipeline_value=_amount_sum("weighted_amount", IS_ACTIVE),
        won_value=_amount_sum("original_amount", IS_WON),
    )
    won = totals["won_opportunities"]
    closed = won + totals["lost_opportunities"]
    won_value = to_decimal(totals["won_value"])
    return {
        "total_opportunities": totals["total_opportunities"],
        "active_opportunities": totals["active_opportunities"],
        "won_opportunities": won,
        "lost_opportunities": totals["lost_opportunities"],
        "pipeline_value": money(totals["pipeline_value"]),
        "weighted_pipeline_value": money(totals["weighted_pipeline_value"]),
        "won_value": money(won_value),
        "win_rate": money(Decimal(won) * 100 / closed) if closed else ZERO_AMOUNT,
        "average_deal_size": money(won_value / won) if won else ZERO_AMOUNT,
    }


def _group_by(opportunities, field: str) -> list[dict[str, Any]]:
    rows = (
        opportunities.order_by()
        .values(field)
        .annotate(count=Count("id"), total_value=_amount_sum("original_amount"))
        .order_by(field)
    )
    return [
        {field: row[field], "count": row["count"], "total_value": money(row["total_value"])}
        for row in rows
    ]


def _performance_by(opportunities, key: str) -> dict[Any, dict[str, Any]]:
    rows = (
        opportunities.order_by()
        .values(key)
        .annotate(
            opportunities_count=Count("id"),
            pipeline_value=_amount_sum("original_amount", IS_ACTIVE),
            won_count=Count("id", filter=IS_WON),
            won_value=_amount_sum("original_amount", IS_WON),
        )
    )
    return {row[key]: row for row in rows}


def _performance(stats: dict[str, Any] | None) -> dict[str, Any]:
    stats = stats or {}
    return {
        "opportunities_count": stats.get("opportunities_count", 0),
        "pipeline_value": money(stats.get("pipeline_value", ZERO_AMOUNT)),
        "won_count": stats.get("won_count", 0),
        "won_value": money(stats.get("won_value", ZERO_AMOUNT)),
    }


def _active_forecast(opportunities):
    rows = RevenueDistribution.objects.filter(opportunity__in=opportunities.filter(IS_ACTIVE))
    summary = aggregate_forecast(rows.only("year", "month", "sales_amount", "gross_margin_amount"))
    return summary.by_month[:DASHBOARD_FORECAST_MONTHS]


def _recent_activities(opportunities, limit: int):
    return list(
        OpportunityActivity.objects.filter(opportunity__in=opportunities)
        .select_related("user")
        .order_by("-created_at")[:limit]
    )


def individual_dashboard(user) -> dict[str, Any]:
    """Pipeline figures of the deals ``user`` owns."""
    opportunities = Opportunity.objects.filter(owner=user)
    return {
        "user": {
            "id": user.pk,
            "name": user.get_full_name(),
            "email": user.email,
            "team": user.team.name if user.team_id else None,
        },
        "metrics": _pipeline_metrics(opportunities),
        "opportunities_by_stage": _group_by(opportunities.filter(IS_ACTIVE), "stage"),
        "opportunities_by_status": _group_by(opportunities, "status"),
        "monthly_forecast": _active_forecast(opportunities),
        "recent_activities": _recent_activities(opportunities, 10),
    }


def team_dashboard(team: Team) -> dict[str, Any]:
    """Pipeline figures of the deals owned by ``team`` members, per member."""
    members = list(team.members.order_by("last_name", "first_name"))
    opportunities = Opportunity.objects.filter(owner__team=team)
    stats = _performance_by(opportunities, "owner_id")

    metrics = _pipeline_metrics(opportunities)
    metrics["total_members"] = len(members)
    return {
        "team": {
            "id": team.pk,
            "name": team.name,
            "manager": team.manager.get_full_name() if team.manager_id else None,
        },
        "metrics": metrics,
        "members_performance": [
            {"user_id": member.pk, "name": member.get_full_name(), **_performance(stats.get(member.pk))}
            for member in members
        ],
        "opportunities_by_stage": _group_by(opportunities.filter(IS_ACTIVE), "stage"),
        "opportunities_by_status": _group_by(opportunities, "status"),
        "monthly_forecast": _active_forecast(opportunities),
    }


def global_dashboard() -> dict[str, Any]:
    """Company-wide pipeline figures with a per-team breakdown."""
    opportunities = Opportunity.objects.all()
    stats = _performance_by(opportunities, "owner__team")
    teams = Team.objects.annotate(members_count=Count("members")).order_by("name")

    metrics = _pipeline_metrics(opportunities)
    metrics["total_users"] = User.objects.count()
    metrics["total_teams"] = Team.objects.count()
    return {
        "metrics": metrics,
        "teams_performance": [
            {
                "team_id": team.pk,
                "team_name": team.name,
                "members_count": team.members_count,
                **_performance(stats.get(team.pk)),
            }
            for team in teams
        ],
        "opportunities_by_stage": _group_by(opportunities.filter(IS_ACTIVE), "stage"),
        "opportunities_by_status": _group_by(opportunities, "status"),
        "monthly_forecast": _active_forecast(opportunities),
        "recent_activities": _recent_activities(opportunities, 20),
    }
