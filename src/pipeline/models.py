"""Models for the sales pipeline (opportunities and their valuation)."""
from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q

from core.models import TimeStampedModel


class FactorType(models.TextChoices):
    PROJECT_TYPE = "project_type", "Type de projet"
    PROJECT_MATURITY = "project_maturity", "Maturite du projet"
    CLIENT_TYPE = "client_type", "Type de client"
    CLIENT_RELATIONSHIP = "client_relationship", "Relation client"
    CONSERVATIVE_APPROACH = "conservative_approach", "Approche conservatrice"


class ProbabilityCoefficient(TimeStampedModel):
    """Multiplicative weight attached to one factor value.

    Rows are never deleted, only deactivated, so past calculations stay
    explainable.
    """

    factor_type = models.CharField(max_length=30, choices=FactorType.choices, db_index=True)
    factor_value = models.CharField(max_length=120)
    coefficient = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        validators=[MinValueValidator(Decimal("0.0000"))],
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["factor_type", "factor_value"]
        constraints = [
            models.UniqueConstraint(
                fields=["factor_type", "factor_value"],
                condition=Q(is_active=True),
                name="uniq_active_probability_coefficient",
            ),
        ]

    def __str__(self):
        return f"{self.factor_type}:{self.factor_value} = {self.coefficient}"


class Opportunity(TimeStampedModel):
    """Deal tracked in the pipeline, with its derived valuation fields."""

    class ServiceType(models.TextChoices):
        IFM = "IFM", "IFM"
        IFM_HARD = "IFM Hard", "IFM Hard"
        CIVIL_FITOUT = "Civil Fitout works", "Civil Fitout works"
        SPECIAL_PROJECTS = "special projects", "Special projects"

    class SectorType(models.TextChoices):
        DATA_CENTER = "Data Center", "Data Center"
        INDUSTRIAL = "Industrial", "Industrial"
        COMMERCIAL = "Commercial", "Commercial"
        SPECIAL_PROJECT = "Special project", "Special project"

    class ProjectMaturity(models.TextChoices):
        PROSPECTION = "Prospection", "Prospection"
        RFI = "RFI", "RFI"
        RFQ = "RFQ", "RFQ"
        NEGOTIATION = "Negotiation", "Negotiation"
        CONTRACT_SIGNED = "Contract Signed", "Contract Signed"

    class ClientType(models.TextChoices):
        NEW = "New", "Nouveau"
        EXISTING = "Existing", "Existant"

    class ClientRelationship(models.TextChoices):
        LOW = "1 - Low", "1 - Faible"
        MEDIUM = "2 - Medium", "2 - Moyenne"
        GOOD = "3 - Good", "3 - Bonne"
        HIGH = "4 - High", "4 - Forte"
        EXCELLENT = "5 - Excellent", "5 - Excellente"

    class Status(models.TextChoices):
        ACTIVE = "Active", "Active"
        WON = "Won", "Gagnee"
        LOST = "Lost", "Perdue"
        ON_HOLD = "On Hold", "En attente"
        CANCELLED = "Cancelled", "Annulee"

    class Stage(models.TextChoices):
        PROSPECTION = "Prospection", "Prospection"
        QUALIFICATION = "Qualification", "Qualification"
        PROPOSAL = "Proposal", "Proposition"
        NEGOTIATION = "Negotiation", "Negociation"
        CLOSED = "Closed", "Cloturee"

    # Initial stage when the caller does not pick one.
    STAGE_FOR_MATURITY = {
        ProjectMaturity.PROSPECTION: Stage.PROSPECTION,
        ProjectMaturity.RFI: Stage.QUALIFICATION,
        ProjectMaturity.RFQ: Stage.PROPOSAL,
        ProjectMaturity.NEGOTIATION: Stage.NEGOTIATION,
        ProjectMaturity.CONTRACT_SIGNED: Stage.CLOSED,
    }

    project_name = models.CharField(max_length=255, db_index=True)
    update_notes = models.TextField(blank=True, default="")
    service_type = models.CharField(max_length=30, choices=ServiceType.choices)
    sector_type = models.CharField(max_length=30, choices=SectorType.choices)

    original_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    gross_margin_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal("0.13"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("1"))],
    )

    # Scoring factors
    project_type = models.CharField(max_length=120, blank=True, null=True)
    project_maturity = models.CharField(max_length=30, choices=ProjectMaturity.choices)
    client_type = models.CharField(max_length=20, choices=ClientType.choices)
    client_relationship = models.CharField(max_length=20, choices=ClientRelationship.choices)
    conservative_approach = models.BooleanField(default=False)
    win_probability_override = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("1"))],
    )

    # Derived from the factors, the amount and the dates
    probability_score = models.DecimalField(max_digits=5, decimal_places=4)
    weighted_amount = models.DecimalField(max_digits=15, decimal_places=2)
    gross_margin_amount = models.DecimalField(max_digits=15, decimal_places=2)
    duration_months = models.PositiveIntegerField()

    starting_date = models.DateField(db_index=True)
    closing_date = models.DateField(db_index=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE, db_index=True)
    stage = models.CharField(max_length=20, choices=Stage.choices, db_index=True)

    client = models.ForeignKey(
        "clients.ClientCompany",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="opportunities",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="opportunities_owned",
    )
    team = models.ForeignKey(
        "accounts.Team",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="opportunities",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="opportunities_created",
    )
    last_modified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="opportunities_modified",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "opportunite"
        verbose_name_plural = "opportunites"
        constraints = [
            models.CheckConstraint(
                condition=Q(closing_date__gt=F("starting_date")),
                name="opportunity_closing_after_starting",
            ),
        ]
        indexes = [
            models.Index(fields=["owner", "status"], name="pipeline_op_owner_i_5c1d2e_idx"),
            models.Index(fields=["team", "status"], name="pipeline_op_team_id_8a4b7f_idx"),
            models.Index(fields=["status", "stage"], name="pipeline_op_status_3e9f01_idx"),
        ]

    def __str__(self):
        return self.project_name


class RevenueDistribution(models.Model):
    """One forecast month of an opportunity's weighted revenue."""

    opportunity = models.ForeignKey(
        Opportunity,
        on_delete=models.CASCADE,
        related_name="revenue_distribution",
    )
    year = models.PositiveSmallIntegerField()
    month = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)],
    )
    sales_amount = models.DecimalField(max_digits=15, decimal_places=2)
    gross_margin_amount = models.DecimalField(max_digits=15, decimal_places=2)
    is_forecast = models.BooleanField(default=True)

    class Meta:
        ordering = ["year", "month"]
        constraints = [
            models.UniqueConstraint(
                fields=["opportunity", "year", "month"],
                name="uniq_revenue_distribution_month",
            ),
        ]
        indexes = [
            models.Index(fields=["year", "month"], name="pipeline_re_year_6d2c4a_idx"),
        ]

    def __str__(self):
        return f"{self.opportunity_id} {self.year}-{self.month:02d}: {self.sales_amount}"


class OpportunityActivity(TimeStampedModel):
    """Append-only activity trail of an opportunity."""

    class Type(models.TextChoices):
        CREATED = "created", "Creation"
        UPDATED = "updated", "Modification"
        STATUS_CHANGED = "status_changed", "Changement de statut"
        STAGE_CHANGED = "stage_changed", "Changement d'etape"
        NOTE_ADDED = "note_added", "Note"
        MEETING_SCHEDULED = "meeting_scheduled", "Rendez-vous"
        CALL_MADE = "call_made", "Appel"
        EMAIL_SENT = "email_sent", "E-mail"
        PROPOSAL_SENT = "proposal_sent", "Proposition envoyee"
        DOCUMENT_UPLOADED = "document_uploaded", "Document"

    # Types a user may log by hand; the others are written by the lifecycle services.
    MANUAL_TYPES = (
        Type.NOTE_ADDED,
        Type.MEETING_SCHEDULED,
        Type.CALL_MADE,
        Type.EMAIL_SENT,
        Type.PROPOSAL_SENT,
        Type.DOCUMENT_UPLOADED,
    )

    opportunity = models.ForeignKey(
        Opportunity,
        on_delete=models.CASCADE,
        related_name="activities",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="opportunity_activities",
    )
    activity_type = models.CharField(max_length=30, choices=Type.choices)
    description = models.TextField()
    old_value = models.JSONField(null=True, blank=True)
    new_value = models.JSONField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "activite"
        verbose_name_plural = "activites"
        indexes = [
            models.Index(fields=["opportunity", "created_at"], name="pipeline_op_opportu_7b3e5d_idx"),
        ]

    def __str__(self):
        return f"[{self.created_at}] {self.activity_type} on {self.opportunity_id}"
