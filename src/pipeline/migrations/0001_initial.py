import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("clients", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ProbabilityCoefficient",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("factor_type", models.CharField(choices=[("project_type", "Type de projet"), ("project_maturity", "Maturite du projet"), ("client_type", "Type de client"), ("client_relationship", "Relation client"), ("conservative_approach", "Approche conservatrice")], db_index=True, max_length=30)),
                ("factor_value", models.CharField(max_length=120)),
                ("coefficient", models.DecimalField(decimal_places=4, max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal("0.0000"))])),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "ordering": ["factor_type", "factor_value"],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("is_active", True)), fields=("factor_type", "factor_value"), name="uniq_active_probability_coefficient"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Opportunity",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("project_name", models.CharField(db_index=True, max_length=255)),
                ("update_notes", models.TextField(blank=True, default="")),
                ("service_type", models.CharField(choices=[("IFM", "IFM"), ("IFM Hard", "IFM Hard"), ("Civil Fitout works", "Civil Fitout works"), ("special projects", "Special projects")], max_length=30)),
                ("sector_type", models.CharField(choices=[("Data Center", "Data Center"), ("Industrial", "Industrial"), ("Commercial", "Commercial"), ("Special project", "Special project")], max_length=30)),
                ("original_amount", models.DecimalField(decimal_places=2, max_digits=15, validators=[django.core.validators.MinValueValidator(Decimal("0.00"))])),
                ("gross_margin_percentage", models.DecimalField(decimal_places=4, default=Decimal("0.13"), max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal("0")), django.core.validators.MaxValueValidator(Decimal("1"))])),
                ("project_type", models.CharField(blank=True, max_length=120, null=True)),
                ("project_maturity", models.CharField(choices=[("Prospection", "Prospection"), ("RFI", "RFI"), ("RFQ", "RFQ"), ("Negotiation", "Negotiation"), ("Contract Signed", "Contract Signed")], max_length=30)),
                ("client_type", models.CharField(choices=[("New", "Nouveau"), ("Existing", "Existant")], max_length=20)),
                ("client_relationship", models.CharField(choices=[("1 - Low", "1 - Faible"), ("2 - Medium", "2 - Moyenne"), ("3 - Good", "3 - Bonne"), ("4 - High", "4 - Forte"), ("5 - Excellent", "5 - Excellente")], max_length=20)),
                ("conservative_approach", models.BooleanField(default=False)),
                ("win_probability_override", models.DecimalField(blank=True, decimal_places=4, max_digits=5, null=True, validators=[django.core.validators.MinValueValidator(Decimal("0")), django.core.validators.MaxValueValidator(Decimal("1"))])),
                ("probability_score", models.DecimalField(decimal_places=4, max_digits=5)),
                ("weighted_amount", models.DecimalField(decimal_places=2, max_digits=15)),
                ("gross_margin_amount", models.DecimalField(decimal_places=2, max_digits=15)),
                ("duration_months", models.PositiveIntegerField()),
                ("starting_date", models.DateField(db_index=True)),
                ("closing_date", models.DateField(db_index=True)),
                ("status", models.CharField(choices=[("Active", "Active"), ("Won", "Gagnee"), ("Lost", "Perdue"), ("On Hold", "En attente"), ("Cancelled", "Annulee")], db_index=True, default="Active", max_length=20)),
                ("stage", models.CharField(choices=[("Prospection", "Prospection"), ("Qualification", "Qualification"), ("Proposal", "Proposition"), ("Negotiation", "Negociation"), ("Closed", "Cloturee")], db_index=True, max_length=20)),
                ("client", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="opportunities", to="clients.clientcompany")),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="opportunities_owned", to=settings.AUTH_USER_MODEL)),
                ("team", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="opportunities", to="accounts.team")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="opportunities_created", to=settings.AUTH_USER_MODEL)),
                ("last_modified_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="opportunities_modified", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "opportunite",
                "verbose_name_plural": "opportunites",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["owner", "status"], name="pipeline_op_owner_i_5c1d2e_idx"),
                    models.Index(fields=["team", "status"], name="pipeline_op_team_id_8a4b7f_idx"),
                    models.Index(fields=["status", "stage"], name="pipeline_op_status_3e9f01_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("closing_date__gt", models.F("starting_date"))), name="opportunity_closing_after_starting"),
                ],
            },
        ),
        migrations.CreateModel(
            name="RevenueDistribution",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("year", models.PositiveSmallIntegerField()),
                ("month", models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(12)])),
                ("sales_amount", models.DecimalField(decimal_places=2, max_digits=15)),
                ("gross_margin_amount", models.DecimalField(decimal_places=2, max_digits=15)),
                ("is_forecast", models.BooleanField(default=True)),
                ("opportunity", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="revenue_distribution", to="pipeline.opportunity")),
            ],
            options={
                "ordering": ["year", "month"],
                "indexes": [
                    models.Index(fields=["year", "month"], name="pipeline_re_year_6d2c4a_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("opportunity", "year", "month"), name="uniq_revenue_distribution_month"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OpportunityActivity",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("activity_type", models.CharField(choices=[("created", "Creation"), ("updated", "Modification"), ("status_changed", "Changement de statut"), ("stage_changed", "Changement d'etape"), ("note_added", "Note"), ("meeting_scheduled", "Rendez-vous"), ("call_made", "Appel"), ("email_sent", "E-mail"), ("proposal_sent", "Proposition envoyee"), ("document_uploaded", "Document")], max_length=30)),
                ("description", models.TextField()),
                ("old_value", models.JSONField(blank=True, null=True)),
                ("new_value", models.JSONField(blank=True, null=True)),
                ("opportunity", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="activities", to="pipeline.opportunity")),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="opportunity_activities", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "activite",
                "verbose_name_plural": "activites",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["opportunity", "created_at"], name="pipeline_op_opportu_7b3e5d_idx"),
                ],
            },
        ),
    ]
